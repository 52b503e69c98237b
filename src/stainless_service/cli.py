import argparse
import json
import logging
import sys
from contextlib import contextmanager
from pathlib import Path

from eth_utils import decode_hex

from stainless_service import server
from stainless_service.client import StainlessClient
from stainless_service.config import ServiceConfig
from stainless_service.constants import DEFAULT_GAS_LIMIT, DEFAULT_GAS_PRICE
from stainless_service.errors import StainlessError
from stainless_service.service import StainlessService

logger = logging.getLogger(__name__)


def _uint(raw: str) -> int:
    try:
        n = int(raw, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {raw!r}") from None
    if n < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {n}")
    return n


def _read_sources(paths: list[Path]) -> dict[str, str]:
    files: dict[str, str] = {}
    for p in paths:
        if p.name in files:
            raise SystemExit(f"duplicate source filename: {p.name}")
        files[p.name] = p.read_text(encoding="utf-8")
    return files


def _bytes_arg(value: str | None, path: Path | None, label: str) -> bytes:
    if path is not None:
        value = path.read_text(encoding="utf-8").strip()
    if value is None:
        raise SystemExit(f"missing {label}")
    return decode_hex(value)


@contextmanager
def _backend(args):
    if args.remote:
        with StainlessClient(args.remote) as client:
            yield client
    else:
        yield StainlessService(ServiceConfig.from_env(dotenv_path=args.env_file))


def _emit(obj) -> None:
    sys.stdout.write(json.dumps(obj, indent=2) + "\n")


def cmd_verify(args) -> None:
    files = _read_sources(args.files)
    with _backend(args) as backend:
        result = backend.verify(files)
    _emit(result.to_dict())


def cmd_bytecode(args) -> None:
    files = _read_sources(args.files)
    with _backend(args) as backend:
        contracts = backend.gen_bytecode(files)
    _emit({name: art.to_dict() for name, art in contracts.items()})


def cmd_deploy(args) -> None:
    bytecode = _bytes_arg(args.bytecode, args.bin_file, "bytecode")
    with _backend(args) as backend:
        build = backend.deploy_contract(
            gas_limit=args.gas_limit,
            gas_price=args.gas_price,
            amount=args.amount,
            bytecode=bytecode,
            abi_json=args.abi_file.read_text(encoding="utf-8"),
            args=args.args,
        )
    _emit(build.to_dict())


def cmd_call(args) -> None:
    with _backend(args) as backend:
        build = backend.execute_transaction(
            gas_limit=args.gas_limit,
            gas_price=args.gas_price,
            amount=args.amount,
            contract_address=decode_hex(args.address),
            nonce=args.nonce,
            abi_json=args.abi_file.read_text(encoding="utf-8"),
            method=args.method,
            args=args.args,
        )
    _emit(build.to_dict())


def cmd_finalize(args) -> None:
    transaction = _bytes_arg(args.transaction, args.transaction_file, "transaction")
    with _backend(args) as backend:
        signed = backend.finalize_transaction(transaction, decode_hex(args.signature))
    _emit({"transaction": "0x" + signed.hex()})


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--remote", type=str, default=None, help="Call a running service at this URL instead of in-process")
    p.add_argument("--env-file", type=Path, default=Path(".env"), help="Optional .env file with STAINLESS_* settings")


def _add_gas(p: argparse.ArgumentParser) -> None:
    p.add_argument("--gas-limit", type=_uint, default=DEFAULT_GAS_LIMIT)
    p.add_argument("--gas-price", type=_uint, default=DEFAULT_GAS_PRICE)
    p.add_argument("--amount", type=_uint, default=0, help="Value transferred, in wei")
    p.add_argument("--abi-file", type=Path, required=True, help="Contract ABI (JSON)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Verify Stainless contracts and build Ethereum transactions")
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_verify = subparsers.add_parser("verify", help="Verify Stainless sources and print the report")
    p_verify.add_argument("files", type=Path, nargs="+")
    _add_common(p_verify)
    p_verify.set_defaults(func=cmd_verify)

    p_bytecode = subparsers.add_parser("bytecode", help="Transpile and compile Stainless sources")
    p_bytecode.add_argument("files", type=Path, nargs="+")
    _add_common(p_bytecode)
    p_bytecode.set_defaults(func=cmd_bytecode)

    p_deploy = subparsers.add_parser("deploy", help="Build an unsigned contract-creation transaction")
    src = p_deploy.add_mutually_exclusive_group(required=True)
    src.add_argument("--bytecode", type=str, help="Contract bytecode (hex)")
    src.add_argument("--bin-file", type=Path, help="File holding the contract bytecode (hex)")
    _add_gas(p_deploy)
    p_deploy.add_argument("args", nargs="*", help="Constructor arguments (JSON literals)")
    _add_common(p_deploy)
    p_deploy.set_defaults(func=cmd_deploy)

    p_call = subparsers.add_parser("call", help="Build an unsigned method-call transaction")
    p_call.add_argument("--address", type=str, required=True, help="Contract address (hex)")
    p_call.add_argument("--nonce", type=_uint, required=True)
    p_call.add_argument("--method", type=str, required=True)
    _add_gas(p_call)
    p_call.add_argument("args", nargs="*", help="Method arguments (JSON literals)")
    _add_common(p_call)
    p_call.set_defaults(func=cmd_call)

    p_final = subparsers.add_parser("finalize", help="Attach a signature to a serialized transaction")
    tx = p_final.add_mutually_exclusive_group(required=True)
    tx.add_argument("--transaction", type=str, help="Serialized transaction (hex)")
    tx.add_argument("--transaction-file", type=Path, help="File holding the serialized transaction (hex)")
    p_final.add_argument("--signature", type=str, required=True, help="65-byte [R || S || V] signature (hex)")
    _add_common(p_final)
    p_final.set_defaults(func=cmd_finalize)

    subparsers.add_parser("serve", help="Run the HTTP server (remaining options go to the server)", add_help=False)

    return parser


def main(argv: list[str] | None = None) -> None:
    argv = sys.argv[1:] if argv is None else argv
    if argv and argv[0] == "serve":
        server.main(argv[1:])
        return

    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "serve":
        server.main([])
        return

    try:
        args.func(args)
    except StainlessError as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        sys.stderr.write(json.dumps({"error": e.to_dict()}, indent=2) + "\n")
        sys.exit(1)
    except ValueError as e:
        sys.stderr.write(f"error: {e}\n")
        sys.exit(2)


if __name__ == "__main__":
    main()
