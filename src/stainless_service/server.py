"""HTTP front end for stainless-service.

Every operation is a POST taking and returning JSON. Byte strings (bytecode,
addresses, serialized transactions, signatures) travel as `0x` hex. Errors are
returned as `{"error": {"code", "message", "data"}}` with the HTTP status of
the error class.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, cast

import jsonschema
import uvicorn
from eth_utils import decode_hex
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from stainless_service.config import ServiceConfig
from stainless_service.errors import StainlessError
from stainless_service.logging import JsonlLogger, default_run_id
from stainless_service.metrics import MetricsMiddleware
from stainless_service.service import StainlessService
from stainless_service.utils import resolve_binary

logger = logging.getLogger(__name__)

INVALID_REQUEST = -32600
INVALID_PARAMS = -32602

_HEX = {"type": "string", "pattern": "^(0x)?([0-9a-fA-F]{2})*$"}
_UINT = {"type": "integer", "minimum": 0}

SOURCE_FILES_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["files"],
    "properties": {
        "files": {"type": "object", "additionalProperties": {"type": "string"}},
    },
}

_TX_COMMON = {
    "gasLimit": _UINT,
    "gasPrice": _UINT,
    "amount": _UINT,
    "abi": {"type": "string"},
    "args": {"type": "array", "items": {"type": "string"}},
}

DEPLOY_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["gasLimit", "gasPrice", "amount", "bytecode", "abi"],
    "properties": {**_TX_COMMON, "bytecode": _HEX},
}

TRANSACTION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["gasLimit", "gasPrice", "amount", "contractAddress", "nonce", "abi", "method"],
    "properties": {
        **_TX_COMMON,
        "contractAddress": _HEX,
        "nonce": _UINT,
        "method": {"type": "string"},
    },
}

FINALIZE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["transaction", "signature"],
    "properties": {"transaction": _HEX, "signature": _HEX},
}


def _error_response(code: int, message: str, status_code: int, data: dict[str, Any] | None = None) -> JSONResponse:
    return JSONResponse({"error": {"code": code, "message": message, "data": data or {}}}, status_code=status_code)


async def _read_body(request: Request, schema: dict[str, Any]) -> dict[str, Any]:
    try:
        body = await request.json()
    except json.JSONDecodeError as e:
        raise _BadRequest(INVALID_REQUEST, f"Invalid JSON: {e}") from e
    try:
        jsonschema.validate(body, schema)
    except jsonschema.ValidationError as e:
        path = "/".join(str(p) for p in e.absolute_path)
        raise _BadRequest(INVALID_PARAMS, f"Invalid request body: {e.message}", {"path": path}) from e
    return cast(dict[str, Any], body)


class _BadRequest(Exception):
    def __init__(self, code: int, message: str, data: dict[str, Any] | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


Handler = Callable[[Request], Awaitable[JSONResponse]]


def _handles_errors(fn: Handler) -> Handler:
    async def wrapper(request: Request) -> JSONResponse:
        try:
            return await fn(request)
        except _BadRequest as e:
            return _error_response(e.code, e.message, 400, e.data)
        except StainlessError as e:
            return JSONResponse({"error": e.to_dict()}, status_code=e.http_status)
        except ValueError as e:
            return _error_response(INVALID_PARAMS, str(e), 400)

    return wrapper


def build_app(service: StainlessService | None = None) -> Starlette:
    svc = service or StainlessService()

    @_handles_errors
    async def verify(request: Request) -> JSONResponse:
        """
        POST /verify
        Body: {"files": {"Name.scala": "..."}}

        Returns:
            200: {"console": "...", "report": "<report.json text>" | null}
        """
        body = await _read_body(request, SOURCE_FILES_SCHEMA)
        result = await run_in_threadpool(svc.verify, body["files"])
        return JSONResponse(result.to_dict())

    @_handles_errors
    async def bytecode(request: Request) -> JSONResponse:
        """
        POST /bytecode
        Body: {"files": {"Name.scala": "..."}}

        Returns:
            200: {"contracts": {"Name.sol": {"abi": "...", "bin": "..."}}}
        """
        body = await _read_body(request, SOURCE_FILES_SCHEMA)
        contracts = await run_in_threadpool(svc.gen_bytecode, body["files"])
        return JSONResponse({"contracts": {name: art.to_dict() for name, art in contracts.items()}})

    @_handles_errors
    async def deploy(request: Request) -> JSONResponse:
        body = await _read_body(request, DEPLOY_SCHEMA)
        build = await run_in_threadpool(
            lambda: svc.deploy_contract(
                gas_limit=body["gasLimit"],
                gas_price=body["gasPrice"],
                amount=body["amount"],
                bytecode=decode_hex(body["bytecode"]),
                abi_json=body["abi"],
                args=body.get("args", []),
            )
        )
        return JSONResponse(build.to_dict())

    @_handles_errors
    async def transaction(request: Request) -> JSONResponse:
        body = await _read_body(request, TRANSACTION_SCHEMA)
        build = await run_in_threadpool(
            lambda: svc.execute_transaction(
                gas_limit=body["gasLimit"],
                gas_price=body["gasPrice"],
                amount=body["amount"],
                contract_address=decode_hex(body["contractAddress"]),
                nonce=body["nonce"],
                abi_json=body["abi"],
                method=body["method"],
                args=body.get("args", []),
            )
        )
        return JSONResponse(build.to_dict())

    @_handles_errors
    async def finalize(request: Request) -> JSONResponse:
        body = await _read_body(request, FINALIZE_SCHEMA)
        signed = await run_in_threadpool(
            svc.finalize_transaction, decode_hex(body["transaction"]), decode_hex(body["signature"])
        )
        return JSONResponse({"transaction": "0x" + signed.hex()})

    async def health(request: Request) -> JSONResponse:
        cfg = svc.config
        tools = {}
        for role, cmd in (("verifier", cfg.verifier_cmd), ("compiler", cfg.compiler_cmd)):
            path = resolve_binary(cmd)
            tools[role] = {"command": cmd, "path": str(path) if path else None, "found": path is not None}

        ok = all(t["found"] for t in tools.values())
        status = {
            "status": "ok" if ok else "degraded",
            "tools": tools,
            "cache": {"dir": str(cfg.cache_dir), "mode": cfg.cache_mode},
            "signer": svc.builder.signer.name,
        }
        # Transaction endpoints still work without the tools, but report degraded
        return JSONResponse(status, status_code=200 if ok else 503)

    async def get_metrics(request: Request) -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app = Starlette(
        routes=[
            Route("/verify", verify, methods=["POST"]),
            Route("/bytecode", bytecode, methods=["POST"]),
            Route("/deploy", deploy, methods=["POST"]),
            Route("/transaction", transaction, methods=["POST"]),
            Route("/finalize", finalize, methods=["POST"]),
            Route("/health", health),
            Route("/metrics", get_metrics),
        ]
    )
    app.add_middleware(cast(Any, MetricsMiddleware))
    return app


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    p = argparse.ArgumentParser(description="stainless-service HTTP server")
    p.add_argument("--host", type=str, default="127.0.0.1")
    p.add_argument("--port", type=int, default=8080)
    p.add_argument("--env-file", type=Path, default=Path(".env"), help="Optional .env file with STAINLESS_* settings")
    p.add_argument("--log-dir", type=Path, default=None, help="Write a JSONL request log under this directory")
    args = p.parse_args(argv)

    config = ServiceConfig.from_env(dotenv_path=args.env_file)

    request_log = None
    if args.log_dir is not None:
        request_log = JsonlLogger(base_dir=args.log_dir, run_id=default_run_id(prefix="serve"))
        request_log.write_run_metadata({"config": dataclasses.asdict(config), "host": args.host, "port": args.port})
        logger.info(f"Request log: {request_log.paths.events}")

    app = build_app(StainlessService(config, request_log=request_log))
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
