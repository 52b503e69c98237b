"""Python client for a running stainless-service."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

import httpx

from stainless_service.artifacts import CompiledArtifact
from stainless_service.builder import TransactionBuild
from stainless_service.errors import RemoteError
from stainless_service.verification import VerificationResult

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_TIMEOUT_SECONDS = 120.0


def _hex(b: bytes) -> str:
    return "0x" + bytes(b).hex()


def _unhex(s: str) -> bytes:
    return bytes.fromhex(s[2:] if s.startswith("0x") else s)


class StainlessClient:
    """
    One method per service operation.

    Pass `http` to reuse a configured `httpx.Client` (or a Starlette
    `TestClient`); otherwise a client is created against `base_url`.
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8080",
        *,
        timeout: float = DEFAULT_CLIENT_TIMEOUT_SECONDS,
        http: httpx.Client | None = None,
    ) -> None:
        self._owns_http = http is None
        self.http = http or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def __enter__(self) -> StainlessClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        resp = self.http.post(path, json=payload)
        try:
            body = resp.json()
        except ValueError:
            raise RemoteError(
                -32000, f"HTTP {resp.status_code}: non-JSON response", http_status=resp.status_code
            ) from None

        if resp.status_code >= 400 or (isinstance(body, dict) and "error" in body):
            err = body.get("error") if isinstance(body, dict) else None
            if not isinstance(err, dict):
                raise RemoteError(-32000, f"HTTP {resp.status_code}: {body}", http_status=resp.status_code)
            logger.debug(f"{path} failed: {err}")
            raise RemoteError(
                int(err.get("code", -32000)),
                str(err.get("message", "")),
                err.get("data") or {},
                http_status=resp.status_code,
            )
        return body

    def verify(self, source_files: Mapping[str, str]) -> VerificationResult:
        body = self._post("/verify", {"files": dict(source_files)})
        return VerificationResult(console=body["console"], report=body["report"])

    def gen_bytecode(self, source_files: Mapping[str, str]) -> dict[str, CompiledArtifact]:
        body = self._post("/bytecode", {"files": dict(source_files)})
        return {name: CompiledArtifact(abi=art["abi"], bin=art["bin"]) for name, art in body["contracts"].items()}

    def deploy_contract(
        self,
        *,
        gas_limit: int,
        gas_price: int,
        amount: int,
        bytecode: bytes,
        abi_json: str,
        args: Sequence[str] = (),
    ) -> TransactionBuild:
        body = self._post(
            "/deploy",
            {
                "gasLimit": gas_limit,
                "gasPrice": gas_price,
                "amount": amount,
                "bytecode": _hex(bytecode),
                "abi": abi_json,
                "args": list(args),
            },
        )
        return TransactionBuild(transaction=_unhex(body["transaction"]), signing_hash=_unhex(body["transaction_hash"]))

    def execute_transaction(
        self,
        *,
        gas_limit: int,
        gas_price: int,
        amount: int,
        contract_address: bytes,
        nonce: int,
        abi_json: str,
        method: str,
        args: Sequence[str] = (),
    ) -> TransactionBuild:
        body = self._post(
            "/transaction",
            {
                "gasLimit": gas_limit,
                "gasPrice": gas_price,
                "amount": amount,
                "contractAddress": _hex(contract_address),
                "nonce": nonce,
                "abi": abi_json,
                "method": method,
                "args": list(args),
            },
        )
        return TransactionBuild(transaction=_unhex(body["transaction"]), signing_hash=_unhex(body["transaction_hash"]))

    def finalize_transaction(self, serialized: bytes, signature: bytes) -> bytes:
        body = self._post("/finalize", {"transaction": _hex(serialized), "signature": _hex(signature)})
        return _unhex(body["transaction"])
