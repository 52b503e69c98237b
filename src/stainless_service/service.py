"""The five operations exposed by stainless-service.

`StainlessService` wires the verification and bytecode pipelines to the
transaction builder, and records one metric sample and one request-log row per
operation. Every method is safe to call concurrently from a thread pool.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from typing import TypeVar

from stainless_service import metrics
from stainless_service.artifacts import CompiledArtifact
from stainless_service.builder import TransactionBuild, TransactionBuilder, finalize_transaction
from stainless_service.bytecode import BytecodeGenerationPipeline
from stainless_service.config import ServiceConfig
from stainless_service.errors import StainlessError
from stainless_service.logging import JsonlLogger
from stainless_service.tools import Runner, ToolRunner
from stainless_service.transactions import signer_for
from stainless_service.verification import VerificationPipeline, VerificationResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StainlessService:
    def __init__(
        self,
        config: ServiceConfig | None = None,
        runner: Runner | None = None,
        builder: TransactionBuilder | None = None,
        request_log: JsonlLogger | None = None,
    ) -> None:
        self.config = config or ServiceConfig()
        runner = runner or ToolRunner(timeout_s=self.config.tool_timeout_s)
        self.verification = VerificationPipeline(self.config, runner)
        self.bytecode = BytecodeGenerationPipeline(self.config, runner)
        self.builder = builder or TransactionBuilder(signer_for(self.config.chain_id))
        self.request_log = request_log

    def _track(self, operation: str, fn: Callable[[], T], **fields: object) -> T:
        start = time.monotonic()
        error: dict[str, object] | None = None
        try:
            return fn()
        except StainlessError as e:
            error = {"code": e.code, "type": type(e).__name__, "message": e.message}
            raise
        except ValueError as e:
            error = {"code": None, "type": type(e).__name__, "message": str(e)}
            raise
        finally:
            elapsed = time.monotonic() - start
            status = "ok" if error is None else "error"
            metrics.OPERATIONS.labels(operation=operation, status=status).inc()
            metrics.OPERATION_DURATION.labels(operation=operation).observe(elapsed)
            if error is None:
                logger.info(f"{operation} ok in {elapsed:.2f}s")
            else:
                logger.info(f"{operation} failed in {elapsed:.2f}s: {error['type']}")
            if self.request_log is not None:
                self.request_log.event(
                    "operation",
                    operation=operation,
                    ok=error is None,
                    elapsed_seconds=round(elapsed, 3),
                    error=error,
                    **fields,
                )

    def verify(self, source_files: Mapping[str, str]) -> VerificationResult:
        return self._track(
            "verify",
            lambda: self.verification.verify(source_files),
            files=sorted(source_files),
        )

    def gen_bytecode(self, source_files: Mapping[str, str]) -> dict[str, CompiledArtifact]:
        return self._track(
            "gen_bytecode",
            lambda: self.bytecode.generate(source_files),
            files=sorted(source_files),
        )

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
        return self._track(
            "deploy_contract",
            lambda: self.builder.build_creation(
                gas_limit=gas_limit,
                gas_price=gas_price,
                amount=amount,
                bytecode=bytecode,
                abi_json=abi_json,
                args=args,
            ),
            signer=self.builder.signer.name,
        )

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
        return self._track(
            "execute_transaction",
            lambda: self.builder.build_call(
                gas_limit=gas_limit,
                gas_price=gas_price,
                amount=amount,
                contract_address=contract_address,
                nonce=nonce,
                abi_json=abi_json,
                method=method,
                args=args,
            ),
            method=method,
            signer=self.builder.signer.name,
        )

    def finalize_transaction(self, serialized: bytes | str, signature: bytes) -> bytes:
        return self._track(
            "finalize_transaction",
            lambda: finalize_transaction(serialized, signature, self.builder.signer),
            signer=self.builder.signer.name,
        )
