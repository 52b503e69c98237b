"""Service error type definitions.

Every failure of the pipelines and the transaction builder is raised as a
subclass of `StainlessError`, carrying a JSON-RPC style code, a message and
structured data with enough context (captured tool output, expected vs. actual
pattern, offending argument index) to diagnose without re-running.
"""

from __future__ import annotations

from typing import Any


class StainlessError(Exception):
    """Base class for service errors."""

    code: int = -32000
    http_status: int = 500

    def __init__(self, message: str, data: dict[str, Any] | None = None):
        self.message = message
        self.data = data or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to JSON-RPC error dictionary."""
        return {
            "code": self.code,
            "message": self.message,
            "data": self.data,
        }


# ---------------------------------------------------------------------------
# Staging and external tools
# ---------------------------------------------------------------------------


class StagingError(StainlessError):
    """A source file could not be written to the staging area, or the cache could not be created."""

    code = -32010

    def __init__(self, message: str, *, filename: str | None = None):
        super().__init__(message, data={"filename": filename} if filename else None)
        self.filename = filename


class ToolTimeoutError(StainlessError):
    """External tool exceeded its deadline and was killed."""

    code = -32011
    http_status = 504

    def __init__(self, executable: str, timeout_s: float, output: str = ""):
        super().__init__(
            f"{executable} timed out after {timeout_s}s",
            data={"executable": executable, "timeoutSeconds": timeout_s, "output": output},
        )
        self.executable = executable
        self.timeout_s = timeout_s
        self.output = output


class ToolExecutionError(StainlessError):
    """External tool exited with a non-zero status."""

    code = -32012

    def __init__(
        self,
        executable: str,
        exit_code: int | None,
        output: str = "",
        stderr: str = "",
        *,
        message: str | None = None,
    ):
        super().__init__(
            message or f"{executable} failed (exit {exit_code})",
            data={"executable": executable, "exitCode": exit_code, "output": output, "stderr": stderr},
        )
        self.executable = executable
        self.exit_code = exit_code
        self.output = output
        self.stderr = stderr


class ToolNotFoundError(ToolExecutionError):
    """External tool executable could not be found."""

    def __init__(self, executable: str):
        super().__init__(executable, None, message=f"{executable} not found on PATH")


# ---------------------------------------------------------------------------
# Pipelines
# ---------------------------------------------------------------------------


class NoReportError(StainlessError):
    """Verifier ran but did not write a report; it most likely could not parse its input."""

    code = -32020
    http_status = 422

    def __init__(self, tool_error: str, console: str):
        super().__init__(
            f"{tool_error}\nConsole:\n{console}",
            data={"toolError": tool_error, "console": console},
        )
        self.tool_error = tool_error
        self.console = console


class EmptyReportError(StainlessError):
    """Verifier accepted the input but could not proceed (empty report)."""

    code = -32021
    http_status = 422

    def __init__(self, console: str):
        super().__init__(f"Error in Stainless execution -- Console:\n{console}", data={"console": console})
        self.console = console


class CompilationError(StainlessError):
    """Bytecode compilation stage failed."""

    code = -32022
    http_status = 422

    def __init__(self, message: str, output: str = ""):
        super().__init__(message, data={"output": output})
        self.output = output


class ArtifactMatchError(StainlessError):
    """Zero or several generated files matched an expected artifact pattern."""

    code = -32023

    def __init__(self, kind: str, pattern: str, matches: list[str]):
        super().__init__(
            f"Expected 1 generated '{kind}' file for pattern '{pattern}', got {matches}",
            data={"kind": kind, "pattern": pattern, "matches": matches},
        )
        self.kind = kind
        self.pattern = pattern
        self.matches = matches


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class ArgumentDecodeError(StainlessError):
    """A call argument could not be decoded."""

    code = -32602  # Invalid params (standard JSON-RPC)
    http_status = 400

    def __init__(self, index: int, raw: str, reason: str):
        super().__init__(
            f"Invalid argument #{index} ({raw!r}): {reason}",
            data={"index": index, "raw": raw, "reason": reason},
        )
        self.index = index
        self.raw = raw
        self.reason = reason


class AbiParseError(StainlessError):
    """ABI description is not valid JSON or does not follow the ABI layout."""

    code = -32030
    http_status = 400


class AbiPackError(StainlessError):
    """Arguments could not be packed against the ABI (unknown method, arity or type mismatch)."""

    code = -32031
    http_status = 400


class TransactionDeserializeError(StainlessError):
    """Input is not a valid serialized transaction."""

    code = -32040
    http_status = 400


class InvalidSignatureLengthError(StainlessError):
    """Signature does not have the expected fixed length."""

    code = -32041
    http_status = 400

    def __init__(self, got: int, want: int):
        super().__init__(f"wrong size for signature: got {got}, want {want}", data={"got": got, "want": want})
        self.got = got
        self.want = want


class RemoteError(StainlessError):
    """Error object returned by a remote stainless-service."""

    def __init__(self, code: int, message: str, data: dict[str, Any] | None = None, http_status: int = 500):
        super().__init__(message, data)
        self.code = code
        self.http_status = http_status
