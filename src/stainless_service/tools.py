"""Shared utilities for invoking the external verifier and compiler binaries."""

from __future__ import annotations

import logging
import subprocess
import time
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from stainless_service import metrics
from stainless_service.constants import DEFAULT_TOOL_TIMEOUT_SECONDS
from stainless_service.errors import ToolExecutionError, ToolNotFoundError, ToolTimeoutError

logger = logging.getLogger(__name__)


class Runner(Protocol):
    def run(self, executable: str, args: Sequence[str], *, cwd: Path) -> str: ...


def _text(out: str | bytes | None) -> str:
    if out is None:
        return ""
    if isinstance(out, bytes):
        return out.decode("utf-8", errors="replace")
    return out


class ToolRunner:
    """
    Run an external executable once, under a fixed deadline.

    There is no retry policy: the tool's exit status and output are passed
    through unchanged, and callers decide whether a non-zero exit is fatal
    (the captured output travels on the raised `ToolExecutionError`).
    """

    def __init__(self, timeout_s: float = DEFAULT_TOOL_TIMEOUT_SECONDS) -> None:
        self.timeout_s = timeout_s

    def run(self, executable: str, args: Sequence[str], *, cwd: Path) -> str:
        """
        Run `executable args...` in `cwd` and return its standard output.

        Raises:
            ToolTimeoutError: If the deadline elapses (the process is killed).
            ToolExecutionError: If the process exits non-zero.
            ToolNotFoundError: If the executable cannot be started.
        """
        cmd = [executable, *args]
        logger.info(f"Running {' '.join(cmd)} (cwd={cwd})")
        start = time.monotonic()
        outcome = "ok"
        try:
            # subprocess.run kills the child before raising TimeoutExpired
            result = subprocess.run(
                cmd,
                cwd=str(cwd),
                capture_output=True,
                text=True,
                timeout=self.timeout_s,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            outcome = "timeout"
            raise ToolTimeoutError(executable, self.timeout_s, output=_text(e.stdout)) from e
        except FileNotFoundError as e:
            outcome = "not_found"
            raise ToolNotFoundError(executable) from e
        except OSError as e:
            outcome = "error"
            raise ToolExecutionError(executable, None, message=f"Failed to start {executable}: {e}") from e
        finally:
            elapsed = time.monotonic() - start
            metrics.TOOL_DURATION.labels(tool=executable).observe(elapsed)
            if outcome != "ok":
                metrics.TOOL_INVOCATIONS.labels(tool=executable, outcome=outcome).inc()

        if result.returncode != 0:
            metrics.TOOL_INVOCATIONS.labels(tool=executable, outcome="failed").inc()
            stderr_snippet = result.stderr[:500] if result.stderr else "N/A"
            logger.warning(
                f"{executable} exited with {result.returncode} after {elapsed:.1f}s\nStderr: {stderr_snippet}"
            )
            raise ToolExecutionError(executable, result.returncode, output=result.stdout, stderr=result.stderr)

        metrics.TOOL_INVOCATIONS.labels(tool=executable, outcome="ok").inc()
        logger.debug(f"{executable} finished in {elapsed:.1f}s")
        return result.stdout
