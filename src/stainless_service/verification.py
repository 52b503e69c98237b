"""Stainless verification pipeline.

Stages a source bundle, runs the verifier in structured-report mode against a
persistent cache, and separates "the verifier produced a verdict" from "the
verifier could not even produce a report".
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from stainless_service.config import ServiceConfig
from stainless_service.constants import CACHE_MODE_SHARED
from stainless_service.errors import EmptyReportError, NoReportError, StagingError, ToolExecutionError
from stainless_service.staging import stage_sources, staging_area
from stainless_service.tools import Runner, ToolRunner
from stainless_service.utils import compute_json_checksum

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationResult:
    console: str
    report: str | None

    def report_tree(self) -> Any | None:
        """The report parsed as JSON, or None when there is no report."""
        if self.report is None:
            return None
        return json.loads(self.report)

    def to_dict(self) -> dict[str, Any]:
        return {"console": self.console, "report": self.report}


_cache_locks: dict[str, threading.Lock] = {}
_cache_locks_guard = threading.Lock()


def _cache_lock(path: Path) -> threading.Lock:
    key = str(path.resolve())
    with _cache_locks_guard:
        lock = _cache_locks.get(key)
        if lock is None:
            lock = _cache_locks[key] = threading.Lock()
        return lock


def _is_empty_report(report: str) -> bool:
    try:
        return json.loads(report) == {}
    except json.JSONDecodeError:
        return False


class VerificationPipeline:
    def __init__(self, config: ServiceConfig | None = None, runner: Runner | None = None) -> None:
        self.config = config or ServiceConfig()
        self.runner = runner or ToolRunner(timeout_s=self.config.tool_timeout_s)

    def cache_dir_for(self, source_files: Mapping[str, str]) -> Path:
        """
        Cache directory handed to the verifier for this bundle.

        In namespaced mode each distinct bundle gets its own sub-directory, so
        concurrent verifier processes working on different inputs never write
        into the same cache. Runs on the same directory are serialized.
        """
        root = self.config.cache_dir
        if self.config.cache_mode == CACHE_MODE_SHARED:
            return root
        return root / compute_json_checksum(source_files)[:16]

    def _ensure_cache_dir(self, path: Path) -> None:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StagingError(f"Failed to create cache directory {path}: {e}") from e

    def verify(self, source_files: Mapping[str, str]) -> VerificationResult:
        """
        Verify a bundle of Stainless sources.

        Returns:
            Console output and the verifier's JSON report, verbatim. An empty
            bundle short-circuits to an empty result without running the tool.

        Raises:
            NoReportError: The verifier wrote no report.
            EmptyReportError: The verifier wrote an empty report.
            ToolTimeoutError: The verifier exceeded its deadline.
            StagingError: Sources or the cache directory could not be written.
        """
        if not source_files:
            logger.info("Empty source bundle, skipping verification")
            return VerificationResult(console="", report=None)

        cache_dir = self.cache_dir_for(source_files)
        self._ensure_cache_dir(cache_dir)

        with staging_area(self.config.staging_prefix) as workdir:
            filenames = stage_sources(workdir, source_files)
            args = [*self.config.verify_flags, f"--cache-dir={cache_dir}", *filenames]

            exec_err: ToolExecutionError | None = None
            with _cache_lock(cache_dir):
                try:
                    console = self.runner.run(self.config.verifier_cmd, args, cwd=workdir)
                except ToolExecutionError as e:
                    # A failing exit is tolerated as long as a report was written
                    exec_err = e
                    console = e.output

            report_file = workdir / self.config.report_filename
            if not report_file.exists():
                tool_error = str(exec_err) if exec_err is not None else "verifier exited without writing a report"
                logger.warning(f"No report produced for {filenames}: {tool_error}")
                raise NoReportError(tool_error, console)

            try:
                report = report_file.read_text(encoding="utf-8")
            except OSError as e:
                logger.error(f"Error reading JSON report: {e}")
                raise StagingError(f"Failed to read {report_file.name}: {e}", filename=report_file.name) from e

        if _is_empty_report(report):
            raise EmptyReportError(console)

        logger.info(f"Verification finished for {len(filenames)} file(s)")
        return VerificationResult(console=console, report=report)
