"""Tests for ToolRunner using the current interpreter as the external tool."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from stainless_service.errors import ToolExecutionError, ToolNotFoundError, ToolTimeoutError
from stainless_service.tools import ToolRunner


def test_run_returns_stdout(tmp_path: Path) -> None:
    out = ToolRunner().run(sys.executable, ["-c", "print('verified')"], cwd=tmp_path)
    assert out == "verified\n"


def test_run_uses_cwd(tmp_path: Path) -> None:
    out = ToolRunner().run(sys.executable, ["-c", "import os; print(os.getcwd())"], cwd=tmp_path)
    assert Path(out.strip()).resolve() == tmp_path.resolve()


def test_nonzero_exit_carries_output(tmp_path: Path) -> None:
    script = "import sys; print('partial'); print('bad input', file=sys.stderr); sys.exit(3)"
    with pytest.raises(ToolExecutionError) as exc_info:
        ToolRunner().run(sys.executable, ["-c", script], cwd=tmp_path)

    err = exc_info.value
    assert err.exit_code == 3
    assert err.output == "partial\n"
    assert "bad input" in err.stderr
    assert err.to_dict()["data"]["exitCode"] == 3


def test_timeout_kills_tool(tmp_path: Path) -> None:
    runner = ToolRunner(timeout_s=0.5)
    with pytest.raises(ToolTimeoutError) as exc_info:
        runner.run(sys.executable, ["-c", "import time; time.sleep(30)"], cwd=tmp_path)

    assert exc_info.value.timeout_s == 0.5
    assert exc_info.value.http_status == 504


def test_missing_executable(tmp_path: Path) -> None:
    with pytest.raises(ToolNotFoundError) as exc_info:
        ToolRunner().run("stainless-definitely-not-installed", [], cwd=tmp_path)

    err = exc_info.value
    assert isinstance(err, ToolExecutionError)
    assert err.exit_code is None
    assert err.message == "stainless-definitely-not-installed not found on PATH"
