from __future__ import annotations

from pathlib import Path

import pytest
from conftest import FakeRunner, ForbiddenRunner

from stainless_service.artifacts import CompiledArtifact
from stainless_service.bytecode import BytecodeGenerationPipeline, find_intermediate_files
from stainless_service.config import ServiceConfig
from stainless_service.errors import ArtifactMatchError, CompilationError, ToolExecutionError


def _transpile(args: list[str], cwd: Path) -> None:
    for name in args[1:]:
        stem = Path(name).stem
        (cwd / f"{stem}.sol").write_text(f"contract {stem} {{}}")


def _compile(args: list[str]) -> None:
    out = Path(args[args.index("--output-dir") + 1])
    out.mkdir(parents=True, exist_ok=True)
    for path in args[4:]:
        stem = Path(path).stem
        (out / f"_in_{stem}_sol_{stem}.abi").write_text(f"[abi {stem}]")
        (out / f"_in_{stem}_sol_{stem}.bin").write_text(f"bin-{stem}")


def fake_toolchain(exe: str, args: list[str], cwd: Path) -> str:
    if args[0] == "--solidity":
        _transpile(args, cwd)
        return "transpiled"
    _compile(args)
    return ""


def test_generate_pairs_every_unit(config: ServiceConfig) -> None:
    runner = FakeRunner(fake_toolchain)
    out = BytecodeGenerationPipeline(config, runner).generate({"Candy.scala": "...", "Wallet.scala": "..."})

    assert out == {
        "Candy.sol": CompiledArtifact(abi="[abi Candy]", bin="bin-Candy"),
        "Wallet.sol": CompiledArtifact(abi="[abi Wallet]", bin="bin-Wallet"),
    }


def test_tool_invocations(config: ServiceConfig) -> None:
    runner = FakeRunner(fake_toolchain)
    BytecodeGenerationPipeline(config, runner).generate({"Candy.scala": "..."})

    (t_exe, t_args, t_cwd), (c_exe, c_args, c_cwd) = runner.calls
    assert t_exe == "fake-stainless"
    assert t_args == ["--solidity", "Candy.scala"]
    assert c_exe == "fake-solcjs"
    assert c_args[:3] == ["--bin", "--abi", "--output-dir"]
    assert c_args[3] == str(t_cwd / "out")
    assert c_args[4:] == [str((t_cwd / "Candy.sol").resolve())]
    assert Path(c_args[4]).is_absolute()
    assert c_cwd == t_cwd
    assert not t_cwd.exists()


def test_transpile_failure_is_tolerated(config: ServiceConfig) -> None:
    def handler(exe: str, args: list[str], cwd: Path) -> str:
        if args[0] == "--solidity":
            _transpile(args, cwd)
            raise ToolExecutionError(exe, 1, output="warning: unsupported feature")
        _compile(args)
        return ""

    out = BytecodeGenerationPipeline(config, FakeRunner(handler)).generate({"Candy.scala": "..."})
    assert list(out) == ["Candy.sol"]


def test_nothing_transpiled(config: ServiceConfig) -> None:
    runner = FakeRunner(lambda exe, args, cwd: "nothing to do")

    with pytest.raises(CompilationError, match="produced no .sol files"):
        BytecodeGenerationPipeline(config, runner).generate({"Candy.scala": "..."})
    assert len(runner.calls) == 1


def test_compile_failure(config: ServiceConfig) -> None:
    def handler(exe: str, args: list[str], cwd: Path) -> str:
        if args[0] == "--solidity":
            _transpile(args, cwd)
            return ""
        raise ToolExecutionError(exe, 1, output="", stderr="ParserError: Expected ';'")

    with pytest.raises(CompilationError) as exc_info:
        BytecodeGenerationPipeline(config, FakeRunner(handler)).generate({"Candy.scala": "..."})

    assert "ParserError" in exc_info.value.output
    assert exc_info.value.http_status == 422


def test_missing_artifact(config: ServiceConfig) -> None:
    def handler(exe: str, args: list[str], cwd: Path) -> str:
        if args[0] == "--solidity":
            _transpile(args, cwd)
        return ""

    runner = FakeRunner(handler)
    with pytest.raises(ArtifactMatchError) as exc_info:
        BytecodeGenerationPipeline(config, runner).generate({"Candy.scala": "..."})
    assert exc_info.value.matches == []
    assert not runner.calls[0][2].exists()


def test_empty_bundle(config: ServiceConfig) -> None:
    assert BytecodeGenerationPipeline(config, ForbiddenRunner()).generate({}) == {}


def test_find_intermediate_files(tmp_path: Path) -> None:
    (tmp_path / "B.sol").write_text("")
    (tmp_path / "A.sol").write_text("")
    (tmp_path / "A.scala").write_text("")
    (tmp_path / "dir.sol").mkdir()

    assert find_intermediate_files(tmp_path, ".sol") == ["A.sol", "B.sol"]
