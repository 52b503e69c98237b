"""Ethereum bytecode generation from Stainless contracts.

Two external stages share one staging area: the verifier transpiles Scala
sources to Solidity, then solcjs compiles every produced `.sol` file into a
binary and an ABI, which are paired back to their Solidity unit by name.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

from stainless_service.artifacts import ArtifactLocator, CompiledArtifact
from stainless_service.config import ServiceConfig
from stainless_service.errors import CompilationError, StagingError, ToolExecutionError
from stainless_service.staging import stage_sources, staging_area
from stainless_service.tools import Runner, ToolRunner

logger = logging.getLogger(__name__)


def find_intermediate_files(directory: Path, suffix: str) -> list[str]:
    """Regular files directly inside `directory` whose name ends with `suffix`."""
    try:
        return sorted(p.name for p in directory.iterdir() if p.is_file() and p.name.endswith(suffix))
    except OSError as e:
        raise StagingError(f"Failed to list {directory}: {e}") from e


class BytecodeGenerationPipeline:
    def __init__(
        self,
        config: ServiceConfig | None = None,
        runner: Runner | None = None,
        locator: ArtifactLocator | None = None,
    ) -> None:
        self.config = config or ServiceConfig()
        self.runner = runner or ToolRunner(timeout_s=self.config.tool_timeout_s)
        self.locator = locator or ArtifactLocator(
            infix=self.config.artifact_infix,
            suffixes={"abi": self.config.abi_suffix, "bin": self.config.bin_suffix},
        )

    def transpile(self, workdir: Path, filenames: list[str]) -> list[str]:
        """
        Run the verifier in transpile mode and return the produced Solidity files.

        The verifier's exit status is not trusted here: it may fail on part of
        the input and still emit usable files, so a failure is only logged.
        """
        try:
            self.runner.run(self.config.verifier_cmd, [self.config.transpile_flag, *filenames], cwd=workdir)
        except ToolExecutionError as e:
            logger.warning(f"Transpiler reported an error, continuing with produced files; stdout = \n{e.output}")
        return find_intermediate_files(workdir, self.config.intermediate_suffix)

    def compile(self, workdir: Path, intermediate_files: list[str], out_dir: Path) -> None:
        # solcjs resolves relative paths unreliably, so always pass absolute ones
        paths = [str((workdir / f).resolve()) for f in intermediate_files]
        args = ["--bin", "--abi", "--output-dir", str(out_dir), *paths]
        try:
            self.runner.run(self.config.compiler_cmd, args, cwd=workdir)
        except ToolExecutionError as e:
            raise CompilationError(f"Bytecode compilation failed: {e}", output=e.output + e.stderr) from e

    def generate(self, source_files: Mapping[str, str]) -> dict[str, CompiledArtifact]:
        """
        Generate bytecode and ABI for every contract unit of a source bundle.

        Returns:
            Mapping from Solidity filename to its {abi, bin} pair. Empty input
            yields an empty mapping without running any tool.

        Raises:
            CompilationError: Transpilation produced nothing, or solcjs failed.
            ArtifactMatchError: A unit did not map to exactly one abi/bin file.
            ToolTimeoutError: A tool exceeded its deadline.
            StagingError: Sources could not be written.
        """
        if not source_files:
            return {}

        with staging_area(self.config.staging_prefix) as workdir:
            filenames = stage_sources(workdir, source_files)

            solidity_files = self.transpile(workdir, filenames)
            if not solidity_files:
                suffix = self.config.intermediate_suffix
                raise CompilationError(f"Transpilation of {filenames} produced no {suffix} files")
            logger.info(f"Transpiled {filenames} into {solidity_files}")

            out_dir = workdir / self.config.bytecode_out_dir
            self.compile(workdir, solidity_files, out_dir)

            return {sol: self.locator.pair(out_dir, sol) for sol in solidity_files}
