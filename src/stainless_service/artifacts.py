"""Locating compiler outputs by naming convention.

solcjs does not let callers choose output filenames; it writes
`<mangled input path><stem>_sol_<Contract>.<kind>`. The convention lives
here only, as configuration on `ArtifactLocator`.
"""

from __future__ import annotations

import glob
import logging
from dataclasses import dataclass, field
from pathlib import Path

from stainless_service.constants import ABI_SUFFIX, ARTIFACT_INFIX, BIN_SUFFIX
from stainless_service.errors import ArtifactMatchError, StagingError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledArtifact:
    abi: str
    bin: str

    def to_dict(self) -> dict[str, str]:
        return {"abi": self.abi, "bin": self.bin}


@dataclass(frozen=True)
class ArtifactLocator:
    infix: str = ARTIFACT_INFIX
    suffixes: dict[str, str] = field(default_factory=lambda: {"abi": ABI_SUFFIX, "bin": BIN_SUFFIX})

    def pattern_for(self, unit_filename: str, kind: str) -> str:
        """Glob pattern for the `kind` artifact generated from `unit_filename`."""
        try:
            suffix = self.suffixes[kind]
        except KeyError:
            raise ValueError(f"Unknown artifact kind {kind!r}, expected one of {sorted(self.suffixes)}") from None
        stem = Path(unit_filename).stem
        return f"*{glob.escape(stem)}{self.infix}*.{suffix}"

    def find(self, directory: Path, unit_filename: str, kind: str) -> Path:
        """
        Resolve exactly one generated file.

        Raises:
            ArtifactMatchError: If zero or more than one file matches.
        """
        pattern = self.pattern_for(unit_filename, kind)
        matches = sorted(p for p in directory.glob(pattern) if p.is_file())
        if len(matches) != 1:
            raise ArtifactMatchError(kind, pattern, [p.name for p in matches])
        return matches[0]

    def read(self, directory: Path, unit_filename: str, kind: str) -> str:
        """Resolve exactly one generated file and return its contents unchanged."""
        path = self.find(directory, unit_filename, kind)
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StagingError(f"Failed to read generated file {path.name}: {e}", filename=path.name) from e

    def pair(self, directory: Path, unit_filename: str) -> CompiledArtifact:
        return CompiledArtifact(
            abi=self.read(directory, unit_filename, "abi"),
            bin=self.read(directory, unit_filename, "bin"),
        )
