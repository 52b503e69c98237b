"""Isolated staging of source bundles for the external tools."""

from __future__ import annotations

import logging
import tempfile
from collections.abc import Generator, Mapping
from contextlib import contextmanager
from pathlib import Path

from stainless_service.constants import STAGING_PREFIX
from stainless_service.errors import StagingError

logger = logging.getLogger(__name__)


@contextmanager
def staging_area(prefix: str = STAGING_PREFIX) -> Generator[Path, None, None]:
    """
    Create a fresh, exclusively-owned working directory.

    The directory and everything in it is removed when the context exits,
    on success and on error alike.
    """
    try:
        tmp = tempfile.TemporaryDirectory(prefix=prefix)
    except OSError as e:
        raise StagingError(f"Failed to create staging directory: {e}") from e
    with tmp as name:
        logger.debug(f"Created staging area {name}")
        yield Path(name)
    logger.debug(f"Removed staging area {name}")


def _check_filename(filename: str) -> None:
    if not filename or filename in (".", ".."):
        raise StagingError(f"Invalid source filename: {filename!r}", filename=filename)
    if Path(filename).name != filename or "/" in filename or "\\" in filename:
        raise StagingError(f"Source filename must not contain a path: {filename!r}", filename=filename)


def stage_sources(directory: Path, source_files: Mapping[str, str]) -> list[str]:
    """
    Write every entry of `source_files` into `directory`.

    Args:
        directory: Staging directory (see `staging_area`).
        source_files: Mapping of bare filename to file contents.

    Returns:
        The filenames written, sorted so tool command lines are deterministic.

    Raises:
        StagingError: If a filename is not a bare name or a write fails.
    """
    filenames: list[str] = []
    for filename, contents in source_files.items():
        _check_filename(filename)
        try:
            (directory / filename).write_text(contents, encoding="utf-8")
        except (OSError, UnicodeEncodeError) as e:
            raise StagingError(f"Failed to write {filename}: {e}", filename=filename) from e
        filenames.append(filename)
    return sorted(filenames)
