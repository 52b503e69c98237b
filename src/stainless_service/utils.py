"""Shared utility functions for hashing, validation, and environment parsing."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
import stat
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from Crypto.Hash import keccak

logger = logging.getLogger(__name__)


class BinaryNotFoundError(FileNotFoundError):
    """Raised when a required binary is not found."""

    pass


class BinaryNotExecutableError(PermissionError):
    """Raised when a binary exists but is not executable."""

    pass


def keccak256(data: bytes) -> bytes:
    """Legacy Keccak-256 digest (the pre-standard SHA-3 variant used by Ethereum)."""
    h = keccak.new(digest_bits=256)
    h.update(data)
    return h.digest()


def compute_json_checksum(data: Mapping[str, Any]) -> str:
    """
    Compute a stable checksum for JSON-serializable data.

    Keys are sorted so that two mappings with the same entries always hash
    identically, regardless of insertion order.

    Args:
        data: Mapping to checksum.

    Returns:
        64-character hex SHA-256 digest.
    """
    json_str = json.dumps(dict(data), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(json_str.encode()).hexdigest()


def safe_parse_float(
    val: Any, default: float, min_val: float = -float("inf"), max_val: float = float("inf"), name: str = "value"
) -> float:
    """
    Safe float parsing with range validation.
    """
    if val is None:
        return default
    try:
        f = float(val)
    except (ValueError, TypeError):
        logger.warning(f"Invalid {name}={val!r}, using default {default}")
        return default

    if f < min_val or f > max_val:
        logger.warning(f"{name}={f} out of range [{min_val}, {max_val}], clamping")
        return max(min_val, min(max_val, f))
    return f


def resolve_binary(name: str) -> Path | None:
    """
    Resolve an executable given either a path or a bare command name.

    Returns:
        Path to the executable, or None if it cannot be found.
    """
    if os.sep in name:
        p = Path(name)
        return p if p.exists() else None
    found = shutil.which(name)
    return Path(found) if found else None


def validate_binary(path: Path, *, binary_name: str = "binary") -> Path:
    """
    Validate that a binary exists and is executable.

    Args:
        path: Path to the binary.
        binary_name: Human-readable name for error messages.

    Returns:
        The validated path.

    Raises:
        BinaryNotFoundError: If the binary doesn't exist.
        BinaryNotExecutableError: If the binary isn't executable.
    """
    if not path.exists():
        raise BinaryNotFoundError(f"{binary_name} not found: {path}")
    st = path.stat()
    if not stat.S_ISREG(st.st_mode):
        raise BinaryNotFoundError(f"{binary_name} is not a regular file: {path}")
    if not os.access(path, os.X_OK):
        raise BinaryNotExecutableError(f"{binary_name} is not executable: {path}")
    return path
