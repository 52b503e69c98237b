"""Service configuration.

Tool names, the tool deadline and the verifier cache location are injected into
each pipeline through a `ServiceConfig` instead of being read from module
globals, so tests and deployments can override them independently.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from stainless_service import constants
from stainless_service.utils import safe_parse_float


def load_dotenv(path: Path) -> dict[str, str]:
    """
    Minimal .env loader:
    - supports KEY=VALUE
    - strips surrounding quotes
    - ignores blank lines and `#` comments
    - does not expand variables
    """
    out: dict[str, str] = {}
    if not path.exists():
        return out

    for raw in path.read_text().splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        k, v = line.split("=", 1)
        k = k.strip()
        v = v.strip()
        if not k:
            continue
        if len(v) >= 2 and ((v[0] == v[-1] == '"') or (v[0] == v[-1] == "'")):
            v = v[1:-1]
        out[k] = v
    return out


def _parse_chain_id(raw: str | None) -> int | None:
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip(), 0)
    except ValueError:
        raise ValueError(f"STAINLESS_CHAIN_ID must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class ServiceConfig:
    verifier_cmd: str = constants.DEFAULT_VERIFIER_CMD
    compiler_cmd: str = constants.DEFAULT_COMPILER_CMD
    tool_timeout_s: float = constants.DEFAULT_TOOL_TIMEOUT_SECONDS
    report_filename: str = constants.REPORT_FILENAME
    verify_flags: tuple[str, ...] = constants.VERIFY_FLAGS
    transpile_flag: str = constants.TRANSPILE_FLAG
    cache_dir: Path = field(default_factory=lambda: Path(constants.DEFAULT_CACHE_DIR))
    cache_mode: str = constants.DEFAULT_CACHE_MODE
    staging_prefix: str = constants.STAGING_PREFIX
    intermediate_suffix: str = constants.INTERMEDIATE_SUFFIX
    artifact_infix: str = constants.ARTIFACT_INFIX
    abi_suffix: str = constants.ABI_SUFFIX
    bin_suffix: str = constants.BIN_SUFFIX
    bytecode_out_dir: str = constants.BYTECODE_OUT_DIR
    chain_id: int | None = None

    def __post_init__(self) -> None:
        if self.cache_mode not in constants.CACHE_MODES:
            raise ValueError(f"cache_mode must be one of {sorted(constants.CACHE_MODES)}, got {self.cache_mode!r}")
        if self.tool_timeout_s <= 0:
            raise ValueError(f"tool_timeout_s must be > 0, got {self.tool_timeout_s}")
        if self.chain_id is not None and self.chain_id <= 0:
            raise ValueError(f"chain_id must be positive, got {self.chain_id}")

    def with_overrides(self, **changes: object) -> ServiceConfig:
        return replace(self, **changes)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None, dotenv_path: Path | None = None) -> ServiceConfig:
        """
        Build a config from environment variables.

        Values from `dotenv_path` (if given) are used as a fallback under the
        process environment; explicit environment variables always win.
        """
        merged: dict[str, str] = {}
        if dotenv_path is not None:
            merged.update(load_dotenv(dotenv_path))
        merged.update(os.environ if env is None else env)

        return cls(
            verifier_cmd=merged.get("STAINLESS_VERIFIER") or constants.DEFAULT_VERIFIER_CMD,
            compiler_cmd=merged.get("STAINLESS_COMPILER") or constants.DEFAULT_COMPILER_CMD,
            tool_timeout_s=safe_parse_float(
                merged.get("STAINLESS_TOOL_TIMEOUT"),
                constants.DEFAULT_TOOL_TIMEOUT_SECONDS,
                min_val=1.0,
                name="STAINLESS_TOOL_TIMEOUT",
            ),
            cache_dir=Path(merged.get("STAINLESS_CACHE_DIR") or constants.DEFAULT_CACHE_DIR),
            cache_mode=(merged.get("STAINLESS_CACHE_MODE") or constants.DEFAULT_CACHE_MODE).strip().lower(),
            chain_id=_parse_chain_id(merged.get("STAINLESS_CHAIN_ID")),
        )
