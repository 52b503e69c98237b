"""
Centralized constants for stainless-service configuration.

This module provides single-source-of-truth defaults for the external tools,
the verifier cache, and the transaction signing scheme. `ServiceConfig.from_env`
reads the same variables, so per-environment overrides work without code changes.

Environment variable overrides:
- STAINLESS_VERIFIER: Verifier executable (default: stainless-smart)
- STAINLESS_COMPILER: Solidity compiler executable (default: solcjs)
- STAINLESS_CACHE_DIR: Persistent verifier cache directory
- STAINLESS_CACHE_MODE: "namespaced" or "shared"
- STAINLESS_TOOL_TIMEOUT: Per-invocation deadline in seconds
- STAINLESS_CHAIN_ID: Sign with EIP-155 for this chain (default: Homestead, no chain id)
"""

from __future__ import annotations

import os

# =============================================================================
# External Tools
# =============================================================================

DEFAULT_VERIFIER_CMD = os.environ.get("STAINLESS_VERIFIER", "stainless-smart")
DEFAULT_COMPILER_CMD = os.environ.get("STAINLESS_COMPILER", "solcjs")

# Deadline for every external tool invocation (seconds). Enforced by killing the process.
DEFAULT_TOOL_TIMEOUT_SECONDS = 60.0

# Report written by the verifier into its working directory in --json mode
REPORT_FILENAME = "report.json"

VERIFY_FLAGS = ("--json",)
TRANSPILE_FLAG = "--solidity"

# Prefix for the per-invocation staging directories
STAGING_PREFIX = "stainless-"

# =============================================================================
# Verifier Cache
# =============================================================================

DEFAULT_CACHE_DIR = "/tmp/stainless-cache-dir"

# namespaced: one cache sub-directory per distinct source bundle (content checksum)
# shared: a single directory, verifier runs against it are serialized in-process
CACHE_MODE_NAMESPACED = "namespaced"
CACHE_MODE_SHARED = "shared"
CACHE_MODES = frozenset({CACHE_MODE_NAMESPACED, CACHE_MODE_SHARED})
DEFAULT_CACHE_MODE = CACHE_MODE_NAMESPACED

# =============================================================================
# Generated Artifacts
# =============================================================================

# Files emitted by the transpile stage
INTERMEDIATE_SUFFIX = ".sol"

# solcjs names its outputs <mangled-path><stem>_sol_<Contract>.<kind>
ARTIFACT_INFIX = "_sol"
ABI_SUFFIX = "abi"
BIN_SUFFIX = "bin"

# Sub-directory of the staging area receiving compiler output
BYTECODE_OUT_DIR = "out"

# =============================================================================
# Transactions
# =============================================================================

SIGNATURE_LENGTH = 65
ADDRESS_LENGTH = 20

# Gas defaults used by the CLI when none are given
DEFAULT_GAS_LIMIT = 10_000_000
DEFAULT_GAS_PRICE = 1
