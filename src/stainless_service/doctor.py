"""
Stainless Service Doctor - Environment validation and troubleshooting.

Run this to verify the external tools and the verifier cache are usable before
starting the service.

Usage:
    stainless-service-doctor                 # Check tools, cache and Python deps
    stainless-service-doctor --env-file .env # Use settings from a .env file
"""

from __future__ import annotations

import argparse
import subprocess
import sys
import tempfile
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from stainless_service.config import ServiceConfig
from stainless_service.utils import BinaryNotExecutableError, BinaryNotFoundError, resolve_binary, validate_binary

console = Console()


# ---------------------------------------------------------------------------
# Check Functions
# ---------------------------------------------------------------------------


def _tool_version(path: Path) -> str | None:
    try:
        result = subprocess.run(
            [str(path), "--version"],
            check=False,
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (subprocess.TimeoutExpired, OSError):
        return None
    if result.returncode != 0 or not result.stdout.strip():
        return None
    return result.stdout.strip().split("\n")[0]


def check_tool(label: str, cmd: str, env_var: str, fix: str) -> tuple[bool, str, str | None]:
    """
    Check that an external tool resolves to an executable file.

    Returns:
        (ok, message, fix_command)
    """
    path = resolve_binary(cmd)
    if path is None:
        return False, f"{label} '{cmd}' not found (set {env_var} to override)", fix
    try:
        validate_binary(path, binary_name=label)
    except (BinaryNotFoundError, BinaryNotExecutableError) as e:
        return False, str(e), f"chmod +x {path}"

    version = _tool_version(path)
    suffix = f" ({version})" if version else ""
    return True, f"{label} found: {path}{suffix}", None


def check_verifier(config: ServiceConfig) -> tuple[bool, str, str | None]:
    return check_tool(
        "Verifier",
        config.verifier_cmd,
        "STAINLESS_VERIFIER",
        "Install stainless-smart and put it on PATH",
    )


def check_compiler(config: ServiceConfig) -> tuple[bool, str, str | None]:
    return check_tool("Compiler", config.compiler_cmd, "STAINLESS_COMPILER", "npm install -g solc")


def check_cache_dir(config: ServiceConfig) -> tuple[bool, str, str | None]:
    """Check that the verifier cache directory exists (or can be created) and is writable."""
    cache_dir = config.cache_dir
    try:
        cache_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=cache_dir, prefix=".doctor-"):
            pass
    except OSError as e:
        return False, f"Cache directory not writable: {cache_dir} ({e})", f"mkdir -p {cache_dir}"
    return True, f"Cache directory writable: {cache_dir} (mode={config.cache_mode})", None


def check_python_deps() -> tuple[bool, str, str | None]:
    """Check if Python dependencies are installed."""
    try:
        import eth_abi  # noqa: F401
        import eth_utils  # noqa: F401
        import httpx  # noqa: F401
        import jsonschema  # noqa: F401
        import rlp  # noqa: F401
        import starlette  # noqa: F401
        import uvicorn  # noqa: F401
        from Crypto.Hash import keccak  # noqa: F401

        return True, "Python dependencies installed", None
    except ImportError as e:
        return (
            False,
            f"Missing Python dependency: {e.name}",
            "pip install -e .",
        )


# ---------------------------------------------------------------------------
# Main Doctor Logic
# ---------------------------------------------------------------------------


def run_checks(config: ServiceConfig) -> list[tuple[str, bool, str, str | None]]:
    """
    Run all environment checks.

    Returns:
        List of (check_name, passed, message, fix_command)
    """
    results: list[tuple[str, bool, str, str | None]] = []

    ok, msg, fix = check_verifier(config)
    results.append(("Verifier", ok, msg, fix))
    ok, msg, fix = check_compiler(config)
    results.append(("Compiler", ok, msg, fix))
    ok, msg, fix = check_cache_dir(config)
    results.append(("Cache Dir", ok, msg, fix))
    ok, msg, fix = check_python_deps()
    results.append(("Python Deps", ok, msg, fix))

    return results


def print_results(results: list[tuple[str, bool, str, str | None]]) -> bool:
    """Print check results and return overall status."""
    table = Table(title="Stainless Service Environment Check", show_header=True)
    table.add_column("Check", style="cyan", width=15)
    table.add_column("Status", width=6)
    table.add_column("Details", style="dim")

    all_passed = True
    fixes: list[tuple[str, str]] = []

    for name, passed, message, fix in results:
        status = "[green]✓[/green]" if passed else "[red]✗[/red]"
        table.add_row(name, status, message)
        if not passed:
            all_passed = False
            if fix:
                fixes.append((name, fix))

    console.print(table)

    if fixes:
        console.print()
        console.print(
            Panel.fit(
                "\n".join([f"[bold]{name}:[/bold] {cmd}" for name, cmd in fixes]),
                title="[yellow]Suggested Fixes[/yellow]",
                border_style="yellow",
            )
        )

    return all_passed


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Stainless Service Doctor - Environment validation and troubleshooting",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=Path(".env"),
        help="Optional .env file with STAINLESS_* settings",
    )
    args = parser.parse_args(argv)

    console.print("[bold blue]Stainless Service Doctor[/bold blue]")
    console.print()

    config = ServiceConfig.from_env(dotenv_path=args.env_file)
    all_passed = print_results(run_checks(config))

    if all_passed:
        console.print("\n[bold green]All checks passed![/bold green]")
    else:
        console.print("\n[bold red]Some checks failed.[/bold red] See suggested fixes above.")
        sys.exit(1)


if __name__ == "__main__":
    main()
