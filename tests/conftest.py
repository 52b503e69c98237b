"""
Shared pytest fixtures and utilities for stainless-service tests.

This module provides:
- The Candy contract (ABI, bytecode, deployed address) used by the transaction tests
- Fake tool runners standing in for the verifier and solcjs
- A config pointing the verifier cache into a temporary directory
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from stainless_service.config import ServiceConfig
from stainless_service.errors import ToolTimeoutError

# ---------------------------------------------------------------------------
# Candy contract
# ---------------------------------------------------------------------------

CANDY_ABI = (
    '[{"constant":false,"inputs":[{"name":"candies","type":"uint256"}],"name":"eatCandy","outputs":[],'
    '"payable":false,"stateMutability":"nonpayable","type":"function"},'
    '{"constant":true,"inputs":[],"name":"getRemainingCandies","outputs":[{"name":"","type":"uint256"}],'
    '"payable":false,"stateMutability":"view","type":"function"},'
    '{"inputs":[{"name":"_candies","type":"uint256"}],"payable":false,"stateMutability":"nonpayable",'
    '"type":"constructor"}]'
)

CANDY_BYTECODE_HEX = (
    "608060405234801561001057600080fd5b506040516020806101cb833981018060405281019080805190602001909291905050"
    "508060008190555080600181905550600060028190555050610172806100596000396000f30060806040526004361061004c57"
    "6000357c0100000000000000000000000000000000000000000000000000000000900463ffffffff168063a1ff2f5214610051"
    "578063ea319f281461007e575b600080fd5b34801561005d57600080fd5b5061007c6004803603810190808035906020019092"
    "91905050506100a9565b005b34801561008a57600080fd5b5061009361013c565b6040518082815260200191505060405180910390"
    "f35b6001548111151515610123576040517f08c379a000000000000000000000000000000000000000000000000000000000815260"
    "04018080602001828103825260058152602001807f6572726f7200000000000000000000000000000000000000000000000000"
    "000081525060200191505060405180910390fd5b8060015403600181905550806002540160028190555050565b600060015490"
    "50905600a165627a7a723058207721a45f17c0e0f57e255f33575281d17f1a90d3d58b51688230d93c460a19aa0029"
)
CANDY_BYTECODE = bytes.fromhex(CANDY_BYTECODE_HEX)

CANDY_ADDRESS_HEX = "8cdaf0cd259887258bc13a92c0a6da92698644c0"
CANDY_ADDRESS = bytes.fromhex(CANDY_ADDRESS_HEX)

EAT_CANDY_10_INPUT = "a1ff2f52" + "0" * 63 + "a"

# Unsigned eatCandy(10) call: nonce 1, gas price 1, gas 10_000_000, value 0
UNSIGNED_CALL_JSON = (
    '{"nonce":"0x1","gasPrice":"0x1","gas":"0x989680",'
    f'"to":"0x{CANDY_ADDRESS_HEX}","value":"0x0","input":"0x{EAT_CANDY_10_INPUT}",'
    '"v":"0x0","r":"0x0","s":"0x0",'
    '"hash":"0xe42d4178de0022668d32f7803fed5677d746f928fde8d0ec9052ed20a8adf43b"}'
)
UNSIGNED_CALL_SIGNING_HASH = bytes.fromhex("e13b1cfe8797fa11bd7929158008033e585d302a6f4cb11cfcf2b0a8bebec3fd")

# Signed with private key 0xc87509a1c067bbde78beb793e6fa76530b6382a4c0241e5e4a9ec0a0f44dc0d3
SIG_R = "aa0b243e4ad97b6cb7c2a016567aa02b2e7bed159c221b7089b60688527f6e88"
SIG_S = "679c9dfcb1ceb2477a36753645b564c2a14a7bc757f46b9b714c49a4c93ea0a4"
CALL_SIGNATURE = bytes.fromhex(SIG_R + SIG_S + "01")

SIGNED_CALL_JSON = (
    '{"nonce":"0x1","gasPrice":"0x1","gas":"0x989680",'
    f'"to":"0x{CANDY_ADDRESS_HEX}","value":"0x0","input":"0x{EAT_CANDY_10_INPUT}",'
    f'"v":"0x1c","r":"0x{SIG_R}","s":"0x{SIG_S}",'
    '"hash":"0x4c9f3a443af002d8789fb5ab992a7f14f99a407bae2a32d4de801076cea0e561"}'
)

# Candy deployment with 100 candies: nonce 0, gas price 1, gas 10_000_000, value 0
DEPLOY_100_SIGNING_HASH = bytes.fromhex("c289e67875d147429d2ffc5cc58e9a1486d581bef5aeca63017ad7855f8dab26")
DEPLOY_100_TX_HASH = "0x7ff1884c40c6dceae54fca4c15a130c5a3f69702d4f3e75fe3ac78b175ec95a9"


# ---------------------------------------------------------------------------
# Fake tools
# ---------------------------------------------------------------------------

Handler = Callable[[str, list[str], Path], str]


class FakeRunner:
    """
    Records every invocation and delegates to `handler`, which may write files
    into `cwd`, return console output, or raise tool errors.
    """

    def __init__(self, handler: Handler | None = None) -> None:
        self.handler = handler
        self.calls: list[tuple[str, list[str], Path]] = []

    def run(self, executable: str, args: Sequence[str], *, cwd: Path) -> str:
        self.calls.append((executable, list(args), cwd))
        if self.handler is None:
            return ""
        return self.handler(executable, list(args), cwd)


class ForbiddenRunner:
    """Fails the test if any tool is invoked."""

    def run(self, executable: str, args: Sequence[str], *, cwd: Path) -> str:
        raise AssertionError(f"unexpected tool invocation: {executable} {list(args)}")


@pytest.fixture
def config(tmp_path: Path) -> ServiceConfig:
    return ServiceConfig(
        verifier_cmd="fake-stainless",
        compiler_cmd="fake-solcjs",
        cache_dir=tmp_path / "cache",
    )


def service_toolchain(exe: str, args: list[str], cwd: Path) -> str:
    """
    Verifier and compiler stand-in for end-to-end service tests.

    `Broken.scala` yields no report, `Slow.scala` times out, anything else
    verifies and compiles to the Candy contract.
    """
    if args[0] == "--json":
        if "Broken.scala" in args:
            return "Parse error"
        if "Slow.scala" in args:
            raise ToolTimeoutError(exe, 60.0)
        (cwd / "report.json").write_text('{"Candy.scala": "valid"}')
        return "1 valid"
    if args[0] == "--solidity":
        (cwd / "Candy.sol").write_text("contract Candy {}")
        return ""
    out = Path(args[3])
    out.mkdir(parents=True, exist_ok=True)
    (out / "_x_Candy_sol_Candy.abi").write_text(CANDY_ABI)
    (out / "_x_Candy_sol_Candy.bin").write_text(CANDY_BYTECODE_HEX)
    return ""
