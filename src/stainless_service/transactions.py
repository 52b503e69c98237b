"""Legacy Ethereum transactions: model, canonical serialization and signing schemes.

The canonical wire form is a compact JSON object with the fields in a fixed
order, quantities as minimal `0x` hex and byte strings as `0x` hex:

    {"nonce","gasPrice","gas","to","value","input","v","r","s","hash"}

`to` is null for contract creation, and `hash` is the Keccak-256 of the RLP
encoding of all nine fields (v, r, s are zero while unsigned). Signing
schemes only decide the pre-image that gets signed and how a 65-byte
`[R || S || V]` signature maps to v, r, s.
"""

from __future__ import annotations

import dataclasses
import json
import re
from dataclasses import dataclass
from typing import Any, Protocol

import rlp

from stainless_service.constants import ADDRESS_LENGTH, SIGNATURE_LENGTH
from stainless_service.errors import InvalidSignatureLengthError, TransactionDeserializeError
from stainless_service.utils import keccak256

_QUANTITY_RE = re.compile(r"^0x(0|[1-9a-fA-F][0-9a-fA-F]*)$")
_DATA_RE = re.compile(r"^0x([0-9a-fA-F]{2})*$")

_REQUIRED_FIELDS = ("nonce", "gasPrice", "gas", "value", "input", "v", "r", "s")


def encode_quantity(n: int) -> str:
    return hex(n)


def encode_data(b: bytes) -> str:
    return "0x" + b.hex()


def _quantity(obj: dict[str, Any], key: str) -> int:
    val = obj[key]
    if not isinstance(val, str) or not _QUANTITY_RE.match(val):
        raise TransactionDeserializeError(f"field '{key}' is not a hex quantity: {val!r}", data={"field": key})
    return int(val, 16)


def _data(obj: dict[str, Any], key: str) -> bytes:
    val = obj[key]
    if not isinstance(val, str) or not _DATA_RE.match(val):
        raise TransactionDeserializeError(f"field '{key}' is not hex data: {val!r}", data={"field": key})
    return bytes.fromhex(val[2:])


def _check_uint(name: str, value: Any) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValueError(f"{name} must be a non-negative integer, got {value!r}")


@dataclass(frozen=True)
class Transaction:
    nonce: int
    gas_price: int
    gas: int
    to: bytes | None
    value: int
    data: bytes
    v: int = 0
    r: int = 0
    s: int = 0

    def __post_init__(self) -> None:
        for name in ("nonce", "gas_price", "gas", "value", "v", "r", "s"):
            _check_uint(name, getattr(self, name))
        if self.to is not None and len(self.to) != ADDRESS_LENGTH:
            raise ValueError(f"to must be {ADDRESS_LENGTH} bytes, got {len(self.to)}")

    @property
    def is_signed(self) -> bool:
        return (self.v, self.r, self.s) != (0, 0, 0)

    def payload_fields(self) -> list[Any]:
        """The six fields covered by every signing scheme."""
        return [self.nonce, self.gas_price, self.gas, self.to or b"", self.value, self.data]

    def hash(self) -> bytes:
        return keccak256(rlp.encode([*self.payload_fields(), self.v, self.r, self.s]))

    def with_signature(self, v: int, r: int, s: int) -> Transaction:
        return dataclasses.replace(self, v=v, r=r, s=s)

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "nonce": encode_quantity(self.nonce),
            "gasPrice": encode_quantity(self.gas_price),
            "gas": encode_quantity(self.gas),
            "to": encode_data(self.to) if self.to is not None else None,
            "value": encode_quantity(self.value),
            "input": encode_data(self.data),
            "v": encode_quantity(self.v),
            "r": encode_quantity(self.r),
            "s": encode_quantity(self.s),
            "hash": encode_data(self.hash()),
        }

    def serialize(self) -> bytes:
        return json.dumps(self.to_json_dict(), separators=(",", ":")).encode()

    @classmethod
    def deserialize(cls, raw: bytes | str) -> Transaction:
        """
        Parse a canonical serialization.

        A `hash` field, when present, must match the recomputed hash.

        Raises:
            TransactionDeserializeError: On malformed JSON, missing or malformed fields.
        """
        try:
            obj = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise TransactionDeserializeError(f"transaction is not valid JSON: {e}") from e
        if not isinstance(obj, dict):
            raise TransactionDeserializeError(f"transaction must be a JSON object, got {type(obj).__name__}")

        missing = [k for k in _REQUIRED_FIELDS if k not in obj]
        if missing:
            raise TransactionDeserializeError(f"missing required field(s) {missing}", data={"missing": missing})

        to: bytes | None = None
        if obj.get("to") is not None:
            to = _data(obj, "to")
            if len(to) != ADDRESS_LENGTH:
                raise TransactionDeserializeError(f"field 'to' must be {ADDRESS_LENGTH} bytes, got {len(to)}")

        tx = cls(
            nonce=_quantity(obj, "nonce"),
            gas_price=_quantity(obj, "gasPrice"),
            gas=_quantity(obj, "gas"),
            to=to,
            value=_quantity(obj, "value"),
            data=_data(obj, "input"),
            v=_quantity(obj, "v"),
            r=_quantity(obj, "r"),
            s=_quantity(obj, "s"),
        )
        if obj.get("hash") is not None and _data(obj, "hash") != tx.hash():
            raise TransactionDeserializeError("field 'hash' does not match transaction contents")
        return tx


# ---------------------------------------------------------------------------
# Signing schemes
# ---------------------------------------------------------------------------


class Signer(Protocol):
    name: str

    def signing_hash(self, tx: Transaction) -> bytes: ...

    def signature_values(self, signature: bytes) -> tuple[int, int, int]: ...


def _split_signature(signature: bytes) -> tuple[int, int, int]:
    if len(signature) != SIGNATURE_LENGTH:
        raise InvalidSignatureLengthError(len(signature), SIGNATURE_LENGTH)
    r = int.from_bytes(signature[:32], "big")
    s = int.from_bytes(signature[32:64], "big")
    return r, s, signature[64]


class HomesteadSigner:
    """Pre-EIP-155 scheme: no chain id in the pre-image, v = recovery id + 27."""

    name = "homestead"

    def signing_hash(self, tx: Transaction) -> bytes:
        return keccak256(rlp.encode(tx.payload_fields()))

    def signature_values(self, signature: bytes) -> tuple[int, int, int]:
        r, s, recovery_id = _split_signature(signature)
        return recovery_id + 27, r, s


class EIP155Signer:
    """Replay-protected scheme: chain id in the pre-image, v = recovery id + 35 + 2 * chain id."""

    name = "eip155"

    def __init__(self, chain_id: int) -> None:
        if chain_id <= 0:
            raise ValueError(f"chain_id must be positive, got {chain_id}")
        self.chain_id = chain_id

    def signing_hash(self, tx: Transaction) -> bytes:
        return keccak256(rlp.encode([*tx.payload_fields(), self.chain_id, 0, 0]))

    def signature_values(self, signature: bytes) -> tuple[int, int, int]:
        r, s, recovery_id = _split_signature(signature)
        return recovery_id + 35 + 2 * self.chain_id, r, s


HOMESTEAD = HomesteadSigner()


def signer_for(chain_id: int | None) -> Signer:
    """Homestead when no chain id is configured, EIP-155 otherwise."""
    if chain_id is None:
        return HOMESTEAD
    return EIP155Signer(chain_id)
