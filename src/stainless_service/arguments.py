"""Decoding of JSON-encoded call arguments.

Arguments arrive as one JSON document per argument. Integers must survive
unchanged up to 256 bits, so JSON numbers are never routed through float.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from decimal import Decimal, InvalidOperation
from typing import Any, Protocol

from eth_utils import decode_hex, is_address, to_checksum_address

from stainless_service.errors import ArgumentDecodeError

_ARRAY_RE = re.compile(r"^(.*)\[(\d*)\]$")
_HEX_RE = re.compile(r"^0x([0-9a-fA-F]{2})*$")

# uint256 and int256 values have at most 78 decimal digits
_MAX_INT_DIGITS = 78
_INT_LIMIT = 10**_MAX_INT_DIGITS


class AbiInput(Protocol):
    name: str
    type: str
    components: Sequence[AbiInput]


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number {name} is not allowed")


def _parse(index: int, raw: str) -> Any:
    try:
        return json.loads(raw, parse_float=Decimal, parse_constant=_reject_constant)
    except (TypeError, ValueError) as e:
        raise ArgumentDecodeError(index, raw, f"invalid JSON: {e}") from e


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, Decimal)) and not isinstance(value, bool)


def _check_range(value: int) -> int:
    if abs(value) >= _INT_LIMIT:
        raise ValueError("integer out of range")
    return value


def _integral(value: int | Decimal) -> int:
    if isinstance(value, int):
        return _check_range(value)
    if not value.is_finite():
        raise ValueError(f"{value} is not an integer")
    # Bound the magnitude before int() expands the exponent
    if value.adjusted() >= _MAX_INT_DIGITS:
        raise ValueError("integer out of range")
    if value != value.to_integral_value():
        raise ValueError(f"{value} is not an integer")
    return int(value)


def decode_args(raw_args: Sequence[str]) -> list[Any]:
    """
    Decode each argument independently.

    A top-level JSON number becomes an arbitrary-precision `int`. The
    coercion is shallow: numbers nested in arrays or objects are left as
    parsed (ints stay ints, fractional numbers stay `Decimal`). Use
    `decode_typed_args` when the ABI types are known.

    Raises:
        ArgumentDecodeError: On the first argument that fails to decode.
    """
    out: list[Any] = []
    for index, raw in enumerate(raw_args):
        value = _parse(index, raw)
        if _is_number(value):
            try:
                value = _integral(value)
            except ValueError as e:
                raise ArgumentDecodeError(index, raw, str(e)) from e
        out.append(value)
    return out


def _coerce_int(value: Any, abi_type: str) -> int:
    if _is_number(value):
        return _integral(value)
    if isinstance(value, str):
        s = value.strip()
        parsed: int | Decimal
        try:
            if s.lower().startswith(("0x", "-0x")):
                parsed = int(s, 16)
            else:
                parsed = Decimal(s)
        except (ValueError, InvalidOperation):
            raise ValueError(f"{value!r} is not a valid {abi_type}") from None
        return _integral(parsed)
    raise ValueError(f"expected a number for {abi_type}, got {type(value).__name__}")


def _coerce_bytes(value: Any, abi_type: str) -> bytes:
    if not isinstance(value, str) or not _HEX_RE.match(value):
        raise ValueError(f"expected a 0x-prefixed hex string for {abi_type}")
    return decode_hex(value)


def coerce_value(value: Any, abi_type: str, components: Sequence[AbiInput] = ()) -> Any:
    """
    Coerce a parsed JSON value to the Python value eth_abi expects for `abi_type`.

    Recurses through array dimensions and tuples; tuples accept either a JSON
    array (positional) or an object keyed by component name.

    Raises:
        ValueError: If the value does not fit the declared type.
    """
    m = _ARRAY_RE.match(abi_type)
    if m:
        inner, size = m.groups()
        if not isinstance(value, list):
            raise ValueError(f"expected a JSON array for {abi_type}")
        if size and len(value) != int(size):
            raise ValueError(f"expected {size} elements for {abi_type}, got {len(value)}")
        return [coerce_value(v, inner, components) for v in value]

    if abi_type == "tuple":
        if isinstance(value, dict):
            missing = [c.name for c in components if c.name not in value]
            if missing:
                raise ValueError(f"missing tuple components {missing}")
            value = [value[c.name] for c in components]
        if not isinstance(value, list) or len(value) != len(components):
            raise ValueError(f"expected {len(components)} tuple components")
        return tuple(coerce_value(v, c.type, c.components) for v, c in zip(value, components))

    if abi_type.startswith(("uint", "int")):
        return _coerce_int(value, abi_type)
    if abi_type == "address":
        if not isinstance(value, str) or not is_address(value):
            raise ValueError(f"{value!r} is not a valid address")
        return to_checksum_address(value)
    if abi_type == "bool":
        if not isinstance(value, bool):
            raise ValueError("expected true or false")
        return value
    if abi_type == "string":
        if not isinstance(value, str):
            raise ValueError("expected a string")
        return value
    if abi_type.startswith("bytes"):
        return _coerce_bytes(value, abi_type)
    if abi_type.startswith(("fixed", "ufixed")):
        if not _is_number(value):
            raise ValueError(f"expected a number for {abi_type}")
        return Decimal(value)
    raise ValueError(f"unsupported ABI type {abi_type!r}")


def decode_typed_args(raw_args: Sequence[str], inputs: Sequence[AbiInput]) -> list[Any]:
    """
    Decode arguments according to their declared ABI inputs.

    `raw_args` and `inputs` must have the same length.

    Raises:
        ArgumentDecodeError: On the first argument that does not parse or fit its type.
    """
    if len(raw_args) != len(inputs):
        raise ValueError(f"expected {len(inputs)} arguments, got {len(raw_args)}")
    out: list[Any] = []
    for index, (raw, param) in enumerate(zip(raw_args, inputs)):
        value = _parse(index, raw)
        try:
            out.append(coerce_value(value, param.type, param.components))
        except ValueError as e:
            raise ArgumentDecodeError(index, raw, str(e)) from e
    return out
