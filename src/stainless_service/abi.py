"""Contract ABI parsing and call-data packing.

Only the part of the ABI needed to build transactions is modelled: the
constructor and functions with their (possibly nested) inputs.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import jsonschema
from eth_abi import encode
from eth_abi.exceptions import ABITypeError, EncodingError, ParseError

from stainless_service.arguments import decode_typed_args
from stainless_service.errors import AbiPackError, AbiParseError
from stainless_service.utils import keccak256

ABI_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "type": {"enum": ["function", "constructor", "event", "fallback", "receive", "error"]},
            "name": {"type": "string"},
            "inputs": {"type": "array", "items": {"$ref": "#/definitions/param"}},
            "outputs": {"type": "array", "items": {"$ref": "#/definitions/param"}},
        },
    },
    "definitions": {
        "param": {
            "type": "object",
            "required": ["type"],
            "properties": {
                "name": {"type": "string"},
                "type": {"type": "string", "minLength": 1},
                "components": {"type": "array", "items": {"$ref": "#/definitions/param"}},
            },
        }
    },
}

_ALIASES = {"uint": "uint256", "int": "int256", "fixed": "fixed128x18", "ufixed": "ufixed128x18", "byte": "bytes1"}
_ALIAS_RE = re.compile(r"^(uint|int|ufixed|fixed|byte)(?=$|\[)")


@dataclass(frozen=True)
class AbiParam:
    name: str
    type: str
    components: tuple[AbiParam, ...] = ()

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> AbiParam:
        return cls(
            name=d.get("name", ""),
            type=d["type"],
            components=tuple(cls.from_dict(c) for c in d.get("components", [])),
        )

    def canonical_type(self) -> str:
        """Type as it appears in a method signature, e.g. `(uint256,address)[]`."""
        if self.type.startswith("tuple"):
            inner = ",".join(c.canonical_type() for c in self.components)
            return f"({inner}){self.type[len('tuple'):]}"
        return _ALIAS_RE.sub(lambda m: _ALIASES[m.group(1)], self.type)


@dataclass(frozen=True)
class AbiEntry:
    kind: str
    name: str
    inputs: tuple[AbiParam, ...]

    @property
    def input_types(self) -> list[str]:
        return [p.canonical_type() for p in self.inputs]

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.input_types)})"

    @property
    def selector(self) -> bytes:
        return keccak256(self.signature.encode())[:4]


class ContractAbi:
    def __init__(self, entries: Sequence[AbiEntry]) -> None:
        self.entries = list(entries)

    @classmethod
    def from_json(cls, abi_json: str | bytes) -> ContractAbi:
        """
        Parse a JSON ABI description.

        Raises:
            AbiParseError: If the text is not JSON or does not follow the ABI layout.
        """
        try:
            doc = json.loads(abi_json)
        except (TypeError, ValueError) as e:
            raise AbiParseError(f"ABI is not valid JSON: {e}") from e
        try:
            jsonschema.validate(instance=doc, schema=ABI_SCHEMA)
        except jsonschema.ValidationError as e:
            path = "/".join(str(p) for p in e.absolute_path)
            raise AbiParseError(f"ABI schema validation failed at '{path}': {e.message}") from e

        entries = [
            AbiEntry(
                kind=item.get("type", "function"),
                name=item.get("name", ""),
                inputs=tuple(AbiParam.from_dict(p) for p in item.get("inputs", [])),
            )
            for item in doc
        ]
        return cls(entries)

    @property
    def constructor(self) -> AbiEntry | None:
        for entry in self.entries:
            if entry.kind == "constructor":
                return entry
        return None

    def functions(self, name: str) -> list[AbiEntry]:
        return [e for e in self.entries if e.kind == "function" and e.name == name]

    def method(self, name: str, arity: int) -> AbiEntry:
        """
        Resolve a function by name, using the argument count to pick among overloads.

        Raises:
            AbiPackError: If no function or several functions match.
        """
        candidates = self.functions(name)
        if not candidates:
            raise AbiPackError(f"method '{name}' not found", data={"method": name})
        matching = [e for e in candidates if len(e.inputs) == arity]
        if not matching:
            expected = sorted({len(e.inputs) for e in candidates})
            raise AbiPackError(
                f"method '{name}' expects {' or '.join(map(str, expected))} argument(s), got {arity}",
                data={"method": name, "expected": expected, "got": arity},
            )
        if len(matching) > 1:
            raise AbiPackError(
                f"method '{name}' is ambiguous for {arity} argument(s): {[e.signature for e in matching]}",
                data={"method": name, "candidates": [e.signature for e in matching]},
            )
        return matching[0]

    def pack(self, method: str, raw_args: Sequence[str]) -> bytes:
        """
        Pack JSON-encoded arguments into call data.

        An empty `method` targets the constructor and produces the encoded
        arguments only (to be appended to the contract bytecode); any other
        name produces the 4-byte selector followed by the encoded arguments.

        Raises:
            AbiPackError: Unknown method, wrong arity, or a value eth_abi rejects.
            ArgumentDecodeError: An argument is not valid JSON or does not fit its type.
        """
        if method == "":
            entry = self.constructor
            if entry is None:
                if raw_args:
                    raise AbiPackError(f"ABI has no constructor, got {len(raw_args)} argument(s)")
                return b""
            if len(entry.inputs) != len(raw_args):
                raise AbiPackError(
                    f"constructor expects {len(entry.inputs)} argument(s), got {len(raw_args)}",
                    data={"method": "", "expected": [len(entry.inputs)], "got": len(raw_args)},
                )
        else:
            entry = self.method(method, len(raw_args))

        values = decode_typed_args(raw_args, entry.inputs)
        try:
            encoded = encode(entry.input_types, values)
        except (EncodingError, ParseError, ABITypeError, ValueError) as e:
            raise AbiPackError(f"cannot pack arguments for '{entry.signature}': {e}") from e

        if entry.kind == "constructor":
            return encoded
        return entry.selector + encoded

