"""Building unsigned transactions and finalizing them with external signatures.

Nothing here touches private keys, the network or the clock: the same inputs
always produce byte-identical serializations and signing hashes.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from stainless_service.abi import ContractAbi
from stainless_service.transactions import HOMESTEAD, Signer, Transaction


@dataclass(frozen=True)
class TransactionBuild:
    transaction: bytes
    signing_hash: bytes

    def to_dict(self) -> dict[str, str]:
        return {"transaction": "0x" + self.transaction.hex(), "transaction_hash": "0x" + self.signing_hash.hex()}


class TransactionBuilder:
    def __init__(self, signer: Signer = HOMESTEAD) -> None:
        self.signer = signer

    def _seal(self, tx: Transaction) -> TransactionBuild:
        # tx is frozen, so the hash and the serialization describe the same fields
        return TransactionBuild(transaction=tx.serialize(), signing_hash=self.signer.signing_hash(tx))

    def build_creation(
        self,
        *,
        gas_limit: int,
        gas_price: int,
        amount: int,
        bytecode: bytes,
        abi_json: str,
        args: Sequence[str] = (),
    ) -> TransactionBuild:
        """
        Build a contract-creation transaction.

        The call data is `bytecode` followed by the constructor arguments packed
        against the ABI. The nonce is 0; account-level nonce management happens
        outside this service.

        Raises:
            AbiParseError, AbiPackError, ArgumentDecodeError
            ValueError: If a numeric field is negative.
        """
        packed = ContractAbi.from_json(abi_json).pack("", args)
        tx = Transaction(
            nonce=0,
            gas_price=gas_price,
            gas=gas_limit,
            to=None,
            value=amount,
            data=bytes(bytecode) + packed,
        )
        return self._seal(tx)

    def build_call(
        self,
        *,
        gas_limit: int,
        gas_price: int,
        amount: int,
        contract_address: bytes,
        nonce: int,
        abi_json: str,
        method: str,
        args: Sequence[str] = (),
    ) -> TransactionBuild:
        """
        Build a transaction calling `method` on the contract at `contract_address`.

        Raises:
            AbiParseError, AbiPackError, ArgumentDecodeError
            ValueError: If a numeric field is negative or the address is not 20 bytes.
        """
        packed = ContractAbi.from_json(abi_json).pack(method, args)
        tx = Transaction(
            nonce=nonce,
            gas_price=gas_price,
            gas=gas_limit,
            to=bytes(contract_address),
            value=amount,
            data=packed,
        )
        return self._seal(tx)


def finalize_transaction(serialized: bytes | str, signature: bytes, signer: Signer = HOMESTEAD) -> bytes:
    """
    Attach an externally produced signature to a serialized transaction.

    Only v, r and s change. Finalizing an already signed serialization with the
    same signature returns the same bytes.

    Raises:
        TransactionDeserializeError: If `serialized` is not a canonical transaction.
        InvalidSignatureLengthError: If `signature` is not 65 bytes.
    """
    tx = Transaction.deserialize(serialized)
    v, r, s = signer.signature_values(bytes(signature))
    return tx.with_signature(v, r, s).serialize()
