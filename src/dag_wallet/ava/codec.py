"""Transaction codec — outputs, UTXOs, inputs, credentials, signed transactions.

Pure-Python serialization for the DAG ledger payment format:
- Output / UTXO / Input / Credential data classes
- UnsignedTx and Tx with serialize / deserialize / ID computation
- Signing (one credential per input) and context verification
- CB58 text helpers for the RPC boundary

All integers are big-endian. Lists are prefixed with a u32 count.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from functools import cached_property
from io import BytesIO
from typing import TYPE_CHECKING, Any, Self

from dag_wallet.ava.cb58 import ID_LEN, SHORT_ID_LEN, cb58_decode, cb58_encode
from dag_wallet.ava.keys import SIGNATURE_LEN, recover_address
from dag_wallet.errors.definitions import TxDecodeError, UTXODecodeError, VerificationError
from dag_wallet.utils.crypto import sha256

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from dag_wallet.ava.keys import PrivateKey

CODEC_VERSION = 0
MAX_UINT64 = 2**64 - 1

# ---------------------------------------------------------------------------
# Stream helpers
# ---------------------------------------------------------------------------


def _read(stream: BytesIO, n: int, what: str) -> bytes:
    data = stream.read(n)
    if len(data) != n:
        msg = f"Unexpected end of stream reading {what}"
        raise ValueError(msg)
    return data


def _read_u16(stream: BytesIO, what: str) -> int:
    return struct.unpack(">H", _read(stream, 2, what))[0]


def _read_u32(stream: BytesIO, what: str) -> int:
    return struct.unpack(">I", _read(stream, 4, what))[0]


def _read_u64(stream: BytesIO, what: str) -> int:
    return struct.unpack(">Q", _read(stream, 8, what))[0]


def _decode_all(data: bytes, parse: Any) -> Any:
    """Run *parse* over *data* and reject trailing bytes."""
    stream = BytesIO(data)
    result = parse(stream)
    if stream.read(1):
        msg = "Trailing bytes after payload"
        raise ValueError(msg)
    return result


def utxo_id(tx_id: bytes, output_index: int) -> bytes:
    """Derive the 32-byte UTXO identifier from its source tx ID and output index."""
    return sha256(tx_id + struct.pack(">I", output_index))


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Context:
    """Network/chain context a transaction is verified against.

    Attributes:
        network_id: 32-bit network identifier.
        chain_id: 32-byte target chain identifier.
        fee: Fixed per-transaction fee.
    """

    network_id: int
    chain_id: bytes
    fee: int


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Output:
    """A payment output.

    Attributes:
        amount: Value in the ledger's minimal unit.
        addresses: Owning 20-byte addresses.
        locktime: Unix time before which the output cannot be spent.
        threshold: Number of owning keys that must sign to spend it.
    """

    amount: int
    addresses: tuple[bytes, ...]
    locktime: int = 0
    threshold: int = 1

    def serialize(self) -> bytes:
        """Serialize the output to bytes."""
        result = struct.pack(">QQI", self.amount, self.locktime, self.threshold)
        result += struct.pack(">I", len(self.addresses))
        for address in self.addresses:
            result += address
        return result

    @classmethod
    def deserialize(cls, stream: BytesIO) -> Output:
        """Deserialize an output from a byte stream."""
        amount = _read_u64(stream, "amount")
        locktime = _read_u64(stream, "locktime")
        threshold = _read_u32(stream, "threshold")
        n_addresses = _read_u32(stream, "address count")
        addresses = tuple(_read(stream, SHORT_ID_LEN, "address") for _ in range(n_addresses))
        return cls(amount=amount, addresses=addresses, locktime=locktime, threshold=threshold)

    def verify(self) -> None:
        """Check the output is well-formed.

        Raises:
            VerificationError: On a zero/overflowing amount or bad threshold.
        """
        if self.amount <= 0:
            raise VerificationError("output amount must be positive")
        if self.amount > MAX_UINT64:
            raise VerificationError("output amount overflows uint64")
        if not 0 <= self.locktime <= MAX_UINT64:
            raise VerificationError("output locktime out of range")
        if any(len(a) != SHORT_ID_LEN for a in self.addresses):
            raise VerificationError("output address has wrong length")
        if len(set(self.addresses)) != len(self.addresses):
            raise VerificationError("output addresses are not unique")
        if not 0 <= self.threshold <= len(self.addresses):
            raise VerificationError(
                f"output threshold {self.threshold} invalid for {len(self.addresses)} addresses"
            )
        if self.threshold == 0 and self.addresses:
            raise VerificationError("output with zero threshold must not name addresses")


# ---------------------------------------------------------------------------
# UTXO
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UTXO:
    """An unspent output, identified by ``(tx_id, output_index)``.

    Attributes:
        tx_id: 32-byte ID of the transaction that created the output.
        output_index: Position of the output in that transaction.
        output: The output itself.
    """

    tx_id: bytes
    output_index: int
    output: Output

    @cached_property
    def id(self) -> bytes:
        """The 32-byte UTXO identifier."""
        return utxo_id(self.tx_id, self.output_index)

    @property
    def amount(self) -> int:
        return self.output.amount

    def serialize(self) -> bytes:
        """Serialize the UTXO to bytes."""
        return self.tx_id + struct.pack(">I", self.output_index) + self.output.serialize()

    @classmethod
    def deserialize(cls, stream: BytesIO) -> UTXO:
        """Deserialize a UTXO from a byte stream."""
        tx_id = _read(stream, ID_LEN, "tx_id")
        output_index = _read_u32(stream, "output_index")
        output = Output.deserialize(stream)
        return cls(tx_id=tx_id, output_index=output_index, output=output)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready record with CB58-encoded byte fields."""
        return {
            "id": cb58_encode(self.id),
            "txID": cb58_encode(self.tx_id),
            "outputIndex": self.output_index,
            "amount": self.output.amount,
            "locktime": self.output.locktime,
            "threshold": self.output.threshold,
            "addresses": [cb58_encode(a) for a in self.output.addresses],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Rebuild a UTXO from :meth:`to_dict` output.

        Raises:
            UTXODecodeError: On missing fields, bad encodings, an invalid output
                or an ID mismatch.
        """
        try:
            utxo = cls(
                tx_id=cb58_decode(data["txID"]),
                output_index=int(data["outputIndex"]),
                output=Output(
                    amount=int(data["amount"]),
                    addresses=tuple(cb58_decode(a) for a in data["addresses"]),
                    locktime=int(data.get("locktime", 0)),
                    threshold=int(data.get("threshold", 1)),
                ),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise UTXODecodeError(f"malformed UTXO record: {exc}") from exc
        if len(utxo.tx_id) != ID_LEN:
            raise UTXODecodeError("malformed UTXO record: bad txID length")
        if not 0 <= utxo.output_index <= 0xFFFFFFFF:
            raise UTXODecodeError("malformed UTXO record: output index out of range")
        if "id" in data and data["id"] != cb58_encode(utxo.id):
            raise UTXODecodeError(f"UTXO record ID mismatch: {data['id']}")
        _verify_utxo_output(utxo)
        return utxo


# ---------------------------------------------------------------------------
# Input / Credential
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Input:
    """A transaction input consuming one UTXO.

    Attributes:
        tx_id: Source transaction ID of the consumed UTXO.
        output_index: Output index of the consumed UTXO.
        amount: Value of the consumed UTXO.
        sig_indices: Positions in the UTXO's address list that sign.
    """

    tx_id: bytes
    output_index: int
    amount: int
    sig_indices: tuple[int, ...]

    @property
    def utxo_id(self) -> bytes:
        return utxo_id(self.tx_id, self.output_index)

    def serialize(self) -> bytes:
        result = self.tx_id + struct.pack(">IQ", self.output_index, self.amount)
        result += struct.pack(">I", len(self.sig_indices))
        for idx in self.sig_indices:
            result += struct.pack(">I", idx)
        return result

    @classmethod
    def deserialize(cls, stream: BytesIO) -> Input:
        tx_id = _read(stream, ID_LEN, "tx_id")
        output_index = _read_u32(stream, "output_index")
        amount = _read_u64(stream, "amount")
        n_sigs = _read_u32(stream, "signature index count")
        sig_indices = tuple(_read_u32(stream, "signature index") for _ in range(n_sigs))
        return cls(tx_id=tx_id, output_index=output_index, amount=amount, sig_indices=sig_indices)


@dataclass(frozen=True)
class Credential:
    """Spend authorization for one input: one signature per signature index."""

    signatures: tuple[bytes, ...]

    def serialize(self) -> bytes:
        return struct.pack(">I", len(self.signatures)) + b"".join(self.signatures)

    @classmethod
    def deserialize(cls, stream: BytesIO) -> Credential:
        n_sigs = _read_u32(stream, "signature count")
        return cls(tuple(_read(stream, SIGNATURE_LEN, "signature") for _ in range(n_sigs)))


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UnsignedTx:
    """The signed-over body of a payment transaction."""

    network_id: int
    chain_id: bytes
    outputs: tuple[Output, ...]
    inputs: tuple[Input, ...]

    def serialize(self) -> bytes:
        result = struct.pack(">HI", CODEC_VERSION, self.network_id) + self.chain_id
        result += struct.pack(">I", len(self.outputs))
        for out in self.outputs:
            result += out.serialize()
        result += struct.pack(">I", len(self.inputs))
        for inp in self.inputs:
            result += inp.serialize()
        return result

    @classmethod
    def deserialize(cls, stream: BytesIO) -> UnsignedTx:
        version = _read_u16(stream, "codec version")
        if version != CODEC_VERSION:
            msg = f"Unknown codec version: {version}"
            raise ValueError(msg)
        network_id = _read_u32(stream, "network_id")
        chain_id = _read(stream, ID_LEN, "chain_id")
        n_outputs = _read_u32(stream, "output count")
        outputs = tuple(Output.deserialize(stream) for _ in range(n_outputs))
        n_inputs = _read_u32(stream, "input count")
        inputs = tuple(Input.deserialize(stream) for _ in range(n_inputs))
        return cls(network_id=network_id, chain_id=chain_id, outputs=outputs, inputs=inputs)

    def signing_digest(self) -> bytes:
        """SHA-256 of the unsigned bytes; what every credential signs."""
        return sha256(self.serialize())


@dataclass(frozen=True)
class Tx:
    """A signed payment transaction."""

    unsigned: UnsignedTx
    credentials: tuple[Credential, ...]

    @property
    def inputs(self) -> tuple[Input, ...]:
        return self.unsigned.inputs

    @property
    def outputs(self) -> tuple[Output, ...]:
        return self.unsigned.outputs

    @cached_property
    def id(self) -> bytes:
        """The 32-byte transaction ID (SHA-256 of the signed bytes)."""
        return sha256(self.serialize())

    def serialize(self) -> bytes:
        result = self.unsigned.serialize()
        result += struct.pack(">I", len(self.credentials))
        for cred in self.credentials:
            result += cred.serialize()
        return result

    @classmethod
    def deserialize(cls, stream: BytesIO) -> Tx:
        unsigned = UnsignedTx.deserialize(stream)
        n_creds = _read_u32(stream, "credential count")
        credentials = tuple(Credential.deserialize(stream) for _ in range(n_creds))
        return cls(unsigned=unsigned, credentials=credentials)

    def to_string(self) -> str:
        """CB58 text form used by the node's issue endpoint."""
        return cb58_encode(self.serialize())

    def verify(self, ctx: Context, utxos: Mapping[bytes, UTXO] | None = None) -> None:
        """Verify the transaction against a network/chain context.

        Signatures are checked for every input whose UTXO is found in *utxos*.

        Raises:
            VerificationError: If any check fails.
        """
        body = self.unsigned
        if body.network_id != ctx.network_id:
            raise VerificationError(
                f"network ID mismatch: tx {body.network_id}, context {ctx.network_id}"
            )
        if body.chain_id != ctx.chain_id:
            raise VerificationError("chain ID mismatch")
        if not body.inputs:
            raise VerificationError("transaction has no inputs")

        for out in body.outputs:
            out.verify()

        seen: set[bytes] = set()
        for inp in body.inputs:
            if inp.utxo_id in seen:
                raise VerificationError("transaction spends the same UTXO twice")
            seen.add(inp.utxo_id)
            if not 0 < inp.amount <= MAX_UINT64:
                raise VerificationError("input amount out of range")

        total_in = sum(inp.amount for inp in body.inputs)
        total_out = sum(out.amount for out in body.outputs)
        if total_in > MAX_UINT64 or total_out + ctx.fee > MAX_UINT64:
            raise VerificationError("transaction amounts overflow uint64")
        if total_in != total_out + ctx.fee:
            raise VerificationError(
                f"inputs {total_in} != outputs {total_out} + fee {ctx.fee}"
            )

        if len(self.credentials) != len(body.inputs):
            raise VerificationError(
                f"{len(self.credentials)} credentials for {len(body.inputs)} inputs"
            )

        digest = body.signing_digest()
        for inp, cred in zip(body.inputs, self.credentials, strict=True):
            if len(cred.signatures) != len(inp.sig_indices):
                raise VerificationError("credential signature count mismatch")
            utxo = utxos.get(inp.utxo_id) if utxos is not None else None
            if utxo is None:
                continue
            _verify_spend(inp, cred, utxo, digest)


def _verify_spend(inp: Input, cred: Credential, utxo: UTXO, digest: bytes) -> None:
    out = utxo.output
    if inp.amount != out.amount:
        raise VerificationError("input amount does not match the consumed UTXO")
    if len(inp.sig_indices) != out.threshold:
        raise VerificationError(
            f"input carries {len(inp.sig_indices)} signatures, threshold is {out.threshold}"
        )
    previous = -1
    for idx, signature in zip(inp.sig_indices, cred.signatures, strict=True):
        if idx <= previous:
            raise VerificationError("signature indices are not sorted and unique")
        previous = idx
        if idx >= len(out.addresses):
            raise VerificationError("signature index out of range")
        if recover_address(digest, signature) != out.addresses[idx]:
            raise VerificationError("signature does not match the UTXO's address")


def sign_tx(unsigned: UnsignedTx, signers: Sequence[Sequence[PrivateKey]]) -> Tx:
    """Sign every input of *unsigned*.

    Args:
        unsigned: The transaction body.
        signers: For each input, the keys for its signature indices, in order.

    Returns:
        The signed :class:`Tx`.
    """
    digest = unsigned.signing_digest()
    credentials = tuple(
        Credential(tuple(key.sign(digest) for key in keys)) for keys in signers
    )
    return Tx(unsigned=unsigned, credentials=credentials)


# ---------------------------------------------------------------------------
# Decoding entry points
# ---------------------------------------------------------------------------


def decode_tx(data: bytes) -> Tx:
    """Decode signed transaction bytes.

    Raises:
        TxDecodeError: On truncated, trailing or unknown-version input.
    """
    try:
        return _decode_all(data, Tx.deserialize)
    except (ValueError, struct.error) as exc:
        raise TxDecodeError(f"cannot decode transaction: {exc}") from exc


def decode_utxo(data: bytes) -> UTXO:
    """Decode UTXO bytes.

    Raises:
        UTXODecodeError: On truncated or trailing input, or an output that fails
            :meth:`Output.verify`.
    """
    try:
        utxo = _decode_all(data, UTXO.deserialize)
    except (ValueError, struct.error) as exc:
        raise UTXODecodeError(f"cannot decode UTXO: {exc}") from exc
    _verify_utxo_output(utxo)
    return utxo


def _verify_utxo_output(utxo: UTXO) -> None:
    try:
        utxo.output.verify()
    except VerificationError as exc:
        raise UTXODecodeError(f"invalid UTXO output: {exc.message}") from exc


def parse_tx(text: str) -> Tx:
    """Decode a CB58 transaction string."""
    try:
        data = cb58_decode(text.strip())
    except ValueError as exc:
        raise TxDecodeError(f"cannot decode transaction: {exc}") from exc
    return decode_tx(data)


def parse_utxo(text: str) -> UTXO:
    """Decode a CB58 UTXO string, as returned by the node's UTXO lookup."""
    try:
        data = cb58_decode(text.strip())
    except ValueError as exc:
        raise UTXODecodeError(f"cannot decode UTXO: {exc}") from exc
    return decode_utxo(data)
