"""UTXO set — identifier-keyed UTXO map with merge, spend and diff."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Self

from dag_wallet.ava.codec import UTXO
from dag_wallet.errors.definitions import UTXODecodeError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from dag_wallet.ava.codec import Tx, UnsignedTx


class UTXOSet:
    """Mapping of UTXO identifier -> UTXO record.

    Records are immutable values, so two sets can be merged or diffed by
    identifier and content alone. Iteration is ascending by identifier.
    The set itself is not synchronized; the owning wallet serializes access.
    """

    def __init__(self, utxos: Iterable[UTXO] = ()) -> None:
        self._utxos: dict[bytes, UTXO] = {}
        for utxo in utxos:
            self.add(utxo)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, utxo: UTXO) -> None:
        """Insert or replace the record keyed by the UTXO's identifier."""
        self._utxos[utxo.id] = utxo

    def remove(self, id_: bytes) -> None:
        """Delete the entry if present; absent identifiers are ignored."""
        self._utxos.pop(id_, None)

    def apply_spend(self, tx: Tx | UnsignedTx) -> list[bytes]:
        """Remove every UTXO referenced by *tx*'s inputs.

        Outputs are not inspected: new outputs owned by the wallet are
        learned on the next refresh.

        Returns:
            The identifiers that were present and removed.
        """
        removed: list[bytes] = []
        for inp in tx.inputs:
            if self._utxos.pop(inp.utxo_id, None) is not None:
                removed.append(inp.utxo_id)
        return removed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, id_: bytes) -> UTXO | None:
        return self._utxos.get(id_)

    def total(self) -> int:
        """Sum of all held amounts."""
        return sum(u.amount for u in self._utxos.values())

    def sorted(self) -> list[UTXO]:
        """Snapshot of the records, ascending by identifier."""
        return [self._utxos[k] for k in sorted(self._utxos)]

    def as_mapping(self) -> dict[bytes, UTXO]:
        """Shallow copy of the identifier -> record mapping."""
        return dict(self._utxos)

    def copy(self) -> UTXOSet:
        return UTXOSet(self._utxos.values())

    def diff(self, other: UTXOSet) -> set[bytes]:
        """Identifiers in this set that are absent from, or differ in, *other*."""
        return {
            id_ for id_, utxo in self._utxos.items() if other._utxos.get(id_) != utxo
        }

    def __len__(self) -> int:
        return len(self._utxos)

    def __contains__(self, id_: object) -> bool:
        return id_ in self._utxos

    def __iter__(self) -> Iterator[UTXO]:
        return iter(self.sorted())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UTXOSet):
            return NotImplemented
        return self._utxos == other._utxos

    def __repr__(self) -> str:
        return f"<UTXOSet n={len(self)} total={self.total()}>"

    # ------------------------------------------------------------------
    # JSON
    # ------------------------------------------------------------------

    def serialize(self) -> str:
        """Stable JSON array of all records, ascending by identifier."""
        return json.dumps([u.to_dict() for u in self.sorted()], indent=4)

    @classmethod
    def from_json(cls, text: str) -> Self:
        """Load a set from :meth:`serialize` output.

        Raises:
            UTXODecodeError: If the document or any record is malformed.
        """
        try:
            records = json.loads(text)
        except json.JSONDecodeError as exc:
            raise UTXODecodeError(f"malformed UTXO document: {exc}") from exc
        if not isinstance(records, list):
            raise UTXODecodeError("malformed UTXO document: expected a JSON array")
        utxos = []
        for record in records:
            if not isinstance(record, dict):
                raise UTXODecodeError("malformed UTXO document: expected JSON objects")
            utxos.append(UTXO.from_dict(record))
        return cls(utxos)
