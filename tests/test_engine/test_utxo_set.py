"""Tests for UTXOSet — add, remove, spend, diff and JSON export."""

from __future__ import annotations

import json

import pytest

from dag_wallet.ava.codec import Input, Output, UnsignedTx
from dag_wallet.engine.models.utxo_set import UTXOSet
from dag_wallet.errors.definitions import UTXODecodeError

_ADDR = b"\x11" * 20

# ---------------------------------------------------------------------------
# Mutation
# ---------------------------------------------------------------------------


class TestUTXOSetMutation:
    def test_add_and_get(self, make_utxo) -> None:
        utxo = make_utxo(1, 100, _ADDR)
        utxos = UTXOSet()
        utxos.add(utxo)
        assert utxos.get(utxo.id) == utxo
        assert utxo.id in utxos
        assert len(utxos) == 1

    def test_add_same_id_replaces(self, make_utxo) -> None:
        utxos = UTXOSet([make_utxo(1, 100, _ADDR)])
        utxos.add(make_utxo(1, 100, _ADDR))
        assert len(utxos) == 1

    def test_remove(self, make_utxo) -> None:
        utxo = make_utxo(1, 100, _ADDR)
        utxos = UTXOSet([utxo])
        utxos.remove(utxo.id)
        assert len(utxos) == 0

    def test_add_then_remove_restores(self, make_utxo) -> None:
        utxos = UTXOSet([make_utxo(1, 100, _ADDR)])
        before = utxos.copy()
        extra = make_utxo(2, 50, _ADDR)
        utxos.add(extra)
        utxos.remove(extra.id)
        assert utxos == before

    def test_remove_absent_is_noop(self, make_utxo) -> None:
        utxos = UTXOSet([make_utxo(1, 100, _ADDR)])
        utxos.remove(b"\x00" * 32)
        assert len(utxos) == 1

    def test_apply_spend(self, make_utxo, network_id, chain_id) -> None:
        u1 = make_utxo(1, 100, _ADDR)
        u2 = make_utxo(2, 50, _ADDR)
        u3 = make_utxo(3, 10, _ADDR)
        utxos = UTXOSet([u1, u2])
        tx = UnsignedTx(
            network_id,
            chain_id,
            (Output(100, (_ADDR,)),),
            tuple(Input(u.tx_id, u.output_index, u.amount, (0,)) for u in (u1, u3)),
        )
        assert utxos.apply_spend(tx) == [u1.id]
        assert list(utxos) == [u2]


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestUTXOSetQueries:
    def test_total(self, make_utxo) -> None:
        utxos = UTXOSet([make_utxo(1, 100, _ADDR), make_utxo(2, 50, _ADDR)])
        assert utxos.total() == 150

    def test_iteration_is_sorted_by_id(self, make_utxo) -> None:
        records = [make_utxo(seed, 10, _ADDR) for seed in range(10)]
        assert [u.id for u in UTXOSet(records)] == sorted(u.id for u in records)

    def test_copy_is_independent(self, make_utxo) -> None:
        utxos = UTXOSet([make_utxo(1, 100, _ADDR)])
        snapshot = utxos.copy()
        utxos.add(make_utxo(2, 50, _ADDR))
        assert len(snapshot) == 1
        assert snapshot != utxos

    def test_diff(self, make_utxo) -> None:
        u1 = make_utxo(1, 100, _ADDR)
        u2 = make_utxo(2, 50, _ADDR)
        w1 = UTXOSet([u1, u2])
        w2 = UTXOSet([u1])
        assert w1.diff(w2) == {u2.id}
        assert w2.diff(w1) == set()

    def test_diff_detects_changed_content(self, make_utxo) -> None:
        a = UTXOSet([make_utxo(1, 100, _ADDR)])
        b = UTXOSet([make_utxo(1, 101, _ADDR)])
        assert a.diff(b) == {make_utxo(1, 100, _ADDR).id}

    def test_diff_of_equal_sets_is_empty(self, make_utxo) -> None:
        a = UTXOSet([make_utxo(1, 100, _ADDR)])
        assert a.diff(a.copy()) == set()


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


class TestUTXOSetJSON:
    def test_serialize_is_sorted_array(self, make_utxo) -> None:
        records = [make_utxo(seed, 10 * seed, _ADDR) for seed in range(1, 5)]
        data = json.loads(UTXOSet(records).serialize())
        assert [r["id"] for r in data] == [u.to_dict()["id"] for u in UTXOSet(records)]

    def test_from_json(self, make_utxo) -> None:
        utxos = UTXOSet([make_utxo(1, 100, _ADDR), make_utxo(2, 50, _ADDR, index=4)])
        assert UTXOSet.from_json(utxos.serialize()) == utxos

    def test_from_json_not_json(self) -> None:
        with pytest.raises(UTXODecodeError, match="malformed UTXO document"):
            UTXOSet.from_json("{not json")

    def test_from_json_not_array(self) -> None:
        with pytest.raises(UTXODecodeError, match="JSON array"):
            UTXOSet.from_json('{"id": "x"}')

    def test_from_json_bad_record(self) -> None:
        with pytest.raises(UTXODecodeError):
            UTXOSet.from_json('[{"txID": "zz"}]')
