"""Tests for WalletEngine — the named-wallet, named-node façade."""

from __future__ import annotations

import json

import httpx
import pytest

from dag_wallet.ava.cb58 import cb58_encode
from dag_wallet.ava.codec import parse_tx
from dag_wallet.ava.keys import PrivateKey
from dag_wallet.config.settings import AppConfig, NodeEndpoint
from dag_wallet.engine.client import WalletEngine
from dag_wallet.errors.definitions import (
    DuplicateNameError,
    NodeNotFoundError,
    TxDecodeError,
    VerificationError,
    WalletNotFoundError,
)

_DEST = cb58_encode(b"\xdd" * 20)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _inject_handler(engine: WalletEngine, node: str, handler) -> None:
    client = engine.node(node).client
    client._client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        base_url=client.base_url,
    )


def _reply(request: httpx.Request, result: object) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


@pytest.fixture
async def engine(app_config):
    eng = WalletEngine(app_config)
    await eng.initialize()
    yield eng
    await eng.close()


@pytest.fixture
def funded(engine, chain_id, key_a, make_utxo) -> str:
    """Name of a wallet holding 100 + 50 owned by key_a."""
    engine.create_wallet("w1", 12345, cb58_encode(chain_id), 1)
    engine.add_key("w1", key_a.to_string())
    engine.wallet("w1").merge_utxos(
        [make_utxo(1, 100, key_a.address), make_utxo(2, 50, key_a.address)]
    )
    return "w1"


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestEngineLifecycle:
    async def test_initialize_and_close(self, app_config) -> None:
        eng = WalletEngine(app_config)
        assert eng.is_initialized is False
        await eng.initialize()
        assert eng.is_initialized is True
        await eng.close()
        assert eng.is_initialized is False

    async def test_double_initialize(self, engine) -> None:
        with pytest.raises(RuntimeError, match="already initialized"):
            await engine.initialize()

    def test_node_requires_initialize(self, app_config) -> None:
        with pytest.raises(RuntimeError, match="not initialized"):
            WalletEngine(app_config).node("local")

    async def test_configured_nodes_connected(self) -> None:
        config = AppConfig(
            nodes={"local": NodeEndpoint(host="127.0.0.1", http_port=9650)},
        )
        eng = WalletEngine(config)
        await eng.initialize()
        assert eng.node("local").client.is_connected is True
        assert eng.node("local").client.url == "http://127.0.0.1:9650/ext/bc/avm"
        await eng.close()

    async def test_unknown_node(self, engine) -> None:
        with pytest.raises(NodeNotFoundError) as exc_info:
            engine.node("nope")
        assert exc_info.value.code == "node-not-found"

    async def test_reregister_closes_previous(self, engine) -> None:
        first = await engine.register_node("n", "127.0.0.1", 9650)
        second = await engine.register_node("n", "127.0.0.2", 9651)
        assert first.client.is_connected is False
        assert engine.node("n") is second


# ---------------------------------------------------------------------------
# Wallet commands
# ---------------------------------------------------------------------------


class TestEngineWallets:
    async def test_create_wallet_from_text_chain_id(self, engine, chain_id) -> None:
        wallet = engine.create_wallet("A", 5, cb58_encode(chain_id), 1)
        assert wallet.chain_id == chain_id
        assert engine.wallet("A") is wallet

    async def test_duplicate(self, engine, chain_id) -> None:
        engine.create_wallet("A", 5, chain_id, 1)
        with pytest.raises(DuplicateNameError):
            engine.create_wallet("A", 5, chain_id, 1)

    async def test_unknown_wallet(self, engine) -> None:
        with pytest.raises(WalletNotFoundError):
            engine.add_key("ghost", WalletEngine.new_key())

    def test_new_key_text(self) -> None:
        text = WalletEngine.new_key()
        assert text.startswith("PrivateKey-")
        PrivateKey.from_string(text)

    async def test_make_tx(self, engine, funded) -> None:
        tx = parse_tx(engine.make_tx(funded, _DEST, 120))
        assert [o.amount for o in tx.outputs] == [120, 29]
        tx.verify(engine.wallet(funded).context)

    async def test_make_tx_locktime_and_threshold(self, engine, funded) -> None:
        wallet = engine.wallet(funded)
        tx = parse_tx(
            engine.make_tx(funded, _DEST, 10, locktime=1_900_000_000, threshold=1)
        )
        assert tx.outputs[0].locktime == 1_900_000_000
        assert tx.outputs[0].threshold == 1
        with pytest.raises(VerificationError, match="threshold 2 invalid"):
            engine.make_tx(funded, _DEST, 10, threshold=2)
        assert wallet.balance() == 150

    async def test_spend_tx(self, engine, funded) -> None:
        tx_text = engine.make_tx(funded, _DEST, 10)
        removed = engine.spend_tx(funded, tx_text)
        assert len(removed) == 1
        assert engine.wallet(funded).balance() < 150

    async def test_remove_tx(self, engine, funded) -> None:
        tx_text = engine.make_tx(funded, _DEST, 120)
        engine.remove_tx(funded, tx_text)
        assert engine.wallet(funded).balance() == 0

    async def test_remove_tx_bad_text(self, engine, funded) -> None:
        with pytest.raises(TxDecodeError):
            engine.remove_tx(funded, "garbage!")

    async def test_write_read_compare(self, engine, funded, chain_id) -> None:
        path = engine.write_utxos(funded, "w1.json")
        assert path.exists()
        engine.create_wallet("w2", 12345, chain_id, 1)
        assert json.loads(engine.compare(funded, "w2")) != []
        assert engine.read_utxos("w2", "w1.json") == 2
        assert json.loads(engine.compare(funded, "w2")) == []


# ---------------------------------------------------------------------------
# Node commands
# ---------------------------------------------------------------------------


class TestEngineNodeCommands:
    async def test_send_status_balance(self, engine, funded) -> None:
        await engine.register_node("n1", "127.0.0.1", 9650)

        def handler(request: httpx.Request) -> httpx.Response:
            method = json.loads(request.content)["method"]
            if method == "avm.issueTx":
                return _reply(request, {"txID": cb58_encode(b"\x01" * 32)})
            if method == "avm.getTxStatus":
                return _reply(request, {"status": "Accepted"})
            return _reply(request, {"balance": "150"})

        _inject_handler(engine, "n1", handler)
        tx_id = await engine.send("n1", engine.make_tx(funded, _DEST, 10))
        assert tx_id == cb58_encode(b"\x01" * 32)
        assert await engine.status("n1", tx_id) == "Accepted"
        address = engine.wallet(funded).addresses()[0]
        assert await engine.balance("n1", address) == 150

    async def test_refresh(self, engine, chain_id, key_a, make_utxo) -> None:
        await engine.register_node("n1", "127.0.0.1", 9650)
        engine.create_wallet("w", 12345, chain_id, 1)
        engine.add_key("w", key_a.to_string())
        utxo = make_utxo(4, 75, key_a.address)

        def handler(request: httpx.Request) -> httpx.Response:
            return _reply(request, {"utxos": [cb58_encode(utxo.serialize())]})

        _inject_handler(engine, "n1", handler)
        result = await engine.refresh("n1", "w")
        assert result.merged == [utxo]
        assert engine.wallet("w").balance() == 75
