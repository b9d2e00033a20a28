"""WalletEngine — central engine client owning the registry and node clients."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dag_wallet.ava.cb58 import parse_id
from dag_wallet.ava.codec import parse_tx
from dag_wallet.ava.keys import PrivateKey
from dag_wallet.chain.avm.client import AVMClient
from dag_wallet.config.settings import NodeEndpoint
from dag_wallet.engine.services.stash_service import StashService
from dag_wallet.engine.services.sync_service import SyncService
from dag_wallet.engine.services.wallet_registry import WalletRegistry
from dag_wallet.errors.definitions import NodeNotFoundError

if TYPE_CHECKING:
    from pathlib import Path

    from dag_wallet.config.settings import AppConfig
    from dag_wallet.engine.models.wallet import Wallet
    from dag_wallet.engine.services.sync_service import RefreshResult

logger = logging.getLogger(__name__)

# Error messages
_ERR_NOT_INITIALIZED = "Engine not initialized. Call initialize() first."


class WalletEngine:
    """The surface a command layer drives: wallets by name, nodes by name.

    Wallets are session-scoped and held by a :class:`WalletRegistry`.
    Nodes are known by name (from settings or :meth:`register_node`); each
    gets its own :class:`SyncService` over a connected ``AVMClient``.
    """

    def __init__(self, config: AppConfig) -> None:
        """Initialize engine with configuration.

        Args:
            config: Application configuration with RPC, stash and node settings.
        """
        self._config = config
        self._initialized = False
        self._registry = WalletRegistry()
        self._stash = StashService(config.stash)
        self._nodes: dict[str, SyncService] = {}

    async def initialize(self) -> None:
        """Connect a client for every configured node.

        Raises:
            RuntimeError: If already initialized.
        """
        if self._initialized:
            msg = "Engine already initialized"
            raise RuntimeError(msg)
        self._initialized = True
        for name, endpoint in self._config.nodes.items():
            await self.register_node(name, endpoint.host, endpoint.http_port)
        logger.info("Wallet engine initialized with %d nodes", len(self._nodes))

    async def close(self) -> None:
        """Close every node client."""
        for sync in self._nodes.values():
            await sync.client.close()
        self._nodes.clear()
        self._initialized = False
        logger.info("Wallet engine shut down")

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def registry(self) -> WalletRegistry:
        return self._registry

    @property
    def stash(self) -> StashService:
        return self._stash

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    async def register_node(self, name: str, host: str, http_port: int) -> SyncService:
        """Connect to a node and make it addressable by *name*.

        Re-registering a name closes the previous client.
        """
        self._ensure_initialized()
        client = AVMClient(NodeEndpoint(host=host, http_port=http_port), self._config.rpc)
        await client.connect()
        previous = self._nodes.get(name)
        self._nodes[name] = SyncService(client)
        if previous is not None:
            await previous.client.close()
        logger.info("Node registered: %s at %s", name, client.url)
        return self._nodes[name]

    def node(self, name: str) -> SyncService:
        """Look up a node's sync service.

        Raises:
            NodeNotFoundError: If no node has that name.
        """
        self._ensure_initialized()
        sync = self._nodes.get(name)
        if sync is None:
            raise NodeNotFoundError(name)
        return sync

    # ------------------------------------------------------------------
    # Wallets
    # ------------------------------------------------------------------

    def create_wallet(
        self,
        name: str,
        network_id: int,
        chain_id: str | bytes,
        fee: int,
        *,
        replace: bool = False,
    ) -> Wallet:
        """Create a session wallet.

        Raises:
            InvalidAddressError: If *chain_id* text is malformed.
            DuplicateNameError: If *name* is taken and *replace* is False.
        """
        if isinstance(chain_id, str):
            chain_id = parse_id(chain_id)
        return self._registry.create(name, network_id, chain_id, fee, replace=replace)

    def wallet(self, name: str) -> Wallet:
        return self._registry.get(name)

    @staticmethod
    def new_key() -> str:
        """Generate a random private key in text form."""
        return PrivateKey.generate().to_string()

    def add_key(self, wallet: str, key: str) -> str:
        """Import a text private key into *wallet*, returning its address.

        Reminder: refresh the wallet after importing keys.
        """
        return self._registry.get(wallet).import_key(key)

    def make_tx(
        self,
        wallet: str,
        destination: str,
        amount: int,
        *,
        locktime: int = 0,
        threshold: int = 1,
    ) -> str:
        """Build, sign and verify a payment; returns the CB58 transaction.

        Args:
            wallet: Name of the paying wallet.
            destination: Destination address text.
            amount: Value to pay.
            locktime: Lock time of the destination output.
            threshold: Signatures required to spend the destination output.
        """
        tx = self._registry.get(wallet).build_transaction(
            amount, destination, locktime=locktime, threshold=threshold
        )
        return tx.to_string()

    def remove_tx(self, wallet: str, tx: str) -> list[bytes]:
        """Drop a rejected transaction's inputs from *wallet*'s UTXO set."""
        w = self._registry.get(wallet)
        return w.remove_utxos_for_tx(parse_tx(tx))

    def spend_tx(self, wallet: str, tx: str) -> list[bytes]:
        """Mark an accepted transaction's inputs as spent in *wallet*."""
        w = self._registry.get(wallet)
        return w.spend_utxos_for_tx(parse_tx(tx))

    def write_utxos(self, wallet: str, filename: str) -> Path:
        return self._stash.write_utxos(self._registry.get(wallet), filename)

    def read_utxos(self, wallet: str, filename: str) -> int:
        return self._stash.read_utxos(self._registry.get(wallet), filename)

    def compare(self, wallet_a: str, wallet_b: str) -> str:
        """JSON array of UTXO IDs in *wallet_a* that *wallet_b* lacks or holds differently."""
        a = self._registry.get(wallet_a)
        b = self._registry.get(wallet_b)
        return self._stash.compare(a, b)

    # ------------------------------------------------------------------
    # Node operations
    # ------------------------------------------------------------------

    async def send(self, node: str, tx: str) -> str:
        """Issue a CB58 transaction through *node*; returns the tx ID."""
        return await self.node(node).submit(tx)

    async def status(self, node: str, tx_id: str) -> str:
        return await self.node(node).status(tx_id)

    async def balance(self, node: str, address: str) -> int:
        return await self.node(node).balance(address)

    async def refresh(self, node: str, wallet: str) -> RefreshResult:
        """Refresh *wallet*'s UTXO set from *node*."""
        w = self._registry.get(wallet)
        return await self.node(node).refresh(w)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
