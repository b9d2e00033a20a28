"""Wallet registry — the process-wide name -> Wallet directory."""

from __future__ import annotations

import logging
import threading

from dag_wallet.engine.models.wallet import Wallet
from dag_wallet.errors.definitions import DuplicateNameError, WalletNotFoundError

logger = logging.getLogger(__name__)


class WalletRegistry:
    """Named, session-scoped wallets.

    Wallets live until the process ends; there is no destroy operation.
    Creating a name that already exists fails unless ``replace=True`` is
    passed, in which case the old wallet is dropped and a fresh one takes
    its place. Structural changes and lookups share one lock.
    """

    def __init__(self) -> None:
        self._wallets: dict[str, Wallet] = {}
        self._lock = threading.Lock()

    def create(
        self,
        name: str,
        network_id: int,
        chain_id: bytes,
        fee: int,
        *,
        replace: bool = False,
    ) -> Wallet:
        """Create and register an empty wallet.

        Args:
            name: Unique wallet name.
            network_id: 32-bit network identifier.
            chain_id: 32-byte target chain identifier.
            fee: Fixed per-transaction fee.
            replace: Overwrite an existing wallet of the same name.

        Returns:
            The new wallet.

        Raises:
            DuplicateNameError: If *name* is taken and *replace* is False.
        """
        wallet = Wallet(name, network_id, chain_id, fee)
        with self._lock:
            if name in self._wallets and not replace:
                raise DuplicateNameError(name)
            replaced = name in self._wallets
            self._wallets[name] = wallet
        if replaced:
            logger.info("Wallet replaced: %s", name)
        else:
            logger.info("Wallet created: %s", name)
        return wallet

    def get(self, name: str) -> Wallet:
        """Look up a wallet by name.

        Raises:
            WalletNotFoundError: If no wallet has that name.
        """
        with self._lock:
            wallet = self._wallets.get(name)
        if wallet is None:
            raise WalletNotFoundError(name)
        return wallet

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._wallets)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._wallets

    def __len__(self) -> int:
        with self._lock:
            return len(self._wallets)
