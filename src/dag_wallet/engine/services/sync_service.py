"""Sync service — keep a wallet's UTXO set in step with a ledger node.

Pulls the UTXOs owned by a wallet's addresses and merges them locally;
submits transactions and relays status and balance queries.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from dag_wallet.ava.cb58 import parse_address, parse_id
from dag_wallet.ava.codec import parse_utxo
from dag_wallet.errors.definitions import UTXODecodeError

if TYPE_CHECKING:
    from dag_wallet.ava.codec import UTXO, Tx
    from dag_wallet.chain.avm.client import AVMClient
    from dag_wallet.engine.models.wallet import Wallet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecodeFailure:
    """A UTXO string the node returned that could not be decoded."""

    utxo: str
    reason: str


@dataclass
class RefreshResult:
    """Outcome of one refresh: what was merged and what was skipped."""

    merged: list[UTXO] = field(default_factory=list)
    failures: list[DecodeFailure] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        """True when every returned UTXO decoded."""
        return not self.failures


class SyncService:
    """Remote synchronization for wallets against one node.

    Network calls happen outside the wallet lock; the merge itself is a
    single locked step on the wallet.
    """

    def __init__(self, client: AVMClient) -> None:
        self._client = client

    @property
    def client(self) -> AVMClient:
        return self._client

    async def refresh(self, wallet: Wallet) -> RefreshResult:
        """Fetch the UTXOs owned by *wallet*'s addresses and merge them.

        Entries that fail to decode are logged and reported in the result;
        the rest are still merged.

        Raises:
            NetworkError, RemoteError, ResponseDecodeError: If the lookup fails.
        """
        addresses = wallet.addresses()
        result = RefreshResult()
        if not addresses:
            logger.debug("Wallet %s has no keys, nothing to refresh", wallet.name)
            return result

        for text in await self._client.get_utxos(addresses):
            try:
                result.merged.append(parse_utxo(text))
            except UTXODecodeError as exc:
                logger.warning("Unable to add UTXO %s: %s", text, exc.message)
                result.failures.append(DecodeFailure(utxo=text, reason=exc.message))

        wallet.merge_utxos(result.merged)
        logger.info(
            "UTXO set refreshed on wallet %s from %s: %d merged, %d skipped",
            wallet.name,
            self._client.url,
            len(result.merged),
            len(result.failures),
        )
        return result

    async def submit(self, tx: Tx | str) -> str:
        """Issue a signed transaction (object or CB58 text).

        Returns:
            The node-assigned transaction ID.
        """
        tx_string = tx if isinstance(tx, str) else tx.to_string()
        tx_id = await self._client.issue_tx(tx_string)
        logger.info("Transaction issued to %s: %s", self._client.url, tx_id)
        return tx_id

    async def status(self, tx_id: str) -> str:
        """The node's status string for *tx_id*, passed through as-is.

        Raises:
            InvalidAddressError: If *tx_id* is not a valid CB58 ID.
        """
        parse_id(tx_id)
        return await self._client.get_tx_status(tx_id)

    async def balance(self, address: str) -> int:
        """The node-reported balance of one address. Does not touch any wallet.

        Raises:
            InvalidAddressError: If *address* is malformed.
        """
        parse_address(address)
        return await self._client.get_balance(address)
