"""Wallet — a UTXO set bound to a keychain and a network/chain context."""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING

from dag_wallet.ava.cb58 import cb58_encode, parse_address
from dag_wallet.ava.codec import Context, Input, Output, UnsignedTx, sign_tx
from dag_wallet.ava.keys import PrivateKey
from dag_wallet.engine.models.keychain import Keychain
from dag_wallet.engine.models.utxo_set import UTXOSet
from dag_wallet.errors.definitions import InsufficientFundsError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from dag_wallet.ava.codec import UTXO, Tx

logger = logging.getLogger(__name__)


class Wallet:
    """A named, session-scoped wallet.

    Every UTXO held is assumed spendable by the keychain (the node's
    attribution is trusted); spendability is only checked when building a
    transaction. All access to the UTXO set and keychain goes through a
    per-wallet lock, so a refresh merge and a spend never interleave.
    """

    def __init__(self, name: str, network_id: int, chain_id: bytes, fee: int) -> None:
        """Initialize an empty wallet.

        Args:
            name: Registry name.
            network_id: 32-bit network identifier.
            chain_id: 32-byte target chain identifier.
            fee: Fixed per-transaction fee.
        """
        if not 0 <= network_id <= 0xFFFFFFFF:
            msg = f"network ID out of range: {network_id}"
            raise ValueError(msg)
        if len(chain_id) != 32:
            msg = f"chain ID must be 32 bytes, got {len(chain_id)}"
            raise ValueError(msg)
        if fee < 0:
            msg = f"fee must not be negative: {fee}"
            raise ValueError(msg)
        self._name = name
        self._network_id = network_id
        self._chain_id = chain_id
        self._fee = fee
        self._keychain = Keychain()
        self._utxos = UTXOSet()
        self._lock = threading.RLock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def network_id(self) -> int:
        return self._network_id

    @property
    def chain_id(self) -> bytes:
        return self._chain_id

    @property
    def fee(self) -> int:
        return self._fee

    @property
    def context(self) -> Context:
        """Verification context for transactions built by this wallet."""
        return Context(network_id=self._network_id, chain_id=self._chain_id, fee=self._fee)

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def import_key(self, key: PrivateKey | str) -> str:
        """Add a private key (object or text form) to the keychain.

        Returns:
            The key's CB58 address.

        Raises:
            KeyImportError: If the text is not a valid key.
        """
        if isinstance(key, str):
            key = PrivateKey.from_string(key)
        with self._lock:
            address = self._keychain.add(key)
        logger.info("Key imported into wallet %s: %s", self._name, cb58_encode(address))
        return cb58_encode(address)

    def addresses(self) -> list[str]:
        """CB58 addresses derivable from the keychain."""
        with self._lock:
            return self._keychain.address_strings()

    # ------------------------------------------------------------------
    # UTXO set
    # ------------------------------------------------------------------

    def balance(self) -> int:
        """Sum of all held UTXO amounts."""
        with self._lock:
            return self._utxos.total()

    def utxos(self) -> UTXOSet:
        """Snapshot copy of the UTXO set."""
        with self._lock:
            return self._utxos.copy()

    def add_utxo(self, utxo: UTXO) -> None:
        with self._lock:
            self._utxos.add(utxo)

    def merge_utxos(self, utxos: Iterable[UTXO]) -> int:
        """Add every UTXO in one locked step. Returns how many were merged."""
        count = 0
        with self._lock:
            for utxo in utxos:
                self._utxos.add(utxo)
                count += 1
        return count

    def remove_utxos_for_tx(self, tx: Tx) -> list[bytes]:
        """Discard the inputs of a rejected transaction from the set."""
        with self._lock:
            removed = [inp.utxo_id for inp in tx.inputs if inp.utxo_id in self._utxos]
            for inp in tx.inputs:
                self._utxos.remove(inp.utxo_id)
        logger.info(
            "Removed %d UTXOs of tx %s from wallet %s",
            len(removed),
            cb58_encode(tx.id),
            self._name,
        )
        return removed

    def spend_utxos_for_tx(self, tx: Tx) -> list[bytes]:
        """Mark the inputs of an accepted transaction as spent."""
        with self._lock:
            removed = self._utxos.apply_spend(tx)
        logger.info(
            "Spent %d UTXOs of tx %s in wallet %s", len(removed), cb58_encode(tx.id), self._name
        )
        return removed

    def diff(self, other: Wallet) -> set[bytes]:
        """UTXO identifiers held here that *other* lacks or holds differently."""
        mine = self.utxos()
        theirs = other.utxos()
        return mine.diff(theirs)

    def serialize(self) -> str:
        """JSON export of the UTXO set."""
        return self.utxos().serialize()

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def build_transaction(
        self,
        amount: int,
        destination: str | bytes | Sequence[str | bytes],
        *,
        locktime: int = 0,
        threshold: int = 1,
        now: int | None = None,
    ) -> Tx:
        """Select UTXOs, sign, and self-verify a payment of *amount*.

        Candidates are walked in ascending identifier order and accumulated
        until ``amount + fee`` is covered. The destination output comes
        first; any remainder goes back to the wallet as a change output.

        Args:
            amount: Value to pay.
            destination: Destination address(es), text or 20-byte form.
            locktime: Lock time of the destination output.
            threshold: Signing threshold of the destination output.
            now: Unix time used to skip still-locked UTXOs (default: current time).

        Returns:
            The signed, verified transaction.

        Raises:
            InvalidAddressError: If a destination is malformed.
            InsufficientFundsError: If the spendable UTXOs cannot cover amount + fee.
            ValueError: If *amount* is not positive.
            VerificationError: If the built transaction fails context verification.
        """
        if amount <= 0:
            msg = f"amount must be positive: {amount}"
            raise ValueError(msg)
        destinations = _destination_addresses(destination)
        if now is None:
            now = int(time.time())
        required = amount + self._fee

        with self._lock:
            candidates = self._utxos.sorted()
            selected: list[tuple[UTXO, tuple[int, ...], list[PrivateKey]]] = []
            spendable = 0
            total = 0
            for utxo in candidates:
                if utxo.amount <= 0:
                    continue
                spend = self._keychain.spenders(utxo.output, now)
                if spend is None:
                    continue
                spendable += utxo.amount
                if total < required:
                    selected.append((utxo, *spend))
                    total += utxo.amount
            if total < required or not selected:
                raise InsufficientFundsError(required, spendable)

            outputs = [
                Output(
                    amount=amount,
                    addresses=destinations,
                    locktime=locktime,
                    threshold=threshold,
                )
            ]
            change = total - required
            if change > 0:
                change_addresses = tuple(self._keychain.addresses()[:1])
                outputs.append(
                    Output(
                        amount=change,
                        addresses=change_addresses,
                        threshold=len(change_addresses),
                    )
                )

            unsigned = UnsignedTx(
                network_id=self._network_id,
                chain_id=self._chain_id,
                outputs=tuple(outputs),
                inputs=tuple(
                    Input(
                        tx_id=utxo.tx_id,
                        output_index=utxo.output_index,
                        amount=utxo.amount,
                        sig_indices=indices,
                    )
                    for utxo, indices, _ in selected
                ),
            )
            # Outputs are verified before signing: signing serializes them.
            for out in unsigned.outputs:
                out.verify()
            tx = sign_tx(unsigned, [keys for _, _, keys in selected])
            tx.verify(self.context, self._utxos.as_mapping())

        logger.debug(
            "Built tx %s in wallet %s: %d inputs, %d outputs",
            cb58_encode(tx.id),
            self._name,
            len(tx.inputs),
            len(tx.outputs),
        )
        return tx

    def __repr__(self) -> str:
        return f"<Wallet {self._name} network={self._network_id} fee={self._fee}>"


def _destination_addresses(destination: str | bytes | Sequence[str | bytes]) -> tuple[bytes, ...]:
    """Normalize destination(s) into a sorted, de-duplicated address tuple."""
    if isinstance(destination, (str, bytes)):
        destination = [destination]
    addresses = {parse_address(d) if isinstance(d, str) else bytes(d) for d in destination}
    return tuple(sorted(addresses))
