"""Wallet engine data models.

In-memory only: a wallet is a keychain plus a UTXO set, held for the
lifetime of the session.
"""

from dag_wallet.engine.models.keychain import Keychain
from dag_wallet.engine.models.utxo_set import UTXOSet
from dag_wallet.engine.models.wallet import Wallet

__all__ = ["Keychain", "UTXOSet", "Wallet"]
