"""Domain error kinds raised by the wallet engine."""

from __future__ import annotations

from dag_wallet.errors.wallet_errors import WalletError

# -- Registry --------------------------------------------------------------


class WalletNotFoundError(WalletError):
    """No wallet is registered under the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"wallet not found: {name}", code="wallet-not-found")
        self.name = name


class DuplicateNameError(WalletError):
    """A wallet is already registered under the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"wallet already exists: {name}", code="duplicate-name")
        self.name = name


class NodeNotFoundError(WalletError):
    """No node endpoint is known under the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"node not found: {name}", code="node-not-found")
        self.name = name


# -- Validation ------------------------------------------------------------


class InvalidAddressError(WalletError):
    """Malformed textual address or identifier."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="invalid-address")


class KeyImportError(WalletError):
    """Malformed or unsupported private key material."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="key-import")


# -- Codec -----------------------------------------------------------------


class TxDecodeError(WalletError):
    """Transaction bytes rejected by the codec."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="tx-decode")


class UTXODecodeError(WalletError):
    """UTXO bytes (or an exported UTXO record) rejected by the codec."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="utxo-decode")


# -- Transaction -----------------------------------------------------------


class InsufficientFundsError(WalletError):
    """Coin selection cannot cover amount + fee."""

    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            f"not enough funds: required {required}, spendable {available}",
            code="insufficient-funds",
        )
        self.required = required
        self.available = available


class VerificationError(WalletError):
    """A transaction failed verification against its network/chain context."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="verification")
