"""Ledger node RPC errors — transport, protocol and response-shape failures."""

from __future__ import annotations

from dag_wallet.errors.wallet_errors import WalletError


class NetworkError(WalletError):
    """The node could not be reached, timed out, or answered at the HTTP level with an error."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="network-error")


class RemoteError(WalletError):
    """The node answered with a JSON-RPC error object.

    The node's own error code and message are kept as :attr:`rpc_code` and
    :attr:`rpc_message`. :attr:`code` stays the machine-readable
    ``"remote-error"`` string shared by every :class:`WalletError`, and
    :attr:`message` is the combined human-readable text.

    Attributes:
        rpc_code: JSON-RPC error code reported by the node.
        rpc_message: JSON-RPC error message reported by the node.
    """

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"remote error {code}: {message}", code="remote-error")
        self.rpc_code = code
        self.rpc_message = message


class ResponseDecodeError(WalletError):
    """The node's response did not parse into the expected reply shape."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="response-decode")
