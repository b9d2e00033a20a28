"""Tests for error classes."""

from __future__ import annotations

import pytest

from dag_wallet.errors import definitions as defs
from dag_wallet.errors.rpc_errors import NetworkError, RemoteError, ResponseDecodeError
from dag_wallet.errors.wallet_errors import WalletError

# ---------------------------------------------------------------------------
# WalletError base class
# ---------------------------------------------------------------------------


class TestWalletError:
    def test_default_attributes(self) -> None:
        err = WalletError("something broke")
        assert str(err) == "something broke"
        assert err.message == "something broke"
        assert err.code == "wallet-error"

    def test_custom_code(self) -> None:
        assert WalletError("x", code="custom").code == "custom"

    def test_is_exception(self) -> None:
        with pytest.raises(WalletError, match="boom"):
            raise WalletError("boom")


# ---------------------------------------------------------------------------
# Domain errors
# ---------------------------------------------------------------------------


class TestDomainErrors:
    @pytest.mark.parametrize(
        ("cls", "code"),
        [
            (defs.InvalidAddressError, "invalid-address"),
            (defs.KeyImportError, "key-import"),
            (defs.TxDecodeError, "tx-decode"),
            (defs.UTXODecodeError, "utxo-decode"),
            (defs.VerificationError, "verification"),
        ],
    )
    def test_message_errors(self, cls: type[WalletError], code: str) -> None:
        err = cls("detail")
        assert isinstance(err, WalletError)
        assert err.code == code
        assert err.message == "detail"

    def test_wallet_not_found(self) -> None:
        err = defs.WalletNotFoundError("w1")
        assert err.name == "w1"
        assert "w1" in err.message

    def test_duplicate_name(self) -> None:
        err = defs.DuplicateNameError("w1")
        assert err.code == "duplicate-name"
        assert err.name == "w1"

    def test_node_not_found(self) -> None:
        assert defs.NodeNotFoundError("n").code == "node-not-found"

    def test_insufficient_funds(self) -> None:
        err = defs.InsufficientFundsError(121, 100)
        assert err.required == 121
        assert err.available == 100
        assert err.message == "not enough funds: required 121, spendable 100"


# ---------------------------------------------------------------------------
# RPC errors
# ---------------------------------------------------------------------------


class TestRPCErrors:
    def test_kinds_are_distinct(self) -> None:
        kinds = {NetworkError, RemoteError, ResponseDecodeError}
        for kind in kinds:
            assert issubclass(kind, WalletError)
            assert not any(issubclass(kind, other) for other in kinds - {kind})

    def test_remote_error(self) -> None:
        err = RemoteError(-32000, "rejected")
        assert err.code == "remote-error"
        assert err.rpc_code == -32000
        assert err.rpc_message == "rejected"
        assert err.message == "remote error -32000: rejected"

    def test_network_error(self) -> None:
        assert NetworkError("down").code == "network-error"

    def test_response_decode_error(self) -> None:
        assert ResponseDecodeError("bad").code == "response-decode"
