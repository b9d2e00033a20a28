"""Shared test fixtures for the dag-wallet test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from dag_wallet.ava.codec import UTXO, Output
from dag_wallet.ava.keys import PrivateKey
from dag_wallet.config.settings import AppConfig, RPCConfig, StashConfig
from dag_wallet.utils.crypto import sha256

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Provide a test AppConfig with a throwaway stash directory."""
    return AppConfig(
        debug=True,
        rpc=RPCConfig(timeout=2.0),
        stash=StashConfig(data_dir=str(tmp_path / "stash")),
    )


@pytest.fixture
def network_id() -> int:
    return 12345


@pytest.fixture
def chain_id() -> bytes:
    return sha256(b"test-chain")


@pytest.fixture
def key_a() -> PrivateKey:
    return PrivateKey(b"\x01" * 32)


@pytest.fixture
def key_b() -> PrivateKey:
    return PrivateKey(b"\x02" * 32)


@pytest.fixture
def key_c() -> PrivateKey:
    return PrivateKey(b"\x03" * 32)


@pytest.fixture
def make_utxo() -> Callable[..., UTXO]:
    """Factory for UTXOs with a deterministic source tx ID per *seed*."""

    def _make(
        seed: int,
        amount: int,
        *addresses: bytes,
        index: int = 0,
        threshold: int = 1,
        locktime: int = 0,
    ) -> UTXO:
        return UTXO(
            tx_id=sha256(bytes([seed])),
            output_index=index,
            output=Output(
                amount=amount,
                addresses=tuple(addresses),
                locktime=locktime,
                threshold=threshold,
            ),
        )

    return _make
