"""Stash service — UTXO set export/import files and wallet comparison."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from dag_wallet.ava.cb58 import cb58_encode
from dag_wallet.engine.models.utxo_set import UTXOSet

if TYPE_CHECKING:
    from dag_wallet.config.settings import StashConfig
    from dag_wallet.engine.models.wallet import Wallet

logger = logging.getLogger(__name__)


class StashService:
    """Reads and writes UTXO set exports under the configured data directory."""

    def __init__(self, config: StashConfig) -> None:
        self._config = config

    @property
    def data_dir(self) -> Path:
        return Path(self._config.data_dir)

    def resolve(self, filename: str) -> Path:
        """Map *filename* to a path inside the data directory.

        Raises:
            ValueError: If the path would escape the data directory.
        """
        root = self.data_dir.resolve()
        path = (root / filename).resolve()
        if not path.is_relative_to(root) or path == root:
            msg = f"stash path escapes the data directory: {filename}"
            raise ValueError(msg)
        return path

    def write_utxos(self, wallet: Wallet, filename: str) -> Path:
        """Write *wallet*'s UTXO set as JSON, creating parent directories.

        Returns:
            The path written.
        """
        path = self.resolve(filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(wallet.serialize(), encoding="utf-8")
        logger.info("UTXO set of wallet %s written to: %s", wallet.name, path)
        return path

    def read_utxos(self, wallet: Wallet, filename: str) -> int:
        """Merge a previously written export into *wallet*.

        Returns:
            Number of UTXOs merged.

        Raises:
            FileNotFoundError: If the export does not exist.
            UTXODecodeError: If the export is malformed.
        """
        path = self.resolve(filename)
        utxos = UTXOSet.from_json(path.read_text(encoding="utf-8"))
        merged = wallet.merge_utxos(utxos)
        logger.info("Merged %d UTXOs from %s into wallet %s", merged, path, wallet.name)
        return merged

    @staticmethod
    def compare(a: Wallet, b: Wallet) -> str:
        """JSON array of the UTXO IDs *a* holds that *b* lacks or holds differently."""
        diff = sorted(a.diff(b))
        return json.dumps([cb58_encode(id_) for id_ in diff], indent=4)
