"""Chain access — ledger node RPC clients."""

from dag_wallet.chain.avm.client import AVMClient

__all__ = ["AVMClient"]
