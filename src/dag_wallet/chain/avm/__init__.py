"""AVM — JSON-RPC access to a node's payment chain."""

from dag_wallet.chain.avm.client import AVMClient
from dag_wallet.chain.avm.models import BalanceReply, IssueTxReply, TxStatusReply, UTXOsReply

__all__ = ["AVMClient", "BalanceReply", "IssueTxReply", "TxStatusReply", "UTXOsReply"]
