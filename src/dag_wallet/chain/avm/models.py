"""AVM JSON-RPC data models — request envelope and per-method reply schemas.

Every method's ``result`` object is validated against a fixed schema. Field
names are accepted in both the capitalized form older nodes emit and the
camel-case form of newer ones.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# JSON-RPC 2.0 envelope
# ---------------------------------------------------------------------------


class RPCErrorObject(BaseModel):
    """The ``error`` member of a JSON-RPC response."""

    code: int
    message: str = ""
    data: Any = None


class RPCResponse(BaseModel):
    """A JSON-RPC 2.0 response envelope."""

    jsonrpc: str = "2.0"
    id: int | str | None = None
    result: Any = None
    error: RPCErrorObject | None = None


# ---------------------------------------------------------------------------
# Method replies
# ---------------------------------------------------------------------------


class _Reply(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class IssueTxReply(_Reply):
    """Reply to ``issueTx``."""

    tx_id: str = Field(validation_alias=AliasChoices("TxID", "txID", "txId"))


class TxStatusReply(_Reply):
    """Reply to ``getTxStatus``. The status string is passed through uninterpreted."""

    status: str = Field(validation_alias=AliasChoices("Status", "status"))


class BalanceReply(_Reply):
    """Reply to ``getBalance``; the node sends the balance as a decimal string."""

    balance: int = Field(ge=0, validation_alias=AliasChoices("Balance", "balance"))


class UTXOsReply(_Reply):
    """Reply to ``getUTXOs``: CB58-encoded UTXOs."""

    utxos: list[str] = Field(validation_alias=AliasChoices("UTXOs", "utxos"))
