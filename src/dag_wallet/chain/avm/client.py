"""AVM JSON-RPC client — issue, status, balance and UTXO lookups.

Async HTTP client for a ledger node's payment chain endpoint
(``POST <scheme>://<host>:<port>/ext/bc/avm``):
- ``avm.issueTx``     — submit a signed transaction
- ``avm.getTxStatus`` — query a transaction's status
- ``avm.getBalance``  — balance of one address for one asset
- ``avm.getUTXOs``    — UTXOs owned by a set of addresses

Every call is bounded by the configured timeout. Transport failures,
JSON-RPC error objects and malformed replies surface as three distinct
errors: ``NetworkError``, ``RemoteError`` and ``ResponseDecodeError``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from dag_wallet.chain.avm.models import (
    BalanceReply,
    IssueTxReply,
    RPCResponse,
    TxStatusReply,
    UTXOsReply,
)
from dag_wallet.errors.rpc_errors import NetworkError, RemoteError, ResponseDecodeError

if TYPE_CHECKING:
    from dag_wallet.config.settings import NodeEndpoint, RPCConfig

logger = logging.getLogger(__name__)

_ReplyT = TypeVar("_ReplyT", bound=BaseModel)


class AVMClient:
    """Async JSON-RPC client for one node's payment chain.

    Usage::

        avm = AVMClient(endpoint, rpc_config)
        await avm.connect()
        try:
            tx_id = await avm.issue_tx(tx_string)
            status = await avm.get_tx_status(tx_id)
        finally:
            await avm.close()
    """

    def __init__(self, endpoint: NodeEndpoint, config: RPCConfig) -> None:
        """Initialize the client.

        Args:
            endpoint: Host and HTTP port of the node.
            config: RPC settings (endpoint path, method prefix, timeout).
        """
        self._endpoint = endpoint
        self._config = config
        self._client: httpx.AsyncClient | None = None
        self._request_id = 0

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(self._config.timeout),
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        """Check if the HTTP client is active."""
        return self._client is not None

    @property
    def base_url(self) -> str:
        return f"{self._config.scheme}://{self._endpoint.host}:{self._endpoint.http_port}"

    @property
    def url(self) -> str:
        """Full URL of the chain's JSON-RPC endpoint."""
        return self.base_url + self._config.endpoint

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def issue_tx(self, tx: str) -> str:
        """Submit a CB58-encoded signed transaction.

        Returns:
            The node-assigned transaction ID.
        """
        reply = await self._call("issueTx", {"Tx": tx}, IssueTxReply)
        return reply.tx_id

    async def get_tx_status(self, tx_id: str) -> str:
        """Query the node's status string for a transaction."""
        reply = await self._call("getTxStatus", {"TxID": tx_id}, TxStatusReply)
        return reply.status

    async def get_balance(self, address: str, asset_id: str | None = None) -> int:
        """Get the node-reported balance of *address* for *asset_id*.

        Args:
            address: Address text, as the node expects it.
            asset_id: Asset to query (default: the configured asset).
        """
        params = {"Address": address, "AssetID": asset_id or self._config.asset_id}
        reply = await self._call("getBalance", params, BalanceReply)
        return reply.balance

    async def get_utxos(self, addresses: list[str]) -> list[str]:
        """Get the CB58-encoded UTXOs owned by *addresses*."""
        reply = await self._call("getUTXOs", {"Addresses": addresses}, UTXOsReply)
        return reply.utxos

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_connected(self) -> httpx.AsyncClient:
        """Return the HTTP client, raising if not connected."""
        if self._client is None:
            msg = "AVM client not connected. Call connect() first."
            raise NetworkError(msg)
        return self._client

    async def _call(
        self, method: str, params: dict[str, Any], reply_model: type[_ReplyT]
    ) -> _ReplyT:
        """Issue one JSON-RPC call and validate its result against *reply_model*."""
        client = self._ensure_connected()
        self._request_id += 1
        full_method = f"{self._config.method_prefix}.{method}"
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": full_method,
            "params": params,
        }
        logger.debug("RPC %s -> %s", full_method, self.url)

        try:
            response = await client.post(self._config.endpoint, json=payload)
        except httpx.TimeoutException as exc:
            msg = f"{full_method} timed out after {self._config.timeout}s"
            raise NetworkError(msg) from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"{full_method} failed: {exc}") from exc

        try:
            envelope = RPCResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            if not response.is_success:
                msg = f"{full_method} failed with HTTP {response.status_code}"
                raise NetworkError(msg) from exc
            raise ResponseDecodeError(f"{full_method}: malformed JSON-RPC response") from exc

        if envelope.error is not None:
            raise RemoteError(envelope.error.code, envelope.error.message)
        if not response.is_success:
            raise NetworkError(f"{full_method} failed with HTTP {response.status_code}")

        try:
            return reply_model.model_validate(envelope.result)
        except ValidationError as exc:
            msg = f"{full_method}: unexpected reply shape: {exc.error_count()} errors"
            raise ResponseDecodeError(msg) from exc
