"""
JSON-RPC Client for NEAR.

Read-only side of the ledger connection: view calls against contracts,
account lookups and node status.  Uses httpx directly; signed calls go
through py-near (see session.py).
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from ..utils import base64_json, decode_json_bytes


class RemoteCallError(RuntimeError):
    """A query or call failed remotely or in transport."""

    def __init__(
        self,
        message: str,
        *,
        method_name: Optional[str] = None,
        contract_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.method_name = method_name
        self.contract_id = contract_id


class LedgerRpc:
    """
    Async NEAR JSON-RPC client.

    A fresh httpx client is opened per request, so the object holds no
    connection state and needs no teardown.
    """

    def __init__(
        self,
        node_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.node_url = node_url
        self._transport = transport

    async def _rpc_call(
        self,
        method: str,
        params: Any,
        *,
        contract_id: Optional[str] = None,
        method_name: Optional[str] = None,
    ) -> Any:
        """
        Make a JSON-RPC call.

        Args:
            method: RPC method name (e.g., "query")
            params: RPC parameters
            contract_id: Contract being addressed, for error reports
            method_name: Contract method being addressed, for error reports

        Returns:
            Result field from the RPC response

        Raises:
            RemoteCallError: If the transport or the node reports a failure
        """
        payload = {
            "jsonrpc": "2.0",
            "id": "dontcare",
            "method": method,
            "params": params,
        }

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(self.node_url, json=payload)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise RemoteCallError(
                f"RPC {method} failed: {exc}",
                contract_id=contract_id,
                method_name=method_name,
            ) from exc

        if "error" in data:
            raise RemoteCallError(
                f"RPC error: {_describe_error(data['error'])}",
                contract_id=contract_id,
                method_name=method_name,
            )

        result = data.get("result")
        # Older nodes report contract panics inside a successful envelope
        if isinstance(result, dict) and result.get("error"):
            raise RemoteCallError(
                f"RPC error: {result['error']}",
                contract_id=contract_id,
                method_name=method_name,
            )

        return result

    async def call_function(
        self,
        contract_id: str,
        method_name: str,
        args: Optional[dict] = None,
    ) -> Any:
        """
        Call a view method on a contract.

        Args:
            contract_id: Contract account id
            method_name: View method name
            args: JSON arguments (default: {})

        Returns:
            JSON-decoded return value (raw text if not JSON, None if empty)
        """
        result = await self._rpc_call(
            "query",
            {
                "request_type": "call_function",
                "finality": "final",
                "account_id": contract_id,
                "method_name": method_name,
                "args_base64": base64_json(args),
            },
            contract_id=contract_id,
            method_name=method_name,
        )
        if not isinstance(result, dict):
            raise RemoteCallError(
                f"Unexpected query result: {result!r}",
                contract_id=contract_id,
                method_name=method_name,
            )
        try:
            return decode_json_bytes(bytes(result.get("result") or []))
        except (TypeError, ValueError) as exc:
            raise RemoteCallError(
                f"Undecodable result from {contract_id}.{method_name}: {exc}",
                contract_id=contract_id,
                method_name=method_name,
            ) from exc

    async def view_account(self, account_id: str) -> dict:
        """
        Get account state (balance in yoctoNEAR, storage usage, code hash).
        """
        return await self._rpc_call(
            "query",
            {
                "request_type": "view_account",
                "finality": "final",
                "account_id": account_id,
            },
            contract_id=account_id,
            method_name="view_account",
        )

    async def status(self) -> dict:
        """Get node status (chain id, latest block, version)."""
        return await self._rpc_call("status", [], method_name="status")


def _describe_error(error: Any) -> str:
    if isinstance(error, dict):
        cause = error.get("cause") or {}
        name = cause.get("name") if isinstance(cause, dict) else None
        data = error.get("data")
        message = error.get("message", "unknown error")
        parts = [message]
        if name:
            parts.append(f"[{name}]")
        if data:
            parts.append(str(data))
        return " ".join(parts)
    return str(error)
