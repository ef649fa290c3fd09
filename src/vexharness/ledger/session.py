"""
Session Factory - authenticated ledger sessions.

A Session binds one account id to its key material and a connection to
the network: a LedgerRpc for read-only queries and a py-near Account that
signs and submits state-changing calls.

Building a session performs no network I/O.  The signer's startup (access
key nonce and block hash lookup) runs on the first call, so reachability
problems surface only when an operation is issued.
"""

from __future__ import annotations

import asyncio
import base64
from dataclasses import dataclass, field
from typing import Any, Optional

from py_near.account import Account as NearAccount

from ..config import NetworkConfig
from ..utils import decode_json_bytes
from ..wallet.keys import KeyPair, KeyStore, parse_key_pair
from .rpc import LedgerRpc, RemoteCallError


@dataclass(frozen=True)
class CallOutcome:
    tx_hash: Optional[str]
    value: Any = None
    logs: list[str] = field(default_factory=list)


class Session:
    """One account, its key-store and its network connection."""

    def __init__(
        self,
        config: NetworkConfig,
        account_id: str,
        key_store: KeyStore,
        rpc: LedgerRpc,
        signer: Any,
    ) -> None:
        self.config = config
        self.account_id = account_id
        self.key_store = key_store
        self.rpc = rpc
        self._signer = signer
        self._started = False
        self._startup_lock = asyncio.Lock()

    @property
    def key_pair(self) -> Optional[KeyPair]:
        return self.key_store.get_key(self.config.network_id, self.account_id)

    def contract(self, contract_id: str) -> "ContractHandle":
        return ContractHandle(contract_id, self)

    async def query(
        self,
        contract_id: str,
        method_name: str,
        args: Optional[dict] = None,
    ) -> Any:
        """Read-only view call. No fee, no signature."""
        return await self.rpc.call_function(contract_id, method_name, args or {})

    async def view_account(self, account_id: Optional[str] = None) -> dict:
        """Account state; defaults to this session's own account."""
        return await self.rpc.view_account(account_id or self.account_id)

    async def call(
        self,
        contract_id: str,
        method_name: str,
        args: Optional[dict] = None,
        gas: Optional[int] = None,
        deposit: int = 0,
    ) -> CallOutcome:
        """
        Signed, state-changing function call.

        Args:
            contract_id: Contract account id
            method_name: Change method name
            args: JSON arguments
            gas: Gas budget (default: the network's fixed budget)
            deposit: Attached value in yoctoNEAR

        Returns:
            CallOutcome with the transaction hash and decoded return value

        Raises:
            RemoteCallError: If signing, submission or execution fails
        """
        gas = gas if gas is not None else self.config.gas_units

        try:
            await self._ensure_started()
            result = await self._signer.function_call(
                contract_id,
                method_name,
                args or {},
                gas=gas,
                amount=int(deposit),
            )
        except RemoteCallError:
            raise
        except Exception as exc:
            raise RemoteCallError(
                f"{method_name} on {contract_id} failed: {exc}",
                contract_id=contract_id,
                method_name=method_name,
            ) from exc

        return _outcome_from_result(result, contract_id, method_name)

    async def _ensure_started(self) -> None:
        # startup() runs once per session; it resets the signer's nonce locks
        async with self._startup_lock:
            if not self._started:
                await self._signer.startup()
                self._started = True

    async def aclose(self) -> None:
        """Close the signer's provider connection if it was opened."""
        if self._started:
            self._started = False
            await self._signer.shutdown()

    def __repr__(self) -> str:
        return f"Session({self.account_id!r} @ {self.config.network_id})"


@dataclass(frozen=True)
class ContractHandle:
    """A contract id paired with the session used to reach it."""

    contract_id: str
    session: Session

    async def view(self, method_name: str, args: Optional[dict] = None) -> Any:
        return await self.session.query(self.contract_id, method_name, args)

    async def call(
        self,
        method_name: str,
        args: Optional[dict] = None,
        gas: Optional[int] = None,
        deposit: int = 0,
    ) -> CallOutcome:
        return await self.session.call(
            self.contract_id, method_name, args, gas=gas, deposit=deposit
        )


@dataclass(frozen=True)
class Participant:
    """A named ledger actor ("owner", "user") and its session."""

    role: str
    session: Session

    @property
    def account_id(self) -> str:
        return self.session.account_id


def create_session(
    config: NetworkConfig,
    account_id: str,
    private_key: str,
    *,
    rpc: Optional[LedgerRpc] = None,
) -> Session:
    """
    Build an authenticated session for one account.

    Args:
        config: Resolved network configuration
        account_id: Account the key material controls
        private_key: ``ed25519:...`` secret key
        rpc: Pre-built read-only client (default: one on config.node_url)

    Returns:
        Session with its own key-store and connection

    Raises:
        KeyFormatError: If the key material is malformed
    """
    key_pair = parse_key_pair(private_key)

    key_store = KeyStore()
    key_store.set_key(config.network_id, account_id, key_pair)

    signer = NearAccount(
        account_id=account_id,
        private_key=key_pair.secret_key,
        rpc_addr=config.node_url,
    )

    return Session(
        config=config,
        account_id=account_id,
        key_store=key_store,
        rpc=rpc or LedgerRpc(config.node_url),
        signer=signer,
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _outcome_from_result(result: Any, contract_id: str, method_name: str) -> CallOutcome:
    if isinstance(result, str):
        # nowait submissions return the bare hash
        return CallOutcome(tx_hash=result)

    transaction = getattr(result, "transaction", None)
    tx_hash = getattr(transaction, "hash", None)
    status = getattr(result, "status", None) or {}
    logs = list(getattr(result, "logs", None) or [])

    if isinstance(status, dict) and "Failure" in status:
        raise RemoteCallError(
            f"{method_name} on {contract_id} failed: {status['Failure']}",
            contract_id=contract_id,
            method_name=method_name,
        )

    value = None
    if isinstance(status, dict) and status.get("SuccessValue"):
        try:
            value = decode_json_bytes(base64.b64decode(status["SuccessValue"]))
        except ValueError as exc:
            raise RemoteCallError(
                f"{method_name} on {contract_id} returned undecodable value: {exc}",
                contract_id=contract_id,
                method_name=method_name,
            ) from exc

    return CallOutcome(tx_hash=tx_hash, value=value, logs=logs)
