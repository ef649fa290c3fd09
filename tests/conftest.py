"""Shared fixtures: an in-memory ledger standing in for NEAR testnet."""

from __future__ import annotations

import os
from collections import defaultdict
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from vexharness.config import NetworkConfig, resolve
from vexharness.ledger.rpc import RemoteCallError
from vexharness.ledger.session import CallOutcome, Participant
from vexharness.scenarios.runner import ScenarioContext
from vexharness.wallet.keys import generate_key_pair, parse_key_pair

OWNER = "owner.testnet"
USER = "user.testnet"


class FakeLedger:
    """Just enough of the VEX contracts to drive the scenarios."""

    def __init__(self, config: NetworkConfig) -> None:
        self.config = config
        self.balances: dict[tuple[str, str], int] = defaultdict(int)
        self.registered: set[tuple[str, str]] = set()
        self.stakes: dict[str, int] = defaultdict(int)
        self.vex_out = 1000
        self.total = 0
        self.near = {config.staking_contract: 5 * 10**24}
        self.log: list[tuple[str, str, str, str]] = []
        self.fail_on: dict[str, str] = {}
        self.deposits: list[int] = []
        self.sessions: list[FakeSession] = []

    def _check(self, method_name: str, contract_id: str) -> None:
        if method_name in self.fail_on:
            raise RemoteCallError(
                self.fail_on[method_name],
                method_name=method_name,
                contract_id=contract_id,
            )

    async def query(self, contract_id: str, method_name: str, args: dict) -> Any:
        self.log.append(("query", "-", contract_id, method_name))
        self._check(method_name, contract_id)
        if method_name == "ft_balance_of":
            return str(self.balances[(contract_id, args["account_id"])])
        if method_name == "get_stake_info":
            return {"account_id": args["account_id"], "staked": str(self.stakes[args["account_id"]])}
        if method_name == "get_vex_out":
            return str(self.vex_out)
        if method_name == "get_total":
            return str(self.total)
        if method_name == "get_pool":
            return {"pool_id": args["pool_id"], "token_account_ids": [self.config.vex_token, self.config.usdc_token]}
        raise RemoteCallError(f"MethodNotFound: {method_name}", method_name=method_name, contract_id=contract_id)

    async def view_account(self, account_id: str) -> dict:
        self.log.append(("query", "-", account_id, "view_account"))
        self._check("view_account", account_id)
        return {"amount": str(self.near.get(account_id, 0)), "storage_usage": 100}

    async def call(self, signer: str, contract_id: str, method_name: str, args: dict, deposit: int) -> CallOutcome:
        self.log.append(("call", signer, contract_id, method_name))
        self._check(method_name, contract_id)

        if method_name == "storage_deposit":
            key = (contract_id, args["account_id"])
            if key in self.registered:
                raise RemoteCallError(
                    f"The account {args['account_id']} is already registered",
                    method_name=method_name,
                    contract_id=contract_id,
                )
            self.registered.add(key)
            self.deposits.append(deposit)
        elif method_name == "mint":
            self.balances[(contract_id, args["account_id"])] += int(args["amount"])
        elif method_name == "ft_transfer_call":
            if deposit != 1:
                raise RemoteCallError("Requires attached deposit of exactly 1 yoctoNEAR", method_name=method_name)
            amount = int(args["amount"])
            if self.balances[(contract_id, signer)] < amount:
                raise RemoteCallError("The account doesn't have enough balance", method_name=method_name)
            self.balances[(contract_id, signer)] -= amount
            self.balances[(contract_id, args["receiver_id"])] += amount
            if contract_id == self.config.vex_token:
                self.stakes[signer] += amount
            else:
                self.total += amount
                self.vex_out += 1
        elif method_name == "cover_usdc":
            self.vex_out -= 1
        else:
            raise RemoteCallError(f"MethodNotFound: {method_name}", method_name=method_name)

        return CallOutcome(tx_hash=f"tx{len(self.log)}", value=None, logs=[])


class FakeSession:
    def __init__(self, ledger: FakeLedger, account_id: str) -> None:
        self.ledger = ledger
        self.account_id = account_id
        self.closed = False

    async def query(self, contract_id: str, method_name: str, args: Optional[dict] = None) -> Any:
        return await self.ledger.query(contract_id, method_name, args or {})

    async def view_account(self, account_id: Optional[str] = None) -> dict:
        return await self.ledger.view_account(account_id or self.account_id)

    async def call(
        self,
        contract_id: str,
        method_name: str,
        args: Optional[dict] = None,
        gas: Optional[int] = None,
        deposit: int = 0,
    ) -> CallOutcome:
        return await self.ledger.call(self.account_id, contract_id, method_name, args or {}, deposit)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture()
def config() -> NetworkConfig:
    return resolve("testnet")


@pytest.fixture()
def ledger(config: NetworkConfig) -> FakeLedger:
    return FakeLedger(config)


@pytest.fixture()
def make_context(config: NetworkConfig, ledger: FakeLedger) -> Callable[..., ScenarioContext]:
    def factory(roles: tuple[str, ...] = ("owner", "user")) -> ScenarioContext:
        ids = {"owner": OWNER, "user": USER}
        participants = {
            role: Participant(role, FakeSession(ledger, ids[role]))  # type: ignore[arg-type]
            for role in roles
        }
        accounts = {role: ids[role] for role in ids if role not in participants}
        return ScenarioContext(config=config, participants=participants, accounts=accounts)

    return factory


@pytest.fixture()
def key_text() -> str:
    return generate_key_pair().secret_key


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the harness at an empty .env and clear VEX_* variables."""
    for name in list(os.environ):
        if name.startswith("VEX_"):
            monkeypatch.delenv(name, raising=False)
    env_file = tmp_path / "vex.env"
    monkeypatch.setenv("VEX_ENV_FILE", str(env_file))
    return env_file


@pytest.fixture()
def fake_create_session(ledger: FakeLedger) -> Callable[..., FakeSession]:
    """Stand-in for create_session that validates keys but talks to the fake ledger."""

    def factory(config: NetworkConfig, account_id: str, private_key: str) -> FakeSession:
        parse_key_pair(private_key)
        session = FakeSession(ledger, account_id)
        ledger.sessions.append(session)
        return session

    return factory
