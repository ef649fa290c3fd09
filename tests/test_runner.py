"""Tests for the scenario dispatch table and its recovery boundary."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from vexharness.config import ConfigError
from vexharness.ledger.rpc import LedgerRpc
from vexharness.ledger.session import Participant, Session
from vexharness.scenarios import SCENARIOS, get_scenario, run_scenario, run_scenarios
from vexharness.scenarios.runner import Scenario, ScenarioContext, ScenarioRun, register
from vexharness.wallet.keys import KeyStore


class TestRegistry:
    def test_all_scenarios_registered(self) -> None:
        assert list(SCENARIOS) == [
            "storage-deposit",
            "mint",
            "stake",
            "cover-usdc",
            "exchange",
            "status",
            "pool-info",
        ]

    def test_help_comes_from_docstring(self) -> None:
        assert SCENARIOS["mint"].help == "Mint VEX to an account and show its balance."

    def test_roles(self) -> None:
        assert SCENARIOS["stake"].signers == ("owner", "user")
        assert SCENARIOS["storage-deposit"].roles == ("owner", "user")
        assert SCENARIOS["status"].roles == ("owner",)

    def test_unknown_scenario(self) -> None:
        with pytest.raises(ConfigError):
            get_scenario("swap")

    def test_duplicate_registration_fails(self) -> None:
        with pytest.raises(ValueError):
            register("mint")(SCENARIOS["mint"].procedure)


class TestBoundary:
    def test_failure_stops_remaining_operations(self, ledger, make_context) -> None:
        ledger.fail_on["cover_usdc"] = "Smart contract panicked: not owner"
        ctx = make_context()

        result = asyncio.run(run_scenario(SCENARIOS["cover-usdc"], ctx, echo=False))

        assert not result.ok
        assert result.status == "failed"
        assert result.failed_operation == "cover_usdc"
        assert "not owner" in result.error
        # get_vex_out, cover_usdc; the second get_vex_out never ran
        assert [entry[3] for entry in ledger.log] == ["get_vex_out", "cover_usdc"]
        assert [r.ok for r in result.records] == [True, False]

    def test_failure_is_reported(self, ledger, make_context, capsys) -> None:
        ledger.fail_on["get_pool"] = "pool not found"

        asyncio.run(run_scenario(SCENARIOS["pool-info"], make_context(), echo=False))

        err = capsys.readouterr().err
        assert "pool-info" in err
        assert "get_pool" in err
        assert "pool not found" in err

    def test_first_operation_failure(self, ledger, make_context) -> None:
        ledger.fail_on["ft_balance_of"] = "unreachable"

        result = asyncio.run(run_scenario(SCENARIOS["status"], make_context(), echo=False))

        assert result.failed_operation == "ft_balance_of"
        assert len(ledger.log) == 1

    def test_undecodable_contract_result_is_caught(self, config) -> None:
        def respond(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": "dontcare", "result": {"result": [0xFF, 0xFE]}})

        rpc = LedgerRpc(config.node_url, transport=httpx.MockTransport(respond))
        session = Session(config, "owner.testnet", KeyStore(), rpc, signer=None)
        ctx = ScenarioContext(config=config, participants={"owner": Participant("owner", session)})

        result = asyncio.run(run_scenario(SCENARIOS["pool-info"], ctx, echo=False))

        assert result.status == "failed"
        assert result.failed_operation == "get_pool"

    def test_other_exceptions_propagate(self, make_context) -> None:
        async def broken(run: ScenarioRun, ctx: ScenarioContext) -> None:
            raise KeyError("bug")

        scenario = Scenario(name="broken", help="", procedure=broken)
        with pytest.raises(KeyError):
            asyncio.run(run_scenario(scenario, make_context(), echo=False))

    def test_successful_run(self, make_context) -> None:
        result = asyncio.run(run_scenario(SCENARIOS["pool-info"], make_context(), echo=False))

        assert result.ok
        assert result.error is None
        summary = result.to_dict()
        assert summary["status"] == "completed"
        assert summary["calls"][0]["operation"] == "get_pool"
        assert summary["notes"][0]["label"] == "pool"

    def test_echo_lists_operations(self, make_context, capsys) -> None:
        asyncio.run(run_scenario(SCENARIOS["pool-info"], make_context()))
        out = capsys.readouterr().out
        assert "=== pool-info ===" in out
        assert "ref-finance-101.testnet.get_pool" in out
        assert "done (1 operations)" in out


class TestConcurrentScenarios:
    def test_failing_scenario_does_not_affect_others(self, ledger, make_context) -> None:
        ledger.fail_on["cover_usdc"] = "boom"
        scenarios = [SCENARIOS["cover-usdc"], SCENARIOS["pool-info"], SCENARIOS["status"]]

        results = asyncio.run(run_scenarios(scenarios, make_context(), echo=False))

        assert [r.name for r in results] == ["cover-usdc", "pool-info", "status"]
        assert [r.ok for r in results] == [False, True, True]

    def test_scenarios_interleave(self, make_context) -> None:
        order: list[str] = []

        async def slow(run: ScenarioRun, ctx: ScenarioContext) -> None:
            order.append("slow-start")
            await asyncio.sleep(0.01)
            order.append("slow-end")

        async def fast(run: ScenarioRun, ctx: ScenarioContext) -> None:
            order.append("fast")

        scenarios = [
            Scenario(name="slow", help="", procedure=slow),
            Scenario(name="fast", help="", procedure=fast),
        ]
        asyncio.run(run_scenarios(scenarios, make_context(), echo=False))

        assert order == ["slow-start", "fast", "slow-end"]


def test_context_lookups(make_context) -> None:
    ctx = make_context(roles=("owner",))

    assert ctx.account_id("owner") == "owner.testnet"
    assert ctx.account_id("user") == "user.testnet"
    with pytest.raises(ConfigError):
        ctx.participant("user")


def test_context_closes_sessions(make_context) -> None:
    ctx = make_context()
    asyncio.run(ctx.aclose())
    assert all(p.session.closed for p in ctx.participants.values())


def test_remote_call_error_record(ledger, make_context) -> None:
    ctx = make_context()
    run_result = asyncio.run(run_scenario(SCENARIOS["mint"], ctx, echo=False))
    assert run_result.ok

    ledger.fail_on["mint"] = "paused"
    failed = asyncio.run(run_scenario(SCENARIOS["mint"], ctx, echo=False))
    record = failed.records[-1]
    assert record.operation == "mint"
    assert record.kind == "call"
    assert record.role == "owner"
    assert record.error == "paused"
