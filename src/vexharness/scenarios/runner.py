"""
Scenario Runner - dispatch table and recovery boundary.

A scenario is an async procedure that issues queries and calls one at a
time through a ScenarioRun.  Each scenario runs inside its own boundary:
the first RemoteCallError stops that scenario, is echoed with the scenario
and operation name, and is recorded in the ScenarioResult.  Nothing is
retried and nothing propagates to other scenarios or to the process.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

import click

from ..config import ConfigError, NetworkConfig
from ..ledger.rpc import RemoteCallError
from ..ledger.session import CallOutcome, Participant


Procedure = Callable[..., Awaitable[None]]


@dataclass(frozen=True)
class Scenario:
    name: str
    help: str
    procedure: Procedure
    signers: tuple[str, ...] = ("owner",)
    accounts: tuple[str, ...] = ()
    params: tuple[click.Option, ...] = ()

    @property
    def roles(self) -> tuple[str, ...]:
        """All roles whose account id must be known."""
        return tuple(dict.fromkeys(self.signers + self.accounts))


SCENARIOS: dict[str, Scenario] = {}


def register(
    name: str,
    *,
    signers: tuple[str, ...] = ("owner",),
    accounts: tuple[str, ...] = (),
    params: tuple[click.Option, ...] = (),
) -> Callable[[Procedure], Procedure]:
    """Add a scenario procedure to the dispatch table."""

    def decorator(procedure: Procedure) -> Procedure:
        if name in SCENARIOS:
            raise ValueError(f"Scenario {name!r} registered twice")
        doc = (procedure.__doc__ or "").strip()
        SCENARIOS[name] = Scenario(
            name=name,
            help=doc.splitlines()[0] if doc else name,
            procedure=procedure,
            signers=signers,
            accounts=accounts,
            params=params,
        )
        return procedure

    return decorator


def get_scenario(name: str) -> Scenario:
    try:
        return SCENARIOS[name]
    except KeyError:
        raise ConfigError(f"Unknown scenario: {name!r}") from None


@dataclass
class ScenarioContext:
    config: NetworkConfig
    participants: dict[str, Participant] = field(default_factory=dict)
    accounts: dict[str, str] = field(default_factory=dict)

    def participant(self, role: str) -> Participant:
        try:
            return self.participants[role]
        except KeyError:
            raise ConfigError(f"No session for role {role!r}") from None

    def account_id(self, role: str) -> str:
        if role in self.participants:
            return self.participants[role].account_id
        try:
            return self.accounts[role]
        except KeyError:
            raise ConfigError(f"No account id for role {role!r}") from None

    async def aclose(self) -> None:
        """Close every participant's session."""
        for participant in self.participants.values():
            await participant.session.aclose()


@dataclass
class CallRecord:
    operation: str
    contract_id: str
    role: str
    kind: str
    ok: bool
    result: Any = None
    error: Optional[str] = None
    tx_hash: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "contract_id": self.contract_id,
            "role": self.role,
            "kind": self.kind,
            "ok": self.ok,
            "result": self.result,
            "error": self.error,
            "tx_hash": self.tx_hash,
        }


@dataclass
class ScenarioResult:
    name: str
    records: list[CallRecord] = field(default_factory=list)
    notes: list[tuple[str, list[Any]]] = field(default_factory=list)
    error: Optional[str] = None
    failed_operation: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def status(self) -> str:
        return "completed" if self.ok else "failed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "scenario": self.name,
            "status": self.status,
            "error": self.error,
            "failed_operation": self.failed_operation,
            "calls": [r.to_dict() for r in self.records],
            "notes": [{"label": label, "values": values} for label, values in self.notes],
        }


class ScenarioRun:
    """Issues a scenario's operations in order and records each of them."""

    def __init__(
        self,
        result: ScenarioResult,
        echo: bool = True,
        tx_link: Optional[Callable[[str], str]] = None,
    ) -> None:
        self.result = result
        self.echo = echo
        self.tx_link = tx_link

    def _say(self, message: str, **style: Any) -> None:
        if self.echo:
            click.secho(message, **style)

    async def query(
        self,
        participant: Participant,
        contract_id: str,
        method_name: str,
        args: Optional[dict] = None,
    ) -> Any:
        self._say(f"  ? {participant.role} view {contract_id}.{method_name} {args or {}}", dim=True)
        try:
            value = await participant.session.query(contract_id, method_name, args or {})
        except RemoteCallError as exc:
            self._record(participant, contract_id, method_name, "query", exc=exc)
            raise
        self._record(participant, contract_id, method_name, "query", value=value)
        return value

    async def view_account(self, participant: Participant, account_id: str) -> dict:
        self._say(f"  ? {participant.role} view_account {account_id}", dim=True)
        try:
            state = await participant.session.view_account(account_id)
        except RemoteCallError as exc:
            self._record(participant, account_id, "view_account", "query", exc=exc)
            raise
        self._record(participant, account_id, "view_account", "query", value=state)
        return state

    async def call(
        self,
        participant: Participant,
        contract_id: str,
        method_name: str,
        args: Optional[dict] = None,
        deposit: int = 0,
        gas: Optional[int] = None,
    ) -> CallOutcome:
        line = f"  ! {participant.role} call {contract_id}.{method_name} {args or {}}"
        if deposit:
            line += f" deposit={deposit}"
        self._say(line, dim=True)
        try:
            outcome = await participant.session.call(
                contract_id, method_name, args or {}, gas=gas, deposit=deposit
            )
        except RemoteCallError as exc:
            self._record(participant, contract_id, method_name, "call", exc=exc)
            raise
        self._record(
            participant, contract_id, method_name, "call",
            value=outcome.value, tx_hash=outcome.tx_hash,
        )
        if outcome.tx_hash:
            link = self.tx_link(outcome.tx_hash) if self.tx_link else outcome.tx_hash
            self._say(f"    tx {link}", dim=True)
        return outcome

    def note(self, label: str, *values: Any) -> None:
        """Report an observation (balances, stake records, rates)."""
        self.result.notes.append((label, list(values)))
        self._say(f"  {label}: " + "  ".join(repr(v) for v in values))

    def _record(
        self,
        participant: Participant,
        contract_id: str,
        method_name: str,
        kind: str,
        value: Any = None,
        tx_hash: Optional[str] = None,
        exc: Optional[BaseException] = None,
    ) -> None:
        self.result.records.append(
            CallRecord(
                operation=method_name,
                contract_id=contract_id,
                role=participant.role,
                kind=kind,
                ok=exc is None,
                result=value,
                error=str(exc) if exc is not None else None,
                tx_hash=tx_hash,
            )
        )


async def run_scenario(
    scenario: Scenario,
    ctx: ScenarioContext,
    echo: bool = True,
    **params: Any,
) -> ScenarioResult:
    """
    Run one scenario inside its recovery boundary.

    Returns:
        ScenarioResult; remote failures are recorded, never raised
    """
    result = ScenarioResult(name=scenario.name)
    run = ScenarioRun(result, echo=echo, tx_link=ctx.config.explorer_tx_url)

    if echo:
        click.secho(f"=== {scenario.name} ===", fg="cyan")

    try:
        await scenario.procedure(run, ctx, **params)
    except RemoteCallError as exc:
        result.error = str(exc)
        result.failed_operation = exc.method_name
        # Always reported, even when echo is off for the call lines
        click.secho(
            f"{scenario.name} error in {exc.method_name or 'operation'}: {exc}",
            fg="red",
            err=True,
        )

    if echo:
        if result.ok:
            click.secho(f"=== {scenario.name}: done ({len(result.records)} operations) ===", fg="green")
        else:
            click.secho(f"=== {scenario.name}: failed ===", fg="yellow")

    return result


async def run_scenarios(
    scenarios: list[Scenario],
    ctx: ScenarioContext,
    echo: bool = True,
) -> list[ScenarioResult]:
    """Run several scenarios concurrently, each in its own boundary."""
    return list(
        await asyncio.gather(*(run_scenario(s, ctx, echo=echo) for s in scenarios))
    )
