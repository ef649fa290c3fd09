"""
VEX Harness CLI

Command-line interface for exercising the VEX staking and betting
contracts on NEAR testnet.

Keys are never stored in source: each participant ("owner", "user") reads
its account id and private key from VEX_<ROLE>_ACCOUNT_ID and
VEX_<ROLE>_PRIVATE_KEY, or from ~/.vexharness/.env.

Commands:
  run        - Run one scenario (one subcommand per scenario)
  batch      - Run several scenarios concurrently
  scenarios  - List available scenarios
  info       - Show the resolved network configuration
  whoami     - Show configured accounts and public keys
  keygen     - Generate an ed25519 key pair
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Awaitable, NoReturn, Optional, TypeVar

import click

from .config import ConfigError, NetworkConfig, resolve
from .ledger.rpc import LedgerRpc, RemoteCallError
from .ledger.session import Participant, create_session
from .scenarios import SCENARIOS, Scenario, ScenarioContext, ScenarioResult, get_scenario, run_scenario, run_scenarios
from .wallet.keys import (
    KeyFormatError,
    generate_key_pair,
    load_account_id,
    load_private_key,
    parse_key_pair,
    save_private_key,
)


# ============ Constants ============

VERSION = "0.1.0"

ROLES = ("owner", "user")

T = TypeVar("T")


# ============ Banner ============


def _print_banner() -> None:
    click.echo(
        click.style("  ◆ ", fg="cyan")
        + click.style("V E X   H A R N E S S", fg="bright_white", bold=True)
        + click.style(f"  v{VERSION}", dim=True)
    )
    click.echo()


# ============ Main CLI Group ============


@click.group(invoke_without_command=True)
@click.version_option(version=VERSION, prog_name="vexharness")
@click.option("--network", envvar="VEX_NETWORK", default="testnet", show_default=True, help="Network name")
@click.option("--node-url", envvar="VEX_NODE_URL", default=None, help="Override the RPC endpoint")
@click.pass_context
def cli(ctx: click.Context, network: str, node_url: Optional[str]) -> None:
    """VEX Harness: scenario runner for the VEX contracts on NEAR."""
    ctx.ensure_object(dict)
    ctx.obj["network"] = network
    ctx.obj["node_url"] = node_url
    if ctx.invoked_subcommand is None:
        _print_banner()
        click.echo(ctx.get_help())


# ============ Setup Helpers ============


def _fail(exc: ConfigError | KeyFormatError) -> NoReturn:
    click.secho(f"ERROR: {exc}", fg="red", err=True)
    sys.exit(exc.exit_code)


def _resolve_config(ctx: click.Context) -> NetworkConfig:
    obj = ctx.find_root().obj or {}
    try:
        return resolve(obj.get("network", "testnet"), node_url=obj.get("node_url"))
    except ConfigError as exc:
        _fail(exc)


def _default_account(config: NetworkConfig, role: str) -> Optional[str]:
    return config.owner_account if role == "owner" else None


def build_context(
    config: NetworkConfig,
    signers: tuple[str, ...],
    accounts: tuple[str, ...] = (),
) -> ScenarioContext:
    """
    Build sessions for the signing roles and look up the other account ids.

    Raises:
        ConfigError: Missing account id or key
        KeyFormatError: Malformed key material
    """
    participants: dict[str, Participant] = {}
    for role in signers:
        account_id = load_account_id(role, default=_default_account(config, role))
        private_key = load_private_key(role)
        participants[role] = Participant(role, create_session(config, account_id, private_key))

    known: dict[str, str] = {}
    for role in accounts:
        if role not in participants:
            known[role] = load_account_id(role, default=_default_account(config, role))

    return ScenarioContext(config=config, participants=participants, accounts=known)


def _setup(ctx: click.Context, scenarios: list[Scenario]) -> ScenarioContext:
    config = _resolve_config(ctx)
    signers = tuple(dict.fromkeys(r for s in scenarios for r in s.signers))
    accounts = tuple(dict.fromkeys(r for s in scenarios for r in s.accounts))
    try:
        return build_context(config, signers, accounts)
    except (ConfigError, KeyFormatError) as exc:
        _fail(exc)


async def _closing(scenario_ctx: ScenarioContext, work: Awaitable[T]) -> T:
    try:
        return await work
    finally:
        await scenario_ctx.aclose()


def _emit_json(results: list[ScenarioResult]) -> None:
    payload: Any = [r.to_dict() for r in results]
    if len(payload) == 1:
        payload = payload[0]
    click.echo(json.dumps(payload, indent=2, default=str))


# ============ Scenarios ============


@cli.group()
def run() -> None:
    """Run one scenario."""
    pass


def _scenario_command(scenario: Scenario) -> click.Command:
    def callback(json_output: bool, **params: Any) -> None:
        ctx = click.get_current_context()
        scenario_ctx = _setup(ctx, [scenario])
        kwargs = {k: v for k, v in params.items() if v is not None}
        result = asyncio.run(
            _closing(scenario_ctx, run_scenario(scenario, scenario_ctx, echo=not json_output, **kwargs))
        )
        if json_output:
            _emit_json([result])

    return click.Command(
        name=scenario.name,
        callback=callback,
        params=[
            *scenario.params,
            click.Option(["--json", "json_output"], is_flag=True, help="Print a JSON summary"),
        ],
        help=scenario.help,
    )


for _scenario in SCENARIOS.values():
    run.add_command(_scenario_command(_scenario))


@cli.command()
@click.argument("names", nargs=-1, required=True)
@click.option("--json", "json_output", is_flag=True, help="Print a JSON summary")
@click.pass_context
def batch(ctx: click.Context, names: tuple[str, ...], json_output: bool) -> None:
    """Run several scenarios concurrently with default options."""
    try:
        scenarios = [get_scenario(name) for name in dict.fromkeys(names)]
    except ConfigError as exc:
        _fail(exc)

    scenario_ctx = _setup(ctx, scenarios)
    results = asyncio.run(
        _closing(scenario_ctx, run_scenarios(scenarios, scenario_ctx, echo=not json_output))
    )

    if json_output:
        _emit_json(results)
        return

    click.echo()
    for result in results:
        color = "green" if result.ok else "yellow"
        click.echo(
            click.style(f"  {result.name:<16}", fg="bright_white")
            + click.style(result.status, fg=color)
            + click.style(f"  ({len(result.records)} operations)", dim=True)
        )


@cli.command("scenarios")
def list_scenarios() -> None:
    """List available scenarios."""
    for scenario in SCENARIOS.values():
        roles = ", ".join(scenario.signers)
        click.echo(
            click.style(f"  {scenario.name:<16}", fg="bright_white", bold=True)
            + click.style(scenario.help, dim=True)
            + click.style(f"  [{roles}]", fg="cyan")
        )


# ============ Info ============


@cli.command()
@click.option("--check", is_flag=True, help="Also query the node status")
@click.pass_context
def info(ctx: click.Context, check: bool) -> None:
    """Show the resolved network configuration."""
    config = _resolve_config(ctx)
    _print_banner()

    click.secho("  Network ────────────────────────────────", fg="cyan")
    click.echo()
    for name, value in config.to_dict().items():
        click.echo(
            click.style(f"  {name + ':':<19}", dim=True)
            + click.style(str(value), fg="bright_white")
        )
    click.echo()

    if not check:
        return

    click.secho("  Node ───────────────────────────────────", fg="cyan")
    click.echo()
    try:
        status = asyncio.run(LedgerRpc(config.node_url).status())
    except RemoteCallError as exc:
        click.echo(
            click.style("  Status:            ", dim=True)
            + click.style(f"unreachable ({exc})", fg="yellow")
        )
    else:
        sync_info = status.get("sync_info") or {}
        version = (status.get("version") or {}).get("version", "?")
        click.echo(click.style("  Chain id:          ", dim=True) + str(status.get("chain_id")))
        click.echo(click.style("  Latest block:      ", dim=True) + str(sync_info.get("latest_block_height")))
        click.echo(click.style("  Node version:      ", dim=True) + str(version))
    click.echo()


# ============ Identity ============


@cli.command()
@click.pass_context
def whoami(ctx: click.Context) -> None:
    """Show configured accounts and their public keys."""
    config = _resolve_config(ctx)

    for role in ROLES:
        try:
            account_id = load_account_id(role, default=_default_account(config, role))
        except ConfigError:
            click.echo(f"{role}: not configured")
            continue

        try:
            public_key = parse_key_pair(load_private_key(role)).public_key
        except ConfigError:
            public_key = click.style("no key", fg="yellow")
        except KeyFormatError as exc:
            _fail(exc)

        click.echo(f"{role}: {account_id}  {public_key}")
        click.echo(click.style(f"  {config.explorer_account_url(account_id)}", dim=True))


@cli.command()
@click.option("--save", "save_role", type=click.Choice(ROLES), default=None, help="Store the key for this role")
@click.option("--account-id", default=None, help="Account id to store with the key")
@click.option("--env-file", type=click.Path(path_type=Path), default=None, help="Target .env file")
def keygen(save_role: Optional[str], account_id: Optional[str], env_file: Optional[Path]) -> None:
    """Generate an ed25519 key pair."""
    key_pair = generate_key_pair()
    click.echo(f"Public key: {key_pair.public_key}")

    if save_role:
        path = save_private_key(save_role, key_pair.secret_key, account_id=account_id, env_path=env_file)
        click.secho(f"Saved {save_role} key to {path}", fg="green")
    else:
        click.echo(f"Secret key: {key_pair.secret_key}")
        click.secho("Keep the secret key out of source control.", fg="yellow")


# ============ Entry Points ============


def main() -> None:
    """VEX harness CLI entry point."""
    # Ensure UTF-8 output on Windows (for Unicode box-drawing / symbols)
    if sys.platform == "win32":
        try:
            sys.stdout.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
            sys.stderr.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
        except (AttributeError, OSError):
            pass  # Fallback: old Python or non-tty
    cli()


if __name__ == "__main__":
    main()
