"""Read-only scenarios: contract holdings and exchange pool state."""

from __future__ import annotations

from typing import Optional

import click

from ..utils import format_near_amount
from .runner import ScenarioContext, ScenarioRun, register


@register("status")
async def status(run: ScenarioRun, ctx: ScenarioContext) -> None:
    """Show the staking contract's VEX and NEAR balances."""
    owner = ctx.participant("owner")
    staking = ctx.config.staking_contract

    vex_balance = await run.query(owner, ctx.config.vex_token, "ft_balance_of", {"account_id": staking})
    run.note("vex balance", vex_balance)

    account = await run.view_account(owner, staking)
    run.note("near balance", format_near_amount(account.get("amount", 0)))


@register(
    "pool-info",
    params=(
        click.Option(["--pool-id"], type=int, default=None, help="Exchange pool id"),
    ),
)
async def pool_info(
    run: ScenarioRun,
    ctx: ScenarioContext,
    pool_id: Optional[int] = None,
) -> None:
    """Show an exchange pool from the Ref Finance contract."""
    owner = ctx.participant("owner")
    if pool_id is None:
        pool_id = ctx.config.exchange_pool_id

    pool = await run.query(owner, ctx.config.exchange_contract, "get_pool", {"pool_id": pool_id})
    run.note("pool", pool)
