"""
Staking scenarios against the VEX staking contract.

- stake:      owner and user stake VEX via ft_transfer_call, then both
              stake records are read side by side
- cover-usdc: shift reserves with cover_usdc and compare get_vex_out
- exchange:   send USDC into the staking contract and compare rates and
              balances before and after
"""

from __future__ import annotations

from typing import Any

import click

from ..ledger.session import Participant
from .runner import ScenarioContext, ScenarioRun, register

# ft_transfer_call requires exactly one attached yoctoNEAR
ONE_YOCTO = 1
STAKE_MSG = "stake"

OWNER_STAKE = "100000000000"
USER_STAKE = "200000000000"
COVER_AMOUNT = "10000000000000000000000"
EXCHANGE_AMOUNT = "20000000000000000000000000"


async def _transfer_call(
    run: ScenarioRun,
    sender: Participant,
    token: str,
    receiver: str,
    amount: str,
    msg: str = STAKE_MSG,
) -> None:
    await run.call(
        sender,
        token,
        "ft_transfer_call",
        {"receiver_id": receiver, "amount": amount, "msg": msg},
        deposit=ONE_YOCTO,
    )


async def _balances(run: ScenarioRun, ctx: ScenarioContext, holder: str) -> tuple[Any, Any]:
    owner = ctx.participant("owner")
    vex = await run.query(owner, ctx.config.vex_token, "ft_balance_of", {"account_id": holder})
    usdc = await run.query(owner, ctx.config.usdc_token, "ft_balance_of", {"account_id": holder})
    return vex, usdc


@register(
    "stake",
    signers=("owner", "user"),
    params=(
        click.Option(["--owner-amount"], default=None, help=f"Owner stake (default: {OWNER_STAKE})"),
        click.Option(["--user-amount"], default=None, help=f"User stake (default: {USER_STAKE})"),
    ),
)
async def stake(
    run: ScenarioRun,
    ctx: ScenarioContext,
    owner_amount: str = OWNER_STAKE,
    user_amount: str = USER_STAKE,
) -> None:
    """Stake VEX from owner and user, then show both stake records."""
    owner = ctx.participant("owner")
    user = ctx.participant("user")
    token = ctx.config.vex_token
    staking = ctx.config.staking_contract

    await _transfer_call(run, owner, token, staking, owner_amount)
    await _transfer_call(run, user, token, staking, user_amount)

    owner_info = await run.query(owner, staking, "get_stake_info", {"account_id": owner.account_id})
    user_info = await run.query(owner, staking, "get_stake_info", {"account_id": user.account_id})
    run.note("stake info", owner_info, user_info)


@register(
    "cover-usdc",
    params=(
        click.Option(["--amount"], default=None, help=f"USDC amount to cover (default: {COVER_AMOUNT})"),
    ),
)
async def cover_usdc(
    run: ScenarioRun,
    ctx: ScenarioContext,
    amount: str = COVER_AMOUNT,
) -> None:
    """Cover USDC reserves and compare get_vex_out before and after."""
    owner = ctx.participant("owner")
    staking = ctx.config.staking_contract

    vex_out = await run.query(owner, staking, "get_vex_out")
    run.note("vex_out", vex_out)

    await run.call(owner, staking, "cover_usdc", {"amount": amount})

    new_vex_out = await run.query(owner, staking, "get_vex_out")
    run.note("new vex_out", new_vex_out)


@register(
    "exchange",
    params=(
        click.Option(["--amount"], default=None, help=f"USDC amount sent (default: {EXCHANGE_AMOUNT})"),
    ),
)
async def exchange(
    run: ScenarioRun,
    ctx: ScenarioContext,
    amount: str = EXCHANGE_AMOUNT,
) -> None:
    """Send USDC to the staking contract and compare rates and balances."""
    owner = ctx.participant("owner")
    staking = ctx.config.staking_contract

    vex_out = await run.query(owner, staking, "get_vex_out")
    claimable = await run.query(owner, staking, "get_total")
    run.note("vex_out", vex_out)
    run.note("claimable", claimable)

    before = await _balances(run, ctx, staking)
    run.note("balances before (vex, usdc)", *before)

    await _transfer_call(run, owner, ctx.config.usdc_token, staking, amount)

    after = await _balances(run, ctx, staking)
    run.note("balances after (vex, usdc)", *after)

    new_vex_out = await run.query(owner, staking, "get_vex_out")
    new_claimable = await run.query(owner, staking, "get_total")
    run.note("new vex_out", new_vex_out)
    run.note("new claimable", new_claimable)
