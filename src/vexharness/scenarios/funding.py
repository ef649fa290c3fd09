"""
Funding scenarios - storage registration and token issuance.

- storage-deposit: register token storage for the staking contract, the
  user and the betting contract so they can hold VEX / USDC
- mint: issue VEX to an account and read back its balance
"""

from __future__ import annotations

from typing import Optional

import click

from ..utils import parse_near_amount
from .runner import ScenarioContext, ScenarioRun, register

# 0.01 NEAR covers one fungible-token storage slot
STORAGE_DEPOSIT = parse_near_amount("0.01")
MINT_AMOUNT = "99999999000000000000"


def _near_amount(ctx: click.Context, param: click.Parameter, value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return parse_near_amount(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


def storage_beneficiaries(ctx: ScenarioContext) -> list[tuple[str, str]]:
    """(token contract, beneficiary) pairs needing storage registration."""
    config = ctx.config
    user = ctx.account_id("user")
    return [
        (config.vex_token, config.staking_contract),
        (config.usdc_token, config.staking_contract),
        (config.vex_token, user),
        (config.usdc_token, user),
        (config.usdc_token, config.betting_contract),
    ]


@register(
    "storage-deposit",
    accounts=("user",),
    params=(
        click.Option(
            ["--deposit"],
            default=None,
            callback=_near_amount,
            help="Attached NEAR per registration (default: 0.01)",
        ),
    ),
)
async def storage_deposit(
    run: ScenarioRun,
    ctx: ScenarioContext,
    deposit: Optional[int] = None,
) -> None:
    """Register token storage for the staking, user and betting accounts."""
    owner = ctx.participant("owner")
    attached = deposit if deposit is not None else STORAGE_DEPOSIT

    for token, beneficiary in storage_beneficiaries(ctx):
        await run.call(
            owner,
            token,
            "storage_deposit",
            {"account_id": beneficiary},
            deposit=attached,
        )


@register(
    "mint",
    params=(
        click.Option(["--amount"], default=None, help=f"Raw token amount (default: {MINT_AMOUNT})"),
        click.Option(["--receiver"], default=None, help="Receiving account (default: owner)"),
    ),
)
async def mint(
    run: ScenarioRun,
    ctx: ScenarioContext,
    amount: str = MINT_AMOUNT,
    receiver: Optional[str] = None,
) -> None:
    """Mint VEX to an account and show its balance."""
    owner = ctx.participant("owner")
    token = ctx.config.vex_token
    receiver = receiver or owner.account_id

    await run.call(owner, token, "mint", {"account_id": receiver, "amount": amount})

    balance = await run.query(owner, token, "ft_balance_of", {"account_id": receiver})
    run.note("balance", receiver, balance)
