#!/usr/bin/env python3
"""
StakeX Command Line Interface

Deploys an in-memory StakeX token and staking pool and drives it.

Usage:
    stakex deploy [--config FILE]
    stakex simulate [--amount AMOUNT] [--days DAYS] [--unstake AMOUNT] [--no-claim]
    stakex rewards <amount> <days>
    stakex mint <address> <amount>
    stakex transfer <to> <amount>
    stakex balance [address]

Every command runs against a fresh in-memory deployment built from the
configuration, so token state does not persist between invocations.
"""

import asyncio
import json
from typing import Optional

import click

from stakex import __version__
from stakex.address import normalize_address, random_address
from stakex.clock import ManualClock
from stakex.config import load_config
from stakex.constants import SECONDS_PER_DAY
from stakex.deploy import deploy_staking_system
from stakex.exceptions import StakeXException
from stakex.staking import RewardAccrualEngine
from stakex.tokens import format_units, parse_units


@click.group()
@click.version_option(version=__version__, prog_name="stakex")
@click.option("--config", "-c", "config_path", type=click.Path(), help="Path to stakex.toml")
@click.pass_context
def cli(ctx, config_path: Optional[str]):
    """StakeX staking pool command line interface."""
    ctx.ensure_object(dict)
    try:
        config = load_config(config_path)
        config.validate()
    except StakeXException as e:
        raise click.ClickException(str(e))
    ctx.obj["config"] = config


@cli.command("deploy")
@click.pass_context
def deploy_cmd(ctx):
    """Deploy a token and pool and print their addresses."""
    try:
        deployment = deploy_staking_system(ctx.obj["config"])
    except StakeXException as e:
        raise click.ClickException(f"Deployment failed: {e}")
    click.echo(json.dumps(deployment.to_dict(), indent=2))


@cli.command("rewards")
@click.argument("amount")
@click.argument("days", type=int)
@click.pass_context
def rewards_cmd(ctx, amount: str, days: int):
    """Show the reward AMOUNT tokens earn over DAYS days."""
    config = ctx.obj["config"]
    try:
        units = parse_units(amount, config.token.decimals)
        reward = RewardAccrualEngine(config.pool.reward_rate_bps).accrued(units, days * SECONDS_PER_DAY)
    except (StakeXException, ValueError) as e:
        raise click.ClickException(str(e))
    click.echo(f"{format_units(reward, config.token.decimals)} {config.token.symbol}")


@cli.command("mint")
@click.argument("address")
@click.argument("amount")
@click.pass_context
def mint_cmd(ctx, address: str, amount: str):
    """Mint AMOUNT tokens to ADDRESS with the deployer's minter grant."""
    config = ctx.obj["config"]
    try:
        token = deploy_staking_system(config).token
        units = parse_units(amount, token.decimals)
        capability = token.grant_minter(token.admin, token.admin)
        event = asyncio.run(token.mint(capability, address, units))
    except StakeXException as e:
        raise click.ClickException(f"Error minting tokens: {e}")
    click.echo(f"Minted {amount} {token.symbol} to {event.recipient}")
    click.echo(f"Total supply: {format_units(token.total_supply, token.decimals)} {token.symbol}")


@cli.command("transfer")
@click.argument("to")
@click.argument("amount")
@click.pass_context
def transfer_cmd(ctx, to: str, amount: str):
    """Transfer AMOUNT tokens from the deployer to TO."""
    config = ctx.obj["config"]
    try:
        token = deploy_staking_system(config).token
        units = parse_units(amount, token.decimals)
        event = asyncio.run(token.transfer(token.admin, to, units))
    except StakeXException as e:
        raise click.ClickException(f"Error transferring tokens: {e}")
    click.echo(f"Transferred {amount} {token.symbol} to {event.recipient}")
    for holder in (token.admin, event.recipient):
        click.echo(f"Balance of {holder}: {format_units(token.balance_of(holder), token.decimals)} {token.symbol}")


@cli.command("balance")
@click.argument("address", required=False)
@click.pass_context
def balance_cmd(ctx, address: Optional[str]):
    """Show the token balance of ADDRESS (the deployer when omitted)."""
    config = ctx.obj["config"]
    try:
        token = deploy_staking_system(config).token
        holder = normalize_address(address) if address else token.admin
    except StakeXException as e:
        raise click.ClickException(f"Error checking balance: {e}")
    click.echo(f"Balance of {holder}: {format_units(token.balance_of(holder), token.decimals)} {token.symbol}")


@cli.command("simulate")
@click.option("--amount", "-a", default="100", help="Tokens to stake")
@click.option("--days", "-d", type=int, default=365, help="Days to let rewards accrue")
@click.option("--unstake", "-u", "unstake_amount", default=None, help="Tokens to unstake after accrual")
@click.option("--no-claim", is_flag=True, help="Skip claiming rewards")
@click.pass_context
def simulate_cmd(ctx, amount: str, days: int, unstake_amount: Optional[str], no_claim: bool):
    """Stake, advance time, optionally unstake, then claim.

    Examples:

        stakex simulate --amount 100 --days 365

        stakex simulate -a 250 -d 30 --unstake 50 --no-claim
    """
    config = ctx.obj["config"]
    if days < 0:
        raise click.ClickException("--days cannot be negative")
    try:
        report = asyncio.run(_simulate(config, amount, days, unstake_amount, not no_claim))
    except StakeXException as e:
        raise click.ClickException(f"Simulation failed: {e}")
    click.echo(json.dumps(report, indent=2))


async def _simulate(config, amount: str, days: int, unstake_amount: Optional[str], claim: bool) -> dict:
    decimals = config.token.decimals
    clock = ManualClock(config.pool.start_time)
    deployment = deploy_staking_system(config, clock=clock)
    token, pool = deployment.token, deployment.pool

    user = random_address()
    stake_units = parse_units(amount, decimals)
    await deployment.fund(user, stake_units)
    await token.approve(user, pool.address, stake_units)
    await pool.stake(user, stake_units)

    clock.advance(days * SECONDS_PER_DAY)
    accrued = pool.calculate_rewards(user)

    if unstake_amount is not None:
        await pool.unstake(user, parse_units(unstake_amount, decimals))

    claimed = await pool.claim_rewards(user) if claim else 0
    pool.check_invariants()

    return {
        "account": user,
        "staked": format_units(pool.staked_balance(user), decimals),
        "accrued": format_units(accrued, decimals),
        "claimed": format_units(claimed, decimals),
        "pending": format_units(pool.calculate_rewards(user), decimals),
        "walletBalance": format_units(token.balance_of(user), decimals),
        "symbol": token.symbol,
    }


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
