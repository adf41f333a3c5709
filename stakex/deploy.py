"""
StakeX Deployment

Wires a token and a staking pool together:
    1. deploy the StakeX token (initial supply to the deployer)
    2. deploy the pool bound to the token
    3. grant the pool the right to mint rewards
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .address import generate_contract_address, normalize_address
from .clock import Clock, ManualClock, SystemClock
from .config import StakingConfig
from .logger import get_logger
from .staking import RewardAccrualEngine, StakingPool
from .tokens import StakeXToken, format_units

logger = get_logger(__name__)


@dataclass
class Deployment:
    """Handles to a deployed token/pool pair."""
    deployer: str
    token: StakeXToken
    pool: StakingPool
    clock: Clock

    async def fund(self, account: str, amount: int) -> None:
        """Send *amount* smallest units from the deployer to *account*."""
        await self.token.transfer(self.deployer, account, amount)
        logger.info(
            f"Funded {normalize_address(account)} with "
            f"{format_units(amount, self.token.decimals)} {self.token.symbol}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deployer": self.deployer,
            "token": self.token.address,
            "stakingPool": self.pool.address,
        }


def make_clock(config: StakingConfig) -> Clock:
    if config.pool.clock == "manual":
        return ManualClock(config.pool.start_time)
    return SystemClock()


def deploy_staking_system(
    config: Optional[StakingConfig] = None,
    clock: Optional[Clock] = None,
) -> Deployment:
    """
    Deploy a token and pool from *config*.

    Args:
        config: Deployment configuration (defaults when omitted)
        clock: Time source; built from `config.pool.clock` when omitted

    Returns:
        Deployment with the token, pool and clock
    """
    config = config or StakingConfig()
    config.validate()

    deployer = normalize_address(config.token.deployer)
    logger.info(f"Deploying contracts with the account: {deployer}")

    token = StakeXToken(
        deployer=deployer,
        name=config.token.name,
        symbol=config.token.symbol,
        decimals=config.token.decimals,
        initial_supply=config.token.initial_supply_units,
        address=generate_contract_address(deployer, 0),
    )

    pool_address = generate_contract_address(deployer, 1)
    minter = token.grant_minter(deployer, pool_address)
    pool = StakingPool(
        token,
        minter,
        clock=clock or make_clock(config),
        engine=RewardAccrualEngine(config.pool.reward_rate_bps),
    )

    return Deployment(deployer=deployer, token=token, pool=pool, clock=pool.clock)
