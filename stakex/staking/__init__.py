"""
StakeX staking.

Provides:
  - StakingPool          : stake / unstake / claim_rewards orchestration
  - StakingLedger        : per-account principal and accrual bookkeeping
  - RewardAccrualEngine  : simple-interest reward formula
"""

from .rewards import RewardAccrualEngine, accrued
from .ledger import StakeAccount, StakingLedger
from .pool import (
    StakingPool,
    StakeState,
    StakedEvent,
    UnstakedEvent,
    RewardsClaimedEvent,
)

__all__ = [
    "RewardAccrualEngine",
    "accrued",
    "StakeAccount",
    "StakingLedger",
    "StakingPool",
    "StakeState",
    "StakedEvent",
    "UnstakedEvent",
    "RewardsClaimedEvent",
]
