"""
StakeX Reward Accrual

Simple (non-compounding) annual interest on staked principal, linear in
elapsed time. All arithmetic is on integers in the token's smallest unit and
truncates toward zero.
"""

from dataclasses import dataclass

from ..constants import BPS_DENOMINATOR, REWARD_RATE_BPS, SECONDS_PER_YEAR


def accrued(principal: int, elapsed_seconds: int, rate_bps: int = REWARD_RATE_BPS) -> int:
    """
    Reward earned by *principal* over *elapsed_seconds*.

        floor(principal * rate_bps * elapsed / (BPS_DENOMINATOR * SECONDS_PER_YEAR))

    >>> accrued(100 * 10**8, SECONDS_PER_YEAR)
    500000000
    """
    if principal < 0:
        raise ValueError(f"Principal cannot be negative, got {principal}")
    if elapsed_seconds < 0:
        raise ValueError(f"Elapsed time cannot be negative, got {elapsed_seconds}")
    return (principal * rate_bps * elapsed_seconds) // (BPS_DENOMINATOR * SECONDS_PER_YEAR)


@dataclass(frozen=True)
class RewardAccrualEngine:
    """Stateless reward formula bound to a fixed annual rate."""
    rate_bps: int = REWARD_RATE_BPS

    def __post_init__(self):
        if self.rate_bps < 0:
            raise ValueError(f"Reward rate cannot be negative, got {self.rate_bps}")

    def accrued(self, principal: int, elapsed_seconds: int) -> int:
        return accrued(principal, elapsed_seconds, self.rate_bps)

    def calculate_rewards(self, account, now: int) -> int:
        """
        Total reward owed to *account* at *now* without settling it.

        Args:
            account: StakeAccount record, or None for a never-seen account
            now: Current time in seconds
        """
        if account is None:
            return 0
        elapsed = max(0, now - account.last_accrual_timestamp)
        return account.unclaimed_rewards + self.accrued(account.staked_balance, elapsed)

    @property
    def annual_rate_percent(self) -> float:
        return self.rate_bps * 100 / BPS_DENOMINATOR
