"""
StakeX Staking Ledger

Per-account principal and accrual bookkeeping. The ledger knows nothing
about token transfers; the pool moves tokens and calls into the ledger.
"""

from dataclasses import dataclass, replace
from typing import Dict, Iterator, Optional

from ..address import normalize_address
from ..exceptions import (
    ClockError,
    InsufficientStakeError,
    NoRewardsAvailableError,
    ZeroAmountError,
)
from ..logger import get_logger
from .rewards import RewardAccrualEngine

logger = get_logger(__name__)


@dataclass
class StakeAccount:
    """
    Ledger record for one account.

    Attributes:
        address: Checksum address of the staker
        staked_balance: Principal, smallest token unit
        unclaimed_rewards: Settled but unpaid reward
        last_accrual_timestamp: Time from which new accrual is measured
    """
    address: str
    staked_balance: int = 0
    unclaimed_rewards: int = 0
    last_accrual_timestamp: int = 0

    @property
    def is_dormant(self) -> bool:
        return self.staked_balance == 0 and self.unclaimed_rewards == 0

    def to_dict(self) -> dict:
        return {
            'address': self.address,
            'staked_balance': self.staked_balance,
            'unclaimed_rewards': self.unclaimed_rewards,
            'last_accrual_timestamp': self.last_accrual_timestamp,
        }


class StakingLedger:
    """
    Mapping from account address to StakeAccount.

    Records are created lazily, zero-valued, on the first mutating access
    and are never removed.
    """

    def __init__(self, engine: Optional[RewardAccrualEngine] = None):
        self.engine = engine or RewardAccrualEngine()
        self._accounts: Dict[str, StakeAccount] = {}
        self._total_staked = 0

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get(self, address: str) -> Optional[StakeAccount]:
        return self._accounts.get(normalize_address(address))

    def staked_balance(self, address: str) -> int:
        account = self.get(address)
        return account.staked_balance if account else 0

    @property
    def total_staked(self) -> int:
        return self._total_staked

    def accounts(self) -> Iterator[StakeAccount]:
        return iter(list(self._accounts.values()))

    def __len__(self) -> int:
        return len(self._accounts)

    def check_clock(self, address: str, now: int):
        """Raise ClockError if *now* is earlier than the account's last settlement."""
        account = self.get(address)
        if account is not None and now < account.last_accrual_timestamp:
            raise ClockError(
                f"Clock reading {now} is before last settlement "
                f"{account.last_accrual_timestamp} for {account.address}"
            )

    def _account(self, address: str) -> StakeAccount:
        address = normalize_address(address)
        account = self._accounts.get(address)
        if account is None:
            account = StakeAccount(address=address)
            self._accounts[address] = account
        return account

    # =========================================================================
    # MUTATORS
    # =========================================================================

    def settle(self, address: str, now: int) -> int:
        """
        Bank reward accrued since the last settlement and restart the clock.

        Returns:
            The amount newly added to unclaimed rewards (0 on a repeat call
            at the same *now*).
        """
        self.check_clock(address, now)
        account = self._account(address)
        reward = self.engine.accrued(account.staked_balance, now - account.last_accrual_timestamp)
        account.unclaimed_rewards += reward
        account.last_accrual_timestamp = now
        return reward

    def increase_principal(self, address: str, amount: int, now: int) -> StakeAccount:
        if amount <= 0:
            raise ZeroAmountError("Stake amount must be greater than zero")
        self.settle(address, now)
        account = self._account(address)
        account.staked_balance += amount
        self._total_staked += amount
        return account

    def decrease_principal(self, address: str, amount: int, now: int) -> StakeAccount:
        if amount <= 0:
            raise ZeroAmountError("Unstake amount must be greater than zero")
        staked = self.staked_balance(address)
        if amount > staked:
            raise InsufficientStakeError(
                f"Cannot unstake {amount}: only {staked} staked by {address}"
            )
        self.settle(address, now)
        account = self._account(address)
        account.staked_balance -= amount
        self._total_staked -= amount
        return account

    def drain_rewards(self, address: str, now: int) -> int:
        """
        Settle, then zero and return the account's unclaimed rewards.

        Raises:
            NoRewardsAvailableError: if nothing is owed after settlement
        """
        account = self.get(address)
        if self.engine.calculate_rewards(account, now) == 0:
            raise NoRewardsAvailableError(f"No rewards available for {address}")
        self.settle(address, now)
        account = self._account(address)
        amount = account.unclaimed_rewards
        account.unclaimed_rewards = 0
        return amount

    # =========================================================================
    # ROLLBACK
    # =========================================================================

    def snapshot(self, address: str) -> Optional[StakeAccount]:
        """Copy of the account record (None if the account was never touched)."""
        account = self.get(address)
        return replace(account) if account else None

    def restore(self, address: str, snapshot: Optional[StakeAccount]):
        """Put an account back exactly as captured by `snapshot`."""
        address = normalize_address(address)
        current = self._accounts.get(address)
        current_staked = current.staked_balance if current else 0
        if snapshot is None:
            self._accounts.pop(address, None)
            self._total_staked -= current_staked
        else:
            self._accounts[address] = replace(snapshot)
            self._total_staked += snapshot.staked_balance - current_staked
        logger.debug(f"Ledger entry restored for {address}")

    def to_dict(self) -> dict:
        return {
            'total_staked': self._total_staked,
            'accounts': {a: acc.to_dict() for a, acc in self._accounts.items()},
        }
