"""
StakeX Staking Pool

Accepts StakeX deposits, accrues simple interest on them and mints rewards
on claim.

Ordering rules around the token calls, which may re-enter the pool:
    - stake:   pull tokens in, then credit the ledger
    - unstake: debit the ledger, then push tokens out
    - claim:   zero unclaimed rewards, then mint

Each mutating operation runs under a per-account lock for its whole
duration. If the token call fails, the account's ledger entry is restored so
the operation leaves no trace.
"""

import asyncio
import contextvars
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from ..address import normalize_address
from ..clock import Clock, SystemClock
from ..exceptions import (
    InvariantViolationError,
    ReentrancyError,
    TokenError,
    TransferFailedError,
    UnauthorizedError,
    ZeroAmountError,
)
from ..logger import get_logger
from ..tokens.stakex_token import MinterCapability, StakeXToken, format_units
from .ledger import StakeAccount, StakingLedger
from .rewards import RewardAccrualEngine

logger = get_logger(__name__)

# (pool id, account) pairs whose lock is held by the current call chain
_held_accounts: contextvars.ContextVar[FrozenSet[Tuple[int, str]]] = contextvars.ContextVar(
    "stakex_held_accounts", default=frozenset()
)


class StakeState(Enum):
    """Position of an account on the principal axis."""
    UNSTAKED = "unstaked"
    STAKED = "staked"


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StakedEvent:
    account: str
    amount: int
    staked_balance: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Staked",
            "account": self.account,
            "amount": self.amount,
            "stakedBalance": self.staked_balance,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class UnstakedEvent:
    account: str
    amount: int
    staked_balance: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Unstaked",
            "account": self.account,
            "amount": self.amount,
            "stakedBalance": self.staked_balance,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class RewardsClaimedEvent:
    account: str
    amount: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "RewardsClaimed",
            "account": self.account,
            "amount": self.amount,
            "timestamp": self.timestamp,
        }


# ══════════════════════════════════════════════════════════════════════
#  STAKING POOL
# ══════════════════════════════════════════════════════════════════════

class StakingPool:
    """
    Staking pool bound to a single StakeX token.

    The pool's own address is the holder of *minter*, the capability it uses
    to mint rewards.
    """

    def __init__(
        self,
        token: StakeXToken,
        minter: MinterCapability,
        clock: Optional[Clock] = None,
        engine: Optional[RewardAccrualEngine] = None,
    ):
        """
        Args:
            token: Token staked in, and paid out as rewards by, this pool
            minter: Capability issued by *token* to the pool's address
            clock: Time source (system time when omitted)
            engine: Reward formula (5% simple annual interest when omitted)
        """
        if minter.token_address != token.address:
            raise UnauthorizedError(
                f"Minter capability belongs to {minter.token_address}, not {token.address}"
            )
        self._token = token
        self._minter = minter
        self.address = minter.holder
        self.clock = clock or SystemClock()
        self.ledger = StakingLedger(engine)
        self._locks: Dict[str, asyncio.Lock] = {}
        self._events: List[Any] = []

        logger.info(
            f"Staking pool deployed at {self.address} for {token.symbol} "
            f"({self.ledger.engine.annual_rate_percent:g}% APR)"
        )

    @property
    def token(self) -> StakeXToken:
        return self._token

    # =========================================================================
    # VIEWS
    # =========================================================================

    def staked_balance(self, account: str) -> int:
        return self.ledger.staked_balance(account)

    def calculate_rewards(self, account: str) -> int:
        """Unclaimed plus not-yet-settled reward for *account*, as of now."""
        return self.ledger.engine.calculate_rewards(self.ledger.get(account), self.clock.now())

    def state_of(self, account: str) -> StakeState:
        return StakeState.STAKED if self.staked_balance(account) > 0 else StakeState.UNSTAKED

    def get_account(self, account: str) -> Optional[StakeAccount]:
        return self.ledger.snapshot(account)

    @property
    def total_staked(self) -> int:
        return self.ledger.total_staked

    @property
    def events(self) -> List[Any]:
        return list(self._events)

    def check_invariants(self) -> bool:
        """
        Verify the pool's bookkeeping against the token.

        Raises:
            InvariantViolationError: if principal held by the pool on the
                token differs from the ledger, or any balance is negative
        """
        ledger_sum = 0
        for account in self.ledger.accounts():
            if account.staked_balance < 0 or account.unclaimed_rewards < 0:
                raise InvariantViolationError(f"Negative ledger entry for {account.address}")
            ledger_sum += account.staked_balance
        if ledger_sum != self.ledger.total_staked:
            raise InvariantViolationError(
                f"Cached total {self.ledger.total_staked} != ledger sum {ledger_sum}"
            )
        held = self._token.balance_of(self.address)
        if held != ledger_sum:
            raise InvariantViolationError(
                f"Pool holds {held} on {self._token.symbol} but ledger records {ledger_sum}"
            )
        return True

    # =========================================================================
    # LOCKING
    # =========================================================================

    @asynccontextmanager
    async def _account_lock(self, account: str):
        key = (id(self), account)
        held = _held_accounts.get()
        if key in held:
            raise ReentrancyError(f"Re-entrant pool call for {account}")

        lock = self._locks.setdefault(account, asyncio.Lock())
        async with lock:
            token = _held_accounts.set(held | {key})
            try:
                yield
            finally:
                _held_accounts.reset(token)

    @staticmethod
    def _require_amount(amount: int, action: str):
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise TypeError(f"{action} amount must be an integer, got {amount!r}")
        if amount <= 0:
            raise ZeroAmountError(f"{action} amount must be greater than zero")

    def _fmt(self, amount: int) -> str:
        return f"{format_units(amount, self._token.decimals)} {self._token.symbol}"

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    async def stake(self, caller: str, amount: int) -> StakedEvent:
        """
        Deposit *amount* from *caller* into the pool.

        The caller must have approved the pool for at least *amount*.

        Raises:
            ZeroAmountError: amount is zero
            TransferFailedError: balance or allowance too low
        """
        self._require_amount(amount, "Stake")
        caller = normalize_address(caller)

        async with self._account_lock(caller):
            now = self.clock.now()
            self.ledger.check_clock(caller, now)
            try:
                await self._token.transfer_from(self.address, caller, self.address, amount)
            except TokenError as exc:
                logger.warning(f"Stake by {caller} failed: {exc}")
                raise TransferFailedError(f"Could not pull {self._fmt(amount)} from {caller}: {exc}") from exc

            account = self.ledger.increase_principal(caller, amount, now)
            event = StakedEvent(caller, amount, account.staked_balance, now)
            self._events.append(event)

        logger.info(f"Staked: {caller} deposited {self._fmt(amount)}, balance {self._fmt(event.staked_balance)}")
        return event

    async def unstake(self, caller: str, amount: int) -> UnstakedEvent:
        """
        Withdraw *amount* of principal back to *caller*.

        Unclaimed rewards are kept and remain claimable.

        Raises:
            ZeroAmountError: amount is zero
            InsufficientStakeError: amount exceeds the caller's principal
            TransferFailedError: the token refused the payout
        """
        self._require_amount(amount, "Unstake")
        caller = normalize_address(caller)

        async with self._account_lock(caller):
            now = self.clock.now()
            snapshot = self.ledger.snapshot(caller)
            account = self.ledger.decrease_principal(caller, amount, now)
            event = UnstakedEvent(caller, amount, account.staked_balance, now)
            try:
                await self._token.transfer(self.address, caller, amount)
            except Exception as exc:
                self.ledger.restore(caller, snapshot)
                if isinstance(exc, TokenError):
                    logger.warning(f"Unstake by {caller} failed: {exc}")
                    raise TransferFailedError(f"Could not return {self._fmt(amount)} to {caller}: {exc}") from exc
                raise
            self._events.append(event)

        logger.info(f"Unstaked: {caller} withdrew {self._fmt(amount)}, balance {self._fmt(event.staked_balance)}")
        return event

    async def claim_rewards(self, caller: str) -> int:
        """
        Mint everything owed to *caller* and reset their rewards to zero.

        Returns:
            The amount minted

        Raises:
            NoRewardsAvailableError: nothing has accrued
            UnauthorizedError: the pool's minter capability was revoked
        """
        caller = normalize_address(caller)

        async with self._account_lock(caller):
            now = self.clock.now()
            snapshot = self.ledger.snapshot(caller)
            amount = self.ledger.drain_rewards(caller, now)
            try:
                await self._token.mint(self._minter, caller, amount)
            except Exception:
                self.ledger.restore(caller, snapshot)
                logger.warning(f"Reward mint of {self._fmt(amount)} to {caller} failed", exc_info=True)
                raise
            self._events.append(RewardsClaimedEvent(caller, amount, now))

        logger.info(f"RewardsClaimed: {caller} received {self._fmt(amount)}")
        return amount

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "token": self._token.address,
            "rewardRateBps": self.ledger.engine.rate_bps,
            "totalStaked": self.ledger.total_staked,
            "stakers": len([a for a in self.ledger.accounts() if a.staked_balance > 0]),
        }

    def __repr__(self) -> str:
        return f"<StakingPool {self.address} staked={self.ledger.total_staked}>"
