"""
Staking Ledger & Reward Accrual Test Suite

Coverage:
  - accrued(): simple-interest formula, floor rounding, argument checks
  - RewardAccrualEngine: custom rates, read-only reward calculation
  - StakingLedger: settle, principal changes, reward draining, rollback
"""

import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from stakex.address import normalize_address
from stakex.constants import SECONDS_PER_YEAR, STAKEX_DECIMALS
from stakex.exceptions import (
    ClockError,
    InsufficientStakeError,
    NoRewardsAvailableError,
    ZeroAmountError,
)
from stakex.staking import RewardAccrualEngine, StakeAccount, StakingLedger, accrued


ALICE = normalize_address("0x" + "a1" * 20)
BOB = normalize_address("0x" + "b2" * 20)

ONE = 10 ** STAKEX_DECIMALS
T0 = 1_700_000_000
YEAR = SECONDS_PER_YEAR


def make_ledger(stakes=None, at=T0) -> StakingLedger:
    """Helper: ledger with *stakes* (address → units) credited at *at*."""
    ledger = StakingLedger()
    for address, amount in (stakes or {}).items():
        ledger.increase_principal(address, amount, at)
    return ledger


# ══════════════════════════════════════════════════════════════════════
#  REWARD FORMULA
# ══════════════════════════════════════════════════════════════════════


class TestAccrued:

    def test_one_year_is_five_percent(self):
        assert accrued(100 * ONE, YEAR) == 5 * ONE

    def test_half_year(self):
        assert accrued(100 * ONE, YEAR // 2) == 250_000_000

    def test_linear_in_principal(self):
        assert accrued(200 * ONE, YEAR) == 2 * accrued(100 * ONE, YEAR)

    def test_floor_rounding(self):
        # 19 units * 5% = 0.95 → 0; 20 units * 5% = 1
        assert accrued(19, YEAR) == 0
        assert accrued(20, YEAR) == 1
        assert accrued(100 * ONE, 1) == 15

    def test_zero_inputs(self):
        assert accrued(0, YEAR) == 0
        assert accrued(100 * ONE, 0) == 0

    def test_negative_elapsed_raises(self):
        with pytest.raises(ValueError, match="Elapsed"):
            accrued(100, -1)

    def test_negative_principal_raises(self):
        with pytest.raises(ValueError, match="Principal"):
            accrued(-1, 10)


class TestRewardAccrualEngine:

    def test_default_rate(self):
        engine = RewardAccrualEngine()
        assert engine.rate_bps == 500
        assert engine.annual_rate_percent == 5.0

    def test_custom_rate(self):
        engine = RewardAccrualEngine(rate_bps=1_000)
        assert engine.accrued(100 * ONE, YEAR) == 10 * ONE

    def test_negative_rate_raises(self):
        with pytest.raises(ValueError):
            RewardAccrualEngine(rate_bps=-1)

    def test_calculate_unknown_account(self):
        assert RewardAccrualEngine().calculate_rewards(None, T0) == 0

    def test_calculate_includes_unclaimed(self):
        account = StakeAccount(
            address=ALICE,
            staked_balance=100 * ONE,
            unclaimed_rewards=7,
            last_accrual_timestamp=T0,
        )
        assert RewardAccrualEngine().calculate_rewards(account, T0 + YEAR) == 5 * ONE + 7

    def test_calculate_does_not_mutate(self):
        account = StakeAccount(address=ALICE, staked_balance=100 * ONE, last_accrual_timestamp=T0)
        RewardAccrualEngine().calculate_rewards(account, T0 + YEAR)
        assert account.unclaimed_rewards == 0
        assert account.last_accrual_timestamp == T0


# ══════════════════════════════════════════════════════════════════════
#  LEDGER
# ══════════════════════════════════════════════════════════════════════


class TestSettle:

    def test_settle_banks_reward(self):
        ledger = make_ledger({ALICE: 100 * ONE})
        assert ledger.settle(ALICE, T0 + YEAR) == 5 * ONE
        account = ledger.get(ALICE)
        assert account.unclaimed_rewards == 5 * ONE
        assert account.last_accrual_timestamp == T0 + YEAR

    def test_settle_is_idempotent_at_same_time(self):
        ledger = make_ledger({ALICE: 100 * ONE})
        ledger.settle(ALICE, T0 + YEAR)
        assert ledger.settle(ALICE, T0 + YEAR) == 0
        assert ledger.get(ALICE).unclaimed_rewards == 5 * ONE

    def test_settle_rejects_clock_going_backwards(self):
        ledger = make_ledger({ALICE: 100 * ONE}, at=T0 + 10)
        with pytest.raises(ClockError):
            ledger.settle(ALICE, T0)
        assert ledger.get(ALICE).last_accrual_timestamp == T0 + 10

    def test_first_touch_creates_zero_record(self):
        ledger = StakingLedger()
        ledger.settle(ALICE, T0)
        account = ledger.get(ALICE)
        assert account.staked_balance == 0
        assert account.unclaimed_rewards == 0
        assert account.is_dormant


class TestPrincipal:

    def test_increase(self):
        ledger = make_ledger({ALICE: 100 * ONE})
        assert ledger.staked_balance(ALICE) == 100 * ONE
        assert ledger.total_staked == 100 * ONE
        assert ledger.get(ALICE).last_accrual_timestamp == T0

    def test_increase_zero_raises_without_creating_record(self):
        ledger = StakingLedger()
        with pytest.raises(ZeroAmountError):
            ledger.increase_principal(ALICE, 0, T0)
        assert ledger.get(ALICE) is None
        assert len(ledger) == 0

    def test_second_stake_settles_first(self):
        ledger = make_ledger({ALICE: 100 * ONE})
        ledger.increase_principal(ALICE, 100 * ONE, T0 + YEAR // 2)
        assert ledger.get(ALICE).unclaimed_rewards == 250_000_000
        ledger.settle(ALICE, T0 + YEAR)
        assert ledger.get(ALICE).unclaimed_rewards == 250_000_000 + 500_000_000

    def test_decrease(self):
        ledger = make_ledger({ALICE: 100 * ONE})
        ledger.decrease_principal(ALICE, 40 * ONE, T0 + YEAR)
        account = ledger.get(ALICE)
        assert account.staked_balance == 60 * ONE
        assert account.unclaimed_rewards == 5 * ONE
        assert ledger.total_staked == 60 * ONE

    def test_decrease_more_than_staked_raises(self):
        ledger = make_ledger({ALICE: 100 * ONE})
        with pytest.raises(InsufficientStakeError):
            ledger.decrease_principal(ALICE, 101 * ONE, T0 + YEAR)
        account = ledger.get(ALICE)
        assert account.staked_balance == 100 * ONE
        assert account.unclaimed_rewards == 0
        assert account.last_accrual_timestamp == T0

    def test_decrease_zero_raises(self):
        ledger = make_ledger({ALICE: 100 * ONE})
        with pytest.raises(ZeroAmountError):
            ledger.decrease_principal(ALICE, 0, T0)

    def test_decrease_unknown_account_raises(self):
        ledger = StakingLedger()
        with pytest.raises(InsufficientStakeError):
            ledger.decrease_principal(BOB, 1, T0)
        assert ledger.get(BOB) is None

    def test_total_tracks_accounts(self):
        ledger = make_ledger({ALICE: 10, BOB: 20})
        ledger.decrease_principal(BOB, 5, T0)
        assert ledger.total_staked == sum(a.staked_balance for a in ledger.accounts()) == 25


class TestDrainRewards:

    def test_drain_returns_and_zeroes(self):
        ledger = make_ledger({ALICE: 100 * ONE})
        assert ledger.drain_rewards(ALICE, T0 + YEAR) == 5 * ONE
        account = ledger.get(ALICE)
        assert account.unclaimed_rewards == 0
        assert account.last_accrual_timestamp == T0 + YEAR
        assert account.staked_balance == 100 * ONE

    def test_drain_nothing_raises(self):
        ledger = StakingLedger()
        with pytest.raises(NoRewardsAvailableError):
            ledger.drain_rewards(ALICE, T0)
        assert ledger.get(ALICE) is None

    def test_drain_twice_at_same_time_raises(self):
        ledger = make_ledger({ALICE: 100 * ONE})
        ledger.drain_rewards(ALICE, T0 + YEAR)
        with pytest.raises(NoRewardsAvailableError):
            ledger.drain_rewards(ALICE, T0 + YEAR)

    def test_drain_after_full_unstake(self):
        ledger = make_ledger({ALICE: 100 * ONE})
        ledger.decrease_principal(ALICE, 100 * ONE, T0 + YEAR)
        assert ledger.drain_rewards(ALICE, T0 + 2 * YEAR) == 5 * ONE
        assert ledger.get(ALICE).is_dormant


class TestRollback:

    def test_snapshot_is_a_copy(self):
        ledger = make_ledger({ALICE: 100 * ONE})
        snap = ledger.snapshot(ALICE)
        ledger.decrease_principal(ALICE, 50 * ONE, T0 + YEAR)
        assert snap.staked_balance == 100 * ONE

    def test_restore_existing(self):
        ledger = make_ledger({ALICE: 100 * ONE, BOB: 10})
        snap = ledger.snapshot(ALICE)
        ledger.decrease_principal(ALICE, 50 * ONE, T0 + YEAR)
        ledger.restore(ALICE, snap)
        assert ledger.get(ALICE) == snap
        assert ledger.total_staked == 100 * ONE + 10

    def test_restore_to_untouched(self):
        ledger = StakingLedger()
        snap = ledger.snapshot(ALICE)
        assert snap is None
        ledger.increase_principal(ALICE, 5, T0)
        ledger.restore(ALICE, snap)
        assert ledger.get(ALICE) is None
        assert ledger.total_staked == 0

    def test_to_dict(self):
        ledger = make_ledger({ALICE: 3})
        d = ledger.to_dict()
        assert d["total_staked"] == 3
        assert d["accounts"][ALICE]["staked_balance"] == 3
