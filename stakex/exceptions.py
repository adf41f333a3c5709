"""
StakeX Exceptions

Custom exception classes for the StakeX token and staking pool.
"""


class StakeXException(Exception):
    """Base exception for StakeX."""
    pass


# -- Staking pool ------------------------------------------------------------

class StakingError(StakeXException):
    """Base exception for staking pool operations."""
    pass


class ZeroAmountError(StakingError):
    """Stake or unstake invoked with a zero amount."""
    pass


class InsufficientStakeError(StakingError):
    """Unstake amount exceeds the account's staked principal."""
    pass


class TransferFailedError(StakingError):
    """Underlying token pull/push did not succeed."""
    pass


class NoRewardsAvailableError(StakingError):
    """Claim invoked with nothing accrued or unclaimed."""
    pass


class ReentrancyError(StakingError):
    """Pool re-entered for an account that already has an operation in flight."""
    pass


class ClockError(StakingError):
    """Clock reading is earlier than the account's last settlement."""
    pass


class InvariantViolationError(StakingError):
    """Pool bookkeeping disagrees with the token's view of pool holdings."""
    pass


# -- Token -------------------------------------------------------------------

class TokenError(StakeXException):
    """Base exception for token operations."""
    pass


class InsufficientBalanceError(TokenError):
    """Sender balance is too low."""
    pass


class InsufficientAllowanceError(TokenError):
    """Spender allowance is too low."""
    pass


class UnauthorizedError(TokenError):
    """Caller lacks the capability required for the operation."""
    pass


# -- Misc --------------------------------------------------------------------

class InvalidAddressError(StakeXException):
    """Invalid address format."""
    pass


class ConfigurationError(StakeXException):
    """Configuration error."""
    pass
