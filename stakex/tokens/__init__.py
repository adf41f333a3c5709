"""
StakeX value token.

Provides:
  - StakeXToken      : 8-decimal fungible token with ERC-20–style interface
  - MinterCapability : opaque right to mint, issued by the token admin
"""

from .stakex_token import (
    StakeXToken,
    MinterCapability,
    TransferEvent,
    ApprovalEvent,
    parse_units,
    format_units,
)

__all__ = [
    "StakeXToken",
    "MinterCapability",
    "TransferEvent",
    "ApprovalEvent",
    "parse_units",
    "format_units",
]
