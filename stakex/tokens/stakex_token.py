"""
StakeX Token

In-memory fungible value token consumed by the staking pool:
  - ERC-20–style interface (transfer, approve, transfer_from, balance_of)
  - Integer amounts in the smallest unit (8 decimals by default)
  - Capability-gated minting: only holders of a MinterCapability issued by
    the token admin may mint
"""

import secrets
import time
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from ..address import generate_contract_address, normalize_address
from ..constants import (
    STAKEX_DECIMALS,
    STAKEX_INITIAL_SUPPLY,
    STAKEX_MAX_DECIMALS,
    STAKEX_TOKEN_NAME,
    STAKEX_TOKEN_SYMBOL,
)
from ..exceptions import (
    InsufficientAllowanceError,
    InsufficientBalanceError,
    TokenError,
    UnauthorizedError,
)
from ..logger import get_logger

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  UNIT CONVERSION
# ══════════════════════════════════════════════════════════════════════

def parse_units(value, decimals: int = STAKEX_DECIMALS) -> int:
    """
    Convert a human-readable amount ("4.99") into smallest units.

    Raises TokenError when *value* has more fractional digits than
    *decimals* allows or is not a number.
    """
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise TokenError(f"Invalid amount: {value!r}") from None
    if not amount.is_finite():
        raise TokenError(f"Invalid amount: {value!r}")
    scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise TokenError(f"{value} has more than {decimals} decimal places")
    return int(scaled)


def format_units(amount: int, decimals: int = STAKEX_DECIMALS) -> str:
    """Convert smallest units back into a human-readable string."""
    text = format(Decimal(amount).scaleb(-decimals), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TransferEvent:
    """Emitted on every successful transfer (and on mint, from the zero address)."""
    token_symbol: str
    sender: Optional[str]
    recipient: str
    amount: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Transfer",
            "token": self.token_symbol,
            "from": self.sender,
            "to": self.recipient,
            "amount": self.amount,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ApprovalEvent:
    """Emitted on every successful approve."""
    token_symbol: str
    owner: str
    spender: str
    amount: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Approval",
            "token": self.token_symbol,
            "owner": self.owner,
            "spender": self.spender,
            "amount": self.amount,
            "timestamp": self.timestamp,
        }


# ══════════════════════════════════════════════════════════════════════
#  MINTER CAPABILITY
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class MinterCapability:
    """
    Opaque proof of the right to mint on one token.

    Issued by `StakeXToken.grant_minter` and handed to the holder
    explicitly; there is no global role registry.
    """
    token_address: str
    holder: str
    nonce: str = field(default_factory=lambda: secrets.token_hex(16), repr=False)


# ══════════════════════════════════════════════════════════════════════
#  STAKEX TOKEN
# ══════════════════════════════════════════════════════════════════════

class StakeXToken:
    """
    StakeX value token.

    Mirrors ERC-20 semantics:
        - balance_of(address) → int
        - transfer(sender, recipient, amount)
        - approve(owner, spender, amount)
        - transfer_from(spender, owner, recipient, amount)
        - total_supply → int

    Minting:
        - grant_minter(admin, holder) → MinterCapability
        - mint(capability, recipient, amount)
    """

    def __init__(
        self,
        deployer: str,
        name: str = STAKEX_TOKEN_NAME,
        symbol: str = STAKEX_TOKEN_SYMBOL,
        decimals: int = STAKEX_DECIMALS,
        initial_supply: int = STAKEX_INITIAL_SUPPLY,
        *,
        address: Optional[str] = None,
    ):
        """
        Args:
            deployer: Token admin; receives the initial supply
            name: Human-readable token name
            symbol: Short ticker
            decimals: Fractional digits
            initial_supply: Smallest-unit amount minted to the deployer
            address: Token address (derived from deployer when omitted)
        """
        if not name:
            raise TokenError("Token name cannot be empty")
        if not symbol:
            raise TokenError("Token symbol cannot be empty")
        if decimals < 0 or decimals > STAKEX_MAX_DECIMALS:
            raise TokenError(f"Decimals must be 0-{STAKEX_MAX_DECIMALS}, got {decimals}")
        if initial_supply < 0:
            raise TokenError("Initial supply cannot be negative")

        self.admin = normalize_address(deployer)
        self.address = normalize_address(address) if address else generate_contract_address(self.admin, 0)
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self._total_supply = initial_supply

        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}  # (owner, spender)
        self._minters: Dict[str, MinterCapability] = {}  # holder -> capability
        self._events: List[Any] = []

        if initial_supply > 0:
            self._balances[self.admin] = initial_supply

        logger.info(
            f"Token deployed: {symbol} ({name}) at {self.address}, "
            f"supply={format_units(initial_supply, decimals)} {symbol}"
        )

    # ── Read-only views ───────────────────────────────────────────────

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, address: str) -> int:
        return self._balances.get(normalize_address(address), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((normalize_address(owner), normalize_address(spender)), 0)

    def has_minter(self, address: str) -> bool:
        return normalize_address(address) in self._minters

    @property
    def events(self) -> List[Any]:
        return list(self._events)

    # ── Core ERC-20 operations ────────────────────────────────────────

    def _require_positive(self, amount: int):
        if not isinstance(amount, int) or amount <= 0:
            raise TokenError(f"Amount must be a positive integer, got {amount!r}")

    def _move(self, sender: str, recipient: str, amount: int):
        bal = self._balances.get(sender, 0)
        if bal < amount:
            raise InsufficientBalanceError(
                f"{sender} balance {bal} < transfer amount {amount}"
            )
        self._balances[sender] = bal - amount
        self._balances[recipient] = self._balances.get(recipient, 0) + amount

    async def transfer(self, sender: str, recipient: str, amount: int) -> TransferEvent:
        """Move *amount* from *sender* to *recipient*."""
        self._require_positive(amount)
        sender = normalize_address(sender)
        recipient = normalize_address(recipient)

        self._move(sender, recipient, amount)

        event = TransferEvent(self.symbol, sender, recipient, amount)
        self._events.append(event)
        logger.debug(f"Transfer: {sender} → {recipient} {format_units(amount, self.decimals)} {self.symbol}")
        return event

    async def approve(self, owner: str, spender: str, amount: int) -> ApprovalEvent:
        """Set *spender*'s allowance over *owner*'s balance."""
        if not isinstance(amount, int) or amount < 0:
            raise TokenError("Allowance amount cannot be negative")
        owner = normalize_address(owner)
        spender = normalize_address(spender)

        self._allowances[(owner, spender)] = amount

        event = ApprovalEvent(self.symbol, owner, spender, amount)
        self._events.append(event)
        logger.debug(f"Approve: {owner} → {spender} allowance={format_units(amount, self.decimals)} {self.symbol}")
        return event

    async def transfer_from(
        self,
        spender: str,
        owner: str,
        recipient: str,
        amount: int,
    ) -> TransferEvent:
        """
        Transfer on behalf of *owner* using *spender*'s allowance.

        Both balance and allowance are checked before anything moves.
        """
        self._require_positive(amount)
        spender = normalize_address(spender)
        owner = normalize_address(owner)
        recipient = normalize_address(recipient)

        bal = self._balances.get(owner, 0)
        if bal < amount:
            raise InsufficientBalanceError(
                f"{owner} balance {bal} < transfer amount {amount}"
            )
        allow = self._allowances.get((owner, spender), 0)
        if allow < amount:
            raise InsufficientAllowanceError(
                f"Allowance {allow} < transfer amount {amount}"
            )

        self._move(owner, recipient, amount)
        self._allowances[(owner, spender)] = allow - amount

        event = TransferEvent(self.symbol, owner, recipient, amount)
        self._events.append(event)
        logger.debug(
            f"TransferFrom: spender={spender} {owner} → {recipient} "
            f"{format_units(amount, self.decimals)} {self.symbol}"
        )
        return event

    # ── Minting ───────────────────────────────────────────────────────

    def grant_minter(self, admin: str, holder: str) -> MinterCapability:
        """
        Issue a minting capability to *holder*. Only the token admin may do so.

        Granting twice to the same holder returns the existing capability.
        """
        if normalize_address(admin) != self.admin:
            raise UnauthorizedError(f"{admin} is not the admin of {self.symbol}")
        holder = normalize_address(holder)
        if holder not in self._minters:
            self._minters[holder] = MinterCapability(token_address=self.address, holder=holder)
            logger.info(f"Minter granted: {holder} for {self.symbol}")
        return self._minters[holder]

    def revoke_minter(self, admin: str, holder: str) -> bool:
        if normalize_address(admin) != self.admin:
            raise UnauthorizedError(f"{admin} is not the admin of {self.symbol}")
        removed = self._minters.pop(normalize_address(holder), None)
        if removed is not None:
            logger.warning(f"Minter revoked: {removed.holder} for {self.symbol}")
        return removed is not None

    def _require_minter(self, capability: MinterCapability):
        if not isinstance(capability, MinterCapability) or self._minters.get(capability.holder) != capability:
            raise UnauthorizedError(f"Mint on {self.symbol} attempted without a valid minter capability")

    async def mint(self, capability: MinterCapability, recipient: str, amount: int) -> TransferEvent:
        """Create *amount* new tokens for *recipient*."""
        self._require_minter(capability)
        self._require_positive(amount)
        recipient = normalize_address(recipient)

        self._total_supply += amount
        self._balances[recipient] = self._balances.get(recipient, 0) + amount

        event = TransferEvent(self.symbol, None, recipient, amount)
        self._events.append(event)
        logger.info(
            f"Mint: {format_units(amount, self.decimals)} {self.symbol} → {recipient} "
            f"(minter={capability.holder})"
        )
        return event

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "address": self.address,
            "decimals": self.decimals,
            "totalSupply": self._total_supply,
            "admin": self.admin,
            "minters": sorted(self._minters),
            "holders": len([b for b in self._balances.values() if b > 0]),
        }

    def __repr__(self) -> str:
        return f"<StakeXToken {self.symbol} supply={self._total_supply}>"
