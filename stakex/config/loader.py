"""
StakeX TOML Configuration Loader

Loads stakex.toml with environment variable overrides.

Environment variable mapping:
    [token] name            → STAKEX_TOKEN_NAME
    [token] symbol          → STAKEX_TOKEN_SYMBOL
    [token] decimals        → STAKEX_DECIMALS
    [token] initial_supply  → STAKEX_INITIAL_SUPPLY
    [token] deployer        → STAKEX_DEPLOYER
    [pool]  reward_rate_bps → STAKEX_REWARD_RATE_BPS
    [pool]  clock           → STAKEX_CLOCK
    [pool]  start_time      → STAKEX_START_TIME
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..constants import (
    REWARD_RATE_BPS,
    STAKEX_DECIMALS,
    STAKEX_INITIAL_SUPPLY,
    STAKEX_MAX_DECIMALS,
    STAKEX_TOKEN_NAME,
    STAKEX_TOKEN_SYMBOL,
)
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_DEPLOYER = "0x" + "d0" * 20
CLOCK_KINDS = ("system", "manual")


def _env_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None


def _require_type(section: str, key: str, value: Any, expected: type) -> None:
    # bool is an int subclass; TOML `true` is never a valid count
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        raise ConfigurationError(
            f"[{section}] {key} must be {expected.__name__}, got {type(value).__name__}"
        )


@dataclass
class TokenSectionConfig:
    """[token] section. `initial_supply` is in whole tokens."""
    name: str = STAKEX_TOKEN_NAME
    symbol: str = STAKEX_TOKEN_SYMBOL
    decimals: int = STAKEX_DECIMALS
    initial_supply: int = STAKEX_INITIAL_SUPPLY // 10 ** STAKEX_DECIMALS
    deployer: str = DEFAULT_DEPLOYER

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenSectionConfig":
        defaults = cls()
        return cls(
            name=data.get("name", defaults.name),
            symbol=data.get("symbol", defaults.symbol),
            decimals=data.get("decimals", defaults.decimals),
            initial_supply=data.get("initial_supply", defaults.initial_supply),
            deployer=data.get("deployer", defaults.deployer),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("STAKEX_TOKEN_NAME"):
            self.name = v
        if v := os.environ.get("STAKEX_TOKEN_SYMBOL"):
            self.symbol = v
        if v := os.environ.get("STAKEX_DECIMALS"):
            self.decimals = _env_int("STAKEX_DECIMALS", v)
        if v := os.environ.get("STAKEX_INITIAL_SUPPLY"):
            self.initial_supply = _env_int("STAKEX_INITIAL_SUPPLY", v)
        if v := os.environ.get("STAKEX_DEPLOYER"):
            self.deployer = v

    @property
    def initial_supply_units(self) -> int:
        return self.initial_supply * 10 ** self.decimals


@dataclass
class PoolSectionConfig:
    """[pool] section."""
    reward_rate_bps: int = REWARD_RATE_BPS
    clock: str = "system"
    start_time: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PoolSectionConfig":
        return cls(
            reward_rate_bps=data.get("reward_rate_bps", REWARD_RATE_BPS),
            clock=data.get("clock", "system"),
            start_time=data.get("start_time", 0),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("STAKEX_REWARD_RATE_BPS"):
            self.reward_rate_bps = _env_int("STAKEX_REWARD_RATE_BPS", v)
        if v := os.environ.get("STAKEX_CLOCK"):
            self.clock = v.strip().lower()
        if v := os.environ.get("STAKEX_START_TIME"):
            self.start_time = _env_int("STAKEX_START_TIME", v)


@dataclass
class StakingConfig:
    """
    Unified configuration for a token + pool deployment.

    This is the single source of truth at runtime.
    """
    token: TokenSectionConfig = field(default_factory=TokenSectionConfig)
    pool: PoolSectionConfig = field(default_factory=PoolSectionConfig)

    # --- factories --------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StakingConfig":
        """Create StakingConfig from a parsed TOML dict."""
        return cls(
            token=TokenSectionConfig.from_dict(data.get("token", {})),
            pool=PoolSectionConfig.from_dict(data.get("pool", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "StakingConfig":
        """
        Load configuration from a TOML file.

        A missing file is not an error: defaults plus environment overrides
        are used instead.
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s — using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        with open(path, "rb") as f:
            try:
                raw = tomli.load(f)
            except tomli.TOMLDecodeError as exc:
                raise ConfigurationError(f"Invalid TOML in {config_path}: {exc}") from exc

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.token.apply_env()
        self.pool.apply_env()

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ConfigurationError: on invalid config
        """
        for key in ("name", "symbol", "deployer"):
            _require_type("token", key, getattr(self.token, key), str)
        for key in ("decimals", "initial_supply"):
            _require_type("token", key, getattr(self.token, key), int)
        for key in ("reward_rate_bps", "start_time"):
            _require_type("pool", key, getattr(self.pool, key), int)
        _require_type("pool", "clock", self.pool.clock, str)

        if not self.token.name or not self.token.symbol:
            raise ConfigurationError("Token name and symbol are required")
        if not 0 <= self.token.decimals <= STAKEX_MAX_DECIMALS:
            raise ConfigurationError(f"decimals must be 0-{STAKEX_MAX_DECIMALS}")
        if self.token.initial_supply < 0:
            raise ConfigurationError("initial_supply cannot be negative")
        if self.pool.reward_rate_bps < 0:
            raise ConfigurationError("reward_rate_bps cannot be negative")
        if self.pool.clock not in CLOCK_KINDS:
            raise ConfigurationError(f"Invalid clock: {self.pool.clock!r} (expected one of {CLOCK_KINDS})")
        if self.pool.start_time < 0:
            raise ConfigurationError("start_time cannot be negative")
        return True

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token": {
                "name": self.token.name,
                "symbol": self.token.symbol,
                "decimals": self.token.decimals,
                "initial_supply": self.token.initial_supply,
                "deployer": self.token.deployer,
            },
            "pool": {
                "reward_rate_bps": self.pool.reward_rate_bps,
                "clock": self.pool.clock,
                "start_time": self.pool.start_time,
            },
        }


def load_config(path: Optional[str] = None) -> StakingConfig:
    """
    Load staking configuration.

    Resolution order:
        1. Explicit *path* argument
        2. STAKEX_CONFIG env var
        3. ./stakex.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("STAKEX_CONFIG", "stakex.toml")

    return StakingConfig.from_file(path)
