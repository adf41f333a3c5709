"""
StakeX configuration.

Loads stakex.toml; environment variables override TOML values.
"""

from .loader import (
    StakingConfig,
    TokenSectionConfig,
    PoolSectionConfig,
    load_config,
)

__all__ = [
    "StakingConfig",
    "TokenSectionConfig",
    "PoolSectionConfig",
    "load_config",
]
