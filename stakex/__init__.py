"""
StakeX Staking Package

Core imports are lazily loaded so that `stakex.constants` and
`stakex.exceptions` can be used without configuring logging.
For direct module access, import from submodules:

    from stakex.staking import StakingPool
    from stakex.tokens import StakeXToken
    from stakex.deploy import deploy_staking_system
"""

__version__ = "1.0.0"


def __getattr__(name):
    """Lazy module loading."""
    if name == 'StakingPool':
        from .staking import StakingPool
        return StakingPool
    elif name == 'StakeXToken':
        from .tokens import StakeXToken
        return StakeXToken
    elif name == 'deploy_staking_system':
        from .deploy import deploy_staking_system
        return deploy_staking_system
    raise AttributeError(f"module 'stakex' has no attribute {name!r}")

__all__ = ['StakingPool', 'StakeXToken', 'deploy_staking_system', '__version__']
