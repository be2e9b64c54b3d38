"""
contracts - Deployable Vesting Variants

    TokenVesting    single asset, separate owner and project role
    InsuredVesting  funding asset in, project asset out, refundable decisions
    SimpleVesting   single asset, one administrator holding both roles
"""

from .base import VestingContract
from .vesting import TokenVesting
from .insured import InsuredVesting
from .simple import SimpleVesting

__all__ = [
    "VestingContract",
    "TokenVesting",
    "InsuredVesting",
    "SimpleVesting",
]
