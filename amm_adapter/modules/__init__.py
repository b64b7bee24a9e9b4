"""
Functional modules for AmmClient

Provides high-level operations:
- LiquidityModule: pool creation and LP operations
- MarketModule: program account inspection
"""

from .liquidity import LiquidityModule
from .market import MarketModule

__all__ = ["LiquidityModule", "MarketModule"]
