"""
Raydium CP-Swap and CLMM protocol support
"""

from .adapter import RaydiumCpSwapAdapter, RaydiumClmmAdapter

__all__ = ["RaydiumCpSwapAdapter", "RaydiumClmmAdapter"]
