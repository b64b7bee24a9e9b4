"""
Type definitions for AMM Adapter
"""

from .pool import (
    CpPoolState,
    VaultBalance,
    PoolSnapshot,
    CpPoolKeys,
    ClmmPoolKeys,
    MintInfo,
    OwnerTokenAccounts,
)
from .result import (
    TxResult,
    TxStatus,
    RoundDirection,
    TradingTokenResult,
    LiquidityQuote,
    LiquidityResult,
)
from .market import SignatureInfo, ProgramAccountActivity

__all__ = [
    "CpPoolState",
    "VaultBalance",
    "PoolSnapshot",
    "CpPoolKeys",
    "ClmmPoolKeys",
    "MintInfo",
    "OwnerTokenAccounts",
    "TxResult",
    "TxStatus",
    "RoundDirection",
    "TradingTokenResult",
    "LiquidityQuote",
    "LiquidityResult",
    "SignatureInfo",
    "ProgramAccountActivity",
]
