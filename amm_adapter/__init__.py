"""
AMM Adapter - Raydium CP-Swap and CLMM client for Solana

Provides:
- Pool creation (constant product and concentrated liquidity)
- Deposit / withdraw with slippage guards
- Atomic deposit-then-withdraw
- Program derived address derivation and instruction encoding
- Program account inspection with recent signatures
"""

from .client import AmmClient
from .protocols import AmmOperation, CreatePoolParams, ProtocolRegistry
from .types import (
    CpPoolState,
    CpPoolKeys,
    ClmmPoolKeys,
    PoolSnapshot,
    TxResult,
    TxStatus,
    RoundDirection,
    TradingTokenResult,
    LiquidityQuote,
    LiquidityResult,
    ProgramAccountActivity,
    SignatureInfo,
)
from .errors import (
    AmmAdapterError,
    RpcError,
    MathError,
    DerivationError,
    PoolUnavailable,
    TransactionError,
    SignerError,
    ConfigurationError,
    OperationNotSupported,
    ErrorCode,
)

__version__ = "0.1.0"

__all__ = [
    # Client
    "AmmClient",
    # Protocols
    "AmmOperation",
    "CreatePoolParams",
    "ProtocolRegistry",
    # Types
    "CpPoolState",
    "CpPoolKeys",
    "ClmmPoolKeys",
    "PoolSnapshot",
    "TxResult",
    "TxStatus",
    "RoundDirection",
    "TradingTokenResult",
    "LiquidityQuote",
    "LiquidityResult",
    "ProgramAccountActivity",
    "SignatureInfo",
    # Errors
    "AmmAdapterError",
    "RpcError",
    "MathError",
    "DerivationError",
    "PoolUnavailable",
    "TransactionError",
    "SignerError",
    "ConfigurationError",
    "OperationNotSupported",
    "ErrorCode",
]
