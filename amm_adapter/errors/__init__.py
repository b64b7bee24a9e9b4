"""
Error definitions for AMM Adapter
"""

from .exceptions import (
    ErrorCode,
    AmmAdapterError,
    RpcError,
    MathError,
    DerivationError,
    PoolUnavailable,
    TransactionError,
    SignerError,
    ConfigurationError,
    OperationNotSupported,
)

__all__ = [
    "ErrorCode",
    "AmmAdapterError",
    "RpcError",
    "MathError",
    "DerivationError",
    "PoolUnavailable",
    "TransactionError",
    "SignerError",
    "ConfigurationError",
    "OperationNotSupported",
]
