"""
Infrastructure layer for AMM Adapter

Provides:
- RpcClient: HTTP RPC wrapper with read retries
- Signer: Transaction signing abstraction (local keypair)
- TxBuilder: Transaction assembly, sending and confirmation
- CorrelationContext / log_event: correlation ids for structured logs
"""

from .rpc import RpcClient, RpcClientConfig
from .solana_signer import (
    Signer,
    LocalSigner,
    create_signer,
)
from .tx_builder import TxBuilder, TxBuilderConfig
from .correlation import CorrelationContext, get_correlation_id, log_event

__all__ = [
    "RpcClient",
    "RpcClientConfig",
    "Signer",
    "LocalSigner",
    "create_signer",
    "TxBuilder",
    "TxBuilderConfig",
    "CorrelationContext",
    "get_correlation_id",
    "log_event",
]
