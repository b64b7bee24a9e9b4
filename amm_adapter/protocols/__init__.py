"""
AMM protocol adapters
"""

from .base import AmmOperation, AmmProtocol, CreatePoolParams, CreatePoolPlan
from .registry import ProtocolRegistry, get_adapter, register_adapter

__all__ = [
    "AmmOperation",
    "AmmProtocol",
    "CreatePoolParams",
    "CreatePoolPlan",
    "ProtocolRegistry",
    "get_adapter",
    "register_adapter",
]
