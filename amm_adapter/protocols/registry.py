"""
Protocol adapter registry

Provides centralized registration and lookup for AMM adapters.
"""

from typing import Dict, List, Tuple, Type, TYPE_CHECKING
import logging
import weakref

if TYPE_CHECKING:
    from .base import AmmProtocol
    from ..infra import RpcClient

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


class ProtocolRegistry:
    """
    Registry for AMM adapters

    Manages adapter registration and instantiation.
    Built-in adapters are loaded on first lookup.

    Usage:
        # Get adapter instance
        adapter = ProtocolRegistry.get("raydium_cp", rpc_client)

        # Register a custom adapter class
        ProtocolRegistry.register("my_amm", MyAmmAdapter)

        # List available protocols
        protocols = ProtocolRegistry.list()
    """

    BUILTIN = ("raydium_cp", "raydium_clmm")

    # Registered adapter classes
    _adapters: Dict[str, Type["AmmProtocol"]] = {}

    # Cached adapter instances keyed by (protocol, id(rpc)), held weakly:
    # an entry lives only while its adapter is referenced elsewhere
    _instances: "weakref.WeakValueDictionary[Tuple[str, int], AmmProtocol]" = (
        weakref.WeakValueDictionary()
    )

    @classmethod
    def register(cls, name: str, adapter_class: Type["AmmProtocol"]):
        """
        Register an adapter class

        Args:
            name: Protocol name (e.g., "raydium_cp")
            adapter_class: Adapter class (not instance)
        """
        cls._adapters[name.lower()] = adapter_class
        logger.debug(f"Registered protocol adapter: {name}")

    @classmethod
    def get(
        cls,
        name: str,
        rpc: "RpcClient",
        cache: bool = True,
    ) -> "AmmProtocol":
        """
        Get adapter instance for protocol

        Args:
            name: Protocol name
            rpc: RPC client
            cache: Whether to cache the instance

        Returns:
            Adapter instance

        Raises:
            ConfigurationError: If protocol not registered
        """
        name_lower = name.lower()

        if name_lower not in cls._adapters:
            cls._load_builtin(name_lower)

        if name_lower not in cls._adapters:
            available = ", ".join(sorted(set(cls._adapters) | set(cls.BUILTIN)))
            raise ConfigurationError.invalid(
                "protocol", f"Unknown protocol: {name}. Available protocols: {available}"
            )

        cache_key = (name_lower, id(rpc))
        if cache:
            cached = cls._instances.get(cache_key)
            if cached is not None:
                return cached

        instance = cls._adapters[name_lower](rpc)

        if cache:
            cls._instances[cache_key] = instance

        return instance

    @classmethod
    def list(cls) -> List[str]:
        """List registered protocol names"""
        for name in cls.BUILTIN:
            if name not in cls._adapters:
                cls._load_builtin(name)
        return list(cls._adapters.keys())

    @classmethod
    def is_registered(cls, name: str) -> bool:
        """Check if protocol is registered"""
        return name.lower() in cls._adapters

    @classmethod
    def evict(cls, rpc: "RpcClient") -> int:
        """
        Drop cached adapters bound to an rpc client

        Returns:
            Number of evicted adapters
        """
        keys = [key for key in list(cls._instances.keys()) if key[1] == id(rpc)]
        for key in keys:
            cls._instances.pop(key, None)
        if keys:
            logger.debug(f"Evicted {len(keys)} cached adapter(s) for {rpc!r}")
        return len(keys)

    @classmethod
    def clear_cache(cls):
        """Clear cached adapter instances"""
        cls._instances.clear()

    @classmethod
    def _load_builtin(cls, name: str):
        """Import a built-in adapter on first use"""
        if name == "raydium_cp":
            from .raydium import RaydiumCpSwapAdapter
            cls.register("raydium_cp", RaydiumCpSwapAdapter)
        elif name == "raydium_clmm":
            from .raydium import RaydiumClmmAdapter
            cls.register("raydium_clmm", RaydiumClmmAdapter)


def get_adapter(name: str, rpc: "RpcClient") -> "AmmProtocol":
    """
    Convenience function to get adapter

    Args:
        name: Protocol name
        rpc: RPC client

    Returns:
        Adapter instance
    """
    return ProtocolRegistry.get(name, rpc)


def register_adapter(name: str, adapter_class: Type["AmmProtocol"]):
    """
    Convenience function to register adapter

    Args:
        name: Protocol name
        adapter_class: Adapter class
    """
    ProtocolRegistry.register(name, adapter_class)
