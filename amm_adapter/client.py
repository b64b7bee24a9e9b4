"""
AmmClient - Unified entry point for AMM operations

Wires the RPC client, signer and transaction builder together and exposes
the liquidity and market modules.
"""

from __future__ import annotations

from typing import Optional, Union, List, TYPE_CHECKING

if TYPE_CHECKING:
    from solders.keypair import Keypair

from .config import config
from .infra import RpcClient, RpcClientConfig, TxBuilder, TxBuilderConfig, create_signer, Signer
from .protocols import AmmProtocol, ProtocolRegistry


class AmmClient:
    """
    AMM adapter client

    Usage:
        # Endpoint and key material from the environment (.env)
        client = AmmClient()

        # Or injected
        client = AmmClient(
            rpc_url="https://api.devnet.solana.com",
            keypair_path="~/.config/solana/id.json",
        )

        keys = client.lp.pool_keys(mint_0, mint_1)
        result = client.lp.deposit(keys, lp_amount=1_000_000)
    """

    def __init__(
        self,
        rpc_url: Optional[Union[str, List[str]]] = None,
        keypair: Optional["Keypair"] = None,
        keypair_path: Optional[str] = None,
        private_key: Optional[str] = None,
        signer: Optional[Signer] = None,
        rpc_config: Optional[RpcClientConfig] = None,
        tx_config: Optional[TxBuilderConfig] = None,
    ):
        """
        Initialize AmmClient

        Args:
            rpc_url: RPC endpoint URL or list of URLs for fallback
                (default: SOLANA_RPC_URL)
            keypair: Optional Keypair for local signing
            keypair_path: Optional path to keypair file
            private_key: Optional base58 or JSON byte array secret
            signer: Ready-made signer (takes precedence over key material)
            rpc_config: Optional RPC configuration
            tx_config: Optional transaction configuration

        Raises:
            ConfigurationError: No RPC endpoint configured
            SignerError: No key material configured
        """
        self._rpc = RpcClient(rpc_url if rpc_url is not None else config.rpc.url, config=rpc_config)

        self._signer = signer or create_signer(
            keypair=keypair,
            keypair_path=keypair_path,
            private_key=private_key,
        )

        self._tx_builder = TxBuilder(self._rpc, self._signer, config=tx_config)

        self._lp: Optional["LiquidityModule"] = None
        self._market: Optional["MarketModule"] = None

    @property
    def rpc(self) -> RpcClient:
        """Access to RPC client"""
        return self._rpc

    @property
    def signer(self) -> Signer:
        """Access to signer"""
        return self._signer

    @property
    def tx_builder(self) -> TxBuilder:
        """Access to transaction builder"""
        return self._tx_builder

    @property
    def pubkey(self) -> str:
        """Owner's public key"""
        return self._signer.pubkey

    @property
    def lp(self) -> "LiquidityModule":
        """
        Liquidity module

        Provides:
        - create_pool(params, protocol)
        - quote_deposit / quote_withdraw
        - deposit / withdraw
        - deposit_then_withdraw
        """
        if self._lp is None:
            from .modules.liquidity import LiquidityModule
            self._lp = LiquidityModule(self)
        return self._lp

    @property
    def market(self) -> "MarketModule":
        """
        Market module

        Provides:
        - program_activity(protocol, max_accounts, max_signatures)
        """
        if self._market is None:
            from .modules.market import MarketModule
            self._market = MarketModule(self)
        return self._market

    def get_adapter(self, protocol: str) -> AmmProtocol:
        """
        Get protocol adapter

        Args:
            protocol: Protocol name ("raydium_cp", "raydium_clmm")
        """
        return ProtocolRegistry.get(protocol, self._rpc)

    def close(self):
        """Close client connections and release resources"""
        ProtocolRegistry.evict(self._rpc)
        self._rpc.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return f"AmmClient(endpoint={self._rpc.endpoint}, pubkey={self.pubkey[:8]}...)"


if TYPE_CHECKING:
    from .modules.liquidity import LiquidityModule
