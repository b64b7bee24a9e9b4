"""
Base AMM protocol interface

Each AMM variant implements this interface so that flows (create pool,
deposit, withdraw) are written once. Variants differ only in their
discriminators, account schemas and which operations they offer.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import FrozenSet, List, Optional, Union

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from ..errors import OperationNotSupported
from ..infra import RpcClient
from ..types import LiquidityQuote, OwnerTokenAccounts, PoolSnapshot


class AmmOperation(Enum):
    """Operations an AMM variant may support"""
    CREATE_POOL = "create_pool"
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"


@dataclass
class CreatePoolParams:
    """
    Pool creation request

    Mints may be given in any order; adapters sort them (and swap the
    paired amounts / invert the price) before deriving addresses.

    Attributes:
        mint_a: First token mint
        mint_b: Second token mint
        amount_a: Initial deposit of mint_a (constant product)
        amount_b: Initial deposit of mint_b (constant product)
        initial_price: Price of mint_a in mint_b (concentrated liquidity)
        sqrt_price_x64: Raw initial sqrt price of token 1 per token 0, used
            as-is when given (concentrated liquidity)
        open_time: Unix timestamp trading opens (None = adapter default)
        amm_config: Config account override
    """
    mint_a: Union[Pubkey, str]
    mint_b: Union[Pubkey, str]
    amount_a: int = 0
    amount_b: int = 0
    initial_price: Optional[Decimal] = None
    sqrt_price_x64: Optional[int] = None
    open_time: Optional[int] = None
    amm_config: Optional[Union[Pubkey, str]] = None


@dataclass
class CreatePoolPlan:
    """Instructions for a pool creation plus the addresses it creates"""
    instructions: List[Instruction]
    pool_state: Pubkey
    token_0_mint: Pubkey
    token_1_mint: Pubkey
    lp_mint: Optional[Pubkey] = None


class AmmProtocol(ABC):
    """
    Abstract base class for AMM variants

    Each adapter provides:
    - Pool key derivation
    - Instruction building for the operations it supports
    - Snapshot reads for liquidity math

    Unsupported operations raise OperationNotSupported.
    """

    # Protocol identifier (e.g., "raydium_cp", "raydium_clmm")
    name: str = "base"

    supported_operations: FrozenSet[AmmOperation] = frozenset()

    def __init__(self, rpc: RpcClient, program_id: Optional[Union[Pubkey, str]] = None):
        """
        Initialize adapter with RPC client

        Args:
            rpc: RPC client for blockchain queries
            program_id: Program id override (defaults from config)
        """
        self._rpc = rpc
        self._program_id = self._resolve_program_id(program_id)

    @property
    def rpc(self) -> RpcClient:
        """Access to RPC client"""
        return self._rpc

    @property
    def program_id(self) -> Pubkey:
        return self._program_id

    def supports(self, operation: AmmOperation) -> bool:
        return operation in self.supported_operations

    def require(self, operation: AmmOperation) -> None:
        """
        Raises:
            OperationNotSupported: If this variant lacks the operation
        """
        if not self.supports(operation):
            raise OperationNotSupported.not_implemented(operation.value, self.name)

    @abstractmethod
    def _resolve_program_id(self, program_id: Optional[Union[Pubkey, str]]) -> Pubkey:
        ...

    # ========== Pool Operations ==========

    @abstractmethod
    def derive_pool_keys(
        self,
        mint_0: Union[Pubkey, str],
        mint_1: Union[Pubkey, str],
        amm_config: Optional[Union[Pubkey, str]] = None,
    ):
        """
        Derive every address of the pool for sorted mints

        Raises:
            ConfigurationError: If mints are malformed or unsorted
        """
        ...

    @abstractmethod
    def build_create_pool(self, creator: Pubkey, params: CreatePoolParams) -> CreatePoolPlan:
        """
        Build instructions to create a pool

        Args:
            creator: Pool creator and fee payer
            params: Creation request

        Returns:
            CreatePoolPlan
        """
        ...

    def fetch_snapshot(self, keys) -> PoolSnapshot:
        """
        Read pool state and vault balances in one round-trip

        Raises:
            OperationNotSupported: Variant has no liquidity math
        """
        self.require(AmmOperation.DEPOSIT)
        raise NotImplementedError

    def owner_accounts(self, keys, owner: Pubkey, state=None) -> OwnerTokenAccounts:
        """
        Owner's token accounts used by deposit and withdraw

        Raises:
            OperationNotSupported: Variant has no liquidity instructions
        """
        self.require(AmmOperation.DEPOSIT)
        raise NotImplementedError

    def build_deposit(
        self,
        keys,
        owner: Pubkey,
        quote: LiquidityQuote,
        accounts: Optional[OwnerTokenAccounts] = None,
    ) -> List[Instruction]:
        """
        Build instructions to deposit quote.lp_amount with quote guards

        Raises:
            OperationNotSupported: Variant has no deposit instruction
        """
        self.require(AmmOperation.DEPOSIT)
        raise NotImplementedError

    def build_withdraw(
        self,
        keys,
        owner: Pubkey,
        quote: LiquidityQuote,
        accounts: Optional[OwnerTokenAccounts] = None,
    ) -> List[Instruction]:
        """
        Build instructions to withdraw quote.lp_amount with quote guards

        Raises:
            OperationNotSupported: Variant has no withdraw instruction
        """
        self.require(AmmOperation.WITHDRAW)
        raise NotImplementedError
