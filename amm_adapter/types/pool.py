"""
Pool state type definitions
"""

from dataclasses import dataclass, field
from typing import List, Optional

from solders.pubkey import Pubkey

from ..errors import MathError


_MAX_UINT64 = 2 ** 64 - 1


@dataclass
class CpPoolState:
    """
    Decoded Raydium CP-Swap PoolState account

    Field order matches the on-chain layout. Decoded fresh for every
    calculation; reserves and supply move with every trade.
    """
    amm_config: Pubkey
    pool_creator: Pubkey
    token_0_vault: Pubkey
    token_1_vault: Pubkey
    lp_mint: Pubkey
    token_0_mint: Pubkey
    token_1_mint: Pubkey
    token_0_program: Pubkey
    token_1_program: Pubkey
    observation_key: Pubkey
    auth_bump: int
    status: int
    lp_mint_decimals: int
    mint_0_decimals: int
    mint_1_decimals: int
    lp_supply: int
    protocol_fees_token_0: int
    protocol_fees_token_1: int
    fund_fees_token_0: int
    fund_fees_token_1: int
    open_time: int
    recent_epoch: int
    padding: List[int] = field(default_factory=lambda: [0] * 31)

    def vault_amount_without_fee(self, vault_0: int, vault_1: int) -> tuple:
        """
        Reserves available to liquidity providers.

        Subtracts accrued protocol and fund fees from the raw vault balances.

        Returns:
            (reserve_0, reserve_1)

        Raises:
            MathError: If the accrued fees exceed a vault balance
        """
        return (
            _net_of_fees(vault_0, self.protocol_fees_token_0, self.fund_fees_token_0),
            _net_of_fees(vault_1, self.protocol_fees_token_1, self.fund_fees_token_1),
        )

    @property
    def is_sorted(self) -> bool:
        return bytes(self.token_0_mint) < bytes(self.token_1_mint)


def _net_of_fees(vault: int, protocol_fees: int, fund_fees: int) -> int:
    fees = protocol_fees + fund_fees
    if fees > _MAX_UINT64:
        raise MathError.overflow("vault_amount_without_fee", 64)
    if fees > vault:
        raise MathError.underflow("vault_amount_without_fee", vault, fees)
    return vault - fees


@dataclass
class VaultBalance:
    """SPL token account balance (pool vault or user account)"""
    address: Pubkey
    mint: Pubkey
    owner: Pubkey
    amount: int


@dataclass
class PoolSnapshot:
    """
    Pool state and both vault balances read in one RPC round-trip

    Attributes:
        pool_address: Pool state account
        state: Decoded pool state
        vault_0: Token 0 vault balance
        vault_1: Token 1 vault balance
        slot: RPC context slot the accounts were read at
    """
    pool_address: Pubkey
    state: CpPoolState
    vault_0: VaultBalance
    vault_1: VaultBalance
    slot: Optional[int] = None

    @property
    def reserves(self) -> tuple:
        """Fee-adjusted (reserve_0, reserve_1)"""
        return self.state.vault_amount_without_fee(self.vault_0.amount, self.vault_1.amount)

    @property
    def lp_supply(self) -> int:
        return self.state.lp_supply


@dataclass(frozen=True)
class CpPoolKeys:
    """Every address a CP-Swap operation touches for one pool"""
    program_id: Pubkey
    amm_config: Pubkey
    authority: Pubkey
    pool_state: Pubkey
    token_0_mint: Pubkey
    token_1_mint: Pubkey
    lp_mint: Pubkey
    token_0_vault: Pubkey
    token_1_vault: Pubkey
    observation: Pubkey


@dataclass(frozen=True)
class ClmmPoolKeys:
    """Every address a CLMM create_pool touches for one pool"""
    program_id: Pubkey
    amm_config: Pubkey
    pool_state: Pubkey
    token_0_mint: Pubkey
    token_1_mint: Pubkey
    token_0_vault: Pubkey
    token_1_vault: Pubkey
    observation: Pubkey
    tick_array_bitmap: Pubkey


@dataclass(frozen=True)
class MintInfo:
    """Mint account facts needed to create a pool"""
    address: Pubkey
    token_program: Pubkey
    decimals: int


@dataclass(frozen=True)
class OwnerTokenAccounts:
    """
    Token accounts a liquidity provider deposits from and withdraws to

    Defaults to the owner's associated token accounts when not supplied.
    """
    token_0: Pubkey
    token_1: Pubkey
    lp_token: Pubkey
