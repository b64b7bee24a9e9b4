"""
Raydium Protocol Adapters

RaydiumCpSwapAdapter: constant-product pools (create, deposit, withdraw)
RaydiumClmmAdapter: concentrated-liquidity pools (create only)

Token Naming Convention:
    - token_0 / mint_0: the mint that sorts first by bytes
    - token_1 / mint_1: the other mint
    - price: token 0 price in terms of token 1
"""

import logging
import time
from decimal import Decimal
from typing import List, Optional, Union

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from ..base import AmmOperation, AmmProtocol, CreatePoolParams, CreatePoolPlan
from ...config import config as global_config
from ...errors import ConfigurationError
from ...types import (
    ClmmPoolKeys,
    CpPoolKeys,
    CpPoolState,
    LiquidityQuote,
    OwnerTokenAccounts,
    PoolSnapshot,
)
from .constants import (
    CLMM_DEVNET_PROGRAM_ID,
    CP_SWAP_DEVNET_CREATE_POOL_FEE_RECEIVER,
    CP_SWAP_DEVNET_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)
from .instructions import (
    build_clmm_create_pool_instruction,
    build_cp_deposit_instruction,
    build_cp_initialize_instruction,
    build_cp_withdraw_instruction,
)
from .math import price_to_sqrt_price_x64
from .pda import (
    derive_clmm_pool_keys,
    derive_cp_pool_keys,
    get_amm_config_pda,
    get_associated_token_address,
    parse_pubkey,
    sort_mints,
)
from .pool_parser import fetch_cp_pool_snapshot, fetch_mint_infos

logger = logging.getLogger(__name__)

PubkeyLike = Union[Pubkey, str]


class RaydiumCpSwapAdapter(AmmProtocol):
    """
    Raydium CP-Swap (constant product) adapter

    Usage:
        rpc = RpcClient(config.rpc.url)
        adapter = RaydiumCpSwapAdapter(rpc)

        keys = adapter.derive_pool_keys(mint_0, mint_1)
        snapshot = adapter.fetch_snapshot(keys)
    """

    name = "raydium_cp"
    supported_operations = frozenset({
        AmmOperation.CREATE_POOL,
        AmmOperation.DEPOSIT,
        AmmOperation.WITHDRAW,
    })

    def _resolve_program_id(self, program_id: Optional[PubkeyLike]) -> Pubkey:
        return parse_pubkey(
            "cp_swap_program_id",
            program_id or global_config.raydium.cp_swap_program_id or CP_SWAP_DEVNET_PROGRAM_ID,
        )

    def amm_config_address(self, amm_config: Optional[PubkeyLike] = None) -> Pubkey:
        """Explicit config account, or the config PDA at the configured index"""
        if amm_config is not None:
            return parse_pubkey("amm_config", amm_config)
        address, _ = get_amm_config_pda(self._program_id, global_config.raydium.cp_amm_config_index)
        return address

    def create_pool_fee_receiver(self) -> Pubkey:
        return parse_pubkey(
            "create_pool_fee_receiver",
            global_config.raydium.create_pool_fee_receiver or CP_SWAP_DEVNET_CREATE_POOL_FEE_RECEIVER,
        )

    def derive_pool_keys(
        self,
        mint_0: PubkeyLike,
        mint_1: PubkeyLike,
        amm_config: Optional[PubkeyLike] = None,
    ) -> CpPoolKeys:
        return derive_cp_pool_keys(
            self._program_id,
            self.amm_config_address(amm_config),
            parse_pubkey("mint_0", mint_0),
            parse_pubkey("mint_1", mint_1),
        )

    def build_create_pool(self, creator: Pubkey, params: CreatePoolParams) -> CreatePoolPlan:
        """
        Build CP-Swap initialize.

        Mints are sorted and the initial amounts follow their mints. The
        creator's token accounts are the associated accounts under each
        mint's own token program.

        Raises:
            ConfigurationError: Bad mints or non-positive initial amounts
            PoolUnavailable: A mint account is missing
        """
        mint_a = parse_pubkey("mint_a", params.mint_a)
        mint_b = parse_pubkey("mint_b", params.mint_b)
        if params.amount_a <= 0 or params.amount_b <= 0:
            raise ConfigurationError.invalid(
                "initial amounts",
                f"both must be positive, got {params.amount_a} and {params.amount_b}",
            )

        mint_0, mint_1, amount_0, amount_1 = sort_mints(mint_a, mint_b, params.amount_a, params.amount_b)
        keys = self.derive_pool_keys(mint_0, mint_1, params.amm_config)
        mint_0_info, mint_1_info = fetch_mint_infos(self._rpc, [mint_0, mint_1])

        open_time = params.open_time if params.open_time is not None else int(time.time())

        instruction = build_cp_initialize_instruction(
            keys,
            creator=creator,
            creator_token_0=get_associated_token_address(creator, mint_0, mint_0_info.token_program),
            creator_token_1=get_associated_token_address(creator, mint_1, mint_1_info.token_program),
            creator_lp_token=get_associated_token_address(creator, keys.lp_mint),
            create_pool_fee=self.create_pool_fee_receiver(),
            init_amount_0=amount_0,
            init_amount_1=amount_1,
            open_time=open_time,
            token_0_program=mint_0_info.token_program,
            token_1_program=mint_1_info.token_program,
        )

        logger.debug(
            f"CP-Swap initialize: pool={keys.pool_state}, amounts=({amount_0}, {amount_1}), "
            f"open_time={open_time}"
        )

        return CreatePoolPlan(
            instructions=[instruction],
            pool_state=keys.pool_state,
            token_0_mint=mint_0,
            token_1_mint=mint_1,
            lp_mint=keys.lp_mint,
        )

    def fetch_snapshot(self, keys: CpPoolKeys) -> PoolSnapshot:
        return fetch_cp_pool_snapshot(self._rpc, keys)

    def owner_accounts(
        self,
        keys: CpPoolKeys,
        owner: Pubkey,
        state: Optional[CpPoolState] = None,
    ) -> OwnerTokenAccounts:
        """
        Owner's associated token accounts for a pool

        Token programs come from the pool state when given, else Tokenkeg.
        """
        tokenkeg = Pubkey.from_string(TOKEN_PROGRAM_ID)
        program_0 = state.token_0_program if state is not None else tokenkeg
        program_1 = state.token_1_program if state is not None else tokenkeg
        return OwnerTokenAccounts(
            token_0=get_associated_token_address(owner, keys.token_0_mint, program_0),
            token_1=get_associated_token_address(owner, keys.token_1_mint, program_1),
            lp_token=get_associated_token_address(owner, keys.lp_mint, tokenkeg),
        )

    def build_deposit(
        self,
        keys: CpPoolKeys,
        owner: Pubkey,
        quote: LiquidityQuote,
        accounts: Optional[OwnerTokenAccounts] = None,
    ) -> List[Instruction]:
        accounts = accounts or self.owner_accounts(keys, owner)
        return [
            build_cp_deposit_instruction(
                keys,
                owner=owner,
                owner_lp_token=accounts.lp_token,
                owner_token_0=accounts.token_0,
                owner_token_1=accounts.token_1,
                lp_token_amount=quote.lp_amount,
                maximum_token_0_amount=quote.token_0_limit,
                maximum_token_1_amount=quote.token_1_limit,
            )
        ]

    def build_withdraw(
        self,
        keys: CpPoolKeys,
        owner: Pubkey,
        quote: LiquidityQuote,
        accounts: Optional[OwnerTokenAccounts] = None,
    ) -> List[Instruction]:
        accounts = accounts or self.owner_accounts(keys, owner)
        return [
            build_cp_withdraw_instruction(
                keys,
                owner=owner,
                owner_lp_token=accounts.lp_token,
                owner_token_0=accounts.token_0,
                owner_token_1=accounts.token_1,
                lp_token_amount=quote.lp_amount,
                minimum_token_0_amount=quote.token_0_limit,
                minimum_token_1_amount=quote.token_1_limit,
            )
        ]


class RaydiumClmmAdapter(AmmProtocol):
    """
    Raydium CLMM (concentrated liquidity) adapter

    Only pool creation is offered; position management is a different
    instruction family and is not built here.
    """

    name = "raydium_clmm"
    supported_operations = frozenset({AmmOperation.CREATE_POOL})

    def _resolve_program_id(self, program_id: Optional[PubkeyLike]) -> Pubkey:
        return parse_pubkey(
            "clmm_program_id",
            program_id or global_config.raydium.clmm_program_id or CLMM_DEVNET_PROGRAM_ID,
        )

    def amm_config_address(self, amm_config: Optional[PubkeyLike] = None) -> Pubkey:
        """
        Raises:
            ConfigurationError: If neither an override nor CLMM_AMM_CONFIG is set
        """
        value = amm_config or global_config.raydium.clmm_amm_config
        if not value:
            raise ConfigurationError.missing("CLMM_AMM_CONFIG")
        return parse_pubkey("amm_config", value)

    def derive_pool_keys(
        self,
        mint_0: PubkeyLike,
        mint_1: PubkeyLike,
        amm_config: Optional[PubkeyLike] = None,
    ) -> ClmmPoolKeys:
        return derive_clmm_pool_keys(
            self._program_id,
            self.amm_config_address(amm_config),
            parse_pubkey("mint_0", mint_0),
            parse_pubkey("mint_1", mint_1),
        )

    def _initial_sqrt_price(self, params: CreatePoolParams, swapped: bool, decimals: tuple) -> int:
        if params.sqrt_price_x64 is not None:
            return params.sqrt_price_x64
        if params.initial_price is None:
            raise ConfigurationError.missing("initial_price or sqrt_price_x64")

        price = Decimal(params.initial_price)
        if price <= 0:
            raise ConfigurationError.invalid("initial_price", f"must be positive, got {price}")
        # initial_price is quoted as mint_a in mint_b
        if swapped:
            price = Decimal(1) / price
        return price_to_sqrt_price_x64(price, decimals[0], decimals[1])

    def build_create_pool(self, creator: Pubkey, params: CreatePoolParams) -> CreatePoolPlan:
        """
        Build CLMM create_pool.

        Raises:
            ConfigurationError: Bad mints, missing amm config, or a price
                outside the CLMM sqrt price range
            PoolUnavailable: A mint account is missing
        """
        mint_a = parse_pubkey("mint_a", params.mint_a)
        mint_b = parse_pubkey("mint_b", params.mint_b)
        mint_0, mint_1, _, _ = sort_mints(mint_a, mint_b)
        swapped = mint_0 != mint_a

        keys = self.derive_pool_keys(mint_0, mint_1, params.amm_config)
        mint_0_info, mint_1_info = fetch_mint_infos(self._rpc, [mint_0, mint_1])

        sqrt_price_x64 = self._initial_sqrt_price(
            params, swapped, (mint_0_info.decimals, mint_1_info.decimals)
        )
        open_time = params.open_time if params.open_time is not None else 0

        instruction = build_clmm_create_pool_instruction(
            keys,
            creator=creator,
            sqrt_price_x64=sqrt_price_x64,
            open_time=open_time,
            token_0_program=mint_0_info.token_program,
            token_1_program=mint_1_info.token_program,
        )

        logger.debug(f"CLMM create_pool: pool={keys.pool_state}, sqrt_price_x64={sqrt_price_x64}")

        return CreatePoolPlan(
            instructions=[instruction],
            pool_state=keys.pool_state,
            token_0_mint=mint_0,
            token_1_mint=mint_1,
        )
