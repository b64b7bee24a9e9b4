"""
Raydium CP-Swap / CLMM Instruction Builders

Each builder returns a solders Instruction whose data is the 8-byte
discriminator followed by little-endian fields, and whose accounts follow
the program's declared order position for position. Repeated read-only
program entries are intentional; the program reads them by index.
"""

import struct
from typing import List, Optional

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from ...errors import ConfigurationError
from ...types import ClmmPoolKeys, CpPoolKeys
from .constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    CLMM_DISCRIMINATORS,
    CP_SWAP_DISCRIMINATORS,
    MAX_SQRT_PRICE_X64,
    MAX_UINT64,
    MAX_UINT128,
    MEMO_PROGRAM_ID,
    MIN_SQRT_PRICE_X64,
    RENT_SYSVAR_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)
from .pda import get_associated_token_address


def _u64(name: str, value: int) -> bytes:
    if not 0 <= value <= MAX_UINT64:
        raise ConfigurationError.invalid(name, f"must fit u64, got {value}")
    return struct.pack("<Q", value)


def _u128(name: str, value: int) -> bytes:
    if not 0 <= value <= MAX_UINT128:
        raise ConfigurationError.invalid(name, f"must fit u128, got {value}")
    return value.to_bytes(16, "little")


def _program(address: str) -> Pubkey:
    return Pubkey.from_string(address)


def build_create_ata_idempotent_instruction(
    payer: Pubkey,
    owner: Pubkey,
    mint: Pubkey,
    token_program: Optional[Pubkey] = None,
) -> Instruction:
    """
    Build create_associated_token_account_idempotent instruction.

    This creates the ATA if it doesn't exist, or does nothing if it does.

    Args:
        payer: Fee payer
        owner: Account owner
        mint: Token mint
        token_program: Token program (defaults to Tokenkeg)

    Returns:
        Instruction to create ATA
    """
    if token_program is None:
        token_program = _program(TOKEN_PROGRAM_ID)

    ata_address = get_associated_token_address(owner, mint, token_program)

    accounts = [
        AccountMeta(payer, is_signer=True, is_writable=True),
        AccountMeta(ata_address, is_signer=False, is_writable=True),
        AccountMeta(owner, is_signer=False, is_writable=False),
        AccountMeta(mint, is_signer=False, is_writable=False),
        AccountMeta(_program(SYSTEM_PROGRAM_ID), is_signer=False, is_writable=False),
        AccountMeta(token_program, is_signer=False, is_writable=False),
    ]

    # Instruction data: single byte 1 for idempotent create
    return Instruction(_program(ASSOCIATED_TOKEN_PROGRAM_ID), bytes([1]), accounts)


def build_cp_initialize_instruction(
    keys: CpPoolKeys,
    creator: Pubkey,
    creator_token_0: Pubkey,
    creator_token_1: Pubkey,
    creator_lp_token: Pubkey,
    create_pool_fee: Pubkey,
    init_amount_0: int,
    init_amount_1: int,
    open_time: int,
    token_0_program: Optional[Pubkey] = None,
    token_1_program: Optional[Pubkey] = None,
) -> Instruction:
    """
    Build CP-Swap initialize (create pool) instruction.

    Data: discriminator, init_amount_0 u64, init_amount_1 u64, open_time u64

    Args:
        keys: Pool keys derived from sorted mints
        creator: Pool creator and fee payer (signer)
        creator_token_0: Creator's token 0 account
        creator_token_1: Creator's token 1 account
        creator_lp_token: Creator's LP token ATA (created by the program)
        create_pool_fee: Create-pool fee receiver
        init_amount_0: Initial token 0 deposit
        init_amount_1: Initial token 1 deposit
        open_time: Unix timestamp after which swaps are allowed
        token_0_program: Token program of mint 0 (defaults to Tokenkeg)
        token_1_program: Token program of mint 1 (defaults to Tokenkeg)

    Returns:
        Instruction
    """
    data = (
        CP_SWAP_DISCRIMINATORS["initialize"]
        + _u64("init_amount_0", init_amount_0)
        + _u64("init_amount_1", init_amount_1)
        + _u64("open_time", open_time)
    )

    token_program = _program(TOKEN_PROGRAM_ID)
    accounts = [
        AccountMeta(creator, is_signer=True, is_writable=True),
        AccountMeta(keys.amm_config, is_signer=False, is_writable=False),
        AccountMeta(keys.authority, is_signer=False, is_writable=False),
        AccountMeta(keys.pool_state, is_signer=False, is_writable=True),
        AccountMeta(keys.token_0_mint, is_signer=False, is_writable=False),
        AccountMeta(keys.token_1_mint, is_signer=False, is_writable=False),
        AccountMeta(keys.lp_mint, is_signer=False, is_writable=True),
        AccountMeta(creator_token_0, is_signer=False, is_writable=True),
        AccountMeta(creator_token_1, is_signer=False, is_writable=True),
        AccountMeta(creator_lp_token, is_signer=False, is_writable=True),
        AccountMeta(keys.token_0_vault, is_signer=False, is_writable=True),
        AccountMeta(keys.token_1_vault, is_signer=False, is_writable=True),
        AccountMeta(create_pool_fee, is_signer=False, is_writable=True),
        AccountMeta(keys.observation, is_signer=False, is_writable=True),
        AccountMeta(token_program, is_signer=False, is_writable=False),
        AccountMeta(token_0_program or token_program, is_signer=False, is_writable=False),
        AccountMeta(token_1_program or token_program, is_signer=False, is_writable=False),
        AccountMeta(_program(ASSOCIATED_TOKEN_PROGRAM_ID), is_signer=False, is_writable=False),
        AccountMeta(_program(SYSTEM_PROGRAM_ID), is_signer=False, is_writable=False),
        AccountMeta(_program(RENT_SYSVAR_ID), is_signer=False, is_writable=False),
    ]

    return Instruction(keys.program_id, data, accounts)


def _cp_liquidity_accounts(
    keys: CpPoolKeys,
    owner: Pubkey,
    owner_lp_token: Pubkey,
    owner_token_0: Pubkey,
    owner_token_1: Pubkey,
) -> List[AccountMeta]:
    """Account list shared by CP-Swap deposit and withdraw"""
    return [
        AccountMeta(owner, is_signer=True, is_writable=False),
        AccountMeta(keys.authority, is_signer=False, is_writable=False),
        AccountMeta(keys.pool_state, is_signer=False, is_writable=True),
        AccountMeta(owner_lp_token, is_signer=False, is_writable=True),
        AccountMeta(owner_token_0, is_signer=False, is_writable=True),
        AccountMeta(owner_token_1, is_signer=False, is_writable=True),
        AccountMeta(keys.token_0_vault, is_signer=False, is_writable=True),
        AccountMeta(keys.token_1_vault, is_signer=False, is_writable=True),
        AccountMeta(_program(TOKEN_PROGRAM_ID), is_signer=False, is_writable=False),
        AccountMeta(_program(TOKEN_2022_PROGRAM_ID), is_signer=False, is_writable=False),
        AccountMeta(keys.token_0_mint, is_signer=False, is_writable=False),
        AccountMeta(keys.token_1_mint, is_signer=False, is_writable=False),
        AccountMeta(keys.lp_mint, is_signer=False, is_writable=True),
    ]


def build_cp_deposit_instruction(
    keys: CpPoolKeys,
    owner: Pubkey,
    owner_lp_token: Pubkey,
    owner_token_0: Pubkey,
    owner_token_1: Pubkey,
    lp_token_amount: int,
    maximum_token_0_amount: int,
    maximum_token_1_amount: int,
) -> Instruction:
    """
    Build CP-Swap deposit instruction.

    Data: discriminator, lp_token_amount u64, maximum_token_0_amount u64,
    maximum_token_1_amount u64

    The program rejects the deposit if either required amount exceeds its
    maximum.
    """
    data = (
        CP_SWAP_DISCRIMINATORS["deposit"]
        + _u64("lp_token_amount", lp_token_amount)
        + _u64("maximum_token_0_amount", maximum_token_0_amount)
        + _u64("maximum_token_1_amount", maximum_token_1_amount)
    )
    accounts = _cp_liquidity_accounts(keys, owner, owner_lp_token, owner_token_0, owner_token_1)
    return Instruction(keys.program_id, data, accounts)


def build_cp_withdraw_instruction(
    keys: CpPoolKeys,
    owner: Pubkey,
    owner_lp_token: Pubkey,
    owner_token_0: Pubkey,
    owner_token_1: Pubkey,
    lp_token_amount: int,
    minimum_token_0_amount: int,
    minimum_token_1_amount: int,
) -> Instruction:
    """
    Build CP-Swap withdraw instruction.

    Data: discriminator, lp_token_amount u64, minimum_token_0_amount u64,
    minimum_token_1_amount u64

    Same accounts as deposit plus the memo program.
    """
    data = (
        CP_SWAP_DISCRIMINATORS["withdraw"]
        + _u64("lp_token_amount", lp_token_amount)
        + _u64("minimum_token_0_amount", minimum_token_0_amount)
        + _u64("minimum_token_1_amount", minimum_token_1_amount)
    )
    accounts = _cp_liquidity_accounts(keys, owner, owner_lp_token, owner_token_0, owner_token_1)
    accounts.append(AccountMeta(_program(MEMO_PROGRAM_ID), is_signer=False, is_writable=False))
    return Instruction(keys.program_id, data, accounts)


def build_clmm_create_pool_instruction(
    keys: ClmmPoolKeys,
    creator: Pubkey,
    sqrt_price_x64: int,
    open_time: int = 0,
    token_0_program: Optional[Pubkey] = None,
    token_1_program: Optional[Pubkey] = None,
) -> Instruction:
    """
    Build CLMM create_pool instruction.

    Data: discriminator, sqrt_price_x64 u128, open_time u64

    Args:
        keys: Pool keys derived from sorted mints
        creator: Pool creator and fee payer (signer)
        sqrt_price_x64: Initial sqrt price (Q64.64) of token 1 per token 0
        open_time: Unix timestamp after which swaps are allowed (0 = now)
        token_0_program: Token program of mint 0 (defaults to Tokenkeg)
        token_1_program: Token program of mint 1 (defaults to Tokenkeg)

    Raises:
        ConfigurationError: If sqrt_price_x64 is outside the CLMM range
    """
    if not MIN_SQRT_PRICE_X64 <= sqrt_price_x64 < MAX_SQRT_PRICE_X64:
        raise ConfigurationError.invalid(
            "sqrt_price_x64",
            f"{sqrt_price_x64} outside [{MIN_SQRT_PRICE_X64}, {MAX_SQRT_PRICE_X64})",
        )

    data = (
        CLMM_DISCRIMINATORS["create_pool"]
        + _u128("sqrt_price_x64", sqrt_price_x64)
        + _u64("open_time", open_time)
    )

    token_program = _program(TOKEN_PROGRAM_ID)
    accounts = [
        AccountMeta(creator, is_signer=True, is_writable=True),
        AccountMeta(keys.amm_config, is_signer=False, is_writable=False),
        AccountMeta(keys.pool_state, is_signer=False, is_writable=True),
        AccountMeta(keys.token_0_mint, is_signer=False, is_writable=False),
        AccountMeta(keys.token_1_mint, is_signer=False, is_writable=False),
        AccountMeta(keys.token_0_vault, is_signer=False, is_writable=True),
        AccountMeta(keys.token_1_vault, is_signer=False, is_writable=True),
        AccountMeta(keys.observation, is_signer=False, is_writable=True),
        AccountMeta(keys.tick_array_bitmap, is_signer=False, is_writable=True),
        AccountMeta(token_0_program or token_program, is_signer=False, is_writable=False),
        AccountMeta(token_1_program or token_program, is_signer=False, is_writable=False),
        AccountMeta(_program(SYSTEM_PROGRAM_ID), is_signer=False, is_writable=False),
        AccountMeta(_program(RENT_SYSVAR_ID), is_signer=False, is_writable=False),
    ]

    return Instruction(keys.program_id, data, accounts)
