"""
Raydium CP-Swap / CLMM Constants

Program ids, PDA seeds, instruction discriminators and account layout sizes.
"""

import hashlib


def _anchor_account_discriminator(name: str) -> bytes:
    """Compute Anchor discriminator for account name"""
    return hashlib.sha256(f"account:{name}".encode("utf-8")).digest()[:8]


# Raydium CP-Swap (constant product) program ids
CP_SWAP_DEVNET_PROGRAM_ID = "CPMDWBwJDtYax9qW7AyRuVC19Cc4L4Vcy4n2BHAbHkCW"
CP_SWAP_MAINNET_PROGRAM_ID = "CPMMoo8L3F4NbTegBCKVNunggL7H1ZpdTHKxQB5qKP1C"

# Raydium CLMM (concentrated liquidity) program ids
CLMM_DEVNET_PROGRAM_ID = "devi51mZmdwUJGU9hjN27vEz64Gps7uUefqxg27EAtH"
CLMM_MAINNET_PROGRAM_ID = "CAMMCzo5YL8w4VFF8KVHrK22GGUsp5VTaW7grrKgrWqK"

# Receives the CP-Swap pool creation fee on devnet
CP_SWAP_DEVNET_CREATE_POOL_FEE_RECEIVER = "G11FKBRaAkHAKuLCgLM6K6NUc9rTjPAznRCjZifrTQe2"

# Token Programs
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"

# Associated Token Program
ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"

# System Program
SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"

# Rent Sysvar
RENT_SYSVAR_ID = "SysvarRent111111111111111111111111111111111"

# Memo Program (required by CP-Swap withdraw)
MEMO_PROGRAM_ID = "MemoSq4gqABAXKb96qnH8TysNcWxMyWCqXgDLGmfcHr"

# PDA seeds
POOL_SEED = b"pool"
POOL_VAULT_SEED = b"pool_vault"
OBSERVATION_SEED = b"observation"
TICK_ARRAY_BITMAP_SEED = b"pool_tick_array_bitmap_extension"
AUTH_SEED = b"vault_and_lp_mint_auth_seed"
AMM_CONFIG_SEED = b"amm_config"
POOL_LP_MINT_SEED = b"pool_lp_mint"

# Runtime limits on program derived addresses
MAX_SEEDS = 16
MAX_SEED_LEN = 32

# Fixed-point / integer bounds
Q64 = 2 ** 64
MAX_UINT16 = 2 ** 16 - 1
MAX_UINT64 = 2 ** 64 - 1
MAX_UINT128 = 2 ** 128 - 1

# CLMM sqrt price bounds (X64)
MIN_SQRT_PRICE_X64 = 4295048016
MAX_SQRT_PRICE_X64 = 79226673521066979257578248091

# Basis point denominator for slippage
BPS_DENOMINATOR = 10_000

# Instruction discriminators, keyed by variant then operation.
# The values are sha256("global:<name>")[:8]; they are spelled out as bytes
# so a mismatch against the deployed program shows up in review.
CP_SWAP_DISCRIMINATORS = {
    "initialize": bytes([175, 175, 109, 31, 13, 152, 155, 237]),
    "deposit": bytes([242, 35, 198, 137, 82, 225, 242, 182]),
    "withdraw": bytes([183, 18, 70, 156, 148, 109, 161, 34]),
}

CLMM_DISCRIMINATORS = {
    "create_pool": bytes([0xE9, 0x92, 0xD1, 0x8E, 0xCF, 0x68, 0x40, 0xBC]),
}

DISCRIMINATORS = {
    "cp_swap": CP_SWAP_DISCRIMINATORS,
    "clmm": CLMM_DISCRIMINATORS,
}

# Account discriminators for parsing
ACCOUNT_DISCRIMINATORS = {
    "PoolState": _anchor_account_discriminator("PoolState"),
}

# CP-Swap PoolState: 8-byte discriminator + 10 pubkeys + 5 u8 + 7 u64 + 31 u64 padding
CP_POOL_STATE_PADDING_WORDS = 31
CP_POOL_STATE_SIZE = 8 + 10 * 32 + 5 + 7 * 8 + CP_POOL_STATE_PADDING_WORDS * 8

# SPL token account layout (Token and Token-2022 share the base layout)
TOKEN_ACCOUNT_MIN_SIZE = 165
TOKEN_ACCOUNT_MINT_OFFSET = 0
TOKEN_ACCOUNT_OWNER_OFFSET = 32
TOKEN_ACCOUNT_AMOUNT_OFFSET = 64

# SPL mint layout
MINT_DECIMALS_OFFSET = 44
