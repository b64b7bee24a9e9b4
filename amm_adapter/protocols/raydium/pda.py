"""
Raydium program derived addresses

Every pool-identifying address is a deterministic function of the program id
and an ordered list of seeds. Mints must be passed in ascending byte order;
derive_*_pool_keys refuse unsorted input instead of silently swapping it.
"""

import logging
from typing import Optional, Sequence, Tuple, Union

from solders.pubkey import Pubkey

from ...errors import ConfigurationError, DerivationError
from ...types import CpPoolKeys, ClmmPoolKeys
from .constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    POOL_SEED,
    POOL_VAULT_SEED,
    OBSERVATION_SEED,
    TICK_ARRAY_BITMAP_SEED,
    AUTH_SEED,
    AMM_CONFIG_SEED,
    POOL_LP_MINT_SEED,
    MAX_SEEDS,
    MAX_SEED_LEN,
    MAX_UINT16,
)

logger = logging.getLogger(__name__)

PubkeyLike = Union[Pubkey, str]


def parse_pubkey(param: str, value: PubkeyLike) -> Pubkey:
    """
    Parse a base58 address.

    Args:
        param: Name used in the error message
        value: Pubkey or base58 string

    Raises:
        ConfigurationError: If the value is not a valid 32-byte address
    """
    if isinstance(value, Pubkey):
        return value
    try:
        return Pubkey.from_string(value)
    except (ValueError, TypeError) as e:
        raise ConfigurationError.invalid_address(param, str(value)) from e


def _create_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Optional[Pubkey]:
    """Candidate address for one bump, or None when it lies on the ed25519 curve"""
    try:
        return Pubkey.create_program_address(seeds, program_id)
    except (KeyboardInterrupt, SystemExit):
        raise
    except BaseException:
        # solders surfaces an on-curve candidate as a pyo3 PanicException
        return None


def find_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Tuple[Pubkey, int]:
    """
    Find a program derived address and its bump seed.

    Tries bump 255 down to 0 with Pubkey.create_program_address and returns
    the first candidate that is not a valid ed25519 point.

    Returns:
        (address, bump)

    Raises:
        DerivationError: Seeds exceed runtime limits, or no bump yields an
            off-curve address
    """
    seeds = [bytes(seed) for seed in seeds]
    if len(seeds) + 1 > MAX_SEEDS:
        raise DerivationError.invalid_seeds(
            str(program_id), f"{len(seeds)} seeds plus bump exceeds {MAX_SEEDS}"
        )
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise DerivationError.invalid_seeds(
                str(program_id), f"seed of {len(seed)} bytes exceeds {MAX_SEED_LEN}"
            )

    for bump in range(255, -1, -1):
        candidate = _create_program_address(list(seeds) + [bytes([bump])], program_id)
        if candidate is not None:
            return candidate, bump

    raise DerivationError.exhausted(str(program_id))


def get_pool_state_pda(
    program_id: Pubkey,
    amm_config: Pubkey,
    mint_0: Pubkey,
    mint_1: Pubkey,
) -> Tuple[Pubkey, int]:
    """Pool state: ["pool", amm_config, mint_0, mint_1]. Mint order is significant."""
    return find_program_address(
        [POOL_SEED, bytes(amm_config), bytes(mint_0), bytes(mint_1)], program_id
    )


def get_pool_vault_pda(program_id: Pubkey, pool_state: Pubkey, mint: Pubkey) -> Tuple[Pubkey, int]:
    """Token vault: ["pool_vault", pool_state, mint]"""
    return find_program_address([POOL_VAULT_SEED, bytes(pool_state), bytes(mint)], program_id)


def get_observation_pda(program_id: Pubkey, pool_state: Pubkey) -> Tuple[Pubkey, int]:
    """Observation state: ["observation", pool_state]"""
    return find_program_address([OBSERVATION_SEED, bytes(pool_state)], program_id)


def get_tick_array_bitmap_pda(program_id: Pubkey, pool_state: Pubkey) -> Tuple[Pubkey, int]:
    """CLMM tick array bitmap extension: ["pool_tick_array_bitmap_extension", pool_state]"""
    return find_program_address([TICK_ARRAY_BITMAP_SEED, bytes(pool_state)], program_id)


def get_authority_pda(program_id: Pubkey) -> Tuple[Pubkey, int]:
    """CP-Swap vault and LP mint authority: ["vault_and_lp_mint_auth_seed"]"""
    return find_program_address([AUTH_SEED], program_id)


def get_amm_config_pda(program_id: Pubkey, index: int) -> Tuple[Pubkey, int]:
    """AMM config: ["amm_config", index as u16 little-endian]"""
    if not 0 <= index <= MAX_UINT16:
        raise ConfigurationError.invalid("amm_config_index", f"must fit u16, got {index}")
    return find_program_address([AMM_CONFIG_SEED, index.to_bytes(2, "little")], program_id)


def get_lp_mint_pda(program_id: Pubkey, pool_state: Pubkey) -> Tuple[Pubkey, int]:
    """CP-Swap LP mint: ["pool_lp_mint", pool_state]"""
    return find_program_address([POOL_LP_MINT_SEED, bytes(pool_state)], program_id)


def get_associated_token_address(
    owner: Pubkey,
    mint: Pubkey,
    token_program: Pubkey = None,
) -> Pubkey:
    """
    Get associated token account address.

    Args:
        owner: Wallet owner
        mint: Token mint
        token_program: Token program (defaults to Tokenkeg)

    Returns:
        ATA address
    """
    if token_program is None:
        token_program = Pubkey.from_string(TOKEN_PROGRAM_ID)

    address, _ = find_program_address(
        [bytes(owner), bytes(token_program), bytes(mint)],
        Pubkey.from_string(ASSOCIATED_TOKEN_PROGRAM_ID),
    )
    return address


def sort_mints(
    mint_a: Pubkey,
    mint_b: Pubkey,
    amount_a: int = 0,
    amount_b: int = 0,
) -> Tuple[Pubkey, Pubkey, int, int]:
    """
    Put two mints (and their paired amounts) into canonical order.

    Returns:
        (mint_0, mint_1, amount_0, amount_1) with mint_0 < mint_1 by bytes

    Raises:
        ConfigurationError: If both mints are the same
    """
    if bytes(mint_a) == bytes(mint_b):
        raise ConfigurationError.invalid("mints", f"pool requires two distinct mints, got {mint_a} twice")
    if bytes(mint_a) < bytes(mint_b):
        return mint_a, mint_b, amount_a, amount_b
    return mint_b, mint_a, amount_b, amount_a


def require_sorted_mints(mint_0: Pubkey, mint_1: Pubkey) -> None:
    """
    Raises:
        ConfigurationError: If mint_0 is not strictly less than mint_1
    """
    if not bytes(mint_0) < bytes(mint_1):
        raise ConfigurationError.invalid(
            "mints",
            f"token_0_mint must sort before token_1_mint ({mint_0} >= {mint_1}); "
            f"use sort_mints() first",
        )


def derive_cp_pool_keys(
    program_id: Pubkey,
    amm_config: Pubkey,
    mint_0: Pubkey,
    mint_1: Pubkey,
) -> CpPoolKeys:
    """
    Derive every CP-Swap pool address from config and sorted mints.

    Raises:
        ConfigurationError: If mints are not in ascending byte order
        DerivationError: If a bump search is exhausted
    """
    require_sorted_mints(mint_0, mint_1)

    pool_state, _ = get_pool_state_pda(program_id, amm_config, mint_0, mint_1)
    authority, _ = get_authority_pda(program_id)
    lp_mint, _ = get_lp_mint_pda(program_id, pool_state)
    vault_0, _ = get_pool_vault_pda(program_id, pool_state, mint_0)
    vault_1, _ = get_pool_vault_pda(program_id, pool_state, mint_1)
    observation, _ = get_observation_pda(program_id, pool_state)

    logger.debug(f"Derived CP-Swap pool {pool_state} (lp_mint={lp_mint})")

    return CpPoolKeys(
        program_id=program_id,
        amm_config=amm_config,
        authority=authority,
        pool_state=pool_state,
        token_0_mint=mint_0,
        token_1_mint=mint_1,
        lp_mint=lp_mint,
        token_0_vault=vault_0,
        token_1_vault=vault_1,
        observation=observation,
    )


def derive_clmm_pool_keys(
    program_id: Pubkey,
    amm_config: Pubkey,
    mint_0: Pubkey,
    mint_1: Pubkey,
) -> ClmmPoolKeys:
    """
    Derive every CLMM pool address from config and sorted mints.

    Raises:
        ConfigurationError: If mints are not in ascending byte order
        DerivationError: If a bump search is exhausted
    """
    require_sorted_mints(mint_0, mint_1)

    pool_state, _ = get_pool_state_pda(program_id, amm_config, mint_0, mint_1)
    vault_0, _ = get_pool_vault_pda(program_id, pool_state, mint_0)
    vault_1, _ = get_pool_vault_pda(program_id, pool_state, mint_1)
    observation, _ = get_observation_pda(program_id, pool_state)
    tick_array_bitmap, _ = get_tick_array_bitmap_pda(program_id, pool_state)

    logger.debug(f"Derived CLMM pool {pool_state}")

    return ClmmPoolKeys(
        program_id=program_id,
        amm_config=amm_config,
        pool_state=pool_state,
        token_0_mint=mint_0,
        token_1_mint=mint_1,
        token_0_vault=vault_0,
        token_1_vault=vault_1,
        observation=observation,
        tick_array_bitmap=tick_array_bitmap,
    )

