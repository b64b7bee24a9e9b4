"""
Raydium CP-Swap Pool State Parser

Decodes PoolState and SPL token accounts and reads a pool snapshot
(pool + both vaults) in one getMultipleAccounts call.
"""

import base64
import logging
import struct
from typing import Any, Dict, List, Optional

from solders.pubkey import Pubkey

from ...errors import ConfigurationError, PoolUnavailable
from ...infra import RpcClient
from ...types import CpPoolKeys, CpPoolState, MintInfo, PoolSnapshot, VaultBalance
from .constants import (
    ACCOUNT_DISCRIMINATORS,
    CP_POOL_STATE_PADDING_WORDS,
    CP_POOL_STATE_SIZE,
    MINT_DECIMALS_OFFSET,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    TOKEN_ACCOUNT_AMOUNT_OFFSET,
    TOKEN_ACCOUNT_MINT_OFFSET,
    TOKEN_ACCOUNT_OWNER_OFFSET,
)

logger = logging.getLogger(__name__)

# After the discriminator and 10 pubkeys:
# auth_bump, status, lp_mint_decimals, mint_0_decimals, mint_1_decimals (u8)
# lp_supply, protocol_fees_token_0/1, fund_fees_token_0/1, open_time, recent_epoch (u64)
# padding (31 x u64)
_POOL_SCALARS = struct.Struct(f"<5B7Q{CP_POOL_STATE_PADDING_WORDS}Q")

_POOL_PUBKEY_FIELDS = (
    "amm_config",
    "pool_creator",
    "token_0_vault",
    "token_1_vault",
    "lp_mint",
    "token_0_mint",
    "token_1_mint",
    "token_0_program",
    "token_1_program",
    "observation_key",
)


def parse_cp_pool_state(account_data: bytes, pool_address: str = "") -> CpPoolState:
    """
    Parse CP-Swap PoolState account

    Layout:
    - blob(8): discriminator
    - publicKey(32) x 10: amm_config, pool_creator, token_0_vault,
      token_1_vault, lp_mint, token_0_mint, token_1_mint, token_0_program,
      token_1_program, observation_key
    - u8 x 5: auth_bump, status, lp_mint_decimals, mint_0_decimals, mint_1_decimals
    - u64 x 7: lp_supply, protocol_fees_token_0, protocol_fees_token_1,
      fund_fees_token_0, fund_fees_token_1, open_time, recent_epoch
    - u64 x 31: padding

    Args:
        account_data: Raw account data bytes
        pool_address: Used in error messages only

    Returns:
        CpPoolState

    Raises:
        PoolUnavailable: If the data is not a CP-Swap PoolState
    """
    if len(account_data) < CP_POOL_STATE_SIZE:
        raise PoolUnavailable.invalid_state(
            pool_address,
            f"PoolState is {len(account_data)} bytes, expected {CP_POOL_STATE_SIZE}",
        )

    if account_data[:8] != ACCOUNT_DISCRIMINATORS["PoolState"]:
        raise PoolUnavailable.invalid_state(
            pool_address,
            f"unexpected account discriminator {account_data[:8].hex()}",
        )

    offset = 8
    pubkeys = {}
    for name in _POOL_PUBKEY_FIELDS:
        pubkeys[name] = Pubkey(account_data[offset:offset + 32])
        offset += 32

    values = _POOL_SCALARS.unpack_from(account_data, offset)
    (
        auth_bump, status, lp_mint_decimals, mint_0_decimals, mint_1_decimals,
        lp_supply, protocol_fees_token_0, protocol_fees_token_1,
        fund_fees_token_0, fund_fees_token_1, open_time, recent_epoch,
    ) = values[:12]

    state = CpPoolState(
        **pubkeys,
        auth_bump=auth_bump,
        status=status,
        lp_mint_decimals=lp_mint_decimals,
        mint_0_decimals=mint_0_decimals,
        mint_1_decimals=mint_1_decimals,
        lp_supply=lp_supply,
        protocol_fees_token_0=protocol_fees_token_0,
        protocol_fees_token_1=protocol_fees_token_1,
        fund_fees_token_0=fund_fees_token_0,
        fund_fees_token_1=fund_fees_token_1,
        open_time=open_time,
        recent_epoch=recent_epoch,
        padding=list(values[12:]),
    )

    if not state.is_sorted:
        raise PoolUnavailable.invalid_state(
            pool_address, "token_0_mint does not sort before token_1_mint"
        )

    return state


def encode_cp_pool_state(state: CpPoolState) -> bytes:
    """Serialize a CpPoolState back into account bytes (discriminator included)"""
    if len(state.padding) != CP_POOL_STATE_PADDING_WORDS:
        raise ConfigurationError.invalid(
            "padding", f"must be {CP_POOL_STATE_PADDING_WORDS} words, got {len(state.padding)}"
        )
    head = ACCOUNT_DISCRIMINATORS["PoolState"] + b"".join(
        bytes(getattr(state, name)) for name in _POOL_PUBKEY_FIELDS
    )
    return head + _POOL_SCALARS.pack(
        state.auth_bump,
        state.status,
        state.lp_mint_decimals,
        state.mint_0_decimals,
        state.mint_1_decimals,
        state.lp_supply,
        state.protocol_fees_token_0,
        state.protocol_fees_token_1,
        state.fund_fees_token_0,
        state.fund_fees_token_1,
        state.open_time,
        state.recent_epoch,
        *state.padding,
    )


def parse_token_account(address: Pubkey, account_data: bytes) -> VaultBalance:
    """
    Parse the base SPL token account layout

    Layout:
    - publicKey(32): mint (offset 0)
    - publicKey(32): owner (offset 32)
    - u64: amount (offset 64)

    Raises:
        PoolUnavailable: If the data is too short for a token account
    """
    if len(account_data) < TOKEN_ACCOUNT_AMOUNT_OFFSET + 8:
        raise PoolUnavailable.invalid_state(
            str(address), f"token account data is {len(account_data)} bytes"
        )
    return VaultBalance(
        address=address,
        mint=Pubkey(account_data[TOKEN_ACCOUNT_MINT_OFFSET:TOKEN_ACCOUNT_MINT_OFFSET + 32]),
        owner=Pubkey(account_data[TOKEN_ACCOUNT_OWNER_OFFSET:TOKEN_ACCOUNT_OWNER_OFFSET + 32]),
        amount=struct.unpack_from("<Q", account_data, TOKEN_ACCOUNT_AMOUNT_OFFSET)[0],
    )


def account_data_bytes(account: Dict[str, Any], address: str) -> bytes:
    """
    Decode the `data` field of a base64-encoded account info

    Raises:
        PoolUnavailable: If the data is not base64 encoded
    """
    data = account.get("data", [])
    if isinstance(data, list) and len(data) > 0:
        return base64.b64decode(data[0])
    if isinstance(data, str):
        return base64.b64decode(data)
    raise PoolUnavailable.invalid_state(address, "Invalid account data format")


def fetch_cp_pool_snapshot(
    rpc: RpcClient,
    keys: CpPoolKeys,
    commitment: Optional[str] = None,
) -> PoolSnapshot:
    """
    Fetch pool state and both vault balances in one round-trip

    The three accounts come from a single getMultipleAccounts call, so
    lp_supply and both reserves describe the same slot.

    Args:
        rpc: RPC client
        keys: Derived pool keys
        commitment: Commitment level

    Returns:
        PoolSnapshot

    Raises:
        PoolUnavailable: If an account is missing, not owned by the expected
            program, or does not match the derived keys
    """
    pool_address = str(keys.pool_state)
    slot, accounts = rpc.get_multiple_accounts_with_context(
        [pool_address, str(keys.token_0_vault), str(keys.token_1_vault)],
        commitment=commitment,
    )
    if len(accounts) != 3:
        raise PoolUnavailable.invalid_state(
            pool_address, f"expected 3 accounts from getMultipleAccounts, got {len(accounts)}"
        )

    pool_account, vault_0_account, vault_1_account = accounts
    if not pool_account:
        raise PoolUnavailable.not_found(pool_address)

    owner = pool_account.get("owner")
    if owner != str(keys.program_id):
        raise PoolUnavailable.invalid_state(
            pool_address,
            f"Account not owned by CP-Swap program {keys.program_id} (owner={owner})",
        )

    state = parse_cp_pool_state(account_data_bytes(pool_account, pool_address), pool_address)

    if state.token_0_vault != keys.token_0_vault or state.token_1_vault != keys.token_1_vault:
        raise PoolUnavailable.invalid_state(
            pool_address, "vaults recorded in pool state differ from derived vault addresses"
        )

    vaults = []
    for vault_key, vault_account, mint in (
        (keys.token_0_vault, vault_0_account, state.token_0_mint),
        (keys.token_1_vault, vault_1_account, state.token_1_mint),
    ):
        if not vault_account:
            raise PoolUnavailable.not_found(str(vault_key), account="Vault")
        balance = parse_token_account(vault_key, account_data_bytes(vault_account, str(vault_key)))
        if balance.mint != mint:
            raise PoolUnavailable.invalid_state(
                pool_address, f"vault {vault_key} holds mint {balance.mint}, expected {mint}"
            )
        vaults.append(balance)

    logger.debug(
        f"Pool {pool_address} @ slot {slot}: lp_supply={state.lp_supply}, "
        f"vault_0={vaults[0].amount}, vault_1={vaults[1].amount}"
    )

    return PoolSnapshot(
        pool_address=keys.pool_state,
        state=state,
        vault_0=vaults[0],
        vault_1=vaults[1],
        slot=slot,
    )


def fetch_mint_infos(rpc: RpcClient, mints: List[Pubkey]) -> List[MintInfo]:
    """
    Fetch token program and decimals for several mints in one call

    Layout (SPL mint, shared by Token-2022):
    - COption<Pubkey>(36): mint_authority
    - u64: supply (offset 36)
    - u8: decimals (offset 44)

    Raises:
        PoolUnavailable: If a mint is missing or not owned by a token program
    """
    accounts = rpc.get_multiple_accounts([str(m) for m in mints])
    if len(accounts) != len(mints):
        raise PoolUnavailable.invalid_state(
            ", ".join(str(m) for m in mints), "getMultipleAccounts returned too few accounts"
        )

    infos = []
    for mint, account in zip(mints, accounts):
        if not account:
            raise PoolUnavailable.not_found(str(mint), account="Mint")
        owner = account.get("owner")
        if owner not in (TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID):
            raise PoolUnavailable.invalid_state(
                str(mint), f"mint is not owned by a token program (owner={owner})"
            )
        data = account_data_bytes(account, str(mint))
        if len(data) <= MINT_DECIMALS_OFFSET:
            raise PoolUnavailable.invalid_state(str(mint), f"mint data is {len(data)} bytes")
        infos.append(MintInfo(
            address=mint,
            token_program=Pubkey.from_string(owner),
            decimals=data[MINT_DECIMALS_OFFSET],
        ))
    return infos
