"""
Raydium Liquidity Module Integration Tests

Read tests run against any RPC endpoint with a known CP-Swap pool.

WARNING: test_deposit_then_withdraw_raydium executes a REAL transaction and
spends REAL tokens (network fees plus rounding). It only runs with
RUN_REAL_TX=1.
"""

import os
import sys
from pathlib import Path

import pytest
from solders.pubkey import Pubkey

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from conftest import get_pool_mints

# Small enough for a test wallet on devnet
TEST_LP_AMOUNT = int(os.getenv("RAYDIUM_TEST_LP_AMOUNT", "1000"))


def _pool_keys(rpc):
    from amm_adapter.protocols.raydium import RaydiumCpSwapAdapter
    from amm_adapter.protocols.raydium.pda import sort_mints

    adapter = RaydiumCpSwapAdapter(rpc)
    mint_a, mint_b = (Pubkey.from_string(m) for m in get_pool_mints())
    mint_0, mint_1, _, _ = sort_mints(mint_a, mint_b)
    return adapter, adapter.derive_pool_keys(mint_0, mint_1)


def test_snapshot_raydium(rpc):
    """Derived keys point at a live pool whose vaults match"""
    print("Testing pool snapshot (Raydium CP-Swap)...")

    adapter, keys = _pool_keys(rpc)
    snapshot = adapter.fetch_snapshot(keys)

    print(f"  Pool: {keys.pool_state}")
    print(f"  Slot: {snapshot.slot}")
    print(f"  LP supply: {snapshot.lp_supply}")
    print(f"  Reserves: {snapshot.reserves}")

    assert snapshot.state.lp_mint == keys.lp_mint
    assert snapshot.state.token_0_mint == keys.token_0_mint
    assert snapshot.lp_supply > 0
    assert all(r >= 0 for r in snapshot.reserves)

    print("  snapshot (Raydium): PASSED")


def test_quotes_raydium(rpc):
    """Deposit maximums never fall below withdraw minimums for the same LP amount"""
    print("Testing quotes (Raydium CP-Swap)...")

    from amm_adapter.protocols.raydium.math import quote_deposit, quote_withdraw

    adapter, keys = _pool_keys(rpc)
    snapshot = adapter.fetch_snapshot(keys)

    deposit = quote_deposit(snapshot, TEST_LP_AMOUNT, 100)
    withdraw = quote_withdraw(snapshot, TEST_LP_AMOUNT, 100)

    print(f"  Deposit max: {deposit.token_0_limit} / {deposit.token_1_limit}")
    print(f"  Withdraw min: {withdraw.token_0_limit} / {withdraw.token_1_limit}")

    assert deposit.token_0_amount >= withdraw.token_0_amount
    assert deposit.token_1_amount >= withdraw.token_1_amount
    assert deposit.token_0_limit >= deposit.token_0_amount
    assert withdraw.token_0_limit <= withdraw.token_0_amount

    print("  quotes (Raydium): PASSED")


def test_deposit_then_withdraw_raydium(client):
    """Deposit and withdraw the same LP amount in one transaction (REAL TRANSACTION)"""
    print("Testing deposit then withdraw (Raydium) (REAL TRANSACTION)...")

    mint_a, mint_b = get_pool_mints()
    from amm_adapter.protocols.raydium.pda import sort_mints

    mint_0, mint_1, _, _ = sort_mints(Pubkey.from_string(mint_a), Pubkey.from_string(mint_b))
    keys = client.lp.pool_keys(mint_0, mint_1)

    result = client.lp.deposit_then_withdraw(keys, deposit_lp_amount=TEST_LP_AMOUNT)

    print(f"  Signature: {result.signature}")
    print(f"  Status: {result.tx.status.value}")
    if result.tx.error:
        print(f"  Error: {result.tx.error}")

    if result.tx.is_timeout:
        pytest.skip(f"Confirmation timed out; check {result.signature} on chain")

    assert result.is_success, f"Transaction failed: {result.tx.error}"
    assert result.withdraw_quote.lp_supply == result.deposit_quote.lp_supply + TEST_LP_AMOUNT

    print("  deposit then withdraw (Raydium): PASSED")
