"""
Test Protocols Module

Tests for the adapter registry and the Raydium CP-Swap / CLMM adapters.
"""

import base64
import struct
import sys
from decimal import Decimal
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

LOW_MINT = bytes([1] * 32)
HIGH_MINT = bytes([2] * 32)


@pytest.fixture(autouse=True)
def devnet_defaults(monkeypatch):
    """Run adapters against the built-in devnet addresses"""
    from amm_adapter.config import config

    monkeypatch.setattr(config.raydium, "cp_swap_program_id", "")
    monkeypatch.setattr(config.raydium, "clmm_program_id", "")
    monkeypatch.setattr(config.raydium, "create_pool_fee_receiver", "")
    monkeypatch.setattr(config.raydium, "cp_amm_config_index", 0)
    monkeypatch.setattr(config.raydium, "clmm_amm_config", "")


def _mint_account(decimals, owner):
    data = bytes(44) + bytes([decimals]) + bytes(37)
    return {"data": [base64.b64encode(data).decode("ascii"), "base64"], "owner": owner}


def test_protocol_registry():
    """Built-in adapters are listed and resolved by name"""
    from amm_adapter.protocols import ProtocolRegistry
    from amm_adapter.protocols.raydium import RaydiumCpSwapAdapter, RaydiumClmmAdapter

    print("Testing ProtocolRegistry...")

    protocols = ProtocolRegistry.list()
    assert "raydium_cp" in protocols
    assert "raydium_clmm" in protocols

    rpc = Mock()
    cp = ProtocolRegistry.get("raydium_cp", rpc)
    assert isinstance(cp, RaydiumCpSwapAdapter)
    assert ProtocolRegistry.get("RAYDIUM_CP", rpc) is cp
    assert isinstance(ProtocolRegistry.get("raydium_clmm", rpc, cache=False), RaydiumClmmAdapter)
    assert ProtocolRegistry.get("raydium_cp", Mock()) is not cp

    print("  ProtocolRegistry: PASSED")


def test_protocol_registry_unknown():
    """Unknown protocol is a configuration error"""
    from amm_adapter.protocols import ProtocolRegistry
    from amm_adapter.errors import ConfigurationError

    try:
        ProtocolRegistry.get("uniswap", Mock())
        assert False, "Should raise for unknown protocol"
    except ConfigurationError as e:
        assert "raydium_cp" in str(e)


def test_registry_releases_closed_rpc_clients():
    """Cached adapters do not keep discarded rpc clients alive"""
    import gc
    import weakref
    from amm_adapter.infra import RpcClient
    from amm_adapter.protocols import ProtocolRegistry

    print("Testing ProtocolRegistry release...")

    refs = []
    for _ in range(5):
        rpc = RpcClient("http://127.0.0.1:8899")
        ProtocolRegistry.get("raydium_cp", rpc)
        ProtocolRegistry.get("raydium_clmm", rpc)
        rpc.close()
        refs.append(weakref.ref(rpc))
    del rpc
    gc.collect()

    assert [ref() for ref in refs] == [None] * 5

    print("  ProtocolRegistry release: PASSED")


def test_client_close_evicts_adapters():
    """Closing the client drops its cached adapters"""
    from solders.keypair import Keypair
    from amm_adapter import AmmClient
    from amm_adapter.infra import LocalSigner
    from amm_adapter.protocols import ProtocolRegistry

    client = AmmClient(
        rpc_url="http://127.0.0.1:8899",
        signer=LocalSigner(Keypair.from_seed(bytes([3] * 32))),
    )
    cp = client.get_adapter("raydium_cp")
    clmm = client.get_adapter("raydium_clmm")
    assert client.get_adapter("raydium_cp") is cp

    client.close()
    assert ProtocolRegistry.evict(client.rpc) == 0
    assert client.get_adapter("raydium_cp") is not cp
    assert clmm.rpc is client.rpc


def test_supported_operations():
    """CLMM only creates pools"""
    from solders.pubkey import Pubkey
    from amm_adapter.protocols import AmmOperation
    from amm_adapter.protocols.raydium import RaydiumCpSwapAdapter, RaydiumClmmAdapter
    from amm_adapter.errors import OperationNotSupported

    cp = RaydiumCpSwapAdapter(Mock())
    clmm = RaydiumClmmAdapter(Mock())

    assert all(cp.supports(op) for op in AmmOperation)
    assert clmm.supports(AmmOperation.CREATE_POOL)
    assert not clmm.supports(AmmOperation.DEPOSIT)

    owner = Pubkey(bytes([7] * 32))
    for call in (
        lambda: clmm.fetch_snapshot(None),
        lambda: clmm.build_deposit(None, owner, None),
        lambda: clmm.build_withdraw(None, owner, None),
        lambda: clmm.owner_accounts(None, owner),
    ):
        try:
            call()
            assert False, "Should raise OperationNotSupported"
        except OperationNotSupported as e:
            assert e.protocol == "raydium_clmm"


def test_program_id_resolution(monkeypatch):
    """Explicit id, then config, then devnet constant"""
    from solders.pubkey import Pubkey
    from amm_adapter.config import config
    from amm_adapter.protocols.raydium import RaydiumCpSwapAdapter
    from amm_adapter.protocols.raydium.constants import CP_SWAP_DEVNET_PROGRAM_ID, CP_SWAP_MAINNET_PROGRAM_ID
    from amm_adapter.errors import ConfigurationError

    assert RaydiumCpSwapAdapter(Mock()).program_id == Pubkey.from_string(CP_SWAP_DEVNET_PROGRAM_ID)

    monkeypatch.setattr(config.raydium, "cp_swap_program_id", CP_SWAP_MAINNET_PROGRAM_ID)
    assert RaydiumCpSwapAdapter(Mock()).program_id == Pubkey.from_string(CP_SWAP_MAINNET_PROGRAM_ID)

    explicit = Pubkey(bytes([3] * 32))
    assert RaydiumCpSwapAdapter(Mock(), program_id=explicit).program_id == explicit

    try:
        RaydiumCpSwapAdapter(Mock(), program_id="not-base58!")
        assert False, "Should raise for malformed program id"
    except ConfigurationError:
        pass


def test_cp_create_pool_sorts_mints():
    """Mints and initial amounts are sorted together"""
    from solders.pubkey import Pubkey
    from amm_adapter.protocols import CreatePoolParams
    from amm_adapter.protocols.raydium import RaydiumCpSwapAdapter
    from amm_adapter.protocols.raydium.constants import (
        CP_SWAP_DEVNET_CREATE_POOL_FEE_RECEIVER,
        TOKEN_PROGRAM_ID,
        TOKEN_2022_PROGRAM_ID,
    )
    from amm_adapter.protocols.raydium.pda import get_associated_token_address

    print("Testing CP create pool...")

    rpc = Mock()
    rpc.get_multiple_accounts.return_value = [
        _mint_account(9, TOKEN_PROGRAM_ID),
        _mint_account(6, TOKEN_2022_PROGRAM_ID),
    ]
    adapter = RaydiumCpSwapAdapter(rpc)
    creator = Pubkey(bytes([7] * 32))
    low, high = Pubkey(LOW_MINT), Pubkey(HIGH_MINT)

    plan = adapter.build_create_pool(
        creator,
        CreatePoolParams(mint_a=str(high), mint_b=str(low), amount_a=2_000, amount_b=1_000, open_time=99),
    )

    assert plan.token_0_mint == low
    assert plan.token_1_mint == high
    assert rpc.get_multiple_accounts.call_args[0][0] == [str(low), str(high)]

    keys = adapter.derive_pool_keys(low, high)
    assert plan.pool_state == keys.pool_state
    assert plan.lp_mint == keys.lp_mint

    ix = plan.instructions[0]
    assert struct.unpack("<3Q", bytes(ix.data)[8:]) == (1_000, 2_000, 99)
    accounts = [m.pubkey for m in ix.accounts]
    assert accounts[7] == get_associated_token_address(creator, low, Pubkey.from_string(TOKEN_PROGRAM_ID))
    assert accounts[8] == get_associated_token_address(creator, high, Pubkey.from_string(TOKEN_2022_PROGRAM_ID))
    assert accounts[12] == Pubkey.from_string(CP_SWAP_DEVNET_CREATE_POOL_FEE_RECEIVER)

    print("  CP create pool: PASSED")


def test_cp_create_pool_rejects_bad_params():
    """Zero amounts and identical mints fail before any RPC call"""
    from solders.pubkey import Pubkey
    from amm_adapter.protocols import CreatePoolParams
    from amm_adapter.protocols.raydium import RaydiumCpSwapAdapter
    from amm_adapter.errors import ConfigurationError

    rpc = Mock()
    adapter = RaydiumCpSwapAdapter(rpc)
    creator = Pubkey(bytes([7] * 32))
    low, high = Pubkey(LOW_MINT), Pubkey(HIGH_MINT)

    for params in (
        CreatePoolParams(mint_a=low, mint_b=high, amount_a=0, amount_b=1),
        CreatePoolParams(mint_a=low, mint_b=low, amount_a=1, amount_b=1),
        CreatePoolParams(mint_a="garbage", mint_b=high, amount_a=1, amount_b=1),
    ):
        try:
            adapter.build_create_pool(creator, params)
            assert False, f"Should raise for {params}"
        except ConfigurationError:
            pass

    rpc.get_multiple_accounts.assert_not_called()


def test_cp_owner_accounts_follow_pool_token_programs():
    """Owner ATAs use the pool's token programs; LP uses Tokenkeg"""
    from solders.pubkey import Pubkey
    from amm_adapter.protocols.raydium import RaydiumCpSwapAdapter
    from amm_adapter.protocols.raydium.constants import TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID
    from amm_adapter.protocols.raydium.pda import get_associated_token_address

    adapter = RaydiumCpSwapAdapter(Mock())
    keys = adapter.derive_pool_keys(Pubkey(LOW_MINT), Pubkey(HIGH_MINT))
    owner = Pubkey(bytes([7] * 32))
    token_2022 = Pubkey.from_string(TOKEN_2022_PROGRAM_ID)

    state = Mock()
    state.token_0_program = Pubkey.from_string(TOKEN_PROGRAM_ID)
    state.token_1_program = token_2022

    accounts = adapter.owner_accounts(keys, owner, state)
    assert accounts.token_1 == get_associated_token_address(owner, keys.token_1_mint, token_2022)
    assert accounts.lp_token == get_associated_token_address(owner, keys.lp_mint)
    assert adapter.owner_accounts(keys, owner).token_1 != accounts.token_1


def test_clmm_requires_amm_config():
    """CLMM has no default fee tier"""
    from solders.pubkey import Pubkey
    from amm_adapter.protocols.raydium import RaydiumClmmAdapter
    from amm_adapter.errors import ConfigurationError, ErrorCode

    adapter = RaydiumClmmAdapter(Mock())
    try:
        adapter.derive_pool_keys(Pubkey(LOW_MINT), Pubkey(HIGH_MINT))
        assert False, "Should raise without CLMM amm config"
    except ConfigurationError as e:
        assert e.code == ErrorCode.CONFIG_MISSING


def test_clmm_create_pool_inverts_price_for_swapped_mints():
    """Price of mint_a in mint_b becomes token 0 price after sorting"""
    from solders.pubkey import Pubkey
    from amm_adapter.protocols import CreatePoolParams
    from amm_adapter.protocols.raydium import RaydiumClmmAdapter
    from amm_adapter.protocols.raydium.constants import TOKEN_PROGRAM_ID

    print("Testing CLMM create pool...")

    rpc = Mock()
    rpc.get_multiple_accounts.return_value = [
        _mint_account(6, TOKEN_PROGRAM_ID),
        _mint_account(6, TOKEN_PROGRAM_ID),
    ]
    adapter = RaydiumClmmAdapter(rpc)
    creator = Pubkey(bytes([7] * 32))
    amm_config = Pubkey(bytes([5] * 32))
    low, high = Pubkey(LOW_MINT), Pubkey(HIGH_MINT)

    plan = adapter.build_create_pool(
        creator,
        CreatePoolParams(mint_a=high, mint_b=low, initial_price=Decimal(4), amm_config=amm_config),
    )

    data = bytes(plan.instructions[0].data)
    assert int.from_bytes(data[8:24], "little") == 2 ** 63
    assert struct.unpack("<Q", data[24:])[0] == 0
    assert plan.token_0_mint == low
    assert plan.pool_state == adapter.derive_pool_keys(low, high, amm_config).pool_state
    assert plan.lp_mint is None

    raw = adapter.build_create_pool(
        creator,
        CreatePoolParams(mint_a=low, mint_b=high, sqrt_price_x64=7530851732716320752100, amm_config=amm_config),
    )
    assert int.from_bytes(bytes(raw.instructions[0].data)[8:24], "little") == 7530851732716320752100

    print("  CLMM create pool: PASSED")


def test_clmm_create_pool_needs_price():
    """Neither price nor sqrt price is a configuration error"""
    from solders.pubkey import Pubkey
    from amm_adapter.protocols import CreatePoolParams
    from amm_adapter.protocols.raydium import RaydiumClmmAdapter
    from amm_adapter.protocols.raydium.constants import TOKEN_PROGRAM_ID
    from amm_adapter.errors import ConfigurationError

    rpc = Mock()
    rpc.get_multiple_accounts.return_value = [
        _mint_account(6, TOKEN_PROGRAM_ID),
        _mint_account(6, TOKEN_PROGRAM_ID),
    ]
    adapter = RaydiumClmmAdapter(rpc)

    for params in (
        CreatePoolParams(mint_a=Pubkey(LOW_MINT), mint_b=Pubkey(HIGH_MINT), amm_config=Pubkey(bytes([5] * 32))),
        CreatePoolParams(
            mint_a=Pubkey(LOW_MINT), mint_b=Pubkey(HIGH_MINT),
            initial_price=Decimal(0), amm_config=Pubkey(bytes([5] * 32)),
        ),
    ):
        try:
            adapter.build_create_pool(Pubkey(bytes([7] * 32)), params)
            assert False, "Should raise without a usable price"
        except ConfigurationError:
            pass
