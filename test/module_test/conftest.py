"""
Shared configuration and fixtures for module integration tests.

WARNING: Tests marked as REAL TRANSACTION spend real tokens!

Environment Variables:
    SOLANA_RPC_URL: RPC endpoint URL (required)
    SOLANA_PRIVATE_KEY: Base58 or JSON byte array secret (transactions only)
    SOLANA_KEYPAIR_PATH: Path to keypair JSON file (alternative to private key)
    RAYDIUM_CP_MINT_0 / RAYDIUM_CP_MINT_1: Mints of an existing CP-Swap pool
    RUN_REAL_TX: Set to 1 to run tests that submit transactions
"""

import os
import sys
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_env_or_fail(key: str) -> str:
    """Get required environment variable or raise error"""
    value = os.getenv(key)
    if not value:
        raise EnvironmentError(
            f"Missing required environment variable: {key}\n"
            f"Please set {key} in your .env file or environment."
        )
    return value


def get_rpc_url() -> str:
    """Get Solana RPC URL from environment"""
    return get_env_or_fail("SOLANA_RPC_URL")


def get_pool_mints():
    """Mints of the CP-Swap pool under test, in any order"""
    return get_env_or_fail("RAYDIUM_CP_MINT_0"), get_env_or_fail("RAYDIUM_CP_MINT_1")


def skip_if_no_config():
    """Check if required read config is available, return skip message if not"""
    try:
        get_rpc_url()
        get_pool_mints()
        return None
    except EnvironmentError as e:
        return str(e)


def skip_if_no_wallet():
    """Check if a wallet is configured and real transactions are enabled"""
    if os.getenv("RUN_REAL_TX") != "1":
        return "Set RUN_REAL_TX=1 to run tests that submit transactions"
    if not (os.getenv("SOLANA_PRIVATE_KEY") or os.getenv("SOLANA_KEYPAIR_PATH")):
        return "No wallet configured: set SOLANA_PRIVATE_KEY or SOLANA_KEYPAIR_PATH"
    return None


def create_client():
    """Create AmmClient with live RPC and the configured wallet"""
    from amm_adapter import AmmClient

    return AmmClient(rpc_url=get_rpc_url())


# Pytest fixtures
@pytest.fixture(scope="module")
def rpc():
    """Read-only RPC client"""
    skip_msg = skip_if_no_config()
    if skip_msg:
        pytest.skip(skip_msg)

    from amm_adapter.infra import RpcClient

    client = RpcClient(get_rpc_url())
    yield client
    client.close()


@pytest.fixture(scope="module")
def client():
    """AmmClient with live RPC and real wallet"""
    skip_msg = skip_if_no_config() or skip_if_no_wallet()
    if skip_msg:
        pytest.skip(skip_msg)

    with create_client() as amm:
        yield amm
