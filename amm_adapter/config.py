"""
Configuration management for AMM Adapter

Loads settings from environment variables and .env file.
Includes logging configuration with file output and correlation ID support.

Endpoints, key material, program ids and slippage policy are all read from
here (or passed explicitly to constructors); nothing secret is embedded.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List

from dotenv import load_dotenv


def _load_env_file():
    """Load .env file from project root"""
    current = Path(__file__).parent.parent  # amm_adapter package parent
    env_file = current / ".env"

    if env_file.exists():
        load_dotenv(env_file)


# Load .env on module import
_load_env_file()


def _get_env(key: str, default: Optional[str] = "") -> Optional[str]:
    """Raw environment value, or default when unset"""
    value = os.getenv(key)
    return default if value is None else value


def _get_env_typed(key: str, default, cast):
    """Environment value converted with cast; unparsable values fall back to default"""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return cast(value)
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Ignoring {key}='{value}': not a valid {cast.__name__}, using {default}"
        )
        return default


def _get_env_float(key: str, default: float) -> float:
    return _get_env_typed(key, default, float)


def _get_env_int(key: str, default: int) -> int:
    return _get_env_typed(key, default, int)


def _get_env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes", "on")


@dataclass
class RpcConfig:
    """RPC client configuration"""
    url: str = field(default_factory=lambda: _get_env("SOLANA_RPC_URL", ""))
    timeout_seconds: float = field(default_factory=lambda: _get_env_float("RPC_TIMEOUT_SECONDS", 30.0))
    max_retries: int = field(default_factory=lambda: _get_env_int("RPC_MAX_RETRIES", 3))
    retry_delay_seconds: float = field(default_factory=lambda: _get_env_float("RPC_RETRY_DELAY_SECONDS", 1.0))
    commitment: str = field(default_factory=lambda: _get_env("RPC_COMMITMENT", "confirmed"))


@dataclass
class SignerConfig:
    """Signer configuration for local keypair signing"""
    keypair_path: str = field(default_factory=lambda: _get_env("SOLANA_KEYPAIR_PATH", ""))
    # Base58 string or JSON byte array, as exported by common wallets
    private_key: str = field(default_factory=lambda: _get_env("SOLANA_PRIVATE_KEY", ""))


@dataclass
class TxConfig:
    """Transaction configuration"""
    # 0 disables the compute budget instruction
    compute_units: int = field(default_factory=lambda: _get_env_int("TX_COMPUTE_UNITS", 0))
    compute_unit_price: int = field(default_factory=lambda: _get_env_int("TX_COMPUTE_UNIT_PRICE", 0))
    confirmation_timeout: float = field(default_factory=lambda: _get_env_float("TX_CONFIRMATION_TIMEOUT", 60.0))
    confirmation_poll_interval: float = field(default_factory=lambda: _get_env_float("TX_CONFIRMATION_POLL_INTERVAL", 1.0))
    skip_preflight: bool = field(default_factory=lambda: _get_env_bool("TX_SKIP_PREFLIGHT", False))
    preflight_commitment: str = field(default_factory=lambda: _get_env("TX_PREFLIGHT_COMMITMENT", "confirmed"))


@dataclass
class RaydiumConfig:
    """
    Raydium program addresses

    Empty values fall back to the devnet constants in
    amm_adapter.protocols.raydium.constants.
    """
    cp_swap_program_id: str = field(default_factory=lambda: _get_env("CP_SWAP_PROGRAM_ID", ""))
    clmm_program_id: str = field(default_factory=lambda: _get_env("CLMM_PROGRAM_ID", ""))
    create_pool_fee_receiver: str = field(default_factory=lambda: _get_env("CP_SWAP_CREATE_POOL_FEE_RECEIVER", ""))
    cp_amm_config_index: int = field(default_factory=lambda: _get_env_int("CP_SWAP_AMM_CONFIG_INDEX", 0))
    # CLMM fee tiers live at fixed config accounts; there is no sensible default
    clmm_amm_config: str = field(default_factory=lambda: _get_env("CLMM_AMM_CONFIG", ""))


@dataclass
class TradingConfig:
    """Slippage policy for LP guard amounts (basis points)"""
    deposit_slippage_bps: int = field(default_factory=lambda: _get_env_int("DEPOSIT_SLIPPAGE_BPS", 100))
    withdraw_slippage_bps: int = field(default_factory=lambda: _get_env_int("WITHDRAW_SLIPPAGE_BPS", 100))


def _get_default_log_path() -> str:
    """Timestamped (UTC) log file under amm_adapter/log/"""
    from datetime import datetime, timezone
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return str(Path(__file__).parent / "log" / f"amm_adapter_{stamp}.log")


@dataclass
class LoggingConfig:
    """
    Logging output settings

    Environment variables:
        LOG_FILE: Log file path; empty string disables the file handler
        LOG_LEVEL: Level name (default INFO; unknown names mean INFO)
        LOG_FORMAT: logging.Formatter format string
        LOG_CONSOLE: Also log to stderr (default true)
        LOG_MAX_BYTES: Rotate the file at this size (default 10 MiB)
        LOG_BACKUP_COUNT: Rotated files kept (default 5)
    """
    log_file: str = field(default_factory=lambda: _get_env("LOG_FILE", _get_default_log_path()))
    log_level: str = field(default_factory=lambda: _get_env("LOG_LEVEL", "INFO"))
    log_format: str = field(default_factory=lambda: _get_env(
        "LOG_FORMAT",
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
    ))
    console_output: bool = field(default_factory=lambda: _get_env_bool("LOG_CONSOLE", True))
    max_bytes: int = field(default_factory=lambda: _get_env_int("LOG_MAX_BYTES", 10 * 1024 * 1024))
    backup_count: int = field(default_factory=lambda: _get_env_int("LOG_BACKUP_COUNT", 5))

    @property
    def level(self) -> int:
        """Numeric level for log_level"""
        value = logging.getLevelName(self.log_level.upper())
        return value if isinstance(value, int) else logging.INFO


@dataclass
class Config:
    """
    Main configuration container

    Usage:
        from amm_adapter.config import config

        print(config.rpc.url)
        print(config.trading.deposit_slippage_bps)
    """
    rpc: RpcConfig = field(default_factory=RpcConfig)
    signer: SignerConfig = field(default_factory=SignerConfig)
    tx: TxConfig = field(default_factory=TxConfig)
    raydium: RaydiumConfig = field(default_factory=RaydiumConfig)
    trading: TradingConfig = field(default_factory=TradingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def reload(cls) -> "Config":
        """Reload configuration from environment"""
        _load_env_file()
        return cls()


# Global config instance
config = Config()


def get_config() -> Config:
    """Get global configuration instance"""
    return config


def reload_config() -> Config:
    """
    Reload configuration from the environment.

    The existing instance is updated in place so modules that imported
    `config` see the new values.
    """
    fresh = Config.reload()
    for name in fresh.__dataclass_fields__:
        setattr(config, name, getattr(fresh, name))
    return config


def _build_handlers(log_config: LoggingConfig) -> List[logging.Handler]:
    """File (rotating) and console handlers as enabled by log_config"""
    handlers: List[logging.Handler] = []

    if log_config.log_file:
        from logging.handlers import RotatingFileHandler

        Path(log_config.log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            log_config.log_file,
            maxBytes=log_config.max_bytes,
            backupCount=log_config.backup_count,
            encoding="utf-8",
        ))

    if log_config.console_output:
        handlers.append(logging.StreamHandler())

    formatter = logging.Formatter(log_config.log_format)
    for handler in handlers:
        handler.setLevel(log_config.level)
        handler.setFormatter(formatter)
    return handlers


def setup_logging(
    log_config: Optional[LoggingConfig] = None,
    logger_name: str = "amm_adapter",
) -> logging.Logger:
    """
    Configure the package logger from LoggingConfig.

    Calling it again replaces the handlers installed by the previous call.
    Correlated events (amm_adapter.events) propagate to this logger.

    Args:
        log_config: Logging configuration (global config.logging if None)
        logger_name: Logger to configure

    Returns:
        The configured logger
    """
    log_config = log_config or config.logging

    logger = logging.getLogger(logger_name)
    logger.setLevel(log_config.level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    for handler in _build_handlers(log_config):
        logger.addHandler(handler)

    if log_config.log_file:
        logger.info(f"Logging to {log_config.log_file} at {log_config.log_level.upper()}")

    return logger
