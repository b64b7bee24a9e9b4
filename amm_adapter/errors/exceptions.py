"""
Exception definitions for AMM Adapter
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(Enum):
    """
    Unified error codes for AMM operations

    1xxx - RPC errors
    2xxx - Transaction errors
    3xxx - Arithmetic errors
    4xxx - Pool errors
    6xxx - Signer errors
    7xxx - Operation errors
    8xxx - Address derivation errors
    9xxx - Configuration errors
    """
    # RPC errors (recoverable)
    RPC_CONNECTION_FAILED = "1001"
    RPC_TIMEOUT = "1002"
    RPC_RATE_LIMITED = "1003"
    RPC_INVALID_RESPONSE = "1004"

    # Transaction errors
    TX_SIMULATION_FAILED = "2001"
    TX_SEND_FAILED = "2002"
    TX_CONFIRMATION_FAILED = "2003"
    TX_INVALID_BLOCKHASH = "2005"

    # Arithmetic errors
    MATH_OVERFLOW = "3001"
    MATH_UNDERFLOW = "3002"
    MATH_ZERO_SUPPLY = "3003"

    # Pool errors
    POOL_NOT_FOUND = "4001"
    POOL_INVALID_STATE = "4003"

    # Signer errors
    SIGNER_NOT_CONFIGURED = "6001"
    SIGNER_FAILED = "6002"

    # Operation errors
    OPERATION_NOT_SUPPORTED = "7001"

    # Derivation errors
    DERIVATION_EXHAUSTED = "8001"
    DERIVATION_INVALID_SEEDS = "8002"

    # Configuration errors
    CONFIG_INVALID = "9001"
    CONFIG_MISSING = "9002"
    ADDRESS_INVALID = "9003"


class AmmAdapterError(Exception):
    """
    Base exception for all AMM adapter errors

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
        recoverable: Whether the error might succeed on retry
        original_error: The underlying exception if any
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        recoverable: bool = False,
        original_error: Optional[Exception] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.recoverable = recoverable
        self.original_error = original_error
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"

    @property
    def should_retry(self) -> bool:
        """Indicate if the operation should be retried"""
        return self.recoverable


class RpcError(AmmAdapterError):
    """
    RPC-related errors - typically recoverable

    Raised when:
    - Connection to RPC endpoint fails
    - Request times out
    - Rate limit is hit
    - The node answers with a JSON-RPC error object
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.RPC_CONNECTION_FAILED,
        original_error: Optional[Exception] = None,
        endpoint: Optional[str] = None,
    ):
        super().__init__(
            message,
            code,
            recoverable=True,
            original_error=original_error,
            details={"endpoint": endpoint} if endpoint else None,
        )
        self.endpoint = endpoint

    @property
    def rpc_error_data(self) -> Any:
        """Raw `error.data` from the node, if any"""
        return self.details.get("rpc_error_data")

    @classmethod
    def connection_failed(cls, endpoint: str, error: Exception = None) -> "RpcError":
        return cls(
            f"Failed to connect to RPC endpoint: {endpoint}",
            ErrorCode.RPC_CONNECTION_FAILED,
            original_error=error,
            endpoint=endpoint,
        )

    @classmethod
    def timeout(cls, endpoint: str, timeout_seconds: float) -> "RpcError":
        return cls(
            f"RPC request timed out after {timeout_seconds}s",
            ErrorCode.RPC_TIMEOUT,
            endpoint=endpoint,
        )

    @classmethod
    def rate_limited(cls, endpoint: str) -> "RpcError":
        return cls(
            "RPC rate limit exceeded",
            ErrorCode.RPC_RATE_LIMITED,
            endpoint=endpoint,
        )


class MathError(AmmAdapterError):
    """
    Arithmetic failures in liquidity math - never recoverable

    Raised when:
    - A product or sum leaves the unsigned integer range of the on-chain type
    - A subtraction would go negative
    - LP supply is zero (pool holds no liquidity yet)
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.MATH_OVERFLOW,
        operation: Optional[str] = None,
    ):
        super().__init__(
            message,
            code,
            recoverable=False,
            details={"operation": operation},
        )
        self.operation = operation

    @classmethod
    def overflow(cls, operation: str, bits: int) -> "MathError":
        return cls(
            f"Arithmetic overflow in {operation}: result exceeds u{bits}",
            ErrorCode.MATH_OVERFLOW,
            operation=operation,
        )

    @classmethod
    def underflow(cls, operation: str, minuend: int, subtrahend: int) -> "MathError":
        return cls(
            f"Arithmetic underflow in {operation}: {minuend} - {subtrahend} < 0",
            ErrorCode.MATH_UNDERFLOW,
            operation=operation,
        )

    @classmethod
    def zero_supply(cls) -> "MathError":
        return cls(
            "LP supply is zero: pool has no liquidity yet",
            ErrorCode.MATH_ZERO_SUPPLY,
            operation="lp_tokens_to_trading_tokens",
        )


class DerivationError(AmmAdapterError):
    """
    Program derived address errors

    Raised when:
    - No bump in 255..0 produces an off-curve address
    - Seeds violate the runtime's count/length limits
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.DERIVATION_EXHAUSTED,
        program_id: Optional[str] = None,
    ):
        super().__init__(
            message,
            code,
            recoverable=False,
            details={"program_id": program_id},
        )
        self.program_id = program_id

    @classmethod
    def exhausted(cls, program_id: str) -> "DerivationError":
        return cls(
            f"Unable to find a viable program address bump seed for {program_id}",
            ErrorCode.DERIVATION_EXHAUSTED,
            program_id=program_id,
        )

    @classmethod
    def invalid_seeds(cls, program_id: str, reason: str) -> "DerivationError":
        return cls(
            f"Invalid seeds: {reason}",
            ErrorCode.DERIVATION_INVALID_SEEDS,
            program_id=program_id,
        )


class PoolUnavailable(AmmAdapterError):
    """
    Pool not available - not recoverable within the current operation

    Raised when:
    - Pool or vault account not found on chain
    - Account data does not match the expected layout
    """

    def __init__(
        self,
        message: str,
        pool_address: Optional[str] = None,
        code: ErrorCode = ErrorCode.POOL_NOT_FOUND,
    ):
        super().__init__(
            message,
            code,
            recoverable=False,
            details={"pool_address": pool_address},
        )
        self.pool_address = pool_address

    @classmethod
    def not_found(cls, pool_address: str, account: str = "Pool state") -> "PoolUnavailable":
        return cls(
            f"{account} account not found: {pool_address}",
            pool_address=pool_address,
            code=ErrorCode.POOL_NOT_FOUND,
        )

    @classmethod
    def invalid_state(cls, pool_address: str, reason: str) -> "PoolUnavailable":
        return cls(
            f"Pool has invalid state: {reason}",
            pool_address=pool_address,
            code=ErrorCode.POOL_INVALID_STATE,
        )


class TransactionError(AmmAdapterError):
    """
    Transaction execution errors

    Raised when:
    - Transaction simulation fails
    - Transaction send fails
    - Confirmation fails

    The remote error payload and program logs are kept verbatim in
    `details["remote_error"]` and `logs`.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.TX_SEND_FAILED,
        signature: Optional[str] = None,
        logs: Optional[list] = None,
        recoverable: bool = False,
        remote_error: Any = None,
    ):
        super().__init__(
            message,
            code,
            recoverable=recoverable,
            details={"signature": signature, "logs": logs, "remote_error": remote_error},
        )
        self.signature = signature
        self.logs = logs or []
        self.remote_error = remote_error

    @classmethod
    def simulation_failed(cls, error: Any, logs: list = None) -> "TransactionError":
        return cls(
            f"Transaction simulation failed: {error}",
            ErrorCode.TX_SIMULATION_FAILED,
            logs=logs,
            remote_error=error,
        )

    @classmethod
    def send_failed(
        cls,
        error: str,
        signature: Optional[str] = None,
        logs: Optional[list] = None,
        remote_error: Any = None,
    ) -> "TransactionError":
        return cls(
            f"Failed to send transaction: {error}",
            ErrorCode.TX_SEND_FAILED,
            signature=signature,
            logs=logs,
            remote_error=remote_error,
        )


class SignerError(AmmAdapterError):
    """
    Signing-related errors

    Raised when:
    - No signer configured
    - Signing operation fails
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SIGNER_FAILED,
        recoverable: bool = False,
    ):
        super().__init__(message, code, recoverable=recoverable)

    @classmethod
    def not_configured(cls) -> "SignerError":
        return cls(
            "No signer configured. Provide a keypair, keypair path or SOLANA_PRIVATE_KEY.",
            ErrorCode.SIGNER_NOT_CONFIGURED,
        )

    @classmethod
    def failed(cls, reason: str) -> "SignerError":
        return cls(f"Signing failed: {reason}", ErrorCode.SIGNER_FAILED)


class ConfigurationError(AmmAdapterError):
    """
    Configuration-related errors

    Raised when:
    - Required configuration is missing
    - Configuration values are invalid
    - An address string cannot be parsed
    - Caller contracts (such as mint ordering) are violated
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
    ):
        super().__init__(message, code, recoverable=False)

    @classmethod
    def missing(cls, param: str) -> "ConfigurationError":
        return cls(f"Missing required configuration: {param}", ErrorCode.CONFIG_MISSING)

    @classmethod
    def invalid(cls, param: str, reason: str) -> "ConfigurationError":
        return cls(f"Invalid configuration '{param}': {reason}", ErrorCode.CONFIG_INVALID)

    @classmethod
    def invalid_address(cls, param: str, value: str) -> "ConfigurationError":
        return cls(f"Invalid address for '{param}': {value!r}", ErrorCode.ADDRESS_INVALID)


class OperationNotSupported(AmmAdapterError):
    """
    Operation not supported by the adapter

    Raised when:
    - An AMM variant has no instruction for the requested operation
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        protocol: Optional[str] = None,
    ):
        super().__init__(
            message,
            ErrorCode.OPERATION_NOT_SUPPORTED,
            recoverable=False,
            details={"operation": operation, "protocol": protocol},
        )
        self.operation = operation
        self.protocol = protocol

    @classmethod
    def not_implemented(cls, operation: str, protocol: str) -> "OperationNotSupported":
        return cls(
            f"Operation '{operation}' is not supported by {protocol} adapter",
            operation=operation,
            protocol=protocol,
        )
