"""
Result type definitions for transactions and liquidity quotes
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List


class TxStatus(Enum):
    """Transaction status"""
    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"
    PENDING = "pending"


class RoundDirection(Enum):
    """Rounding applied when converting LP tokens to trading tokens"""
    FLOOR = "floor"
    CEILING = "ceiling"


@dataclass
class TxResult:
    """
    Transaction execution result

    Attributes:
        status: Transaction status
        signature: Transaction signature (base58)
        error: Error message if failed
        recoverable: Whether the caller may resubmit after checking chain state
        error_code: Error code for programmatic handling
        slot: Slot number when confirmed
        logs: Transaction logs
        remote_error: Error object as returned by the node
    """
    status: TxStatus
    signature: Optional[str] = None
    error: Optional[str] = None
    recoverable: bool = False
    error_code: Optional[str] = None
    slot: Optional[int] = None
    logs: List[str] = field(default_factory=list)
    remote_error: Optional[object] = None

    @property
    def is_success(self) -> bool:
        return self.status == TxStatus.SUCCESS

    @property
    def is_failed(self) -> bool:
        return self.status == TxStatus.FAILED

    @property
    def is_timeout(self) -> bool:
        return self.status == TxStatus.TIMEOUT

    @classmethod
    def success(cls, signature: str, **kwargs) -> "TxResult":
        """Create successful result"""
        return cls(status=TxStatus.SUCCESS, signature=signature, **kwargs)

    @classmethod
    def failed(cls, error: str, signature: str = None, **kwargs) -> "TxResult":
        """Create failed result"""
        return cls(status=TxStatus.FAILED, signature=signature, error=error, **kwargs)

    @classmethod
    def timeout(cls, signature: str = None, **kwargs) -> "TxResult":
        """Create timeout result (recoverable - check on-chain status before resubmitting)"""
        return cls(
            status=TxStatus.TIMEOUT,
            signature=signature,
            error="Transaction confirmation timeout",
            recoverable=True,
            error_code="2003",
            **kwargs
        )

    def __str__(self) -> str:
        if self.is_success:
            sig_display = f"{self.signature[:16]}..." if self.signature else "no signature"
            return f"TxResult(SUCCESS, {sig_display})"
        return f"TxResult({self.status.value}, error={self.error})"


@dataclass(frozen=True)
class TradingTokenResult:
    """Token amounts equivalent to an LP amount"""
    token_0_amount: int
    token_1_amount: int


@dataclass
class LiquidityQuote:
    """
    Deposit or withdraw quote

    Attributes:
        lp_amount: LP tokens minted or burned
        token_0_amount: Raw token 0 amount from the curve
        token_1_amount: Raw token 1 amount from the curve
        token_0_limit: Guard passed to the program (max for deposit, min for withdraw)
        token_1_limit: Guard passed to the program
        round_direction: Rounding used for the raw amounts
        lp_supply: LP supply the calculation ran against
        slippage_bps: Slippage applied to build the guards
    """
    lp_amount: int
    token_0_amount: int
    token_1_amount: int
    token_0_limit: int
    token_1_limit: int
    round_direction: RoundDirection
    lp_supply: int
    slippage_bps: int


@dataclass
class LiquidityResult:
    """Outcome of a liquidity transaction with the quotes it was built from"""
    tx: TxResult
    pool_address: Optional[str] = None
    deposit_quote: Optional[LiquidityQuote] = None
    withdraw_quote: Optional[LiquidityQuote] = None

    @property
    def is_success(self) -> bool:
        return self.tx.is_success

    @property
    def signature(self) -> Optional[str]:
        return self.tx.signature
