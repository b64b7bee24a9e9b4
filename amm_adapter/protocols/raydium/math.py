"""
Raydium Liquidity Math

Constant-product LP conversion, fee-adjusted reserves, slippage guards and
CLMM sqrt price conversion. All amounts are raw integer token units.
"""

from decimal import Decimal, localcontext
from typing import Optional

from ...errors import ConfigurationError, MathError
from ...types import (
    LiquidityQuote,
    PoolSnapshot,
    RoundDirection,
    TradingTokenResult,
)
from .constants import (
    BPS_DENOMINATOR,
    MAX_SQRT_PRICE_X64,
    MAX_UINT64,
    MAX_UINT128,
    MIN_SQRT_PRICE_X64,
    Q64,
)


def _require_unsigned(name: str, value: int) -> None:
    if value < 0:
        raise ConfigurationError.invalid(name, f"must be non-negative, got {value}")


def _checked_u128(operation: str, value: int) -> int:
    if value > MAX_UINT128:
        raise MathError.overflow(operation, 128)
    return value


def _checked_u64(operation: str, value: int) -> int:
    if value > MAX_UINT64:
        raise MathError.overflow(operation, 64)
    return value


def lp_tokens_to_trading_tokens(
    lp_amount: int,
    lp_supply: int,
    reserve_0: int,
    reserve_1: int,
    round_direction: RoundDirection,
) -> TradingTokenResult:
    """
    Convert an LP amount to the underlying token amounts.

    token_i = lp_amount * reserve_i / lp_supply, with the product carried at
    128-bit width. Ceiling adds one to a side only when its division left a
    remainder and its floored result is non-zero; the two sides round
    independently.

    Args:
        lp_amount: LP tokens to convert
        lp_supply: Total LP supply the reserves back
        reserve_0: Fee-adjusted token 0 reserve
        reserve_1: Fee-adjusted token 1 reserve
        round_direction: FLOOR for withdraw minimums, CEILING for deposit maximums

    Returns:
        TradingTokenResult

    Raises:
        MathError: If lp_supply is zero or an intermediate leaves u128
    """
    for name, value in (
        ("lp_amount", lp_amount),
        ("lp_supply", lp_supply),
        ("reserve_0", reserve_0),
        ("reserve_1", reserve_1),
    ):
        _require_unsigned(name, value)

    if lp_supply == 0:
        raise MathError.zero_supply()

    def convert(reserve: int) -> int:
        product = _checked_u128("lp_tokens_to_trading_tokens", lp_amount * reserve)
        amount, remainder = divmod(product, lp_supply)
        if round_direction == RoundDirection.CEILING and remainder > 0 and amount > 0:
            amount = _checked_u128("lp_tokens_to_trading_tokens", amount + 1)
        return amount

    return TradingTokenResult(
        token_0_amount=convert(reserve_0),
        token_1_amount=convert(reserve_1),
    )


def apply_deposit_slippage(amount: int, slippage_bps: int) -> int:
    """
    Inflate a required deposit amount into a maximum guard.

    amount * (10000 + bps) // 10000; 100 bps is +1%.

    Raises:
        MathError: If the guard does not fit u64
    """
    _require_unsigned("amount", amount)
    _require_unsigned("slippage_bps", slippage_bps)
    return _checked_u64(
        "apply_deposit_slippage",
        amount * (BPS_DENOMINATOR + slippage_bps) // BPS_DENOMINATOR,
    )


def apply_withdraw_slippage(amount: int, slippage_bps: int) -> int:
    """
    Deflate an expected withdraw amount into a minimum guard.

    amount - amount * bps // 10000; 100 bps is -1%.

    Raises:
        ConfigurationError: If slippage_bps exceeds 10000
        MathError: If the guard does not fit u64
    """
    _require_unsigned("amount", amount)
    _require_unsigned("slippage_bps", slippage_bps)
    if slippage_bps > BPS_DENOMINATOR:
        raise ConfigurationError.invalid(
            "slippage_bps", f"withdraw slippage cannot exceed {BPS_DENOMINATOR}, got {slippage_bps}"
        )
    return _checked_u64("apply_withdraw_slippage", amount - amount * slippage_bps // BPS_DENOMINATOR)


def quote_deposit(snapshot: PoolSnapshot, lp_amount: int, slippage_bps: int) -> LiquidityQuote:
    """
    Quote a deposit of lp_amount against the current pool snapshot.

    Token amounts round up; guards are inflated by slippage_bps.
    """
    reserve_0, reserve_1 = snapshot.reserves
    lp_supply = snapshot.lp_supply
    result = lp_tokens_to_trading_tokens(
        lp_amount, lp_supply, reserve_0, reserve_1, RoundDirection.CEILING
    )
    return LiquidityQuote(
        lp_amount=lp_amount,
        token_0_amount=result.token_0_amount,
        token_1_amount=result.token_1_amount,
        token_0_limit=apply_deposit_slippage(result.token_0_amount, slippage_bps),
        token_1_limit=apply_deposit_slippage(result.token_1_amount, slippage_bps),
        round_direction=RoundDirection.CEILING,
        lp_supply=lp_supply,
        slippage_bps=slippage_bps,
    )


def quote_withdraw(
    snapshot: PoolSnapshot,
    lp_amount: int,
    slippage_bps: int,
    lp_supply: Optional[int] = None,
) -> LiquidityQuote:
    """
    Quote a withdrawal of lp_amount.

    Token amounts round down; guards are deflated by slippage_bps.

    Args:
        snapshot: Current pool snapshot (reserves are always taken from here)
        lp_amount: LP tokens to burn
        slippage_bps: Withdraw slippage tolerance
        lp_supply: Supply override. Deposit-then-withdraw passes
            lp_supply + deposited_lp, assuming the deposit mints exactly the
            requested LP amount. The program's own mint rounding is not modelled.
    """
    reserve_0, reserve_1 = snapshot.reserves
    supply = snapshot.lp_supply if lp_supply is None else lp_supply
    result = lp_tokens_to_trading_tokens(
        lp_amount, supply, reserve_0, reserve_1, RoundDirection.FLOOR
    )
    return LiquidityQuote(
        lp_amount=lp_amount,
        token_0_amount=result.token_0_amount,
        token_1_amount=result.token_1_amount,
        token_0_limit=apply_withdraw_slippage(result.token_0_amount, slippage_bps),
        token_1_limit=apply_withdraw_slippage(result.token_1_amount, slippage_bps),
        round_direction=RoundDirection.FLOOR,
        lp_supply=supply,
        slippage_bps=slippage_bps,
    )


def projected_lp_supply(lp_supply: int, deposited_lp: int) -> int:
    """LP supply after a deposit of deposited_lp executes in the same transaction"""
    return _checked_u64("projected_lp_supply", lp_supply + deposited_lp)


def sqrt_price_x64_to_price(
    sqrt_price_x64: int,
    decimals_0: int,
    decimals_1: int,
) -> Decimal:
    """
    Convert sqrt price X64 to human-readable price

    Args:
        sqrt_price_x64: Sqrt price in X64 format
        decimals_0: Token 0 decimals
        decimals_1: Token 1 decimals

    Returns:
        Price of token 0 in terms of token 1
    """
    with localcontext() as ctx:
        ctx.prec = 60
        # price = (sqrt_price_x64 / 2^64)^2 * 10^(decimals_0 - decimals_1)
        sqrt_price = Decimal(sqrt_price_x64) / Decimal(Q64)
        return sqrt_price * sqrt_price * Decimal(10) ** (decimals_0 - decimals_1)


def price_to_sqrt_price_x64(
    price: Decimal,
    decimals_0: int,
    decimals_1: int,
) -> int:
    """
    Convert price to sqrt price X64

    Args:
        price: Price of token 0 in terms of token 1
        decimals_0: Token 0 decimals
        decimals_1: Token 1 decimals

    Returns:
        Sqrt price in X64 format

    Raises:
        ConfigurationError: If price is not positive or falls outside the
            CLMM sqrt price range
    """
    price = Decimal(price)
    if price <= 0:
        raise ConfigurationError.invalid("price", f"must be positive, got {price}")

    with localcontext() as ctx:
        ctx.prec = 60
        adjusted_price = price / Decimal(10) ** (decimals_0 - decimals_1)
        sqrt_price_x64 = int(adjusted_price.sqrt() * Q64)

    if not MIN_SQRT_PRICE_X64 <= sqrt_price_x64 < MAX_SQRT_PRICE_X64:
        raise ConfigurationError.invalid(
            "price",
            f"sqrt_price_x64 {sqrt_price_x64} outside [{MIN_SQRT_PRICE_X64}, {MAX_SQRT_PRICE_X64})",
        )
    return sqrt_price_x64

