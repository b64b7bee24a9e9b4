"""
Liquidity Module

Pool creation and LP operations. Every operation reads a fresh pool
snapshot, computes guards from it, and submits all of its instructions as
one transaction.
"""

import logging
from typing import List, Optional, Union, TYPE_CHECKING

from solders.instruction import Instruction
from solders.pubkey import Pubkey

if TYPE_CHECKING:
    from ..client import AmmClient

from ..config import config
from ..errors import AmmAdapterError, ConfigurationError
from ..infra import CorrelationContext, log_event
from ..protocols import AmmOperation, AmmProtocol, CreatePoolParams, ProtocolRegistry
from ..protocols.raydium.instructions import build_create_ata_idempotent_instruction
from ..protocols.raydium.math import projected_lp_supply, quote_deposit, quote_withdraw
from ..types import CpPoolKeys, LiquidityQuote, LiquidityResult, PoolSnapshot, TxResult

logger = logging.getLogger(__name__)

DEFAULT_PROTOCOL = "raydium_cp"


class LiquidityModule:
    """
    Liquidity operations module

    Provides:
    - Pool creation (constant product and concentrated liquidity)
    - Deposit / withdraw with slippage guards
    - Atomic deposit-then-withdraw
    - Quotes against a fresh snapshot

    Usage:
        keys = client.lp.pool_keys(mint_0, mint_1)
        result = client.lp.deposit(keys, lp_amount=1_000_000)
    """

    def __init__(self, client: "AmmClient"):
        """
        Initialize liquidity module

        Args:
            client: AmmClient instance
        """
        self._client = client
        self._rpc = client.rpc
        self._tx_builder = client.tx_builder

    @property
    def owner(self) -> Pubkey:
        """Owner wallet address"""
        return Pubkey.from_string(self._client.pubkey)

    def adapter(self, protocol: str = DEFAULT_PROTOCOL) -> AmmProtocol:
        return ProtocolRegistry.get(protocol, self._rpc)

    def pool_keys(
        self,
        mint_0: Union[Pubkey, str],
        mint_1: Union[Pubkey, str],
        protocol: str = DEFAULT_PROTOCOL,
        amm_config: Optional[Union[Pubkey, str]] = None,
    ):
        """Derive pool addresses for sorted mints"""
        return self.adapter(protocol).derive_pool_keys(mint_0, mint_1, amm_config)

    def snapshot(self, keys: CpPoolKeys, protocol: str = DEFAULT_PROTOCOL) -> PoolSnapshot:
        """Fetch pool state and both vaults in one read"""
        return self.adapter(protocol).fetch_snapshot(keys)

    # ========== Pool Creation ==========

    def create_pool(
        self,
        params: CreatePoolParams,
        protocol: str = DEFAULT_PROTOCOL,
        wait_confirmation: bool = True,
    ) -> LiquidityResult:
        """
        Create a pool

        Args:
            params: Mints, initial amounts (CP) or price (CLMM)
            protocol: "raydium_cp" or "raydium_clmm"
            wait_confirmation: Wait for confirmation

        Returns:
            LiquidityResult with the new pool address
        """
        adapter = self.adapter(protocol)
        adapter.require(AmmOperation.CREATE_POOL)

        with CorrelationContext("create_pool"):
            plan = adapter.build_create_pool(self.owner, params)
            log_event(
                logging.INFO, "Pool creation built", "create_pool",
                protocol=protocol,
                pool=str(plan.pool_state),
                token_0_mint=str(plan.token_0_mint),
                token_1_mint=str(plan.token_1_mint),
                lp_mint=str(plan.lp_mint) if plan.lp_mint else None,
            )
            tx_result = self._submit(plan.instructions, "create_pool", wait_confirmation)

        return LiquidityResult(tx=tx_result, pool_address=str(plan.pool_state))

    # ========== Quotes ==========

    def quote_deposit(
        self,
        keys: CpPoolKeys,
        lp_amount: int,
        slippage_bps: Optional[int] = None,
        protocol: str = DEFAULT_PROTOCOL,
    ) -> LiquidityQuote:
        """
        Maximum token amounts for minting lp_amount, against a fresh snapshot

        Args:
            keys: Pool keys
            lp_amount: LP tokens to mint
            slippage_bps: Tolerance (default from config.trading)
            protocol: Protocol name
        """
        adapter = self.adapter(protocol)
        adapter.require(AmmOperation.DEPOSIT)
        return quote_deposit(adapter.fetch_snapshot(keys), lp_amount, self._deposit_bps(slippage_bps))

    def quote_withdraw(
        self,
        keys: CpPoolKeys,
        lp_amount: int,
        slippage_bps: Optional[int] = None,
        protocol: str = DEFAULT_PROTOCOL,
    ) -> LiquidityQuote:
        """Minimum token amounts for burning lp_amount, against a fresh snapshot"""
        adapter = self.adapter(protocol)
        adapter.require(AmmOperation.WITHDRAW)
        return quote_withdraw(adapter.fetch_snapshot(keys), lp_amount, self._withdraw_bps(slippage_bps))

    # ========== LP Operations ==========

    def deposit(
        self,
        keys: CpPoolKeys,
        lp_amount: int,
        slippage_bps: Optional[int] = None,
        protocol: str = DEFAULT_PROTOCOL,
        create_lp_account: bool = False,
        wait_confirmation: bool = True,
    ) -> LiquidityResult:
        """
        Deposit for exactly lp_amount LP tokens

        Args:
            keys: Pool keys
            lp_amount: LP tokens to mint
            slippage_bps: Tolerance (default from config.trading)
            protocol: Protocol name
            create_lp_account: Prepend an idempotent create of the LP token account
            wait_confirmation: Wait for confirmation

        Returns:
            LiquidityResult with the deposit quote
        """
        self._require_positive("lp_amount", lp_amount)
        adapter = self.adapter(protocol)
        adapter.require(AmmOperation.DEPOSIT)
        bps = self._deposit_bps(slippage_bps)

        with CorrelationContext("deposit"):
            snapshot = adapter.fetch_snapshot(keys)
            quote = quote_deposit(snapshot, lp_amount, bps)
            self._log_quote("deposit", keys, quote, snapshot.slot)

            owner = self.owner
            accounts = adapter.owner_accounts(keys, owner, snapshot.state)
            instructions: List[Instruction] = []
            if create_lp_account:
                instructions.append(build_create_ata_idempotent_instruction(owner, owner, keys.lp_mint))
            instructions.extend(adapter.build_deposit(keys, owner, quote, accounts))

            tx_result = self._submit(instructions, "deposit", wait_confirmation)

        return LiquidityResult(tx=tx_result, pool_address=str(keys.pool_state), deposit_quote=quote)

    def withdraw(
        self,
        keys: CpPoolKeys,
        lp_amount: int,
        slippage_bps: Optional[int] = None,
        protocol: str = DEFAULT_PROTOCOL,
        wait_confirmation: bool = True,
    ) -> LiquidityResult:
        """
        Burn lp_amount LP tokens for both pool tokens

        Returns:
            LiquidityResult with the withdraw quote
        """
        self._require_positive("lp_amount", lp_amount)
        adapter = self.adapter(protocol)
        adapter.require(AmmOperation.WITHDRAW)
        bps = self._withdraw_bps(slippage_bps)

        with CorrelationContext("withdraw"):
            snapshot = adapter.fetch_snapshot(keys)
            quote = quote_withdraw(snapshot, lp_amount, bps)
            self._log_quote("withdraw", keys, quote, snapshot.slot)

            owner = self.owner
            accounts = adapter.owner_accounts(keys, owner, snapshot.state)
            instructions = adapter.build_withdraw(keys, owner, quote, accounts)

            tx_result = self._submit(instructions, "withdraw", wait_confirmation)

        return LiquidityResult(tx=tx_result, pool_address=str(keys.pool_state), withdraw_quote=quote)

    def deposit_then_withdraw(
        self,
        keys: CpPoolKeys,
        deposit_lp_amount: int,
        withdraw_lp_amount: Optional[int] = None,
        deposit_slippage_bps: Optional[int] = None,
        withdraw_slippage_bps: Optional[int] = None,
        protocol: str = DEFAULT_PROTOCOL,
        wait_confirmation: bool = True,
    ) -> LiquidityResult:
        """
        Deposit and withdraw in one transaction

        Both quotes come from one snapshot. The withdraw quote runs against
        the projected supply lp_supply + deposit_lp_amount, assuming the
        deposit mints exactly the requested amount.

        Args:
            keys: Pool keys
            deposit_lp_amount: LP tokens to mint
            withdraw_lp_amount: LP tokens to burn (defaults to deposit_lp_amount)
            deposit_slippage_bps: Deposit tolerance (default from config.trading)
            withdraw_slippage_bps: Withdraw tolerance (default from config.trading)
            protocol: Protocol name
            wait_confirmation: Wait for confirmation

        Returns:
            LiquidityResult with both quotes
        """
        if withdraw_lp_amount is None:
            withdraw_lp_amount = deposit_lp_amount
        self._require_positive("deposit_lp_amount", deposit_lp_amount)
        self._require_positive("withdraw_lp_amount", withdraw_lp_amount)

        adapter = self.adapter(protocol)
        adapter.require(AmmOperation.DEPOSIT)
        adapter.require(AmmOperation.WITHDRAW)

        with CorrelationContext("deposit_then_withdraw"):
            snapshot = adapter.fetch_snapshot(keys)
            deposit_quote = quote_deposit(
                snapshot, deposit_lp_amount, self._deposit_bps(deposit_slippage_bps)
            )
            withdraw_quote = quote_withdraw(
                snapshot,
                withdraw_lp_amount,
                self._withdraw_bps(withdraw_slippage_bps),
                lp_supply=projected_lp_supply(snapshot.lp_supply, deposit_lp_amount),
            )
            self._log_quote("deposit_then_withdraw", keys, deposit_quote, snapshot.slot)
            self._log_quote("deposit_then_withdraw", keys, withdraw_quote, snapshot.slot)

            owner = self.owner
            accounts = adapter.owner_accounts(keys, owner, snapshot.state)
            instructions = adapter.build_deposit(keys, owner, deposit_quote, accounts)
            instructions += adapter.build_withdraw(keys, owner, withdraw_quote, accounts)

            tx_result = self._submit(instructions, "deposit_then_withdraw", wait_confirmation)

        return LiquidityResult(
            tx=tx_result,
            pool_address=str(keys.pool_state),
            deposit_quote=deposit_quote,
            withdraw_quote=withdraw_quote,
        )

    # ========== Helpers ==========

    def _submit(self, instructions: List[Instruction], operation: str, wait_confirmation: bool) -> TxResult:
        try:
            tx_result = self._tx_builder.build_and_send(instructions, wait_confirmation=wait_confirmation)
        except AmmAdapterError as e:
            log_event(
                logging.ERROR, "Submission failed", operation,
                error_code=e.code.value,
                recoverable=e.recoverable,
                error=e.message,
                **{k: v for k, v in e.details.items() if k in ("signature", "remote_error")},
            )
            raise

        level = logging.INFO if not tx_result.is_failed else logging.WARNING
        log_event(
            level, f"Transaction {tx_result.status.value}", operation,
            signature=tx_result.signature,
            slot=tx_result.slot,
            error=tx_result.error,
        )
        return tx_result

    @staticmethod
    def _log_quote(operation: str, keys: CpPoolKeys, quote: LiquidityQuote, slot: int):
        log_event(
            logging.INFO, "Quote ready", operation,
            pool=str(keys.pool_state),
            slot=slot,
            lp_amount=quote.lp_amount,
            lp_supply=quote.lp_supply,
            token_0_amount=quote.token_0_amount,
            token_1_amount=quote.token_1_amount,
            token_0_limit=quote.token_0_limit,
            token_1_limit=quote.token_1_limit,
            rounding=quote.round_direction.value,
        )

    @staticmethod
    def _require_positive(name: str, value: int):
        if value <= 0:
            raise ConfigurationError.invalid(name, f"must be positive, got {value}")

    @staticmethod
    def _deposit_bps(slippage_bps: Optional[int]) -> int:
        return config.trading.deposit_slippage_bps if slippage_bps is None else slippage_bps

    @staticmethod
    def _withdraw_bps(slippage_bps: Optional[int]) -> int:
        return config.trading.withdraw_slippage_bps if slippage_bps is None else slippage_bps
