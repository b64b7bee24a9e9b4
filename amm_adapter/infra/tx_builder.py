"""
Transaction builder and sender

Provides utilities for:
- Building versioned transactions
- Adding compute budget instructions
- Signing through the Signer protocol
- Sending once and confirming by signature polling
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from .rpc import RpcClient
from .solana_signer import Signer, message_bytes_for_signing
from ..types import TxResult, TxStatus
from ..errors import ErrorCode, TransactionError, RpcError, SignerError
from ..config import config as global_config

logger = logging.getLogger(__name__)


@dataclass
class TxBuilderConfig:
    """
    Transaction builder runtime configuration

    Allows per-builder overrides while pulling defaults from the global
    config (amm_adapter.config.TxConfig).

    Usage:
        config = TxBuilderConfig(compute_units=400_000, skip_preflight=True)
        builder = TxBuilder(rpc, signer, config=config)
    """
    compute_units: int = None
    compute_unit_price: int = None
    skip_preflight: bool = None
    preflight_commitment: str = None
    confirmation_timeout: float = None
    confirmation_poll_interval: float = None

    def __post_init__(self):
        """Apply defaults from global config for any unset values"""
        if self.compute_units is None:
            self.compute_units = global_config.tx.compute_units
        if self.compute_unit_price is None:
            self.compute_unit_price = global_config.tx.compute_unit_price
        if self.skip_preflight is None:
            self.skip_preflight = global_config.tx.skip_preflight
        if self.preflight_commitment is None:
            self.preflight_commitment = global_config.tx.preflight_commitment
        if self.confirmation_timeout is None:
            self.confirmation_timeout = global_config.tx.confirmation_timeout
        if self.confirmation_poll_interval is None:
            self.confirmation_poll_interval = global_config.tx.confirmation_poll_interval


class TxBuilder:
    """
    Transaction builder and sender

    A transaction is submitted exactly once. If the send call itself fails
    in transport, the signature (known from signing) is polled before
    anything is reported, so a transaction that landed is never mistaken
    for one that did not.

    Usage:
        builder = TxBuilder(rpc, signer)

        # Build and send
        result = builder.build_and_send(instructions)

        # Or step by step
        tx_bytes = builder.build(instructions)
        signed_bytes, sig = builder.sign(tx_bytes)
        result = builder.send(signed_bytes, sig)
    """

    def __init__(
        self,
        rpc: RpcClient,
        signer: Signer,
        config: Optional[TxBuilderConfig] = None,
    ):
        """
        Initialize transaction builder

        Args:
            rpc: RPC client
            signer: Transaction signer
            config: Transaction configuration
        """
        self._rpc = rpc
        self._signer = signer
        self._config = config or TxBuilderConfig()

    @property
    def pubkey(self) -> str:
        """Signer's public key"""
        return self._signer.pubkey

    def build(
        self,
        instructions: List[Instruction],
        payer: Optional[str] = None,
        compute_units: Optional[int] = None,
        compute_unit_price: Optional[int] = None,
        recent_blockhash: Optional[str] = None,
    ) -> bytes:
        """
        Build unsigned versioned transaction

        Args:
            instructions: List of instructions, executed in order and atomically
            payer: Fee payer pubkey (defaults to signer)
            compute_units: Compute unit limit
            compute_unit_price: Priority fee in microlamports per CU
            recent_blockhash: Optional blockhash (fetched if not provided)

        Returns:
            Unsigned transaction bytes
        """
        all_instructions = []

        cu_limit = compute_units or self._config.compute_units
        cu_price = compute_unit_price or self._config.compute_unit_price

        if cu_limit > 0:
            all_instructions.append(set_compute_unit_limit(cu_limit))

        if cu_price > 0:
            all_instructions.append(set_compute_unit_price(cu_price))

        all_instructions.extend(instructions)

        if recent_blockhash is None:
            blockhash_info = self._rpc.get_latest_blockhash()
            recent_blockhash = blockhash_info.get("blockhash")

        if not recent_blockhash:
            raise TransactionError(
                "Failed to get recent blockhash",
                ErrorCode.TX_INVALID_BLOCKHASH,
                recoverable=True,
            )

        payer_pubkey = Pubkey.from_string(payer or self.pubkey)
        message = MessageV0.try_compile(
            payer_pubkey,
            all_instructions,
            [],  # Address lookup tables
            Hash.from_string(recent_blockhash),
        )

        # Placeholder signatures sized to num_required_signatures
        num_signers = message.header.num_required_signatures
        tx = VersionedTransaction.populate(message, [Signature.default()] * num_signers)

        return bytes(tx)

    def sign(self, unsigned_tx: bytes) -> Tuple[bytes, str]:
        """
        Sign transaction with the configured signer

        Args:
            unsigned_tx: Unsigned transaction bytes

        Returns:
            (signed_tx_bytes, signature_base58)

        Raises:
            SignerError: If the signer is not a required signer or signing fails
        """
        tx = VersionedTransaction.from_bytes(unsigned_tx)
        message = tx.message
        num_required_signatures = message.header.num_required_signatures
        signer_keys = [str(k) for k in list(message.account_keys)[:num_required_signatures]]

        if self._signer.pubkey not in signer_keys:
            raise SignerError.failed(
                f"Wallet pubkey {self._signer.pubkey} not found in transaction signers {signer_keys}"
            )
        if num_required_signatures > 1:
            missing = [k for k in signer_keys if k != self._signer.pubkey]
            raise SignerError.failed(f"Missing signatures for required signers: {', '.join(missing)}")

        try:
            sig_bytes = self._signer.sign(message_bytes_for_signing(tx))
            signature = Signature.from_bytes(sig_bytes)
        except SignerError:
            raise
        except Exception as e:
            raise SignerError.failed(str(e)) from e

        signed_tx = VersionedTransaction.populate(message, [signature])
        return bytes(signed_tx), str(signature)

    def send(
        self,
        signed_tx: bytes,
        signature: str,
        skip_preflight: Optional[bool] = None,
        wait_confirmation: bool = True,
    ) -> TxResult:
        """
        Send signed transaction once

        Args:
            signed_tx: Signed transaction bytes
            signature: Signature produced when signing (used for status polls)
            skip_preflight: Skip simulation (default from config)
            wait_confirmation: Wait for confirmation

        Returns:
            TxResult with status and signature

        Raises:
            TransactionError: If the node rejected the transaction, or the send
                failed in transport and the signature never appeared on chain
        """
        skip = skip_preflight if skip_preflight is not None else self._config.skip_preflight

        try:
            returned = self._rpc.send_transaction(
                signed_tx,
                skip_preflight=skip,
                preflight_commitment=self._config.preflight_commitment,
            )
        except RpcError as e:
            return self._recover_after_send_error(e, signature)

        if returned and returned != signature:
            logger.warning(f"Node returned signature {returned}, expected {signature}")

        logger.info(f"Transaction sent: {signature}")

        if not wait_confirmation:
            return TxResult(status=TxStatus.PENDING, signature=signature)

        return self._await_confirmation(signature)

    def _await_confirmation(self, signature: str) -> TxResult:
        confirmed, status = self._rpc.confirm_transaction(
            signature,
            commitment=self._config.preflight_commitment,
            timeout_seconds=self._config.confirmation_timeout,
            poll_interval=self._config.confirmation_poll_interval,
        )
        slot = status.get("slot") if status else None

        if confirmed is True:
            return TxResult.success(signature, slot=slot)
        if confirmed is False:
            err = status.get("err") if status else None
            return TxResult.failed(
                f"Transaction failed on-chain: {err}",
                signature=signature,
                error_code=ErrorCode.TX_CONFIRMATION_FAILED.value,
                slot=slot,
                remote_error=err,
            )
        return TxResult.timeout(signature)

    def _recover_after_send_error(self, error: RpcError, signature: str) -> TxResult:
        """
        Decide the outcome of a send call that raised.

        A JSON-RPC error object means the node rejected the transaction
        (preflight failure, bad blockhash); it did not land. Anything else is
        a transport failure and the transaction may have landed.
        """
        if "rpc_error" in error.details:
            data = error.rpc_error_data
            logs = data.get("logs") if isinstance(data, dict) else None
            logger.warning(f"Transaction {signature} rejected by node: {error.message}")
            raise TransactionError.send_failed(
                error.message,
                signature=signature,
                logs=logs,
                remote_error=error.details.get("rpc_error"),
            ) from error

        logger.warning(f"Send of {signature} failed in transport, polling status: {error}")
        result = self._await_confirmation(signature)
        if result.status != TxStatus.TIMEOUT:
            return result

        raise TransactionError(
            f"Failed to send transaction: {error.message}; signature {signature} not seen on chain",
            ErrorCode.TX_SEND_FAILED,
            signature=signature,
            recoverable=True,
        ) from error

    def simulate(self, unsigned_tx: bytes) -> dict:
        """
        Simulate transaction execution

        Args:
            unsigned_tx: Unsigned transaction bytes

        Returns:
            Simulation result
        """
        return self._rpc.simulate_transaction(unsigned_tx)

    def build_and_send(
        self,
        instructions: List[Instruction],
        compute_units: Optional[int] = None,
        compute_unit_price: Optional[int] = None,
        skip_preflight: Optional[bool] = None,
        wait_confirmation: bool = True,
        simulate_first: bool = False,
    ) -> TxResult:
        """
        Build, sign, and send transaction in one call

        All instructions go into one transaction, so they succeed or fail
        together.

        Args:
            instructions: List of instructions
            compute_units: Compute unit limit
            compute_unit_price: Priority fee
            skip_preflight: Skip simulation
            wait_confirmation: Wait for confirmation
            simulate_first: Run simulation before sending

        Returns:
            TxResult
        """
        unsigned_tx = self.build(
            instructions,
            compute_units=compute_units,
            compute_unit_price=compute_unit_price,
        )

        if simulate_first:
            sim_result = self.simulate(unsigned_tx) or {}
            value = sim_result.get("value") or {}
            if value.get("err"):
                raise TransactionError.simulation_failed(value["err"], value.get("logs") or [])

        signed_tx, signature = self.sign(unsigned_tx)

        return self.send(
            signed_tx,
            signature,
            skip_preflight=skip_preflight,
            wait_confirmation=wait_confirmation,
        )
