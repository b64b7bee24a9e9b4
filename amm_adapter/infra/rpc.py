"""
RPC Client for Solana

Provides unified JSON-RPC interface with:
- Multiple endpoint fallback
- Retry logic for idempotent reads
- Single-attempt transaction submission
- Rate limit handling
- Request timeout management
"""

from __future__ import annotations

import base64
import logging
import time
import threading
from typing import Any, Dict, List, Optional, Tuple, Union
from dataclasses import dataclass

import httpx

from ..errors import ErrorCode, RpcError, ConfigurationError
from ..config import config as global_config

logger = logging.getLogger(__name__)


@dataclass
class RpcClientConfig:
    """
    RPC client runtime configuration

    Allows per-client overrides while pulling defaults from the global
    config (amm_adapter.config.RpcConfig).

    Usage:
        # Use all defaults from environment
        client = RpcClient(endpoint)

        # Override specific settings
        config = RpcClientConfig(timeout_seconds=60, max_retries=5)
        client = RpcClient(endpoint, config=config)
    """
    timeout_seconds: float = None
    max_retries: int = None
    retry_delay_seconds: float = None
    commitment: str = None

    def __post_init__(self):
        """Apply defaults from global config for any unset values"""
        if self.timeout_seconds is None:
            self.timeout_seconds = global_config.rpc.timeout_seconds
        if self.max_retries is None:
            self.max_retries = global_config.rpc.max_retries
        if self.retry_delay_seconds is None:
            self.retry_delay_seconds = global_config.rpc.retry_delay_seconds
        if self.commitment is None:
            self.commitment = global_config.rpc.commitment


class RpcClient:
    """
    Unified Solana RPC client

    Reads are retried with linear backoff and fall back across endpoints.
    sendTransaction is issued exactly once: a request that timed out may
    still have landed, so the caller polls the signature instead.

    Usage:
        rpc = RpcClient(config.rpc.url)

        # Pool account and both vaults in one round-trip
        slot, accounts = rpc.get_multiple_accounts_with_context([pool, vault_0, vault_1])

        # Custom RPC call
        result = rpc.call("getSlot", [])
    """

    def __init__(
        self,
        endpoint: Union[str, List[str]],
        config: Optional[RpcClientConfig] = None,
    ):
        """
        Initialize RPC client

        Args:
            endpoint: RPC endpoint URL or list of URLs (for fallback)
            config: RPC configuration options
        """
        self._endpoints = [endpoint] if isinstance(endpoint, str) else list(endpoint)
        self._endpoints = [e for e in self._endpoints if e]
        if not self._endpoints:
            raise ConfigurationError.missing("RPC endpoint (SOLANA_RPC_URL)")

        self._config = config or RpcClientConfig()
        self._current_endpoint_idx = 0
        self._client: Optional[httpx.Client] = None
        self._client_lock = threading.Lock()

    @property
    def endpoint(self) -> str:
        """Current active endpoint"""
        return self._endpoints[self._current_endpoint_idx]

    @property
    def commitment(self) -> str:
        """Default commitment level"""
        return self._config.commitment

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client (thread-safe)"""
        if self._client is None:
            with self._client_lock:
                # Double-check after acquiring lock
                if self._client is None:
                    self._client = httpx.Client(
                        timeout=self._config.timeout_seconds,
                        headers={"Content-Type": "application/json"},
                    )
        return self._client

    def _rotate_endpoint(self):
        """Rotate to next endpoint on failure"""
        if len(self._endpoints) > 1:
            self._current_endpoint_idx = (self._current_endpoint_idx + 1) % len(self._endpoints)
            logger.info(f"Rotating to RPC endpoint: {self.endpoint}")

    def call(
        self,
        method: str,
        params: List[Any],
        timeout: Optional[float] = None,
        retry: bool = True,
    ) -> Any:
        """
        Make JSON-RPC call

        Args:
            method: RPC method name
            params: RPC parameters
            timeout: Optional timeout override
            retry: Retry transient failures and fall back across endpoints.
                Must be False for non-idempotent calls.

        Returns:
            RPC result

        Raises:
            RpcError: On RPC failure. A JSON-RPC error object from the node is
                raised immediately with its code and data in `details`.
        """
        client = self._get_client()
        body = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": method,
            "params": params,
        }

        timeout_val = timeout or self._config.timeout_seconds
        max_attempts = max(1, self._config.max_retries) if retry else 1
        max_endpoints = len(self._endpoints) if retry else 1

        last_error: Optional[Exception] = None
        endpoints_tried = 0

        while endpoints_tried < max_endpoints:
            for attempt in range(max_attempts):
                try:
                    response = client.post(
                        self.endpoint,
                        json=body,
                        timeout=timeout_val,
                    )

                    # Handle rate limiting
                    if response.status_code == 429:
                        logger.warning(f"Rate limited by {self.endpoint}")
                        last_error = RpcError.rate_limited(self.endpoint)
                        if attempt < max_attempts - 1:
                            time.sleep(self._config.retry_delay_seconds * (attempt + 1))
                        continue

                    response.raise_for_status()
                    result = response.json()

                    if "error" in result:
                        raise self._node_error(method, result["error"])

                    return result.get("result")

                except httpx.TimeoutException:
                    last_error = RpcError.timeout(self.endpoint, timeout_val)
                    logger.warning(f"RPC timeout {method} (attempt {attempt + 1}): {self.endpoint}")

                except httpx.HTTPStatusError as e:
                    last_error = RpcError(
                        f"HTTP error {e.response.status_code}",
                        endpoint=self.endpoint,
                        original_error=e,
                    )
                    logger.warning(f"RPC HTTP error {method} (attempt {attempt + 1}): {e}")

                except httpx.RequestError as e:
                    last_error = RpcError.connection_failed(self.endpoint, e)
                    logger.warning(f"RPC connection error {method} (attempt {attempt + 1}): {e}")

                except ValueError as e:
                    last_error = RpcError(
                        f"Invalid JSON-RPC response: {e}",
                        ErrorCode.RPC_INVALID_RESPONSE,
                        original_error=e,
                        endpoint=self.endpoint,
                    )
                    logger.warning(f"RPC invalid response {method} (attempt {attempt + 1}): {e}")

                # Wait before retry
                if attempt < max_attempts - 1:
                    time.sleep(self._config.retry_delay_seconds * (attempt + 1))

            endpoints_tried += 1
            if endpoints_tried < max_endpoints:
                self._rotate_endpoint()

        raise last_error or RpcError("All RPC endpoints failed")

    def _node_error(self, method: str, error: Dict[str, Any]) -> RpcError:
        """Wrap a JSON-RPC error object, keeping code and data verbatim"""
        error_msg = error.get("message", str(error))
        rpc_error = RpcError(
            f"RPC error ({method}): {error_msg}",
            ErrorCode.RPC_INVALID_RESPONSE,
            endpoint=self.endpoint,
        )
        rpc_error.details["rpc_error_code"] = error.get("code")
        rpc_error.details["rpc_error_data"] = error.get("data")
        rpc_error.details["rpc_error"] = error
        return rpc_error

    def get_account_info(
        self,
        address: str,
        encoding: str = "base64",
        commitment: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Get account information

        Args:
            address: Account address (base58)
            encoding: Data encoding ("base64", "jsonParsed", etc.)
            commitment: Commitment level

        Returns:
            Account info or None if not found
        """
        params = [
            address,
            {
                "encoding": encoding,
                "commitment": commitment or self.commitment,
            },
        ]
        result = self.call("getAccountInfo", params)
        return result.get("value") if result else None

    def get_multiple_accounts_with_context(
        self,
        addresses: List[str],
        encoding: str = "base64",
        commitment: Optional[str] = None,
    ) -> Tuple[Optional[int], List[Optional[Dict[str, Any]]]]:
        """
        Get multiple accounts in one call, read at a single slot

        Args:
            addresses: List of account addresses
            encoding: Data encoding
            commitment: Commitment level

        Returns:
            (context slot, list of account info with None for missing accounts)
        """
        params = [
            [str(a) for a in addresses],
            {
                "encoding": encoding,
                "commitment": commitment or self.commitment,
            },
        ]
        result = self.call("getMultipleAccounts", params)
        if not result:
            return None, [None] * len(addresses)
        slot = (result.get("context") or {}).get("slot")
        return slot, result.get("value", [])

    def get_multiple_accounts(
        self,
        addresses: List[str],
        encoding: str = "base64",
        commitment: Optional[str] = None,
    ) -> List[Optional[Dict[str, Any]]]:
        """Get multiple account information in one call"""
        _, accounts = self.get_multiple_accounts_with_context(addresses, encoding, commitment)
        return accounts

    def get_latest_blockhash(
        self,
        commitment: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Get latest blockhash

        Returns:
            Dict with blockhash and lastValidBlockHeight
        """
        params = [{"commitment": commitment or self.commitment}]
        result = self.call("getLatestBlockhash", params)
        return result.get("value", {}) if result else {}

    def get_token_account_balance(
        self,
        token_account: str,
        commitment: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Get SPL token account balance

        Returns:
            Balance info with amount, decimals, uiAmount
        """
        params = [str(token_account), {"commitment": commitment or self.commitment}]
        result = self.call("getTokenAccountBalance", params)
        return result.get("value", {}) if result else {}

    def get_program_accounts(
        self,
        program_id: str,
        filters: Optional[List[Dict[str, Any]]] = None,
        encoding: str = "base64",
        commitment: Optional[str] = None,
        data_slice: Optional[Tuple[int, int]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Get all accounts owned by a program

        Args:
            program_id: Program ID (base58)
            filters: Optional filters (memcmp, dataSize)
            encoding: Data encoding
            commitment: Commitment level
            data_slice: Optional (offset, length) to trim returned data

        Returns:
            List of {"pubkey", "account"} dicts

        Example filters:
            [
                {"memcmp": {"offset": 0, "bytes": "base58_data"}},
                {"dataSize": 637}
            ]
        """
        options: Dict[str, Any] = {
            "encoding": encoding,
            "commitment": commitment or self.commitment,
        }
        if filters:
            options["filters"] = filters
        if data_slice is not None:
            options["dataSlice"] = {"offset": data_slice[0], "length": data_slice[1]}

        result = self.call("getProgramAccounts", [str(program_id), options])
        return result or []

    def get_signatures_for_address(
        self,
        address: str,
        limit: Optional[int] = None,
        before: Optional[str] = None,
        until: Optional[str] = None,
        commitment: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Get confirmed signatures touching an address, newest first

        Args:
            address: Account address (base58)
            limit: Maximum signatures to return (node caps at 1000)
            before: Start searching backwards from this signature
            until: Stop at this signature
            commitment: "confirmed" or "finalized"

        Returns:
            List of dicts with signature, slot, err, memo, blockTime and
            confirmationStatus
        """
        commitment = commitment or self.commitment
        # processed is rejected by the node for this method
        if commitment == "processed":
            commitment = "confirmed"

        options: Dict[str, Any] = {"commitment": commitment}
        if limit is not None:
            options["limit"] = limit
        if before:
            options["before"] = before
        if until:
            options["until"] = until

        result = self.call("getSignaturesForAddress", [str(address), options])
        return result or []

    def send_transaction(
        self,
        transaction: bytes,
        skip_preflight: bool = False,
        preflight_commitment: Optional[str] = None,
        max_retries: Optional[int] = None,
    ) -> str:
        """
        Send signed transaction (single attempt, never retried here)

        Args:
            transaction: Signed transaction bytes
            skip_preflight: Skip preflight simulation
            preflight_commitment: Preflight commitment level
            max_retries: Node-side rebroadcast limit for the same signed bytes

        Returns:
            Transaction signature (base58)
        """
        tx_data = base64.b64encode(transaction).decode("ascii")

        params = [
            tx_data,
            {
                "skipPreflight": skip_preflight,
                "preflightCommitment": preflight_commitment or self.commitment,
                "encoding": "base64",
            },
        ]
        if max_retries is not None:
            params[1]["maxRetries"] = max_retries

        return self.call("sendTransaction", params, retry=False)

    def simulate_transaction(
        self,
        transaction: bytes,
        commitment: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Simulate transaction execution

        Args:
            transaction: Transaction bytes (can be unsigned)
            commitment: Commitment level

        Returns:
            Simulation result
        """
        tx_data = base64.b64encode(transaction).decode("ascii")

        params = [
            tx_data,
            {
                "commitment": commitment or self.commitment,
                "encoding": "base64",
                "sigVerify": False,
                "replaceRecentBlockhash": True,
            },
        ]
        return self.call("simulateTransaction", params)

    def get_signature_statuses(
        self,
        signatures: List[str],
        search_transaction_history: bool = False,
    ) -> List[Optional[Dict[str, Any]]]:
        """
        Get processing status for signatures

        Returns:
            One status dict (slot, confirmations, err, confirmationStatus) or
            None per signature
        """
        params: List[Any] = [list(signatures)]
        if search_transaction_history:
            params.append({"searchTransactionHistory": True})
        result = self.call("getSignatureStatuses", params)
        if not result:
            return [None] * len(signatures)
        return result.get("value") or [None] * len(signatures)

    def get_signature_status(
        self,
        signature: str,
        search_transaction_history: bool = False,
    ) -> Optional[Dict[str, Any]]:
        """Status of a single signature, or None if the node has not seen it"""
        statuses = self.get_signature_statuses([signature], search_transaction_history)
        return statuses[0] if statuses else None

    def confirm_transaction(
        self,
        signature: str,
        commitment: Optional[str] = None,
        timeout_seconds: float = 60.0,
        poll_interval: float = 1.0,
    ) -> Tuple[Optional[bool], Optional[Dict[str, Any]]]:
        """
        Wait for transaction confirmation

        Args:
            signature: Transaction signature
            commitment: Commitment level to wait for
            timeout_seconds: Max wait time
            poll_interval: Delay between status polls

        Returns:
            (True, status) if confirmed successfully
            (False, status) if the transaction failed on-chain (status["err"])
            (None, last_status) on timeout (never landed or status unknown)
        """
        levels = ["processed", "confirmed", "finalized"]
        target = commitment or self.commitment
        accepted = levels[levels.index(target):] if target in levels else levels[1:]

        start_time = time.time()
        last_status = None

        while time.time() - start_time < timeout_seconds:
            try:
                status = self.get_signature_status(signature)
                if status:
                    last_status = status
                    if status.get("err"):
                        logger.warning(
                            f"Transaction {signature} failed on-chain: {status.get('err')}"
                        )
                        return False, status
                    if status.get("confirmationStatus") in accepted:
                        return True, status
            except RpcError as e:
                logger.debug(f"Error checking transaction status: {e}")

            time.sleep(poll_interval)

        if last_status is None:
            logger.warning(
                f"Transaction {signature} was never seen on chain (dropped/expired)"
            )
        else:
            logger.warning(
                f"Transaction {signature} timeout. Last status: {last_status.get('confirmationStatus', 'unknown')}"
            )

        return None, last_status

    def close(self):
        """Close HTTP client"""
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
