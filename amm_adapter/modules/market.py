"""
Market Module

Read-only inspection of the accounts a pool program owns.
"""

import logging
from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..client import AmmClient

from ..errors import ConfigurationError, RpcError
from ..infra import CorrelationContext, log_event
from ..protocols import ProtocolRegistry
from ..types import ProgramAccountActivity, SignatureInfo

logger = logging.getLogger(__name__)

DEFAULT_MAX_ACCOUNTS = 10
DEFAULT_MAX_SIGNATURES = 3


class MarketModule:
    """
    Market data module

    Provides:
    - Program-owned accounts with their latest transactions

    Usage:
        client = AmmClient()

        for item in client.market.program_activity("raydium_cp"):
            print(item.address, [s.signature for s in item.signatures])
    """

    def __init__(self, client: "AmmClient"):
        """
        Initialize market module

        Args:
            client: AmmClient instance
        """
        self._client = client
        self._rpc = client.rpc

    def program_activity(
        self,
        protocol: str = "raydium_cp",
        max_accounts: int = DEFAULT_MAX_ACCOUNTS,
        max_signatures: int = DEFAULT_MAX_SIGNATURES,
        filters: Optional[List[Dict[str, Any]]] = None,
    ) -> List[ProgramAccountActivity]:
        """
        Up to max_accounts accounts owned by the protocol's program, each
        with its latest max_signatures signatures.

        Accounts come back in node order. A failed signature lookup is
        recorded on that account and the remaining accounts are still read.

        Args:
            protocol: Protocol whose program is inspected
            max_accounts: Accounts to return
            max_signatures: Signatures per account
            filters: Optional getProgramAccounts filters (memcmp, dataSize)

        Raises:
            ConfigurationError: Non-positive limits or unknown protocol
            RpcError: getProgramAccounts failed
        """
        if max_accounts <= 0 or max_signatures <= 0:
            raise ConfigurationError.invalid(
                "limits",
                f"max_accounts and max_signatures must be positive, got {max_accounts} and {max_signatures}",
            )

        program_id = str(ProtocolRegistry.get(protocol, self._rpc).program_id)

        with CorrelationContext("program_activity"):
            # Account data is not needed, only addresses and balances
            accounts = self._rpc.get_program_accounts(program_id, filters=filters, data_slice=(0, 0))
            log_event(
                logging.INFO, "Program accounts fetched", "program_activity",
                protocol=protocol,
                program_id=program_id,
                total=len(accounts),
            )

            activity = []
            for item in accounts[:max_accounts]:
                address = item["pubkey"]
                entry = ProgramAccountActivity(
                    address=address,
                    lamports=(item.get("account") or {}).get("lamports"),
                )
                try:
                    signatures = self._rpc.get_signatures_for_address(address, limit=max_signatures)
                    entry.signatures = [SignatureInfo.from_rpc(s) for s in signatures[:max_signatures]]
                except RpcError as e:
                    entry.error = str(e)
                    log_event(
                        logging.WARNING, "Signature lookup failed", "program_activity",
                        address=address,
                        error=str(e),
                    )
                activity.append(entry)

        return activity
