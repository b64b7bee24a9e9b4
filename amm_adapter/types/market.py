"""
Program account activity types
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class SignatureInfo:
    """One entry of getSignaturesForAddress"""
    signature: str
    slot: Optional[int] = None
    block_time: Optional[int] = None
    err: Any = None
    confirmation_status: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.err is None

    @classmethod
    def from_rpc(cls, item: Dict[str, Any]) -> "SignatureInfo":
        return cls(
            signature=item["signature"],
            slot=item.get("slot"),
            block_time=item.get("blockTime"),
            err=item.get("err"),
            confirmation_status=item.get("confirmationStatus"),
        )


@dataclass
class ProgramAccountActivity:
    """
    A program-owned account with its most recent transactions

    Attributes:
        address: Account address (base58)
        lamports: Account balance
        signatures: Latest signatures, newest first
        error: Why the signature lookup failed, if it did
    """
    address: str
    lamports: Optional[int] = None
    signatures: List[SignatureInfo] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def has_activity(self) -> bool:
        return bool(self.signatures)
