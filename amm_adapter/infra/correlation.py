"""
Correlation IDs and structured log events

Every liquidity flow runs inside a CorrelationContext so that the derive,
fetch, build and submit steps of one operation can be joined in the logs.
Events carry their fields through `extra=` for structured log pipelines.
"""

import logging
import uuid
import contextvars
from typing import Optional

logger = logging.getLogger("amm_adapter.events")

# Context variable for correlation ID (thread-safe)
_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'correlation_id', default=None
)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for transaction tracing."""
    return uuid.uuid4().hex[:12]


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: Optional[str]) -> contextvars.Token:
    """Set the correlation ID in context. Returns token for reset."""
    return _correlation_id.set(correlation_id)


class CorrelationContext:
    """
    Context manager for correlation ID scoping.

    Nested contexts keep the outer ID so a flow that calls another flow
    logs under one ID.

    Usage:
        with CorrelationContext("deposit") as cid:
            log_event(logging.INFO, "Quote ready", "deposit", lp_amount=10)
    """

    def __init__(self, prefix: Optional[str] = None):
        """
        Initialize correlation context.

        Args:
            prefix: Optional prefix for the correlation ID (e.g., "deposit", "create_pool")
        """
        self.correlation_id = generate_correlation_id()
        if prefix:
            self.correlation_id = f"{prefix}_{self.correlation_id}"
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        existing = get_correlation_id()
        if existing:
            self.correlation_id = existing
            return existing
        self._token = set_correlation_id(self.correlation_id)
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token is not None:
            _correlation_id.reset(self._token)
            self._token = None


def log_event(
    level: int,
    message: str,
    operation: str,
    **fields
):
    """
    Log message with correlation ID and structured context.

    Args:
        level: Logging level (logging.INFO, logging.WARNING, etc.)
        message: Log message
        operation: Name of the operation being executed
        **fields: Additional context fields (addresses, amounts, signature)
    """
    cid = get_correlation_id()

    parts = []
    if cid:
        parts.append(f"[{cid}]")
    parts.append(f"[{operation}]")
    parts.append(message)

    extra_context = {
        "correlation_id": cid,
        "operation": operation,
        "event_fields": fields,
    }

    logger.log(level, " ".join(parts), extra=extra_context)
