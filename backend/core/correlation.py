"""
Request correlation IDs.

Every request gets a short ID that is echoed in the ``X-Correlation-ID``
response header, attached to log records and returned with error payloads so
that a user-visible error can be matched to server logs.
"""

import uuid
from contextvars import ContextVar

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def generate_correlation_id() -> str:
    """
    Generate a new correlation ID.

    Returns:
        8-character lowercase hexadecimal string.
    """
    return uuid.uuid4().hex[:8]


def get_correlation_id() -> str:
    """Return the correlation ID of the current request, or ``""``."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """Bind a correlation ID to the current request context."""
    correlation_id_var.set(correlation_id)
