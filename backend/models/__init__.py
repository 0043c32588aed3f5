"""Models package - settings, Pydantic schemas and domain value types."""

from .ai_status import AIReportStatus
from .votes import VoteSet, VoteType

__all__ = [
    "AIReportStatus",
    "VoteSet",
    "VoteType",
]
