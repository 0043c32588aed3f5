"""
State machine of the AI report attached to every incident report.

    processing_summary -> awaiting_user_approval -> processing_full_report -> completed

``failed`` can be entered from any non-terminal state. Nothing ever moves
backwards and both ``completed`` and ``failed`` are terminal.
"""

import enum

from models.exceptions import InvalidStatusTransitionException


class AIReportStatus(str, enum.Enum):
    PROCESSING_SUMMARY = "processing_summary"
    AWAITING_USER_APPROVAL = "awaiting_user_approval"
    PROCESSING_FULL_REPORT = "processing_full_report"
    COMPLETED = "completed"
    FAILED = "failed"


ALLOWED_TRANSITIONS: dict[AIReportStatus, frozenset[AIReportStatus]] = {
    AIReportStatus.PROCESSING_SUMMARY: frozenset(
        {AIReportStatus.AWAITING_USER_APPROVAL, AIReportStatus.FAILED}
    ),
    AIReportStatus.AWAITING_USER_APPROVAL: frozenset(
        {AIReportStatus.PROCESSING_FULL_REPORT, AIReportStatus.FAILED}
    ),
    AIReportStatus.PROCESSING_FULL_REPORT: frozenset(
        {AIReportStatus.COMPLETED, AIReportStatus.FAILED}
    ),
    AIReportStatus.COMPLETED: frozenset(),
    AIReportStatus.FAILED: frozenset(),
}

# Every status must have an entry; a new member without one fails at import.
_missing = set(AIReportStatus) - set(ALLOWED_TRANSITIONS)
if _missing:
    raise RuntimeError(
        f"AIReportStatus members without transitions: {sorted(s.value for s in _missing)}"
    )


def can_transition(current: AIReportStatus, target: AIReportStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def advance(current: AIReportStatus, target: AIReportStatus) -> AIReportStatus:
    """
    Validate a transition and return the new status.

    Raises:
        InvalidStatusTransitionException: If ``target`` is not reachable
            from ``current`` in one step.
    """
    if not can_transition(current, target):
        raise InvalidStatusTransitionException(current.value, target.value)
    return target


def is_terminal(status: AIReportStatus) -> bool:
    return not ALLOWED_TRANSITIONS[status]
