"""Tests for the AI report state machine."""

import pytest

from models.ai_status import (
    ALLOWED_TRANSITIONS,
    AIReportStatus,
    advance,
    can_transition,
    is_terminal,
)
from models.exceptions import ConflictException, InvalidStatusTransitionException

S = AIReportStatus


def test_transition_table_covers_every_status():
    assert set(ALLOWED_TRANSITIONS) == set(AIReportStatus)


@pytest.mark.parametrize(
    "current,target",
    [
        (S.PROCESSING_SUMMARY, S.AWAITING_USER_APPROVAL),
        (S.AWAITING_USER_APPROVAL, S.PROCESSING_FULL_REPORT),
        (S.PROCESSING_FULL_REPORT, S.COMPLETED),
        (S.PROCESSING_SUMMARY, S.FAILED),
        (S.AWAITING_USER_APPROVAL, S.FAILED),
        (S.PROCESSING_FULL_REPORT, S.FAILED),
    ],
)
def test_forward_moves(current, target):
    assert advance(current, target) == target


@pytest.mark.parametrize(
    "current,target",
    [
        (S.AWAITING_USER_APPROVAL, S.PROCESSING_SUMMARY),
        (S.COMPLETED, S.PROCESSING_FULL_REPORT),
        (S.PROCESSING_SUMMARY, S.COMPLETED),
        (S.COMPLETED, S.FAILED),
        (S.FAILED, S.PROCESSING_SUMMARY),
        (S.AWAITING_USER_APPROVAL, S.AWAITING_USER_APPROVAL),
    ],
)
def test_invalid_moves_raise(current, target):
    assert not can_transition(current, target)
    with pytest.raises(InvalidStatusTransitionException) as exc_info:
        advance(current, target)
    assert isinstance(exc_info.value, ConflictException)
    assert exc_info.value.current == current.value
    assert exc_info.value.target == target.value


def test_terminal_states():
    assert is_terminal(S.COMPLETED)
    assert is_terminal(S.FAILED)
    assert not is_terminal(S.PROCESSING_FULL_REPORT)


def test_status_values_are_wire_strings():
    assert S.AWAITING_USER_APPROVAL.value == "awaiting_user_approval"
