"""Tests for correlation IDs and their use by domain exceptions."""

import re

import pytest

from core.correlation import generate_correlation_id, get_correlation_id, set_correlation_id
from models.exceptions import (
    DomainException,
    ImageTooLargeException,
    InvalidCursorException,
    ReportNotFoundException,
    StorageUploadException,
    TooManyImagesException,
    UpstreamFatalException,
    ValidationException,
)


@pytest.fixture(autouse=True)
def clear_correlation_id():
    set_correlation_id("")
    yield
    set_correlation_id("")


def test_generated_ids_are_short_hex():
    ids = {generate_correlation_id() for _ in range(200)}
    assert len(ids) == 200
    assert all(re.fullmatch(r"[0-9a-f]{8}", cid) for cid in ids)


def test_context_round_trip():
    set_correlation_id("req-1")
    assert get_correlation_id() == "req-1"


def test_exception_takes_request_id():
    set_correlation_id("req-2")
    assert ReportNotFoundException("Report not found").correlation_id == "req-2"


def test_exception_generates_id_outside_request():
    exc = DomainException("boom")
    assert len(exc.correlation_id) == 8


def test_explicit_id_wins():
    set_correlation_id("req-3")
    assert DomainException("boom", correlation_id="given").correlation_id == "given"


@pytest.mark.parametrize(
    "exc,message",
    [
        (ImageTooLargeException(5 * 1024 * 1024), "File too large. Maximum 5MB per file."),
        (TooManyImagesException(5), "Too many files. Maximum 5 images allowed."),
        (
            InvalidCursorException("soon"),
            "Invalid cursor 'soon': expected an ISO-8601 timestamp",
        ),
    ],
)
def test_validation_messages(exc, message):
    assert isinstance(exc, ValidationException)
    assert exc.message == message
    assert str(exc) == message


def test_storage_failure_is_fatal_upstream():
    assert issubclass(StorageUploadException, UpstreamFatalException)
