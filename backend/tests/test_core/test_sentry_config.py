"""Tests for Sentry event scrubbing and sampling."""

from typing import Any
from unittest.mock import patch

from core.sentry_config import (
    SENSITIVE_FORM_FIELDS,
    _before_send,
    _before_send_transaction,
    _traces_sampler,
    init_sentry,
)


class TestBeforeSend:
    def test_keeps_only_user_id(self) -> None:
        event: dict[str, Any] = {
            "user": {
                "id": "42",
                "email": "reporter@example.com",
                "username": "reporter",
                "ip_address": "10.0.0.8",
            }
        }
        result = _before_send(event, {})  # type: ignore[arg-type]
        assert result["user"] == {"id": "42", "ip_address": "{{auto}}"}  # type: ignore[index]

    def test_redacts_report_submission(self) -> None:
        event: dict[str, Any] = {
            "request": {
                "cookies": {"session": "x"},
                "headers": {"Authorization": "Bearer secret"},
                "data": {
                    "category": "robbery",
                    "incidentDescription": "My neighbour at house 12...",
                    "lat": "33.7",
                    "lng": "73.0",
                    "locationText": "Street 5, G-9",
                },
            }
        }
        result = _before_send(event, {})  # type: ignore[arg-type]
        request = result["request"]  # type: ignore[index]

        assert "cookies" not in request
        assert request["headers"]["Authorization"] == "[Filtered]"
        assert request["data"]["category"] == "robbery"
        for field in SENSITIVE_FORM_FIELDS:
            assert request["data"][field] == "[Filtered]"

    def test_event_without_request_passes_through(self) -> None:
        event: dict[str, Any] = {"message": "plain"}
        assert _before_send(event, {}) == {"message": "plain"}  # type: ignore[arg-type]


class TestSampling:
    def test_health_transactions_dropped(self) -> None:
        event: dict[str, Any] = {"transaction": "/api/health"}
        assert _before_send_transaction(event, {}) is None  # type: ignore[arg-type]

    def test_rates_by_path(self) -> None:
        def rate(path: str) -> float:
            return _traces_sampler({"asgi_scope": {"path": path}})

        assert rate("/api/health") == 0.0
        assert rate("/api/reports") == 0.5
        assert rate("/api/reports/7/finalize") == 0.5
        assert rate("/api/reports/feed") == 0.2

    def test_parent_decision_is_honoured(self) -> None:
        assert _traces_sampler({"parent_sampled": True}) == 1.0


class TestInit:
    def test_noop_without_dsn(self, monkeypatch) -> None:
        monkeypatch.delenv("SENTRY_DSN", raising=False)
        with patch("core.sentry_config.sentry_sdk.init") as init:
            init_sentry()
        init.assert_not_called()

    def test_init_with_dsn(self, monkeypatch) -> None:
        monkeypatch.setenv("SENTRY_DSN", "https://key@sentry.example/1")
        with patch("core.sentry_config.sentry_sdk.init") as init:
            init_sentry()
        kwargs = init.call_args.kwargs
        assert kwargs["send_default_pii"] is False
        assert kwargs["before_send"] is _before_send
