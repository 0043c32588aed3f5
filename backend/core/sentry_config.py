"""
Sentry SDK configuration.

Sentry is optional: nothing is initialised unless ``SENTRY_DSN`` is set.
Events are scrubbed of reporter identity before they leave the process,
since incident reports may be filed anonymously.
"""

import os
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.loguru import LoguruIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.types import Event, Hint

NOISY_TRANSACTIONS = {"/api/health", "GET /api/health"}

# Form fields of a report submission that identify the reporter or the scene
SENSITIVE_FORM_FIELDS = ("incidentDescription", "lat", "lng", "locationText")


def _before_send(event: Event, hint: Hint) -> Event | None:
    """
    Strip PII from an error event.

    Keeps only the user id, drops cookies, masks the bearer token and
    redacts report submission fields.
    """
    user = event.get("user")
    if user:
        user.pop("email", None)
        user.pop("username", None)
        if "ip_address" in user:
            user["ip_address"] = "{{auto}}"

    request = event.get("request")
    if request and isinstance(request, dict):
        request.pop("cookies", None)
        headers = request.get("headers")
        if isinstance(headers, dict) and "Authorization" in headers:
            headers["Authorization"] = "[Filtered]"
        data = request.get("data")
        if isinstance(data, dict):
            for field in SENSITIVE_FORM_FIELDS:
                if field in data:
                    data[field] = "[Filtered]"

    return event


def _before_send_transaction(event: Event, hint: Hint) -> Event | None:
    """Drop health-check transactions."""
    if event.get("transaction", "") in NOISY_TRANSACTIONS:
        return None
    return event


def _traces_sampler(sampling_context: dict[str, Any]) -> float:
    """
    Pick a trace sample rate per request path.

    Report creation and finalization call external AI and storage services
    and are sampled more aggressively than plain reads.
    """
    if sampling_context.get("parent_sampled") is True:
        return 1.0

    path = sampling_context.get("asgi_scope", {}).get("path", "")

    if path == "/api/health":
        return 0.0
    if path.startswith("/api/reports") and path.endswith(("/finalize", "/reports")):
        return 0.5
    return 0.2


def init_sentry() -> None:
    """
    Initialise Sentry with FastAPI, SQLAlchemy and Loguru integrations.

    Call before the FastAPI app is created.
    """
    dsn = os.getenv("SENTRY_DSN")
    if not dsn:
        return

    sentry_sdk.init(
        dsn=dsn,
        environment=os.getenv("ENVIRONMENT", "development"),
        release=os.getenv("SENTRY_RELEASE", "unknown"),
        send_default_pii=False,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            LoguruIntegration(),
        ],
        traces_sampler=_traces_sampler,
        sample_rate=1.0,
        before_send=_before_send,
        before_send_transaction=_before_send_transaction,
        attach_stacktrace=True,
        max_breadcrumbs=50,
        ignore_errors=[KeyboardInterrupt, SystemExit],
    )
