"""Structured logging helpers (PII-safe)."""

from typing import Any


def build_log_context(
    *,
    user_id: str | None = None,
    request_id: str | None = None,
    queue_id: str | None = None,
    worker_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = user_id
    if request_id:
        context["request_id"] = request_id
    if queue_id:
        context["queue_id"] = queue_id
    if worker_id:
        context["worker_id"] = worker_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
