"""Tests for structured logging helpers."""

from kindworld.core.structured_logging import build_log_context


def test_build_log_context_includes_only_provided_fields():
    context = build_log_context(
        user_id="ngo-1",
        request_id="req-1",
        queue_id="queue-1",
        worker_id="host-1-0",
        route="/verification-requests",
        method="POST",
    )

    assert context == {
        "user_id": "ngo-1",
        "request_id": "req-1",
        "queue_id": "queue-1",
        "worker_id": "host-1-0",
        "route": "/verification-requests",
        "method": "POST",
    }


def test_build_log_context_ignores_empty_fields():
    context = build_log_context(
        user_id="",
        queue_id=None,
        request_id="req-1",
    )

    assert context == {"request_id": "req-1"}
