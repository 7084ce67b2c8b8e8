"""Tests for the verification audit trail."""

import uuid
from types import SimpleNamespace

from kindworld.core.config import settings
from kindworld.db.enums import AuditAction
from kindworld.db.models import VerificationAuditLog
from kindworld.services import audit_service


def _fake_request(headers=None, host="10.0.0.5"):
    return SimpleNamespace(headers=headers or {}, client=SimpleNamespace(host=host))


def test_append_joins_caller_transaction(db):
    request_id = uuid.uuid4()

    entry = audit_service.append(db, request_id, AuditAction.SUBMITTED, "ngo-1")
    assert entry.id is not None

    db.rollback()

    assert db.query(VerificationAuditLog).count() == 0


def test_recent_for_request_oldest_first(db):
    request_id = uuid.uuid4()
    audit_service.append(db, request_id, AuditAction.SUBMITTED, "ngo-1")
    audit_service.append(db, request_id, AuditAction.APPROVED, "A1")
    audit_service.append(db, uuid.uuid4(), AuditAction.SUBMITTED, "ngo-2")
    db.commit()

    entries = audit_service.recent_for_request(db, request_id)

    assert [e.action for e in entries] == ["submitted", "approved"]
    assert len(audit_service.recent_for_request(db, request_id, limit=1)) == 1


def test_recent_global_newest_first(db):
    for actor in ("ngo-1", "ngo-2", "ngo-3"):
        audit_service.append(db, uuid.uuid4(), AuditAction.SUBMITTED, actor)
    db.commit()

    entries = audit_service.recent_global(db, limit=2)

    assert [e.performed_by for e in entries] == ["ngo-3", "ngo-2"]


def test_append_captures_request_metadata(db):
    request = _fake_request(headers={"user-agent": "x" * 600})

    entry = audit_service.append(
        db, uuid.uuid4(), AuditAction.SUBMITTED, "ngo-1", request=request
    )

    assert entry.ip_address == "10.0.0.5"
    assert len(entry.user_agent) == 500


def test_get_client_ip_trusts_forwarded_only_when_configured(monkeypatch):
    request = _fake_request(headers={"x-forwarded-for": "203.0.113.7, 10.0.0.1"})

    monkeypatch.setattr(settings, "TRUST_PROXY_HEADERS", False)
    assert audit_service.get_client_ip(request) == "10.0.0.5"

    monkeypatch.setattr(settings, "TRUST_PROXY_HEADERS", True)
    assert audit_service.get_client_ip(request) == "203.0.113.7"

    assert audit_service.get_client_ip(None) is None


def test_hash_email_masks_address():
    hashed = audit_service.hash_email("Team@OceanGuard.org")

    assert hashed.startswith("Tea...@[hash:")
    assert "oceanguard" not in hashed.lower()
    assert hashed == audit_service.hash_email("Team@oceanguard.ORG")
    assert audit_service.hash_email("") == ""
