"""HTTP tests for the verification, admin and notification routers."""

import uuid

import pytest

from kindworld.db.enums import DeliveryStatus


def _submit_payload(organization_id="ngo-ocean-guard", **form_overrides):
    form = {
        "organization_name": "Ocean Guard",
        "organization_type": "environmental",
        "contact_email": "team@oceanguard.org",
        "address": {
            "street": "1 Harbor Way",
            "city": "Portland",
            "state": "ME",
            "zip_code": "04101",
            "country": "US",
        },
        "mission_statement": (
            "We protect coastal ecosystems through beach clean-ups, "
            "reef monitoring and community education."
        ),
    }
    form.update(form_overrides)
    return {
        "organization_id": organization_id,
        "form": form,
        "documents": [
            {
                "type": "registration",
                "file_name": "registration.pdf",
                "file_url": "blob://verification/registration.pdf",
                "file_size": 2048,
                "mime_type": "application/pdf",
            }
        ],
    }


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_submit_and_review_flow(client, ngo, admins):
    response = await client.post("/verification-requests", json=_submit_payload())
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["address"]["city"] == "Portland"
    assert len(body["documents"]) == 1
    request_id = body["id"]

    response = await client.get(f"/verification-requests/status/{ngo.id}")
    assert response.json()["id"] == request_id

    response = await client.post(
        f"/verification-requests/{request_id}/approve",
        json={"admin_id": "A1", "notes": "Looks good"},
    )
    assert response.status_code == 200
    assert response.json()["reviewed_by"] == "A1"

    response = await client.post(
        f"/verification-requests/{request_id}/approve", json={"admin_id": "A2"}
    )
    assert response.status_code == 409
    assert response.json() == {
        "error": "already_processed",
        "detail": "Verification request is already approved",
    }

    response = await client.get(f"/verification-requests/{request_id}/audit")
    assert [e["action"] for e in response.json()] == ["submitted", "approved"]
    assert response.json()[0]["ip_address"] is not None


@pytest.mark.asyncio
async def test_submit_validation_errors(client, ngo):
    response = await client.post(
        "/verification-requests", json=_submit_payload(mission_statement="short")
    )
    assert response.status_code == 422
    assert response.json()["error"] == "invalid_input"

    payload = _submit_payload()
    payload["documents"] = []
    response = await client.post("/verification-requests", json=payload)
    assert response.status_code == 422
    assert response.json()["error"] == "no_documents"


@pytest.mark.asyncio
async def test_submit_twice_conflicts(client, ngo):
    await client.post("/verification-requests", json=_submit_payload())

    response = await client.post("/verification-requests", json=_submit_payload())

    assert response.status_code == 409
    assert response.json()["error"] == "already_pending"


@pytest.mark.asyncio
async def test_review_errors(client, ngo, admins, volunteer):
    response = await client.post("/verification-requests", json=_submit_payload())
    request_id = response.json()["id"]

    response = await client.post(
        f"/verification-requests/{request_id}/approve", json={"admin_id": volunteer.id}
    )
    assert response.status_code == 403

    response = await client.post(f"/verification-requests/{request_id}/approve", json={})
    assert response.status_code == 422
    assert response.json()["error"] == "actor_required"

    response = await client.post(
        f"/verification-requests/{request_id}/reject", json={"admin_id": "A1", "reason": ""}
    )
    assert response.status_code == 422

    response = await client.post(
        f"/verification-requests/{uuid.uuid4()}/approve", json={"admin_id": "A1"}
    )
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


@pytest.mark.asyncio
async def test_request_documents_endpoint(client, ngo, admins):
    response = await client.post("/verification-requests", json=_submit_payload())
    request_id = response.json()["id"]

    response = await client.post(
        f"/verification-requests/{request_id}/request-documents",
        json={"admin_id": "A1", "required_documents": ["Bylaws"]},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "pending"


@pytest.mark.asyncio
async def test_admin_list_and_stats(client, ngo, admins):
    await client.post("/verification-requests", json=_submit_payload())

    response = await client.get(
        "/admin/verification-requests", params={"status": "pending", "search": "ocean"}
    )
    assert response.status_code == 200
    assert [r["organization_name"] for r in response.json()] == ["Ocean Guard"]

    response = await client.get("/admin/verification-stats")
    stats = response.json()
    assert stats["pending_count"] == 1
    assert stats["average_processing_days"] == 0
    assert stats["recent_activity"][0]["action"] == "submitted"


@pytest.mark.asyncio
async def test_admin_deliveries_list_and_cancel(client, ngo, admins):
    await client.post("/verification-requests", json=_submit_payload())

    response = await client.get("/admin/deliveries", params={"status": "pending"})
    items = response.json()
    assert len(items) == 3

    queue_id = items[0]["id"]
    response = await client.post(f"/admin/deliveries/{queue_id}/cancel")
    assert response.status_code == 200
    assert response.json()["status"] == DeliveryStatus.CANCELLED.value

    response = await client.post(f"/admin/deliveries/{queue_id}/cancel")
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_notification_endpoints(client, ngo, admins):
    await client.post("/verification-requests", json=_submit_payload())

    response = await client.get(f"/users/{ngo.id}/notifications")
    items = response.json()
    assert len(items) == 1
    assert items[0]["type"] == "verification_pending"
    assert items[0]["read"] is False

    response = await client.get(f"/users/{ngo.id}/notifications/count")
    assert response.json() == {"unread_count": 1}

    response = await client.patch(f"/users/A1/notifications/{items[0]['id']}/read")
    assert response.status_code == 403

    response = await client.patch(f"/users/{ngo.id}/notifications/{items[0]['id']}/read")
    assert response.status_code == 200
    assert response.json()["read"] is True

    response = await client.post("/users/A1/notifications/read-all")
    assert response.json() == {"marked_read": 1}


@pytest.mark.asyncio
async def test_preference_endpoints(client, ngo):
    response = await client.get(f"/users/{ngo.id}/notification-preferences")
    assert response.json() == {
        "email_notifications": True,
        "in_app_notifications": True,
        "verification_updates": True,
        "system_announcements": True,
    }

    response = await client.patch(
        f"/users/{ngo.id}/notification-preferences",
        json={"actor_id": "someone-else", "email_notifications": False},
    )
    assert response.status_code == 403

    response = await client.patch(
        f"/users/{ngo.id}/notification-preferences",
        json={"actor_id": ngo.id, "email_notifications": False},
    )
    assert response.status_code == 200
    assert response.json()["email_notifications"] is False
    assert response.json()["in_app_notifications"] is True
