import httpx
import pytest

from kindworld.services import email_sender
from kindworld.services.errors import DeliveryFailure


class FakeAsyncClient:
    """Stands in for httpx.AsyncClient; records posts and returns a canned response."""

    requests: list[dict] = []
    response: httpx.Response | None = None
    error: Exception | None = None

    def __init__(self, timeout=None):
        self.timeout = timeout

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def post(self, url, headers=None, json=None):
        FakeAsyncClient.requests.append(
            {"url": url, "headers": headers, "json": json, "timeout": self.timeout}
        )
        if FakeAsyncClient.error:
            raise FakeAsyncClient.error
        return FakeAsyncClient.response


@pytest.fixture
def fake_httpx(monkeypatch):
    FakeAsyncClient.requests = []
    FakeAsyncClient.response = httpx.Response(200, json={"id": "msg_abc"})
    FakeAsyncClient.error = None
    monkeypatch.setattr(email_sender.httpx, "AsyncClient", FakeAsyncClient)
    return FakeAsyncClient


def _sender():
    return email_sender.ResendEmailSender(
        api_key="re_test", from_email="KindWorld <noreply@kindworld.test>", timeout=3.0
    )


@pytest.mark.asyncio
async def test_resend_sender_posts_payload(fake_httpx):
    message_id = await _sender().send(
        to_email="team@oceanguard.org",
        subject="NGO Verification Request Received",
        html="<p>Hi</p>",
        text="Hi",
        idempotency_key="delivery:123",
    )

    assert message_id == "msg_abc"
    request = fake_httpx.requests[0]
    assert request["url"] == email_sender.RESEND_SEND_URL
    assert request["timeout"] == 3.0
    assert request["headers"]["Authorization"] == "Bearer re_test"
    assert request["headers"]["Idempotency-Key"] == "delivery:123"
    assert request["json"] == {
        "from": "KindWorld <noreply@kindworld.test>",
        "to": ["team@oceanguard.org"],
        "subject": "NGO Verification Request Received",
        "html": "<p>Hi</p>",
        "text": "Hi",
    }


@pytest.mark.asyncio
async def test_resend_sender_raises_on_error_status(fake_httpx):
    fake_httpx.response = httpx.Response(422, json={"message": "Invalid `to` field"})

    with pytest.raises(DeliveryFailure, match="422"):
        await _sender().send(to_email="bad", subject="s", html="h")


@pytest.mark.asyncio
async def test_resend_sender_treats_idempotency_conflict_as_sent(fake_httpx):
    fake_httpx.response = httpx.Response(409, json={"message": "duplicate"})

    assert await _sender().send(to_email="a@b.org", subject="s", html="h") is None


@pytest.mark.asyncio
async def test_resend_sender_wraps_transport_errors(fake_httpx):
    fake_httpx.error = httpx.ConnectError("connection refused")

    with pytest.raises(DeliveryFailure, match="ConnectError"):
        await _sender().send(to_email="a@b.org", subject="s", html="h")


@pytest.mark.asyncio
async def test_resend_sender_requires_api_key(fake_httpx):
    sender = email_sender.ResendEmailSender(api_key="", from_email="x@y.org")

    with pytest.raises(DeliveryFailure, match="RESEND_API_KEY"):
        await sender.send(to_email="a@b.org", subject="s", html="h")
    assert fake_httpx.requests == []


def test_select_sender_uses_resend_when_configured(monkeypatch):
    monkeypatch.setattr(email_sender.settings, "RESEND_API_KEY", "re_live")

    selection = email_sender.select_sender()

    assert selection.dry_run is False
    assert selection.sender.key == "resend"


def test_select_sender_falls_back_to_log_sender(monkeypatch):
    monkeypatch.setattr(email_sender.settings, "RESEND_API_KEY", "")

    selection = email_sender.select_sender()

    assert selection.dry_run is True
    assert selection.sender.key == "log"
