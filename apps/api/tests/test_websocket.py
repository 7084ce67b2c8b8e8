import asyncio
import json

import pytest

from kindworld.core.websocket import ConnectionManager


class FakeWebSocket:
    def __init__(self, fail: bool = False) -> None:
        self.accepted = False
        self.sent: list[dict] = []
        self.fail = fail

    async def accept(self) -> None:
        self.accepted = True

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(json.loads(data))


class FakeFeed:
    def __init__(self) -> None:
        self.items: list[str] = []
        self.loads = 0

    def __call__(self, user_id: str) -> dict:
        self.loads += 1
        return {
            "type": "notifications",
            "data": {"items": list(self.items), "unread_count": len(self.items)},
        }


async def _wait_until(predicate, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_connect_starts_poller_and_pushes_initial_snapshot():
    feed = FakeFeed()
    manager = ConnectionManager(feed, poll_seconds=3600)
    ws = FakeWebSocket()

    await manager.connect(ws, "ngo-1")
    await _wait_until(lambda: len(ws.sent) == 1)

    assert ws.accepted is True
    assert ws.sent[0]["data"]["unread_count"] == 0
    assert manager.get_connected_count("ngo-1") == 1

    await manager.disconnect(ws, "ngo-1")


@pytest.mark.asyncio
async def test_late_joiner_gets_last_snapshot_and_changes_are_pushed_once():
    feed = FakeFeed()
    manager = ConnectionManager(feed, poll_seconds=3600)
    first = FakeWebSocket()
    second = FakeWebSocket()

    await manager.connect(first, "ngo-1")
    await _wait_until(lambda: len(first.sent) == 1)
    await manager.connect(second, "ngo-1")

    assert second.sent == first.sent

    # Unchanged feed is not pushed again
    assert await manager.push_snapshot("ngo-1") is False
    assert len(first.sent) == 1

    feed.items.append("Verification approved")
    assert await manager.push_snapshot("ngo-1") is True
    assert first.sent[-1]["data"]["unread_count"] == 1
    assert second.sent[-1] == first.sent[-1]

    await manager.disconnect(first, "ngo-1")
    await manager.disconnect(second, "ngo-1")
    assert manager.get_total_connections() == 0


@pytest.mark.asyncio
async def test_last_disconnect_stops_poller():
    manager = ConnectionManager(FakeFeed(), poll_seconds=3600)
    ws = FakeWebSocket()

    await manager.connect(ws, "ngo-1")
    poller = manager._pollers["ngo-1"]
    await manager.disconnect(ws, "ngo-1")
    await asyncio.gather(poller, return_exceptions=True)

    assert "ngo-1" not in manager._pollers
    assert poller.cancelled()


@pytest.mark.asyncio
async def test_send_to_user_drops_closed_connections():
    manager = ConnectionManager(FakeFeed(), poll_seconds=3600)
    healthy = FakeWebSocket()
    broken = FakeWebSocket()
    await manager.connect(healthy, "ngo-1")
    await _wait_until(lambda: len(healthy.sent) == 1)
    await manager.connect(broken, "ngo-1")
    broken.fail = True

    await manager.send_to_user("ngo-1", {"type": "notifications", "data": {}})

    assert manager.get_connected_count("ngo-1") == 1
    assert {"type": "notifications", "data": {}} in healthy.sent

    await manager.disconnect(healthy, "ngo-1")


@pytest.mark.asyncio
async def test_send_to_unknown_user_is_noop():
    manager = ConnectionManager(FakeFeed(), poll_seconds=3600)

    await manager.send_to_user("nobody", {"type": "notifications"})

    assert manager.get_total_connections() == 0
