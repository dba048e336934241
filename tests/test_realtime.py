import pytest

from core.realtime import ConnectionRegistry, connections
from modules.notifications import create_notification


class FakeSocket:
    def __init__(self, broken=False):
        self.sent = []
        self.broken = broken

    async def send_json(self, payload):
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(payload)


def test_newest_connection_wins():
    registry = ConnectionRegistry()
    first, second = FakeSocket(), FakeSocket()
    registry.register("u1", first)
    registry.register("u1", second)
    assert registry.get("u1") is second
    assert len(registry) == 1

    # a stale socket closing must not drop the newer one
    registry.unregister("u1", first)
    assert registry.get("u1") is second
    registry.unregister("u1", second)
    assert registry.get("u1") is None


async def test_session_removes_entry_on_error():
    registry = ConnectionRegistry()
    socket = FakeSocket()
    with pytest.raises(RuntimeError):
        async with registry.session("u1", socket):
            assert registry.get("u1") is socket
            raise RuntimeError("handler crashed")
    assert len(registry) == 0


async def test_push():
    registry = ConnectionRegistry()
    assert await registry.push("nobody", {"x": 1}) is False

    socket = FakeSocket()
    registry.register("u1", socket)
    assert await registry.push("u1", {"x": 1}) is True
    assert socket.sent == [{"x": 1}]

    registry.register("u2", FakeSocket(broken=True))
    assert await registry.push("u2", {"x": 1}) is False


async def test_new_notification_reaches_live_socket(db, make_user):
    user = await make_user()
    socket = FakeSocket()
    async with connections.session(user.id, socket):
        notification = await create_notification(db, user.id, "Hello", "World")

    assert len(socket.sent) == 1
    assert socket.sent[0]["event"] == "notification"
    assert socket.sent[0]["notification"]["id"] == notification.id
    assert connections.get(user.id) is None


async def test_notification_for_offline_user_is_still_stored(db, make_user):
    user = await make_user()
    notification = await create_notification(db, user.id, "Hello", "World")
    assert notification.read is False
