"""Tests for the connection registry and broadcast hub."""
import asyncio
import json
from datetime import datetime, timezone

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from taskhub.realtime.hub import BroadcastHub, ConnectionRegistry
from taskhub.realtime.redis_backend import RedisFanout
from taskhub.schemas.realtime import TaskDeletedEvent
from taskhub.schemas.user import UserResponse

from conftest import FakeConnection


def _actor():
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    return UserResponse(id="google-alice", email="alice@example.com", created_at=now, updated_at=now)


def test_register_and_unregister():
    registry = ConnectionRegistry()
    first, second = FakeConnection(), FakeConnection()

    registry.register("alice", first)
    registry.register("alice", second)
    assert set(registry.connections_for("alice")) == {first, second}
    assert registry.connection_count() == 2

    assert registry.unregister(first) == "alice"
    assert registry.connections_for("alice") == [second]
    assert registry.unregister(first) is None


def test_reauth_moves_connection_to_new_user():
    registry = ConnectionRegistry()
    conn = FakeConnection()

    registry.register("alice", conn)
    registry.register("bob", conn)

    assert registry.connections_for("alice") == []
    assert registry.connections_for("bob") == [conn]
    assert registry.user_for(conn) == "bob"


def test_join_task_is_recorded_and_cleared():
    registry = ConnectionRegistry()
    conn = FakeConnection()
    registry.register("alice", conn)

    registry.join_task(conn, 7)
    assert registry.joined_tasks(conn) == {7}

    registry.unregister(conn)
    assert registry.joined_tasks(conn) == set()


@pytest.mark.asyncio
async def test_publish_to_user_reaches_every_connection():
    hub = BroadcastHub()
    laptop, phone, other = FakeConnection(), FakeConnection(), FakeConnection()
    hub.registry.register("alice", laptop)
    hub.registry.register("alice", phone)
    hub.registry.register("bob", other)

    delivered = await hub.publish_to_user("alice", {"type": "ping"})

    assert delivered == 2
    assert laptop.sent == phone.sent == [{"type": "ping"}]
    assert other.sent == []


@pytest.mark.asyncio
async def test_publish_to_user_without_connections_is_noop():
    assert await BroadcastHub().publish_to_user("nobody", {"type": "ping"}) == 0


@pytest.mark.asyncio
async def test_failed_send_unregisters_connection():
    hub = BroadcastHub()
    dead, alive = FakeConnection(fail=True), FakeConnection()
    hub.registry.register("alice", dead)
    hub.registry.register("alice", alive)

    delivered = await hub.publish_to_user("alice", {"type": "ping"})

    assert delivered == 1
    assert hub.registry.connections_for("alice") == [alive]


@pytest.mark.asyncio
async def test_publish_event_goes_to_recipients_only():
    hub = BroadcastHub()
    alice, bob, carol = FakeConnection(), FakeConnection(), FakeConnection()
    hub.registry.register("google-alice", alice)
    hub.registry.register("google-bob", bob)
    hub.registry.register("google-carol", carol)

    await hub.publish(TaskDeletedEvent(task_id=3, user=_actor()), {"google-alice", "google-bob"})

    assert alice.types() == bob.types() == ["task_deleted"]
    assert carol.sent == []
    payload = alice.sent[0]
    assert payload["taskId"] == 3
    assert payload["user"]["email"] == "alice@example.com"
    assert "timestamp" in payload


class RecordingRedis:
    """Minimal async Redis double recording published messages."""

    def __init__(self):
        self.published = []

    async def publish(self, channel, message):
        self.published.append((channel, message))
        return 1


@pytest.mark.asyncio
async def test_publish_through_backend_skips_local_delivery():
    redis_client = RecordingRedis()
    backend = RedisFanout("redis://unused", "events", client=redis_client)
    hub = BroadcastHub(backend=backend)
    conn = FakeConnection()
    hub.registry.register("google-alice", conn)

    await hub.publish(TaskDeletedEvent(task_id=9, user=_actor()), ["google-alice"])

    assert conn.sent == []
    channel, message = redis_client.published[0]
    envelope = json.loads(message)
    assert channel == "events"
    assert envelope["recipients"] == ["google-alice"]
    assert envelope["payload"]["type"] == "task_deleted"

    # What a subscriber process does with the envelope.
    await hub.deliver(envelope["payload"], envelope["recipients"])
    assert conn.types() == ["task_deleted"]


class FakePubSub:
    """Yields queued messages, then raises ``error`` or blocks until cancelled."""

    def __init__(self, messages=(), error=None, unsubscribe_error=None):
        self.messages = list(messages)
        self.error = error
        self.unsubscribe_error = unsubscribe_error
        self.channels = []
        self.closed = False

    async def subscribe(self, channel):
        self.channels.append(channel)

    async def unsubscribe(self, channel):
        if self.unsubscribe_error:
            raise self.unsubscribe_error

    async def listen(self):
        for message in self.messages:
            yield message
        if self.error:
            raise self.error
        await asyncio.Event().wait()

    async def aclose(self):
        self.closed = True


class FakeRedis:
    def __init__(self, *pubsubs):
        self.pubsubs = list(pubsubs)
        self.closed = False

    def pubsub(self, ignore_subscribe_messages=False):
        return self.pubsubs.pop(0)

    async def aclose(self):
        self.closed = True


class RecordingHub:
    def __init__(self, error=None):
        self.delivered = []
        self.received = asyncio.Event()
        self.error = error

    async def deliver(self, payload, recipients):
        self.delivered.append((payload, recipients))
        self.received.set()
        if self.error:
            raise self.error


def _envelope(event_type="task_deleted", recipients=("google-alice",)):
    data = json.dumps({"recipients": list(recipients), "payload": {"type": event_type}})
    return {"type": "message", "data": data}


@pytest.mark.asyncio
async def test_listener_resubscribes_after_connection_loss():
    dropped = FakePubSub(error=RedisConnectionError("connection lost"))
    fresh = FakePubSub(messages=[_envelope()])
    client = FakeRedis(dropped, fresh)
    fanout = RedisFanout("redis://unused", "events", client=client)
    hub = RecordingHub()

    await fanout.start(hub)
    await asyncio.wait_for(hub.received.wait(), timeout=1)

    assert dropped.closed
    assert fresh.channels == ["events"]
    assert hub.delivered == [({"type": "task_deleted"}, ["google-alice"])]

    await fanout.stop()
    assert fresh.closed
    assert client.closed


@pytest.mark.asyncio
async def test_stop_closes_client_after_listener_failure():
    pubsub = FakePubSub(messages=[_envelope()], unsubscribe_error=RedisConnectionError("gone"))
    client = FakeRedis(pubsub)
    fanout = RedisFanout("redis://unused", "events", client=client)

    await fanout.start(RecordingHub(error=RuntimeError("boom")))
    await asyncio.wait([fanout._listener], timeout=1)
    assert fanout._listener.done()

    await fanout.stop()

    assert pubsub.closed
    assert client.closed


@pytest.mark.asyncio
async def test_malformed_messages_are_skipped():
    pubsub = FakePubSub(messages=[{"type": "message", "data": "{not json"}, _envelope("task_updated")])
    fanout = RedisFanout("redis://unused", "events", client=FakeRedis(pubsub))
    hub = RecordingHub()

    await fanout.start(hub)
    await asyncio.wait_for(hub.received.wait(), timeout=1)
    await fanout.stop()

    assert [payload["type"] for payload, _ in hub.delivered] == ["task_updated"]
