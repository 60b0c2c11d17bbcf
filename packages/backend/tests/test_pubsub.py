"""Fan-out bridge tests — two "server instances" sharing one broker.

Learn: Each instance is a RoomManager + FanoutBridge pair wired to the same
FakeRedis. A socket connected to instance B must see what instance A
broadcasts, exactly once, and A's own sockets must not get it twice.
"""

import asyncio
import json

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from lexdesk.realtime.pubsub import FanoutBridge
from lexdesk.realtime.rooms import Connection, RoomManager

CHANNEL = "realtime:broadcast"


def _instance(broker=None, name: str = "") -> FanoutBridge:
    bridge = FanoutBridge(RoomManager(), channel=CHANNEL, instance_id=name or None)
    if broker is not None:
        broker.wire(bridge)
    return bridge


@pytest.mark.asyncio
async def test_broadcast_reaches_other_instance(fake_redis, transport):
    a = _instance(fake_redis, "a")
    b = _instance(fake_redis, "b")
    socket_on_b = transport()
    b.rooms.join("folder:5", Connection(socket_on_b, user_id=1))

    delivered_locally = await a.broadcast("folder:5", "folder:updated", {"id": 5, "status": "closed"})

    assert delivered_locally == 0
    assert socket_on_b.frames == [
        {"event": "folder:updated", "data": {"id": 5, "status": "closed"}}
    ]


@pytest.mark.asyncio
async def test_local_sockets_get_exactly_one_copy(fake_redis, transport):
    a = _instance(fake_redis, "a")
    _instance(fake_redis, "b")
    socket_on_a = transport()
    a.rooms.join("user:7", Connection(socket_on_a, user_id=7))

    delivered = await a.broadcast("user:7", "notification:created", {"id": 1})

    assert delivered == 1
    assert socket_on_a.events() == ["notification:created"]


@pytest.mark.asyncio
async def test_envelope_format(fake_redis):
    a = _instance(fake_redis, "a")
    await a.broadcast("process:9", "process:movement", {"text": "Sentença publicada"})

    channel, envelope = fake_redis.published[0]
    assert channel == CHANNEL
    assert envelope == {
        "channel": "process:9",
        "event": "process:movement",
        "payload": {"text": "Sentença publicada"},
        "origin": "a",
    }


@pytest.mark.asyncio
async def test_without_redis_delivery_is_local_only(transport):
    bridge = _instance()
    socket = transport()
    bridge.rooms.join("folder:5", Connection(socket, user_id=1))

    assert await bridge.broadcast("folder:5", "folder:updated", {"id": 5}) == 1
    assert socket.events() == ["folder:updated"]


@pytest.mark.asyncio
async def test_publish_failure_is_not_raised(transport):
    class DownRedis:
        async def publish(self, channel, message):
            raise RedisConnectionError("connection refused")

    bridge = FanoutBridge(RoomManager(), DownRedis(), channel=CHANNEL)
    socket = transport()
    bridge.rooms.join("folder:5", Connection(socket, user_id=1))

    assert await bridge.broadcast("folder:5", "folder:updated", {"id": 5}) == 1
    assert socket.events() == ["folder:updated"]


@pytest.mark.asyncio
async def test_bad_envelopes_are_ignored(transport):
    bridge = _instance(name="b")
    socket = transport()
    bridge.rooms.join("folder:5", Connection(socket, user_id=1))

    assert await bridge.handle_message("{not json") == 0
    assert await bridge.handle_message(json.dumps({"event": "folder:updated"})) == 0
    assert await bridge.handle_message(json.dumps({"channel": 5, "event": "x"})) == 0
    assert socket.frames == []

    ok = json.dumps({"channel": "folder:5", "event": "folder:updated", "payload": None, "origin": "a"})
    assert await bridge.handle_message(ok) == 1


@pytest.mark.asyncio
async def test_own_envelopes_are_skipped(transport):
    bridge = _instance(name="a")
    socket = transport()
    bridge.rooms.join("folder:5", Connection(socket, user_id=1))

    own = json.dumps({"channel": "folder:5", "event": "folder:updated", "payload": {}, "origin": "a"})
    assert await bridge.handle_message(own) == 0
    assert socket.frames == []


@pytest.mark.asyncio
async def test_subscriber_loop(transport):
    """run() subscribes, relays every `message`, and cleans up after itself."""
    envelope = json.dumps({
        "channel": "precatorios:updates",
        "event": "precatorio:updated",
        "payload": {"id": 3},
        "origin": "elsewhere",
    })

    class FakePubSub:
        def __init__(self):
            self.subscribed = []
            self.closed = False

        async def subscribe(self, channel):
            self.subscribed.append(channel)

        async def unsubscribe(self, channel):
            self.subscribed.remove(channel)

        async def aclose(self):
            self.closed = True

        async def listen(self):
            yield {"type": "subscribe", "channel": CHANNEL, "data": 1}
            yield {"type": "message", "channel": CHANNEL, "data": envelope}

    pubsub = FakePubSub()

    class RedisWithPubSub:
        def pubsub(self):
            return pubsub

    bridge = FanoutBridge(RoomManager(), RedisWithPubSub(), channel=CHANNEL)
    socket = transport()
    bridge.rooms.join("precatorios:updates", Connection(socket, user_id=1))

    await bridge.run()

    assert socket.frames == [{"event": "precatorio:updated", "data": {"id": 3}}]
    assert pubsub.subscribed == []
    assert pubsub.closed


@pytest.mark.asyncio
async def test_subscriber_resubscribes_after_connection_loss(transport):
    """A dropped link is retried; envelopes after the reconnect still arrive."""
    envelope = json.dumps({
        "channel": "folder:5",
        "event": "folder:updated",
        "payload": {"id": 5},
        "origin": "elsewhere",
    })

    class FlakyPubSub:
        def __init__(self, fail: bool):
            self.fail = fail
            self.closed = False

        async def subscribe(self, channel):
            pass

        async def unsubscribe(self, channel):
            if self.fail:
                raise RedisConnectionError("connection lost")

        async def aclose(self):
            self.closed = True

        async def listen(self):
            if self.fail:
                raise RedisConnectionError("connection lost")
            yield {"type": "message", "channel": CHANNEL, "data": envelope}

    class FlakyRedis:
        def __init__(self):
            self.handed_out = []

        def pubsub(self):
            pubsub = FlakyPubSub(fail=not self.handed_out)
            self.handed_out.append(pubsub)
            return pubsub

    redis = FlakyRedis()
    bridge = FanoutBridge(RoomManager(), redis, channel=CHANNEL, reconnect_delay=0)
    socket = transport()
    bridge.rooms.join("folder:5", Connection(socket, user_id=1))

    await bridge.run()

    assert len(redis.handed_out) == 2
    assert all(p.closed for p in redis.handed_out)
    assert socket.frames == [{"event": "folder:updated", "data": {"id": 5}}]


@pytest.mark.asyncio
async def test_subscriber_backoff_is_capped(monkeypatch):
    sleeps = []

    async def fake_sleep(delay):
        sleeps.append(delay)
        if len(sleeps) == 5:
            raise asyncio.CancelledError

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)

    class DeadPubSub:
        async def subscribe(self, channel):
            raise RedisConnectionError("connection refused")

        async def unsubscribe(self, channel):
            pass

        async def aclose(self):
            pass

    class DeadRedis:
        def pubsub(self):
            return DeadPubSub()

    bridge = FanoutBridge(
        RoomManager(), DeadRedis(), channel=CHANNEL, reconnect_delay=1, reconnect_max_delay=4
    )
    with pytest.raises(asyncio.CancelledError):
        await bridge.run()

    assert sleeps == [1, 2, 4, 4, 4]


@pytest.mark.asyncio
async def test_run_needs_redis():
    with pytest.raises(RuntimeError):
        await _instance().run()
