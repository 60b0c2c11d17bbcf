"""Redis pub/sub — the cross-process half of fan-out.

Learn: Redis pub/sub is fire-and-forget. If an instance is down or the link is
broken when a message is published, that message is lost. That's fine for
real-time UI updates: the notification/message rows are the durable copy
and the frontend can always query the API to catch up.

Every instance PUBLISHes envelopes on one channel (realtime:broadcast by
default) and SUBSCRIBEs to the same channel:

    {"channel": "folder:5", "event": "folder:updated",
     "payload": {...}, "origin": "<instance id>"}

`channel` is the room name. `origin` lets an instance skip its own
envelopes, since it already emitted to its local sockets before publishing.
"""

import asyncio
import json
import uuid
from typing import Any, Optional

import redis.asyncio as aioredis
import structlog
from fastapi.encoders import jsonable_encoder
from redis.exceptions import RedisError

from lexdesk.config import settings
from lexdesk.realtime.rooms import RoomManager

logger = structlog.get_logger()

# Global Redis connection pool (initialized in lifespan)
_redis: Optional[aioredis.Redis] = None


async def init_redis() -> aioredis.Redis:
    """Initialize the Redis connection pool."""
    global _redis
    client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    # Verify connection before publishing it to the rest of the app
    try:
        await client.ping()
    except (RedisError, OSError):
        await client.aclose()
        raise
    _redis = client
    return _redis


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def get_redis() -> aioredis.Redis:
    """Get the Redis connection (must be initialized first)."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


class FanoutBridge:
    """Deliver an event to a room on every server instance.

    Without Redis attached the bridge still works, it just only reaches
    sockets connected to this process.
    """

    def __init__(
        self,
        rooms: RoomManager,
        redis: Optional[aioredis.Redis] = None,
        *,
        channel: Optional[str] = None,
        instance_id: Optional[str] = None,
        reconnect_delay: Optional[float] = None,
        reconnect_max_delay: Optional[float] = None,
    ):
        self.rooms = rooms
        self.redis = redis
        self.channel = channel or settings.realtime_channel
        self.instance_id = instance_id or uuid.uuid4().hex
        self.reconnect_delay = (
            settings.realtime_reconnect_delay if reconnect_delay is None else reconnect_delay
        )
        self.reconnect_max_delay = (
            settings.realtime_reconnect_max_delay if reconnect_max_delay is None else reconnect_max_delay
        )

    def attach(self, redis: Optional[aioredis.Redis]) -> None:
        self.redis = redis

    # ─── Publish side ─────────────────────────────────────

    async def broadcast(self, channel: str, event: str, payload: Any = None) -> int:
        """Emit locally, then relay to the other instances.

        Returns the number of local sockets reached. Publish failures are
        logged and dropped; nothing is retried.
        """
        delivered = await self.rooms.emit(channel, event, payload)

        if self.redis is None:
            logger.debug("realtime.publish_skipped", room=channel, realtime_event=event)
            return delivered

        envelope = json.dumps(jsonable_encoder({
            "channel": channel,
            "event": event,
            "payload": payload,
            "origin": self.instance_id,
        }))
        try:
            await self.redis.publish(self.channel, envelope)
        except (RedisError, OSError) as e:
            logger.warning(
                "realtime.publish_failed",
                room=channel,
                realtime_event=event,
                error=str(e),
            )
        return delivered

    # ─── Subscribe side ───────────────────────────────────

    async def handle_message(self, raw: str | bytes) -> int:
        """Deliver one relayed envelope to local sockets.

        Bad envelopes are logged and ignored so one malformed publish
        can't take down the subscriber loop.
        """
        try:
            envelope = json.loads(raw)
            channel = envelope["channel"]
            event = envelope["event"]
        except (json.JSONDecodeError, TypeError, KeyError) as e:
            logger.error("realtime.bad_envelope", error=str(e))
            return 0

        if not isinstance(channel, str) or not isinstance(event, str):
            logger.error("realtime.bad_envelope", error="channel and event must be strings")
            return 0

        if envelope.get("origin") == self.instance_id:
            return 0

        return await self.rooms.emit(channel, event, envelope.get("payload"))

    async def run(self) -> None:
        """Subscriber loop — runs as a background task for the app's lifetime.

        A broken link is logged and the channel resubscribed after a
        backoff (doubling up to reconnect_max_delay, reset once a
        subscribe succeeds). Envelopes published while disconnected are
        lost. Returns only when the pub/sub stream ends on its own;
        shutdown cancels the task.
        """
        if self.redis is None:
            raise RuntimeError("FanoutBridge.run() needs Redis attached")

        delay = self.reconnect_delay
        while self.redis is not None:
            pubsub = self.redis.pubsub()
            try:
                await pubsub.subscribe(self.channel)
                logger.info("realtime.subscribed", channel=self.channel, instance=self.instance_id)
                delay = self.reconnect_delay
                async for message in pubsub.listen():
                    if message["type"] == "message":
                        await self.handle_message(message["data"])
                return
            except (RedisError, OSError) as e:
                logger.warning(
                    "realtime.subscriber_disconnected",
                    channel=self.channel,
                    error=str(e),
                    retry_in=delay,
                )
            finally:
                await self._close(pubsub)

            await asyncio.sleep(delay)
            delay = min(delay * 2, self.reconnect_max_delay)

    async def _close(self, pubsub) -> None:
        try:
            await pubsub.unsubscribe(self.channel)
        except (RedisError, OSError) as e:
            logger.debug("realtime.unsubscribe_failed", channel=self.channel, error=str(e))
        await pubsub.aclose()
