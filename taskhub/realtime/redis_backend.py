"""Redis pub/sub fan-out for running several API processes."""
import asyncio
import json
import logging
from typing import Any, Dict, Iterable, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError
from tenacity import before_sleep_log, retry, retry_if_exception_type, wait_exponential

logger = logging.getLogger(__name__)


class RedisFanout:
    """Publishes events to a Redis channel and relays received ones to a local hub.

    A lost subscription is re-established with exponential backoff for as long
    as the listener runs.
    """

    def __init__(self, url: str, channel: str, client: Optional[redis.Redis] = None):
        self.channel = channel
        self._redis = client or redis.from_url(url, decode_responses=True)
        self._pubsub = None
        self._listener: Optional[asyncio.Task] = None

    async def start(self, hub) -> None:
        self._pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
        await self._pubsub.subscribe(self.channel)
        self._listener = asyncio.create_task(self._listen(hub))
        logger.info("Subscribed to realtime channel %s", self.channel)

    async def _listen(self, hub) -> None:
        while True:
            try:
                async for message in self._pubsub.listen():
                    if message.get("type") != "message":
                        continue
                    try:
                        envelope = json.loads(message["data"])
                        await hub.deliver(envelope["payload"], envelope["recipients"])
                    except (ValueError, KeyError, TypeError):
                        logger.warning("Ignoring malformed message on %s", self.channel, exc_info=True)
                return
            except RedisError:
                logger.error("Lost subscription to %s, resubscribing", self.channel, exc_info=True)
                await self._resubscribe()

    @retry(
        retry=retry_if_exception_type(RedisError),
        wait=wait_exponential(multiplier=0.5, max=30),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _resubscribe(self) -> None:
        if self._pubsub is not None:
            try:
                await self._pubsub.aclose()
            except RedisError:
                logger.debug("Error closing stale pubsub", exc_info=True)
        self._pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
        await self._pubsub.subscribe(self.channel)
        logger.info("Resubscribed to realtime channel %s", self.channel)

    async def publish(self, payload: Dict[str, Any], recipients: Iterable[str]) -> None:
        envelope = json.dumps({"recipients": sorted(set(recipients)), "payload": payload})
        try:
            await self._redis.publish(self.channel, envelope)
        except RedisError:
            logger.error("Failed to publish %s event to Redis", payload.get("type"), exc_info=True)

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError:
            logger.error("Redis ping failed", exc_info=True)
            return False

    async def stop(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.error("Realtime listener for %s had failed", self.channel, exc_info=True)
            self._listener = None
        if self._pubsub is not None:
            try:
                await self._pubsub.unsubscribe(self.channel)
            except RedisError:
                logger.warning("Failed to unsubscribe from %s", self.channel, exc_info=True)
            finally:
                await self._pubsub.aclose()
                self._pubsub = None
        await self._redis.aclose()
        logger.info("Realtime channel %s closed", self.channel)
