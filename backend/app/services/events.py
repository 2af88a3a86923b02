"""Fan-out of "slots_updated" notifications to live subscribers.

Subscribers are the open ``/stream`` connections of this process. With Redis
configured, events travel through a pub/sub channel so every worker process
re-broadcasts them to its own subscribers.
"""
import asyncio
import json
from datetime import date

from redis.exceptions import RedisError

from backend.app.core import redis_client as redis_module
from backend.app.core.logger import logger


CHANNEL = "bookings:slots_updated"
QUEUE_SIZE = 100
RELAY_RETRY_SECONDS = 0.5
RELAY_RETRY_MAX_SECONDS = 30.0


def slots_updated_payload(day: date) -> dict:
    return {"type": "slots_updated", "date": day.isoformat()}


def format_sse(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


class SlotEvents:
    def __init__(self) -> None:
        self._subscribers: set[asyncio.Queue] = set()
        self._relay_task: asyncio.Task | None = None
        self._relay_subscribed = False

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=QUEUE_SIZE)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    def broadcast(self, payload: dict) -> None:
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(payload)
            except asyncio.QueueFull:
                # Slow consumer; it will catch up on its next manual refresh.
                logger.warning("Dropping slots_updated event for a lagging subscriber")

    @property
    def relay_connected(self) -> bool:
        task = self._relay_task
        return self._relay_subscribed and task is not None and not task.done()

    async def publish_slots_updated(self, day: date) -> None:
        payload = slots_updated_payload(day)
        client = redis_module.redis_client
        # Only route through Redis while our own relay is listening on the channel.
        if client is None or not self.relay_connected:
            self.broadcast(payload)
            return
        try:
            await client.publish(CHANNEL, json.dumps(payload))
        except RedisError as exc:
            logger.warning("Redis publish failed ({}), broadcasting locally", exc)
            self.broadcast(payload)

    async def _listen(self, client) -> None:
        pubsub = client.pubsub()
        try:
            await pubsub.subscribe(CHANNEL)
            self._relay_subscribed = True
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    payload = json.loads(message["data"])
                except (TypeError, ValueError):
                    logger.warning("Ignoring malformed event on {}", CHANNEL)
                    continue
                self.broadcast(payload)
        finally:
            self._relay_subscribed = False
            try:
                await pubsub.unsubscribe(CHANNEL)
                await pubsub.aclose()
            except (RedisError, OSError):
                pass

    async def _relay(self) -> None:
        delay = RELAY_RETRY_SECONDS
        while True:
            client = redis_module.redis_client
            if client is None:
                return
            try:
                await self._listen(client)
                delay = RELAY_RETRY_SECONDS
            except (RedisError, OSError) as exc:
                logger.warning("Redis relay lost ({}), resubscribing in {}s", exc, delay)
                await asyncio.sleep(delay)
                delay = min(max(delay * 2, RELAY_RETRY_SECONDS), RELAY_RETRY_MAX_SECONDS)

    def start_relay(self) -> None:
        if redis_module.redis_client is None:
            return
        if self._relay_task is not None and not self._relay_task.done():
            return
        self._relay_task = asyncio.create_task(self._relay())
        logger.info("Relaying slot events through Redis channel {}", CHANNEL)

    async def stop_relay(self) -> None:
        task, self._relay_task = self._relay_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except (RedisError, OSError) as exc:
            logger.warning("Redis relay stopped with error: {}", exc)


slot_events = SlotEvents()


def get_events() -> SlotEvents:
    return slot_events
