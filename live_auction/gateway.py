"""Fan-out of core events to connected subscribers."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Protocol, Sequence

from redis import asyncio as aioredis

from live_auction.config import Settings
from live_auction.logging import get_logger


class Subscriber(Protocol):
    """A connected client able to receive JSON payloads."""

    id: str

    async def send(self, payload: dict[str, Any]) -> None: ...


class BroadcastGateway(Protocol):
    """Sink for outbound events.

    ``deliver`` must return without waiting on any transport: the caller may
    be on the bid path right after a commit.
    """

    def deliver(self, payload: dict[str, Any], recipient: str | None = None) -> None: ...


class EventMirror:
    """Protocol for pub/sub style copies of the broadcast stream."""

    async def publish(self, payload: dict[str, Any]) -> None:  # pragma: no cover - interface only
        raise NotImplementedError

    async def close(self) -> None:  # pragma: no cover - interface only
        return None


class SubscriberHub:
    """In-process :class:`BroadcastGateway` over a set of subscribers.

    Each send runs as its own task. A subscriber whose send fails is logged and
    dropped; other subscribers and the caller are unaffected.
    """

    def __init__(self, *, mirrors: Sequence[EventMirror] | None = None) -> None:
        self._subscribers: dict[str, Subscriber] = {}
        self._pending: set[asyncio.Task[None]] = set()
        self.mirrors = tuple(mirrors or ())
        self._logger = get_logger(__name__).bind(component="subscriber_hub")

    def __len__(self) -> int:
        return len(self._subscribers)

    def subscribers(self) -> list[str]:
        return list(self._subscribers)

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers[subscriber.id] = subscriber
        self._logger.info("subscriber_connected", subscriber_id=subscriber.id, total=len(self._subscribers))

    def unsubscribe(self, subscriber_id: str) -> None:
        if self._subscribers.pop(subscriber_id, None) is not None:
            self._logger.info(
                "subscriber_disconnected",
                subscriber_id=subscriber_id,
                total=len(self._subscribers),
            )

    def deliver(self, payload: dict[str, Any], recipient: str | None = None) -> None:
        """Schedule ``payload`` for ``recipient``, or for everyone when ``None``."""

        if recipient is not None:
            target = self._subscribers.get(recipient)
            if target is None:
                self._logger.debug("recipient_gone", subscriber_id=recipient)
                return
            self._spawn(self._send(target, payload))
            return

        for subscriber in list(self._subscribers.values()):
            self._spawn(self._send(subscriber, payload))
        for mirror in self.mirrors:
            self._spawn(self._mirror(mirror, payload))

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send(self, subscriber: Subscriber, payload: dict[str, Any]) -> None:
        try:
            await subscriber.send(payload)
        except Exception as exc:
            self._logger.warning(
                "delivery_failed",
                subscriber_id=subscriber.id,
                event_name=payload.get("event"),
                error_type=exc.__class__.__name__,
                error=str(exc),
            )
            self.unsubscribe(subscriber.id)

    async def _mirror(self, mirror: EventMirror, payload: dict[str, Any]) -> None:
        try:
            await mirror.publish(payload)
        except Exception as exc:
            self._logger.warning(
                "mirror_publish_failed",
                mirror=mirror.__class__.__name__,
                error_type=exc.__class__.__name__,
                error=str(exc),
            )

    async def drain(self) -> None:
        """Wait for every scheduled delivery to finish."""

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        await self.drain()
        for mirror in self.mirrors:
            await mirror.close()
        self._subscribers.clear()


class RedisEventMirror(EventMirror):
    """Publish broadcast events to a Redis channel for out-of-process observers."""

    def __init__(self, *, settings: Settings, client: aioredis.Redis | None = None) -> None:
        if settings.redis_url is None and client is None:
            raise ValueError("RedisEventMirror requires settings.redis_url or a client")
        self.settings = settings
        self._client = client
        self._logger = get_logger(__name__).bind(component="redis_mirror")

    async def open(self) -> None:
        if self._client is None:
            self._client = aioredis.from_url(self.settings.redis_url, encoding="utf-8", decode_responses=True)
            self._logger.info("redis_connected", url=self.settings.redis_url)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            self._logger.info("redis_closed")

    async def publish(self, payload: dict[str, Any]) -> None:
        if self._client is None:
            await self.open()
        assert self._client is not None
        receivers = await self._client.publish(self.settings.redis_channel, json.dumps(payload))
        self._logger.debug(
            "redis_published",
            channel=self.settings.redis_channel,
            event_name=payload.get("event"),
            receivers=receivers,
        )
