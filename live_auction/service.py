"""Wire the arbiter, sweeper and gateway into one running auction house."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping, Sequence

from pydantic import ValidationError

from live_auction.arbiter import BidArbiter
from live_auction.catalog import ItemFactory
from live_auction.clock import Clock, SystemClock, server_time
from live_auction.config import Settings, get_settings
from live_auction.events import (
    BidPlaced,
    EventType,
    ItemsSnapshot,
    Outbid,
    TimeSync,
    UpdateBid,
    envelope,
)
from live_auction.gateway import BroadcastGateway, EventMirror, RedisEventMirror, SubscriberHub
from live_auction.logging import get_logger
from live_auction.models import Accepted, AuctionItem, Outcome, Rejected, RejectReason
from live_auction.registry import AuctionRegistry, build_exclusion
from live_auction.sweeper import LifecycleSweeper, SweepScheduler


class AuctionService:
    """Entry point used by the transport layer.

    The service owns the registry and hands every outcome to the gateway
    without awaiting delivery.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        clock: Clock | None = None,
        factory: ItemFactory | None = None,
        registry: AuctionRegistry | None = None,
        gateway: BroadcastGateway | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.clock = clock or SystemClock()
        self.factory = factory or ItemFactory.from_settings(self.settings)
        if registry is None:
            registry = AuctionRegistry(
                self.factory.create_all(self.clock.now()),
                exclusion=build_exclusion(self.settings.exclusion_domain),
            )
        self.registry = registry
        self.gateway = gateway if gateway is not None else SubscriberHub(mirrors=_mirrors_from(self.settings))
        self.arbiter = BidArbiter(self.registry, self.clock)
        self.sweeper = LifecycleSweeper(self.registry, self.clock, self.factory)
        self.scheduler = SweepScheduler(
            self.sweeper,
            interval_seconds=self.settings.sweep_interval_seconds,
            on_regenerated=self.broadcast_regenerated,
        )
        self._logger = get_logger(__name__).bind(component="auction_service")
        self._logger.info("items_initialized", count=len(self.registry))

    @asynccontextmanager
    async def lifecycle(self) -> AsyncIterator["AuctionService"]:
        """Run the periodic sweeper for the duration of the context."""

        self.scheduler.start()
        try:
            yield self
        finally:
            self.scheduler.stop()
            await self.scheduler.wait_stopped()
            if isinstance(self.gateway, SubscriberHub):
                await self.gateway.close()

    # -- pull queries --------------------------------------------------------

    def items_snapshot(self) -> ItemsSnapshot:
        return ItemsSnapshot.build(self.registry.get_all(), server_time(self.clock))

    def time_sync(self) -> TimeSync:
        return TimeSync.build(server_time(self.clock))

    def health(self) -> dict[str, Any]:
        return {"status": "ok", "timestamp": self.clock.now()}

    # -- push events ---------------------------------------------------------

    def connect(self, subscriber_id: str) -> None:
        """Send the full snapshot to a client that just connected."""

        self.gateway.deliver(envelope(EventType.INIT_ITEMS, self.items_snapshot()), recipient=subscriber_id)

    async def handle_bid(self, subscriber_id: str, data: Mapping[str, Any]) -> Outcome:
        """Process a raw ``BID_PLACED`` payload from ``subscriber_id``.

        Accepted bids go to every subscriber; rejections only to the sender.
        """

        try:
            bid = BidPlaced.model_validate(data)
        except ValidationError as exc:
            item_id = str(data.get("itemId", "")) if isinstance(data, Mapping) else ""
            self._logger.warning(
                "bid_malformed",
                subscriber_id=subscriber_id,
                errors=exc.error_count(),
            )
            outcome: Outcome = Rejected(RejectReason.SERVER_ERROR, item_id)
            self._reply_rejected(subscriber_id, outcome)
            return outcome

        self._logger.info(
            "bid_received",
            subscriber_id=subscriber_id,
            item_id=bid.item_id,
            amount=bid.amount,
            bidder_name=bid.user_name,
        )
        attempt = bid.to_attempt()
        outcome = await self.arbiter.place_bid(
            attempt.item_id,
            attempt.amount,
            attempt.bidder_id,
            attempt.bidder_name,
        )
        if isinstance(outcome, Accepted):
            self.gateway.deliver(
                envelope(EventType.UPDATE_BID, UpdateBid.from_outcome(outcome, server_time(self.clock)))
            )
        else:
            self._reply_rejected(subscriber_id, outcome)
        return outcome

    def _reply_rejected(self, subscriber_id: str, outcome: Rejected) -> None:
        self.gateway.deliver(
            envelope(EventType.OUTBID, Outbid.from_outcome(outcome, server_time(self.clock))),
            recipient=subscriber_id,
        )

    def broadcast_regenerated(self, items: Sequence[AuctionItem]) -> None:
        """Push a full refresh to everyone after a sweep restarted auctions."""

        if not items:
            return
        self._logger.info("broadcasting_restarted_auctions", count=len(items))
        self.gateway.deliver(envelope(EventType.INIT_ITEMS, self.items_snapshot()))

    # -- administration ------------------------------------------------------

    async def reset(self) -> list[AuctionItem]:
        """Replace every item with a fresh cycle from the catalog and notify clients."""

        items = await self.registry.replace_all(self.factory.create_all(self.clock.now()))
        self.gateway.deliver(envelope(EventType.INIT_ITEMS, self.items_snapshot()))
        return items


def _mirrors_from(settings: Settings) -> list[EventMirror]:
    if settings.redis_url:
        return [RedisEventMirror(settings=settings)]
    return []
