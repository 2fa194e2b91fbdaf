"""Expire and restart auctions on a fixed cadence."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Sequence

from live_auction.catalog import ItemFactory
from live_auction.clock import Clock
from live_auction.logging import get_logger
from live_auction.models import AuctionItem
from live_auction.registry import AuctionRegistry, ItemEntry

RegeneratedCallback = Callable[[Sequence[AuctionItem]], Awaitable[None] | None]


class LifecycleSweeper:
    """Regenerate every item whose cycle has ended."""

    def __init__(self, registry: AuctionRegistry, clock: Clock, factory: ItemFactory) -> None:
        self.registry = registry
        self.clock = clock
        self.factory = factory
        self._logger = get_logger(__name__).bind(component="lifecycle_sweeper")

    async def sweep(self) -> list[AuctionItem]:
        """Regenerate expired items and return them.

        Expiry is re-checked inside each item's exclusive section against a
        fresh clock reading, so a bid that won the lock first is kept in the
        ending cycle's result and one that comes after sees the new cycle.

        An item that fails to regenerate is logged and left as it was; the
        others are still regenerated and returned.
        """

        def regenerate_if_expired(entry: ItemEntry) -> tuple[AuctionItem, AuctionItem] | None:
            item = entry.item
            if item is None:
                return None
            now = self.clock.now()
            if not item.is_expired(now):
                return None
            return item, entry.set(self.factory.regenerate(item, now))

        regenerated: list[AuctionItem] = []
        for item_id in self.registry.ids():
            try:
                swapped = await self.registry.with_exclusive_access(item_id, regenerate_if_expired)
            except Exception as exc:
                self._logger.exception(
                    "auction_regeneration_failed",
                    item_id=item_id,
                    error_type=exc.__class__.__name__,
                    error=str(exc),
                )
                continue
            if swapped is None:
                continue
            previous, fresh = swapped
            regenerated.append(fresh)
            self._logger.info(
                "auction_regenerated",
                item_id=item_id,
                title=fresh.title,
                final_bid=previous.current_bid,
                winner=previous.highest_bidder_name,
                end_time=fresh.end_time,
            )

        if regenerated:
            self._logger.info("sweep_completed", regenerated=len(regenerated))
        return regenerated


class SweepScheduler:
    """Run :meth:`LifecycleSweeper.sweep` every ``interval_seconds`` until stopped.

    A failing cycle is logged and the loop carries on with the next one.
    """

    def __init__(
        self,
        sweeper: LifecycleSweeper,
        *,
        interval_seconds: float = 5.0,
        on_regenerated: RegeneratedCallback | None = None,
    ) -> None:
        self.sweeper = sweeper
        self.interval_seconds = interval_seconds
        self.on_regenerated = on_regenerated
        self._stopped = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._logger = get_logger(__name__).bind(component="sweep_scheduler")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> list[AuctionItem]:
        """One sweep cycle plus notification. Exceptions are logged, not raised."""

        try:
            regenerated = await self.sweeper.sweep()
            if regenerated and self.on_regenerated is not None:
                result = self.on_regenerated(regenerated)
                if asyncio.iscoroutine(result):
                    await result
            return regenerated
        except Exception as exc:
            self._logger.exception(
                "sweep_failed",
                error_type=exc.__class__.__name__,
                error=str(exc),
            )
            return []

    async def run(self) -> None:
        self._logger.info("sweep_scheduler_started", interval=self.interval_seconds)
        while not self._stopped.is_set():
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                await self.run_once()
        self._logger.info("sweep_scheduler_stopped")

    def start(self) -> asyncio.Task[None]:
        if self.running:
            assert self._task is not None
            return self._task
        self._stopped.clear()
        self._task = asyncio.create_task(self.run(), name="auction-sweeper")
        return self._task

    def stop(self) -> None:
        """Signal the loop to exit after the current cycle."""

        self._stopped.set()

    async def wait_stopped(self) -> None:
        if self._task is not None:
            await self._task
            self._task = None
