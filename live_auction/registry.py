"""Authoritative in-memory store of auction items.

All writes go through :meth:`AuctionRegistry.with_exclusive_access`, which
holds the exclusion domain covering the item while a synchronous callback
inspects and stages a change. Staged values are committed only when the
callback returns normally.

Readers take no lock. Items are immutable and each commit is a single dict
assignment, so :meth:`AuctionRegistry.get_all` returns either the pre- or the
post-mutation value of every item, never a torn one.
"""

from __future__ import annotations

import asyncio
import dataclasses
from contextlib import AbstractAsyncContextManager, AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Callable, Iterable, Protocol, TypeVar

from live_auction.logging import get_logger
from live_auction.models import AuctionItem

T = TypeVar("T")


class ExclusionStrategy(Protocol):
    """Decides which lock protects which item."""

    def hold(self, item_id: str) -> AbstractAsyncContextManager[None]: ...

    def hold_all(self) -> AbstractAsyncContextManager[None]: ...

    def retain(self, item_ids: Iterable[str]) -> None: ...


class GlobalExclusion:
    """One lock for the whole registry."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def hold(self, item_id: str) -> AsyncIterator[None]:
        async with self._lock:
            yield

    @asynccontextmanager
    async def hold_all(self) -> AsyncIterator[None]:
        async with self._lock:
            yield

    def retain(self, item_ids: Iterable[str]) -> None:
        return None


class PerItemExclusion:
    """One lock per item identifier.

    ``hold_all`` takes every known item lock in sorted order so it can never
    deadlock against itself.
    Locks exist only for ids the registry holds: the registry never asks for
    an unknown id, and ``retain`` drops locks of removed items.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, item_id: str) -> asyncio.Lock:
        lock = self._locks.get(item_id)
        if lock is None:
            lock = self._locks[item_id] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def hold(self, item_id: str) -> AsyncIterator[None]:
        async with self._lock_for(item_id):
            yield

    @asynccontextmanager
    async def hold_all(self) -> AsyncIterator[None]:
        async with AsyncExitStack() as stack:
            for item_id in sorted(self._locks):
                await stack.enter_async_context(self._locks[item_id])
            yield

    def retain(self, item_ids: Iterable[str]) -> None:
        keep = set(item_ids)
        for item_id in [item_id for item_id in self._locks if item_id not in keep]:
            del self._locks[item_id]


def build_exclusion(domain: str) -> ExclusionStrategy:
    """Return the exclusion strategy named by ``Settings.exclusion_domain``."""

    if domain == "global":
        return GlobalExclusion()
    if domain == "per_item":
        return PerItemExclusion()
    raise ValueError(f"Unknown exclusion domain: {domain!r}")


class ItemEntry:
    """Handle given to an exclusive-access callback for one item."""

    __slots__ = ("item_id", "_current", "_staged")

    def __init__(self, item_id: str, current: AuctionItem | None) -> None:
        self.item_id = item_id
        self._current = current
        self._staged: AuctionItem | None = None

    @property
    def item(self) -> AuctionItem | None:
        """The staged value if any, otherwise the committed one."""

        return self._staged if self._staged is not None else self._current

    def replace(self, **changes) -> AuctionItem:
        """Stage a copy of the item with ``changes`` applied."""

        if self.item is None:
            raise KeyError(self.item_id)
        self._staged = dataclasses.replace(self.item, **changes)
        return self._staged

    def set(self, item: AuctionItem) -> AuctionItem:
        """Stage ``item`` as the whole new value for this entry."""

        if self._current is None:
            raise KeyError(self.item_id)
        if item.id != self.item_id:
            raise ValueError(f"Cannot replace {self.item_id} with item {item.id}")
        self._staged = item
        return item

    @property
    def staged(self) -> AuctionItem | None:
        return self._staged


class AuctionRegistry:
    """Owns every :class:`AuctionItem` and the locks guarding them."""

    def __init__(
        self,
        items: Iterable[AuctionItem] = (),
        *,
        exclusion: ExclusionStrategy | None = None,
    ) -> None:
        self._items: dict[str, AuctionItem] = {}
        self._exclusion = exclusion or GlobalExclusion()
        self._logger = get_logger(__name__).bind(component="registry")
        for item in items:
            self._insert(item)

    def _insert(self, item: AuctionItem) -> None:
        if item.id in self._items:
            raise ValueError(f"Duplicate item id: {item.id}")
        self._items[item.id] = item

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def get_all(self) -> list[AuctionItem]:
        return list(self._items.values())

    def get(self, item_id: str) -> AuctionItem | None:
        return self._items.get(item_id)

    def ids(self) -> list[str]:
        return list(self._items)

    async def with_exclusive_access(self, item_id: str, fn: Callable[[ItemEntry], T]) -> T:
        """Run ``fn`` while holding sole mutation rights to ``item_id``.

        ``fn`` must be synchronous. Whatever it stages on the entry is
        committed after it returns; if it raises, nothing is committed and the
        exception propagates to the caller.

        An id the registry does not hold is answered without taking any lock;
        the entry is empty and nothing can be staged on it.
        """

        if item_id not in self._items:
            return fn(ItemEntry(item_id, None))

        async with self._exclusion.hold(item_id):
            entry = ItemEntry(item_id, self._items.get(item_id))
            result = fn(entry)
            if entry.staged is not None:
                self._items[item_id] = entry.staged
            return result

    async def replace_all(self, items: Iterable[AuctionItem]) -> list[AuctionItem]:
        """Clear the registry and load ``items`` under every exclusion domain."""

        new_items: dict[str, AuctionItem] = {}
        for item in items:
            if item.id in new_items:
                raise ValueError(f"Duplicate item id: {item.id}")
            new_items[item.id] = item

        async with self._exclusion.hold_all():
            self._items = new_items
            self._exclusion.retain(new_items)
        self._logger.info("registry_reset", size=len(new_items))
        return self.get_all()
