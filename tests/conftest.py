from __future__ import annotations

import random

import pytest

from live_auction.catalog import ItemFactory, ItemTemplate
from live_auction.config import Settings
from live_auction.models import AuctionItem
from live_auction.registry import AuctionRegistry

T0 = 1_700_000_000_000


class ManualClock:
    """Clock that only moves when a test tells it to."""

    def __init__(self, start: int = T0) -> None:
        self.value = start

    def now(self) -> int:
        return self.value

    def advance(self, ms: int) -> int:
        self.value += ms
        return self.value

    def set(self, value: int) -> None:
        self.value = value


class RecordingGateway:
    """Gateway stand-in that keeps every delivery in order."""

    def __init__(self) -> None:
        self.deliveries: list[tuple[dict, str | None]] = []

    def deliver(self, payload: dict, recipient: str | None = None) -> None:
        self.deliveries.append((payload, recipient))

    def events(self, name: str) -> list[tuple[dict, str | None]]:
        return [(payload, recipient) for payload, recipient in self.deliveries if payload["event"] == name]


def make_item(item_id: str = "rolex", **overrides) -> AuctionItem:
    """The 5000 / T+300000 item used across the arbitration scenarios."""

    fields = dict(
        id=item_id,
        title="Vintage Rolex Submariner",
        description="Classic 1960s Rolex Submariner in excellent condition",
        image_url="https://example.test/rolex.jpg",
        starting_price=5000,
        current_bid=5000,
        end_time=T0 + 300_000,
    )
    fields.update(overrides)
    return AuctionItem(**fields)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def registry() -> AuctionRegistry:
    return AuctionRegistry([make_item()])


@pytest.fixture
def factory() -> ItemFactory:
    templates = [
        ItemTemplate(title="Rolex", description="watch", image_url="rolex.jpg", starting_price=5000),
        ItemTemplate(title="MacBook", description="laptop", image_url="mac.jpg", starting_price=2500),
    ]
    return ItemFactory(
        templates,
        initial_duration_seconds=(60, 120),
        cycle_duration_seconds=(60, 120),
        rng=random.Random(7),
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, sweep_interval_seconds=60, random_seed=1)


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()
