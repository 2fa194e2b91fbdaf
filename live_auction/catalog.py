"""Item templates and the factory that opens new auction cycles."""

from __future__ import annotations

import dataclasses
import json
import random
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from live_auction.config import Settings
from live_auction.logging import get_logger
from live_auction.models import AuctionItem

_MS = 1000


@dataclass(frozen=True, slots=True)
class ItemTemplate:
    """Display data and opening price for an item that gets auctioned repeatedly."""

    title: str
    description: str
    image_url: str
    starting_price: float


SAMPLE_CATALOG: tuple[ItemTemplate, ...] = (
    ItemTemplate(
        title="Vintage Rolex Submariner",
        description="Classic 1960s Rolex Submariner in excellent condition",
        image_url="https://images.unsplash.com/photo-1523275335684-37898b6baf30?w=400",
        starting_price=5000,
    ),
    ItemTemplate(
        title="MacBook Pro M3 Max",
        description="Brand new 16-inch MacBook Pro with M3 Max chip",
        image_url="https://images.unsplash.com/photo-1517336714731-489689fd1ca8?w=400",
        starting_price=2500,
    ),
    ItemTemplate(
        title="Signed Michael Jordan Jersey",
        description="Authentic Chicago Bulls jersey signed by MJ himself",
        image_url="https://images.unsplash.com/photo-1574629810360-7efbbe195018?w=400",
        starting_price=1500,
    ),
    ItemTemplate(
        title="Tesla Model S Plaid",
        description="2024 Tesla Model S Plaid with Full Self-Driving",
        image_url="https://images.unsplash.com/photo-1617788138017-80ad40651399?w=400",
        starting_price=80000,
    ),
    ItemTemplate(
        title="Rare Pokemon Card Collection",
        description="First edition Charizard and complete base set",
        image_url="https://images.unsplash.com/photo-1613771404784-3a5686aa2be3?w=400",
        starting_price=25000,
    ),
    ItemTemplate(
        title="Hermès Birkin Bag",
        description="Classic black Hermès Birkin 35 in pristine condition",
        image_url="https://images.unsplash.com/photo-1584917865442-de89df76afd3?w=400",
        starting_price=15000,
    ),
)


def load_catalog(path: Path | str) -> tuple[ItemTemplate, ...]:
    """Load item templates from a JSON list.

    Each entry needs ``title``, ``description``, ``image_url`` (or ``imageUrl``)
    and ``starting_price`` (or ``startingPrice``).

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the file holds no templates or a starting price is
            missing, non-numeric or negative.
    """
    catalog_path = Path(path)
    if not catalog_path.exists():
        raise FileNotFoundError(f"Catalog not found: {catalog_path}")

    with open(catalog_path, encoding="utf-8") as f:
        data = json.load(f)

    templates = tuple(
        ItemTemplate(
            title=entry["title"],
            description=entry.get("description", ""),
            image_url=entry.get("image_url", entry.get("imageUrl", "")),
            starting_price=entry.get("starting_price", entry.get("startingPrice")),
        )
        for entry in data
    )
    if not templates:
        raise ValueError(f"Catalog is empty: {catalog_path}")
    for template in templates:
        price = template.starting_price
        if isinstance(price, bool) or not isinstance(price, (int, float)) or price < 0:
            raise ValueError(f"Invalid starting price for {template.title!r}")

    logger = get_logger(__name__).bind(component="catalog")
    logger.info("catalog_loaded", path=str(catalog_path), size=len(templates))
    return templates


class ItemFactory:
    """Create fresh items and regenerate expired ones.

    Durations are drawn uniformly (whole seconds) from the configured ranges.
    Pass a seeded ``random.Random`` for reproducible end times.
    """

    def __init__(
        self,
        templates: Sequence[ItemTemplate] = SAMPLE_CATALOG,
        *,
        initial_duration_seconds: tuple[int, int] = (180, 600),
        cycle_duration_seconds: tuple[int, int] = (180, 600),
        rng: random.Random | None = None,
    ) -> None:
        for low, high in (initial_duration_seconds, cycle_duration_seconds):
            if low <= 0 or low > high:
                raise ValueError(f"Invalid duration range: {low}..{high}")
        self.templates = tuple(templates)
        self._initial = initial_duration_seconds
        self._cycle = cycle_duration_seconds
        self._rng = rng or random.Random()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ItemFactory":
        templates = load_catalog(settings.catalog_path) if settings.catalog_path else SAMPLE_CATALOG
        return cls(
            templates,
            initial_duration_seconds=(
                settings.initial_duration_min_seconds,
                settings.initial_duration_max_seconds,
            ),
            cycle_duration_seconds=(
                settings.cycle_duration_min_seconds,
                settings.cycle_duration_max_seconds,
            ),
            rng=random.Random(settings.random_seed),
        )

    def _duration_ms(self, bounds: tuple[int, int]) -> int:
        return self._rng.randint(*bounds) * _MS

    def create(self, template: ItemTemplate, now: int) -> AuctionItem:
        """Open the first cycle for ``template`` with a fresh identifier."""

        return AuctionItem(
            id=str(uuid.uuid4()),
            title=template.title,
            description=template.description,
            image_url=template.image_url,
            starting_price=template.starting_price,
            current_bid=template.starting_price,
            end_time=now + self._duration_ms(self._initial),
        )

    def create_all(self, now: int, templates: Iterable[ItemTemplate] | None = None) -> list[AuctionItem]:
        return [self.create(template, now) for template in (templates or self.templates)]

    def regenerate(self, item: AuctionItem, now: int) -> AuctionItem:
        """Start a new cycle for ``item``, keeping its identifier and display data."""

        return dataclasses.replace(
            item,
            current_bid=item.starting_price,
            highest_bidder=None,
            highest_bidder_name=None,
            bid_count=0,
            end_time=now + self._duration_ms(self._cycle),
        )
