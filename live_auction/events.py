"""Typed event contracts exchanged with clients.

Every model serialises with camelCase keys. Push-channel messages are wrapped
in an envelope ``{"event": <EventType>, "data": {...}}``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from live_auction.clock import ServerTime
from live_auction.models import Accepted, AuctionItem, BidAttempt, Rejected


class EventType(str, Enum):
    BID_PLACED = "BID_PLACED"
    UPDATE_BID = "UPDATE_BID"
    OUTBID = "OUTBID"
    INIT_ITEMS = "INIT_ITEMS"


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class BidPlaced(_WireModel):
    """Inbound bid attempt from a client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra="ignore")

    item_id: str = Field(min_length=1)
    amount: float
    user_id: str = Field(min_length=1)
    user_name: str

    def to_attempt(self) -> BidAttempt:
        return BidAttempt(
            item_id=self.item_id,
            amount=self.amount,
            bidder_id=self.user_id,
            bidder_name=self.user_name,
        )


class UpdateBid(_WireModel):
    """Broadcast to every observer after an accepted bid."""

    item: dict[str, Any]
    bidder_id: str
    bidder_name: str
    server_time: int

    @classmethod
    def from_outcome(cls, outcome: Accepted, now: ServerTime) -> "UpdateBid":
        item = outcome.item
        return cls(
            item=item.to_payload(),
            bidder_id=item.highest_bidder or "",
            bidder_name=item.highest_bidder_name or "",
            server_time=now.timestamp,
        )


class Outbid(_WireModel):
    """Sent only to the client whose attempt was rejected."""

    item_id: str
    error: str
    current_bid: float | None = None
    server_time: int

    @classmethod
    def from_outcome(cls, outcome: Rejected, now: ServerTime) -> "Outbid":
        return cls(
            item_id=outcome.item_id,
            error=outcome.reason.value,
            current_bid=outcome.current_bid,
            server_time=now.timestamp,
        )

    def to_wire(self) -> dict[str, Any]:
        payload = super().to_wire()
        if payload["currentBid"] is None:
            del payload["currentBid"]
        return payload


class ItemsSnapshot(_WireModel):
    """Full registry snapshot with the authoritative time.

    Used both as the ``INIT_ITEMS`` push event and the ``GET /items`` body.
    """

    items: list[dict[str, Any]]
    server_time: int

    @classmethod
    def build(cls, items: Sequence[AuctionItem], now: ServerTime) -> "ItemsSnapshot":
        return cls(items=[item.to_payload() for item in items], server_time=now.timestamp)


class TimeSync(_WireModel):
    """Body of ``GET /time``: epoch milliseconds and the same instant as ISO 8601."""

    timestamp: int
    server_time: str

    @classmethod
    def build(cls, now: ServerTime) -> "TimeSync":
        return cls(timestamp=now.timestamp, server_time=now.iso)


def envelope(event: EventType, body: _WireModel) -> dict[str, Any]:
    """Wrap ``body`` for the push channel."""

    return {"event": event.value, "data": body.to_wire()}
