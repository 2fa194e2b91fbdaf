"""Auction domain values and bid outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union


@dataclass(frozen=True, slots=True)
class AuctionItem:
    """One auction cycle's state for a single item.

    Instances are immutable. The registry swaps in a new value on every
    committed change, so a reference held by a reader is always a consistent
    snapshot.
    """

    id: str
    title: str
    description: str
    image_url: str
    starting_price: float
    current_bid: float
    end_time: int
    highest_bidder: str | None = None
    highest_bidder_name: str | None = None
    bid_count: int = 0

    def is_expired(self, now: int) -> bool:
        return now > self.end_time

    def to_payload(self) -> dict[str, Any]:
        """Return the camelCase wire representation."""

        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "imageUrl": self.image_url,
            "startingPrice": self.starting_price,
            "currentBid": self.current_bid,
            "highestBidder": self.highest_bidder,
            "highestBidderName": self.highest_bidder_name,
            "endTime": self.end_time,
            "bidCount": self.bid_count,
        }


@dataclass(frozen=True, slots=True)
class BidAttempt:
    """A bid as received from a client. Never stored."""

    item_id: str
    amount: float
    bidder_id: str
    bidder_name: str


class RejectReason(str, Enum):
    """Why a bid attempt was not applied.

    Values are the error strings clients receive in ``OUTBID`` events.
    """

    ITEM_NOT_FOUND = "Item not found"
    AUCTION_ENDED = "AUCTION_ENDED"
    BID_TOO_LOW = "OUTBID"
    SERVER_ERROR = "Server error processing bid"


@dataclass(frozen=True, slots=True)
class Accepted:
    """The bid was applied; ``item`` is the committed value to broadcast."""

    item: AuctionItem
    previous_bid: float

    accepted = True


@dataclass(frozen=True, slots=True)
class Rejected:
    """The bid was refused and the registry was left untouched."""

    reason: RejectReason
    item_id: str
    current_bid: float | None = None

    accepted = False


Outcome = Union[Accepted, Rejected]
