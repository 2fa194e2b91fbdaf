"""Bid arbitration against the shared registry."""

from __future__ import annotations

import math

from live_auction.clock import Clock
from live_auction.logging import get_logger
from live_auction.models import Accepted, AuctionItem, Outcome, Rejected, RejectReason
from live_auction.registry import AuctionRegistry, ItemEntry


class BidArbiter:
    """Validate and apply bid attempts one at a time per exclusion domain.

    The whole decision (lookup, deadline check, price comparison, commit) runs
    inside a single exclusive-access section, so two concurrent attempts on the
    same item are totally ordered and the second one always compares against
    the first one's result.
    """

    def __init__(self, registry: AuctionRegistry, clock: Clock) -> None:
        self.registry = registry
        self.clock = clock
        self._logger = get_logger(__name__).bind(component="bid_arbiter")

    async def place_bid(
        self,
        item_id: str,
        amount: float,
        bidder_id: str,
        bidder_name: str,
    ) -> Outcome:
        """Apply a bid or explain why not. Never raises."""

        def decide(entry: ItemEntry) -> Outcome:
            item = entry.item
            if item is None:
                return Rejected(RejectReason.ITEM_NOT_FOUND, item_id)
            if item.is_expired(self.clock.now()):
                return Rejected(RejectReason.AUCTION_ENDED, item_id, item.current_bid)
            if not _exceeds(amount, item):
                return Rejected(RejectReason.BID_TOO_LOW, item_id, item.current_bid)

            updated = entry.replace(
                current_bid=amount,
                highest_bidder=bidder_id,
                highest_bidder_name=bidder_name,
                bid_count=item.bid_count + 1,
            )
            return Accepted(updated, previous_bid=item.current_bid)

        try:
            outcome = await self.registry.with_exclusive_access(item_id, decide)
        except Exception:
            self._logger.exception("bid_processing_failed", item_id=item_id, bidder_id=bidder_id)
            return Rejected(RejectReason.SERVER_ERROR, item_id)

        if isinstance(outcome, Accepted):
            self._logger.info(
                "bid_accepted",
                item_id=item_id,
                title=outcome.item.title,
                amount=amount,
                bidder_name=bidder_name,
                bid_count=outcome.item.bid_count,
            )
        else:
            self._logger.info(
                "bid_rejected",
                item_id=item_id,
                amount=amount,
                bidder_name=bidder_name,
                reason=outcome.reason.name,
            )
        return outcome


def _exceeds(amount: float, item: AuctionItem) -> bool:
    # NaN compares false with everything and would slip past a plain <=.
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        return False
    return math.isfinite(amount) and amount > item.current_bid
