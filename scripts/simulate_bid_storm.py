"""Fire a burst of concurrent bids at an in-process auction house.

Every bidder races on the same item; the script reports how many attempts
were accepted and checks that the final price is the highest accepted bid.

Usage:
    python scripts/simulate_bid_storm.py
    python scripts/simulate_bid_storm.py --bidders 200 --step 5
    python scripts/simulate_bid_storm.py --exclusion per_item --shuffle
"""

from __future__ import annotations

import argparse
import asyncio
import random
import sys
from collections import Counter

from live_auction.config import get_settings
from live_auction.logging import configure_logging
from live_auction.models import Accepted
from live_auction.service import AuctionService


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Concurrent bidding stress demo",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--bidders", type=int, default=50, help="Number of concurrent attempts (default: 50)")
    parser.add_argument("--step", type=float, default=1.0, help="Amount increment between bidders (default: 1)")
    parser.add_argument(
        "--exclusion",
        choices=("global", "per_item"),
        default="global",
        help="Registry lock granularity (default: global)",
    )
    parser.add_argument("--shuffle", action="store_true", help="Submit attempts in random order")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for --shuffle")
    parser.add_argument("--log-level", default="WARNING", help="Log level (default: WARNING)")
    return parser.parse_args()


async def main() -> int:
    args = parse_args()
    configure_logging(args.log_level, json_logs=False)

    settings = get_settings().model_copy(update={"exclusion_domain": args.exclusion})
    service = AuctionService(settings=settings)
    item = service.registry.get_all()[0]

    amounts = [item.starting_price + args.step * (i + 1) for i in range(args.bidders)]
    if args.shuffle:
        random.Random(args.seed).shuffle(amounts)

    outcomes = await asyncio.gather(
        *(
            service.arbiter.place_bid(item.id, amount, f"bidder-{i}", f"Bidder {i}")
            for i, amount in enumerate(amounts)
        )
    )

    final = service.registry.get(item.id)
    assert final is not None
    accepted = [outcome for outcome in outcomes if isinstance(outcome, Accepted)]
    reasons = Counter(outcome.reason.name for outcome in outcomes if not isinstance(outcome, Accepted))

    print("=" * 60)
    print(f"Item:            {item.title} (starting at {item.starting_price})")
    print(f"Attempts:        {len(outcomes)} ({args.exclusion} exclusion)")
    print(f"Accepted:        {len(accepted)}")
    for reason, count in sorted(reasons.items()):
        print(f"Rejected {reason:<14} {count}")
    print(f"Final bid:       {final.current_bid} by {final.highest_bidder_name}")
    print(f"Bid count:       {final.bid_count}")
    print("=" * 60)

    consistent = final.bid_count == len(accepted) and (
        not accepted or final.current_bid == max(outcome.item.current_bid for outcome in accepted)
    )
    if not consistent:
        print("INCONSISTENT RESULT", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
