"""Tests for AuctionService event routing."""

from __future__ import annotations

import pytest

from conftest import T0, make_item
from live_auction.models import Accepted, Rejected, RejectReason
from live_auction.registry import AuctionRegistry
from live_auction.service import AuctionService


@pytest.fixture
def service(settings, clock, factory, gateway) -> AuctionService:
    return AuctionService(
        settings=settings,
        clock=clock,
        factory=factory,
        registry=AuctionRegistry([make_item()]),
        gateway=gateway,
    )


def bid(amount, item_id: str = "rolex", user: str = "u1") -> dict:
    return {"itemId": item_id, "amount": amount, "userId": user, "userName": user.upper()}


@pytest.mark.asyncio()
async def test_accepted_bid_is_broadcast(service, gateway, clock) -> None:
    clock.set(T0 + 1_000)

    outcome = await service.handle_bid("sock-1", bid(5100))

    assert isinstance(outcome, Accepted)
    [(payload, recipient)] = gateway.deliveries
    assert recipient is None
    assert payload["event"] == "UPDATE_BID"
    data = payload["data"]
    assert data["bidderId"] == "u1"
    assert data["bidderName"] == "U1"
    assert data["serverTime"] == T0 + 1_000
    assert data["item"]["currentBid"] == 5100
    assert data["item"]["bidCount"] == 1
    assert data["item"]["highestBidderName"] == "U1"


@pytest.mark.asyncio()
async def test_rejection_goes_only_to_sender(service, gateway) -> None:
    outcome = await service.handle_bid("sock-2", bid(4000))

    assert isinstance(outcome, Rejected)
    [(payload, recipient)] = gateway.deliveries
    assert recipient == "sock-2"
    assert payload == {
        "event": "OUTBID",
        "data": {"itemId": "rolex", "error": "OUTBID", "currentBid": 5000, "serverTime": T0},
    }


@pytest.mark.asyncio()
async def test_ended_and_missing_items_use_wire_error_strings(service, gateway, clock) -> None:
    await service.handle_bid("sock", bid(9000, item_id="ghost"))
    clock.set(T0 + 301_000)
    await service.handle_bid("sock", bid(9000))

    errors = [payload["data"]["error"] for payload, _ in gateway.events("OUTBID")]
    assert errors == ["Item not found", "AUCTION_ENDED"]
    assert "currentBid" not in gateway.deliveries[0][0]["data"]


@pytest.mark.asyncio()
async def test_malformed_payload_reports_server_error(service, gateway) -> None:
    outcome = await service.handle_bid("sock", {"itemId": "rolex", "amount": "lots"})

    assert outcome == Rejected(RejectReason.SERVER_ERROR, "rolex")
    [(payload, recipient)] = gateway.deliveries
    assert recipient == "sock"
    assert payload["data"]["error"] == "Server error processing bid"
    assert service.registry.get("rolex").bid_count == 0


def test_connect_sends_snapshot_to_new_client(service, gateway) -> None:
    service.connect("sock-9")

    [(payload, recipient)] = gateway.deliveries
    assert recipient == "sock-9"
    assert payload["event"] == "INIT_ITEMS"
    assert payload["data"]["serverTime"] == T0
    assert [item["id"] for item in payload["data"]["items"]] == ["rolex"]


def test_pull_queries(service, clock) -> None:
    snapshot = service.items_snapshot().to_wire()
    sync = service.time_sync().to_wire()

    assert snapshot["serverTime"] == T0
    assert snapshot["items"][0]["startingPrice"] == 5000
    assert sync == {"timestamp": T0, "serverTime": "2023-11-14T22:13:20.000Z"}
    assert service.health() == {"status": "ok", "timestamp": T0}


@pytest.mark.asyncio()
async def test_sweep_with_regeneration_broadcasts_full_snapshot(service, gateway, clock) -> None:
    assert await service.scheduler.run_once() == []
    assert gateway.deliveries == []

    clock.set(T0 + 300_001)
    await service.scheduler.run_once()

    [(payload, recipient)] = gateway.deliveries
    assert recipient is None
    assert payload["event"] == "INIT_ITEMS"
    assert payload["data"]["items"][0]["endTime"] > T0 + 300_001


@pytest.mark.asyncio()
async def test_reset_reloads_catalog_and_notifies(service, gateway) -> None:
    await service.handle_bid("sock", bid(5100))

    items = await service.reset()

    assert [item.title for item in items] == ["Rolex", "MacBook"]
    assert service.registry.get("rolex") is None
    assert gateway.deliveries[-1][0]["event"] == "INIT_ITEMS"
    assert gateway.deliveries[-1][1] is None


@pytest.mark.asyncio()
async def test_lifecycle_starts_and_stops_sweeper(service) -> None:
    async with service.lifecycle():
        assert service.scheduler.running

    assert not service.scheduler.running


def test_default_wiring_uses_settings(settings, clock) -> None:
    per_item = settings.model_copy(update={"exclusion_domain": "per_item"})

    service = AuctionService(settings=per_item, clock=clock)

    assert len(service.registry) == 6
    assert all(item.end_time > T0 for item in service.registry.get_all())
