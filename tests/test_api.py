"""Tests for the FastAPI transport shell."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import T0, make_item
from live_auction.api import create_app
from live_auction.registry import AuctionRegistry
from live_auction.service import AuctionService


@pytest.fixture
def service(settings, clock, factory) -> AuctionService:
    return AuctionService(
        settings=settings,
        clock=clock,
        factory=factory,
        registry=AuctionRegistry([make_item()]),
    )


@pytest.fixture
def client(service):
    with TestClient(create_app(service)) as test_client:
        yield test_client


def test_items_endpoint_returns_snapshot_and_time(client) -> None:
    response = client.get("/items")

    assert response.status_code == 200
    body = response.json()
    assert body["serverTime"] == T0
    assert body["items"][0]["id"] == "rolex"
    assert body["items"][0]["currentBid"] == 5000
    assert body["items"][0]["highestBidder"] is None


def test_time_endpoint(client) -> None:
    assert client.get("/time").json() == {"timestamp": T0, "serverTime": "2023-11-14T22:13:20.000Z"}


def test_health_endpoint(client) -> None:
    assert client.get("/health").json() == {"status": "ok", "timestamp": T0}


def test_reset_endpoint(client, service) -> None:
    response = client.post("/reset")

    assert response.json() == {"success": True, "message": "Items reset successfully"}
    assert [item.title for item in service.registry.get_all()] == ["Rolex", "MacBook"]


def test_websocket_bid_flow(client, service) -> None:
    with client.websocket_connect("/ws") as bidder, client.websocket_connect("/ws") as watcher:
        assert bidder.receive_json()["event"] == "INIT_ITEMS"
        assert watcher.receive_json()["event"] == "INIT_ITEMS"

        bidder.send_json(
            {"event": "BID_PLACED", "data": {"itemId": "rolex", "amount": 5100, "userId": "u1", "userName": "Alice"}}
        )
        update_for_bidder = bidder.receive_json()
        update_for_watcher = watcher.receive_json()

        assert update_for_bidder == update_for_watcher
        assert update_for_bidder["event"] == "UPDATE_BID"
        assert update_for_bidder["data"]["item"]["currentBid"] == 5100
        assert update_for_bidder["data"]["bidderName"] == "Alice"

        bidder.send_json(
            {"event": "BID_PLACED", "data": {"itemId": "rolex", "amount": 5050, "userId": "u1", "userName": "Alice"}}
        )
        rejection = bidder.receive_json()

        assert rejection["event"] == "OUTBID"
        assert rejection["data"]["error"] == "OUTBID"
        assert rejection["data"]["currentBid"] == 5100

    assert service.registry.get("rolex").bid_count == 1


def test_websocket_ignores_unknown_events(client, service) -> None:
    with client.websocket_connect("/ws") as socket:
        socket.receive_json()
        socket.send_json({"event": "PING"})
        socket.send_text("not json")
        socket.send_json(
            {"event": "BID_PLACED", "data": {"itemId": "rolex", "amount": 5200, "userId": "u2", "userName": "Bob"}}
        )

        assert socket.receive_json()["event"] == "UPDATE_BID"
