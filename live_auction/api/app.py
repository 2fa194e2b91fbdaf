"""FastAPI application exposing the pull API and the push channel.

GET  /items   : full snapshot plus authoritative time
GET  /time    : server timestamp for client offset calculation
POST /reset   : reinitialise every auction (testing / operations)
GET  /health  : liveness probe
WS   /ws      : BID_PLACED in; UPDATE_BID, OUTBID, INIT_ITEMS out
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from live_auction.config import Settings, get_settings
from live_auction.events import EventType
from live_auction.gateway import SubscriberHub
from live_auction.logging import get_logger
from live_auction.service import AuctionService


class WebSocketSubscriber:
    """Adapts a Starlette websocket to the hub's subscriber interface."""

    def __init__(self, websocket: WebSocket, subscriber_id: str | None = None) -> None:
        self.id = subscriber_id or uuid.uuid4().hex
        self._websocket = websocket

    async def send(self, payload: dict[str, Any]) -> None:
        await self._websocket.send_json(payload)


def create_app(service: AuctionService | None = None, *, settings: Settings | None = None) -> FastAPI:
    settings = settings or (service.settings if service is not None else get_settings())
    auction_service = service or AuctionService(settings=settings)
    if not isinstance(auction_service.gateway, SubscriberHub):
        raise TypeError("The websocket transport requires a SubscriberHub gateway")
    hub: SubscriberHub = auction_service.gateway
    logger = get_logger(__name__).bind(component="api")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with auction_service.lifecycle():
            logger.info(
                "server_started",
                host=settings.api_host,
                port=settings.api_port,
                items=len(auction_service.registry),
            )
            yield
        logger.info("server_stopped")

    app = FastAPI(title="Live Auction", version="0.1.0", lifespan=lifespan)
    app.state.auction_service = auction_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    def _service(request: Request) -> AuctionService:
        return request.app.state.auction_service

    @app.get("/items")
    async def list_items(request: Request) -> dict[str, Any]:
        return _service(request).items_snapshot().to_wire()

    @app.get("/time")
    async def get_time(request: Request) -> dict[str, Any]:
        return _service(request).time_sync().to_wire()

    @app.post("/reset")
    async def reset_items(request: Request) -> dict[str, Any]:
        await _service(request).reset()
        return {"success": True, "message": "Items reset successfully"}

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        return _service(request).health()

    @app.websocket("/ws")
    async def push_channel(websocket: WebSocket) -> None:
        await websocket.accept()
        subscriber = WebSocketSubscriber(websocket)
        hub.subscribe(subscriber)
        auction_service.connect(subscriber.id)
        try:
            while True:
                try:
                    message = await websocket.receive_json()
                except ValueError:
                    logger.warning("invalid_json", subscriber_id=subscriber.id)
                    continue
                event = message.get("event") if isinstance(message, dict) else None
                if event == EventType.BID_PLACED.value:
                    data = message.get("data")
                    await auction_service.handle_bid(subscriber.id, data if isinstance(data, dict) else {})
                else:
                    logger.warning("unknown_event", subscriber_id=subscriber.id, event_name=event)
        except WebSocketDisconnect:
            pass
        finally:
            hub.unsubscribe(subscriber.id)

    return app
