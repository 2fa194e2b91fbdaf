"""Live Auction: authoritative bid arbitration and auction lifecycle service."""

from __future__ import annotations

from .arbiter import BidArbiter
from .catalog import SAMPLE_CATALOG, ItemFactory, ItemTemplate, load_catalog
from .clock import Clock, ServerTime, SystemClock, server_time
from .config import Settings, get_settings
from .gateway import BroadcastGateway, RedisEventMirror, SubscriberHub
from .models import Accepted, AuctionItem, BidAttempt, Outcome, Rejected, RejectReason
from .registry import AuctionRegistry, GlobalExclusion, PerItemExclusion
from .service import AuctionService
from .sweeper import LifecycleSweeper, SweepScheduler

__all__ = [
    "Accepted",
    "AuctionItem",
    "AuctionRegistry",
    "AuctionService",
    "BidArbiter",
    "BidAttempt",
    "BroadcastGateway",
    "Clock",
    "GlobalExclusion",
    "ItemFactory",
    "ItemTemplate",
    "LifecycleSweeper",
    "Outcome",
    "PerItemExclusion",
    "RedisEventMirror",
    "RejectReason",
    "Rejected",
    "SAMPLE_CATALOG",
    "ServerTime",
    "Settings",
    "SubscriberHub",
    "SweepScheduler",
    "SystemClock",
    "get_settings",
    "load_catalog",
    "server_time",
]
