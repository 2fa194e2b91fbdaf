"""HTTP and websocket transport for the auction service."""

from .app import create_app

__all__ = ["create_app"]
