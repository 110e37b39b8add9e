"""HTTP server for the shared tree and the message board."""

from .app import create_app

__all__ = ["create_app"]
