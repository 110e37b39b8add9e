"""Persistent storage for the shared tree and the message board."""

from .garden_store import GardenStore, Message

__all__ = ["GardenStore", "Message"]
