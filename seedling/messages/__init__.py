"""Message board served alongside the tree."""

from .board import MessageBoard

__all__ = ["MessageBoard"]
