"""Seedling: a shared virtual plant with a guestbook."""

__version__ = "0.1.0"
