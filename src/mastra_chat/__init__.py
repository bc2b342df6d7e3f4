"""Mastra chat client - streaming chat against a remote agent server."""

from mastra_chat.observability import setup_logging

from .config import settings

__version__ = "0.1.0"

__all__ = ["__version__", "settings", "setup_logging"]
