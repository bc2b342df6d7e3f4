"""Application services."""

from .chat_service import ChatService
from .connection_manager import ConnectionManager
from .message_factory import MessageFactory
from .response_acquirer import (
    APOLOGY_MESSAGE,
    EMPTY_RESPONSE_MESSAGE,
    ChunkSink,
    ResponseAcquirer,
)

__all__ = [
    "APOLOGY_MESSAGE",
    "EMPTY_RESPONSE_MESSAGE",
    "ChatService",
    "ChunkSink",
    "ConnectionManager",
    "MessageFactory",
    "ResponseAcquirer",
]
