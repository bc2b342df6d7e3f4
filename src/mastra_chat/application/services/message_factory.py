"""Construction of chat message records."""

import itertools
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from mastra_chat.domain.models import Message, MessageRole

# Shared by every factory so ids stay unique across the process
_sequence = itertools.count(1)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class MessageFactory:
    """Stamps id and timestamp onto new messages."""

    def __init__(self, clock: Callable[[], datetime] = _utc_now):
        self._clock = clock

    @staticmethod
    def next_id() -> str:
        """Millisecond clock plus a process-wide sequence number."""
        return f"{time.time_ns() // 1_000_000}-{next(_sequence)}"

    def make(self, role: MessageRole | str, content: str, metadata: dict[str, Any] | None = None) -> Message:
        """
        Create a message.

        Args:
            role: Message role, as enum or its string value
            content: Message text
            metadata: Optional extra fields

        Returns:
            New immutable message
        """
        return Message(
            id=self.next_id(),
            role=MessageRole(role),
            content=content,
            timestamp=self._clock(),
            metadata=metadata or {},
        )
