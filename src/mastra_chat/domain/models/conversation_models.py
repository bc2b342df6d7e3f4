"""In-memory transcript kept by presentation callers."""

from dataclasses import replace
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

from .agent_models import Message, MessageRole

THINKING_PLACEHOLDER = "Assistant is thinking..."


class ChatTranscript(BaseModel):
    """Ordered list of messages shown to the user.

    Streaming replies land in a placeholder entry: the first chunk replaces the
    placeholder text, later chunks are appended. Nothing here is persisted.
    """

    transcript_id: str = Field(default_factory=lambda: str(uuid4()))
    messages: list[Message] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = Field(default_factory=dict)

    def add_message(self, message: Message) -> None:
        """Add a single message to the transcript."""
        self.messages.append(message)
        self.updated_at = datetime.now(UTC)

    def add_placeholder(self, message_id: str | None = None, content: str = THINKING_PLACEHOLDER) -> str:
        """Append an assistant placeholder and return its id."""
        placeholder_id = message_id or f"pending-{uuid4().hex}"
        self.add_message(
            Message(
                id=placeholder_id,
                role=MessageRole.ASSISTANT,
                content=content,
                metadata={"placeholder": True},
            )
        )
        return placeholder_id

    def find(self, message_id: str) -> Message | None:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None

    def apply_chunk(self, message_id: str, chunk: str) -> Message | None:
        """Append a chunk to a message, replacing placeholder text on the first chunk."""
        for index, message in enumerate(self.messages):
            if message.id != message_id:
                continue
            if message.metadata.get("placeholder"):
                updated = replace(message, content=chunk, metadata={**message.metadata, "placeholder": False})
            else:
                updated = replace(message, content=message.content + chunk)
            self.messages[index] = updated
            self.updated_at = datetime.now(UTC)
            return updated
        return None

    def replace_content(self, message_id: str, content: str) -> Message | None:
        """Overwrite the content of a message."""
        for index, message in enumerate(self.messages):
            if message.id == message_id:
                updated = replace(message, content=content, metadata={**message.metadata, "placeholder": False})
                self.messages[index] = updated
                self.updated_at = datetime.now(UTC)
                return updated
        return None

    def get_messages(self, limit: int | None = None) -> list[Message]:
        """Get messages from the transcript."""
        if limit is None:
            return self.messages.copy()
        return self.messages[-limit:] if limit > 0 else []

    def clear(self) -> None:
        """Clear all messages from the transcript."""
        self.messages.clear()
        self.updated_at = datetime.now(UTC)
