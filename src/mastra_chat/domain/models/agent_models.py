"""Domain models for the agent connection and chat messages."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, field_validator

if TYPE_CHECKING:
    from mastra_chat.domain.interfaces.agent_interface import IAgentHandle


class MessageRole(Enum):
    """Message roles in conversations."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """Immutable chat message value object."""

    id: str
    role: MessageRole
    content: str
    timestamp: datetime = None
    metadata: dict[str, Any] | None = None

    def __post_init__(self):
        if self.timestamp is None:
            object.__setattr__(self, "timestamp", datetime.now(UTC))
        if self.metadata is None:
            object.__setattr__(self, "metadata", {})


@dataclass(frozen=True)
class ChatTurn:
    """One entry of the ordered turn list sent to the remote agent."""

    role: MessageRole
    content: str

    def to_payload(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


class AgentConfig(BaseModel):
    """Connection settings for the remote agent, replaced wholesale on save."""

    model_config = ConfigDict(frozen=True)

    endpoint_url: str = ""
    credential: str | None = None
    agent_id: str = ""

    @field_validator("endpoint_url")
    @classmethod
    def strip_endpoint(cls, v: str) -> str:
        """Drop surrounding whitespace and trailing slashes."""
        return v.strip().rstrip("/")

    @field_validator("agent_id")
    @classmethod
    def strip_agent_id(cls, v: str) -> str:
        return v.strip()

    @field_validator("credential")
    @classmethod
    def empty_credential_is_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v

    @property
    def is_usable(self) -> bool:
        """Both the endpoint and the agent identifier are present."""
        return bool(self.endpoint_url and self.agent_id)


@dataclass(frozen=True)
class ConnectionState:
    """Snapshot of the connection: a handle is present iff configured."""

    configured: bool = False
    handle: "IAgentHandle | None" = None
    config: AgentConfig | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self):
        if self.configured != (self.handle is not None):
            raise ValueError("ConnectionState requires a handle exactly when configured")

    @classmethod
    def unconfigured(cls) -> "ConnectionState":
        return cls()

    @classmethod
    def ready(cls, config: AgentConfig, handle: "IAgentHandle") -> "ConnectionState":
        return cls(configured=True, handle=handle, config=config)


@dataclass(frozen=True)
class StreamOutcome:
    """Result of one streaming attempt."""

    content: str = ""
    streamed: bool = False
