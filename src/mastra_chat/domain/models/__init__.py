"""Domain models."""

from .agent_models import (
    AgentConfig,
    ChatTurn,
    ConnectionState,
    Message,
    MessageRole,
    StreamOutcome,
)
from .conversation_models import THINKING_PLACEHOLDER, ChatTranscript
from .reply_models import (
    RemoteReply,
    ReplyKind,
    classify_reply,
    normalize_generate_result,
)

__all__ = [
    "AgentConfig",
    "ChatTranscript",
    "ChatTurn",
    "ConnectionState",
    "Message",
    "MessageRole",
    "RemoteReply",
    "ReplyKind",
    "StreamOutcome",
    "THINKING_PLACEHOLDER",
    "classify_reply",
    "normalize_generate_result",
]
