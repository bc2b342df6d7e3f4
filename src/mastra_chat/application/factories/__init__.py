"""Factory implementations."""

from .agent_factory import MastraAgentFactory
from .service_factory import create_chat_service

__all__ = ["MastraAgentFactory", "create_chat_service"]
