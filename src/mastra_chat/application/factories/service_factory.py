"""Wiring of the chat service from its collaborators."""

from pathlib import Path

import httpx

from mastra_chat.application.services import ChatService
from mastra_chat.infrastructure.repositories import FileConfigRepository

from .agent_factory import MastraAgentFactory


def create_chat_service(
    config_dir: str | Path | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ChatService:
    """
    Build a chat service backed by the file repository and the HTTP transport.

    Args:
        config_dir: Directory of the saved agent config, defaults to settings
        transport: Optional httpx transport, mainly for tests

    Returns:
        A ChatService that still needs ``initialize()``
    """
    repository = FileConfigRepository(config_dir)
    return ChatService(repository, MastraAgentFactory(transport=transport))
