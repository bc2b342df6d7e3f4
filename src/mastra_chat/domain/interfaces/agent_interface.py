"""Remote agent interface definitions."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from ..models.agent_models import AgentConfig, ChatTurn


class IAgentHandle(ABC):
    """Interface for a remote conversational agent."""

    @property
    @abstractmethod
    def agent_id(self) -> str:
        """Get the identifier of the remote agent."""
        pass

    @abstractmethod
    async def generate(self, turns: Sequence[ChatTurn]) -> Any:
        """
        Ask the agent for a complete reply.

        Args:
            turns: Ordered conversation turns to send

        Returns:
            The decoded reply; a string or an object carrying ``text``
        """
        pass

    @abstractmethod
    async def stream(self, turns: Sequence[ChatTurn]) -> Any:
        """
        Ask the agent for an incremental reply.

        Args:
            turns: Ordered conversation turns to send

        Returns:
            A stream handle in any of the supported reply shapes
        """
        pass


class IAgentFactory(ABC):
    """Interface for agent handle factories."""

    @abstractmethod
    def create_agent(self, config: AgentConfig) -> IAgentHandle:
        """
        Create a handle bound to the configured endpoint and agent.

        Args:
            config: Agent connection configuration

        Returns:
            Created agent handle
        """
        pass
