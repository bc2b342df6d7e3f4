"""Repository interface for the agent connection configuration."""

from abc import ABC, abstractmethod

from mastra_chat.domain.models.agent_models import AgentConfig


class IConfigRepository(ABC):
    """Interface for loading and saving the agent configuration."""

    @abstractmethod
    async def load(self) -> AgentConfig:
        """Load the current configuration."""
        pass

    @abstractmethod
    async def save(self, config: AgentConfig) -> None:
        """Replace the stored configuration."""
        pass
