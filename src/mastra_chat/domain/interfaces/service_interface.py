"""Service interface definitions."""

from abc import ABC, abstractmethod


class IService(ABC):
    """Lifecycle of a service that talks to the remote agent."""

    @abstractmethod
    async def initialize(self) -> None:
        """Attempt the first connection."""
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Drop the connection."""
        pass

    @property
    @abstractmethod
    def is_initialized(self) -> bool:
        """Check if service is initialized."""
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """Last known connection status, read without side effects."""
        pass
