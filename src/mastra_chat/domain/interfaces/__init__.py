"""Domain interfaces and abstract base classes."""

from .agent_interface import IAgentFactory, IAgentHandle
from .config_repository_interface import IConfigRepository
from .service_interface import IService

__all__ = [
    "IAgentFactory",
    "IAgentHandle",
    "IConfigRepository",
    "IService",
]
