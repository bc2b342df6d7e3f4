"""Persistence for the agent configuration."""

from .file_config_repository import FileConfigRepository, default_agent_config

__all__ = ["FileConfigRepository", "default_agent_config"]
