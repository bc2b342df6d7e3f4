"""File-based implementation of the agent configuration repository."""

import asyncio
import json
import logging
import os
from pathlib import Path
from uuid import uuid4

from pydantic import ValidationError

from mastra_chat.config import settings
from mastra_chat.domain.exceptions import RepositoryError
from mastra_chat.domain.interfaces import IConfigRepository
from mastra_chat.domain.models import AgentConfig

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "agent_config.json"


def default_agent_config() -> AgentConfig:
    """Configuration built from environment defaults."""
    return AgentConfig(
        endpoint_url=settings.agent.base_url,
        credential=settings.agent.api_key,
        agent_id=settings.agent.agent_id,
    )


class FileConfigRepository(IConfigRepository):
    """Stores the agent configuration as a JSON document."""

    def __init__(self, storage_dir: str | Path | None = None):
        """Initialize with storage directory."""
        self.storage_dir = Path(storage_dir) if storage_dir is not None else settings.app.config_dir
        self.config_path = self.storage_dir / CONFIG_FILE_NAME
        # Serializes writers in this process; readers see either file version
        self._write_lock = asyncio.Lock()

    async def load(self) -> AgentConfig:
        """Load the saved configuration, falling back to environment defaults."""
        if not self.config_path.exists():
            return default_agent_config()

        try:
            with open(self.config_path, encoding="utf-8") as f:
                data = json.load(f)
            return AgentConfig.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable agent config at {self.config_path}: {e}")
            return default_agent_config()

    async def save(self, config: AgentConfig) -> None:
        """Replace the saved configuration in a single rename."""
        async with self._write_lock:
            tmp_path = self.storage_dir / f"{CONFIG_FILE_NAME}.{uuid4().hex}.tmp"
            try:
                self.storage_dir.mkdir(parents=True, exist_ok=True)
                with open(tmp_path, "w", encoding="utf-8") as f:
                    json.dump(config.model_dump(), f, indent=2, ensure_ascii=False)
                os.replace(tmp_path, self.config_path)
            except OSError as e:
                if tmp_path.exists():
                    tmp_path.unlink()
                raise RepositoryError(f"Could not save agent config: {e}", error_code="CONFIG_WRITE_ERROR") from e

    async def clear(self) -> bool:
        """Delete the saved configuration."""
        if self.config_path.exists():
            try:
                self.config_path.unlink()
                return True
            except OSError:
                return False

        return False
