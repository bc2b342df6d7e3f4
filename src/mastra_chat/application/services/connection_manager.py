"""Owner of the agent connection state."""

import asyncio
import logging

from mastra_chat.domain.interfaces import IAgentFactory, IConfigRepository
from mastra_chat.domain.models import ConnectionState

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Builds and replaces the agent handle from the saved configuration.

    The state is a single immutable ``ConnectionState`` value that is swapped
    as a whole, so readers never observe a handle without its configured flag.
    Concurrent ``refresh`` calls share one in-flight refresh. A forced refresh
    supersedes the one in flight, whose result is then discarded.
    """

    def __init__(self, repository: IConfigRepository, agent_factory: IAgentFactory):
        self._repository = repository
        self._agent_factory = agent_factory
        self._state = ConnectionState.unconfigured()
        self._refresh_task: asyncio.Task[bool] | None = None
        self._generation = 0

    @property
    def state(self) -> ConnectionState:
        """Current connection snapshot."""
        return self._state

    def is_configured(self) -> bool:
        """Whether the last refresh produced a usable handle."""
        return self._state.configured

    async def ensure_ready(self) -> bool:
        """
        Make sure a handle exists, refreshing only when there is none.

        Returns:
            True if the connection is usable
        """
        if self._state.configured:
            return True
        return await self.refresh()

    async def refresh(self, force: bool = False) -> bool:
        """
        Reload the configuration and build a new handle.

        Never raises; any failure leaves the manager unconfigured.

        Args:
            force: Start over even if a refresh is in flight, for use after
                the configuration has changed

        Returns:
            True if a usable handle was built
        """
        task = self._refresh_task
        if force or task is None or task.done():
            self._generation += 1
            task = asyncio.create_task(self._refresh(self._generation))
            self._refresh_task = task
        # Shielded so one cancelled caller does not abort the shared refresh
        result = await asyncio.shield(task)
        while task is not self._refresh_task:
            task = self._refresh_task
            result = await asyncio.shield(task)
        return result

    async def reset(self) -> None:
        """Drop the current handle."""
        task = self._refresh_task
        if task is not None and not task.done():
            await asyncio.shield(task)
        self._state = ConnectionState.unconfigured()

    def _commit(self, generation: int, state: ConnectionState) -> bool:
        if generation != self._generation:
            logger.debug("Discarding the result of a superseded refresh")
            return False
        self._state = state
        return state.configured

    async def _refresh(self, generation: int) -> bool:
        try:
            config = await self._repository.load()
        except Exception as e:
            logger.error(f"Error loading agent configuration: {e}")
            return self._commit(generation, ConnectionState.unconfigured())

        if not config.is_usable:
            logger.info("Agent connection is not configured: endpoint URL and agent id are required")
            return self._commit(generation, ConnectionState.unconfigured())

        try:
            handle = self._agent_factory.create_agent(config)
        except Exception as e:
            logger.error(f"Error initializing agent client: {e}")
            return self._commit(generation, ConnectionState.unconfigured())

        if not self._commit(generation, ConnectionState.ready(config, handle)):
            return False
        logger.info(f"Connected to agent '{config.agent_id}' at {config.endpoint_url}")
        return True
