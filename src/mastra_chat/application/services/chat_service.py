"""Chat service used by presentation callers."""

import logging

from mastra_chat.config import settings
from mastra_chat.domain.exceptions import ConfigurationValidationError
from mastra_chat.domain.interfaces import IAgentFactory, IConfigRepository, IService
from mastra_chat.domain.models import AgentConfig, ChatTurn, Message, MessageRole, normalize_generate_result
from mastra_chat.domain.retry import LoggingRetryCallbacks, RetryPolicy, retry_async

from .connection_manager import ConnectionManager
from .message_factory import MessageFactory
from .response_acquirer import APOLOGY_MESSAGE, ChunkCallback, ChunkSink, ResponseAcquirer

logger = logging.getLogger(__name__)

PROBE_MESSAGE = "Test connection"


class ChatService(IService):
    """Entry points for sending messages, probing and reconfiguring the agent."""

    def __init__(
        self,
        repository: IConfigRepository,
        agent_factory: IAgentFactory,
        message_factory: MessageFactory | None = None,
    ):
        self._repository = repository
        self._messages = message_factory or MessageFactory()
        self._connections = ConnectionManager(repository, agent_factory)
        self._acquirer = ResponseAcquirer(self._connections, self._messages)
        self._probe_policy = RetryPolicy.for_probe(settings.resilience)
        self._probe_callbacks = LoggingRetryCallbacks(__name__)
        self._is_initialized = False

    @property
    def connections(self) -> ConnectionManager:
        return self._connections

    @property
    def is_initialized(self) -> bool:
        """Check if service is initialized."""
        return self._is_initialized

    async def initialize(self) -> None:
        """Initialize the service and attempt the first connection."""
        if self._is_initialized:
            return

        await self._connections.refresh()
        self._is_initialized = True

    async def cleanup(self) -> None:
        """Cleanup service resources."""
        await self._connections.reset()
        self._is_initialized = False

    def is_configured(self) -> bool:
        """Last known connection status; never triggers a refresh."""
        return self._connections.is_configured()

    async def ensure_initialized(self) -> bool:
        """Build the agent handle if there is none yet."""
        return await self._connections.ensure_ready()

    async def refresh_client(self) -> bool:
        """Reload the configuration and rebuild the agent handle."""
        return await self._connections.refresh()

    def create_user_message(self, content: str) -> Message:
        """Wrap user input in a message record."""
        return self._messages.make(MessageRole.USER, content)

    async def stream_message(self, content: str, on_chunk: ChunkCallback | ChunkSink | None = None) -> Message:
        """
        Send a message and receive the reply incrementally.

        Args:
            content: User text
            on_chunk: Receives each fragment of the reply in order

        Returns:
            The complete assistant message
        """
        return await self._acquirer.acquire(content, on_chunk)

    async def send_message(self, content: str) -> Message:
        """
        Send a message and wait for the complete reply.

        Args:
            content: User text

        Returns:
            The assistant message; an apology message on any failure
        """
        try:
            if not await self._connections.ensure_ready():
                logger.warning("Agent connection is not configured; skipping remote call")
                return self._messages.make(MessageRole.ASSISTANT, APOLOGY_MESSAGE, metadata={"source": "error"})

            handle = self._connections.state.handle
            response = await handle.generate([ChatTurn(role=MessageRole.USER, content=content)])
            return self._messages.make(
                MessageRole.ASSISTANT,
                normalize_generate_result(response),
                metadata={"source": "generate"},
            )
        except Exception as e:
            logger.error(f"Error sending message: {e}")
            return self._messages.make(MessageRole.ASSISTANT, APOLOGY_MESSAGE, metadata={"source": "error"})

    async def test_connection(self) -> bool:
        """
        Check that the agent answers a trivial request.

        Returns:
            True if the agent replied
        """
        if not await self._connections.ensure_ready():
            return False

        handle = self._connections.state.handle
        if handle is None:
            return False

        try:
            await retry_async(
                handle.generate,
                self._probe_policy,
                self._probe_callbacks,
                [ChatTurn(role=MessageRole.USER, content=PROBE_MESSAGE)],
            )
            return True
        except Exception as e:
            logger.warning(f"Connection test failed: {e}")
            return False

    async def load_config(self) -> AgentConfig:
        """Load the saved agent configuration."""
        return await self._repository.load()

    async def save_config(self, config: AgentConfig) -> bool:
        """
        Validate and save a configuration, then reconnect with it.

        Args:
            config: Replacement configuration

        Returns:
            True if the new configuration produced a usable connection

        Raises:
            ConfigurationValidationError: If the endpoint or agent id is missing
            RepositoryError: If the configuration could not be written
        """
        if not config.endpoint_url:
            raise ConfigurationValidationError("Agent server URL is required", config_key="endpoint_url")
        if not config.agent_id:
            raise ConfigurationValidationError("Agent ID is required", config_key="agent_id")

        await self._repository.save(config)
        return await self._connections.refresh(force=True)
