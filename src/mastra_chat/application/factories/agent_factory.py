"""Agent factory implementations."""

import httpx

from mastra_chat.domain.interfaces import IAgentFactory, IAgentHandle
from mastra_chat.domain.models import AgentConfig
from mastra_chat.infrastructure.transport import MastraClient


class MastraAgentFactory(IAgentFactory):
    """Factory for handles on a Mastra agent server."""

    def __init__(
        self,
        timeout: httpx.Timeout | float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._timeout = timeout
        self._transport = transport

    def create_agent(self, config: AgentConfig) -> IAgentHandle:
        """
        Create a handle bound to the configured endpoint and agent.

        Args:
            config: Agent connection configuration

        Returns:
            Created agent handle

        Raises:
            AgentInitializationError: If the endpoint or agent id is unusable
        """
        client = MastraClient(
            base_url=config.endpoint_url,
            api_key=config.credential,
            timeout=self._timeout,
            transport=self._transport,
        )
        return client.get_agent(config.agent_id)
