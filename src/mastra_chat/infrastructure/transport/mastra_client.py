"""HTTP client for a Mastra agent server.

Endpoints used:

- ``POST {base_url}/api/agents/{agent_id}/generate``: complete reply as JSON
- ``POST {base_url}/api/agents/{agent_id}/stream``: line-framed stream

Every call opens its own ``httpx.AsyncClient`` so a handle can be dropped at
any time without invalidating a request that is still running.
"""

import logging
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

import httpx

from mastra_chat.config import settings
from mastra_chat.domain.exceptions import (
    AgentInitializationError,
    APIError,
    AuthenticationError,
    AuthorizationError,
    ConnectionError,
    RateLimitError,
    StreamUnsupportedError,
    TimeoutError,
)
from mastra_chat.domain.interfaces import IAgentHandle
from mastra_chat.domain.models import ChatTurn

from .data_stream import DataStreamResponse

logger = logging.getLogger(__name__)

# Statuses meaning the endpoint has no streaming route
_STREAM_UNSUPPORTED_STATUSES = {404, 405, 501}


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("retry-after")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def raise_for_status(response: httpx.Response, body: str = "") -> None:
    """Map an error response to a domain exception."""
    status = response.status_code
    if status < 400:
        return

    detail = body[:500] if body else response.reason_phrase
    if status == 401:
        raise AuthenticationError(f"Agent server rejected the credential: {detail}", status_code=status)
    if status == 403:
        raise AuthorizationError(f"Access to the agent was denied: {detail}", status_code=status)
    if status == 429:
        raise RateLimitError(
            f"Agent server rate limit exceeded: {detail}",
            retry_after=_retry_after(response),
            status_code=status,
        )
    raise APIError(
        f"Agent server returned HTTP {status}: {detail}",
        status_code=status,
        is_retryable=status >= 500,
    )


def _decode_body(response: httpx.Response) -> Any:
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        return response.json()
    return response.text


class MastraClient:
    """Connection to an agent server."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: httpx.Timeout | float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        try:
            url = httpx.URL(base_url)
        except httpx.InvalidURL as e:
            raise AgentInitializationError(
                f"Invalid agent server URL: {base_url!r}",
                error_code="INVALID_BASE_URL",
            ) from e
        if url.scheme not in ("http", "https") or not url.host:
            raise AgentInitializationError(
                f"Invalid agent server URL: {base_url!r}",
                error_code="INVALID_BASE_URL",
            )

        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout if timeout is not None else httpx.Timeout(
            settings.transport.request_timeout,
            connect=settings.transport.connect_timeout,
        )
        self._transport = transport

    @property
    def headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": settings.transport.user_agent,
        }
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def get_agent(self, agent_id: str) -> "MastraAgent":
        """Get a handle for one agent on this server."""
        return MastraAgent(self, agent_id)

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def post_json(self, path: str, payload: dict[str, Any]) -> Any:
        """POST a JSON body and return the decoded reply."""
        try:
            async with self._new_client() as client:
                response = await client.post(path, json=payload)
                raise_for_status(response, response.text)
                return _decode_body(response)
        except httpx.TimeoutException as e:
            raise TimeoutError(f"Request to {path} timed out: {e}") from e
        except httpx.RequestError as e:
            raise ConnectionError(f"Could not reach agent server: {e}") from e

    async def open_stream(self, path: str, payload: dict[str, Any]) -> DataStreamResponse:
        """POST a JSON body and return the still-open streaming response."""
        client = self._new_client()
        try:
            request = client.build_request("POST", path, json=payload)
            response = await client.send(request, stream=True)
        except httpx.TimeoutException as e:
            await client.aclose()
            raise TimeoutError(f"Stream request to {path} timed out: {e}") from e
        except httpx.RequestError as e:
            await client.aclose()
            raise ConnectionError(f"Could not reach agent server: {e}") from e

        if response.status_code in _STREAM_UNSUPPORTED_STATUSES or response.status_code == 204:
            await response.aclose()
            await client.aclose()
            raise StreamUnsupportedError(
                f"No response body (HTTP {response.status_code})",
                details={"status_code": response.status_code},
            )

        if response.status_code >= 400:
            try:
                body = (await response.aread()).decode("utf-8", errors="replace")
            finally:
                await response.aclose()
                await client.aclose()
            raise_for_status(response, body)

        return DataStreamResponse(response, client)


class MastraAgent(IAgentHandle):
    """Handle on a single remote agent."""

    def __init__(self, client: MastraClient, agent_id: str):
        if not agent_id:
            raise AgentInitializationError("Agent identifier is required", error_code="MISSING_AGENT_ID")
        self._client = client
        self._agent_id = agent_id

    @property
    def agent_id(self) -> str:
        """Get the identifier of the remote agent."""
        return self._agent_id

    @property
    def client(self) -> MastraClient:
        return self._client

    def _path(self, action: str) -> str:
        return f"/api/agents/{quote(self._agent_id, safe='')}/{action}"

    @staticmethod
    def _payload(turns: Sequence[ChatTurn]) -> dict[str, Any]:
        return {"messages": [turn.to_payload() for turn in turns]}

    async def generate(self, turns: Sequence[ChatTurn]) -> Any:
        """Ask the agent for a complete reply."""
        logger.debug(f"generate -> agent '{self._agent_id}' ({len(turns)} turn(s))")
        return await self._client.post_json(self._path("generate"), self._payload(turns))

    async def stream(self, turns: Sequence[ChatTurn]) -> DataStreamResponse:
        """Ask the agent for an incremental reply."""
        logger.debug(f"stream -> agent '{self._agent_id}' ({len(turns)} turn(s))")
        return await self._client.open_stream(self._path("stream"), self._payload(turns))
