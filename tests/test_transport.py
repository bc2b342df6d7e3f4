"""Tests for the HTTP transport against a mocked agent server."""

import json

import httpx
import pytest

from mastra_chat.application.factories import MastraAgentFactory, create_chat_service
from mastra_chat.domain.exceptions import (
    AgentInitializationError,
    APIError,
    AuthenticationError,
    AuthorizationError,
    ConnectionError,
    RateLimitError,
    StreamTransportError,
    StreamUnsupportedError,
    TimeoutError,
)
from mastra_chat.domain.models import AgentConfig, ChatTurn, MessageRole
from mastra_chat.infrastructure.transport import MastraClient, parse_stream_line

DATA_STREAM_BODY = '0:"Hel"\n0:"lo"\n3:"tool failed"\nd:{"finishReason":"stop"}\n'
SSE_BODY = (
    'data: {"type":"text-delta","textDelta":"Hel"}\n\n'
    'data: {"type":"text-delta","payload":{"text":"lo"}}\n\n'
    "data: [DONE]\n\n"
)

TURNS = [ChatTurn(role=MessageRole.USER, content="Hi")]


class RecordingServer:
    """Mock agent server that records requests and answers per action."""

    def __init__(self, routes: dict[str, httpx.Response | Exception]):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        action = request.url.path.rsplit("/", 1)[-1]
        answer = self.routes.get(action, httpx.Response(404))
        if isinstance(answer, Exception):
            raise answer
        return answer

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def make_agent(server: RecordingServer, api_key: str | None = None, agent_id: str = "weather"):
    client = MastraClient("http://localhost:4111/", api_key=api_key, transport=server.transport)
    return client.get_agent(agent_id)


class TestStreamLineParsing:
    """Test cases for parse_stream_line."""

    def test_text_part(self):
        """Test a data stream text part."""
        part = parse_stream_line('0:"Hello"')

        assert part.kind == "text"
        assert part.value == "Hello"

    def test_error_and_finish_parts(self):
        """Test the other data stream parts."""
        assert parse_stream_line('3:"boom"').kind == "error"
        assert parse_stream_line('d:{"finishReason":"stop"}').value == {"finishReason": "stop"}

    def test_sse_text_delta(self):
        """Test a server-sent text delta."""
        part = parse_stream_line('data: {"type":"text-delta","textDelta":"Hi"}')

        assert part.kind == "text"
        assert part.value == "Hi"

    @pytest.mark.parametrize(
        "line",
        ["", "   ", "data: [DONE]", "data: {broken", "no framing here", '9:"unknown"', '0:{"broken"'],
    )
    def test_ignored_lines(self, line):
        """Test that blank, unknown and undecodable lines are skipped."""
        assert parse_stream_line(line) is None


class TestMastraClient:
    """Test cases for MastraClient and MastraAgent."""

    @pytest.mark.parametrize("url", ["", "localhost:4111", "ftp://localhost", "http://"])
    def test_invalid_base_url(self, url):
        """Test that unusable URLs are rejected at construction."""
        with pytest.raises(AgentInitializationError):
            MastraClient(url)

    def test_missing_agent_id(self):
        """Test that an agent handle needs an identifier."""
        with pytest.raises(AgentInitializationError):
            MastraClient("http://localhost:4111").get_agent("")

    def test_factory_builds_handle(self, sample_agent_config):
        """Test the agent factory."""
        handle = MastraAgentFactory().create_agent(sample_agent_config)

        assert handle.agent_id == "weather"

    @pytest.mark.asyncio
    async def test_generate(self):
        """Test a complete reply."""
        server = RecordingServer({"generate": httpx.Response(200, json={"text": "Sunny", "usage": {}})})

        result = await make_agent(server, api_key="secret-token").generate(TURNS)

        assert result == {"text": "Sunny", "usage": {}}
        request = server.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/api/agents/weather/generate"
        assert request.headers["Authorization"] == "Bearer secret-token"
        assert json.loads(request.content) == {"messages": [{"role": "user", "content": "Hi"}]}

    @pytest.mark.asyncio
    async def test_no_authorization_header_without_key(self):
        """Test that no credential means no bearer header."""
        server = RecordingServer({"generate": httpx.Response(200, text="plain reply")})

        result = await make_agent(server).generate(TURNS)

        assert result == "plain reply"
        assert "Authorization" not in server.requests[0].headers

    @pytest.mark.asyncio
    async def test_agent_id_is_quoted(self):
        """Test that the agent id is a single path segment."""
        server = RecordingServer({"generate": httpx.Response(200, text="ok")})

        await make_agent(server, agent_id="team/agent").generate(TURNS)

        assert server.requests[0].url.raw_path.startswith(b"/api/agents/team%2Fagent/")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response, error_type",
        [
            (httpx.Response(401, text="bad token"), AuthenticationError),
            (httpx.Response(403), AuthorizationError),
            (httpx.Response(429, headers={"retry-after": "3"}), RateLimitError),
            (httpx.Response(500, text="boom"), APIError),
        ],
    )
    async def test_error_statuses(self, response, error_type):
        """Test that error statuses map to domain exceptions."""
        server = RecordingServer({"generate": response})

        with pytest.raises(error_type) as exc_info:
            await make_agent(server).generate(TURNS)

        assert exc_info.value.status_code == response.status_code

    @pytest.mark.asyncio
    async def test_rate_limit_retry_after(self):
        """Test that the retry-after header is kept."""
        server = RecordingServer({"generate": httpx.Response(429, headers={"retry-after": "3"})})

        with pytest.raises(RateLimitError) as exc_info:
            await make_agent(server).generate(TURNS)

        assert exc_info.value.retry_after == 3.0
        assert exc_info.value.is_retryable

    @pytest.mark.asyncio
    async def test_network_errors(self):
        """Test that transport failures map to domain exceptions."""
        request = httpx.Request("POST", "http://localhost:4111")
        refused = RecordingServer({"generate": httpx.ConnectError("refused", request=request)})
        slow = RecordingServer({"generate": httpx.ReadTimeout("slow", request=request)})

        with pytest.raises(ConnectionError):
            await make_agent(refused).generate(TURNS)
        with pytest.raises(TimeoutError):
            await make_agent(slow).generate(TURNS)

    @pytest.mark.asyncio
    async def test_data_stream(self):
        """Test reading data stream protocol parts."""
        server = RecordingServer({"stream": httpx.Response(200, text=DATA_STREAM_BODY)})
        texts, errors, finishes = [], [], []

        response = await make_agent(server).stream(TURNS)
        await response.process_data_stream(
            on_text_part=texts.append,
            on_error_part=errors.append,
            on_finish_part=finishes.append,
        )

        assert server.requests[0].url.path == "/api/agents/weather/stream"
        assert texts == ["Hel", "lo"]
        assert errors == ["tool failed"]
        assert finishes == [{"finishReason": "stop"}]

    @pytest.mark.asyncio
    async def test_server_sent_events(self):
        """Test reading text deltas sent as server-sent events."""
        server = RecordingServer({"stream": httpx.Response(200, text=SSE_BODY)})
        texts = []

        response = await make_agent(server).stream(TURNS)
        await response.process_data_stream(on_text_part=texts.append)

        assert texts == ["Hel", "lo"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [204, 404, 405, 501])
    async def test_stream_unsupported(self, status):
        """Test that a missing streaming route reads as no response body."""
        server = RecordingServer({"stream": httpx.Response(status)})

        with pytest.raises(StreamUnsupportedError, match="No response body"):
            await make_agent(server).stream(TURNS)

    @pytest.mark.asyncio
    async def test_stream_error_status(self):
        """Test that other stream failures keep their status mapping."""
        server = RecordingServer({"stream": httpx.Response(401, text="bad token")})

        with pytest.raises(AuthenticationError, match="bad token"):
            await make_agent(server).stream(TURNS)

    @pytest.mark.asyncio
    async def test_stream_interrupted(self):
        """Test that a connection dropped mid-stream is reported."""

        class BrokenStream(httpx.AsyncByteStream):
            async def __aiter__(self):
                yield b'0:"Hel"\n'
                raise httpx.ReadError("connection reset")

        server = RecordingServer({"stream": httpx.Response(200, stream=BrokenStream())})
        texts = []

        response = await make_agent(server).stream(TURNS)
        with pytest.raises(StreamTransportError):
            await response.process_data_stream(on_text_part=texts.append)

        assert texts == ["Hel"]


class TestChatServiceOverHttp:
    """End-to-end chat against a mocked agent server."""

    @pytest.mark.asyncio
    async def test_streamed_reply(self, tmp_path):
        """Test a reply delivered over the stream endpoint."""
        server = RecordingServer({"stream": httpx.Response(200, text=DATA_STREAM_BODY)})
        service = create_chat_service(tmp_path, transport=server.transport)
        await service.save_config(AgentConfig(endpoint_url="http://localhost:4111", agent_id="weather"))
        chunks = []

        message = await service.stream_message("Hi", chunks.append)

        assert chunks == ["Hel", "lo"]
        assert message.content == "Hello"

    @pytest.mark.asyncio
    async def test_fallback_when_stream_route_missing(self, tmp_path):
        """Test falling back to generate when the server cannot stream."""
        server = RecordingServer({"generate": httpx.Response(200, json={"text": "Hi there"})})
        service = create_chat_service(tmp_path, transport=server.transport)
        await service.save_config(AgentConfig(endpoint_url="http://localhost:4111", agent_id="weather"))
        chunks = []

        message = await service.stream_message("Hi", chunks.append)

        assert chunks == ["Hi there"]
        assert message.content == "Hi there"
        assert [r.url.path.rsplit("/", 1)[-1] for r in server.requests] == ["stream", "generate"]

    @pytest.mark.asyncio
    async def test_probe(self, tmp_path):
        """Test the connection probe over HTTP."""
        server = RecordingServer({"generate": httpx.Response(200, text="pong")})
        service = create_chat_service(tmp_path, transport=server.transport)
        await service.save_config(AgentConfig(endpoint_url="http://localhost:4111", agent_id="weather"))

        assert await service.test_connection()
