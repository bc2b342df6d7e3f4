"""Pytest configuration and fixtures for the Mastra chat client tests."""

import asyncio
from collections.abc import Sequence
from typing import Any

import pytest

from mastra_chat.config import settings
from mastra_chat.domain.interfaces import IAgentFactory, IAgentHandle, IConfigRepository
from mastra_chat.domain.models import AgentConfig, ChatTurn


class FakeAgentHandle(IAgentHandle):
    """Agent handle whose replies are scripted by the test."""

    def __init__(self, stream_result: Any = None, generate_result: Any = None, agent_id: str = "weather"):
        self._agent_id = agent_id
        self.stream_result = stream_result
        self.generate_result = generate_result
        self.stream_calls: list[list[ChatTurn]] = []
        self.generate_calls: list[list[ChatTurn]] = []

    @property
    def agent_id(self) -> str:
        return self._agent_id

    @property
    def call_count(self) -> int:
        return len(self.stream_calls) + len(self.generate_calls)

    async def stream(self, turns: Sequence[ChatTurn]) -> Any:
        self.stream_calls.append(list(turns))
        if isinstance(self.stream_result, BaseException):
            raise self.stream_result
        return self.stream_result

    async def generate(self, turns: Sequence[ChatTurn]) -> Any:
        self.generate_calls.append(list(turns))
        if isinstance(self.generate_result, BaseException):
            raise self.generate_result
        return self.generate_result


class FakeAgentFactory(IAgentFactory):
    """Factory handing out a prepared handle, or a fresh one per call."""

    def __init__(self, handle: FakeAgentHandle | None = None, error: Exception | None = None):
        self.handle = handle
        self.error = error
        self.created: list[FakeAgentHandle] = []

    def create_agent(self, config: AgentConfig) -> IAgentHandle:
        if self.error is not None:
            raise self.error
        handle = self.handle if self.handle is not None else FakeAgentHandle(agent_id=config.agent_id)
        self.created.append(handle)
        return handle


class InMemoryConfigRepository(IConfigRepository):
    """Configuration repository kept in memory."""

    def __init__(self, config: AgentConfig | None = None):
        self.config = config or AgentConfig()
        self.load_count = 0
        self.saved: list[AgentConfig] = []

    async def load(self) -> AgentConfig:
        self.load_count += 1
        return self.config

    async def save(self, config: AgentConfig) -> None:
        self.saved.append(config)
        self.config = config


class SlowConfigRepository(InMemoryConfigRepository):
    """Repository whose load reads the configuration, then waits until the test releases it."""

    def __init__(self, config: AgentConfig):
        super().__init__(config)
        self.release = asyncio.Event()

    async def load(self) -> AgentConfig:
        self.load_count += 1
        config = self.config
        await self.release.wait()
        return config


class FakeDataStream:
    """Object exposing the data stream protocol with scripted parts."""

    def __init__(self, parts: Sequence[str], errors: Sequence[Any] = ()):
        self.parts = list(parts)
        self.errors = list(errors)

    async def process_data_stream(self, on_text_part, on_error_part=None, on_finish_part=None):
        for error in self.errors:
            if on_error_part is not None:
                on_error_part(error)
        for part in self.parts:
            on_text_part(part)


class FakeByteBody:
    """Object carrying an async byte ``body``."""

    def __init__(self, chunks: Sequence[bytes]):
        self.body = self._iterate(list(chunks))

    @staticmethod
    async def _iterate(chunks: list[bytes]):
        for chunk in chunks:
            yield chunk


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch, tmp_path):
    """Keep every test away from the real environment and config directory."""
    for name in ("MASTRA_BASE_URL", "MASTRA_AGENT_ID", "MASTRA_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("RESILIENCE_PROBE_BASE_DELAY", "0")
    settings.reload()
    yield
    settings.reload()


@pytest.fixture
def sample_agent_config():
    """Create a usable agent configuration."""
    return AgentConfig(endpoint_url="http://localhost:4111", agent_id="weather", credential="secret-token")


@pytest.fixture
def fake_handle():
    """Create a scripted agent handle."""
    return FakeAgentHandle()


@pytest.fixture
def configured_repository(sample_agent_config):
    """Create a repository holding a usable configuration."""
    return InMemoryConfigRepository(sample_agent_config)


@pytest.fixture
def empty_repository():
    """Create a repository holding no configuration."""
    return InMemoryConfigRepository()


# Test configuration
pytest_plugins = []


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on test names."""
    for item in items:
        if "test_transport" in item.nodeid or "test_cli" in item.nodeid:
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)
