"""Unit tests for the connection manager."""

import asyncio

import pytest

from conftest import FakeAgentFactory, FakeAgentHandle, InMemoryConfigRepository, SlowConfigRepository
from mastra_chat.application.services import ConnectionManager
from mastra_chat.domain.exceptions import AgentInitializationError
from mastra_chat.domain.models import AgentConfig


class FailingConfigRepository(InMemoryConfigRepository):
    """Repository that cannot be read."""

    async def load(self) -> AgentConfig:
        raise OSError("permission denied")


class TestConnectionManager:
    """Test cases for ConnectionManager."""

    def test_starts_unconfigured(self, configured_repository):
        """Test the initial state."""
        manager = ConnectionManager(configured_repository, FakeAgentFactory())

        assert not manager.is_configured()
        assert manager.state.handle is None

    @pytest.mark.asyncio
    async def test_refresh_builds_handle(self, configured_repository, sample_agent_config):
        """Test a refresh with a usable configuration."""
        factory = FakeAgentFactory()
        manager = ConnectionManager(configured_repository, factory)

        assert await manager.refresh()

        assert manager.is_configured()
        assert manager.state.handle is factory.created[0]
        assert manager.state.config == sample_agent_config

    @pytest.mark.asyncio
    async def test_whitespace_url_leaves_unconfigured(self):
        """Test that a blank endpoint never reaches the factory."""
        factory = FakeAgentFactory()
        repository = InMemoryConfigRepository(AgentConfig(endpoint_url="   ", agent_id="weather"))
        manager = ConnectionManager(repository, factory)

        assert not await manager.refresh()

        assert not manager.is_configured()
        assert factory.created == []

    @pytest.mark.asyncio
    async def test_missing_agent_id_leaves_unconfigured(self):
        """Test that a missing agent id never reaches the factory."""
        factory = FakeAgentFactory()
        repository = InMemoryConfigRepository(AgentConfig(endpoint_url="http://localhost:4111"))
        manager = ConnectionManager(repository, factory)

        assert not await manager.refresh()

        assert not manager.is_configured()
        assert factory.created == []

    @pytest.mark.asyncio
    async def test_factory_failure_is_contained(self, configured_repository, caplog):
        """Test that a failing factory leaves the manager unconfigured."""
        factory = FakeAgentFactory(error=AgentInitializationError("Invalid agent server URL"))
        manager = ConnectionManager(configured_repository, factory)

        assert not await manager.refresh()

        assert not manager.is_configured()
        assert manager.state.handle is None
        assert "Error initializing agent client" in caplog.text

    @pytest.mark.asyncio
    async def test_load_failure_is_contained(self, sample_agent_config):
        """Test that an unreadable configuration leaves the manager unconfigured."""
        manager = ConnectionManager(FailingConfigRepository(sample_agent_config), FakeAgentFactory())

        assert not await manager.refresh()
        assert not manager.is_configured()

    @pytest.mark.asyncio
    async def test_failed_refresh_drops_previous_handle(self, configured_repository):
        """Test that a refresh with an unusable config clears the old handle."""
        manager = ConnectionManager(configured_repository, FakeAgentFactory())
        await manager.refresh()

        configured_repository.config = AgentConfig()
        assert not await manager.refresh()

        assert not manager.is_configured()
        assert manager.state.handle is None

    @pytest.mark.asyncio
    async def test_sequential_refreshes_build_distinct_handles(self, configured_repository):
        """Test that every refresh replaces the handle."""
        manager = ConnectionManager(configured_repository, FakeAgentFactory())

        await manager.refresh()
        first = manager.state.handle
        await manager.refresh()
        second = manager.state.handle

        assert first is not None
        assert second is not None
        assert first is not second

    @pytest.mark.asyncio
    async def test_concurrent_refreshes_share_one_load(self, sample_agent_config):
        """Test that overlapping refresh calls are coalesced."""
        repository = SlowConfigRepository(sample_agent_config)
        factory = FakeAgentFactory()
        manager = ConnectionManager(repository, factory)

        first = asyncio.create_task(manager.refresh())
        second = asyncio.create_task(manager.refresh())
        await asyncio.sleep(0)
        repository.release.set()

        assert await asyncio.gather(first, second) == [True, True]
        assert repository.load_count == 1
        assert len(factory.created) == 1

    @pytest.mark.asyncio
    async def test_forced_refresh_supersedes_stale_load(self, sample_agent_config):
        """Test that a configuration change during a refresh is not lost."""
        repository = SlowConfigRepository(AgentConfig(endpoint_url="http://old:4111", agent_id="a-old"))
        manager = ConnectionManager(repository, FakeAgentFactory())

        stale = asyncio.create_task(manager.refresh())
        while repository.load_count < 1:
            await asyncio.sleep(0)
        repository.config = sample_agent_config
        forced = asyncio.create_task(manager.refresh(force=True))
        while repository.load_count < 2:
            await asyncio.sleep(0)
        repository.release.set()

        assert await asyncio.gather(stale, forced) == [True, True]
        assert repository.load_count == 2
        assert manager.state.config == sample_agent_config
        assert manager.state.handle.agent_id == "weather"

    @pytest.mark.asyncio
    async def test_ensure_ready_refreshes_only_when_needed(self, configured_repository):
        """Test that ensure_ready reuses an existing handle."""
        manager = ConnectionManager(configured_repository, FakeAgentFactory())

        assert await manager.ensure_ready()
        assert await manager.ensure_ready()

        assert configured_repository.load_count == 1

    @pytest.mark.asyncio
    async def test_is_configured_has_no_side_effects(self, configured_repository):
        """Test that reading the status never triggers a refresh."""
        manager = ConnectionManager(configured_repository, FakeAgentFactory())

        for _ in range(3):
            assert not manager.is_configured()

        assert configured_repository.load_count == 0

    @pytest.mark.asyncio
    async def test_reset(self, configured_repository):
        """Test dropping the handle."""
        manager = ConnectionManager(configured_repository, FakeAgentFactory(handle=FakeAgentHandle()))
        await manager.refresh()

        await manager.reset()

        assert not manager.is_configured()
        assert manager.state.handle is None
