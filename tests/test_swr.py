"""
Tests for the stale-while-revalidate protocol.

Uses the issue-type aggregator as the concrete resource since it makes a
single REST call per load.
"""

import asyncio

import pytest

from orgboard.cache import CacheKeys
from orgboard.exceptions import TransportError
from orgboard.services import IssueTypeAggregator


def issue_type(name, node_id=None):
    return {
        "id": hash(name) % 1000,
        "node_id": node_id or f"IT_{name}",
        "name": name,
        "color": "blue",
        "description": f"{name} issues",
        "is_enabled": True,
    }


@pytest.fixture
def aggregator(fake_client, cache, settings):
    return IssueTypeAggregator(fake_client, cache, settings)


async def seed(cache, settings, names, age=0, clock=None):
    """Store an issue-types snapshot for ``acme``."""
    payload = {
        "org": "acme",
        "types": [
            {"id": f"IT_{n}", "name": n, "color": None, "description": None, "is_enabled": True}
            for n in names
        ],
    }
    await cache.set_with_ttl(CacheKeys.issue_types("acme"), payload, settings.cache_ttl_long)
    if clock is not None:
        clock.advance(age)


class TestPlainFetch:
    """Tests for swr=False."""

    @pytest.mark.asyncio
    async def test_cold_fetch_loads_and_persists(self, aggregator, fake_client, cache):
        """Test a miss loads once and the second call is served from cache."""
        fake_client.rest_handler = lambda path, params: [issue_type("Bug")]

        first = await aggregator.fetch("acme")
        second = await aggregator.fetch("acme")

        assert [t.name for t in first.types] == ["Bug"]
        assert second == first
        assert len(fake_client.rest_calls) == 1
        assert await cache.get_with_ttl(CacheKeys.issue_types("acme")) is not None

    @pytest.mark.asyncio
    async def test_expired_entry_reloads(self, aggregator, fake_client, cache, settings, clock):
        """Test a stale entry is not served without swr."""
        await seed(cache, settings, ["Old"], age=settings.cache_ttl_long + 1, clock=clock)
        fake_client.rest_handler = lambda path, params: [issue_type("New")]

        result = await aggregator.fetch("acme")

        assert [t.name for t in result.types] == ["New"]
        assert len(fake_client.rest_calls) == 1

    @pytest.mark.asyncio
    async def test_foreground_error_propagates(self, aggregator, fake_client):
        """Test load failures reach the caller unchanged."""

        def fail(path, params):
            raise TransportError("GitHub REST error: 500", status=500)

        fake_client.rest_handler = fail

        with pytest.raises(TransportError):
            await aggregator.fetch("acme")

    @pytest.mark.asyncio
    async def test_incompatible_cached_payload_is_a_miss(self, aggregator, fake_client, cache):
        """Test a snapshot that no longer validates is refetched."""
        await cache.set_with_ttl(CacheKeys.issue_types("acme"), {"unexpected": 1}, 0)
        fake_client.rest_handler = lambda path, params: [issue_type("Bug")]

        result = await aggregator.fetch("acme")

        assert [t.name for t in result.types] == ["Bug"]


class TestStaleWhileRevalidate:
    """Tests for swr=True."""

    @pytest.mark.asyncio
    async def test_warm_path_returns_before_network(self, aggregator, fake_client, cache, settings):
        """Test the cached value is returned while the refresh is still blocked."""
        await seed(cache, settings, ["Cached"])
        gate = asyncio.Event()
        updates = []

        async def slow(path, params):
            await gate.wait()
            return [issue_type("Fresh")]

        fake_client.rest_handler = slow

        result = await aggregator.fetch("acme", swr=True, on_update=updates.append)

        assert [t.name for t in result.types] == ["Cached"]
        assert aggregator.pending_refreshes == 1
        assert updates == []

        gate.set()
        await aggregator.wait_background()

        assert len(updates) == 1
        assert [t.name for t in updates[0].types] == ["Fresh"]
        stored = await cache.get_with_ttl(CacheKeys.issue_types("acme"))
        assert stored["types"][0]["name"] == "Fresh"

    @pytest.mark.asyncio
    async def test_stale_entry_is_served(self, aggregator, fake_client, cache, settings, clock):
        """Test swr serves an expired entry and refreshes it."""
        await seed(cache, settings, ["Stale"], age=settings.cache_ttl_long * 3, clock=clock)
        fake_client.rest_handler = lambda path, params: [issue_type("Fresh")]

        result = await aggregator.fetch("acme", swr=True)
        await aggregator.wait_background()

        assert [t.name for t in result.types] == ["Stale"]
        assert len(fake_client.rest_calls) == 1
        stored = await cache.get_with_ttl(CacheKeys.issue_types("acme"))
        assert stored["types"][0]["name"] == "Fresh"

    @pytest.mark.asyncio
    async def test_cold_path_awaits_load(self, aggregator, fake_client, cache):
        """Test swr with nothing cached loads in the foreground without on_update."""
        fake_client.rest_handler = lambda path, params: [issue_type("Bug")]
        updates = []

        result = await aggregator.fetch("acme", swr=True, on_update=updates.append)
        await aggregator.wait_background()

        assert [t.name for t in result.types] == ["Bug"]
        assert updates == []
        assert aggregator.pending_refreshes == 0
        assert await cache.get_with_ttl(CacheKeys.issue_types("acme")) is not None

    @pytest.mark.asyncio
    async def test_background_failure_is_swallowed(self, aggregator, fake_client, cache, settings):
        """Test a failed refresh keeps the old entry and skips on_update."""
        await seed(cache, settings, ["Cached"])
        updates = []

        def fail(path, params):
            raise TransportError("GitHub REST request timed out")

        fake_client.rest_handler = fail

        result = await aggregator.fetch("acme", swr=True, on_update=updates.append)
        await aggregator.wait_background()

        assert [t.name for t in result.types] == ["Cached"]
        assert updates == []
        stored = await cache.get_with_ttl(CacheKeys.issue_types("acme"))
        assert stored["types"][0]["name"] == "Cached"

    @pytest.mark.asyncio
    async def test_async_on_update_is_awaited(self, aggregator, fake_client, cache, settings):
        """Test coroutine callbacks run to completion."""
        await seed(cache, settings, ["Cached"])
        fake_client.rest_handler = lambda path, params: [issue_type("Fresh")]
        seen = []

        async def on_update(value):
            await asyncio.sleep(0)
            seen.append(value.types[0].name)

        await aggregator.fetch("acme", swr=True, on_update=on_update)
        await aggregator.wait_background()

        assert seen == ["Fresh"]

    @pytest.mark.asyncio
    async def test_overlapping_refreshes_last_writer_wins(
        self, aggregator, fake_client, cache, settings
    ):
        """Test the refresh that completes last determines the stored value."""
        await seed(cache, settings, ["Cached"])
        first_gate = asyncio.Event()
        calls = []
        updates = []

        async def handler(path, params):
            calls.append(path)
            if len(calls) == 1:
                await first_gate.wait()
                return [issue_type("FirstStarted")]
            return [issue_type("SecondStarted")]

        fake_client.rest_handler = handler

        await aggregator.fetch("acme", swr=True, on_update=lambda v: updates.append(v.types[0].name))
        await aggregator.fetch("acme", swr=True, on_update=lambda v: updates.append(v.types[0].name))

        # Let the second refresh finish while the first is still blocked
        for _ in range(10):
            await asyncio.sleep(0)
        assert updates == ["SecondStarted"]

        first_gate.set()
        await aggregator.wait_background()

        assert updates == ["SecondStarted", "FirstStarted"]
        stored = await cache.get_with_ttl(CacheKeys.issue_types("acme"))
        assert stored["types"][0]["name"] == "FirstStarted"

    @pytest.mark.asyncio
    async def test_invalidate_forces_reload(self, aggregator, fake_client, cache, settings):
        """Test invalidation turns the next fetch into a cold load."""
        await seed(cache, settings, ["Cached"])
        fake_client.rest_handler = lambda path, params: [issue_type("Fresh")]

        assert await aggregator.invalidate("acme") is True
        result = await aggregator.fetch("acme")

        assert [t.name for t in result.types] == ["Fresh"]
