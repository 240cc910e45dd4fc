"""
Pytest fixtures for Orgboard tests.

Everything runs offline: the cache sits on a MemoryStore driven by a fake
clock and GitHub is replaced by a scripted client.
"""

import inspect

import pytest

from orgboard.cache import MemoryStore, TTLCache
from orgboard.config import Settings


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeGitHubClient:
    """
    Stand-in for GitHubClient.

    Set ``graphql_handler`` / ``rest_handler`` to a callable
    ``(query_or_path, variables_or_params) -> data`` (sync or async); it may
    raise to simulate failures. Every call is recorded.
    """

    def __init__(self, graphql_handler=None, rest_handler=None):
        self.graphql_handler = graphql_handler
        self.rest_handler = rest_handler
        self.graphql_calls = []
        self.rest_calls = []
        self.created_inputs = []
        self.metadata = {
            "repository_id": "R_1",
            "labels": [],
            "assignees": [],
            "milestones": [],
        }

    async def graphql(self, query, variables=None):
        variables = dict(variables or {})
        self.graphql_calls.append((query, variables))
        result = self.graphql_handler(query, variables)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def rest_get(self, path, params=None):
        self.rest_calls.append((path, params))
        result = self.rest_handler(path, params)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def create_issue(self, issue_input):
        self.created_inputs.append(issue_input)
        return {
            "id": "I_new",
            "number": 99,
            "title": issue_input["title"],
            "url": "https://github.com/acme/web/issues/99",
            "state": "OPEN",
            "createdAt": "2024-05-01T00:00:00Z",
            "repository": {"nameWithOwner": "acme/web", "url": "https://github.com/acme/web"},
        }

    async def fetch_repo_issue_metadata(self, owner, name):
        return self.metadata


@pytest.fixture
def clock():
    """Fake clock shared by the cache under test."""
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def cache(store, clock):
    """TTL cache over a memory store and the fake clock."""
    return TTLCache(store, clock=clock)


@pytest.fixture
def settings():
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        github_token="test-token",
        cache_backend="memory",
        max_repository_pages=4,
        status_conflict_policy="last_wins",
    )


@pytest.fixture
def fake_client():
    return FakeGitHubClient()
