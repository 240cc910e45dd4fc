"""
Tests for the dashboard facade.
"""

import pytest

from orgboard.api.queries import ORG_PROJECTS_QUERY, ORG_REPOS_ISSUES_QUERY, PROJECT_ITEMS_QUERY
from orgboard.cache import CacheKeys
from orgboard.exceptions import StatusConflictError
from orgboard.services import DashboardService
from tests.factories import (
    board_item,
    connection,
    issue_content,
    issue_node,
    org_repos_response,
    project_items_response,
    project_node,
    repo_node,
    status_field,
)


class OrgFixture:
    """Mutable fake organization served through the fake client."""

    def __init__(self):
        self.repos = [repo_node("web", [issue_node("A", 1), issue_node("B", 2)])]
        self.boards = {
            "P1": [
                board_item("PI-B", issue_content("B", 2), status="Done"),
                board_item("PI-C", issue_content("C", 3, repo="acme/api"), status="Backlog"),
            ]
        }
        self.types = [{"node_id": "IT_1", "id": 1, "name": "Bug", "is_enabled": True}]

    def graphql(self, query, variables):
        if query == ORG_REPOS_ISSUES_QUERY:
            return org_repos_response(self.repos)
        if query == ORG_PROJECTS_QUERY:
            nodes = [project_node(pid, i + 1) for i, pid in enumerate(self.boards)]
            return {"organization": {"projectsV2": connection(nodes)}}
        if query == PROJECT_ITEMS_QUERY:
            return project_items_response(self.boards[variables["pid"]], fields=[status_field()])
        raise AssertionError(f"unexpected query: {query[:40]}")

    def rest(self, path, params):
        return self.types


@pytest.fixture
def org(fake_client):
    org = OrgFixture()
    fake_client.graphql_handler = org.graphql
    fake_client.rest_handler = org.rest
    return org


@pytest.fixture
def service(fake_client, cache, settings):
    return DashboardService(fake_client, cache, settings)


class TestLoad:
    """Tests for DashboardService.load."""

    @pytest.mark.asyncio
    async def test_joined_view(self, service, org):
        """Test the view joins board status onto repository issues."""
        view = await service.load("acme")

        assert [(i.id, i.project_status, i.is_partial) for i in view.issues] == [
            ("A", None, False),
            ("B", "Done", False),
            ("C", "Backlog", True),
        ]
        assert [b.id for b in view.boards] == ["P1"]
        assert [t.name for t in view.issue_types] == ["Bug"]
        assert view.partial_count == 1
        assert view.truncated is False

    @pytest.mark.asyncio
    async def test_populates_every_org_key(self, service, org, cache):
        """Test the three snapshots are cached under their org keys."""
        await service.load("acme")

        assert await cache.keys() == sorted(CacheKeys.org_keys("acme"))

    @pytest.mark.asyncio
    async def test_swr_recomputes_join_on_refresh(self, service, org, fake_client):
        """Test background refreshes deliver freshly joined views."""
        await service.load("acme")
        org.boards["P1"][0] = board_item("PI-B", issue_content("B", 2), status="In Progress")
        updates = []

        view = await service.load("acme", swr=True, on_update=updates.append)
        await service.wait_background()

        assert view.issues[1].project_status == "Done"
        assert 1 <= len(updates) <= 3
        assert updates[-1].issues[1].project_status == "In Progress"
        assert service.pending_refreshes == 0

    @pytest.mark.asyncio
    async def test_swr_without_callback(self, service, org, cache):
        """Test refreshes still re-persist when nobody listens."""
        await service.load("acme")
        org.types = [{"node_id": "IT_2", "id": 2, "name": "Task", "is_enabled": True}]

        await service.load("acme", swr=True)
        await service.wait_background()

        stored = await cache.get_with_ttl(CacheKeys.issue_types("acme"))
        assert stored["types"][0]["name"] == "Task"

    @pytest.mark.asyncio
    async def test_strict_policy_conflict(self, fake_client, cache, settings, org):
        """Test the strict policy surfaces cross-board conflicts."""
        settings = settings.model_copy(update={"status_conflict_policy": "strict"})
        service = DashboardService(fake_client, cache, settings)
        org.boards["P2"] = [board_item("PI2-B", issue_content("B", 2), status="Backlog")]

        with pytest.raises(StatusConflictError):
            await service.load("acme")

    @pytest.mark.asyncio
    async def test_truncation_is_surfaced(self, service, org):
        """Test per-repository truncation reaches the view."""
        org.repos = [repo_node("web", [issue_node("A", 1)], total=500, has_more_issues=True)]

        view = await service.load("acme")

        assert view.truncated is True
        assert view.truncated_repositories == ["acme/web"]


class TestInvalidation:
    """Tests for cache eviction through the facade."""

    @pytest.mark.asyncio
    async def test_invalidate_org(self, service, org, cache, fake_client):
        """Test every org snapshot is evicted and reloaded."""
        await service.load("acme")

        removed = await service.invalidate("acme")
        await service.load("acme")

        assert removed == CacheKeys.org_keys("acme")
        assert len(fake_client.rest_calls) == 2

    @pytest.mark.asyncio
    async def test_invalidate_key(self, service, org, cache):
        """Test a single key can be evicted."""
        await service.load("acme")

        await service.invalidate_key(CacheKeys.project_boards("acme"))

        assert await cache.get_entry(CacheKeys.project_boards("acme")) is None
        assert await cache.get_entry(CacheKeys.repository_issues("acme")) is not None


class TestCreateIssue:
    """Tests for the create-issue mutation."""

    @pytest.mark.asyncio
    async def test_builds_input_and_evicts_affected_keys(self, service, org, cache, fake_client):
        """Test the mutation input and the keys it invalidates."""
        await service.load("acme")

        issue = await service.create_issue(
            "acme",
            "R_web",
            "Broken login",
            body="Steps...",
            label_ids=["L1"],
            assignee_ids=["U1"],
            milestone_id="M1",
        )

        assert issue["number"] == 99
        assert fake_client.created_inputs == [
            {
                "repositoryId": "R_web",
                "title": "Broken login",
                "body": "Steps...",
                "labelIds": ["L1"],
                "assigneeIds": ["U1"],
                "milestoneId": "M1",
            }
        ]
        assert await cache.get_entry(CacheKeys.repository_issues("acme")) is None
        assert await cache.get_entry(CacheKeys.project_boards("acme")) is None
        assert await cache.get_entry(CacheKeys.issue_types("acme")) is not None

    @pytest.mark.asyncio
    async def test_minimal_input(self, service, fake_client):
        """Test optional fields are omitted when empty."""
        await service.create_issue("acme", "R_web", "Title only")

        assert fake_client.created_inputs == [{"repositoryId": "R_web", "title": "Title only"}]
