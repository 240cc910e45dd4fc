"""
Dashboard facade.

Composes the organization aggregators and the issue-timeline service behind
one object, joins their snapshots into a ``DashboardView`` and owns cache
invalidation after mutations.
"""

import asyncio
import inspect
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel

from orgboard.cache import CacheKeys, TTLCache
from orgboard.config import Settings, get_settings
from orgboard.logging import LogContext, get_logger
from orgboard.models import (
    ConflictPolicy,
    DashboardView,
    IssueTimeline,
    IssueTypes,
    ProjectBoards,
    RepositoryIssues,
)
from orgboard.services.issue_timeline import IssueTimelineService
from orgboard.services.issue_types import IssueTypeAggregator
from orgboard.services.join import join_project_status
from orgboard.services.project_boards import ProjectBoardAggregator
from orgboard.services.repository_issues import RepositoryIssuesAggregator
from orgboard.services.swr import OnUpdate

logger = get_logger("services.dashboard")


class DashboardService:
    """
    Joined organization dashboard.

    Usage:
        async with GitHubClient() as client:
            service = DashboardService(client, TTLCache(create_store()))
            view = await service.load("my-org", swr=True, on_update=render)
    """

    def __init__(self, client: Any, cache: TTLCache, settings: Optional[Settings] = None):
        self.client = client
        self.cache = cache
        self.settings = settings or get_settings()

        self.repository_issues = RepositoryIssuesAggregator(client, cache, self.settings)
        self.project_boards = ProjectBoardAggregator(client, cache, self.settings)
        self.issue_types = IssueTypeAggregator(client, cache, self.settings)
        self.issue_timeline = IssueTimelineService(client, cache, self.settings)

    @property
    def conflict_policy(self) -> ConflictPolicy:
        return ConflictPolicy(self.settings.status_conflict_policy)

    def build_view(
        self,
        repository_issues: RepositoryIssues,
        boards: ProjectBoards,
        issue_types: IssueTypes,
    ) -> DashboardView:
        """Join the three organization snapshots."""
        issues = join_project_status(
            repository_issues.issues,
            boards.boards,
            policy=self.conflict_policy,
            priority=self.settings.status_priority_list,
        )
        return DashboardView(
            org=repository_issues.org,
            issues=issues,
            repositories=repository_issues.repositories,
            boards=boards.boards,
            issue_types=issue_types.types,
            truncated=repository_issues.truncated,
            truncated_repositories=repository_issues.truncated_repositories,
        )

    async def load(
        self,
        org: str,
        swr: bool = False,
        on_update: Optional[OnUpdate] = None,
    ) -> DashboardView:
        """
        Load the joined view for ``org``.

        The aggregators run one after another. With ``swr=True`` each one may
        serve its cached snapshot and refresh in the background; every
        refresh that lands after all three snapshots are known recomputes
        the join and calls ``on_update`` with the new view.

        Raises:
            TransportError, RemoteQueryError: a foreground load failed
            StatusConflictError: STRICT policy and a cross-board conflict
        """
        snapshots: Dict[str, BaseModel] = {}

        def deliver_to(kind: str) -> Optional[OnUpdate]:
            if on_update is None:
                return None

            async def deliver(value: BaseModel) -> None:
                snapshots[kind] = value
                if len(snapshots) < 3:
                    # Foreground still running; load() returns the merged view
                    return
                view = self._view_from(snapshots)
                logger.debug("dashboard_refreshed", org=org, resource=kind)
                result = on_update(view)
                if inspect.isawaitable(result):
                    await result

            return deliver

        with LogContext(org=org):
            # Each snapshot is stored as soon as its fetch returns, before any
            # background refresh for that resource can run
            snapshots[CacheKeys.REPOSITORY_ISSUES] = await self.repository_issues.fetch(
                org, swr=swr, on_update=deliver_to(CacheKeys.REPOSITORY_ISSUES)
            )
            snapshots[CacheKeys.PROJECT_BOARDS] = await self.project_boards.fetch(
                org, swr=swr, on_update=deliver_to(CacheKeys.PROJECT_BOARDS)
            )
            snapshots[CacheKeys.ISSUE_TYPES] = await self.issue_types.fetch(
                org, swr=swr, on_update=deliver_to(CacheKeys.ISSUE_TYPES)
            )
            view = self._view_from(snapshots)

        logger.info(
            "dashboard_loaded",
            org=org,
            issues=len(view.issues),
            partial=view.partial_count,
            boards=len(view.boards),
            truncated=view.truncated,
        )
        return view

    def _view_from(self, snapshots: Dict[str, BaseModel]) -> DashboardView:
        return self.build_view(
            snapshots[CacheKeys.REPOSITORY_ISSUES],
            snapshots[CacheKeys.PROJECT_BOARDS],
            snapshots[CacheKeys.ISSUE_TYPES],
        )

    async def fetch_issue(
        self,
        owner: str,
        repo: str,
        number: int,
        swr: bool = False,
        on_update: Optional[OnUpdate] = None,
    ) -> IssueTimeline:
        return await self.issue_timeline.fetch(owner, repo, number, swr=swr, on_update=on_update)

    # =========================================================================
    # Invalidation
    # =========================================================================

    async def invalidate(self, org: str) -> List[str]:
        """Evict every organization snapshot; returns the keys evicted without a store error."""
        removed = [key for key in CacheKeys.org_keys(org) if await self.cache.invalidate(key)]
        logger.info("org_cache_invalidated", org=org, removed=len(removed))
        return removed

    async def invalidate_key(self, key: str) -> bool:
        return await self.cache.invalidate(key)

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create_issue(
        self,
        org: str,
        repository_id: str,
        title: str,
        body: Optional[str] = None,
        label_ids: Sequence[str] = (),
        assignee_ids: Sequence[str] = (),
        project_ids: Sequence[str] = (),
        milestone_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Create an issue and evict the organization's issue and board snapshots.

        Issue types stay cached.
        """
        issue_input: Dict[str, Any] = {"repositoryId": repository_id, "title": title}
        if body:
            issue_input["body"] = body
        if label_ids:
            issue_input["labelIds"] = list(label_ids)
        if assignee_ids:
            issue_input["assigneeIds"] = list(assignee_ids)
        if project_ids:
            issue_input["projectIds"] = list(project_ids)
        if milestone_id:
            issue_input["milestoneId"] = milestone_id

        issue = await self.client.create_issue(issue_input)

        await self.repository_issues.invalidate(org)
        await self.project_boards.invalidate(org)
        logger.info(
            "issue_created",
            org=org,
            repository=(issue.get("repository") or {}).get("nameWithOwner"),
            number=issue.get("number"),
        )
        return issue

    async def fetch_repo_issue_metadata(self, owner: str, name: str) -> Dict[str, Any]:
        return await self.client.fetch_repo_issue_metadata(owner, name)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def _resources(self):
        return (self.repository_issues, self.project_boards, self.issue_types, self.issue_timeline)

    @property
    def pending_refreshes(self) -> int:
        return sum(resource.pending_refreshes for resource in self._resources)

    async def wait_background(self) -> None:
        """Wait for every in-flight background refresh."""
        await asyncio.gather(*(resource.wait_background() for resource in self._resources))
