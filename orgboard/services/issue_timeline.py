"""
Single issue with timeline.

Opened from the board when a card is clicked; cached per issue with the long
TTL and served through the same stale-while-revalidate protocol as the
organization aggregators.
"""

from functools import partial
from typing import Optional

from orgboard.api.parsers import parse_issue, parse_timeline_item
from orgboard.api.queries import ISSUE_WITH_TIMELINE_QUERY
from orgboard.cache import CacheKeys
from orgboard.constants import DEFAULT_TIMELINE_ITEMS
from orgboard.exceptions import RemoteQueryError
from orgboard.logging import log_timing
from orgboard.models import IssueTimeline
from orgboard.services.swr import OnUpdate, SWRResource


class IssueTimelineService(SWRResource[IssueTimeline]):
    """Issue details plus the first timeline items."""

    model = IssueTimeline
    resource_kind = CacheKeys.ISSUE_TIMELINE

    @property
    def ttl(self) -> int:
        return self.settings.cache_ttl_long

    def cache_key(self, owner: str, repo: str, number: int) -> str:
        return CacheKeys.issue_timeline(owner, repo, number)

    async def fetch(
        self,
        owner: str,
        repo: str,
        number: int,
        swr: bool = False,
        on_update: Optional[OnUpdate] = None,
    ) -> IssueTimeline:
        """Get one issue with its timeline."""
        return await self._fetch_with_swr(
            self.cache_key(owner, repo, number),
            partial(self._load, owner, repo, number),
            swr=swr,
            on_update=on_update,
        )

    async def invalidate(self, owner: str, repo: str, number: int) -> bool:
        return await self.cache.invalidate(self.cache_key(owner, repo, number))

    @log_timing("issue_timeline_load")
    async def _load(self, owner: str, repo: str, number: int) -> IssueTimeline:
        data = await self.client.graphql(
            ISSUE_WITH_TIMELINE_QUERY,
            {"owner": owner, "repo": repo, "number": number, "timelineFirst": DEFAULT_TIMELINE_ITEMS},
        )
        repository = data.get("repository")
        if not repository:
            raise RemoteQueryError(f"Repository {owner}/{repo} not found or access denied.")
        node = repository.get("issue")
        if not node:
            raise RemoteQueryError(f"Issue #{number} not found in {owner}/{repo}.")

        timeline = node.get("timelineItems") or {}
        events = [parse_timeline_item(n) for n in (timeline.get("nodes") or []) if n]
        return IssueTimeline(
            issue=parse_issue(node),
            comments_count=(node.get("comments") or {}).get("totalCount", 0),
            timeline=events,
            timeline_truncated=timeline.get("totalCount", len(events)) > len(events),
        )
