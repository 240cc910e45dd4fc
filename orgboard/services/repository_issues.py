"""
Repository-Issues aggregator.

Walks the organization's repositories, most recently pushed first, and
reads the first ``issues_per_repository`` issues of each. Both the walk and
the per-repository read are bounded; hitting either bound sets
``truncated`` on the snapshot.
"""

from typing import Any, Dict, Optional

from orgboard.api.pagination import Page, collect_pages
from orgboard.api.parsers import parse_issue
from orgboard.api.queries import ORG_REPOS_ISSUES_QUERY
from orgboard.cache import CacheKeys
from orgboard.exceptions import RemoteQueryError
from orgboard.logging import LogContext, get_logger, log_timing
from orgboard.models import RepositoryIssues, RepositorySummary
from orgboard.services.swr import OrgResource

logger = get_logger("services.repository_issues")


class RepositoryIssuesAggregator(OrgResource[RepositoryIssues]):
    """Issues across the organization's repositories."""

    model = RepositoryIssues
    resource_kind = CacheKeys.REPOSITORY_ISSUES

    @property
    def ttl(self) -> int:
        return self.settings.cache_ttl_short

    @log_timing("repository_issues_load")
    async def _load(self, org: str) -> RepositoryIssues:
        org_meta: Dict[str, Optional[str]] = {}

        async def fetch_page(cursor: Optional[str]) -> Page[Dict[str, Any]]:
            data = await self.client.graphql(
                ORG_REPOS_ISSUES_QUERY,
                {
                    "org": org,
                    "after": cursor,
                    "first": self.settings.repositories_page_size,
                    "issuesFirst": self.settings.issues_per_repository,
                },
            )
            org_node = data.get("organization")
            if not org_node:
                raise RemoteQueryError("Organization not found or access denied.")
            org_meta["name"] = org_node.get("name")
            org_meta["url"] = org_node.get("url")
            return Page.from_connection(org_node.get("repositories"))

        with LogContext(org=org, resource=self.resource_kind):
            result = await collect_pages(fetch_page, max_pages=self.settings.max_repository_pages)

            repositories = []
            issues = []
            truncated_repositories = []
            for repo in result.nodes:
                connection = repo.get("issues") or {}
                repo_issues = [parse_issue(n) for n in (connection.get("nodes") or []) if n]
                total = connection.get("totalCount", len(repo_issues))
                repo_truncated = bool((connection.get("pageInfo") or {}).get("hasNextPage")) or (
                    total > len(repo_issues)
                )
                if repo_truncated:
                    truncated_repositories.append(repo["nameWithOwner"])

                repositories.append(
                    RepositorySummary(
                        id=repo["id"],
                        name=repo["name"],
                        name_with_owner=repo["nameWithOwner"],
                        url=repo.get("url"),
                        issue_count=total,
                        issues_truncated=repo_truncated,
                    )
                )
                issues.extend(repo_issues)

            if result.truncated or truncated_repositories:
                logger.info(
                    "repository_issues_truncated",
                    page_cap_hit=result.truncated,
                    truncated_repositories=len(truncated_repositories),
                )

        return RepositoryIssues(
            org=org,
            org_name=org_meta.get("name"),
            org_url=org_meta.get("url"),
            repositories=repositories,
            issues=issues,
            truncated=result.truncated or bool(truncated_repositories),
            truncated_repositories=truncated_repositories,
        )
