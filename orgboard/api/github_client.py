"""
Async GitHub API Client.

Features:
- Async HTTP with aiohttp
- GraphQL queries and REST reads over one pooled session
- Rate limit tracking from response headers and the GraphQL rateLimit field

No automatic retries: a failed request raises TransportError or
RemoteQueryError and retrying is left to the next user action.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import aiohttp

from orgboard.api.queries import CREATE_ISSUE_MUTATION, REPO_ISSUE_METADATA_QUERY
from orgboard.config import Settings, get_settings
from orgboard.constants import GITHUB_REST_ACCEPT, USER_AGENT
from orgboard.exceptions import RemoteQueryError, TransportError
from orgboard.logging import get_logger

logger = get_logger("github")


@dataclass
class RateLimitInfo:
    """GitHub API rate limit information."""

    remaining: int = 5000
    limit: int = 5000
    reset_at: Optional[datetime] = None

    @property
    def is_low(self) -> bool:
        """Check if remaining allowance is below 10%."""
        return self.remaining < (self.limit * 0.1)

    def update_from_headers(self, headers: Any) -> None:
        """Update from ``X-RateLimit-*`` response headers."""
        if "X-RateLimit-Remaining" in headers:
            self.remaining = int(headers["X-RateLimit-Remaining"])
        if "X-RateLimit-Limit" in headers:
            self.limit = int(headers["X-RateLimit-Limit"])
        if "X-RateLimit-Reset" in headers:
            self.reset_at = datetime.fromtimestamp(int(headers["X-RateLimit-Reset"]), tz=timezone.utc)

    def update_from_graphql(self, rate_limit: Dict[str, Any]) -> None:
        """Update from the GraphQL ``rateLimit`` object."""
        self.remaining = rate_limit.get("remaining", self.remaining)
        self.limit = rate_limit.get("limit", self.limit)
        reset_at_str = rate_limit.get("resetAt")
        if reset_at_str:
            self.reset_at = datetime.fromisoformat(reset_at_str.replace("Z", "+00:00"))


class GitHubClient:
    """
    Async GitHub client used by the resource aggregators.

    Example:
        async with GitHubClient(token) as client:
            data = await client.graphql(ORG_PROJECTS_QUERY, {"org": "acme", "first": 20})
    """

    def __init__(
        self,
        token: Optional[str] = None,
        settings: Optional[Settings] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.settings = settings or get_settings()
        self.token = token or self.settings.github_token
        if not self.token:
            raise ValueError("GitHub token required")

        self.rate_limit = RateLimitInfo()
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "GitHubClient":
        """Create aiohttp session on context entry."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": USER_AGENT},
                timeout=aiohttp.ClientTimeout(total=self.settings.request_timeout),
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Close session on context exit."""
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    def _require_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("Client not initialized. Use 'async with' context.")
        return self._session

    def _headers(self, **extra: str) -> Dict[str, str]:
        # Sent per request so injected sessions authenticate too
        return {"Authorization": f"Bearer {self.token}", **extra}

    def _track_rate_limit(self, headers: Any) -> None:
        self.rate_limit.update_from_headers(headers)
        if self.rate_limit.is_low:
            logger.warning(
                "rate_limit_low",
                remaining=self.rate_limit.remaining,
                reset_at=self.rate_limit.reset_at.isoformat() if self.rate_limit.reset_at else None,
            )

    async def _read_json(self, response: aiohttp.ClientResponse, api: str) -> Any:
        try:
            return await response.json()
        except (aiohttp.ContentTypeError, ValueError) as e:
            logger.error("invalid_json_response", api=api, status=response.status, error=str(e))
            raise TransportError(
                f"GitHub {api} response was not valid JSON", status=response.status
            ) from e

    async def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Execute a GraphQL query or mutation.

        Returns:
            The ``data`` object of the response

        Raises:
            TransportError: network failure, timeout, non-200 status or a non-JSON body
            RemoteQueryError: the response carried GraphQL ``errors``
        """
        session = self._require_session()
        try:
            async with session.post(
                self.settings.github_graphql_url,
                json={"query": query, "variables": variables or {}},
                headers=self._headers(),
            ) as response:
                self._track_rate_limit(response.headers)
                if response.status != 200:
                    text = await response.text()
                    logger.error("graphql_http_error", status=response.status, body=text[:200])
                    raise TransportError(
                        f"GitHub GraphQL error: {response.status}", status=response.status
                    )
                payload = await self._read_json(response, "GraphQL")
        except asyncio.TimeoutError as e:
            raise TransportError("GitHub GraphQL request timed out") from e
        except aiohttp.ClientError as e:
            raise TransportError(f"GitHub GraphQL request failed: {e}") from e

        if not isinstance(payload, dict):
            raise TransportError("GitHub GraphQL response was not a JSON object", status=200)

        if payload.get("errors"):
            logger.warning("graphql_errors", errors=payload["errors"])
            raise RemoteQueryError.from_graphql_errors(payload["errors"])

        data = payload.get("data") or {}
        if "rateLimit" in data and data["rateLimit"]:
            self.rate_limit.update_from_graphql(data["rateLimit"])
        return data

    async def rest_get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET a REST endpoint relative to the API base.

        Raises:
            TransportError: network failure, timeout, non-200 status or a non-JSON body
            RemoteQueryError: 404 (missing organization, repository, or no access)
        """
        session = self._require_session()
        url = f"{self.settings.github_api_base.rstrip('/')}/{path.lstrip('/')}"
        try:
            async with session.get(
                url,
                params=params,
                headers=self._headers(Accept=GITHUB_REST_ACCEPT),
            ) as response:
                self._track_rate_limit(response.headers)
                if response.status == 404:
                    raise RemoteQueryError(f"GitHub REST resource not found: {path}")
                if response.status != 200:
                    logger.error("rest_http_error", status=response.status, url=url)
                    raise TransportError(f"GitHub REST error: {response.status}", status=response.status)
                return await self._read_json(response, "REST")
        except asyncio.TimeoutError as e:
            raise TransportError(f"GitHub REST request timed out: {path}") from e
        except aiohttp.ClientError as e:
            raise TransportError(f"GitHub REST request failed: {e}") from e

    # =========================================================================
    # Mutations and form metadata
    # =========================================================================

    async def create_issue(self, issue_input: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create an issue.

        Args:
            issue_input: ``CreateIssueInput`` fields (repositoryId, title, body,
                labelIds, assigneeIds, projectIds, milestoneId)

        Returns:
            The created issue node
        """
        data = await self.graphql(CREATE_ISSUE_MUTATION, {"input": issue_input})
        issue = (data.get("createIssue") or {}).get("issue")
        if not issue:
            raise RemoteQueryError("Issue creation returned no issue")
        return issue

    async def fetch_repo_issue_metadata(self, owner: str, name: str) -> Dict[str, Any]:
        """Labels, assignable users and open milestones of a repository."""
        data = await self.graphql(REPO_ISSUE_METADATA_QUERY, {"owner": owner, "name": name})
        repo = data.get("repository")
        if not repo:
            raise RemoteQueryError(f"Repository {owner}/{name} not found or access denied.")
        return {
            "repository_id": repo.get("id"),
            "labels": (repo.get("labels") or {}).get("nodes") or [],
            "assignees": (repo.get("assignableUsers") or {}).get("nodes") or [],
            "milestones": (repo.get("milestones") or {}).get("nodes") or [],
        }
