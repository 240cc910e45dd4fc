"""
Issue schemas.

Snake-case mirrors of the GitHub GraphQL issue shape. Aggregated snapshots
are stored in the cache as ``model_dump(mode="json")`` and validated back.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .enums import IssueState


# =============================================================================
# Issue Parts
# =============================================================================

class Actor(BaseModel):
    """User reference (assignee, timeline actor)."""
    login: str
    avatar_url: Optional[str] = None
    url: Optional[str] = None


class Label(BaseModel):
    """Repository label."""
    id: Optional[str] = None
    name: str
    color: Optional[str] = None


class Milestone(BaseModel):
    """Repository milestone."""
    id: str
    title: str
    url: Optional[str] = None
    due_on: Optional[datetime] = None
    description: Optional[str] = None


class IssueTypeRef(BaseModel):
    """Issue type attached to a single issue."""
    id: str
    name: str
    color: Optional[str] = None


class RepositoryRef(BaseModel):
    """Repository an issue belongs to."""
    name_with_owner: str
    url: Optional[str] = None

    @property
    def owner(self) -> str:
        return self.name_with_owner.split("/", 1)[0]

    @property
    def name(self) -> str:
        return self.name_with_owner.split("/", 1)[-1]


# =============================================================================
# Issue
# =============================================================================

class Issue(BaseModel):
    """
    Issue record of the unified view.

    ``project_status`` is derived by the join and ``is_partial`` marks
    records synthesized from project-board items only (no body, assignees,
    labels or milestone were fetched for them).
    """
    id: str
    number: int
    title: str
    body: Optional[str] = None
    url: str
    state: IssueState
    created_at: datetime
    closed_at: Optional[datetime] = None
    repository: RepositoryRef
    assignees: List[Actor] = Field(default_factory=list)
    labels: List[Label] = Field(default_factory=list)
    milestone: Optional[Milestone] = None
    issue_type: Optional[IssueTypeRef] = None
    project_status: Optional[str] = None
    project_item_id: Optional[str] = None
    is_partial: bool = False


class RepositorySummary(BaseModel):
    """Repository walked by the repository-issues aggregator."""
    id: str
    name: str
    name_with_owner: str
    url: Optional[str] = None
    issue_count: int = 0
    issues_truncated: bool = False


class RepositoryIssues(BaseModel):
    """Aggregated snapshot of the organization's repository issues."""
    org: str
    org_name: Optional[str] = None
    org_url: Optional[str] = None
    repositories: List[RepositorySummary] = Field(default_factory=list)
    issues: List[Issue] = Field(default_factory=list)
    truncated: bool = Field(
        default=False,
        description="Repository page cap or per-repository issue cap was hit",
    )
    truncated_repositories: List[str] = Field(default_factory=list)


# =============================================================================
# Timeline
# =============================================================================

class TimelineEvent(BaseModel):
    """One entry of an issue timeline."""
    type: str
    created_at: Optional[datetime] = None
    actor: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class IssueTimeline(BaseModel):
    """Single issue with its timeline, cached per issue."""
    issue: Issue
    comments_count: int = 0
    timeline: List[TimelineEvent] = Field(default_factory=list)
    timeline_truncated: bool = False
