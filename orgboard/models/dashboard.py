"""Joined dashboard view."""

from typing import List

from pydantic import BaseModel, Field

from .issue import Issue, RepositorySummary
from .project import IssueTypeInfo, ProjectBoard


class DashboardView(BaseModel):
    """
    Repository issues joined with project-board status.

    Not cached itself; recomputed from the three cached snapshots.
    """
    org: str
    issues: List[Issue] = Field(default_factory=list)
    repositories: List[RepositorySummary] = Field(default_factory=list)
    boards: List[ProjectBoard] = Field(default_factory=list)
    issue_types: List[IssueTypeInfo] = Field(default_factory=list)
    truncated: bool = False
    truncated_repositories: List[str] = Field(default_factory=list)

    @property
    def partial_count(self) -> int:
        return sum(1 for issue in self.issues if issue.is_partial)
