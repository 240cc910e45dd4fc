"""
Pydantic models for the Orgboard data layer.

Usage:
    from orgboard.models import Issue, RepositoryIssues, ProjectBoards
"""

from orgboard.models.dashboard import DashboardView
from orgboard.models.enums import ConflictPolicy, IssueState, SeriesRange
from orgboard.models.issue import (
    Actor,
    Issue,
    IssueTimeline,
    IssueTypeRef,
    Label,
    Milestone,
    RepositoryIssues,
    RepositoryRef,
    RepositorySummary,
    TimelineEvent,
)
from orgboard.models.project import (
    IssueTypeInfo,
    IssueTypes,
    ProjectBoard,
    ProjectBoardItem,
    ProjectBoards,
)

__all__ = [
    "Actor",
    "ConflictPolicy",
    "DashboardView",
    "Issue",
    "IssueState",
    "IssueTimeline",
    "IssueTypeInfo",
    "IssueTypeRef",
    "IssueTypes",
    "Label",
    "Milestone",
    "ProjectBoard",
    "ProjectBoardItem",
    "ProjectBoards",
    "RepositoryIssues",
    "RepositoryRef",
    "RepositorySummary",
    "SeriesRange",
    "TimelineEvent",
]
