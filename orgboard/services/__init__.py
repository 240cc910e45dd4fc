"""
Orgboard services.

Cached aggregators served stale-while-revalidate, the cross-resource join
and the dashboard facade composing them.
"""

from orgboard.services.dashboard import DashboardService
from orgboard.services.issue_timeline import IssueTimelineService
from orgboard.services.issue_types import IssueTypeAggregator
from orgboard.services.join import build_status_map, join_project_status, synthesize_issue
from orgboard.services.project_boards import ProjectBoardAggregator
from orgboard.services.repository_issues import RepositoryIssuesAggregator
from orgboard.services.swr import OrgResource, SWRResource

__all__ = [
    "DashboardService",
    "IssueTimelineService",
    "IssueTypeAggregator",
    "OrgResource",
    "ProjectBoardAggregator",
    "RepositoryIssuesAggregator",
    "SWRResource",
    "build_status_map",
    "join_project_status",
    "synthesize_issue",
]
