"""
Application constants for Orgboard.

Contains GitHub endpoints, pagination bounds and project-board field names.
"""

# =============================================================================
# GitHub Endpoints
# =============================================================================

GITHUB_API_BASE = "https://api.github.com"
GITHUB_GRAPHQL_ENDPOINT = "https://api.github.com/graphql"
GITHUB_REST_ACCEPT = "application/vnd.github+json"
USER_AGENT = "Orgboard/1.0"

# =============================================================================
# Pagination Bounds
# =============================================================================

# Organization repositories per page and the page cap for the org walk.
# 4 * 30 = 120 most recently pushed repositories.
DEFAULT_REPOSITORIES_PAGE_SIZE = 30
DEFAULT_MAX_REPOSITORY_PAGES = 4

# Issues read per repository (single page, no per-repository pagination)
DEFAULT_ISSUES_PER_REPOSITORY = 100

DEFAULT_PROJECTS_PAGE_SIZE = 20
DEFAULT_PROJECT_ITEMS_PAGE_SIZE = 100

# Timeline items read for a single issue
DEFAULT_TIMELINE_ITEMS = 100

# =============================================================================
# Project Boards
# =============================================================================

STATUS_FIELD_NAME = "status"
ISSUE_TYPENAME = "Issue"
SINGLE_SELECT_VALUE_TYPENAME = "ProjectV2ItemFieldSingleSelectValue"

# =============================================================================
# View Buckets
# =============================================================================

# Placeholder bucket names used by the grouping views
UNASSIGNED = "(unassigned)"
NO_LABEL = "(no label)"
NO_STATUS = "(no status)"
NO_ISSUE_TYPE = "(none)"

# =============================================================================
# Dashboard Metrics
# =============================================================================

# Board columns counted by the headline stats
BACKLOG_STATUS = "Backlog"
SPRINT_STATUSES = ("Ready", "In progress", "In review")

# Open-issue age buckets, upper bounds in days (last bucket is open-ended)
AGING_BUCKETS = (("<7", 7), ("7-30", 30), ("31-90", 90), (">90", None))

THROUGHPUT_DAYS = 30

ISSUE_TYPE_COLORS = {
    "bug": "ef4444",
    "feature": "22c55e",
    "task": "3b82f6",
    NO_ISSUE_TYPE: "a52a2a",
}
DEFAULT_ISSUE_TYPE_COLOR = "6b7280"
