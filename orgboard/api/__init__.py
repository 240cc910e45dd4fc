# GitHub API integration module

from .github_client import GitHubClient, RateLimitInfo
from .pagination import Page, PaginationResult, collect_pages

__all__ = [
    "GitHubClient",
    "RateLimitInfo",
    "Page",
    "PaginationResult",
    "collect_pages",
]
