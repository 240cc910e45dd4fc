"""
Orgboard Core Library.

Data layer for an organization issue dashboard: a persistent TTL cache,
cursor pagination over the GitHub GraphQL API, stale-while-revalidate
resource aggregators and the project-status join.

Usage:
    # Config
    from orgboard.config import get_settings, Settings

    # Logging
    from orgboard.logging import get_logger, configure_logging

    # Services
    from orgboard.services import DashboardService
"""

__version__ = "1.0.0"

# Lazy imports to avoid circular dependencies
# Users should import directly from submodules:
#   from orgboard.cache import TTLCache
#   from orgboard.api import GitHubClient
