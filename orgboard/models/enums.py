"""
Shared Enumerations.

Defines enums used across the data layer for type safety and consistency.
"""

from enum import Enum


class IssueState(str, Enum):
    """GitHub issue state."""
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class ConflictPolicy(str, Enum):
    """How the join resolves an issue that sits on several boards."""
    LAST_WINS = "last_wins"
    FIRST_WINS = "first_wins"
    PRIORITY = "priority"
    STRICT = "strict"


class SeriesRange(str, Enum):
    """Bucket range for the opened/closed series."""
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
