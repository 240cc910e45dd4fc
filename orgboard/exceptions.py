"""
Exception taxonomy for Orgboard.

Foreground callers see TransportError and RemoteQueryError unchanged.
StoreError never leaves the TTL cache: it is logged and treated as a miss.
"""

from typing import Any, Optional


class OrgboardError(Exception):
    """Base class for all Orgboard errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TransportError(OrgboardError):
    """Network or HTTP failure talking to GitHub."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class RemoteQueryError(OrgboardError):
    """
    GitHub answered but reported an application-level failure.

    Covers GraphQL ``errors`` arrays (bad query, permission denied) and
    missing organizations.
    """

    def __init__(self, message: str, errors: Optional[list[dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def from_graphql_errors(cls, errors: list[dict[str, Any]]) -> "RemoteQueryError":
        """Join the GraphQL error messages into one readable message."""
        messages = [e.get("message", "") for e in errors if isinstance(e, dict)]
        message = "; ".join(m for m in messages if m) or "Unknown GraphQL error"
        return cls(message, errors=errors)


class StoreError(OrgboardError):
    """Local persistent store read/write failure."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class StatusConflictError(OrgboardError):
    """An issue carries different statuses on two boards under the strict policy."""

    def __init__(self, issue_id: str, statuses: list[str]):
        super().__init__(
            f"Issue {issue_id} has conflicting project statuses: {', '.join(statuses)}"
        )
        self.issue_id = issue_id
        self.statuses = statuses


__all__ = [
    "OrgboardError",
    "TransportError",
    "RemoteQueryError",
    "StoreError",
    "StatusConflictError",
]
