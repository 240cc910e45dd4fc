"""
Cursor pagination walker.

Drives a paged query one page at a time, strictly in cursor order, and
concatenates the nodes. A failing page aborts the whole walk: the error
propagates and nodes from earlier pages are dropped with it.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar

from orgboard.exceptions import RemoteQueryError
from orgboard.logging import get_logger

logger = get_logger("api.pagination")

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One page of a cursor-paginated connection."""

    nodes: list[T] = field(default_factory=list)
    has_next_page: bool = False
    end_cursor: Optional[str] = None

    @classmethod
    def from_connection(cls, connection: Optional[dict[str, Any]]) -> "Page[dict[str, Any]]":
        """Build a page from a GraphQL connection with ``nodes`` and ``pageInfo``."""
        connection = connection or {}
        page_info = connection.get("pageInfo") or {}
        return cls(
            nodes=[n for n in (connection.get("nodes") or []) if n],
            has_next_page=bool(page_info.get("hasNextPage")),
            end_cursor=page_info.get("endCursor"),
        )


@dataclass
class PaginationResult(Generic[T]):
    """All nodes of a walk and whether a page cap cut it short."""

    nodes: list[T]
    pages_fetched: int
    truncated: bool = False


PageFetcher = Callable[[Optional[str]], Awaitable[Page[T]]]


async def collect_pages(
    fetch_page: PageFetcher[T],
    max_pages: Optional[int] = None,
) -> PaginationResult[T]:
    """
    Walk a paged query until it is exhausted or ``max_pages`` is reached.

    Args:
        fetch_page: Coroutine taking the cursor (None for the first page)
        max_pages: Optional cap on the number of pages requested

    Returns:
        PaginationResult with nodes in page order; ``truncated`` is True when
        the cap stopped the walk while the remote still reported more pages

    Raises:
        Whatever ``fetch_page`` raises, with no partial result
    """
    if max_pages is not None and max_pages < 1:
        raise ValueError(f"max_pages must be >= 1, got {max_pages}")

    nodes: list[T] = []
    cursor: Optional[str] = None
    pages = 0

    while True:
        page = await fetch_page(cursor)
        pages += 1
        nodes.extend(page.nodes)
        logger.debug(
            "page_fetched",
            page=pages,
            nodes=len(page.nodes),
            has_next_page=page.has_next_page,
        )

        if not page.has_next_page:
            return PaginationResult(nodes=nodes, pages_fetched=pages)

        if max_pages is not None and pages >= max_pages:
            logger.info("page_cap_reached", max_pages=max_pages, nodes=len(nodes))
            return PaginationResult(nodes=nodes, pages_fetched=pages, truncated=True)

        if not page.end_cursor:
            raise RemoteQueryError("Page reported more results without an end cursor")
        cursor = page.end_cursor
