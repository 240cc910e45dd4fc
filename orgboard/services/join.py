"""
Cross-resource join: project-board status onto repository issues.

The repository walk and the board walk are paginated independently, so an
issue can be on a board without being in the repository snapshot (outside
the walked repositories, or past the per-repository issue cap). Such issues
are synthesized from the board item and flagged ``is_partial``.

The join is recomputed from scratch on every call; there is no incremental
path.
"""

from collections.abc import Iterable, Sequence
from typing import Dict, List

from orgboard.constants import NO_STATUS
from orgboard.exceptions import StatusConflictError
from orgboard.logging import get_logger
from orgboard.models import (
    ConflictPolicy,
    Issue,
    ProjectBoard,
    ProjectBoardItem,
    RepositoryRef,
)

logger = get_logger("services.join")


def _board_rank(board: ProjectBoard, priority: Sequence[str]) -> int:
    for rank, ref in enumerate(priority):
        if ref in (board.id, board.title, str(board.number)):
            return rank
    return len(priority)


def build_status_map(
    boards: Iterable[ProjectBoard],
    policy: ConflictPolicy = ConflictPolicy.LAST_WINS,
    priority: Sequence[str] = (),
) -> Dict[str, ProjectBoardItem]:
    """
    Map issue id -> the board item whose status the issue takes.

    Policies for an issue found on several boards:
        LAST_WINS: the last board processed overwrites earlier ones
        FIRST_WINS: the first board processed is kept
        PRIORITY: boards listed in ``priority`` (id, title or number) win in
            list order; unlisted boards rank last and ties keep the first
        STRICT: differing statuses raise StatusConflictError

    A null status (item in no column, or a board without a Status field) is
    a status of its own: null against "Done" is a conflict, null against
    null is not.
    """
    boards = list(boards)
    if policy == ConflictPolicy.PRIORITY:
        # sorted() is stable, so equal ranks keep board order
        boards = sorted(boards, key=lambda b: _board_rank(b, priority))

    winners: Dict[str, ProjectBoardItem] = {}
    conflicts = 0
    for board in boards:
        for item in board.items:
            current = winners.get(item.issue_id)
            if current is None:
                winners[item.issue_id] = item
                continue
            if current.status_name != item.status_name:
                conflicts += 1
            if policy == ConflictPolicy.LAST_WINS:
                winners[item.issue_id] = item
            elif policy == ConflictPolicy.STRICT and current.status_name != item.status_name:
                raise StatusConflictError(
                    item.issue_id, [current.status_name or NO_STATUS, item.status_name or NO_STATUS]
                )

    if conflicts:
        logger.debug("status_conflicts_resolved", conflicts=conflicts, policy=policy.value)
    return winners


def synthesize_issue(item: ProjectBoardItem) -> Issue:
    """Minimal issue record built from a board item alone."""
    return Issue(
        id=item.issue_id,
        number=item.number,
        title=item.title,
        url=item.url,
        state=item.state,
        created_at=item.created_at,
        closed_at=item.closed_at,
        repository=RepositoryRef(name_with_owner=item.repository),
        assignees=[],
        labels=[],
        milestone=None,
        issue_type=item.issue_type,
        project_status=item.status_name,
        project_item_id=item.project_item_id,
        is_partial=True,
    )


def join_project_status(
    issues: Iterable[Issue],
    boards: Iterable[ProjectBoard],
    policy: ConflictPolicy = ConflictPolicy.LAST_WINS,
    priority: Sequence[str] = (),
) -> List[Issue]:
    """
    Annotate repository issues with their board status.

    Returns repository issues in their original order with
    ``project_status`` set (None when on no board), followed by issues that
    only appear on boards, synthesized in board order.
    """
    winners = build_status_map(boards, policy=policy, priority=priority)

    joined: List[Issue] = []
    seen = set()
    for issue in issues:
        if issue.id in seen:
            continue
        seen.add(issue.id)
        item = winners.get(issue.id)
        joined.append(
            issue.model_copy(
                update={
                    "project_status": item.status_name if item else None,
                    "project_item_id": item.project_item_id if item else None,
                }
            )
        )

    synthesized = 0
    for issue_id, item in winners.items():
        if issue_id not in seen:
            joined.append(synthesize_issue(item))
            synthesized += 1

    logger.debug("join_complete", issues=len(joined), synthesized=synthesized)
    return joined
