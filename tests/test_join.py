"""
Tests for the project-status join.
"""

from datetime import datetime, timezone

import pytest

from orgboard.constants import NO_STATUS
from orgboard.exceptions import StatusConflictError
from orgboard.models import (
    ConflictPolicy,
    Issue,
    IssueState,
    ProjectBoard,
    ProjectBoardItem,
    RepositoryRef,
)
from orgboard.services.join import build_status_map, join_project_status

CREATED = datetime(2024, 5, 1, tzinfo=timezone.utc)


def make_issue(issue_id, number=1):
    return Issue(
        id=issue_id,
        number=number,
        title=f"Issue {issue_id}",
        url=f"https://github.com/acme/web/issues/{number}",
        state=IssueState.OPEN,
        created_at=CREATED,
        repository=RepositoryRef(name_with_owner="acme/web"),
    )


def make_item(issue_id, status, project_id="P1", number=1, repo="acme/web"):
    return ProjectBoardItem(
        project_item_id=f"{project_id}-{issue_id}",
        project_id=project_id,
        issue_id=issue_id,
        status_name=status,
        number=number,
        title=f"Issue {issue_id}",
        url=f"https://github.com/{repo}/issues/{number}",
        state=IssueState.OPEN,
        created_at=CREATED,
        repository=repo,
    )


def make_board(board_id, items, title=None):
    return ProjectBoard(id=board_id, number=1, title=title or board_id, items=items)


class TestJoinProjectStatus:
    """Tests for join_project_status."""

    def test_annotates_and_synthesizes(self):
        """Test A on no board, B on a board, C only on a board."""
        issues = [make_issue("A", 1), make_issue("B", 2)]
        boards = [
            make_board(
                "P1",
                [make_item("B", "Done", number=2), make_item("C", "Backlog", number=3, repo="acme/api")],
            )
        ]

        joined = join_project_status(issues, boards)

        assert [(i.id, i.project_status, i.is_partial) for i in joined] == [
            ("A", None, False),
            ("B", "Done", False),
            ("C", "Backlog", True),
        ]
        synthesized = joined[2]
        assert synthesized.assignees == []
        assert synthesized.labels == []
        assert synthesized.milestone is None
        assert synthesized.repository.name_with_owner == "acme/api"
        assert synthesized.project_item_id == "P1-C"

    def test_inputs_are_not_mutated(self):
        """Test the join copies issues instead of editing them."""
        issues = [make_issue("B")]

        join_project_status(issues, [make_board("P1", [make_item("B", "Done")])])

        assert issues[0].project_status is None

    def test_no_boards(self):
        """Test every issue gets a null status without boards."""
        joined = join_project_status([make_issue("A")], [])

        assert joined[0].project_status is None

    def test_duplicate_repository_issue_kept_once(self):
        """Test the same issue id from the repository walk appears once."""
        joined = join_project_status([make_issue("A"), make_issue("A")], [])

        assert len(joined) == 1

    def test_synthesized_issue_on_two_boards_appears_once(self):
        """Test board-only issues are synthesized once."""
        boards = [
            make_board("P1", [make_item("C", "Backlog")]),
            make_board("P2", [make_item("C", "Done", project_id="P2")]),
        ]

        joined = join_project_status([], boards)

        assert [(i.id, i.project_status) for i in joined] == [("C", "Done")]


class TestConflictPolicies:
    """Tests for issues on several boards."""

    @pytest.fixture
    def boards(self):
        return [
            make_board("P1", [make_item("X", "Backlog")], title="Roadmap"),
            make_board("P2", [make_item("X", "Done", project_id="P2")], title="Sprint"),
        ]

    def test_last_wins_by_default(self, boards):
        """Test the last processed board wins."""
        assert build_status_map(boards)["X"].status_name == "Done"

    def test_first_wins(self, boards):
        """Test the first processed board wins."""
        winners = build_status_map(boards, policy=ConflictPolicy.FIRST_WINS)

        assert winners["X"].status_name == "Backlog"

    def test_priority_by_title(self, boards):
        """Test listed boards win in list order."""
        winners = build_status_map(boards, policy=ConflictPolicy.PRIORITY, priority=["Roadmap"])

        assert winners["X"].status_name == "Backlog"

    def test_priority_by_id(self, boards):
        """Test priority accepts board ids."""
        winners = build_status_map(boards, policy=ConflictPolicy.PRIORITY, priority=["P2", "P1"])

        assert winners["X"].status_name == "Done"

    def test_priority_unlisted_boards_keep_order(self, boards):
        """Test unlisted boards tie and the first processed wins."""
        winners = build_status_map(boards, policy=ConflictPolicy.PRIORITY, priority=["Other"])

        assert winners["X"].status_name == "Backlog"

    def test_strict_raises_on_conflict(self, boards):
        """Test differing statuses fail under the strict policy."""
        with pytest.raises(StatusConflictError) as exc_info:
            build_status_map(boards, policy=ConflictPolicy.STRICT)

        assert exc_info.value.issue_id == "X"
        assert exc_info.value.statuses == ["Backlog", "Done"]

    def test_strict_allows_agreeing_boards(self):
        """Test identical statuses are not a conflict."""
        boards = [
            make_board("P1", [make_item("X", "Done")]),
            make_board("P2", [make_item("X", "Done", project_id="P2")]),
        ]

        winners = build_status_map(boards, policy=ConflictPolicy.STRICT)

        assert winners["X"].project_id == "P1"

    def test_strict_treats_null_status_as_its_own_value(self):
        """Test a board without a column for the issue conflicts with one that has it."""
        boards = [
            make_board("P1", [make_item("X", None)]),
            make_board("P2", [make_item("X", "Done", project_id="P2")]),
        ]

        with pytest.raises(StatusConflictError) as exc_info:
            build_status_map(boards, policy=ConflictPolicy.STRICT)

        assert exc_info.value.statuses == [NO_STATUS, "Done"]

    def test_strict_allows_two_null_statuses(self):
        """Test two boards that both leave the issue unplaced agree."""
        boards = [
            make_board("P1", [make_item("X", None)]),
            make_board("P2", [make_item("X", None, project_id="P2")]),
        ]

        winners = build_status_map(boards, policy=ConflictPolicy.STRICT)

        assert winners["X"].status_name is None
