"""
Tests for the project-board aggregator.
"""

import pytest

from orgboard.api.queries import ORG_PROJECTS_QUERY, PROJECT_ITEMS_QUERY
from orgboard.exceptions import RemoteQueryError
from orgboard.services import ProjectBoardAggregator
from tests.factories import (
    board_item,
    connection,
    issue_content,
    project_items_response,
    project_node,
    status_field,
)


def boards_handler(projects, items_by_project):
    """
    GraphQL handler for a set of boards.

    ``items_by_project`` maps project id to a list of items responses, one
    per page; cursors are page indexes.
    """

    def handler(query, variables):
        if query == ORG_PROJECTS_QUERY:
            return {"organization": {"projectsV2": connection(projects)}}
        assert query == PROJECT_ITEMS_QUERY
        pages = items_by_project[variables["pid"]]
        index = 0 if variables["after"] is None else int(variables["after"])
        return pages[index]

    return handler


@pytest.fixture
def aggregator(fake_client, cache, settings):
    return ProjectBoardAggregator(fake_client, cache, settings)


class TestProjectBoardsLoad:
    """Tests for the board walk."""

    @pytest.mark.asyncio
    async def test_collects_items_with_status(self, aggregator, fake_client):
        """Test board items carry their Status option."""
        fake_client.graphql_handler = boards_handler(
            [project_node("P1", title="Sprint")],
            {
                "P1": [
                    project_items_response(
                        [
                            board_item("PI1", issue_content("I1", 1), status="Done"),
                            board_item("PI2", issue_content("I2", 2)),
                        ],
                        fields=[status_field()],
                    )
                ]
            },
        )

        result = await aggregator.fetch("acme")

        board = result.boards[0]
        assert board.title == "Sprint"
        assert [(i.issue_id, i.status_name) for i in board.items] == [("I1", "Done"), ("I2", None)]
        assert board.items[0].project_item_id == "PI1"
        assert board.items[0].repository == "acme/web"

    @pytest.mark.asyncio
    async def test_status_field_discovered_on_later_page(self, aggregator, fake_client):
        """Test the Status field is captured from the first page exposing it."""
        fake_client.graphql_handler = boards_handler(
            [project_node("P1")],
            {
                "P1": [
                    project_items_response(
                        [board_item("PI1", issue_content("I1"))], fields=[], has_next=True, cursor="1"
                    ),
                    project_items_response(
                        [board_item("PI2", issue_content("I2", 2), status="Backlog")],
                        fields=[{"id": "F_other", "name": "Priority"}, status_field(name="status")],
                    ),
                ]
            },
        )

        result = await aggregator.fetch("acme")

        board = result.boards[0]
        assert board.status_field_id == "F_status"
        assert board.status_options == {
            "Backlog": "O_Backlog",
            "In Progress": "O_In Progress",
            "Done": "O_Done",
        }
        assert [i.issue_id for i in board.items] == ["I1", "I2"]

    @pytest.mark.asyncio
    async def test_non_issue_items_are_dropped(self, aggregator, fake_client):
        """Test drafts, pull requests and hidden content are filtered out."""
        fake_client.graphql_handler = boards_handler(
            [project_node("P1")],
            {
                "P1": [
                    project_items_response(
                        [
                            board_item("PI1", {"__typename": "DraftIssue", "title": "draft"}),
                            board_item("PI2", {"__typename": "PullRequest", "id": "PR1"}),
                            board_item("PI3", None),
                            board_item("PI4", issue_content("I4", 4), status="Done"),
                        ],
                        fields=[status_field()],
                    )
                ]
            },
        )

        result = await aggregator.fetch("acme")

        assert [i.issue_id for i in result.boards[0].items] == ["I4"]

    @pytest.mark.asyncio
    async def test_boards_without_status_field(self, aggregator, fake_client):
        """Test a board lacking a Status field yields items with no status."""
        fake_client.graphql_handler = boards_handler(
            [project_node("P1")],
            {"P1": [project_items_response([board_item("PI1", issue_content("I1"))])]},
        )

        result = await aggregator.fetch("acme")

        board = result.boards[0]
        assert board.status_field_id is None
        assert board.status_options == {}
        assert board.items[0].status_name is None

    @pytest.mark.asyncio
    async def test_multiple_boards_keep_order(self, aggregator, fake_client):
        """Test boards are returned in the order GitHub lists them."""
        fake_client.graphql_handler = boards_handler(
            [project_node("P1", 1), project_node("P2", 2)],
            {
                "P1": [project_items_response([board_item("PI1", issue_content("I1"))])],
                "P2": [project_items_response([board_item("PI2", issue_content("I1"))])],
            },
        )

        result = await aggregator.fetch("acme")

        assert [b.id for b in result.boards] == ["P1", "P2"]

    @pytest.mark.asyncio
    async def test_missing_organization(self, aggregator, fake_client):
        """Test a null organization is reported as not found."""
        fake_client.graphql_handler = lambda query, variables: {"organization": None}

        with pytest.raises(RemoteQueryError):
            await aggregator.fetch("nope")
