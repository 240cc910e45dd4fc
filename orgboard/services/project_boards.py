"""
Project-Board aggregator.

Paginates the organization's boards, then each board's items. The board's
"Status" single-select field and its option map are captured from the first
items page that exposes them; non-issue items are dropped.
"""

from typing import Any, Dict, Optional

from orgboard.api.pagination import Page, collect_pages
from orgboard.api.parsers import connection_nodes, find_status_field, parse_project_item
from orgboard.api.queries import ORG_PROJECTS_QUERY, PROJECT_ITEMS_QUERY
from orgboard.cache import CacheKeys
from orgboard.exceptions import RemoteQueryError
from orgboard.logging import LogContext, get_logger, log_timing
from orgboard.models import ProjectBoard, ProjectBoardItem, ProjectBoards
from orgboard.services.swr import OrgResource

logger = get_logger("services.project_boards")


class ProjectBoardAggregator(OrgResource[ProjectBoards]):
    """Organization project boards with their issue items and statuses."""

    model = ProjectBoards
    resource_kind = CacheKeys.PROJECT_BOARDS

    @property
    def ttl(self) -> int:
        return self.settings.cache_ttl_short

    @log_timing("project_boards_load")
    async def _load(self, org: str) -> ProjectBoards:
        async def fetch_projects(cursor: Optional[str]) -> Page[Dict[str, Any]]:
            data = await self.client.graphql(
                ORG_PROJECTS_QUERY,
                {"org": org, "after": cursor, "first": self.settings.projects_page_size},
            )
            org_node = data.get("organization")
            if not org_node:
                raise RemoteQueryError("Organization not found or access denied.")
            return Page.from_connection(org_node.get("projectsV2"))

        with LogContext(org=org, resource=self.resource_kind):
            projects = await collect_pages(fetch_projects)
            boards = [await self._load_board(project) for project in projects.nodes]

        logger.debug("project_boards_loaded", boards=len(boards))
        return ProjectBoards(org=org, boards=boards)

    async def _load_board(self, project: Dict[str, Any]) -> ProjectBoard:
        project_id = project["id"]
        status: Dict[str, Any] = {"field_id": None, "options": {}}

        async def fetch_items(cursor: Optional[str]) -> Page[ProjectBoardItem]:
            data = await self.client.graphql(
                PROJECT_ITEMS_QUERY,
                {"pid": project_id, "after": cursor, "first": self.settings.project_items_page_size},
            )
            node = data.get("node") or {}

            if status["field_id"] is None:
                field = find_status_field(connection_nodes(node.get("fields")))
                if field is not None:
                    status["field_id"] = field["id"]
                    status["options"] = {
                        o["name"]: o["id"] for o in (field.get("options") or []) if o.get("name")
                    }

            connection = node.get("items") or {}
            page = Page.from_connection(connection)
            items = [parse_project_item(n, project_id) for n in page.nodes]
            return Page(
                nodes=[item for item in items if item is not None],
                has_next_page=page.has_next_page,
                end_cursor=page.end_cursor,
            )

        items = await collect_pages(fetch_items)

        return ProjectBoard(
            id=project_id,
            number=project.get("number"),
            title=project.get("title") or "",
            url=project.get("url"),
            items=items.nodes,
            status_field_id=status["field_id"],
            status_options=status["options"],
        )
