"""Parse GitHub GraphQL/REST nodes into Orgboard models."""

from typing import Any, Dict, List, Optional

from orgboard.constants import (
    ISSUE_TYPENAME,
    SINGLE_SELECT_VALUE_TYPENAME,
    STATUS_FIELD_NAME,
)
from orgboard.models import (
    Actor,
    Issue,
    IssueTypeInfo,
    IssueTypeRef,
    Label,
    Milestone,
    ProjectBoardItem,
    RepositoryRef,
    TimelineEvent,
)


def connection_nodes(connection: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [n for n in ((connection or {}).get("nodes") or []) if n]


def _issue_type(node: Optional[Dict[str, Any]]) -> Optional[IssueTypeRef]:
    if not node or not node.get("id"):
        return None
    return IssueTypeRef(id=node["id"], name=node.get("name", ""), color=node.get("color"))


def parse_issue(node: Dict[str, Any]) -> Issue:
    """Parse a GraphQL issue node."""
    repo = node.get("repository") or {}
    milestone = node.get("milestone")

    return Issue(
        id=node["id"],
        number=node["number"],
        title=node.get("title") or "",
        body=node.get("body"),
        url=node.get("url") or "",
        state=node.get("state", "OPEN"),
        created_at=node["createdAt"],
        closed_at=node.get("closedAt"),
        repository=RepositoryRef(
            name_with_owner=repo.get("nameWithOwner", ""),
            url=repo.get("url"),
        ),
        assignees=[
            Actor(login=a["login"], avatar_url=a.get("avatarUrl"), url=a.get("url"))
            for a in connection_nodes(node.get("assignees"))
            if a.get("login")
        ],
        labels=[
            Label(id=l.get("id"), name=l["name"], color=l.get("color"))
            for l in connection_nodes(node.get("labels"))
            if l.get("name")
        ],
        milestone=Milestone(
            id=milestone["id"],
            title=milestone.get("title", ""),
            url=milestone.get("url"),
            due_on=milestone.get("dueOn"),
            description=milestone.get("description"),
        ) if milestone else None,
        issue_type=_issue_type(node.get("issueType")),
    )


def find_status_field(fields: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Return the board's "Status" single-select field, matched case-insensitively."""
    for field in fields:
        if (field.get("name") or "").lower() == STATUS_FIELD_NAME and field.get("id"):
            return field
    return None


def item_status(item: Dict[str, Any]) -> Optional[str]:
    """Status option name set on a board item, if any."""
    for value in connection_nodes(item.get("fieldValues")):
        if value.get("__typename") != SINGLE_SELECT_VALUE_TYPENAME:
            continue
        field_name = ((value.get("field") or {}).get("name") or "").lower()
        if field_name == STATUS_FIELD_NAME and value.get("name"):
            return value["name"]
    return None


def parse_project_item(item: Dict[str, Any], project_id: str) -> Optional[ProjectBoardItem]:
    """
    Parse a board item node.

    Returns None for draft issues, pull requests and items whose content is
    not visible to the token.
    """
    content = item.get("content")
    if not content or content.get("__typename") != ISSUE_TYPENAME:
        return None

    return ProjectBoardItem(
        project_item_id=item["id"],
        project_id=project_id,
        issue_id=content["id"],
        status_name=item_status(item),
        number=content["number"],
        title=content.get("title") or "",
        url=content.get("url") or "",
        state=content.get("state", "OPEN"),
        created_at=content["createdAt"],
        closed_at=content.get("closedAt"),
        repository=(content.get("repository") or {}).get("nameWithOwner", ""),
        issue_type=_issue_type(content.get("issueType")),
    )


def parse_issue_type(data: Dict[str, Any]) -> IssueTypeInfo:
    """Parse one entry of ``GET /orgs/{org}/issue-types``."""
    return IssueTypeInfo(
        id=str(data.get("node_id") or data["id"]),
        name=data.get("name", ""),
        color=data.get("color"),
        description=data.get("description"),
        is_enabled=data.get("is_enabled", True),
    )


def parse_timeline_item(node: Dict[str, Any]) -> TimelineEvent:
    """Flatten one timeline node; type-specific fields go into ``details``."""
    typename = node.get("__typename", "Unknown")
    actor = node.get("actor") or node.get("author") or {}
    details: Dict[str, Any] = {}

    if node.get("label"):
        details["label"] = node["label"].get("name")
    if node.get("assignee"):
        details["assignee"] = node["assignee"].get("login")
    if typename == "IssueComment":
        details["body"] = node.get("body") or ""
    source = node.get("source")
    if source:
        details["source"] = {
            "type": source.get("__typename"),
            "number": source.get("number"),
            "url": source.get("url"),
            "title": source.get("title"),
        }

    return TimelineEvent(
        type=typename,
        created_at=node.get("createdAt"),
        actor=actor.get("login"),
        details=details,
    )
