"""Project-board and issue-type schemas."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .enums import IssueState
from .issue import IssueTypeRef


class ProjectBoardItem(BaseModel):
    """
    Issue card on a project board.

    Carries the partial issue fields the board query returns so the join
    can synthesize issues missing from the repository walk.
    """
    project_item_id: str
    project_id: str
    issue_id: str
    status_name: Optional[str] = None
    number: int
    title: str
    url: str
    state: IssueState
    created_at: datetime
    closed_at: Optional[datetime] = None
    repository: str = ""
    issue_type: Optional[IssueTypeRef] = None


class ProjectBoard(BaseModel):
    """Project board with its issue items and Status field options."""
    id: str
    number: Optional[int] = None
    title: str
    url: Optional[str] = None
    items: List[ProjectBoardItem] = Field(default_factory=list)
    status_field_id: Optional[str] = None
    status_options: Dict[str, str] = Field(
        default_factory=dict, description="Status option name -> option id"
    )


class ProjectBoards(BaseModel):
    """Aggregated snapshot of the organization's project boards."""
    org: str
    boards: List[ProjectBoard] = Field(default_factory=list)


class IssueTypeInfo(BaseModel):
    """Entry of the organization issue-type taxonomy."""
    id: str
    name: str
    color: Optional[str] = None
    description: Optional[str] = None
    is_enabled: bool = True


class IssueTypes(BaseModel):
    """Aggregated snapshot of the organization's issue types."""
    org: str
    types: List[IssueTypeInfo] = Field(default_factory=list)
