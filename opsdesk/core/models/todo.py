from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import Field

from opsdesk.core.models.common import Record


class TodoItem(Record):
    todo_list_id: Optional[int] = None
    content: str
    is_completed: bool = False
    assigned_to: Optional[int] = None
    assigned_username: Optional[str] = None
    assigned_user_role: Optional[Literal["admin", "user"]] = None
    due_date: Optional[str] = None


class TodoList(Record):
    project_id: Optional[int] = None
    title: str
    items: List[TodoItem] = Field(default_factory=list)

    # colonnes jointes de la vue "toutes les listes"
    project_name: str = ""
    project_location: Optional[str] = None
    project_status: Optional[str] = None
