from __future__ import annotations

from typing import Any, Dict, List, Mapping

from opsdesk.core.models.common import parse_record, parse_records
from opsdesk.core.models.todo import TodoItem, TodoList
from opsdesk.core.services.listing import remove_by_id, replace_by_id
from opsdesk.core.storage.api_repo import ApiClient, ApiRepository


def _with_item(lists: List[TodoList], item: TodoItem) -> List[TodoList]:
    out: List[TodoList] = []
    for lst in lists:
        if any(i.id == item.id for i in lst.items):
            lst = lst.model_copy(update={"items": replace_by_id(lst.items, item)})
        out.append(lst)
    return out


def _without_item(lists: List[TodoList], item_id: int) -> List[TodoList]:
    return [lst.model_copy(update={"items": remove_by_id(lst.items, item_id)}) for lst in lists]


def flatten_items(lists: List[TodoList]) -> List[TodoItem]:
    """Toutes les tâches, chacune rattachée à sa liste."""
    return [i if i.todo_list_id is not None else i.model_copy(update={"todo_list_id": lst.id})
            for lst in lists for i in lst.items]


class TodoService:
    def __init__(self, client: ApiClient):
        self.lists = ApiRepository(client, "todos", "todoLists", "todoList", entity_name="todo list")
        self.items = ApiRepository(client, "todos/items", "items", "item", entity_name="task")

    def get_all_todo_lists(self) -> List[TodoList]:
        rows = self.lists.list_all("all", fallback="Failed to load todo lists")
        return parse_records(TodoList, rows)

    def create_todo_item(self, list_id: int, content: str) -> TodoItem:
        body = self.lists.post_action("lists", list_id, "items", payload={"content": content.strip()},
                                      fallback="Failed to create task")
        return parse_record(TodoItem, self.items.unwrap(body), "Failed to create task")

    def update_todo_item(self, item_id: int, changes: Mapping[str, Any]) -> TodoItem:
        data = self.items.update(item_id, changes, fallback="Failed to update task")
        return parse_record(TodoItem, data, "Failed to update task")

    def toggle_item(self, lists: List[TodoList], item: TodoItem) -> List[TodoList]:
        """Bascule côté serveur puis remplace l'élément renvoyé (par id) dans les listes."""
        updated = self.update_todo_item(item.id, {"is_completed": not item.is_completed})
        return _with_item(lists, updated)

    def assign_item(self, lists: List[TodoList], item_id: int, user_id: Any) -> List[TodoList]:
        assigned: Dict[str, Any] = {"assigned_to": None if user_id in (None, "") else int(user_id)}
        updated = self.update_todo_item(item_id, assigned)
        return _with_item(lists, updated)

    def delete_todo_item(self, lists: List[TodoList], item_id: int) -> List[TodoList]:
        self.items.delete(item_id, fallback="Failed to delete task")
        return _without_item(lists, item_id)
