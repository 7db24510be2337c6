from __future__ import annotations

from datetime import datetime
from threading import RLock
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger

from .errors import NotFoundError, ValidationError
from .models import PhotoAttachment, TodoEntity

WELCOME_TODOS = ("Welcome to your todo app!", "Add your first todo")


def _copy(entity: TodoEntity) -> TodoEntity:
    copied = entity.copy()
    if entity["photo"] is not None:
        copied["photo"] = entity["photo"].copy()
    return copied


# PUBLIC_INTERFACE
class InMemoryTodoRegistry:
    """
    Process-scoped, in-memory collection of todos.

    Records are kept in insertion order and ids are handed out from a counter
    that only moves forward, so an id is never reused even after deletion.
    Every read returns copies to avoid external mutation.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[int, TodoEntity] = {}
        self._next_id = 1

    def _now(self) -> datetime:
        return datetime.now()

    def _allocate_id(self) -> int:
        with self._lock:
            i = self._next_id
            self._next_id += 1
            return i

    def _require_locked(self, todo_id: int) -> TodoEntity:
        item = self._items.get(todo_id)
        if item is None:
            raise NotFoundError("Todo not found")
        return item

    def seed(self, texts: Iterable[str]) -> List[TodoEntity]:
        """Create the initial records (e.g. the welcome todos)."""
        return [self.create(t) for t in texts]

    def create(self, text: Any) -> TodoEntity:
        """
        Create a todo from raw text.

        Raises:
            ValidationError: text is missing, not a string, or blank after trimming.
        """
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Todo text is required")
        entity: TodoEntity = {
            "id": self._allocate_id(),
            "text": text.strip(),
            "completed": False,
            "photo": None,
            "created_at": self._now(),
        }
        with self._lock:
            self._items[entity["id"]] = entity
        logger.debug("Created todo {todo_id}", todo_id=entity["id"])
        return _copy(entity)

    def get(self, todo_id: int) -> Optional[TodoEntity]:
        with self._lock:
            item = self._items.get(todo_id)
            return None if item is None else _copy(item)

    def require(self, todo_id: int) -> TodoEntity:
        """Return the todo or raise NotFoundError."""
        with self._lock:
            return _copy(self._require_locked(todo_id))

    def list(self) -> List[TodoEntity]:
        with self._lock:
            return [_copy(t) for t in self._items.values()]

    def count(self) -> int:
        with self._lock:
            return len(self._items)

    def set_completed(self, todo_id: int, completed: Any) -> TodoEntity:
        """
        Update the completion flag.

        A non-boolean value leaves the record untouched; only an unknown id is
        an error.
        """
        with self._lock:
            item = self._require_locked(todo_id)
            if isinstance(completed, bool):
                item["completed"] = completed
            return _copy(item)

    def set_photo(self, todo_id: int, photo: Optional[PhotoAttachment]) -> TodoEntity:
        """Replace the attachment slot of a todo (None clears it)."""
        with self._lock:
            item = self._require_locked(todo_id)
            item["photo"] = None if photo is None else photo.copy()
            return _copy(item)

    def delete(self, todo_id: int) -> TodoEntity:
        """Remove a todo and return the removed record."""
        with self._lock:
            removed = self._items.pop(todo_id, None)
        if removed is None:
            raise NotFoundError("Todo not found")
        logger.debug("Deleted todo {todo_id}", todo_id=todo_id)
        return removed


# PUBLIC_INTERFACE
def build_registry(seed_todos: bool = True) -> InMemoryTodoRegistry:
    """Create a registry, optionally seeded with the welcome todos."""
    registry = InMemoryTodoRegistry()
    if seed_todos:
        registry.seed(WELCOME_TODOS)
    return registry
