from __future__ import annotations

from datetime import datetime
from typing import Optional, TypedDict


# PUBLIC_INTERFACE
class PhotoAttachment(TypedDict):
    """
    Link between a todo and its normalized photo in the object store.

    Fields:
    - storage_key: object store key, 'todos/<todoId>/<epochMillis>.jpg'
    - created_at: when the photo was stored
    """

    storage_key: str
    created_at: datetime


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    A lightweight domain model representing a Todo item held in memory.

    Fields:
    - id: Unique integer identifier, never reused
    - text: Non-empty trimmed text
    - completed: Boolean completion flag
    - photo: The live photo attachment, if any
    - created_at: Creation timestamp
    """

    id: int
    text: str
    completed: bool
    photo: Optional[PhotoAttachment]
    created_at: datetime
