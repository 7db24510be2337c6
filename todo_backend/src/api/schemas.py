from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import TodoEntity


# PUBLIC_INTERFACE
class TodoUpdate(BaseModel):
    """
    Schema for updating an existing Todo item.

    ``completed`` is accepted as any JSON value: only a real boolean changes
    the todo, anything else leaves it as it was.
    """

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={"example": {"completed": True}},
    )

    completed: Optional[Any] = Field(default=None, description="New completion status flag")


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """
    Schema returned by the API for a Todo item.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": 3,
                "text": "Buy milk",
                "completed": False,
                "hasPhoto": True,
                "photoFilename": "todos/3/1735689600000.jpg",
            }
        },
    )

    id: int = Field(..., description="Unique identifier of the todo item")
    text: str = Field(..., description="Todo text")
    completed: bool = Field(..., description="Completion status flag")
    has_photo: bool = Field(..., alias="hasPhoto", description="Whether a photo is attached")
    photo_filename: Optional[str] = Field(
        default=None, alias="photoFilename", description="Object store key of the attached photo"
    )

    @classmethod
    def from_entity(cls, entity: TodoEntity) -> "TodoOut":
        photo = entity["photo"]
        return cls(
            id=entity["id"],
            text=entity["text"],
            completed=entity["completed"],
            has_photo=photo is not None,
            photo_filename=photo["storage_key"] if photo is not None else None,
        )


# PUBLIC_INTERFACE
class PhotoUrlOut(BaseModel):
    """Signed, time-limited URL for a todo's photo."""

    model_config = ConfigDict(populate_by_name=True)

    photo_url: str = Field(..., alias="photoUrl", description="Time-limited read URL")


# PUBLIC_INTERFACE
class HealthOut(BaseModel):
    """Service health and runtime environment summary."""

    status: str = Field(..., description="Always 'healthy' when the service answers")
    timestamp: str = Field(..., description="Current server time, ISO8601 UTC")
    todos: int = Field(..., description="Number of todos currently held")
    environment: Dict[str, Any] = Field(..., description="Runtime environment details")


# PUBLIC_INTERFACE
class ErrorOut(BaseModel):
    """Body of every error response."""

    error: str = Field(..., description="Human readable error message")
