from __future__ import annotations

import re
from typing import Any, List, Optional, Tuple

from fastapi import APIRouter, Body, Depends, Request, Response, status
from starlette.datastructures import UploadFile

from ..errors import NotFoundError, ValidationError
from ..photos import PhotoAttachmentManager
from ..repositories import InMemoryTodoRegistry
from ..schemas import ErrorOut, PhotoUrlOut, TodoOut, TodoUpdate

router = APIRouter(
    prefix="/api/todos",
    tags=["todos"],
)


def _get_registry(request: Request) -> InMemoryTodoRegistry:
    """
    Dependency returning the process-wide registry created by create_app.
    """
    return request.app.state.registry


def _get_photos(request: Request) -> PhotoAttachmentManager:
    return request.app.state.photos


_ID_PATTERN = re.compile(r"[0-9]+")


def _parse_id(raw_id: str) -> int:
    # Ids that are not plain decimal integers can never match a todo.
    if not _ID_PATTERN.fullmatch(raw_id):
        raise NotFoundError("Todo not found")
    return int(raw_id)


def _uploaded_file(value: Any) -> Optional[UploadFile]:
    if isinstance(value, UploadFile) and value.filename:
        return value
    return None


async def _read_create_payload(request: Request) -> Tuple[Any, Optional[UploadFile]]:
    """
    Extract ``text`` and the optional ``photo`` upload from a create request.

    Multipart and urlencoded forms are the primary format; a JSON body with a
    ``text`` member is accepted as well.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise ValidationError("Todo text is required") from None
        return (body.get("text") if isinstance(body, dict) else None), None

    form = await request.form()
    return form.get("text"), _uploaded_file(form.get("photo"))


_NOT_FOUND = {404: {"model": ErrorOut, "description": "Todo not found"}}


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[TodoOut],
    summary="List Todos",
    description="Return every todo in creation order.",
)
def list_todos(registry: InMemoryTodoRegistry = Depends(_get_registry)) -> List[TodoOut]:
    return [TodoOut.from_entity(t) for t in registry.list()]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TodoOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description=(
        "Create a todo from form field `text`, optionally with a JPEG file field `photo` (max 5 MiB).\n\n"
        "If the photo cannot be processed or photo storage is unavailable, the todo is still "
        "created without a photo."
    ),
    responses={
        201: {"description": "Todo created successfully"},
        400: {"model": ErrorOut, "description": "Text missing or photo rejected"},
    },
)
async def create_todo(
    request: Request,
    registry: InMemoryTodoRegistry = Depends(_get_registry),
    photos: PhotoAttachmentManager = Depends(_get_photos),
) -> TodoOut:
    """
    Create a new Todo, attaching the uploaded photo when possible.
    """
    text, upload = await _read_create_payload(request)
    raw: Optional[bytes] = None
    if upload is not None:
        raw = await upload.read(photos.max_bytes + 1)
        photos.validate_upload(raw, upload.content_type)

    created = registry.create(text)
    if raw is None:
        return TodoOut.from_entity(created)

    outcome = await photos.attach_best_effort(created["id"], raw, upload.content_type)
    return TodoOut.from_entity(outcome.todo)


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Update Todo",
    description="Set `completed`. Values that are not booleans leave the todo unchanged.",
    responses={200: {"description": "Todo updated"}, **_NOT_FOUND},
)
def update_todo(
    todo_id: str,
    payload: Any = Body(default=None),
    registry: InMemoryTodoRegistry = Depends(_get_registry),
) -> TodoOut:
    """
    Update the completion flag of a Todo.
    """
    tid = _parse_id(todo_id)
    update = TodoUpdate.model_validate(payload) if isinstance(payload, dict) else TodoUpdate()
    updated = registry.set_completed(tid, update.completed)
    return TodoOut.from_entity(updated)


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete Todo",
    description="Delete a todo and, best effort, its stored photo.",
    responses={204: {"description": "Todo deleted"}, **_NOT_FOUND},
)
async def delete_todo(todo_id: str, photos: PhotoAttachmentManager = Depends(_get_photos)) -> Response:
    """
    Delete a Todo. Returns 204 on success, 404 if not found.
    """
    await photos.remove_todo(_parse_id(todo_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}/photo",
    response_model=PhotoUrlOut,
    summary="Get Photo URL",
    description="Return a signed URL for the todo's photo, valid for one hour.",
    responses={
        404: {"model": ErrorOut, "description": "Todo or photo not found"},
        500: {"model": ErrorOut, "description": "URL generation failed"},
    },
)
async def get_photo_url(todo_id: str, photos: PhotoAttachmentManager = Depends(_get_photos)) -> PhotoUrlOut:
    url = await photos.resolve_url(_parse_id(todo_id))
    return PhotoUrlOut(photo_url=url)


# PUBLIC_INTERFACE
@router.post(
    "/{todo_id}/photo",
    response_model=TodoOut,
    summary="Attach Photo",
    description="Attach or replace the todo's photo from multipart file field `photo`.",
    responses={
        400: {"model": ErrorOut, "description": "No file or invalid file"},
        404: {"model": ErrorOut, "description": "Todo not found"},
        500: {"model": ErrorOut, "description": "Storage not configured, processing or upload failed"},
    },
)
async def attach_photo(
    todo_id: str,
    request: Request,
    registry: InMemoryTodoRegistry = Depends(_get_registry),
    photos: PhotoAttachmentManager = Depends(_get_photos),
) -> TodoOut:
    """
    Attach a photo to an existing Todo, replacing any previous one.
    """
    tid = _parse_id(todo_id)
    registry.require(tid)

    form = await request.form()
    upload = _uploaded_file(form.get("photo"))
    if upload is None:
        raise ValidationError("No photo file provided")

    raw = await upload.read(photos.max_bytes + 1)
    updated = await photos.attach(tid, raw, upload.content_type)
    return TodoOut.from_entity(updated)


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}/photo",
    response_model=TodoOut,
    summary="Remove Photo",
    description="Detach the todo's photo and delete it from storage.",
    responses={404: {"model": ErrorOut, "description": "Todo or photo not found"}},
)
async def remove_photo(todo_id: str, photos: PhotoAttachmentManager = Depends(_get_photos)) -> TodoOut:
    updated = await photos.detach(_parse_id(todo_id))
    return TodoOut.from_entity(updated)
