"""
Photo attachment lifecycle.

The manager is the only component that coordinates the image normalizer, the
object store and the attachment slot of a todo. Its operations follow one
protocol: validate -> normalize -> store -> link, and later relink or unlink.

Failure handling is explicit rather than exception suppression:
- ``attach`` / ``detach`` / ``resolve_url`` raise for the dedicated photo endpoints;
- ``attach_best_effort`` reports an ``AttachOutcome`` so todo creation can
  proceed without a photo;
- cleanup deletes report a ``CleanupResult`` and never raise.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Optional

from loguru import logger

from .errors import NotConfiguredError, NotFoundError, StorageError, TransformError, ValidationError
from .images import normalize_jpeg
from .models import PhotoAttachment, TodoEntity
from .repositories import InMemoryTodoRegistry
from .settings import DEFAULT_MAX_PHOTO_BYTES, DEFAULT_PHOTO_URL_TTL_SECONDS
from .storage import ObjectStore

ACCEPTED_MIME_TYPE = "image/jpeg"
STORED_CONTENT_TYPE = "image/jpeg"

Normalizer = Callable[[bytes], bytes]


class AttachStatus(str, Enum):
    ATTACHED = "attached"
    SKIPPED = "skipped"  # store not configured
    FAILED = "failed"


class CleanupResult(str, Enum):
    DELETED = "deleted"
    SKIPPED = "skipped"  # nothing linked, or no store to delete from
    FAILED = "failed"


@dataclass(frozen=True)
class AttachOutcome:
    """Result of an implicit attach: the todo as it now stands and what happened to the photo."""

    todo: TodoEntity
    status: AttachStatus
    reason: Optional[str] = None

    @property
    def attached(self) -> bool:
        return self.status is AttachStatus.ATTACHED


def storage_key_for(todo_id: int, epoch_millis: int) -> str:
    return f"todos/{todo_id}/{epoch_millis}.jpg"


def _epoch_millis() -> int:
    return int(time.time() * 1000)


# PUBLIC_INTERFACE
class PhotoAttachmentManager:
    """
    Attach, replace, detach and sign photos for todos held in the registry.

    Operations on the same todo id are serialized with a per-todo asyncio lock;
    the normalizer and object store calls run in worker threads so the event
    loop keeps serving other requests while they are in flight.
    """

    def __init__(
        self,
        registry: InMemoryTodoRegistry,
        store: ObjectStore,
        normalizer: Normalizer = normalize_jpeg,
        *,
        max_bytes: int = DEFAULT_MAX_PHOTO_BYTES,
        url_ttl: int = DEFAULT_PHOTO_URL_TTL_SECONDS,
        clock_ms: Callable[[], int] = _epoch_millis,
    ) -> None:
        self._registry = registry
        self._store = store
        self._normalizer = normalizer
        self._max_bytes = max_bytes
        self._url_ttl = url_ttl
        self._clock_ms = clock_ms
        self._locks: Dict[int, asyncio.Lock] = {}
        self._last_millis: Dict[int, int] = {}

    @property
    def storage_configured(self) -> bool:
        return self._store.is_configured()

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    def _lock_for(self, todo_id: int) -> asyncio.Lock:
        # Only existing todos get a lock, so unknown ids cannot grow the map.
        self._registry.require(todo_id)
        return self._locks.setdefault(todo_id, asyncio.Lock())

    def _next_storage_key(self, todo_id: int) -> str:
        # Keys stay unique per todo even when two attaches land in the same millisecond.
        millis = max(self._clock_ms(), self._last_millis.get(todo_id, -1) + 1)
        self._last_millis[todo_id] = millis
        return storage_key_for(todo_id, millis)

    def validate_upload(self, raw: bytes, mime_type: Optional[str]) -> None:
        """
        Check the upload before anything else happens.

        Raises:
            ValidationError: wrong content type, empty payload, or payload above the size cap.
        """
        normalized_type = (mime_type or "").split(";", 1)[0].strip().lower()
        if normalized_type != ACCEPTED_MIME_TYPE:
            raise ValidationError("Only JPEG images are allowed")
        if not raw:
            raise ValidationError("Photo file is empty")
        if len(raw) > self._max_bytes:
            raise ValidationError(f"Photo exceeds the maximum size of {self._max_bytes} bytes")

    async def _delete_quietly(self, key: str) -> CleanupResult:
        try:
            await asyncio.to_thread(self._store.delete, key)
        except NotConfiguredError:
            logger.info("Photo storage not configured; treating {key} as already removed", key=key)
            return CleanupResult.SKIPPED
        except StorageError as exc:
            logger.warning("Could not delete photo {key}: {error}", key=key, error=exc.message)
            return CleanupResult.FAILED
        return CleanupResult.DELETED

    async def attach(self, todo_id: int, raw: bytes, mime_type: Optional[str]) -> TodoEntity:
        """
        Normalize ``raw`` and link it to the todo, replacing any previous photo.

        Raises:
            ValidationError: the upload failed validation (no side effects).
            NotFoundError: the todo does not exist.
            NotConfiguredError: no object store is configured.
            TransformError: the image could not be normalized.
            StorageError: storing the new photo failed. If the old photo was
                already deleted at that point, the todo is left without a photo.
        """
        self.validate_upload(raw, mime_type)
        async with self._lock_for(todo_id):
            todo = self._registry.require(todo_id)
            if not self._store.is_configured():
                raise NotConfiguredError()

            optimized = await asyncio.to_thread(self._normalizer, raw)

            previous = todo["photo"]
            if previous is not None:
                cleanup = await self._delete_quietly(previous["storage_key"])
                if cleanup is CleanupResult.DELETED:
                    self._registry.set_photo(todo_id, None)

            key = self._next_storage_key(todo_id)
            try:
                await asyncio.to_thread(self._store.put, key, optimized, STORED_CONTENT_TYPE)
            except StorageError as exc:
                logger.error("Upload of {key} failed: {error}", key=key, error=exc.message)
                raise

            attachment: PhotoAttachment = {"storage_key": key, "created_at": datetime.now()}
            updated = self._registry.set_photo(todo_id, attachment)
            logger.info("Attached photo {key} to todo {todo_id}", key=key, todo_id=todo_id)
            return updated

    async def attach_best_effort(self, todo_id: int, raw: bytes, mime_type: Optional[str]) -> AttachOutcome:
        """
        Attach a photo as part of another flow (todo creation).

        Missing storage, transform failures and storage failures do not raise;
        the outcome says whether the photo made it. Validation is expected to
        have happened before the todo was created.
        """
        try:
            todo = await self.attach(todo_id, raw, mime_type)
        except NotConfiguredError:
            logger.info("Photo for todo {todo_id} skipped: storage not configured", todo_id=todo_id)
            return AttachOutcome(self._registry.require(todo_id), AttachStatus.SKIPPED, "Photo storage is not configured")
        except (TransformError, StorageError) as exc:
            logger.warning("Photo for todo {todo_id} not attached: {error}", todo_id=todo_id, error=exc.message)
            return AttachOutcome(self._registry.require(todo_id), AttachStatus.FAILED, exc.message)
        return AttachOutcome(todo, AttachStatus.ATTACHED)

    async def detach(self, todo_id: int) -> TodoEntity:
        """
        Unlink the todo's photo and delete it from the store.

        The attachment slot is cleared even when the delete fails.

        Raises:
            NotFoundError: the todo does not exist or has no photo.
        """
        async with self._lock_for(todo_id):
            todo = self._registry.require(todo_id)
            photo = todo["photo"]
            if photo is None:
                raise NotFoundError("Todo has no photo")
            await self._delete_quietly(photo["storage_key"])
            logger.info("Detached photo {key} from todo {todo_id}", key=photo["storage_key"], todo_id=todo_id)
            return self._registry.set_photo(todo_id, None)

    async def resolve_url(self, todo_id: int) -> str:
        """
        Return a time-limited read URL for the todo's photo.

        Raises:
            NotFoundError: the todo does not exist or has no photo.
            StorageError: storage is not configured or signing failed.
        """
        todo = self._registry.require(todo_id)
        photo = todo["photo"]
        if photo is None:
            raise NotFoundError("Todo has no photo")
        try:
            return await asyncio.to_thread(self._store.signed_read_url, photo["storage_key"], self._url_ttl)
        except StorageError as exc:
            logger.error("Signing {key} failed: {error}", key=photo["storage_key"], error=exc.message)
            raise

    async def on_todo_deleted(self, todo: TodoEntity) -> CleanupResult:
        """Best-effort removal of a deleted todo's photo. Never raises."""
        photo = todo["photo"]
        if photo is None:
            return CleanupResult.SKIPPED
        return await self._delete_quietly(photo["storage_key"])

    async def remove_todo(self, todo_id: int) -> TodoEntity:
        """
        Delete a todo from the registry after cleaning up its photo.

        Raises:
            NotFoundError: the todo does not exist.
        """
        async with self._lock_for(todo_id):
            todo = self._registry.require(todo_id)
            await self.on_todo_deleted(todo)
            removed = self._registry.delete(todo_id)
        self._locks.pop(todo_id, None)
        self._last_millis.pop(todo_id, None)
        return removed
