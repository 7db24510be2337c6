import io
import os
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Tests never talk to a real bucket; individual fixtures opt into a fake store.
os.environ.setdefault("SEED_TODOS", "false")
os.environ.pop("PHOTO_BUCKET", None)
os.environ.pop("S3_BUCKET", None)

from src.api.errors import StorageError  # noqa: E402
from src.api.main import create_app  # noqa: E402
from src.api.settings import Settings, get_settings  # noqa: E402
from src.api.storage import ObjectStore  # noqa: E402


class FakeObjectStore(ObjectStore):
    """In-memory object store that records calls and can be told to fail."""

    def __init__(self) -> None:
        self.objects: Dict[str, Tuple[bytes, str]] = {}
        self.deleted: List[str] = []
        self.fail_put = False
        self.fail_delete = False
        self.fail_sign = False

    def is_configured(self) -> bool:
        return True

    def put(self, key: str, data: bytes, content_type: str) -> None:
        if self.fail_put:
            raise StorageError("Failed to upload photo")
        self.objects[key] = (data, content_type)

    def delete(self, key: str) -> None:
        self.deleted.append(key)
        if self.fail_delete:
            raise StorageError("Failed to delete photo")
        self.objects.pop(key, None)

    def signed_read_url(self, key: str, ttl: int = 3600) -> str:
        if self.fail_sign:
            raise StorageError("Failed to generate photo URL")
        return f"https://photos.example.test/{key}?expires={ttl}"


def make_jpeg(size=(1600, 1200), color="red", mode="RGB") -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size, color=color).save(buf, format="JPEG")
    return buf.getvalue()


def make_settings(photo_bucket: Optional[str] = "test-bucket", **overrides) -> Settings:
    fields = {"photo_bucket": photo_bucket, "seed_todos": False}
    fields.update(overrides)
    return replace(get_settings(), **fields)


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_jpeg()


@pytest.fixture
def store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def app(store):
    return create_app(settings=make_settings(), object_store=store)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def degraded_client() -> TestClient:
    # No bucket and no injected store: the app falls back to the unconfigured store.
    return TestClient(create_app(settings=make_settings(photo_bucket=None)))
