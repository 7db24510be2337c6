import pytest

from src.api.errors import NotFoundError, ValidationError
from src.api.repositories import WELCOME_TODOS, InMemoryTodoRegistry, build_registry


@pytest.fixture
def registry():
    return InMemoryTodoRegistry()


def test_create_assigns_increasing_ids(registry):
    a = registry.create("first")
    b = registry.create("second")
    assert b["id"] > a["id"]
    assert a == {"id": a["id"], "text": "first", "completed": False, "photo": None, "created_at": a["created_at"]}


@pytest.mark.parametrize("text", ["", "   ", "\n\t", None, 12])
def test_create_rejects_blank_or_missing_text(registry, text):
    with pytest.raises(ValidationError):
        registry.create(text)
    assert registry.count() == 0


def test_list_returns_snapshot(registry):
    registry.create("keep me")
    listed = registry.list()
    listed[0]["text"] = "mutated"
    listed.clear()
    assert [t["text"] for t in registry.list()] == ["keep me"]


def test_photo_slot_is_copied(registry):
    todo = registry.create("with photo")
    registry.set_photo(todo["id"], {"storage_key": "todos/1/1.jpg", "created_at": todo["created_at"]})
    fetched = registry.require(todo["id"])
    fetched["photo"]["storage_key"] = "changed"
    assert registry.require(todo["id"])["photo"]["storage_key"] == "todos/1/1.jpg"


def test_set_completed(registry):
    todo = registry.create("finish")
    assert registry.set_completed(todo["id"], True)["completed"] is True
    # Non-boolean values are ignored rather than rejected.
    assert registry.set_completed(todo["id"], "false")["completed"] is True
    assert registry.set_completed(todo["id"], None)["completed"] is True


def test_set_completed_unknown_id(registry):
    registry.create("only")
    with pytest.raises(NotFoundError):
        registry.set_completed(99, True)
    assert [t["completed"] for t in registry.list()] == [False]


def test_delete(registry):
    todo = registry.create("bye")
    removed = registry.delete(todo["id"])
    assert removed["id"] == todo["id"]
    assert registry.get(todo["id"]) is None
    with pytest.raises(NotFoundError):
        registry.delete(todo["id"])
    assert registry.create("next")["id"] == todo["id"] + 1


def test_build_registry_seeds_welcome_todos():
    seeded = build_registry(seed_todos=True)
    assert tuple(t["text"] for t in seeded.list()) == WELCOME_TODOS
    assert build_registry(seed_todos=False).count() == 0
