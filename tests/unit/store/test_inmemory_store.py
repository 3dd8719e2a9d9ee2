"""Unit tests for InMemoryDocumentStore."""

import pytest

from shards.exceptions import DocumentNotFoundError
from shards.store.inmemory import InMemoryDocumentStore
from shards.store.models import ChangeKind, DocumentChange
from tests.factories import doc


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore({"Parent.md": "p", "notes/Child.md": "c", "other/Child.md": "c2"})


class TestReadWrite:
    async def test_list_is_sorted(self, store: InMemoryDocumentStore) -> None:
        assert [d.path for d in await store.list_documents()] == [
            "Parent.md",
            "notes/Child.md",
            "other/Child.md",
        ]

    async def test_write_then_read(self, store: InMemoryDocumentStore) -> None:
        await store.write(doc("Parent.md"), "new")
        assert await store.read(doc("Parent.md")) == "new"
        assert store.write_counts["Parent.md"] == 1

    async def test_unknown_document_raises(self, store: InMemoryDocumentStore) -> None:
        with pytest.raises(DocumentNotFoundError, match="Ghost.md"):
            await store.read(doc("Ghost.md"))
        with pytest.raises(DocumentNotFoundError):
            await store.write(doc("Ghost.md"), "x")


class TestNotifications:
    """Tests for change listeners."""

    async def test_listeners_receive_changes(self, store: InMemoryDocumentStore) -> None:
        changes: list[DocumentChange] = []
        store.subscribe(changes.append)

        created = await store.create("New.md", "")
        await store.write(created, "text")
        renamed = await store.rename(created, "Renamed.md")
        await store.delete(renamed)

        assert [c.kind for c in changes] == [
            ChangeKind.CREATED,
            ChangeKind.MODIFIED,
            ChangeKind.RENAMED,
            ChangeKind.DELETED,
        ]
        assert changes[2].old_document == doc("New.md")
        assert changes[2].document == doc("Renamed.md")

    async def test_unsubscribe(self, store: InMemoryDocumentStore) -> None:
        changes: list[DocumentChange] = []
        unsubscribe = store.subscribe(changes.append)
        unsubscribe()

        await store.write(doc("Parent.md"), "x")

        assert changes == []


class TestResolve:
    """Tests for reference resolution."""

    def test_exact_path(self, store: InMemoryDocumentStore) -> None:
        assert store.resolve("notes/Child.md", doc("Parent.md")) == doc("notes/Child.md")

    def test_stem_adds_extension(self, store: InMemoryDocumentStore) -> None:
        assert store.resolve("Parent", doc("notes/Child.md")) == doc("Parent.md")

    def test_prefers_source_folder(self, store: InMemoryDocumentStore) -> None:
        assert store.resolve("Child.md", doc("other/Note.md")) == doc("other/Child.md")
        assert store.resolve("Child", doc("notes/Note.md")) == doc("notes/Child.md")

    def test_falls_back_to_shortest_path(self, store: InMemoryDocumentStore) -> None:
        assert store.resolve("Child", doc("Parent.md")) == doc("notes/Child.md")

    def test_unknown_name(self, store: InMemoryDocumentStore) -> None:
        assert store.resolve("Ghost", doc("Parent.md")) is None
        assert store.resolve("  ", doc("Parent.md")) is None
