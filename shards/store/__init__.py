"""Document store interface and the in-memory implementation."""

from shards.store.base import ChangeListener, DocumentStore
from shards.store.inmemory import InMemoryDocumentStore
from shards.store.models import ChangeKind, DocumentChange

__all__ = [
    "ChangeKind",
    "ChangeListener",
    "DocumentChange",
    "DocumentStore",
    "InMemoryDocumentStore",
]
