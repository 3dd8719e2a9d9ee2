"""Test factories for creating test data."""

from tests.factories.documents import RelationFactory, doc, note, shards_block

__all__ = [
    "RelationFactory",
    "doc",
    "note",
    "shards_block",
]
