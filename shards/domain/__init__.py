"""Relation domain: documents, relations, the graph, commands and events."""

from shards.domain.commands import (
    AddRelation,
    ParsedRelation,
    RelationCommand,
    RemoveRelation,
    SyncRelations,
    UpdateRelation,
)
from shards.domain.document import DocumentRef
from shards.domain.enums import ConflictStrategy, MirrorOperation, RelationType
from shards.domain.events import (
    FileDeleted,
    RelationAdded,
    RelationChange,
    RelationEvent,
    RelationEventType,
    RelationRemoved,
    RelationsSynced,
    RelationUpdated,
)
from shards.domain.graph import GraphStats, RelationConflict, RelationGraph
from shards.domain.hierarchy import HierarchyIndex, HierarchyNode
from shards.domain.relation import (
    Relation,
    RelationIdentity,
    RelationLabel,
    canonical_key,
)

__all__ = [
    "AddRelation",
    "ConflictStrategy",
    "DocumentRef",
    "FileDeleted",
    "GraphStats",
    "HierarchyIndex",
    "HierarchyNode",
    "MirrorOperation",
    "ParsedRelation",
    "Relation",
    "RelationAdded",
    "RelationChange",
    "RelationCommand",
    "RelationConflict",
    "RelationEvent",
    "RelationEventType",
    "RelationGraph",
    "RelationIdentity",
    "RelationLabel",
    "RelationRemoved",
    "RelationUpdated",
    "RelationsSynced",
    "RemoveRelation",
    "SyncRelations",
    "UpdateRelation",
    "canonical_key",
]
