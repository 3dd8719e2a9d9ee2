"""Domain events published after relation changes.

Event types use category.name format so listeners can subscribe to a
whole category ("relation.*") or a single type ("document.synced").
"""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from shards.domain.document import DocumentRef
from shards.domain.relation import Relation, utc_now


class RelationEventType(str, Enum):
    """Event types emitted by the relation processor."""

    RELATION_ADDED = "relation.added"
    RELATION_UPDATED = "relation.updated"
    RELATION_REMOVED = "relation.removed"
    RELATIONS_SYNCED = "document.synced"
    FILE_DELETED = "document.deleted"


class RelationEvent(BaseModel):
    """Base class for relation events."""

    model_config = ConfigDict(frozen=True)

    type: RelationEventType
    occurred_at: datetime = Field(default_factory=utc_now, description="Emission time")

    @property
    def category(self) -> str:
        return self.type.value.split(".", 1)[0]


class RelationAdded(RelationEvent):
    type: Literal[RelationEventType.RELATION_ADDED] = RelationEventType.RELATION_ADDED
    relation: Relation
    is_inverse: bool = Field(default=False, description="True for the mirrored side")


class RelationUpdated(RelationEvent):
    type: Literal[RelationEventType.RELATION_UPDATED] = RelationEventType.RELATION_UPDATED
    old: Relation
    new: Relation
    is_inverse: bool = False


class RelationRemoved(RelationEvent):
    type: Literal[RelationEventType.RELATION_REMOVED] = RelationEventType.RELATION_REMOVED
    relation: Relation
    is_inverse: bool = False


class RelationChange(BaseModel):
    """Before and after of a label update."""

    model_config = ConfigDict(frozen=True)

    old: Relation
    new: Relation


class RelationsSynced(RelationEvent):
    """Outcome of one sync pass for a document."""

    type: Literal[RelationEventType.RELATIONS_SYNCED] = RelationEventType.RELATIONS_SYNCED
    document: DocumentRef
    added: list[Relation] = Field(default_factory=list)
    updated: list[RelationChange] = Field(default_factory=list)
    removed: list[Relation] = Field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.updated or self.removed)


class FileDeleted(RelationEvent):
    type: Literal[RelationEventType.FILE_DELETED] = RelationEventType.FILE_DELETED
    document: DocumentRef
    affected_relations: list[Relation] = Field(default_factory=list)
