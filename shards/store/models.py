"""Document store change notifications."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from shards.domain.document import DocumentRef


class ChangeKind(str, Enum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


class DocumentChange(BaseModel):
    """A change reported by a document store."""

    model_config = ConfigDict(frozen=True)

    kind: ChangeKind = Field(..., description="What happened")
    document: DocumentRef = Field(..., description="Document after the change")
    old_document: DocumentRef | None = Field(
        default=None, description="Previous identity for renames"
    )
