"""Parser result models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from shards.domain.commands import ParsedRelation
from shards.domain.document import DocumentRef


class ParseIssueKind(str, Enum):
    """Why a line did not yield a declaration."""

    MALFORMED = "malformed"
    UNRESOLVED = "unresolved"
    INVALID_FRONTMATTER = "invalid_frontmatter"


class ParseIssue(BaseModel):
    """A skipped declaration. Reported, never raised."""

    model_config = ConfigDict(frozen=True)

    kind: ParseIssueKind = Field(..., description="Issue kind")
    text: str = Field(..., description="Offending line or value")
    line: int | None = Field(default=None, description="Zero-based line index")
    message: str = Field(default="", description="Human-readable detail")


class ParsedDocument(BaseModel):
    """Everything declared by one document."""

    model_config = ConfigDict(frozen=True)

    document: DocumentRef
    relations: list[ParsedRelation] = Field(default_factory=list)
    hierarchies: list[str] = Field(default_factory=list)
    issues: list[ParseIssue] = Field(default_factory=list)
