"""Relation value objects.

A relation is one fact viewed from two documents. The source document
declares it with its own label; the target document carries the mirrored
declaration with an independent label. `Relation.get_inverse()` swaps the
two views.
"""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from shards.domain.document import DocumentRef
from shards.domain.enums import ConflictStrategy, RelationType


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


class RelationIdentity(BaseModel):
    """Immutable (source, target, type) triple.

    Labels are never part of identity.
    """

    model_config = ConfigDict(frozen=True)

    source: DocumentRef = Field(..., description="Document declaring the relation")
    target: DocumentRef = Field(..., description="Document the relation points at")
    relation_type: RelationType = Field(..., description="Type as seen from the source")

    @property
    def key(self) -> str:
        return f"{self.source.key}|{self.target.key}|{self.relation_type.value}"

    @property
    def is_self_referential(self) -> bool:
        return self.source == self.target

    def inverse(self) -> "RelationIdentity":
        """Swap source and target and invert the type."""
        return RelationIdentity(
            source=self.target,
            target=self.source,
            relation_type=self.relation_type.inverse(),
        )


def canonical_key(identity: RelationIdentity) -> str:
    """Direction-independent key for a relation pair.

    "A child B" and "B parent A" produce the same key.
    """
    first, second = sorted((identity.source.key, identity.target.key))
    types = sorted((identity.relation_type.value, identity.relation_type.inverse().value))
    return f"{first}|{second}|{'/'.join(types)}"


class RelationLabel(BaseModel):
    """Optional human-readable label with its modification time."""

    model_config = ConfigDict(frozen=True)

    value: str | None = Field(default=None, description="Label text")
    last_modified: datetime = Field(default_factory=utc_now, description="Last edit")

    @property
    def is_empty(self) -> bool:
        return self.value is None or not self.value.strip()

    @property
    def text(self) -> str | None:
        """Stripped label text, or None when empty."""
        return None if self.is_empty else self.value.strip()  # type: ignore[union-attr]

    def merge(
        self,
        other: "RelationLabel",
        strategy: ConflictStrategy = ConflictStrategy.NEWEST,
    ) -> "RelationLabel":
        """Pick the winning label.

        NEWEST takes the most recently modified label. PREFER_NON_EMPTY takes
        the non-empty label when only one side has text, then falls back to
        NEWEST. On equal timestamps a non-empty label beats an empty one and
        otherwise the lexicographically smaller text wins, so the result does
        not depend on argument order.
        """
        if strategy is ConflictStrategy.PREFER_NON_EMPTY and self.is_empty != other.is_empty:
            return other if self.is_empty else self

        if self.last_modified != other.last_modified:
            return self if self.last_modified > other.last_modified else other

        if self.is_empty != other.is_empty:
            return other if self.is_empty else self
        return self if (self.text or "") <= (other.text or "") else other


def make_label(value: str | None, at: datetime | None = None) -> RelationLabel | None:
    """Build a label from raw text; blank text yields no label."""
    if value is None or not value.strip():
        return None
    return RelationLabel(value=value.strip(), last_modified=at or utc_now())


def label_text(label: RelationLabel | None) -> str | None:
    return label.text if label is not None else None


def merge_labels(
    first: RelationLabel | None,
    second: RelationLabel | None,
    strategy: ConflictStrategy,
) -> RelationLabel | None:
    """Merge two optional labels; a missing label always loses."""
    if first is None:
        return second
    if second is None:
        return first
    return first.merge(second, strategy)


class Relation(BaseModel):
    """A typed relation with independent labels on each side."""

    model_config = ConfigDict(frozen=True)

    identity: RelationIdentity = Field(..., description="Source, target and type")
    source_label: RelationLabel | None = Field(
        default=None, description="Label written in the source document"
    )
    target_label: RelationLabel | None = Field(
        default=None, description="Label written in the target document"
    )
    created_at: datetime = Field(default_factory=utc_now, description="Creation time")
    modified_at: datetime = Field(default_factory=utc_now, description="Last change")

    @classmethod
    def create(
        cls,
        source: DocumentRef,
        target: DocumentRef,
        relation_type: RelationType,
        source_label: str | None = None,
        target_label: str | None = None,
    ) -> "Relation":
        """Build a fresh relation from plain values."""
        now = utc_now()
        return cls(
            identity=RelationIdentity(source=source, target=target, relation_type=relation_type),
            source_label=make_label(source_label, now),
            target_label=make_label(target_label, now),
            created_at=now,
            modified_at=now,
        )

    @property
    def source(self) -> DocumentRef:
        return self.identity.source

    @property
    def target(self) -> DocumentRef:
        return self.identity.target

    @property
    def relation_type(self) -> RelationType:
        return self.identity.relation_type

    def with_labels(
        self,
        source_label: RelationLabel | None,
        target_label: RelationLabel | None,
    ) -> "Relation":
        """Copy with replaced labels and a bumped modification time."""
        return self.model_copy(
            update={
                "source_label": source_label,
                "target_label": target_label,
                "modified_at": utc_now(),
            }
        )

    def get_inverse(self) -> "Relation":
        """The same relation seen from the target document."""
        return Relation(
            identity=self.identity.inverse(),
            source_label=self.target_label,
            target_label=self.source_label,
            created_at=self.created_at,
            modified_at=self.modified_at,
        )

    def merge(
        self,
        other: "Relation",
        strategy: ConflictStrategy = ConflictStrategy.NEWEST,
    ) -> "Relation":
        """Merge two versions of the same relation.

        Raises:
            ValueError: If the identities differ
        """
        if other.identity != self.identity:
            raise ValueError(
                f"Cannot merge relations with different identities: "
                f"{self.identity.key} != {other.identity.key}"
            )
        return Relation(
            identity=self.identity,
            source_label=merge_labels(self.source_label, other.source_label, strategy),
            target_label=merge_labels(self.target_label, other.target_label, strategy),
            created_at=min(self.created_at, other.created_at),
            modified_at=utc_now(),
        )
