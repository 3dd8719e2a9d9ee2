"""Relation commands.

Commands are immutable intents. Each validates itself and returns the list
of reasons it cannot run; an empty list means valid. The processor
dispatches them with one exhaustive match over `RelationCommand`.
"""

from dataclasses import dataclass, field

from shards.domain.document import DocumentRef
from shards.domain.enums import RelationType


def _check_pair(
    source: DocumentRef | None,
    target: DocumentRef | None,
    relation_type: object,
) -> list[str]:
    errors: list[str] = []
    if source is None:
        errors.append("missing source document")
    if target is None:
        errors.append("missing target document")
    if source is not None and target is not None and source == target:
        errors.append(f"self-referential relation on {source.path}")
    if not isinstance(relation_type, RelationType):
        errors.append(f"invalid relation type: {relation_type!r}")
    return errors


@dataclass(frozen=True)
class ParsedRelation:
    """A declaration read from a document, with its target resolved."""

    target: DocumentRef
    relation_type: RelationType
    label: str | None = None


@dataclass(frozen=True)
class AddRelation:
    source: DocumentRef | None
    target: DocumentRef | None
    relation_type: RelationType
    source_label: str | None = None
    target_label: str | None = None

    name = "add"

    def validate(self) -> list[str]:
        return _check_pair(self.source, self.target, self.relation_type)


@dataclass(frozen=True)
class UpdateRelation:
    """Replace labels of a relation.

    A label argument of None keeps the stored label.
    """

    source: DocumentRef | None
    target: DocumentRef | None
    relation_type: RelationType
    source_label: str | None = None
    target_label: str | None = None
    update_bidirectional: bool = True

    name = "update"

    def validate(self) -> list[str]:
        return _check_pair(self.source, self.target, self.relation_type)


@dataclass(frozen=True)
class RemoveRelation:
    source: DocumentRef | None
    target: DocumentRef | None
    relation_type: RelationType
    remove_bidirectional: bool = True

    name = "remove"

    def validate(self) -> list[str]:
        return _check_pair(self.source, self.target, self.relation_type)


@dataclass(frozen=True)
class SyncRelations:
    """Bring the graph in line with what a document currently declares."""

    document: DocumentRef | None
    relations: tuple[ParsedRelation, ...] = field(default_factory=tuple)

    name = "sync"

    def validate(self) -> list[str]:
        if self.document is None:
            return ["missing source document"]

        errors: list[str] = []
        seen: set[tuple[str, RelationType]] = set()
        for parsed in self.relations:
            errors.extend(_check_pair(self.document, parsed.target, parsed.relation_type))
            if parsed.target is None:
                continue
            pair = (parsed.target.key, parsed.relation_type)
            if pair in seen:
                type_name = getattr(parsed.relation_type, "value", parsed.relation_type)
                errors.append(f"duplicate {type_name} relation to {parsed.target.path}")
            seen.add(pair)
        return errors


RelationCommand = AddRelation | UpdateRelation | RemoveRelation | SyncRelations
