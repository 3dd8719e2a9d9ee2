"""In-memory relation graph.

Relations are keyed by `RelationIdentity.key` with by-source and by-target
reverse indices. Every indexed key resolves to a live relation and empty
index buckets are dropped on removal.
"""

from collections.abc import Iterable, Iterator

from pydantic import BaseModel, ConfigDict, Field

from shards.domain.document import DocumentRef
from shards.domain.enums import ConflictStrategy, RelationType
from shards.domain.relation import (
    Relation,
    RelationIdentity,
    canonical_key,
    label_text,
)


class RelationConflict(BaseModel):
    """A stored relation and its stored inverse disagree on labels."""

    model_config = ConfigDict(frozen=True)

    relation: Relation = Field(..., description="One side of the pair")
    inverse: Relation = Field(..., description="The stored inverse")
    reason: str = Field(default="inverse-mismatch", description="Conflict kind")


class GraphStats(BaseModel):
    """Summary counts for a graph."""

    model_config = ConfigDict(frozen=True)

    total_relations: int = Field(default=0, description="Relations stored")
    document_count: int = Field(default=0, description="Distinct documents touched")
    by_type: dict[str, int] = Field(default_factory=dict, description="type -> count")


class RelationGraph:
    """Index of all known relations."""

    def __init__(self) -> None:
        self._relations: dict[str, Relation] = {}
        self._by_source: dict[str, set[str]] = {}
        self._by_target: dict[str, set[str]] = {}

    def __len__(self) -> int:
        return len(self._relations)

    def __contains__(self, identity: object) -> bool:
        return isinstance(identity, RelationIdentity) and identity.key in self._relations

    def __iter__(self) -> Iterator[Relation]:
        return iter(self.all_relations())

    def add(self, relation: Relation) -> None:
        """Insert a relation, replacing any relation with the same identity."""
        key = relation.identity.key
        self._relations[key] = relation
        self._by_source.setdefault(relation.source.key, set()).add(key)
        self._by_target.setdefault(relation.target.key, set()).add(key)

    def remove(self, identity: RelationIdentity) -> Relation | None:
        """Remove a relation and return it, or None when absent."""
        relation = self._relations.pop(identity.key, None)
        if relation is None:
            return None
        self._discard(self._by_source, relation.source.key, identity.key)
        self._discard(self._by_target, relation.target.key, identity.key)
        return relation

    def get(self, identity: RelationIdentity) -> Relation | None:
        return self._relations.get(identity.key)

    def relations_by_source(self, document: DocumentRef) -> list[Relation]:
        return self._collect(self._by_source.get(document.key, set()))

    def relations_by_target(self, document: DocumentRef) -> list[Relation]:
        return self._collect(self._by_target.get(document.key, set()))

    def all_relations_for(self, document: DocumentRef) -> list[Relation]:
        keys = self._by_source.get(document.key, set()) | self._by_target.get(document.key, set())
        return self._collect(keys)

    def all_relations(self) -> list[Relation]:
        return self._collect(self._relations.keys())

    def documents(self) -> list[DocumentRef]:
        """Every document that appears as a source or target."""
        seen: dict[str, DocumentRef] = {}
        for relation in self._relations.values():
            seen.setdefault(relation.source.key, relation.source)
            seen.setdefault(relation.target.key, relation.target)
        return [seen[key] for key in sorted(seen)]

    def remove_all_for(self, document: DocumentRef) -> list[Relation]:
        """Remove every relation with the document on either side."""
        removed = self.all_relations_for(document)
        for relation in removed:
            self.remove(relation.identity)
        return removed

    def rename_document(
        self,
        old: DocumentRef,
        new: DocumentRef,
        strategy: ConflictStrategy = ConflictStrategy.NEWEST,
    ) -> list[Relation]:
        """Substitute `new` for `old` in every relation touching `old`.

        Labels and timestamps are kept. When the substituted identity is
        already stored, the two relations are merged. Relations that would
        become self-referential are dropped.

        Returns:
            The relations as stored after the rename
        """
        if old == new:
            return self.all_relations_for(old)

        renamed: list[Relation] = []
        for relation in self.remove_all_for(old):
            source = new if relation.source == old else relation.source
            target = new if relation.target == old else relation.target
            if source == target:
                continue
            identity = RelationIdentity(
                source=source, target=target, relation_type=relation.relation_type
            )
            moved = relation.model_copy(update={"identity": identity})
            existing = self.get(identity)
            if existing is not None:
                moved = existing.merge(moved, strategy)
            self.add(moved)
            renamed.append(moved)
        return renamed

    def find_conflicts(self) -> list[RelationConflict]:
        """Pairs whose stored inverse differs from `relation.get_inverse()`.

        Each mismatched pair is reported once.
        """
        conflicts: list[RelationConflict] = []
        seen: set[str] = set()
        for relation in self.all_relations():
            pair = canonical_key(relation.identity)
            if pair in seen:
                continue
            stored = self.get(relation.identity.inverse())
            if stored is None:
                continue
            seen.add(pair)
            expected = relation.get_inverse()
            if label_text(stored.source_label) != label_text(expected.source_label) or label_text(
                stored.target_label
            ) != label_text(expected.target_label):
                conflicts.append(RelationConflict(relation=relation, inverse=stored))
        return conflicts

    def find_missing_inverses(self) -> list[Relation]:
        """Relations whose inverse is not stored."""
        return [
            relation
            for relation in self.all_relations()
            if not relation.identity.is_self_referential
            and relation.identity.inverse().key not in self._relations
        ]

    def stats(self) -> GraphStats:
        by_type = {relation_type.value: 0 for relation_type in RelationType}
        for relation in self._relations.values():
            by_type[relation.relation_type.value] += 1
        return GraphStats(
            total_relations=len(self._relations),
            document_count=len(self.documents()),
            by_type=by_type,
        )

    def clear(self) -> None:
        self._relations.clear()
        self._by_source.clear()
        self._by_target.clear()

    def _collect(self, keys: Iterable[str]) -> list[Relation]:
        return [self._relations[key] for key in sorted(keys)]

    @staticmethod
    def _discard(index: dict[str, set[str]], document_key: str, key: str) -> None:
        bucket = index.get(document_key)
        if bucket is None:
            return
        bucket.discard(key)
        if not bucket:
            del index[document_key]
