"""Relation command processor.

Validates relation commands, applies them to the graph and keeps every
relation mirrored in its target document. Mirrored writes go through the
loop guard so the engine never propagates its own echo.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import assert_never

from shards.config.models.sync import SyncConfig
from shards.domain.commands import (
    AddRelation,
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
    RelationRemoved,
    RelationsSynced,
    RelationUpdated,
)
from shards.domain.graph import RelationConflict, RelationGraph
from shards.domain.relation import (
    Relation,
    RelationIdentity,
    RelationLabel,
    label_text,
    make_label,
)
from shards.exceptions import CommandValidationError, DocumentNotFoundError
from shards.observability.logging import get_logger
from shards.observability.metrics import record_command, record_mirror_write, set_graph_size
from shards.parser.models import ParsedDocument
from shards.parser.parser import ShardParser
from shards.store.base import DocumentStore
from shards.sync.event_bus import RelationEventBus
from shards.sync.loop_guard import LoopGuard
from shards.sync.writer import DeclarationWriter

logger = get_logger(__name__)

Notifier = Callable[[str], None]


def resolve_mirror_label(
    own: RelationLabel | None,
    incoming: RelationLabel | None,
    strategy: ConflictStrategy,
) -> RelationLabel | None:
    """Label the mirrored side ends up with.

    An empty side takes the other side's label. When both sides have text,
    PREFER_NON_EMPTY keeps the mirror's own label and NEWEST keeps the most
    recently modified one.
    """
    if own is None or own.is_empty:
        return incoming
    if incoming is None or incoming.is_empty:
        return own
    if strategy is ConflictStrategy.PREFER_NON_EMPTY:
        return own
    return own.merge(incoming, ConflictStrategy.NEWEST)


@dataclass
class RebuildReport:
    """Outcome of a full graph rebuild."""

    documents: list[ParsedDocument] = field(default_factory=list)
    relations: int = 0
    conflicts_resolved: int = 0
    mirrors_repaired: int = 0


class RelationCommandProcessor:
    """Applies relation commands and mirrors them bidirectionally."""

    def __init__(
        self,
        store: DocumentStore,
        graph: RelationGraph,
        parser: ShardParser,
        writer: DeclarationWriter,
        event_bus: RelationEventBus,
        loop_guard: LoopGuard,
        config: SyncConfig | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._store = store
        self._graph = graph
        self._parser = parser
        self._writer = writer
        self._event_bus = event_bus
        self._guard = loop_guard
        self._config = config or SyncConfig()
        self._notifier = notifier

    @property
    def graph(self) -> RelationGraph:
        return self._graph

    @property
    def strategy(self) -> ConflictStrategy:
        return ConflictStrategy(self._config.conflict_strategy)

    @property
    def bidirectional(self) -> bool:
        return self._config.enable_bidirectional_sync

    async def execute(self, command: RelationCommand) -> RelationEvent | None:
        """Validate and apply a command.

        Returns:
            The primary event published, or None when nothing changed

        Raises:
            CommandValidationError: If the command is invalid; nothing is
                mutated in that case
        """
        errors = command.validate()
        if errors:
            record_command(command.name, "rejected")
            logger.warning("relation_command_rejected", command=command.name, errors=errors)
            error = CommandValidationError(command.name, errors)
            if self._config.show_notifications and self._notifier is not None:
                self._notifier(error.message)
            raise error

        event: RelationEvent | None
        match command:
            case AddRelation():
                event = await self._add(command)
            case UpdateRelation():
                event = await self._update(command)
            case RemoveRelation():
                event = await self._remove(command)
            case SyncRelations():
                event = await self._sync(command)
            case _:
                assert_never(command)

        record_command(command.name, "applied" if event is not None else "noop")
        set_graph_size(len(self._graph))
        return event

    async def _add(self, command: AddRelation) -> RelationEvent | None:
        identity = _identity(command)
        if identity in self._graph:
            return await self._update(
                UpdateRelation(
                    source=command.source,
                    target=command.target,
                    relation_type=command.relation_type,
                    source_label=command.source_label,
                    target_label=command.target_label,
                )
            )

        relation = Relation.create(
            identity.source,
            identity.target,
            identity.relation_type,
            source_label=command.source_label,
            target_label=command.target_label,
        )
        self._graph.add(relation)
        await self._write_declaration(relation)
        if self.bidirectional:
            relation = await self._mirror(relation, explicit=command.target_label is not None)

        logger.info("relation_added", relation=relation)
        event = RelationAdded(relation=relation)
        await self._event_bus.publish(event)
        return event

    async def _update(self, command: UpdateRelation) -> RelationEvent | None:
        identity = _identity(command)
        existing = self._graph.get(identity)
        if existing is None:
            return await self._add(
                AddRelation(
                    source=command.source,
                    target=command.target,
                    relation_type=command.relation_type,
                    source_label=command.source_label,
                    target_label=command.target_label,
                )
            )

        source_label = (
            make_label(command.source_label)
            if command.source_label is not None
            else existing.source_label
        )
        target_label = (
            make_label(command.target_label)
            if command.target_label is not None
            else existing.target_label
        )
        updated = existing.with_labels(source_label, target_label)
        self._graph.add(updated)
        await self._write_declaration(updated)
        if command.update_bidirectional and self.bidirectional:
            updated = await self._mirror(updated, explicit=command.target_label is not None)

        logger.info("relation_updated", old=existing, new=updated)
        event = RelationUpdated(old=existing, new=updated)
        await self._event_bus.publish(event)
        return event

    async def _remove(self, command: RemoveRelation) -> RelationEvent | None:
        identity = _identity(command)
        existing = self._graph.remove(identity)
        if existing is None:
            return None

        await self._apply(
            existing.source,
            lambda text: self._writer.remove(
                text, existing.source, existing.relation_type, existing.target
            ),
        )
        if command.remove_bidirectional and self.bidirectional:
            await self._remove_mirror(existing)

        logger.info("relation_removed", relation=existing)
        event = RelationRemoved(relation=existing)
        await self._event_bus.publish(event)
        return event

    async def _sync(self, command: SyncRelations) -> RelationsSynced:
        document = command.document
        if document is None:
            raise CommandValidationError(command.name, ["missing source document"])

        current = {
            relation.identity.key: relation
            for relation in self._graph.relations_by_source(document)
        }
        desired = {
            RelationIdentity(
                source=document, target=parsed.target, relation_type=parsed.relation_type
            ).key: parsed
            for parsed in command.relations
        }

        added: list[Relation] = []
        updated: list[RelationChange] = []
        removed: list[Relation] = []

        for key, relation in current.items():
            if key in desired:
                continue
            try:
                self._graph.remove(relation.identity)
                if self.bidirectional:
                    await self._remove_mirror(relation)
                removed.append(relation)
            except Exception as e:
                logger.error(
                    "sync_relation_failed",
                    operation="remove",
                    relation=relation.identity,
                    error=str(e),
                    exc_info=True,
                )

        for key, parsed in desired.items():
            existing = current.get(key)
            try:
                if existing is None:
                    relation = await self._sync_added(
                        document, parsed.target, parsed.relation_type, parsed.label
                    )
                    added.append(relation)
                elif label_text(existing.source_label) != (parsed.label or None):
                    new = existing.with_labels(make_label(parsed.label), existing.target_label)
                    self._graph.add(new)
                    if self.bidirectional:
                        new = await self._mirror(new)
                    updated.append(RelationChange(old=existing, new=new))
                else:
                    self._guard.acknowledge(existing.identity, document)
            except Exception as e:
                logger.error(
                    "sync_relation_failed",
                    operation="add" if existing is None else "update",
                    relation=key,
                    error=str(e),
                    exc_info=True,
                )

        self._guard.release(document)
        event = RelationsSynced(document=document, added=added, updated=updated, removed=removed)
        if event.has_changes:
            logger.info(
                "relations_synced",
                document=document,
                added=len(added),
                updated=len(updated),
                removed=len(removed),
            )
        await self._event_bus.publish(event)
        return event

    async def _sync_added(
        self,
        document: DocumentRef,
        target: DocumentRef,
        relation_type: RelationType,
        label: str | None,
    ) -> Relation:
        relation = Relation.create(document, target, relation_type, source_label=label)
        stored_inverse = self._graph.get(relation.identity.inverse())
        if stored_inverse is not None:
            relation = relation.model_copy(update={"target_label": stored_inverse.source_label})
        self._graph.add(relation)
        if self.bidirectional:
            relation = await self._mirror(relation)
        return relation

    async def _mirror(self, relation: Relation, explicit: bool = False) -> Relation:
        """Create or merge the inverse of `relation` and write it to the target.

        Returns the relation as stored, with its target label settled.
        """
        if relation.identity.is_self_referential:
            return relation

        stored = self._graph.get(relation.identity.inverse())
        if explicit:
            side = relation.target_label
        else:
            own = stored.source_label if stored is not None else await self._declared_label(relation)
            side = resolve_mirror_label(own, relation.source_label, self.strategy)

        settled = relation.model_copy(update={"target_label": side})
        inverse = settled.get_inverse()
        if stored is not None:
            inverse = inverse.model_copy(update={"created_at": min(stored.created_at, inverse.created_at)})
        self._graph.add(settled)
        self._graph.add(inverse)
        await self._write_mirror(inverse)

        if stored is None:
            await self._event_bus.publish(RelationAdded(relation=inverse, is_inverse=True))
        elif label_text(stored.source_label) != label_text(inverse.source_label):
            await self._event_bus.publish(RelationUpdated(old=stored, new=inverse, is_inverse=True))
        return settled

    async def _declared_label(self, relation: Relation) -> RelationLabel | None:
        """Label the target document already uses for the inverse, if any."""
        try:
            text = await self._store.read(relation.target)
        except DocumentNotFoundError:
            return None
        declaration = self._writer.find(
            text, relation.target, relation.relation_type.inverse(), relation.source
        )
        if declaration is None:
            return None
        return make_label(declaration.label, relation.created_at)

    async def _write_declaration(self, relation: Relation) -> None:
        await self._apply(
            relation.source,
            lambda text: self._upsert(
                text,
                relation.source,
                relation.relation_type,
                relation.target,
                label_text(relation.source_label),
            ),
        )

    def _upsert(
        self,
        text: str,
        document: DocumentRef,
        relation_type: RelationType,
        target: DocumentRef,
        label: str | None,
    ) -> str:
        """Upsert a block line unless only frontmatter declares the relation."""
        if self._writer.find(text, document, relation_type, target) is None and self._in_frontmatter(
            text, document, relation_type, target
        ):
            return text
        return self._writer.upsert(text, document, relation_type, target, label)

    def _in_frontmatter(
        self,
        text: str,
        document: DocumentRef,
        relation_type: RelationType,
        target: DocumentRef,
    ) -> bool:
        return any(
            parsed.relation_type is relation_type and parsed.target == target
            for parsed in self._parser.frontmatter_relations(document, text)
        )

    async def _write_mirror(self, inverse: Relation) -> None:
        document = inverse.source
        if self._guard.should_suppress(inverse.identity, MirrorOperation.ADD, document):
            record_mirror_write(MirrorOperation.ADD.value, "suppressed")
            logger.debug("mirror_write_suppressed", relation=inverse.identity, document=document)
            return

        changed = await self._apply(
            document,
            lambda text: self._upsert(
                text,
                document,
                inverse.relation_type,
                inverse.target,
                label_text(inverse.source_label),
            ),
        )
        if changed:
            self._guard.expect_echo(inverse.identity, MirrorOperation.ADD, document)
            record_mirror_write(MirrorOperation.ADD.value, "written")
            logger.debug("mirror_written", relation=inverse.identity, document=document)
        else:
            self._guard.clear(inverse.identity)
            record_mirror_write(MirrorOperation.ADD.value, "unchanged")

    async def _remove_mirror(self, relation: Relation) -> None:
        stored = self._graph.remove(relation.identity.inverse())
        inverse = stored or relation.get_inverse()
        document = inverse.source

        if self._guard.should_suppress(inverse.identity, MirrorOperation.REMOVE, document):
            record_mirror_write(MirrorOperation.REMOVE.value, "suppressed")
            logger.debug("mirror_write_suppressed", relation=inverse.identity, document=document)
        else:
            changed = await self._apply(
                document,
                lambda text: self._writer.remove(
                    text, document, inverse.relation_type, inverse.target
                ),
            )
            if changed:
                self._guard.expect_echo(inverse.identity, MirrorOperation.REMOVE, document)
                record_mirror_write(MirrorOperation.REMOVE.value, "written")
                logger.debug("mirror_removed", relation=inverse.identity, document=document)
            else:
                self._guard.clear(inverse.identity)
                record_mirror_write(MirrorOperation.REMOVE.value, "unchanged")

        if stored is not None:
            await self._event_bus.publish(RelationRemoved(relation=stored, is_inverse=True))

    async def _apply(self, document: DocumentRef, transform: Callable[[str], str]) -> bool:
        """Rewrite a document's text. Returns False when nothing changed."""
        try:
            text = await self._store.read(document)
        except DocumentNotFoundError:
            logger.warning("write_target_missing", document=document)
            return False
        new_text = transform(text)
        if new_text == text:
            return False
        await self._store.write(document, new_text)
        return True

    async def rebuild_graph(self) -> RebuildReport:
        """Clear all state and re-read every document.

        Label conflicts between the two sides of a relation are merged and
        written back; with bidirectional sync, missing mirrors are written
        too.
        """
        self._graph.clear()
        self._guard.reset()
        report = RebuildReport()

        for document in await self._store.list_documents():
            try:
                text = await self._store.read(document)
            except DocumentNotFoundError:
                logger.warning("rebuild_document_vanished", document=document)
                continue
            parsed = self._parser.parse(document, text)
            report.documents.append(parsed)
            for declaration in parsed.relations:
                if declaration.target == document:
                    logger.warning("self_reference_skipped", document=document)
                    continue
                self._graph.add(
                    Relation.create(
                        document,
                        declaration.target,
                        declaration.relation_type,
                        source_label=declaration.label,
                    )
                )

        for conflict in self._graph.find_conflicts():
            await self.resolve_conflict(conflict)
            report.conflicts_resolved += 1

        if self.bidirectional:
            for relation in self._graph.find_missing_inverses():
                await self._mirror(relation)
                report.mirrors_repaired += 1

        report.relations = len(self._graph)
        set_graph_size(report.relations)
        logger.info(
            "graph_rebuilt",
            documents=len(report.documents),
            relations=report.relations,
            conflicts_resolved=report.conflicts_resolved,
            mirrors_repaired=report.mirrors_repaired,
        )
        return report

    async def resolve_conflict(self, conflict: RelationConflict) -> Relation:
        """Merge both sides of a mismatched pair and write the result back."""
        relation, inverse = conflict.relation, conflict.inverse
        relation_side = resolve_mirror_label(relation.source_label, inverse.source_label, self.strategy)
        inverse_side = resolve_mirror_label(inverse.source_label, relation.source_label, self.strategy)

        merged = relation.with_labels(relation_side, inverse_side)
        merged = merged.model_copy(update={"created_at": min(relation.created_at, inverse.created_at)})
        self._graph.add(merged)
        self._graph.add(merged.get_inverse())

        if label_text(relation_side) != label_text(relation.source_label):
            await self._write_declaration(merged)
        if label_text(inverse_side) != label_text(inverse.source_label):
            await self._write_declaration(merged.get_inverse())

        logger.info("relation_conflict_resolved", relation=merged, strategy=self.strategy.value)
        return merged

    async def handle_deleted(self, document: DocumentRef) -> FileDeleted:
        """Forget every relation touching a deleted document."""
        affected = self._graph.remove_all_for(document)
        self._guard.release(document)
        set_graph_size(len(self._graph))
        logger.info("document_deleted", document=document, affected=len(affected))
        event = FileDeleted(document=document, affected_relations=affected)
        await self._event_bus.publish(event)
        return event

    async def rename_document(self, old: DocumentRef, new: DocumentRef) -> list[Relation]:
        """Move relations to the new identity and fix counterpart declarations."""
        renamed = self._graph.rename_document(old, new, self.strategy)
        counterparts: dict[str, DocumentRef] = {}
        for relation in renamed:
            other = relation.target if relation.source == new else relation.source
            counterparts.setdefault(other.key, other)
        for counterpart in counterparts.values():
            await self._apply(
                counterpart,
                lambda text, doc=counterpart: self._writer.retarget(text, doc, old, new),
            )
        logger.info("document_renamed", old=old, new=new, relations=len(renamed))
        return renamed


def _identity(command: AddRelation | UpdateRelation | RemoveRelation) -> RelationIdentity:
    if command.source is None or command.target is None:
        raise CommandValidationError(command.name, ["missing source or target document"])
    return RelationIdentity(
        source=command.source, target=command.target, relation_type=command.relation_type
    )
