"""Reconciliation of document changes.

The reconciler turns store notifications into sync passes. Changes are
queued as they arrive and handled one at a time, either by `drain()` or by
the background task started with `start()`. Direct `reconcile()` callers
are serialized per document.
"""

import asyncio
import time
from collections.abc import Callable

from structlog.contextvars import bound_contextvars

from shards.config.models.sync import SyncConfig
from shards.domain.commands import ParsedRelation, SyncRelations
from shards.domain.document import DocumentRef
from shards.domain.enums import RelationType
from shards.domain.events import RelationsSynced
from shards.domain.hierarchy import HierarchyIndex
from shards.exceptions import CommandValidationError, DocumentNotFoundError
from shards.observability.logging import get_logger
from shards.observability.metrics import observe_reconcile
from shards.parser.parser import ShardParser
from shards.store.base import DocumentStore
from shards.store.models import ChangeKind, DocumentChange
from shards.sync.processor import RebuildReport, RelationCommandProcessor

logger = get_logger(__name__)


class Reconciler:
    """Keeps the graph and the hierarchy index in step with the store."""

    def __init__(
        self,
        store: DocumentStore,
        parser: ShardParser,
        processor: RelationCommandProcessor,
        hierarchy: HierarchyIndex,
        config: SyncConfig | None = None,
    ) -> None:
        self._store = store
        self._parser = parser
        self._processor = processor
        self._hierarchy = hierarchy
        self._config = config or SyncConfig()
        self._queue: asyncio.Queue[DocumentChange] = asyncio.Queue()
        self._locks: dict[str, asyncio.Lock] = {}
        self._unsubscribe: Callable[[], None] | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def listen(self) -> None:
        """Subscribe to store change notifications."""
        if self._unsubscribe is None:
            self._unsubscribe = self._store.subscribe(self._queue.put_nowait)

    def stop_listening(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
        self._unsubscribe = None

    async def drain(self) -> int:
        """Handle queued changes until the queue is empty.

        Changes caused by the passes themselves are handled too, up to
        `max_passes_per_drain` in total.

        Returns:
            Number of changes handled
        """
        handled = 0
        while not self._queue.empty():
            if handled >= self._config.max_passes_per_drain:
                logger.warning(
                    "drain_limit_reached",
                    limit=self._config.max_passes_per_drain,
                    remaining=self._queue.qsize(),
                )
                break
            change = self._queue.get_nowait()
            await self._handle_safely(change)
            self._queue.task_done()
            handled += 1
        return handled

    def start(self) -> None:
        """Process changes in a background task until `stop()`."""
        if self.running:
            return
        self.listen()
        self._task = asyncio.create_task(self._run())
        logger.info("reconciler_started")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("reconciler_stopped")

    async def join(self) -> None:
        """Wait until every queued change has been handled."""
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            change = await self._queue.get()
            try:
                await self._handle_safely(change)
            finally:
                self._queue.task_done()

    async def _handle_safely(self, change: DocumentChange) -> None:
        try:
            await self.handle(change)
        except Exception as e:
            logger.error(
                "change_handling_failed",
                kind=change.kind.value,
                document=change.document,
                error=str(e),
                exc_info=True,
            )

    async def handle(self, change: DocumentChange) -> None:
        """Apply one store change."""
        match change.kind:
            case ChangeKind.CREATED | ChangeKind.MODIFIED:
                await self.reconcile(change.document)
            case ChangeKind.DELETED:
                self._locks.pop(change.document.key, None)
                self._hierarchy.remove(change.document)
                await self._processor.handle_deleted(change.document)
            case ChangeKind.RENAMED:
                if change.old_document is not None:
                    self._locks.pop(change.old_document.key, None)
                    self._hierarchy.rename(change.old_document, change.document)
                    await self._processor.rename_document(change.old_document, change.document)
                await self.reconcile(change.document)

    async def reconcile(self, document: DocumentRef) -> RelationsSynced | None:
        """Run one sync pass for a document.

        Returns:
            The sync event, or None when the document could not be read or
            its declarations were rejected
        """
        lock = self._locks.setdefault(document.key, asyncio.Lock())
        async with lock:
            with bound_contextvars(document=document.path):
                started = time.perf_counter()
                try:
                    return await self._reconcile(document)
                finally:
                    observe_reconcile(time.perf_counter() - started)

    async def _reconcile(self, document: DocumentRef) -> RelationsSynced | None:
        try:
            text = await self._store.read(document)
        except DocumentNotFoundError:
            logger.warning("reconcile_document_missing")
            return None

        parsed = self._parser.parse(document, text)
        self._hierarchy.set_paths(document, parsed.hierarchies)
        command = SyncRelations(
            document=document,
            relations=tuple(self._filter(document, parsed.relations)),
        )
        try:
            event = await self._processor.execute(command)
        except CommandValidationError as e:
            logger.warning("reconcile_rejected", errors=e.errors)
            return None
        return event if isinstance(event, RelationsSynced) else None

    def _filter(self, document: DocumentRef, relations: list[ParsedRelation]) -> list[ParsedRelation]:
        """Drop self-references and repeated declarations, keeping the first."""
        kept: list[ParsedRelation] = []
        seen: set[tuple[str, RelationType]] = set()
        for relation in relations:
            if relation.target == document:
                logger.warning("self_reference_skipped", relation_type=relation.relation_type.value)
                continue
            pair = (relation.target.key, relation.relation_type)
            if pair in seen:
                logger.warning(
                    "duplicate_declaration_skipped",
                    target=relation.target,
                    relation_type=relation.relation_type.value,
                )
                continue
            seen.add(pair)
            kept.append(relation)
        return kept

    async def rebuild(self) -> RebuildReport:
        """Rebuild the graph and the hierarchy index from every document."""
        report = await self._processor.rebuild_graph()
        self._hierarchy.clear()
        for parsed in report.documents:
            self._hierarchy.set_paths(parsed.document, parsed.hierarchies)
        return report
