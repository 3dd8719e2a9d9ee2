"""Bootstrap module for quick Shards setup.

Wires the full engine from configuration, primarily for notebooks and
tests:

    from shards.bootstrap import bootstrap

    ctx = bootstrap(documents={"Parent.md": "", "Child.md": ""})
    await ctx.store.write(ctx.store_ref("Parent.md"), "```shards\\n> Child.md\\n```\\n")
    await ctx.reconciler.drain()
"""

from dataclasses import dataclass

from shards.config import get_settings
from shards.config.settings import Settings
from shards.domain.document import DocumentRef
from shards.domain.graph import RelationGraph
from shards.domain.hierarchy import HierarchyIndex
from shards.observability.logging import get_logger, setup_logging
from shards.observability.metrics import configure_metrics
from shards.parser.parser import ShardParser
from shards.store.base import DocumentStore
from shards.store.inmemory import InMemoryDocumentStore
from shards.sync.event_bus import RelationEventBus
from shards.sync.loop_guard import LoopGuard
from shards.sync.processor import Notifier, RelationCommandProcessor
from shards.sync.reconciler import Reconciler
from shards.sync.writer import DeclarationWriter

logger = get_logger(__name__)


@dataclass
class ShardsContext:
    """Every collaborator of a wired engine."""

    settings: Settings
    store: DocumentStore
    graph: RelationGraph
    hierarchy: HierarchyIndex
    parser: ShardParser
    writer: DeclarationWriter
    event_bus: RelationEventBus
    loop_guard: LoopGuard
    processor: RelationCommandProcessor
    reconciler: Reconciler

    def store_ref(self, path: str) -> DocumentRef:
        return DocumentRef(path=path)


def bootstrap(
    store: DocumentStore | None = None,
    documents: dict[str, str] | None = None,
    settings: Settings | None = None,
    notifier: Notifier | None = None,
    configure_logging: bool = True,
    listen: bool = True,
) -> ShardsContext:
    """Build a fully wired engine.

    Args:
        store: Document store to use (default: in-memory store)
        documents: Initial documents for the in-memory store
        settings: Settings override (default: loaded from config files)
        notifier: Callback receiving messages about rejected commands
        configure_logging: Apply the logging settings
        listen: Subscribe the reconciler to store notifications

    Returns:
        ShardsContext holding every component
    """
    settings = settings or get_settings()

    if configure_logging:
        setup_logging(
            level=settings.observability.logging.level,
            format=settings.observability.logging.format,
        )
    configure_metrics(settings.observability.metrics.enabled)

    store = store or InMemoryDocumentStore(documents)
    graph = RelationGraph()
    hierarchy = HierarchyIndex()
    parser = ShardParser(store.resolve, settings.parser)
    writer = DeclarationWriter(store.resolve, settings.parser.fence_language)
    event_bus = RelationEventBus()
    loop_guard = LoopGuard(
        ttl_seconds=settings.loop_guard.ttl_seconds,
        max_entries=settings.loop_guard.max_entries,
    )
    processor = RelationCommandProcessor(
        store=store,
        graph=graph,
        parser=parser,
        writer=writer,
        event_bus=event_bus,
        loop_guard=loop_guard,
        config=settings.sync,
        notifier=notifier,
    )
    reconciler = Reconciler(
        store=store,
        parser=parser,
        processor=processor,
        hierarchy=hierarchy,
        config=settings.sync,
    )
    if listen:
        reconciler.listen()

    logger.info(
        "shards_bootstrapped",
        conflict_strategy=settings.sync.conflict_strategy,
        bidirectional=settings.sync.enable_bidirectional_sync,
    )
    return ShardsContext(
        settings=settings,
        store=store,
        graph=graph,
        hierarchy=hierarchy,
        parser=parser,
        writer=writer,
        event_bus=event_bus,
        loop_guard=loop_guard,
        processor=processor,
        reconciler=reconciler,
    )
