"""Bidirectional synchronization: processor, loop guard, writer, event bus and reconciler."""

from shards.sync.event_bus import EventListener, RelationEventBus
from shards.sync.loop_guard import LoopGuard
from shards.sync.processor import RebuildReport, RelationCommandProcessor, resolve_mirror_label
from shards.sync.reconciler import Reconciler
from shards.sync.writer import DeclarationWriter

__all__ = [
    "DeclarationWriter",
    "EventListener",
    "LoopGuard",
    "RebuildReport",
    "Reconciler",
    "RelationCommandProcessor",
    "RelationEventBus",
    "resolve_mirror_label",
]
