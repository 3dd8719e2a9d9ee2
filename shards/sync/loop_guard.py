"""Suppression of self-triggered echoes.

Every mirrored write the engine performs makes the written document change,
and that change comes back as an ordinary notification. The guard remembers
each write under a direction-independent key so the echo can be recognized
and not propagated again.

One slot per key: a newer write for the same relation pair replaces the
older pending echo. Entries expire after `ttl_seconds` and the oldest are
evicted beyond `max_entries`.
"""

import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from shards.domain.document import DocumentRef
from shards.domain.enums import MirrorOperation
from shards.domain.relation import RelationIdentity, canonical_key
from shards.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PendingEcho:
    operation: MirrorOperation
    document: DocumentRef
    expires_at: float


class LoopGuard:
    """Bounded, expiring ledger of the engine's own mirror writes."""

    def __init__(
        self,
        ttl_seconds: float = 5.0,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._pending: OrderedDict[str, PendingEcho] = OrderedDict()

    def __len__(self) -> int:
        self._prune()
        return len(self._pending)

    def expect_echo(
        self,
        identity: RelationIdentity,
        operation: MirrorOperation,
        document: DocumentRef,
    ) -> None:
        """Record that `document` was just written for this relation pair."""
        if identity.is_self_referential:
            return
        key = canonical_key(identity)
        self._pending[key] = PendingEcho(
            operation=operation,
            document=document,
            expires_at=self._clock() + self._ttl,
        )
        self._pending.move_to_end(key)
        while len(self._pending) > self._max_entries:
            evicted, _ = self._pending.popitem(last=False)
            logger.debug("loop_guard_evicted", key=evicted)

    def should_suppress(
        self,
        identity: RelationIdentity,
        operation: MirrorOperation,
        document: DocumentRef,
    ) -> bool:
        """Check whether writing `document` would only echo a pending write.

        A match is consumed. A write into the same document that holds the
        pending echo is never suppressed.
        """
        if identity.is_self_referential:
            return False
        key = canonical_key(identity)
        pending = self._live(key)
        if pending is None or pending.operation is not operation or pending.document == document:
            return False
        del self._pending[key]
        return True

    def acknowledge(self, identity: RelationIdentity, document: DocumentRef) -> bool:
        """Consume the echo once `document` was observed with the write applied."""
        key = canonical_key(identity)
        pending = self._live(key)
        if pending is None or pending.document != document:
            return False
        del self._pending[key]
        return True

    def clear(self, identity: RelationIdentity) -> None:
        self._pending.pop(canonical_key(identity), None)

    def release(self, document: DocumentRef) -> int:
        """Drop every echo pending on a document once it has been reconciled."""
        keys = [key for key, pending in self._pending.items() if pending.document == document]
        for key in keys:
            del self._pending[key]
        return len(keys)

    def is_pending(self, identity: RelationIdentity) -> bool:
        return self._live(canonical_key(identity)) is not None

    def reset(self) -> None:
        self._pending.clear()

    def _live(self, key: str) -> PendingEcho | None:
        pending = self._pending.get(key)
        if pending is not None and pending.expires_at <= self._clock():
            del self._pending[key]
            return None
        return pending

    def _prune(self) -> None:
        now = self._clock()
        expired = [key for key, pending in self._pending.items() if pending.expires_at <= now]
        for key in expired:
            del self._pending[key]
