"""Unit tests for RelationEventBus pattern matching and dispatch."""

import pytest

from shards.domain.events import RelationAdded, RelationEvent, RelationsSynced
from shards.sync.event_bus import RelationEventBus, matches_pattern
from tests.factories import RelationFactory, doc


@pytest.fixture
def bus() -> RelationEventBus:
    return RelationEventBus()


@pytest.fixture
def added_event() -> RelationAdded:
    return RelationAdded(relation=RelationFactory.create())


class TestPatternMatching:
    @pytest.mark.parametrize(
        ("pattern", "expected"),
        [
            ("*", True),
            ("relation.*", True),
            ("relation.added", True),
            ("relation.removed", False),
            ("document.*", False),
            ("relation", False),
        ],
    )
    def test_matches(self, pattern: str, expected: bool) -> None:
        assert matches_pattern("relation.added", pattern) is expected


class TestPublish:
    """Tests for event dispatch."""

    async def test_matching_listeners_receive_event(
        self, bus: RelationEventBus, added_event: RelationAdded
    ) -> None:
        received: list[str] = []

        async def everything(event: RelationEvent) -> None:
            received.append("all")

        async def relations(event: RelationEvent) -> None:
            received.append("relation")

        async def documents(event: RelationEvent) -> None:
            received.append("document")

        await bus.subscribe("*", everything)
        await bus.subscribe("relation.*", relations)
        await bus.subscribe("document.*", documents)

        await bus.publish(added_event)

        assert sorted(received) == ["all", "relation"]

    async def test_failing_listener_does_not_stop_others(
        self, bus: RelationEventBus, added_event: RelationAdded
    ) -> None:
        received: list[RelationEvent] = []

        async def broken(event: RelationEvent) -> None:
            raise RuntimeError("boom")

        async def healthy(event: RelationEvent) -> None:
            received.append(event)

        await bus.subscribe("*", broken)
        await bus.subscribe("*", healthy)

        await bus.publish(added_event)

        assert received == [added_event]

    async def test_unsubscribe(self, bus: RelationEventBus) -> None:
        received: list[RelationEvent] = []

        async def listener(event: RelationEvent) -> None:
            received.append(event)

        await bus.subscribe("document.synced", listener)
        assert await bus.unsubscribe("document.synced", listener) is True
        assert await bus.unsubscribe("document.synced", listener) is False

        await bus.publish(RelationsSynced(document=doc("A.md")))

        assert received == []
