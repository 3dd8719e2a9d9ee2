"""Prometheus metrics for Shards.

Tracks relation commands, mirror writes, parse issues and reconciliation
latency. Recording can be switched off with `configure_metrics(False)`.
"""

from prometheus_client import Counter, Gauge, Histogram

_enabled = True

COMMANDS_PROCESSED = Counter(
    "shards_relation_commands_total",
    "Relation commands processed",
    labelnames=["command", "outcome"],
)

MIRROR_WRITES = Counter(
    "shards_mirror_writes_total",
    "Mirrored declaration writes attempted",
    labelnames=["operation", "outcome"],
)

PARSE_ISSUES = Counter(
    "shards_parse_issues_total",
    "Declarations skipped while parsing",
    labelnames=["kind"],
)

LISTENER_FAILURES = Counter(
    "shards_event_listener_failures_total",
    "Event listeners that raised while handling an event",
    labelnames=["event_type"],
)

RECONCILE_LATENCY = Histogram(
    "shards_reconcile_latency_seconds",
    "Latency of one reconciliation pass",
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

GRAPH_RELATIONS = Gauge(
    "shards_graph_relations",
    "Relations currently held in the graph",
)


def configure_metrics(enabled: bool) -> None:
    """Turn metric recording on or off."""
    global _enabled
    _enabled = enabled


def record_command(command: str, outcome: str) -> None:
    if _enabled:
        COMMANDS_PROCESSED.labels(command=command, outcome=outcome).inc()


def record_mirror_write(operation: str, outcome: str) -> None:
    if _enabled:
        MIRROR_WRITES.labels(operation=operation, outcome=outcome).inc()


def record_parse_issue(kind: str) -> None:
    if _enabled:
        PARSE_ISSUES.labels(kind=kind).inc()


def record_listener_failure(event_type: str) -> None:
    if _enabled:
        LISTENER_FAILURES.labels(event_type=event_type).inc()


def observe_reconcile(seconds: float) -> None:
    if _enabled:
        RECONCILE_LATENCY.observe(seconds)


def set_graph_size(size: int) -> None:
    if _enabled:
        GRAPH_RELATIONS.set(size)
