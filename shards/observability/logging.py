"""Structured logging configuration using structlog.

Provides JSON logging for production and console logging for development,
with automatic context binding and rendering of document references.
"""

import sys
from collections.abc import Mapping
from typing import Any, cast

import structlog
from structlog.types import EventDict, WrappedLogger

from shards.domain.document import DocumentRef
from shards.domain.relation import Relation, RelationIdentity

LEVELS: dict[str, int] = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}


class DocumentRefRenderer:
    """Processor that turns domain values into plain log-friendly values.

    Document references become their path, relation identities their
    canonical key and relations a compact dict. Nested dicts, lists and
    tuples are walked so values passed inside collections render too.
    """

    def __call__(
        self,
        _logger: WrappedLogger,
        _method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        """Render domain values in the event dictionary."""
        return cast(EventDict, {key: self._render(value) for key, value in event_dict.items()})

    def _render(self, value: Any) -> Any:
        if isinstance(value, DocumentRef):
            return value.path
        if isinstance(value, RelationIdentity):
            return value.key
        if isinstance(value, Relation):
            return {
                "key": value.identity.key,
                "source_label": value.source_label.value if value.source_label else None,
                "target_label": value.target_label.value if value.target_label else None,
            }
        if isinstance(value, Mapping):
            return {key: self._render(item) for key, item in value.items()}
        if isinstance(value, (list, tuple, set, frozenset)):
            return [self._render(item) for item in value]
        return value


def setup_logging(
    level: str = "INFO",
    format: str = "json",
) -> None:
    """Configure structured logging.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR)
        format: Output format - "json" for production, "console" for development
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        DocumentRefRenderer(),
    ]

    if format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(LEVELS.get(level.upper(), 20)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance bound to the given name.

    Args:
        name: Logger name (typically __name__ of the module)
    """
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
