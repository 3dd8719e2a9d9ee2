"""Configuration model exports.

    from shards.config.models import SyncConfig, ParserConfig
"""

from shards.config.models.observability import (
    LoggingConfig,
    MetricsConfig,
    ObservabilityConfig,
)
from shards.config.models.parser import ParserConfig
from shards.config.models.sync import LoopGuardConfig, SyncConfig

__all__ = [
    "LoggingConfig",
    "LoopGuardConfig",
    "MetricsConfig",
    "ObservabilityConfig",
    "ParserConfig",
    "SyncConfig",
]
