"""Relation synchronization configuration models."""

from typing import Literal

from pydantic import BaseModel, Field

ConflictStrategyName = Literal["newest", "prefer-non-empty"]


class SyncConfig(BaseModel):
    """How relations are mirrored between documents."""

    conflict_strategy: ConflictStrategyName = Field(
        default="prefer-non-empty",
        description="Label merge strategy when both sides of a relation disagree",
    )
    enable_bidirectional_sync: bool = Field(
        default=True,
        description="Write the inverse of every relation into the target document",
    )
    show_notifications: bool = Field(
        default=True,
        description="Report rejected commands to the notifier callback",
    )
    max_passes_per_drain: int = Field(
        default=1000,
        gt=0,
        description="Upper bound on reconciliation passes processed by one drain() call",
    )


class LoopGuardConfig(BaseModel):
    """Echo suppression for the engine's own writes."""

    ttl_seconds: float = Field(
        default=5.0,
        gt=0,
        description="How long an unobserved echo stays pending",
    )
    max_entries: int = Field(
        default=1024,
        gt=0,
        description="Capacity bound; the oldest pending echo is evicted first",
    )
