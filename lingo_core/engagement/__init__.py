"""Engagement decay: tree health from time since refresh and unused gifts."""

from lingo_core.engagement.decay import (
    EngagementRecord,
    Grant,
    GrantError,
    HealthCategory,
    calculate_health,
    record_health,
)

__all__ = [
    "EngagementRecord",
    "Grant",
    "GrantError",
    "HealthCategory",
    "calculate_health",
    "record_health",
]
