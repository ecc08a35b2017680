"""
Core Module - Shared domain models.

Every engine component reads these types; none of them owns persistence.
"""

from lingo_core.core.models import (
    ActivityResult,
    ChunkStatus,
    LearnerProfile,
    PerformanceData,
    SessionSignal,
    SignalType,
    days_since,
    parse_timestamp,
    utc_now,
)

__all__ = [
    "ActivityResult",
    "ChunkStatus",
    "LearnerProfile",
    "PerformanceData",
    "SessionSignal",
    "SignalType",
    "days_since",
    "parse_timestamp",
    "utc_now",
]
