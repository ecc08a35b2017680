"""
Core Domain Models.

Shared value types read by every engine component:
- LearnerProfile: longitudinal learner statistics (owned by the profile service)
- ActivityResult: one completed activity, immutable once created
- SessionSignal: one affective-filter signal observed during a session
- PerformanceData: aggregate accuracy/latency/help summary for difficulty adaptation

The engine only reads profiles. Records coming from collaborators are
normalised through ``LearnerProfile.from_record`` so that missing or malformed
fields fall back to safe defaults instead of failing.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class SignalType(str, Enum):
    """
    Types of signals that can occur during a learning session.

    Each signal type contributes differently to the affective filter score.
    """

    WRONG = "wrong"  # Frustration indicator
    HELP = "help"  # Confusion indicator
    SLOW = "slow"  # Hesitation / processing difficulty
    FAST = "fast"  # Fast correct answer, possible boredom
    QUIT = "quit"  # Left mid-session


class ChunkStatus(str, Enum):
    """Acquisition status of a chunk for one learner."""

    NEW = "new"
    LEARNING = "learning"
    ACQUIRED = "acquired"
    FRAGILE = "fragile"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse an ISO timestamp or datetime into an aware datetime.

    Returns None for empty or unparseable values.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    try:
        return ensure_aware(datetime.fromisoformat(str(value).replace("Z", "+00:00")))
    except ValueError:
        return None


def days_since(timestamp: datetime | None, now: datetime | None = None) -> float:
    """
    Calculate fractional days elapsed since a timestamp.

    Args:
        timestamp: Past timestamp (naive values are treated as UTC)
        now: Current time (defaults to UTC now)

    Returns:
        Days elapsed as float, or infinity when the timestamp is missing
    """
    if timestamp is None:
        return math.inf

    now = ensure_aware(now) if now is not None else utc_now()
    delta = now - ensure_aware(timestamp)
    return delta.total_seconds() / 86400.0


def _unit_float(value: Any, default: float) -> float:
    """Coerce a collaborator value to a float in [0, 1]."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number):
        return default
    return max(0.0, min(1.0, number))


def _count(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class LearnerProfile:
    """
    Longitudinal learner statistics.

    Rates and scores are on a 0-1 scale. ``last_activity_at`` of None means
    the learner has never been active, which the filter treats as maximal
    inactivity.
    """

    user_id: str = ""
    average_confidence: float = 0.5
    wrong_answer_rate: float = 0.0
    help_request_rate: float = 0.0
    filter_risk_score: float = 0.0
    last_activity_at: datetime | None = None

    # Chunk statistics
    chunks_acquired: int = 0
    chunks_learning: int = 0
    chunks_fragile: int = 0

    total_sessions: int = 0

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> LearnerProfile:
        """
        Build a profile from a collaborator record.

        Accepts both snake_case and camelCase keys. Missing or malformed
        fields fall back to neutral defaults.
        """

        def pick(*keys: str) -> Any:
            for key in keys:
                if key in record and record[key] is not None:
                    return record[key]
            return None

        return cls(
            user_id=str(pick("user_id", "userId", "user") or ""),
            average_confidence=_unit_float(pick("average_confidence", "averageConfidence"), 0.5),
            wrong_answer_rate=_unit_float(pick("wrong_answer_rate", "wrongAnswerRate"), 0.0),
            help_request_rate=_unit_float(pick("help_request_rate", "helpRequestRate"), 0.0),
            filter_risk_score=_unit_float(pick("filter_risk_score", "filterRiskScore"), 0.0),
            last_activity_at=parse_timestamp(
                pick("last_activity_at", "lastActivityAt", "updated")
            ),
            chunks_acquired=_count(pick("chunks_acquired", "chunksAcquired")),
            chunks_learning=_count(pick("chunks_learning", "chunksLearning")),
            chunks_fragile=_count(pick("chunks_fragile", "chunksFragile")),
            total_sessions=_count(pick("total_sessions", "totalSessions")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "average_confidence": self.average_confidence,
            "wrong_answer_rate": self.wrong_answer_rate,
            "help_request_rate": self.help_request_rate,
            "filter_risk_score": self.filter_risk_score,
            "last_activity_at": self.last_activity_at.isoformat() if self.last_activity_at else None,
            "chunks_acquired": self.chunks_acquired,
            "chunks_learning": self.chunks_learning,
            "chunks_fragile": self.chunks_fragile,
            "total_sessions": self.total_sessions,
        }


@dataclass(frozen=True)
class ActivityResult:
    """Outcome of one completed activity."""

    id: str
    activity_type: str
    chunk_ids: tuple[str, ...] = ()
    correct: bool = True
    response_time_ms: int = 0
    used_help: bool = False
    attempts: int = 1
    timestamp: datetime = field(default_factory=utc_now)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActivityResult:
        return cls(
            id=str(data["id"]),
            activity_type=str(data.get("activity_type", data.get("activityType", "multiple_choice"))),
            chunk_ids=tuple(data.get("chunk_ids", data.get("chunkIds", ())) or ()),
            correct=bool(data.get("correct", True)),
            response_time_ms=int(data.get("response_time_ms", data.get("responseTimeMs", 0))),
            used_help=bool(data.get("used_help", data.get("usedHelp", False))),
            attempts=int(data.get("attempts", 1)),
            timestamp=parse_timestamp(data.get("timestamp")) or utc_now(),
        )


@dataclass(frozen=True)
class SessionSignal:
    """A signal recorded during a learning session for filter monitoring."""

    type: SignalType
    activity_id: str
    timestamp: datetime = field(default_factory=utc_now)
    data: dict[str, Any] | None = None


@dataclass(frozen=True)
class PerformanceData:
    """Performance summary used to adapt the live target level."""

    correct: int
    total: int
    avg_response_time_ms: float = 0.0
    help_used_count: int = 0

    @property
    def accuracy(self) -> float:
        return self.correct / max(1, self.total)

    @property
    def help_rate(self) -> float:
        return self.help_used_count / max(1, self.total)
