"""
Difficulty Calibration (i+1).

Content should sit just above the learner's current level: comprehensible,
but stretching. This module maps acquired chunks to a CEFR-aligned level,
adjusts it for confidence and filter risk, picks the i+1 target and adapts
the live target from in-session performance.

Level scale:
- 1.0: A1 (absolute beginner)
- 2.0: A2 (elementary)
- 3.0: B1 (intermediate)
- 4.0: B2 (upper intermediate)
- 5.0: C1+ (advanced)
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from lingo_core.core.models import ActivityResult, LearnerProfile, PerformanceData

MIN_LEVEL = 1.0
MAX_LEVEL = 5.0

# (exclusive upper bound on acquired chunks, level)
CHUNK_LEVEL_STEPS: tuple[tuple[int, float], ...] = (
    (50, 1.0),
    (150, 1.5),
    (300, 2.0),
    (500, 2.5),
    (800, 3.0),
    (1200, 3.5),
    (1700, 4.0),
    (2300, 4.5),
)

# (exclusive upper bound on level, label)
CEFR_LABELS: tuple[tuple[float, str], ...] = (
    (1.5, "A1"),
    (2.0, "A1+"),
    (2.5, "A2"),
    (3.0, "A2+"),
    (3.5, "B1"),
    (4.0, "B1+"),
    (4.5, "B2"),
    (5.0, "B2+"),
)

# Drop back to consolidation (i instead of i+1)
DROP_BACK_RECENT_WINDOW = 5
DROP_BACK_WRONG_COUNT = 3
DROP_BACK_FILTER_RISK = 0.7
DROP_BACK_LOW_CONFIDENCE = 0.4


class CalibrationSettings(BaseModel):
    """Tuning surface for level calculation and in-session adaptation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Level calculation
    confidence_weight: float = Field(default=0.5, ge=0)
    filter_risk_weight: float = Field(default=0.3, ge=0)
    drop_back_risk_threshold: float = Field(default=0.6, ge=0, le=1)

    # adapt_difficulty bands
    strong_accuracy: float = 0.9
    strong_max_help_rate: float = 0.1
    strong_step: float = 0.2
    good_accuracy: float = 0.8
    good_max_help_rate: float = 0.2
    good_step: float = 0.1
    weak_accuracy: float = 0.6
    weak_help_rate: float = 0.3
    weak_step: float = 0.3
    slow_response_ms: float = 15000


def _clamp_level(level: float) -> float:
    return max(MIN_LEVEL, min(MAX_LEVEL, level))


def map_chunks_to_level(chunks_acquired: int) -> float:
    """
    Map an acquired-chunk count to a difficulty level.

    Uses a CEFR-aligned step table, so the level only moves at fixed
    vocabulary milestones:
    - 0-49 chunks: 1.0
    - 150-299 chunks: 2.0
    - 500-799 chunks: 3.0
    - 1700-2299 chunks: 4.5
    - 2300+ chunks: 5.0
    """
    for upper, level in CHUNK_LEVEL_STEPS:
        if chunks_acquired < upper:
            return level
    return MAX_LEVEL


def calculate_current_level(
    profile: LearnerProfile,
    settings: CalibrationSettings | None = None,
) -> float:
    """
    Calculate the learner's current level (i).

    Starts from the chunk base level, shifts up for confidence above 0.5
    (down below it) and down in proportion to filter risk.
    """
    s = settings or CalibrationSettings()
    base = map_chunks_to_level(profile.chunks_acquired)
    confidence_adjustment = (profile.average_confidence - 0.5) * s.confidence_weight
    risk_adjustment = -profile.filter_risk_score * s.filter_risk_weight
    return _clamp_level(base + confidence_adjustment + risk_adjustment)


def calculate_i_plus_one(
    profile: LearnerProfile,
    current_level: float,
    settings: CalibrationSettings | None = None,
) -> float:
    """
    Calculate the i+1 target level.

    High filter risk means the learner needs consolidation, so the target
    stays at the current level instead of stretching.
    """
    s = settings or CalibrationSettings()
    if profile.filter_risk_score > s.drop_back_risk_threshold:
        return _clamp_level(current_level)
    return _clamp_level(current_level + 1)


def adapt_difficulty(
    current_target: float,
    performance: PerformanceData,
    settings: CalibrationSettings | None = None,
) -> float:
    """
    Adapt the target level from recent performance.

    Bands:
    - Strong (high accuracy, almost no help, not slow): larger increase
    - Weak (low accuracy or heavy help use): decrease
    - Good (high accuracy, little help): small increase
    - Anything else: hold
    """
    s = settings or CalibrationSettings()
    accuracy = performance.accuracy
    help_rate = performance.help_rate

    if (
        accuracy >= s.strong_accuracy
        and help_rate < s.strong_max_help_rate
        and performance.avg_response_time_ms <= s.slow_response_ms
    ):
        new_target = current_target + s.strong_step
    elif accuracy < s.weak_accuracy or help_rate > s.weak_help_rate:
        new_target = current_target - s.weak_step
    elif accuracy >= s.good_accuracy and help_rate < s.good_max_help_rate:
        new_target = current_target + s.good_step
    else:
        new_target = current_target

    new_target = _clamp_level(new_target)
    logger.debug(
        f"Target {current_target:.2f} -> {new_target:.2f} "
        f"(accuracy={accuracy:.2f}, help_rate={help_rate:.2f})"
    )
    return new_target


def should_drop_back(
    profile: LearnerProfile,
    recent_activities: Sequence[ActivityResult] = (),
) -> bool:
    """
    Check whether the learner should drop back to consolidation mode.

    True when 3+ of the last 5 activities were wrong, filter risk is above
    0.7, or average confidence is below 0.4.
    """
    recent = list(recent_activities)[-DROP_BACK_RECENT_WINDOW:]
    if sum(1 for a in recent if not a.correct) >= DROP_BACK_WRONG_COUNT:
        return True
    if profile.filter_risk_score > DROP_BACK_FILTER_RISK:
        return True
    return profile.average_confidence < DROP_BACK_LOW_CONFIDENCE


@dataclass(frozen=True)
class DifficultyCalibration:
    """Complete calibration analysis for a learner."""

    current_level: float
    target_level: float
    should_drop_back: bool
    reasoning: str
    factors: dict[str, float] = field(default_factory=dict)

    @property
    def cefr_label(self) -> str:
        return level_to_cefr_label(self.target_level)


def calibrate_difficulty(
    profile: LearnerProfile,
    recent_activities: Sequence[ActivityResult] = (),
    settings: CalibrationSettings | None = None,
) -> DifficultyCalibration:
    """Full calibration with the factors that produced it."""
    s = settings or CalibrationSettings()
    chunk_base_level = map_chunks_to_level(profile.chunks_acquired)
    confidence_adjustment = (profile.average_confidence - 0.5) * s.confidence_weight
    filter_risk_adjustment = -profile.filter_risk_score * s.filter_risk_weight

    current_level = calculate_current_level(profile, s)
    drop_back = should_drop_back(profile, recent_activities)
    target_level = current_level if drop_back else calculate_i_plus_one(profile, current_level, s)

    factors = [
        f"{profile.chunks_acquired} chunks acquired (base level {chunk_base_level:.1f})"
    ]
    if confidence_adjustment > 0.05:
        factors.append(f"high confidence (+{confidence_adjustment:.2f})")
    elif confidence_adjustment < -0.05:
        factors.append(f"low confidence ({confidence_adjustment:.2f})")
    if filter_risk_adjustment < -0.05:
        factors.append(f"filter risk reduced level ({filter_risk_adjustment:.2f})")

    if drop_back:
        reasoning = (
            f"Dropping to consolidation mode (level {current_level:.1f}) "
            "due to elevated filter risk. "
        )
    else:
        reasoning = f"Targeting i+1 at level {target_level:.1f}. "
    reasoning += f"Factors: {', '.join(factors)}."

    return DifficultyCalibration(
        current_level=current_level,
        target_level=target_level,
        should_drop_back=drop_back,
        reasoning=reasoning,
        factors={
            "chunk_base_level": chunk_base_level,
            "confidence_adjustment": confidence_adjustment,
            "filter_risk_adjustment": filter_risk_adjustment,
        },
    )


def level_to_cefr_label(level: float) -> str:
    """Convert a numeric level to a CEFR label (A1 .. C1)."""
    for upper, label in CEFR_LABELS:
        if level < upper:
            return label
    return "C1"


def get_difficulty_range(target_level: float, tolerance: float = 0.5) -> tuple[float, float]:
    """Acceptable (min, max) content difficulty around a target level."""
    return (
        max(MIN_LEVEL, target_level - tolerance),
        min(MAX_LEVEL, target_level + tolerance),
    )


def summarize_performance(activities: Sequence[ActivityResult]) -> PerformanceData:
    """Aggregate activities into a performance summary."""
    total = len(activities)
    if total == 0:
        return PerformanceData(correct=0, total=0)
    return PerformanceData(
        correct=sum(1 for a in activities if a.correct),
        total=total,
        avg_response_time_ms=sum(a.response_time_ms for a in activities) / total,
        help_used_count=sum(1 for a in activities if a.used_help),
    )
