"""
Affective Filter Monitor.

Tracks emotional state indicators to keep the learner in a low-anxiety,
high-motivation state. When the filter rises (frustration, boredom,
confusion), the monitor picks an intervention.

Score components (additive, then clamped to [0, 1]):
- Wrong-answer streak (most recent signals backward)
- Help usage rate, slow and fast response counts over the last 10 signals
- Profile-level confidence, wrong-answer rate and help-request rate
- Days of inactivity beyond the threshold

Individual contributions are capped but the sum is not; clamping only
happens on the final total.
"""
from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from loguru import logger

from lingo_core.adaptive.adaptations import (
    AdaptationAction,
    AdaptationSeverity,
    MessageCategory,
    MessagePicker,
    get_random_message,
    involves_difficulty_change,
    requires_immediate_action,
)
from lingo_core.adaptive.signals import (
    count_recent_signals,
    get_signal_streak,
    recent_signals,
)
from lingo_core.adaptive.thresholds import (
    RECENT_WINDOW,
    FilterThresholds,
    ThresholdsLike,
    resolve_thresholds,
)
from lingo_core.core.models import LearnerProfile, SessionSignal, SignalType, days_since

__all__ = [
    "FilterThresholds",
    "calculate_filter_score",
    "is_filter_rising",
    "get_adaptation",
    "calculate_updated_filter_risk",
    "decay_filter_risk",
    "requires_immediate_action",
    "involves_difficulty_change",
    "get_random_message",
    "days_since",
]

# Score bands for intervention decisions
BREAK_SCORE = 0.8
HIGH_SCORE = 0.5
LOW_SCORE = 0.3

# Level step for simplify / challenge
LEVEL_STEP = 0.5
MIN_LEVEL = 1.0
MAX_LEVEL = 5.0

# Long-run risk blending
RISK_HISTORY_WEIGHT = 0.8
RISK_SESSION_WEIGHT = 0.2
RISK_DECAY_PER_DAY = 0.9
RISK_DECAY_MAX_DAYS = 10


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def calculate_filter_score(
    profile: LearnerProfile,
    signals: Sequence[SessionSignal],
    thresholds: ThresholdsLike = None,
    now: datetime | None = None,
) -> float:
    """
    Calculate the affective filter score for a learner.

    Args:
        profile: Learner profile with historical data
        signals: Signals from the current session, oldest first
        thresholds: Custom thresholds (optional)
        now: Reference time for the inactivity check (defaults to UTC now)

    Returns:
        Filter score from 0 (low filter, good) to 1 (high filter, bad)
    """
    t = resolve_thresholds(thresholds)
    score = 0.0

    # === Session-based signals ===

    wrong_streak = get_signal_streak(signals, SignalType.WRONG)
    if wrong_streak >= t.wrong_answer_threshold:
        score += 0.25
    elif wrong_streak >= 2:
        score += wrong_streak * 0.08

    recent = recent_signals(signals)
    if recent:
        help_rate = count_recent_signals(signals, SignalType.HELP) / len(recent)
        score += min(0.15, help_rate * 0.5)

    slow_count = count_recent_signals(signals, SignalType.SLOW)
    score += min(0.10, slow_count * 0.03)

    # Fast correct answers mean the learner is comfortable (or bored)
    fast_count = count_recent_signals(signals, SignalType.FAST)
    score -= min(0.10, fast_count * 0.02)

    # === Profile-based signals ===

    if profile.average_confidence < 0.5:
        score += (0.5 - profile.average_confidence) * 0.30

    score += profile.wrong_answer_rate * 0.10
    score += profile.help_request_rate * 0.05

    inactive_days = days_since(profile.last_activity_at, now)
    if inactive_days > t.inactivity_days_threshold:
        excess = inactive_days - t.inactivity_days_threshold
        score += min(0.10, excess * 0.02)

    result = _clamp(score)
    logger.debug(
        f"Filter score {result:.3f} (raw={score:.3f}, wrong_streak={wrong_streak}, "
        f"slow={slow_count}, fast={fast_count})"
    )
    return result


def is_filter_rising(
    signals: Sequence[SessionSignal],
    thresholds: ThresholdsLike = None,
) -> bool:
    """
    Check whether the recent signal pattern shows a rising filter.

    Evaluated over the last 10 signals.
    """
    t = resolve_thresholds(thresholds)

    wrong_streak = get_signal_streak(recent_signals(signals), SignalType.WRONG)
    if wrong_streak >= t.wrong_answer_threshold:
        return True

    wrong = count_recent_signals(signals, SignalType.WRONG)
    if wrong < 2:
        return False

    # Wrong answers combined with confusion, hesitation or quitting
    if count_recent_signals(signals, SignalType.HELP) >= 2:
        return True
    if count_recent_signals(signals, SignalType.SLOW) >= 2:
        return True
    return count_recent_signals(signals, SignalType.QUIT) > 0


def get_adaptation(
    filter_score: float,
    signals: Sequence[SessionSignal],
    current_level: float = 2.5,
    thresholds: ThresholdsLike = None,
    picker: MessagePicker | None = None,
) -> AdaptationAction:
    """
    Decide the adaptation for the current filter state.

    Rules are checked in priority order and the first match wins.

    Args:
        filter_score: Current filter score
        signals: Session signals, oldest first
        current_level: Current target difficulty level
        thresholds: Custom thresholds (optional)
        picker: Message source (optional, a fresh unseeded picker by default)

    Returns:
        The adaptation to apply
    """
    picker = picker or MessagePicker()
    rising = is_filter_rising(signals, thresholds)

    wrong = count_recent_signals(signals, SignalType.WRONG, RECENT_WINDOW)
    help_count = count_recent_signals(signals, SignalType.HELP, RECENT_WINDOW)
    fast = count_recent_signals(signals, SignalType.FAST, RECENT_WINDOW)

    # 1. Very high filter: suggest a break
    if filter_score > BREAK_SCORE:
        action = AdaptationAction.suggest_break(picker.pick(MessageCategory.SUGGEST_BREAK))

    # 2. Rising filter with elevated score: drop back to i
    elif rising and filter_score > HIGH_SCORE:
        category = MessageCategory.STRUGGLING if wrong >= 3 else MessageCategory.SIMPLIFY
        action = AdaptationAction.simplify(
            category,
            picker.pick(category),
            drop_to_level=max(MIN_LEVEL, current_level - LEVEL_STEP),
        )

    # 3. Elevated but stable: encourage
    elif filter_score > HIGH_SCORE:
        category = (
            MessageCategory.HELP_USED if help_count > wrong else MessageCategory.STRUGGLING
        )
        action = AdaptationAction.encourage(
            category, picker.pick(category), AdaptationSeverity.INFO
        )

    # 4. Low filter with fast answers: challenge
    elif filter_score < LOW_SCORE and fast >= 3:
        action = AdaptationAction.challenge(
            picker.pick(MessageCategory.CHALLENGE),
            increase_to_level=min(MAX_LEVEL, current_level + LEVEL_STEP),
        )

    # 5. Low filter, clean run: celebrate the streak
    elif (
        filter_score < LOW_SCORE
        and get_signal_streak(signals, SignalType.WRONG) == 0
        and len(recent_signals(signals)) >= 3
        and wrong == 0
    ):
        action = AdaptationAction.encourage(
            MessageCategory.STREAK,
            picker.pick(MessageCategory.STREAK),
            AdaptationSeverity.SUCCESS,
        )

    else:
        action = AdaptationAction.none()

    logger.debug(
        f"Adaptation {action.type.value}/{action.severity.value} "
        f"(score={filter_score:.3f}, rising={rising}, wrong={wrong}, fast={fast})"
    )
    return action


def calculate_updated_filter_risk(current_risk: float, session_score: float) -> float:
    """Blend a session's filter score into the long-run risk score."""
    return _clamp(current_risk * RISK_HISTORY_WEIGHT + session_score * RISK_SESSION_WEIGHT)


def decay_filter_risk(current_risk: float, days_since_last_session: float) -> float:
    """
    Decay filter risk over time.

    Risk shrinks by 10% per day away, capped at 10 days. Negative day
    counts (clock skew) are treated as zero.
    """
    days = max(0.0, min(float(days_since_last_session), RISK_DECAY_MAX_DAYS))
    return current_risk * RISK_DECAY_PER_DAY**days
