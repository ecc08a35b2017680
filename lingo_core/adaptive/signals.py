"""
Signal detection for affective filter monitoring.

Classifies a single activity outcome into zero or more signal tags and
provides the windowed counting helpers shared by the filter monitor.
Every check is an independent boolean test, so one outcome can emit
several tags (e.g. a wrong, help-assisted, slow answer).
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from lingo_core.adaptive.thresholds import RECENT_WINDOW, ThresholdsLike, resolve_thresholds
from lingo_core.core.models import SessionSignal, SignalType, utc_now

# Correct answers faster than this fraction of the average count as "fast"
FAST_RESPONSE_FRACTION = 0.5


def detect_signals(
    correct: bool,
    used_help: bool,
    response_time_ms: float,
    average_response_time_ms: float,
    thresholds: ThresholdsLike = None,
) -> list[SignalType]:
    """
    Detect signal types from an activity result.

    Args:
        correct: Whether the answer was correct
        used_help: Whether help was used
        response_time_ms: Response time in milliseconds
        average_response_time_ms: Average response time for comparison
        thresholds: Custom thresholds (optional)

    Returns:
        Detected signal types, in wrong/help/slow/fast order

    Example:
        >>> detect_signals(False, True, 45000, 20000)
        [<SignalType.WRONG: 'wrong'>, <SignalType.HELP: 'help'>, <SignalType.SLOW: 'slow'>]
    """
    t = resolve_thresholds(thresholds)
    signals: list[SignalType] = []

    if not correct:
        signals.append(SignalType.WRONG)

    if used_help:
        signals.append(SignalType.HELP)

    if response_time_ms > average_response_time_ms * t.slow_response_multiplier:
        signals.append(SignalType.SLOW)

    if correct and response_time_ms < average_response_time_ms * FAST_RESPONSE_FRACTION:
        signals.append(SignalType.FAST)

    return signals


def record_signal(
    signals: Sequence[SessionSignal],
    signal_type: SignalType,
    activity_id: str,
    data: dict[str, Any] | None = None,
    timestamp: datetime | None = None,
) -> tuple[SessionSignal, ...]:
    """Return a new signal sequence with one signal appended."""
    signal = SessionSignal(
        type=SignalType(signal_type),
        activity_id=activity_id,
        timestamp=timestamp or utc_now(),
        data=data,
    )
    return (*signals, signal)


def recent_signals(
    signals: Sequence[SessionSignal], lookback: int = RECENT_WINDOW
) -> Sequence[SessionSignal]:
    return signals[-lookback:] if lookback > 0 else signals[:0]


def count_recent_signals(
    signals: Sequence[SessionSignal],
    signal_type: SignalType,
    lookback: int = RECENT_WINDOW,
) -> int:
    """Count signals of one type among the most recent ``lookback`` signals."""
    return sum(1 for s in recent_signals(signals, lookback) if s.type == signal_type)


def get_signal_streak(signals: Sequence[SessionSignal], signal_type: SignalType) -> int:
    """Number of consecutive signals of a type, counted back from the most recent."""
    streak = 0
    for signal in reversed(signals):
        if signal.type != signal_type:
            break
        streak += 1
    return streak
