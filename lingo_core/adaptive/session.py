"""
Session context state machine.

A ``SessionContext`` is an immutable value threaded through the session by
the caller. Every transition returns a new context, so earlier snapshots stay
valid for undo or debugging.

States:
    (none) -> active   (create_session_context, prepare_session)
    active -> active   (apply_activity, record_quit, adapt_session_target)
    active -> ended    (end_session, finish_session)

Any transition on an ended session raises ``SessionClosedError``.

The async flows (``prepare_session``, ``report_activity_completion``,
``finish_session``) wrap the pure transitions with collaborator calls.
Collaborator failures are logged and never change the returned context or
adaptation.
"""
from __future__ import annotations

from collections.abc import Awaitable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TYPE_CHECKING

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from lingo_core.adaptive.adaptations import AdaptationAction, AdaptationType, MessagePicker
from lingo_core.adaptive.affective_filter import calculate_filter_score, get_adaptation
from lingo_core.adaptive.difficulty import (
    CalibrationSettings,
    adapt_difficulty,
    calculate_current_level,
    calculate_i_plus_one,
    summarize_performance,
)
from lingo_core.adaptive.signals import detect_signals, record_signal
from lingo_core.adaptive.thresholds import ThresholdsLike, resolve_thresholds
from lingo_core.core.models import (
    ActivityResult,
    LearnerProfile,
    SessionSignal,
    SignalType,
    ensure_aware,
    utc_now,
)

if TYPE_CHECKING:
    from lingo_core.services.collaborators import ContentService, ProfileService

# Consecutive wrong answers (without help) that count as a struggle
STRUGGLE_STREAK = 3

END_REASON_FATIGUE = "High error rate suggests fatigue. Time for a break."
END_REASON_STRUGGLES = "Multiple struggles detected. Better to rest and return fresh."
END_REASON_TIME = "Good session! Time to wrap up."
END_REASON_ALREADY_ENDED = "Session already ended."


class SessionClosedError(ValueError):
    """Raised when a transition is attempted on an ended session."""


class SessionSettings(BaseModel):
    """Session life-cycle knobs."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    default_duration_minutes: float = Field(default=10, gt=0)
    minutes_per_activity: float = Field(default=1.5, gt=0)
    min_activities_for_fatigue: int = Field(default=10, ge=1)
    high_error_rate: float = Field(default=0.5, ge=0, le=1)
    max_wrong_signals: int = Field(default=5, ge=1)


@dataclass(frozen=True)
class SessionContext:
    """
    State of one learning session.

    ``activities`` and ``filter_signals`` only ever grow. ``base_target_level``
    is fixed at creation; ``current_target_level`` moves with simplify and
    challenge adaptations.
    """

    session_id: str
    user_id: str
    topic: str
    base_target_level: float
    current_target_level: float
    activities: tuple[ActivityResult, ...] = ()
    filter_signals: tuple[SessionSignal, ...] = ()
    adaptations: tuple[AdaptationAction, ...] = ()
    is_complete: bool = False
    started_at: datetime = field(default_factory=utc_now)
    end_reason: str | None = None

    @property
    def is_active(self) -> bool:
        return not self.is_complete

    @property
    def wrong_count(self) -> int:
        return sum(1 for a in self.activities if not a.correct)

    @property
    def error_rate(self) -> float:
        return self.wrong_count / max(1, len(self.activities))


@dataclass(frozen=True)
class EndDecision:
    """Whether a session should end, and why."""

    should_end: bool
    reason: str = ""


@dataclass(frozen=True)
class SessionSummary:
    """End-of-session report."""

    session_id: str
    duration_minutes: int
    total_activities: int
    correct_first_try: int
    accuracy: float
    max_correct_streak: int
    chunks_practiced: tuple[str, ...]
    struggling_chunks: tuple[str, ...]
    mastered_chunks: tuple[str, ...]
    final_target_level: float
    adaptations_made: int
    tips: tuple[str, ...] = ()


def _ensure_active(context: SessionContext) -> None:
    if context.is_complete:
        raise SessionClosedError(f"Session {context.session_id} has already ended")


def create_session_context(
    session_id: str,
    user_id: str,
    topic: str,
    initial_target_level: float,
    started_at: datetime | None = None,
) -> SessionContext:
    """Start a new session with empty history at the given target level."""
    return SessionContext(
        session_id=session_id,
        user_id=user_id,
        topic=topic,
        base_target_level=initial_target_level,
        current_target_level=initial_target_level,
        started_at=ensure_aware(started_at) if started_at else utc_now(),
    )


def _wrong_streak(activities: Sequence[ActivityResult]) -> int:
    streak = 0
    for activity in reversed(activities):
        if activity.correct:
            break
        streak += 1
    return streak


def apply_activity(
    context: SessionContext,
    activity: ActivityResult,
    profile: LearnerProfile | None = None,
    thresholds: ThresholdsLike = None,
    picker: MessagePicker | None = None,
    now: datetime | None = None,
) -> tuple[SessionContext, AdaptationAction]:
    """
    Fold one completed activity into the session.

    Signals are detected against the mean response time of the earlier
    activities (the activity's own time for the first one). The adaptation
    is recomputed over the updated signal list. Simplify and challenge steps
    are anchored on the base target level, so a long run of the same pattern
    never moves the live target more than one step away from it.

    Returns:
        (new context, adaptation)

    Raises:
        SessionClosedError: If the session has ended
    """
    _ensure_active(context)
    t = resolve_thresholds(thresholds)
    profile = profile or LearnerProfile(user_id=context.user_id)

    if context.activities:
        average = sum(a.response_time_ms for a in context.activities) / len(context.activities)
    else:
        average = float(activity.response_time_ms)

    signals: tuple[SessionSignal, ...] = context.filter_signals
    for signal_type in detect_signals(
        activity.correct, activity.used_help, activity.response_time_ms, average, t
    ):
        data = None
        if signal_type == SignalType.SLOW:
            data = {"response_time_ms": activity.response_time_ms, "average": average}
        signals = record_signal(signals, signal_type, activity.id, data, activity.timestamp)

    score = calculate_filter_score(profile, signals, t, now)
    adaptation = get_adaptation(score, signals, context.base_target_level, t, picker)

    target = context.current_target_level
    if adaptation.type == AdaptationType.SIMPLIFY and adaptation.drop_to_level is not None:
        target = adaptation.drop_to_level
    elif adaptation.type == AdaptationType.CHALLENGE and adaptation.increase_to_level is not None:
        target = adaptation.increase_to_level

    adaptations = context.adaptations
    if not adaptation.is_none:
        adaptations = (*adaptations, adaptation)

    updated = replace(
        context,
        activities=(*context.activities, activity),
        filter_signals=signals,
        adaptations=adaptations,
        current_target_level=target,
    )
    return updated, adaptation


async def _call_safely(action: Awaitable[object], description: str) -> None:
    try:
        await action
    except Exception as e:
        logger.warning(f"Failed to {description}: {e}")


async def _load_profile(profile_service: ProfileService, user_id: str) -> LearnerProfile:
    try:
        profile = await profile_service.get_profile(user_id)
    except Exception as e:
        logger.warning(f"Could not load profile for {user_id}, using defaults: {e}")
        return LearnerProfile(user_id=user_id)
    if profile is None:
        logger.debug(f"No profile for {user_id}, using defaults")
        return LearnerProfile(user_id=user_id)
    return profile


async def prepare_session(
    session_id: str,
    user_id: str,
    topic: str,
    *,
    profile_service: ProfileService,
    content_service: ContentService,
    settings: CalibrationSettings | None = None,
    started_at: datetime | None = None,
) -> SessionContext:
    """
    Start a session at the learner's i+1 target level.

    The profile's acquired-chunk count is refreshed from the content service
    before the level is calculated. If either read fails the stored or
    default values are used and the failure is logged.
    """
    profile = await _load_profile(profile_service, user_id)
    try:
        chunks = await content_service.chunks_acquired(user_id)
    except Exception as e:
        logger.warning(f"Could not count acquired chunks for {user_id}: {e}")
    else:
        profile = replace(profile, chunks_acquired=chunks)

    current_level = calculate_current_level(profile, settings)
    target_level = calculate_i_plus_one(profile, current_level, settings)
    logger.info(
        f"Session {session_id} for {user_id}: level {current_level:.2f}, "
        f"target {target_level:.2f} ({profile.chunks_acquired} chunks)"
    )
    return create_session_context(session_id, user_id, topic, target_level, started_at)


async def report_activity_completion(
    user_id: str,
    activity: ActivityResult,
    context: SessionContext,
    *,
    profile_service: ProfileService,
    content_service: ContentService,
    thresholds: ThresholdsLike = None,
    picker: MessagePicker | None = None,
) -> tuple[SessionContext, AdaptationAction]:
    """
    Report a completed activity and get the next adaptation.

    Reads the learner profile, applies the activity, then records chunk
    encounters and the confidence update. A wrong answer without help that
    extends a streak of 3+ wrong answers also records a struggle.

    Collaborator failures are logged; the returned context and adaptation
    depend only on the inputs and the profile that could be read.
    """
    _ensure_active(context)
    profile = await _load_profile(profile_service, user_id)
    updated, adaptation = apply_activity(context, activity, profile, thresholds, picker)

    for chunk_id in activity.chunk_ids:
        await _call_safely(
            content_service.record_encounter(
                user_id,
                chunk_id,
                activity.correct,
                activity.response_time_ms,
                activity.used_help,
            ),
            f"record encounter for chunk {chunk_id}",
        )

    await _call_safely(
        profile_service.update_confidence(user_id, activity.correct, activity.used_help),
        "update confidence",
    )

    if (
        not activity.correct
        and not activity.used_help
        and _wrong_streak(updated.activities) >= STRUGGLE_STREAK
    ):
        await _call_safely(profile_service.record_struggle(user_id), "record struggle")

    return updated, adaptation


def record_quit(
    context: SessionContext,
    activity_id: str,
    timestamp: datetime | None = None,
) -> SessionContext:
    """Record that the learner left an activity mid-way."""
    _ensure_active(context)
    signals = record_signal(context.filter_signals, SignalType.QUIT, activity_id, None, timestamp)
    return replace(context, filter_signals=signals)


def adapt_session_target(
    context: SessionContext,
    settings: CalibrationSettings | None = None,
) -> SessionContext:
    """Adapt the live target level from the session's own performance."""
    _ensure_active(context)
    if not context.activities:
        return context
    performance = summarize_performance(context.activities)
    return replace(
        context,
        current_target_level=adapt_difficulty(context.current_target_level, performance, settings),
    )


def end_session(context: SessionContext, reason: str = "") -> SessionContext:
    """Move the session to its terminal state."""
    _ensure_active(context)
    logger.info(
        f"Session {context.session_id} ended after {len(context.activities)} activities"
        + (f": {reason}" if reason else "")
    )
    return replace(context, is_complete=True, end_reason=reason or None)


def should_end_session(
    context: SessionContext,
    duration_minutes: float | None = None,
    settings: SessionSettings | None = None,
) -> EndDecision:
    """
    Check whether the session should end.

    Ends on fatigue (enough activities with a high error rate), on repeated
    wrong answers, or when the estimated elapsed time reaches the duration.
    """
    s = settings or SessionSettings()
    if context.is_complete:
        return EndDecision(True, context.end_reason or END_REASON_ALREADY_ENDED)

    total = len(context.activities)
    if total >= s.min_activities_for_fatigue and context.error_rate > s.high_error_rate:
        return EndDecision(True, END_REASON_FATIGUE)

    wrong_signals = sum(1 for sig in context.filter_signals if sig.type == SignalType.WRONG)
    if wrong_signals >= s.max_wrong_signals:
        return EndDecision(True, END_REASON_STRUGGLES)

    duration = duration_minutes or s.default_duration_minutes
    if total * s.minutes_per_activity >= duration:
        return EndDecision(True, END_REASON_TIME)

    return EndDecision(False, "")


def _max_correct_streak(activities: Sequence[ActivityResult]) -> int:
    best = current = 0
    for activity in activities:
        current = current + 1 if activity.correct else 0
        best = max(best, current)
    return best


def _session_tips(accuracy: float, duration_minutes: int, struggling: int) -> tuple[str, ...]:
    tips: list[str] = []
    if accuracy >= 0.9:
        tips.append("Excellent work! You're really getting the hang of this.")
    elif accuracy >= 0.7:
        tips.append("Good progress! Keep practicing to solidify what you learned.")
    elif accuracy >= 0.5:
        tips.append("You're learning! Reviewing these chunks again will help them stick.")
    else:
        tips.append("This topic is challenging. Don't give up - practice makes progress!")

    if duration_minutes < 5:
        tips.append("A bit longer next time will help reinforce your learning.")
    elif duration_minutes > 20:
        tips.append("Great dedication! Remember, shorter sessions more often can be more effective.")

    if struggling > 2:
        tips.append(f"Focus on the {struggling} chunks that were tricky - they'll click with practice.")
    return tuple(tips)


def summarize_session(context: SessionContext, now: datetime | None = None) -> SessionSummary:
    """Build the end-of-session summary."""
    now = ensure_aware(now) if now else utc_now()
    duration = max(0, round((now - context.started_at).total_seconds() / 60))

    activities = context.activities
    total = len(activities)
    correct_first_try = sum(1 for a in activities if a.correct and a.attempts == 1)
    accuracy = correct_first_try / total if total else 0.0

    # chunk id -> [correct, total], in first-seen order
    per_chunk: dict[str, list[int]] = {}
    for activity in activities:
        for chunk_id in activity.chunk_ids:
            stats = per_chunk.setdefault(chunk_id, [0, 0])
            stats[1] += 1
            if activity.correct:
                stats[0] += 1

    struggling = tuple(c for c, (ok, n) in per_chunk.items() if ok / n < 0.5)
    mastered = tuple(c for c, (ok, n) in per_chunk.items() if ok == n and n >= 2)

    return SessionSummary(
        session_id=context.session_id,
        duration_minutes=duration,
        total_activities=total,
        correct_first_try=correct_first_try,
        accuracy=accuracy,
        max_correct_streak=_max_correct_streak(activities),
        chunks_practiced=tuple(per_chunk),
        struggling_chunks=struggling,
        mastered_chunks=mastered,
        final_target_level=context.current_target_level,
        adaptations_made=len(context.adaptations),
        tips=_session_tips(accuracy, duration, len(struggling)),
    )


async def finish_session(
    context: SessionContext,
    profile: LearnerProfile,
    profile_service: ProfileService,
    thresholds: ThresholdsLike = None,
    reason: str = "",
    now: datetime | None = None,
) -> tuple[SessionContext, float]:
    """
    End the session and blend its filter score into the stored risk.

    Returns:
        (ended context, session filter score)
    """
    ended = end_session(context, reason)
    score = calculate_filter_score(profile, ended.filter_signals, thresholds, now)
    await _call_safely(
        profile_service.blend_filter_risk(context.user_id, score),
        "blend session filter score",
    )
    return ended, score
