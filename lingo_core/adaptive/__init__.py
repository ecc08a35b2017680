"""
Adaptive Learning Engine.

Keeps the learner in the comprehensible-input sweet spot: content at i+1
while the affective filter stays low.

Components:
- signals: classify one activity outcome into signal tags
- affective_filter: score the filter, detect a rising filter, pick interventions
- adaptations: the AdaptationAction value and encouragement messages
- difficulty: chunk-to-level mapping, current level, i+1, live adaptation
- session: the SessionContext state machine and its async report flow
"""
from lingo_core.adaptive.adaptations import (
    AdaptationAction,
    AdaptationSeverity,
    AdaptationType,
    MessageCategory,
    MessagePicker,
)
from lingo_core.adaptive.affective_filter import (
    calculate_filter_score,
    calculate_updated_filter_risk,
    decay_filter_risk,
    get_adaptation,
    is_filter_rising,
)
from lingo_core.adaptive.difficulty import (
    CalibrationSettings,
    DifficultyCalibration,
    adapt_difficulty,
    calculate_current_level,
    calculate_i_plus_one,
    map_chunks_to_level,
)
from lingo_core.adaptive.session import (
    EndDecision,
    SessionClosedError,
    SessionContext,
    SessionSettings,
    create_session_context,
    prepare_session,
    report_activity_completion,
    should_end_session,
)
from lingo_core.adaptive.signals import detect_signals
from lingo_core.adaptive.thresholds import FilterThresholds

__all__ = [
    "AdaptationAction",
    "AdaptationSeverity",
    "AdaptationType",
    "MessageCategory",
    "MessagePicker",
    "calculate_filter_score",
    "calculate_updated_filter_risk",
    "decay_filter_risk",
    "get_adaptation",
    "is_filter_rising",
    "CalibrationSettings",
    "DifficultyCalibration",
    "adapt_difficulty",
    "calculate_current_level",
    "calculate_i_plus_one",
    "map_chunks_to_level",
    "EndDecision",
    "SessionClosedError",
    "SessionContext",
    "SessionSettings",
    "create_session_context",
    "prepare_session",
    "report_activity_completion",
    "should_end_session",
    "detect_signals",
    "FilterThresholds",
]
