"""
Unit tests for the affective filter monitor.

Tests scoring, rising-filter detection, the intervention priority chain and
long-run risk blending/decay.
"""

import random
from dataclasses import replace
from datetime import timedelta

import pytest

from lingo_core.adaptive.adaptations import (
    ENCOURAGEMENT_MESSAGES,
    AdaptationAction,
    AdaptationSeverity,
    AdaptationType,
    MessageCategory,
    MessagePicker,
    get_random_message,
)
from lingo_core.adaptive.affective_filter import (
    calculate_filter_score,
    calculate_updated_filter_risk,
    decay_filter_risk,
    get_adaptation,
    involves_difficulty_change,
    is_filter_rising,
    requires_immediate_action,
)
from lingo_core.core.models import LearnerProfile, days_since


class TestFilterScore:
    """Additive score with a final clamp."""

    def test_neutral_profile_no_signals_is_zero(self, neutral_profile, now):
        assert calculate_filter_score(neutral_profile, [], now=now) == 0.0

    def test_streak_of_three_adds_flat_quarter(self, neutral_profile, make_signals, now):
        """Three wrong in a row add 0.25; the help rate term adds nothing here."""
        signals = make_signals("wrong", "wrong", "wrong")
        assert calculate_filter_score(neutral_profile, signals, now=now) == pytest.approx(0.25)

    def test_streak_of_two_adds_per_wrong(self, neutral_profile, make_signals, now):
        signals = make_signals("wrong", "wrong")
        assert calculate_filter_score(neutral_profile, signals, now=now) == pytest.approx(0.16)

    def test_single_wrong_adds_nothing(self, neutral_profile, make_signals, now):
        signals = make_signals("wrong")
        assert calculate_filter_score(neutral_profile, signals, now=now) == 0.0

    def test_help_rate_capped(self, neutral_profile, make_signals, now):
        signals = make_signals("help", "help", "help", "help")
        assert calculate_filter_score(neutral_profile, signals, now=now) == pytest.approx(0.15)

    def test_slow_count_capped(self, neutral_profile, make_signals, now):
        assert calculate_filter_score(
            neutral_profile, make_signals("slow", "slow"), now=now
        ) == pytest.approx(0.06)
        assert calculate_filter_score(
            neutral_profile, make_signals(*["slow"] * 6), now=now
        ) == pytest.approx(0.10)

    def test_fast_answers_lower_score(self, now, make_signals):
        profile = LearnerProfile(average_confidence=0.2, last_activity_at=now)
        base = calculate_filter_score(profile, [], now=now)
        lowered = calculate_filter_score(profile, make_signals("fast", "fast"), now=now)
        assert base == pytest.approx(0.09)
        assert lowered == pytest.approx(0.05)

    def test_fast_answers_never_go_below_zero(self, neutral_profile, make_signals, now):
        signals = make_signals(*["fast"] * 10)
        assert calculate_filter_score(neutral_profile, signals, now=now) == 0.0

    def test_profile_rates_contribute(self, now):
        profile = LearnerProfile(
            average_confidence=0.5,
            wrong_answer_rate=0.5,
            help_request_rate=0.4,
            last_activity_at=now,
        )
        assert calculate_filter_score(profile, [], now=now) == pytest.approx(0.07)

    def test_inactivity_beyond_threshold(self, neutral_profile, now):
        profile = replace(neutral_profile, last_activity_at=now - timedelta(days=5))
        assert calculate_filter_score(profile, [], now=now) == pytest.approx(0.04)

    def test_inactivity_penalty_capped(self, neutral_profile, now):
        profile = replace(neutral_profile, last_activity_at=now - timedelta(days=60))
        assert calculate_filter_score(profile, [], now=now) == pytest.approx(0.10)

    def test_missing_last_activity_is_maximal_inactivity(self, neutral_profile, now):
        profile = replace(neutral_profile, last_activity_at=None)
        assert calculate_filter_score(profile, [], now=now) == pytest.approx(0.10)

    def test_extreme_inputs_clamped_to_one(self, make_signals, now):
        profile = LearnerProfile(
            average_confidence=0.0,
            wrong_answer_rate=1.0,
            help_request_rate=1.0,
            filter_risk_score=1.0,
            last_activity_at=None,
        )
        signals = make_signals(*["slow", "help", "wrong"] * 10)
        score = calculate_filter_score(profile, signals, {"wrong_answer_threshold": 1}, now=now)
        assert 0.0 <= score <= 1.0

    @pytest.mark.parametrize("seed", range(20))
    def test_score_always_in_unit_interval(self, seed, make_signals, now):
        rng = random.Random(seed)
        profile = LearnerProfile(
            average_confidence=rng.random(),
            wrong_answer_rate=rng.random(),
            help_request_rate=rng.random(),
            last_activity_at=now - timedelta(days=rng.randint(0, 90)),
        )
        kinds = ["wrong", "help", "slow", "fast", "quit"]
        signals = make_signals(*[rng.choice(kinds) for _ in range(rng.randint(0, 25))])
        assert 0.0 <= calculate_filter_score(profile, signals, now=now) <= 1.0


class TestFilterRising:
    """Rising-filter pattern detection."""

    def test_wrong_streak_at_threshold(self, make_signals):
        assert is_filter_rising(make_signals("wrong", "wrong", "wrong"))

    def test_wrong_streak_below_threshold(self, make_signals):
        assert not is_filter_rising(make_signals("fast", "wrong", "wrong"))

    def test_help_and_wrong(self, make_signals):
        assert is_filter_rising(make_signals("wrong", "help", "wrong", "help"))

    def test_slow_and_wrong(self, make_signals):
        assert is_filter_rising(make_signals("wrong", "slow", "fast", "wrong", "slow"))

    def test_quit_and_wrong(self, make_signals):
        assert is_filter_rising(make_signals("wrong", "fast", "wrong", "quit"))

    def test_quit_alone_is_not_rising(self, make_signals):
        assert not is_filter_rising(make_signals("wrong", "quit"))

    def test_only_last_ten_signals_count(self, make_signals):
        signals = make_signals("wrong", "help", "wrong", "help", *["fast"] * 10)
        assert not is_filter_rising(signals)

    def test_custom_threshold(self, make_signals):
        signals = make_signals("wrong", "wrong")
        assert is_filter_rising(signals, {"wrong_answer_threshold": 2})

    def test_wrong_streak_counted_within_last_ten(self, make_signals):
        signals = make_signals(*["wrong"] * 11)
        assert not is_filter_rising(signals, {"wrong_answer_threshold": 11})
        assert is_filter_rising(signals, {"wrong_answer_threshold": 10})


class TestGetAdaptation:
    """Strict priority chain, first match wins."""

    def test_very_high_score_suggests_break(self, make_signals, picker):
        """Break wins regardless of the signal pattern."""
        for signals in ([], make_signals("fast", "fast", "fast"), make_signals(*["wrong"] * 5)):
            action = get_adaptation(0.85, signals, 3.0, picker=picker)
            assert action.type == AdaptationType.SUGGEST_BREAK
            assert action.severity == AdaptationSeverity.CRITICAL
            assert action.message in ENCOURAGEMENT_MESSAGES[MessageCategory.SUGGEST_BREAK]

    def test_rising_filter_simplifies(self, make_signals, picker):
        action = get_adaptation(0.6, make_signals("wrong", "wrong", "wrong"), 3.0, picker=picker)
        assert action.type == AdaptationType.SIMPLIFY
        assert action.severity == AdaptationSeverity.WARNING
        assert action.drop_to_level == pytest.approx(2.5)
        assert action.drop_to_level < 3.0
        assert action.category == MessageCategory.STRUGGLING
        assert action.action == {"drop_to_i": True}

    def test_simplify_category_without_three_wrong(self, make_signals, picker):
        signals = make_signals("wrong", "help", "wrong", "help")
        action = get_adaptation(0.6, signals, 2.0, picker=picker)
        assert action.type == AdaptationType.SIMPLIFY
        assert action.category == MessageCategory.SIMPLIFY

    def test_simplify_floors_at_level_one(self, make_signals, picker):
        action = get_adaptation(0.6, make_signals("wrong", "wrong", "wrong"), 1.2, picker=picker)
        assert action.drop_to_level == pytest.approx(1.0)

    def test_elevated_stable_encourages(self, make_signals, picker):
        action = get_adaptation(0.6, make_signals("help", "help", "wrong"), 3.0, picker=picker)
        assert action.type == AdaptationType.ENCOURAGE
        assert action.severity == AdaptationSeverity.INFO
        assert action.category == MessageCategory.HELP_USED

    def test_elevated_stable_with_more_wrong_is_struggling(self, make_signals, picker):
        action = get_adaptation(0.6, make_signals("wrong", "fast", "wrong"), 3.0, picker=picker)
        assert action.type == AdaptationType.ENCOURAGE
        assert action.category == MessageCategory.STRUGGLING

    def test_low_score_fast_answers_challenge(self, make_signals, picker):
        action = get_adaptation(0.2, make_signals("fast", "fast", "fast"), 3.0, picker=picker)
        assert action.type == AdaptationType.CHALLENGE
        assert action.severity == AdaptationSeverity.SUCCESS
        assert action.increase_to_level == pytest.approx(3.5)
        assert action.increase_to_level > 3.0
        assert action.action == {"increase_difficulty": True}

    def test_challenge_caps_at_five(self, make_signals, picker):
        action = get_adaptation(0.1, make_signals("fast", "fast", "fast"), 4.8, picker=picker)
        assert action.increase_to_level == pytest.approx(5.0)

    def test_clean_run_celebrates_streak(self, make_signals, picker):
        action = get_adaptation(0.1, make_signals("slow", "fast", "slow"), 3.0, picker=picker)
        assert action.type == AdaptationType.ENCOURAGE
        assert action.severity == AdaptationSeverity.SUCCESS
        assert action.category == MessageCategory.STREAK

    def test_streak_needs_three_signals(self, make_signals, picker):
        action = get_adaptation(0.1, make_signals("fast", "fast"), 3.0, picker=picker)
        assert action.type == AdaptationType.NONE

    def test_any_wrong_blocks_streak(self, make_signals, picker):
        action = get_adaptation(0.1, make_signals("wrong", "fast", "slow"), 3.0, picker=picker)
        assert action.type == AdaptationType.NONE
        assert action.severity == AdaptationSeverity.NONE

    def test_middle_band_is_none(self, make_signals, picker):
        action = get_adaptation(0.4, make_signals("fast", "fast", "fast"), 3.0, picker=picker)
        assert action.is_none

    def test_default_level(self, make_signals):
        action = get_adaptation(0.6, make_signals("wrong", "wrong", "wrong"))
        assert action.drop_to_level == pytest.approx(2.0)


class TestMessages:
    """Injectable message selection."""

    def test_seeded_pickers_agree(self):
        a = MessagePicker(random.Random(7))
        b = MessagePicker(random.Random(7))
        picks_a = [a.pick(MessageCategory.SUCCESS) for _ in range(5)]
        picks_b = [b.pick(MessageCategory.SUCCESS) for _ in range(5)]
        assert picks_a == picks_b

    def test_custom_message_table(self):
        picker = MessagePicker(messages={MessageCategory.STREAK: ("Go!",)})
        assert picker.pick(MessageCategory.STREAK) == "Go!"

    def test_get_random_message_in_category(self):
        for category in MessageCategory:
            assert get_random_message(category) in ENCOURAGEMENT_MESSAGES[category]

    def test_every_category_has_messages(self):
        assert set(ENCOURAGEMENT_MESSAGES) == set(MessageCategory)


class TestAdaptationHelpers:
    """Classification helpers on actions."""

    def test_requires_immediate_action(self):
        assert requires_immediate_action(AdaptationAction.suggest_break("Rest"))
        assert requires_immediate_action(
            AdaptationAction.simplify(MessageCategory.SIMPLIFY, "Easier", 2.0)
        )
        assert not requires_immediate_action(AdaptationAction.challenge("Harder", 3.5))
        assert not requires_immediate_action(AdaptationAction.none())

    def test_involves_difficulty_change(self):
        assert involves_difficulty_change(AdaptationAction.challenge("Harder", 3.5))
        assert involves_difficulty_change(
            AdaptationAction.simplify(MessageCategory.SIMPLIFY, "Easier", 2.0)
        )
        assert not involves_difficulty_change(
            AdaptationAction.encourage(MessageCategory.STREAK, "Yay", AdaptationSeverity.SUCCESS)
        )

    def test_to_dict_omits_unset_fields(self):
        data = AdaptationAction.challenge("Harder", 3.5).to_dict()
        assert data["type"] == "challenge"
        assert data["severity"] == "success"
        assert data["increase_to_level"] == 3.5
        assert "drop_to_level" not in data
        assert AdaptationAction.none().to_dict() == {"type": "none", "severity": "none"}

    def test_change_topic_carries_reason(self):
        action = AdaptationAction.change_topic("Let's switch!", "bored")
        assert action.type == AdaptationType.CHANGE_TOPIC
        assert action.reason == "bored"


class TestFilterRisk:
    """Long-run risk blending and decay."""

    def test_blend(self):
        assert calculate_updated_filter_risk(0.5, 1.0) == pytest.approx(0.6)
        assert calculate_updated_filter_risk(0.0, 0.5) == pytest.approx(0.1)

    def test_blend_clamped(self):
        assert calculate_updated_filter_risk(1.0, 1.0) == pytest.approx(1.0)
        assert calculate_updated_filter_risk(1.5, 2.0) == 1.0

    def test_decay_non_increasing(self):
        values = [decay_filter_risk(0.8, d) for d in range(0, 15)]
        assert all(later <= earlier for earlier, later in zip(values, values[1:]))

    def test_decay_saturates_at_ten_days(self):
        assert decay_filter_risk(0.8, 10) == pytest.approx(0.8 * 0.9**10)
        assert decay_filter_risk(0.8, 30) == pytest.approx(decay_filter_risk(0.8, 10))

    def test_negative_days_leave_risk_unchanged(self):
        assert decay_filter_risk(0.5, -3) == pytest.approx(0.5)

    def test_days_since_missing_is_infinite(self, now):
        assert days_since(None, now) == float("inf")
        assert days_since(now - timedelta(days=2), now) == pytest.approx(2.0)
