"""
Adaptation actions and encouragement messages.

An ``AdaptationAction`` is the engine's intervention decision: a tagged value
whose ``type`` selects which variant fields are meaningful
(``drop_to_level`` for simplify, ``increase_to_level`` for challenge,
``reason`` for change_topic). Actions are immutable.

Message wording is a presentation concern. The engine decides a
``MessageCategory`` deterministically and resolves the text through a
``MessagePicker`` whose random source is injectable, so tests can pin the
choice or ignore the text entirely.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class AdaptationType(str, Enum):
    """Ways the engine can respond to the learner's affective state."""

    NONE = "none"
    SIMPLIFY = "simplify"
    ENCOURAGE = "encourage"
    CHALLENGE = "challenge"
    SUGGEST_BREAK = "suggest_break"
    CHANGE_TOPIC = "change_topic"


class AdaptationSeverity(str, Enum):
    """Urgency of an adaptation."""

    NONE = "none"
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    CRITICAL = "critical"


class MessageCategory(str, Enum):
    """Situations with their own kid-friendly message list."""

    WRONG_ANSWER = "wrong_answer"
    HELP_USED = "help_used"
    STRUGGLING = "struggling"
    SUCCESS = "success"
    STREAK = "streak"
    SUGGEST_BREAK = "suggest_break"
    SIMPLIFY = "simplify"
    CHALLENGE = "challenge"


# Warm, supportive, age-appropriate messages per situation
ENCOURAGEMENT_MESSAGES: dict[MessageCategory, tuple[str, ...]] = {
    MessageCategory.WRONG_ANSWER: (
        "That's okay! Learning is about making mistakes.",
        "Good try! You're getting closer.",
        "Don't worry, we'll see this again.",
        "That was a common mistake. Let's remember it together!",
        "Nice effort! Every mistake helps you learn.",
        "Not quite, but you're on the right track!",
    ),
    MessageCategory.HELP_USED: (
        "Asking for help is smart!",
        "Great question! That's how we learn.",
        "I'm here to help you understand.",
        "Good thinking to ask!",
        "Helping you is what I'm here for!",
    ),
    MessageCategory.STRUGGLING: (
        "You're working hard, and it shows!",
        "This one is tricky. Let's break it down together.",
        "You've got this! Take your time.",
        "Learning new things takes practice. You're doing great!",
        "It's okay to find this challenging. That means you're learning!",
        "Let's take a breath. You can do this!",
    ),
    MessageCategory.SUCCESS: (
        "Excellent work!",
        "You're making great progress!",
        "That's the way to do it!",
        "Perfect! You're really getting this!",
        "Awesome! Keep it up!",
        "You're a natural!",
    ),
    MessageCategory.STREAK: (
        "You're on a roll!",
        "Hot streak! Keep it up!",
        "You're unstoppable today!",
        "Wow, look at you go!",
        "That's impressive! Keep the streak alive!",
    ),
    MessageCategory.SUGGEST_BREAK: (
        "You've been working hard! Let's take a short break and come back fresh.",
        "Great effort today! A quick break might help you recharge.",
        "Your brain needs rest to learn better. Let's pause and come back soon!",
        "You've done a lot! Taking breaks helps you remember better.",
    ),
    MessageCategory.SIMPLIFY: (
        "Let's try something a bit easier to build confidence.",
        "How about we practice some simpler ones first?",
        "Let's warm up with something familiar, then come back to this.",
        "Sometimes taking a step back helps us move forward!",
    ),
    MessageCategory.CHALLENGE: (
        "You're on fire! Ready for something more challenging?",
        "Wow, you're doing great! Want to try a harder one?",
        "You've mastered this! Let's level up!",
        "This might be too easy for you now. Ready for the next level?",
    ),
}


class MessagePicker:
    """
    Picks message text for a category.

    Wraps a ``random.Random`` so callers can seed it or substitute their own
    source. The default instance draws from a fresh unseeded generator.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        messages: dict[MessageCategory, tuple[str, ...]] | None = None,
    ):
        self.rng = rng or random.Random()
        self.messages = messages or ENCOURAGEMENT_MESSAGES

    def pick(self, category: MessageCategory) -> str:
        options = self.messages[MessageCategory(category)]
        return self.rng.choice(options)


def get_random_message(category: MessageCategory, picker: MessagePicker | None = None) -> str:
    """Get a message for a category from the given (or a fresh) picker."""
    return (picker or MessagePicker()).pick(category)


@dataclass(frozen=True)
class AdaptationAction:
    """
    An intervention decision.

    Attributes:
        type: Which variant this is
        severity: Urgency of the intervention
        category: Message category the text was drawn from (None for ``none``)
        message: Resolved message text
        drop_to_level: Target level to drop to (simplify)
        increase_to_level: Target level to rise to (challenge)
        reason: Why a topic change is suggested (change_topic)
        action: Extra hints for the caller, e.g. ``{"drop_to_i": True}``
    """

    type: AdaptationType = AdaptationType.NONE
    severity: AdaptationSeverity = AdaptationSeverity.NONE
    category: MessageCategory | None = None
    message: str = ""
    drop_to_level: float | None = None
    increase_to_level: float | None = None
    reason: str | None = None
    action: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def none(cls) -> AdaptationAction:
        return cls()

    @classmethod
    def suggest_break(cls, message: str) -> AdaptationAction:
        return cls(
            type=AdaptationType.SUGGEST_BREAK,
            severity=AdaptationSeverity.CRITICAL,
            category=MessageCategory.SUGGEST_BREAK,
            message=message,
        )

    @classmethod
    def simplify(
        cls, category: MessageCategory, message: str, drop_to_level: float
    ) -> AdaptationAction:
        return cls(
            type=AdaptationType.SIMPLIFY,
            severity=AdaptationSeverity.WARNING,
            category=category,
            message=message,
            drop_to_level=drop_to_level,
            action={"drop_to_i": True},
        )

    @classmethod
    def encourage(
        cls, category: MessageCategory, message: str, severity: AdaptationSeverity
    ) -> AdaptationAction:
        return cls(
            type=AdaptationType.ENCOURAGE,
            severity=severity,
            category=category,
            message=message,
        )

    @classmethod
    def challenge(cls, message: str, increase_to_level: float) -> AdaptationAction:
        return cls(
            type=AdaptationType.CHALLENGE,
            severity=AdaptationSeverity.SUCCESS,
            category=MessageCategory.CHALLENGE,
            message=message,
            increase_to_level=increase_to_level,
            action={"increase_difficulty": True},
        )

    @classmethod
    def change_topic(
        cls, message: str, reason: str, severity: AdaptationSeverity = AdaptationSeverity.INFO
    ) -> AdaptationAction:
        return cls(
            type=AdaptationType.CHANGE_TOPIC,
            severity=severity,
            message=message,
            reason=reason,
        )

    @property
    def is_none(self) -> bool:
        return self.type == AdaptationType.NONE

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type.value, "severity": self.severity.value}
        if self.category is not None:
            data["category"] = self.category.value
        if self.message:
            data["message"] = self.message
        if self.drop_to_level is not None:
            data["drop_to_level"] = self.drop_to_level
        if self.increase_to_level is not None:
            data["increase_to_level"] = self.increase_to_level
        if self.reason is not None:
            data["reason"] = self.reason
        if self.action:
            data["action"] = dict(self.action)
        return data


def requires_immediate_action(adaptation: AdaptationAction) -> bool:
    """True for critical or warning adaptations."""
    return adaptation.severity in (AdaptationSeverity.CRITICAL, AdaptationSeverity.WARNING)


def involves_difficulty_change(adaptation: AdaptationAction) -> bool:
    """True when the adaptation moves the target level."""
    return adaptation.type in (AdaptationType.SIMPLIFY, AdaptationType.CHALLENGE)
