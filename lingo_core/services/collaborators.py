"""
Collaborator interfaces consumed by the session flows.

The engine never persists anything itself. It reads learner profiles and
reports confidence, risk and chunk encounters through two collaborators:

- ProfileService: learner profile reads and accept-and-forget writes
- ContentService: acquired-chunk counts and per-chunk encounter records

In-memory implementations are provided for embedding and tests.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Protocol, runtime_checkable

from loguru import logger

from lingo_core.adaptive.affective_filter import calculate_updated_filter_risk
from lingo_core.core.models import ChunkStatus, LearnerProfile, utc_now

# Rolling-average weight of the newest activity in the confidence score
CONFIDENCE_WEIGHT = 0.1
# Partial credit for a correct answer that needed help
HELPED_CORRECT_SCORE = 0.7
# Filter-risk bump for a recorded struggle
STRUGGLE_RISK_INCREMENT = 0.15
# Consecutive clean correct answers before a chunk counts as acquired
ACQUIRED_STREAK = 3


def update_confidence_score(current: float, correct: bool, used_help: bool) -> float:
    """
    Update a confidence score with a rolling average.

    The new activity gets 10% weight. Correct scores 1.0, correct with help
    0.7, wrong 0.0.
    """
    if correct:
        activity_score = HELPED_CORRECT_SCORE if used_help else 1.0
    else:
        activity_score = 0.0
    new_score = current * (1 - CONFIDENCE_WEIGHT) + activity_score * CONFIDENCE_WEIGHT
    return max(0.0, min(1.0, new_score))


@runtime_checkable
class ProfileService(Protocol):
    """Learner profile collaborator."""

    async def get_profile(self, user_id: str) -> LearnerProfile | None: ...

    async def update_confidence(self, user_id: str, correct: bool, used_help: bool) -> None: ...

    async def blend_filter_risk(self, user_id: str, session_score: float) -> None: ...

    async def record_struggle(self, user_id: str) -> None: ...


@runtime_checkable
class ContentService(Protocol):
    """Chunk/content collaborator."""

    async def chunks_acquired(self, user_id: str) -> int: ...

    async def record_encounter(
        self,
        user_id: str,
        chunk_id: str,
        correct: bool,
        response_time_ms: int,
        used_help: bool,
    ) -> None: ...


class InMemoryProfileService:
    """Profile service backed by a dict, keyed by user id."""

    def __init__(self, profiles: dict[str, LearnerProfile] | None = None):
        self.profiles: dict[str, LearnerProfile] = dict(profiles or {})

    def put(self, profile: LearnerProfile) -> None:
        self.profiles[profile.user_id] = profile

    async def get_profile(self, user_id: str) -> LearnerProfile | None:
        return self.profiles.get(user_id)

    async def update_confidence(self, user_id: str, correct: bool, used_help: bool) -> None:
        profile = self.profiles.get(user_id)
        if profile is None:
            logger.warning(f"Cannot update confidence: profile {user_id} not found")
            return
        self.profiles[user_id] = replace(
            profile,
            average_confidence=update_confidence_score(
                profile.average_confidence, correct, used_help
            ),
            last_activity_at=utc_now(),
        )

    async def blend_filter_risk(self, user_id: str, session_score: float) -> None:
        profile = self.profiles.get(user_id)
        if profile is None:
            logger.warning(f"Cannot blend filter risk: profile {user_id} not found")
            return
        self.profiles[user_id] = replace(
            profile,
            filter_risk_score=calculate_updated_filter_risk(
                profile.filter_risk_score, session_score
            ),
            total_sessions=profile.total_sessions + 1,
        )

    async def record_struggle(self, user_id: str) -> None:
        profile = self.profiles.get(user_id)
        if profile is None:
            logger.warning(f"Cannot record struggle: profile {user_id} not found")
            return
        self.profiles[user_id] = replace(
            profile,
            filter_risk_score=min(1.0, profile.filter_risk_score + STRUGGLE_RISK_INCREMENT),
        )


@dataclass
class ChunkProgress:
    """Encounter statistics for one (user, chunk) pair."""

    chunk_id: str
    status: ChunkStatus = ChunkStatus.NEW
    total_encounters: int = 0
    correct_streak: int = 0
    wrong_attempts: int = 0
    help_used_count: int = 0
    last_response_time_ms: int = 0

    def record(self, correct: bool, response_time_ms: int, used_help: bool) -> None:
        self.total_encounters += 1
        self.last_response_time_ms = response_time_ms
        if used_help:
            self.help_used_count += 1

        if not correct:
            self.wrong_attempts += 1
            self.correct_streak = 0
            if self.status == ChunkStatus.ACQUIRED:
                self.status = ChunkStatus.FRAGILE
            elif self.status == ChunkStatus.NEW:
                self.status = ChunkStatus.LEARNING
            return

        self.correct_streak = self.correct_streak + 1 if not used_help else 0
        if self.correct_streak >= ACQUIRED_STREAK:
            self.status = ChunkStatus.ACQUIRED
        elif self.status == ChunkStatus.NEW:
            self.status = ChunkStatus.LEARNING


class InMemoryContentService:
    """Content service tracking chunk progress in memory."""

    def __init__(self) -> None:
        self.progress: dict[str, dict[str, ChunkProgress]] = {}

    def chunk_progress(self, user_id: str, chunk_id: str) -> ChunkProgress | None:
        return self.progress.get(user_id, {}).get(chunk_id)

    async def chunks_acquired(self, user_id: str) -> int:
        return sum(
            1
            for chunk in self.progress.get(user_id, {}).values()
            if chunk.status == ChunkStatus.ACQUIRED
        )

    async def record_encounter(
        self,
        user_id: str,
        chunk_id: str,
        correct: bool,
        response_time_ms: int,
        used_help: bool,
    ) -> None:
        chunks = self.progress.setdefault(user_id, {})
        chunk = chunks.setdefault(chunk_id, ChunkProgress(chunk_id=chunk_id))
        previous = chunk.status
        chunk.record(correct, response_time_ms, used_help)
        if chunk.status != previous:
            logger.debug(f"Chunk {chunk_id}: {previous.value} -> {chunk.status.value}")
