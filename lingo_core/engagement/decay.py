"""
Engagement Decay (Tree Health).

Each learning area is shown as a tree whose health decays with time since
the learner last practised it. Unconsumed protection grants (gifts) delay the
decay by their buffer days.

Health is bucketed, never computed continuously:

    effective days = max(0, days since refresh - buffer days)

    0-2 days   -> 100%
    3-5 days   -> 85%
    6-10 days  -> 60%
    11-14 days -> 35%
    15-21 days -> 15%
    22+ days   -> 5% (never 0)

The grant-to-days table belongs to the economy collaborator and is passed in
as data. Everything here is stateless; records are immutable and transitions
return new values.
"""
from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from loguru import logger

from lingo_core.core.models import ensure_aware, utc_now

# (max effective days, health %)
HEALTH_THRESHOLDS: tuple[tuple[int, int], ...] = (
    (2, 100),
    (5, 85),
    (10, 60),
    (14, 35),
    (21, 15),
)
MIN_HEALTH = 5
MAX_HEALTH = 100

HEALTHY_THRESHOLD = 80
THIRSTY_THRESHOLD = 40
NEEDS_REFRESH_THRESHOLD = 50
DYING_THRESHOLD = 40


class GrantError(ValueError):
    """Raised when a grant cannot be consumed."""


class HealthCategory(str, Enum):
    """Health bucket for display."""

    HEALTHY = "healthy"
    THIRSTY = "thirsty"
    DYING = "dying"


@dataclass(frozen=True)
class HealthIndicator:
    """Label, icon and colour for a health category."""

    category: HealthCategory
    label: str
    icon: str
    color: str


HEALTH_INDICATORS: dict[HealthCategory, HealthIndicator] = {
    HealthCategory.HEALTHY: HealthIndicator(HealthCategory.HEALTHY, "Healthy", "✓", "green"),
    HealthCategory.THIRSTY: HealthIndicator(HealthCategory.THIRSTY, "Thirsty", "💧", "amber"),
    HealthCategory.DYING: HealthIndicator(HealthCategory.DYING, "Dying!", "🆘", "red"),
}


@dataclass(frozen=True)
class Grant:
    """A protection grant attached to an engagement record."""

    id: str
    kind: str
    buffer_days: int = 0
    consumed: bool = False


@dataclass(frozen=True)
class EngagementRecord:
    """Last refresh time and the grants received."""

    id: str = ""
    last_refresh_at: datetime | None = None
    grants: tuple[Grant, ...] = field(default_factory=tuple)


def calculate_health(elapsed_days: float, active_buffer_days: float) -> int:
    """
    Map elapsed days and buffer days to a health bucket.

    Args:
        elapsed_days: Days since the last refresh
        active_buffer_days: Buffer days from unconsumed grants

    Returns:
        Health percentage, one of 100/85/60/35/15/5
    """
    effective_days = max(0.0, elapsed_days - active_buffer_days)
    for max_days, health in HEALTH_THRESHOLDS:
        if effective_days <= max_days:
            return health
    return MIN_HEALTH


def days_since_refresh(last_refresh_at: datetime | None, now: datetime | None = None) -> int:
    """
    Whole days since the last refresh.

    Never-refreshed records count as fresh (0). Future timestamps (clock
    skew) also give 0.
    """
    if last_refresh_at is None:
        return 0
    now = ensure_aware(now) if now is not None else utc_now()
    delta = now - ensure_aware(last_refresh_at)
    return max(0, math.floor(delta.total_seconds() / 86400))


def active_buffer_days(grants: Iterable[Grant]) -> int:
    """Total buffer days of grants that have not been consumed."""
    return sum(g.buffer_days for g in grants if not g.consumed)


def grant_for(kind: str, buffer_table: Mapping[str, int], grant_id: str = "") -> Grant:
    """
    Build a grant, looking its buffer days up in the economy table.

    Kinds missing from the table give no buffer days.
    """
    return Grant(id=grant_id or kind, kind=kind, buffer_days=int(buffer_table.get(kind, 0)))


def record_health(record: EngagementRecord, now: datetime | None = None) -> int:
    """Current health of an engagement record."""
    return calculate_health(
        days_since_refresh(record.last_refresh_at, now),
        active_buffer_days(record.grants),
    )


def health_category(health: int) -> HealthCategory:
    if health >= HEALTHY_THRESHOLD:
        return HealthCategory.HEALTHY
    if health >= THIRSTY_THRESHOLD:
        return HealthCategory.THIRSTY
    return HealthCategory.DYING


def health_indicator(health: int) -> HealthIndicator:
    return HEALTH_INDICATORS[health_category(health)]


def needs_refresh(health: int) -> bool:
    return health < NEEDS_REFRESH_THRESHOLD


def is_dying(health: int) -> bool:
    return health < DYING_THRESHOLD


def needs_attention(record: EngagementRecord, now: datetime | None = None) -> bool:
    """Anything below full health needs attention."""
    return record_health(record, now) < MAX_HEALTH


def describe_health(record: EngagementRecord, now: datetime | None = None) -> str:
    """Kid-friendly description of a record's health."""
    health = record_health(record, now)
    days = days_since_refresh(record.last_refresh_at, now)
    buffer = active_buffer_days(record.grants)

    if health >= MAX_HEALTH:
        if buffer > 0:
            return f"This tree is in perfect health with {buffer} days of gift protection!"
        return "This tree is in perfect health!"

    if health >= HEALTHY_THRESHOLD:
        if buffer > 0:
            return f"This tree is doing well with {buffer} days of gift protection remaining."
        return "This tree is doing well."

    if buffer > 0:
        return f"This tree has {buffer} days of protection from gifts. After that, it needs practice!"

    if days == 1:
        return "This tree was last refreshed yesterday. It's doing fine!"

    if health >= THIRSTY_THRESHOLD:
        return "This tree needs some attention. Practice a lesson to refresh it!"

    return "This tree is in critical condition! Practice now to save it!"


def refresh(record: EngagementRecord, now: datetime | None = None) -> EngagementRecord:
    """Reset the record to full health by moving its refresh time to now."""
    now = ensure_aware(now) if now is not None else utc_now()
    return replace(record, last_refresh_at=now)


def consume_grant(record: EngagementRecord, grant_id: str) -> EngagementRecord:
    """
    Mark a grant as consumed.

    Grants without buffer days leave the record unchanged.

    Raises:
        GrantError: If the grant is unknown or already consumed
    """
    grant = next((g for g in record.grants if g.id == grant_id), None)
    if grant is None:
        raise GrantError("Gift not found on this tree.")
    if grant.consumed:
        raise GrantError("This gift has already been used.")

    if grant.buffer_days == 0:
        logger.debug(f"Grant kind {grant.kind} doesn't provide buffer days")
        return record

    grants = tuple(replace(g, consumed=True) if g.id == grant_id else g for g in record.grants)
    return replace(record, grants=grants)
