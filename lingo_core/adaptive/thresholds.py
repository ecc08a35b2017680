"""
Thresholds for affective filter monitoring.

Thresholds are an explicit, immutable configuration value passed into every
monitoring entry point. Callers may pass a full ``FilterThresholds``, a
partial mapping of overrides, or None for the defaults; overrides are merged
with the defaults on each call.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Number of most recent signals considered by windowed checks
RECENT_WINDOW = 10


class FilterThresholds(BaseModel):
    """
    Thresholds for filter monitoring.

    Tuned for children ages 7-18; can be customized per age group or learner.

    ``help_rate_threshold``, ``min_session_length_minutes`` and
    ``confidence_drop_threshold`` are reserved tuning fields. They are
    validated and carried through settings, but no decision reads them yet.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    wrong_answer_threshold: int = Field(default=3, ge=1)
    help_rate_threshold: float = Field(default=0.3, ge=0, le=1)
    slow_response_multiplier: float = Field(default=2.0, gt=0)
    min_session_length_minutes: float = Field(default=5, ge=0)
    inactivity_days_threshold: float = Field(default=3, ge=0)
    confidence_drop_threshold: float = Field(default=0.2, ge=0, le=1)


ThresholdsLike = FilterThresholds | Mapping[str, Any] | None


def resolve_thresholds(thresholds: ThresholdsLike = None) -> FilterThresholds:
    """
    Merge partial overrides with the defaults.

    Args:
        thresholds: Full thresholds, a mapping of overrides, or None

    Returns:
        A complete FilterThresholds value
    """
    if thresholds is None:
        return FilterThresholds()
    if isinstance(thresholds, FilterThresholds):
        return thresholds
    return FilterThresholds(**dict(thresholds))
