"""Score engine.

Pure functions over a question-id -> integer score mapping. ``compute_scores`` is
the only producer of the persisted ``overall_score``/``overall_rating`` fields.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass

NOT_RATED = "N/A"

# (lower bound inclusive, label); each band runs up to the next bound.
RATING_BANDS: tuple[tuple[float, str], ...] = (
    (0.0, "Poor"),
    (3.0, "Fair"),
    (5.0, "Good"),
    (8.0, "Very Good"),
)
RATING_CEILING = 10.0


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    average: float
    percentage: float


@dataclass(frozen=True, slots=True)
class ScoreSummary:
    average: float
    percentage: float
    rating: str

    @property
    def overall_score(self) -> float:
        return self.percentage

    @property
    def overall_rating(self) -> str:
        return self.rating


def calculate_scores(scores: Mapping[str, int]) -> ScoreBreakdown:
    values = list(scores.values())
    count = len(values)
    if count == 0:
        return ScoreBreakdown(average=0.0, percentage=0.0)

    total = sum(values)
    return ScoreBreakdown(
        average=round(total / count, 2),
        percentage=round(total / (count * 10) * 100, 2),
    )


def score_legend(value: float) -> str:
    if isinstance(value, float) and math.isnan(value):
        return NOT_RATED
    if value < RATING_BANDS[0][0] or value > RATING_CEILING:
        return NOT_RATED

    label = NOT_RATED
    for lower, band in RATING_BANDS:
        if value >= lower:
            label = band
    return label


def compute_scores(scores: Mapping[str, int]) -> ScoreSummary:
    breakdown = calculate_scores(scores)
    # Bands apply to the unrounded mean so 4.999 stays "Fair".
    raw_average = sum(scores.values()) / len(scores) if scores else 0.0
    return ScoreSummary(
        average=breakdown.average,
        percentage=breakdown.percentage,
        rating=score_legend(raw_average),
    )
