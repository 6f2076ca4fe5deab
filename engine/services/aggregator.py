"""
Daily aggregation over meal and health-metric records.

Totals are summed with math.fsum, which is exactly rounded, so the same set of
meals gives bit-identical totals in any order.
"""

import math
from collections.abc import Iterable
from datetime import date

import structlog

from engine.config import GoalsConfig
from engine.domain.errors import InvalidOperationError
from engine.domain.models import GoalProgress, HealthMetric, Meal, NutritionTotals
from engine.domain.result import Result

logger = structlog.get_logger(__name__)

MOOD_BY_RATING = {1: "bad", 2: "neutral", 3: "excellent"}
RECENT_METRICS_LIMIT = 7


def meals_on(meals: Iterable[Meal], day: date) -> list[Meal]:
    return [meal for meal in meals if meal.date == day]


def daily_totals(meals: Iterable[Meal]) -> NutritionTotals:
    """Sum calories and macros across meals, treating missing values as zero."""
    meals = list(meals)
    return NutritionTotals(
        calories=math.fsum(meal.calories or 0.0 for meal in meals),
        protein=math.fsum(meal.protein or 0.0 for meal in meals),
        carbs=math.fsum(meal.carbs or 0.0 for meal in meals),
        fat=math.fsum(meal.fat or 0.0 for meal in meals),
    )


def recent_metrics(
    metrics: Iterable[HealthMetric], today: date, limit: int = RECENT_METRICS_LIMIT
) -> list[HealthMetric]:
    """
    The most recent daily metrics up to and including `today`, newest first.

    Records dated after `today` are left out. Equal dates keep input order.
    """
    if limit <= 0:
        return []
    dated = [metric for metric in metrics if metric.date <= today]
    dated.sort(key=lambda metric: metric.date, reverse=True)
    return dated[:limit]


def _percent_of(value: float | None, goal: float) -> float:
    if not value or goal <= 0:
        return 0.0
    return max(0.0, min(100.0, value / goal * 100))


def goal_progress(metric: HealthMetric | None, goals: GoalsConfig | None = None) -> GoalProgress:
    """Progress towards the daily water and step goals, capped at 100%."""
    goals = goals or GoalsConfig()
    if metric is None:
        return GoalProgress()
    return GoalProgress(
        water_percent=_percent_of(metric.water_intake, goals.water_ml),
        steps_percent=_percent_of(metric.steps, goals.steps),
    )


def mood_checkin(
    existing: HealthMetric | None,
    user_id: str,
    day: date,
    mood_rating: int,
    stress_level: int,
) -> Result[HealthMetric, InvalidOperationError]:
    """
    Build the upsert payload for a mood/stress check-in.

    The returned metric keeps every other field of `existing` (the record
    already stored for this user and day, if any); the host application
    persists it keyed on (user_id, date).
    """
    mood = MOOD_BY_RATING.get(mood_rating)
    if mood is None:
        return Result.err(
            InvalidOperationError(
                f"Mood rating must be one of {sorted(MOOD_BY_RATING)}", mood_rating=mood_rating
            )
        )
    if not 1 <= stress_level <= 10:
        return Result.err(
            InvalidOperationError(
                "Stress level must be between 1 and 10", stress_level=stress_level
            )
        )

    if existing is not None and (existing.user_id != user_id or existing.date != day):
        return Result.err(
            InvalidOperationError(
                "Existing metric belongs to a different user or day",
                user_id=existing.user_id,
                date=existing.date.isoformat(),
            )
        )

    if existing is None:
        metric = HealthMetric(user_id=user_id, date=day, mood=mood, stress_level=stress_level)
    else:
        metric = existing.model_copy(update={"mood": mood, "stress_level": stress_level})

    logger.info(
        "mood_checkin_prepared",
        component="aggregator",
        user_id=user_id,
        day=day.isoformat(),
        is_update=existing is not None,
    )
    return Result.ok(metric)
