"""
Engine facade consumed by the presentation layer.

Every operation is a pure transform of explicit inputs; the facade keeps only
configuration and a clock, never records or derived state, so callers can
re-derive on every render or query.

Key patterns:
- Protocol-based dependency injection for the record store
- Structured concurrency with asyncio.TaskGroup for the overview reads
"""

import asyncio
from collections.abc import Iterable
from datetime import date, datetime, timedelta
from typing import Protocol

import structlog

from engine.config import AppConfig, get_config
from engine.domain.errors import InvalidOperationError
from engine.domain.models import (
    Appointment,
    AppointmentPartition,
    CourseStatus,
    DailyOverview,
    GoalProgress,
    HealthMetric,
    Meal,
    Medication,
    NutritionTotals,
    ScheduledDose,
    SessionCommand,
    SessionState,
    SessionTransition,
)
from engine.domain.result import Result
from engine.services import aggregator, classifier, recurrence, session_timer
from engine.services.clock import Clock, SystemClock, wall_clock

logger = structlog.get_logger(__name__)


class RecordStore(Protocol):
    """
    Read side of the external record store, keyed by user and date.

    Why Protocol over ABC: structural typing, easier test doubles.
    Lists come back in creation order. Writes are the host application's
    business; it re-invokes the engine on the refreshed records.
    """

    async def list_medications(self, user_id: str) -> list[Medication]: ...

    async def list_appointments(self, user_id: str) -> list[Appointment]: ...

    async def list_meals(self, user_id: str, day: date | None = None) -> list[Meal]: ...

    async def get_health_metric(self, user_id: str, day: date) -> HealthMetric | None: ...


class HealthEngine:
    """Composes expansion, classification, aggregation and session transitions."""

    def __init__(self, config: AppConfig | None = None, clock: Clock | None = None) -> None:
        self.config = config or get_config()
        self.clock: Clock = clock or SystemClock(self.config.clock.timezone)
        self.logger = logger.bind(component="health_engine")

    @property
    def due_window(self) -> timedelta:
        return timedelta(minutes=self.config.schedule.due_window_minutes)

    def _now(self, now: datetime | None) -> datetime:
        return wall_clock(now) if now is not None else self.clock.now()

    def schedule_today(
        self,
        user_id: str,
        medications: Iterable[Medication],
        now: datetime | None = None,
    ) -> list[ScheduledDose]:
        """Today's doses for one user, ascending by time, each with its current status."""
        now = self._now(now)
        owned = [m for m in medications if m.user_id == user_id]
        occurrences = recurrence.expand_all(owned, now.date())
        doses = classifier.classify_occurrences(occurrences, now, self.due_window)

        self.logger.debug(
            "schedule_derived",
            user_id=user_id,
            medications=len(owned),
            doses=len(doses),
        )
        return doses

    def partition_appointments(
        self, appointments: Iterable[Appointment], now: datetime | None = None
    ) -> AppointmentPartition:
        return classifier.partition_appointments(appointments, self._now(now))

    def daily_totals(self, meals: Iterable[Meal]) -> NutritionTotals:
        return aggregator.daily_totals(meals)

    def goal_progress(self, metric: HealthMetric | None) -> GoalProgress:
        return aggregator.goal_progress(metric, self.config.goals)

    def appointment_day_label(self, appointment: Appointment, today: date | None = None) -> str:
        return classifier.appointment_day_label(appointment.date, today or self.clock.now().date())

    def recent_metrics(
        self, metrics: Iterable[HealthMetric], today: date | None = None
    ) -> list[HealthMetric]:
        """Last week of daily metrics, newest first."""
        return aggregator.recent_metrics(metrics, today or self.clock.now().date())

    def course_statuses(
        self, medications: Iterable[Medication], today: date | None = None
    ) -> dict[str, CourseStatus]:
        """Course status per medication id."""
        today = today or self.clock.now().date()
        return {m.id: classifier.course_status(m, today) for m in medications}

    def drive_session(
        self,
        command: SessionCommand,
        state: SessionState,
        now: datetime | None = None,
    ) -> Result[SessionTransition, InvalidOperationError]:
        return session_timer.apply_command(
            state, command, self._now(now), self.config.session
        )

    async def build_overview(
        self, store: RecordStore, user_id: str, now: datetime | None = None
    ) -> DailyOverview:
        """
        Read one user's records for today and derive the dashboard view.

        The four reads run concurrently; a store failure propagates unchanged.
        """
        now = self._now(now)
        today = now.date()

        async with asyncio.TaskGroup() as task_group:
            medications_task = task_group.create_task(store.list_medications(user_id))
            appointments_task = task_group.create_task(store.list_appointments(user_id))
            meals_task = task_group.create_task(store.list_meals(user_id, today))
            metric_task = task_group.create_task(store.get_health_metric(user_id, today))

        meals = aggregator.meals_on(meals_task.result(), today)
        metric = metric_task.result()

        overview = DailyOverview(
            user_id=user_id,
            day=today,
            generated_at=now,
            day_part=classifier.day_part(now),
            doses=self.schedule_today(user_id, medications_task.result(), now),
            appointments=self.partition_appointments(appointments_task.result(), now),
            nutrition=self.daily_totals(meals),
            goals=self.goal_progress(metric),
            metric=metric,
        )

        self.logger.info(
            "overview_built",
            user_id=user_id,
            day=today.isoformat(),
            doses=len(overview.doses),
            upcoming_appointments=len(overview.appointments.upcoming),
            meals=len(meals),
        )
        return overview
