"""
In-memory record store.

Implements the RecordStore read protocol plus the write helpers a host
application would use. Backs the test suite and the console walkthrough.
"""

import asyncio
from collections import defaultdict
from datetime import date

import structlog

from engine.domain.models import Appointment, HealthMetric, Meal, Medication

logger = structlog.get_logger(__name__)


class InMemoryRecordStore:
    """Per-user record lists kept in insertion order."""

    def __init__(self, latency_seconds: float = 0.0) -> None:
        self.latency_seconds = latency_seconds
        self._medications: dict[str, list[Medication]] = defaultdict(list)
        self._appointments: dict[str, list[Appointment]] = defaultdict(list)
        self._meals: dict[str, list[Meal]] = defaultdict(list)
        self._metrics: dict[tuple[str, date], HealthMetric] = {}
        self.logger = logger.bind(component="memory_store")

    # ---------- writes (host application side) ----------

    def add_medication(self, medication: Medication) -> None:
        self._medications[medication.user_id].append(medication)

    def add_appointment(self, appointment: Appointment) -> None:
        self._appointments[appointment.user_id].append(appointment)

    def add_meal(self, meal: Meal) -> None:
        self._meals[meal.user_id].append(meal)

    def upsert_health_metric(self, metric: HealthMetric) -> HealthMetric:
        """Insert or replace the single metric for (user_id, date)."""
        key = (metric.user_id, metric.date)
        existing = self._metrics.get(key)
        if existing is not None and metric.id is None:
            metric = metric.model_copy(update={"id": existing.id})
        self._metrics[key] = metric
        self.logger.info(
            "health_metric_upserted",
            user_id=metric.user_id,
            day=metric.date.isoformat(),
            replaced=existing is not None,
        )
        return metric

    # ---------- reads (RecordStore protocol) ----------

    async def _simulate_latency(self) -> None:
        if self.latency_seconds > 0:
            await asyncio.sleep(self.latency_seconds)

    async def list_medications(self, user_id: str) -> list[Medication]:
        await self._simulate_latency()
        return list(self._medications.get(user_id, []))

    async def list_appointments(self, user_id: str) -> list[Appointment]:
        await self._simulate_latency()
        return list(self._appointments.get(user_id, []))

    async def list_meals(self, user_id: str, day: date | None = None) -> list[Meal]:
        await self._simulate_latency()
        meals = self._meals.get(user_id, [])
        if day is None:
            return list(meals)
        return [meal for meal in meals if meal.date == day]

    async def get_health_metric(self, user_id: str, day: date) -> HealthMetric | None:
        await self._simulate_latency()
        return self._metrics.get((user_id, day))
