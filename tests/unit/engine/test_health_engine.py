"""
Tests for the engine facade and the in-memory record store behind it.

Covers:
- Today's dose schedule (ownership filter, ordering, statuses, idempotence)
- Appointment partitioning and nutrition totals through the facade
- Session commands driven as pure state transforms
- Concurrent overview reads and store failure propagation
"""

import asyncio
from datetime import date, datetime, time, timedelta

import pytest

from adapters.store.memory import InMemoryRecordStore
from engine.config import AppConfig, GoalsConfig, ScheduleConfig
from engine.domain.models import (
    Appointment,
    CourseStatus,
    DayPart,
    HealthMetric,
    Meal,
    MealType,
    Medication,
    MentalExercise,
    OccurrenceStatus,
    SessionCommand,
    SessionCommandKind,
    SessionPhase,
    SessionState,
)
from engine.services.aggregator import mood_checkin
from engine.services.clock import FixedClock
from engine.services.health_engine import HealthEngine

USER = "user-1"
OTHER_USER = "user-2"
NOW = datetime(2026, 3, 10, 8, 10)
TODAY = NOW.date()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def engine(clock: FixedClock) -> HealthEngine:
    return HealthEngine(config=AppConfig(), clock=clock)


@pytest.fixture
def medications() -> list[Medication]:
    return [
        Medication(
            id="metformin",
            user_id=USER,
            name="Metformin",
            dosage="500mg",
            frequency="twice_daily",
            start_date=date(2026, 3, 1),
            reminder_times=["20:00", "08:00"],
        ),
        Medication(
            id="vitamin-d",
            user_id=USER,
            name="Vitamin D",
            frequency="daily",
            start_date=date(2026, 2, 1),
            end_date=date(2026, 3, 31),
            reminder_times=["06:00", "08:00", "bad-time"],
        ),
        Medication(
            id="antibiotic",
            user_id=USER,
            name="Amoxicillin",
            start_date=date(2026, 2, 1),
            end_date=date(2026, 2, 10),
            reminder_times=["12:00"],
        ),
        Medication(
            id="someone-else",
            user_id=OTHER_USER,
            name="Aspirin",
            start_date=date(2026, 1, 1),
            reminder_times=["08:00"],
        ),
    ]


@pytest.fixture
def appointments() -> list[Appointment]:
    return [
        Appointment(
            id="dentist",
            user_id=USER,
            title="Dentist",
            date=date(2026, 2, 20),
            time=time(10, 0),
        ),
        Appointment(
            id="cardiology",
            user_id=USER,
            title="Cardiology follow-up",
            doctor_name="Dr. Salem",
            specialty="cardiology",
            date=TODAY,
            time=time(16, 30),
        ),
        Appointment(
            id="lab",
            user_id=USER,
            title="Blood test",
            date=TODAY,
            time=time(7, 45),
        ),
    ]


@pytest.fixture
def store(medications: list[Medication], appointments: list[Appointment]) -> InMemoryRecordStore:
    store = InMemoryRecordStore()
    for medication in medications:
        store.add_medication(medication)
    for appointment in appointments:
        store.add_appointment(appointment)

    yesterday = TODAY - timedelta(days=1)
    store.add_meal(
        Meal(user_id=USER, date=TODAY, meal_type=MealType.BREAKFAST, calories=420, protein=18)
    )
    store.add_meal(Meal(user_id=USER, date=TODAY, meal_type=MealType.SNACK, calories=180, fat=9.5))
    store.add_meal(Meal(user_id=USER, date=yesterday, meal_type=MealType.DINNER, calories=900))
    store.upsert_health_metric(
        HealthMetric(id="m-1", user_id=USER, date=TODAY, water_intake=1000, steps=2500)
    )
    return store


class TestScheduleToday:
    def test_schedule_is_sorted_classified_and_scoped(
        self, engine: HealthEngine, medications: list[Medication]
    ) -> None:
        doses = engine.schedule_today(USER, medications)

        assert [(d.medication.id, d.formatted_time, d.status) for d in doses] == [
            ("vitamin-d", "06:00", OccurrenceStatus.ELAPSED),
            ("metformin", "08:00", OccurrenceStatus.DUE),
            ("vitamin-d", "08:00", OccurrenceStatus.DUE),
            ("metformin", "20:00", OccurrenceStatus.UPCOMING),
        ]

    def test_explicit_now_overrides_clock(
        self, engine: HealthEngine, medications: list[Medication]
    ) -> None:
        doses = engine.schedule_today(USER, medications, now=datetime(2026, 3, 10, 21, 0))
        assert {d.status for d in doses} == {OccurrenceStatus.ELAPSED}

    def test_rederivation_is_idempotent(
        self, engine: HealthEngine, medications: list[Medication], clock: FixedClock
    ) -> None:
        first = engine.schedule_today(USER, medications)
        clock.advance(seconds=20)
        second = engine.schedule_today(USER, medications)
        assert first == second

    def test_due_window_is_configurable(
        self, clock: FixedClock, medications: list[Medication]
    ) -> None:
        narrow = HealthEngine(
            config=AppConfig(schedule=ScheduleConfig(due_window_minutes=5)), clock=clock
        )
        doses = narrow.schedule_today(USER, medications)
        assert [d.status for d in doses if d.formatted_time == "08:00"] == [
            OccurrenceStatus.ELAPSED,
            OccurrenceStatus.ELAPSED,
        ]

    def test_course_statuses(self, engine: HealthEngine, medications: list[Medication]) -> None:
        statuses = engine.course_statuses(medications)
        assert statuses["metformin"] is CourseStatus.ACTIVE
        assert statuses["antibiotic"] is CourseStatus.EXPIRED
        assert engine.course_statuses(medications, date(2026, 1, 15))["metformin"] is (
            CourseStatus.NOT_YET_STARTED
        )


class TestFacadeOperations:
    def test_partition_appointments(
        self, engine: HealthEngine, appointments: list[Appointment]
    ) -> None:
        partition = engine.partition_appointments(appointments)
        assert [a.id for a in partition.upcoming] == ["cardiology"]
        assert [a.id for a in partition.past] == ["lab", "dentist"]

    def test_daily_totals(self, engine: HealthEngine) -> None:
        meals = [
            Meal(user_id=USER, date=TODAY, meal_type=MealType.LUNCH, calories=650, carbs=70),
            Meal(user_id=USER, date=TODAY, meal_type=MealType.DINNER, calories=500, carbs=None),
        ]
        totals = engine.daily_totals(meals)
        assert totals.calories == 1150
        assert totals.carbs == 70

    def test_goal_progress_uses_configured_goals(self, clock: FixedClock) -> None:
        engine = HealthEngine(config=AppConfig(goals=GoalsConfig(water_ml=2000)), clock=clock)
        metric = HealthMetric(user_id=USER, date=TODAY, water_intake=500)
        assert engine.goal_progress(metric).water_percent == 25.0

    def test_relative_appointment_labels(
        self, engine: HealthEngine, appointments: list[Appointment]
    ) -> None:
        labels = [engine.appointment_day_label(a) for a in appointments]
        assert labels == ["2026-02-20", "today", "today"]
        assert engine.appointment_day_label(appointments[1], date(2026, 3, 9)) == "tomorrow"

    def test_recent_metrics_window(self, engine: HealthEngine) -> None:
        metrics = [
            HealthMetric(user_id=USER, date=TODAY - timedelta(days=offset)) for offset in range(10)
        ]
        recent = engine.recent_metrics(reversed(metrics))
        assert [m.date for m in recent] == [m.date for m in metrics[:7]]

    def test_drive_session(self, engine: HealthEngine) -> None:
        exercise = MentalExercise(id="body-scan", title="Body scan", duration=10)

        state = engine.drive_session(SessionCommand.select(exercise), SessionState()).unwrap().state
        assert state.phase is SessionPhase.READY
        assert state.max_time == 600
        assert state.updated_at == NOW

        toggle = SessionCommand.of(SessionCommandKind.TOGGLE)
        state = engine.drive_session(toggle, state).unwrap().state
        assert state.phase is SessionPhase.RUNNING

        result = engine.drive_session(SessionCommand.of(SessionCommandKind.START), SessionState())
        assert result.is_err()


class TestBuildOverview:
    async def test_overview_composes_todays_view(
        self, engine: HealthEngine, store: InMemoryRecordStore
    ) -> None:
        overview = await engine.build_overview(store, USER)

        assert overview.day == TODAY
        assert overview.generated_at == NOW
        assert overview.day_part is DayPart.MORNING
        assert len(overview.doses) == 4
        assert [a.id for a in overview.appointments.upcoming] == ["cardiology"]
        assert overview.nutrition.calories == 600
        assert overview.nutrition.protein == 18
        assert overview.nutrition.fat == 9.5
        assert overview.goals.water_percent == 40.0
        assert overview.goals.steps_percent == 25.0
        assert overview.metric is not None and overview.metric.id == "m-1"

    async def test_overview_for_unknown_user_is_empty(
        self, engine: HealthEngine, store: InMemoryRecordStore
    ) -> None:
        overview = await engine.build_overview(store, "nobody")

        assert overview.doses == []
        assert overview.appointments.upcoming == [] and overview.appointments.past == []
        assert overview.nutrition.calories == 0
        assert overview.metric is None

    @pytest.mark.asyncio
    async def test_reads_run_concurrently(self, engine: HealthEngine) -> None:
        store = InMemoryRecordStore(latency_seconds=0.1)

        start_time = asyncio.get_event_loop().time()
        await engine.build_overview(store, USER)
        duration = asyncio.get_event_loop().time() - start_time

        assert duration < 0.35, f"Expected concurrent reads, took {duration:.2f}s"

    async def test_store_failure_propagates(self, engine: HealthEngine) -> None:
        class BrokenStore(InMemoryRecordStore):
            async def list_appointments(self, user_id: str) -> list[Appointment]:
                raise ConnectionError("record store unavailable")

        with pytest.raises(ExceptionGroup) as excinfo:
            await engine.build_overview(BrokenStore(), USER)

        assert any(isinstance(e, ConnectionError) for e in excinfo.value.exceptions)


class TestInMemoryRecordStore:
    async def test_metric_upsert_is_keyed_on_user_and_day(self) -> None:
        store = InMemoryRecordStore()
        store.upsert_health_metric(HealthMetric(id="m-1", user_id=USER, date=TODAY, steps=1000))

        existing = await store.get_health_metric(USER, TODAY)
        updated = mood_checkin(existing, USER, TODAY, mood_rating=3, stress_level=2).unwrap()
        store.upsert_health_metric(updated)
        store.upsert_health_metric(HealthMetric(user_id=USER, date=TODAY, steps=3000))

        metric = await store.get_health_metric(USER, TODAY)
        assert metric is not None
        assert metric.id == "m-1"
        assert metric.steps == 3000
        assert await store.get_health_metric(USER, TODAY - timedelta(days=1)) is None

    async def test_meals_filtered_by_day(self) -> None:
        store = InMemoryRecordStore()
        store.add_meal(Meal(user_id=USER, date=TODAY, meal_type=MealType.LUNCH))
        store.add_meal(Meal(user_id=USER, date=TODAY - timedelta(days=1), meal_type=MealType.LUNCH))

        assert len(await store.list_meals(USER)) == 2
        assert len(await store.list_meals(USER, TODAY)) == 1
