"""
Recurrence expansion for medication reminders.

A medication stores its reminder times as wall-clock strings. For a given day
the expander turns each parseable reminder into a concrete Occurrence, but only
while the course covers that day.
"""

from collections.abc import Iterable
from datetime import date, time

import structlog

from engine.domain.models import Medication, Occurrence

logger = structlog.get_logger(__name__)


def parse_time_of_day(raw: object) -> time | None:
    """
    Parse a persisted "HH:MM" (or "HH:MM:SS") reminder time.

    Returns None for anything unparseable; persisted data the engine cannot
    repair is skipped, never raised.
    """
    if isinstance(raw, time):
        return raw
    if not isinstance(raw, str):
        return None

    parts = raw.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        return None

    hour, minute = int(parts[0]), int(parts[1])
    second = int(parts[2]) if len(parts) == 3 else 0
    try:
        return time(hour, minute, second)
    except ValueError:
        return None


def is_active_on(medication: Medication, day: date) -> bool:
    """True when `day` lies in [start_date, end_date], with no end meaning open-ended."""
    if medication.start_date > day:
        return False
    return medication.end_date is None or medication.end_date >= day


def expand(medication: Medication, day: date) -> list[Occurrence]:
    """Occurrences of one medication on `day`, in stored reminder order."""
    if not is_active_on(medication, day):
        return []

    occurrences: list[Occurrence] = []
    for raw in medication.reminder_times:
        time_of_day = parse_time_of_day(raw)
        if time_of_day is None:
            logger.debug(
                "reminder_time_skipped",
                component="recurrence",
                medication_id=medication.id,
                raw=raw,
            )
            continue
        occurrences.append(
            Occurrence(scheduled_date=day, time_of_day=time_of_day, medication=medication)
        )
    return occurrences


def expand_all(medications: Iterable[Medication], day: date) -> list[Occurrence]:
    """
    Merge occurrences of every medication on `day`, ascending by time of day.

    The sort is stable: equal times keep medication input order (the store's
    creation order), then reminder order within a medication.
    """
    merged: list[Occurrence] = []
    for medication in medications:
        merged.extend(expand(medication, day))
    merged.sort(key=lambda occurrence: occurrence.time_of_day)
    return merged
