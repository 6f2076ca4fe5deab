"""
Temporal classification of occurrences and whole records.

Statuses are recomputed on every query from explicit inputs; nothing here
stores a "taken" or "notified" flag.
"""

from collections.abc import Iterable
from datetime import date, datetime, time, timedelta

from engine.domain.models import (
    Appointment,
    AppointmentPartition,
    AppointmentStatus,
    CourseStatus,
    DayPart,
    Medication,
    Occurrence,
    OccurrenceStatus,
    ScheduledDose,
)
from engine.services.clock import wall_clock

DEFAULT_DUE_WINDOW = timedelta(minutes=30)


def occurrence_status(
    time_of_day: time,
    on_date: date,
    now: datetime,
    due_window: timedelta = DEFAULT_DUE_WINDOW,
) -> OccurrenceStatus:
    """
    Status of a reminder at `time_of_day` on `on_date`, seen from `now`.

    due:      now within [scheduled - window, scheduled + window] on today's date
    elapsed:  scheduled strictly earlier than now - window, same date
    upcoming: anything else, including any date other than today
    """
    now = wall_clock(now)
    if on_date != now.date():
        return OccurrenceStatus.UPCOMING

    scheduled = datetime.combine(on_date, time_of_day)
    if scheduled < now - due_window:
        return OccurrenceStatus.ELAPSED
    if scheduled - due_window <= now:
        return OccurrenceStatus.DUE
    return OccurrenceStatus.UPCOMING


def classify_occurrences(
    occurrences: Iterable[Occurrence],
    now: datetime,
    due_window: timedelta = DEFAULT_DUE_WINDOW,
) -> list[ScheduledDose]:
    """Attach a status to each occurrence, preserving order."""
    return [
        ScheduledDose(
            occurrence=occurrence,
            status=occurrence_status(
                occurrence.time_of_day, occurrence.scheduled_date, now, due_window
            ),
        )
        for occurrence in occurrences
    ]


def appointment_status(appointment: Appointment, now: datetime) -> AppointmentStatus:
    if appointment.scheduled_at >= wall_clock(now):
        return AppointmentStatus.UPCOMING
    return AppointmentStatus.PAST


def course_status(medication: Medication, today: date) -> CourseStatus:
    if medication.start_date > today:
        return CourseStatus.NOT_YET_STARTED
    if medication.end_date is not None and medication.end_date < today:
        return CourseStatus.EXPIRED
    return CourseStatus.ACTIVE


def partition_appointments(
    appointments: Iterable[Appointment], now: datetime
) -> AppointmentPartition:
    """
    Split appointments into upcoming (soonest first) and past (most recent first).

    Every appointment lands in exactly one group.
    """
    upcoming: list[Appointment] = []
    past: list[Appointment] = []
    for appointment in appointments:
        if appointment_status(appointment, now) is AppointmentStatus.UPCOMING:
            upcoming.append(appointment)
        else:
            past.append(appointment)

    upcoming.sort(key=lambda a: a.scheduled_at)
    past.sort(key=lambda a: a.scheduled_at, reverse=True)
    return AppointmentPartition(upcoming=upcoming, past=past)


def appointment_day_label(day: date, today: date) -> str:
    """
    Short label for an appointment date relative to today.

    "today" and "tomorrow" for the next two calendar days, the ISO date
    (YYYY-MM-DD) for anything else, past dates included.
    """
    if day == today:
        return "today"
    if day == today + timedelta(days=1):
        return "tomorrow"
    return day.isoformat()


def day_part(now: datetime) -> DayPart:
    hour = wall_clock(now).hour
    if hour < 12:
        return DayPart.MORNING
    if hour < 18:
        return DayPart.AFTERNOON
    return DayPart.EVENING
