"""
Core services for the engine.

This package contains the clock source, recurrence expansion, temporal
classification, daily aggregation, the session timer and the facade that
composes them.
"""

from .clock import Clock, FixedClock, SystemClock
from .health_engine import HealthEngine, RecordStore
from .session_timer import SessionTimer, apply_command, format_clock, progress_percent

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "HealthEngine",
    "RecordStore",
    "SessionTimer",
    "apply_command",
    "format_clock",
    "progress_percent",
]
