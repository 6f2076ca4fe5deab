"""Temporal health-event engine.

This package derives time-relative state (dose schedules, appointment
partitions, nutrition totals, exercise sessions) from persisted health
records. It performs no I/O and is isolated from the storage layer for
easy testing and reasoning.
"""
