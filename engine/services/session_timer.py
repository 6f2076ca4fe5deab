"""
Guided exercise session timer.

Two layers:
- apply_command(): a pure transition function over immutable SessionState
- SessionTimer: the single-writer holder of one live session, with a
  cooperative asyncio ticker that advances it once per interval while running

Phases: idle -> ready -> running <-> paused -> completed, with reset and
select allowed from any phase that has (or receives) an exercise.
"""

import asyncio
import contextlib
import threading
from collections.abc import AsyncIterator, Callable
from datetime import datetime

import structlog

from engine.config import SessionConfig
from engine.domain.errors import InvalidOperationError
from engine.domain.models import (
    MentalExercise,
    SessionCommand,
    SessionCommandKind,
    SessionPhase,
    SessionState,
    SessionTransition,
)
from engine.domain.result import Result
from engine.services.clock import Clock, SystemClock

logger = structlog.get_logger(__name__)

TransitionResult = Result[SessionTransition, InvalidOperationError]

_RESUMABLE = {SessionPhase.READY, SessionPhase.PAUSED}
_RESTARTS = {SessionCommandKind.SELECT, SessionCommandKind.RESET}


def max_time_for(exercise: MentalExercise, config: SessionConfig | None = None) -> int:
    """Session length in seconds; missing or non-positive durations use the default."""
    config = config or SessionConfig()
    if exercise.duration is not None and exercise.duration > 0:
        return exercise.duration * 60
    if exercise.duration is not None:
        logger.warning(
            "exercise_duration_defaulted",
            component="session_timer",
            exercise_id=exercise.id,
            duration=exercise.duration,
        )
    return config.default_duration_seconds


def progress_percent(state: SessionState) -> float:
    if state.max_time <= 0:
        return 0.0
    return min(100.0, state.elapsed / state.max_time * 100)


def format_clock(seconds: int) -> str:
    """Render seconds as MM:SS."""
    minutes, secs = divmod(max(0, seconds), 60)
    return f"{minutes:02d}:{secs:02d}"


def _unchanged(state: SessionState) -> TransitionResult:
    return Result.ok(SessionTransition(state=state))


def _moved(state: SessionState, now: datetime | None, **update: object) -> TransitionResult:
    moved = state.model_copy(update={**update, "updated_at": now})
    return Result.ok(SessionTransition(state=moved))


def _cancels_ticks(
    command: SessionCommand, previous: SessionPhase, current: SessionPhase
) -> bool:
    if command.kind in _RESTARTS:
        return True
    if command.kind is SessionCommandKind.TICK:
        return False
    return previous is SessionPhase.RUNNING and current is not SessionPhase.RUNNING


def _invalid(message: str, state: SessionState, command: SessionCommand) -> TransitionResult:
    return Result.err(
        InvalidOperationError(message, phase=state.phase.value, command=command.kind.value)
    )


def apply_command(
    state: SessionState,
    command: SessionCommand,
    now: datetime | None = None,
    config: SessionConfig | None = None,
) -> TransitionResult:
    """
    Apply one command to a session snapshot.

    Returns the next state, or an InvalidOperationError when the command is
    not allowed in the current phase (e.g. anything but select while idle).
    Commands that are legal but have no effect return the state unchanged.
    """
    kind = command.kind

    if kind is SessionCommandKind.SELECT:
        if command.exercise is None:
            return _invalid("select requires an exercise", state, command)
        return Result.ok(
            SessionTransition(
                state=SessionState(
                    phase=SessionPhase.READY,
                    exercise=command.exercise,
                    elapsed=0,
                    max_time=max_time_for(command.exercise, config),
                    updated_at=now,
                )
            )
        )

    if state.phase is SessionPhase.IDLE or state.exercise is None:
        return _invalid("No exercise selected", state, command)

    if kind is SessionCommandKind.RESET:
        return _moved(state, now, phase=SessionPhase.READY, elapsed=0)

    if kind is SessionCommandKind.TICK:
        if state.phase is not SessionPhase.RUNNING:
            return _unchanged(state)
        elapsed = min(state.elapsed + 1, state.max_time)
        if elapsed >= state.max_time:
            transition = SessionTransition(
                state=state.model_copy(
                    update={"phase": SessionPhase.COMPLETED, "elapsed": elapsed, "updated_at": now}
                ),
                just_completed=True,
            )
            return Result.ok(transition)
        return _moved(state, now, elapsed=elapsed)

    if state.phase is SessionPhase.COMPLETED:
        return _invalid("Session completed; reset or select before resuming", state, command)

    if kind is SessionCommandKind.START:
        if state.phase in _RESUMABLE:
            return _moved(state, now, phase=SessionPhase.RUNNING)
        return _unchanged(state)

    if kind is SessionCommandKind.TOGGLE:
        if state.phase in _RESUMABLE:
            return _moved(state, now, phase=SessionPhase.RUNNING)
        return _moved(state, now, phase=SessionPhase.PAUSED)

    if kind is SessionCommandKind.PAUSE:
        if state.phase is SessionPhase.RUNNING:
            return _moved(state, now, phase=SessionPhase.PAUSED)
        return _unchanged(state)

    return _invalid(f"Unsupported command: {kind}", state, command)


class SessionTimer:
    """
    One live exercise session.

    Single-writer: every command goes through dispatch(), which holds a lock
    while it reads and replaces the state. on_complete fires once per
    completion, outside the lock.

    Ticks come from ticking(), which runs a background task for as long as the
    context is open. select, reset and any command that moves the session out
    of running bump a generation counter; a tick whose sleep began under an
    older generation is dropped, so those commands stop pending ticks
    immediately. Repeated or no-op commands leave pending ticks alone.
    """

    def __init__(
        self,
        config: SessionConfig | None = None,
        clock: Clock | None = None,
        on_complete: Callable[[SessionState], None] | None = None,
    ) -> None:
        self.config = config or SessionConfig()
        self.clock: Clock = clock or SystemClock()
        self.on_complete = on_complete
        self.logger = logger.bind(component="session_timer")

        self._state = SessionState()
        self._lock = threading.Lock()
        self._generation = 0
        self._ticker: asyncio.Task[None] | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def progress(self) -> float:
        return progress_percent(self._state)

    def dispatch(self, command: SessionCommand) -> TransitionResult:
        return self._dispatch(command)

    def _dispatch(
        self, command: SessionCommand, generation: int | None = None
    ) -> TransitionResult:
        with self._lock:
            if generation is not None and generation != self._generation:
                # tick scheduled before a pause/reset/select; drop it
                return Result.ok(SessionTransition(state=self._state))
            result = apply_command(self._state, command, self.clock.now(), self.config)
            if result.is_err():
                self.logger.warning(
                    "session_command_rejected",
                    command=command.kind.value,
                    phase=self._state.phase.value,
                    error=str(result.unwrap_err()),
                )
                return result

            transition = result.unwrap()
            previous = self._state.phase
            self._state = transition.state
            if _cancels_ticks(command, previous, transition.state.phase):
                self._generation += 1

        if transition.state.phase is not previous:
            self.logger.info(
                "session_phase_changed",
                command=command.kind.value,
                from_phase=previous.value,
                to_phase=transition.state.phase.value,
                elapsed=transition.state.elapsed,
                max_time=transition.state.max_time,
            )

        if transition.just_completed:
            self._notify_completion(transition.state)
        return result

    def select(self, exercise: MentalExercise) -> TransitionResult:
        return self.dispatch(SessionCommand.select(exercise))

    def start(self) -> TransitionResult:
        return self.dispatch(SessionCommand.of(SessionCommandKind.START))

    def toggle(self) -> TransitionResult:
        return self.dispatch(SessionCommand.of(SessionCommandKind.TOGGLE))

    def pause(self) -> TransitionResult:
        return self.dispatch(SessionCommand.of(SessionCommandKind.PAUSE))

    def reset(self) -> TransitionResult:
        return self.dispatch(SessionCommand.of(SessionCommandKind.RESET))

    def tick(self) -> TransitionResult:
        return self.dispatch(SessionCommand.of(SessionCommandKind.TICK))

    def _notify_completion(self, state: SessionState) -> None:
        self.logger.info(
            "session_completed",
            exercise_id=state.exercise.id if state.exercise else None,
            max_time=state.max_time,
        )
        if self.on_complete is None:
            return
        try:
            self.on_complete(state)
        except Exception as e:
            self.logger.exception("session_completion_handler_failed", error=str(e))

    async def _run_ticker(self) -> None:
        interval = self.config.tick_interval_seconds
        tick = SessionCommand.of(SessionCommandKind.TICK)
        while True:
            generation = self._generation
            await asyncio.sleep(interval)
            if self._state.phase is SessionPhase.RUNNING:
                self._dispatch(tick, generation)

    @contextlib.asynccontextmanager
    async def ticking(self) -> AsyncIterator["SessionTimer"]:
        """
        Drive the session in real time while the context is open.

        Leaving the context (e.g. the user navigates away from the exercise)
        cancels the ticker; no tick is delivered afterwards.
        """
        if self._ticker is not None:
            raise RuntimeError("Session is already ticking")

        self._ticker = asyncio.create_task(self._run_ticker(), name="session-ticker")
        self.logger.info(
            "session_ticker_started", interval_seconds=self.config.tick_interval_seconds
        )
        try:
            yield self
        finally:
            with self._lock:
                self._generation += 1
            self._ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._ticker
            self._ticker = None
            self.logger.info("session_ticker_stopped", phase=self._state.phase.value)
