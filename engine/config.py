"""
Configuration management with environment variable support and validation.

Design principles:
- Thresholds that encode product intent (due window, default session length,
  daily goals) are configuration, not constants buried in services
- Validation at startup (fail fast)
- Type safety with Pydantic
"""

import os
from functools import lru_cache
from typing import Literal, cast
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

# Load environment variables from .env file
load_dotenv()


class ScheduleConfig(BaseModel):
    """Medication schedule classification settings."""

    due_window_minutes: int = Field(
        default=30, ge=0, description="Half-width of the window around a reminder time"
    )


class SessionConfig(BaseModel):
    """Guided exercise session timer settings."""

    default_duration_seconds: int = Field(
        default=300, gt=0, description="Session length when an exercise has no duration"
    )
    tick_interval_seconds: float = Field(
        default=1.0, gt=0.0, description="Wall time between ticks of a running session"
    )


class GoalsConfig(BaseModel):
    """Daily targets used for dashboard progress."""

    water_ml: float = Field(default=2500.0, ge=0.0, description="Daily water intake goal in ml")
    steps: int = Field(default=10_000, ge=0, description="Daily step goal")


class ClockConfig(BaseModel):
    """Wall-clock reference for the system clock."""

    timezone: str | None = Field(
        default=None, description="IANA zone for wall-clock reads; host local time when unset"
    )

    @field_validator("timezone")
    def validate_timezone(cls, v):
        if v is None or v == "":
            return None
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    goals: GoalsConfig = Field(default_factory=GoalsConfig)
    clock: ClockConfig = Field(default_factory=ClockConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    schedule_config = ScheduleConfig(
        due_window_minutes=int(os.getenv("DUE_WINDOW_MINUTES", "30")),
    )

    session_config = SessionConfig(
        default_duration_seconds=int(os.getenv("SESSION_DEFAULT_DURATION_SECONDS", "300")),
        tick_interval_seconds=float(os.getenv("SESSION_TICK_INTERVAL_SECONDS", "1.0")),
    )

    goals_config = GoalsConfig(
        water_ml=float(os.getenv("WATER_GOAL_ML", "2500")),
        steps=int(os.getenv("STEPS_GOAL", "10000")),
    )

    clock_config = ClockConfig(timezone=os.getenv("CLOCK_TIMEZONE") or None)

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        schedule=schedule_config,
        session=session_config,
        goals=goals_config,
        clock=clock_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def reset_config_cache() -> None:
    """Drop the cached configuration so the next get_config() re-reads the environment."""
    get_config.cache_clear()


def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
        print(f"Configuration loaded for {config.environment} environment")
    except Exception as e:
        print(f"Configuration validation failed: {e}")
        raise


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\nCONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")
    print(f"Clock Timezone: {config.clock.timezone or 'host local'}")

    print("\nSCHEDULE")
    print(f"Due Window: +/-{config.schedule.due_window_minutes}m")

    print("\nSESSION")
    print(f"Default Duration: {config.session.default_duration_seconds}s")
    print(f"Tick Interval: {config.session.tick_interval_seconds}s")

    print("\nDAILY GOALS")
    print(f"Water: {config.goals.water_ml:.0f} ml")
    print(f"Steps: {config.goals.steps}")


if __name__ == "__main__":
    validate_config()
    print_config_summary()
