"""Pydantic models for application configuration."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field, model_validator


class LogLevel(StrEnum):
    """Log level enumeration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"
    NOTSET = "NOTSET"


class LogLevelsConfig(BaseModel):
    """Log levels per output target."""

    console: LogLevel = LogLevel.INFO
    main_file: LogLevel = LogLevel.DEBUG


class LoggingConfig(BaseModel):
    """Logging configuration."""

    max_runs: int = Field(default=5, ge=0)
    main_log_file: str = "main/main.log"
    levels: LogLevelsConfig = Field(default_factory=LogLevelsConfig)


class AppleScriptTimeoutsConfig(BaseModel):
    """Per-category AppleScript timeouts in seconds.

    Each value is embedded in the script's ``with timeout of`` block; the
    osascript process itself is additionally bounded by the readiness budget
    plus ``process_grace_seconds``.
    """

    mutation: int = Field(default=10, ge=1)
    delete: int = Field(default=15, ge=1)
    folder_names: int = Field(default=15, ge=1)
    folder_listing: int = Field(default=20, ge=1)
    library_listing: int = Field(default=60, ge=1)
    track_fetch: int = Field(default=60, ge=1)
    process_grace_seconds: float = Field(default=10.0, ge=0)


class ReadinessConfig(BaseModel):
    """Launch-and-poll settings used before every command."""

    poll_interval_seconds: float = Field(default=0.1, gt=0)
    max_polls: int = Field(default=50, ge=1)
    launch_timeout_seconds: float = Field(default=5.0, gt=0)


class ReorganizationConfig(BaseModel):
    """Settings for moving ``<Month> - <YY>`` playlists into year folders."""

    min_year: int = Field(default=2014, ge=1900)
    max_year: int = Field(default=2025, ge=1900)
    century_base: int = Field(default=2000, ge=0)
    move_delay_seconds: float = Field(default=0.1, ge=0)

    @model_validator(mode="after")
    def _check_year_range(self) -> ReorganizationConfig:
        if self.min_year > self.max_year:
            msg = f"min_year ({self.min_year}) must not exceed max_year ({self.max_year})"
            raise ValueError(msg)
        return self


class AppConfig(BaseModel):
    """Main application configuration model."""

    music_app_id: str = "com.apple.Music"
    logs_base_dir: str = "logs"
    scripts_temp_dir: str | None = None
    dry_run: bool = False

    applescript_timeouts: AppleScriptTimeoutsConfig = Field(default_factory=AppleScriptTimeoutsConfig)
    readiness: ReadinessConfig = Field(default_factory=ReadinessConfig)
    reorganization: ReorganizationConfig = Field(default_factory=ReorganizationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
