"""Application configuration via pydantic-settings.

Configuration is loaded from environment variables and/or a ``.env``
file.  All variables carry the ``WATCHRATE_`` prefix and nested models
use ``__`` as the delimiter, e.g.
``WATCHRATE_TIME_SOURCE__SERVER=pool.ntp.org``.

Sections:

* **Storage** — SQLAlchemy URL of the measurement log.
* **Time source** — where click timestamps come from (NTP or system).
* **Capture** — interactive click prompt behaviour.
* **Measurement** — thresholds for quality warnings.
* **Logging** — level, format, optional file sink, rotation.

All durations are in **seconds** unless the field name says otherwise.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# -------------------------------------------------------------------
# Sub-models (BaseModel, NOT BaseSettings — nested via composition)
# -------------------------------------------------------------------


class StorageSettings(BaseModel):
    """Measurement log location.

    Environment variables::

        WATCHRATE_STORAGE__URL=sqlite:////home/me/.watchrate.db
        WATCHRATE_STORAGE__ECHO=true
    """

    url: str = Field(
        default="sqlite:///watchrate.db",
        description="SQLAlchemy database URL of the measurement log.",
    )
    echo: bool = Field(
        default=False,
        description="Log every SQL statement (SQLAlchemy ``echo``).",
    )


class TimeSourceSettings(BaseModel):
    """True-time source configuration.

    ``kind="ntp"`` queries ``server`` once per run and advances the
    result with the monotonic clock.  ``kind="system"`` trusts the
    local clock.
    """

    kind: Literal["ntp", "system"] = Field(
        default="ntp",
        description="Time source used to stamp clicks.",
    )
    server: str = Field(
        default="time.google.com",
        description="NTP server host name.",
    )
    port: Annotated[int, Field(ge=1, le=65535)] = Field(
        default=123,
        description="NTP server UDP port.",
    )
    version: Annotated[int, Field(ge=1, le=4)] = Field(
        default=3,
        description="NTP protocol version.",
    )
    timeout: Annotated[float, Field(gt=0)] = Field(
        default=2.0,
        description="Seconds to wait for the NTP reply.",
    )


class CaptureSettings(BaseModel):
    """Interactive click-capture prompt."""

    timeout: Annotated[float, Field(gt=0)] = Field(
        default=70.0,
        description=(
            "Seconds to wait for a click before giving up. "
            "Slightly more than one revolution of the seconds hand."
        ),
    )


class MeasurementSettings(BaseModel):
    """Thresholds for measurement quality warnings.

    Neither threshold rejects a measurement; crossing one only logs a
    warning next to the result.
    """

    min_interval_hours: Annotated[float, Field(ge=0)] = Field(
        default=24.0,
        description="Intervals shorter than this are flagged as imprecise.",
    )
    ambiguity_threshold_seconds: Annotated[float, Field(gt=0, le=30)] = Field(
        default=20.0,
        description=(
            "Accumulated drift above this magnitude may mean the minute "
            "count slipped by one revolution."
        ),
    )
    click_jitter_seconds: Annotated[float, Field(ge=0)] = Field(
        default=0.2,
        description="Assumed reaction-time jitter per click, for the reported uncertainty.",
    )


class LoggingSettings(BaseModel):
    """Logging configuration.

    When ``file`` is set, logs are also written to a rotating file
    (size-based rotation, ``backup_count`` generations kept).  When
    ``None``, logs go to stderr only.

    - ``"text"`` (default) — human-readable timestamped lines for
      terminal use.
    - ``"json"`` — structured JSON lines for log aggregation.
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Root log level.",
    )
    format: Literal["json", "text"] = Field(
        default="text",
        description="Log output format.",
    )
    file: str | None = Field(
        default=None,
        description="Optional log file path. ``None`` means stderr only.",
    )
    max_file_size_mb: Annotated[int, Field(ge=1)] = Field(
        default=10,
        description="Maximum log file size in megabytes before rotation.",
    )
    backup_count: Annotated[int, Field(ge=0)] = Field(
        default=3,
        description="Number of rotated log files to keep.",
    )


# -------------------------------------------------------------------
# Root settings
# -------------------------------------------------------------------


class Settings(BaseSettings):
    """Root settings for watchrate.

    Example ``.env``::

        WATCHRATE_STORAGE__URL=sqlite:///watches.db
        WATCHRATE_TIME_SOURCE__KIND=ntp
        WATCHRATE_TIME_SOURCE__SERVER=pool.ntp.org
        WATCHRATE_LOGGING__LEVEL=INFO
    """

    model_config = SettingsConfigDict(
        env_prefix="WATCHRATE_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="forbid",
    )

    storage: StorageSettings = Field(
        default_factory=StorageSettings,
        description="Measurement log location.",
    )
    time_source: TimeSourceSettings = Field(
        default_factory=TimeSourceSettings,
        description="True-time source.",
    )
    capture: CaptureSettings = Field(
        default_factory=CaptureSettings,
        description="Click-capture prompt.",
    )
    measurement: MeasurementSettings = Field(
        default_factory=MeasurementSettings,
        description="Measurement quality thresholds.",
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration.",
    )
