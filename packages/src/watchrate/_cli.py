"""Command-line interface (Typer-based).

Provides :func:`build_cli`, which constructs the ``watchrate`` Typer
app::

    watchrate sync SEAMASTER            # click at 12, store the reference
    watchrate measure SEAMASTER         # a day later, click again
    watchrate history SEAMASTER
    watchrate watches

Global options (``--log-level``, ``--log-format``, ``--env-file``,
``--version``) are handled by the callback, which builds
:class:`Settings` and configures logging before any command runs.

Collaborators (store, time source, click capture) are created through
factories so tests can swap in the doubles from
:mod:`watchrate.testing`.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Annotated, get_args

import typer
from pydantic import ValidationError as SettingsValidationError

from watchrate._capture import CapturePort, TerminalClickCapture
from watchrate._clock import NtpTimeSource, SystemTimeSource, TimeSourcePort
from watchrate._errors import (
    InvalidIntervalError,
    NoSyncRecordError,
    StorageError,
    TimeSourceError,
    ValidationError,
)
from watchrate._logging import configure_logging
from watchrate._record import MeasurementRecord
from watchrate._service import Measurement, WatchLog
from watchrate._settings import LoggingSettings, Settings, TimeSourceSettings
from watchrate._store import MeasurementStorePort, SqlMeasurementStore

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_RUNTIME_ERROR = 3
EXIT_MEASUREMENT_ERROR = 4
EXIT_CANCELLED = 5

_VALID_LOG_LEVELS: tuple[str, ...] = get_args(
    LoggingSettings.model_fields["level"].annotation,
)
_VALID_LOG_FORMATS: tuple[str, ...] = get_args(
    LoggingSettings.model_fields["format"].annotation,
)

SettingsFactory = Callable[[str], Settings]
StoreFactory = Callable[[Settings], MeasurementStorePort]
TimeSourceFactory = Callable[[Settings], TimeSourcePort]
CaptureFactory = Callable[[Settings], CapturePort]


# ---------------------------------------------------------------------------
# Default factories
# ---------------------------------------------------------------------------


def load_settings(env_file: str) -> Settings:
    return Settings(_env_file=env_file)  # type: ignore[call-arg]


def build_time_source(settings: TimeSourceSettings) -> TimeSourcePort:
    """Create the configured :class:`TimeSourcePort` adapter."""
    if settings.kind == "system":
        return SystemTimeSource()
    return NtpTimeSource(
        settings.server,
        port=settings.port,
        version=settings.version,
        timeout=settings.timeout,
    )


def _default_store(settings: Settings) -> MeasurementStorePort:
    return SqlMeasurementStore.from_url(settings.storage.url, echo=settings.storage.echo)


def _default_time_source(settings: Settings) -> TimeSourcePort:
    return build_time_source(settings.time_source)


def _default_capture(settings: Settings) -> CapturePort:
    return TerminalClickCapture(timeout=settings.capture.timeout)


# ---------------------------------------------------------------------------
# Per-invocation state
# ---------------------------------------------------------------------------


@dataclass
class _Runtime:
    """Settings plus lazily built collaborators for one invocation."""

    settings: Settings
    store_factory: StoreFactory
    time_source_factory: TimeSourceFactory
    capture_factory: CaptureFactory
    _log: WatchLog | None = field(default=None, init=False)

    @property
    def log(self) -> WatchLog:
        if self._log is None:
            self._log = WatchLog(
                store=self.store_factory(self.settings),
                settings=self.settings.measurement,
            )
        return self._log

    def click_timestamp(self, at: str | None) -> datetime:
        """Return the ``--at`` instant, or capture one interactively."""
        if at is not None:
            return parse_instant(at)
        time_source = self.time_source_factory(self.settings)
        instant = self.capture_factory(self.settings).capture(time_source)
        if instant is None:
            typer.echo("Next time!")
            raise typer.Exit(EXIT_CANCELLED)
        return instant


def parse_instant(value: str) -> datetime:
    """Parse an ISO 8601 instant; naive values are taken as UTC."""
    try:
        instant = datetime.fromisoformat(value)
    except ValueError as exc:
        raise typer.BadParameter(
            f"Invalid timestamp '{value}'. Use ISO 8601, e.g. 2024-01-01T12:00:00.250Z",
            param_hint="'--at'",
        ) from exc
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    return instant


@contextlib.contextmanager
def _exit_on_error() -> Iterator[None]:
    """Translate watchrate errors into messages and exit codes."""
    try:
        yield
    except (ValidationError, NoSyncRecordError, InvalidIntervalError) as exc:
        logger.debug("Measurement error", exc_info=True)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(EXIT_MEASUREMENT_ERROR) from exc
    except (StorageError, TimeSourceError) as exc:
        logger.error("Runtime error: %s", exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(EXIT_RUNTIME_ERROR) from exc


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def describe_rate(rate: float) -> str:
    """Human wording for a daily rate (positive means slow)."""
    if rate > 0:
        return f"slow by {rate:.2f} s/day"
    if rate < 0:
        return f"fast by {-rate:.2f} s/day"
    return "spot on"


def _format_measurement(watch: str, result: Measurement, jitter: float) -> str:
    drift = result.drift
    return "\n".join(
        [
            f"{watch}: {describe_rate(drift.daily_rate)} ({drift.daily_rate:+.3f} s/day)",
            f"  reference sync  {result.reference.timestamp.isoformat()}",
            f"  elapsed         {drift.elapsed_days:.4f} days, {drift.inferred_minutes} minutes",
            f"  drift           {drift.drift_seconds:+.3f} s",
            f"  uncertainty     ±{drift.uncertainty(jitter):.2f} s/day",
        ]
    )


def _format_record(record: MeasurementRecord) -> str:
    rate = "" if record.computed_rate is None else f"{record.computed_rate:+9.3f} s/day"
    line = f"{record.timestamp.isoformat():32}  {record.kind.value:11}  {rate:15}"
    if record.comment:
        line += f"  {record.comment}"
    return line.rstrip()


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def build_cli(
    *,
    settings_factory: SettingsFactory = load_settings,
    store_factory: StoreFactory = _default_store,
    time_source_factory: TimeSourceFactory = _default_time_source,
    capture_factory: CaptureFactory = _default_capture,
) -> typer.Typer:
    """Construct the ``watchrate`` Typer app.

    Args:
        settings_factory: Builds :class:`Settings` from the
            ``--env-file`` path.
        store_factory: Builds the measurement store.
        time_source_factory: Builds the true-time source.
        capture_factory: Builds the click-capture adapter.

    Returns:
        A configured :class:`typer.Typer` ready to invoke.
    """
    cli = typer.Typer(
        help="Measure the daily rate of a mechanical watch by clicking at 12 o'clock.",
    )

    @cli.callback(invoke_without_command=True)
    def main(
        ctx: typer.Context,
        version_flag: Annotated[
            bool | None,
            typer.Option("--version", is_eager=True, help="Show version and exit."),
        ] = None,
        log_level: Annotated[
            str | None,
            typer.Option("--log-level", help="Override log level."),
        ] = None,
        log_format: Annotated[
            str | None,
            typer.Option("--log-format", help="Override log format."),
        ] = None,
        env_file: Annotated[
            str,
            typer.Option("--env-file", help="Path to .env file."),
        ] = ".env",
    ) -> None:
        from watchrate import __version__

        if version_flag:
            typer.echo(f"watchrate v{__version__}")
            raise typer.Exit()

        if ctx.invoked_subcommand is None:
            typer.echo(ctx.get_help())
            raise typer.Exit()

        if log_level is not None and log_level.upper() not in _VALID_LOG_LEVELS:
            raise typer.BadParameter(
                f"Invalid log level '{log_level}'. "
                f"Choose from: {', '.join(_VALID_LOG_LEVELS)}",
                param_hint="'--log-level'",
            )

        if log_format is not None and log_format.lower() not in _VALID_LOG_FORMATS:
            raise typer.BadParameter(
                f"Invalid log format '{log_format}'. "
                f"Choose from: {', '.join(_VALID_LOG_FORMATS)}",
                param_hint="'--log-format'",
            )

        try:
            settings = settings_factory(env_file)
        except SettingsValidationError as exc:
            typer.echo(f"Configuration error: {exc}", err=True)
            raise typer.Exit(EXIT_CONFIG_ERROR) from exc

        if log_level is not None:
            settings.logging = settings.logging.model_copy(
                update={"level": log_level.upper()},
            )

        if log_format is not None:
            settings.logging = settings.logging.model_copy(
                update={"format": log_format.lower()},
            )

        configure_logging(settings.logging, version=__version__)

        ctx.obj = _Runtime(
            settings=settings,
            store_factory=store_factory,
            time_source_factory=time_source_factory,
            capture_factory=capture_factory,
        )

    @cli.command()
    def sync(
        ctx: typer.Context,
        watch: Annotated[str, typer.Argument(help="Name of the watch.")],
        comment: Annotated[str, typer.Option("--comment", "-c", help="Free-text note.")] = "",
        at: Annotated[
            str | None,
            typer.Option("--at", help="Record this ISO 8601 instant instead of capturing a click."),
        ] = None,
    ) -> None:
        """Store a reference instant for WATCH."""
        runtime: _Runtime = ctx.obj
        with _exit_on_error():
            log = runtime.log
            instant = runtime.click_timestamp(at)
            record = log.sync(watch, instant, comment)
        typer.echo(f"Synced {record.watch_name} at {record.timestamp.isoformat()}")

    @cli.command()
    def measure(
        ctx: typer.Context,
        watch: Annotated[str, typer.Argument(help="Name of the watch.")],
        comment: Annotated[str, typer.Option("--comment", "-c", help="Free-text note.")] = "",
        at: Annotated[
            str | None,
            typer.Option("--at", help="Record this ISO 8601 instant instead of capturing a click."),
        ] = None,
    ) -> None:
        """Compute the daily rate of WATCH against its latest sync."""
        runtime: _Runtime = ctx.obj
        with _exit_on_error():
            log = runtime.log
            instant = runtime.click_timestamp(at)
            result = log.measure(watch, instant, comment)
        typer.echo(
            _format_measurement(watch, result, runtime.settings.measurement.click_jitter_seconds)
        )

    @cli.command()
    def history(
        ctx: typer.Context,
        watch: Annotated[str, typer.Argument(help="Name of the watch.")],
    ) -> None:
        """List every sync and measurement of WATCH."""
        runtime: _Runtime = ctx.obj
        with _exit_on_error():
            records = runtime.log.history(watch)
        if not records:
            typer.echo(f"No records for {watch}.")
            return
        for record in records:
            typer.echo(_format_record(record))

    @cli.command()
    def watches(ctx: typer.Context) -> None:
        """List the watches in the log."""
        runtime: _Runtime = ctx.obj
        with _exit_on_error():
            names = runtime.log.watches()
        if not names:
            typer.echo("No watches recorded yet.")
            return
        for name in names:
            typer.echo(name)

    return cli


def main() -> None:
    """Console-script entry point."""
    build_cli()()
