"""watchrate.

Estimate the daily rate of a mechanical watch from two clicks at the
12 o'clock mark, stamped with true time.
"""

from importlib.metadata import PackageNotFoundError, version

from watchrate._capture import CapturePort, ClickCaptureApp, TerminalClickCapture
from watchrate._clock import (
    ClockPort,
    NtpTimeSource,
    SystemClock,
    SystemTimeSource,
    TimeSourcePort,
)
from watchrate._drift import DriftResult, compute_drift, infer_minutes
from watchrate._errors import (
    InvalidIntervalError,
    NoSyncRecordError,
    StorageError,
    TimeSourceError,
    ValidationError,
    WatchrateError,
)
from watchrate._logging import JsonFormatter, configure_logging
from watchrate._record import MeasurementRecord, RecordKind
from watchrate._service import Measurement, WatchLog
from watchrate._settings import (
    CaptureSettings,
    LoggingSettings,
    MeasurementSettings,
    Settings,
    StorageSettings,
    TimeSourceSettings,
)
from watchrate._store import MeasurementStorePort, SqlMeasurementStore, create_store_engine

try:
    __version__ = version("watchrate")
except PackageNotFoundError:
    # Last resort fallback for source checkouts without metadata
    __version__ = "0.0.0+unknown"

__all__ = [
    # Version
    "__version__",
    # Records and calculation
    "DriftResult",
    "MeasurementRecord",
    "RecordKind",
    "compute_drift",
    "infer_minutes",
    # Operations
    "Measurement",
    "WatchLog",
    # Store
    "MeasurementStorePort",
    "SqlMeasurementStore",
    "create_store_engine",
    # Clocks
    "ClockPort",
    "NtpTimeSource",
    "SystemClock",
    "SystemTimeSource",
    "TimeSourcePort",
    # Capture
    "CapturePort",
    "ClickCaptureApp",
    "TerminalClickCapture",
    # Errors
    "InvalidIntervalError",
    "NoSyncRecordError",
    "StorageError",
    "TimeSourceError",
    "ValidationError",
    "WatchrateError",
    # Logging
    "JsonFormatter",
    "configure_logging",
    # Settings
    "CaptureSettings",
    "LoggingSettings",
    "MeasurementSettings",
    "Settings",
    "StorageSettings",
    "TimeSourceSettings",
]
