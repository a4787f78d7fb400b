"""Measurement record — the single persisted entity.

A record is either a **sync** (a reference zero-second instant) or a
**measurement** (a later zero-second instant compared against a sync).
Records are immutable value objects; the store assigns ``record_id``
by returning a new instance, never by mutating the original.

Timestamps must be timezone-aware.  They are normalised to UTC on
construction so that records captured from different sources compare
and sort consistently.
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Self

from watchrate._errors import ValidationError


class RecordKind(StrEnum):
    """Tag distinguishing reference syncs from measurements."""

    SYNC = "sync"
    MEASUREMENT = "measurement"


def validate_watch_name(watch_name: object) -> str:
    """Return *watch_name* if it is a non-blank string.

    Raises:
        ValidationError: If the name is not a string or is blank.
    """
    if not isinstance(watch_name, str) or not watch_name.strip():
        raise ValidationError(f"Watch name must be a non-empty string, got {watch_name!r}")
    return watch_name


def validate_timestamp(timestamp: object) -> datetime:
    """Return *timestamp* converted to UTC.

    Raises:
        ValidationError: If the value is not an aware ``datetime``.
    """
    if not isinstance(timestamp, datetime):
        raise ValidationError(f"Timestamp must be a datetime, got {type(timestamp).__name__}")
    if timestamp.tzinfo is None or timestamp.utcoffset() is None:
        raise ValidationError(f"Timestamp must be timezone-aware, got naive {timestamp.isoformat()}")
    return timestamp.astimezone(UTC)


@dataclass(frozen=True, slots=True)
class MeasurementRecord:
    """Immutable sync or measurement entry of the append-only log.

    Attributes:
        watch_name: Identifier grouping records per physical watch.
        timestamp: True-time instant of the click (UTC).
        kind: :class:`RecordKind` tag.
        comment: Free-text annotation, may be empty.
        computed_rate: Seconds per day for measurements; ``None``
            for syncs.
        record_id: Store-assigned identifier, ``None`` until inserted.
    """

    watch_name: str
    timestamp: datetime
    kind: RecordKind
    comment: str = ""
    computed_rate: float | None = None
    record_id: int | None = None

    def __post_init__(self) -> None:
        validate_watch_name(self.watch_name)
        # frozen dataclass: normalised values go through object.__setattr__
        object.__setattr__(self, "timestamp", validate_timestamp(self.timestamp))

        try:
            kind = RecordKind(self.kind)
        except ValueError as exc:
            raise ValidationError(f"Unknown record kind {self.kind!r}") from exc
        object.__setattr__(self, "kind", kind)

        if not isinstance(self.comment, str):
            raise ValidationError("Comment must be a string")

        if kind is RecordKind.SYNC:
            if self.computed_rate is not None:
                raise ValidationError("Sync records cannot carry a computed rate")
        elif (
            isinstance(self.computed_rate, bool)
            or not isinstance(self.computed_rate, int | float)
            or not math.isfinite(self.computed_rate)
        ):
            raise ValidationError(
                f"Measurement records need a finite computed rate, got {self.computed_rate!r}"
            )

    @classmethod
    def sync(cls, watch_name: str, timestamp: datetime, comment: str = "") -> Self:
        """Build a sync record."""
        return cls(watch_name, timestamp, RecordKind.SYNC, comment)

    @classmethod
    def measurement(
        cls,
        watch_name: str,
        timestamp: datetime,
        computed_rate: float,
        comment: str = "",
    ) -> Self:
        """Build a measurement record carrying its daily rate."""
        return cls(watch_name, timestamp, RecordKind.MEASUREMENT, comment, computed_rate)

    @property
    def is_sync(self) -> bool:
        return self.kind is RecordKind.SYNC

    def with_id(self, record_id: int) -> Self:
        """Return a copy carrying the store-assigned identifier."""
        return dataclasses.replace(self, record_id=record_id)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a plain dictionary with an ISO 8601 timestamp."""
        return {
            "id": self.record_id,
            "watch_name": self.watch_name,
            "timestamp": self.timestamp.isoformat(),
            "kind": self.kind.value,
            "comment": self.comment,
            "computed_rate": self.computed_rate,
        }
