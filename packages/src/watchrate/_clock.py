"""Clock ports and true-time sources.

Two distinct notions of time live here:

* :class:`ClockPort` — a **monotonic** clock (``time.monotonic()``),
  immune to NTP slews and manual system-clock changes.  Only the
  difference between two readings is meaningful (PEP 418).
* :class:`TimeSourcePort` — a **true-time** source returning aware
  UTC datetimes.  Every timestamp stored in a measurement record comes
  from one of these.

:class:`NtpTimeSource` combines the two: it asks an NTP server for the
current time once, pins that instant to a monotonic reading, and from
then on advances it with the monotonic clock.  A click minutes later
is therefore stamped with server-grade time even if the system clock
is wrong or gets stepped in between.

Both ports are Protocols (PEP 544); tests inject the deterministic
fakes from :mod:`watchrate.testing`.
"""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol, runtime_checkable

import ntplib

from watchrate._errors import TimeSourceError

logger = logging.getLogger(__name__)


@runtime_checkable
class ClockPort(Protocol):
    """Monotonic clock for measuring elapsed time."""

    def now(self) -> float:
        """Return monotonic time in seconds.

        Returns:
            A float representing seconds from an arbitrary epoch.
            Only the *difference* between two calls is meaningful.
        """
        ...


class SystemClock:
    """Production clock wrapping ``time.monotonic()``."""

    def now(self) -> float:
        """Return monotonic time in seconds."""
        return time.monotonic()


@runtime_checkable
class TimeSourcePort(Protocol):
    """Authoritative wall-clock source for click timestamps."""

    def now(self) -> datetime:
        """Return the current true time as an aware UTC datetime."""
        ...


class SystemTimeSource:
    """True time taken from the local system clock.

    Only as good as the host's own time synchronisation.  Useful
    offline and for backfilling.
    """

    def now(self) -> datetime:
        return datetime.now(UTC)


class NtpTimeSource:
    """True time anchored to an NTP server and advanced monotonically.

    The server is queried lazily on the first :meth:`now` call (or
    explicitly via :meth:`synchronise`).  The best estimate of server
    time at the moment the reply arrived is ``dest_time + offset``;
    that instant is paired with a :class:`ClockPort` reading taken
    right after the request returns.

    Args:
        server: NTP host name.
        port: NTP UDP port.
        version: NTP protocol version sent in the request.
        timeout: Seconds to wait for the reply.
        clock: Monotonic clock used to advance the anchor.
        client: Object with ``request(host, version=, port=, timeout=)``;
            defaults to :class:`ntplib.NTPClient`.
    """

    def __init__(
        self,
        server: str = "time.google.com",
        *,
        port: int = 123,
        version: int = 3,
        timeout: float = 2.0,
        clock: ClockPort | None = None,
        client: Any = None,
    ) -> None:
        self._server = server
        self._port = port
        self._version = version
        self._timeout = timeout
        self._clock: ClockPort = clock if clock is not None else SystemClock()
        self._client = client if client is not None else ntplib.NTPClient()
        self._anchor: datetime | None = None
        self._anchor_mono = 0.0

    @property
    def server(self) -> str:
        return self._server

    @property
    def is_synchronised(self) -> bool:
        return self._anchor is not None

    def synchronise(self) -> datetime:
        """Query the server and re-anchor; return the anchored instant.

        Raises:
            TimeSourceError: On network failure or a malformed reply.
        """
        try:
            response = self._client.request(
                self._server,
                version=self._version,
                port=self._port,
                timeout=self._timeout,
            )
        except (ntplib.NTPException, OSError) as exc:
            raise TimeSourceError(f"NTP request to {self._server} failed: {exc}") from exc

        self._anchor_mono = self._clock.now()
        self._anchor = datetime.fromtimestamp(response.dest_time + response.offset, UTC)
        logger.info(
            "Synchronised with %s (offset %+.3fs, delay %.3fs)",
            self._server,
            response.offset,
            getattr(response, "delay", 0.0),
        )
        return self._anchor

    def now(self) -> datetime:
        if self._anchor is None:
            self.synchronise()
        assert self._anchor is not None
        return self._anchor + timedelta(seconds=self._clock.now() - self._anchor_mono)
