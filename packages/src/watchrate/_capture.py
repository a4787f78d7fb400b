"""Interactive click capture.

The user watches the dial and clicks the left mouse button the moment
the seconds hand passes 12 o'clock.  The true-time source is sampled
inside the mouse-down handler, as close to the click as the event loop
allows.

Keys ``Esc``, ``Enter`` and ``Space`` cancel.  If no click arrives
within the timeout (a little over one revolution of the seconds hand)
the prompt gives up with "Still there?".

:class:`CapturePort` keeps the CLI independent of the terminal UI so
tests can substitute a scripted capture.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol, runtime_checkable

from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Static

from watchrate._clock import TimeSourcePort

logger = logging.getLogger(__name__)

DEFAULT_PROMPT = "Click the mouse when the seconds hand reaches 12 o'clock.\n\nEsc cancels."


@runtime_checkable
class CapturePort(Protocol):
    """Produces one click timestamp per call."""

    def capture(self, time_source: TimeSourcePort) -> datetime | None:
        """Wait for a click and return its true-time instant.

        Returns:
            The instant sampled from *time_source*, or ``None`` when
            the user cancelled or the prompt timed out.
        """
        ...


class ClickCaptureApp(App[datetime | None]):
    """Full-screen prompt that exits with the timestamp of a left click."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
        Binding("enter", "cancel", show=False),
        Binding("space", "cancel", show=False),
    ]

    CSS = """
    #prompt {
        width: 100%;
        height: 100%;
        content-align: center middle;
        text-style: bold;
    }
    """

    def __init__(
        self,
        time_source: TimeSourcePort,
        *,
        timeout: float = 70.0,
        prompt: str = DEFAULT_PROMPT,
    ) -> None:
        super().__init__()
        self._time_source = time_source
        self._timeout = timeout
        self._prompt = prompt
        self.timed_out = False

    def compose(self) -> ComposeResult:
        yield Static(self._prompt, id="prompt")

    def on_mount(self) -> None:
        self.set_timer(self._timeout, self._give_up)

    def on_mouse_down(self, event: events.MouseDown) -> None:
        if event.button != 1:
            return
        self.exit(self._time_source.now())

    def action_cancel(self) -> None:
        logger.info("Capture cancelled")
        self.exit(None)

    def _give_up(self) -> None:
        self.timed_out = True
        logger.info("No click within %.0fs", self._timeout)
        self.exit(None, message="Still there?")


class TerminalClickCapture:
    """:class:`CapturePort` adapter running :class:`ClickCaptureApp`."""

    def __init__(self, *, timeout: float = 70.0, prompt: str = DEFAULT_PROMPT) -> None:
        self._timeout = timeout
        self._prompt = prompt

    def capture(self, time_source: TimeSourcePort) -> datetime | None:
        # lazy sources (NTP) must anchor before the prompt, not inside the click handler
        time_source.now()
        app = ClickCaptureApp(time_source, timeout=self._timeout, prompt=self._prompt)
        return app.run()
