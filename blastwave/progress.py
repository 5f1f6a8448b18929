"""Terminal progress bar for event generation."""

from __future__ import annotations

import sys
from enum import Enum
from typing import TextIO

_BAR_WIDTH = 20


class ProgressMode(Enum):
    """Whether to draw the progress bar."""

    AUTO = "auto"
    ENABLED = "enabled"
    DISABLED = "disabled"


def _should_enable(progress_mode: ProgressMode, stream: TextIO) -> bool:
    if progress_mode is ProgressMode.ENABLED:
        return True
    if progress_mode is ProgressMode.DISABLED:
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty()) if callable(isatty) else False


class ProgressReporter:
    """Draw a one-line bar that is redrawn only when the integer percentage changes."""

    def __init__(
        self,
        total_events: int,
        progress_mode: ProgressMode = ProgressMode.AUTO,
        stream: TextIO | None = None,
    ) -> None:
        self._stream = stream if stream is not None else sys.stderr
        self._total_events = total_events
        self._enabled = total_events > 0 and _should_enable(progress_mode, self._stream)
        self._last_percent = -1
        self._drawn = False
        self._line_closed = False

    def _write(self, text: str) -> None:
        self._stream.write(text)
        self._stream.flush()

    def update(self, completed_events: int) -> None:
        """Redraw the bar for ``completed_events`` if the percentage changed."""
        if not self._enabled:
            return

        completed = min(max(completed_events, 0), self._total_events)
        percent = (100 * completed) // self._total_events
        if percent == self._last_percent:
            return

        if percent >= 100:
            bar = "=" * _BAR_WIDTH
        else:
            head = min((percent * _BAR_WIDTH) // 100, _BAR_WIDTH - 1)
            bar = "=" * head + ">" + "-" * (_BAR_WIDTH - head - 1)

        self._write(f"\r[{bar}] {percent}%")
        self._drawn = True
        self._line_closed = False
        self._last_percent = percent

    def finish(self) -> None:
        """Draw the completed bar and end the line."""
        if not self._enabled:
            return
        self.update(self._total_events)
        self.close()

    def close(self) -> None:
        """End the bar's line if one was drawn and left open."""
        if self._drawn and not self._line_closed:
            self._write("\n")
            self._line_closed = True

    def __enter__(self) -> ProgressReporter:
        return self

    def __exit__(self, exc_type, exc, traceback) -> None:
        self.close()