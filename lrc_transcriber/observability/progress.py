"""Single-line terminal progress display.

One ProgressReporter owns the display line. Every stage draws through
it, and a background spinner shares the same lock, so frames from
different sources never interleave on the line.
"""

from __future__ import annotations

import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TextIO

DEFAULT_BAR_WIDTH = 28
SPINNER_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"
SPINNER_INTERVAL_SECONDS = 0.08


def render_bar(percent: int, prefix: str, width: int = DEFAULT_BAR_WIDTH) -> str:
    """Render ``<prefix> [####------] NN%`` with percent clamped to 0..100."""
    percent = max(0, min(100, percent))
    filled = round(percent * width / 100)
    bar = "#" * filled + "-" * max(0, width - filled)
    return f"{prefix} [{bar}] {percent:02d}%"


class ProgressReporter:
    """Draws progress bars and spinners on a single terminal line.

    Args:
        stream: Output stream (defaults to stderr).
        width: Number of cells in the bar.
    """

    def __init__(self, stream: TextIO | None = None, width: int = DEFAULT_BAR_WIDTH) -> None:
        self._stream = stream if stream is not None else sys.stderr
        self._width = width
        self._lock = threading.Lock()
        self._line_open = False

    def _write(self, text: str, leave_open: bool = False, break_open: bool = False) -> None:
        with self._lock:
            if break_open and self._line_open:
                text = "\n" + text
            self._stream.write(text)
            self._stream.flush()
            self._line_open = leave_open

    def draw(self, percent: int, prefix: str, suffix: str = "") -> None:
        """Redraw the current line without a line break."""
        self._write("\r" + render_bar(percent, prefix, self._width) + suffix, leave_open=True)

    def finish(self, prefix: str, suffix: str = "") -> None:
        """Draw the bar at 100% and end the line."""
        self._write("\r" + render_bar(100, prefix, self._width) + suffix + "\n")

    def message(self, text: str) -> None:
        """Write a full line of operator text, below any unfinished bar."""
        self._write(text + "\n", break_open=True)

    def end_line(self) -> None:
        """Terminate an unfinished bar so later output starts on a fresh line."""
        self._write("", break_open=True)

    @contextmanager
    def spinner(self, message: str, done_message: str | None = None) -> Iterator[None]:
        """Animate a spinner on the display line while the block runs."""
        stop = threading.Event()

        def spin() -> None:
            counter = 0
            while not stop.is_set():
                frame = SPINNER_FRAMES[counter % len(SPINNER_FRAMES)]
                self._write(f"\r{frame} {message}", leave_open=True)
                counter += 1
                stop.wait(SPINNER_INTERVAL_SECONDS)

        thread = threading.Thread(target=spin, name="progress-spinner", daemon=True)
        thread.start()
        try:
            yield
        finally:
            stop.set()
            thread.join()
            # Blank out the spinner frame before handing the line back.
            clear = "\r" + " " * (len(message) + 2) + "\r"
            self._write(clear + (f"{done_message}\n" if done_message else ""))


class NullProgressReporter(ProgressReporter):
    """Reporter that discards all output."""

    def __init__(self) -> None:
        super().__init__(stream=sys.stderr)

    def _write(self, text: str, leave_open: bool = False, break_open: bool = False) -> None:
        return None

    @contextmanager
    def spinner(self, message: str, done_message: str | None = None) -> Iterator[None]:
        yield
