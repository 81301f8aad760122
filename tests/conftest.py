"""Shared fixtures: a recording progress reporter and canonical WAV files."""

import os
import struct
import wave

import pytest

from lrc_transcriber.observability.progress import NullProgressReporter


class RecordingReporter(NullProgressReporter):
    """Progress reporter that records calls instead of drawing."""

    def __init__(self) -> None:
        super().__init__()
        self.draws: list[tuple[int, str, str]] = []
        self.finished: list[str] = []
        self.messages: list[str] = []
        self.line_breaks = 0

    def draw(self, percent: int, prefix: str, suffix: str = "") -> None:
        self.draws.append((percent, prefix, suffix))

    def finish(self, prefix: str, suffix: str = "") -> None:
        self.finished.append(prefix)

    def message(self, text: str) -> None:
        self.messages.append(text)

    def end_line(self) -> None:
        self.line_breaks += 1


def write_wav(
    path: str,
    num_samples: int,
    sample_rate: int = 16000,
    channels: int = 1,
    sample_width: int = 2,
) -> str:
    """Write a WAV of alternating +/-1000 samples."""
    fmt = {1: "b", 2: "h", 4: "i"}[sample_width]
    frames = num_samples * channels
    pattern = [1000, -1000] if sample_width > 1 else [10, -10]
    values = (pattern * (frames // 2 + 1))[:frames]
    raw = struct.pack(f"<{frames}{fmt}", *values)
    with wave.open(path, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(raw)
    return path


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def canonical_wav(tmp_path: object) -> str:
    """One second of 16kHz mono 16-bit PCM."""
    return write_wav(os.path.join(str(tmp_path), "canonical.wav"), 16000)
