"""Recognition engine interface and segment data models.

A RecognitionEngine turns a canonical WAV byte stream into a lazy,
finite, one-pass sequence of RecognitionSpan objects. The transcriber
turns retained spans into Segment objects.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from typing import BinaryIO

AUTO_LANGUAGE = "auto"


@dataclass(frozen=True)
class RecognitionSpan:
    """A raw timestamped text span as emitted by an engine."""

    start_seconds: float
    end_seconds: float
    text: str


@dataclass(frozen=True)
class Segment:
    """A retained, trimmed span of recognized speech in milliseconds."""

    start_ms: int
    end_ms: int
    text: str


class RecognitionEngine(ABC):
    """Abstract base class for speech recognition engines.

    Subclasses are constructed with ``model_path`` and ``language``
    (``None`` means automatic detection) and implement stream().
    """

    provider: str = "unknown"

    @abstractmethod
    def stream(self, audio: BinaryIO) -> Iterator[RecognitionSpan]:
        """Yield spans in emission order as recognition progresses.

        Args:
            audio: Open binary stream of a 16kHz mono 16-bit PCM WAV file.

        Returns:
            Iterator over spans; not restartable.
        """
