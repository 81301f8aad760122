"""Transcription loop: drive an engine, track progress, collect segments.

Reads the canonical WAV, estimates its duration from the byte size,
consumes the engine's span stream once, and returns retained segments
stably sorted by start time. Progress is driven by each span's end
offset and only redrawn when the whole percentage changes.
"""

from __future__ import annotations

import logging
import math
import os
import time
from collections.abc import Callable, Iterable

from lrc_transcriber.asr.interface import RecognitionEngine, RecognitionSpan, Segment
from lrc_transcriber.asr.registry import get_asr_engine
from lrc_transcriber.audio.wav_utils import BYTES_PER_SECOND
from lrc_transcriber.config import DEFAULT_ASR_PROVIDER
from lrc_transcriber.observability.progress import NullProgressReporter, ProgressReporter
from lrc_transcriber.utils.errors import TranscriberError, TranscriptionError

logger = logging.getLogger(__name__)

PROGRESS_PREFIX = "[ASR]"
# Below this many ms of audio per wall second the ETA is reported as unknown.
MIN_SPEED_MS_PER_SECOND = 1e-3

EngineFactory = Callable[..., RecognitionEngine]


def estimate_total_ms(total_bytes: int) -> int:
    """Audio duration implied by a canonical PCM byte count, at least 1 ms."""
    return max(1, round(total_bytes / BYTES_PER_SECOND * 1000))


def inference_percent(end_ms: int, total_ms: int) -> int:
    clamped = min(max(end_ms, 0), total_ms)
    return min(99, round(clamped * 100 / total_ms))


def speed_ms_per_second(processed_ms: int, elapsed_seconds: float) -> float:
    if elapsed_seconds <= 0:
        return 0.0
    return processed_ms / elapsed_seconds


def speed_ratio(processed_ms: int, elapsed_seconds: float) -> float:
    """Seconds of audio handled per wall-clock second."""
    return speed_ms_per_second(processed_ms, elapsed_seconds) / 1000


def eta_seconds(remaining_ms: int, speed: float) -> float:
    if speed < MIN_SPEED_MS_PER_SECOND:
        return math.inf
    return max(0, remaining_ms) / speed


def format_clock(seconds: float) -> str:
    """``mm:ss`` for a duration, ``--:--`` when unknown."""
    if math.isinf(seconds) or math.isnan(seconds):
        return "--:--"
    total = int(seconds)
    return f"{total // 60:02d}:{total % 60:02d}"


def progress_suffix(processed_ms: int, total_ms: int, elapsed_seconds: float) -> str:
    speed = speed_ms_per_second(processed_ms, elapsed_seconds)
    eta = eta_seconds(total_ms - processed_ms, speed)
    return f" {speed / 1000:.1f}x ETA {format_clock(eta)}"


def to_segment(span: RecognitionSpan) -> Segment | None:
    """Convert a span to a single-line Segment, or None when its text is blank."""
    text = " ".join((span.text or "").split())
    if not text:
        return None
    start_ms = max(0, round(span.start_seconds * 1000))
    end_ms = max(start_ms, round(span.end_seconds * 1000))
    return Segment(start_ms=start_ms, end_ms=end_ms, text=text)


def collect_segments(
    spans: Iterable[RecognitionSpan],
    total_ms: int,
    reporter: ProgressReporter,
    clock: Callable[[], float] = time.monotonic,
) -> list[Segment]:
    """Consume a span stream, drawing progress, and return sorted segments."""
    segments: list[Segment] = []
    last_percent = -1
    started = clock()

    for span in spans:
        segment = to_segment(span)
        if segment is not None:
            segments.append(segment)

        end_ms = round(span.end_seconds * 1000)
        percent = inference_percent(end_ms, total_ms)
        if percent != last_percent:
            last_percent = percent
            processed_ms = min(max(end_ms, 0), total_ms)
            reporter.draw(
                percent,
                PROGRESS_PREFIX,
                progress_suffix(processed_ms, total_ms, clock() - started),
            )

    # list.sort is stable: equal start times keep emission order.
    segments.sort(key=lambda seg: seg.start_ms)
    reporter.finish(PROGRESS_PREFIX)
    return segments


def transcribe(
    normalized_path: str,
    model_path: str,
    language: str | None = None,
    *,
    provider: str = DEFAULT_ASR_PROVIDER,
    engine_factory: EngineFactory = get_asr_engine,
    reporter: ProgressReporter | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> list[Segment]:
    """Transcribe a canonical WAV into time-ordered segments.

    Args:
        normalized_path: 16kHz mono 16-bit PCM WAV file.
        model_path: Model artifact for the engine.
        language: Language hint; None or empty selects automatic detection.
        provider: Engine registry key.
        engine_factory: Called as ``engine_factory(provider, model_path=..., language=...)``.
        reporter: Display owner for progress output.
        clock: Monotonic clock for speed and ETA.

    Returns:
        Segments with non-empty text, sorted by start_ms (stable).

    Raises:
        TranscriptionError: On any engine or input stream failure. No
            partial segment list is returned.
    """
    reporter = reporter or NullProgressReporter()
    language = language or None

    try:
        total_ms = estimate_total_ms(os.path.getsize(normalized_path))
        with reporter.spinner("Loading recognition model", done_message=f"{PROGRESS_PREFIX} Model loaded"):
            engine = engine_factory(provider, model_path=model_path, language=language)

        with open(normalized_path, "rb") as audio:
            segments = collect_segments(engine.stream(audio), total_ms, reporter, clock)
    except TranscriberError:
        raise
    except Exception as exc:
        raise TranscriptionError(f"Transcription failed: {exc}", provider=provider) from exc

    logger.info(
        "%d segments extracted from %d ms of audio",
        len(segments),
        total_ms,
        extra={"stage": "transcribe"},
    )
    return segments
