"""run_pipeline() orchestrator for one audio-to-LRC conversion.

Stages run strictly in sequence: acquire model -> normalize audio ->
transcribe -> write output. Every stage fails fast; the first error
aborts the run. A normalized WAV created by the run is always removed
on the way out, whether the run succeeded or not.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from functools import partial

from lrc_transcriber.asr.interface import Segment
from lrc_transcriber.asr.registry import get_asr_engine
from lrc_transcriber.asr.transcriber import EngineFactory, estimate_total_ms, transcribe
from lrc_transcriber.audio.normalize import NormalizedAudio, normalize, remove_normalized
from lrc_transcriber.config import TranscriberSettings
from lrc_transcriber.observability.metrics import RunMetrics, StageTimer, log_run_metrics
from lrc_transcriber.observability.progress import NullProgressReporter, ProgressReporter
from lrc_transcriber.output.lrc_writer import output_path_for, write_lrc
from lrc_transcriber.storage.model_registry import DEFAULT_MODEL
from lrc_transcriber.storage.model_store import ModelStore
from lrc_transcriber.utils.errors import TranscriberError

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"

Normalizer = Callable[[str], NormalizedAudio]


class Stage(str, Enum):
    """Pipeline stages in execution order."""

    ACQUIRING_MODEL = "acquire_model"
    NORMALIZING_AUDIO = "normalize_audio"
    TRANSCRIBING = "transcribe"
    WRITING_OUTPUT = "write_output"


@dataclass(frozen=True)
class TranscriptionRequest:
    """What to transcribe and where to put the result.

    ``language`` of None selects automatic language detection.
    ``output_path`` defaults to the input path with an ``.lrc`` extension.
    """

    audio_path: str
    model_name: str = DEFAULT_MODEL
    language: str | None = DEFAULT_LANGUAGE
    output_path: str | None = None

    @property
    def resolved_output_path(self) -> str:
        return self.output_path or output_path_for(self.audio_path)


@dataclass
class PipelineResult:
    """Outcome of a successful run."""

    output_path: str
    segments: list[Segment]
    metrics: RunMetrics

    @property
    def segment_count(self) -> int:
        return len(self.segments)


def _default_normalizer(settings: TranscriberSettings) -> Normalizer:
    return partial(
        normalize,
        ffmpeg_binary=settings.ffmpeg_binary,
        temp_root=settings.temp_root or None,
    )


async def run_pipeline(
    request: TranscriptionRequest,
    settings: TranscriberSettings,
    reporter: ProgressReporter | None = None,
    model_store: ModelStore | None = None,
    normalizer: Normalizer | None = None,
    engine_factory: EngineFactory = get_asr_engine,
) -> PipelineResult:
    """Convert one audio file into an LRC file.

    Args:
        request: Input path, model, language and optional output path.
        settings: Resolved configuration.
        reporter: Single owner of the terminal progress line.
        model_store: Optional ModelStore (built from settings if not provided).
        normalizer: Optional audio normalizer (ffmpeg-backed by default).
        engine_factory: Recognition engine factory.

    Returns:
        PipelineResult with the output path, segments and run metrics.

    Raises:
        TranscriberError: The first stage failure, unchanged.
    """
    reporter = reporter or NullProgressReporter()
    if model_store is None:
        model_store = ModelStore(
            settings.models_dir,
            base_url=settings.model_base_url,
            reporter=reporter,
            max_retries=settings.download_retries,
        )
    if normalizer is None:
        normalizer = _default_normalizer(settings)

    metrics = RunMetrics(
        input_path=request.audio_path,
        model=request.model_name,
        language=request.language,
    )
    timings = metrics.stage_seconds
    output_path = request.resolved_output_path
    normalized: NormalizedAudio | None = None
    current_stage = Stage.ACQUIRING_MODEL
    wall_start = time.monotonic()

    try:
        with StageTimer(current_stage.value, timings):
            model_path = await model_store.ensure_model(request.model_name)

        current_stage = Stage.NORMALIZING_AUDIO
        with StageTimer(current_stage.value, timings):
            normalized = normalizer(request.audio_path)
        metrics.normalized_audio_owned = normalized.owned
        metrics.audio_duration_ms = estimate_total_ms(os.path.getsize(normalized.path))

        current_stage = Stage.TRANSCRIBING
        with StageTimer(current_stage.value, timings):
            segments = transcribe(
                normalized.path,
                model_path,
                request.language,
                provider=settings.asr_provider,
                engine_factory=engine_factory,
                reporter=reporter,
            )
        metrics.segment_count = len(segments)

        current_stage = Stage.WRITING_OUTPUT
        with StageTimer(current_stage.value, timings):
            write_lrc(segments, output_path)
        metrics.status = "completed"

    except TranscriberError as exc:
        metrics.status = "failed"
        metrics.error_stage = current_stage.value
        metrics.error_kind = exc.kind
        metrics.error_message = str(exc)
        reporter.end_line()
        logger.error(
            "Pipeline failed at stage '%s': %s",
            current_stage.value,
            exc,
            extra={"stage": current_stage.value, "error": exc.kind},
        )
        raise
    finally:
        if normalized is not None:
            remove_normalized(normalized)
        metrics.wall_time_seconds = round(time.monotonic() - wall_start, 3)
        if metrics.status == "running":
            metrics.status = "aborted"
        log_run_metrics(metrics)

    return PipelineResult(output_path=output_path, segments=segments, metrics=metrics)
