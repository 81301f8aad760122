"""Tests for lrc_transcriber.pipeline orchestration and cleanup."""

from __future__ import annotations

import json
import os
from collections.abc import Iterator
from typing import BinaryIO

import pytest

from conftest import write_wav
from lrc_transcriber.asr.interface import RecognitionEngine, RecognitionSpan
from lrc_transcriber.audio.normalize import NormalizedAudio
from lrc_transcriber.config import TranscriberSettings
from lrc_transcriber.pipeline import Stage, TranscriptionRequest, run_pipeline
from lrc_transcriber.utils.errors import (
    AudioConversionError,
    InsufficientDiskSpaceError,
    TranscriptionError,
)


class FakeModelStore:
    def __init__(self, error: Exception | None = None) -> None:
        self.requested: list[str] = []
        self._error = error

    async def ensure_model(self, name: str) -> str:
        self.requested.append(name)
        if self._error is not None:
            raise self._error
        return f"/models/{name}.ggml"


class FakeNormalizer:
    """Writes a canonical WAV into a temp dir, like the ffmpeg normalizer."""

    def __init__(self, temp_dir: str, error: Exception | None = None) -> None:
        self.temp_dir = temp_dir
        self.calls: list[str] = []
        self.created: list[str] = []
        self._error = error

    def __call__(self, input_path: str) -> NormalizedAudio:
        self.calls.append(input_path)
        if self._error is not None:
            raise self._error
        os.makedirs(self.temp_dir, exist_ok=True)
        path = write_wav(os.path.join(self.temp_dir, "track_abc123.wav"), 16000 * 3)
        self.created.append(path)
        return NormalizedAudio(path=path, owned=True)


class ScriptedEngine(RecognitionEngine):
    def __init__(self, spans: list[RecognitionSpan], fail_after: bool = False) -> None:
        self._spans = spans
        self._fail_after = fail_after

    def stream(self, audio: BinaryIO) -> Iterator[RecognitionSpan]:
        yield from self._spans
        if self._fail_after:
            raise RuntimeError("decoder crashed")


SPANS = [
    RecognitionSpan(2.0, 2.9, " and the chorus"),
    RecognitionSpan(0.0, 1.0, " Hello darkness"),
    RecognitionSpan(1.0, 1.5, " "),
    RecognitionSpan(0.0, 0.8, " my old friend"),
]


def _engine_factory(spans: list[RecognitionSpan] = SPANS, fail_after: bool = False):
    built: list[dict] = []

    def factory(provider: str, **kwargs: object) -> ScriptedEngine:
        built.append({"provider": provider, **kwargs})
        return ScriptedEngine(spans, fail_after)

    factory.built = built  # type: ignore[attr-defined]
    return factory


@pytest.fixture
def audio_file(tmp_path: object) -> str:
    path = os.path.join(str(tmp_path), "track.mp3")
    with open(path, "wb") as handle:
        handle.write(b"ID3")
    return path


@pytest.fixture
def settings(tmp_path: object) -> TranscriberSettings:
    return TranscriberSettings(models_dir=os.path.join(str(tmp_path), "models"))


@pytest.fixture
def normalizer(tmp_path: object) -> FakeNormalizer:
    return FakeNormalizer(os.path.join(str(tmp_path), "tmp"))


class TestRunPipeline:
    @pytest.mark.asyncio
    async def test_end_to_end_writes_lrc_and_removes_temp_wav(
        self,
        audio_file: str,
        settings: TranscriberSettings,
        normalizer: FakeNormalizer,
        reporter,
    ) -> None:
        factory = _engine_factory()
        request = TranscriptionRequest(audio_file, model_name="small.en", language="en")

        result = await run_pipeline(
            request,
            settings,
            reporter=reporter,
            model_store=FakeModelStore(),
            normalizer=normalizer,
            engine_factory=factory,
        )

        assert result.output_path == audio_file[: -len(".mp3")] + ".lrc"
        with open(result.output_path, encoding="utf-8") as handle:
            lines = handle.read().splitlines()
        assert lines == [
            "[00:00.00] Hello darkness",
            "[00:00.00] my old friend",
            "[00:02.00] and the chorus",
        ]
        assert result.segment_count == 3
        assert not os.path.exists(normalizer.created[0])
        assert factory.built[0]["model_path"] == "/models/small.en.ggml"
        assert factory.built[0]["language"] == "en"
        assert factory.built[0]["provider"] == "whisper.cpp"

    @pytest.mark.asyncio
    async def test_metrics_record_every_stage(
        self,
        audio_file: str,
        settings: TranscriberSettings,
        normalizer: FakeNormalizer,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        result = await run_pipeline(
            TranscriptionRequest(audio_file),
            settings,
            model_store=FakeModelStore(),
            normalizer=normalizer,
            engine_factory=_engine_factory(),
        )

        assert set(result.metrics.stage_seconds) == {stage.value for stage in Stage}
        assert result.metrics.status == "completed"
        assert result.metrics.audio_duration_ms == 3001
        assert result.metrics.normalized_audio_owned is True

        emitted = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
        run_lines = [entry for entry in emitted if entry.get("metric_type") == "run_completion"]
        assert run_lines[0]["segment_count"] == 3

    @pytest.mark.asyncio
    async def test_transcription_failure_still_removes_temp_wav(
        self, audio_file: str, settings: TranscriberSettings, normalizer: FakeNormalizer, reporter
    ) -> None:
        with pytest.raises(TranscriptionError, match="decoder crashed"):
            await run_pipeline(
                TranscriptionRequest(audio_file),
                settings,
                model_store=FakeModelStore(),
                reporter=reporter,
                normalizer=normalizer,
                engine_factory=_engine_factory(fail_after=True),
            )

        assert not os.path.exists(normalizer.created[0])
        assert not os.path.exists(audio_file[: -len(".mp3")] + ".lrc")
        assert reporter.line_breaks == 1

    @pytest.mark.asyncio
    async def test_unowned_input_is_never_deleted(
        self, canonical_wav: str, settings: TranscriberSettings
    ) -> None:
        result = await run_pipeline(
            TranscriptionRequest(canonical_wav),
            settings,
            model_store=FakeModelStore(),
            normalizer=lambda path: NormalizedAudio(path, owned=False),
            engine_factory=_engine_factory(),
        )

        assert os.path.exists(canonical_wav)
        assert result.output_path.endswith("canonical.lrc")

    @pytest.mark.asyncio
    async def test_model_failure_stops_before_audio_work(
        self,
        audio_file: str,
        settings: TranscriberSettings,
        normalizer: FakeNormalizer,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        store = FakeModelStore(InsufficientDiskSpaceError("low", free_mb=110, required_mb=125))

        with pytest.raises(InsufficientDiskSpaceError):
            await run_pipeline(
                TranscriptionRequest(audio_file),
                settings,
                model_store=store,
                normalizer=normalizer,
                engine_factory=_engine_factory(),
            )

        assert normalizer.calls == []
        emitted = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
        run_line = next(e for e in emitted if e.get("metric_type") == "run_completion")
        assert run_line["status"] == "failed"
        assert run_line["error_stage"] == "acquire_model"
        assert run_line["error_kind"] == "InsufficientDiskSpace"

    @pytest.mark.asyncio
    async def test_conversion_failure_propagates(
        self, audio_file: str, settings: TranscriberSettings, tmp_path: object
    ) -> None:
        normalizer = FakeNormalizer(
            str(tmp_path), error=AudioConversionError("ffmpeg exploded", diagnostics="x")
        )
        factory = _engine_factory()

        with pytest.raises(AudioConversionError):
            await run_pipeline(
                TranscriptionRequest(audio_file),
                settings,
                model_store=FakeModelStore(),
                normalizer=normalizer,
                engine_factory=factory,
            )

        assert factory.built == []

    @pytest.mark.asyncio
    async def test_auto_language(
        self, audio_file: str, settings: TranscriberSettings, normalizer: FakeNormalizer
    ) -> None:
        factory = _engine_factory()
        await run_pipeline(
            TranscriptionRequest(audio_file, language=None),
            settings,
            model_store=FakeModelStore(),
            normalizer=normalizer,
            engine_factory=factory,
        )
        assert factory.built[0]["language"] is None
