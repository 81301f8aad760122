"""whisper.cpp recognition engine via pywhispercpp.

Loads a GGML model once, decodes the canonical WAV into float32 samples
and runs inference on a worker thread. Segments are handed over through
a queue as whisper.cpp emits them, so callers see them lazily.
"""

import logging
import queue
import threading
from collections.abc import Iterator
from typing import BinaryIO

from pywhispercpp.model import Model

from lrc_transcriber.asr.interface import AUTO_LANGUAGE, RecognitionEngine, RecognitionSpan
from lrc_transcriber.audio.wav_utils import read_pcm_float32
from lrc_transcriber.utils.errors import TranscriptionError

logger = logging.getLogger(__name__)

# whisper.cpp timestamps are in 10 ms ticks.
TICKS_PER_SECOND = 100
_DONE = object()


class WhisperCppEngine(RecognitionEngine):
    """Local whisper.cpp inference over a GGML model file.

    Args:
        model_path: Path to the GGML artifact.
        language: Language hint such as "en"; None selects auto detection.
        n_threads: Optional inference thread count.
    """

    provider = "whisper.cpp"

    def __init__(
        self,
        model_path: str,
        language: str | None = None,
        n_threads: int | None = None,
    ) -> None:
        self._language = language or AUTO_LANGUAGE
        params: dict[str, object] = {"print_progress": False, "print_realtime": False}
        if n_threads:
            params["n_threads"] = n_threads
        try:
            self._model = Model(model_path, redirect_whispercpp_logs_to=None, **params)
        except Exception as exc:
            raise TranscriptionError(
                f"Failed to load whisper.cpp model {model_path}: {exc}",
                provider=self.provider,
            ) from exc

    def stream(self, audio: BinaryIO) -> Iterator[RecognitionSpan]:
        try:
            samples = read_pcm_float32(audio)
        except ValueError as exc:
            raise TranscriptionError(str(exc), provider=self.provider) from exc

        spans: queue.Queue = queue.Queue()

        def on_segment(segment: object) -> None:
            spans.put(
                RecognitionSpan(
                    start_seconds=segment.t0 / TICKS_PER_SECOND,
                    end_seconds=segment.t1 / TICKS_PER_SECOND,
                    text=segment.text,
                )
            )

        def run() -> None:
            try:
                self._model.transcribe(
                    samples,
                    new_segment_callback=on_segment,
                    language=self._language,
                )
            except Exception as exc:
                spans.put(exc)
            finally:
                spans.put(_DONE)

        worker = threading.Thread(target=run, name="whisper-cpp", daemon=True)
        worker.start()
        while True:
            item = spans.get()
            if item is _DONE:
                break
            if isinstance(item, Exception):
                raise TranscriptionError(
                    f"whisper.cpp inference failed: {item}", provider=self.provider
                ) from item
            yield item
        worker.join()
