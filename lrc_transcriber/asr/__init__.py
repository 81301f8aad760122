"""Speech recognition: engine interface, providers and the transcription loop."""

from lrc_transcriber.asr.interface import RecognitionEngine, RecognitionSpan, Segment
from lrc_transcriber.asr.registry import get_asr_engine
from lrc_transcriber.asr.transcriber import transcribe

__all__ = ["RecognitionEngine", "RecognitionSpan", "Segment", "get_asr_engine", "transcribe"]
