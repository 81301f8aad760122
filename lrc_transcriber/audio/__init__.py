"""Audio normalization to canonical 16kHz mono 16-bit PCM WAV."""

from lrc_transcriber.audio.normalize import NormalizedAudio, normalize

__all__ = ["NormalizedAudio", "normalize"]
