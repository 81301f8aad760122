"""WAV helpers for canonical 16kHz mono 16-bit PCM audio."""

import wave
from dataclasses import dataclass
from typing import BinaryIO

import numpy as np

SAMPLE_RATE = 16000
SAMPLE_WIDTH = 2  # 16-bit = 2 bytes
NUM_CHANNELS = 1
BYTES_PER_SECOND = SAMPLE_RATE * SAMPLE_WIDTH * NUM_CHANNELS


@dataclass(frozen=True)
class WavFormat:
    channels: int
    sample_rate: int
    sample_width: int

    @property
    def is_canonical(self) -> bool:
        return (
            self.channels == NUM_CHANNELS
            and self.sample_rate == SAMPLE_RATE
            and self.sample_width == SAMPLE_WIDTH
        )


def read_wav_format(wav_path: str) -> WavFormat:
    """Read the format fields of a WAV header.

    Raises:
        ValueError: If the file is not a readable PCM WAV.
    """
    try:
        with wave.open(wav_path, "rb") as wf:
            return WavFormat(
                channels=wf.getnchannels(),
                sample_rate=wf.getframerate(),
                sample_width=wf.getsampwidth(),
            )
    except (wave.Error, EOFError, OSError) as exc:
        raise ValueError(f"Failed to read WAV header: {wav_path}") from exc


def is_canonical_wav(wav_path: str) -> bool:
    """True when the file is a readable mono 16kHz 16-bit PCM WAV."""
    try:
        return read_wav_format(wav_path).is_canonical
    except ValueError:
        return False


def read_pcm_float32(stream: BinaryIO) -> np.ndarray:
    """Decode a canonical WAV stream into float32 samples in [-1, 1).

    Raises:
        ValueError: If the stream is not a canonical PCM WAV.
    """
    try:
        with wave.open(stream, "rb") as wf:
            fmt = WavFormat(wf.getnchannels(), wf.getframerate(), wf.getsampwidth())
            raw = wf.readframes(wf.getnframes())
    except (wave.Error, EOFError) as exc:
        raise ValueError("Audio stream is not a readable WAV file") from exc
    if not fmt.is_canonical:
        raise ValueError(
            f"Expected {SAMPLE_RATE} Hz mono 16-bit PCM, got {fmt.sample_rate} Hz, "
            f"{fmt.channels} channel(s), {fmt.sample_width * 8}-bit"
        )
    samples = np.frombuffer(raw, dtype="<i2")
    return samples.astype(np.float32) / 32768.0
