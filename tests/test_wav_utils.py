"""Tests for WAV header inspection and PCM decoding."""

import io
import os

import numpy as np
import pytest

from conftest import write_wav
from lrc_transcriber.audio.wav_utils import (
    BYTES_PER_SECOND,
    is_canonical_wav,
    read_pcm_float32,
    read_wav_format,
)


class TestWavFormat:
    def test_canonical_header(self, canonical_wav: str) -> None:
        fmt = read_wav_format(canonical_wav)
        assert (fmt.channels, fmt.sample_rate, fmt.sample_width) == (1, 16000, 2)
        assert is_canonical_wav(canonical_wav)

    @pytest.mark.parametrize(
        ("sample_rate", "channels", "sample_width"),
        [(44100, 1, 2), (16000, 2, 2), (16000, 1, 1)],
    )
    def test_non_canonical_headers(
        self, tmp_path: object, sample_rate: int, channels: int, sample_width: int
    ) -> None:
        path = write_wav(
            os.path.join(str(tmp_path), "odd.wav"),
            1600,
            sample_rate=sample_rate,
            channels=channels,
            sample_width=sample_width,
        )
        assert not is_canonical_wav(path)

    def test_garbage_is_not_canonical(self, tmp_path: object) -> None:
        path = os.path.join(str(tmp_path), "fake.wav")
        with open(path, "wb") as handle:
            handle.write(b"definitely not RIFF")
        assert not is_canonical_wav(path)
        with pytest.raises(ValueError, match="Failed to read WAV header"):
            read_wav_format(path)

    def test_byte_rate(self) -> None:
        assert BYTES_PER_SECOND == 32000


class TestReadPcmFloat32:
    def test_decodes_samples(self, canonical_wav: str) -> None:
        with open(canonical_wav, "rb") as stream:
            samples = read_pcm_float32(stream)
        assert samples.dtype == np.float32
        assert samples.shape == (16000,)
        assert samples[0] == pytest.approx(1000 / 32768)
        assert samples[1] == pytest.approx(-1000 / 32768)

    def test_rejects_non_canonical_stream(self, tmp_path: object) -> None:
        path = write_wav(os.path.join(str(tmp_path), "cd.wav"), 441, sample_rate=44100)
        with open(path, "rb") as stream, pytest.raises(ValueError, match="Expected 16000 Hz"):
            read_pcm_float32(stream)

    def test_rejects_non_wav_stream(self) -> None:
        with pytest.raises(ValueError, match="not a readable WAV"):
            read_pcm_float32(io.BytesIO(b"\x00" * 64))
