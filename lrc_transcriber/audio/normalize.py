"""Arbitrary audio to 16kHz mono 16-bit PCM WAV using ffmpeg.

The recognition engine only reliably accepts canonical PCM, so every
input is transcoded into a private temp directory unless it is already a
WAV whose header says mono, 16kHz, 16-bit. The result records whether the
pipeline created the file and therefore owns its deletion.
"""

import logging
import os
import shutil
import subprocess
import tempfile
import uuid
from pathlib import Path
from typing import NamedTuple

from lrc_transcriber.audio.wav_utils import NUM_CHANNELS, SAMPLE_RATE, is_canonical_wav
from lrc_transcriber.utils.errors import (
    AudioConversionError,
    AudioToolUnavailableError,
    InvalidArgumentError,
)

logger = logging.getLogger(__name__)

TEMP_SUBDIR = os.path.join("lrc-transcriber", "wav")
DIAGNOSTIC_TAIL_LINES = 12


class NormalizedAudio(NamedTuple):
    """Canonical WAV ready for recognition."""

    path: str
    owned: bool


def temp_wav_path(input_path: str, temp_root: str | None = None) -> str:
    """Collision-resistant output path: ``<stem>_<random hex>.wav``."""
    output_dir = os.path.join(temp_root or tempfile.gettempdir(), TEMP_SUBDIR)
    os.makedirs(output_dir, exist_ok=True)
    return os.path.join(output_dir, f"{Path(input_path).stem}_{uuid.uuid4().hex}.wav")


def build_ffmpeg_command(ffmpeg_path: str, input_path: str, output_path: str) -> list[str]:
    return [
        ffmpeg_path,
        "-y",
        "-i",
        input_path,
        "-vn",
        "-ac",
        str(NUM_CHANNELS),
        "-ar",
        str(SAMPLE_RATE),
        "-acodec",
        "pcm_s16le",
        "-f",
        "wav",
        output_path,
    ]


def _diagnostics(stdout: str | None, stderr: str | None) -> str:
    parts = [text.strip() for text in (stderr, stdout) if text and text.strip()]
    return "\n".join(parts)


def _tail(text: str, lines: int = DIAGNOSTIC_TAIL_LINES) -> str:
    return "\n".join(text.splitlines()[-lines:])


def normalize(
    input_path: str,
    ffmpeg_binary: str = "ffmpeg",
    temp_root: str | None = None,
) -> NormalizedAudio:
    """Produce a canonical WAV for ``input_path``.

    Args:
        input_path: Any audio (or video) file ffmpeg can decode.
        ffmpeg_binary: Transcoder name or path, resolved on PATH.
        temp_root: Parent directory for converted files (default: system temp).

    Returns:
        NormalizedAudio with the WAV path and whether the caller must delete it.

    Raises:
        InvalidArgumentError: If the input file does not exist.
        AudioToolUnavailableError: If ffmpeg cannot be found or started.
        AudioConversionError: If ffmpeg exits non-zero or writes no file.
    """
    if not os.path.isfile(input_path):
        raise InvalidArgumentError(
            f"Input file does not exist: {input_path}", argument="audio-path"
        )

    if Path(input_path).suffix.lower() == ".wav" and is_canonical_wav(input_path):
        logger.info("Input is already canonical WAV, skipping conversion", extra={"stage": "normalize"})
        return NormalizedAudio(path=input_path, owned=False)

    ffmpeg_path = shutil.which(ffmpeg_binary)
    if ffmpeg_path is None:
        raise AudioToolUnavailableError(
            f"{ffmpeg_binary} not found on PATH; install ffmpeg and retry",
            tool=ffmpeg_binary,
        )

    output_path = temp_wav_path(input_path, temp_root)
    cmd = build_ffmpeg_command(ffmpeg_path, input_path, output_path)
    logger.info("Converting %s to 16 kHz mono WAV", input_path, extra={"stage": "normalize"})

    try:
        # run() drains stdout and stderr before the exit status is read.
        completed = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            errors="replace",
            check=False,
        )
    except OSError as exc:
        raise AudioToolUnavailableError(
            f"Could not start {ffmpeg_binary}: {exc}", tool=ffmpeg_binary
        ) from exc

    diagnostics = _diagnostics(completed.stdout, completed.stderr)
    if completed.returncode != 0 or not os.path.exists(output_path):
        _remove_quietly(output_path)
        detail = _tail(diagnostics) or "no diagnostic output"
        logger.error(
            "ffmpeg failed with exit code %d",
            completed.returncode,
            extra={"stage": "normalize", "error": detail},
        )
        raise AudioConversionError(
            f"ffmpeg conversion failed (exit code {completed.returncode}): {detail}",
            input_path=input_path,
            diagnostics=diagnostics,
        )

    return NormalizedAudio(path=output_path, owned=True)


def remove_normalized(audio: NormalizedAudio) -> None:
    """Delete a pipeline-created WAV; failures are logged, never raised."""
    if audio.owned:
        _remove_quietly(audio.path)


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError:
        logger.warning("Could not delete temporary file %s", path, exc_info=True)
