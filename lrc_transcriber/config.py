"""Runtime configuration read from environment variables.

Settings are read once per invocation. Constructor arguments win over
the environment so tests and embedding callers can pin any value.
"""

from __future__ import annotations

import os
import sys
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path

from lrc_transcriber.utils.errors import InvalidArgumentError

DEFAULT_MODEL_BASE_URL = "https://huggingface.co/ggerganov/whisper.cpp/resolve/main"
DEFAULT_ASR_PROVIDER = "whisper.cpp"
DEFAULT_DOWNLOAD_RETRIES = 3


def _default_models_dir() -> str:
    """Models live beside the running program, as ``./models``."""
    if sys.argv and sys.argv[0]:
        return str(Path(sys.argv[0]).resolve().parent / "models")
    return str(Path.cwd() / "models")


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise InvalidArgumentError(
            f"{name} must be an integer, got {raw!r}", argument=name
        ) from exc
    if value < 0:
        raise InvalidArgumentError(f"{name} must be >= 0, got {value}", argument=name)
    return value


@dataclass(frozen=True)
class TranscriberSettings:
    """Resolved configuration for one pipeline run."""

    models_dir: str
    model_base_url: str = DEFAULT_MODEL_BASE_URL
    ffmpeg_binary: str = "ffmpeg"
    temp_root: str = ""
    asr_provider: str = DEFAULT_ASR_PROVIDER
    download_retries: int = DEFAULT_DOWNLOAD_RETRIES
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, **overrides: object) -> TranscriberSettings:
        """Build settings from ``LRC_*`` environment variables.

        Raises:
            InvalidArgumentError: If a numeric variable does not parse.
        """
        settings = cls(
            models_dir=os.environ.get("LRC_MODELS_DIR") or _default_models_dir(),
            model_base_url=os.environ.get("LRC_MODEL_BASE_URL", DEFAULT_MODEL_BASE_URL),
            ffmpeg_binary=os.environ.get("LRC_FFMPEG", "ffmpeg"),
            temp_root=os.environ.get("LRC_TEMP_DIR") or tempfile.gettempdir(),
            asr_provider=os.environ.get("LRC_ASR_PROVIDER", DEFAULT_ASR_PROVIDER),
            download_retries=_int_from_env("LRC_DOWNLOAD_RETRIES", DEFAULT_DOWNLOAD_RETRIES),
            log_level=os.environ.get("LRC_LOG_LEVEL", "INFO"),
        )
        return replace(settings, **overrides) if overrides else settings
