"""LRC serialization: one ``[mm:ss.cc] text`` line per segment.

Minutes are not wrapped into hours. Centiseconds are truncated from the
millisecond remainder. Segments are written in the order given.
"""

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from lrc_transcriber.asr.interface import Segment
from lrc_transcriber.utils.errors import OutputWriteError

logger = logging.getLogger(__name__)

LRC_EXTENSION = ".lrc"


def format_lrc_timestamp(ms: int) -> str:
    """Format milliseconds as ``[mm:ss.cc]``."""
    total_seconds, remainder_ms = divmod(ms, 1000)
    minutes, seconds = divmod(total_seconds, 60)
    return f"[{minutes:02d}:{seconds:02d}.{remainder_ms // 10:02d}]"


def render_lrc(segments: Iterable[Segment]) -> str:
    lines = []
    for segment in segments:
        text = segment.text.strip()
        if not text:
            continue
        lines.append(f"{format_lrc_timestamp(segment.start_ms)} {text}\n")
    return "".join(lines)


def output_path_for(audio_path: str) -> str:
    """``track.mp3`` -> ``track.lrc`` beside the input."""
    return str(Path(audio_path).with_suffix(LRC_EXTENSION))


def write_lrc(segments: Iterable[Segment], output_path: str) -> None:
    """Write segments to ``output_path`` as UTF-8 (no BOM), replacing any file.

    Raises:
        OutputWriteError: On any filesystem failure.
    """
    content = render_lrc(segments)
    try:
        directory = os.path.dirname(output_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(output_path, "w", encoding="utf-8", newline="\n") as lrc_file:
            lrc_file.write(content)
    except OSError as exc:
        raise OutputWriteError(
            f"Failed to write {output_path}: {exc}", output_path=output_path
        ) from exc
    logger.info("Wrote %s", output_path, extra={"stage": "write"})
