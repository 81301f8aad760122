"""Command-line entry point: ``lrc-transcribe <audio-path> [model-name] [language]``.

Exit codes:
    0  success
    1  missing arguments (usage shown)
    2  input file not found
    3  pipeline failure (``[FATAL] <kind>: <detail>`` on stderr)
    4  invalid model name
"""

import asyncio
import logging
import os
import sys
import time

from lrc_transcriber.config import TranscriberSettings
from lrc_transcriber.observability.logger import setup_logging
from lrc_transcriber.observability.progress import ProgressReporter
from lrc_transcriber.pipeline import DEFAULT_LANGUAGE, TranscriptionRequest, run_pipeline
from lrc_transcriber.storage.model_registry import (
    DEFAULT_MODEL,
    resolve_model_name,
    supported_model_names,
)
from lrc_transcriber.utils.errors import TranscriberError, UnsupportedModelError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_INPUT_NOT_FOUND = 2
EXIT_PIPELINE_FAILURE = 3
EXIT_INVALID_MODEL = 4

USAGE = f"""Usage:
  lrc-transcribe <audio-path> [model-name={DEFAULT_MODEL}] [language={DEFAULT_LANGUAGE}|""(auto)]

Examples:
  lrc-transcribe /music/track.mp3
  lrc-transcribe /music/track.wav small
  lrc-transcribe /music/track.flac medium ""   (auto-detect language)
"""


def parse_request(args: list[str]) -> TranscriptionRequest:
    """Build a request from positional arguments (at least one required).

    An empty or blank language argument selects automatic detection.
    """
    model_name = args[1] if len(args) >= 2 else DEFAULT_MODEL
    if len(args) >= 3:
        language = args[2].strip() or None
    else:
        language = DEFAULT_LANGUAGE
    return TranscriptionRequest(audio_path=args[0], model_name=model_name, language=language)


def _report_invalid_model(reporter: ProgressReporter, exc: UnsupportedModelError) -> None:
    reporter.message(f"[ERR] Unsupported model: {exc.model_name}")
    reporter.message(f"      Valid models: {', '.join(supported_model_names())}")
    if exc.suggestion:
        reporter.message(f"      Did you mean '{exc.suggestion}'?")


def _format_elapsed(seconds: float) -> str:
    total = int(seconds)
    return f"{total // 60:02d}:{total % 60:02d}"


def main(argv: list[str] | None = None) -> int:
    """Run one transcription and return the process exit code."""
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print(USAGE)
        return EXIT_USAGE

    reporter = ProgressReporter()
    request = parse_request(args)
    if not os.path.isfile(request.audio_path):
        reporter.message(f"[ERR] Input file not found: {request.audio_path}")
        return EXIT_INPUT_NOT_FOUND

    try:
        resolve_model_name(request.model_name)
    except UnsupportedModelError as exc:
        _report_invalid_model(reporter, exc)
        return EXIT_INVALID_MODEL

    started = time.monotonic()
    try:
        settings = TranscriberSettings.from_env()
        setup_logging(settings.log_level)

        reporter.message(f"[INFO] Audio     : {request.audio_path}")
        reporter.message(f"[INFO] Model     : {request.model_name}")
        reporter.message(f"[INFO] Language  : {request.language or '(auto)'}")
        reporter.message(f"[INFO] LRC output: {request.resolved_output_path}")

        result = asyncio.run(run_pipeline(request, settings, reporter=reporter))
    except TranscriberError as exc:
        reporter.message(f"[FATAL] {exc.kind}: {exc}")
        return EXIT_PIPELINE_FAILURE
    except Exception as exc:
        reporter.end_line()
        logger.exception("Unhandled pipeline failure")
        reporter.message(f"[FATAL] {type(exc).__name__}: {exc}")
        return EXIT_PIPELINE_FAILURE

    reporter.message(
        f"[OK] Done in {_format_elapsed(time.monotonic() - started)}: "
        f"{result.segment_count} segments -> {result.output_path}"
    )
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
