"""Run metrics collection and reporting.

Provides the RunMetrics dataclass (the per-invocation run state once a
run is over), StageTimer for measuring stage durations, and
log_run_metrics() for emitting metrics as one structured JSON line.
"""

from __future__ import annotations

import json
import sys
import time
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import TextIO


@dataclass
class RunMetrics:
    """All metrics collected for a single transcription run."""

    input_path: str
    model: str
    language: str | None
    status: str = "running"
    segment_count: int = 0
    audio_duration_ms: int = 0
    normalized_audio_owned: bool = False
    stage_seconds: dict[str, float] = field(default_factory=dict)
    wall_time_seconds: float = 0.0
    error_stage: str | None = None
    error_kind: str | None = None
    error_message: str | None = None


class StageTimer:
    """Context manager that records the wall-clock duration of a stage.

    The duration lands in ``timings[stage_name]`` on success and in
    ``timings["_<stage_name>_failed"]`` when the block raises.

    Usage:
        with StageTimer("transcribe", metrics.stage_seconds):
            do_work()
    """

    def __init__(self, stage_name: str, timings: dict[str, float]) -> None:
        self.stage_name = stage_name
        self.duration_seconds: float = 0.0
        self._timings = timings
        self._mono_start: float = 0.0

    def __enter__(self) -> StageTimer:
        self._mono_start = time.monotonic()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.duration_seconds = time.monotonic() - self._mono_start
        if exc_type is not None:
            self._timings[f"_{self.stage_name}_failed"] = self.duration_seconds
        else:
            self._timings[self.stage_name] = self.duration_seconds


def log_run_metrics(metrics: RunMetrics, stream: TextIO | None = None) -> None:
    """Emit run metrics as a single structured JSON line.

    Args:
        metrics: Populated RunMetrics dataclass.
        stream: Destination stream (defaults to stdout).
    """
    entry = {
        "timestamp": datetime.now(UTC).isoformat(),
        "severity": "INFO" if metrics.status == "completed" else "ERROR",
        "metric_type": "run_completion",
        **asdict(metrics),
    }
    print(json.dumps(entry, ensure_ascii=False), file=stream or sys.stdout)
