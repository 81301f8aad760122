"""Closed registry of supported whisper.cpp GGML models.

Maps friendly model identifiers to their remote artifact names and, where
known, an expected artifact size used for the disk-space check and the
download percentage.
"""

from __future__ import annotations

from dataclasses import dataclass

from lrc_transcriber.utils.errors import UnsupportedModelError

MIB = 1024 * 1024
MODEL_FILE_EXTENSION = ".ggml"
MAX_SUGGESTION_DISTANCE = 2
DEFAULT_MODEL = "small.en"


@dataclass(frozen=True)
class ModelSpec:
    """A downloadable recognition model."""

    name: str
    remote_filename: str
    size_hint_bytes: int | None = None

    @property
    def local_filename(self) -> str:
        return f"{self.name}{MODEL_FILE_EXTENSION}"


def _spec(name: str, size_mib: int | None = None) -> ModelSpec:
    size = size_mib * MIB if size_mib is not None else None
    return ModelSpec(name=name, remote_filename=f"ggml-{name}.bin", size_hint_bytes=size)


MODELS: dict[str, ModelSpec] = {
    spec.name: spec
    for spec in (
        _spec("tiny.en", 75),
        _spec("base.en", 145),
        _spec("small.en", 465),
        _spec("small", 480),
        _spec("medium", 1400),
        _spec("large-v3", 3100),
        # No size hint published; downloads report an indeterminate indicator.
        _spec("tiny"),
        _spec("base"),
    )
}


def supported_model_names() -> list[str]:
    return sorted(MODELS)


def levenshtein(a: str, b: str) -> int:
    """Classic edit distance (insert, delete, substitute all cost 1)."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (char_a != char_b),
                )
            )
        previous = current
    return previous[-1]


def suggest_model_name(name: str) -> str | None:
    """Return the closest registered name if it is within a small edit distance."""
    key = name.strip().lower()
    if not key:
        return None
    best = min(supported_model_names(), key=lambda candidate: levenshtein(key, candidate))
    if levenshtein(key, best) <= MAX_SUGGESTION_DISTANCE:
        return best
    return None


def resolve_model_name(name: str) -> ModelSpec:
    """Look up a model by identifier, case-insensitively and trimmed.

    Raises:
        UnsupportedModelError: If the identifier is not registered.
    """
    key = (name or "").strip().lower()
    spec = MODELS.get(key)
    if spec is None:
        available = ", ".join(supported_model_names())
        raise UnsupportedModelError(
            f"Unsupported model: '{name}'. Available: {available}",
            model_name=name,
            suggestion=suggest_model_name(name or ""),
        )
    return spec
