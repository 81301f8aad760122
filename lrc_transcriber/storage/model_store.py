"""Model store: resolve, verify capacity for, and download model artifacts.

Artifacts live in a flat models directory as ``<name>.ggml``. A present
artifact is returned without network access. Missing artifacts are
streamed over HTTP into ``<name>.ggml.part`` and renamed into place only
once complete, so an interrupted download never poisons the cache.
"""

from __future__ import annotations

import logging
import os
import shutil
import time
from collections.abc import Callable

import httpx

from lrc_transcriber.config import DEFAULT_MODEL_BASE_URL
from lrc_transcriber.observability.progress import NullProgressReporter, ProgressReporter
from lrc_transcriber.storage.model_registry import MIB, ModelSpec, resolve_model_name
from lrc_transcriber.utils.errors import InsufficientDiskSpaceError, ModelDownloadError
from lrc_transcriber.utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)

CHUNK_SIZE = 128 * 1024
SPACE_SAFETY_MARGIN = 1.25
PROGRESS_INTERVAL_SECONDS = 0.1
PROGRESS_PREFIX = "[Download]"
TRANSIENT_STATUS_CODES = {408, 429, 500, 502, 503, 504}
PARTIAL_SUFFIX = ".part"


def to_megabytes(num_bytes: float) -> int:
    """Whole decimal megabytes, rounded."""
    return round(num_bytes / 1_000_000)


def required_free_bytes(size_hint_bytes: int) -> int:
    return int(size_hint_bytes * SPACE_SAFETY_MARGIN)


def download_percent(bytes_so_far: int, expected_size: int | None) -> int:
    """Percentage shown while downloading.

    With a size hint the value is capped at 99 until the download is
    finalised. Without one, a cycling 0..99 indicator driven by whole
    MiB transferred is returned instead.
    """
    if expected_size:
        return min(99, round(bytes_so_far * 100 / expected_size))
    return int(bytes_so_far / MIB) % 100


def _is_transient(exc: Exception) -> bool:
    if not isinstance(exc, ModelDownloadError):
        return False
    if exc.status_code is not None:
        return exc.status_code in TRANSIENT_STATUS_CODES
    return isinstance(exc.__cause__, httpx.TransportError)


class ModelStore:
    """Resolves model identifiers to local artifact paths.

    Args:
        models_dir: Directory holding one artifact per model.
        base_url: Remote root the ``ggml-<name>.bin`` artifacts are served from.
        reporter: Display owner for download progress.
        transport: Optional httpx transport (tests inject a MockTransport).
        max_retries: Retry budget for transient download failures.
        retry_base_delay: Base backoff delay in seconds.
        clock: Monotonic clock used to rate-limit progress redraws.
    """

    def __init__(
        self,
        models_dir: str,
        base_url: str = DEFAULT_MODEL_BASE_URL,
        reporter: ProgressReporter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.models_dir = models_dir
        self._base_url = base_url.rstrip("/")
        self._reporter = reporter or NullProgressReporter()
        self._transport = transport
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay
        self._clock = clock

    def model_path(self, spec: ModelSpec) -> str:
        return os.path.join(self.models_dir, spec.local_filename)

    def model_url(self, spec: ModelSpec) -> str:
        return f"{self._base_url}/{spec.remote_filename}"

    async def ensure_model(self, name: str) -> str:
        """Return the local path of a model, downloading it when absent.

        Args:
            name: Model identifier (case-insensitive, surrounding whitespace ignored).

        Returns:
            Path to the artifact on disk.

        Raises:
            UnsupportedModelError: If the name is not registered.
            InsufficientDiskSpaceError: If the volume cannot hold the artifact.
            ModelDownloadError: If the download fails after retries.
        """
        spec = resolve_model_name(name)
        os.makedirs(self.models_dir, exist_ok=True)

        path = self.model_path(spec)
        if os.path.exists(path):
            logger.info("Model present at %s", path, extra={"model": spec.name})
            return path

        self._check_disk_space(spec)

        logger.info(
            "Downloading model %s from %s",
            spec.name,
            self.model_url(spec),
            extra={"model": spec.name},
        )
        started = time.monotonic()
        download = retry_with_backoff(
            max_retries=self._max_retries,
            base_delay=self._retry_base_delay,
            is_retryable=_is_transient,
        )(self._download)
        await download(spec, path)

        logger.info(
            "Model ready at %s",
            path,
            extra={"model": spec.name, "duration_seconds": round(time.monotonic() - started, 3)},
        )
        return path

    def _check_disk_space(self, spec: ModelSpec) -> None:
        if spec.size_hint_bytes is None:
            return
        free = shutil.disk_usage(self.models_dir).free
        required = required_free_bytes(spec.size_hint_bytes)
        if free < required:
            free_mb = to_megabytes(free)
            required_mb = to_megabytes(required)
            raise InsufficientDiskSpaceError(
                f"Not enough disk space: {free_mb} MB free, about {required_mb} MB "
                f"needed (margin included) for {spec.name}",
                free_mb=free_mb,
                required_mb=required_mb,
            )

    async def _download(self, spec: ModelSpec, path: str) -> None:
        """Stream one download attempt into a partial file, then rename it."""
        partial_path = path + PARTIAL_SUFFIX
        try:
            await self._stream_to_file(spec, partial_path)
            os.replace(partial_path, path)
        except BaseException:
            self._reporter.end_line()
            self._discard_partial(partial_path)
            raise
        self._reporter.finish(PROGRESS_PREFIX)

    async def _stream_to_file(self, spec: ModelSpec, partial_path: str) -> None:
        url = self.model_url(spec)
        written = 0
        last_percent = -1
        last_poll = self._clock()
        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                follow_redirects=True,
                timeout=httpx.Timeout(30.0, read=120.0),
            ) as client:
                async with client.stream("GET", url) as response:
                    if response.status_code != 200:
                        raise ModelDownloadError(
                            f"Model download for {spec.name} failed with status "
                            f"{response.status_code}",
                            model_name=spec.name,
                            status_code=response.status_code,
                        )
                    with open(partial_path, "wb") as artifact:
                        async for chunk in response.aiter_bytes(CHUNK_SIZE):
                            artifact.write(chunk)
                            written += len(chunk)

                            now = self._clock()
                            if now - last_poll < PROGRESS_INTERVAL_SECONDS:
                                continue
                            last_poll = now
                            percent = download_percent(written, spec.size_hint_bytes)
                            if percent != last_percent:
                                last_percent = percent
                                self._reporter.draw(percent, PROGRESS_PREFIX)
        except httpx.HTTPError as exc:
            raise ModelDownloadError(
                f"Model download for {spec.name} failed: {exc}",
                model_name=spec.name,
            ) from exc
        except OSError as exc:
            raise ModelDownloadError(
                f"Could not write model file {partial_path}: {exc}",
                model_name=spec.name,
            ) from exc

        if written == 0:
            raise ModelDownloadError(
                f"Model download for {spec.name} returned an empty body",
                model_name=spec.name,
            )

    def _discard_partial(self, partial_path: str) -> None:
        try:
            os.remove(partial_path)
        except FileNotFoundError:
            pass
        except OSError:
            logger.warning("Could not remove partial download %s", partial_path, exc_info=True)
