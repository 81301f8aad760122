"""Custom exception hierarchy for the transcription pipeline.

All exceptions inherit from TranscriberError, enabling targeted handling
at the driver boundary while preserving specific failure context. Each
class exposes a stable ``kind`` used in the operator-facing fatal line.
"""


class TranscriberError(Exception):
    """Base exception for all transcription pipeline errors."""

    kind = "TranscriberError"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class UnsupportedModelError(TranscriberError):
    """Raised when a model identifier is not in the registry."""

    kind = "UnsupportedModel"

    def __init__(
        self,
        message: str,
        model_name: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        self.model_name = model_name
        self.suggestion = suggestion
        super().__init__(message)


class InsufficientDiskSpaceError(TranscriberError):
    """Raised when the models volume cannot hold the artifact plus margin."""

    kind = "InsufficientDiskSpace"

    def __init__(self, message: str, free_mb: int, required_mb: int) -> None:
        self.free_mb = free_mb
        self.required_mb = required_mb
        super().__init__(message)


class ModelDownloadError(TranscriberError):
    """Raised when the model artifact cannot be downloaded."""

    kind = "ModelDownloadFailed"

    def __init__(
        self,
        message: str,
        model_name: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.model_name = model_name
        self.status_code = status_code
        super().__init__(message)


class AudioToolUnavailableError(TranscriberError):
    """Raised when the transcoder executable cannot be started."""

    kind = "AudioToolUnavailable"

    def __init__(self, message: str, tool: str | None = None) -> None:
        self.tool = tool
        super().__init__(message)


class AudioConversionError(TranscriberError):
    """Raised when ffmpeg fails or produces no output file."""

    kind = "AudioConversionFailed"

    def __init__(
        self,
        message: str,
        input_path: str | None = None,
        diagnostics: str = "",
    ) -> None:
        self.input_path = input_path
        self.diagnostics = diagnostics
        super().__init__(message)


class TranscriptionError(TranscriberError):
    """Raised when the recognition capability fails mid-run."""

    kind = "TranscriptionFailed"

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)


class OutputWriteError(TranscriberError):
    """Raised when the lyric file cannot be written."""

    kind = "IoError"

    def __init__(self, message: str, output_path: str | None = None) -> None:
        self.output_path = output_path
        super().__init__(message)


class InvalidArgumentError(TranscriberError):
    """Raised for invalid operator input or configuration values."""

    kind = "InvalidArgument"

    def __init__(self, message: str, argument: str | None = None) -> None:
        self.argument = argument
        super().__init__(message)
