"""Recognition engine registry with configuration-driven provider selection.

Maps provider name strings to engine classes. Use get_asr_engine() to
instantiate an engine by name with engine-specific configuration.
"""

from lrc_transcriber.asr.interface import RecognitionEngine
from lrc_transcriber.asr.whisper_cpp import WhisperCppEngine
from lrc_transcriber.utils.errors import TranscriptionError

ASR_ENGINES: dict[str, type[RecognitionEngine]] = {
    "whisper.cpp": WhisperCppEngine,
}


def get_asr_engine(provider: str, **kwargs: object) -> RecognitionEngine:
    """Create a recognition engine instance by provider name.

    Args:
        provider: Provider name (e.g., "whisper.cpp").
        **kwargs: Engine configuration, typically model_path and language.

    Returns:
        An initialized RecognitionEngine instance.

    Raises:
        TranscriptionError: If the provider name is not registered.
    """
    engine_cls = ASR_ENGINES.get(provider)
    if not engine_cls:
        available = ", ".join(sorted(ASR_ENGINES.keys()))
        raise TranscriptionError(
            f"Unknown ASR provider: '{provider}'. Available: {available}",
            provider=provider,
        )
    return engine_cls(**kwargs)
