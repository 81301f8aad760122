"""Model artifact registry and on-disk store."""

from lrc_transcriber.storage.model_store import ModelStore

__all__ = ["ModelStore"]
