"""Synchronized-lyrics (LRC) output."""

from lrc_transcriber.output.lrc_writer import format_lrc_timestamp, write_lrc

__all__ = ["format_lrc_timestamp", "write_lrc"]
