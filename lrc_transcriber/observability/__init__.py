"""Logging, run metrics and terminal progress reporting."""
