"""Audio file to time-synchronized LRC lyrics via local speech recognition."""

__version__ = "0.1.0"
