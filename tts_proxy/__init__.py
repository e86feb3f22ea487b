"""Metrics-instrumented text-to-speech proxy."""

__version__ = "1.0.0"
