"""Trigger-driven lane orchestration for tagged cucumber suites."""

__version__ = "0.1.0"
