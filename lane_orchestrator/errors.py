"""Error taxonomy for the lane orchestrator.

Only ``ConfigurationError`` aborts a run before any lane executes. Lane
failures and timeouts are per-lane outcomes recorded on ``ExecutionResult``;
the artifact errors are captured on ``ArtifactRecord`` and never escalate
to a run failure.
"""

from __future__ import annotations


class OrchestratorError(Exception):
    """Base class for orchestrator errors."""


class ConfigurationError(OrchestratorError, ValueError):
    """Invalid configuration or tag-expression override."""


class MissingReportError(OrchestratorError, FileNotFoundError):
    """The runner did not leave a report file behind."""


class ArtifactUploadError(OrchestratorError, RuntimeError):
    """The artifact store rejected or failed an upload."""
