"""Artifact collection and storage."""

from lane_orchestrator.artifacts.collector import ArtifactCollector, ArtifactRecord
from lane_orchestrator.artifacts.store import ArtifactStore, DirectoryArtifactStore

__all__ = [
    "ArtifactCollector",
    "ArtifactRecord",
    "ArtifactStore",
    "DirectoryArtifactStore",
]
