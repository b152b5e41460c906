"""Artifact store contract and a directory-backed implementation."""

from __future__ import annotations

import re
import shutil
from pathlib import Path
from typing import Protocol

from lane_orchestrator.errors import ArtifactUploadError


class ArtifactStore(Protocol):
    """Durable storage for named result files."""

    def upload(self, name: str, path: str) -> bool:
        """Store the file at ``path`` under ``name``.

        Returns True on success. May raise ``ArtifactUploadError``.
        """
        ...


def safe_artifact_name(name: str) -> str:
    """Turn an artifact name into a single safe path component."""
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "_", name.strip()).strip("._")
    return cleaned or "artifact"


class DirectoryArtifactStore:
    """Stores artifacts as ``<root>/<name>/<file name>``.

    Uploading the same name twice replaces the earlier file.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def path_for(self, name: str, path: str) -> Path:
        return self.root / safe_artifact_name(name) / Path(path).name

    def upload(self, name: str, path: str) -> bool:
        source = Path(path)
        target = self.path_for(name, path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
        except OSError as e:
            raise ArtifactUploadError(
                f"Cannot store {source} as '{name}': {e}"
            ) from e
        return True
