"""
Local filesystem storage for uploaded documents.

Paths are stored relative to the upload root; anything resolving outside
the root is refused.
"""

import shutil
from pathlib import Path
from typing import Union

from src.engines.policy.errors import InfrastructureError
from src.logging_config import get_logger

logger = get_logger(__name__)


class LocalFileStorage:
    """Storage port over a directory on disk."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()

    def _resolve(self, path: str) -> Path:
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        resolved = candidate.resolve()
        if resolved != self.root and self.root not in resolved.parents:
            raise InfrastructureError(f"Path escapes storage root: {path}", operation="storage.resolve")
        return resolved

    def path_for(self, path: str) -> Path:
        return self._resolve(path)

    def file_exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def delete_file(self, path: str) -> None:
        """Remove a file; a missing file is not an error."""
        target = self._resolve(path)
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            raise InfrastructureError(
                f"Failed to delete {path}: {exc}", operation="storage.delete"
            ) from exc
        logger.debug("Deleted file", extra={"file_path": path})

    def move_file(self, source: str, destination: str) -> None:
        src_path = self._resolve(source)
        dst_path = self._resolve(destination)
        try:
            dst_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(src_path), str(dst_path))
        except OSError as exc:
            raise InfrastructureError(
                f"Failed to move {source} to {destination}: {exc}", operation="storage.move"
            ) from exc
