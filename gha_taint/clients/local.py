"""
Repository client backed by a directory on disk.
"""

import logging
import os
from pathlib import Path

from gha_taint.exceptions import RepoAccessError

logger = logging.getLogger(__name__)

SKIPPED_DIRS = {".git"}


class LocalRepoClient:
    """Serves files from a local checkout rooted at `root`."""

    def __init__(self, root: str):
        self.root = Path(root)

    def list_files(self) -> list[str]:
        if not self.root.is_dir():
            raise RepoAccessError(
                "listing files", str(self.root), NotADirectoryError(f"Not a directory: {self.root}"),
            )

        files = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(d for d in dirnames if d not in SKIPPED_DIRS)
            for filename in sorted(filenames):
                files.append(Path(dirpath, filename).relative_to(self.root).as_posix())
        logger.debug("Listed %d file(s) under %s", len(files), self.root)
        return files

    def get_file_content(self, path: str) -> bytes:
        target = (self.root / path).resolve()
        if not target.is_relative_to(self.root.resolve()):
            raise RepoAccessError("reading file", path, ValueError("path escapes repository root"))
        try:
            return target.read_bytes()
        except OSError as e:
            raise RepoAccessError("reading file", path, e) from e
