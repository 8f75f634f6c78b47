"""
Repository access used by the detector.

The detector only needs two operations from wherever the repository lives
(a local checkout, a hosting provider's API, a test double): listing every
file path of one snapshot, and reading one file's bytes.
"""

from typing import Protocol

from .local import LocalRepoClient


class RepoClient(Protocol):
    def list_files(self) -> list[str]:
        """All repository-relative POSIX paths in the snapshot.

        Raises RepoAccessError or OSError when listing fails.
        """
        ...

    def get_file_content(self, path: str) -> bytes:
        """Raw content of one file.

        Raises RepoAccessError or OSError if the path is missing or unreadable.
        """
        ...


__all__ = ["RepoClient", "LocalRepoClient"]
