"""
Exceptions raised by gha-taint.

Malformed workflow files are not errors (they parse to an empty document),
so everything here is about the environment the scan runs in.
"""

from typing import Optional


class GhaTaintError(Exception):
    """Base exception for all gha-taint errors."""


class RepoAccessError(GhaTaintError):
    """Listing or reading repository files failed.

    Fatal to a detection run: no partial result is returned.
    """

    def __init__(self, operation: str, path: str = "", cause: Optional[Exception] = None):
        self.operation = operation
        self.path = path
        self.cause = cause
        target = f" '{path}'" if path else ""
        detail = f": {cause}" if cause else ""
        super().__init__(f"{operation}{target} failed{detail}")


class ConfigError(GhaTaintError):
    """The configuration file exists but holds invalid values."""
