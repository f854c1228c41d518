"""Error taxonomy shared by every MVT operation.

Each fatal category carries its own process exit code so that callers can
script around the CLI without parsing its output.
"""

from __future__ import annotations

from typing import Any

EXIT_OK = 0
EXIT_DISCREPANCY = 1
EXIT_CONFIG = 2
EXIT_NOT_FOUND = 3
EXIT_FORMAT = 4
EXIT_IO = 5


class MvtError(Exception):
    """Base class for all MVT failures."""

    exit_code = EXIT_CONFIG


class ConfigError(MvtError):
    """Missing or invalid user input (CLI flags, config file values)."""

    exit_code = EXIT_CONFIG


class NotFoundError(MvtError):
    """Root directory, manifest file or denylist file does not exist."""

    exit_code = EXIT_NOT_FOUND


class FormatError(MvtError):
    """Manifest is unrecognized, malformed, or disagrees with the requested hash mode."""

    exit_code = EXIT_FORMAT


class InvalidPathError(FormatError):
    """A path does not fall under the traversal root."""


class IoError(MvtError):
    """Read or write failure in the middle of an operation."""

    exit_code = EXIT_IO


class DiscrepancyFound(MvtError):
    """Validation completed but the tree does not match the manifest."""

    exit_code = EXIT_DISCREPANCY

    def __init__(self, result: Any, message: str = "Validation failed") -> None:
        super().__init__(message)
        self.result = result
