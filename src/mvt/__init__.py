"""Media Validation Tool: directory-tree manifests and junk-file scans."""

from __future__ import annotations

__version__ = "1.0.0"

TOOL_NAME = "MVT"

__all__ = [
    "cli",
    "config",
    "errors",
    "generate",
    "hashing",
    "io_utils",
    "manifest",
    "paths",
    "reconcile",
    "reporting",
    "trash",
    "walker",
]
