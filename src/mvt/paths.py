"""Root-relative manifest keys and output file naming."""

from __future__ import annotations

import os
import re
from pathlib import Path

from .errors import InvalidPathError

MANIFEST_MARKER = "VERSION-"
KEY_SEP = "/"

# Union of characters rejected in file names on Windows and POSIX.
_ILLEGAL_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def root_prefix(root: Path | str) -> str:
    """Absolute root path terminated by exactly one separator."""
    text = os.path.abspath(os.fspath(root))
    return text.rstrip(os.sep) + os.sep


def relative_key(prefix: str, path: Path | str) -> str:
    """Strip ``prefix`` (from :func:`root_prefix`) and return a ``/``-separated key."""
    text = os.fspath(path)
    if not text.startswith(prefix):
        raise InvalidPathError(f"Path is outside root {prefix!r}: {text!r}")
    rel = text[len(prefix) :]
    if not rel:
        raise InvalidPathError(f"Path is the root itself: {text!r}")
    if os.sep != KEY_SEP:
        rel = rel.replace(os.sep, KEY_SEP)
    return rel


def sanitize_tag(tag: str) -> str:
    return _ILLEGAL_FILENAME_CHARS.sub("_", tag)


def default_manifest_name(tag: str) -> str:
    return f"{MANIFEST_MARKER}{sanitize_tag(tag)}.txt"
