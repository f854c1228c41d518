"""Lazy directory traversal.

Symlinks are never followed or yielded. Directories that cannot be listed and
entries that cannot be stat'ed are handed to ``on_error`` and skipped; they
never abort a traversal.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator

from .paths import MANIFEST_MARKER, relative_key, root_prefix

ErrorHandler = Callable[[str, OSError], None]


@dataclass(frozen=True)
class TreeEntry:
    absolute_path: str
    relative_path: str
    size_bytes: int


def _scan(directory: str, sort: bool, on_error: ErrorHandler | None) -> list[os.DirEntry]:
    try:
        with os.scandir(directory) as it:
            items = list(it)
    except OSError as exc:
        if on_error is not None:
            on_error(directory, exc)
        return []
    if sort:
        items.sort(key=lambda e: e.name)
    return items


def _walk(
    start: str,
    *,
    sort: bool,
    on_error: ErrorHandler | None,
    prune: Callable[[str], bool] | None,
) -> Iterator[tuple[os.DirEntry, bool]]:
    stack = [iter(_scan(start, sort, on_error))]
    while stack:
        entry = next(stack[-1], None)
        if entry is None:
            stack.pop()
            continue
        try:
            if entry.is_symlink():
                continue
            is_dir = entry.is_dir(follow_symlinks=False)
            if not is_dir and not entry.is_file(follow_symlinks=False):
                continue
        except OSError as exc:
            if on_error is not None:
                on_error(entry.path, exc)
            continue
        yield entry, is_dir
        if is_dir and (prune is None or not prune(entry.path)):
            stack.append(iter(_scan(entry.path, sort, on_error)))


def walk_files(
    root: Path | str,
    *,
    marker: str = MANIFEST_MARKER,
    exclude: Iterable[Path | str] = (),
    sort: bool = False,
    on_error: ErrorHandler | None = None,
) -> Iterator[TreeEntry]:
    """Yield a :class:`TreeEntry` for every regular file under ``root``.

    Files whose name contains ``marker`` (the manifests themselves) and any
    path listed in ``exclude`` are skipped. Order is the filesystem's
    enumeration order unless ``sort`` is set, in which case names are sorted
    within each directory.
    """
    start = os.path.abspath(os.fspath(root))
    prefix = root_prefix(start)
    excluded = {os.path.abspath(os.fspath(p)) for p in exclude}
    for entry, is_dir in _walk(start, sort=sort, on_error=on_error, prune=None):
        if is_dir:
            continue
        if marker and marker in entry.name:
            continue
        if entry.path in excluded:
            continue
        try:
            size = entry.stat(follow_symlinks=False).st_size
        except OSError as exc:
            if on_error is not None:
                on_error(entry.path, exc)
            continue
        yield TreeEntry(
            absolute_path=entry.path,
            relative_path=relative_key(prefix, entry.path),
            size_bytes=int(size),
        )


def walk_entries(
    root: Path | str,
    *,
    sort: bool = False,
    on_error: ErrorHandler | None = None,
    prune: Callable[[str], bool] | None = None,
) -> Iterator[tuple[Path, bool]]:
    """Yield ``(path, is_dir)`` for every file and directory under ``root``.

    ``prune(path)`` returning True stops descent into that directory (the
    directory itself is still yielded).
    """
    start = os.path.abspath(os.fspath(root))
    for entry, is_dir in _walk(start, sort=sort, on_error=on_error, prune=prune):
        yield Path(entry.path), is_dir
