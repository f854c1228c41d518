"""Find and remove OS-generated junk files and directories.

The denylist is a plain text file with one file or directory name per line.
Matching is case-insensitive against each entry's basename.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from .errors import IoError, NotFoundError
from .reporting import Reporter
from .walker import walk_entries

TRASH_FILENAME = "Trash.txt"

DEFAULT_TRASH_NAMES = [
    "desktop.ini",
    ".DS_Store",
    ".Trashes",
    "._",
    ".fseventsd",
    ".Spotlight-V100",
    "System Volume Information",
]


def default_trash_path() -> Path:
    return Path.home() / ".config" / "mvt" / TRASH_FILENAME


@dataclass(frozen=True)
class TrashReport:
    files: tuple[Path, ...]
    dirs: tuple[Path, ...]

    @property
    def count(self) -> int:
        return len(self.files) + len(self.dirs)


def write_default_trash_file(path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("\n".join(DEFAULT_TRASH_NAMES) + "\n", encoding="utf-8")
    except OSError as exc:
        raise IoError(f"Unable to write default trash list '{path}': {exc}") from exc


def ensure_trash_file(path: Path, reporter: Reporter | None = None) -> Path:
    if not path.exists():
        if reporter is not None:
            reporter.warn(f"'{path.name}' file missing. Creating default {path.name} file at '{path}'...")
        write_default_trash_file(path)
    return path


def load_trash_names(path: Path) -> frozenset[str]:
    """Casefolded denylist tokens; blank lines and ``#`` comments are ignored."""
    try:
        text = path.read_text(encoding="utf-8-sig")
    except FileNotFoundError as exc:
        raise NotFoundError(f"Trash list not found: {path}") from exc
    except OSError as exc:
        raise IoError(f"Unable to read trash list '{path}': {exc}") from exc
    names = set()
    for line in text.splitlines():
        token = line.strip()
        if not token or token.startswith("#"):
            continue
        names.add(token.casefold())
    return frozenset(names)


def find_trash(
    root: Path,
    names: frozenset[str],
    *,
    reporter: Reporter | None = None,
    sort: bool = False,
) -> TrashReport:
    """Collect every file and directory under ``root`` whose name is denylisted.

    Matched directories are reported once and not descended into.
    """
    reporter = reporter or Reporter.silent()
    if not root.is_dir():
        raise NotFoundError(f"'{root}' does not exist!")
    folded = frozenset(n.casefold() for n in names)

    def is_trash(path: str) -> bool:
        return os.path.basename(path).casefold() in folded

    def on_error(path: str, exc: OSError) -> None:
        reporter.warn(f"Skipping '{path}': {exc}", path=path)

    reporter.info(f"Looking for trash in '{root}'...")
    files: list[Path] = []
    dirs: list[Path] = []
    for path, is_dir in walk_entries(root, sort=sort, on_error=on_error, prune=is_trash):
        if not is_trash(str(path)):
            continue
        if is_dir:
            reporter.info("Found trash directory:".ljust(24) + f" '{path}'", kind="dir", path=str(path))
            dirs.append(path)
        else:
            reporter.info("Found trash file:".ljust(24) + f" '{path}'", kind="file", path=str(path))
            files.append(path)
    return TrashReport(files=tuple(files), dirs=tuple(dirs))


def delete_trash(report: TrashReport, reporter: Reporter | None = None) -> int:
    reporter = reporter or Reporter.silent()
    for path in report.files:
        reporter.debug(f"Deleting file '{path}'...")
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise IoError(f"Unable to delete '{path}': {exc}") from exc
    for path in report.dirs:
        reporter.debug(f"Deleting directory '{path}'...")
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            continue
        except OSError as exc:
            raise IoError(f"Unable to delete '{path}': {exc}") from exc
    return report.count


def scan_trash(
    root: Path,
    trash_file: Path,
    *,
    delete: bool = False,
    reporter: Reporter | None = None,
    sort: bool = False,
) -> TrashReport:
    """The ``Trash`` / ``TrashDelete`` operations."""
    reporter = reporter or Reporter.silent()
    if not root.is_dir():
        raise NotFoundError(f"'{root}' does not exist!")
    ensure_trash_file(trash_file, reporter)
    names = load_trash_names(trash_file)
    report = find_trash(root, names, reporter=reporter, sort=sort)

    if report.count == 0:
        reporter.info("No trash files found! Congrats!")
        return report
    if not delete:
        reporter.info("To automatically delete these files, run the 'TrashDelete' option")
        return report

    suffix = "" if report.count == 1 else "s"
    reporter.info(f"Found {report.count:,} item{suffix} to delete. Deleting...")
    delete_trash(report, reporter)
    return report
