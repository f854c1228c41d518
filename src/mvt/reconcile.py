"""Compare a recorded manifest against a live directory tree."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from .errors import FormatError, IoError, NotFoundError
from .hashing import DEFAULT_CHUNK_SIZE, hash_file
from .manifest import Manifest, find_manifest, load_manifest
from .paths import MANIFEST_MARKER
from .reporting import Reporter
from .walker import TreeEntry, walk_files

# Recorded as the actual digest of a listed file that could not be read.
UNREADABLE = "<unreadable>"


@dataclass(frozen=True)
class HashMismatch:
    expected: str
    actual: str


@dataclass(frozen=True)
class ReconciliationResult:
    missing_from_tree: frozenset[str]
    unexpected_in_tree: frozenset[str]
    hash_mismatches: Mapping[str, HashMismatch] = field(
        default_factory=lambda: MappingProxyType({})
    )
    checked_files: int = 0

    @property
    def ok(self) -> bool:
        return not (self.missing_from_tree or self.unexpected_in_tree or self.hash_mismatches)

    def case_only_differences(self) -> list[tuple[str, str]]:
        """Pairs ``(manifest_key, tree_key)`` that differ only by letter case.

        Informational only: both sides stay in their missing/unexpected sets.
        """
        by_fold: dict[str, list[str]] = {}
        for key in sorted(self.missing_from_tree):
            by_fold.setdefault(key.casefold(), []).append(key)
        pairs: list[tuple[str, str]] = []
        for key in sorted(self.unexpected_in_tree):
            candidates = by_fold.get(key.casefold())
            if candidates:
                pairs.append((candidates.pop(0), key))
        return pairs

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "checked_files": self.checked_files,
            "missing_from_tree": sorted(self.missing_from_tree),
            "unexpected_in_tree": sorted(self.unexpected_in_tree),
            "hash_mismatches": {
                key: {"expected": m.expected, "actual": m.actual}
                for key, m in sorted(self.hash_mismatches.items())
            },
            "case_only_differences": [list(p) for p in self.case_only_differences()],
        }


def check_hash_mode(manifest: Manifest, hash_enabled: bool) -> None:
    where = f"'{manifest.source}'" if manifest.source is not None else "Manifest"
    if hash_enabled and not manifest.has_hashes:
        raise FormatError(
            f"{where} was not generated with hashes! "
            "Regenerate the file with hashes or remove --hash from command line."
        )
    if not hash_enabled and manifest.has_hashes:
        raise FormatError(
            f"{where} was generated with hashes. Add --hash to validate it."
        )


def reconcile(
    root: Path | str,
    manifest: Manifest,
    hash_enabled: bool,
    *,
    entries: Iterable[TreeEntry] | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    marker: str = MANIFEST_MARKER,
    sort: bool = False,
    reporter: Reporter | None = None,
) -> ReconciliationResult:
    """Classify every live file and every manifest entry.

    ``entries`` replaces the tree walk when given; the result does not depend
    on the order in which entries arrive.
    """
    reporter = reporter or Reporter.silent()
    check_hash_mode(manifest, hash_enabled)
    if entries is None:
        root = Path(root)
        if not root.is_dir():
            raise NotFoundError(f"'{root}' does not exist!")

        def on_error(path: str, exc: OSError) -> None:
            reporter.warn(f"Skipping '{path}': {exc}", path=path)

        exclude = [manifest.source] if manifest.source is not None else []
        entries = walk_files(root, marker=marker, exclude=exclude, sort=sort, on_error=on_error)

    digests = manifest.digests
    algorithm = manifest.header.algorithm or "sha256"
    remaining = set(digests)
    unexpected: set[str] = set()
    mismatches: dict[str, HashMismatch] = {}
    checked = 0

    for entry in entries:
        checked += 1
        key = entry.relative_path
        reporter.debug(f"Validating '{entry.absolute_path}'")
        if key not in digests:
            unexpected.add(key)
            continue
        remaining.discard(key)
        if not hash_enabled:
            continue
        expected = digests[key] or ""
        try:
            actual = hash_file(Path(entry.absolute_path), algorithm, chunk_size)
        except IoError as exc:
            reporter.warn(str(exc), path=key)
            actual = UNREADABLE
        if actual != expected:
            mismatches[key] = HashMismatch(expected=expected, actual=actual)

    return ReconciliationResult(
        missing_from_tree=frozenset(remaining),
        unexpected_in_tree=frozenset(unexpected),
        hash_mismatches=MappingProxyType(mismatches),
        checked_files=checked,
    )


def render_result(result: ReconciliationResult, reporter: Reporter) -> None:
    for key in sorted(result.unexpected_in_tree):
        reporter.info(f"UNEXPECTED {key}", kind="unexpected", path=key)
    for key, mismatch in sorted(result.hash_mismatches.items()):
        reporter.info(
            f"MISMATCH {key}: expected={mismatch.expected} actual={mismatch.actual}",
            kind="mismatch",
            path=key,
        )
    for key in sorted(result.missing_from_tree):
        reporter.info(f"MISSING {key}", kind="missing", path=key)
    for old, new in result.case_only_differences():
        reporter.info(f"CASE_ONLY {old} -> {new}", kind="case_only", path=new)

    if result.ok:
        reporter.info(f"Validation successful! No discrepancies detected ({result.checked_files:,} files).")
    else:
        reporter.fatal(
            "Validation failed! "
            f"missing={len(result.missing_from_tree)} "
            f"unexpected={len(result.unexpected_in_tree)} "
            f"mismatched={len(result.hash_mismatches)}"
        )


def validate(
    root: Path | str,
    *,
    manifest_path: Path | str | None = None,
    hash_enabled: bool = False,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    marker: str = MANIFEST_MARKER,
    sort: bool = False,
    reporter: Reporter | None = None,
) -> ReconciliationResult:
    """Locate and load a manifest for ``root``, reconcile, and report.

    Discrepancies are returned in the result, never raised.
    """
    reporter = reporter or Reporter.silent()
    root = Path(root)
    if not root.is_dir():
        raise NotFoundError(f"'{root}' does not exist!")

    if manifest_path is not None:
        path = Path(manifest_path)
    else:
        path = find_manifest(root, marker=marker, reporter=reporter)
    reporter.info(f"Found validation file '{path}'. Reading...")
    manifest = load_manifest(path)
    check_hash_mode(manifest, hash_enabled)

    reporter.info(f"Found {len(manifest):,} files in validation file.")
    reporter.info(f"Iterating '{root}'...")
    result = reconcile(
        root,
        manifest,
        hash_enabled,
        chunk_size=chunk_size,
        marker=marker,
        sort=sort,
        reporter=reporter,
    )
    render_result(result, reporter)
    return result
