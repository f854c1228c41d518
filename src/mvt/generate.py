"""Build a manifest from a live directory tree, streaming it to disk."""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from pathlib import Path

from .errors import ConfigError, IoError, NotFoundError
from .hashing import DEFAULT_ALGORITHM, DEFAULT_CHUNK_SIZE, algorithm_label, hash_file, normalize_algorithm
from .io_utils import RunIdentity, capture_identity, manifest_timestamp
from .manifest import Manifest, ManifestEntry, ManifestHeader, ManifestWriter
from .paths import MANIFEST_MARKER, default_manifest_name
from .reporting import Reporter
from .walker import walk_files


@dataclass(frozen=True)
class GenerateResult:
    manifest: Manifest
    output_path: Path
    file_count: int
    total_bytes: int
    elapsed_sec: float

    @property
    def mb_per_sec(self) -> float:
        if self.elapsed_sec <= 0:
            return 0.0
        return (self.total_bytes / 1024 / 1024) / self.elapsed_sec


def resolve_output_path(root: Path, tag: str | None, output: Path | str | None) -> Path:
    if output is not None:
        return Path(os.path.abspath(os.fspath(output)))
    if tag is None or not str(tag).strip():
        raise ConfigError("-t/--tag is required when using 'Generate' without an explicit manifest path.")
    return Path(os.path.abspath(root)) / default_manifest_name(str(tag).strip())


def generate(
    root: Path | str,
    tag: str | None = None,
    hash_enabled: bool = False,
    *,
    output: Path | str | None = None,
    algorithm: str = DEFAULT_ALGORITHM,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    marker: str = MANIFEST_MARKER,
    sort: bool = False,
    reporter: Reporter | None = None,
    identity: RunIdentity | None = None,
) -> GenerateResult:
    """Walk ``root`` and write ``VERSION-{tag}.txt`` (or ``output``).

    All argument checks happen before the output file is opened, so a failed
    pre-check never leaves a partial manifest behind.
    """
    reporter = reporter or Reporter.silent()
    root = Path(root)
    if not root.is_dir():
        raise NotFoundError(f"'{root}' does not exist!")
    out_path = resolve_output_path(root, tag, output)
    algo = normalize_algorithm(algorithm) if hash_enabled else None
    if chunk_size < 1:
        raise ConfigError("chunk_size must be >= 1.")
    identity = identity or capture_identity()

    header = ManifestHeader(
        tool_version=identity.tool_version,
        generated_at_utc=manifest_timestamp(),
        command_line=identity.command,
        username=identity.username,
        has_hashes=bool(hash_enabled),
        algorithm=algo,
    )

    reporter.info(f"Validation data will be written to '{out_path}'")
    if algo is not None:
        reporter.info(f" --hash option present. {algorithm_label(algo)} will be generated for each file found.")
    reporter.info(f"Iterating '{root}'...")

    def on_error(path: str, exc: OSError) -> None:
        reporter.warn(f"Skipping '{path}': {exc}", path=path)

    file_count = 0
    total_bytes = 0
    start = time.perf_counter()
    with ManifestWriter(out_path, header) as writer:
        for entry in walk_files(root, marker=marker, exclude=[out_path], sort=sort, on_error=on_error):
            digest = None
            if algo is not None:
                try:
                    digest = hash_file(Path(entry.absolute_path), algo, chunk_size)
                except IoError as exc:
                    reporter.warn(f"Skipping: {exc}", path=entry.relative_path)
                    continue
            writer.write_entry(ManifestEntry(relative_path=entry.relative_path, digest=digest))
            file_count += 1
            total_bytes += entry.size_bytes
            reporter.debug(f"'{entry.relative_path}'" + (f"|{digest}" if digest else ""))
    elapsed = time.perf_counter() - start

    result = GenerateResult(
        manifest=writer.to_manifest(),
        output_path=out_path,
        file_count=file_count,
        total_bytes=total_bytes,
        elapsed_sec=elapsed,
    )
    reporter.info("")
    reporter.info(
        f"Generate took {elapsed:.5f} seconds ({result.mb_per_sec:.3f} MB/sec across "
        f"{file_count:,} files). Results saved to '{out_path}'",
        file_count=file_count,
        total_bytes=total_bytes,
        elapsed_sec=round(elapsed, 6),
    )
    return result
