"""Streaming content digests for manifest entries."""

from __future__ import annotations

import hashlib
from pathlib import Path

from .errors import ConfigError, IoError

DEFAULT_ALGORITHM = "sha256"
DEFAULT_CHUNK_SIZE = 1024 * 1024

# sha1 is the 160-bit digest older manifests were written with; never a default.
ALGORITHMS = {
    "sha256": "SHA256",
    "sha1": "SHA1",
}


def normalize_algorithm(name: str) -> str:
    key = str(name).strip().lower().replace("-", "")
    if key not in ALGORITHMS:
        raise ConfigError(
            f"Unsupported hash algorithm '{name}'. Use one of: {', '.join(sorted(ALGORITHMS))}."
        )
    return key


def algorithm_label(name: str) -> str:
    return ALGORITHMS[normalize_algorithm(name)]


def algorithm_from_label(label: str) -> str:
    for name, known in ALGORITHMS.items():
        if known == label.strip().upper():
            return name
    raise ConfigError(f"Unknown digest column label: {label!r}")


def hash_file(
    path: Path,
    algorithm: str = DEFAULT_ALGORITHM,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> str:
    """Return the lowercase hex digest of ``path``, read in fixed-size chunks."""
    if chunk_size < 1:
        raise ConfigError("chunk_size must be >= 1.")
    h = hashlib.new(normalize_algorithm(algorithm))
    try:
        with Path(path).open("rb") as f:
            for chunk in iter(lambda: f.read(chunk_size), b""):
                h.update(chunk)
    except OSError as exc:
        raise IoError(f"Unable to hash '{path}': {exc}") from exc
    return h.hexdigest()
