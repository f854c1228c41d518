"""Manifest data model and the ``VERSION-*.txt`` text codec.

Format::

    ; MVT version 1.0.0
    ; Generated on: 20260102030405.1234
    ; Command line: mvt Generate -d /data -t X --hash
    ; Username: alice
    ; Filename|SHA256
    sub/a.txt|<hexdigest>

Without hashing the column header is ``; Filename`` and data lines carry the
path only. Paths are percent-escaped for ``%``, ``|``, LF and CR, so a raw
``|`` on a data line is always the field separator; a leading ``;`` becomes
``%3B`` so it is not read back as a comment. Only empty lines are skipped, so
a path made of spaces still round-trips. File names that are not valid UTF-8
are written and read with ``surrogateescape``, keeping their bytes intact.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Mapping, TextIO

from . import TOOL_NAME
from .errors import ConfigError, FormatError, IoError, NotFoundError
from .hashing import ALGORITHMS, algorithm_from_label, algorithm_label
from .paths import MANIFEST_MARKER
from .reporting import Reporter

COMMENT = ";"
FIELD_SEP = "|"
VERSION_PREFIX = f"{TOOL_NAME} version "
GENERATED_PREFIX = "Generated on: "
COMMAND_PREFIX = "Command line: "
USERNAME_PREFIX = "Username: "
COLUMN_HEADER = "Filename"

_ESCAPES = {"%": "%25", "|": "%7C", "\n": "%0A", "\r": "%0D"}
_UNESCAPE_RE = re.compile(r"%(25|7C|0A|0D|3B)", re.IGNORECASE)
_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")
_DIGEST_LENGTHS = {64: "sha256", 40: "sha1"}
_FILE_ERRORS = "surrogateescape"


def escape_path(path: str) -> str:
    text = "".join(_ESCAPES.get(ch, ch) for ch in path)
    if text.startswith(COMMENT):
        text = "%3B" + text[len(COMMENT) :]
    return text


def unescape_path(text: str) -> str:
    return _UNESCAPE_RE.sub(lambda m: chr(int(m.group(1), 16)), text)


@dataclass(frozen=True)
class ManifestEntry:
    relative_path: str
    digest: str | None = None


@dataclass(frozen=True)
class ManifestHeader:
    tool_version: str
    generated_at_utc: str
    command_line: str
    username: str
    has_hashes: bool
    algorithm: str | None = None


@dataclass(frozen=True)
class Manifest:
    header: ManifestHeader
    entries: tuple[ManifestEntry, ...]
    source: Path | None = None
    _digests: dict[str, str | None] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        digests: dict[str, str | None] = {}
        for entry in self.entries:
            if entry.relative_path in digests:
                raise FormatError(f"Duplicate manifest entry: {entry.relative_path!r}")
            if (entry.digest is not None) != self.header.has_hashes:
                raise FormatError(
                    "Manifest mixes hashed and unhashed entries "
                    f"(first offender: {entry.relative_path!r})."
                )
            digests[entry.relative_path] = entry.digest
        object.__setattr__(self, "entries", tuple(self.entries))
        object.__setattr__(self, "_digests", digests)

    @property
    def has_hashes(self) -> bool:
        return self.header.has_hashes

    @property
    def digests(self) -> Mapping[str, str | None]:
        return self._digests

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key: object) -> bool:
        return key in self._digests


def encode_header(header: ManifestHeader) -> list[str]:
    column = COLUMN_HEADER
    if header.has_hashes:
        column = f"{COLUMN_HEADER}{FIELD_SEP}{algorithm_label(header.algorithm or 'sha256')}"
    return [
        f"{COMMENT} {VERSION_PREFIX}{header.tool_version}",
        f"{COMMENT} {GENERATED_PREFIX}{header.generated_at_utc}",
        f"{COMMENT} {COMMAND_PREFIX}{_one_line(header.command_line)}",
        f"{COMMENT} {USERNAME_PREFIX}{_one_line(header.username)}",
        f"{COMMENT} {column}",
    ]


def encode_entry(entry: ManifestEntry) -> str:
    if entry.digest is None:
        return escape_path(entry.relative_path)
    return f"{escape_path(entry.relative_path)}{FIELD_SEP}{entry.digest}"


def encode_manifest(manifest: Manifest) -> str:
    lines = encode_header(manifest.header)
    lines.extend(encode_entry(e) for e in manifest.entries)
    return "\n".join(lines) + "\n"


def _one_line(value: str) -> str:
    return " ".join(str(value).splitlines())


class ManifestWriter:
    """Streams a manifest to disk: header on enter, one line per entry."""

    def __init__(self, path: Path, header: ManifestHeader) -> None:
        self.path = path
        self.header = header
        self.entries: list[ManifestEntry] = []
        self._fh: TextIO | None = None

    def __enter__(self) -> "ManifestWriter":
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = self.path.open("w", encoding="utf-8", errors=_FILE_ERRORS, newline="\n")
            for line in encode_header(self.header):
                self._fh.write(line + "\n")
        except (OSError, UnicodeError) as exc:
            raise IoError(f"Unable to write manifest '{self.path}': {exc}") from exc
        return self

    def write_entry(self, entry: ManifestEntry) -> None:
        if self._fh is None:
            raise RuntimeError("ManifestWriter used outside of a 'with' block.")
        if (entry.digest is not None) != self.header.has_hashes:
            raise FormatError(f"Entry hash mode disagrees with manifest header: {entry.relative_path!r}")
        try:
            self._fh.write(encode_entry(entry) + "\n")
        except (OSError, UnicodeError) as exc:
            raise IoError(f"Unable to write manifest '{self.path}': {exc}") from exc
        self.entries.append(entry)

    def __exit__(self, *exc_info: object) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def to_manifest(self) -> Manifest:
        return Manifest(header=self.header, entries=tuple(self.entries), source=self.path)


def parse_manifest(lines: Iterable[str], *, source: Path | None = None) -> Manifest:
    where = str(source) if source is not None else "<manifest>"
    meta = {"version": "", "generated": "", "command": "", "username": ""}
    recognized = False
    column_label: str | None = None
    entries: list[ManifestEntry] = []
    seen: set[str] = set()

    for lineno, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n")
        if line.startswith(COMMENT):
            body = line[len(COMMENT) :].strip()
            if body.startswith(VERSION_PREFIX):
                recognized = True
                meta["version"] = body[len(VERSION_PREFIX) :].strip()
            elif body.startswith(GENERATED_PREFIX):
                meta["generated"] = body[len(GENERATED_PREFIX) :].strip()
            elif body.startswith(COMMAND_PREFIX):
                meta["command"] = body[len(COMMAND_PREFIX) :].strip()
            elif body.startswith(USERNAME_PREFIX):
                meta["username"] = body[len(USERNAME_PREFIX) :].strip()
            elif body == COLUMN_HEADER:
                column_label = ""
            elif body.startswith(COLUMN_HEADER + FIELD_SEP):
                column_label = body[len(COLUMN_HEADER) + 1 :].strip()
            continue
        if not line:
            continue

        fields = line.split(FIELD_SEP)
        if len(fields) > 2:
            raise FormatError(f"{where}:{lineno}: expected 'path' or 'path|digest', got {line!r}")
        path = unescape_path(fields[0])
        digest: str | None = None
        if len(fields) == 2:
            digest = fields[1].strip()
            if not digest or not _HEX_RE.match(digest):
                raise FormatError(f"{where}:{lineno}: invalid digest {fields[1]!r}")
            # hexdigest() output is lowercase
            digest = digest.lower()
        if not path:
            raise FormatError(f"{where}:{lineno}: empty path")
        if path in seen:
            raise FormatError(f"{where}:{lineno}: duplicate manifest entry {path!r}")
        seen.add(path)
        entries.append(ManifestEntry(relative_path=path, digest=digest))

    if not recognized:
        raise FormatError(f"{where}: not a {TOOL_NAME} manifest (no '{VERSION_PREFIX.strip()}' header)")

    if entries:
        has_hashes = entries[0].digest is not None
    else:
        has_hashes = bool(column_label)

    algorithm: str | None = None
    if has_hashes:
        algorithm = _resolve_algorithm(column_label, entries, where)

    header = ManifestHeader(
        tool_version=meta["version"],
        generated_at_utc=meta["generated"],
        command_line=meta["command"],
        username=meta["username"],
        has_hashes=has_hashes,
        algorithm=algorithm,
    )
    return Manifest(header=header, entries=tuple(entries), source=source)


def _resolve_algorithm(label: str | None, entries: list[ManifestEntry], where: str) -> str:
    if label:
        try:
            return algorithm_from_label(label)
        except ConfigError as exc:
            raise FormatError(f"{where}: {exc}") from exc
    if entries:
        length = len(entries[0].digest or "")
        if length in _DIGEST_LENGTHS:
            return _DIGEST_LENGTHS[length]
    raise FormatError(f"{where}: cannot determine digest algorithm (known: {sorted(ALGORITHMS)})")


def _open_lines(path: Path) -> Iterator[str]:
    try:
        with path.open("r", encoding="utf-8-sig", errors=_FILE_ERRORS) as f:
            yield from f
    except FileNotFoundError as exc:
        raise NotFoundError(f"Manifest not found: {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise IoError(f"Unable to read manifest '{path}': {exc}") from exc


def load_manifest(path: Path) -> Manifest:
    return parse_manifest(_open_lines(path), source=path)


def is_manifest(path: Path) -> bool:
    """True when the leading comment block names the tool."""
    try:
        for line in _open_lines(path):
            if not line.startswith(COMMENT):
                return False
            if line[len(COMMENT) :].strip().startswith(VERSION_PREFIX):
                return True
    except (IoError, NotFoundError):
        return False
    return False


def find_manifest(
    root: Path,
    *,
    marker: str = MANIFEST_MARKER,
    reporter: Reporter | None = None,
) -> Path:
    """Return the first recognized ``{marker}*.txt`` directly inside ``root``."""
    reporter = reporter or Reporter.silent()
    try:
        candidates = sorted(
            p
            for p in root.iterdir()
            if p.name.startswith(marker) and p.name.endswith(".txt") and p.is_file()
        )
    except OSError as exc:
        raise IoError(f"Unable to list '{root}': {exc}") from exc
    if not candidates:
        raise NotFoundError(
            f"'{root}' does not contain any validation files ({marker}*.txt). "
            "Did you forget to generate one?"
        )
    for candidate in candidates:
        reporter.debug(f"Examining validation file '{candidate}'...")
        if is_manifest(candidate):
            return candidate
    raise FormatError(f"Did not find a validation file generated by {TOOL_NAME} in '{root}'.")
