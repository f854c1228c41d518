"""Command line entry point: Generate, Validate, Trash, TrashDelete."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any

from . import __version__
from .config import default_config_path, load_config, parse_override
from .errors import EXIT_OK, ConfigError, DiscrepancyFound, MvtError
from .generate import generate
from .io_utils import capture_identity, write_json
from .reconcile import validate
from .reporting import Reporter
from .trash import default_trash_path, scan_trash

OPERATIONS = ("Generate", "Validate", "Trash", "TrashDelete")

EPILOG = """\
Operations:
  Generate     Write VERSION-{tag}.txt listing every file (with --hash, a SHA256 each)
  Validate     Check that the directory matches its VERSION-*.txt file
  Trash        List junk files/folders named in Trash.txt
  TrashDelete  Remove the junk files/folders found by Trash

Exit codes: 0 ok, 1 discrepancies found, 2 bad arguments/config,
3 not found, 4 bad manifest format, 5 I/O error.
"""


def _operation(value: str) -> str:
    for name in OPERATIONS:
        if name.lower() == value.strip().lower():
            return name
    raise argparse.ArgumentTypeError(f"invalid operation {value!r} (choose from {', '.join(OPERATIONS)})")


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="mvt",
        description="Media Validation Tool: generate and validate directory manifests.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("operation", type=_operation, help="One of: " + ", ".join(OPERATIONS))
    p.add_argument(
        "-d",
        "--dir",
        dest="dir_name",
        default=None,
        help="Directory to process recursively. Required for every operation.",
    )
    p.add_argument(
        "-t",
        "--tag",
        default=None,
        help=(
            "Class-revision info used in the manifest name VERSION-{tag}.txt. "
            "Illegal filename characters are replaced with _. Required with Generate "
            "unless --manifest is given."
        ),
    )
    p.add_argument(
        "-m",
        "--manifest",
        default=None,
        help="Explicit manifest path (output for Generate, input for Validate).",
    )
    p.add_argument(
        "--hash",
        action="store_true",
        help="Generate/validate a content hash for each file. Default: file list only.",
    )
    p.add_argument(
        "--algorithm",
        default=None,
        help="Digest algorithm when --hash is set: sha256 (default) or sha1 (legacy).",
    )
    p.add_argument(
        "--sorted",
        dest="sort_entries",
        action="store_true",
        default=None,
        help="Visit entries in sorted order so manifests are byte-stable across runs.",
    )
    p.add_argument("--debug", action="store_true", help="Show additional information while processing.")
    p.add_argument("--config", default=None, help="YAML config path (default: ~/.config/mvt/config.yaml).")
    p.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override a config value by dot key, e.g. hash.chunk_size=65536. Repeatable.",
    )
    p.add_argument("--trash_file", default=None, help="Denylist file for Trash/TrashDelete.")
    p.add_argument("--report_json", default=None, help="Also write a JSON summary of the run here.")
    p.add_argument("--events_jsonl", default=None, help="Append structured JSONL events here.")
    p.add_argument("--version", action="version", version=f"mvt {__version__}")
    return p


def _resolve_config(args: argparse.Namespace) -> dict[str, Any]:
    overrides = dict(parse_override(item) for item in args.overrides)
    if args.config:
        config_path: Path | None = Path(args.config)
    else:
        candidate = default_config_path()
        config_path = candidate if candidate.exists() else None
    return load_config(config_path, overrides=overrides)


def _require_dir(args: argparse.Namespace) -> Path:
    if not args.dir_name:
        raise ConfigError(f"-d is required when using '{args.operation}' operation!")
    return Path(args.dir_name)


def _run(args: argparse.Namespace, cfg: dict[str, Any], reporter: Reporter, argv: list[str] | None) -> int:
    root = _require_dir(args)
    sort = bool(cfg["manifest"]["sort_entries"]) if args.sort_entries is None else True
    marker = str(cfg["manifest"]["marker"])
    chunk_size = int(cfg["hash"]["chunk_size"])
    report_path = Path(args.report_json) if args.report_json else None

    if args.operation == "Generate":
        result = generate(
            root,
            args.tag,
            bool(args.hash),
            output=args.manifest,
            algorithm=args.algorithm or str(cfg["hash"]["algorithm"]),
            chunk_size=chunk_size,
            marker=marker,
            sort=sort,
            reporter=reporter,
            identity=capture_identity(None if argv is None else ["mvt", *argv]),
        )
        if report_path is not None:
            write_json(
                report_path,
                {
                    "operation": "Generate",
                    "output_path": str(result.output_path),
                    "file_count": result.file_count,
                    "total_bytes": result.total_bytes,
                    "elapsed_sec": result.elapsed_sec,
                    "hashed": result.manifest.has_hashes,
                },
            )
        return EXIT_OK

    if args.operation == "Validate":
        outcome = validate(
            root,
            manifest_path=args.manifest,
            hash_enabled=bool(args.hash),
            chunk_size=chunk_size,
            marker=marker,
            sort=sort,
            reporter=reporter,
        )
        if report_path is not None:
            write_json(report_path, {"operation": "Validate", **outcome.to_dict()})
        if not outcome.ok:
            raise DiscrepancyFound(outcome)
        return EXIT_OK

    trash_ref = args.trash_file or cfg["trash"]["file"]
    trash_file = Path(trash_ref).expanduser() if trash_ref else default_trash_path()
    report = scan_trash(
        root,
        trash_file,
        delete=args.operation == "TrashDelete",
        reporter=reporter,
        sort=sort,
    )
    if report_path is not None:
        write_json(
            report_path,
            {
                "operation": args.operation,
                "files": [str(p) for p in report.files],
                "dirs": [str(p) for p in report.dirs],
                "deleted": args.operation == "TrashDelete",
            },
        )
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    reporter = Reporter(debug=bool(args.debug))
    try:
        cfg = _resolve_config(args)
        events_ref = args.events_jsonl or cfg["reporting"]["events_jsonl"]
        reporter = Reporter(
            debug=bool(args.debug),
            events_path=Path(events_ref).expanduser() if events_ref else None,
        )
        reporter.header(__version__)
        return _run(args, cfg, reporter, argv)
    except DiscrepancyFound as exc:
        return exc.exit_code
    except MvtError as exc:
        reporter.fatal(f"{exc} Exiting")
        return exc.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
