from __future__ import annotations

import hashlib
import io
import tempfile
import unittest
from pathlib import Path

from mvt.errors import ConfigError, NotFoundError
from mvt.generate import generate
from mvt.io_utils import RunIdentity
from mvt.manifest import load_manifest
from mvt.reporting import Reporter

IDENTITY = RunIdentity(tool_version="9.9.9", command="mvt Generate -d x -t T", username="tester")


def _make_tree(root: Path) -> dict[str, bytes]:
    files = {"a.txt": b"alpha", "b.txt": b"bravo!", "c/d.txt": b"delta delta"}
    for rel, data in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    return files


class GenerateTest(unittest.TestCase):
    def test_hashed_manifest_written_to_default_location(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            files = _make_tree(root)
            out = io.StringIO()
            result = generate(root, "FOR498-20-2B", True, identity=IDENTITY, reporter=Reporter(stream=out))

            self.assertEqual(result.output_path.name, "VERSION-FOR498-20-2B.txt")
            self.assertEqual(result.output_path.parent, Path(tmp).absolute())
            self.assertEqual(result.file_count, 3)
            self.assertEqual(result.total_bytes, sum(len(v) for v in files.values()))
            self.assertIn("Generate took", out.getvalue())

            text = result.output_path.read_text(encoding="utf-8").splitlines()
            self.assertEqual(text[0], "; MVT version 9.9.9")
            self.assertTrue(text[1].startswith("; Generated on: "))
            self.assertEqual(len(text[1]) - len("; Generated on: "), len("yyyyMMddHHmmss.ffff"))
            self.assertEqual(text[2], "; Command line: mvt Generate -d x -t T")
            self.assertEqual(text[3], "; Username: tester")
            self.assertEqual(text[4], "; Filename|SHA256")

            loaded = load_manifest(result.output_path)
            self.assertEqual(loaded.entries, result.manifest.entries)
            for rel, data in files.items():
                self.assertEqual(loaded.digests[rel], hashlib.sha256(data).hexdigest())

    def test_unhashed_manifest(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            _make_tree(root)
            result = generate(root, "T", False, identity=IDENTITY)
            lines = result.output_path.read_text(encoding="utf-8").splitlines()
            self.assertEqual(lines[4], "; Filename")
            self.assertEqual(sorted(lines[5:]), ["a.txt", "b.txt", "c/d.txt"])
            self.assertFalse(result.manifest.has_hashes)

    def test_tag_is_sanitized(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            _make_tree(root)
            result = generate(root, "A/B:C", False, identity=IDENTITY)
            self.assertEqual(result.output_path.name, "VERSION-A_B_C.txt")

    def test_missing_tag_fails_before_writing(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            _make_tree(root)
            with self.assertRaises(ConfigError):
                generate(root, None, True, identity=IDENTITY)
            self.assertEqual(list(root.glob("VERSION-*")), [])

    def test_missing_root(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(NotFoundError):
                generate(Path(tmp) / "nope", "T", False, identity=IDENTITY)

    def test_bad_algorithm_fails_before_writing(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            _make_tree(root)
            with self.assertRaises(ConfigError):
                generate(root, "T", True, algorithm="md5", identity=IDENTITY)
            self.assertEqual(list(root.glob("VERSION-*")), [])

    def test_explicit_output_creates_directories(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp) / "tree"
            root.mkdir()
            _make_tree(root)
            out = Path(tmp) / "reports" / "deep" / "tree-manifest.txt"
            result = generate(root, None, True, output=out, identity=IDENTITY)
            self.assertTrue(out.exists())
            self.assertEqual(result.file_count, 3)

    def test_explicit_output_inside_root_is_not_listed(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            _make_tree(root)
            result = generate(root, None, False, output=root / "listing.txt", identity=IDENTITY)
            keys = {e.relative_path for e in result.manifest.entries}
            self.assertEqual(keys, {"a.txt", "b.txt", "c/d.txt"})

    def test_existing_manifests_are_skipped(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            _make_tree(root)
            generate(root, "first", False, identity=IDENTITY)
            second = generate(root, "second", False, identity=IDENTITY)
            self.assertEqual(second.file_count, 3)

    def test_sorted_generation_is_byte_stable(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            _make_tree(root)
            (root / "c" / "0.txt").write_bytes(b"0")
            first = generate(root, "one", True, sort=True, identity=IDENTITY)
            second = generate(root, "two", True, sort=True, identity=IDENTITY)

            def body(path: Path) -> list[str]:
                return [ln for ln in path.read_text(encoding="utf-8").splitlines() if not ln.startswith(";")]

            self.assertEqual(body(first.output_path), body(second.output_path))
            self.assertEqual(
                [ln.split("|")[0] for ln in body(first.output_path)],
                ["a.txt", "b.txt", "c/0.txt", "c/d.txt"],
            )


if __name__ == "__main__":
    unittest.main()
