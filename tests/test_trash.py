from __future__ import annotations

import io
import os
import tempfile
import unittest
from pathlib import Path

from mvt.errors import NotFoundError
from mvt.reporting import Reporter
from mvt.trash import (
    DEFAULT_TRASH_NAMES,
    ensure_trash_file,
    find_trash,
    load_trash_names,
    scan_trash,
)


def _make_junk_tree(root: Path) -> None:
    (root / "sub" / ".Trashes").mkdir(parents=True)
    (root / "sub" / ".Trashes" / ".DS_Store").write_bytes(b"x")
    (root / ".DS_Store").write_bytes(b"x")
    (root / "sub" / "Desktop.INI").write_bytes(b"x")
    (root / "keep.txt").write_bytes(b"keep")
    (root / "sub" / "notes.ds_store.txt").write_bytes(b"keep")


class TrashListTest(unittest.TestCase):
    def test_default_file_is_bootstrapped(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "cfg" / "Trash.txt"
            out = io.StringIO()
            ensure_trash_file(path, Reporter(stream=out))
            self.assertEqual(path.read_text(encoding="utf-8").splitlines(), DEFAULT_TRASH_NAMES)
            self.assertIn("WARN:", out.getvalue())

    def test_existing_file_is_left_alone(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "Trash.txt"
            path.write_text("Thumbs.db\n", encoding="utf-8")
            ensure_trash_file(path)
            self.assertEqual(path.read_text(encoding="utf-8"), "Thumbs.db\n")

    def test_names_are_casefolded_and_comments_ignored(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "Trash.txt"
            path.write_text("# junk\n\n  Thumbs.db  \n.DS_Store\n", encoding="utf-8")
            self.assertEqual(load_trash_names(path), frozenset({"thumbs.db", ".ds_store"}))

    def test_missing_list(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(NotFoundError):
                load_trash_names(Path(tmp) / "Trash.txt")


class FindTrashTest(unittest.TestCase):
    def test_matches_basenames_case_insensitively(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            _make_junk_tree(root)
            names = frozenset(n.casefold() for n in DEFAULT_TRASH_NAMES)
            report = find_trash(root, names)
            base = Path(os.path.abspath(root))
            self.assertEqual(set(report.files), {base / ".DS_Store", base / "sub" / "Desktop.INI"})
            self.assertEqual(set(report.dirs), {base / "sub" / ".Trashes"})
            self.assertEqual(report.count, 3)

    def test_missing_root(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(NotFoundError):
                find_trash(Path(tmp) / "nope", frozenset())


class ScanTrashTest(unittest.TestCase):
    def test_scan_without_delete_keeps_everything(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp) / "tree"
            root.mkdir()
            _make_junk_tree(root)
            out = io.StringIO()
            report = scan_trash(root, Path(tmp) / "Trash.txt", reporter=Reporter(stream=out))
            self.assertEqual(report.count, 3)
            self.assertTrue((root / ".DS_Store").exists())
            self.assertIn("TrashDelete", out.getvalue())

    def test_scan_with_delete_removes_trash_only(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp) / "tree"
            root.mkdir()
            _make_junk_tree(root)
            scan_trash(root, Path(tmp) / "Trash.txt", delete=True)
            self.assertFalse((root / ".DS_Store").exists())
            self.assertFalse((root / "sub" / "Desktop.INI").exists())
            self.assertFalse((root / "sub" / ".Trashes").exists())
            self.assertTrue((root / "keep.txt").exists())
            self.assertTrue((root / "sub" / "notes.ds_store.txt").exists())

    def test_clean_tree(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp) / "tree"
            root.mkdir()
            (root / "keep.txt").write_bytes(b"keep")
            out = io.StringIO()
            report = scan_trash(root, Path(tmp) / "Trash.txt", delete=True, reporter=Reporter(stream=out))
            self.assertEqual(report.count, 0)
            self.assertIn("No trash files found!", out.getvalue())


if __name__ == "__main__":
    unittest.main()
