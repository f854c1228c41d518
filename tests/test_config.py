from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from mvt.config import (
    DEFAULT_CONFIG,
    apply_overrides,
    load_config,
    load_yaml,
    parse_override,
)
from mvt.errors import ConfigError, NotFoundError


class LoadConfigTest(unittest.TestCase):
    def test_defaults_without_file(self) -> None:
        self.assertEqual(load_config(None), DEFAULT_CONFIG)

    def test_partial_file_is_merged_over_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            path.write_text("hash:\n  algorithm: sha1\nmanifest:\n  sort_entries: true\n", encoding="utf-8")
            cfg = load_config(path)
            self.assertEqual(cfg["hash"]["algorithm"], "sha1")
            self.assertEqual(cfg["hash"]["chunk_size"], DEFAULT_CONFIG["hash"]["chunk_size"])
            self.assertTrue(cfg["manifest"]["sort_entries"])
            self.assertEqual(cfg["manifest"]["marker"], "VERSION-")

    def test_empty_file_means_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            path.write_text("", encoding="utf-8")
            self.assertEqual(load_config(path), DEFAULT_CONFIG)

    def test_schema_violations(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            path.write_text("hash:\n  chunk_size: 0\n", encoding="utf-8")
            with self.assertRaises(ConfigError):
                load_config(path)
            path.write_text("surprise: 1\n", encoding="utf-8")
            with self.assertRaises(ConfigError):
                load_config(path)
            path.write_text("hash:\n  algorithm: md5\n", encoding="utf-8")
            with self.assertRaises(ConfigError):
                load_config(path)

    def test_non_mapping_yaml(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            path.write_text("- a\n- b\n", encoding="utf-8")
            with self.assertRaises(ConfigError):
                load_yaml(path)

    def test_missing_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(NotFoundError):
                load_config(Path(tmp) / "missing.yaml")

    def test_overrides_applied_after_file(self) -> None:
        cfg = load_config(None, overrides={"manifest.sort_entries": True, "hash.chunk_size": 4096})
        self.assertTrue(cfg["manifest"]["sort_entries"])
        self.assertEqual(cfg["hash"]["chunk_size"], 4096)
        self.assertFalse(DEFAULT_CONFIG["manifest"]["sort_entries"])


class OverrideTest(unittest.TestCase):
    def test_parse_override_uses_yaml_scalars(self) -> None:
        self.assertEqual(parse_override("hash.chunk_size=65536"), ("hash.chunk_size", 65536))
        self.assertEqual(parse_override("manifest.sort_entries=true"), ("manifest.sort_entries", True))
        self.assertEqual(parse_override("trash.file="), ("trash.file", None))
        with self.assertRaises(ConfigError):
            parse_override("no-equals-sign")

    def test_dot_key_overrides_are_deterministic(self) -> None:
        base = {"hash": {"algorithm": "sha256"}, "manifest": {"marker": "VERSION-"}}
        merged_a = apply_overrides(base, {"hash.algorithm": "sha1", "manifest.marker": "MANIFEST-"})
        merged_b = apply_overrides(base, {"manifest.marker": "MANIFEST-", "hash.algorithm": "sha1"})
        self.assertEqual(merged_a, merged_b)
        self.assertEqual(base["hash"]["algorithm"], "sha256")

    def test_override_through_scalar_fails(self) -> None:
        with self.assertRaises(ConfigError):
            apply_overrides({"hash": 1}, {"hash.algorithm": "sha1"})


if __name__ == "__main__":
    unittest.main()
