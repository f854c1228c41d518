"""Configuration loading, validation, and override utilities."""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft7Validator

from .errors import ConfigError, IoError, NotFoundError
from .hashing import DEFAULT_ALGORITHM, DEFAULT_CHUNK_SIZE
from .paths import MANIFEST_MARKER

DEFAULT_CONFIG: dict[str, Any] = {
    "hash": {"algorithm": DEFAULT_ALGORITHM, "chunk_size": DEFAULT_CHUNK_SIZE},
    "manifest": {"marker": MANIFEST_MARKER, "sort_entries": False},
    "trash": {"file": None},
    "reporting": {"events_jsonl": None},
}


def schema_path() -> Path:
    return Path(__file__).resolve().parent / "schemas" / "config.schema.json"


def default_config_path() -> Path:
    return Path.home() / ".config" / "mvt" / "config.yaml"


def load_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise NotFoundError(f"Config file not found: {path}") from exc
    except OSError as exc:
        raise IoError(f"Unable to read config '{path}': {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"YAML file must parse to an object: {path}")
    return data


def load_json(path: Path) -> dict[str, Any]:
    obj = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(obj, dict):
        raise ConfigError(f"JSON file must parse to an object: {path}")
    return obj


def validate_with_schema(instance: dict[str, Any], schema: dict[str, Any], name: str) -> None:
    validator = Draft7Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: list(e.path))
    if not errors:
        return

    lines = []
    for err in errors[:20]:
        location = "/".join(str(x) for x in err.path)
        if location:
            lines.append(f"{name}:{location}: {err.message}")
        else:
            lines.append(f"{name}: {err.message}")
    raise ConfigError("Config validation failed:\n" + "\n".join(lines))


def apply_dot_override(config: dict[str, Any], dot_key: str, value: Any) -> None:
    parts = dot_key.split(".")
    if not dot_key or not all(parts):
        raise ConfigError(f"Invalid override key: {dot_key!r}")
    node: dict[str, Any] = config
    for part in parts[:-1]:
        if part not in node:
            node[part] = {}
        next_node = node[part]
        if not isinstance(next_node, dict):
            raise ConfigError(
                f"Cannot apply override '{dot_key}': '{part}' is not a mapping in config."
            )
        node = next_node
    node[parts[-1]] = value


def apply_overrides(base_config: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base_config)
    for key in sorted(overrides.keys()):
        apply_dot_override(merged, key, overrides[key])
    return merged


def parse_override(text: str) -> tuple[str, Any]:
    """``key=value`` with the value parsed as a YAML scalar."""
    if "=" not in text:
        raise ConfigError(f"Override must look like key=value, got {text!r}")
    key, raw = text.split("=", 1)
    try:
        value = yaml.safe_load(raw) if raw.strip() else None
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid override value for {key!r}: {exc}") from exc
    return key.strip(), value


def deep_merge(base: dict[str, Any], update: dict[str, Any]) -> dict[str, Any]:
    out = copy.deepcopy(base)
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = deep_merge(out[key], value)
        else:
            out[key] = copy.deepcopy(value)
    return out


def load_config(
    config_path: Path | None = None,
    *,
    overrides: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Defaults, then the YAML file (if any), then dot-key overrides; validated."""
    config = copy.deepcopy(DEFAULT_CONFIG)
    name = "<defaults>"
    if config_path is not None:
        config = deep_merge(config, load_yaml(config_path))
        name = str(config_path)
    if overrides:
        config = apply_overrides(config, overrides)
    validate_with_schema(config, load_json(schema_path()), name)
    return config
