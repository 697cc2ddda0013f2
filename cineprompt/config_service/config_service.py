#!/usr/bin/env python3
"""Settings service for cineprompt.

Loads a single JSON/YAML settings file, layers environment and command-line
overrides on top of the defaults, and validates the result against a schema.
Invalid values are replaced with their defaults and reported as warnings.
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cineprompt.path_utils import get_settings_path

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    pass


CURRENT_VERSION = 1
ENV_PREFIX = "CINEPROMPT_"
SETTINGS_SCHEMA_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "settings_schema.yaml")

# Path variables read by path_utils share the prefix but are not settings.
RESERVED_ENV_KEYS = {"CINEPROMPT_CONFIG_DIR", "CINEPROMPT_SETTINGS", "CINEPROMPT_CATALOG"}


DEFAULT_SETTINGS: Dict[str, Any] = {
    "version": CURRENT_VERSION,
    "catalog": {"path": ""},
    "generator": {"default_model": "chatgpt"},
    "limits": {
        "subject": 2000,
        "location": 500,
        "character": 500,
        "custom_camera": 200,
        "custom_lens": 100,
        "custom_shot": 200,
        "max_characters": 15,
        "max_custom_colors": 10,
    },
    "stacking": {
        "total_threshold": 7,
        "category_limits": {
            "realism": 2,
            "film": 2,
            "color": 1,
            "contrast": 1,
            "era": 1,
            "medium": 1,
            "mood": 2,
        },
    },
    "session": {
        "defaults": {
            "lens": "50mm",
            "shot": "Medium Shot (MS)",
            "depth_of_field": "normal",
            "aspect_ratio": "none",
            "creativity": 50,
            "variation": 50,
            "uniqueness": 50,
            "creative_controls_enabled": False,
            "custom_color_slots": 6,
        }
    },
    "logging": {"level": "WARNING"},
}


@dataclass
class LoadedConfig:
    data: Dict[str, Any]
    warnings: List[str]


def default_settings() -> Dict[str, Any]:
    return deepcopy(DEFAULT_SETTINGS)


def coerce_value(value: Any) -> Any:
    if isinstance(value, str):
        lower = value.strip().lower()
        if lower.isdigit():
            return int(lower)
        if lower in {"true", "yes", "on"}:
            return True
        if lower in {"false", "no", "off"}:
            return False
    return value


def deep_get(data: Dict[str, Any], path: str) -> Any:
    current: Any = data
    for key in path.split("."):
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    return current


def deep_set(data: Dict[str, Any], path: str, value: Any) -> None:
    current = data
    parts = path.split(".")
    for key in parts[:-1]:
        if key not in current or not isinstance(current[key], dict):
            current[key] = {}
        current = current[key]
    current[parts[-1]] = value


def deep_delete(data: Dict[str, Any], path: str) -> None:
    parts = path.split(".")
    parent = deep_get(data, ".".join(parts[:-1])) if len(parts) > 1 else data
    if isinstance(parent, dict):
        parent.pop(parts[-1], None)


def deep_merge(base: Dict[str, Any], incoming: Dict[str, Any]) -> Dict[str, Any]:
    merged = deepcopy(base)
    for key, value in incoming.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


def load_structured_file(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    if not text.strip():
        return {}
    try:
        loaded = json.loads(text)
    except json.JSONDecodeError:
        try:
            loaded = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse {path}: {exc}") from exc
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path} must contain a mapping/object.")
    return loaded


def load_settings_schema(path: str = SETTINGS_SCHEMA_PATH) -> Dict[str, Any]:
    if not os.path.exists(path):
        raise ConfigError(f"Settings schema file not found at {path}")
    return load_structured_file(path)


def validate_simple_type(value: Any, expected: Any) -> bool:
    type_map = {
        "string": str,
        "boolean": bool,
        "number": (int, float),
        "integer": int,
        "object": dict,
        "array": list,
    }
    if isinstance(expected, list):
        return any(validate_simple_type(value, t) for t in expected)
    py_type = type_map.get(expected)
    if py_type is None:
        return True
    if expected in {"integer", "number"} and isinstance(value, bool):
        return False
    return isinstance(value, py_type)


def validate_schema_fragment(
    value: Any,
    schema: Dict[str, Any],
    path: str,
    errors: List[str],
    bad_paths: Optional[List[str]] = None,
) -> None:
    expected_type = schema.get("type")
    enum = schema.get("enum")

    def fail(message: str) -> None:
        errors.append(message)
        if bad_paths is not None:
            bad_paths.append(path)

    if enum is not None and value not in enum:
        fail(f"{path or 'value'} must be one of {enum}; received {value!r}")
        return

    if expected_type == "array":
        if not isinstance(value, list):
            fail(f"{path or 'value'} must be an array/list")
            return
        item_schema = schema.get("items")
        if item_schema:
            for idx, child in enumerate(value):
                item_errors: List[str] = []
                validate_schema_fragment(child, item_schema, f"{path}[{idx}]", item_errors)
                if item_errors:
                    fail(item_errors[0])
                    return
        return

    if expected_type == "object":
        if not isinstance(value, dict):
            fail(f"{path or 'value'} must be an object/mapping")
            return
        properties: Dict[str, Any] = schema.get("properties", {})
        additional = schema.get("additionalProperties", True)
        for key, child in value.items():
            child_path = f"{path}.{key}" if path else key
            if key in properties:
                validate_schema_fragment(child, properties[key], child_path, errors, bad_paths)
            elif additional is False:
                errors.append(f"Unexpected field '{key}' in {path or 'root'}")
                if bad_paths is not None:
                    bad_paths.append(child_path)
            elif isinstance(additional, dict):
                validate_schema_fragment(child, additional, child_path, errors, bad_paths)
        return

    if expected_type and not validate_simple_type(value, expected_type):
        fail(f"{path or 'value'} expected type {expected_type}; received {type(value).__name__}")
        return

    minimum = schema.get("minimum")
    if minimum is not None and isinstance(value, (int, float)) and value < minimum:
        fail(f"{path or 'value'} must be >= {minimum}; received {value!r}")
        return
    maximum = schema.get("maximum")
    if maximum is not None and isinstance(value, (int, float)) and value > maximum:
        fail(f"{path or 'value'} must be <= {maximum}; received {value!r}")


def validate_against_schema(data: Dict[str, Any], schema: Dict[str, Any]) -> List[str]:
    errors: List[str] = []
    validate_schema_fragment(data, schema, path="", errors=errors)
    return errors


def validate(config: Dict[str, Any], schema: Dict[str, Any], warnings: List[str]) -> Dict[str, Any]:
    """Replace every invalid value with its default, recording a warning for each."""

    errors: List[str] = []
    bad_paths: List[str] = []
    validate_schema_fragment(config, schema, "", errors, bad_paths)
    for message, path in zip(errors, bad_paths):
        default = deep_get(DEFAULT_SETTINGS, path) if path else None
        if default is None:
            deep_delete(config, path)
            note = f"{message}; field dropped."
        else:
            deep_set(config, path, deepcopy(default))
            note = f"{message}; replaced with default {default!r}."
        warnings.append(note)
        logger.warning("Invalid setting: %s", note)
    return config


def apply_overrides(config: Dict[str, Any], overrides: List[str]) -> None:
    for override in overrides:
        if "=" not in override:
            raise ConfigError(f"Override '{override}' must use key=value format")
        key, raw_value = override.split("=", 1)
        deep_set(config, key.strip(), coerce_value(raw_value.strip()))


def apply_env_overrides(config: Dict[str, Any], prefix: str, warnings: List[str]) -> None:
    if not prefix:
        return
    for key, value in os.environ.items():
        if not key.startswith(prefix) or key in RESERVED_ENV_KEYS:
            continue
        path = key[len(prefix) :].lower().replace("__", ".")
        warnings.append(f"Environment override {key} applied to {path}")
        deep_set(config, path, coerce_value(value))


def load_settings(
    path: Optional[str] = None,
    env_prefix: str = ENV_PREFIX,
    overrides: Optional[List[str]] = None,
    schema_path: str = SETTINGS_SCHEMA_PATH,
) -> LoadedConfig:
    """Load effective settings: defaults, then the file, env, and ``--set`` overrides."""

    warnings: List[str] = []
    settings_path = path or str(get_settings_path())
    data = default_settings()
    if os.path.exists(settings_path):
        data = deep_merge(data, load_structured_file(settings_path))
        logger.debug("Loaded settings from %s", settings_path)
    elif path:
        raise ConfigError(f"Settings file not found: {path}")

    apply_env_overrides(data, env_prefix, warnings)
    if overrides:
        apply_overrides(data, overrides)
    validated = validate(data, load_settings_schema(schema_path), warnings)
    return LoadedConfig(validated, warnings)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="cineprompt settings service")
    parser.add_argument("--settings", default=None, help="Path to the JSON/YAML settings file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    show_parser = subparsers.add_parser("show", help="Print the effective settings")
    show_parser.add_argument("--format", choices=["json", "yaml"], default="json")
    show_parser.add_argument("--env-prefix", default=ENV_PREFIX, help="Environment variable prefix for overrides")
    show_parser.add_argument("--set", dest="overrides", action="append", default=[], help="Override key=value pairs")

    validate_parser = subparsers.add_parser("validate", help="Check a settings file against the schema")
    validate_parser.add_argument("--schema", default=SETTINGS_SCHEMA_PATH, help="Path to the settings schema")
    return parser


def command_show(args: argparse.Namespace) -> int:
    loaded = load_settings(args.settings, args.env_prefix, args.overrides)
    if args.format == "yaml":
        sys.stdout.write(yaml.safe_dump(loaded.data, sort_keys=False))
    else:
        json.dump(loaded.data, sys.stdout, indent=2)
        sys.stdout.write("\n")
    for note in loaded.warnings:
        print(f"[warn] {note}", file=sys.stderr)
    return 0


def command_validate(args: argparse.Namespace) -> int:
    settings_path = args.settings or str(get_settings_path())
    if not os.path.exists(settings_path):
        raise ConfigError(f"Settings file not found: {settings_path}")
    data = deep_merge(default_settings(), load_structured_file(settings_path))
    errors = validate_against_schema(data, load_settings_schema(args.schema))
    if errors:
        for error in errors:
            print(f"[error] {error}", file=sys.stderr)
        return 1
    print(json.dumps({"valid": True, "path": str(Path(settings_path))}, indent=2))
    return 0


def main(argv: List[str]) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "show":
            return command_show(args)
        if args.command == "validate":
            return command_validate(args)
    except ConfigError as exc:
        print(f"[error] {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
