"""CLI entrypoint for Prompt Builder.

- Purpose: load a selection snapshot, apply ``--set`` changes through the mutators, and print the prompt or conflict report.
- Assumptions: snapshot files are JSON or YAML mappings of SelectionSnapshot fields.
- Side effects: none beyond stdout/stderr; nothing is persisted or copied to a clipboard.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Iterable

from cineprompt.config_service.config_service import ConfigError, deep_get, load_settings
from cineprompt.conflicts.models import SelectionSnapshot

from .services import PromptBuilderService, load_snapshot

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate a model-specific image prompt from a selection snapshot")
    parser.add_argument("--snapshot", type=Path, help="Path to a SelectionSnapshot JSON/YAML file")
    parser.add_argument("--model", help="Target model id (defaults to generator.default_model)")
    parser.add_argument(
        "--set",
        dest="changes",
        action="append",
        default=[],
        metavar="FIELD=VALUE",
        help="Apply a selection change through the mutators; repeatable and applied in order",
    )
    output = parser.add_mutually_exclusive_group()
    output.add_argument("--conflicts", action="store_true", help="Print the conflict report as JSON")
    output.add_argument("--json", action="store_true", help="Print model, prompt, and conflicts as JSON")
    parser.add_argument("--settings", help="Path to a JSON/YAML settings file")
    parser.add_argument("--log-level", choices=LOG_LEVELS, help="Logging level (defaults to logging.level setting)")
    return parser


def _apply_changes(session, changes: Iterable[str]) -> None:
    for change in changes:
        if "=" not in change:
            raise ValueError(f"Change '{change}' must use field=value format")
        name, value = change.split("=", 1)
        if not session.apply(name.strip(), value.strip()):
            logger.warning("Selection change %s was not applied (locked or blocked)", change)


def main(argv: Iterable[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        loaded = load_settings(args.settings)
        logging.basicConfig(
            level=args.log_level or deep_get(loaded.data, "logging.level") or "WARNING",
            format="%(levelname)s %(name)s: %(message)s",
        )
        service = PromptBuilderService(loaded.data)
        snapshot = load_snapshot(args.snapshot) if args.snapshot else SelectionSnapshot()
        session = service.new_session(snapshot, args.model)
        _apply_changes(session, args.changes)

        if args.conflicts:
            print(json.dumps(session.conflicts().to_dict(), indent=2))
        elif args.json:
            print(json.dumps(service.render(session.snapshot(), session.model), indent=2))
        else:
            print(session.prompt())
    except (ValueError, ConfigError) as exc:
        raise SystemExit(str(exc)) from exc


if __name__ == "__main__":
    main()
