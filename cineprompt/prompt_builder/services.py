"""Service facade for the Prompt Builder.

- Purpose: bind one catalog and one settings mapping so presentation layers and the CLI share a single entry point.
- Assumptions: settings come from ``config_service.load_settings`` (or its defaults); ``catalog.path`` may point at a custom catalog.
- Side effects: reads the catalog and snapshot files from disk; never writes.
"""

from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Optional, Union

from cineprompt.catalog.catalog import ReferenceCatalog, get_default_catalog, load_catalog
from cineprompt.config_service.config_service import (
    DEFAULT_SETTINGS,
    ConfigError,
    deep_get,
    load_structured_file,
)
from cineprompt.conflicts.engine import ConflictResolver
from cineprompt.conflicts.models import ConflictResult, SelectionSnapshot, snapshot_from_dict
from cineprompt.conflicts.mutators import PromptSession

from .compiler import generate_prompt


def load_snapshot(path: Union[str, Path]) -> SelectionSnapshot:
    """Read a JSON or YAML snapshot file; malformed content raises ``ConfigError`` or ``ValueError``."""

    snapshot_path = Path(path)
    if not snapshot_path.exists():
        raise ConfigError(f"Snapshot file not found: {snapshot_path}")
    return snapshot_from_dict(load_structured_file(str(snapshot_path)))


class PromptBuilderService:
    """Facade over the resolver, the mutators, and the compiler."""

    def __init__(self, settings: Optional[Dict[str, Any]] = None, catalog: Optional[ReferenceCatalog] = None) -> None:
        self.settings = settings if settings is not None else deepcopy(DEFAULT_SETTINGS)
        if catalog is None:
            catalog_path = deep_get(self.settings, "catalog.path")
            catalog = load_catalog(catalog_path) if catalog_path else get_default_catalog()
        self.catalog = catalog
        self.resolver = ConflictResolver(self.catalog, self.settings)

    @property
    def default_model(self) -> str:
        return deep_get(self.settings, "generator.default_model") or "chatgpt"

    def new_session(self, snapshot: Optional[SelectionSnapshot] = None, model: Optional[str] = None) -> PromptSession:
        session = PromptSession(self.catalog, self.settings, snapshot=snapshot)
        session.set_model(model or self.default_model)
        return session

    def conflicts(self, snapshot: SelectionSnapshot) -> ConflictResult:
        return self.resolver.resolve(snapshot)

    def generate(self, snapshot: SelectionSnapshot, model: Optional[str] = None) -> str:
        return generate_prompt(snapshot, model or self.default_model, self.catalog, self.settings)

    def render(self, snapshot: SelectionSnapshot, model: Optional[str] = None) -> Dict[str, Any]:
        """Prompt plus conflict report in one JSON-ready payload."""

        model = model or self.default_model
        return {
            "model": model,
            "prompt": self.generate(snapshot, model),
            "conflicts": self.conflicts(snapshot).to_dict(),
        }
