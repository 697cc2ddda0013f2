"""Reference catalog loader.

- Purpose: parse the packaged YAML tables (options, camera categories, rule tables) into a read-only catalog.
- Assumptions: the document follows ``data/catalog.yaml``; cross references are checked once at load time.
- Side effects: reads one file from disk; ``get_default_catalog`` memoises the shipped catalog.
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from cineprompt.config_service.config_service import ConfigError, load_structured_file
from cineprompt.conflicts.models import ConflictRules, ZoomRange
from cineprompt.path_utils import get_catalog_path

from .models import (
    AspectRatioOption,
    CameraOption,
    ColorPalette,
    Director,
    DofOption,
    LocationPreset,
    ModelProfile,
    ShotOption,
    StyleOption,
)

logger = logging.getLogger(__name__)

NO_CATEGORY = "none"
PROMPT_STYLES = {"tags", "natural"}

REQUIRED_TABLES = (
    "cameras",
    "camera_categories",
    "category_rules",
    "lenses",
    "shots",
    "dof_options",
    "aspect_ratios",
    "atmospheres",
    "visual_presets",
    "lighting",
    "color_palettes",
    "directors",
    "locations",
    "gaze",
    "pose",
    "position",
    "models",
)

_EMPTY_RULES = ConflictRules()
_default_catalog: Optional["ReferenceCatalog"] = None


def _freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return MappingProxyType({key: _freeze(child) for key, child in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(child) for child in value)
    return value


def _require_mapping(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key, {})
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"Catalog table '{key}' must be a mapping")
    return value


def _require_list(data: Dict[str, Any], key: str) -> List[Any]:
    value = data.get(key, [])
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"Catalog table '{key}' must be a list")
    return value


def _entry_text(entry: Dict[str, Any], key: str, table: str, required: bool = True) -> Optional[str]:
    if not isinstance(entry, dict):
        raise ConfigError(f"{table} entry {entry!r} must be a mapping")
    value = entry.get(key)
    if value is None:
        if required:
            raise ConfigError(f"{table} entry {entry!r} is missing '{key}'")
        return None
    return str(value)


def _string_list(value: Any, context: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"{context} must be a list")
    return [str(item) for item in value]


def _check_known(values: List[str], known: Mapping[str, Any], context: str, kind: str) -> None:
    for value in values:
        if value not in known:
            raise ConfigError(f"{context} references unknown {kind} '{value}'")


class ReferenceCatalog:
    """Immutable lookup tables for every selection axis plus the conflict rule tables."""

    def __init__(self, data: Dict[str, Any], source: str = "<memory>") -> None:
        if not isinstance(data, dict):
            raise ConfigError("Catalog root must be a mapping")
        missing = [table for table in REQUIRED_TABLES if table not in data]
        if missing:
            raise ConfigError(f"Catalog {source} is missing table(s): {', '.join(missing)}")
        self.source = source

        self.cameras = self._parse_cameras(data)
        self.atmospheres = self._parse_styles(data, "atmospheres")
        self.visual_presets = self._parse_styles(data, "visual_presets")
        self.lighting = self._parse_styles(data, "lighting")
        self.dof_options = self._parse_dof(data)
        self.aspect_ratios = self._parse_aspect_ratios(data)
        self.shots = self._parse_shots(data)
        self.lenses = self._parse_lenses(data)

        self._category_cameras, self._camera_category = self._parse_camera_categories(data)
        self._category_rules = self._parse_category_rules(data)
        self.fixed_lenses: Mapping[str, str] = MappingProxyType(
            {str(k): str(v) for k, v in _require_mapping(data, "camera_fixed_lens").items()}
        )
        self.zoom_ranges = self._parse_zoom_ranges(data)
        self.camera_aspect_ratios: Mapping[str, Tuple[str, ...]] = _freeze(
            {str(k): _string_list(v, f"camera_aspect_ratios.{k}") for k, v in _require_mapping(data, "camera_aspect_ratios").items()}
        )
        self.camera_location_conflicts: Mapping[str, Tuple[str, ...]] = _freeze(
            {str(k): _string_list(v, f"camera_location_conflicts.{k}") for k, v in _require_mapping(data, "camera_location_conflicts").items()}
        )

        self.color_palettes = self._parse_palettes(data)
        self.directors = self._parse_directors(data)
        self.locations = self._parse_locations(data)

        self.gaze: Mapping[str, str] = _freeze(_require_mapping(data, "gaze"))
        self.pose: Mapping[str, str] = _freeze(_require_mapping(data, "pose"))
        self.safe_pose: Mapping[str, str] = _freeze(_require_mapping(data, "safe_pose"))
        self.position: Mapping[str, str] = _freeze(_require_mapping(data, "position"))
        self.break_position: Mapping[str, str] = _freeze(_require_mapping(data, "break_position"))
        self.break_models: Tuple[str, ...] = tuple(_string_list(data.get("break_models"), "break_models"))
        self.location_prepositions: Tuple[str, ...] = tuple(
            _string_list(data.get("location_prepositions"), "location_prepositions")
        )
        self.models = self._parse_models(data)

        self.rules: Mapping[str, Any] = _freeze(_require_mapping(data, "rules"))
        self.style_categories: Tuple[str, ...] = tuple(_string_list(data.get("style_categories"), "style_categories"))
        self.implied_styles: Mapping[str, Mapping[str, Tuple[str, ...]]] = _freeze(_require_mapping(data, "implied_styles"))
        self._check_rule_references()

    # -- parsing -----------------------------------------------------------

    def _parse_cameras(self, data: Dict[str, Any]) -> Mapping[str, CameraOption]:
        cameras: Dict[str, CameraOption] = {}
        for entry in _require_list(data, "cameras"):
            if not isinstance(entry, dict):
                raise ConfigError(f"cameras entry {entry!r} must be a mapping")
            label = _entry_text(entry, "label", "cameras")
            cameras[label] = CameraOption(
                label=label,
                keywords=_entry_text(entry, "keywords", "cameras"),
                group=_entry_text(entry, "group", "cameras", required=False) or "",
            )
        return MappingProxyType(cameras)

    def _parse_styles(self, data: Dict[str, Any], table: str) -> Mapping[str, StyleOption]:
        options: Dict[str, StyleOption] = {}
        for key, entry in _require_mapping(data, table).items():
            if not isinstance(entry, dict):
                raise ConfigError(f"{table}.{key} must be a mapping")
            options[str(key)] = StyleOption(
                key=str(key),
                name=_entry_text(entry, "name", table),
                keywords=_entry_text(entry, "keywords", table),
                safe_keywords=_entry_text(entry, "safe_keywords", table, required=False),
                family=_entry_text(entry, "family", table, required=False),
            )
        return MappingProxyType(options)

    def _parse_dof(self, data: Dict[str, Any]) -> Mapping[str, DofOption]:
        options: Dict[str, DofOption] = {}
        for entry in _require_list(data, "dof_options"):
            value = _entry_text(entry, "value", "dof_options")
            options[value] = DofOption(
                value=value,
                label=_entry_text(entry, "label", "dof_options"),
                keywords=_entry_text(entry, "keywords", "dof_options", required=False) or "",
            )
        return MappingProxyType(options)

    def _parse_aspect_ratios(self, data: Dict[str, Any]) -> Mapping[str, AspectRatioOption]:
        options: Dict[str, AspectRatioOption] = {}
        for entry in _require_list(data, "aspect_ratios"):
            value = _entry_text(entry, "value", "aspect_ratios")
            options[value] = AspectRatioOption(
                value=value,
                label=_entry_text(entry, "label", "aspect_ratios"),
                ratio=_entry_text(entry, "ratio", "aspect_ratios", required=False) or "",
            )
        return MappingProxyType(options)

    def _parse_shots(self, data: Dict[str, Any]) -> Mapping[str, ShotOption]:
        shots: Dict[str, ShotOption] = {}
        for entry in _require_list(data, "shots"):
            label = _entry_text(entry, "label", "shots")
            shots[label] = ShotOption(
                label=label,
                keywords=_entry_text(entry, "keywords", "shots"),
                grammar=_entry_text(entry, "grammar", "shots", required=False) or "",
            )
        return MappingProxyType(shots)

    def _parse_lenses(self, data: Dict[str, Any]) -> Mapping[str, str]:
        lenses: Dict[str, str] = {}
        for entry in _require_list(data, "lenses"):
            lenses[_entry_text(entry, "label", "lenses")] = _entry_text(entry, "category", "lenses")
        return MappingProxyType(lenses)

    def _parse_camera_categories(
        self, data: Dict[str, Any]
    ) -> Tuple[Mapping[str, Tuple[str, ...]], Mapping[str, str]]:
        by_category: Dict[str, List[str]] = {}
        by_camera: Dict[str, str] = {}
        for category, cameras in _require_mapping(data, "camera_categories").items():
            members = _string_list(cameras, f"camera_categories.{category}")
            by_category[str(category)] = members
            for camera in members:
                if camera in by_camera:
                    raise ConfigError(f"Camera '{camera}' is mapped to both '{by_camera[camera]}' and '{category}'")
                by_camera[camera] = str(category)
        return _freeze(by_category), MappingProxyType(by_camera)

    def _parse_category_rules(self, data: Dict[str, Any]) -> Mapping[str, ConflictRules]:
        rules: Dict[str, ConflictRules] = {}
        for category, entry in _require_mapping(data, "category_rules").items():
            entry = entry or {}
            if not isinstance(entry, dict):
                raise ConfigError(f"category_rules.{category} must be a mapping")
            context = f"category_rules.{category}"
            record = ConflictRules(
                blocked_atmospheres=_string_list(entry.get("blocked_atmospheres"), context),
                blocked_presets=_string_list(entry.get("blocked_presets"), context),
                blocked_dof=_string_list(entry.get("blocked_dof"), context),
                fixed_lens=_entry_text(entry, "fixed_lens", context, required=False),
                warning_message=_entry_text(entry, "warning_message", context, required=False),
            )
            _check_known(record.blocked_atmospheres, self.atmospheres, context, "atmosphere")
            _check_known(record.blocked_presets, self.visual_presets, context, "visual preset")
            _check_known(record.blocked_dof, self.dof_options, context, "depth of field")
            rules[str(category)] = record
        for category in self._category_cameras:
            if category not in rules:
                raise ConfigError(f"Camera category '{category}' has no entry in category_rules")
        return MappingProxyType(rules)

    def _parse_zoom_ranges(self, data: Dict[str, Any]) -> Mapping[str, ZoomRange]:
        zooms: Dict[str, ZoomRange] = {}
        for camera, entry in _require_mapping(data, "camera_zoom_range").items():
            if not isinstance(entry, dict) or "range" not in entry:
                raise ConfigError(f"camera_zoom_range.{camera} must define 'range'")
            zooms[str(camera)] = ZoomRange(
                range_label=str(entry["range"]),
                options=_string_list(entry.get("options"), f"camera_zoom_range.{camera}"),
            )
        return MappingProxyType(zooms)

    def _parse_palettes(self, data: Dict[str, Any]) -> Mapping[str, ColorPalette]:
        palettes: Dict[str, ColorPalette] = {}
        for key, entry in _require_mapping(data, "color_palettes").items():
            palettes[str(key)] = ColorPalette(
                key=str(key),
                name=_entry_text(entry, "name", "color_palettes"),
                colors=_string_list(entry.get("colors"), f"color_palettes.{key}"),
            )
        return MappingProxyType(palettes)

    def _parse_directors(self, data: Dict[str, Any]) -> Mapping[str, Director]:
        groups = {
            str(name): _string_list(members, f"camera_groups.{name}")
            for name, members in _require_mapping(data, "camera_groups").items()
        }
        directors: Dict[str, Director] = {}
        for entry in _require_list(data, "directors"):
            name = _entry_text(entry, "name", "directors")
            context = f"directors.{name}"
            blocked_cameras: List[str] = []
            for group in _string_list(entry.get("blocked_camera_groups"), context):
                if group not in groups:
                    raise ConfigError(f"{context} references unknown camera group '{group}'")
                blocked_cameras.extend(groups[group])
            blocked_cameras.extend(_string_list(entry.get("blocked_cameras"), context))
            keywords = _entry_text(entry, "keywords", "directors")
            anonymous = _entry_text(entry, "anonymous_keywords", "directors", required=False)
            if anonymous is None:
                prefix = f"{name} style, "
                anonymous = keywords[len(prefix):] if keywords.startswith(prefix) else keywords
            director = Director(
                name=name,
                keywords=keywords,
                anonymous_keywords=anonymous,
                description=_entry_text(entry, "description", "directors", required=False) or "",
                safe_keywords=_entry_text(entry, "safe_keywords", "directors", required=False),
                blocked_atmospheres=_string_list(entry.get("blocked_atmospheres"), context),
                blocked_presets=_string_list(entry.get("blocked_presets"), context),
                blocked_cameras=list(dict.fromkeys(blocked_cameras)),
            )
            _check_known(director.blocked_atmospheres, self.atmospheres, context, "atmosphere")
            _check_known(director.blocked_presets, self.visual_presets, context, "visual preset")
            directors[name] = director
        return MappingProxyType(directors)

    def _parse_locations(self, data: Dict[str, Any]) -> Mapping[str, LocationPreset]:
        locations: Dict[str, LocationPreset] = {}
        for entry in _require_list(data, "locations"):
            label = _entry_text(entry, "label", "locations")
            context = f"locations.{label}"
            preset = LocationPreset(
                label=label,
                keywords=_entry_text(entry, "keywords", "locations"),
                category=_entry_text(entry, "category", "locations"),
                setting=_entry_text(entry, "setting", "locations", required=False) or "either",
                scale=_entry_text(entry, "scale", "locations", required=False) or "medium",
                era=_entry_text(entry, "era", "locations", required=False) or "any",
                safe_keywords=_entry_text(entry, "safe_keywords", "locations", required=False),
                blocked_atmospheres=_string_list(entry.get("blocked_atmospheres"), context),
            )
            _check_known(preset.blocked_atmospheres, self.atmospheres, context, "atmosphere")
            locations[label] = preset
        return MappingProxyType(locations)

    def _parse_models(self, data: Dict[str, Any]) -> Mapping[str, ModelProfile]:
        models: Dict[str, ModelProfile] = {}
        for model_id, entry in _require_mapping(data, "models").items():
            style = _entry_text(entry, "prompt_style", f"models.{model_id}")
            if style not in PROMPT_STYLES:
                raise ConfigError(f"models.{model_id}.prompt_style must be one of {sorted(PROMPT_STYLES)}")
            models[str(model_id)] = ModelProfile(
                id=str(model_id),
                name=_entry_text(entry, "name", f"models.{model_id}"),
                prompt_style=style,
                supports_negative_prompt=bool(entry.get("supports_negative_prompt", False)),
                strict_content_policy=bool(entry.get("strict_content_policy", False)),
            )
        return MappingProxyType(models)

    def _check_rule_references(self) -> None:
        _check_known(list(self.rule("atmosphere_blocks_categories")), self.atmospheres, "rules.atmosphere_blocks_categories", "atmosphere")
        _check_known(list(self.rule("preset_blocks_categories")), self.visual_presets, "rules.preset_blocks_categories", "visual preset")
        _check_known(list(self.rule("atmosphere_blocks_dof")), self.atmospheres, "rules.atmosphere_blocks_dof", "atmosphere")
        _check_known(list(self.rule("atmosphere_lighting_redundancy")), self.atmospheres, "rules.atmosphere_lighting_redundancy", "atmosphere")
        _check_known(list(self.rule("lighting_location_conflicts")), self.lighting, "rules.lighting_location_conflicts", "lighting")
        for shot in list(self.rule("shot_lens_conflicts")) + list(self.rule("shot_dof_conflicts")):
            if shot not in self.shots:
                raise ConfigError(f"rules reference unknown shot '{shot}'")

    # -- lookups -----------------------------------------------------------

    def camera_category(self, camera: Optional[str]) -> str:
        """Map a camera label to its conflict category; unknown or empty is ``none``."""

        if not camera:
            return NO_CATEGORY
        return self._camera_category.get(camera, NO_CATEGORY)

    def category_rules(self, category: Optional[str]) -> ConflictRules:
        return self._category_rules.get(category or NO_CATEGORY, _EMPTY_RULES)

    def cameras_in_category(self, category: str) -> Tuple[str, ...]:
        return self._category_cameras.get(category, ())

    def lens_category(self, lens: Optional[str]) -> Optional[str]:
        if not lens:
            return None
        return self.lenses.get(lens)

    def match_location(self, text: Optional[str]) -> Optional[LocationPreset]:
        """Find the preset whose label equals ``text`` or whose keywords contain it."""

        trimmed = (text or "").strip()
        if not trimmed:
            return None
        for preset in self.locations.values():
            if preset.label == trimmed or trimmed in preset.keywords:
                return preset
        return None

    def rule(self, name: str) -> Mapping[str, Any]:
        """Return a secondary rule table by name; missing tables are empty."""

        table = self.rules.get(name)
        if table is None:
            return MappingProxyType({})
        return table

    def rule_list(self, name: str) -> Tuple[str, ...]:
        table = self.rules.get(name)
        if table is None:
            return ()
        return tuple(table)


def load_catalog(path: Union[str, Path, None] = None) -> ReferenceCatalog:
    """Load and validate a catalog document (JSON or YAML)."""

    catalog_path = Path(path) if path else get_catalog_path()
    if not catalog_path.exists():
        raise ConfigError(f"Catalog file not found: {catalog_path}")
    catalog = ReferenceCatalog(load_structured_file(str(catalog_path)), source=str(catalog_path))
    logger.debug(
        "Loaded catalog from %s (%d cameras, %d directors, %d models)",
        catalog_path,
        len(catalog.cameras),
        len(catalog.directors),
        len(catalog.models),
    )
    return catalog


def get_default_catalog() -> ReferenceCatalog:
    global _default_catalog
    if _default_catalog is None:
        _default_catalog = load_catalog()
    return _default_catalog


def reset_default_catalog() -> None:
    global _default_catalog
    _default_catalog = None
