"""Constraint resolver.

Every blocked set is derived by one function per axis. Each returns
``(blocked_value, blocking_choice)`` pairs so the same rules feed the UI's
disabled options, the active-conflict messages, and the mutators' auto-clear.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from cineprompt.catalog.catalog import ReferenceCatalog, get_default_catalog
from cineprompt.catalog.models import Director, LocationPreset
from cineprompt.config_service.config_service import deep_get

from .models import ConflictResult, SelectionSnapshot
from .stacking import analyze_style_stacking


Blocks = List[Tuple[str, str]]

AXES = ("atmosphere", "preset", "dof", "camera", "lighting", "lens", "shot", "aspect_ratio", "location")

# Snapshot attribute holding the current value of each axis.
AXIS_FIELDS: Dict[str, str] = {
    "atmosphere": "atmosphere",
    "preset": "visual_preset",
    "dof": "depth_of_field",
    "camera": "camera",
    "lighting": "lighting",
    "lens": "lens",
    "shot": "shot",
    "aspect_ratio": "aspect_ratio",
    "location": "location",
}


def _director(snapshot: SelectionSnapshot, catalog: ReferenceCatalog) -> Optional[Director]:
    if not snapshot.director:
        return None
    return catalog.directors.get(snapshot.director)


def _location(snapshot: SelectionSnapshot, catalog: ReferenceCatalog) -> Optional[LocationPreset]:
    return catalog.match_location(snapshot.location)


def _atmosphere_name(catalog: ReferenceCatalog, key: Optional[str]) -> str:
    option = catalog.atmospheres.get(key or "")
    return option.name if option else str(key)


def _blocked_atmospheres(snapshot: SelectionSnapshot, catalog: ReferenceCatalog) -> Blocks:
    blocks: Blocks = []
    if snapshot.camera:
        rules = catalog.category_rules(catalog.camera_category(snapshot.camera))
        blocks.extend((atmosphere, snapshot.camera) for atmosphere in rules.blocked_atmospheres)
    director = _director(snapshot, catalog)
    if director:
        blocks.extend((atmosphere, director.name) for atmosphere in director.blocked_atmospheres)
    location = _location(snapshot, catalog)
    if location:
        blocks.extend((atmosphere, location.label) for atmosphere in location.blocked_atmospheres)
        for atmosphere, eras in catalog.rule("atmosphere_era_conflicts").items():
            if location.era in eras:
                blocks.append((atmosphere, location.label))
    if snapshot.shot:
        for atmosphere, shots in catalog.rule("atmosphere_shot_conflicts").items():
            if snapshot.shot in shots:
                blocks.append((atmosphere, snapshot.shot))
    return blocks


def _blocked_presets(snapshot: SelectionSnapshot, catalog: ReferenceCatalog) -> Blocks:
    blocks: Blocks = []
    if snapshot.camera:
        rules = catalog.category_rules(catalog.camera_category(snapshot.camera))
        blocks.extend((preset, snapshot.camera) for preset in rules.blocked_presets)
    director = _director(snapshot, catalog)
    if director:
        blocks.extend((preset, director.name) for preset in director.blocked_presets)
    return blocks


def _blocked_dof(snapshot: SelectionSnapshot, catalog: ReferenceCatalog) -> Blocks:
    blocks: Blocks = []
    if snapshot.camera:
        rules = catalog.category_rules(catalog.camera_category(snapshot.camera))
        blocks.extend((dof, snapshot.camera) for dof in rules.blocked_dof)
    if snapshot.atmosphere:
        for dof in catalog.rule("atmosphere_blocks_dof").get(snapshot.atmosphere, ()):
            blocks.append((dof, _atmosphere_name(catalog, snapshot.atmosphere)))
    if snapshot.shot:
        blocks.extend((dof, snapshot.shot) for dof in catalog.rule("shot_dof_conflicts").get(snapshot.shot, ()))
    lens_category = catalog.lens_category(snapshot.lens)
    if lens_category:
        blocks.extend(
            (dof, snapshot.lens) for dof in catalog.rule("lens_dof_conflicts").get(lens_category, ())
        )
    return blocks


def _blocked_cameras(snapshot: SelectionSnapshot, catalog: ReferenceCatalog) -> Blocks:
    blocks: Blocks = []
    if snapshot.atmosphere:
        name = _atmosphere_name(catalog, snapshot.atmosphere)
        for category in catalog.rule("atmosphere_blocks_categories").get(snapshot.atmosphere, ()):
            blocks.extend((camera, name) for camera in catalog.cameras_in_category(category))
    if snapshot.visual_preset:
        preset = catalog.visual_presets.get(snapshot.visual_preset)
        name = preset.name if preset else snapshot.visual_preset
        for category in catalog.rule("preset_blocks_categories").get(snapshot.visual_preset, ()):
            blocks.extend((camera, name) for camera in catalog.cameras_in_category(category))
    director = _director(snapshot, catalog)
    if director:
        blocks.extend((camera, director.name) for camera in director.blocked_cameras)
    return blocks


def _blocked_lighting(snapshot: SelectionSnapshot, catalog: ReferenceCatalog) -> Blocks:
    location = _location(snapshot, catalog)
    if not location or location.setting not in {"indoor", "outdoor"}:
        return []
    return [
        (lighting, location.label)
        for lighting, settings in catalog.rule("lighting_location_conflicts").items()
        if location.setting in settings
    ]


def _blocked_lenses(snapshot: SelectionSnapshot, catalog: ReferenceCatalog) -> Blocks:
    blocked_categories: List[Tuple[str, str]] = []
    if snapshot.shot:
        blocked_categories.extend(
            (category, snapshot.shot) for category in catalog.rule("shot_lens_conflicts").get(snapshot.shot, ())
        )
    if snapshot.director:
        blocked_categories.extend(
            (category, snapshot.director)
            for category in catalog.rule("director_blocked_lenses").get(snapshot.director, ())
        )
    blocks: Blocks = []
    for category, source in blocked_categories:
        blocks.extend((lens, source) for lens, lens_category in catalog.lenses.items() if lens_category == category)
    return blocks


def _blocked_shots(snapshot: SelectionSnapshot, catalog: ReferenceCatalog) -> Blocks:
    blocks: Blocks = []
    if snapshot.atmosphere:
        name = _atmosphere_name(catalog, snapshot.atmosphere)
        blocks.extend(
            (shot, name) for shot in catalog.rule("atmosphere_shot_conflicts").get(snapshot.atmosphere, ())
        )
    location = _location(snapshot, catalog)
    if location:
        for shot, scales in catalog.rule("shot_scale_conflicts").items():
            if location.scale in scales:
                blocks.append((shot, location.label))
    lens_category = catalog.lens_category(snapshot.lens)
    if lens_category:
        for shot, categories in catalog.rule("shot_lens_conflicts").items():
            if lens_category in categories:
                blocks.append((shot, snapshot.lens))
    return blocks


def _blocked_aspect_ratios(snapshot: SelectionSnapshot, catalog: ReferenceCatalog) -> Blocks:
    allowed = catalog.camera_aspect_ratios.get(snapshot.camera or "")
    if not allowed:
        return []
    return [(value, snapshot.camera) for value in catalog.aspect_ratios if value != "none" and value not in allowed]


def _blocked_locations(snapshot: SelectionSnapshot, catalog: ReferenceCatalog) -> Blocks:
    blocks: Blocks = []
    subject = (snapshot.subject or "").lower()
    if subject:
        for keyword, categories in catalog.rule("subject_blocked_locations").items():
            if keyword in subject:
                blocks.extend(
                    (preset.label, "the subject")
                    for preset in catalog.locations.values()
                    if preset.category in categories
                )
        if any(marker in subject for marker in catalog.rule_list("high_speed_markers")):
            blocks.extend((label, "a high-speed subject") for label in catalog.rule_list("enclosed_locations"))
    if snapshot.camera:
        conflicts = catalog.camera_location_conflicts.get(catalog.camera_category(snapshot.camera), ())
        blocks.extend(
            (preset.label, snapshot.camera) for preset in catalog.locations.values() if preset.category in conflicts
        )
    return blocks


_AXIS_RULES: Dict[str, Callable[[SelectionSnapshot, ReferenceCatalog], Blocks]] = {
    "atmosphere": _blocked_atmospheres,
    "preset": _blocked_presets,
    "dof": _blocked_dof,
    "camera": _blocked_cameras,
    "lighting": _blocked_lighting,
    "lens": _blocked_lenses,
    "shot": _blocked_shots,
    "aspect_ratio": _blocked_aspect_ratios,
    "location": _blocked_locations,
}


def _unique(blocks: Blocks) -> List[str]:
    return list(dict.fromkeys(value for value, _ in blocks))


def compute_blocked(axis: str, snapshot: SelectionSnapshot, catalog: Optional[ReferenceCatalog] = None) -> List[str]:
    """Return the options of ``axis`` that the rest of ``snapshot`` rules out."""

    rule = _AXIS_RULES.get(axis)
    if rule is None:
        raise ValueError(f"Unknown conflict axis: {axis}")
    return _unique(rule(snapshot, catalog or get_default_catalog()))


def current_value(axis: str, snapshot: SelectionSnapshot) -> Optional[str]:
    value = getattr(snapshot, AXIS_FIELDS[axis])
    if axis == "location":
        return (value or "").strip() or None
    return value or None


def _option_label(axis: str, value: str, catalog: ReferenceCatalog) -> str:
    table: Mapping[str, Any] = {
        "atmosphere": catalog.atmospheres,
        "preset": catalog.visual_presets,
        "lighting": catalog.lighting,
    }.get(axis, {})
    if value in table:
        return table[value].name
    if axis == "dof" and value in catalog.dof_options:
        return catalog.dof_options[value].label
    if axis == "aspect_ratio" and value in catalog.aspect_ratios:
        return catalog.aspect_ratios[value].label
    return value


_AXIS_WORDS = {"dof": "DOF", "aspect_ratio": "aspect ratio"}


def _active_conflicts(snapshot: SelectionSnapshot, catalog: ReferenceCatalog, blocks: Dict[str, Blocks]) -> List[str]:
    messages: List[str] = []
    for axis in AXES:
        value = current_value(axis, snapshot)
        if value is None or (axis == "dof" and value == "normal") or (axis == "aspect_ratio" and value == "none"):
            continue
        if axis == "location":
            preset = catalog.match_location(value)
            value = preset.label if preset else value
        source = next((source for blocked, source in blocks[axis] if blocked == value), None)
        if source is None:
            continue
        word = _AXIS_WORDS.get(axis, axis)
        messages.append(f'"{_option_label(axis, value, catalog)}" {word} conflicts with {source}')
    return messages


def _advisory_warnings(snapshot: SelectionSnapshot, catalog: ReferenceCatalog) -> List[str]:
    warnings: List[str] = []
    atmosphere, lighting = snapshot.atmosphere, snapshot.lighting
    if atmosphere and lighting and lighting in catalog.rule("atmosphere_lighting_redundancy").get(atmosphere, ()):
        text = catalog.rule("redundancy_warnings").get(f"{atmosphere}+{lighting}")
        warnings.append(
            text
            or f"{_atmosphere_name(catalog, atmosphere)} atmosphere already implies {_option_label('lighting', lighting, catalog)}"
        )

    director = snapshot.director
    if director:
        for table, axis in (
            ("director_lighting_redundancy", "lighting"),
            ("director_preset_redundancy", "preset"),
            ("director_atmosphere_redundancy", "atmosphere"),
        ):
            value = current_value(axis, snapshot)
            if value and value in catalog.rule(table).get(director, ()):
                warnings.append(f"{director} style already implies {_option_label(axis, value, catalog)}")
    return warnings


def resolve_conflicts(
    snapshot: SelectionSnapshot,
    catalog: Optional[ReferenceCatalog] = None,
    category_limits: Optional[Mapping[str, int]] = None,
    total_threshold: Optional[int] = None,
) -> ConflictResult:
    """Compute the full conflict report for ``snapshot``. Pure; never mutates its input."""

    catalog = catalog or get_default_catalog()
    blocks = {axis: rule(snapshot, catalog) for axis, rule in _AXIS_RULES.items()}

    camera = snapshot.camera or ""
    rules = catalog.category_rules(catalog.camera_category(camera))
    fixed_lens: Optional[str] = None
    zoom_range = None
    if camera:
        fixed_lens = catalog.fixed_lenses.get(camera)
        if fixed_lens is None:
            zoom_range = catalog.zoom_ranges.get(camera)
            if zoom_range is None:
                fixed_lens = rules.fixed_lens
    allowed = catalog.camera_aspect_ratios.get(camera)
    lens_category = catalog.lens_category(snapshot.lens)

    return ConflictResult(
        blocked_atmospheres=_unique(blocks["atmosphere"]),
        blocked_presets=_unique(blocks["preset"]),
        blocked_dof=_unique(blocks["dof"]),
        blocked_cameras=_unique(blocks["camera"]),
        blocked_lighting=_unique(blocks["lighting"]),
        blocked_lenses=_unique(blocks["lens"]),
        blocked_shots=_unique(blocks["shot"]),
        blocked_aspect_ratios=_unique(blocks["aspect_ratio"]),
        blocked_locations=_unique(blocks["location"]),
        active_conflicts=_active_conflicts(snapshot, catalog, blocks),
        warnings=_advisory_warnings(snapshot, catalog),
        fixed_lens=fixed_lens,
        zoom_range=zoom_range,
        allowed_aspect_ratios=list(allowed) if allowed else None,
        warning_message=rules.warning_message,
        recommended_shots=list(catalog.rule("lens_recommended_shots").get(lens_category or "", ())),
        stacking=analyze_style_stacking(snapshot, catalog, category_limits, total_threshold),
    )


class ConflictResolver:
    """Bind the pure resolver functions to one catalog and one set of settings."""

    def __init__(self, catalog: Optional[ReferenceCatalog] = None, settings: Optional[Dict[str, Any]] = None) -> None:
        self.catalog = catalog or get_default_catalog()
        settings = settings or {}
        self.category_limits = deep_get(settings, "stacking.category_limits")
        self.total_threshold = deep_get(settings, "stacking.total_threshold")

    def resolve(self, snapshot: SelectionSnapshot) -> ConflictResult:
        return resolve_conflicts(snapshot, self.catalog, self.category_limits, self.total_threshold)

    def blocked(self, axis: str, snapshot: SelectionSnapshot) -> List[str]:
        return compute_blocked(axis, snapshot, self.catalog)

    def is_blocked(self, axis: str, value: Optional[str], snapshot: SelectionSnapshot) -> bool:
        return bool(value) and value in self.blocked(axis, snapshot)

    __call__ = resolve
