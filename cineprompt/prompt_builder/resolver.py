"""Parameter resolver.

- Purpose: turn a SelectionSnapshot into trimmed, length-capped keyword fragments for one target model.
- Assumptions: unknown keys are not errors; they resolve to ``None`` and drop out of the prompt.
- Side effects: none.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

from cineprompt.catalog.catalog import ReferenceCatalog, get_default_catalog
from cineprompt.config_service.config_service import DEFAULT_SETTINGS
from cineprompt.conflicts.models import SelectionSnapshot

from .models import ResolvedComponents

HEX_COLOR_PATTERN = re.compile(r"^#?[0-9A-Fa-f]{6}$")
CUSTOM_PALETTE = "custom"
DEFAULT_LIMITS: Dict[str, int] = dict(DEFAULT_SETTINGS["limits"])


def truncate(text: Optional[str], max_length: int) -> str:
    trimmed = (text or "").strip()
    return trimmed[:max_length]


# -- color utilities ---------------------------------------------------------


def is_valid_hex_color(color: str) -> bool:
    return bool(HEX_COLOR_PATTERN.match(color.strip()))


def format_hex_color(color: str) -> str:
    trimmed = color.strip()
    return trimmed if trimmed.startswith("#") else f"#{trimmed}"


def filter_valid_colors(colors: Iterable[str], limit: Optional[int] = None) -> List[str]:
    valid = [color for color in colors if is_valid_hex_color(color)]
    return valid[: DEFAULT_LIMITS["max_custom_colors"] if limit is None else limit]


def format_color_palette(colors: Iterable[str]) -> str:
    return ", ".join(format_hex_color(color) for color in colors)


# -- per-axis resolution -----------------------------------------------------


def _characters(snapshot: SelectionSnapshot, limits: Mapping[str, int]) -> List[str]:
    max_characters = limits["max_characters"]
    characters = [truncate(item.content, limits["character"]) for item in snapshot.characters[:max_characters]]
    current = truncate(snapshot.current_character, limits["character"])
    if current and len(characters) < max_characters:
        characters.append(current)
    return characters


def _location(text: str, catalog: ReferenceCatalog, safe_mode: bool, limit: int) -> Optional[str]:
    trimmed = truncate(text, limit)
    if not trimmed:
        return None
    preset = catalog.match_location(trimmed)
    if preset:
        keywords = preset.safe_keywords if safe_mode and preset.safe_keywords else preset.keywords
        return f"in {keywords}"
    lowered = trimmed.lower()
    if any(lowered.startswith(f"{preposition} ") for preposition in catalog.location_prepositions):
        return trimmed
    return f"in {trimmed}"


def _position(value: Optional[str], model: str, catalog: ReferenceCatalog) -> Optional[str]:
    if not value:
        return None
    if model in catalog.break_models and value in catalog.break_position:
        return catalog.break_position[value]
    return catalog.position.get(value)


def _color_palette(snapshot: SelectionSnapshot, catalog: ReferenceCatalog, limit: int) -> Optional[str]:
    selected = snapshot.color_palette
    if not selected:
        return None
    if selected == CUSTOM_PALETTE:
        valid = filter_valid_colors(snapshot.custom_colors, limit)
        return format_color_palette(valid) if valid else None
    palette = catalog.color_palettes.get(selected)
    return ", ".join(palette.colors) if palette else None


def _style(table: Mapping[str, Any], key: Optional[str], safe_mode: bool = False) -> Optional[str]:
    option = table.get(key or "")
    if option is None:
        return None
    if safe_mode and option.safe_keywords:
        return option.safe_keywords
    return option.keywords


def _director(name: Optional[str], catalog: ReferenceCatalog, safe_mode: bool) -> Optional[str]:
    director = catalog.directors.get(name or "")
    if director is None:
        return None
    if safe_mode:
        return director.safe_keywords or director.anonymous_keywords
    return director.keywords


def has_fixed_lens(camera: Optional[str], catalog: ReferenceCatalog) -> bool:
    """Fixed lens first, then zoom range, then the category lens; mirrors the conflict report."""

    if not camera:
        return False
    if camera in catalog.fixed_lenses:
        return True
    if camera in catalog.zoom_ranges:
        return False
    return bool(catalog.category_rules(catalog.camera_category(camera)).fixed_lens)


def _camera(snapshot: SelectionSnapshot, catalog: ReferenceCatalog, limits: Mapping[str, int]) -> Dict[str, Optional[str]]:
    custom_camera = truncate(snapshot.custom_camera, limits["custom_camera"])
    option = catalog.cameras.get(snapshot.camera or "")
    camera = custom_camera or (option.keywords if option else "") or None

    lens: Optional[str] = None
    if not has_fixed_lens(snapshot.camera, catalog):
        lens = truncate(snapshot.custom_lens, limits["custom_lens"]) or snapshot.lens or None
    return {"camera": camera, "lens": lens}


def _shot(snapshot: SelectionSnapshot, catalog: ReferenceCatalog, limit: int) -> Optional[str]:
    custom_shot = truncate(snapshot.custom_shot, limit)
    if custom_shot:
        return custom_shot
    if not snapshot.shot:
        return None
    option = catalog.shots.get(snapshot.shot)
    return option.keywords if option else snapshot.shot


def _dof(snapshot: SelectionSnapshot, catalog: ReferenceCatalog) -> Optional[str]:
    option = catalog.dof_options.get(snapshot.depth_of_field or "")
    if option is None or not option.keywords:
        return None
    rules = catalog.category_rules(catalog.camera_category(snapshot.camera))
    if snapshot.depth_of_field in rules.blocked_dof:
        return None
    return option.keywords


def resolve_aspect_ratio(value: Optional[str], catalog: Optional[ReferenceCatalog] = None) -> Optional[str]:
    if not value or value == "none":
        return None
    option = (catalog or get_default_catalog()).aspect_ratios.get(value)
    return option.ratio if option and option.ratio else None


def is_safe_mode(model: str, catalog: ReferenceCatalog) -> bool:
    profile = catalog.models.get(model)
    return bool(profile and profile.strict_content_policy)


def resolve_components(
    snapshot: SelectionSnapshot,
    model: str,
    catalog: Optional[ReferenceCatalog] = None,
    limits: Optional[Mapping[str, int]] = None,
) -> ResolvedComponents:
    """Resolve every axis of ``snapshot`` into prompt fragments for ``model``."""

    catalog = catalog or get_default_catalog()
    caps = dict(DEFAULT_LIMITS)
    if limits:
        caps.update(limits)
    safe_mode = is_safe_mode(model, catalog)
    camera = _camera(snapshot, catalog, caps)
    pose_table = catalog.safe_pose if safe_mode and catalog.safe_pose else catalog.pose

    return ResolvedComponents(
        subject=truncate(snapshot.subject, caps["subject"]),
        characters=_characters(snapshot, caps),
        gaze=catalog.gaze.get(snapshot.gaze or ""),
        pose=pose_table.get(snapshot.pose or "") or catalog.pose.get(snapshot.pose or ""),
        position=_position(snapshot.position, model, catalog),
        location=_location(snapshot.location, catalog, safe_mode, caps["location"]),
        visual_preset=_style(catalog.visual_presets, snapshot.visual_preset),
        color_palette=_color_palette(snapshot, catalog, caps["max_custom_colors"]),
        atmosphere=_style(catalog.atmospheres, snapshot.atmosphere, safe_mode),
        lighting=_style(catalog.lighting, snapshot.lighting),
        director=_director(snapshot.director, catalog, safe_mode),
        camera=camera["camera"],
        lens=camera["lens"],
        shot=_shot(snapshot, catalog, caps["custom_shot"]),
        dof=_dof(snapshot, catalog),
    )
