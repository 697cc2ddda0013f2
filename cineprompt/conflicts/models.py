"""Shared data models for the conflicts engine.

- Purpose: define the selection snapshot, the per-category rule records, and the derived conflict report.
- Assumptions: option identifiers are plain strings drawn from the reference catalog; lists keep insertion order.
- Side effects: none; classes are passive containers.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional

LOCK_SECTIONS = (
    "model",
    "subject",
    "director",
    "atmosphere",
    "visual",
    "color",
    "camera",
    "lighting",
    "advanced",
)

SLIDER_FIELDS = ("creativity", "variation", "uniqueness")


@dataclass(frozen=True)
class ZoomRange:
    range_label: str
    options: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ConflictRules:
    """Rules attached to a camera category. The empty record blocks nothing."""

    blocked_atmospheres: List[str] = field(default_factory=list)
    blocked_presets: List[str] = field(default_factory=list)
    blocked_dof: List[str] = field(default_factory=list)
    fixed_lens: Optional[str] = None
    warning_message: Optional[str] = None


@dataclass
class CharacterItem:
    id: str
    content: str


@dataclass
class SelectionSnapshot:
    subject: str = ""
    current_character: str = ""
    characters: List[CharacterItem] = field(default_factory=list)
    gaze: Optional[str] = None
    pose: Optional[str] = None
    position: Optional[str] = None
    location: str = ""
    director: Optional[str] = None
    atmosphere: Optional[str] = None
    visual_preset: Optional[str] = None
    lighting: Optional[str] = None
    color_palette: Optional[str] = None
    custom_colors: List[str] = field(default_factory=list)
    camera: Optional[str] = None
    custom_camera: str = ""
    lens: str = ""
    custom_lens: str = ""
    shot: str = ""
    custom_shot: str = ""
    depth_of_field: str = "normal"
    aspect_ratio: str = "none"
    negative_prompt: str = ""
    creativity: int = 50
    variation: int = 50
    uniqueness: int = 50
    creative_controls_enabled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_TEXT_FIELDS = {
    "subject",
    "current_character",
    "location",
    "custom_camera",
    "lens",
    "custom_lens",
    "shot",
    "custom_shot",
    "negative_prompt",
}
_OPTIONAL_FIELDS = {
    "gaze",
    "pose",
    "position",
    "director",
    "atmosphere",
    "visual_preset",
    "lighting",
    "color_palette",
    "camera",
}


def _parse_characters(value: Any) -> List[CharacterItem]:
    if not isinstance(value, list):
        raise ValueError("characters must be a list")
    items: List[CharacterItem] = []
    for idx, entry in enumerate(value):
        if isinstance(entry, str):
            items.append(CharacterItem(id=str(idx + 1), content=entry))
        elif isinstance(entry, dict) and isinstance(entry.get("content"), str):
            items.append(CharacterItem(id=str(entry.get("id", idx + 1)), content=entry["content"]))
        else:
            raise ValueError(f"characters[{idx}] must be a string or an object with 'content'")
    return items


def snapshot_from_dict(payload: Dict[str, Any]) -> SelectionSnapshot:
    """Build a SelectionSnapshot from a JSON/YAML payload, rejecting malformed values."""

    if not isinstance(payload, dict):
        raise ValueError("snapshot payload must be a mapping")
    known = {f.name for f in fields(SelectionSnapshot)}
    unknown = sorted(set(payload) - known)
    if unknown:
        raise ValueError(f"Unknown snapshot field(s): {', '.join(unknown)}")

    values: Dict[str, Any] = {}
    for key, value in payload.items():
        if key == "characters":
            values[key] = _parse_characters(value)
        elif key == "custom_colors":
            if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
                raise ValueError("custom_colors must be a list of strings")
            values[key] = list(value)
        elif key in SLIDER_FIELDS:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{key} must be a number between 0 and 100")
            if not 0 <= value <= 100:
                raise ValueError(f"{key} must be between 0 and 100; received {value}")
            values[key] = value
        elif key == "creative_controls_enabled":
            if not isinstance(value, bool):
                raise ValueError("creative_controls_enabled must be a boolean")
            values[key] = value
        elif key in _TEXT_FIELDS or key in {"depth_of_field", "aspect_ratio"}:
            if value is None:
                continue
            if not isinstance(value, str):
                raise ValueError(f"{key} must be a string")
            values[key] = value
        elif key in _OPTIONAL_FIELDS:
            if value is not None and not isinstance(value, str):
                raise ValueError(f"{key} must be a string or null")
            values[key] = value or None
    return SelectionSnapshot(**values)


@dataclass
class LockedSections:
    model: bool = False
    subject: bool = False
    director: bool = False
    atmosphere: bool = False
    visual: bool = False
    color: bool = False
    camera: bool = False
    lighting: bool = False
    advanced: bool = False

    def is_locked(self, section: str) -> bool:
        if section not in LOCK_SECTIONS:
            raise ValueError(f"Unknown lock section: {section}")
        return getattr(self, section)

    def toggle(self, section: str) -> bool:
        locked = not self.is_locked(section)
        setattr(self, section, locked)
        return locked


@dataclass
class StyleStackingAnalysis:
    category_counts: Dict[str, int] = field(default_factory=dict)
    overloaded_categories: List[str] = field(default_factory=list)
    total_assertions: int = 0
    has_style_overload: bool = False
    warning_message: Optional[str] = None


@dataclass
class ConflictResult:
    """Derived report for one snapshot. Recomputed on every change, never stored."""

    blocked_atmospheres: List[str] = field(default_factory=list)
    blocked_presets: List[str] = field(default_factory=list)
    blocked_dof: List[str] = field(default_factory=list)
    blocked_cameras: List[str] = field(default_factory=list)
    blocked_lighting: List[str] = field(default_factory=list)
    blocked_lenses: List[str] = field(default_factory=list)
    blocked_shots: List[str] = field(default_factory=list)
    blocked_aspect_ratios: List[str] = field(default_factory=list)
    blocked_locations: List[str] = field(default_factory=list)
    active_conflicts: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    fixed_lens: Optional[str] = None
    zoom_range: Optional[ZoomRange] = None
    allowed_aspect_ratios: Optional[List[str]] = None
    warning_message: Optional[str] = None
    recommended_shots: List[str] = field(default_factory=list)
    stacking: StyleStackingAnalysis = field(default_factory=StyleStackingAnalysis)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.active_conflicts)

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["has_conflicts"] = self.has_conflicts
        return payload
