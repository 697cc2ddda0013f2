"""Selection mutators.

- Purpose: own one editable SelectionSnapshot and apply UI-style changes to it, clearing choices the change invalidates.
- Assumptions: the resolver in ``engine`` is the only source of conflict rules; mutators never duplicate them.
- Side effects: mutates ``PromptSession.state`` in place; logs rejected changes at DEBUG and auto-clears at INFO.
"""

from __future__ import annotations

import logging
from copy import deepcopy
from typing import Any, Callable, Dict, Iterable, List, Optional

from cineprompt.catalog.catalog import ReferenceCatalog, get_default_catalog
from cineprompt.config_service.config_service import DEFAULT_SETTINGS, coerce_value, deep_get, deep_merge

from .engine import AXIS_FIELDS, ConflictResolver, compute_blocked, current_value
from .models import CharacterItem, ConflictResult, LockedSections, SLIDER_FIELDS, SelectionSnapshot

logger = logging.getLogger(__name__)

# Dependent axes in the order the post-change sweep visits them.
SWEEP_ORDER = ("atmosphere", "preset", "lighting", "dof", "lens", "shot", "aspect_ratio", "camera", "location")

NEUTRAL_VALUES: Dict[str, Any] = {
    "atmosphere": None,
    "preset": None,
    "lighting": None,
    "dof": "normal",
    "lens": "",
    "shot": "",
    "aspect_ratio": "none",
    "camera": None,
    "location": "",
}


class PromptSession:
    """Mutable selection state with section locks and automatic conflict clearing.

    Setters return ``True`` when the change was applied and ``False`` when the
    section is locked or the value is currently blocked by another axis.
    """

    def __init__(
        self,
        catalog: Optional[ReferenceCatalog] = None,
        settings: Optional[Dict[str, Any]] = None,
        snapshot: Optional[SelectionSnapshot] = None,
        model: Optional[str] = None,
    ) -> None:
        self.catalog = catalog or get_default_catalog()
        self.settings = settings or deepcopy(DEFAULT_SETTINGS)
        self.resolver = ConflictResolver(self.catalog, self.settings)
        self.defaults = deep_merge(
            DEFAULT_SETTINGS["session"]["defaults"], deep_get(self.settings, "session.defaults") or {}
        )
        self.default_model = model or deep_get(self.settings, "generator.default_model") or "chatgpt"
        self.locks = LockedSections()
        self.model = self.default_model
        self.state = deepcopy(snapshot) if snapshot is not None else self._default_snapshot()
        self.last_cleared: List[str] = []
        self._next_character_id = len(self.state.characters) + 1

    def _default_snapshot(self) -> SelectionSnapshot:
        defaults = self.defaults
        return SelectionSnapshot(
            lens=defaults["lens"],
            shot=defaults["shot"],
            depth_of_field=defaults["depth_of_field"],
            aspect_ratio=defaults["aspect_ratio"],
            creativity=defaults["creativity"],
            variation=defaults["variation"],
            uniqueness=defaults["uniqueness"],
            creative_controls_enabled=defaults["creative_controls_enabled"],
            custom_colors=[""] * defaults["custom_color_slots"],
        )

    # -- core machinery ----------------------------------------------------

    def _locked(self, section: str, action: str) -> bool:
        if self.locks.is_locked(section):
            logger.debug("Ignored %s: section '%s' is locked", action, section)
            return True
        return False

    def _comparable(self, axis: str, value: Optional[str]) -> Optional[str]:
        # Location blocks are reported by preset label; free text matches on its preset.
        if axis == "location" and value:
            preset = self.catalog.match_location(value)
            return preset.label if preset else value.strip()
        return value

    def _blocked(self, axis: str, value: Optional[str]) -> bool:
        if value is None or value == NEUTRAL_VALUES.get(axis):
            return False
        if self._comparable(axis, value) in compute_blocked(axis, self.state, self.catalog):
            logger.debug("Rejected %s=%r: blocked by current selection", axis, value)
            return True
        return False

    def _update(self, section: str, changes: Dict[str, Any], axis: Optional[str] = None) -> bool:
        if self._locked(section, ", ".join(changes)):
            return False
        if axis and self._blocked(axis, changes.get(AXIS_FIELDS[axis])):
            return False
        for name, value in changes.items():
            setattr(self.state, name, value)
        self.last_cleared = self.enforce(skip=axis)
        return True

    def _clear(self, axis: str, reason: str) -> None:
        field_name = AXIS_FIELDS[axis]
        logger.info("Cleared %s=%r: %s", axis, getattr(self.state, field_name), reason)
        setattr(self.state, field_name, NEUTRAL_VALUES[axis])

    def enforce(self, skip: Optional[str] = None) -> List[str]:
        """Clear every dependent axis whose value another axis now blocks.

        Locks are not consulted here; the just-written axis (``skip``) is never cleared.
        """

        cleared: List[str] = []
        for axis in SWEEP_ORDER:
            if axis == skip:
                continue
            value = current_value(axis, self.state)
            if value is None or value == NEUTRAL_VALUES[axis]:
                continue
            if self._comparable(axis, value) in compute_blocked(axis, self.state, self.catalog):
                self._clear(axis, "blocked by current selection")
                cleared.append(axis)
        return cleared

    # -- model and subject -------------------------------------------------

    def set_model(self, model: str) -> bool:
        if model not in self.catalog.models:
            raise ValueError(f"Unsupported AI model: {model}")
        if self._locked("model", "model"):
            return False
        self.model = model
        return True

    def set_subject(self, text: str) -> bool:
        return self._update("subject", {"subject": text or ""})

    def set_current_character(self, text: str) -> bool:
        return self._update("subject", {"current_character": text or ""})

    def add_character(self) -> bool:
        content = self.state.current_character.strip()
        if not content or self._locked("subject", "add_character"):
            return False
        item = CharacterItem(id=str(self._next_character_id), content=content)
        self._next_character_id += 1
        return self._update(
            "subject",
            {"characters": self.state.characters + [item], "current_character": ""},
        )

    def remove_character(self, item_id: str) -> bool:
        remaining = [item for item in self.state.characters if item.id != str(item_id)]
        if len(remaining) == len(self.state.characters):
            return False
        return self._update("subject", {"characters": remaining})

    def set_gaze(self, value: Optional[str]) -> bool:
        return self._update("subject", {"gaze": value or None})

    def set_pose(self, value: Optional[str]) -> bool:
        return self._update("subject", {"pose": value or None})

    def set_position(self, value: Optional[str]) -> bool:
        return self._update("subject", {"position": value or None})

    def set_location(self, text: str) -> bool:
        return self._update("subject", {"location": text or ""}, axis="location")

    # -- style -------------------------------------------------------------

    def set_director(self, name: Optional[str]) -> bool:
        if self._locked("director", "director"):
            return False
        self.state.director = name or None
        director = self.catalog.directors.get(name or "")
        cleared: List[str] = []
        if director:
            if self.state.atmosphere in director.blocked_atmospheres:
                self._clear("atmosphere", f"blocked by director {director.name}")
                cleared.append("atmosphere")
            if self.state.visual_preset in director.blocked_presets:
                self._clear("preset", f"blocked by director {director.name}")
                cleared.append("preset")
        self.last_cleared = cleared + self.enforce()
        return True

    def set_atmosphere(self, key: Optional[str]) -> bool:
        return self._update("atmosphere", {"atmosphere": key or None}, axis="atmosphere")

    def set_visual_preset(self, key: Optional[str]) -> bool:
        return self._update("visual", {"visual_preset": key or None}, axis="preset")

    def set_lighting(self, key: Optional[str]) -> bool:
        return self._update("lighting", {"lighting": key or None}, axis="lighting")

    def set_color_palette(self, key: Optional[str]) -> bool:
        return self._update("color", {"color_palette": key or None})

    def set_custom_colors(self, colors: Iterable[str]) -> bool:
        return self._update("color", {"custom_colors": [str(color) for color in colors]})

    # -- camera ------------------------------------------------------------

    def set_camera(self, camera: Optional[str]) -> bool:
        """Write the camera, then clear whatever its category rules out.

        A camera blocked by the current director is rejected; a camera blocked
        only by the atmosphere or preset wins and clears them instead.
        """

        if self._locked("camera", "camera"):
            return False
        director = self.catalog.directors.get(self.state.director or "")
        if camera and director and camera in director.blocked_cameras:
            logger.debug("Rejected camera=%r: blocked by director %s", camera, director.name)
            return False

        self.state.camera = camera or None
        self.state.custom_camera = ""
        rules = self.catalog.category_rules(self.catalog.camera_category(camera))
        reason = f"blocked by camera {camera}"
        cleared: List[str] = []
        if self.state.atmosphere in rules.blocked_atmospheres:
            self._clear("atmosphere", reason)
            cleared.append("atmosphere")
        if self.state.visual_preset in rules.blocked_presets:
            self._clear("preset", reason)
            cleared.append("preset")
        if self.state.depth_of_field in rules.blocked_dof:
            self._clear("dof", reason)
            cleared.append("dof")
        allowed = self.catalog.camera_aspect_ratios.get(camera or "")
        if allowed and self.state.aspect_ratio != "none" and self.state.aspect_ratio not in allowed:
            self._clear("aspect_ratio", reason)
            cleared.append("aspect_ratio")
        self.last_cleared = cleared + self.enforce(skip="camera")
        return True

    def set_custom_camera(self, text: str) -> bool:
        return self._update("camera", {"custom_camera": text or ""})

    def set_lens(self, lens: str) -> bool:
        return self._update("camera", {"lens": lens or ""}, axis="lens")

    def set_custom_lens(self, text: str) -> bool:
        return self._update("camera", {"custom_lens": text or ""})

    def set_shot(self, shot: str) -> bool:
        return self._update("camera", {"shot": shot or ""}, axis="shot")

    def set_custom_shot(self, text: str) -> bool:
        return self._update("camera", {"custom_shot": text or ""})

    def set_aspect_ratio(self, value: str) -> bool:
        return self._update("camera", {"aspect_ratio": value or "none"}, axis="aspect_ratio")

    # -- advanced ----------------------------------------------------------

    def set_depth_of_field(self, value: str) -> bool:
        return self._update("advanced", {"depth_of_field": value or "normal"}, axis="dof")

    def set_negative_prompt(self, text: str) -> bool:
        return self._update("advanced", {"negative_prompt": text or ""})

    def set_sliders(
        self,
        creativity: Optional[int] = None,
        variation: Optional[int] = None,
        uniqueness: Optional[int] = None,
    ) -> bool:
        changes: Dict[str, Any] = {}
        for name, value in zip(SLIDER_FIELDS, (creativity, variation, uniqueness)):
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0 <= value <= 100:
                raise ValueError(f"{name} must be a number between 0 and 100")
            changes[name] = value
        if not changes:
            return False
        return self._update("advanced", changes)

    def set_creative_controls_enabled(self, enabled: bool) -> bool:
        return self._update("advanced", {"creative_controls_enabled": bool(enabled)})

    # -- locks and reset ---------------------------------------------------

    def toggle_lock(self, section: str) -> bool:
        locked = self.locks.toggle(section)
        logger.debug("Section '%s' %s", section, "locked" if locked else "unlocked")
        return locked

    def reset_all(self) -> List[str]:
        """Restore defaults for every unlocked section; returns the sections reset."""

        fresh = self._default_snapshot()
        groups = {
            "subject": ("subject", "characters", "current_character", "gaze", "pose", "position", "location"),
            "atmosphere": ("atmosphere",),
            "visual": ("visual_preset",),
            "lighting": ("lighting",),
            "color": ("color_palette", "custom_colors"),
            "camera": ("camera", "custom_camera", "lens", "custom_lens", "shot", "custom_shot", "aspect_ratio"),
            "advanced": ("depth_of_field", "negative_prompt") + SLIDER_FIELDS + ("creative_controls_enabled",),
            "director": ("director",),
        }
        reset: List[str] = []
        for section, names in groups.items():
            if self.locks.is_locked(section):
                continue
            for name in names:
                setattr(self.state, name, deepcopy(getattr(fresh, name)))
            reset.append(section)
        self.last_cleared = self.enforce()
        return reset

    # -- generic dispatch --------------------------------------------------

    def apply(self, name: str, raw_value: Any) -> bool:
        """Apply one ``name=value`` change by field name (used by the CLI)."""

        setters: Dict[str, Callable[[Any], bool]] = {
            "model": self.set_model,
            "subject": self.set_subject,
            "current_character": self.set_current_character,
            "gaze": self.set_gaze,
            "pose": self.set_pose,
            "position": self.set_position,
            "location": self.set_location,
            "director": self.set_director,
            "atmosphere": self.set_atmosphere,
            "visual_preset": self.set_visual_preset,
            "lighting": self.set_lighting,
            "color_palette": self.set_color_palette,
            "camera": self.set_camera,
            "custom_camera": self.set_custom_camera,
            "lens": self.set_lens,
            "custom_lens": self.set_custom_lens,
            "shot": self.set_shot,
            "custom_shot": self.set_custom_shot,
            "depth_of_field": self.set_depth_of_field,
            "aspect_ratio": self.set_aspect_ratio,
            "negative_prompt": self.set_negative_prompt,
        }
        if name == "character":
            return self.set_current_character(str(raw_value)) and self.add_character()
        if name == "custom_colors":
            colors = raw_value if isinstance(raw_value, list) else str(raw_value).split(",")
            return self.set_custom_colors(color.strip() for color in colors)
        if name in SLIDER_FIELDS:
            value = coerce_value(raw_value)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"{name} must be a number between 0 and 100")
            return self.set_sliders(**{name: value})
        if name == "creative_controls_enabled":
            return self.set_creative_controls_enabled(coerce_value(raw_value) is True)
        setter = setters.get(name)
        if setter is None:
            raise ValueError(f"Unknown selection field: {name}")
        return setter(raw_value)

    # -- queries -----------------------------------------------------------

    def snapshot(self) -> SelectionSnapshot:
        return deepcopy(self.state)

    def conflicts(self) -> ConflictResult:
        return self.resolver.resolve(self.state)

    def prompt(self) -> str:
        from cineprompt.prompt_builder.compiler import generate_prompt

        return generate_prompt(self.state, self.model, self.catalog, self.settings)
