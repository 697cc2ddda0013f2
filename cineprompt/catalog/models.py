"""Option records held by the reference catalog."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class CameraOption:
    label: str
    keywords: str
    group: str = ""


@dataclass(frozen=True)
class ShotOption:
    label: str
    keywords: str
    grammar: str = ""


@dataclass(frozen=True)
class DofOption:
    value: str
    label: str
    keywords: str = ""


@dataclass(frozen=True)
class AspectRatioOption:
    value: str
    label: str
    ratio: str = ""


@dataclass(frozen=True)
class StyleOption:
    """Atmosphere, visual preset, or lighting entry."""

    key: str
    name: str
    keywords: str
    safe_keywords: Optional[str] = None
    family: Optional[str] = None


@dataclass(frozen=True)
class ColorPalette:
    key: str
    name: str
    colors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Director:
    name: str
    keywords: str
    anonymous_keywords: str
    description: str = ""
    safe_keywords: Optional[str] = None
    blocked_atmospheres: List[str] = field(default_factory=list)
    blocked_presets: List[str] = field(default_factory=list)
    blocked_cameras: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class LocationPreset:
    label: str
    keywords: str
    category: str
    setting: str = "either"
    scale: str = "medium"
    era: str = "any"
    safe_keywords: Optional[str] = None
    blocked_atmospheres: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ModelProfile:
    id: str
    name: str
    prompt_style: str
    supports_negative_prompt: bool = False
    strict_content_policy: bool = False
