"""Data models for Prompt Builder."""

from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional


@dataclass
class ResolvedComponents:
    """Per-axis prompt fragments; ``None`` (or an empty list) means the axis is absent."""

    subject: str = ""
    characters: List[str] = field(default_factory=list)
    gaze: Optional[str] = None
    pose: Optional[str] = None
    position: Optional[str] = None
    location: Optional[str] = None
    visual_preset: Optional[str] = None
    color_palette: Optional[str] = None
    atmosphere: Optional[str] = None
    lighting: Optional[str] = None
    director: Optional[str] = None
    camera: Optional[str] = None
    lens: Optional[str] = None
    shot: Optional[str] = None
    dof: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass
class SliderParams:
    """Model-native parameter strings; an empty string means the model has no such knob."""

    creativity: str = ""
    variation: str = ""
    quality: str = ""


@dataclass
class ModelContext:
    base_prompt: str
    aspect_ratio: str = "none"
    aspect_ratio_display: Optional[str] = None
    negative_prompt: str = ""
    creative_controls_enabled: bool = False
    slider_params: SliderParams = field(default_factory=SliderParams)
