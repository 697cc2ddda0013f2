"""Style-stacking analysis.

Directors, atmospheres, visual presets, and lighting each imply a handful of
style categories. Too many assertions in one category (or overall) tends to
muddy the generated image, so the analysis reports overload as advisory text.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Tuple

from cineprompt.catalog.catalog import ReferenceCatalog
from cineprompt.config_service.config_service import DEFAULT_SETTINGS

from .models import SelectionSnapshot, StyleStackingAnalysis

DEFAULT_CATEGORY_LIMITS: Dict[str, int] = dict(DEFAULT_SETTINGS["stacking"]["category_limits"])
DEFAULT_TOTAL_THRESHOLD: int = DEFAULT_SETTINGS["stacking"]["total_threshold"]

# Snapshot attribute feeding each implied-style table.
_STYLE_SOURCES: Tuple[Tuple[str, str], ...] = (
    ("director", "director"),
    ("atmosphere", "atmosphere"),
    ("preset", "visual_preset"),
    ("lighting", "lighting"),
)


def analyze_style_stacking(
    snapshot: SelectionSnapshot,
    catalog: ReferenceCatalog,
    category_limits: Optional[Mapping[str, int]] = None,
    total_threshold: Optional[int] = None,
) -> StyleStackingAnalysis:
    limits = dict(DEFAULT_CATEGORY_LIMITS)
    if category_limits:
        limits.update(category_limits)
    threshold = DEFAULT_TOTAL_THRESHOLD if total_threshold is None else total_threshold

    counts: Dict[str, int] = {category: 0 for category in catalog.style_categories}
    for kind, attribute in _STYLE_SOURCES:
        selected = getattr(snapshot, attribute)
        if not selected:
            continue
        for category in catalog.implied_styles.get(kind, {}).get(selected, ()):
            counts[category] = counts.get(category, 0) + 1

    overloaded = [
        category for category, count in counts.items() if category in limits and count > limits[category]
    ]
    total = sum(counts.values())
    has_overload = bool(overloaded) or total > threshold

    message: Optional[str] = None
    if overloaded:
        names = ", ".join(category[:1].upper() + category[1:] for category in overloaded)
        message = f"Style stacking detected: {names} assertions may conflict"
    elif total > threshold:
        message = f"{total} style assertions may overwhelm the model. Consider simplifying."

    return StyleStackingAnalysis(
        category_counts=counts,
        overloaded_categories=overloaded,
        total_assertions=total,
        has_style_overload=has_overload,
        warning_message=message,
    )


def reducing_options(
    analysis: StyleStackingAnalysis,
    snapshot: SelectionSnapshot,
    catalog: ReferenceCatalog,
) -> Dict[str, List[str]]:
    """List the options that would add to an overloaded category, excluding current picks."""

    avoid: Dict[str, List[str]] = {kind: [] for kind, _ in _STYLE_SOURCES}
    for category in analysis.overloaded_categories:
        for kind, attribute in _STYLE_SOURCES:
            current = getattr(snapshot, attribute)
            for option, categories in catalog.implied_styles.get(kind, {}).items():
                if category in categories and option != current and option not in avoid[kind]:
                    avoid[kind].append(option)
    return avoid
