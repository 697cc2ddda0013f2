"""Prompt Builder compiler: snapshot in, model-specific prompt text out."""

from __future__ import annotations

from typing import Any, Dict, Optional

from cineprompt.catalog.catalog import ReferenceCatalog, get_default_catalog
from cineprompt.config_service.config_service import deep_get
from cineprompt.conflicts.models import SelectionSnapshot

from .composer import compose_natural_prompt, compose_tag_prompt
from .models import ModelContext, ResolvedComponents
from .resolver import is_safe_mode, resolve_aspect_ratio, resolve_components
from .strategies import ModelStrategy, get_strategy

EMPTY_PROMPT_MESSAGE = "Start by adding a subject..."


def compose_base_prompt(
    components: ResolvedComponents, strategy: ModelStrategy, safe_mode: bool = False
) -> str:
    if strategy.prompt_style == "natural":
        return compose_natural_prompt(components, safe_mode)
    return compose_tag_prompt(components)


def build_model_context(
    base_prompt: str, snapshot: SelectionSnapshot, strategy: ModelStrategy, catalog: ReferenceCatalog
) -> ModelContext:
    return ModelContext(
        base_prompt=base_prompt,
        aspect_ratio=snapshot.aspect_ratio,
        aspect_ratio_display=resolve_aspect_ratio(snapshot.aspect_ratio, catalog),
        negative_prompt=snapshot.negative_prompt or "",
        creative_controls_enabled=snapshot.creative_controls_enabled,
        slider_params=strategy.translate_sliders(snapshot.creativity, snapshot.variation, snapshot.uniqueness),
    )


def generate_prompt(
    snapshot: SelectionSnapshot,
    model: str,
    catalog: Optional[ReferenceCatalog] = None,
    settings: Optional[Dict[str, Any]] = None,
) -> str:
    """Resolve, compose, and finalise ``snapshot`` for ``model``.

    Raises ``ValueError`` for a model without a registered strategy. An empty
    composition yields the placeholder text instead of an empty string.
    """

    strategy = get_strategy(model)
    catalog = catalog or get_default_catalog()
    limits = deep_get(settings or {}, "limits")

    components = resolve_components(snapshot, model, catalog, limits)
    base_prompt = compose_base_prompt(components, strategy, is_safe_mode(model, catalog))
    if not base_prompt:
        return EMPTY_PROMPT_MESSAGE
    return strategy.finalize_prompt(build_model_context(base_prompt, snapshot, strategy, catalog))
