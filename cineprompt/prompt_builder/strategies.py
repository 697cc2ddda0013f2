"""Per-model prompt finalisation.

Each target model has one strategy that translates the 0-100 sliders into the
model's own parameter syntax and appends aspect ratio and negative prompt in
the notation that model understands.
"""
from __future__ import annotations

import logging
import math
from typing import Dict, List, Union

from .models import ModelContext, SliderParams

logger = logging.getLogger(__name__)

Number = Union[int, float]


def round_half_up(value: Number) -> int:
    return int(math.floor(value + 0.5))


def format_number(value: Number) -> str:
    """Render whole numbers without a decimal point (``50`` rather than ``50.0``)."""

    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class ModelStrategy:
    """Base strategy: natural prose, no sliders, no negative prompt, inline aspect ratio."""

    model_id = ""
    prompt_style = "natural"
    supports_negative_prompt = False

    def translate_sliders(self, creativity: Number, variation: Number, uniqueness: Number) -> SliderParams:
        return SliderParams()

    def finalize_prompt(self, context: ModelContext) -> str:
        prompt = context.base_prompt
        if context.aspect_ratio_display:
            prompt += f", {context.aspect_ratio_display} aspect ratio"
        return prompt


class MidjourneyStrategy(ModelStrategy):
    model_id = "midjourney"
    prompt_style = "tags"
    supports_negative_prompt = True

    def translate_sliders(self, creativity, variation, uniqueness):
        return SliderParams(
            creativity=f"--s {round_half_up(creativity * 10)}",
            variation=f"--chaos {round_half_up(variation)}",
            quality="--q 2" if creativity > 70 else "",
        )

    def finalize_prompt(self, context):
        params: List[str] = []
        if context.aspect_ratio_display:
            params.append(f"--ar {context.aspect_ratio_display}")
        if context.creative_controls_enabled:
            sliders = context.slider_params
            params.extend(value for value in (sliders.creativity, sliders.variation, sliders.quality) if value)
        negative = context.negative_prompt.strip()
        if negative:
            params.append(f"--no {negative}")
        if not params:
            return context.base_prompt
        return f"{context.base_prompt} {' '.join(params)}"


class FluxStrategy(ModelStrategy):
    model_id = "flux"

    def translate_sliders(self, creativity, variation, uniqueness):
        return SliderParams(
            creativity=f"guidance: {creativity / 5:.1f}",
            variation=f"seed_variation: {format_number(variation)}",
        )

    def finalize_prompt(self, context):
        prompt = context.base_prompt
        if context.creative_controls_enabled:
            sliders = context.slider_params
            prompt += f"\n\n[{sliders.creativity}, {sliders.variation}]"
        if context.aspect_ratio_display:
            prompt += f"\n[aspect_ratio: {context.aspect_ratio_display}]"
        return prompt


class StableDiffusionStrategy(ModelStrategy):
    model_id = "stable-diffusion"
    prompt_style = "tags"
    supports_negative_prompt = True

    def translate_sliders(self, creativity, variation, uniqueness):
        return SliderParams(
            creativity=f"CFG Scale: {creativity / 100 * 30:.1f}",
            variation=f"Denoising: {format_number(variation)}%",
            quality="Steps: 50" if uniqueness > 50 else "Steps: 30",
        )

    def finalize_prompt(self, context):
        prompt = super().finalize_prompt(context)
        negative = context.negative_prompt.strip()
        if negative:
            prompt += f"\n\nNegative prompt: {negative}"
        if context.creative_controls_enabled:
            sliders = context.slider_params
            prompt += f"\n\n{sliders.creativity}, {sliders.quality}"
        return prompt


class DallE3Strategy(ModelStrategy):
    """Sliders are translated but never appended; DALL-E 3 takes style and quality out of band."""

    model_id = "dalle3"

    def translate_sliders(self, creativity, variation, uniqueness):
        return SliderParams(
            creativity="style: vivid" if creativity > 70 else "style: natural",
            variation="quality: hd" if uniqueness > 50 else "quality: standard",
        )


class ChatGPTStrategy(ModelStrategy):
    model_id = "chatgpt"
    supports_negative_prompt = True

    def finalize_prompt(self, context):
        prompt = context.base_prompt
        if context.aspect_ratio_display:
            prompt += f", in {context.aspect_ratio_display} aspect ratio"
        negative = context.negative_prompt.strip()
        if negative:
            prompt += f", without {negative}"
        return f"generate this: {prompt}"


class ImagenStrategy(ModelStrategy):
    model_id = "imagen"
    supports_negative_prompt = True

    def translate_sliders(self, creativity, variation, uniqueness):
        return SliderParams(
            creativity="high creativity" if creativity > 70 else "balanced creativity",
            variation=f"seed variation: {format_number(variation)}",
            quality="high quality" if uniqueness > 50 else "standard quality",
        )

    def finalize_prompt(self, context):
        prompt = context.base_prompt
        if context.aspect_ratio_display:
            prompt += f"\n\n[aspect_ratio: {context.aspect_ratio_display}]"
        negative = context.negative_prompt.strip()
        if negative:
            prompt += f"\n[negative_prompt: {negative}]"
        if context.creative_controls_enabled:
            sliders = context.slider_params
            prompt += f"\n[{sliders.creativity}, {sliders.quality}]"
        return prompt


class IdeogramStrategy(ModelStrategy):
    model_id = "ideogram"
    prompt_style = "tags"
    supports_negative_prompt = True

    def translate_sliders(self, creativity, variation, uniqueness):
        return SliderParams(
            creativity=f"--style {'artistic' if creativity > 70 else 'realistic'}",
            variation=f"--variation {format_number(variation)}",
        )

    def finalize_prompt(self, context):
        params: List[str] = []
        if context.aspect_ratio_display:
            params.append(f"--aspect {context.aspect_ratio_display}")
        negative = context.negative_prompt.strip()
        if negative:
            params.append(f"--negative {negative}")
        if context.creative_controls_enabled:
            sliders = context.slider_params
            params.extend(value for value in (sliders.creativity, sliders.variation) if value)
        if not params:
            return context.base_prompt
        return f"{context.base_prompt} {' '.join(params)}"


class LeonardoStrategy(ModelStrategy):
    model_id = "leonardo"
    supports_negative_prompt = True

    def translate_sliders(self, creativity, variation, uniqueness):
        return SliderParams(
            creativity=f"guidance_scale: {creativity / 100 * 20:.1f}",
            variation="preset_style: dynamic" if variation > 50 else "preset_style: cinematic",
            quality="high_resolution: true" if uniqueness > 50 else "",
        )

    def finalize_prompt(self, context):
        prompt = context.base_prompt
        if context.aspect_ratio_display:
            prompt += f"\n\n[dimensions: {context.aspect_ratio_display}]"
        negative = context.negative_prompt.strip()
        if negative:
            prompt += f"\n[negative_prompt: {negative}]"
        if context.creative_controls_enabled:
            sliders = context.slider_params
            prompt += f"\n[{sliders.creativity}, {sliders.variation}]"
        return prompt


class FireflyStrategy(ModelStrategy):
    model_id = "firefly"

    def translate_sliders(self, creativity, variation, uniqueness):
        return SliderParams(
            creativity="style_strength: high" if creativity > 70 else "style_strength: medium",
            quality="quality: high" if uniqueness > 50 else "quality: standard",
        )

    def finalize_prompt(self, context):
        prompt = super().finalize_prompt(context)
        if context.creative_controls_enabled:
            sliders = context.slider_params
            prompt += f"\n\n[{sliders.creativity}, {sliders.quality}]"
        return prompt


class NanoBananoStrategy(ModelStrategy):
    model_id = "nanobanano"


strategies: Dict[str, ModelStrategy] = {}


def register_strategy(strategy: ModelStrategy) -> ModelStrategy:
    """Register ``strategy`` under its model id, replacing (and warning about) any previous one."""

    if strategy.model_id in strategies:
        logger.warning("Replacing prompt strategy for model %s", strategy.model_id)
    strategies[strategy.model_id] = strategy
    logger.debug("Registered prompt strategy %s (%s)", strategy.model_id, strategy.prompt_style)
    return strategy


def get_strategy(model: str) -> ModelStrategy:
    strategy = strategies.get(model)
    if strategy is None:
        raise ValueError(f"Unsupported AI model: {model}")
    return strategy


def is_model_supported(model: str) -> bool:
    return model in strategies


def supported_models() -> List[str]:
    return list(strategies)


def load_default_strategies() -> None:
    for strategy_class in (
        ChatGPTStrategy,
        MidjourneyStrategy,
        NanoBananoStrategy,
        FluxStrategy,
        StableDiffusionStrategy,
        DallE3Strategy,
        ImagenStrategy,
        IdeogramStrategy,
        LeonardoStrategy,
        FireflyStrategy,
    ):
        register_strategy(strategy_class())


load_default_strategies()
