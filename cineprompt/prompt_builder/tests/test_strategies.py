import logging
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[3]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cineprompt.prompt_builder import strategies
from cineprompt.prompt_builder.models import ModelContext
from cineprompt.prompt_builder.strategies import format_number, get_strategy, round_half_up


def finalize(model, creativity=50, variation=50, uniqueness=50, **context):
    strategy = get_strategy(model)
    context.setdefault("base_prompt", "a fox")
    params = strategy.translate_sliders(creativity, variation, uniqueness)
    return strategy.finalize_prompt(ModelContext(slider_params=params, **context))


def test_number_helpers():
    assert round_half_up(42.5) == 43
    assert round_half_up(2.4) == 2
    assert format_number(50.0) == "50"
    assert format_number(12.5) == "12.5"


def test_all_catalog_models_are_registered():
    assert set(strategies.supported_models()) == {
        "chatgpt",
        "midjourney",
        "nanobanano",
        "flux",
        "stable-diffusion",
        "dalle3",
        "imagen",
        "ideogram",
        "leonardo",
        "firefly",
    }
    assert strategies.is_model_supported("flux")
    assert not strategies.is_model_supported("pixelart")


def test_unknown_model_raises():
    with pytest.raises(ValueError, match="Unsupported AI model: pixelart"):
        get_strategy("pixelart")


def test_register_strategy_warns_on_replacement(monkeypatch, caplog):
    monkeypatch.setattr(strategies, "strategies", dict(strategies.strategies))
    replacement = strategies.FluxStrategy()
    with caplog.at_level(logging.WARNING, logger="cineprompt.prompt_builder.strategies"):
        strategies.register_strategy(replacement)
    assert get_strategy("flux") is replacement
    assert "Replacing prompt strategy for model flux" in caplog.text


def test_midjourney_parameters():
    prompt = finalize(
        "midjourney",
        creativity=75,
        aspect_ratio_display="16:9",
        negative_prompt=" blur ",
        creative_controls_enabled=True,
    )
    assert prompt == "a fox --ar 16:9 --s 750 --chaos 50 --q 2 --no blur"
    assert finalize("midjourney", creativity=70, creative_controls_enabled=True) == "a fox --s 700 --chaos 50"
    assert finalize("midjourney") == "a fox"


def test_midjourney_rounds_half_up():
    params = get_strategy("midjourney").translate_sliders(4.25, 2.5, 0)
    assert params.creativity == "--s 43"
    assert params.variation == "--chaos 3"


def test_flux_appends_bracketed_parameters():
    prompt = finalize("flux", aspect_ratio_display="16:9", negative_prompt="blur", creative_controls_enabled=True)
    assert prompt == "a fox\n\n[guidance: 10.0, seed_variation: 50]\n[aspect_ratio: 16:9]"


def test_stable_diffusion_negative_prompt_block():
    prompt = finalize(
        "stable-diffusion",
        variation=40,
        uniqueness=60,
        aspect_ratio_display="16:9",
        negative_prompt="blur",
        creative_controls_enabled=True,
    )
    assert prompt == "a fox, 16:9 aspect ratio\n\nNegative prompt: blur\n\nCFG Scale: 15.0, Steps: 50"
    assert get_strategy("stable-diffusion").translate_sliders(50, 40, 50).variation == "Denoising: 40%"
    assert finalize("stable-diffusion", negative_prompt="blur") == "a fox\n\nNegative prompt: blur"


def test_dalle3_ignores_sliders_and_negative_prompt():
    prompt = finalize("dalle3", creativity=80, aspect_ratio_display="1:1", negative_prompt="blur", creative_controls_enabled=True)
    assert prompt == "a fox, 1:1 aspect ratio"
    assert get_strategy("dalle3").translate_sliders(80, 50, 60).creativity == "style: vivid"


def test_chatgpt_wraps_the_prompt():
    prompt = finalize("chatgpt", aspect_ratio_display="16:9", negative_prompt="blur")
    assert prompt == "generate this: a fox, in 16:9 aspect ratio, without blur"
    assert finalize("chatgpt") == "generate this: a fox"


def test_imagen_parameter_lines():
    prompt = finalize(
        "imagen",
        creativity=80,
        uniqueness=60,
        aspect_ratio_display="16:9",
        negative_prompt="blur",
        creative_controls_enabled=True,
    )
    assert prompt == "a fox\n\n[aspect_ratio: 16:9]\n[negative_prompt: blur]\n[high creativity, high quality]"


def test_ideogram_flags():
    prompt = finalize(
        "ideogram",
        creativity=80,
        variation=30,
        aspect_ratio_display="16:9",
        negative_prompt="blur",
        creative_controls_enabled=True,
    )
    assert prompt == "a fox --aspect 16:9 --negative blur --style artistic --variation 30"


def test_leonardo_parameter_lines():
    prompt = finalize(
        "leonardo",
        variation=60,
        uniqueness=60,
        aspect_ratio_display="16:9",
        negative_prompt="blur",
        creative_controls_enabled=True,
    )
    assert prompt == "a fox\n\n[dimensions: 16:9]\n[negative_prompt: blur]\n[guidance_scale: 10.0, preset_style: dynamic]"
    assert get_strategy("leonardo").translate_sliders(50, 50, 60).quality == "high_resolution: true"


def test_firefly_and_nanobanano():
    assert finalize("firefly", aspect_ratio_display="16:9", creative_controls_enabled=True) == (
        "a fox, 16:9 aspect ratio\n\n[style_strength: medium, quality: standard]"
    )
    assert finalize("nanobanano", aspect_ratio_display="9:16", negative_prompt="blur") == "a fox, 9:16 aspect ratio"
