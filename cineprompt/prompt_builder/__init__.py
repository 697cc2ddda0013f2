"""Prompt Builder: parameter resolution, composition, and per-model finalisation."""
from __future__ import annotations

from .compiler import EMPTY_PROMPT_MESSAGE, generate_prompt
from .strategies import get_strategy, is_model_supported, register_strategy, supported_models

__all__ = [
    "EMPTY_PROMPT_MESSAGE",
    "generate_prompt",
    "get_strategy",
    "is_model_supported",
    "register_strategy",
    "supported_models",
]
