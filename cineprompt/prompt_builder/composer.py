"""Prompt composition in tag and natural-language forms."""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional

from .models import ResolvedComponents

_TRAILING_PUNCTUATION = re.compile(r"[.!?,;:]+$")
_WHITESPACE = re.compile(r"\s+")


def deduplicate_keywords(keyword_strings: Iterable[Optional[str]]) -> str:
    """Merge comma-separated keyword strings, keeping the most specific of overlapping terms.

    Terms are compared lowercased with whitespace collapsed. An exact repeat, or a
    term contained in one already kept, is dropped; a term containing a kept one
    replaces it (``golden hour`` gives way to ``golden hour lighting``).
    """

    seen: Dict[str, str] = {}
    for text in keyword_strings:
        if not text:
            continue
        for keyword in (part.strip() for part in text.split(",")):
            if not keyword:
                continue
            normalized = _WHITESPACE.sub(" ", keyword.lower())
            add = True
            replace: Optional[str] = None
            for existing in seen:
                if existing == normalized or normalized in existing:
                    add = False
                    break
                if existing in normalized:
                    replace = existing
                    break
            if replace is not None:
                del seen[replace]
            if add:
                seen[normalized] = keyword
    return ", ".join(seen.values())


def strip_trailing_punctuation(text: str) -> str:
    return _TRAILING_PUNCTUATION.sub("", text).strip()


def compose_tag_prompt(components: ResolvedComponents) -> str:
    parts: List[Optional[str]] = []
    if components.subject:
        parts.append(components.subject)
    if components.characters:
        parts.append(f"[character: {', '.join(components.characters)}]")
    parts.extend([components.gaze, components.pose, components.position, components.location])
    parts.append(
        deduplicate_keywords(
            [components.visual_preset, components.atmosphere, components.lighting, components.director]
        )
    )
    if components.color_palette:
        parts.append(f"color palette: {components.color_palette}")
    parts.append(components.camera)
    if components.lens:
        parts.append(f"{components.lens} lens")
    parts.extend([components.shot, components.dof])
    return ", ".join(part for part in parts if part)


def _main_sentence(components: ResolvedComponents) -> str:
    sentence = ""
    characters = "; ".join(components.characters)
    if components.subject and characters:
        sentence = f"{strip_trailing_punctuation(components.subject)}. The character: {characters}"
    elif components.subject:
        sentence = strip_trailing_punctuation(components.subject)
    elif characters:
        sentence = f"Character description: {characters}"

    for clause in (components.gaze, components.pose, components.position):
        if clause:
            sentence = f"{sentence}, {clause}" if sentence else clause
    if components.location:
        sentence = f"{sentence}, set {components.location}" if sentence else f"Set {components.location}"
    return f"{sentence}." if sentence else ""


def _technical_sentence(components: ResolvedComponents) -> str:
    elements: List[str] = []
    if components.camera:
        lowered = components.camera.lower()
        if lowered.startswith("shot on ") or lowered.startswith("recorded on "):
            elements.append(components.camera)
        else:
            elements.append(f"shot on {components.camera}")
    if components.lens:
        elements.append(f"with a {components.lens} lens")
    if components.shot:
        elements.append(f"framed as a {components.shot}")
    if components.dof:
        elements.append(f"with {components.dof}")
    return f"{', '.join(elements)}." if elements else ""


def _compose_safe_prompt(components: ResolvedComponents) -> str:
    """Flat form without "In the style of" attribution; director keywords join the style terms."""

    parts: List[Optional[str]] = []
    if components.subject:
        parts.append(strip_trailing_punctuation(components.subject))
    if components.characters:
        parts.append(", ".join(components.characters))
    parts.extend([components.gaze, components.pose, components.position])
    if components.location:
        parts.append(f"set {components.location}")
    parts.append(deduplicate_keywords([components.atmosphere, components.visual_preset, components.director]))
    # Lighting is its own sentence and may repeat an atmosphere term, as in the natural form.
    parts.append(components.lighting)
    if components.color_palette:
        parts.append(f"Color palette: {components.color_palette}")
    parts.append(components.camera)
    if components.lens:
        parts.append(f"{components.lens} lens")
    parts.extend([components.shot, components.dof])
    return ". ".join(part for part in parts if part)


def compose_natural_prompt(components: ResolvedComponents, safe_mode: bool = False) -> str:
    if safe_mode:
        return _compose_safe_prompt(components)

    sentences: List[str] = []
    main = _main_sentence(components)
    if main:
        sentences.append(main)
    style = [text for text in (components.atmosphere, components.visual_preset) if text]
    if style:
        sentences.append(f"The scene has {' with '.join(style)}.")
    if components.lighting:
        sentences.append(f"Lit with {components.lighting}.")
    if components.color_palette:
        sentences.append(f"Using a color palette of {components.color_palette}.")
    technical = _technical_sentence(components)
    if technical:
        sentences.append(technical)
    if components.director:
        sentences.append(f"In the style of {components.director}.")
    return " ".join(sentences)
