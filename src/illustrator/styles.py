"""Art style tags and the keyword descriptors that bias the model toward them."""

from typing import Mapping

from illustrator.config import DEFAULT_STYLE_DESCRIPTORS


def available_styles(descriptors: Mapping[str, str] | None = None) -> list[str]:
    """Style tags a picker should offer, in table order."""
    return list(descriptors if descriptors is not None else DEFAULT_STYLE_DESCRIPTORS)


def describe_style(style: str, descriptors: Mapping[str, str] | None = None) -> str:
    """
    Returns the descriptor phrase for a style tag.

    Unknown tags (and an empty descriptor entry) fall back to the tag itself.
    """
    table = descriptors if descriptors is not None else DEFAULT_STYLE_DESCRIPTORS
    return table.get(style) or style


def decorate_prompt(prompt: str, descriptor: str) -> str:
    return f"({prompt}), {descriptor} style, high quality, detailed"
