"""Keyword based content review."""

import re

from agent_engine.core.domain.models import ReviewConfig


def contains_keyword(text: str, keywords: tuple[str, ...] | list[str]) -> bool:
    """Case-insensitive substring match against any keyword."""
    lowered = text.lower()
    return any(keyword.lower() in lowered for keyword in keywords if keyword)


def mask_keywords(text: str, keywords: tuple[str, ...] | list[str]) -> str:
    """Replace every keyword occurrence (case-insensitive) with "**"."""
    for keyword in keywords:
        if not keyword:
            continue
        text = re.sub(re.escape(keyword), "**", text, flags=re.IGNORECASE)
    return text


def review_output(text: str, config: ReviewConfig) -> str:
    """Apply output review when enabled, otherwise return text unchanged."""
    if not text or not config.reviews_outputs:
        return text
    return mask_keywords(text, config.keywords)
