"""
Font-Level Classifier
=====================

Clusters the font sizes observed on one slide into four semantic levels
(title, heading, subheading, body) and renders each text with an outline
markup prefix.

Thresholds are relative to the sizes on the slide itself. Decks mix type
scales freely, so nothing here uses an absolute notion of a large or small
size, and thresholds are never carried from one slide to the next.
"""

import logging
import math
from numbers import Number
from typing import Any, Iterable, List

from layout.models import FontThresholds, MarkupLevel

logger = logging.getLogger(__name__)

DEFAULT_FONT_SIZE = 16.0

# Used when a slide has no text at all
EMPTY_SLIDE_THRESHOLDS = FontThresholds(title=32, heading=24, subheading=18, body=14)


def font_size_of(node: Any, default: float = DEFAULT_FONT_SIZE) -> float:
    """
    Representative font size of a text element: the size of its first character.

    Falls back to ``default`` when the text is empty, the size is mixed or
    not a positive number, or the host raises while reading it.
    """
    try:
        if getattr(node, 'characters', ''):
            size = node.font_size_at(0, 1)
            if isinstance(size, Number) and not isinstance(size, bool) and size > 0:
                return float(size)
    except Exception as e:
        logger.warning(f"Could not get font size from text element {getattr(node, 'id', '?')}: {e}")

    return default


def _percentile_thresholds(sorted_sizes: List[float]) -> FontThresholds:
    """Rank-based cut points over a descending size list."""
    n = len(sorted_sizes)
    return FontThresholds(
        title=sorted_sizes[math.floor(n * 0.25)],
        heading=sorted_sizes[math.floor(n * 0.5)],
        subheading=sorted_sizes[math.floor(n * 0.75)],
        body=sorted_sizes[-1],
    )


def compute_thresholds(font_sizes: Iterable[float]) -> FontThresholds:
    """
    Derive the four level thresholds from the sizes on one slide.

    Args:
        font_sizes: One representative size per text element

    Returns:
        Non-increasing thresholds (title >= heading >= subheading >= body)
    """
    sorted_sizes = sorted(font_sizes, reverse=True)
    if not sorted_sizes:
        return EMPTY_SLIDE_THRESHOLDS

    max_size = sorted_sizes[0]
    min_size = sorted_sizes[-1]

    if max_size - min_size < 2:
        return FontThresholds(
            title=max_size,
            heading=max_size * 0.75,
            subheading=max_size * 0.6,
            body=max_size * 0.5,
        )

    unique_sizes = sorted(set(sorted_sizes), reverse=True)

    if len(unique_sizes) >= 4:
        return FontThresholds(
            title=unique_sizes[0],
            heading=unique_sizes[1],
            subheading=unique_sizes[2],
            body=unique_sizes[3],
        )

    if len(unique_sizes) == 3:
        return FontThresholds(
            title=unique_sizes[0],
            heading=unique_sizes[1],
            subheading=unique_sizes[2],
            body=unique_sizes[2] * 0.8,
        )

    if len(unique_sizes) == 2:
        return FontThresholds(
            title=unique_sizes[0],
            heading=unique_sizes[1],
            subheading=unique_sizes[1] * 0.85,
            body=unique_sizes[1] * 0.7,
        )

    return _percentile_thresholds(sorted_sizes)


def classify(font_size: float, thresholds: FontThresholds) -> MarkupLevel:
    """
    Level for a size, cutting at midpoints between adjacent thresholds.

    A size at or above ``(title + heading) / 2`` is a title, and so on down.
    """
    if font_size >= (thresholds.title + thresholds.heading) / 2:
        return MarkupLevel.TITLE
    if font_size >= (thresholds.heading + thresholds.subheading) / 2:
        return MarkupLevel.HEADING
    if font_size >= (thresholds.subheading + thresholds.body) / 2:
        return MarkupLevel.SUBHEADING
    return MarkupLevel.BODY


def render_markup(text: str, level: MarkupLevel) -> str:
    """Prefix text with the outline marker of its level."""
    return f"{level.marker}{text}"
