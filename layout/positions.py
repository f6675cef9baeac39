"""Slide-absolute positions from parent-relative offsets."""

import logging
from typing import Any, Tuple

logger = logging.getLogger(__name__)


def absolute_position(node: Any, slide: Any) -> Tuple[float, float]:
    """
    Position of ``node`` in slide space.

    Sums the node's local offset with every ancestor's offset up to, but
    not including, ``slide``. Ascent stops at the slide, at a missing
    parent, or when an ancestor repeats.
    """
    x = float(getattr(node, 'x', 0) or 0)
    y = float(getattr(node, 'y', 0) or 0)

    seen = {id(node)}
    current = getattr(node, 'parent', None)
    while current is not None and current is not slide:
        if id(current) in seen:
            logger.warning(f"Cyclic parent chain at {getattr(current, 'id', '?')}, stopping ascent")
            break
        seen.add(id(current))
        x += float(getattr(current, 'x', 0) or 0)
        y += float(getattr(current, 'y', 0) or 0)
        current = getattr(current, 'parent', None)

    return x, y

