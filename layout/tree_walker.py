"""Collect visible, unlocked text leaves from a slide's element tree."""

import logging
from typing import Any, List, Optional

from hosts.base import children_of, is_text

logger = logging.getLogger(__name__)


def find_text_elements(root: Any, result: Optional[List[Any]] = None) -> List[Any]:
    """
    Depth-first collection of text leaves under ``root``.

    A node is kept only if it and every ancestor up to ``root`` are not
    hidden. Lock state is checked on the text element alone; a locked
    container does not hide its unlocked text. Text elements are leaves and
    are never descended into. Nodes without children are treated as leaves.

    Args:
        root: Slide (or any container) to walk
        result: Optional list to append to

    Returns:
        Text elements in traversal order
    """
    if result is None:
        result = []

    if getattr(root, 'visible', True) is False:
        return result

    if is_text(root):
        if getattr(root, 'locked', False) is not True:
            result.append(root)
        return result

    for child in children_of(root):
        find_text_elements(child, result)

    return result
