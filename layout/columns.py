"""
Column segmentation for slide reading order.

Elements are assigned to left-to-right column bands, ordered top to bottom
inside each band, and emitted one whole column after another. Columns are
never interleaved, even when an element in column 2 sits above one in
column 1.
"""

import logging
from typing import List, Optional, Sequence

from layout.models import ColumnLayout, PositionedElement

logger = logging.getLogger(__name__)


def analysis_boundaries(layout: Optional[ColumnLayout],
                        slide_width: float,
                        analysis_width: Optional[float]) -> Optional[List[float]]:
    """
    Column boundaries in slide space derived from an analysis layout.

    Column x values are scaled by ``slide_width / analysis_width`` and
    sorted, with implicit boundaries at 0 and ``slide_width``.

    Returns:
        Ascending boundary list, or None when the layout has no columns
    """
    if layout is None or not layout.columns or not analysis_width or analysis_width <= 0:
        return None

    scale = slide_width / analysis_width
    inner = sorted({col.x * scale for col in layout.columns if 0 < col.x * scale < slide_width})
    return [0.0] + inner + [float(slide_width)]


def column_for_x(x: float, boundaries: Sequence[float]) -> int:
    """Index of the half-open band ``[low, high)`` containing x; last band otherwise."""
    for index in range(len(boundaries) - 1):
        if boundaries[index] <= x < boundaries[index + 1]:
            return index
    return len(boundaries) - 2


def segment_columns(elements: Sequence[PositionedElement],
                    slide_width: float,
                    split_ratio: float = 0.4,
                    layout: Optional[ColumnLayout] = None,
                    analysis_width: Optional[float] = None) -> List[List[PositionedElement]]:
    """
    Partition elements into columns, each sorted by ascending y.

    Without analysis boundaries there are two bands split at
    ``split_ratio * slide_width``: x strictly below the split is column 1.
    The sort is stable, so equal y keeps collection order.

    Args:
        elements: Positioned text elements of one slide
        slide_width: Slide width in slide units
        split_ratio: Default two-column split as a fraction of width
        layout: Optional analysis column layout
        analysis_width: Width of the raster the layout was computed on

    Returns:
        One list per column, left to right
    """
    boundaries = analysis_boundaries(layout, slide_width, analysis_width)

    if boundaries is None:
        split = slide_width * split_ratio
        columns: List[List[PositionedElement]] = [[], []]
        for element in elements:
            columns[0 if element.x < split else 1].append(element)
    else:
        columns = [[] for _ in range(len(boundaries) - 1)]
        for element in elements:
            columns[column_for_x(element.x, boundaries)].append(element)

    for column in columns:
        column.sort(key=lambda element: element.y)

    return columns


def order_by_columns(elements: Sequence[PositionedElement],
                     slide_width: float,
                     split_ratio: float = 0.4,
                     layout: Optional[ColumnLayout] = None,
                     analysis_width: Optional[float] = None) -> List[PositionedElement]:
    """All of column 1 top to bottom, then all of column 2, and so on."""
    columns = segment_columns(elements, slide_width, split_ratio, layout, analysis_width)
    return [element for column in columns for element in column]
