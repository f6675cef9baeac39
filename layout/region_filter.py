"""
Visual-Region Filter
====================

Drops text elements that sit on top of a detected image (captions baked
into screenshots, labels inside diagrams) using an external visual
analysis of the rendered slide. Without analysis every element passes.
"""

import logging
from typing import Any, List, Optional, Sequence, Tuple

from layout.models import AnalysisResult, ColumnLayout, PositionedElement, RegionKind

logger = logging.getLogger(__name__)


def analysis_dimensions(slide_width: float, slide_height: float, target_width: int = 400) -> Tuple[int, int]:
    """
    Raster size used for analysis: at most ``target_width`` wide, never upscaled.
    """
    if slide_width <= 0:
        return 0, 0
    scale = min(1.0, target_width / slide_width)
    return max(1, round(slide_width * scale)), max(1, round(slide_height * scale))


def filter_image_regions(elements: Sequence[PositionedElement],
                         analysis: Optional[AnalysisResult],
                         slide_width: float,
                         slide_height: float,
                         min_confidence: float = 0.0) -> List[PositionedElement]:
    """
    Remove elements whose center falls inside an image region.

    The element's slide-space center is scaled into analysis space
    (``analysis_width / slide_width``, ``analysis_height / slide_height``)
    before testing against regions.

    Args:
        elements: Positioned text elements
        analysis: Visual analysis for the slide, or None
        slide_width: Slide width in slide units
        slide_height: Slide height in slide units
        min_confidence: Image regions below this confidence are ignored

    Returns:
        Surviving elements, order preserved
    """
    if analysis is None:
        return list(elements)

    image_regions = [
        region for region in analysis.regions
        if region.kind == RegionKind.IMAGE and region.confidence >= min_confidence
    ]
    if not image_regions or slide_width <= 0 or slide_height <= 0:
        return list(elements)

    scale_x = analysis.analysis_width / slide_width
    scale_y = analysis.analysis_height / slide_height

    kept = []
    for element in elements:
        cx, cy = _center(element)
        ax, ay = cx * scale_x, cy * scale_y
        if any(region.contains(ax, ay) for region in image_regions):
            logger.debug(f"Excluding text element {getattr(element.node, 'id', '?')} inside image region")
            continue
        kept.append(element)

    return kept


def column_layout_for(analysis: Optional[AnalysisResult]) -> Optional[ColumnLayout]:
    """Column layout supplied by the analysis, if any."""
    if analysis is None:
        return None
    return analysis.layout


def _center(element: PositionedElement) -> Tuple[float, float]:
    node: Any = element.node
    width = float(getattr(node, 'width', 0) or 0)
    height = float(getattr(node, 'height', 0) or 0)
    return element.x + width / 2, element.y + height / 2
