"""
Per-slide text extraction.

Walks one slide, resolves absolute positions, optionally drops text over
detected images, orders the rest by columns and classifies each element's
font size into a markup level.
"""

import logging
from typing import Any, List, Optional, Tuple

from layout.columns import segment_columns
from layout.font_levels import classify, compute_thresholds, font_size_of, render_markup
from layout.models import AnalysisResult, PositionedElement, TextItem
from layout.positions import absolute_position
from layout.region_filter import column_layout_for, filter_image_regions
from layout.tree_walker import find_text_elements
from shared.config_manager import LayoutSettings

logger = logging.getLogger(__name__)


def slide_size(slide: Any, settings: LayoutSettings) -> Tuple[float, float]:
    """Slide width and height; width falls back to the configured default."""
    width = getattr(slide, 'width', None)
    width = float(width) if width else settings.default_slide_width
    height = getattr(slide, 'height', None)
    height = float(height) if height else width * 9 / 16
    return width, height


def extract_slide_text(slide: Any,
                       settings: Optional[LayoutSettings] = None,
                       analysis: Optional[AnalysisResult] = None,
                       min_region_confidence: float = 0.0) -> Tuple[List[str], List[TextItem]]:
    """
    Extract ordered plain and formatted text from one slide.

    Args:
        slide: Slide handle (root of the element tree)
        settings: Layout constants; defaults when omitted
        analysis: Optional visual analysis for this slide
        min_region_confidence: Minimum confidence of image regions to honor

    Returns:
        (plain_text, formatted_text) in reading order
    """
    settings = settings or LayoutSettings()
    text_nodes = find_text_elements(slide)
    slide_width, slide_height = slide_size(slide, settings)

    positioned = []
    for order, node in enumerate(text_nodes):
        x, y = absolute_position(node, slide)
        positioned.append(PositionedElement(node=node, x=x, y=y, order=order))

    positioned = filter_image_regions(positioned, analysis, slide_width, slide_height, min_region_confidence)

    layout = column_layout_for(analysis)
    analysis_width = analysis.analysis_width if analysis else None
    columns = segment_columns(positioned, slide_width, settings.column_split_ratio, layout, analysis_width)
    ordered = [element for column in columns for element in column]

    font_sizes = [font_size_of(element.node, settings.default_font_size) for element in ordered]
    thresholds = compute_thresholds(font_sizes)

    plain_text: List[str] = []
    formatted_text: List[TextItem] = []
    for element, font_size in zip(ordered, font_sizes):
        text = element.node.characters
        level = classify(font_size, thresholds)
        formatted_text.append(TextItem(text=text, markup=render_markup(text, level), level=level))
        plain_text.append(text)

    if ordered:
        counts = ", ".join(f"Column {index + 1}: {len(column)}" for index, column in enumerate(columns))
        logger.debug(f"Slide text extraction: {len(ordered)} elements, {counts}, Slide width: {slide_width}")
        logger.debug(
            f"Font size thresholds: Title>={thresholds.title:.1f}, Heading>={thresholds.heading:.1f}, "
            f"Subheading>={thresholds.subheading:.1f}, Body>={thresholds.body:.1f}"
        )

    return plain_text, formatted_text
