#!/usr/bin/env python3
"""
Slide Renderer
==============

Rasterizes a slide's element tree into a small PNG for visual analysis.

The picture is schematic, not faithful: image elements become dark filled
blocks (or the picture itself when its bytes are available), text becomes
light bars, other shapes become outlined boxes in their fill color. That
is enough for a region/column detector and needs no office suite.
"""

import io
import logging
from typing import Any, Optional, Tuple

from PIL import Image, ImageDraw

from hosts.base import IMAGE, ExportedImage, children_of, is_text
from layout.positions import absolute_position
from layout.region_filter import analysis_dimensions

logger = logging.getLogger(__name__)

IMAGE_BLOCK_COLOR = (90, 90, 90)
TEXT_BAR_COLOR = (205, 205, 205)
SHAPE_OUTLINE_COLOR = (160, 160, 160)


def is_image_node(node: Any) -> bool:
    return getattr(node, 'type', None) == IMAGE or bool(getattr(node, 'has_image_fill', False))


class SlideRenderer:
    """
    Renders slide element trees to PIL images.
    """

    def __init__(self, background: str = 'white'):
        self.background = background

    def render(self, slide: Any, max_width: int) -> Image.Image:
        """
        Render a slide to a PIL Image.

        Args:
            slide: Slide handle with width/height and a children tree
            max_width: Maximum width of the canvas in pixels

        Returns:
            RGB image
        """
        slide_width = float(getattr(slide, 'width', 0) or 0)
        slide_height = float(getattr(slide, 'height', 0) or 0)
        if slide_height <= 0:
            slide_height = slide_width * 9 / 16
        width_px, height_px = analysis_dimensions(slide_width, slide_height, max_width)
        scale = width_px / slide_width if slide_width > 0 else 1.0
        width_px, height_px = max(1, width_px), max(1, height_px)

        canvas = Image.new('RGB', (width_px, height_px), self.background)
        draw = ImageDraw.Draw(canvas)

        for child in children_of(slide):
            self._render_node(canvas, draw, child, slide, scale)

        return canvas

    def export(self, slide: Any, max_width: int) -> ExportedImage:
        """Render and encode as PNG."""
        image = self.render(slide, max_width)
        buffer = io.BytesIO()
        image.save(buffer, format='PNG')
        return ExportedImage(data=buffer.getvalue(), width=image.width, height=image.height, format='PNG')

    def _render_node(self, canvas: Image.Image, draw: ImageDraw.ImageDraw, node: Any, slide: Any, scale: float):
        if getattr(node, 'visible', True) is False:
            return

        box = self._box(node, slide, scale)
        if box is not None:
            try:
                if is_image_node(node):
                    self._render_image(canvas, draw, node, box)
                elif is_text(node):
                    self._render_text(draw, box)
                elif not children_of(node):
                    self._render_shape(draw, node, box)
            except (OSError, ValueError) as e:
                logger.debug(f"Failed to render element {getattr(node, 'id', '?')}: {e}")

        if not is_text(node):
            for child in children_of(node):
                self._render_node(canvas, draw, child, slide, scale)

    def _box(self, node: Any, slide: Any, scale: float) -> Optional[Tuple[int, int, int, int]]:
        width = float(getattr(node, 'width', 0) or 0)
        height = float(getattr(node, 'height', 0) or 0)
        if width <= 0 or height <= 0:
            return None
        x, y = absolute_position(node, slide)
        left, top = int(x * scale), int(y * scale)
        right = max(left + 1, int((x + width) * scale))
        bottom = max(top + 1, int((y + height) * scale))
        return left, top, right, bottom

    def _render_image(self, canvas: Image.Image, draw: ImageDraw.ImageDraw, node: Any, box):
        blob = getattr(node, 'image_blob', None)
        if blob:
            with Image.open(io.BytesIO(blob)) as picture:
                picture = picture.convert('RGB').resize((box[2] - box[0], box[3] - box[1]))
                canvas.paste(picture, (box[0], box[1]))
                return
        draw.rectangle(box, fill=IMAGE_BLOCK_COLOR)

    def _render_text(self, draw: ImageDraw.ImageDraw, box):
        left, top, right, bottom = box
        bar_height = max(1, (bottom - top) // 3)
        y = top
        while y < bottom:
            draw.rectangle([left, y, right, min(bottom, y + bar_height)], fill=TEXT_BAR_COLOR)
            y += bar_height * 2

    def _render_shape(self, draw: ImageDraw.ImageDraw, node: Any, box):
        fill = getattr(node, 'fill_color', None)
        draw.rectangle(box, fill=fill, outline=SHAPE_OUTLINE_COLOR, width=1)
