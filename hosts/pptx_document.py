#!/usr/bin/env python3
"""
PowerPoint Host Document
========================

Presents a .pptx file (via python-pptx) as a host document for the layout
pipeline:

- every slide is a slide handle whose children are its shapes
- presentation sections form the slide grid (one row of all slides when
  the deck defines no sections)
- slide names are the frame names used by name-based detection
- group shapes are containers; child offsets are made group-relative and
  scaled out of the group's child coordinate space
- shapes with non-empty text frames are text leaves
- ``cNvPr/@hidden`` marks hidden shapes, ``noSelect``/``noMove`` locks mark
  locked shapes, and ``show="0"`` marks hidden slides

All geometry is in points.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
from zipfile import BadZipFile

from pptx import Presentation
from pptx.enum.shapes import PP_PLACEHOLDER
from pptx.exc import PackageNotFoundError
from pptx.oxml.ns import qn

from hosts.base import GROUP, IMAGE, MIXED, SHAPE, SLIDE, TEXT, ExportedImage
from shared.processing_exceptions import UnsupportedDocumentError
from shared.slide_renderer import SlideRenderer

logger = logging.getLogger(__name__)

EMU_PER_POINT = 12700
P14_NS = 'http://schemas.microsoft.com/office/powerpoint/2010/main'
TRUE_VALUES = ('1', 'true')
TITLE_PLACEHOLDERS = (PP_PLACEHOLDER.TITLE, PP_PLACEHOLDER.CENTER_TITLE, PP_PLACEHOLDER.VERTICAL_TITLE)


def emu_to_pt(value: Optional[int]) -> float:
    return (int(value) / EMU_PER_POINT) if value is not None else 0.0


def _first_cnvpr(element):
    return next(element.iter(qn('p:cNvPr')), None)


def is_hidden_element(element) -> bool:
    c_nv_pr = _first_cnvpr(element)
    return c_nv_pr is not None and c_nv_pr.get('hidden', '').lower() in TRUE_VALUES


def is_locked_element(element) -> bool:
    """True when the shape's own locks forbid selecting or moving it."""
    nv_props = element[0] if len(element) else None
    if nv_props is None:
        return False
    for locks in nv_props.iter():
        tag = locks.tag if isinstance(locks.tag, str) else ''
        if tag.endswith('Locks'):
            if locks.get('noSelect', '').lower() in TRUE_VALUES or locks.get('noMove', '').lower() in TRUE_VALUES:
                return True
    return False


def _def_rpr_size(container) -> Optional[float]:
    """Level-1 default run size (hundredths of a point) under a list style."""
    if container is None:
        return None
    for lvl in container.iter(qn('a:lvl1pPr')):
        def_rpr = lvl.find(qn('a:defRPr'))
        if def_rpr is not None and def_rpr.get('sz'):
            return int(def_rpr.get('sz')) / 100
    return None


def _group_transform(element) -> Tuple[int, int, float, float]:
    """Child offset and scale of a group's child coordinate space."""
    xfrm = element.find(f"{qn('p:grpSpPr')}/{qn('a:xfrm')}")
    if xfrm is None:
        return 0, 0, 1.0, 1.0

    def pair(tag, a, b):
        node = xfrm.find(qn(tag))
        return (int(node.get(a, 0)), int(node.get(b, 0))) if node is not None else (0, 0)

    ch_off_x, ch_off_y = pair('a:chOff', 'x', 'y')
    ext_cx, ext_cy = pair('a:ext', 'cx', 'cy')
    ch_ext_cx, ch_ext_cy = pair('a:chExt', 'cx', 'cy')
    scale_x = ext_cx / ch_ext_cx if ch_ext_cx else 1.0
    scale_y = ext_cy / ch_ext_cy if ch_ext_cy else 1.0
    return ch_off_x, ch_off_y, scale_x, scale_y


class PptxNode:
    """A python-pptx shape seen through the host node interface."""

    def __init__(self, shape, slide_node: 'PptxSlide', parent: Any,
                 origin: Tuple[int, int] = (0, 0), scale: Tuple[float, float] = (1.0, 1.0)):
        self.shape = shape
        self.slide_node = slide_node
        self.parent = parent
        element = shape._element

        self.id = f"{slide_node.id}:{shape.shape_id}"
        self.name = shape.name or ''
        self.visible = not is_hidden_element(element)
        self.locked = is_locked_element(element)

        left = shape.left if shape.left is not None else origin[0]
        top = shape.top if shape.top is not None else origin[1]
        self.x = emu_to_pt((left - origin[0]) * scale[0])
        self.y = emu_to_pt((top - origin[1]) * scale[1])
        self.width = emu_to_pt((shape.width or 0) * scale[0])
        self.height = emu_to_pt((shape.height or 0) * scale[1])

        self.children = None
        self.has_image_fill = element.find(f"{qn('p:spPr')}/{qn('a:blipFill')}") is not None
        self.fill_color = None

        if element.tag == qn('p:grpSp'):
            self.type = GROUP
            ch_x, ch_y, sx, sy = _group_transform(element)
            child_scale = (scale[0] * sx, scale[1] * sy)
            self.children = [
                PptxNode(child, slide_node, self, origin=(ch_x, ch_y), scale=child_scale)
                for child in shape.shapes
            ]
        elif element.tag == qn('p:pic'):
            self.type = IMAGE
        elif shape.has_text_frame and shape.text_frame.text.strip():
            self.type = TEXT
            self.characters = shape.text_frame.text
        else:
            self.type = SHAPE
            self.fill_color = self._solid_fill()

    @property
    def image_blob(self) -> Optional[bytes]:
        if self.type != IMAGE:
            return None
        try:
            return self.shape.image.blob
        except (AttributeError, KeyError, ValueError) as e:
            logger.debug(f"No image data for {self.id}: {e}")
            return None

    def _solid_fill(self) -> Optional[str]:
        try:
            fill = self.shape.fill
            if fill.type is not None and fill.fore_color and fill.fore_color.rgb is not None:
                return f"#{fill.fore_color.rgb}"
        except (AttributeError, TypeError, ValueError) as e:
            logger.debug(f"No solid fill color for {self.id}: {e}")
        return None

    def _run_segments(self) -> List[Tuple[int, int, Optional[float]]]:
        segments = []
        offset = 0
        for index, paragraph in enumerate(self.shape.text_frame.paragraphs):
            if index:
                offset += 1
            paragraph_size = paragraph.font.size
            for run in paragraph.runs:
                size = run.font.size if run.font.size is not None else paragraph_size
                length = len(run.text)
                if length:
                    segments.append((offset, offset + length, size.pt if size is not None else None))
                offset += length
        return segments

    def inherited_font_size(self) -> Optional[float]:
        """Size from the shape's list style, its placeholder chain, then the master text styles."""
        element = self.shape._element
        size = _def_rpr_size(element.find(f"{qn('p:txBody')}/{qn('a:lstStyle')}"))
        if size:
            return size

        if not self.shape.is_placeholder:
            return _def_rpr_size(self.slide_node.master_style('otherStyle'))

        base = getattr(self.shape, '_base_placeholder', None)
        while base is not None:
            size = _def_rpr_size(base._element.find(f"{qn('p:txBody')}/{qn('a:lstStyle')}"))
            if size:
                return size
            base = getattr(base, '_base_placeholder', None)

        try:
            is_title = self.shape.placeholder_format.type in TITLE_PLACEHOLDERS
        except ValueError:
            is_title = False
        return _def_rpr_size(self.slide_node.master_style('titleStyle' if is_title else 'bodyStyle'))

    def font_size_at(self, start: int, end: int) -> Any:
        """Point size over ``characters[start:end]``; MIXED when runs differ."""
        default = None
        sizes = set()
        for seg_start, seg_end, size in self._run_segments():
            if seg_start < end and seg_end > start:
                if size is None:
                    if default is None:
                        default = self.inherited_font_size()
                    size = default
                sizes.add(size)

        if len(sizes) > 1:
            return MIXED
        if sizes:
            return sizes.pop()
        return self.inherited_font_size()

    def __repr__(self) -> str:
        return f"PptxNode({self.type} {self.id!r} {self.name!r})"


class PptxSlide:
    """A slide handle; its children are the slide's top-level shapes."""

    type = SLIDE
    x = 0.0
    y = 0.0
    locked = False
    parent = None

    def __init__(self, slide, index: int, width: float, height: float):
        self.slide = slide
        self.index = index
        self.id = str(slide.slide_id)
        self.name = slide.name or ''
        self.width = width
        self.height = height
        self.visible = slide._element.get('show', '1').lower() not in ('0', 'false')
        self._children: Optional[List[PptxNode]] = None

    @property
    def children(self) -> List[PptxNode]:
        if self._children is None:
            self._children = [PptxNode(shape, self, None) for shape in self.slide.shapes]
        return self._children

    def master_style(self, style_name: str):
        master = self.slide.slide_layout.slide_master
        return master._element.find(f"{qn('p:txStyles')}/{qn('p:' + style_name)}")

    def __repr__(self) -> str:
        return f"PptxSlide({self.index + 1} {self.name!r})"


class PptxDocument:
    """A .pptx presentation as a host document."""

    def __init__(self, source: Union[str, Path, Any], name: Optional[str] = None):
        if isinstance(source, (str, Path)):
            path = Path(source)
            if path.suffix.lower() != '.pptx':
                raise UnsupportedDocumentError(path)
            try:
                self.presentation = Presentation(str(path))
            except (PackageNotFoundError, BadZipFile, KeyError) as e:
                raise UnsupportedDocumentError(path, cause=e)
            self.name = name or path.stem
        else:
            self.presentation = source
            self.name = name or 'presentation'

        width = emu_to_pt(self.presentation.slide_width) if self.presentation.slide_width else None
        height = emu_to_pt(self.presentation.slide_height) if self.presentation.slide_height else None
        self.slides = [
            PptxSlide(slide, index, width, height)
            for index, slide in enumerate(self.presentation.slides)
        ]
        logger.debug(f"Opened presentation '{self.name}' with {len(self.slides)} slides")

    def sections(self) -> List[Dict[str, Any]]:
        """Sections as ``{"name", "slide_ids"}`` from the p14 section list."""
        root = self.presentation._element
        sections = []
        for section in root.iter(f"{{{P14_NS}}}section"):
            slide_ids = [sld_id.get('id') for sld_id in section.iter(f"{{{P14_NS}}}sldId")]
            sections.append({'name': section.get('name', ''), 'slide_ids': slide_ids})
        return sections

    def get_slide_grid(self) -> List[List[PptxSlide]]:
        """One row per section; one row of every slide when there are no sections."""
        sections = self.sections()
        if not sections:
            return [list(self.slides)]

        by_id = {slide.id: slide for slide in self.slides}
        grid = []
        for section in sections:
            row = [by_id[slide_id] for slide_id in section['slide_ids'] if slide_id in by_id]
            grid.append(row)
        return grid

    def find_frames(self) -> List[PptxSlide]:
        """Slides double as named frames for name-based detection."""
        return list(self.slides)

    def export_image(self, slide: PptxSlide, max_width: int) -> ExportedImage:
        return SlideRenderer().export(slide, max_width)
