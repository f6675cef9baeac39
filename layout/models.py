"""Data model of the layout-inference pipeline."""

from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class MarkupLevel(str, Enum):
    """Semantic rank derived from relative font size."""
    TITLE = "title"
    HEADING = "heading"
    SUBHEADING = "subheading"
    BODY = "body"

    @property
    def rank(self) -> int:
        return LEVEL_RANK[self]

    @property
    def marker(self) -> str:
        return LEVEL_MARKERS[self]


LEVEL_RANK = {
    MarkupLevel.BODY: 0,
    MarkupLevel.SUBHEADING: 1,
    MarkupLevel.HEADING: 2,
    MarkupLevel.TITLE: 3,
}

LEVEL_MARKERS = {
    MarkupLevel.TITLE: "# ",
    MarkupLevel.HEADING: "## ",
    MarkupLevel.SUBHEADING: "### ",
    MarkupLevel.BODY: "",
}


class RunState(str, Enum):
    """States of one extraction run."""
    IDLE = "idle"
    LOCATING_SLIDES = "locating_slides"
    COLLECTING_ITEMS = "collecting_items"
    PROCESSING_SLIDES = "processing_slides"
    SORTING = "sorting"
    DONE = "done"


class RegionKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"

    @classmethod
    def parse(cls, value: Any) -> Optional['RegionKind']:
        """Kind for a reply value, or None when it names a kind we do not use."""
        try:
            return cls(str(value).lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class TextItem:
    text: str
    markup: str
    level: MarkupLevel

    def to_dict(self) -> Dict[str, Any]:
        return {'text': self.text, 'markup': self.markup, 'level': self.level.value}


@dataclass(frozen=True)
class FontThresholds:
    """Four non-increasing size cut-points computed for one slide."""
    title: float
    heading: float
    subheading: float
    body: float


@dataclass
class SlideRef:
    """A located slide and its position in the deck."""
    element: Any
    section_number: int
    slide_number: int


@dataclass
class SlideRecord:
    """Extracted text of one slide.

    ``overall_slide_number`` stays 0 until the whole deck has been sorted.
    """
    section_number: int
    slide_number: int
    plain_text: List[str] = field(default_factory=list)
    formatted_text: List[TextItem] = field(default_factory=list)
    overall_slide_number: int = 0

    @property
    def sort_key(self):
        return (self.section_number, self.slide_number)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sectionNumber': self.section_number,
            'slideNumber': self.slide_number,
            'overallSlideNumber': self.overall_slide_number,
            'plainText': list(self.plain_text),
            'formattedText': [item.to_dict() for item in self.formatted_text],
        }


@dataclass(frozen=True)
class PositionedElement:
    """A text element with its slide-absolute position and collection order."""
    node: Any
    x: float
    y: float
    order: int


@dataclass(frozen=True)
class ContentRegion:
    """Region detected by visual analysis, in analysis-space pixels."""
    x: float
    y: float
    width: float
    height: float
    kind: RegionKind
    confidence: float = 1.0

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px <= self.x + self.width and self.y <= py <= self.y + self.height

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional['ContentRegion']:
        """Region from a reply entry; None for kinds other than text and image."""
        kind = RegionKind.parse(data.get('kind', data.get('type', 'text')))
        if kind is None:
            return None
        return cls(
            x=float(data['x']),
            y=float(data['y']),
            width=float(data['width']),
            height=float(data['height']),
            kind=kind,
            confidence=float(data.get('confidence', 1.0)),
        )


@dataclass(frozen=True)
class ColumnBand:
    x: float
    width: float
    content_density: float = 0.0


@dataclass(frozen=True)
class WhitespaceRegion:
    x: float
    width: float


@dataclass(frozen=True)
class ColumnLayout:
    """Column structure detected by visual analysis, in analysis-space pixels."""
    column_count: int
    columns: List[ColumnBand] = field(default_factory=list)
    whitespace_regions: List[WhitespaceRegion] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ColumnLayout':
        columns = [
            ColumnBand(
                x=float(col['x']),
                width=float(col.get('width', 0.0)),
                content_density=float(col.get('contentDensity', col.get('content_density', 0.0))),
            )
            for col in data.get('columns', [])
        ]
        whitespace = [
            WhitespaceRegion(x=float(ws['x']), width=float(ws.get('width', 0.0)))
            for ws in data.get('whitespaceRegions', data.get('whitespace_regions', []))
        ]
        count = data.get('columnCount', data.get('column_count', len(columns)))
        return cls(column_count=int(count), columns=columns, whitespace_regions=whitespace)


@dataclass(frozen=True)
class AnalysisResult:
    """Visual analysis of one slide, with the raster size it was computed on."""
    regions: List[ContentRegion]
    layout: Optional[ColumnLayout]
    analysis_width: float
    analysis_height: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any], analysis_width: float, analysis_height: float) -> 'AnalysisResult':
        layout = data.get('layout')
        regions = [ContentRegion.from_dict(region) for region in data.get('regions', [])]
        skipped = sum(1 for region in regions if region is None)
        if skipped:
            logger.debug(f"Ignoring {skipped} analysis region(s) of unsupported kind")
        return cls(
            regions=[region for region in regions if region is not None],
            layout=ColumnLayout.from_dict(layout) if layout else None,
            analysis_width=float(data.get('width', analysis_width)),
            analysis_height=float(data.get('height', analysis_height)),
        )


@dataclass(frozen=True)
class ProgressEvent:
    current: int
    total: int
    message: str

    def to_message(self) -> Dict[str, Any]:
        return {'type': 'progress', 'current': self.current, 'total': self.total, 'message': self.message}
