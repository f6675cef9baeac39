"""Capability interfaces the layout pipeline expects from a host document.

The pipeline never binds to a concrete document API. It reads a narrow,
read-only view of the element tree (geometry, visibility, lock state,
children, text and font size) plus three document-level services: an
optional slide grid, frame enumeration, and image export.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Sequence

TEXT = "TEXT"
FRAME = "FRAME"
GROUP = "GROUP"
SLIDE = "SLIDE"
IMAGE = "IMAGE"
SHAPE = "SHAPE"


class _Mixed:
    """Sentinel returned by font_size_at when the range has several sizes."""

    def __repr__(self) -> str:
        return "MIXED"


MIXED = _Mixed()


class SceneNode(Protocol):
    """Read-only view of one element in the host tree.

    Containers additionally expose ``children``; text leaves expose
    ``characters`` and ``font_size_at``.
    """

    id: str
    name: str
    type: str
    x: float
    y: float
    width: Optional[float]
    height: Optional[float]
    visible: bool
    locked: bool
    parent: Optional["SceneNode"]


class TextNode(SceneNode, Protocol):
    characters: str

    def font_size_at(self, start: int, end: int) -> Any:
        """Font size of characters[start:end], or MIXED."""
        ...


@dataclass(frozen=True)
class ExportedImage:
    """Raw raster produced by image export."""
    data: bytes
    width: int
    height: int
    format: str = "PNG"


class HostDocument(Protocol):
    """Document-level services.

    ``get_slide_grid`` is optional: documents that are not slide-structured
    simply do not define it.
    """

    name: str

    def find_frames(self) -> Sequence[SceneNode]:
        ...

    def export_image(self, slide: SceneNode, max_width: int) -> ExportedImage:
        ...


def children_of(node: Any) -> List[Any]:
    children = getattr(node, "children", None)
    return list(children) if children is not None else []


def is_text(node: Any) -> bool:
    return getattr(node, "type", None) == TEXT
