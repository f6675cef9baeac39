"""
Snapshot documents: a read-only element tree loaded from a JSON export.

Format::

    {
      "name": "Quarterly review",
      "page": {"id": "0:1", "type": "PAGE", "children": [ ...nodes... ]},
      "slideGrid": [["1:2", "1:3"], [{"node": "1:4", "sectionNumber": 2}]]
    }

Nodes carry ``id, name, type, x, y, width, height, visible, locked,
characters, fontSize | fontSizes, fills, children``. ``fontSizes`` is a
list of ``{"start", "end", "size"}`` runs. Grid entries are node ids,
inline node objects, or ``{"node": ..., "sectionNumber", "slideNumber"}``
wrappers. Documents without ``slideGrid`` have no slide grid at all.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from hosts.base import FRAME, MIXED, ExportedImage
from shared.processing_exceptions import UnsupportedDocumentError
from shared.slide_renderer import SlideRenderer

logger = logging.getLogger(__name__)

GRID_NUMBER_KEYS = ('sectionNumber', 'section', 'slideNumber', 'number')


def _color_from_fill(fill: Dict[str, Any]) -> Optional[str]:
    color = fill.get('color')
    if not isinstance(color, dict):
        return None
    r, g, b = (int(round(float(color.get(c, 0)) * 255)) for c in ('r', 'g', 'b'))
    return f"#{r:02x}{g:02x}{b:02x}"


class SnapshotNode:
    """One element of a snapshot tree."""

    def __init__(self, data: Dict[str, Any], parent: Optional['SnapshotNode'] = None):
        self.parent = parent
        self.id = str(data.get('id', ''))
        self.name = data.get('name', '') or ''
        self.type = str(data.get('type', 'FRAME')).upper()
        self.x = float(data.get('x', 0) or 0)
        self.y = float(data.get('y', 0) or 0)
        self.width = data.get('width')
        self.height = data.get('height')
        self.visible = data.get('visible', True) is not False
        self.locked = data.get('locked', False) is True

        fills = data.get('fills') or []
        self.has_image_fill = any(f.get('type') == 'IMAGE' for f in fills if isinstance(f, dict))
        solid = [f for f in fills if isinstance(f, dict) and f.get('type') == 'SOLID']
        self.fill_color = _color_from_fill(solid[0]) if solid else None

        if self.type == 'TEXT':
            self.characters = data.get('characters', '') or ''
            self._font_size = data.get('fontSize')
            self._font_runs = data.get('fontSizes') or []

        raw_children = data.get('children')
        self.children = None
        if raw_children is not None and self.type != 'TEXT':
            self.children = [SnapshotNode(child, self) for child in raw_children]

    def font_size_at(self, start: int, end: int) -> Any:
        """Font size over ``characters[start:end]``; MIXED when it varies."""
        if self._font_runs:
            sizes = {
                run.get('size') for run in self._font_runs
                if run.get('start', 0) < end and run.get('end', 0) > start
            }
            if len(sizes) == 1:
                return sizes.pop()
            return MIXED if sizes else None
        if self._font_size == 'MIXED':
            return MIXED
        return self._font_size

    def iter_tree(self) -> Iterator['SnapshotNode']:
        yield self
        for child in self.children or []:
            yield from child.iter_tree()

    def __repr__(self) -> str:
        return f"SnapshotNode({self.type} {self.id!r} {self.name!r})"


class SnapshotDocument:
    """A snapshot without a slide grid; slides are found by frame name."""

    def __init__(self, page: SnapshotNode, name: str = 'snapshot'):
        self.page = page
        self.name = name
        self._renderer = SlideRenderer()
        self._by_id = {node.id: node for node in page.iter_tree() if node.id}

    def node_by_id(self, node_id: str) -> Optional[SnapshotNode]:
        return self._by_id.get(node_id)

    def find_frames(self) -> List[SnapshotNode]:
        """All frames on the page, at any depth, in tree order."""
        return [node for node in self.page.iter_tree() if node.type == FRAME and node is not self.page]

    def export_image(self, slide: SnapshotNode, max_width: int) -> ExportedImage:
        return self._renderer.export(slide, max_width)


class SlidesSnapshotDocument(SnapshotDocument):
    """A snapshot with a 2D slide grid."""

    def __init__(self, page: SnapshotNode, grid: List[Any], name: str = 'snapshot'):
        super().__init__(page, name)
        self._raw_grid = grid

    def get_slide_grid(self) -> List[List[Any]]:
        """Resolve grid entries into slide handles, keeping explicit numbers."""
        grid = []
        for row in self._raw_grid:
            if not isinstance(row, list):
                grid.append(row)
                continue
            grid.append([self._resolve_entry(entry) for entry in row])
        return grid

    def _resolve_entry(self, entry: Any) -> Any:
        if entry is None:
            return None
        if isinstance(entry, str):
            node = self.node_by_id(entry)
            if node is None:
                logger.warning(f"Slide grid refers to unknown node {entry!r}")
            return node
        if isinstance(entry, dict):
            target = entry.get('node', entry)
            if isinstance(target, str):
                node = self.node_by_id(target)
            else:
                node = self.node_by_id(str(target.get('id', ''))) or SnapshotNode(target, self.page)
            if node is None:
                logger.warning(f"Slide grid refers to unknown node {target!r}")
                return None
            resolved = {key: entry[key] for key in GRID_NUMBER_KEYS if key in entry}
            resolved['node'] = node
            return resolved
        return entry


def load_snapshot(source: Union[str, Path, Dict[str, Any]]) -> SnapshotDocument:
    """
    Build a snapshot document from a JSON file or an already parsed dict.

    Raises:
        UnsupportedDocumentError: If the file is not UTF-8 JSON or a node
            carries values of the wrong type
    """
    label = 'snapshot.json' if isinstance(source, dict) else str(source)
    if isinstance(source, dict):
        data = source
        default_name = 'snapshot'
    else:
        path = Path(source)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except ValueError as e:
            # JSONDecodeError and UnicodeDecodeError
            raise UnsupportedDocumentError(path, cause=e)
        default_name = path.stem

    if not isinstance(data, dict) or not isinstance(data.get('page'), dict):
        raise UnsupportedDocumentError(label)

    try:
        page = SnapshotNode(data['page'])
    except (ValueError, TypeError, AttributeError) as e:
        raise UnsupportedDocumentError(label, cause=e)
    if page.children is None:
        page.children = []
    name = data.get('name') or default_name

    if 'slideGrid' in data:
        logger.debug(f"Loaded snapshot '{name}' with a slide grid")
        return SlidesSnapshotDocument(page, data.get('slideGrid') or [], name=name)

    logger.debug(f"Loaded snapshot '{name}' without a slide grid")
    return SnapshotDocument(page, name=name)
