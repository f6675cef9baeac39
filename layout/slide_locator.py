"""
Slide Locator
=============

Finds the slides of a document and their (section, slide) numbers.

Two sources are supported:

1. The document's slide grid: a 2D sequence of sections, each a sequence of
   slide entries. Numbers come from the entry when it carries them, else from
   its row/column position.
2. Frame naming: every frame on the page whose name matches one of a small
   set of patterns such as "Section 2 - Slide 3", "S2.3", "2.3" or "Slide 3".

Both collectors are generators. They yield a ProgressEvent after every batch
and return the collected SlideRefs, so callers drive them with
``refs = yield from collect_...``.
"""

import logging
import re
from typing import Any, Generator, List, Optional, Sequence, Tuple

from layout.models import ProgressEvent, SlideRef

logger = logging.getLogger(__name__)

# Priority order; the first pattern that matches wins
FRAME_NAME_PATTERNS = [
    re.compile(r'[Ss]ection\s*(\d+)[\s,\-]+[Ss]lide\s*(\d+)', re.IGNORECASE),
    re.compile(r'[Ss](\d+)[\s,\-\.]+[Ss]?(\d+)', re.IGNORECASE),
    re.compile(r'(\d+)\.(\d+)'),
]
SLIDE_ONLY_PATTERN = re.compile(r'[Ss]lide\s*(\d+)', re.IGNORECASE)

LocatorGenerator = Generator[ProgressEvent, None, List[SlideRef]]


def _field(entry: Any, name: str) -> Any:
    if isinstance(entry, dict):
        return entry.get(name)
    return getattr(entry, name, None)


def normalize_grid_entry(entry: Any, row: int, column: int) -> Optional[SlideRef]:
    """
    Turn one slide-grid entry into a SlideRef.

    Section number precedence: ``sectionNumber``, ``section``, ``row + 1``.
    Slide number precedence: ``slideNumber``, ``number``, ``column + 1``.
    The slide handle is the entry's ``node`` when present, else the entry.

    Returns:
        SlideRef, or None for empty entries and hidden slides
    """
    if entry is None:
        return None

    node = _field(entry, 'node')
    if node is None:
        node = entry

    if _field(node, 'visible') is False:
        return None

    section_number = _field(entry, 'sectionNumber')
    if section_number is None:
        section_number = _field(entry, 'section')
    if section_number is None:
        section_number = row + 1

    slide_number = _field(entry, 'slideNumber')
    if slide_number is None:
        slide_number = _field(entry, 'number')
    if slide_number is None:
        slide_number = column + 1

    return SlideRef(element=node, section_number=int(section_number), slide_number=int(slide_number))


def collect_from_grid(grid: Sequence[Any], batch_size: int = 50) -> LocatorGenerator:
    """
    Collect slide references from a slide grid in batches.

    Rows that are not sequences are skipped. Hidden slides are skipped but
    still count toward the scan total.
    """
    rows = [row if isinstance(row, (list, tuple)) else [] for row in grid]
    total = sum(len(row) for row in rows)
    refs: List[SlideRef] = []
    if total == 0:
        return refs

    yield ProgressEvent(0, total, f"Scanning {total} slides...")

    scanned = 0
    for row_index, row in enumerate(rows):
        for column_index, entry in enumerate(row):
            ref = normalize_grid_entry(entry, row_index, column_index)
            if ref is not None:
                refs.append(ref)
            scanned += 1
            if scanned % batch_size == 0 and scanned < total:
                yield ProgressEvent(scanned, total, f"Scanning slide {scanned} of {total}...")

    yield ProgressEvent(total, total, f"Scanning slide {total} of {total}...")
    logger.debug(f"Collected {len(refs)} visible slides from grid of {total} entries")
    return refs


def parse_frame_name(name: str) -> Optional[Tuple[int, int]]:
    """
    Parse ``(section, slide)`` out of a frame name.

    >>> parse_frame_name("Section 2 - Slide 3")
    (2, 3)
    >>> parse_frame_name("Slide 7")
    (1, 7)
    """
    if not name:
        return None

    for pattern in FRAME_NAME_PATTERNS:
        match = pattern.search(name)
        if match:
            return int(match.group(1)), int(match.group(2))

    match = SLIDE_ONLY_PATTERN.search(name)
    if match:
        return 1, int(match.group(1))

    return None


def collect_from_frames(frames: Sequence[Any], batch_size: int = 100) -> LocatorGenerator:
    """Collect slide references from named frames in batches."""
    frames = list(frames)
    total = len(frames)
    refs: List[SlideRef] = []
    if total == 0:
        return refs

    yield ProgressEvent(0, total, f"Found {total} frames. Analyzing...")

    for start in range(0, total, batch_size):
        end = min(start + batch_size, total)
        for frame in frames[start:end]:
            if getattr(frame, 'visible', True) is False:
                continue
            numbers = parse_frame_name(getattr(frame, 'name', '') or '')
            if numbers is None:
                logger.debug(f"Frame name not recognised as a slide: {getattr(frame, 'name', '')!r}")
                continue
            refs.append(SlideRef(element=frame, section_number=numbers[0], slide_number=numbers[1]))
        yield ProgressEvent(end, total, f"Analyzing frame {end} of {total}...")

    logger.debug(f"Matched {len(refs)} of {total} frames by name")
    return refs
