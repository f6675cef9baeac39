"""Tests for slide grid normalization and frame-name detection."""

from types import SimpleNamespace

import pytest

from layout.slide_locator import (
    collect_from_frames,
    collect_from_grid,
    normalize_grid_entry,
    parse_frame_name,
)


def drain(generator):
    """Run a collector to completion; returns (events, refs)."""
    events = []
    while True:
        try:
            events.append(next(generator))
        except StopIteration as stop:
            return events, stop.value


def handle(name='', visible=True):
    return SimpleNamespace(name=name, visible=visible)


@pytest.mark.parametrize('name, expected', [
    ('Section 2 - Slide 3', (2, 3)),
    ('section 4, slide 10', (4, 10)),
    ('SECTION 1 SLIDE 7', (1, 7)),
    ('S3-S4', (3, 4)),
    ('s5.6', (5, 6)),
    ('S7 8', (7, 8)),
    ('Intro 2.5', (2, 5)),
    ('Slide 9', (1, 9)),
    ('slide12', (1, 12)),
    ('Cover', None),
    ('', None),
])
def test_parse_frame_name(name, expected):
    assert parse_frame_name(name) == expected


def test_section_slide_pattern_wins_over_dotted_numbers():
    assert parse_frame_name('Section 3 - Slide 4 (v1.2)') == (3, 4)


def test_grid_entry_numbers_follow_precedence():
    node = handle()
    entry = {'node': node, 'sectionNumber': 5, 'section': 9, 'slideNumber': 6, 'number': 8}
    ref = normalize_grid_entry(entry, row=0, column=0)
    assert (ref.element, ref.section_number, ref.slide_number) == (node, 5, 6)

    ref = normalize_grid_entry({'node': node, 'section': 9, 'number': 8}, row=0, column=0)
    assert (ref.section_number, ref.slide_number) == (9, 8)

    ref = normalize_grid_entry({'node': node}, row=2, column=3)
    assert (ref.section_number, ref.slide_number) == (3, 4)


def test_grid_entry_without_node_is_its_own_handle():
    entry = SimpleNamespace(visible=True, sectionNumber=1, slideNumber=2)
    ref = normalize_grid_entry(entry, row=4, column=4)
    assert ref.element is entry
    assert (ref.section_number, ref.slide_number) == (1, 2)


def test_hidden_and_empty_grid_entries_are_skipped():
    assert normalize_grid_entry(handle(visible=False), 0, 0) is None
    assert normalize_grid_entry({'node': handle(visible=False)}, 0, 0) is None
    assert normalize_grid_entry(None, 0, 0) is None


def test_collect_from_grid_reports_progress_per_batch():
    grid = [[handle() for _ in range(60)], [handle(visible=False), handle()], 'not-a-row']
    events, refs = drain(collect_from_grid(grid, batch_size=50))

    assert len(refs) == 61
    assert [(e.current, e.total) for e in events] == [(0, 62), (50, 62), (62, 62)]
    assert events[0].message == 'Scanning 62 slides...'
    assert events[-1].message == 'Scanning slide 62 of 62...'
    assert (refs[-1].section_number, refs[-1].slide_number) == (2, 2)


def test_collect_from_empty_grid_yields_nothing():
    events, refs = drain(collect_from_grid([[], []]))
    assert events == []
    assert refs == []


def test_collect_from_frames_batches_and_filters():
    frames = [handle(f"Slide {i}") for i in range(1, 151)]
    frames.append(handle('Section 2 - Slide 1', visible=False))
    frames.append(handle('Backup'))
    events, refs = drain(collect_from_frames(frames, batch_size=100))

    assert len(refs) == 150
    assert [(e.current, e.total) for e in events] == [(0, 152), (100, 152), (152, 152)]
    assert events[0].message == 'Found 152 frames. Analyzing...'
    assert events[1].message == 'Analyzing frame 100 of 152...'


def test_collect_from_no_frames():
    events, refs = drain(collect_from_frames([]))
    assert (events, refs) == ([], [])
