from types import SimpleNamespace

from builders import group, single_slide, text
from layout.positions import absolute_position


def test_sums_offsets_of_every_ancestor_below_slide():
    root = single_slide([
        group('g1', [group('g2', [text('t', 'T', x=5, y=7)], x=20, y=30)], x=100, y=200),
    ], x=999, y=999)
    leaf = root.children[0].children[0].children[0]
    assert absolute_position(leaf, root) == (125.0, 237.0)


def test_direct_child_of_slide_keeps_local_offset():
    root = single_slide([text('t', 'T', x=42, y=17)])
    assert absolute_position(root.children[0], root) == (42.0, 17.0)


def test_stops_at_missing_parent():
    orphan_parent = SimpleNamespace(id='p', x=10, y=10, parent=None)
    leaf = SimpleNamespace(id='t', x=1, y=2, parent=orphan_parent)
    slide = SimpleNamespace(id='s')
    assert absolute_position(leaf, slide) == (11.0, 12.0)


def test_cyclic_parent_chain_terminates():
    a = SimpleNamespace(id='a', x=1, y=1)
    b = SimpleNamespace(id='b', x=2, y=2, parent=a)
    a.parent = b
    leaf = SimpleNamespace(id='t', x=0, y=0, parent=a)
    x, y = absolute_position(leaf, SimpleNamespace(id='s'))
    assert (x, y) == (3.0, 3.0)
