"""Tests for text leaf collection."""

from types import SimpleNamespace

from builders import group, single_slide, text
from layout.tree_walker import find_text_elements


def ids(nodes):
    return [node.id for node in nodes]


def test_collects_text_in_depth_first_order():
    root = single_slide([
        text('a', 'A'),
        group('g', [text('b', 'B'), group('g2', [text('c', 'C')])]),
        text('d', 'D'),
    ])
    assert ids(find_text_elements(root)) == ['a', 'b', 'c', 'd']


def test_hidden_ancestor_excludes_descendants():
    root = single_slide([
        group('g', [text('b', 'B')], visible=False),
        text('a', 'A'),
    ])
    assert ids(find_text_elements(root)) == ['a']


def test_hidden_text_is_excluded():
    root = single_slide([text('a', 'A', visible=False), text('b', 'B')])
    assert ids(find_text_elements(root)) == ['b']


def test_locked_container_does_not_hide_unlocked_text():
    root = single_slide([group('g', [text('a', 'A')], locked=True)])
    assert ids(find_text_elements(root)) == ['a']


def test_locked_text_leaf_is_excluded_even_with_children():
    # Text is a leaf: its own lock wins and nothing beneath it is considered
    root = single_slide([
        text('a', 'A', locked=True, children=[text('inner', 'I')]),
        text('b', 'B'),
    ])
    assert ids(find_text_elements(root)) == ['b']


def test_hidden_root_yields_nothing():
    root = single_slide([text('a', 'A')], visible=False)
    assert find_text_elements(root) == []


def test_nodes_without_children_are_leaves():
    leaf = SimpleNamespace(type='RECTANGLE', visible=True)
    root = SimpleNamespace(type='SLIDE', visible=True, children=[leaf])
    assert find_text_elements(root) == []


def test_empty_slide_returns_empty_list():
    assert find_text_elements(single_slide([])) == []
