"""Small builders for snapshot trees used across the tests."""

from hosts.snapshot import load_snapshot


def text(node_id, characters, x=0, y=0, size=16, width=200, height=40, **extra):
    node = {
        'id': node_id,
        'type': 'TEXT',
        'characters': characters,
        'x': x,
        'y': y,
        'width': width,
        'height': height,
        'fontSize': size,
    }
    node.update(extra)
    return node


def group(node_id, children, x=0, y=0, node_type='GROUP', **extra):
    node = {'id': node_id, 'type': node_type, 'x': x, 'y': y, 'children': children}
    node.update(extra)
    return node


def slide(node_id, children, name='', width=1920, height=1080, node_type='SLIDE', **extra):
    node = {
        'id': node_id,
        'type': node_type,
        'name': name,
        'x': 0,
        'y': 0,
        'width': width,
        'height': height,
        'children': children,
    }
    node.update(extra)
    return node


def frame(node_id, name, children, **extra):
    return slide(node_id, children, name=name, node_type='FRAME', **extra)


def document(slides, grid=None, name='deck'):
    data = {'name': name, 'page': {'id': 'page', 'type': 'PAGE', 'children': slides}}
    if grid is not None:
        data['slideGrid'] = grid
    return load_snapshot(data)


def single_slide(children, **slide_kwargs):
    """Snapshot with one slide; returns the slide node."""
    doc = document([slide('s1', children, **slide_kwargs)])
    return doc.node_by_id('s1')
