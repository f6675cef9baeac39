"""Tests for the PowerPoint host document, using decks built in memory."""

import io
import zipfile

import pytest
from PIL import Image
from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.shapes import MSO_SHAPE
from pptx.oxml import parse_xml
from pptx.oxml.ns import nsdecls
from pptx.util import Pt

from hosts.base import GROUP, IMAGE, MIXED, SHAPE, TEXT
from hosts.pptx_document import P14_NS, PptxDocument, emu_to_pt
from layout.scheduler import ExtractionScheduler
from layout.slide_extractor import extract_slide_text
from shared.processing_exceptions import UnsupportedDocumentError

BLANK_LAYOUT = 6
TITLE_ONLY_LAYOUT = 5


def add_text(slide, content, left, top, size=None, width=200, height=40):
    box = slide.shapes.add_textbox(Pt(left), Pt(top), Pt(width), Pt(height))
    box.text_frame.text = content
    if size is not None:
        for run in box.text_frame.paragraphs[0].runs:
            run.font.size = Pt(size)
    return box


def blank_slide(prs):
    return prs.slides.add_slide(prs.slide_layouts[BLANK_LAYOUT])


def add_sections(prs, sections):
    entries = ''.join(
        f'<p14:section name="{name}" id="{{0000000{i}-0000-0000-0000-000000000000}}"><p14:sldIdLst>'
        + ''.join(f'<p14:sldId id="{slide_id}"/>' for slide_id in slide_ids)
        + '</p14:sldIdLst></p14:section>'
        for i, (name, slide_ids) in enumerate(sections)
    )
    ext = parse_xml(
        f'<p:extLst {nsdecls("p")}><p:ext uri="{{521415D9-36F7-43E2-AB2F-B90AF26B5E84}}">'
        f'<p14:sectionLst xmlns:p14="{P14_NS}">{entries}</p14:sectionLst></p:ext></p:extLst>'
    )
    prs._element.append(ext)


def png_bytes(size=(20, 10)):
    buffer = io.BytesIO()
    Image.new('RGB', size, (255, 0, 0)).save(buffer, format='PNG')
    buffer.seek(0)
    return buffer


def test_emu_to_points():
    assert emu_to_pt(12700) == 1.0
    assert emu_to_pt(None) == 0.0


def test_slide_geometry_and_text_nodes():
    prs = Presentation()
    slide = blank_slide(prs)
    add_text(slide, 'Hello', left=72, top=36, size=24)
    doc = PptxDocument(prs, name='deck')

    handle = doc.slides[0]
    assert (handle.width, handle.height) == (720.0, 540.0)
    node = handle.children[0]
    assert node.type == TEXT
    assert node.characters == 'Hello'
    assert (node.x, node.y) == (72.0, 36.0)
    assert node.font_size_at(0, 1) == 24.0


def test_mixed_run_sizes():
    prs = Presentation()
    slide = blank_slide(prs)
    box = slide.shapes.add_textbox(Pt(0), Pt(0), Pt(300), Pt(50))
    paragraph = box.text_frame.paragraphs[0]
    for content, size in (('Big', 30), (' small', 20)):
        run = paragraph.add_run()
        run.text = content
        run.font.size = Pt(size)
    node = PptxDocument(prs).slides[0].children[0]

    assert node.characters == 'Big small'
    assert node.font_size_at(0, 1) == 30.0
    assert node.font_size_at(4, 5) == 20.0
    assert node.font_size_at(0, 9) == MIXED


def test_paragraph_level_size_applies_to_runs():
    prs = Presentation()
    slide = blank_slide(prs)
    box = add_text(slide, 'Paragraph sized', left=0, top=0)
    box.text_frame.paragraphs[0].font.size = Pt(28)
    node = PptxDocument(prs).slides[0].children[0]
    assert node.font_size_at(0, 1) == 28.0


def test_empty_shapes_images_and_fills():
    prs = Presentation()
    slide = blank_slide(prs)
    rect = slide.shapes.add_shape(MSO_SHAPE.RECTANGLE, Pt(10), Pt(10), Pt(100), Pt(50))
    rect.fill.solid()
    rect.fill.fore_color.rgb = RGBColor(0x11, 0x22, 0x33)
    slide.shapes.add_picture(png_bytes(), Pt(300), Pt(100), Pt(200), Pt(100))
    handle = PptxDocument(prs).slides[0]

    shape, picture = handle.children
    assert shape.type == SHAPE
    assert shape.fill_color == '#112233'
    assert picture.type == IMAGE
    assert picture.image_blob.startswith(b'\x89PNG')


def test_hidden_and_locked_shapes_are_not_extracted():
    prs = Presentation()
    slide = blank_slide(prs)
    hidden = add_text(slide, 'Hidden', left=10, top=10)
    hidden._element.xpath('./p:nvSpPr/p:cNvPr')[0].set('hidden', '1')
    locked = add_text(slide, 'Locked', left=10, top=100)
    locked._element.xpath('./p:nvSpPr/p:cNvSpPr')[0].append(parse_xml(f'<a:spLocks {nsdecls("a")} noSelect="1"/>'))
    add_text(slide, 'Visible', left=10, top=200)
    handle = PptxDocument(prs).slides[0]

    assert [node.visible for node in handle.children] == [False, True, True]
    assert [node.locked for node in handle.children] == [False, True, False]
    plain, _ = extract_slide_text(handle)
    assert plain == ['Visible']


def test_group_children_keep_slide_positions():
    prs = Presentation()
    slide = blank_slide(prs)
    group = slide.shapes.add_group_shape()
    group.shapes.add_textbox(Pt(400), Pt(10), Pt(100), Pt(30)).text_frame.text = 'Grouped A'
    group.shapes.add_textbox(Pt(450), Pt(300), Pt(100), Pt(30)).text_frame.text = 'Grouped B'
    add_text(slide, 'Outer', left=10, top=200)
    handle = PptxDocument(prs).slides[0]

    group_node = handle.children[0]
    assert group_node.type == GROUP
    first = group_node.children[0]
    assert first.parent is group_node
    assert (group_node.x + first.x, group_node.y + first.y) == (400.0, 10.0)

    plain, _ = extract_slide_text(handle)
    assert plain == ['Outer', 'Grouped A', 'Grouped B']


def test_title_placeholder_ranks_above_body_text():
    prs = Presentation()
    slide = prs.slides.add_slide(prs.slide_layouts[TITLE_ONLY_LAYOUT])
    slide.shapes.title.text = 'Quarterly Review'
    add_text(slide, 'Revenue grew', left=40, top=200, size=14)
    plain, formatted = extract_slide_text(PptxDocument(prs).slides[0])

    assert plain == ['Quarterly Review', 'Revenue grew']
    assert formatted[0].markup == '# Quarterly Review'


def test_grid_without_sections_is_one_row_and_skips_hidden_slides():
    prs = Presentation()
    for content in ('One', 'Two', 'Three'):
        add_text(blank_slide(prs), content, left=10, top=10)
    prs.slides[1]._element.set('show', '0')
    doc = PptxDocument(prs)

    assert doc.get_slide_grid() == [doc.slides]
    result = ExtractionScheduler().extract(doc)
    assert [(r.section_number, r.slide_number) for r in result.records] == [(1, 1), (1, 3)]
    assert [r.plain_text for r in result.records] == [['One'], ['Three']]
    assert [r.overall_slide_number for r in result.records] == [1, 2]


def test_sections_become_grid_rows():
    prs = Presentation()
    for content in ('Alpha', 'Beta', 'Gamma'):
        add_text(blank_slide(prs), content, left=10, top=10)
    ids = [slide.slide_id for slide in prs.slides]
    add_sections(prs, [('Intro', [ids[1], ids[0]]), ('Body', [ids[2]])])
    doc = PptxDocument(prs)

    assert [s['name'] for s in doc.sections()] == ['Intro', 'Body']
    result = ExtractionScheduler().extract(doc)
    assert [(r.section_number, r.slide_number) for r in result.records] == [(1, 1), (1, 2), (2, 1)]
    assert [r.plain_text for r in result.records] == [['Beta'], ['Alpha'], ['Gamma']]


def test_export_image_scales_to_width():
    prs = Presentation()
    slide = blank_slide(prs)
    add_text(slide, 'Text', left=10, top=10)
    slide.shapes.add_picture(png_bytes(), Pt(300), Pt(100), Pt(200), Pt(100))
    doc = PptxDocument(prs)

    image = doc.export_image(doc.slides[0], 200)
    assert (image.width, image.height) == (200, 150)
    assert image.data.startswith(b'\x89PNG')


def test_open_from_path(tmp_path):
    prs = Presentation()
    add_text(blank_slide(prs), 'Saved', left=10, top=10)
    path = tmp_path / 'deck.pptx'
    prs.save(str(path))

    doc = PptxDocument(path)
    assert doc.name == 'deck'
    assert doc.slides[0].children[0].characters == 'Saved'


def test_non_pptx_path_is_rejected(tmp_path):
    with pytest.raises(UnsupportedDocumentError):
        PptxDocument(tmp_path / 'deck.key')


def test_corrupt_pptx_files_are_rejected(tmp_path):
    not_zip = tmp_path / 'deck.pptx'
    not_zip.write_bytes(b'not a zip')
    with pytest.raises(UnsupportedDocumentError):
        PptxDocument(not_zip)

    empty_zip = tmp_path / 'empty.pptx'
    with zipfile.ZipFile(empty_zip, 'w') as archive:
        archive.writestr('readme.txt', 'no content types here')
    with pytest.raises(UnsupportedDocumentError):
        PptxDocument(empty_zip)
