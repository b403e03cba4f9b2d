from reportlab.pdfbase.pdfmetrics import stringWidth

from MarkdownPdf.block_parser import parse_markdown
from MarkdownPdf.layout import ListMarker, PageBreak, Rule, TextRun, layout_document, page_count
from MarkdownPdf.model import Document
from MarkdownPdf.pdf_format import LayoutConfig


def _runs(instructions):
    return [instruction for instruction in instructions if isinstance(instruction, TextRun)]


def test_empty_document_has_no_instructions():
    assert layout_document(Document()) == []


def test_heading_sizes_strictly_decrease():
    config = LayoutConfig()
    sizes = [config.heading_size(level) for level in range(1, 7)]
    assert sizes == sorted(sizes, reverse=True)
    assert len(set(sizes)) == 6


def test_heading_runs_are_bold_and_scaled():
    runs = _runs(layout_document(parse_markdown("# Big\n\n###### Small\n\nbody")))
    big, small, body = runs
    assert big.font == "Helvetica-Bold"
    assert big.size > small.size >= body.size
    assert body.font == "Helvetica"


def test_inline_styles_map_to_fonts():
    runs = _runs(layout_document(parse_markdown("plain *it* **bold** ***both*** `code`")))
    fonts = {run.text.strip(): run.font for run in runs if run.text.strip()}
    assert fonts == {
        "plain": "Helvetica",
        "it": "Helvetica-Oblique",
        "bold": "Helvetica-Bold",
        "both": "Helvetica-BoldOblique",
        "code": "Courier",
    }


def test_ordered_markers_use_source_numbers():
    instructions = layout_document(parse_markdown("1. a\n2. b\n9. c\n5. d\n"))
    markers = [instruction for instruction in instructions if isinstance(instruction, ListMarker)]
    assert [marker.label for marker in markers] == ["1.", "2.", "9.", "5."]
    assert {marker.glyph for marker in markers} == {"number"}


def test_bullet_glyph_cycles_with_depth_and_indents():
    text = "* a\n    + b\n        - c\n            * d\n"
    instructions = layout_document(parse_markdown(text))
    markers = [instruction for instruction in instructions if isinstance(instruction, ListMarker)]
    assert [marker.glyph for marker in markers] == ["disc", "circle", "square", "disc"]
    assert markers[0].x < markers[1].x < markers[2].x < markers[3].x
    runs = _runs(instructions)
    assert all(run.x > marker.x for run, marker in zip(runs, markers))


def test_code_block_is_fixed_width_and_verbatim():
    runs = _runs(layout_document(parse_markdown("    a  =  1\n    b = *2*\n")))
    assert [run.text for run in runs] == ["a  =  1", "b = *2*"]
    assert {run.font for run in runs} == {"Courier"}


def test_unknown_font_family_falls_back():
    config = LayoutConfig(font_family="No Such Font")
    runs = _runs(layout_document(parse_markdown("text"), config))
    assert runs[0].font == "Helvetica"


def test_horizontal_rule_spans_usable_width():
    config = LayoutConfig()
    rules = [i for i in layout_document(parse_markdown("---"), config) if isinstance(i, Rule)]
    assert len(rules) == 1
    assert rules[0].width == config.usable_width


def test_long_words_are_split_to_fit_width():
    config = LayoutConfig()
    runs = _runs(layout_document(parse_markdown("y" * 400), config))
    assert len(runs) > 1
    for run in runs:
        assert run.x + stringWidth(run.text, run.font, run.size) <= config.usable_width + 1e-6


def test_long_document_paginates_within_usable_height():
    config = LayoutConfig()
    text = "\n\n".join(f"Paragraph {n} " + "word " * 60 for n in range(60))
    instructions = layout_document(parse_markdown(text), config)
    assert page_count(instructions) > 1
    pages = [i.page for i in instructions]
    assert pages == sorted(pages)
    for instruction in instructions:
        if not isinstance(instruction, PageBreak):
            assert 0 <= instruction.y <= config.usable_height


def _short_page_config():
    # 200pt of usable height, 13pt body lines, 11.7pt code lines
    return LayoutConfig(page_height=344, base_font_size=10, code_font_size=9)


def test_code_block_moves_whole_to_next_page():
    config = _short_page_config()
    paragraphs = "\n\n".join(f"p{n}" for n in range(9))
    code = "\n".join(f"    code {n}" for n in range(5))
    runs = _runs(layout_document(parse_markdown(paragraphs + "\n\n" + code + "\n"), config))
    assert {run.page for run in runs if run.text.startswith("p")} == {0}
    assert {run.page for run in runs if run.text.startswith("code")} == {1}


def test_list_item_moves_whole_to_next_page():
    config = _short_page_config()
    paragraphs = "\n\n".join(f"p{n}" for n in range(9))
    # the first line of the item would still fit at the bottom of the first page
    items = "- item\n    - sub 1\n    - sub 2\n    - sub 3\n"
    instructions = layout_document(parse_markdown(paragraphs + "\n\n" + items), config)
    runs = _runs(instructions)
    assert {run.page for run in runs if run.text.startswith("p")} == {0}
    assert {run.page for run in runs if run.text in {"item", "sub 1", "sub 2", "sub 3"}} == {1}
    markers = [i for i in instructions if isinstance(i, ListMarker)]
    assert len(markers) == 4
    assert {marker.page for marker in markers} == {1}


def test_oversized_code_block_splits_at_line_boundaries():
    config = _short_page_config()
    code = "\n".join(f"    line {n}" for n in range(40))
    instructions = layout_document(parse_markdown(code), config)
    runs = _runs(instructions)
    assert [run.text for run in runs] == [f"line {n}" for n in range(40)]
    assert page_count(instructions) >= 3
    assert all(run.y <= config.usable_height for run in runs)


def test_heading_is_kept_with_following_line():
    config = _short_page_config()
    # the heading alone would still fit at the bottom of the first page
    paragraphs = "\n\n".join(f"p{n}" for n in range(8))
    runs = _runs(layout_document(parse_markdown(paragraphs + "\n\n## Section\n\nbody"), config))
    heading = next(run for run in runs if run.text == "Section")
    body = next(run for run in runs if run.text == "body")
    assert heading.page == body.page == 1
