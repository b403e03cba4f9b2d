import io
from pathlib import Path

import pytest
from pypdf import PdfReader

from MarkdownPdf import LayoutConfig, PdfWriteError, parse, render, transform, write
from MarkdownPdf.layout import layout_document, page_count
from MarkdownPdf.model import Document


def test_transform_creates_pdf_file(tmp_path: Path, sample_markdown):
    output_file = tmp_path / "markdown.pdf"
    transform(sample_markdown, output_file)
    assert output_file.read_bytes().startswith(b"%PDF-")
    reader = PdfReader(output_file)
    text = "\n".join(page.extract_text() for page in reader.pages)
    assert "This is header 1" in text
    assert "line 2 of code" in text
    assert "9." in text and "5." in text
    assert reader.metadata.title == "This is header 1"


def test_transform_into_open_stream_leaves_it_open(tmp_path: Path, sample_markdown):
    output_file = tmp_path / "markdown2.pdf"
    with output_file.open("wb") as stream:
        transform(sample_markdown, stream)
        assert not stream.closed
    assert output_file.read_bytes().startswith(b"%PDF-")


def test_write_parsed_document_matches_transform(tmp_path: Path, sample_markdown):
    transform(sample_markdown, tmp_path / "markdown.pdf")
    document = parse(sample_markdown)
    write(document, tmp_path / "markdown3.pdf")
    buffer = io.BytesIO()
    write(document, buffer)
    expected = (tmp_path / "markdown.pdf").read_bytes()
    assert (tmp_path / "markdown3.pdf").read_bytes() == expected
    assert buffer.getvalue() == expected
    assert render(document) == expected


def test_long_document_has_one_pdf_page_per_layout_page(tmp_path: Path):
    text = "\n\n".join("word " * 80 for _ in range(40))
    output_file = tmp_path / "long.pdf"
    transform(text, output_file)
    pages = len(PdfReader(output_file).pages)
    assert pages > 1
    assert pages == page_count(layout_document(parse(text)))


def test_empty_document_renders_a_blank_page():
    reader = PdfReader(io.BytesIO(render(Document())))
    assert len(reader.pages) == 1


def test_page_geometry_follows_config():
    config = LayoutConfig(page_width=300, page_height=400)
    reader = PdfReader(io.BytesIO(render(parse("# Small page"), config)))
    box = reader.pages[0].mediabox
    assert float(box.width) == pytest.approx(300)
    assert float(box.height) == pytest.approx(400)


def test_links_become_annotations():
    reader = PdfReader(io.BytesIO(render(parse("Visit [the site](https://example.com)."))))
    assert "/Annots" in reader.pages[0]


def test_commonmark_flavor_renders(tmp_path: Path, sample_markdown):
    output_file = tmp_path / "commonmark.pdf"
    transform(sample_markdown, output_file, flavor="commonmark")
    assert "This is header 6" in PdfReader(output_file).pages[0].extract_text()


def test_unknown_flavor_is_rejected():
    with pytest.raises(ValueError):
        parse("# x", flavor="rst")


def test_unwritable_path_raises_with_cause(tmp_path: Path):
    blocker = tmp_path / "blocker.txt"
    blocker.write_text("not a directory", encoding="utf-8")
    with pytest.raises(PdfWriteError) as excinfo:
        transform("# Title", blocker / "out.pdf")
    assert isinstance(excinfo.value, OSError)
    assert isinstance(excinfo.value.__cause__, OSError)
    assert str(blocker) in str(excinfo.value)


class _FullDisk(io.RawIOBase):
    def writable(self):
        return True

    def write(self, data):
        raise OSError(28, "No space left on device")


def test_failing_stream_surfaces_io_cause():
    with pytest.raises(PdfWriteError, match="No space left on device"):
        transform("# Title", _FullDisk())
