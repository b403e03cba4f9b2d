from pathlib import Path

import pytest
from pypdf import PdfReader

from MarkdownPdf import cli


def _write_source(tmp_path: Path) -> Path:
    source = tmp_path / "notes.md"
    source.write_text("# Notes\n\n- one\n- two\n\n1. first\n7. seventh\n", encoding="utf-8")
    return source


def test_cli_writes_pdf_next_to_input(tmp_path: Path):
    source = _write_source(tmp_path)
    cli.main([str(source)])
    output = tmp_path / "notes.pdf"
    assert output.read_bytes().startswith(b"%PDF-")
    assert "seventh" in PdfReader(output).pages[0].extract_text()


def test_cli_uses_config_and_output_directory(tmp_path: Path):
    source = _write_source(tmp_path)
    config = tmp_path / "layout.yaml"
    config.write_text("page_size: letter\nmargins: 50\n", encoding="utf-8")
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    cli.main([str(source), "-o", str(out_dir), "--config", str(config), "--flavor", "commonmark"])
    reader = PdfReader(out_dir / "notes.pdf")
    assert float(reader.pages[0].mediabox.width) == pytest.approx(612)


def test_cli_missing_input(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        cli.main([str(tmp_path / "missing.md")])
