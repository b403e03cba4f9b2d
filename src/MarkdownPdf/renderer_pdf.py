from __future__ import annotations

import io
import logging
from os import PathLike
from pathlib import Path
from typing import BinaryIO, Iterable, Union

from reportlab.lib import colors
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from .layout import Instruction, ListMarker, PageBreak, Rule, TextRun
from .pdf_format import LayoutConfig

logger = logging.getLogger(__name__)

Destination = Union[str, "PathLike[str]", BinaryIO]

LINK_COLOR = colors.HexColor("#1a4f9c")
RULE_COLOR = colors.HexColor("#9a9a9a")


class PdfWriteError(OSError):
    """The PDF destination could not be created or written."""


def render_pdf_bytes(
    instructions: Iterable[Instruction],
    config: LayoutConfig | None = None,
    title: str | None = None,
) -> bytes:
    config = config or LayoutConfig()
    buffer = io.BytesIO()
    # invariant output keeps repeated renders byte-identical
    pdf = canvas.Canvas(
        buffer,
        pagesize=(config.page_width, config.page_height),
        invariant=1,
        pageCompression=1 if config.compress else 0,
    )
    pdf.setCreator("MarkdownPdf")
    if title:
        pdf.setTitle(title)

    pages = 1
    for instruction in instructions:
        if isinstance(instruction, PageBreak):
            pdf.showPage()
            pages += 1
        elif isinstance(instruction, TextRun):
            _draw_text(pdf, instruction, config)
        elif isinstance(instruction, ListMarker):
            _draw_marker(pdf, instruction, config)
        elif isinstance(instruction, Rule):
            _draw_rule(pdf, instruction, config)
    pdf.showPage()
    logger.debug("Rendered %d PDF page(s)", pages)
    return pdf.getpdfdata()


def write_pdf(
    instructions: Iterable[Instruction],
    destination: Destination,
    config: LayoutConfig | None = None,
    title: str | None = None,
) -> None:
    """Render ``instructions`` and write the PDF to a path or a writable binary stream.

    Streams are flushed but left open; the caller owns them.
    """
    data = render_pdf_bytes(instructions, config, title=title)
    if callable(getattr(destination, "write", None)):
        _write_stream(data, destination)
    else:
        _write_file(data, Path(destination))


def _write_file(data: bytes, path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as handle:
            handle.write(data)
    except OSError as exc:
        raise PdfWriteError(f"Cannot write PDF to {path}: {exc}") from exc
    logger.debug("Wrote %d bytes to %s", len(data), path)


def _write_stream(data: bytes, stream: BinaryIO) -> None:
    try:
        stream.write(data)
        stream.flush()
    except OSError as exc:
        raise PdfWriteError(f"Cannot write PDF to stream: {exc}") from exc
    logger.debug("Wrote %d bytes to stream", len(data))


def _to_page(config: LayoutConfig, x: float, y: float) -> tuple[float, float]:
    return config.margins.left + x, config.page_height - config.margins.top - y


def _draw_text(pdf: canvas.Canvas, run: TextRun, config: LayoutConfig) -> None:
    x, y = _to_page(config, run.x, run.y)
    pdf.setFont(run.font, run.size)
    if run.link is None:
        pdf.setFillColor(colors.black)
        pdf.drawString(x, y, run.text)
        return
    width = stringWidth(run.text, run.font, run.size)
    pdf.setFillColor(LINK_COLOR)
    pdf.drawString(x, y, run.text)
    pdf.setStrokeColor(LINK_COLOR)
    pdf.setLineWidth(0.5)
    pdf.line(x, y - run.size * 0.12, x + width, y - run.size * 0.12)
    pdf.linkURL(run.link, (x, y - run.size * 0.25, x + width, y + run.size * 0.8), relative=0, thickness=0)
    pdf.setFillColor(colors.black)


def _draw_marker(pdf: canvas.Canvas, marker: ListMarker, config: LayoutConfig) -> None:
    x, y = _to_page(config, marker.x, marker.y)
    pdf.setFillColor(colors.black)
    pdf.setStrokeColor(colors.black)
    if marker.glyph == "number":
        pdf.setFont(config.text_font(), marker.size)
        pdf.drawString(x, y, marker.label)
        return
    radius = marker.size * 0.17
    cx = x + marker.size * 0.3
    cy = y + marker.size * 0.3
    if marker.glyph == "circle":
        pdf.setLineWidth(marker.size * 0.06)
        pdf.circle(cx, cy, radius, stroke=1, fill=0)
    elif marker.glyph == "square":
        pdf.rect(cx - radius, cy - radius, radius * 2, radius * 2, stroke=0, fill=1)
    else:
        pdf.circle(cx, cy, radius, stroke=0, fill=1)


def _draw_rule(pdf: canvas.Canvas, rule: Rule, config: LayoutConfig) -> None:
    x, y = _to_page(config, rule.x, rule.y)
    pdf.setStrokeColor(RULE_COLOR)
    pdf.setLineWidth(0.75)
    pdf.line(x, y, x + rule.width, y)
