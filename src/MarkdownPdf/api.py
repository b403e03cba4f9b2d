from __future__ import annotations

import logging
from typing import Callable, Dict

from .block_parser import parse_markdown
from .commonmark_parser import parse_commonmark
from .layout import LayoutEngine, page_count
from .model import Document
from .pdf_format import LayoutConfig
from .renderer_pdf import Destination, render_pdf_bytes, write_pdf

logger = logging.getLogger(__name__)

FLAVORS: Dict[str, Callable[[str], Document]] = {
    "native": parse_markdown,
    "commonmark": parse_commonmark,
}


def parse(text: str, flavor: str = "native") -> Document:
    try:
        parser = FLAVORS[flavor]
    except KeyError:
        raise ValueError(f"Unknown Markdown flavor: {flavor!r}") from None
    return parser(text)


def render(document: Document, config: LayoutConfig | None = None) -> bytes:
    config = config or LayoutConfig()
    instructions = LayoutEngine(config).layout(document)
    return render_pdf_bytes(instructions, config, title=config.title or document.title)


def write(document: Document, destination: Destination, config: LayoutConfig | None = None) -> None:
    config = config or LayoutConfig()
    instructions = LayoutEngine(config).layout(document)
    logger.debug("Writing %d page(s) to %r", page_count(instructions), destination)
    write_pdf(instructions, destination, config, title=config.title or document.title)


def transform(
    text: str,
    destination: Destination,
    config: LayoutConfig | None = None,
    flavor: str = "native",
) -> None:
    write(parse(text, flavor=flavor), destination, config)
