from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from reportlab.pdfbase.pdfmetrics import stringWidth

from .model import (
    Block,
    Code,
    CodeBlock,
    Document,
    Emphasis,
    Heading,
    HorizontalRule,
    Inline,
    LineBreak,
    Link,
    ListItem,
    OrderedList,
    Paragraph,
    Strong,
    StrongEmphasis,
    Text,
    UnorderedList,
)
from .pdf_format import LayoutConfig

logger = logging.getLogger(__name__)

BULLET_GLYPHS = ("disc", "circle", "square")
_TOKEN_SPLIT_RE = re.compile(r"(\s+)")


@dataclass(frozen=True)
class Instruction:
    # x from the left margin, y as baseline distance from the top of the usable area
    page: int


@dataclass(frozen=True)
class TextRun(Instruction):
    x: float
    y: float
    font: str
    size: float
    text: str
    link: Optional[str] = None


@dataclass(frozen=True)
class ListMarker(Instruction):
    x: float
    y: float
    size: float
    glyph: str
    label: str = ""


@dataclass(frozen=True)
class Rule(Instruction):
    x: float
    y: float
    width: float


@dataclass(frozen=True)
class PageBreak(Instruction):
    """Marks the start of page ``page``."""


Positioned = Union[TextRun, ListMarker, Rule]


@dataclass(frozen=True)
class _Span:
    text: str
    bold: bool = False
    italic: bool = False
    code: bool = False
    link: Optional[str] = None


@dataclass
class _Line:
    height: float
    # instructions with ``y`` relative to the top of the line
    items: List[Positioned] = field(default_factory=list)
    baseline: float = 0.0
    spacer: bool = False


@dataclass
class _Box:
    lines: List[_Line]
    keep_together: bool = False
    keep_with_next: bool = False

    def height(self, leading: bool = True, trailing: bool = False) -> float:
        lines = list(self.lines)
        if not trailing:
            while lines and lines[-1].spacer:
                lines.pop()
        if not leading:
            while lines and lines[0].spacer:
                lines.pop(0)
        return sum(line.height for line in lines)

    def first_line_height(self) -> float:
        """Height up to and including the first content line."""
        height = 0.0
        for line in self.lines:
            height += line.height
            if not line.spacer:
                return height
        return 0.0


def layout_document(document: Document, config: LayoutConfig | None = None) -> List[Instruction]:
    return LayoutEngine(config).layout(document)


def page_count(instructions: Iterable[Instruction]) -> int:
    return 1 + sum(1 for instruction in instructions if isinstance(instruction, PageBreak))


class LayoutEngine:
    def __init__(self, config: LayoutConfig | None = None) -> None:
        self.config = config or LayoutConfig()

    @property
    def _paragraph_gap(self) -> float:
        return self.config.base_font_size * 0.6

    def layout(self, document: Document) -> List[Instruction]:
        boxes: List[_Box] = []
        for block in document.blocks:
            boxes.extend(self._block_boxes(block))
        return self._paginate(boxes)

    def _block_boxes(self, block: Block) -> List[_Box]:
        if isinstance(block, (UnorderedList, OrderedList)):
            boxes = [
                _Box(self._item_lines(item, block, index, 0.0, 0), keep_together=True)
                for index, item in enumerate(block.items)
            ]
            boxes.append(_Box([self._spacer(self._paragraph_gap)]))
            return boxes
        lines = self._block_lines(block, 0.0, 0)
        if isinstance(block, Heading):
            return [_Box(lines, keep_together=True, keep_with_next=True)]
        if isinstance(block, CodeBlock):
            return [_Box(lines, keep_together=True)]
        return [_Box(lines)]

    def _block_lines(self, block: Block, indent: float, depth: int) -> List[_Line]:
        config = self.config
        if isinstance(block, Heading):
            size = config.heading_size(block.level)
            lines = [self._spacer(size * 0.5)]
            lines.extend(self._wrap(_flatten(block.inline, bold=True), indent, size))
            lines.append(self._spacer(size * 0.3))
            return lines
        if isinstance(block, Paragraph):
            lines = self._wrap(_flatten(block.inline), indent, config.base_font_size)
            lines.append(self._spacer(self._paragraph_gap))
            return lines
        if isinstance(block, CodeBlock):
            lines = self._code_lines(block, indent)
            lines.append(self._spacer(self._paragraph_gap))
            return lines
        if isinstance(block, HorizontalRule):
            height = config.base_font_size * config.line_spacing
            rule = Rule(page=0, x=indent, y=height / 2, width=config.usable_width - indent)
            return [
                self._spacer(self._paragraph_gap / 2),
                _Line(height=height, items=[rule], baseline=height / 2),
                self._spacer(self._paragraph_gap / 2),
            ]
        if isinstance(block, (UnorderedList, OrderedList)):
            lines = []
            for index, item in enumerate(block.items):
                lines.extend(self._item_lines(item, block, index, indent, depth))
            return lines
        logger.debug("Skipping unsupported block %s", type(block).__name__)
        return []

    def _item_lines(
        self,
        item: ListItem,
        parent: Union[UnorderedList, OrderedList],
        index: int,
        indent: float,
        depth: int,
    ) -> List[_Line]:
        config = self.config
        size = config.base_font_size
        marker_width = config.indent_step
        if isinstance(parent, OrderedList):
            number = item.number if item.number is not None else parent.start + index
            glyph, label = "number", f"{number}."
            label_width = stringWidth(label, config.text_font(), size) + size * 0.4
            marker_width = max(marker_width, label_width)
        else:
            glyph, label = BULLET_GLYPHS[depth % len(BULLET_GLYPHS)], ""
        content_indent = indent + marker_width

        lines: List[_Line] = []
        for block in item.blocks:
            if isinstance(block, Paragraph):
                lines.extend(self._wrap(_flatten(block.inline), content_indent, size))
            elif isinstance(block, (UnorderedList, OrderedList)):
                lines.extend(self._block_lines(block, content_indent, depth + 1))
            else:
                lines.extend(self._block_lines(block, content_indent, depth))

        first = next((line for line in lines if not line.spacer), None)
        if first is None:
            first = _Line(height=size * config.line_spacing, baseline=size)
            lines.insert(0, first)
        marker = ListMarker(page=0, x=indent, y=first.baseline, size=size, glyph=glyph, label=label)
        first.items.insert(0, marker)
        lines.append(self._spacer(size * 0.25))
        return lines

    def _wrap(self, spans: Sequence[_Span], indent: float, size: float) -> List[_Line]:
        width = self.config.usable_width - indent
        height = size * self.config.line_spacing
        lines: List[_Line] = []
        for tokens in self._break_lines(spans, width, size):
            items: List[Positioned] = []
            x = indent
            for span, text in _merge_tokens(tokens):
                font = self._span_font(span)
                items.append(TextRun(page=0, x=x, y=size, font=font, size=size, text=text, link=span.link))
                x += stringWidth(text, font, size)
            lines.append(_Line(height=height, items=items, baseline=size))
        return lines

    def _break_lines(self, spans: Sequence[_Span], width: float, size: float) -> List[List[Tuple[_Span, str]]]:
        lines: List[List[Tuple[_Span, str]]] = [[]]
        current_width = 0.0
        for span in spans:
            if span.text == "\n":
                lines.append([])
                current_width = 0.0
                continue
            font = self._span_font(span)
            for part in _TOKEN_SPLIT_RE.split(span.text):
                if not part:
                    continue
                is_space = part.isspace()
                if is_space and not lines[-1]:
                    continue
                part_width = stringWidth(part, font, size)
                if current_width + part_width > width and lines[-1]:
                    lines.append([])
                    current_width = 0.0
                    if is_space:
                        continue
                if part_width > width:
                    pieces = _split_to_width(part, font, size, width)
                    for piece in pieces[:-1]:
                        lines[-1].append((span, piece))
                        lines.append([])
                    part = pieces[-1]
                    part_width = stringWidth(part, font, size)
                lines[-1].append((span, part))
                current_width += part_width
        for tokens in lines:
            while tokens and tokens[-1][1].isspace():
                tokens.pop()
        return lines

    def _code_lines(self, block: CodeBlock, indent: float) -> List[_Line]:
        config = self.config
        font = config.code_font()
        size = config.code_font_size
        height = size * config.line_spacing
        x = indent + config.indent_step / 2
        width = config.usable_width - x
        lines: List[_Line] = []
        for source in block.lines or ("",):
            for piece in _split_to_width(source.expandtabs(4), font, size, width):
                items: List[Positioned] = []
                if piece:
                    items.append(TextRun(page=0, x=x, y=size, font=font, size=size, text=piece))
                lines.append(_Line(height=height, items=items, baseline=size))
        return lines

    def _span_font(self, span: _Span) -> str:
        if span.code:
            return self.config.code_font()
        return self.config.text_font(bold=span.bold, italic=span.italic)

    def _spacer(self, height: float) -> _Line:
        return _Line(height=height, spacer=True)

    def _paginate(self, boxes: Sequence[_Box]) -> List[Instruction]:
        usable = self.config.usable_height
        instructions: List[Instruction] = []
        page = 0
        cursor = 0.0

        def new_page() -> None:
            nonlocal page, cursor
            page += 1
            cursor = 0.0
            instructions.append(PageBreak(page=page))

        for index, box in enumerate(boxes):
            if box.keep_together and cursor > 0:
                with_next = box.keep_with_next and index + 1 < len(boxes)
                following = boxes[index + 1].first_line_height() if with_next else 0.0
                here = box.height(trailing=with_next) + following
                fresh = box.height(leading=False, trailing=with_next) + following
                if cursor + here > usable and fresh <= usable:
                    new_page()
            for line in box.lines:
                if line.spacer:
                    if cursor > 0:
                        # spacing never carries over to the next page
                        cursor = min(cursor + line.height, usable)
                    continue
                if cursor > 0 and cursor + line.height > usable:
                    new_page()
                for item in line.items:
                    instructions.append(replace(item, page=page, y=cursor + item.y))
                cursor += line.height
        logger.debug("Laid out %d page(s), %d instruction(s)", page + 1, len(instructions))
        return instructions


def _flatten(
    inlines: Iterable[Inline],
    bold: bool = False,
    italic: bool = False,
    link: Optional[str] = None,
) -> List[_Span]:
    spans: List[_Span] = []
    for inline in inlines:
        if isinstance(inline, Text):
            spans.append(_Span(inline.text, bold=bold, italic=italic, link=link))
        elif isinstance(inline, Code):
            spans.append(_Span(inline.text, bold=bold, italic=italic, code=True, link=link))
        elif isinstance(inline, Emphasis):
            spans.extend(_flatten(inline.children, bold, True, link))
        elif isinstance(inline, Strong):
            spans.extend(_flatten(inline.children, True, italic, link))
        elif isinstance(inline, StrongEmphasis):
            spans.extend(_flatten(inline.children, True, True, link))
        elif isinstance(inline, Link):
            spans.extend(_flatten(inline.children, bold, italic, inline.url))
        elif isinstance(inline, LineBreak):
            spans.append(_Span("\n"))
    return spans


def _merge_tokens(tokens: Sequence[Tuple[_Span, str]]) -> List[Tuple[_Span, str]]:
    merged: List[Tuple[_Span, str]] = []
    for span, text in tokens:
        if merged and merged[-1][0] == span:
            merged[-1] = (span, merged[-1][1] + text)
        else:
            merged.append((span, text))
    return merged


def _split_to_width(text: str, font: str, size: float, width: float) -> List[str]:
    """Split text at character boundaries into pieces no wider than ``width``."""
    if stringWidth(text, font, size) <= width:
        return [text]
    pieces: List[str] = []
    chunk = ""
    for char in text:
        if chunk and stringWidth(chunk + char, font, size) > width:
            pieces.append(chunk)
            chunk = ""
        chunk += char
    pieces.append(chunk)
    return pieces
