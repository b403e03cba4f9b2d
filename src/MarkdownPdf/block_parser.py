from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Union

from .inline_scanner import scan_inline
from .model import (
    Block,
    CodeBlock,
    Document,
    Heading,
    HorizontalRule,
    Inline,
    ListItem,
    OrderedList,
    Paragraph,
    UnorderedList,
)

INDENT_WIDTH = 4

_HEADING_RE = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+(.*?))?[ \t]*$")
_CLOSING_HASHES_RE = re.compile(r"(?:^|[ \t]+)#+[ \t]*$")
_RULE_RE = re.compile(r"^ {0,3}([-*_])(?:[ \t]*\1){2,}[ \t]*$")
_SETEXT_RE = re.compile(r"^ {0,3}(=+|-+)[ \t]*$")
_FENCE_RE = re.compile(r"^( {0,3})(`{3,}|~{3,})[ \t]*([^`\s]*)")
_BULLET_RE = re.compile(r"^( *)[*+-](?:[ \t]+(?P<text>.*))?$")
_ORDERED_RE = re.compile(r"^( *)(?P<number>\d{1,9})\.(?:[ \t]+(?P<text>.*))?$")


def parse_markdown(text: str) -> Document:
    parser = _BlockParser()
    for line in text.splitlines():
        parser.feed(line)
    return parser.finish()


@dataclass
class _ItemBuilder:
    number: Optional[int]
    # entries are paragraph lines or nested lists, in source order
    entries: List[Union[List[str], "_ListBuilder"]] = field(default_factory=list)

    def add_line(self, text: str, new_paragraph: bool = False) -> None:
        if self.entries and isinstance(self.entries[-1], list) and not new_paragraph:
            self.entries[-1].append(text)
        else:
            self.entries.append([text])

    def build(self) -> ListItem:
        blocks: List[Block] = []
        for entry in self.entries:
            if isinstance(entry, _ListBuilder):
                blocks.append(entry.build())
            else:
                blocks.append(Paragraph(inline=_inline_from_lines(entry)))
        return ListItem(blocks=tuple(blocks), number=self.number)


@dataclass
class _ListBuilder:
    ordered: bool
    items: List[_ItemBuilder] = field(default_factory=list)

    def build(self) -> Block:
        items = tuple(item.build() for item in self.items)
        if self.ordered:
            start = items[0].number if items and items[0].number is not None else 1
            return OrderedList(items=items, start=start)
        return UnorderedList(items=items)


@dataclass
class _Fence:
    marker: str
    indent: int
    language: Optional[str]
    lines: List[str] = field(default_factory=list)

    def closes(self, line: str) -> bool:
        stripped = line.strip()
        return (
            len(line) - len(line.lstrip(" ")) < INDENT_WIDTH
            and stripped.startswith(self.marker)
            and set(stripped) == {self.marker[0]}
        )


class _BlockParser:
    """Line-driven state machine producing the top-level block sequence."""

    def __init__(self) -> None:
        self.blocks: List[Union[Block, _ListBuilder]] = []
        self.paragraph: Optional[List[str]] = None
        self.code: Optional[List[str]] = None
        self.fence: Optional[_Fence] = None
        self.lists: List[_ListBuilder] = []
        self.blank_before = False

    def feed(self, raw: str) -> None:
        if self.fence is not None:
            self._feed_fence(raw)
            return
        line = _expand_indent(raw)
        if not line.strip():
            self._close_paragraph()
            if self.code is not None:
                self.code.append("")
            self.blank_before = True
            return

        indent = len(line) - len(line.lstrip(" "))
        if self.code is not None and indent < INDENT_WIDTH:
            self._close_code()
        if indent < INDENT_WIDTH and self._feed_block_start(line):
            self.blank_before = False
            return

        marker = _match_list_marker(line)
        if marker is not None and (self.lists or indent < INDENT_WIDTH):
            ordered, number, text = marker
            self._close_paragraph()
            self._close_code()
            self._add_item(ordered, number, indent, text)
        elif self.lists and (indent >= INDENT_WIDTH or not self.blank_before):
            self._continue_item(indent, line.strip())
        else:
            self.lists.clear()
            if indent >= INDENT_WIDTH and self.paragraph is None:
                if self.code is None:
                    self.code = []
                self.code.append(line[INDENT_WIDTH:])
            else:
                if self.paragraph is None:
                    self.paragraph = []
                self.paragraph.append(line.lstrip())
        self.blank_before = False

    def finish(self) -> Document:
        if self.fence is not None:
            self.blocks.append(CodeBlock(lines=tuple(self.fence.lines), language=self.fence.language))
            self.fence = None
        self._close_all()
        blocks = tuple(
            block.build() if isinstance(block, _ListBuilder) else block for block in self.blocks
        )
        return Document(blocks=blocks)

    def _feed_block_start(self, line: str) -> bool:
        if self.paragraph is not None and not self.lists:
            setext = _SETEXT_RE.match(line)
            if setext:
                level = 1 if setext.group(1).startswith("=") else 2
                self.blocks.append(Heading(level=level, inline=_inline_from_lines(self.paragraph)))
                self.paragraph = None
                return True

        heading = _HEADING_RE.match(line)
        if heading:
            self._close_all()
            content = _CLOSING_HASHES_RE.sub("", heading.group(2) or "")
            self.blocks.append(Heading(level=len(heading.group(1)), inline=scan_inline(content.strip())))
            return True

        if _RULE_RE.match(line):
            self._close_all()
            self.blocks.append(HorizontalRule())
            return True

        fence = _FENCE_RE.match(line)
        if fence:
            self._close_all()
            self.fence = _Fence(
                marker=fence.group(2),
                indent=len(fence.group(1)),
                language=fence.group(3) or None,
            )
            return True
        return False

    def _feed_fence(self, raw: str) -> None:
        fence = self.fence
        if fence.closes(raw):
            self.blocks.append(CodeBlock(lines=tuple(fence.lines), language=fence.language))
            self.fence = None
            return
        strip = min(fence.indent, len(raw) - len(raw.lstrip(" ")))
        fence.lines.append(raw[strip:])

    def _add_item(self, ordered: bool, number: Optional[int], indent: int, text: str) -> None:
        depth = min(indent // INDENT_WIDTH, len(self.lists))
        del self.lists[depth + 1 :]
        item = _ItemBuilder(number=number)
        if text:
            item.add_line(text)

        if len(self.lists) == depth + 1:
            if self.lists[-1].ordered == ordered:
                self.lists[-1].items.append(item)
                return
            # switching list kind at the same depth starts a sibling list
            self.lists.pop()

        builder = _ListBuilder(ordered=ordered, items=[item])
        if self.lists:
            self.lists[-1].items[-1].entries.append(builder)
        else:
            self.blocks.append(builder)
        self.lists.append(builder)

    def _continue_item(self, indent: int, text: str) -> None:
        if indent >= INDENT_WIDTH:
            del self.lists[max(1, min(indent // INDENT_WIDTH, len(self.lists))) :]
        item = self.lists[-1].items[-1]
        ends_with_text = bool(item.entries) and isinstance(item.entries[-1], list)
        item.add_line(text, new_paragraph=self.blank_before or not ends_with_text)

    def _close_paragraph(self) -> None:
        if self.paragraph is not None:
            self.blocks.append(Paragraph(inline=_inline_from_lines(self.paragraph)))
            self.paragraph = None

    def _close_code(self) -> None:
        if self.code is None:
            return
        lines = self.code
        while lines and not lines[-1].strip():
            lines.pop()
        if lines:
            self.blocks.append(CodeBlock(lines=tuple(lines)))
        self.code = None

    def _close_all(self) -> None:
        self._close_paragraph()
        self._close_code()
        self.lists.clear()


def _expand_indent(line: str) -> str:
    body = line.lstrip(" \t")
    prefix = line[: len(line) - len(body)]
    return prefix.expandtabs(INDENT_WIDTH) + body


def _match_list_marker(line: str) -> Optional[tuple[bool, Optional[int], str]]:
    if _RULE_RE.match(line):
        return None
    bullet = _BULLET_RE.match(line)
    if bullet:
        return False, None, (bullet.group("text") or "").strip()
    ordered = _ORDERED_RE.match(line)
    if ordered:
        return True, int(ordered.group("number")), (ordered.group("text") or "").strip()
    return None


def _inline_from_lines(lines: List[str]) -> tuple[Inline, ...]:
    """Join paragraph lines: soft breaks become spaces, hard breaks newlines."""
    parts: List[str] = []
    for index, line in enumerate(lines):
        last = index == len(lines) - 1
        stripped = line.rstrip()
        if not last and (line.endswith("  ") or stripped.endswith("\\")):
            if stripped.endswith("\\"):
                stripped = stripped[:-1].rstrip()
            parts.append(stripped + "\n")
        else:
            parts.append(stripped if last else stripped + " ")
    return scan_inline("".join(parts).strip(" "))
