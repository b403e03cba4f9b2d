from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple


@dataclass(frozen=True)
class Block:
    """Base class for block-level nodes."""


@dataclass(frozen=True)
class Inline:
    """Base class for inline nodes."""


@dataclass(frozen=True)
class Document:
    blocks: Tuple[Block, ...] = ()

    @property
    def title(self) -> Optional[str]:
        for block in self.blocks:
            if isinstance(block, Heading):
                return plain_text(block.inline).strip() or None
        return None


@dataclass(frozen=True)
class Heading(Block):
    level: int
    inline: Tuple[Inline, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "level", min(6, max(1, int(self.level))))


@dataclass(frozen=True)
class Paragraph(Block):
    inline: Tuple[Inline, ...]


@dataclass(frozen=True)
class CodeBlock(Block):
    lines: Tuple[str, ...]
    language: str | None = None

    @property
    def code(self) -> str:
        return "\n".join(self.lines)


@dataclass(frozen=True)
class ListItem:
    blocks: Tuple[Block, ...]
    number: int | None = None


@dataclass(frozen=True)
class UnorderedList(Block):
    items: Tuple[ListItem, ...]


@dataclass(frozen=True)
class OrderedList(Block):
    items: Tuple[ListItem, ...]
    start: int = 1


@dataclass(frozen=True)
class HorizontalRule(Block):
    """Horizontal rule / thematic break."""


@dataclass(frozen=True)
class Text(Inline):
    text: str


@dataclass(frozen=True)
class Emphasis(Inline):
    children: Tuple[Inline, ...]


@dataclass(frozen=True)
class Strong(Inline):
    children: Tuple[Inline, ...]


@dataclass(frozen=True)
class StrongEmphasis(Inline):
    children: Tuple[Inline, ...]


@dataclass(frozen=True)
class Code(Inline):
    text: str


@dataclass(frozen=True)
class Link(Inline):
    children: Tuple[Inline, ...]
    url: str


@dataclass(frozen=True)
class LineBreak(Inline):
    """Hard line break inside a paragraph."""


def plain_text(inlines: Iterable[Inline]) -> str:
    parts: list[str] = []
    for inline in inlines:
        if isinstance(inline, (Text, Code)):
            parts.append(inline.text)
        elif isinstance(inline, LineBreak):
            parts.append(" ")
        elif isinstance(inline, (Emphasis, Strong, StrongEmphasis, Link)):
            parts.append(plain_text(inline.children))
    return "".join(parts)
