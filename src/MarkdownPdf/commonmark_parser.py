from __future__ import annotations

from typing import Iterable, List, Optional

from markdown_it import MarkdownIt

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


def parse_commonmark(text: str) -> Document:
    md = MarkdownIt("commonmark")
    tokens = md.parse(text)
    blocks, _ = _parse_blocks(tokens, 0, stop_types=set())
    return Document(blocks=tuple(blocks))


def _parse_blocks(tokens, index: int, stop_types: set[str]) -> tuple[list, int]:
    blocks: List[Block] = []
    i = index
    while i < len(tokens):
        tok = tokens[i]
        if tok.type in stop_types:
            break
        if tok.type == "heading_open":
            level = int(tok.tag[1])
            inline = tokens[i + 1]
            blocks.append(Heading(level=level, inline=_parse_inline(inline.children or [])))
            i += 3
        elif tok.type == "paragraph_open":
            inline = tokens[i + 1]
            blocks.append(Paragraph(inline=_parse_inline(inline.children or [])))
            i += 3
        elif tok.type in ("bullet_list_open", "ordered_list_open"):
            ordered = tok.type == "ordered_list_open"
            close_type = "ordered_list_close" if ordered else "bullet_list_close"
            start = int(tok.attrGet("start") or 1) if ordered else 1
            i += 1
            items: list[ListItem] = []
            while i < len(tokens) and tokens[i].type != close_type:
                if tokens[i].type == "list_item_open":
                    number = _item_number(tokens[i], start + len(items)) if ordered else None
                    i += 1
                    item_blocks, i = _parse_blocks(tokens, i, stop_types={"list_item_close"})
                    items.append(ListItem(blocks=tuple(item_blocks), number=number))
                    i += 1  # skip list_item_close
                else:
                    i += 1
            if ordered:
                blocks.append(OrderedList(items=tuple(items), start=start))
            else:
                blocks.append(UnorderedList(items=tuple(items)))
            i += 1  # skip list close
        elif tok.type in ("fence", "code_block"):
            language = (tok.info or "").strip() or None if tok.type == "fence" else None
            lines = tok.content[:-1] if tok.content.endswith("\n") else tok.content
            blocks.append(CodeBlock(lines=tuple(lines.split("\n")), language=language))
            i += 1
        elif tok.type == "hr":
            blocks.append(HorizontalRule())
            i += 1
        else:
            i += 1
    return blocks, i


def _item_number(tok, fallback: int) -> int:
    # markdown-it records the literal ordinal of each ordered item in ``info``
    info = (tok.info or "").strip()
    return int(info) if info.isdigit() else fallback


def _parse_inline(children: Iterable) -> tuple[Inline, ...]:
    stack: list[tuple[str, list, Optional[str]]] = [("root", [], None)]
    for tok in children:
        current = stack[-1][1]
        if tok.type == "text":
            _append_text(current, tok.content)
        elif tok.type == "softbreak":
            _append_text(current, " ")
        elif tok.type == "hardbreak":
            current.append(LineBreak())
        elif tok.type == "code_inline":
            current.append(Code(tok.content))
        elif tok.type in {"em_open", "strong_open", "link_open"}:
            stack.append((tok.type, [], tok.attrGet("href")))
        elif tok.type in {"em_close", "strong_close", "link_close"} and len(stack) > 1:
            kind, nodes, href = stack.pop()
            stack[-1][1].append(_wrap(kind, nodes, href))
        elif tok.type in {"image", "html_inline"}:
            _append_text(current, tok.content)
    while len(stack) > 1:
        kind, nodes, href = stack.pop()
        stack[-1][1].append(_wrap(kind, nodes, href))
    return tuple(stack[0][1])


def _append_text(nodes: list, text: str) -> None:
    if not text:
        return
    if nodes and isinstance(nodes[-1], Text):
        nodes[-1] = Text(nodes[-1].text + text)
    else:
        nodes.append(Text(text))


def _wrap(kind: str, nodes: list, href: Optional[str]) -> Inline:
    children = tuple(nodes)
    if kind == "link_open":
        return Link(children=children, url=href or "")
    if len(children) == 1:
        only = children[0]
        # markdown-it nests ***x*** as em(strong(x))
        if kind == "em_open" and isinstance(only, Strong):
            return StrongEmphasis(only.children)
        if kind == "strong_open" and isinstance(only, Emphasis):
            return StrongEmphasis(only.children)
    return Emphasis(children) if kind == "em_open" else Strong(children)
