from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from .model import Code, Emphasis, Inline, LineBreak, Link, Strong, StrongEmphasis, Text

_ESCAPABLE = frozenset("!\"#$%&'()*+,-./:;<=>?@[\\]^_`{|}~")
_WRAPPERS = {1: Emphasis, 2: Strong, 3: StrongEmphasis}
_MAX_DELIMITER_RUN = 3


@dataclass
class _Delimiter:
    """A run of ``*`` or ``_``; ``length`` counts the characters not yet paired."""

    char: str
    position: int
    length: int
    can_open: bool
    can_close: bool
    opens: List[int] = field(default_factory=list)
    closes: List[int] = field(default_factory=list)


_Item = Union[str, Inline, _Delimiter]


def scan_inline(text: str) -> Tuple[Inline, ...]:
    return _scan(text)


def _scan(text: str) -> Tuple[Inline, ...]:
    items = _tokenize(text)
    _pair_delimiters([item for item in items if isinstance(item, _Delimiter)])
    return _assemble(items)


def _tokenize(text: str) -> List[_Item]:
    items: List[_Item] = []
    buffer: List[str] = []
    code_misses: Dict[int, int] = {}
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\\" and i + 1 < len(text) and text[i + 1] in _ESCAPABLE:
            buffer.append(text[i + 1])
            i += 2
        elif ch == "\n":
            _flush(buffer, items)
            items.append(LineBreak())
            i += 1
        elif ch == "`":
            span = _match_code(text, i, code_misses)
            if span is None:
                run = _run_length(text, i, "`")
                buffer.append(text[i : i + run])
                i += run
            else:
                content, i = span
                _flush(buffer, items)
                items.append(Code(content))
        elif ch == "[":
            link = _match_link(text, i)
            if link is None:
                buffer.append(ch)
                i += 1
            else:
                label, url, i = link
                _flush(buffer, items)
                items.append(Link(children=_scan(label), url=url))
        elif ch in "*_":
            run = _run_length(text, i, ch)
            _flush(buffer, items)
            items.append(_delimiter(text, i, run))
            i += run
        else:
            buffer.append(ch)
            i += 1
    _flush(buffer, items)
    return items


def _flush(buffer: List[str], items: List[_Item]) -> None:
    if buffer:
        items.append("".join(buffer))
        buffer.clear()


def _run_length(text: str, index: int, ch: str) -> int:
    end = index
    while end < len(text) and text[end] == ch:
        end += 1
    return end - index


def _delimiter(text: str, index: int, run: int) -> _Delimiter:
    ch = text[index]
    if run > _MAX_DELIMITER_RUN:
        return _Delimiter(ch, index, run, can_open=False, can_close=False)
    before = text[index - 1] if index > 0 else " "
    after = text[index + run] if index + run < len(text) else " "
    can_open = not after.isspace()
    can_close = not before.isspace()
    if ch == "_":
        # no intraword emphasis with underscores
        can_open = can_open and not before.isalnum()
        can_close = can_close and not after.isalnum()
    return _Delimiter(ch, index, run, can_open=can_open, can_close=can_close)


def _pair_delimiters(delimiters: List[_Delimiter]) -> None:
    """Match closers left to right against the nearest open run of the same character.

    A closer consumes from its start and an opener from its end, so ``**a *b***``
    closes the inner span first and the outer span with what is left.
    Openers of the other character that sit inside a matched pair stay literal.
    """
    openers: Dict[str, List[_Delimiter]] = {"*": [], "_": []}
    for closer in delimiters:
        if closer.can_close:
            same = openers[closer.char]
            other = openers["_" if closer.char == "*" else "*"]
            while closer.length and same:
                opener = same[-1]
                while other and other[-1].position > opener.position:
                    other.pop()
                width = min(opener.length, closer.length, _MAX_DELIMITER_RUN)
                opener.length -= width
                closer.length -= width
                opener.opens.append(width)
                closer.closes.append(width)
                if not opener.length:
                    same.pop()
        if closer.length and closer.can_open:
            openers[closer.char].append(closer)


def _assemble(items: List[_Item]) -> Tuple[Inline, ...]:
    frames: List[List[Union[str, Inline]]] = [[]]
    for item in items:
        if not isinstance(item, _Delimiter):
            frames[-1].append(item)
            continue
        for width in item.closes:
            children = _merge_text(frames.pop())
            frames[-1].append(_WRAPPERS[width](children))
        if item.length:
            frames[-1].append(item.char * item.length)
        for _ in item.opens:
            frames.append([])
    return _merge_text(frames[0])


def _merge_text(parts: List[Union[str, Inline]]) -> Tuple[Inline, ...]:
    nodes: List[Inline] = []
    pending: List[str] = []
    for part in parts:
        if isinstance(part, str):
            pending.append(part)
            continue
        if pending:
            nodes.append(Text("".join(pending)))
            pending.clear()
        nodes.append(part)
    if pending:
        nodes.append(Text("".join(pending)))
    return tuple(nodes)


def _match_code(text: str, index: int, misses: Optional[Dict[int, int]] = None) -> Optional[Tuple[str, int]]:
    """Return (content, end) for a code span opening at ``index``."""
    run = _run_length(text, index, "`")
    if misses is not None and index >= misses.get(run, len(text)):
        return None
    j = index + run
    while j < len(text):
        if text[j] != "`":
            j += 1
            continue
        closing = _run_length(text, j, "`")
        if closing == run:
            content = text[index + run : j].replace("\n", " ")
            if len(content) > 1 and content[0] == " " and content[-1] == " " and content.strip():
                content = content[1:-1]
            return content, j + closing
        j += closing
    if misses is not None:
        # no run of this length follows, so later openers of the same length fail too
        misses[run] = min(index, misses.get(run, index))
    return None


def _match_link(text: str, index: int) -> Optional[Tuple[str, str, int]]:
    depth = 0
    j = index
    while j < len(text):
        ch = text[j]
        if ch == "\\":
            j += 2
            continue
        if ch == "`":
            span = _match_code(text, j)
            if span is not None:
                j = span[1]
                continue
        if ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth == 0:
                break
        j += 1
    else:
        return None
    if j + 1 >= len(text) or text[j + 1] != "(":
        return None
    close = text.find(")", j + 2)
    if close == -1:
        return None
    target = text[j + 2 : close].strip()
    # an optional title after the destination is ignored
    url = target.split()[0] if target else ""
    if url.startswith("<") and url.endswith(">"):
        url = url[1:-1]
    return text[index + 1 : j], url, close + 1
