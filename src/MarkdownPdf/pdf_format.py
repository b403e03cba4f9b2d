from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

import yaml
from reportlab.lib import pagesizes

logger = logging.getLogger(__name__)

PAGE_WIDTH_PT, PAGE_HEIGHT_PT = pagesizes.A4
MARGIN_PT = 72.0

BASE_FONT_SIZE_PT = 11.0
CODE_FONT_SIZE_PT = 9.0
LINE_SPACING = 1.3
INDENT_STEP_PT = 18.0

# heading size relative to the body size, level 1 first
HEADING_SCALE = (2.0, 1.7, 1.45, 1.25, 1.1, 1.0)

DEFAULT_FONT_FAMILY = "Helvetica"
DEFAULT_CODE_FONT_FAMILY = "Courier"

# regular, bold, italic, bold italic
FONT_FAMILIES = {
    "Helvetica": ("Helvetica", "Helvetica-Bold", "Helvetica-Oblique", "Helvetica-BoldOblique"),
    "Times-Roman": ("Times-Roman", "Times-Bold", "Times-Italic", "Times-BoldItalic"),
    "Courier": ("Courier", "Courier-Bold", "Courier-Oblique", "Courier-BoldOblique"),
}
_FAMILY_ALIASES = {
    "helvetica": "Helvetica",
    "arial": "Helvetica",
    "sans": "Helvetica",
    "sans-serif": "Helvetica",
    "times": "Times-Roman",
    "times-roman": "Times-Roman",
    "times new roman": "Times-Roman",
    "serif": "Times-Roman",
    "courier": "Courier",
    "courier new": "Courier",
    "mono": "Courier",
    "monospace": "Courier",
}

PAGE_SIZES = {
    "a3": pagesizes.A3,
    "a4": pagesizes.A4,
    "a5": pagesizes.A5,
    "letter": pagesizes.LETTER,
    "legal": pagesizes.LEGAL,
}

_KEY_ALIASES = {
    "pageWidth": "page_width",
    "pageHeight": "page_height",
    "pageSize": "page_size",
    "baseFontSize": "base_font_size",
    "codeFontSize": "code_font_size",
    "fontFamily": "font_family",
    "codeFontFamily": "code_font_family",
    "lineSpacing": "line_spacing",
    "indentStep": "indent_step",
}


@dataclass(frozen=True)
class Margins:
    top: float = MARGIN_PT
    right: float = MARGIN_PT
    bottom: float = MARGIN_PT
    left: float = MARGIN_PT

    @classmethod
    def uniform(cls, value: float) -> "Margins":
        return cls(value, value, value, value)


@dataclass(frozen=True)
class LayoutConfig:
    """Page geometry and typography shared by the layout engine and the emitter."""

    page_width: float = PAGE_WIDTH_PT
    page_height: float = PAGE_HEIGHT_PT
    margins: Margins = field(default_factory=Margins)
    base_font_size: float = BASE_FONT_SIZE_PT
    code_font_size: float = CODE_FONT_SIZE_PT
    font_family: str = DEFAULT_FONT_FAMILY
    code_font_family: str = DEFAULT_CODE_FONT_FAMILY
    line_spacing: float = LINE_SPACING
    indent_step: float = INDENT_STEP_PT
    compress: bool = False
    title: str | None = None

    def __post_init__(self) -> None:
        for name in ("page_width", "page_height", "base_font_size", "code_font_size", "indent_step"):
            if getattr(self, name) <= 0:
                raise ValueError(f"Layout option {name} must be positive, got {getattr(self, name)}")
        if any(value < 0 for value in (self.margins.top, self.margins.right, self.margins.bottom, self.margins.left)):
            raise ValueError("Margins must not be negative.")
        if self.line_spacing < 1.0:
            raise ValueError(f"Layout option line_spacing must be at least 1.0, got {self.line_spacing}")
        if self.usable_width <= self.indent_step * 2:
            raise ValueError("Margins leave no usable page width.")
        # the tallest line, a level-1 heading or a code line, must fit on an empty page
        if self.usable_height < max(self.heading_size(1), self.code_font_size) * self.line_spacing:
            raise ValueError("Margins leave no usable page height.")

    @property
    def usable_width(self) -> float:
        return self.page_width - self.margins.left - self.margins.right

    @property
    def usable_height(self) -> float:
        return self.page_height - self.margins.top - self.margins.bottom

    def heading_size(self, level: int) -> float:
        return self.base_font_size * HEADING_SCALE[min(6, max(1, level)) - 1]

    def text_font(self, bold: bool = False, italic: bool = False) -> str:
        return font_name(self.font_family, bold=bold, italic=italic)

    def code_font(self) -> str:
        return font_name(self.code_font_family, fallback=DEFAULT_CODE_FONT_FAMILY)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "LayoutConfig":
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        # page_size first so explicit page_width/page_height win
        items = sorted(data.items(), key=lambda kv: _KEY_ALIASES.get(kv[0], kv[0]) != "page_size")
        for key, value in items:
            name = _KEY_ALIASES.get(key, key)
            if name == "page_size":
                values["page_width"], values["page_height"] = _page_size(value)
            elif name == "margins":
                values["margins"] = _margins(value)
            elif name == "compress":
                values["compress"] = bool(value)
            elif name in {"font_family", "code_font_family"}:
                values[name] = str(value)
            elif name == "title":
                values["title"] = None if value is None else str(value)
            elif name in known:
                values[name] = _number(key, value)
            else:
                raise ValueError(f"Unknown layout option: {key}")
        return cls(**values)


def font_name(family: str, bold: bool = False, italic: bool = False, fallback: str = DEFAULT_FONT_FAMILY) -> str:
    """Resolve a family name to one of the standard PDF fonts."""
    canonical = family if family in FONT_FAMILIES else _FAMILY_ALIASES.get(family.strip().lower())
    if canonical is None:
        logger.debug("Unsupported font family %r, using %s", family, fallback)
        canonical = fallback
    regular, bold_face, italic_face, bold_italic = FONT_FAMILIES[canonical]
    if bold and italic:
        return bold_italic
    if bold:
        return bold_face
    if italic:
        return italic_face
    return regular


def load_config(path: str | Path) -> LayoutConfig:
    """Read layout options from a YAML mapping."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError("Layout config root must be a mapping of options.")
    return LayoutConfig.from_mapping(data)


def _number(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f"Layout option {key} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Layout option {key} must be a number, got {value!r}") from None


def _page_size(value: Any) -> tuple[float, float]:
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return _number("page_size", value[0]), _number("page_size", value[1])
    parts = str(value).lower().split()
    if not parts or parts[0] not in PAGE_SIZES:
        raise ValueError(f"Unknown page size: {value!r}")
    size = PAGE_SIZES[parts[0]]
    if "landscape" in parts[1:]:
        size = pagesizes.landscape(size)
    return float(size[0]), float(size[1])


def _margins(value: Any) -> Margins:
    if isinstance(value, Mapping):
        unknown = set(value) - {"top", "right", "bottom", "left"}
        if unknown:
            raise ValueError(f"Unknown margin keys: {', '.join(sorted(unknown))}")
        return Margins(**{key: _number(f"margins.{key}", item) for key, item in value.items()})
    if isinstance(value, (list, tuple)) and len(value) == 4:
        return Margins(*(_number("margins", item) for item in value))
    return Margins.uniform(_number("margins", value))
