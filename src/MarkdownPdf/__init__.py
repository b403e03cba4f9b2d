from .api import parse, render, transform, write
from .model import Document
from .pdf_format import LayoutConfig, Margins, load_config
from .renderer_pdf import PdfWriteError

__all__ = [
    "Document",
    "LayoutConfig",
    "Margins",
    "PdfWriteError",
    "load_config",
    "parse",
    "render",
    "transform",
    "write",
]
