from .html import markdown_to_html, normalize_accent_color, render_report_html, wrap_code_blocks
from .pdf import A4_WIDTH_PT, PdfRenderer, page_height_for

__all__ = [
    "A4_WIDTH_PT",
    "PdfRenderer",
    "markdown_to_html",
    "normalize_accent_color",
    "page_height_for",
    "render_report_html",
    "wrap_code_blocks",
]
