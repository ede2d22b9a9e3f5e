"""Single-page ("seamless") PDF rendering with PyMuPDF's HTML ``Story``.

The report is laid out once on a very tall area to measure its height, then
drawn on one A4-wide page whose height is derived from that measurement.
"""

from __future__ import annotations

import io
import math
from typing import Protocol

A4_WIDTH_PT = 595
PAGE_MARGIN_PT = 36
MEASURE_HEIGHT_PT = 100_000
BACKGROUND_RGB = (13 / 255, 13 / 255, 13 / 255)


def page_height_for(content_height: float) -> int:
    """Page height for measured content, with 10% plus 100 units of slack."""
    return math.ceil(content_height * 1.10 + 100)


class PdfRendererProtocol(Protocol):
    def render(self, html: str) -> bytes: ...


class PdfRenderer:
    def __init__(
        self,
        width: float = A4_WIDTH_PT,
        margin: float = PAGE_MARGIN_PT,
        background: tuple[float, float, float] | None = BACKGROUND_RGB,
    ) -> None:
        self.width = width
        self.margin = margin
        self.background = background

    def _content_rect(self, height: float):
        import fitz  # type: ignore

        return fitz.Rect(self.margin, self.margin, self.width - self.margin, height - self.margin)

    def measure(self, html: str) -> float:
        """Height of the laid-out document including both vertical margins."""
        import fitz  # type: ignore

        story = fitz.Story(html=html)
        _more, filled = story.place(self._content_rect(MEASURE_HEIGHT_PT))
        return float(fitz.Rect(filled).y1) + self.margin

    def render(self, html: str) -> bytes:
        import fitz  # type: ignore

        height = page_height_for(self.measure(html))
        mediabox = fitz.Rect(0, 0, self.width, height)
        buffer = io.BytesIO()
        writer = fitz.DocumentWriter(buffer)
        story = fitz.Story(html=html)
        story.place(self._content_rect(height))
        device = writer.begin_page(mediabox)
        story.draw(device)
        writer.end_page()
        writer.close()
        return self._paint_background(buffer.getvalue())

    def _paint_background(self, pdf_bytes: bytes) -> bytes:
        if self.background is None:
            return pdf_bytes
        import fitz  # type: ignore

        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
        try:
            page = doc[0]
            page.draw_rect(page.rect, color=None, fill=self.background, overlay=False)
            return doc.tobytes(garbage=3, deflate=True)
        finally:
            doc.close()
