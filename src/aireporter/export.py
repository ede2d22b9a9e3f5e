"""Markdown and PDF export targets.

Both targets start from the same export body (HackerOne documents are
flattened to plain Markdown first) and resolve image references through
``aireporter.references``: ``file://`` links for Markdown, inline data URLs
for PDF.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Iterable, Optional

from .hackerone import hackerone_export_markdown, parse_hackerone_report
from .models import StoredImage
from .references import ImageLoader, resolve_references, resolve_references_inline, rewrite_scheme
from .render.html import render_report_html
from .render.pdf import PdfRendererProtocol

logger = logging.getLogger(__name__)

PDF_DEFAULT_FILENAME = "security-report.pdf"
DEFAULT_TITLE = "Report"

_FILENAME_UNSAFE_RE = re.compile(r"[^A-Za-z0-9]")


def export_body(markdown: str, mode: str) -> str:
    if mode == "hackerone":
        return hackerone_export_markdown(parse_hackerone_report(markdown))
    return markdown or ""


def build_markdown_export(markdown: str, mode: str, images: Iterable[StoredImage]) -> str:
    return resolve_references(export_body(markdown, mode), images, scheme="file")


def pdf_filename(title: Optional[str]) -> str:
    if not title:
        return PDF_DEFAULT_FILENAME
    return _FILENAME_UNSAFE_RE.sub("_", title) + ".pdf"


def _write_file(path: Path, data: bytes | str) -> None:
    if isinstance(data, str):
        path.write_text(data, encoding="utf-8")
    else:
        path.write_bytes(data)


async def _write(path: Path | str, data: bytes | str) -> bool:
    try:
        await asyncio.to_thread(_write_file, Path(path), data)
    except OSError as exc:
        logger.error("[export] failed to write %s: %s", path, exc)
        return False
    return True


async def write_markdown_export(path: Path | str, content: str) -> bool:
    ok = await _write(path, content)
    if ok:
        logger.info("[export] markdown written to %s", path)
    return ok


async def prepare_pdf_html(
    markdown: str,
    mode: str,
    images: Iterable[StoredImage],
    *,
    loader: ImageLoader,
    accent_color: Optional[str] = None,
    title: str = DEFAULT_TITLE,
) -> str:
    """HTML handed to the PDF renderer: images inlined, ``media://`` rewritten to ``file://``."""
    resolved = await resolve_references_inline(export_body(markdown, mode), list(images), loader)
    document = render_report_html(resolved, accent_color=accent_color, title=title)
    return rewrite_scheme(document, "media", "file")


async def export_pdf(
    path: Path | str,
    markdown: str,
    mode: str,
    images: Iterable[StoredImage],
    *,
    loader: ImageLoader,
    renderer: PdfRendererProtocol,
    accent_color: Optional[str] = None,
    title: str = DEFAULT_TITLE,
) -> bool:
    html = await prepare_pdf_html(
        markdown,
        mode,
        images,
        loader=loader,
        accent_color=accent_color,
        title=title,
    )
    try:
        pdf_bytes = await asyncio.to_thread(renderer.render, html)
    except Exception as exc:
        logger.error("[export] PDF rendering failed for %s: %s", title, exc)
        return False
    ok = await _write(path, pdf_bytes)
    if ok:
        logger.info("[export] PDF written to %s (%d bytes)", path, len(pdf_bytes))
    return ok
