"""Inline ``@img-<id>`` reference tokens and their resolution to image tags.

Live preview, Markdown export and PDF export all go through this module so a
token always resolves the same way regardless of the consumer.
"""

from __future__ import annotations

import html as html_lib
import logging
import re
from typing import Awaitable, Callable, Iterable, Optional
from urllib.parse import quote, unquote

from .models import StoredImage

logger = logging.getLogger(__name__)

IMAGE_REF_RE = re.compile(r"@(img-[a-z0-9]+)")
LINK_SCHEMES = ("media", "file")

# Characters left unescaped by JavaScript's encodeURIComponent.
_URI_COMPONENT_SAFE = "-_.!~*'()"

ImageLoader = Callable[[str], Awaitable[Optional[str]]]


def _index(images: Iterable[StoredImage]) -> dict[str, StoredImage]:
    by_id: dict[str, StoredImage] = {}
    for image in images:
        by_id.setdefault(image.id, image)
    return by_id


def image_url(image: StoredImage, scheme: str = "media", cache_bust: Optional[object] = None) -> str:
    if scheme not in LINK_SCHEMES:
        raise ValueError(f"Unsupported image scheme: {scheme!r}")
    url = f"{scheme}://{quote(image.file_path, safe=_URI_COMPONENT_SAFE)}"
    if cache_bust is not None:
        url += f"?t={cache_bust}"
    return url


def image_tag(src: str, alt: str) -> str:
    return f'<img src="{html_lib.escape(src, quote=True)}" alt="{html_lib.escape(alt, quote=True)}" />'


def missing_image_marker(image_id: str) -> str:
    return f"*(Image not found: {image_id})*"


def referenced_image_ids(text: str) -> list[str]:
    seen: dict[str, None] = {}
    for match in IMAGE_REF_RE.finditer(text or ""):
        seen.setdefault(match.group(1), None)
    return list(seen)


def resolve_references(
    text: str,
    images: Iterable[StoredImage],
    scheme: str = "media",
    cache_bust: Optional[object] = None,
) -> str:
    """Replace tokens with ``<img>`` tags pointing at ``scheme://<path>``.

    ``media`` serves the in-app preview, ``file`` produces portable Markdown.
    Tokens without a matching image become a visible placeholder.
    """
    by_id = _index(images)

    def replace(match: re.Match[str]) -> str:
        image_id = match.group(1)
        image = by_id.get(image_id)
        if image is None:
            return missing_image_marker(image_id)
        return image_tag(image_url(image, scheme, cache_bust), image.description)

    return IMAGE_REF_RE.sub(replace, text or "")


async def resolve_references_inline(
    text: str,
    images: Iterable[StoredImage],
    loader: ImageLoader,
) -> str:
    """Replace tokens with ``<img>`` tags carrying the image bytes as data URLs.

    Each distinct referenced id is loaded at most once.
    """
    by_id = _index(images)
    data_urls: dict[str, str] = {}
    for image_id in referenced_image_ids(text):
        image = by_id.get(image_id)
        if image is None:
            continue
        try:
            data_url = await loader(image.file_path)
        except Exception as exc:
            logger.error("[references] failed to load %s for inlining: %s", image_id, exc)
            continue
        if data_url:
            data_urls[image_id] = data_url

    def replace(match: re.Match[str]) -> str:
        image_id = match.group(1)
        image = by_id.get(image_id)
        data_url = data_urls.get(image_id)
        if image is None or not data_url:
            return missing_image_marker(image_id)
        return image_tag(data_url, image.description)

    return IMAGE_REF_RE.sub(replace, text or "")


def strip_dangling_references(text: str, images: Iterable[StoredImage]) -> str:
    known = set(_index(images))
    return IMAGE_REF_RE.sub(lambda m: m.group(0) if m.group(1) in known else "", text or "")


def describe_attached_images(images: Iterable[StoredImage]) -> str:
    lines = [f'{{{image.id}: "{image.description}"}}' for image in images]
    if not lines:
        return ""
    return "\n\n[ATTACHED SCREENSHOTS]\n" + "\n".join(lines)


def media_url_to_path(url: str) -> str:
    """Decode a ``media://`` (or ``file://``) image URL back to a filesystem path."""
    raw = url
    for scheme in LINK_SCHEMES:
        prefix = f"{scheme}://"
        if raw.startswith(prefix):
            raw = raw[len(prefix):]
            break
    raw = raw.split("?", 1)[0]
    return unquote(raw)


def rewrite_scheme(markup: str, source: str = "media", target: str = "file") -> str:
    return markup.replace(f"{source}://", f"{target}://")
