"""Asynchronous file-system bridge for screenshot bytes.

Every operation runs its disk work off the event loop and reports failure as
``None``/``False`` after logging; callers never see raw ``OSError``.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import io
import logging
import mimetypes
import re
import shutil
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

DATA_URL_RE = re.compile(r"^data:image/(\w+);base64,(.+)$", re.DOTALL)

_FORMAT_EXTENSIONS = {
    "JPEG": "jpg",
    "PNG": "png",
    "GIF": "gif",
    "WEBP": "webp",
    "BMP": "bmp",
}


def decode_data_url(text: str) -> bytes:
    match = DATA_URL_RE.match(text.strip())
    if not match:
        raise ValueError("Invalid base64 image data")
    try:
        return base64.b64decode(match.group(2), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Invalid base64 image data") from exc


def encode_data_url(data: bytes, path: Path | str) -> str:
    suffix = Path(path).suffix.lower().lstrip(".")
    mime = "image/jpeg" if suffix in {"jpg", "jpeg"} else f"image/{suffix or 'png'}"
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def sniff_image_extension(data: bytes) -> str:
    """Return the file extension for image bytes, or raise ``ValueError``."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = (img.format or "").upper()
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError("Not a recognized image") from exc
    ext = _FORMAT_EXTENSIONS.get(fmt)
    if ext:
        return ext
    guessed = mimetypes.guess_extension(Image.MIME.get(fmt, "")) or ""
    return guessed.lstrip(".") or fmt.lower() or "png"


def to_png(data: bytes) -> bytes:
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            out = io.BytesIO()
            img.save(out, format="PNG")
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError("Not a recognized image") from exc
    return out.getvalue()


class FileBridge:
    def __init__(self, images_dir: Path) -> None:
        self.images_dir = Path(images_dir)

    def _write_image(self, image_id: str, data: bytes) -> Path:
        ext = sniff_image_extension(data)
        self.images_dir.mkdir(parents=True, exist_ok=True)
        path = self.images_dir / f"{image_id}.{ext}"
        path.write_bytes(data)
        return path

    def _replace_image(self, image_id: str, data: bytes) -> Path:
        png = to_png(data)
        self.images_dir.mkdir(parents=True, exist_ok=True)
        path = self.images_dir / f"{image_id}.png"
        path.write_bytes(png)
        return path

    async def save(self, image_id: str, data: bytes) -> Optional[Path]:
        try:
            return await asyncio.to_thread(self._write_image, image_id, data)
        except (OSError, ValueError) as exc:
            logger.error("[fs] failed to save image %s: %s", image_id, exc)
            return None

    async def replace(self, image_id: str, data: bytes) -> Optional[Path]:
        try:
            return await asyncio.to_thread(self._replace_image, image_id, data)
        except (OSError, ValueError) as exc:
            logger.error("[fs] failed to replace image %s: %s", image_id, exc)
            return None

    async def load(self, path: Path | str) -> Optional[bytes]:
        try:
            return await asyncio.to_thread(Path(path).read_bytes)
        except OSError as exc:
            logger.error("[fs] failed to load image %s: %s", path, exc)
            return None

    async def load_data_url(self, path: Path | str) -> Optional[str]:
        data = await self.load(path)
        if data is None:
            return None
        return encode_data_url(data, path)

    async def delete(self, path: Path | str) -> bool:
        try:
            await asyncio.to_thread(Path(path).unlink)
        except OSError as exc:
            logger.error("[fs] failed to delete image %s: %s", path, exc)
            return False
        return True

    async def copy(self, src: Path | str, dst: Path | str) -> bool:
        try:
            await asyncio.to_thread(shutil.copyfile, str(src), str(dst))
        except OSError as exc:
            logger.error("[fs] failed to copy %s to %s: %s", src, dst, exc)
            return False
        return True

