"""Screenshot metadata (``images-meta``) with bytes stored through ``FileBridge``.

Images point at their report by ``report_id``; they are not embedded in the
project tree, so image edits and report edits never touch the same record.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from .config import IMAGES_META_KEY
from .filesystem import FileBridge
from .kvstore import JsonStore
from .models import StoredImage
from .utils import now_ms, random_base36

logger = logging.getLogger(__name__)

DESCRIPTION_LIMIT = 100
DEFAULT_DESCRIPTION = "Screenshot"
IMAGE_ID_PREFIX = "img-"
IMAGE_ID_LENGTH = 6

_DISALLOWED_RE = re.compile(r"[^\w\s.,!?()-]|_")
_SPACES_RE = re.compile(r"\s+")


def sanitize_description(text: str) -> str:
    """Keep letters, digits, whitespace and ``.,!?()-``; collapse spaces; cap length."""
    cleaned = _DISALLOWED_RE.sub("", text or "")
    cleaned = _SPACES_RE.sub(" ", cleaned).strip()
    return cleaned[:DESCRIPTION_LIMIT]


def generate_image_id(existing: set[str] | None = None) -> str:
    taken = existing or set()
    while True:
        candidate = IMAGE_ID_PREFIX + random_base36(IMAGE_ID_LENGTH)
        if candidate not in taken:
            return candidate


class ImageStore:
    def __init__(self, kv: JsonStore, bridge: FileBridge, key: str = IMAGES_META_KEY) -> None:
        self._kv = kv
        self._key = key
        self.bridge = bridge

    def _load(self) -> list[StoredImage]:
        try:
            raw = self._kv.get(self._key, [])
            return [StoredImage.from_dict(entry) for entry in raw or []]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.error("[images] unreadable image metadata, treating as empty: %s", exc)
            return []

    def _save(self, images: list[StoredImage]) -> None:
        try:
            self._kv.set(self._key, [image.to_dict() for image in images])
        except OSError as exc:
            logger.error("[images] failed to save image metadata: %s", exc)

    def all_images(self) -> list[StoredImage]:
        return self._load()

    def get_images_for_report(self, report_id: str) -> list[StoredImage]:
        return [image for image in self._load() if image.report_id == report_id]

    def get_image(self, image_id: str) -> Optional[StoredImage]:
        for image in self._load():
            if image.id == image_id:
                return image
        return None

    async def store_image(self, report_id: str, data: bytes, description: str) -> Optional[StoredImage]:
        images = self._load()
        image_id = generate_image_id({image.id for image in images})
        path = await self.bridge.save(image_id, data)
        if path is None:
            return None
        image = StoredImage(
            id=image_id,
            report_id=report_id,
            description=sanitize_description(description) or DEFAULT_DESCRIPTION,
            file_path=str(path),
            created_at=now_ms(),
        )
        # Re-read: other writes may have landed while the file was being saved.
        images = self._load()
        images.append(image)
        self._save(images)
        logger.debug("[images] stored %s for report %s", image.id, report_id)
        return image

    def update_description(self, image_id: str, description: str) -> bool:
        images = self._load()
        for image in images:
            if image.id == image_id:
                image.description = sanitize_description(description) or DEFAULT_DESCRIPTION
                self._save(images)
                return True
        return False

    async def replace_image(self, image_id: str, data: bytes) -> Optional[StoredImage]:
        current = self.get_image(image_id)
        if current is None:
            return None
        path = await self.bridge.replace(image_id, data)
        if path is None:
            return None
        if Path(current.file_path) != path:
            await self.bridge.delete(current.file_path)
        images = self._load()
        for image in images:
            if image.id == image_id:
                image.file_path = str(path)
                self._save(images)
                return image
        return None

    async def delete_image(self, image_id: str) -> bool:
        image = self.get_image(image_id)
        if image is None:
            return False
        await self.bridge.delete(image.file_path)
        self._save([item for item in self._load() if item.id != image_id])
        return True

    async def delete_images_for_report(self, report_id: str) -> int:
        doomed = self.get_images_for_report(report_id)
        for image in doomed:
            await self.bridge.delete(image.file_path)
        if doomed:
            self._save([item for item in self._load() if item.report_id != report_id])
        return len(doomed)

    async def save_image_as(self, image_id: str, destination: Path | str) -> bool:
        image = self.get_image(image_id)
        if image is None:
            return False
        return await self.bridge.copy(image.file_path, destination)

    async def load_data_url(self, path: str) -> Optional[str]:
        return await self.bridge.load_data_url(path)
