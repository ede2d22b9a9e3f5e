from __future__ import annotations

import logging

from .config import SETTINGS_KEY
from .kvstore import JsonStore
from .models import Settings

logger = logging.getLogger(__name__)


class SettingsStore:
    """Application settings; a missing or partial record is merged over defaults."""

    def __init__(self, kv: JsonStore, key: str = SETTINGS_KEY) -> None:
        self._kv = kv
        self._key = key

    def load(self) -> Settings:
        try:
            raw = self._kv.get(self._key, None)
        except (OSError, ValueError) as exc:
            logger.error("[settings] unreadable settings, using defaults: %s", exc)
            return Settings()
        return Settings.from_dict(raw if isinstance(raw, dict) else None)

    def save(self, settings: Settings) -> Settings:
        self._kv.set(self._key, settings.to_dict())
        return settings

    def update(self, **fields: object) -> Settings:
        settings = self.load()
        for name, value in fields.items():
            if not hasattr(settings, name) or name.startswith("_"):
                logger.warning("[settings] ignoring unknown setting %s", name)
                continue
            setattr(settings, name, value)
        return self.save(settings)
