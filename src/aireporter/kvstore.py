from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from .utils import json_text, write_text_atomic

KEY_RE = re.compile(r"[A-Za-z0-9_.-]+\Z")


class JsonStore:
    """Key-value persistence: one JSON document per key under ``root``."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        if not KEY_RE.fullmatch(key or ""):
            raise ValueError(f"Invalid store key: {key!r}")
        return self.root / f"{key}.json"

    def has(self, key: str) -> bool:
        return self._path(key).exists()

    def get(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        if not path.exists():
            return default
        return json.loads(path.read_text(encoding="utf-8"))

    def set(self, key: str, value: Any) -> None:
        write_text_atomic(self._path(key), json_text(value))

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if not path.exists():
            return False
        path.unlink()
        return True
