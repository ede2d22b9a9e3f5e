from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

PROJECTS_KEY = "projects"
IMAGES_META_KEY = "images-meta"
SETTINGS_KEY = "settings"

HOME_ENV = "AIREPORTER_HOME"


@dataclass
class ReporterConfig:
    data_dir: Path
    store_dir: Path
    images_dir: Path


def default_data_dir() -> Path:
    raw = os.environ.get(HOME_ENV, "").strip()
    if raw:
        return Path(raw).expanduser()
    return Path.home() / ".aireporter"


def load_config(data_dir: Optional[Path | str] = None) -> ReporterConfig:
    root = Path(data_dir).expanduser() if data_dir else default_data_dir()
    root = root.resolve()
    cfg = ReporterConfig(
        data_dir=root,
        store_dir=root / "store",
        images_dir=root / "images",
    )
    cfg.store_dir.mkdir(parents=True, exist_ok=True)
    cfg.images_dir.mkdir(parents=True, exist_ok=True)
    return cfg
