from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .config import load_config
from .filesystem import FileBridge
from .generation import ClientFactory
from .images import ImageStore
from .kvstore import JsonStore
from .llm import default_client_factory
from .session import ReportSession
from .settings import SettingsStore
from .store import ProjectStore

logger = logging.getLogger(__name__)


def create_session(
    data_dir: Optional[Path | str] = None,
    *,
    client_factory: Optional[ClientFactory] = None,
) -> ReportSession:
    """Wire stores, file bridge and model client over one data directory."""
    cfg = load_config(data_dir)
    kv = JsonStore(cfg.store_dir)
    bridge = FileBridge(cfg.images_dir)
    session = ReportSession(
        store=ProjectStore(kv),
        images=ImageStore(kv, bridge),
        settings_store=SettingsStore(kv),
        client_factory=client_factory or default_client_factory,
    )
    logger.debug("[api] session ready at %s", cfg.data_dir)
    return session
