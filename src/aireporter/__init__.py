"""AIReporter core: project tree storage, report generation and export."""

from __future__ import annotations

from .versioning import VERSION as __version__

__all__ = ["ReportSession", "create_session", "ProjectStore", "__version__"]


def __getattr__(name: str):
    if name == "create_session":
        from .api import create_session

        return create_session
    if name == "ReportSession":
        from .session import ReportSession

        return ReportSession
    if name == "ProjectStore":
        from .store import ProjectStore

        return ProjectStore
    raise AttributeError(f"module 'aireporter' has no attribute {name!r}")


def __dir__() -> list[str]:
    return sorted(__all__)
