"""Data models: Project, Folder, Report, StoredImage, Settings."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Optional, Union

from .utils import now_ms

REPORT_MODES = ("standard", "hackerone")
DEFAULT_MODE = "standard"


def normalize_mode(mode: Optional[str]) -> str:
    token = (mode or "").strip().lower()
    return token if token in REPORT_MODES else DEFAULT_MODE


@dataclass
class Report:
    id: str
    name: str
    findings: str = ""
    markdown: str = ""
    mode: str = DEFAULT_MODE
    created_at: int = field(default_factory=now_ms)
    updated_at: int = field(default_factory=now_ms)

    type: ClassVar[str] = "report"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "findings": self.findings,
            "markdown": self.markdown,
            "mode": self.mode,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Report":
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name") or ""),
            findings=str(payload.get("findings") or ""),
            markdown=str(payload.get("markdown") or ""),
            mode=normalize_mode(payload.get("mode")),
            created_at=int(payload.get("createdAt") or 0),
            updated_at=int(payload.get("updatedAt") or 0),
        )


@dataclass
class Folder:
    id: str
    name: str
    children: list["FileSystemItem"] = field(default_factory=list)
    created_at: int = field(default_factory=now_ms)
    updated_at: int = field(default_factory=now_ms)

    type: ClassVar[str] = "folder"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "children": [child.to_dict() for child in self.children],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Folder":
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name") or ""),
            children=[item_from_dict(child) for child in payload.get("children") or []],
            created_at=int(payload.get("createdAt") or 0),
            updated_at=int(payload.get("updatedAt") or 0),
        )


FileSystemItem = Union[Report, Folder]


def item_from_dict(payload: dict[str, Any]) -> FileSystemItem:
    if payload.get("type") == Folder.type:
        return Folder.from_dict(payload)
    return Report.from_dict(payload)


def migrate_project(payload: dict[str, Any]) -> dict[str, Any]:
    """Upgrade a legacy project record (flat ``reports``) to the ``items`` tree.

    Records that already carry ``items`` are returned unchanged.
    """
    if "items" in payload:
        return payload
    items = [{**dict(report), "type": Report.type} for report in payload.get("reports") or []]
    migrated: dict[str, Any] = {
        "id": payload.get("id"),
        "name": payload.get("name"),
        "items": items,
        "createdAt": payload.get("createdAt"),
        "updatedAt": payload.get("updatedAt"),
    }
    if payload.get("description") is not None:
        migrated["description"] = payload["description"]
    return migrated


@dataclass
class Project:
    id: str
    name: str
    description: Optional[str] = None
    items: list[FileSystemItem] = field(default_factory=list)
    created_at: int = field(default_factory=now_ms)
    updated_at: int = field(default_factory=now_ms)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "items": [item.to_dict() for item in self.items],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.description is not None:
            payload["description"] = self.description
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Project":
        data = migrate_project(payload)
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            description=data.get("description"),
            items=[item_from_dict(item) for item in data.get("items") or []],
            created_at=int(data.get("createdAt") or 0),
            updated_at=int(data.get("updatedAt") or 0),
        )


@dataclass
class StoredImage:
    id: str
    report_id: str
    description: str
    file_path: str
    created_at: int = field(default_factory=now_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "reportId": self.report_id,
            "description": self.description,
            "filePath": self.file_path,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "StoredImage":
        return cls(
            id=str(payload["id"]),
            report_id=str(payload.get("reportId") or ""),
            description=str(payload.get("description") or ""),
            file_path=str(payload.get("filePath") or ""),
            created_at=int(payload.get("createdAt") or 0),
        )


@dataclass
class Settings:
    api_key: Optional[str] = None
    theme: str = "dark"
    default_project_id: Optional[str] = None
    temperature: float = 0.3
    model: str = "gemini-2.5-flash"
    accent_color: str = "#4ade80"

    _KEYS: ClassVar[dict[str, str]] = {
        "api_key": "apiKey",
        "theme": "theme",
        "default_project_id": "defaultProjectId",
        "temperature": "temperature",
        "model": "model",
        "accent_color": "accentColor",
    }

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if value is None:
                continue
            payload[self._KEYS[item.name]] = value
        return payload

    @classmethod
    def from_dict(cls, payload: Optional[dict[str, Any]]) -> "Settings":
        settings = cls()
        if not payload:
            return settings
        for attr, key in cls._KEYS.items():
            if key in payload and payload[key] is not None:
                setattr(settings, attr, payload[key])
        settings.temperature = float(settings.temperature)
        return settings
