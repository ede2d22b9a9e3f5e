"""Hierarchical project store: Projects own ordered trees of Folders and Reports.

Every mutation is a whole-collection read-modify-write against the key-value
store: load all projects, change one of them in memory, save all projects.
Callers are expected to run mutations from a single thread (the event loop);
there is no lock.

Lookups never raise for unknown ids; they return ``None`` (or ``False``) and the
caller decides whether that is an error.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Iterable, Iterator, Optional, Union

from .config import PROJECTS_KEY
from .kvstore import JsonStore
from .models import REPORT_MODES, FileSystemItem, Folder, Project, Report
from .utils import generate_id, now_ms

logger = logging.getLogger(__name__)

PROJECT_FIELDS = frozenset({"name", "description"})
FOLDER_FIELDS = frozenset({"name"})
REPORT_FIELDS = frozenset({"name", "findings", "markdown", "mode"})


def _locate(items: list[FileSystemItem], item_id: str) -> Optional[tuple[list[FileSystemItem], int]]:
    for index, item in enumerate(items):
        if item.id == item_id:
            return items, index
        if isinstance(item, Folder):
            found = _locate(item.children, item_id)
            if found is not None:
                return found
    return None


def find_in_tree(items: list[FileSystemItem], item_id: str) -> Optional[FileSystemItem]:
    found = _locate(items, item_id)
    if found is None:
        return None
    container, index = found
    return container[index]


def iter_reports(items: Iterable[FileSystemItem]) -> Iterator[Report]:
    for item in items:
        if isinstance(item, Report):
            yield item
        elif isinstance(item, Folder):
            yield from iter_reports(item.children)


def get_all_reports(source: Union[Project, Folder]) -> list[Report]:
    """Flatten a project (or folder) into its Report leaves, preorder."""
    items = source.items if isinstance(source, Project) else source.children
    return list(iter_reports(items))


def collect_report_ids(item: FileSystemItem) -> list[str]:
    if isinstance(item, Report):
        return [item.id]
    return [report.id for report in iter_reports(item.children)]


def _check_name(name: str) -> str:
    if not name or not name.strip():
        raise ValueError("Name is required")
    return name


def _check_mode(mode: str) -> str:
    if mode not in REPORT_MODES:
        raise ValueError(f"Unknown report mode: {mode!r}")
    return mode


def _permitted(fields: dict[str, Any], allowed: frozenset[str], target: str) -> dict[str, Any]:
    ignored = sorted(set(fields) - allowed)
    if ignored:
        logger.warning("[store] ignoring non-updatable %s fields: %s", target, ", ".join(ignored))
    return {key: value for key, value in fields.items() if key in allowed}


class ProjectStore:
    def __init__(self, kv: JsonStore, key: str = PROJECTS_KEY) -> None:
        self._kv = kv
        self._key = key

    # -- collection ---------------------------------------------------------

    def load_projects(self) -> list[Project]:
        raw = self._kv.get(self._key, [])
        return [Project.from_dict(entry) for entry in raw or []]

    def save_projects(self, projects: list[Project]) -> None:
        self._kv.set(self._key, [project.to_dict() for project in projects])

    list_projects = load_projects

    @staticmethod
    def _find_project(projects: list[Project], project_id: str) -> Optional[Project]:
        for project in projects:
            if project.id == project_id:
                return project
        return None

    def get_project(self, project_id: str) -> Optional[Project]:
        return self._find_project(self.load_projects(), project_id)

    # -- projects -----------------------------------------------------------

    def create_project(self, name: str, description: Optional[str] = None) -> Project:
        ts = now_ms()
        project = Project(
            id=generate_id(),
            name=_check_name(name),
            description=description,
            items=[],
            created_at=ts,
            updated_at=ts,
        )
        projects = self.load_projects()
        projects.insert(0, project)
        self.save_projects(projects)
        logger.debug("[store] created project %s", project.id)
        return project

    def update_project(self, project_id: str, **fields: Any) -> Optional[Project]:
        updates = _permitted(fields, PROJECT_FIELDS, "project")
        if "name" in updates:
            _check_name(updates["name"])
        projects = self.load_projects()
        for index, project in enumerate(projects):
            if project.id != project_id:
                continue
            updated = dataclasses.replace(project, **updates, updated_at=now_ms())
            projects[index] = updated
            self.save_projects(projects)
            return updated
        return None

    def delete_project(self, project_id: str) -> bool:
        projects = self.load_projects()
        remaining = [project for project in projects if project.id != project_id]
        if len(remaining) == len(projects):
            return False
        self.save_projects(remaining)
        logger.debug("[store] deleted project %s", project_id)
        return True

    # -- items --------------------------------------------------------------

    @staticmethod
    def _attach(project: Project, item: FileSystemItem, parent_folder_id: Optional[str]) -> bool:
        if not parent_folder_id:
            project.items.insert(0, item)
            return True
        parent = find_in_tree(project.items, parent_folder_id)
        if not isinstance(parent, Folder):
            return False
        parent.children.insert(0, item)
        return True

    def _create_item(
        self, project_id: str, item: FileSystemItem, parent_folder_id: Optional[str]
    ) -> Optional[FileSystemItem]:
        projects = self.load_projects()
        project = self._find_project(projects, project_id)
        if project is None:
            return None
        if not self._attach(project, item, parent_folder_id):
            logger.debug("[store] parent %s is not a folder in project %s", parent_folder_id, project_id)
            return None
        project.updated_at = item.updated_at
        self.save_projects(projects)
        return item

    def add_report(
        self,
        project_id: str,
        name: str,
        parent_folder_id: Optional[str] = None,
        findings: str = "",
        markdown: str = "",
        mode: str = "standard",
    ) -> Optional[Report]:
        ts = now_ms()
        report = Report(
            id=generate_id(),
            name=_check_name(name),
            findings=findings,
            markdown=markdown,
            mode=_check_mode(mode),
            created_at=ts,
            updated_at=ts,
        )
        return self._create_item(project_id, report, parent_folder_id)  # type: ignore[return-value]

    def create_folder(
        self, project_id: str, name: str, parent_folder_id: Optional[str] = None
    ) -> Optional[Folder]:
        ts = now_ms()
        folder = Folder(id=generate_id(), name=_check_name(name), children=[], created_at=ts, updated_at=ts)
        return self._create_item(project_id, folder, parent_folder_id)  # type: ignore[return-value]

    def _update_item(
        self, project_id: str, item_id: str, kind: type, updates: dict[str, Any]
    ) -> Optional[FileSystemItem]:
        projects = self.load_projects()
        project = self._find_project(projects, project_id)
        if project is None:
            return None
        found = _locate(project.items, item_id)
        if found is None:
            return None
        container, index = found
        if not isinstance(container[index], kind):
            return None
        ts = now_ms()
        updated = dataclasses.replace(container[index], **updates, updated_at=ts)
        container[index] = updated
        project.updated_at = ts
        self.save_projects(projects)
        return updated

    def update_report(self, project_id: str, report_id: str, **fields: Any) -> Optional[Report]:
        """Merge ``name``/``findings``/``markdown``/``mode`` into a report.

        Only the fields passed are written; a call without ``findings`` leaves
        the stored findings exactly as they are.
        """
        updates = _permitted(fields, REPORT_FIELDS, "report")
        if "mode" in updates:
            _check_mode(updates["mode"])
        if "name" in updates:
            _check_name(updates["name"])
        return self._update_item(project_id, report_id, Report, updates)  # type: ignore[return-value]

    def update_folder(self, project_id: str, folder_id: str, **fields: Any) -> Optional[Folder]:
        updates = _permitted(fields, FOLDER_FIELDS, "folder")
        if "name" in updates:
            _check_name(updates["name"])
        return self._update_item(project_id, folder_id, Folder, updates)  # type: ignore[return-value]

    def delete_item(self, project_id: str, item_id: str) -> Optional[FileSystemItem]:
        """Remove a node and its whole subtree. Returns the removed node."""
        projects = self.load_projects()
        project = self._find_project(projects, project_id)
        if project is None:
            return None
        found = _locate(project.items, item_id)
        if found is None:
            return None
        container, index = found
        removed = container.pop(index)
        project.updated_at = now_ms()
        self.save_projects(projects)
        logger.debug("[store] deleted %s %s from project %s", removed.type, item_id, project_id)
        return removed

    def move_item(self, project_id: str, item_id: str, target_folder_id: Optional[str] = None) -> bool:
        """Detach a node and prepend it to another folder (or the project root)."""
        projects = self.load_projects()
        project = self._find_project(projects, project_id)
        if project is None:
            return False
        found = _locate(project.items, item_id)
        if found is None:
            return False
        container, index = found
        item = container[index]
        if target_folder_id:
            if target_folder_id == item_id:
                return False
            if isinstance(item, Folder) and find_in_tree(item.children, target_folder_id) is not None:
                return False
            if not isinstance(find_in_tree(project.items, target_folder_id), Folder):
                return False
        container.pop(index)
        self._attach(project, item, target_folder_id)
        project.updated_at = now_ms()
        self.save_projects(projects)
        return True

    def find_item(self, project_id: str, item_id: str) -> Optional[FileSystemItem]:
        project = self.get_project(project_id)
        if project is None:
            return None
        return find_in_tree(project.items, item_id)

    def find_report(self, project_id: str, report_id: str) -> Optional[Report]:
        item = self.find_item(project_id, report_id)
        return item if isinstance(item, Report) else None

    def find_folder(self, project_id: str, folder_id: str) -> Optional[Folder]:
        item = self.find_item(project_id, folder_id)
        return item if isinstance(item, Folder) else None
