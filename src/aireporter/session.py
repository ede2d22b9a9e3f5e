"""Editor session: the live view state a desktop shell binds its widgets to.

``ReportSession`` owns the current selection and the editor buffers, forwards
generation to ``GenerationOrchestrator`` (acting as its view), and cascades tree
deletions to the image store. User-facing messages are appended to
``notifications`` instead of being raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .export import (
    DEFAULT_TITLE,
    build_markdown_export,
    export_pdf as _export_pdf,
    write_markdown_export,
)
from .filesystem import decode_data_url
from .generation import ClientFactory, GenerationOrchestrator, GenerationOutcome, GenerationRequest
from .images import DEFAULT_DESCRIPTION, ImageStore
from .llm import resolve_api_key
from .models import DEFAULT_MODE, Report, Settings, StoredImage, normalize_mode
from .prompts import DEFAULT_LANGUAGE, DEFAULT_REDACTION, normalize_redaction
from .references import resolve_references
from .render.pdf import PdfRenderer, PdfRendererProtocol
from .settings import SettingsStore
from .store import ProjectStore, collect_report_ids, get_all_reports

logger = logging.getLogger(__name__)

TAB_FINDINGS = "findings"
TAB_REPORT = "report"

VIEW_HOME = "home"
VIEW_REPORT = "report"
VIEW_SETTINGS = "settings"


@dataclass(frozen=True)
class Notification:
    level: str
    message: str


class ReportSession:
    def __init__(
        self,
        store: ProjectStore,
        images: ImageStore,
        settings_store: SettingsStore,
        client_factory: ClientFactory,
    ) -> None:
        self.store = store
        self.images = images
        self.settings_store = settings_store
        self.orchestrator = GenerationOrchestrator(store, client_factory, view=self)

        self.project_id: Optional[str] = None
        self.report_id: Optional[str] = None
        self.findings = ""
        self.markdown = ""
        self.report_mode = DEFAULT_MODE
        self.pending_mode = DEFAULT_MODE
        self.redaction = DEFAULT_REDACTION
        self.language = DEFAULT_LANGUAGE
        self.active_tab = TAB_FINDINGS
        self.active_view = VIEW_HOME
        self.report_images: list[StoredImage] = []
        self.notifications: list[Notification] = []

    # -- GenerationView -----------------------------------------------------

    @property
    def current_report_id(self) -> Optional[str]:
        return self.report_id

    def show_generated(self, markdown: str, mode: str) -> None:
        self.markdown = markdown
        self.report_mode = mode
        self.active_tab = TAB_REPORT

    def notify(self, level: str, message: str) -> None:
        logger.debug("[session] %s: %s", level, message)
        self.notifications.append(Notification(level, message))

    def open_settings(self) -> None:
        self.active_view = VIEW_SETTINGS

    # -- settings -----------------------------------------------------------

    @property
    def settings(self) -> Settings:
        return self.settings_store.load()

    def save_settings(self, settings: Settings) -> Settings:
        return self.settings_store.save(settings)

    # -- selection ----------------------------------------------------------

    def current_report(self) -> Optional[Report]:
        if not self.project_id or not self.report_id:
            return None
        return self.store.find_report(self.project_id, self.report_id)

    @property
    def is_current_generating(self) -> bool:
        return self.orchestrator.is_generating(self.report_id)

    def select_project(self, project_id: str) -> None:
        self.project_id = project_id
        self.report_id = None
        self.report_images = []
        self.active_view = VIEW_HOME

    def select_report(self, project_id: str, report_id: str) -> Optional[Report]:
        report = self.store.find_report(project_id, report_id)
        if report is None:
            return None
        self.project_id = project_id
        self.report_id = report.id
        self.findings = report.findings
        self.markdown = report.markdown
        self.report_mode = report.mode or DEFAULT_MODE
        self.pending_mode = self.report_mode
        self.active_view = VIEW_REPORT
        # A report still generating keeps whichever tab is showing.
        if not self.orchestrator.is_generating(report.id):
            self.active_tab = TAB_FINDINGS
        self.refresh_images()
        return report

    def clear_selection(self) -> None:
        self.report_id = None
        self.findings = ""
        self.markdown = ""
        self.report_mode = DEFAULT_MODE
        self.pending_mode = DEFAULT_MODE
        self.report_images = []
        self.active_view = VIEW_HOME

    # -- editor -------------------------------------------------------------

    def set_pending_mode(self, mode: str) -> None:
        self.pending_mode = normalize_mode(mode)

    def set_redaction(self, level: str) -> None:
        self.redaction = normalize_redaction(level)

    def save_editor_state(self) -> Optional[Report]:
        """Persist the editor buffers (the auto-save write)."""
        if not self.project_id or not self.report_id:
            return None
        return self.store.update_report(
            self.project_id,
            self.report_id,
            findings=self.findings,
            markdown=self.markdown,
            mode=self.report_mode,
        )

    def insert_reference(self, image_id: str, position: Optional[int] = None) -> str:
        token = f"@{image_id}"
        if position is None:
            self.findings = f"{self.findings} {token}"
        else:
            position = max(0, min(position, len(self.findings)))
            self.findings = self.findings[:position] + token + self.findings[position:]
        self.notify("info", f"Inserted {token}")
        return self.findings

    @property
    def preview_markdown(self) -> str:
        if not self.markdown:
            return ""
        return resolve_references(self.markdown, self.report_images)

    # -- generation ---------------------------------------------------------

    def capture_request(self) -> Optional[GenerationRequest]:
        if not self.findings.strip():
            self.notify("error", "Please enter some findings first")
            return None
        settings = self.settings
        api_key = resolve_api_key(settings)
        if not api_key:
            self.notify("error", "Please configure your API key in Settings first")
            self.open_settings()
            return None
        if not self.project_id or not self.report_id:
            return None
        return GenerationRequest(
            project_id=self.project_id,
            report_id=self.report_id,
            findings=self.findings,
            images=tuple(self.report_images),
            mode=normalize_mode(self.pending_mode),
            redaction=normalize_redaction(self.redaction),
            language=self.language,
            temperature=settings.temperature,
            model=settings.model,
            api_key=api_key,
        )

    async def generate(self) -> Optional[GenerationOutcome]:
        request = self.capture_request()
        if request is None:
            return None
        return await self.orchestrator.generate(request)

    # -- images -------------------------------------------------------------

    def refresh_images(self) -> list[StoredImage]:
        self.report_images = self.images.get_images_for_report(self.report_id) if self.report_id else []
        return self.report_images

    @staticmethod
    def _image_bytes(data: bytes | str) -> Optional[bytes]:
        if isinstance(data, bytes):
            return data
        try:
            return decode_data_url(data)
        except ValueError:
            return None

    async def attach_image(self, data: bytes | str, description: str = DEFAULT_DESCRIPTION) -> Optional[StoredImage]:
        """Store a screenshot (raw bytes or a ``data:image/...`` URL) for the current report."""
        if not self.report_id:
            self.notify("error", "Please select a report first")
            return None
        payload = self._image_bytes(data)
        if payload is None:
            self.notify("error", "Please upload an image file")
            return None
        image = await self.images.store_image(self.report_id, payload, description or DEFAULT_DESCRIPTION)
        if image is None:
            self.notify("error", "Failed to save image")
            return None
        self.refresh_images()
        self.notify("success", f"Screenshot added as @{image.id}")
        return image

    async def replace_image(
        self, image_id: str, data: bytes | str, description: Optional[str] = None
    ) -> Optional[StoredImage]:
        payload = self._image_bytes(data)
        image = await self.images.replace_image(image_id, payload) if payload is not None else None
        if image is None:
            self.notify("error", "Failed to save image")
            return None
        if description is not None:
            self.images.update_description(image_id, description)
        self.refresh_images()
        self.notify("success", "Screenshot updated")
        return self.images.get_image(image_id)

    def rename_image(self, image_id: str, description: str) -> bool:
        if not self.images.update_description(image_id, description):
            return False
        self.refresh_images()
        self.notify("success", "Description updated")
        return True

    async def delete_image(self, image_id: str) -> bool:
        ok = await self.images.delete_image(image_id)
        self.refresh_images()
        return ok

    async def load_image(self, image_id: str) -> Optional[str]:
        """Data URL of a stored image, for handing to an image editor."""
        image = self.images.get_image(image_id)
        if image is None:
            return None
        data_url = await self.images.load_data_url(image.file_path)
        if data_url is None:
            self.notify("error", "Failed to load image")
        return data_url

    # -- tree ---------------------------------------------------------------

    async def delete_item(self, project_id: str, item_id: str) -> bool:
        removed = self.store.delete_item(project_id, item_id)
        if removed is None:
            return False
        report_ids = collect_report_ids(removed)
        for report_id in report_ids:
            await self.images.delete_images_for_report(report_id)
        if project_id == self.project_id and self.report_id in report_ids:
            self.clear_selection()
        return True

    async def delete_project(self, project_id: str) -> bool:
        project = self.store.get_project(project_id)
        if project is None:
            return False
        self.store.delete_project(project_id)
        for report in get_all_reports(project):
            await self.images.delete_images_for_report(report.id)
        if project_id == self.project_id:
            self.clear_selection()
            self.project_id = None
        return True

    # -- export -------------------------------------------------------------

    def _title(self) -> str:
        report = self.current_report()
        return report.name if report and report.name else DEFAULT_TITLE

    def markdown_export(self) -> str:
        return build_markdown_export(self.markdown, self.report_mode, self.report_images)

    async def export_markdown(self, path: Path | str) -> bool:
        ok = await write_markdown_export(path, self.markdown_export())
        if ok:
            self.notify("success", "Markdown exported successfully!")
        else:
            self.notify("error", "Failed to export markdown")
        return ok

    async def export_pdf(
        self,
        path: Path | str,
        renderer: Optional[PdfRendererProtocol] = None,
        accent_color: Optional[str] = None,
    ) -> bool:
        self.notify("info", "Generating PDF...")
        ok = await _export_pdf(
            path,
            self.markdown,
            self.report_mode,
            self.report_images,
            loader=self.images.load_data_url,
            renderer=renderer or PdfRenderer(),
            accent_color=accent_color or self.settings.accent_color,
            title=self._title(),
        )
        if ok:
            self.notify("success", "PDF exported successfully!")
        else:
            self.notify("error", "Failed to export PDF")
        return ok
