"""Report generation: one model call per request, reconciled against live state.

A request is a frozen snapshot taken when generation starts. While the model
call is outstanding the user may switch reports, keep editing findings or
delete the report; the response is reconciled in a fixed order:

1. optimistic preview update, only if the view still shows the same report;
2. re-resolve the report from the store;
3. persist ``markdown`` and ``mode`` if it still exists (``completed``),
   otherwise drop the response (``discarded``);
4. remove the report from the in-flight set, whatever happened.

There is no cancellation: the call always runs to completion and only its
side effects are suppressed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from .errors import CONFIGURATION, ErrorClassification, classify_generation_error
from .models import DEFAULT_MODE, StoredImage
from .prompts import DEFAULT_LANGUAGE, DEFAULT_REDACTION, build_report_prompt
from .references import describe_attached_images, strip_dangling_references
from .store import ProjectStore

logger = logging.getLogger(__name__)

IDLE = "idle"
GENERATING = "generating"
COMPLETED = "completed"
FAILED = "failed"
DISCARDED = "discarded"


@dataclass(frozen=True)
class GenerationRequest:
    project_id: str
    report_id: str
    findings: str
    images: tuple[StoredImage, ...] = ()
    mode: str = DEFAULT_MODE
    redaction: str = DEFAULT_REDACTION
    language: str = DEFAULT_LANGUAGE
    temperature: float = 0.3
    model: str = "gemini-2.5-flash"
    api_key: Optional[str] = None

    def submission_text(self) -> str:
        """Findings without dangling ``@img-`` tokens, plus the attachment summary."""
        cleaned = strip_dangling_references(self.findings, self.images)
        return cleaned + describe_attached_images(self.images)

    def prompt(self) -> str:
        return build_report_prompt(
            self.submission_text(),
            language=self.language,
            mode=self.mode,
            redaction=self.redaction,
        )


@dataclass(frozen=True)
class GenerationOutcome:
    report_id: str
    state: str
    markdown: Optional[str] = None
    error: Optional[ErrorClassification] = None


class GenerationView(Protocol):
    """What the orchestrator needs from whoever displays reports."""

    @property
    def current_report_id(self) -> Optional[str]: ...

    def show_generated(self, markdown: str, mode: str) -> None: ...

    def notify(self, level: str, message: str) -> None: ...

    def open_settings(self) -> None: ...


class ModelClient(Protocol):
    async def generate(self, prompt: str, *, temperature: float, model: str) -> str: ...


ClientFactory = Callable[[Optional[str]], ModelClient]


class GenerationOrchestrator:
    def __init__(
        self,
        store: ProjectStore,
        client_factory: ClientFactory,
        view: Optional[GenerationView] = None,
    ) -> None:
        self.store = store
        self.client_factory = client_factory
        self.view = view
        self._in_flight: set[str] = set()

    @property
    def in_flight(self) -> frozenset[str]:
        return frozenset(self._in_flight)

    def is_generating(self, report_id: Optional[str]) -> bool:
        return bool(report_id) and report_id in self._in_flight

    def state_of(self, report_id: str) -> str:
        return GENERATING if report_id in self._in_flight else IDLE

    def _notify(self, level: str, message: str) -> None:
        if self.view is not None:
            self.view.notify(level, message)

    async def generate(self, request: GenerationRequest) -> GenerationOutcome:
        if request.report_id in self._in_flight:
            logger.info("[generate] %s is already generating; ignoring trigger", request.report_id)
            return GenerationOutcome(report_id=request.report_id, state=GENERATING)

        self._in_flight.add(request.report_id)
        try:
            client = self.client_factory(request.api_key)
            markdown = await client.generate(
                request.prompt(),
                temperature=request.temperature,
                model=request.model,
            )

            # The view may have moved to another report while we were waiting.
            view = self.view
            if view is not None and view.current_report_id == request.report_id:
                view.show_generated(markdown, request.mode)

            report = self.store.find_report(request.project_id, request.report_id)
            if report is None:
                logger.info("[generate] %s was deleted during generation; discarding", request.report_id)
                self._notify("info", "Report was deleted. Generated content discarded.")
                return GenerationOutcome(report_id=request.report_id, state=DISCARDED, markdown=markdown)

            # markdown and mode only; findings keep whatever the user has typed since.
            self.store.update_report(
                request.project_id,
                request.report_id,
                markdown=markdown,
                mode=request.mode,
            )
            self._notify("success", f'Report "{report.name}" generated successfully!')
            return GenerationOutcome(report_id=request.report_id, state=COMPLETED, markdown=markdown)
        except Exception as exc:
            classification = classify_generation_error(exc)
            logger.error("[generate] %s failed (%s): %s", request.report_id, classification.kind, exc)
            self._notify("error", classification.message)
            if classification.kind == CONFIGURATION and self.view is not None:
                self.view.open_settings()
            return GenerationOutcome(report_id=request.report_id, state=FAILED, error=classification)
        finally:
            self._in_flight.discard(request.report_id)
