"""Error taxonomy for report generation and its user-facing classification."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .utils import truncate

CONFIGURATION = "configuration"
RATE_LIMIT = "rate_limit"
MODEL_NOT_FOUND = "model_not_found"
SAFETY_BLOCK = "safety_block"
OVERLOADED = "overloaded"
UNKNOWN = "unknown"

MESSAGE_LIMIT = 60

_MESSAGES = {
    CONFIGURATION: "Please configure your API key in Settings",
    RATE_LIMIT: "Rate Limit Exceeded. Try another model or wait.",
    MODEL_NOT_FOUND: "Model not available. Please switch models.",
    SAFETY_BLOCK: "Blocked by safety filters. Review content.",
    OVERLOADED: "AI Service overloaded. Try again later.",
}

_TRANSPORT_FRAMING_RE = re.compile(r"^(?:Error invoking remote method '[^']*': )?(?:\w*Error: )*")


class ReporterError(Exception):
    """Base class for errors raised by the reporter core."""


class ApiKeyNotSetError(ReporterError):
    def __init__(self, message: str = "API_KEY_NOT_SET") -> None:
        super().__init__(message)


class ModelRequestError(ReporterError):
    def __init__(self, status_code: Optional[int], detail: str) -> None:
        self.status_code = status_code
        self.detail = detail
        prefix = f"[{status_code}] " if status_code else ""
        super().__init__(f"{prefix}{detail}")


class ContentBlockedError(ModelRequestError):
    def __init__(self, reason: str) -> None:
        super().__init__(None, f"Response blocked by safety filters: {reason}")
        self.reason = reason


@dataclass(frozen=True)
class ErrorClassification:
    kind: str
    message: str
    redirect_to_settings: bool = False


def clean_error_message(text: str, limit: int = MESSAGE_LIMIT) -> str:
    """Strip transport framing from an upstream message and bound its length."""
    cleaned = _TRANSPORT_FRAMING_RE.sub("", (text or "").strip(), count=1).strip()
    return truncate(cleaned, limit)


def _kind_from_status(status_code: Optional[int]) -> Optional[str]:
    if status_code == 429:
        return RATE_LIMIT
    if status_code == 404:
        return MODEL_NOT_FOUND
    if status_code == 503:
        return OVERLOADED
    return None


def _kind_from_text(text: str) -> Optional[str]:
    if "API_KEY_NOT_SET" in text:
        return CONFIGURATION
    if "429" in text or "Quota" in text or "Too Many Requests" in text:
        return RATE_LIMIT
    if "404" in text or "Not Found" in text:
        return MODEL_NOT_FOUND
    lowered = text.lower()
    if "safety" in lowered or "blocked" in lowered:
        return SAFETY_BLOCK
    if "503" in text or "Overloaded" in text:
        return OVERLOADED
    return None


def classify_generation_error(exc: BaseException) -> ErrorClassification:
    kind: Optional[str] = None
    if isinstance(exc, ApiKeyNotSetError):
        kind = CONFIGURATION
    elif isinstance(exc, ContentBlockedError):
        kind = SAFETY_BLOCK
    elif isinstance(exc, ModelRequestError):
        kind = _kind_from_status(exc.status_code)
    text = str(exc)
    if kind is None:
        kind = _kind_from_text(text)
    if kind is None:
        return ErrorClassification(kind=UNKNOWN, message=f"Error: {clean_error_message(text)}")
    return ErrorClassification(
        kind=kind,
        message=_MESSAGES[kind],
        redirect_to_settings=kind == CONFIGURATION,
    )
