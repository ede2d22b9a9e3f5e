"""Gemini ``generateContent`` client over plain HTTP (``requests``)."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Optional

import requests

from .errors import ApiKeyNotSetError, ContentBlockedError, ModelRequestError
from .models import Settings
from .utils import expand_env_reference

logger = logging.getLogger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
BASE_URL_ENV = "AIREPORTER_GEMINI_BASE_URL"
API_KEY_ENV = "GEMINI_API_KEY"
DEFAULT_TIMEOUT = 120.0


def _normalize_api_base_url(base_url: Optional[str]) -> str:
    base = (base_url or os.getenv(BASE_URL_ENV) or GEMINI_API_BASE).strip().rstrip("/")
    if base.lower().endswith("/models"):
        base = base[: -len("/models")]
    return base.rstrip("/")


def resolve_api_key(settings: Optional[Settings]) -> Optional[str]:
    """Saved key first (``$NAME`` references expanded), then ``GEMINI_API_KEY``."""
    key = expand_env_reference(settings.api_key) if settings and settings.api_key else None
    key = (key or "").strip() or (os.getenv(API_KEY_ENV) or "").strip()
    return key or None


def _extract_text(body: dict[str, Any]) -> str:
    candidates = body.get("candidates") or []
    if not candidates:
        return ""
    content = candidates[0].get("content") or {}
    chunks: list[str] = []
    for part in content.get("parts") or []:
        if isinstance(part, dict) and isinstance(part.get("text"), str):
            chunks.append(part["text"])
    return "".join(chunks)


def _block_reason(body: dict[str, Any]) -> Optional[str]:
    feedback = body.get("promptFeedback") or {}
    if feedback.get("blockReason"):
        return str(feedback["blockReason"])
    candidates = body.get("candidates") or []
    if candidates and candidates[0].get("finishReason") in {"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST"}:
        return str(candidates[0]["finishReason"])
    return None


class GeminiClient:
    def __init__(
        self,
        api_key: str,
        *,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_key:
            raise ApiKeyNotSetError()
        self.api_key = api_key
        self.base_url = _normalize_api_base_url(base_url)
        self.timeout = timeout
        self.session = session

    def _url(self, model: str) -> str:
        return f"{self.base_url}/models/{model}:generateContent"

    def generate_text(self, prompt: str, *, temperature: float, model: str) -> str:
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": temperature},
        }
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }
        try:
            post = self.session.post if self.session is not None else requests.post
            resp = post(self._url(model), headers=headers, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("[llm] request to %s failed: %s", model, exc)
            raise ModelRequestError(None, f"LLM request failed: {exc}") from exc
        if resp.status_code != 200:
            text = resp.text.strip()
            logger.warning("[llm] %s returned %s", model, resp.status_code)
            raise ModelRequestError(resp.status_code, f"LLM request failed: {resp.status_code} {text}")
        try:
            body = resp.json()
        except ValueError as exc:
            raise ModelRequestError(resp.status_code, "LLM returned a non-JSON body") from exc
        content = _extract_text(body)
        if content.strip():
            return content
        reason = _block_reason(body)
        if reason:
            raise ContentBlockedError(reason)
        raise ModelRequestError(None, "LLM returned empty content")

    async def generate(self, prompt: str, *, temperature: float, model: str) -> str:
        return await asyncio.to_thread(self.generate_text, prompt, temperature=temperature, model=model)


def default_client_factory(api_key: Optional[str]) -> GeminiClient:
    if not api_key:
        raise ApiKeyNotSetError()
    return GeminiClient(api_key)
