"""Gemini text generation client."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol
from urllib import error as urllib_error
from urllib import parse as urllib_parse
from urllib import request as urllib_request

from app.config import get_settings

logger = logging.getLogger(__name__)

SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)
SAFETY_THRESHOLD = "BLOCK_MEDIUM_AND_ABOVE"


class GeminiError(RuntimeError):
    """Raised when text generation fails."""


class UpstreamHTTPError(GeminiError):
    """Raised when the Gemini API answers with a non-success status."""

    def __init__(self, status_code: int, body: Any) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Gemini HTTP {status_code}: {body}")


class RateLimitExceededError(GeminiError):
    """Raised when rate-limit retries are exhausted."""

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"Rate limit exceeded after {attempts} attempts. Please try again later.")


class TextGenerationClient(Protocol):
    """Protocol for prompt-to-text providers."""

    def generate(self, prompt: str) -> str:
        """Return generated text for a single user prompt."""


@dataclass(slots=True)
class GeminiClient:
    """Minimal Gemini generateContent client using stdlib HTTP."""

    api_key: str
    model: str = "gemini-1.5-pro"
    base_url: str = "https://generativelanguage.googleapis.com/v1"
    timeout_seconds: int = 30
    temperature: float = 0.7
    max_output_tokens: int = 1000
    top_p: float = 0.8
    top_k: int = 40

    def build_payload(self, prompt: str) -> dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
                "topP": self.top_p,
                "topK": self.top_k,
            },
            "safetySettings": [
                {"category": category, "threshold": SAFETY_THRESHOLD} for category in SAFETY_CATEGORIES
            ],
        }

    def endpoint_url(self) -> str:
        query = urllib_parse.urlencode({"key": self.api_key})
        return f"{self.base_url.rstrip('/')}/models/{self.model}:generateContent?{query}"

    def generate(self, prompt: str) -> str:
        req = urllib_request.Request(
            url=self.endpoint_url(),
            data=json.dumps(self.build_payload(prompt)).encode("utf-8"),
            method="POST",
            headers={"Content-Type": "application/json"},
        )
        try:
            with urllib_request.urlopen(req, timeout=self.timeout_seconds) as resp:
                raw = resp.read().decode("utf-8")
        except urllib_error.HTTPError as exc:
            body = _decode_error_body(exc.read().decode("utf-8", errors="replace"))
            logger.error("gemini.http_error status=%d body=%s", exc.code, body)
            raise UpstreamHTTPError(exc.code, body) from exc
        except urllib_error.URLError as exc:
            raise GeminiError(f"Gemini request failed: {exc.reason}") from exc

        return extract_candidate_text(raw)


def extract_candidate_text(raw: str) -> str:
    """Pull the first candidate's text out of a generateContent response."""

    try:
        decoded = json.loads(raw)
        text = decoded["candidates"][0]["content"]["parts"][0]["text"]
        if not isinstance(text, str):
            raise TypeError("candidate text missing")
        return text
    except (KeyError, IndexError, TypeError, json.JSONDecodeError) as exc:
        raise GeminiError("Invalid response format from Gemini API") from exc


def _decode_error_body(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def get_default_gemini_client() -> TextGenerationClient:
    """Return the configured Gemini client."""

    settings = get_settings()
    if not settings.gemini_api_key:
        raise GeminiError("GEMINI_API_KEY is not set. Configure it in backend/.env before generating text.")
    return GeminiClient(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        base_url=settings.gemini_base_url,
        timeout_seconds=settings.gemini_timeout_seconds,
        temperature=settings.gemini_temperature,
        max_output_tokens=settings.gemini_max_output_tokens,
        top_p=settings.gemini_top_p,
        top_k=settings.gemini_top_k,
    )
