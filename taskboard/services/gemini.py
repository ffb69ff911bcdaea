import os
from typing import Any, Dict

import requests

from taskboard.services.errors import ConfigurationError, UpstreamError

DEFAULT_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-pro"

# Low randomness and a bounded reply keep the model close to literal JSON
GENERATION_CONFIG = {
    "temperature": 0.1,
    "topK": 32,
    "topP": 1,
    "maxOutputTokens": 2048,
}


def _api_key() -> str:
    key = os.getenv("GEMINI_API_KEY", "").strip()
    if not key:
        raise ConfigurationError("Gemini API key not configured")
    return key


def _reply_text(data: Dict[str, Any]) -> str:
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise UpstreamError("Gemini response did not contain generated text", cause=e) from e
    if not isinstance(text, str):
        raise UpstreamError("Gemini response text was not a string")
    return text


class GeminiClient:
    """Text generator backed by the Gemini generateContent REST endpoint."""

    def __init__(self, model: str | None = None, api_base: str | None = None, timeout: float | None = None):
        self.model = model or os.getenv("GEMINI_MODEL", DEFAULT_MODEL)
        self.api_base = (api_base or os.getenv("GEMINI_API_BASE", DEFAULT_API_BASE)).rstrip("/")
        self.timeout = timeout if timeout is not None else float(os.getenv("GEMINI_TIMEOUT", "30"))

    @property
    def url(self) -> str:
        return f"{self.api_base}/models/{self.model}:generateContent"

    def generate(self, prompt: str) -> str:
        key = _api_key()
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": GENERATION_CONFIG,
        }
        try:
            r = requests.post(
                self.url,
                params={"key": key},
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            r.raise_for_status()
            data = r.json()
        except requests.HTTPError as e:
            # str(e) carries the request URL, which holds the API key
            status = e.response.status_code if e.response is not None else "unknown"
            raise UpstreamError(f"Gemini request failed with status {status}", cause=e) from e
        except requests.RequestException as e:
            raise UpstreamError(f"Gemini request failed: {e.__class__.__name__}", cause=e) from e
        except ValueError as e:
            raise UpstreamError("Gemini returned a non-JSON response", cause=e) from e

        return _reply_text(data)
