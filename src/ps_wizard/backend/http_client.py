"""HTTP client for the local and hosted generation backends."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from typing import Any

import httpx

from ps_wizard.backend.base import Backend, GenerationResult, HostedBackend, LocalBackend
from ps_wizard.pipeline.models import FailureClass

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 100.0
DEFAULT_CONNECT_TIMEOUT_SECONDS = 10.0

_SSE_DATA_PREFIX = "data:"
_SSE_DONE = "[DONE]"


class HttpGenerationClient:
    """Send prompts to the active backend and extract the generated text."""

    def __init__(
        self,
        backend: Backend,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.backend = backend
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout_seconds, connect=DEFAULT_CONNECT_TIMEOUT_SECONDS),
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    def generate(self, prompt: str) -> GenerationResult:
        """Return the backend's raw text for ``prompt``.

        Transport problems never raise; they are reported through
        ``GenerationResult.failure_class`` so the caller owns the retry decision.
        """

        url = self.backend.url
        status_code: int | None = None
        logger.info("Sending POST request to %s", url)
        try:
            if isinstance(self.backend, HostedBackend) and self.backend.stream:
                status_code, text = self._post_streaming(url, self.backend, prompt)
            else:
                response = self._client.post(
                    url,
                    json=_request_body(self.backend, prompt),
                    headers=_request_headers(self.backend),
                )
                status_code = response.status_code
                response.raise_for_status()
                text = _extract_text(self.backend, response.json())
        except httpx.HTTPStatusError as exc:
            logger.info("Received response from %s (status: %s)", url, exc.response.status_code)
            return GenerationResult(
                prompt=prompt,
                status_code=exc.response.status_code,
                failure_class=FailureClass.BACKEND_UNREACHABLE,
                error=f"Failed to connect to backend at {self.backend.endpoint}: {exc}",
            )
        except httpx.HTTPError as exc:
            logger.info("Failed to connect to %s: %s", url, exc)
            return GenerationResult(
                prompt=prompt,
                failure_class=FailureClass.BACKEND_UNREACHABLE,
                error=f"Failed to connect to backend at {self.backend.endpoint}: {exc}",
            )
        except ValueError as exc:
            logger.info("Unreadable response from %s: %s", url, exc)
            return GenerationResult(
                prompt=prompt,
                status_code=status_code,
                failure_class=FailureClass.EMPTY_GENERATION,
                error=f"Unreadable response from backend at {self.backend.endpoint}: {exc}",
            )

        logger.info("Received response from %s (status: %s)", url, status_code)
        if not text or not text.strip():
            return GenerationResult(
                prompt=prompt,
                raw_text=text or "",
                status_code=status_code,
                failure_class=FailureClass.EMPTY_GENERATION,
                error="Backend returned no text.",
            )
        return GenerationResult(prompt=prompt, raw_text=text, status_code=status_code)

    def _post_streaming(
        self,
        url: str,
        backend: HostedBackend,
        prompt: str,
    ) -> tuple[int, str]:
        with self._client.stream(
            "POST",
            url,
            json=_request_body(backend, prompt),
            headers=_request_headers(backend),
        ) as response:
            response.raise_for_status()
            chunks = [chunk for chunk in _iter_stream_deltas(response.iter_lines()) if chunk]
            return response.status_code, "".join(chunks)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpGenerationClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


def _request_body(backend: Backend, prompt: str) -> dict[str, Any]:
    if isinstance(backend, LocalBackend):
        return {"model": backend.model, "prompt": prompt, "stream": False}
    return {
        "model": backend.model,
        "messages": [{"role": "user", "content": prompt}],
        "stream": backend.stream,
    }


def _request_headers(backend: Backend) -> dict[str, str]:
    if isinstance(backend, HostedBackend):
        return {"Authorization": f"Bearer {backend.api_key}"}
    return {}


def _extract_text(backend: Backend, payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    if isinstance(backend, LocalBackend):
        text = payload.get("response")
        return text if isinstance(text, str) else None

    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    return content if isinstance(content, str) else None


def _iter_stream_deltas(lines: Iterable[str]) -> Iterator[str]:
    for line in lines:
        stripped = line.strip()
        if not stripped.startswith(_SSE_DATA_PREFIX):
            continue
        data = stripped[len(_SSE_DATA_PREFIX) :].strip()
        if data == _SSE_DONE:
            return
        try:
            event = json.loads(data)
        except json.JSONDecodeError:
            logger.info("Skipping malformed stream chunk: %s", data)
            continue
        choices = event.get("choices") if isinstance(event, dict) else None
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            continue
        delta = choices[0].get("delta") or {}
        content = delta.get("content") if isinstance(delta, dict) else None
        if isinstance(content, str):
            yield content
