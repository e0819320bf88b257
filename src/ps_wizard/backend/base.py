"""Generation backend interface."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from ps_wizard.pipeline.models import FailureClass


@dataclass(slots=True, frozen=True)
class LocalBackend:
    """Ollama-style single prompt completion endpoint."""

    endpoint: str
    model: str

    @property
    def url(self) -> str:
        return f"{self.endpoint.rstrip('/')}/api/generate"

    @property
    def label(self) -> str:
        return "local"


@dataclass(slots=True, frozen=True)
class HostedBackend:
    """OpenAI-compatible chat completion endpoint."""

    endpoint: str
    api_key: str
    model: str
    stream: bool = False
    provider: str = "openai"

    @property
    def url(self) -> str:
        return f"{self.endpoint.rstrip('/')}/chat/completions"

    @property
    def label(self) -> str:
        return f"hosted ({self.provider})"


Backend = LocalBackend | HostedBackend


@dataclass(slots=True)
class GenerationResult:
    """Outcome of one backend call."""

    prompt: str
    raw_text: str = ""
    status_code: int | None = None
    failure_class: FailureClass | None = None
    error: str | None = None

    @property
    def is_success(self) -> bool:
        return self.failure_class is None and bool(self.raw_text.strip())


class TextGenerator(Protocol):
    """Protocol implemented by generation clients."""

    def generate(self, prompt: str) -> GenerationResult:
        """Send ``prompt`` to the backend and return its raw text."""
