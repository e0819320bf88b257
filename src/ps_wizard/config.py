"""Runtime configuration loaded from ``settings.json``."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ps_wizard.backend.base import Backend, HostedBackend, LocalBackend
from ps_wizard.pipeline.prompts import DEFAULT_FIRST_PROMPT, DEFAULT_VALIDATION_PROMPT

logger = logging.getLogger(__name__)

SETTINGS_FILE_NAME = "settings.json"
SETTINGS_PATH_ENV = "WIZARD_SETTINGS_PATH"
APP_DIR_NAME = "wizard"

DEFAULT_MODEL = "llama3.2:latest"
DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"
DEFAULT_HOSTED_PROVIDER = "openai"
DEFAULT_HOSTED_BASE_URL = "https://api.openai.com/v1"
DEFAULT_HOSTED_MODEL = "gpt-4o-mini"

NOT_SET = "(not set)"
_MASK_VISIBLE_CHARS = 4


@dataclass(slots=True)
class GenerationOptions:
    """Model, prompts and switches from the ``Options`` section."""

    model: str = DEFAULT_MODEL
    trace_mode: bool = False
    ollama_base_url: str = DEFAULT_OLLAMA_BASE_URL
    logging: bool = False
    powershell: str | None = None
    first_prompt: str = DEFAULT_FIRST_PROMPT
    validation_prompt: str = DEFAULT_VALIDATION_PROMPT


@dataclass(slots=True)
class HostedBackendSettings:
    """Alternate OpenAI-compatible backend from the ``HostedBackend`` section."""

    enabled: bool = False
    provider: str = DEFAULT_HOSTED_PROVIDER
    api_key: str | None = None
    base_url: str = DEFAULT_HOSTED_BASE_URL
    model: str = DEFAULT_HOSTED_MODEL
    stream: bool = False

    @property
    def usable(self) -> bool:
        return self.enabled and bool(self.api_key and self.api_key.strip())


@dataclass(slots=True)
class Settings:
    """Application settings grouped by section."""

    options: GenerationOptions = field(default_factory=GenerationOptions)
    hosted: HostedBackendSettings = field(default_factory=HostedBackendSettings)
    source_path: Path | None = None
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def load(cls, path: Path | None = None) -> Settings:
        """Load settings, falling back to defaults with a warning when needed.

        A missing or malformed file is never fatal: the returned settings carry
        the warning text in ``warnings`` and use built-in defaults.
        """

        settings_path = find_settings_file(path)
        if settings_path is None:
            return cls(
                warnings=[
                    f"Warning: {SETTINGS_FILE_NAME} not found. "
                    f"Using default model: {DEFAULT_MODEL}",
                ],
            )

        try:
            document = json.loads(settings_path.read_text("utf-8"))
            if not isinstance(document, dict):
                raise ValueError("top-level JSON value must be an object")
            settings = cls.from_document(document)
        except (OSError, ValueError) as error:
            logger.info("Failed to load settings from %s: %s", settings_path, error)
            return cls(
                warnings=[
                    f"Warning: Failed to load settings from {settings_path}: {error}",
                    f"Using default model: {DEFAULT_MODEL}",
                ],
            )
        settings.source_path = settings_path
        if settings.hosted.enabled and not settings.hosted.usable:
            settings.warnings.append(
                "Warning: HostedBackend is enabled but ApiKey is not set. "
                "Using the local backend.",
            )
        return settings

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> Settings:
        options_section = _section(document, "Options")
        hosted_section = _section(document, "HostedBackend")
        return cls(
            options=GenerationOptions(
                model=_text(options_section, "Model", DEFAULT_MODEL),
                trace_mode=parse_flag(_get(options_section, "TraceMode")),
                ollama_base_url=_text(options_section, "OllamaBaseUrl", DEFAULT_OLLAMA_BASE_URL),
                logging=parse_flag(_get(options_section, "Logging")),
                powershell=_optional_text(options_section, "PowerShell"),
                first_prompt=_text(options_section, "first-prompt", DEFAULT_FIRST_PROMPT),
                validation_prompt=_text(
                    options_section,
                    "validation-prompt",
                    DEFAULT_VALIDATION_PROMPT,
                ),
            ),
            hosted=HostedBackendSettings(
                enabled=parse_flag(_get(hosted_section, "Enabled")),
                provider=_text(hosted_section, "Provider", DEFAULT_HOSTED_PROVIDER),
                api_key=_optional_text(hosted_section, "ApiKey"),
                base_url=_text(hosted_section, "BaseUrl", DEFAULT_HOSTED_BASE_URL),
                model=_text(hosted_section, "Model", DEFAULT_HOSTED_MODEL),
                stream=parse_flag(_get(hosted_section, "Stream")),
            ),
        )

    def resolve_backend(self) -> Backend:
        """Return the backend active for this run."""

        if self.hosted.usable:
            return HostedBackend(
                endpoint=self.hosted.base_url,
                api_key=(self.hosted.api_key or "").strip(),
                model=self.hosted.model,
                stream=self.hosted.stream,
                provider=self.hosted.provider,
            )
        return LocalBackend(endpoint=self.options.ollama_base_url, model=self.options.model)

    def describe(self) -> list[str]:
        """Human-readable configuration with the API key masked."""

        backend = self.resolve_backend()
        return [
            f"Settings file: {self.source_path or NOT_SET}",
            f"Active backend: {backend.label} {backend.endpoint}",
            f"Active model: {backend.model}",
            "",
            "Options:",
            f"  Model: {self.options.model}",
            f"  TraceMode: {_flag_text(self.options.trace_mode)}",
            f"  OllamaBaseUrl: {self.options.ollama_base_url}",
            f"  Logging: {_flag_text(self.options.logging)}",
            f"  PowerShell: {self.options.powershell or NOT_SET}",
            f"  first-prompt: {self.options.first_prompt}",
            f"  validation-prompt: {self.options.validation_prompt}",
            "",
            "HostedBackend:",
            f"  Enabled: {_flag_text(self.hosted.enabled)}",
            f"  Provider: {self.hosted.provider}",
            f"  ApiKey: {mask_secret(self.hosted.api_key)}",
            f"  BaseUrl: {self.hosted.base_url}",
            f"  Model: {self.hosted.model}",
            f"  Stream: {_flag_text(self.hosted.stream)}",
        ]


def find_settings_file(explicit: Path | None = None) -> Path | None:
    """Return the first existing settings file in lookup order."""

    candidates: list[Path] = []
    if explicit is not None:
        candidates.append(explicit)
    env_path = os.getenv(SETTINGS_PATH_ENV, "").strip()
    if env_path:
        candidates.append(Path(env_path))
    candidates.append(Path.cwd() / SETTINGS_FILE_NAME)
    candidates.append(user_config_dir() / SETTINGS_FILE_NAME)
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def user_config_dir() -> Path:
    base = os.getenv("XDG_CONFIG_HOME") or os.path.expanduser("~/.config")
    return Path(base) / APP_DIR_NAME


def parse_flag(value: object) -> bool:
    """Accept ``true``/``"true"`` (any case) as True; anything else is False."""

    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def mask_secret(secret: str | None) -> str:
    """Show only the first and last four characters of ``secret``."""

    if secret is None or not secret.strip():
        return NOT_SET
    value = secret.strip()
    if len(value) <= 2 * _MASK_VISIBLE_CHARS:
        return "*" * len(value)
    hidden = len(value) - 2 * _MASK_VISIBLE_CHARS
    return f"{value[:_MASK_VISIBLE_CHARS]}{'*' * hidden}{value[-_MASK_VISIBLE_CHARS:]}"


def _section(document: dict[str, Any], name: str) -> dict[str, Any]:
    section = _get(document, name)
    return section if isinstance(section, dict) else {}


def _get(section: dict[str, Any], key: str) -> Any:
    if key in section:
        return section[key]
    lowered = key.lower()
    for candidate, value in section.items():
        if isinstance(candidate, str) and candidate.lower() == lowered:
            return value
    return None


def _text(section: dict[str, Any], key: str, default: str) -> str:
    value = _get(section, key)
    if isinstance(value, str) and value.strip():
        return value
    return default


def _optional_text(section: dict[str, Any], key: str) -> str | None:
    value = _get(section, key)
    if isinstance(value, str) and value.strip():
        return value
    return None


def _flag_text(value: bool) -> str:
    return "true" if value else "false"
