"""Generation backend implementations."""

from ps_wizard.backend.base import (
    Backend,
    GenerationResult,
    HostedBackend,
    LocalBackend,
    TextGenerator,
)
from ps_wizard.backend.http_client import HttpGenerationClient

__all__ = [
    "Backend",
    "GenerationResult",
    "HostedBackend",
    "HttpGenerationClient",
    "LocalBackend",
    "TextGenerator",
]
