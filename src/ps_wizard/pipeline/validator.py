"""LLM self-check of a generated command against the original request."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ps_wizard.backend.base import TextGenerator
from ps_wizard.pipeline.normalizer import normalize
from ps_wizard.pipeline.prompts import render_validation_prompt

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ValidationResult:
    """Validator answer; ``command`` is None when the backend gave nothing usable."""

    command: str | None
    prompt: str
    raw_response: str = ""
    error: str | None = None


class CommandValidator:
    """Ask the backend to confirm or regenerate a candidate command."""

    def __init__(self, client: TextGenerator, template: str) -> None:
        self.client = client
        self.template = template

    def validate(
        self,
        candidate: str,
        request: str,
        template: str | None = None,
    ) -> ValidationResult:
        prompt = render_validation_prompt(
            template or self.template,
            command=candidate,
            requirements=request,
        )
        result = self.client.generate(prompt)
        if not result.is_success:
            logger.info("Validation request failed: %s", result.error)
            return ValidationResult(
                command=None,
                prompt=prompt,
                raw_response=result.raw_text,
                error=result.error,
            )

        command = normalize(result.raw_text)
        return ValidationResult(
            command=command or None,
            prompt=prompt,
            raw_response=result.raw_text,
        )
