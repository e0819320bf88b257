"""Bounded-attempt state machine: generate, validate, lint, execute."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

import click

from ps_wizard.backend.base import TextGenerator
from ps_wizard.pipeline.models import (
    FAILURE_EXIT_CODE,
    AttemptResult,
    ExecutionOutcome,
    FailureClass,
    LintVerdict,
    PipelineResult,
)
from ps_wizard.pipeline.normalizer import normalize
from ps_wizard.pipeline.prompts import render_first_prompt
from ps_wizard.pipeline.validator import CommandValidator

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2

Echo = Callable[..., None]


class Linter(Protocol):
    def lint(self, candidate: str) -> LintVerdict:
        """Judge ``candidate``."""


class Executor(Protocol):
    def execute(self, command: str) -> ExecutionOutcome:
        """Run ``command`` and report how it ended."""


class AttemptOrchestrator:
    """Drive up to two generate/validate/lint attempts and execute the winner.

    Every collaborator reports failure as a value; this class alone decides
    whether a failure is retried or terminal. A rejected candidate is never
    repaired: the next attempt starts again from generation.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        client: TextGenerator,
        validator: CommandValidator,
        linter: Linter,
        executor: Executor,
        first_prompt: str,
        trace_mode: bool = False,
        echo: Echo = click.echo,
    ) -> None:
        self.client = client
        self.validator = validator
        self.linter = linter
        self.executor = executor
        self.first_prompt = first_prompt
        self.trace_mode = trace_mode
        self.echo = echo

    def run(self, request: str) -> PipelineResult:
        attempts: list[AttemptResult] = []
        winner: AttemptResult | None = None

        for attempt_no in range(1, MAX_ATTEMPTS + 1):
            is_last = attempt_no == MAX_ATTEMPTS
            attempt = self._generate(attempt_no, request)
            attempts.append(attempt)

            if attempt.generated is None:
                if not is_last:
                    self.echo(
                        "Failed to get PowerShell command from backend. Retrying...",
                        err=True,
                    )
                    continue
                self.echo("Failed to get PowerShell command from backend after retry.", err=True)
                self._trace_exchange(attempt)
                return PipelineResult(exit_code=FAILURE_EXIT_CODE, attempts=attempts)

            self._validate(attempt, request)
            self._lint(attempt)
            if attempt.lint_passed:
                logger.info("Attempt %s: PSScriptAnalyzer validation passed", attempt_no)
                winner = attempt
                break

            summary = attempt.verdict.summary if attempt.verdict else ""
            logger.info("Attempt %s: PSScriptAnalyzer validation failed: %s", attempt_no, summary)
            if self.trace_mode:
                self.echo(f"PSScriptAnalyzer found errors: {summary}")
            if not is_last:
                self.echo("PSScriptAnalyzer detected errors. Retrying with new command...")
                logger.info("Retrying command generation")
                continue
            self.echo(f"PSScriptAnalyzer detected errors after retry: {summary}", err=True)
            self.echo(
                f"Failed to generate a valid PowerShell command after {MAX_ATTEMPTS} attempts.",
                err=True,
            )
            logger.info("Command generation failed after %s attempts", MAX_ATTEMPTS)
            self._trace_exchange(attempt)
            return PipelineResult(exit_code=FAILURE_EXIT_CODE, attempts=attempts)

        if winner is None or not winner.candidate:
            self.echo("Failed to generate a valid PowerShell command.", err=True)
            return PipelineResult(exit_code=FAILURE_EXIT_CODE, attempts=attempts)

        return self._execute(winner, attempts)

    def _generate(self, attempt_no: int, request: str) -> AttemptResult:
        logger.info("Attempt %s: Sending generation request", attempt_no)
        prompt = render_first_prompt(self.first_prompt, request)
        result = self.client.generate(prompt)
        attempt = AttemptResult(
            attempt=attempt_no,
            generation_prompt=prompt,
            generation_response=result.raw_text,
        )
        if not result.is_success:
            attempt.failure_class = result.failure_class or FailureClass.EMPTY_GENERATION
            if result.error:
                self.echo(result.error, err=True)
            logger.info("Attempt %s: Generation failed: %s", attempt_no, result.error)
            return attempt

        command = normalize(result.raw_text)
        logger.info("Attempt %s: Received response from backend: %s", attempt_no, command)
        if not command:
            attempt.failure_class = FailureClass.EMPTY_GENERATION
            return attempt
        attempt.generated = command
        return attempt

    def _validate(self, attempt: AttemptResult, request: str) -> None:
        logger.info("Attempt %s: Sending validation request", attempt.attempt)
        validation = self.validator.validate(attempt.generated or "", request)
        attempt.validation_prompt = validation.prompt
        attempt.validation_response = validation.raw_response
        attempt.validated = validation.command
        if validation.error:
            self.echo(f"Failed to validate command: {validation.error}", err=True)
        # Validation is advisory: fall back to the generated command.
        attempt.candidate = validation.command or attempt.generated
        logger.info("Attempt %s: Validation response: %s", attempt.attempt, attempt.candidate)

        if self.trace_mode:
            self.echo("")
            self.echo(
                f"Attempt {attempt.attempt} - Initial command from backend: {attempt.generated}",
            )
            if validation.raw_response:
                self.echo(f"Validation response: {validation.raw_response}")
            if attempt.validation_changed:
                self.echo(f"Validated/Regenerated command: {attempt.validated}")

    def _lint(self, attempt: AttemptResult) -> None:
        logger.info("Attempt %s: Validating command with PSScriptAnalyzer", attempt.attempt)
        attempt.verdict = self.linter.lint(attempt.candidate or "")
        if not attempt.verdict.passed:
            attempt.failure_class = FailureClass.LINT_REJECTED

    def _execute(self, winner: AttemptResult, attempts: list[AttemptResult]) -> PipelineResult:
        command = winner.candidate or ""
        self.echo(f"Executing: {command}")
        self.echo("")
        logger.info("Executing command: %s", command)
        outcome = self.executor.execute(command)
        if outcome.error:
            self.echo(outcome.error, err=True)
        logger.info("Command execution completed with exit code: %s", outcome.exit_code)

        self._trace_exchange(winner)
        return PipelineResult(
            exit_code=outcome.exit_code,
            command=command,
            execution=outcome,
            attempts=attempts,
        )

    def _trace_exchange(self, attempt: AttemptResult) -> None:
        if not self.trace_mode:
            return
        self.echo("")
        self.echo(f"Query sent to backend: {attempt.generation_prompt}")
        self.echo(f"Response from backend: {attempt.generation_response}")
        if attempt.validation_prompt:
            self.echo(f"Validation query sent to backend: {attempt.validation_prompt}")
            self.echo(f"Validation response from backend: {attempt.validation_response}")
