"""CLI controller wiring settings, run log and pipeline together."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import click

from ps_wizard.backend.http_client import HttpGenerationClient
from ps_wizard.config import Settings
from ps_wizard.pipeline.executor import CommandExecutor
from ps_wizard.pipeline.linter import ScriptAnalyzer
from ps_wizard.pipeline.models import FAILURE_EXIT_CODE
from ps_wizard.pipeline.orchestrator import AttemptOrchestrator
from ps_wizard.pipeline.shell import powershell
from ps_wizard.pipeline.validator import CommandValidator
from ps_wizard.run_log import configure_run_log

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WizardRunCommand:
    """Input for the main generate-and-run command."""

    words: tuple[str, ...]
    settings_path: Path | None = None
    log_path: Path | None = None

    @property
    def request(self) -> str:
        return " ".join(self.words)


@dataclass(slots=True)
class WizardConfigCommand:
    """Input for the configuration dump."""

    settings_path: Path | None = None


class WizardCliController:
    """CLI controller for wizard operations."""

    def __init__(self, echo: Callable[..., None] = click.echo) -> None:
        self.echo = echo

    def run(self, command: WizardRunCommand) -> int:
        """Generate, check and execute a command; return the process exit code."""

        settings = Settings.load(command.settings_path)
        self._emit_warnings(settings)
        configure_run_log(enabled=settings.options.logging, path=command.log_path)
        backend = settings.resolve_backend()

        logger.info("Application started")
        logger.info("User input: %s", command.request)
        logger.info("Using model: %s", backend.model)
        logger.info("Backend URL: %s", backend.endpoint)
        self.echo(f"Using model: {backend.model}")

        try:
            shell = powershell(settings.options.powershell)
            analyzer = ScriptAnalyzer(shell)
            logger.info("Checking PSScriptAnalyzer installation")
            analyzer.ensure_installed()

            with HttpGenerationClient(backend) as client:
                orchestrator = AttemptOrchestrator(
                    client=client,
                    validator=CommandValidator(client, settings.options.validation_prompt),
                    linter=analyzer,
                    executor=CommandExecutor(shell),
                    first_prompt=settings.options.first_prompt,
                    trace_mode=settings.options.trace_mode,
                    echo=self.echo,
                )
                return orchestrator.run(command.request).exit_code
        except Exception as exc:  # noqa: BLE001
            logger.info("Error occurred: %s", exc)
            self.echo(f"Error: {exc}", err=True)
            return FAILURE_EXIT_CODE

    def describe_config(self, command: WizardConfigCommand) -> list[str]:
        settings = Settings.load(command.settings_path)
        self._emit_warnings(settings)
        return settings.describe()

    def _emit_warnings(self, settings: Settings) -> None:
        for warning in settings.warnings:
            self.echo(warning, err=True)
