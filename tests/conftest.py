"""Shared test fixtures."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import pytest

from ps_wizard.backend.base import GenerationResult
from ps_wizard.pipeline.models import ExecutionOutcome, FailureClass, LintVerdict
from ps_wizard.run_log import PACKAGE_LOGGER, AppendFileHandler


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep settings and run-log lookup away from the developer's home."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "state"))
    monkeypatch.delenv("WIZARD_SETTINGS_PATH", raising=False)
    monkeypatch.delenv("WIZARD_LOG_PATH", raising=False)


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        if isinstance(handler, AppendFileHandler):
            logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


class ScriptedGenerator:
    """Answers prompts from a fixed script; ``None`` means an empty generation."""

    def __init__(self, replies: list[str | None]) -> None:
        self.replies = list(replies)
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> GenerationResult:
        self.prompts.append(prompt)
        reply = self.replies.pop(0)
        if reply is None:
            return GenerationResult(
                prompt=prompt,
                failure_class=FailureClass.EMPTY_GENERATION,
                error="Backend returned no text.",
            )
        return GenerationResult(prompt=prompt, raw_text=reply, status_code=200)


class ScriptedLinter:
    def __init__(self, verdicts: list[LintVerdict]) -> None:
        self.verdicts = list(verdicts)
        self.candidates: list[str] = []

    def lint(self, candidate: str) -> LintVerdict:
        self.candidates.append(candidate)
        return self.verdicts.pop(0)


class RecordingExecutor:
    def __init__(self, outcome: ExecutionOutcome | None = None) -> None:
        self.outcome = outcome or ExecutionOutcome(exit_code=0)
        self.commands: list[str] = []

    def execute(self, command: str) -> ExecutionOutcome:
        self.commands.append(command)
        return self.outcome


@dataclass
class EchoRecorder:
    stdout: list[str] = field(default_factory=list)
    stderr: list[str] = field(default_factory=list)

    def __call__(self, message: str = "", err: bool = False) -> None:
        (self.stderr if err else self.stdout).append(message)


@pytest.fixture()
def scripted_generator():
    return ScriptedGenerator


@pytest.fixture()
def scripted_linter():
    return ScriptedLinter


@pytest.fixture()
def recording_executor():
    return RecordingExecutor


@pytest.fixture()
def echo() -> EchoRecorder:
    return EchoRecorder()
