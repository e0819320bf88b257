"""Domain models for the generate/validate/lint/execute pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

LINT_MESSAGE_SEPARATOR = "; "
TIMEOUT_EXIT_CODE = 1
FAILURE_EXIT_CODE = 1


class FailureClass(str, Enum):
    """Normalized failure classes used by the attempt policy."""

    BACKEND_UNREACHABLE = "backend_unreachable"
    EMPTY_GENERATION = "empty_generation"
    LINT_REJECTED = "lint_rejected"
    EXECUTION_TIMEOUT = "execution_timeout"
    EXECUTION_ERROR = "execution_error"
    CONFIGURATION_WARNING = "configuration_warning"


@dataclass(slots=True, frozen=True)
class LintVerdict:
    """Static analysis outcome for one candidate."""

    passed: bool
    messages: tuple[str, ...] = ()

    @classmethod
    def ok(cls) -> LintVerdict:
        return cls(passed=True)

    @classmethod
    def rejected(cls, messages: list[str] | tuple[str, ...]) -> LintVerdict:
        return cls(passed=False, messages=tuple(messages))

    @property
    def summary(self) -> str:
        return LINT_MESSAGE_SEPARATOR.join(self.messages)


@dataclass(slots=True)
class ExecutionOutcome:
    """Exit status of the executed command."""

    exit_code: int
    timed_out: bool = False
    pid: int | None = None
    error: str | None = None

    @property
    def failure_class(self) -> FailureClass | None:
        if self.timed_out:
            return FailureClass.EXECUTION_TIMEOUT
        if self.error is not None:
            return FailureClass.EXECUTION_ERROR
        return None


@dataclass(slots=True)
class AttemptResult:
    """Trace record for one generate/validate/lint pass."""

    attempt: int
    generation_prompt: str = ""
    generation_response: str = ""
    generated: str | None = None
    validation_prompt: str = ""
    validation_response: str = ""
    validated: str | None = None
    candidate: str | None = None
    verdict: LintVerdict | None = None
    failure_class: FailureClass | None = None

    @property
    def validation_changed(self) -> bool:
        return self.validated is not None and self.validated != self.generated

    @property
    def lint_passed(self) -> bool:
        return self.verdict is not None and self.verdict.passed


@dataclass(slots=True)
class PipelineResult:
    """Final outcome of one invocation."""

    exit_code: int
    command: str | None = None
    execution: ExecutionOutcome | None = None
    attempts: list[AttemptResult] = field(default_factory=list)

    @property
    def executed(self) -> bool:
        return self.execution is not None
