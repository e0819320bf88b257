from __future__ import annotations

import json
from pathlib import Path

import allure
import click
import pytest
from click.testing import CliRunner

from ps_wizard import __version__, controllers
from ps_wizard.backend.base import GenerationResult
from ps_wizard.main import split_request_words, wizard
from ps_wizard.pipeline.models import ExecutionOutcome, LintVerdict

pytestmark = [
    allure.epic("CLI"),
    allure.feature("wizard command"),
]


class FakeClient:
    replies: list[str] = []
    backends: list[object] = []
    prompts: list[str] = []

    def __init__(self, backend, **_kwargs) -> None:
        FakeClient.backends.append(backend)

    def generate(self, prompt: str) -> GenerationResult:
        FakeClient.prompts.append(prompt)
        return GenerationResult(prompt=prompt, raw_text=FakeClient.replies.pop(0))

    def __enter__(self) -> FakeClient:
        return self

    def __exit__(self, *_: object) -> None:
        return None


class FakeAnalyzer:
    def __init__(self, shell, **_kwargs) -> None:
        self.shell = shell

    def ensure_installed(self) -> bool:
        return True

    def lint(self, candidate: str) -> LintVerdict:
        return LintVerdict.ok()


class FakeExecutor:
    exit_code = 0
    commands: list[str] = []

    def __init__(self, shell, **_kwargs) -> None:
        self.shell = shell

    def execute(self, command: str) -> ExecutionOutcome:
        FakeExecutor.commands.append(command)
        click.echo("output line")
        return ExecutionOutcome(exit_code=FakeExecutor.exit_code)


@pytest.fixture()
def fake_pipeline(monkeypatch):
    FakeClient.replies = []
    FakeClient.backends = []
    FakeClient.prompts = []
    FakeExecutor.commands = []
    FakeExecutor.exit_code = 0
    monkeypatch.setattr(controllers, "HttpGenerationClient", FakeClient)
    monkeypatch.setattr(controllers, "ScriptAnalyzer", FakeAnalyzer)
    monkeypatch.setattr(controllers, "CommandExecutor", FakeExecutor)
    return FakeClient, FakeExecutor


@pytest.mark.parametrize("flag", ["-version", "--version", "-v"])
def test_version_flags(flag: str) -> None:
    result = CliRunner().invoke(wizard, [flag])

    assert result.exit_code == 0
    assert result.output.strip() == f"wizard version {__version__}"


def test_no_arguments_prints_usage_and_fails() -> None:
    result = CliRunner().invoke(wizard, [])

    assert result.exit_code == 1
    assert "Usage: wizard <natural language command>" in result.output
    assert "Example: wizard list all process which has processName like ja" in result.output


@pytest.mark.parametrize("flag", ["-config", "--config", "-c"])
def test_config_flags_print_masked_settings(tmp_path: Path, flag: str) -> None:
    (tmp_path / "settings.json").write_text(
        json.dumps({"HostedBackend": {"Enabled": "true", "ApiKey": "sk-abcdefghijkl"}}),
        encoding="utf-8",
    )

    result = CliRunner().invoke(wizard, [flag])

    assert result.exit_code == 0
    assert "ApiKey: sk-a*******ijkl" in result.output
    assert "sk-abcdefghijkl" not in result.output
    assert "Active model: gpt-4o-mini" in result.output


def test_run_joins_words_and_executes_command(fake_pipeline) -> None:
    client, executor = fake_pipeline
    client.replies = [
        "```powershell\nGet-Process\n```",
        "Get-Process | Where-Object Name -like '*ja*'",
    ]

    result = CliRunner().invoke(
        wizard,
        ["list", "all", "process", "which", "has", "processName", "like", "ja"],
    )

    assert result.exit_code == 0
    assert "Warning: settings.json not found. Using default model: llama3.2:latest" in result.output
    assert "Using model: llama3.2:latest" in result.output
    assert "Executing: Get-Process | Where-Object Name -like '*ja*'" in result.output
    assert "output line" in result.output
    assert executor.commands == ["Get-Process | Where-Object Name -like '*ja*'"]


def test_run_returns_command_exit_code(fake_pipeline) -> None:
    client, executor = fake_pipeline
    client.replies = ["exit 5", "exit 5"]
    executor.exit_code = 5

    result = CliRunner().invoke(wizard, ["fail", "with", "five"])

    assert result.exit_code == 5


def test_flags_after_first_word_belong_to_request(fake_pipeline) -> None:
    client, executor = fake_pipeline
    client.replies = ["Get-ChildItem -Recurse", "Get-ChildItem -Recurse"]

    result = CliRunner().invoke(wizard, ["list", "files", "-c", "-v"])

    assert result.exit_code == 0
    assert executor.commands == ["Get-ChildItem -Recurse"]


def test_explicit_settings_path_selects_model(tmp_path: Path, fake_pipeline) -> None:
    client, _executor = fake_pipeline
    client.replies = ["Get-Date", "Get-Date"]
    settings = tmp_path / "custom.json"
    settings.write_text(json.dumps({"Options": {"Model": "phi3"}}), encoding="utf-8")

    result = CliRunner().invoke(wizard, ["--settings", str(settings), "what", "time"])

    assert result.exit_code == 0
    assert "Using model: phi3" in result.output
    assert client.backends[0].model == "phi3"


def test_run_writes_log_when_enabled(tmp_path: Path, fake_pipeline) -> None:
    client, _executor = fake_pipeline
    client.replies = ["Get-Date", "Get-Date"]
    (tmp_path / "settings.json").write_text(
        json.dumps({"Options": {"Logging": "true"}}),
        encoding="utf-8",
    )

    result = CliRunner().invoke(wizard, ["what", "time"])

    assert result.exit_code == 0
    log_text = (tmp_path / "state" / "wizard" / "wizard.log").read_text(encoding="utf-8")
    assert "Application started" in log_text
    assert "User input: what time" in log_text
    assert "Executing command: Get-Date" in log_text


@pytest.mark.parametrize(
    "words",
    [["-Force", "remove", "temp"], ["-Verbose", "list", "services"], ["-cv", "now"]],
)
def test_dash_prefixed_first_word_belongs_to_request(fake_pipeline, words: list[str]) -> None:
    client, executor = fake_pipeline
    client.replies = ["Get-Date", "Get-Date"]

    result = CliRunner().invoke(wizard, words)

    assert result.exit_code == 0
    assert "Settings file:" not in result.output
    assert f"wizard version {__version__}" not in result.output
    assert executor.commands == ["Get-Date"]
    assert client.prompts[0].endswith(" ".join(words))


def test_config_flag_honours_settings_given_after_it(tmp_path: Path) -> None:
    settings = tmp_path / "custom.json"
    settings.write_text(json.dumps({"Options": {"Model": "phi3"}}), encoding="utf-8")

    result = CliRunner().invoke(wizard, ["-c", "--settings", str(settings)])

    assert result.exit_code == 0
    assert f"Settings file: {settings}" in result.output
    assert "Active model: phi3" in result.output


@pytest.mark.parametrize(
    ("args", "expected"),
    [
        (["-c"], ["-c"]),
        (["--settings", "s.json", "-v"], ["--settings", "s.json", "-v"]),
        (["-Force", "x"], ["--", "-Force", "x"]),
        (["--settings=s.json", "list", "-c"], ["--settings=s.json", "--", "list", "-c"]),
        (["--", "-x"], ["--", "-x"]),
        ([], []),
    ],
)
def test_split_request_words(args: list[str], expected: list[str]) -> None:
    assert split_request_words(args) == expected
