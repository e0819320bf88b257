"""PSScriptAnalyzer-based static check of candidate commands."""

from __future__ import annotations

import json
import logging
import os
import subprocess
import tempfile
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

import click

from ps_wizard.pipeline.models import LintVerdict
from ps_wizard.pipeline.shell import ShellInvocation

logger = logging.getLogger(__name__)

ANALYZER_MODULE = "PSScriptAnalyzer"
SCRATCH_PREFIX = "wizard_temp_"
SCRATCH_SUFFIX = ".ps1"
DEFAULT_ANALYZER_TIMEOUT_SECONDS = 120
DEFAULT_INSTALL_TIMEOUT_SECONDS = 300

_NO_FINDINGS = "{}"
_NULL_MESSAGE_MARKER = '"Message":null'

_CHECK_SCRIPT = f"Get-Module -ListAvailable -Name {ANALYZER_MODULE} | Select-Object -First 1"
_INSTALL_SCRIPT = f"Install-Module {ANALYZER_MODULE} -Scope CurrentUser -Force"
_ANALYZE_SCRIPT = (
    f"Import-Module {ANALYZER_MODULE} -ErrorAction SilentlyContinue; "
    "$results = Invoke-ScriptAnalyzer -Path '{path}' -ErrorAction SilentlyContinue; "
    "if ($results) {{ $results | ConvertTo-Json -Compress }} else {{ '{{}}' }}"
)


def _warn(message: str) -> None:
    click.echo(message, err=True)


class ScriptAnalyzer:
    """Run PSScriptAnalyzer on a candidate and turn its findings into a verdict.

    The analyzer fails open: when PowerShell or the module cannot be run, or
    anything unexpected happens, the verdict is a pass. A broken or missing
    linter must never block execution on its own; only real findings reject
    a candidate.
    """

    def __init__(
        self,
        shell: ShellInvocation,
        *,
        timeout_seconds: int = DEFAULT_ANALYZER_TIMEOUT_SECONDS,
        warn: Callable[[str], None] = _warn,
    ) -> None:
        self.shell = shell
        self.timeout_seconds = timeout_seconds
        self.warn = warn

    def lint(self, candidate: str) -> LintVerdict:
        try:
            with _scratch_script(candidate) as script_path:
                completed = subprocess.run(  # noqa: S603
                    self.shell.argv(_ANALYZE_SCRIPT.format(path=_quote_path(script_path))),
                    capture_output=True,
                    text=True,
                    timeout=self.timeout_seconds,
                    check=False,
                )
        except Exception as exc:  # noqa: BLE001
            logger.info("PSScriptAnalyzer validation error: %s", exc)
            self.warn(f"Warning: PSScriptAnalyzer validation error: {exc}")
            return LintVerdict.ok()

        if completed.stderr and completed.stderr.strip():
            logger.info("PSScriptAnalyzer stderr: %s", completed.stderr.strip())
        return parse_findings(completed.stdout)

    def ensure_installed(self) -> bool:
        """Install PSScriptAnalyzer for the current user when it is missing."""

        logger.info("Checking if %s is installed", ANALYZER_MODULE)
        try:
            check = subprocess.run(  # noqa: S603
                self.shell.argv(_CHECK_SCRIPT),
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                check=False,
            )
            if ANALYZER_MODULE in (check.stdout or ""):
                logger.info("%s is already installed", ANALYZER_MODULE)
                return True

            logger.info("%s not found, installing...", ANALYZER_MODULE)
            click.echo(f"Installing {ANALYZER_MODULE} module...")
            install = subprocess.run(  # noqa: S603
                self.shell.argv(_INSTALL_SCRIPT),
                capture_output=True,
                text=True,
                timeout=DEFAULT_INSTALL_TIMEOUT_SECONDS,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.info("Error checking/installing %s: %s", ANALYZER_MODULE, exc)
            self.warn(f"Warning: Failed to check/install {ANALYZER_MODULE}: {exc}")
            return False

        if install.returncode != 0 and install.stderr.strip():
            logger.info("Failed to install %s: %s", ANALYZER_MODULE, install.stderr.strip())
            self.warn(f"Warning: Failed to install {ANALYZER_MODULE}: {install.stderr.strip()}")
            return False
        logger.info("%s installed successfully", ANALYZER_MODULE)
        click.echo(f"{ANALYZER_MODULE} installed successfully.")
        return True


def parse_findings(output: str | None) -> LintVerdict:
    """Interpret ``ConvertTo-Json`` output of ``Invoke-ScriptAnalyzer``."""

    text = (output or "").strip()
    if not text or text == _NO_FINDINGS or _NULL_MESSAGE_MARKER in text:
        return LintVerdict.ok()

    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return LintVerdict.rejected([text])

    findings = payload if isinstance(payload, list) else [payload]
    messages = [
        str(finding["Message"])
        for finding in findings
        if isinstance(finding, dict) and finding.get("Message") is not None
    ]
    if not messages:
        return LintVerdict.ok()
    return LintVerdict.rejected(messages)


@contextmanager
def _scratch_script(content: str) -> Iterator[Path]:
    handle, name = tempfile.mkstemp(prefix=SCRATCH_PREFIX, suffix=SCRATCH_SUFFIX)
    path = Path(name)
    try:
        with os.fdopen(handle, "w", encoding="utf-8") as stream:
            stream.write(content)
        yield path
    finally:
        path.unlink(missing_ok=True)


def _quote_path(path: Path) -> str:
    return str(path).replace("'", "''")
