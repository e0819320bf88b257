"""Run the final command with live output relay and a hard timeout."""

from __future__ import annotations

import logging
import subprocess
import threading
from collections.abc import Callable
from typing import IO

import click

from ps_wizard.pipeline.models import FAILURE_EXIT_CODE, TIMEOUT_EXIT_CODE, ExecutionOutcome
from ps_wizard.pipeline.shell import ShellInvocation

logger = logging.getLogger(__name__)

DEFAULT_EXECUTION_TIMEOUT_SECONDS = 30.0
_TERMINATE_GRACE_SECONDS = 2.0
_READER_JOIN_SECONDS = 2.0

LineSink = Callable[[str], None]


def _relay_stdout(line: str) -> None:
    click.echo(line)


def _relay_stderr(line: str) -> None:
    click.echo(line, err=True)


class CommandExecutor:
    """Execute a command through the shell, racing it against a timeout."""

    def __init__(
        self,
        shell: ShellInvocation,
        *,
        timeout_seconds: float = DEFAULT_EXECUTION_TIMEOUT_SECONDS,
        on_stdout: LineSink = _relay_stdout,
        on_stderr: LineSink = _relay_stderr,
    ) -> None:
        self.shell = shell
        self.timeout_seconds = timeout_seconds
        self.on_stdout = on_stdout
        self.on_stderr = on_stderr

    def execute(self, command: str) -> ExecutionOutcome:
        logger.info("Starting PowerShell execution: %s", command)
        try:
            process = subprocess.Popen(  # noqa: S603
                self.shell.argv(command),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except (OSError, ValueError) as exc:
            logger.info("Error executing PowerShell command: %s", exc)
            return ExecutionOutcome(
                exit_code=FAILURE_EXIT_CODE,
                error=f"Error executing PowerShell command: {exc}",
            )

        logger.info("PowerShell process started (pid %s)", process.pid)
        readers = [
            _start_reader(process.stdout, self.on_stdout),
            _start_reader(process.stderr, self.on_stderr),
        ]
        try:
            returncode = process.wait(timeout=self.timeout_seconds)
        except subprocess.TimeoutExpired:
            logger.info(
                "Command execution timed out after %s seconds",
                _format_seconds(self.timeout_seconds),
            )
            _terminate_process(process)
            _join_readers(readers, timeout=_READER_JOIN_SECONDS)
            self.on_stderr("")
            self.on_stderr(
                "Error: Command execution timed out after "
                f"{_format_seconds(self.timeout_seconds)} seconds.",
            )
            self.on_stderr("The command may be incomplete or waiting for input.")
            return ExecutionOutcome(exit_code=TIMEOUT_EXIT_CODE, timed_out=True, pid=process.pid)

        _join_readers(readers)
        logger.info("PowerShell process exited with code: %s", returncode)
        return ExecutionOutcome(exit_code=returncode, pid=process.pid)


def _start_reader(stream: IO[str] | None, sink: LineSink) -> threading.Thread:
    def _pump() -> None:
        if stream is None:
            return
        with stream:
            for line in stream:
                text = line.rstrip("\r\n")
                if text:
                    sink(text)

    thread = threading.Thread(target=_pump, daemon=True)
    thread.start()
    return thread


def _join_readers(readers: list[threading.Thread], timeout: float | None = None) -> None:
    for reader in readers:
        reader.join(timeout)


def _terminate_process(process: subprocess.Popen[str]) -> None:
    """Stop the process and reap it; failures are ignored."""

    try:
        process.terminate()
    except OSError:
        logger.info("Failed to terminate pid %s", process.pid)
    try:
        process.wait(timeout=_TERMINATE_GRACE_SECONDS)
        logger.info("PowerShell process terminated due to timeout")
        return
    except subprocess.TimeoutExpired:
        pass
    try:
        process.kill()
        process.wait(timeout=_TERMINATE_GRACE_SECONDS)
    except (OSError, subprocess.TimeoutExpired):
        logger.info("Failed to kill pid %s", process.pid)
    else:
        logger.info("PowerShell process killed due to timeout")


def _format_seconds(value: float) -> str:
    return f"{value:g}"
