"""Append-only run log."""

from __future__ import annotations

import logging
import os
from pathlib import Path

LOG_FILE_NAME = "wizard.log"
LOG_PATH_ENV = "WIZARD_LOG_PATH"
PACKAGE_LOGGER = "ps_wizard"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class AppendFileHandler(logging.Handler):
    """Append one line per record, opening the file only for that write.

    Write failures are dropped: the run log must never affect the command
    being generated or executed.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path
        self.setFormatter(logging.Formatter("[%(asctime)s] %(message)s", TIMESTAMP_FORMAT))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        except Exception:  # noqa: BLE001, S110
            pass


def default_log_path() -> Path:
    env_path = os.getenv(LOG_PATH_ENV, "").strip()
    if env_path:
        return Path(env_path)
    base = os.getenv("XDG_STATE_HOME") or os.path.expanduser("~/.local/state")
    return Path(base) / "wizard" / LOG_FILE_NAME


def configure_run_log(*, enabled: bool, path: Path | None = None) -> logging.Logger:
    """Configure the package logger once for this run and return it.

    Disabled logging leaves only a ``NullHandler`` so nothing reaches stderr.
    """

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        if isinstance(handler, AppendFileHandler):
            logger.removeHandler(handler)
    logger.propagate = False
    if enabled:
        logger.addHandler(AppendFileHandler(path or default_log_path()))
        logger.setLevel(logging.INFO)
    else:
        logger.setLevel(logging.WARNING)
    return logger
