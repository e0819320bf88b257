"""PowerShell process invocation."""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass

POWERSHELL_CANDIDATES: tuple[str, ...] = ("pwsh", "powershell")
WINDOWS_POWERSHELL = "powershell.exe"
POWERSHELL_ARGUMENTS: tuple[str, ...] = ("-NoProfile", "-NonInteractive", "-Command")


@dataclass(slots=True, frozen=True)
class ShellInvocation:
    """Executable plus the arguments that precede a command string."""

    executable: str
    arguments: tuple[str, ...] = POWERSHELL_ARGUMENTS

    def argv(self, command: str) -> list[str]:
        return [self.executable, *self.arguments, command]


def resolve_powershell(configured: str | None = None, *, os_name: str | None = None) -> str:
    """Pick the PowerShell executable: configured value, then PATH lookup."""

    if configured and configured.strip():
        return configured.strip()
    for candidate in POWERSHELL_CANDIDATES:
        found = shutil.which(candidate)
        if found:
            return found
    if (os_name or os.name) == "nt":
        return WINDOWS_POWERSHELL
    return POWERSHELL_CANDIDATES[0]


def powershell(configured: str | None = None) -> ShellInvocation:
    return ShellInvocation(executable=resolve_powershell(configured))
