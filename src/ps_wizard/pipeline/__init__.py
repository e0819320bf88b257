"""Generate, validate, lint and execute PowerShell commands."""
