"""CLI entrypoint for wizard."""

from __future__ import annotations

from pathlib import Path

import rich_click as click

from ps_wizard import __version__
from ps_wizard.controllers import WizardCliController, WizardConfigCommand, WizardRunCommand

click.rich_click.USE_MARKDOWN = True
CONTROLLER = WizardCliController()

USAGE_LINES = (
    "Usage: wizard <natural language command>",
    "Example: wizard list all process which has processName like ja",
)

FLAG_TOKENS = frozenset(
    {"-version", "--version", "-v", "-config", "--config", "-c", "-h", "--help"},
)
SETTINGS_OPTION = "--settings"


class WizardCommand(click.RichCommand):
    """Treat only exact flag tokens as options; every other word is the request."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        return super().parse_args(ctx, split_request_words(args))


def split_request_words(args: list[str]) -> list[str]:
    """Insert ``--`` before the first word that is not a known flag.

    Dash-prefixed request words such as ``-Force`` are then never read as
    clusters of short options.
    """

    index = 0
    while index < len(args):
        token = args[index]
        if token == "--":
            return list(args)
        if token in FLAG_TOKENS or token.startswith(f"{SETTINGS_OPTION}="):
            index += 1
        elif token == SETTINGS_OPTION:
            index += 2
        else:
            break
    if index >= len(args):
        return list(args)
    return [*args[:index], "--", *args[index:]]


@click.command(
    cls=WizardCommand,
    context_settings={
        "allow_interspersed_args": False,
        "help_option_names": ["-h", "--help"],
    },
)
@click.version_option(
    __version__,
    "-version",
    "--version",
    "-v",
    prog_name="wizard",
    message="%(prog)s version %(version)s",
)
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Path to settings.json (defaults to the lookup order in the docs).",
)
@click.option(
    "-config",
    "--config",
    "-c",
    "show_config",
    is_flag=True,
    help="Print the resolved configuration with secrets masked and exit.",
)
@click.argument("words", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def wizard(
    ctx: click.Context,
    settings_path: Path | None,
    show_config: bool,
    words: tuple[str, ...],
) -> None:
    """Turn a natural-language request into one PowerShell command and run it."""

    if show_config:
        _emit_lines(CONTROLLER.describe_config(WizardConfigCommand(settings_path=settings_path)))
        ctx.exit(0)
    if not words:
        _emit_lines(list(USAGE_LINES))
        ctx.exit(1)
    ctx.exit(CONTROLLER.run(WizardRunCommand(words=words, settings_path=settings_path)))


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    wizard()
