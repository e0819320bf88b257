"""Built-in prompt templates and placeholder substitution."""

from __future__ import annotations

import re

DEFAULT_FIRST_PROMPT = (
    "You are a PowerShell 5 expert.Rules:- Output ONLY valid PowerShell code - ONE LINE only "
    "- No markdown - No explanation - No comments - No extra spaces - No line breaks "
    "- Obey formatting EXACTLY If you break any rule, the answer is invalid.do this PowerShell "
    "request only with one line powershell-command, create command for this requirements: "
    "{sentence}"
)

DEFAULT_VALIDATION_PROMPT = (
    "this is a powershell 5 command  : '{command}' and this is the requirements : "
    "'{requirements}', Is it one line? - Does it run in PowerShell 5? - Does it meet ALL rules? "
    "-If not, regenerate the command. Output only final answer. the response must create only "
    "one line powershell-command nothing more"
)


def render_template(template: str, values: dict[str, str]) -> str:
    """Replace ``{name}`` placeholders textually.

    Unlike ``str.format`` this leaves unknown placeholders and stray braces
    untouched, so templates may contain PowerShell script blocks. Values are
    inserted in a single pass and never expanded again.
    """

    if not values:
        return template
    pattern = re.compile("|".join(re.escape("{" + name + "}") for name in values))
    return pattern.sub(lambda match: values[match.group(0)[1:-1]], template)


def render_first_prompt(template: str, sentence: str) -> str:
    return render_template(template, {"sentence": sentence})


def render_validation_prompt(template: str, *, command: str, requirements: str) -> str:
    return render_template(template, {"command": command, "requirements": requirements})
