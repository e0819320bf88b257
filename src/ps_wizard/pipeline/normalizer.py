"""Strip code-fence wrapping from raw backend text."""

from __future__ import annotations

import re

FENCE = "```"

LANGUAGE_TAGS: tuple[str, ...] = (
    "powershell",
    "pwsh",
    "ps1",
    "ps",
    "posh",
    "shell",
    "bash",
    "sh",
    "cmd",
    "console",
    "plaintext",
    "text",
)

_TAGGED_FENCE = re.compile(
    rf"^```(?:{'|'.join(LANGUAGE_TAGS)})(?=\s|`|$)",
    re.IGNORECASE,
)
# Any single word alone on the opening fence line is a language tag.
_LINE_TAGGED_FENCE = re.compile(r"^```[\w+.#-]+(?=\r?\n)")


def normalize(raw: str | None) -> str:
    """Return the candidate command contained in ``raw``.

    Only whitespace and the fence delimiters at either end are removed. A
    leading fence tagged with a language name (```` ```powershell ````) is
    stripped together with its tag, as is any other single word standing alone
    on the opening fence line. On a one-line fence only the known tags count,
    so ```` ```Get-Date``` ```` keeps its command.
    """

    if not raw:
        return ""
    text = raw.strip()

    tagged = _LINE_TAGGED_FENCE.match(text) or _TAGGED_FENCE.match(text)
    if tagged is not None:
        text = text[tagged.end() :]
    elif text.startswith(FENCE):
        text = text[len(FENCE) :]

    if text.endswith(FENCE):
        text = text[: -len(FENCE)]
    return text.strip()
