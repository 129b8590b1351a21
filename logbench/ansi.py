"""ANSI color-code handling."""

import re

ANSI_CODE_RE = re.compile(r"\x1b\[[0-9;]*m")
# Escape character already removed by an upstream wrapper, leaving e.g. "[36m"
LITERAL_ANSI_RE = re.compile(r"\[[0-9;]*m")


def strip_ansi_codes(text: str) -> str:
    return LITERAL_ANSI_RE.sub("", ANSI_CODE_RE.sub("", text))
