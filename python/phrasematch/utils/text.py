"""
Low-level string helpers shared by the locator and the mutator.
Case folding here is ASCII-only so folded text keeps the exact length
(and therefore the exact offsets) of the original.
"""

import re

_ASCII_LOWER = str.maketrans("ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz")

# Same whitespace class as the tag patterns in phrasematch.markup.
_WHITESPACE_RE = re.compile(r"\s*", re.ASCII)

# Three or more line breaks, possibly separated by stray whitespace.
_BLANK_RUN_RE = re.compile(r"(\n\s*){3,}")


def fold(text: str) -> str:
    return text.translate(_ASCII_LOWER)


def skip_whitespace(text: str, pos: int) -> int:
    return _WHITESPACE_RE.match(text, pos).end()


def splice(text: str, start: int, end: int, insert: str = "") -> str:
    """Returns text with text[start:end] replaced by insert."""
    return text[:start] + insert + text[end:]


def collapse_blank_lines(text: str) -> str:
    """Collapses runs of blank lines left behind by removals into one blank line."""
    return _BLANK_RUN_RE.sub("\n\n", text)
