"""
Structural span matching for markup wrapped around a phrase.

Two shapes are recognised, both anchored on the phrase being the only
meaningful content of the wrapper:

- element: `<tag ...>` [`<inner ...>`]* PHRASE [`</inner>`]* `</tag>`,
  whitespace allowed between the pieces, inner tags closed in reverse order.
- block: a block-start comment marker, an element span, then the block-end
  marker carrying the same block name.

This is pattern matching over the raw text, not an HTML parser.
"""

import re
from functools import lru_cache
from typing import Iterable, Iterator, List, NamedTuple, Optional, Tuple

from phrasematch.config import DEFAULT_BLOCK_MARKERS, BlockMarkerSyntax
from phrasematch.utils.text import fold, skip_whitespace

_OPEN_TAG_RE = re.compile(r"<(\w+)[^>]*>", re.ASCII)
_CLOSE_TAG_RE = re.compile(r"</(\w+)\s*>", re.ASCII)
_BLOCK_NAME = r"(?P<name>[\w-]+(?:/[\w-]+)?)"


class Span(NamedTuple):
    start: int
    end: int

    def contains(self, offset: int) -> bool:
        return self.start <= offset < self.end


@lru_cache(maxsize=32)
def _marker_patterns(start_prefix: str, end_prefix: str) -> Tuple[re.Pattern, re.Pattern]:
    flags = re.ASCII | re.IGNORECASE | re.DOTALL
    # Opening markers may carry attributes (e.g. a JSON object) up to the '-->'.
    opening = re.compile(r"<!--\s*" + re.escape(start_prefix) + _BLOCK_NAME + r"(?:\s(?:(?!-->).)*?)?\s*-->", flags)
    closing = re.compile(r"<!--\s*" + re.escape(end_prefix) + _BLOCK_NAME + r"\s*-->", flags)
    return opening, closing


def _match_phrase(folded: str, needle: str, pos: int) -> Optional[int]:
    """
    Matches the phrase after optional whitespace at pos and returns the end
    of the phrase. Every whitespace split point is tried, so a phrase that
    itself starts with whitespace still matches.
    """
    stop = skip_whitespace(folded, pos)
    for candidate in range(stop, pos - 1, -1):
        if folded.startswith(needle, candidate):
            return candidate + len(needle)
    return None


def match_element(text: str, start: int, phrase: str, folded: Optional[str] = None) -> Optional[int]:
    """
    Tries to match an element span beginning exactly at `start`.

    Returns the end position of the outer close tag, or None when the text at
    `start` is not an element whose sole content is the phrase.
    """
    if not phrase:
        return None
    folded = fold(text) if folded is None else folded
    needle = fold(phrase)

    opener = _OPEN_TAG_RE.match(text, start)
    if opener is None:
        return None

    open_names: List[str] = [opener.group(1).lower()]
    pos = opener.end()
    while True:
        phrase_end = _match_phrase(folded, needle, pos)
        if phrase_end is not None:
            break
        inner = _OPEN_TAG_RE.match(text, skip_whitespace(text, pos))
        if inner is None:
            return None
        open_names.append(inner.group(1).lower())
        pos = inner.end()

    pos = phrase_end
    while open_names:
        closer = _CLOSE_TAG_RE.match(text, skip_whitespace(text, pos))
        if closer is None or closer.group(1).lower() != open_names.pop():
            return None
        pos = closer.end()
    return pos


def iter_element_spans(text: str, phrase: str) -> Iterator[Span]:
    """
    Yields every element span whose sole content is the phrase, left to right.
    Spans never overlap: scanning resumes after the end of the last match, so
    for nested wrappers the outermost element is reported.
    """
    if not phrase:
        return
    folded = fold(text)
    resume = 0
    for opener in _OPEN_TAG_RE.finditer(text):
        if opener.start() < resume:
            continue
        end = match_element(text, opener.start(), phrase, folded)
        if end is not None:
            yield Span(opener.start(), end)
            resume = end


def iter_block_spans(
    text: str, phrase: str, markers: Iterable[BlockMarkerSyntax] = DEFAULT_BLOCK_MARKERS
) -> Iterator[Span]:
    """Yields every block span (start marker, element span, end marker) ordered by start."""
    if not phrase:
        return
    folded = fold(text)
    spans: List[Span] = []
    for syntax in markers:
        opening_re, closing_re = _marker_patterns(syntax.start_prefix, syntax.end_prefix)
        resume = 0
        for opening in opening_re.finditer(text):
            if opening.start() < resume:
                continue
            element_end = match_element(text, skip_whitespace(text, opening.end()), phrase, folded)
            if element_end is None:
                continue
            closing = closing_re.match(text, skip_whitespace(text, element_end))
            if closing is None or closing.group("name").lower() != opening.group("name").lower():
                continue
            spans.append(Span(opening.start(), closing.end()))
            resume = closing.end()
    yield from sorted(spans)


def _first_containing(spans: Iterable[Span], offset: int) -> Optional[Span]:
    for span in spans:
        if span.start > offset:
            break
        if span.contains(offset):
            return span
    return None


def find_element_span(text: str, phrase: str, offset: int) -> Optional[Span]:
    return _first_containing(iter_element_spans(text, phrase), offset)


def find_block_span(
    text: str, phrase: str, offset: int, markers: Iterable[BlockMarkerSyntax] = DEFAULT_BLOCK_MARKERS
) -> Optional[Span]:
    return _first_containing(iter_block_spans(text, phrase, markers), offset)
