"""
Locates every occurrence of a phrase in one field of a document, classifies
the markup wrapped around each one, and renders a display snippet.

Offsets are code point positions in the Python string. Matching folds
ASCII letters only, so folded and original text always have equal length.
"""

import html
from typing import List, Optional

import structlog

from phrasematch.config import DEFAULT_SETTINGS, MatchSettings
from phrasematch.markup import find_block_span, find_element_span
from phrasematch.models import DocumentField, Occurrence, Wrapping
from phrasematch.utils.text import fold

logger = structlog.get_logger(__name__)


def find_offsets(text: str, phrase: str) -> List[int]:
    """
    Returns the offsets of all non-overlapping, case-insensitive matches.
    After a match at p the search resumes at p + len(phrase).
    """
    if not phrase or not text:
        return []

    haystack = fold(text)
    needle = fold(phrase)
    offsets = []
    pos = haystack.find(needle)
    while pos != -1:
        offsets.append(pos)
        pos = haystack.find(needle, pos + len(needle))
    return offsets


def detect_wrapping(text: str, phrase: str, offset: int, settings: Optional[MatchSettings] = None) -> Wrapping:
    """
    Classifies the structure around the match at `offset`.
    Block wrappers are checked before inline markup; anything else is plain.
    """
    settings = settings or DEFAULT_SETTINGS
    if find_block_span(text, phrase, offset, settings.block_markers) is not None:
        return Wrapping.BLOCK_WRAPPER
    if find_element_span(text, phrase, offset) is not None:
        return Wrapping.INLINE_MARKUP
    return Wrapping.PLAIN


def build_snippet(text: str, phrase: str, offset: int, settings: Optional[MatchSettings] = None) -> str:
    """
    Builds an HTML-safe context snippet around the match with the phrase highlighted.

    The context window is trimmed to word boundaries where possible. An
    ellipsis marks each edge that was cut short of the start or end of the text.
    This output is for display only and must never feed back into mutation.
    """
    settings = settings or DEFAULT_SETTINGS
    window = settings.context_chars
    phrase_len = len(phrase)
    match_end = offset + phrase_len

    start = max(0, offset - window)
    end = min(len(text), match_end + window)

    before = text[start:offset]
    match = text[offset:match_end]
    after = text[match_end:end]

    if start > 0:
        # Drop the partial word at the left edge.
        space_pos = before.find(" ")
        if space_pos != -1:
            before = before[space_pos:].lstrip()
        before = settings.ellipsis + before

    if end < len(text):
        last_space = after.rfind(" ")
        if last_space != -1:
            after = after[:last_space]
        after = after + settings.ellipsis

    return (
        html.escape(before, quote=True)
        + settings.highlight_open
        + html.escape(match, quote=True)
        + settings.highlight_close
        + html.escape(after, quote=True)
    )


def scan(
    text: str,
    phrase: str,
    field: DocumentField = DocumentField.CONTENT,
    settings: Optional[MatchSettings] = None,
) -> List[Occurrence]:
    """
    Produces one Occurrence per match in scan order.
    Title matches are never classified: titles carry no markup.
    """
    settings = settings or DEFAULT_SETTINGS
    field = DocumentField(field)
    occurrences = []

    for index, offset in enumerate(find_offsets(text, phrase)):
        if field == DocumentField.TITLE:
            wrapping = Wrapping.PLAIN
        else:
            wrapping = detect_wrapping(text, phrase, offset, settings)

        occurrences.append(
            Occurrence(
                offset=offset,
                occurrence_index=index,
                field=field,
                wrapping=wrapping,
                snippet=build_snippet(text, phrase, offset, settings),
            )
        )

    if occurrences:
        logger.debug(f"Found {len(occurrences)} occurrence(s) in {field.value}")
    return occurrences
