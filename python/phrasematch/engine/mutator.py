"""
Applies removals and replacements of phrase occurrences at known offsets.

Requests for one field are applied from the highest offset to the lowest.
An edit only shifts text after its own position, so every offset still
waiting to be processed keeps pointing at the text it was computed against.
Each offset is re-checked before use; a stale offset is skipped, never fatal.
"""

from typing import Iterable, List, Optional, Tuple

import structlog

from phrasematch.config import DEFAULT_SETTINGS, MatchSettings
from phrasematch.markup import find_block_span, find_element_span
from phrasematch.models import DocumentField, FieldResult, MutationRequest, MutationResult, RemovalMode
from phrasematch.utils.text import collapse_blank_lines, fold, splice

logger = structlog.get_logger(__name__)


def phrase_at(text: str, phrase: str, offset: int) -> bool:
    """Checks that the phrase (case-insensitive) still sits at offset."""
    if not phrase or offset < 0 or offset + len(phrase) > len(text):
        return False
    return fold(text[offset : offset + len(phrase)]) == fold(phrase)


def _remove_text_only(text: str, phrase: str, offset: int) -> str:
    return splice(text, offset, offset + len(phrase))


def _remove_inline_markup(text: str, phrase: str, offset: int) -> str:
    span = find_element_span(text, phrase, offset)
    if span is None:
        logger.debug(f"No wrapping element at offset {offset}, removing text only")
        return _remove_text_only(text, phrase, offset)
    return splice(text, span.start, span.end)


def _remove_block_wrapper(text: str, phrase: str, offset: int, settings: MatchSettings) -> str:
    span = find_block_span(text, phrase, offset, settings.block_markers)
    if span is None:
        logger.debug(f"No wrapping block at offset {offset}, trying element removal")
        return _remove_inline_markup(text, phrase, offset)
    return splice(text, span.start, span.end)


def _remove(text: str, phrase: str, offset: int, mode: RemovalMode, settings: MatchSettings) -> str:
    if mode == RemovalMode.BLOCK_WRAPPER:
        return _remove_block_wrapper(text, phrase, offset, settings)
    if mode == RemovalMode.INLINE_MARKUP:
        return _remove_inline_markup(text, phrase, offset)
    return _remove_text_only(text, phrase, offset)


def _apply_raw(
    text: str,
    phrase: str,
    requests: Iterable[MutationRequest],
    field: DocumentField,
    settings: MatchSettings,
) -> Tuple[str, int, int]:
    """Applies the requests that target `field` without any post-processing."""
    if not phrase:
        return text, 0, 0

    # sorted() is stable, so duplicate offsets keep their input order.
    ordered: List[MutationRequest] = sorted(
        (r for r in requests if r.field == field),
        key=lambda r: r.offset,
        reverse=True,
    )

    removed = 0
    replaced = 0
    for request in ordered:
        if not phrase_at(text, phrase, request.offset):
            logger.info(f"Skipping stale offset {request.offset} in {field.value}")
            continue

        if request.replacement:
            text = splice(text, request.offset, request.offset + len(phrase), request.replacement)
            replaced += 1
            continue

        # Titles carry no markup, so only the phrase itself can be removed.
        mode = RemovalMode.TEXT_ONLY if field == DocumentField.TITLE else request.mode
        text = _remove(text, phrase, request.offset, mode, settings)
        removed += 1

    return text, removed, replaced


def _normalize(text: str, field: DocumentField) -> str:
    if field == DocumentField.TITLE:
        return text.strip()
    return collapse_blank_lines(text)


def apply(
    text: str,
    phrase: str,
    requests: Iterable[MutationRequest],
    field: DocumentField = DocumentField.CONTENT,
    settings: Optional[MatchSettings] = None,
) -> FieldResult:
    """
    Applies every request for `field` to `text` in one pass.

    Requests for other fields are ignored. When at least one edit lands, the
    result is normalised: content has runs of blank lines collapsed, a title
    is stripped of surrounding whitespace.
    """
    settings = settings or DEFAULT_SETTINGS
    field = DocumentField(field)
    new_text, removed, replaced = _apply_raw(text, phrase, requests, field, settings)
    if removed or replaced:
        new_text = _normalize(new_text, field)
    return FieldResult(text=new_text, removed=removed, replaced=replaced)


def apply_document(
    title: str,
    content: str,
    phrase: str,
    requests: Iterable[MutationRequest],
    settings: Optional[MatchSettings] = None,
) -> MutationResult:
    """
    Runs one mutation pass over both fields of a document.

    Title and content offsets are independent coordinate spaces and are
    processed separately. If nothing was modified both texts come back
    untouched and `modified` is zero; callers should not persist anything.
    """
    settings = settings or DEFAULT_SETTINGS
    requests = list(requests)

    new_title, title_removed, title_replaced = _apply_raw(title, phrase, requests, DocumentField.TITLE, settings)
    new_content, content_removed, content_replaced = _apply_raw(
        content, phrase, requests, DocumentField.CONTENT, settings
    )

    result = MutationResult(
        title=new_title,
        content=new_content,
        removed=title_removed + content_removed,
        replaced=title_replaced + content_replaced,
    )
    if not result.modified:
        return MutationResult(title=title, content=content)

    result.title = _normalize(result.title, DocumentField.TITLE)
    result.content = _normalize(result.content, DocumentField.CONTENT)
    return result
