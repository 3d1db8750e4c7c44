"""
Boundary between callers (CLI, MCP tools) and the matching engine.

Scanning walks every candidate document and runs the locator over both
fields. Removal groups raw items by document and runs exactly one mutation
pass per document, persisting only when something changed.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import structlog

from phrasematch.cache import MatchCache
from phrasematch.config import DEFAULT_SETTINGS, MatchSettings
from phrasematch.diff import summarize_changes
from phrasematch.engine.locator import scan as scan_field
from phrasematch.engine.mutator import apply_document
from phrasematch.models import (
    DocumentField,
    DocumentOutcome,
    DocumentPreview,
    MutationRequest,
    RemovalMode,
    ScanHit,
    ScanReport,
)
from phrasematch.repository import DocumentNotFoundError, DocumentRepository, PersistError

logger = structlog.get_logger(__name__)

# Mode names used by older clients.
_MODE_ALIASES = {
    "html_element": RemovalMode.INLINE_MARKUP,
    "gutenberg_block": RemovalMode.BLOCK_WRAPPER,
}


def _first_present(item: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in item and item[key] is not None:
            return item[key]
    return default


def _coerce_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _coerce_mode(value: Any) -> RemovalMode:
    key = str(value or "").strip().lower()
    if key in _MODE_ALIASES:
        return _MODE_ALIASES[key]
    try:
        return RemovalMode(key)
    except ValueError:
        return RemovalMode.TEXT_ONLY


def _coerce_field(value: Any) -> DocumentField:
    try:
        return DocumentField(str(value or "").strip().lower())
    except ValueError:
        return DocumentField.CONTENT


def normalize_items(raw_items: Iterable[Any]) -> Dict[int, List[MutationRequest]]:
    """
    Sanitises raw removal items and groups them by document ID, keeping input order.

    Accepted keys: `document_id`/`post_id`, `offset`/`char_offset`, `field`/`location`,
    `mode`, `replacement`/`replace_with`. Items without a positive document ID or with
    a negative offset are dropped. Unknown modes fall back to text_only and unknown
    fields to content. Title removals are always text_only.
    """
    grouped: Dict[int, List[MutationRequest]] = {}

    for item in raw_items:
        if not isinstance(item, Mapping):
            continue

        doc_id = _coerce_int(_first_present(item, "document_id", "post_id", default=0), 0)
        offset = _coerce_int(_first_present(item, "offset", "char_offset", default=-1), -1)
        if doc_id <= 0 or offset < 0:
            continue

        field = _coerce_field(_first_present(item, "field", "location", default="content"))
        mode = _coerce_mode(_first_present(item, "mode", default="text_only"))
        replacement = str(_first_present(item, "replacement", "replace_with", default=""))

        if field == DocumentField.TITLE and not replacement:
            mode = RemovalMode.TEXT_ONLY

        grouped.setdefault(doc_id, []).append(
            MutationRequest(offset=offset, field=field, mode=mode, replacement=replacement)
        )

    return grouped


def _outcome_message(removed: int, replaced: int) -> str:
    parts = []
    if removed:
        parts.append(f"{removed} removed")
    if replaced:
        parts.append(f"{replaced} replaced")
    return f"Modified {removed + replaced} occurrence(s): {', '.join(parts)}."


class PhraseMatchService:
    def __init__(
        self,
        repository: DocumentRepository,
        cache: Optional[MatchCache] = None,
        settings: Optional[MatchSettings] = None,
    ):
        self.repository = repository
        self.settings = settings or DEFAULT_SETTINGS
        self.cache = cache if cache is not None else MatchCache(ttl=self.settings.cache_ttl)

    def _candidate_ids(self, phrase: str, doc_types: Sequence[str], statuses: Sequence[str]) -> List[int]:
        key = MatchCache.make_key(phrase, doc_types, statuses)
        ids = self.cache.get(key)
        if ids is None:
            ids = self.repository.find_ids(phrase, doc_types, statuses)
            self.cache.set(key, ids)
        return ids

    def scan(self, phrase: str, doc_types: Sequence[str], statuses: Sequence[str] = ("publish",)) -> ScanReport:
        """
        Finds every occurrence of the phrase in the titles and contents of matching documents.
        An empty phrase or an empty type list yields an empty report.
        """
        report = ScanReport(phrase=phrase)
        if not phrase or not doc_types:
            return report

        doc_types = list(doc_types)
        statuses = list(statuses)

        for doc_id in self._candidate_ids(phrase, doc_types, statuses):
            try:
                document = self.repository.get(doc_id)
            except DocumentNotFoundError:
                logger.warning(f"Cached document {doc_id} no longer exists, skipping")
                continue

            for field, text in ((DocumentField.TITLE, document.title), (DocumentField.CONTENT, document.content)):
                for occurrence in scan_field(text, phrase, field, self.settings):
                    report.hits.append(
                        ScanHit(
                            document_id=document.id,
                            title=document.title,
                            doc_type=document.doc_type,
                            status=document.status,
                            revision_id=document.latest_revision_id,
                            occurrence=occurrence,
                        )
                    )

        report.total = len(report.hits)
        logger.info(f"Scan for {phrase!r} found {report.total} occurrence(s)")
        return report

    def remove(self, phrase: str, raw_items: Iterable[Any]) -> List[DocumentOutcome]:
        """
        Removes or replaces the selected occurrences, one mutation pass per document.

        A failure for one document (missing, nothing left to modify, storage error)
        is reported in that document's outcome and never affects the others.
        """
        grouped = normalize_items(raw_items)
        if not phrase or not grouped:
            return []

        outcomes = []
        for doc_id, requests in grouped.items():
            outcomes.append(self._remove_from_document(doc_id, phrase, requests))
        return outcomes

    def _remove_from_document(self, doc_id: int, phrase: str, requests: List[MutationRequest]) -> DocumentOutcome:
        try:
            document = self.repository.get(doc_id)
        except DocumentNotFoundError:
            return DocumentOutcome(document_id=doc_id, success=False, message="Document not found.")

        result = apply_document(document.title, document.content, phrase, requests, self.settings)
        if not result.modified:
            logger.info(f"Nothing to modify in document {doc_id}")
            return DocumentOutcome(
                document_id=doc_id,
                title=document.title,
                success=False,
                message="No matching occurrences found to modify.",
            )

        try:
            revision = self.repository.update(doc_id, result.title, result.content)
        except PersistError as e:
            logger.error(f"Saving document {doc_id} failed: {e}")
            return DocumentOutcome(document_id=doc_id, title=document.title, success=False, message=str(e))
        finally:
            self.cache.invalidate()

        return DocumentOutcome(
            document_id=doc_id,
            title=result.title,
            success=True,
            message=_outcome_message(result.removed, result.replaced),
            removed=result.removed,
            replaced=result.replaced,
            revision_id=revision.id,
        )

    def preview(self, phrase: str, raw_items: Iterable[Any]) -> List[DocumentPreview]:
        """Computes what `remove` would change, without writing anything."""
        grouped = normalize_items(raw_items)
        if not phrase or not grouped:
            return []

        previews = []
        for doc_id, requests in grouped.items():
            try:
                document = self.repository.get(doc_id)
            except DocumentNotFoundError:
                logger.warning(f"Skipping preview for missing document {doc_id}")
                continue

            result = apply_document(document.title, document.content, phrase, requests, self.settings)
            previews.append(
                DocumentPreview(
                    document_id=doc_id,
                    title=document.title,
                    removed=result.removed,
                    replaced=result.replaced,
                    title_changes=summarize_changes(document.title, result.title),
                    content_changes=summarize_changes(document.content, result.content),
                )
            )
        return previews
