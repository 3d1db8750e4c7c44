import json
import logging
import sys
from typing import Any, Dict, List, Optional, Tuple

import structlog
from mcp.server.fastmcp import FastMCP

from phrasematch.cache import MatchCache
from phrasematch.config import MatchSettings
from phrasematch.repository import JsonCorpusRepository
from phrasematch.service import PhraseMatchService

# --- LOGGING CONFIGURATION ---
# MCP communicates over stdio.
# CRITICAL: All logs must go to stderr. Any print to stdout will break the JSON-RPC protocol.
logging.basicConfig(stream=sys.stderr, level=logging.INFO, force=True)

structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
)

mcp = FastMCP("PhraseMatch Service")

# The corpus file is re-read on every tool call because the CLI or a restore may
# have rewritten it in between. Only the match cache outlives a call; it is keyed
# by corpus path and cleared whenever the file is not the version it was filled from.
_caches: Dict[str, Tuple[Optional[Tuple[int, int, int]], MatchCache]] = {}


def _service_for(corpus_path: str) -> PhraseMatchService:
    settings = MatchSettings.from_env()
    repository = JsonCorpusRepository(corpus_path)

    signature, cache = _caches.get(corpus_path, (None, None))
    if cache is None:
        cache = MatchCache(ttl=settings.cache_ttl)
    elif signature != repository.signature:
        cache.invalidate()
    _caches[corpus_path] = (repository.signature, cache)

    return PhraseMatchService(repository, cache=cache, settings=settings)


@mcp.tool()
def scan_phrase(
    corpus_path: str,
    phrase: str,
    doc_types: Optional[List[str]] = None,
    statuses: Optional[List[str]] = None,
) -> str:
    """
    Finds every occurrence of an exact phrase (case-insensitive) in a JSON corpus.

    Args:
        corpus_path: Absolute path to the JSON corpus file.
        phrase: The exact phrase to look for. It is not trimmed or normalised.
        doc_types: Document types to include (default: post, page).
        statuses: Document statuses to include (default: publish).

    Returns:
        A JSON report. Each hit carries document_id, the field ('title' or 'content'),
        the offset, the wrapping ('plain', 'inline_markup' or 'block_wrapper') and an
        HTML snippet with the phrase inside <mark>. Pass document_id, field and offset
        back to modify_occurrences unchanged.
    """
    try:
        if not phrase:
            return "Error: phrase cannot be empty."
        report = _service_for(corpus_path).scan(phrase, doc_types or ["post", "page"], statuses or ["publish"])
        return json.dumps(report.model_dump(mode="json"), indent=2)
    except Exception as e:
        return f"Error scanning corpus: {str(e)}"


@mcp.tool()
def modify_occurrences(corpus_path: str, phrase: str, items: List[Dict[str, Any]], dry_run: bool = False) -> str:
    """
    Removes or replaces selected occurrences found by scan_phrase.

    Args:
        corpus_path: Absolute path to the JSON corpus file.
        phrase: The same phrase that was scanned for.
        items: One entry per occurrence: document_id, offset, field ('title' or 'content'),
               mode ('text_only', 'inline_markup' or 'block_wrapper') and an optional
               replacement. A non-empty replacement substitutes the phrase and ignores mode.
        dry_run: If True, returns the word-level changes without saving anything.

    Offsets that no longer point at the phrase (e.g. the document changed since the scan)
    are skipped. Each saved document keeps its previous text as a revision.
    """
    try:
        if not phrase or not items:
            return "Error: Missing phrase or items to process."

        service = _service_for(corpus_path)
        if dry_run:
            previews = service.preview(phrase, items)
            return json.dumps([p.model_dump(mode="json") for p in previews], indent=2)

        outcomes = service.remove(phrase, items)
        return json.dumps([o.model_dump(mode="json") for o in outcomes], indent=2)
    except Exception as e:
        return f"Error modifying occurrences: {str(e)}"


def main():
    mcp.run()


if __name__ == "__main__":
    main()
