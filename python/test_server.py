"""
Tests for the MCP tools — each call works on the corpus file as it is on disk.

Run: python3 test_server.py
From: python/
"""

import json
import sys
import tempfile
from pathlib import Path

sys.path.insert(0, '.')

from phrasematch.repository import JsonCorpusRepository
from phrasematch.server import modify_occurrences, scan_phrase
from phrasematch.service import PhraseMatchService


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _write_corpus(path, documents):
    path.write_text(json.dumps(documents), encoding="utf-8")


def _hit_ids(report_json):
    return [hit["document_id"] for hit in json.loads(report_json)["hits"]]


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------

def test_modify_keeps_edits_made_outside_the_server():
    """A CLI write between two tool calls survives the next tool write."""
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "corpus.json"
        _write_corpus(path, [
            {"id": 1, "title": "One", "content": "Buy now here"},
            {"id": 2, "title": "Two", "content": "Buy now there"},
        ])

        assert _hit_ids(scan_phrase(str(path), "Buy now")) == [1, 2]

        cli_service = PhraseMatchService(JsonCorpusRepository(path))
        assert cli_service.remove("Buy now", [{"document_id": 1, "offset": 0}])[0].success

        result = json.loads(modify_occurrences(str(path), "Buy now", [{"document_id": 2, "offset": 0}]))
        assert result[0]["success"] is True

        on_disk = JsonCorpusRepository(path)
        assert on_disk.get(1).content == " here"
        assert on_disk.get(2).content == " there"
    print("PASS: outside edits kept")


def test_scan_sees_documents_added_after_cached_scan():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "corpus.json"
        _write_corpus(path, [{"id": 1, "title": "One", "content": "Buy now"}])
        assert _hit_ids(scan_phrase(str(path), "Buy now")) == [1]

        _write_corpus(path, [
            {"id": 1, "title": "One", "content": "Buy now"},
            {"id": 3, "title": "Three", "content": "Please buy now"},
        ])
        assert _hit_ids(scan_phrase(str(path), "Buy now")) == [1, 3]
    print("PASS: cache cleared after outside write")


def test_tool_errors_are_strings():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "corpus.json"
        path.write_text("42", encoding="utf-8")
        assert scan_phrase(str(path), "Buy now").startswith("Error scanning corpus:")
        assert scan_phrase(str(path), "") == "Error: phrase cannot be empty."
        assert modify_occurrences(str(path), "Buy now", []) == "Error: Missing phrase or items to process."
    print("PASS: tool errors")


if __name__ == "__main__":
    tests = [
        test_modify_keeps_edits_made_outside_the_server,
        test_scan_sees_documents_added_after_cached_scan,
        test_tool_errors_are_strings,
    ]

    passed = 0
    failed = 0
    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"FAIL: {test.__name__}: {e}")
            import traceback
            traceback.print_exc()
            failed += 1

    print(f"\n{'='*60}")
    print(f"Results: {passed} passed, {failed} failed out of {len(tests)} tests")
    if failed == 0:
        print("ALL TESTS PASSED")
    else:
        print("SOME TESTS FAILED")
