"""
Tests for phrasematch.engine.mutator — offset-based removal and replacement.

Run: python3 test_mutator.py
From: python/
"""

import sys

sys.path.insert(0, '.')

from phrasematch.engine.locator import find_offsets
from phrasematch.engine.mutator import apply, apply_document, phrase_at
from phrasematch.models import DocumentField, MutationRequest, RemovalMode


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _req(offset, mode=RemovalMode.TEXT_ONLY, replacement="", field=DocumentField.CONTENT):
    return MutationRequest(offset=offset, mode=mode, replacement=replacement, field=field)


# ---------------------------------------------------------------------------
# Ordering and validation
# ---------------------------------------------------------------------------

def test_buy_now_both_removed():
    """Descending application keeps the earlier offset valid after the later removal."""
    result = apply("Buy now. Buy now!", "Buy now", [_req(0), _req(9)])
    assert result.text == ". !"
    assert result.removed == 2
    assert result.replaced == 0
    print("PASS: Buy now example")


def test_input_order_does_not_matter():
    text = "one Buy now two buy NOW three"
    offsets = find_offsets(text, "buy now")
    forward = apply(text, "buy now", [_req(o) for o in offsets])
    backward = apply(text, "buy now", [_req(o) for o in reversed(offsets)])
    assert forward.text == backward.text == "one  two  three"
    print("PASS: input order independent")


def test_single_removal_changes_nothing_else():
    text = "alpha beta gamma beta"
    result = apply(text, "beta", [_req(17)])
    assert result.text == text[:17] + text[21:]
    assert result.removed == 1
    print("PASS: single removal")


def test_empty_request_list_is_noop():
    text = "Buy now\n\n\n\nlater"
    result = apply(text, "Buy now", [])
    assert result.text == text
    assert result.removed == 0 and result.replaced == 0
    assert result.modified == 0
    print("PASS: empty request list")


def test_empty_phrase_is_noop():
    result = apply("Buy now", "", [_req(0)])
    assert result.text == "Buy now"
    assert result.modified == 0
    print("PASS: empty phrase")


def test_stale_offset_is_skipped_not_fatal():
    text = "hello world, hello"
    result = apply(text, "hello", [_req(1), _req(13)])
    assert result.text == "hello world, "
    assert result.removed == 1
    print("PASS: stale offset skipped")


def test_duplicate_offsets_apply_once():
    result = apply("Buy now Buy now", "Buy now", [_req(0), _req(0)])
    assert result.text == " Buy now"
    assert result.removed == 1
    print("PASS: duplicate offsets")


def test_phrase_at_bounds():
    assert phrase_at("abc", "BC", 1)
    assert not phrase_at("abc", "bc", 2)
    assert not phrase_at("abc", "ab", -1)
    assert not phrase_at("abc", "", 0)
    print("PASS: phrase_at bounds")


# ---------------------------------------------------------------------------
# Replacement
# ---------------------------------------------------------------------------

def test_replacement_ignores_mode():
    text = "<p>Buy now</p> and Buy now!"
    result = apply(text, "buy now", [
        _req(3, RemovalMode.INLINE_MARKUP, "Shop"),
        _req(19, RemovalMode.BLOCK_WRAPPER, "Order today"),
    ])
    assert result.text == "<p>Shop</p> and Order today!"
    assert result.replaced == 2
    assert result.removed == 0
    print("PASS: replacement ignores mode")


# ---------------------------------------------------------------------------
# Removal modes and fallbacks
# ---------------------------------------------------------------------------

def test_inline_markup_removes_whole_nested_element():
    text = "<p>Intro</p>\n<p><strong>Buy now</strong></p>\n<p>Outro</p>"
    result = apply(text, "Buy now", [_req(text.index("Buy now"), RemovalMode.INLINE_MARKUP)])
    assert result.text == "<p>Intro</p>\n\n<p>Outro</p>"
    assert result.removed == 1
    print("PASS: inline markup removal")


def test_block_wrapper_removes_block_and_collapses_blank_lines():
    keep = "<!-- wp:paragraph -->\n<p>Keep me</p>\n<!-- /wp:paragraph -->"
    target = "<!-- wp:paragraph -->\n<p>Buy now</p>\n<!-- /wp:paragraph -->"
    also = "<!-- wp:paragraph -->\n<p>Also keep</p>\n<!-- /wp:paragraph -->"
    text = "\n\n".join([keep, target, also])

    result = apply(text, "Buy now", [_req(text.index("Buy now"), RemovalMode.BLOCK_WRAPPER)])
    assert result.text == keep + "\n\n" + also
    assert result.removed == 1
    print("PASS: block removal")


def test_block_mode_on_plain_text_removes_phrase_only():
    result = apply("Please Buy now today", "Buy now", [_req(7, RemovalMode.BLOCK_WRAPPER)])
    assert result.text == "Please  today"
    assert result.removed == 1
    print("PASS: block fallback to text")


def test_block_mode_falls_back_to_element():
    result = apply("a <em>Buy now</em> b", "Buy now", [_req(6, RemovalMode.BLOCK_WRAPPER)])
    assert result.text == "a  b"
    print("PASS: block fallback to element")


def test_inline_mode_on_plain_text_removes_phrase_only():
    result = apply("<p>Buy now today</p>", "Buy now", [_req(3, RemovalMode.INLINE_MARKUP)])
    assert result.text == "<p> today</p>"
    print("PASS: inline fallback to text")


def test_mixed_modes_in_one_batch():
    text = "<!-- start:x --><p>Buy now</p><!-- end:x -->\n<p>Buy now</p>\nBuy now here"
    offsets = find_offsets(text, "Buy now")
    result = apply(text, "Buy now", [
        _req(offsets[2]),
        _req(offsets[0], RemovalMode.BLOCK_WRAPPER),
        _req(offsets[1], RemovalMode.INLINE_MARKUP),
    ])
    assert result.text == "\n\n here"
    assert result.removed == 3
    print("PASS: mixed modes")


# ---------------------------------------------------------------------------
# Document-level pass
# ---------------------------------------------------------------------------

def test_fields_are_independent_coordinate_spaces():
    result = apply_document(
        "Buy now: sale",
        "Buy now. Buy now!",
        "Buy now",
        [_req(0, field=DocumentField.TITLE), _req(9)],
    )
    assert result.title == ": sale"
    assert result.content == "Buy now. !"
    assert result.removed == 2
    print("PASS: independent fields")


def test_title_removal_is_text_only_and_trimmed():
    result = apply_document(
        "<em>Buy now</em> deals",
        "",
        "Buy now",
        [_req(4, RemovalMode.INLINE_MARKUP, field=DocumentField.TITLE)],
    )
    assert result.title == "<em></em> deals"

    result = apply_document("Buy now sale ", "", "buy now", [_req(0, field=DocumentField.TITLE)])
    assert result.title == "sale"
    print("PASS: title text-only and trimmed")


def test_nothing_modified_returns_original_text():
    content = "a\n\n\n\nb Buy now"
    result = apply_document(" Title ", content, "Buy now", [_req(0), _req(0, field=DocumentField.TITLE)])
    assert result.modified == 0
    assert result.title == " Title "
    assert result.content == content
    print("PASS: nothing modified")


def test_apply_ignores_other_field():
    result = apply("Buy now", "Buy now", [_req(0, field=DocumentField.TITLE)])
    assert result.text == "Buy now"
    assert result.modified == 0
    print("PASS: other field ignored")


if __name__ == "__main__":
    tests = [
        test_buy_now_both_removed,
        test_input_order_does_not_matter,
        test_single_removal_changes_nothing_else,
        test_empty_request_list_is_noop,
        test_empty_phrase_is_noop,
        test_stale_offset_is_skipped_not_fatal,
        test_duplicate_offsets_apply_once,
        test_phrase_at_bounds,
        test_replacement_ignores_mode,
        test_inline_markup_removes_whole_nested_element,
        test_block_wrapper_removes_block_and_collapses_blank_lines,
        test_block_mode_on_plain_text_removes_phrase_only,
        test_block_mode_falls_back_to_element,
        test_inline_mode_on_plain_text_removes_phrase_only,
        test_mixed_modes_in_one_batch,
        test_fields_are_independent_coordinate_spaces,
        test_title_removal_is_text_only_and_trimmed,
        test_nothing_modified_returns_original_text,
        test_apply_ignores_other_field,
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
