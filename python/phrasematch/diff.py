import re
from typing import Dict, List, Optional, Tuple

import structlog
from diff_match_patch import diff_match_patch

from phrasematch.models import Change

logger = structlog.get_logger(__name__)


def summarize_changes(before: str, after: str) -> List[Change]:
    """
    Compares two versions of a field and returns word-level changes.
    Offsets refer to positions in `before`.
    """
    if before == after:
        return []

    dmp = diff_match_patch()

    # 1. Word-level tokenization and encoding
    chars1, chars2, token_array = _words_to_chars(before, after)

    # 2. Diff the encoded strings and clean up
    diffs = dmp.diff_main(chars1, chars2, False)
    dmp.diff_cleanupSemantic(diffs)

    # 3. Decode back to text
    dmp.diff_charsToLines(diffs, token_array)

    changes: List[Change] = []
    current = 0
    pending: Optional[Change] = None

    for op, text in diffs:
        if op == 0:
            if pending is not None:
                changes.append(pending)
                pending = None
            current += len(text)
        elif op == -1:
            if pending is None:
                pending = Change(offset=current)
            pending.removed += text
            current += len(text)
        else:
            if pending is None:
                pending = Change(offset=current)
            pending.inserted += text

    if pending is not None:
        changes.append(pending)

    logger.debug(f"Computed {len(changes)} change(s)")
    return changes


def _words_to_chars(text1: str, text2: str) -> Tuple[str, str, List[str]]:
    """
    Splits text into words/tokens and encodes them as unique Unicode characters.
    """
    token_array: List[str] = []
    token_hash: Dict[str, int] = {}
    split_pattern = r"(\s+|\w+|[^\w\s])"

    def encode_text(text: str) -> str:
        tokens = [t for t in re.split(split_pattern, text) if t]
        encoded_chars = []
        for token in tokens:
            if token in token_hash:
                encoded_chars.append(chr(token_hash[token]))
            else:
                code = len(token_array)
                token_hash[token] = code
                token_array.append(token)
                encoded_chars.append(chr(code))
        return "".join(encoded_chars)

    chars1 = encode_text(text1)
    chars2 = encode_text(text2)
    return chars1, chars2, token_array
