from __future__ import annotations
import re
from typing import List

# bump whenever tokenization changes; part of the build-cache identity
NORMALIZER_VERSION = 1

_URL_RE = re.compile(r"(?:https?://|ftp://|www\.)\S+", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]{0,200}>")
_SENTENCE_END_RE = re.compile(r"[.!?;]+(?=\s|$)|[\r\n]+")


def _is_word_char(ch: str) -> bool:
    """Letters and digits are kept. Symbols/punctuation are removed."""
    return ch.isalnum()


def normalize_only(text: str) -> str:
    """
    Normalize one sentence for indexing and querying:
      * case-insensitive: everything goes through .casefold()
      * URLs and markup tags are replaced by a space
      * punctuation/symbols are dropped without splitting the word ("don't" -> "dont")
      * whitespace runs collapse to one space, ends trimmed
    """
    text = _URL_RE.sub(" ", text)
    text = _TAG_RE.sub(" ", text)

    out_chars: list[str] = []
    last_was_space = False
    for ch in text:
        if ch.isspace():
            last_was_space = True
            continue
        if _is_word_char(ch):
            # flush one collapsed space before a word char (not at start)
            if last_was_space and out_chars:
                out_chars.append(" ")
            last_was_space = False
            out_chars.append(ch.casefold())
        # punctuation/symbol: dropped, does not break space runs

    return "".join(out_chars)


def tokenize(text: str) -> List[str]:
    """Normalize and split into word tokens (never empty strings)."""
    norm = normalize_only(text)
    return norm.split(" ") if norm else []


def split_sentences(text: str) -> List[str]:
    """Split raw text on sentence-final punctuation and line breaks."""
    return [s for s in _SENTENCE_END_RE.split(text) if s.strip()]
