"""
N-gram extraction.

Turns one tokenized sentence into (lookup phrase, prediction word) pairs,
one per sliding window of ``order`` tokens. Windows never span two
sentences: the caller hands sentences over one at a time.

Example:
    >>> list(extract_ngrams(["it", "goes", "well"], 3))
    [('it goes', 'well')]
    >>> list(extract_ngrams(["it", "goes"], 3))
    []
"""

from __future__ import annotations
import logging
from typing import Callable, Iterable, Iterator, Optional, Sequence, Tuple

from .config import SEPARATOR
from .errors import InvalidToken
from .models import OrderReport

log = logging.getLogger(__name__)

Pair = Tuple[str, str]


def phrase_key(tokens: Sequence[str]) -> str:
    """Join lookup-phrase tokens into the index key."""
    return SEPARATOR.join(tokens)


def _check_order(order: int) -> None:
    if not isinstance(order, int) or order < 2:
        raise ValueError(f"n-gram order must be an int >= 2, got {order!r}")


def _validate(tokens: Sequence[str]) -> None:
    for pos, tok in enumerate(tokens):
        if not tok or any(ch.isspace() for ch in tok):
            raise InvalidToken(tok, pos)


def extract_ngrams(tokens: Sequence[str], order: int) -> Iterator[Pair]:
    """
    Return a lazy iterator over the sentence's (phrase, word) pairs.

    The whole sentence is validated before the iterator is handed back, so
    a malformed token raises InvalidToken here and no pair of that sentence
    is ever produced.
    """
    _check_order(order)
    _validate(tokens)
    toks = list(tokens)
    if len(toks) < order:
        return iter(())
    ctx = order - 1
    return (
        (phrase_key(toks[i:i + ctx]), toks[i + ctx])
        for i in range(len(toks) - order + 1)
    )


def iter_pairs(
    sentences: Iterable[Sequence[str]],
    order: int,
    is_known_word: Optional[Callable[[str], bool]] = None,
    report: Optional[OrderReport] = None,
) -> Iterator[Pair]:
    """
    Stream pairs across many sentences.

    Sentences with a malformed token are skipped (logged and counted).
    With a vocabulary filter, a pair is dropped when its prediction word or
    any token of its phrase is unknown.
    """
    _check_order(order)
    rep = report if report is not None else OrderReport()
    for sent in sentences:
        rep.sentences += 1
        try:
            pairs = extract_ngrams(sent, order)
        except InvalidToken as e:
            rep.skipped += 1
            log.warning("order %d: skipping sentence #%d (%s)", order, rep.sentences, e)
            continue
        for phrase, word in pairs:
            if is_known_word is not None:
                if not is_known_word(word):
                    continue
                if not all(is_known_word(t) for t in phrase.split(SEPARATOR)):
                    continue
            rep.pairs += 1
            yield phrase, word
