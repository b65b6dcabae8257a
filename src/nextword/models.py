# src/nextword/models.py
"""
Data models for the next-word predictor.

- FrequencyTable: one pruned, immutable (phrase -> ranked next words) table.
- Prediction: one ranked suggestion returned to callers.
- BuildReport: what a build did, per order.

Like the rest of the package these classes carry no scoring logic; they
only give the build, store and predictor a shared vocabulary.
"""

from __future__ import annotations
import bisect
from dataclasses import dataclass, field
from typing import Dict, Iterator, Tuple

Entry = Tuple[str, int]            # (prediction word, count)
Entries = Tuple[Entry, ...]


def _check_entries(order: int, k: int, key: str, entries: Entries) -> None:
    """Non-empty, at most k, positive counts, unique words, ranked by (-count, word)."""
    if not 1 <= len(entries) <= k:
        raise ValueError(f"order {order}: {len(entries)} entries for {key!r} (K={k})")
    seen = set()
    prev = None
    for word, count in entries:
        if count <= 0:
            raise ValueError(f"order {order}: non-positive count for {key!r}/{word!r}")
        if word in seen:
            raise ValueError(f"order {order}: duplicate word {word!r} for {key!r}")
        seen.add(word)
        if prev is not None and prev >= (-count, word):
            raise ValueError(f"order {order}: entries of {key!r} not ranked")
        prev = (-count, word)


@dataclass(frozen=True, slots=True)
class FrequencyTable:
    """
    Ranked next-word counts for a single n-gram order.

    Attributes
    ----------
    order : int
        The n-gram order; lookup phrases have ``order - 1`` tokens.
    k : int
        The pruning bound applied at build time. Every entry sequence has
        at most ``k`` items.
    keys : tuple[str, ...]
        Lookup phrases in ascending order (binary-searched on lookup).
    entries : tuple[Entries, ...]
        ``entries[i]`` belongs to ``keys[i]`` and lists (word, count) pairs
        by descending count, ties broken by ascending word.

    Construction checks all of the above and raises ValueError, so a table
    that exists can always be looked up and saved/loaded unchanged.
    """
    order: int
    k: int
    keys: Tuple[str, ...]
    entries: Tuple[Entries, ...]

    def __post_init__(self) -> None:
        if len(self.keys) != len(self.entries):
            raise ValueError("keys and entries must have the same length")
        if not isinstance(self.k, int) or self.k < 1:
            raise ValueError(f"order {self.order}: K must be a positive int, got {self.k!r}")
        prev_key = None
        for key, entries in zip(self.keys, self.entries):
            if prev_key is not None and key <= prev_key:
                raise ValueError(f"order {self.order}: keys out of order at {key!r}")
            prev_key = key
            _check_entries(self.order, self.k, key, entries)

    def get(self, phrase: str) -> Entries:
        i = bisect.bisect_left(self.keys, phrase)
        if i == len(self.keys) or self.keys[i] != phrase:
            return ()
        return self.entries[i]

    def __len__(self) -> int:
        return len(self.keys)

    def __contains__(self, phrase: object) -> bool:
        return isinstance(phrase, str) and bool(self.get(phrase))

    def iter_items(self) -> Iterator[Tuple[str, Entries]]:
        """Yield (phrase, entries) in sorted-key order."""
        return zip(self.keys, self.entries)

    def entry_count(self) -> int:
        return sum(len(e) for e in self.entries)


@dataclass(frozen=True, slots=True)
class Prediction:
    """A candidate next word and its merged backoff score."""
    word: str
    score: float


@dataclass(slots=True)
class OrderReport:
    sentences: int = 0
    skipped: int = 0          # sentences rejected with InvalidToken
    pairs: int = 0            # pairs counted (after the vocabulary filter)
    phrases: int = 0          # distinct lookup phrases kept


@dataclass(slots=True)
class BuildReport:
    """Summary of one build, filled in by the builder and the engine."""
    orders: Dict[int, OrderReport] = field(default_factory=dict)
    cache_key: str | None = None
    from_cache: bool = False
