from __future__ import annotations
import hashlib
from pathlib import Path
from typing import Callable, Iterable, Optional, Protocol

from .config import ENCODING


class WordFilter(Protocol):
    def __call__(self, word: str) -> bool: ...


def never(word: str) -> bool:
    return False


def always(word: str) -> bool:
    return True


class WordList:
    """
    A lowercased word set used as a collaborator filter.

    As ``is_profane`` it answers "is this word on the list"; as
    ``is_known_word`` the same membership test means "is this word in the
    vocabulary". The list itself is maintained outside this project: one
    word per line, blank lines and ``#`` comments ignored.
    """
    def __init__(self, words: Iterable[str] = ()) -> None:
        self._words = frozenset(w.strip().casefold() for w in words if w.strip())

    @classmethod
    def from_file(cls, path: str | Path) -> "WordList":
        words = []
        with open(path, "r", encoding=ENCODING, errors="ignore") as f:
            for raw in f:
                line = raw.split("#", 1)[0].strip()
                if line:
                    words.append(line)
        return cls(words)

    def __call__(self, word: str) -> bool:
        return word.casefold() in self._words

    def __contains__(self, word: object) -> bool:
        return isinstance(word, str) and self(word)

    def __len__(self) -> int:
        return len(self._words)

    def fingerprint(self) -> str:
        """Stable digest of the list contents (feeds the build-cache identity)."""
        h = hashlib.sha256()
        for w in sorted(self._words):
            h.update(w.encode("utf-8") + b"\n")
        return h.hexdigest()


def load_filter(path: Optional[str], default: Callable[[str], bool]) -> Callable[[str], bool]:
    """WordList from ``path`` when given, otherwise ``default``."""
    if not path:
        return default
    return WordList.from_file(path)
