"""
Sentence source for builds.

Scans one or more roots for text files, splits each line into sentences,
normalizes them into token lists and applies a seeded line-level sample.
A CorpusSample is re-iterable: every pass re-reads the files, so a build
holds its running counts in memory but never the full token stream.

Text Normalization Process (see normalize.py):
    1. Strip URLs and markup tags
    2. Convert to lowercase (casefold)
    3. Drop punctuation and symbols
    4. Collapse whitespace and split into tokens
"""

from __future__ import annotations
import hashlib
import logging
import os
import random
from fnmatch import fnmatch
from typing import Iterable, Iterator, List, Sequence

from . import config as CFG
from .normalize import NORMALIZER_VERSION, split_sentences, tokenize

log = logging.getLogger(__name__)

PROGRESS_EVERY_FILES = 500
PROGRESS_EVERY_SENTENCES = 100_000


def _iter_txt_files(roots: Iterable[str], pattern: str) -> List[str]:
    """Return every file under the roots matching ``pattern``, sorted for reproducibility."""
    files: List[str] = []
    for root in roots:
        root = os.path.abspath(root)
        if not os.path.isdir(root):
            raise FileNotFoundError(root)
        for dirpath, _, filenames in os.walk(root):
            for fn in filenames:
                if fnmatch(fn.lower(), pattern):
                    files.append(os.path.join(dirpath, fn))
    files.sort()
    return files


def _rel_to_any_root(path: str, roots_abs: List[str]) -> str:
    """Return the shortest relative path to any of the given absolute roots."""
    best = path
    for r in roots_abs:
        try:
            rel = os.path.relpath(path, r)
            if len(rel) < len(best):
                best = rel
        except ValueError:
            pass
    return best.replace("\\", "/")


class CorpusSample:
    """
    Re-iterable stream of tokenized sentences drawn from text files.

    ``fraction`` keeps roughly that share of lines, chosen by a
    ``random.Random(seed)`` that is re-seeded at the start of every pass,
    so each pass (and each order built from it) sees the same sample.
    """
    def __init__(
        self,
        roots: Sequence[str],
        *,
        fraction: float | None = None,
        seed: int | None = None,
        pattern: str | None = None,
        encoding: str | None = None,
    ) -> None:
        roots = list(roots)
        if not roots:
            raise ValueError("CorpusSample: at least one root folder is required")
        self.roots = [os.path.abspath(r) for r in roots]
        self.fraction = CFG.SAMPLE_FRACTION if fraction is None else float(fraction)
        if not 0.0 < self.fraction <= 1.0:
            raise ValueError(f"sample fraction must be in (0, 1], got {self.fraction}")
        self.seed = CFG.SAMPLE_SEED if seed is None else int(seed)
        self.pattern = (pattern or CFG.GLOB_PATTERN).lower()
        self.encoding = encoding or CFG.ENCODING
        self.files = _iter_txt_files(self.roots, self.pattern)

    def __iter__(self) -> Iterator[List[str]]:
        rng = random.Random(self.seed)
        keep_all = self.fraction >= 1.0
        n_sent = 0
        for file_no, path in enumerate(self.files, start=1):
            with open(path, "r", encoding=self.encoding, errors="ignore") as f:
                for raw in f:
                    # draw for every line so the sample does not depend on content
                    if not keep_all and rng.random() >= self.fraction:
                        continue
                    for chunk in split_sentences(raw):
                        toks = tokenize(chunk)
                        if toks:
                            n_sent += 1
                            if CFG.VERBOSE and n_sent % PROGRESS_EVERY_SENTENCES == 0:
                                log.info("[read] sentences=%s", f"{n_sent:,}")
                            yield toks
            if CFG.VERBOSE and file_no % PROGRESS_EVERY_FILES == 0:
                log.info("[scanned] files=%s", f"{file_no:,}")

    def identity(self) -> str:
        """Fingerprint of the sample's inputs, used as the build-cache identity."""
        h = hashlib.sha256()
        h.update(f"normalizer={NORMALIZER_VERSION};fraction={self.fraction!r};"
                 f"seed={self.seed};pattern={self.pattern}".encode("utf-8"))
        for path in self.files:
            st = os.stat(path)
            rel = _rel_to_any_root(path, self.roots)
            h.update(f"\0{rel}\0{st.st_size}\0{st.st_mtime_ns}".encode("utf-8"))
        return h.hexdigest()

    def __repr__(self) -> str:
        return (f"CorpusSample(files={len(self.files)}, fraction={self.fraction}, "
                f"seed={self.seed})")


def fingerprint_sentences(sentences: Iterable[Sequence[str]]) -> str:
    """Identity for an in-memory sentence list (same role as CorpusSample.identity)."""
    h = hashlib.sha256(f"normalizer={NORMALIZER_VERSION}".encode("utf-8"))
    for sent in sentences:
        h.update(b"\x1e")
        h.update("\x1f".join(sent).encode("utf-8"))
    return h.hexdigest()
