# nextword/engine.py
from __future__ import annotations

import os
import logging
from typing import Callable, Iterable, List, Mapping, Optional, Sequence

from . import config as CFG
from .builder import build_tables
from .filters import WordList, always, load_filter, never
from .loader import CorpusSample, fingerprint_sentences
from .models import BuildReport, Prediction
from .normalize import tokenize
from .predict import BackoffPredictor
from .DB.cache import BuildCache
from .DB.index import IndexStore
from .DB.storage import load_store, save_store

log = logging.getLogger(__name__)

Filter = Callable[[str], bool]


class Engine:
    """
    Thin orchestration layer that glues together:
      - the sentence source (CorpusSample over text roots, or a token list),
      - the per-order table build (builder.build_tables),
      - the index store and its persistence / build cache,
      - the backoff predictor used at serve time.

    Public API (used by the CLI and the JSON API):
      * build(roots, ...): sample -> extract -> count/prune -> store (-> save / cache)
      * load(path, ...):   validated load of a saved store
      * predict(tokens, top_k) / predict_text(text, top_k): ranked suggestions
      * shutdown():        release the store and the cache handle
    """

    # ------------- lifecycle -------------

    def __init__(self) -> None:
        self.store: Optional[IndexStore] = None
        self.predictor: Optional[BackoffPredictor] = None
        self.report: Optional[BuildReport] = None
        self._cache: Optional[BuildCache] = None

    # /* ~~~ Build a store from text roots (or ready-made sentences) ~~~ */
    def build(
        self,
        roots: Iterable[str] = (),
        *,
        sentences: Optional[Sequence[Sequence[str]]] = None,
        out: Optional[str] = None,              # write the store here as NGX
        cache_dir: Optional[str] = None,        # versioned build cache
        rebuild: bool = False,                  # invalidate the cache entry first
        orders: Optional[Sequence[int]] = None,
        prune_k: Optional[int] = None,
        fraction: Optional[float] = None,
        seed: Optional[int] = None,
        vocab: Optional[str] = None,            # word-list path for is_known_word
        is_known_word: Optional[Filter] = None,
        profanity: Optional[str] = None,        # word-list path for is_profane
        is_profane: Optional[Filter] = None,
        weights: Optional[Mapping[int, float]] = None,
        renormalize: Optional[bool] = None,
        mode: Optional[str] = None,
        workers: Optional[int] = None,
        shards: Optional[int] = None,
        verbose: bool = False,
    ) -> BuildReport:
        if verbose:
            self._verbose()

        orders = tuple(sorted(set(orders or CFG.ORDERS)))
        k = CFG.PRUNE_K if prune_k is None else int(prune_k)
        known = is_known_word or load_filter(vocab, always)

        roots = list(roots)
        if sentences is not None:
            source = sentences
        elif roots:
            source = CorpusSample(roots, fraction=fraction, seed=seed)
            log.info("Sentence source %r", source)
        else:
            raise ValueError("build(): roots or sentences are required")

        report = BuildReport()
        cache_dir = cache_dir or CFG.CACHE_DIR
        key: Optional[str] = None
        store: Optional[IndexStore] = None

        if cache_dir:
            # full pass over in-memory sentences, so only when caching
            identity = (fingerprint_sentences(source) if sentences is not None
                        else source.identity())
            if isinstance(known, WordList):
                identity = f"{identity}|vocab={known.fingerprint()}"
            elif known is not always:
                log.warning("vocabulary filter has no fingerprint; build cache disabled")
                cache_dir = None
        if cache_dir:
            if self._cache is not None:
                self._cache.close()
            self._cache = BuildCache(cache_dir)
            key = BuildCache.key(identity, orders, k)
            report.cache_key = key
            if rebuild:
                if self._cache.invalidate(key):
                    log.info("Invalidated cache entry %s", key[:12])
            else:
                store = self._cache.get(key)
                report.from_cache = store is not None

        if store is None:
            log.info("Building tables orders=%s k=%d", orders, k)
            tables = build_tables(
                source, orders, k,
                is_known_word=None if known is always else known,
                mode=mode, workers=workers, shards=shards, report=report,
            )
            store = IndexStore.build(tables)
            if self._cache is not None and key is not None:
                self._cache.put(key, store, identity=identity, k=k)

        if out:
            log.info("Saving store to %s", out)
            save_store(store, out)

        self._attach(store, is_profane or load_filter(profanity, never), weights, renormalize)
        self.report = report
        log.info("Engine build() complete: %r (from_cache=%s)", store, report.from_cache)
        return report

    # /* ~~~ Load a previously saved store ~~~ */
    def load(
        self,
        path: str,
        *,
        profanity: Optional[str] = None,
        is_profane: Optional[Filter] = None,
        weights: Optional[Mapping[int, float]] = None,
        renormalize: Optional[bool] = None,
        verbose: bool = False,
    ) -> None:
        if verbose:
            self._verbose()
        log.info("Loading store from %s", path)
        store = load_store(path)  # CorruptIndex propagates; nothing attached
        self._attach(store, is_profane or load_filter(profanity, never), weights, renormalize)
        log.info("Engine load() complete: %r", store)

    # ------------- query -------------

    def predict(self, phrase: Sequence[str], *, top_k: int = CFG.TOP_K) -> List[Prediction]:
        if self.predictor is None:
            raise RuntimeError("Engine not initialized. Call build() or load() first.")
        return self.predictor.predict(phrase, top_k)

    def predict_text(self, text: str, *, top_k: int = CFG.TOP_K) -> List[Prediction]:
        """Tokenize raw typed text the same way the corpus was, then predict."""
        return self.predict(tokenize(text), top_k=top_k)

    def stats(self) -> dict:
        if self.store is None:
            raise RuntimeError("Engine not initialized. Call build() or load() first.")
        return self.store.stats()

    # ------------- teardown -------------

    def shutdown(self) -> None:
        try:
            if self._cache is not None:
                self._cache.close()
        finally:
            self._cache = None
            self.store = None
            self.predictor = None
            log.info("Engine shutdown complete")

    # ------------- internals -------------

    def _attach(self, store: IndexStore, is_profane: Filter,
                weights: Optional[Mapping[int, float]], renormalize: Optional[bool]) -> None:
        # predictor is validated before anything is published on the engine
        predictor = BackoffPredictor(store, weights=weights, is_profane=is_profane,
                                     renormalize=renormalize)
        self.store = store
        self.predictor = predictor

    @staticmethod
    def _verbose() -> None:
        logging.basicConfig(level=logging.INFO)
        os.environ["NEXTWORD_VERBOSE"] = "1"
        CFG.VERBOSE = True
