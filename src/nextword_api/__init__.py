"""Process-wide API: load the store once at startup, then serve predictions."""
from __future__ import annotations
import os, time
from typing import List, Optional, Sequence

from nextword.config import TOP_K
from nextword.engine import Engine
from nextword.models import Prediction

_engine: Engine | None = None


def initialize(store: Optional[str] = None,
               roots: Sequence[str] = (),
               *,
               cache_dir: Optional[str] = None,
               rebuild: bool = False,
               profanity: Optional[str] = None,
               vocab: Optional[str] = None,
               verbose: bool = False) -> Engine:
    """
    Init modes:
      1) Load (serving): ``store`` exists and not rebuilding -> validated load.
      2) Build: scan ``roots``; when ``store`` is given the result is saved there.
    The engine is only published after it is fully ready, so a corrupt
    store fails here at startup and never mid-query.
    """
    global _engine
    t0 = time.perf_counter()
    eng = Engine()

    if store and not rebuild and os.path.exists(store):
        eng.load(store, profanity=profanity, verbose=verbose)
    else:
        if not roots:
            raise ValueError("initialize(): roots are required when there is no store to load")
        eng.build(roots, out=store, cache_dir=cache_dir, rebuild=rebuild,
                  vocab=vocab, profanity=profanity, verbose=verbose)

    if _engine is not None:
        _engine.shutdown()
    _engine = eng
    if verbose:
        print(f"[ready] init complete in {time.perf_counter() - t0:.2f}s")
    return eng


def predict(text: str, k: int = TOP_K) -> List[Prediction]:
    """Return top-k next-word predictions for raw typed text."""
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call initialize(...) first.")
    return _engine.predict_text(text, top_k=k)


def shutdown() -> None:
    global _engine
    if _engine is not None:
        _engine.shutdown()
        _engine = None
