"""
Next-word prediction from n-gram frequency statistics.

The package turns a stream of tokenized sentences into pruned, ranked
(lookup phrase -> next words) tables for n-gram orders 2-4, persists them
as one versioned store, and merges the orders at query time into a single
ranked list of suggestions (weighted backoff).

Layout:
- extract:  sentence -> (lookup phrase, prediction word) pairs
- builder:  pairs -> counted, sorted, top-K pruned FrequencyTable per order
- DB:       IndexStore, NGX serialization, build cache
- predict:  BackoffPredictor
- engine:   build / load / predict orchestration
- loader, normalize, filters: the corpus reader and word-list collaborators

Example Usage:
    from nextword import Engine

    eng = Engine()
    eng.build(roots=["/path/to/texts"], out="store.ngx")
    for p in eng.predict(["it", "goes"], top_k=3):
        print(f"{p.score:.3f} {p.word}")
"""

# src/nextword/__init__.py
from .engine import Engine
from .errors import CorruptIndex, EmptyCorpusSample, InvalidToken, NextWordError
from .models import FrequencyTable, Prediction
from .predict import BackoffPredictor
from .DB.index import IndexStore
from .DB.storage import load_store, save_store

__version__ = "1.0.0"
__all__ = [
    "Engine", "BackoffPredictor", "IndexStore", "FrequencyTable", "Prediction",
    "load_store", "save_store",
    "NextWordError", "InvalidToken", "EmptyCorpusSample", "CorruptIndex",
]
