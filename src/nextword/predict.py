from __future__ import annotations
from collections import defaultdict
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from . import config as CFG
from .DB.index import IndexStore
from .extract import phrase_key
from .filters import never
from .models import Prediction


def _check_weights(weights: Mapping[int, float]) -> Dict[int, float]:
    if not weights:
        raise ValueError("backoff weights must not be empty")
    out = {int(o): float(w) for o, w in sorted(weights.items())}
    prev = 0.0
    for o, w in out.items():
        if w <= 0:
            raise ValueError(f"backoff weight for order {o} must be positive, got {w}")
        if w < prev:
            raise ValueError("backoff weights must not decrease as the order grows")
        prev = w
    return out


def lookup_keys(tokens: Sequence[str], orders: Sequence[int]) -> Dict[int, str]:
    """
    Trailing-context key per order: the last ``order - 1`` tokens.
    Orders the phrase is too short for are left out.

        >>> lookup_keys(["it", "goes"], (2, 3, 4))
        {2: 'goes', 3: 'it goes'}
    """
    keys: Dict[int, str] = {}
    for o in orders:
        ctx = o - 1
        if ctx >= 1 and len(tokens) >= ctx:
            keys[o] = phrase_key(tokens[-ctx:])
    return keys


class BackoffPredictor:
    """
    Merge the per-order tables of an IndexStore into one ranked list.

    score(w) = sum over orders with evidence of  weight[o] * count(w) / total(o)

    where total(o) is the sum of counts in the (pruned) entry list returned
    for that order's key. Orders without evidence add nothing and the
    remaining weights are not rescaled unless ``renormalize`` is set.
    The predictor holds no per-query state and never writes to the store.
    """
    def __init__(
        self,
        store: IndexStore,
        *,
        weights: Optional[Mapping[int, float]] = None,
        is_profane: Optional[Callable[[str], bool]] = None,
        renormalize: Optional[bool] = None,
    ) -> None:
        self.store = store
        self.weights = _check_weights(CFG.BACKOFF_WEIGHTS if weights is None else weights)
        self.is_profane = is_profane or never
        self.renormalize = CFG.RENORMALIZE if renormalize is None else bool(renormalize)
        self._orders = tuple(o for o in self.weights if o in store.orders)

    def scores(self, phrase: Sequence[str]) -> Dict[str, float]:
        """Merged, unfiltered scores for every candidate with evidence."""
        tokens = [t.casefold() for t in phrase]
        merged: Dict[str, float] = defaultdict(float)
        used = 0.0
        for order, key in lookup_keys(tokens, self._orders).items():
            entries = self.store.lookup(order, key)
            if not entries:
                continue
            total = sum(c for _, c in entries)
            lam = self.weights[order]
            used += lam
            for word, count in entries:
                merged[word] += lam * (count / total)
        if self.renormalize and used > 0:
            for w in merged:
                merged[w] /= used
        return dict(merged)

    def predict(self, phrase: Sequence[str], top_k: int = CFG.TOP_K) -> List[Prediction]:
        if isinstance(top_k, bool) or not isinstance(top_k, int) or top_k < 1:
            raise ValueError(f"top_k must be a positive int, got {top_k!r}")
        if isinstance(phrase, str):
            raise TypeError("phrase must be a sequence of tokens, not a str")

        # profanity goes before ranking so it never takes a slot
        cands = [(w, s) for w, s in self.scores(phrase).items() if not self.is_profane(w)]
        cands.sort(key=lambda ws: (-ws[1], ws[0]))
        return [Prediction(word=w, score=s) for w, s in cands[:top_k]]
