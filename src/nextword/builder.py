"""
Frequency table builder.

Aggregates (lookup phrase, prediction word) pairs into counts, then sorts
and prunes every phrase's candidates down to the top K. One table per
n-gram order; orders are independent and can be built concurrently.

Pipeline for one order:
    sentences -> extract.iter_pairs -> count_pairs -> [merge_counts] -> finalize

Determinism: candidates are ranked by (-count, word) and phrases are stored
in ascending order, so the same input and K always give the same table,
however the counting was split into shards.
"""

from __future__ import annotations
import heapq
import logging
from collections import Counter, defaultdict
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from . import config as CFG
from .errors import EmptyCorpusSample
from .extract import Pair, iter_pairs
from .models import BuildReport, FrequencyTable, OrderReport

log = logging.getLogger(__name__)

Sentences = Iterable[Sequence[str]]
KnownWord = Optional[Callable[[str], bool]]


def _rank_key(item: Tuple[str, int]) -> Tuple[int, str]:
    return -item[1], item[0]


def _check_k(k: int) -> int:
    if not isinstance(k, int) or k < 1:
        raise ValueError(f"pruning K must be a positive int, got {k!r}")
    return k


def count_pairs(pairs: Iterable[Pair]) -> Counter:
    """Running count per unique (phrase, word); pairs are discarded once counted."""
    counts: Counter = Counter()
    for pair in pairs:
        counts[pair] += 1
    return counts


def merge_counts(partials: Iterable[Counter]) -> Counter:
    """Sum shard count maps. Addition commutes, so partial order is irrelevant."""
    total: Counter = Counter()
    for part in partials:
        total.update(part)
    return total


def finalize(counts: Counter, order: int, k: int | None = None) -> FrequencyTable:
    """Sort every phrase's candidates by (-count, word), keep the top k, freeze."""
    k = _check_k(CFG.PRUNE_K if k is None else k)
    if not counts:
        raise EmptyCorpusSample(order)

    by_phrase: Dict[str, List[Tuple[str, int]]] = defaultdict(list)
    for (phrase, word), c in counts.items():
        by_phrase[phrase].append((word, c))

    keys = sorted(by_phrase)
    entries = tuple(
        tuple(heapq.nsmallest(k, by_phrase[p], key=_rank_key))
        for p in keys
    )
    return FrequencyTable(order=order, k=k, keys=tuple(keys), entries=entries)


def _count_shard(
    sentences: Sentences,
    order: int,
    shard: int,
    shards: int,
    is_known_word: KnownWord,
) -> Tuple[Counter, OrderReport]:
    rep = OrderReport()
    if shards > 1:
        sentences = (s for i, s in enumerate(sentences) if i % shards == shard)
    counts = count_pairs(iter_pairs(sentences, order, is_known_word, rep))
    return counts, rep


def _merge_reports(reports: Iterable[OrderReport]) -> OrderReport:
    out = OrderReport()
    for r in reports:
        out.sentences += r.sentences
        out.skipped += r.skipped
        out.pairs += r.pairs
    return out


def build_table(
    sentences: Sentences,
    order: int,
    k: int | None = None,
    *,
    is_known_word: KnownWord = None,
    shards: int = 1,
    report: Optional[OrderReport] = None,
) -> FrequencyTable:
    """
    Build one order's table. With ``shards > 1`` the sentence stream is
    re-read once per shard (sentence ``i`` goes to shard ``i % shards``)
    and the partial counts are reduced with merge_counts.
    """
    shards = max(1, int(shards))
    if shards > 1 and iter(sentences) is sentences:
        raise TypeError("sharded builds need a re-iterable sentence source")
    parts = [_count_shard(sentences, order, s, shards, is_known_word) for s in range(shards)]
    rep = _merge_reports(r for _, r in parts)
    table = finalize(merge_counts(c for c, _ in parts), order, k)
    rep.phrases = len(table)
    if report is not None:
        report.sentences, report.skipped = rep.sentences, rep.skipped
        report.pairs, report.phrases = rep.pairs, rep.phrases
    return table


def _make_executor(mode: str, workers: int) -> Optional[Executor]:
    if mode == "serial":
        return None
    if mode == "threads":
        return ThreadPoolExecutor(max_workers=workers)
    if mode == "procs":
        return ProcessPoolExecutor(max_workers=workers)
    raise ValueError(f"unknown build mode {mode!r} (expected threads, procs or serial)")


def build_tables(
    source: Sentences,
    orders: Sequence[int] | None = None,
    k: int | None = None,
    *,
    is_known_word: KnownWord = None,
    mode: str | None = None,
    workers: int | None = None,
    shards: int | None = None,
    report: Optional[BuildReport] = None,
) -> Dict[int, FrequencyTable]:
    """
    Build a table for every order. Each (order, shard) pair is an independent
    counting task reading the shared source; reduction and pruning happen
    here once all tasks are done. Any failure aborts the whole build.
    """
    orders = tuple(sorted(set(CFG.ORDERS if orders is None else orders)))
    if not orders:
        raise ValueError("build_tables(): at least one order is required")
    k = _check_k(CFG.PRUNE_K if k is None else k)
    mode = mode or CFG.BUILD_MODE
    workers = max(1, int(workers or CFG.WORKERS))
    shards = max(1, int(shards or CFG.SHARDS))

    tasks = [(o, s) for o in orders for s in range(shards)]
    if len(tasks) > 1 and iter(source) is source:
        raise TypeError("build_tables(): source must be re-iterable (e.g. a list or CorpusSample)")

    log.info("Counting orders=%s shards=%d mode=%s workers=%d", orders, shards, mode, workers)
    executor = _make_executor(mode, workers)
    results: Dict[Tuple[int, int], Tuple[Counter, OrderReport]] = {}
    if executor is None:
        for o, s in tasks:
            results[(o, s)] = _count_shard(source, o, s, shards, is_known_word)
    else:
        with executor:
            futures = {
                (o, s): executor.submit(_count_shard, source, o, s, shards, is_known_word)
                for o, s in tasks
            }
            for key, fut in futures.items():
                results[key] = fut.result()

    tables: Dict[int, FrequencyTable] = {}
    for o in orders:
        parts = [results[(o, s)] for s in range(shards)]
        rep = _merge_reports(r for _, r in parts)
        tables[o] = finalize(merge_counts(c for c, _ in parts), o, k)
        rep.phrases = len(tables[o])
        if report is not None:
            report.orders[o] = rep
        log.info("order %d: sentences=%d skipped=%d pairs=%d phrases=%d",
                 o, rep.sentences, rep.skipped, rep.pairs, rep.phrases)
    return tables
