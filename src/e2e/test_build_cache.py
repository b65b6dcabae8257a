from pathlib import Path

import pytest

from nextword.builder import build_tables
from nextword.engine import Engine
from nextword.DB.cache import BuildCache
from nextword.DB.index import IndexStore
from nextword.DB.storage import save_store

SENTENCES = [
    ["it", "goes", "well", "with", "cheese"],
    ["it", "goes", "on", "and", "on"],
    ["it", "goes", "well", "with", "wine"],
]


def _store() -> IndexStore:
    return IndexStore.build(build_tables(SENTENCES, (2, 3, 4), 5, mode="serial"))


@pytest.fixture
def cache(tmp_path: Path):
    c = BuildCache(str(tmp_path / "cache"))
    yield c
    c.close()


def test_key_depends_on_identity_orders_and_k():
    base = BuildCache.key("abc", (2, 3, 4), 5)
    assert base == BuildCache.key("abc", (4, 3, 2), 5)
    assert base != BuildCache.key("abd", (2, 3, 4), 5)
    assert base != BuildCache.key("abc", (2, 3), 5)
    assert base != BuildCache.key("abc", (2, 3, 4), 4)


def test_miss_then_hit(cache: BuildCache):
    key = BuildCache.key("id", (2, 3, 4), 5)
    assert cache.get(key) is None
    store = _store()
    cache.put(key, store, identity="id", k=5)
    assert cache.get(key) == store
    assert len(cache.entries()) == 1


def test_file_alone_is_not_a_hit(cache: BuildCache):
    key = BuildCache.key("id", (2, 3, 4), 5)
    save_store(_store(), cache._file(key))
    assert cache.get(key) is None


def test_corrupt_entry_is_invalidated(cache: BuildCache):
    key = BuildCache.key("id", (2, 3, 4), 5)
    path = cache.put(key, _store(), identity="id", k=5)
    Path(path).write_bytes(b"not a store at all, definitely not")
    assert cache.get(key) is None
    assert cache.entries() == []
    assert not Path(path).exists()


def test_old_format_version_is_invalidated(cache: BuildCache):
    key = BuildCache.key("id", (2, 3, 4), 5)
    cache.put(key, _store(), identity="id", k=5)
    cache.conn.execute("UPDATE builds SET format_version = 0 WHERE key = ?", (key,))
    cache.conn.commit()
    assert cache.get(key) is None
    assert cache.entries() == []


def test_explicit_invalidate_and_clear(cache: BuildCache):
    k1 = BuildCache.key("a", (2,), 5)
    k2 = BuildCache.key("b", (2,), 5)
    cache.put(k1, _store(), identity="a", k=5)
    cache.put(k2, _store(), identity="b", k=5)
    assert cache.invalidate(k1) is True
    assert cache.invalidate(k1) is False
    assert cache.clear() == 1
    assert cache.entries() == []


def test_engine_reuses_and_rebuilds_cache(tmp_path: Path):
    cache_dir = str(tmp_path / "cache")
    e1 = Engine()
    r1 = e1.build(sentences=SENTENCES, cache_dir=cache_dir, mode="serial")
    assert r1.from_cache is False and r1.cache_key
    first = e1.store
    e1.shutdown()

    e2 = Engine()
    r2 = e2.build(sentences=SENTENCES, cache_dir=cache_dir)
    assert r2.from_cache is True
    assert r2.cache_key == r1.cache_key
    assert e2.store == first
    e2.shutdown()

    e3 = Engine()
    r3 = e3.build(sentences=SENTENCES, cache_dir=cache_dir, rebuild=True, mode="serial")
    assert r3.from_cache is False
    e3.shutdown()


def test_engine_cache_key_tracks_k(tmp_path: Path):
    cache_dir = str(tmp_path / "cache")
    eng = Engine()
    try:
        a = eng.build(sentences=SENTENCES, cache_dir=cache_dir, prune_k=5, mode="serial")
        b = eng.build(sentences=SENTENCES, cache_dir=cache_dir, prune_k=1, mode="serial")
        assert a.cache_key != b.cache_key
        assert b.from_cache is False
        assert eng.store.table(3).k == 1
    finally:
        eng.shutdown()


def test_sentence_fingerprint_only_taken_when_caching(tmp_path: Path, monkeypatch):
    import nextword.engine as engine_mod
    calls = []

    def counting(sentences):
        calls.append(1)
        return "fixed-identity"

    monkeypatch.setattr(engine_mod, "fingerprint_sentences", counting)
    eng = Engine()
    try:
        eng.build(sentences=SENTENCES, mode="serial")
        assert calls == []
        eng.build(sentences=SENTENCES, cache_dir=str(tmp_path / "cache"), mode="serial")
        assert calls == [1]
    finally:
        eng.shutdown()
