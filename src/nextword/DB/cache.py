from __future__ import annotations
import hashlib
import logging
import os
import sqlite3
import time
from typing import List, Optional, Sequence, Tuple

from ..errors import CorruptIndex
from .index import IndexStore
from .ngx import FORMAT_VERSION
from .storage import load_store, save_store

log = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS builds (
  key TEXT PRIMARY KEY,
  identity TEXT NOT NULL,
  orders TEXT NOT NULL,
  k INTEGER NOT NULL,
  format_version INTEGER NOT NULL,
  path TEXT NOT NULL,
  created REAL NOT NULL
);
"""


class BuildCache:
    """
    Versioned cache of built stores keyed by (sample identity, orders, K).

    A store counts as cached only when the sqlite manifest has a row for
    its key written by the current NGX format version and the file loads
    cleanly; a file sitting in the directory is not enough. Stale or
    corrupt entries are dropped on sight.
    """
    def __init__(self, directory: str) -> None:
        self.directory = os.path.abspath(directory)
        os.makedirs(self.directory, exist_ok=True)
        self.conn = sqlite3.connect(os.path.join(self.directory, "manifest.sqlite"),
                                    check_same_thread=False)
        self.conn.execute("PRAGMA journal_mode=WAL;")
        self.conn.executescript(_SCHEMA)

    @staticmethod
    def key(identity: str, orders: Sequence[int], k: int) -> str:
        raw = f"{identity}|orders={','.join(map(str, sorted(orders)))}|k={k}|ngx={FORMAT_VERSION}"
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def _file(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.ngx")

    # ---- Read ----
    def get(self, key: str) -> Optional[IndexStore]:
        row = self.conn.execute(
            "SELECT format_version, path FROM builds WHERE key=?", (key,)
        ).fetchone()
        if row is None:
            return None
        version, rel = row
        if version != FORMAT_VERSION:
            log.warning("cache entry %s has format %d (current %d); invalidating",
                        key[:12], version, FORMAT_VERSION)
            self.invalidate(key)
            return None
        path = os.path.join(self.directory, rel)
        try:
            store = load_store(path)
        except FileNotFoundError:
            log.warning("cache entry %s lost its file; invalidating", key[:12])
            self.invalidate(key)
            return None
        except CorruptIndex as e:
            log.warning("cache entry %s is corrupt (%s); invalidating", key[:12], e.reason)
            self.invalidate(key)
            return None
        log.info("cache hit %s", key[:12])
        return store

    def entries(self) -> List[Tuple[str, str, str, int, int, float]]:
        return self.conn.execute(
            "SELECT key, identity, orders, k, format_version, created FROM builds ORDER BY created"
        ).fetchall()

    # ---- Write ----
    def put(self, key: str, store: IndexStore, *, identity: str, k: int) -> str:
        path = self._file(key)
        save_store(store, path)
        self.conn.execute(
            "INSERT OR REPLACE INTO builds(key, identity, orders, k, format_version, path, created) "
            "VALUES (?,?,?,?,?,?,?)",
            (key, identity, ",".join(map(str, store.orders)), int(k), FORMAT_VERSION,
             os.path.basename(path), time.time()),
        )
        self.conn.commit()
        log.info("cached store %s at %s", key[:12], path)
        return path

    # ---- Invalidate ----
    def invalidate(self, key: str) -> bool:
        cur = self.conn.execute("DELETE FROM builds WHERE key=?", (key,))
        self.conn.commit()
        path = self._file(key)
        if os.path.exists(path):
            os.remove(path)
        return cur.rowcount > 0

    def clear(self) -> int:
        keys = [k for (k,) in self.conn.execute("SELECT key FROM builds").fetchall()]
        for k in keys:
            self.invalidate(k)
        return len(keys)

    def close(self) -> None:
        self.conn.close()
