from __future__ import annotations
import os

from .index import IndexStore
from .ngx import NGXReader, NGXWriter


def save_store(store: IndexStore, path: str) -> None:
    """Write the NGX file via a temp file + rename, so readers never see half a store."""
    path = os.fspath(path)
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    tmp = f"{path}.tmp"
    try:
        with open(tmp, "wb") as f:
            NGXWriter().save(f, store)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    finally:
        if os.path.exists(tmp):
            os.remove(tmp)


def load_store(path: str) -> IndexStore:
    """Load and validate; raises CorruptIndex (nothing loaded) or FileNotFoundError."""
    path = os.fspath(path)
    if not os.path.exists(path):
        raise FileNotFoundError(path)
    return NGXReader(path).read()
