from .index import IndexStore
from .storage import load_store, save_store
from .cache import BuildCache

__all__ = ["IndexStore", "load_store", "save_store", "BuildCache"]
