from __future__ import annotations
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Sequence, Tuple

from ..extract import phrase_key
from ..models import Entries, FrequencyTable


class IndexStore:
    """
    The set of per-order frequency tables, owned as one unit.

    Built once per corpus sample (offline), then only read: there is no
    mutation API, so any number of predictors may share one instance
    without locking. Tables are keyed by integer order.
    """
    __slots__ = ("_tables",)

    def __init__(self, tables: Mapping[int, FrequencyTable]) -> None:
        checked: Dict[int, FrequencyTable] = {}
        for order, table in sorted(tables.items()):
            if not isinstance(table, FrequencyTable):
                raise TypeError(f"order {order}: expected FrequencyTable, got {type(table).__name__}")
            if table.order != order:
                raise ValueError(f"table for order {order} reports order {table.order}")
            checked[order] = table
        if not checked:
            raise ValueError("IndexStore needs at least one table")
        self._tables: Mapping[int, FrequencyTable] = MappingProxyType(checked)

    # ---- Build ----
    @classmethod
    def build(cls, tables: Mapping[int, FrequencyTable]) -> "IndexStore":
        return cls(tables)

    # ---- Query ----
    def lookup(self, order: int, phrase: str | Sequence[str]) -> Entries:
        """
        Ranked (word, count) pairs for ``phrase`` at ``order``.
        A missing phrase (or order) is the normal "no evidence" answer: ().
        """
        table = self._tables.get(order)
        if table is None:
            return ()
        key = phrase if isinstance(phrase, str) else phrase_key(phrase)
        return table.get(key)

    @property
    def orders(self) -> Tuple[int, ...]:
        return tuple(self._tables)

    def table(self, order: int) -> FrequencyTable:
        return self._tables[order]

    def __iter__(self) -> Iterator[FrequencyTable]:
        return iter(self._tables.values())

    def stats(self) -> Dict[int, Dict[str, int]]:
        return {
            o: {"k": t.k, "phrases": len(t), "entries": t.entry_count()}
            for o, t in self._tables.items()
        }

    # ---- Equality (round-trip checks) ----
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IndexStore):
            return NotImplemented
        return dict(self._tables) == dict(other._tables)

    def __repr__(self) -> str:
        parts = ", ".join(f"{o}:{len(t)}" for o, t in self._tables.items())
        return f"IndexStore({parts})"
