from __future__ import annotations
import mmap
import struct
import zlib
from typing import BinaryIO, Dict, List, Tuple

from ..errors import CorruptIndex
from ..models import Entries, FrequencyTable
from .index import IndexStore

_MAGIC = b"NGX1"
FORMAT_VERSION = 1

_U8 = struct.Struct("<B")
_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")  # little-endian uint32

_MAX_STR = 0xFFFF
_MAX_COUNT = 0xFFFFFFFF
_MAX_K = 0xFF


class _CRCFile:
    """Write-through wrapper keeping a running CRC32 of everything written."""
    def __init__(self, f: BinaryIO) -> None:
        self.f = f
        self.crc = 0

    def write(self, b: bytes) -> None:
        self.crc = zlib.crc32(b, self.crc)
        self.f.write(b)


def _str_bytes(s: str, what: str) -> bytes:
    b = s.encode("utf-8")
    if len(b) > _MAX_STR:
        raise ValueError(f"{what} too long for NGX (max {_MAX_STR} bytes): {s[:40]!r}...")
    return b


class NGXWriter:
    """
    Write an index store as one self-describing file.
    Layout:
      0..3   : 'NGX1'
      4..7   : format version (uint32)
      8..11  : number of orders (uint32)
      Then per order:
         [order:u32][k:u32][n_phrases:u32]
         n_phrases x [key_len:u16][key][n_entries:u8]
                      n_entries x [word_len:u16][word][count:u32]
      Last 4 bytes: CRC32 of everything before them
    """
    def save(self, f: BinaryIO, store: IndexStore) -> None:
        out = _CRCFile(f)
        out.write(_MAGIC)
        out.write(_U32.pack(FORMAT_VERSION))
        out.write(_U32.pack(len(store.orders)))
        for table in store:
            if table.k > _MAX_K:
                raise ValueError(f"order {table.order}: K={table.k} exceeds NGX limit {_MAX_K}")
            out.write(_U32.pack(table.order))
            out.write(_U32.pack(table.k))
            out.write(_U32.pack(len(table)))
            for key, entries in table.iter_items():
                kb = _str_bytes(key, "lookup phrase")
                out.write(_U16.pack(len(kb)))
                out.write(kb)
                out.write(_U8.pack(len(entries)))
                for word, count in entries:
                    if not 0 < count <= _MAX_COUNT:
                        raise ValueError(f"count {count} for {word!r} out of NGX range")
                    wb = _str_bytes(word, "prediction word")
                    out.write(_U16.pack(len(wb)))
                    out.write(wb)
                    out.write(_U32.pack(count))
        f.write(_U32.pack(out.crc))


class _Cursor:
    def __init__(self, buf, end: int, path: str) -> None:
        self.buf = buf
        self.pos = 0
        self.end = end
        self.path = path

    def take(self, n: int) -> bytes:
        if self.pos + n > self.end:
            raise CorruptIndex(self.path, f"truncated at byte {self.pos}")
        b = self.buf[self.pos:self.pos + n]
        self.pos += n
        return b

    def u8(self) -> int:
        return _U8.unpack(self.take(1))[0]

    def u16(self) -> int:
        return _U16.unpack(self.take(2))[0]

    def u32(self) -> int:
        return _U32.unpack(self.take(4))[0]

    def text(self, n: int) -> str:
        try:
            return self.take(n).decode("utf-8")
        except UnicodeDecodeError as e:
            raise CorruptIndex(self.path, f"invalid utf-8 near byte {self.pos}") from e


class NGXReader:
    """
    Parse and fully validate an NGX file. Nothing is returned unless every
    check passes, so a caller never sees a partially initialized store.
    """
    def __init__(self, path: str) -> None:
        self._path = path

    def read(self) -> IndexStore:
        with open(self._path, "rb") as fd:
            try:
                mm = mmap.mmap(fd.fileno(), length=0, access=mmap.ACCESS_READ)
            except ValueError as e:  # empty file
                raise CorruptIndex(self._path, "empty file") from e
            with mm:
                return self._parse(mm)

    def _parse(self, mm) -> IndexStore:
        path = self._path
        size = len(mm)
        if size < 16:
            raise CorruptIndex(path, "file too short for an NGX header")
        if mm[0:4] != _MAGIC:
            raise CorruptIndex(path, "bad magic (not an NGX file)")
        version = _U32.unpack(mm[4:8])[0]
        if version != FORMAT_VERSION:
            raise CorruptIndex(path, f"format version {version}, expected {FORMAT_VERSION}")
        body_end = size - 4
        (stored_crc,) = _U32.unpack(mm[body_end:size])
        if zlib.crc32(mm[0:body_end]) != stored_crc:
            raise CorruptIndex(path, "checksum mismatch")

        cur = _Cursor(mm, body_end, path)
        cur.take(8)
        n_orders = cur.u32()
        if n_orders == 0:
            raise CorruptIndex(path, "no tables")

        tables: Dict[int, FrequencyTable] = {}
        prev_order = 1
        for _ in range(n_orders):
            order, k, n_phrases = cur.u32(), cur.u32(), cur.u32()
            if order <= prev_order:
                raise CorruptIndex(path, f"orders not strictly ascending at order {order}")
            if not 1 <= k <= _MAX_K:
                raise CorruptIndex(path, f"order {order}: invalid K {k}")
            prev_order = order
            tables[order] = self._parse_table(cur, order, k, n_phrases)

        if cur.pos != body_end:
            raise CorruptIndex(path, f"{body_end - cur.pos} trailing bytes")
        return IndexStore(tables)

    def _parse_table(self, cur: _Cursor, order: int, k: int, n_phrases: int) -> FrequencyTable:
        path = self._path
        keys: List[str] = []
        all_entries: List[Entries] = []
        prev_key: str | None = None
        for _ in range(n_phrases):
            key = cur.text(cur.u16())
            if prev_key is not None and key <= prev_key:
                raise CorruptIndex(path, f"order {order}: keys out of order at {key!r}")
            prev_key = key
            n = cur.u8()
            if not 1 <= n <= k:
                raise CorruptIndex(path, f"order {order}: {n} entries for {key!r} (K={k})")
            entries: List[Tuple[str, int]] = []
            seen = set()
            for _ in range(n):
                word = cur.text(cur.u16())
                count = cur.u32()
                if count == 0:
                    raise CorruptIndex(path, f"order {order}: zero count for {key!r}/{word!r}")
                if word in seen:
                    raise CorruptIndex(path, f"order {order}: duplicate word {word!r} for {key!r}")
                seen.add(word)
                if entries:
                    pw, pc = entries[-1]
                    if (-pc, pw) >= (-count, word):
                        raise CorruptIndex(path, f"order {order}: entries of {key!r} not ranked")
                entries.append((word, count))
            keys.append(key)
            all_entries.append(tuple(entries))
        return FrequencyTable(order=order, k=k, keys=tuple(keys), entries=tuple(all_entries))
