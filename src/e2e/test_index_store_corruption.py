import struct
import zlib
from pathlib import Path

import pytest

from nextword.errors import CorruptIndex
from nextword.DB.index import IndexStore
from nextword.DB.ngx import FORMAT_VERSION
from nextword.DB.storage import load_store, save_store
from nextword.models import FrequencyTable


def _good(tmp: Path) -> Path:
    t2 = FrequencyTable(order=2, k=3, keys=("goes", "it"),
                        entries=((("well", 2), ("on", 1)), (("goes", 3),)))
    t3 = FrequencyTable(order=3, k=3, keys=("it goes",), entries=((("well", 2), ("on", 1)),))
    path = tmp / "store.ngx"
    save_store(IndexStore({2: t2, 3: t3}), str(path))
    return path


def _reseal(body: bytes) -> bytes:
    """Re-append a valid CRC so only the structural check can fail."""
    return body + struct.pack("<I", zlib.crc32(body))


def test_bad_magic(tmp_path: Path):
    path = _good(tmp_path)
    data = path.read_bytes()
    path.write_bytes(_reseal(b"ACX1" + data[4:-4]))
    with pytest.raises(CorruptIndex, match="magic"):
        load_store(str(path))


def test_version_mismatch(tmp_path: Path):
    path = _good(tmp_path)
    data = path.read_bytes()
    body = data[:4] + struct.pack("<I", FORMAT_VERSION + 1) + data[8:-4]
    path.write_bytes(_reseal(body))
    with pytest.raises(CorruptIndex, match="version"):
        load_store(str(path))


def test_flipped_byte_fails_checksum(tmp_path: Path):
    path = _good(tmp_path)
    data = bytearray(path.read_bytes())
    data[20] ^= 0xFF
    path.write_bytes(bytes(data))
    with pytest.raises(CorruptIndex):
        load_store(str(path))


def test_truncated_file(tmp_path: Path):
    path = _good(tmp_path)
    data = path.read_bytes()
    path.write_bytes(_reseal(data[:-12]))
    with pytest.raises(CorruptIndex, match="truncated"):
        load_store(str(path))


def test_trailing_bytes(tmp_path: Path):
    path = _good(tmp_path)
    data = path.read_bytes()
    path.write_bytes(_reseal(data[:-4] + b"\x00\x00"))
    with pytest.raises(CorruptIndex, match="trailing"):
        load_store(str(path))


def test_empty_and_tiny_files(tmp_path: Path):
    empty = tmp_path / "empty.ngx"
    empty.write_bytes(b"")
    with pytest.raises(CorruptIndex):
        load_store(str(empty))
    tiny = tmp_path / "tiny.ngx"
    tiny.write_bytes(b"NGX1")
    with pytest.raises(CorruptIndex):
        load_store(str(tiny))


def _encode(order: int, k: int, rows) -> bytes:
    """Hand-pack one order the way NGXWriter does, without model checks."""
    body = b"NGX1" + struct.pack("<II", FORMAT_VERSION, 1) + struct.pack("<III", order, k, len(rows))
    for key, entries in rows:
        kb = key.encode("utf-8")
        body += struct.pack("<H", len(kb)) + kb + struct.pack("<B", len(entries))
        for word, count in entries:
            wb = word.encode("utf-8")
            body += struct.pack("<H", len(wb)) + wb + struct.pack("<I", count)
    return _reseal(body)


def test_hand_packed_valid_file_loads(tmp_path: Path):
    path = tmp_path / "ok.ngx"
    path.write_bytes(_encode(2, 2, [("a", [("b", 2), ("c", 1)])]))
    assert load_store(str(path)).lookup(2, "a") == (("b", 2), ("c", 1))


def test_unsorted_keys_are_rejected(tmp_path: Path):
    path = tmp_path / "unsorted.ngx"
    path.write_bytes(_encode(2, 2, [("zebra", [("a", 1)]), ("apple", [("b", 1)])]))
    with pytest.raises(CorruptIndex, match="out of order"):
        load_store(str(path))


def test_entries_over_k_are_rejected(tmp_path: Path):
    path = tmp_path / "overk.ngx"
    path.write_bytes(_encode(2, 1, [("a", [("b", 2), ("c", 1)])]))
    with pytest.raises(CorruptIndex, match="entries"):
        load_store(str(path))


def test_unranked_entries_are_rejected(tmp_path: Path):
    path = tmp_path / "unranked.ngx"
    path.write_bytes(_encode(2, 3, [("a", [("b", 1), ("c", 5)])]))
    with pytest.raises(CorruptIndex, match="ranked"):
        load_store(str(path))


def test_duplicate_words_are_rejected(tmp_path: Path):
    path = tmp_path / "dup.ngx"
    path.write_bytes(_encode(2, 3, [("a", [("b", 5), ("b", 1)])]))
    with pytest.raises(CorruptIndex, match="duplicate"):
        load_store(str(path))


def test_zero_count_is_rejected(tmp_path: Path):
    path = tmp_path / "zero.ngx"
    path.write_bytes(_encode(2, 3, [("a", [("b", 0)])]))
    with pytest.raises(CorruptIndex, match="zero count"):
        load_store(str(path))
