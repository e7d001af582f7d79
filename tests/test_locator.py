"""Tests for byte pattern search."""

from __future__ import annotations

import mmap
from pathlib import Path

import pytest

from artisync.container.locator import find_all, iter_offsets


class TestFindAll:
    """Test find_all function."""

    def test_finds_every_occurrence_in_order(self) -> None:
        buffer = b"xxABxxABxAB"
        assert find_all(buffer, b"AB") == [2, 6, 9]

    def test_no_match_returns_empty_list(self) -> None:
        assert find_all(b"abcdef", b"zz") == []

    def test_pattern_longer_than_buffer(self) -> None:
        assert find_all(b"ab", b"abc") == []

    def test_empty_buffer(self) -> None:
        assert find_all(b"", b"a") == []

    def test_empty_pattern_rejected(self) -> None:
        with pytest.raises(ValueError):
            find_all(b"abc", b"")

    def test_matches_are_non_overlapping(self) -> None:
        """Overlapping candidates are consumed left to right."""
        assert find_all(b"aaaa", b"aa") == [0, 2]

    def test_offsets_are_true_matches(self) -> None:
        buffer = bytes(range(256)) * 4
        pattern = bytes([10, 11, 12])
        offsets = find_all(buffer, pattern)
        assert offsets == sorted(set(offsets))
        assert all(buffer[i : i + 3] == pattern for i in offsets)
        assert len(offsets) == 4

    def test_start_and_end_bounds(self) -> None:
        buffer = b"AB--AB--AB"
        assert find_all(buffer, b"AB", start=1) == [4, 8]
        assert find_all(buffer, b"AB", end=6) == [0, 4]
        assert find_all(buffer, b"AB", end=5) == [0]

    def test_accepts_bytearray(self) -> None:
        assert find_all(bytearray(b"--Name--Name"), b"Name") == [2, 8]

    def test_accepts_mmap(self, tmp_path: Path) -> None:
        path = tmp_path / "data.bin"
        path.write_bytes(b"\x00marker\x00\x00marker")
        with path.open("rb") as handle, mmap.mmap(handle.fileno(), 0, access=mmap.ACCESS_READ) as mapped:
            assert find_all(mapped, b"marker") == [1, 9]


class TestIterOffsets:
    """Test iter_offsets generator."""

    def test_is_lazy(self) -> None:
        offsets = iter_offsets(b"a-a-a", b"a")
        assert next(offsets) == 0
        assert next(offsets) == 2

    def test_negative_start_is_clamped(self) -> None:
        assert list(iter_offsets(b"ab", b"a", start=-5)) == [0]
