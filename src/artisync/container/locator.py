"""Exact byte pattern search over container buffers."""

from __future__ import annotations

import mmap
from typing import Iterator, List, Union

Buffer = Union[bytes, bytearray, mmap.mmap]


def iter_offsets(
    buffer: Buffer, pattern: bytes, *, start: int = 0, end: int | None = None
) -> Iterator[int]:
    """Yield non-overlapping offsets of ``pattern`` in ascending order.

    Uses the buffer's own ``find`` so no second copy of the data is made.
    """
    if not pattern:
        raise ValueError("Pattern must contain at least one byte")

    stop = len(buffer) if end is None else min(end, len(buffer))
    position = max(start, 0)
    step = len(pattern)
    while position <= stop - step:
        index = buffer.find(pattern, position, stop)
        if index == -1:
            return
        yield index
        position = index + step


def find_all(
    buffer: Buffer, pattern: bytes, *, start: int = 0, end: int | None = None
) -> List[int]:
    """Return every non-overlapping offset of ``pattern`` inside ``buffer``."""
    return list(iter_offsets(buffer, pattern, start=start, end=end))
