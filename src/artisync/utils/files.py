"""Utility helpers for working with map files."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator

from artisync.utils.text import MAP_EXTENSION


def iter_map_paths(inputs: Iterable[Path], *, extension: str = MAP_EXTENSION) -> Iterator[Path]:
    """Yield map file paths from input paths, descending into directories."""
    suffix = extension.lower()
    for item in inputs:
        if item.is_dir():
            yield from iter_map_paths(
                sorted(child for child in item.rglob("*") if child.is_file()),
                extension=extension,
            )
        elif item.is_file() and item.name.lower().endswith(suffix):
            yield item


def find_file(root: Path, file_name: str) -> Path | None:
    """Find ``file_name`` directly under ``root``, else anywhere below it."""
    if Path(file_name).name != file_name:
        return None
    direct = root / file_name
    if direct.is_file():
        return direct
    for candidate in sorted(root.rglob("*")):
        if candidate.name == file_name and candidate.is_file():
            return candidate
    return None
