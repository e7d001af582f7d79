"""Filesystem catalog of articulation map files."""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Dict, List, Tuple

from artisync.models import ResourceRecord
from artisync.utils.files import iter_map_paths
from artisync.utils.text import MAP_EXTENSION

LOGGER = logging.getLogger(__name__)

ROOT_FOLDER = "Root"


class CatalogError(OSError):
    """Raised when the catalog or one of its files cannot be read."""


class MapCatalog:
    """Read-only listing of the map files stored under one directory.

    The listing is built once and replaced wholesale by :meth:`refresh`, so
    readers always see a complete snapshot.
    """

    def __init__(self, root: Path, *, extension: str = MAP_EXTENSION) -> None:
        self.root = Path(root)
        self.extension = extension
        self._lock = threading.Lock()
        self._records: Tuple[ResourceRecord, ...] | None = None

    def _scan(self) -> Tuple[ResourceRecord, ...]:
        if not self.root.is_dir():
            raise CatalogError(f"Map folder not found: {self.root}")

        records: List[ResourceRecord] = []
        try:
            for path in iter_map_paths([self.root], extension=self.extension):
                relative = path.relative_to(self.root)
                records.append(
                    ResourceRecord(
                        display_name=path.name[: -len(self.extension)],
                        storage_path=relative.as_posix(),
                        folder_path=relative.parent.as_posix() if relative.parent != Path(".") else "",
                    )
                )
        except OSError as exc:
            raise CatalogError(f"Unable to scan {self.root}: {exc}") from exc
        return tuple(records)

    def refresh(self) -> Tuple[ResourceRecord, ...]:
        records = self._scan()
        with self._lock:
            self._records = records
        LOGGER.info("Catalog %s holds %d maps", self.root, len(records))
        return records

    @property
    def snapshot(self) -> Tuple[ResourceRecord, ...]:
        with self._lock:
            records = self._records
        if records is None:
            records = self.refresh()
        return records

    def list(self) -> List[ResourceRecord]:
        return list(self.snapshot)

    def grouped(self) -> Dict[str, List[ResourceRecord]]:
        groups: Dict[str, List[ResourceRecord]] = {}
        for record in self.snapshot:
            groups.setdefault(record.folder_path or ROOT_FOLDER, []).append(record)
        return groups

    def resolve(self, storage_path: str) -> Path:
        """Return the absolute path of ``storage_path``, refusing paths outside the root."""
        if "\0" in storage_path:
            raise CatalogError("Invalid path: contains null byte")
        root = os.path.realpath(self.root)
        target = os.path.realpath(os.path.join(root, storage_path))
        if not (target + os.sep).startswith(root + os.sep):
            raise CatalogError(f"Path outside catalog: {storage_path}")
        return Path(target)

    def read(self, storage_path: str) -> bytes:
        path = self.resolve(storage_path)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise CatalogError(f"Unable to read {storage_path}: {exc}") from exc
