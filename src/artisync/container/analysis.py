"""End-to-end analysis of a project container."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence

from artisync.container.correlator import correlate
from artisync.container.extractors import (
    DEFAULT_PARAMETERS,
    ScanParameters,
    find_map_references,
    find_track_names,
)
from artisync.container.locator import Buffer
from artisync.models import NameDescriptor, ReferenceDescriptor, Slot

LOGGER = logging.getLogger(__name__)

# Routing tracks present in every project; never bound to a map.
SYSTEM_TRACKS = ("KT Out 1", "Stereo In", "Right", "Stereo Out", "Left")


class ContainerReadError(OSError):
    """Raised when a container cannot be read from storage."""


@dataclass(slots=True)
class ContainerReport:
    size: int
    tracks: List[NameDescriptor] = field(default_factory=list)
    references: List[ReferenceDescriptor] = field(default_factory=list)
    slots: List[Slot] = field(default_factory=list)
    unmatched_tracks: List[str] = field(default_factory=list)
    unmatched_references: List[str] = field(default_factory=list)
    path: Path | None = None

    @property
    def is_empty(self) -> bool:
        return not self.tracks and not self.references

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": str(self.path) if self.path is not None else None,
            "size": self.size,
            "tracks": [track.label for track in self.tracks],
            "references": [reference.label for reference in self.references],
            "slots": [
                {
                    "index": slot.index,
                    "track": slot.track.label,
                    "reference": slot.reference.label,
                    "score": slot.score,
                    "suggested_track": slot.suggested_track_label,
                    "map_file": slot.map_file_stem,
                }
                for slot in self.slots
            ],
            "unmatched_tracks": list(self.unmatched_tracks),
            "unmatched_references": list(self.unmatched_references),
        }


def read_container(path: Path) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise ContainerReadError(f"Unable to read container {path}: {exc}") from exc


def analyze_container(
    buffer: Buffer,
    *,
    params: ScanParameters = DEFAULT_PARAMETERS,
    system_tracks: Sequence[str] = SYSTEM_TRACKS,
    path: Path | None = None,
) -> ContainerReport:
    """Scan, correlate and summarise one container buffer."""
    tracks = find_track_names(buffer, params)
    references = find_map_references(buffer, params)
    LOGGER.info("Found %d tracks and %d map references", len(tracks), len(references))

    result = correlate(tracks, references, ignored_tracks=system_tracks)
    LOGGER.info(
        "Matched %d tracks out of %d map references", len(result.slots), len(references)
    )
    return ContainerReport(
        size=len(buffer),
        tracks=tracks,
        references=references,
        slots=result.slots,
        unmatched_tracks=[track.label for track in result.unmatched_tracks],
        unmatched_references=[reference.label for reference in result.unmatched_references],
        path=path,
    )


def analyze_file(
    path: Path,
    *,
    params: ScanParameters = DEFAULT_PARAMETERS,
    system_tracks: Iterable[str] = SYSTEM_TRACKS,
) -> ContainerReport:
    buffer = read_container(path)
    return analyze_container(buffer, params=params, system_tracks=tuple(system_tracks), path=path)
