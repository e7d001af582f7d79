"""Descriptor scanners for project containers.

The container format is undocumented. Every offset, window and bound used
here was measured on sample projects and lives in :class:`ScanParameters`
so it can be revised as more samples are analysed.

Name fields look like::

    "Name" 00 00 08 | u32 BE length | label ... 00

where the stored length counts the label plus four framing bytes.

Map references sit after a pair of "All MIDI Inputs" markers::

    "All MIDI Inputs" 00 ... "All MIDI Inputs" 00 ... 01 00 00 00 | u8 length | label ... 00
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, List

from artisync.container.locator import Buffer, find_all, iter_offsets
from artisync.models import NameDescriptor, ReferenceDescriptor

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ScanParameters:
    name_tag: bytes = b"Name\x00\x00\x08"
    name_length_bytes: int = 4
    name_length_framing: int = 4
    name_length_min: int = 8
    name_length_max: int = 100
    name_trailer: bytes | None = None
    name_trailer_window: int = 30

    reference_marker: bytes = b"All MIDI Inputs"
    marker_distance_min: int = 20
    marker_distance_max: int = 35
    marker_stride: int | None = None
    flag_window: int = 20
    flag_value: int = 1
    flag_bytes: int = 4
    flag_byteorder: str = "little"
    reference_length_min: int = 10
    reference_length_max: int = 100
    reference_label_offset: int = 5
    reference_length_framing: int = 4
    reference_label_slack: int = 10
    reference_min_chars: int = 6

    @property
    def effective_marker_stride(self) -> int:
        """Bytes to skip past the second marker (marker text plus its NUL)."""
        if self.marker_stride is not None:
            return self.marker_stride
        return len(self.reference_marker) + 1

    @classmethod
    def preset(cls, name: str) -> "ScanParameters":
        try:
            return PRESETS[name]
        except KeyError:
            raise ValueError(
                f"Unknown scan preset {name!r}; expected one of {', '.join(sorted(PRESETS))}"
            ) from None


PRESETS: Dict[str, ScanParameters] = {
    # Every name field is a candidate track.
    "template": ScanParameters(),
    # Only names followed by a bus id, i.e. real tracks rather than inserts or ports.
    "mapper": replace(ScanParameters(), name_trailer=b"Bus UID"),
}

DEFAULT_PARAMETERS = PRESETS["template"]


def _cut_at_nul(raw: bytes) -> bytes:
    end = raw.find(b"\x00")
    return raw if end == -1 else raw[:end]


def find_track_names(
    buffer: Buffer, params: ScanParameters = DEFAULT_PARAMETERS
) -> List[NameDescriptor]:
    """Scan ``buffer`` for name fields, keeping the first occurrence of each label."""
    tracks: List[NameDescriptor] = []
    seen: set[str] = set()
    size = len(buffer)

    for tag_offset in iter_offsets(buffer, params.name_tag):
        length_offset = tag_offset + len(params.name_tag)
        label_start = length_offset + params.name_length_bytes
        if label_start > size:
            LOGGER.debug("Name tag at %d truncated by end of container", tag_offset)
            continue

        stored_length = int.from_bytes(buffer[length_offset:label_start], "big")
        if not params.name_length_min < stored_length < params.name_length_max:
            continue

        span = stored_length - params.name_length_framing
        if label_start + span > size:
            LOGGER.debug("Name at %d runs past end of container", label_start)
            continue

        raw = _cut_at_nul(bytes(buffer[label_start : label_start + span]))
        if not raw:
            continue

        if params.name_trailer is not None:
            window_end = min(label_start + stored_length + params.name_trailer_window, size)
            if buffer.find(params.name_trailer, label_start + span, window_end) == -1:
                continue

        label = raw.decode("utf-8", errors="replace")
        if label in seen:
            continue
        seen.add(label)
        tracks.append(NameDescriptor(label=label, byte_offset=label_start, byte_length=len(raw)))

    LOGGER.debug("Found %d unique track names", len(tracks))
    return tracks


def _read_reference(
    buffer: Buffer, second_marker: int, params: ScanParameters
) -> ReferenceDescriptor | None:
    size = len(buffer)
    search_start = second_marker + params.effective_marker_stride

    for delta in range(params.flag_window):
        flag_offset = search_start + delta
        length_offset = flag_offset + params.flag_bytes
        label_start = flag_offset + params.reference_label_offset
        if label_start >= size:
            break

        flag = int.from_bytes(buffer[flag_offset:length_offset], params.flag_byteorder)
        if flag != params.flag_value:
            continue

        stored_length = buffer[length_offset]
        if not params.reference_length_min < stored_length < params.reference_length_max:
            continue

        max_len = stored_length - params.reference_length_framing + params.reference_label_slack
        raw = _cut_at_nul(bytes(buffer[label_start : label_start + max_len]))
        label = raw.decode("utf-8", errors="replace")
        if not label or label.startswith("\x00") or len(label) < params.reference_min_chars:
            continue

        return ReferenceDescriptor(label=label, byte_offset=label_start, byte_length=len(raw))
    return None


def find_map_references(
    buffer: Buffer, params: ScanParameters = DEFAULT_PARAMETERS
) -> List[ReferenceDescriptor]:
    """Scan ``buffer`` for articulation map references in marker-pair order."""
    positions = find_all(buffer, params.reference_marker)
    references: List[ReferenceDescriptor] = []

    index = 0
    while index < len(positions) - 1:
        first, second = positions[index], positions[index + 1]
        distance = second - first
        if params.marker_distance_min <= distance <= params.marker_distance_max:
            reference = _read_reference(buffer, second, params)
            if reference is not None:
                references.append(reference)
                # The second marker belongs to this record, never to the next pair.
                index += 2
                continue
        index += 1

    LOGGER.debug("Found %d map references", len(references))
    return references
