"""Core ArtiSync data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Tuple

from artisync.utils.text import reference_to_file_stem, suggest_track_label, truncate_utf8


class DescriptorKind(str, Enum):
    NAME = "name"
    REFERENCE = "reference"


@dataclass(frozen=True, slots=True)
class Descriptor:
    """Label bytes located inside a container.

    ``byte_length`` is the exact encoded span of ``label`` starting at
    ``byte_offset``, so a same-length replacement never resizes the container.
    """

    kind: ClassVar[DescriptorKind]

    label: str
    byte_offset: int
    byte_length: int

    @property
    def end_offset(self) -> int:
        return self.byte_offset + self.byte_length


@dataclass(frozen=True, slots=True)
class NameDescriptor(Descriptor):
    """Track name field."""

    kind: ClassVar[DescriptorKind] = DescriptorKind.NAME


@dataclass(frozen=True, slots=True)
class ReferenceDescriptor(Descriptor):
    """Articulation map reference embedded in a track record."""

    kind: ClassVar[DescriptorKind] = DescriptorKind.REFERENCE


@dataclass(slots=True)
class Slot:
    """One track bound to one articulation map reference."""

    index: int
    track: NameDescriptor
    reference: ReferenceDescriptor
    new_track_label: str | None = None
    new_reference_label: str | None = None
    score: int = 0

    @property
    def suggested_track_label(self) -> str:
        cleaned = suggest_track_label(self.reference.label)
        return truncate_utf8(cleaned, self.track.byte_length)

    @property
    def map_file_stem(self) -> str:
        return reference_to_file_stem(self.reference.label)


@dataclass(frozen=True, slots=True)
class ResourceRecord:
    """Catalog entry of a stored articulation map."""

    display_name: str
    storage_path: str
    folder_path: str = ""

    @property
    def search_text(self) -> str:
        if self.folder_path:
            return f"{self.folder_path}/{self.display_name}"
        return self.display_name


@dataclass(frozen=True, slots=True)
class MatchCandidate:
    resource: ResourceRecord
    score: int
    matched_terms: Tuple[str, ...] = field(default_factory=tuple)
    strategy: str = "keywords"
