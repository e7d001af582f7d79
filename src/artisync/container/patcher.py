"""Same-length label rewriting for project containers."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Tuple

from artisync.container.locator import Buffer
from artisync.models import DescriptorKind, Slot

LOGGER = logging.getLogger(__name__)

PAD_BYTE = b" "


def fit_label(label: str, width: int, *, encoding: str = "utf-8") -> bytes:
    """Encode ``label`` into exactly ``width`` bytes, truncating or space-padding."""
    encoded = label.encode(encoding)
    if len(encoded) > width:
        # Drop any partial multi-byte character left by the cut.
        encoded = encoded[:width].decode(encoding, errors="ignore").encode(encoding)
    return encoded + PAD_BYTE * (width - len(encoded))


def rewrite(
    buffer: Buffer, old_label: str, new_label: str, *, encoding: str = "utf-8"
) -> Tuple[bytes, int]:
    """Replace every occurrence of ``old_label`` in a copy of ``buffer``.

    Returns the new buffer and the number of regions written. The buffer
    length never changes.
    """
    old_bytes = old_label.encode(encoding)
    if not old_bytes:
        raise ValueError("Label to replace must not be empty")

    replacement = fit_label(new_label, len(old_bytes), encoding=encoding)
    output = bytearray(buffer)
    count = 0
    position = 0
    while True:
        index = output.find(old_bytes, position)
        if index == -1:
            break
        output[index : index + len(old_bytes)] = replacement
        count += 1
        position = index + len(old_bytes)

    return bytes(output), count


@dataclass(frozen=True, slots=True)
class Replacement:
    slot_index: int | None
    kind: DescriptorKind
    old_label: str
    new_label: str
    count: int


@dataclass(slots=True)
class PatchResult:
    buffer: bytes
    replacements: List[Replacement] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(item.count for item in self.replacements)


def _pending(old: str, new: str | None) -> bool:
    return bool(new) and new != old


def _plan(
    slots: List[Slot],
    references: Mapping[str, str],
    tracks: Mapping[str, str],
) -> List[Tuple[int | None, DescriptorKind, str, str]]:
    plan: List[Tuple[int | None, DescriptorKind, str, str]] = []
    for slot in slots:
        if _pending(slot.reference.label, slot.new_reference_label):
            plan.append((slot.index, DescriptorKind.REFERENCE, slot.reference.label, slot.new_reference_label))
    for old, new in references.items():
        if _pending(old, new):
            plan.append((None, DescriptorKind.REFERENCE, old, new))
    for slot in slots:
        if _pending(slot.track.label, slot.new_track_label):
            plan.append((slot.index, DescriptorKind.NAME, slot.track.label, slot.new_track_label))
    for old, new in tracks.items():
        if _pending(old, new):
            plan.append((None, DescriptorKind.NAME, old, new))
    return plan


def apply_slots(
    buffer: Buffer,
    slots: Iterable[Slot],
    *,
    references: Mapping[str, str] | None = None,
    tracks: Mapping[str, str] | None = None,
    encoding: str = "utf-8",
) -> PatchResult:
    """Apply the new labels held by ``slots``.

    ``references`` and ``tracks`` map labels that are not bound to a slot to
    their new value. Every reference label, bound or not, is rewritten before
    any track label because a reference label can embed a track label.
    Replacements for unbound labels carry no slot index.
    """
    current = bytes(buffer)
    replacements: List[Replacement] = []

    for slot_index, kind, old_label, new_label in _plan(list(slots), references or {}, tracks or {}):
        current, count = rewrite(current, old_label, new_label, encoding=encoding)
        replacements.append(Replacement(slot_index, kind, old_label, new_label, count))

    for item in replacements:
        if item.count == 0:
            LOGGER.warning("Label %r not found in container", item.old_label)
        else:
            LOGGER.debug("Rewrote %r -> %r (%d)", item.old_label, item.new_label, item.count)

    return PatchResult(buffer=current, replacements=replacements)


class ContainerEditor:
    """Owns the latest version of one container and serialises edits to it."""

    def __init__(self, buffer: Buffer, *, encoding: str = "utf-8") -> None:
        self._buffer = bytes(buffer)
        self._encoding = encoding
        self._lock = threading.Lock()

    @property
    def buffer(self) -> bytes:
        return self._buffer

    def rewrite(self, old_label: str, new_label: str) -> int:
        with self._lock:
            self._buffer, count = rewrite(self._buffer, old_label, new_label, encoding=self._encoding)
        return count

    def apply(
        self,
        slots: Iterable[Slot],
        *,
        references: Mapping[str, str] | None = None,
        tracks: Mapping[str, str] | None = None,
    ) -> PatchResult:
        with self._lock:
            result = apply_slots(
                self._buffer, slots, references=references, tracks=tracks, encoding=self._encoding
            )
            self._buffer = result.buffer
        return result
