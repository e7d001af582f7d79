"""Pair map references with the track names they most likely belong to."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence

from artisync.models import NameDescriptor, ReferenceDescriptor, Slot

LOGGER = logging.getLogger(__name__)

# Records are unevenly sized, so distance is bucketed rather than continuous.
NEAR_DISTANCE = 100_000
FAR_DISTANCE = 500_000
NEAR_SCORE = 100
FAR_SCORE = 50
NAME_WEIGHT = 10


def proximity_score(distance: int) -> int:
    distance = abs(distance)
    if distance < NEAR_DISTANCE:
        return NEAR_SCORE
    if distance < FAR_DISTANCE:
        return FAR_SCORE
    return 0


def name_score(track_label: str, reference_label: str) -> int:
    """Longer track names contained in the reference label score higher."""
    track_lower = track_label.lower()
    if track_lower and track_lower in reference_label.lower():
        return len(track_lower) * NAME_WEIGHT
    return 0


def score_pair(track: NameDescriptor, reference: ReferenceDescriptor) -> int:
    distance = reference.byte_offset - track.byte_offset
    return proximity_score(distance) + name_score(track.label, reference.label)


@dataclass(slots=True)
class CorrelationResult:
    slots: List[Slot] = field(default_factory=list)
    unmatched_references: List[ReferenceDescriptor] = field(default_factory=list)
    unmatched_tracks: List[NameDescriptor] = field(default_factory=list)


def best_track_for(
    reference: ReferenceDescriptor, tracks: Sequence[NameDescriptor]
) -> tuple[NameDescriptor | None, int]:
    """Return the highest scoring track, first one winning ties."""
    best: NameDescriptor | None = None
    best_score = 0
    for track in tracks:
        score = score_pair(track, reference)
        if score > best_score:
            best, best_score = track, score
    return best, best_score


def correlate(
    tracks: Sequence[NameDescriptor],
    references: Sequence[ReferenceDescriptor],
    *,
    ignored_tracks: Iterable[str] = (),
) -> CorrelationResult:
    """Build one slot per reference that has a plausible, unclaimed track."""
    ignored = set(ignored_tracks)
    candidates = [track for track in tracks if track.label not in ignored]
    result = CorrelationResult()
    claimed: set[NameDescriptor] = set()

    for reference in references:
        track, score = best_track_for(reference, candidates)
        if track is None:
            LOGGER.debug("No track for reference %r", reference.label)
            result.unmatched_references.append(reference)
            continue
        if track in claimed:
            LOGGER.debug(
                "Track %r already bound, leaving %r unmatched", track.label, reference.label
            )
            result.unmatched_references.append(reference)
            continue

        claimed.add(track)
        result.slots.append(
            Slot(index=len(result.slots), track=track, reference=reference, score=score)
        )

    result.unmatched_tracks = [track for track in candidates if track not in claimed]
    return result
