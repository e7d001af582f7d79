"""Articulation map model, remote trigger assignment and map merging."""

from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence, Tuple

NOTE_ON = 144
MAX_NOTE = 127
NOTE_NAMES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")
MERGED_FALLBACK_NAME = "Merged Map"

_COMMON_NAME_TAIL = re.compile(r"\s*(Part|Attribute|Direction|\d+)\s*$", re.IGNORECASE)


class RemoteTriggersExhausted(RuntimeError):
    """Raised when no MIDI note is left for another remote trigger."""


@dataclass(frozen=True, slots=True)
class MidiMessage:
    status: int
    data1: int
    data2: int


@dataclass(frozen=True, slots=True)
class RemoteTrigger:
    data1: int
    status: int = NOTE_ON
    auto_assigned: bool = False


@dataclass(frozen=True, slots=True)
class Articulation:
    name: str
    short_name: str = ""
    group: int = 0
    color: int = 0
    articulation_type: int = 0
    midi_messages: Tuple[MidiMessage, ...] = ()
    remote_trigger: Optional[RemoteTrigger] = None
    key_switch: Optional[int] = None
    midi_channel: Optional[int] = None
    source_map: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ArticulationMap:
    name: str
    file_name: str = ""
    articulations: Tuple[Articulation, ...] = ()
    is_merged: bool = False
    source_map_names: Tuple[str, ...] = field(default_factory=tuple)


def midi_note_name(note: int) -> str:
    """Note name using the C-2 = 0 convention."""
    return f"{NOTE_NAMES[note % 12]}{note // 12 - 2}"


def has_unassigned_remotes(articulation_map: ArticulationMap) -> bool:
    return any(art.remote_trigger is None for art in articulation_map.articulations)


def count_auto_assigned(articulation_map: ArticulationMap) -> int:
    return sum(
        1
        for art in articulation_map.articulations
        if art.remote_trigger is not None and art.remote_trigger.auto_assigned
    )


def auto_assign_remote_triggers(
    articulation_map: ArticulationMap, start_note: int = 0
) -> ArticulationMap:
    """Give each articulation without a remote trigger the next free note.

    Returns a new map; the input is left untouched even when the notes run out.
    """
    used = {
        art.remote_trigger.data1
        for art in articulation_map.articulations
        if art.remote_trigger is not None and not art.remote_trigger.auto_assigned
    }
    next_note = start_note

    updated: List[Articulation] = []
    for art in articulation_map.articulations:
        if art.remote_trigger is not None:
            updated.append(art)
            continue
        while next_note in used and next_note <= MAX_NOTE:
            next_note += 1
        if next_note > MAX_NOTE:
            raise RemoteTriggersExhausted(
                f"No more MIDI notes available for remote triggers in {articulation_map.name!r}"
            )
        used.add(next_note)
        updated.append(replace(art, remote_trigger=RemoteTrigger(data1=next_note, auto_assigned=True)))
        next_note += 1

    return replace(articulation_map, articulations=tuple(updated))


def common_name(names: Sequence[str]) -> str:
    """Shared prefix of ``names`` without trailing part numbers or type words."""
    if not names:
        return ""
    if len(names) == 1:
        return names[0]

    prefix = names[0]
    for name in names[1:]:
        while prefix and not name.startswith(prefix):
            prefix = prefix[:-1]

    # Strip repeatedly: "Viola Part 1" -> "Viola Part" -> "Viola"
    previous = None
    while previous != prefix:
        previous = prefix
        prefix = _COMMON_NAME_TAIL.sub("", prefix)
    return prefix.strip() or MERGED_FALLBACK_NAME


def merge_maps(maps: Sequence[ArticulationMap], name: str | None = None) -> ArticulationMap:
    """Combine ``maps`` into one; each source plays on the channel of its index."""
    articulations: List[Articulation] = []
    for index, source in enumerate(maps):
        for art in source.articulations:
            articulations.append(replace(art, midi_channel=index, group=index, source_map=source.name))

    return ArticulationMap(
        name=name or common_name([source.name for source in maps]) or MERGED_FALLBACK_NAME,
        file_name="merged",
        articulations=tuple(articulations),
        is_merged=True,
        source_map_names=tuple(source.name for source in maps),
    )


def export_remote_assignments_csv(articulation_map: ArticulationMap) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(["Articulation Name", "Short Name", "Remote Note", "MIDI Note Number", "Auto-Assigned"])
    for art in articulation_map.articulations:
        trigger = art.remote_trigger
        writer.writerow(
            [
                art.name,
                art.short_name or art.name,
                midi_note_name(trigger.data1) if trigger else "N/A",
                trigger.data1 if trigger else -1,
                "Yes" if trigger and trigger.auto_assigned else "No",
            ]
        )
    return buffer.getvalue().rstrip("\n")
