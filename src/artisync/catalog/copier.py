"""Copy map files so their names follow the tracks they are assigned to."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List

from artisync.models import Slot
from artisync.utils.files import find_file
from artisync.utils.text import MAP_EXTENSION

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CopyOutcome:
    track: str
    expected: str
    source: Path | None = None
    destination: Path | None = None
    error: str | None = None

    @property
    def copied(self) -> bool:
        return self.destination is not None


@dataclass(slots=True)
class CopyReport:
    outcomes: List[CopyOutcome] = field(default_factory=list)

    @property
    def copied(self) -> List[CopyOutcome]:
        return [outcome for outcome in self.outcomes if outcome.copied]

    @property
    def not_found(self) -> List[CopyOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.copied]


def _destination_for(dest_dir: Path, label: str, extension: str) -> Path | None:
    """Return the copy target for ``label``, or None if it would leave ``dest_dir``."""
    if not label.strip() or "\0" in label or any(sep in label for sep in ("/", "\\")):
        return None
    destination = dest_dir / f"{label}{extension}"
    if destination.resolve().parent != dest_dir.resolve():
        return None
    return destination


def copy_maps(
    slots: Iterable[Slot],
    source_dir: Path,
    dest_dir: Path,
    *,
    extension: str = MAP_EXTENSION,
) -> CopyReport:
    """Copy ``<map file>.expressionmap`` to ``<track>.expressionmap`` for each slot."""
    dest_dir.mkdir(parents=True, exist_ok=True)
    report = CopyReport()

    for slot in slots:
        expected = f"{slot.map_file_stem}{extension}"
        source = find_file(source_dir, expected)
        if source is None:
            LOGGER.warning("Map file not found for %r: %s", slot.track.label, expected)
            report.outcomes.append(CopyOutcome(track=slot.track.label, expected=expected))
            continue

        destination = _destination_for(dest_dir, slot.track.label, extension)
        if destination is None:
            LOGGER.warning("Track name %r is not a usable file name, skipping", slot.track.label)
            report.outcomes.append(
                CopyOutcome(
                    track=slot.track.label,
                    expected=expected,
                    source=source,
                    error=f"Unsafe file name: {slot.track.label!r}",
                )
            )
            continue

        try:
            shutil.copyfile(source, destination)
        except OSError as exc:
            LOGGER.error("Failed to copy %s to %s: %s", source, destination, exc)
            report.outcomes.append(
                CopyOutcome(track=slot.track.label, expected=expected, source=source, error=str(exc))
            )
            continue

        report.outcomes.append(
            CopyOutcome(track=slot.track.label, expected=expected, source=source, destination=destination)
        )
    return report
