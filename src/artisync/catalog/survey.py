"""Naming-pattern statistics for a map library."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from artisync.models import ResourceRecord
from artisync.utils.text import clean_map_name

# Some vendor bundles nest their content twice under the same folder name.
WRAPPER_FOLDERS = ("Art Conductor Cubase",)


def folder_parts(record: ResourceRecord) -> List[str]:
    parts = [part for part in record.folder_path.split("/") if part]
    if len(parts) >= 2 and parts[0] == parts[1] and parts[0] in WRAPPER_FOLDERS:
        parts = parts[2:]
    return parts


def vendor_of(record: ResourceRecord) -> str:
    parts = folder_parts(record)
    return parts[0] if parts else ""


@dataclass(slots=True)
class SurveyReport:
    total: int = 0
    vendors: List[Tuple[str, int]] = field(default_factory=list)
    conflicts: Dict[str, List[ResourceRecord]] = field(default_factory=dict)
    unique_names: int = 0
    min_depth: int = 0
    max_depth: int = 0
    average_depth: float = 0.0


def survey_catalog(records: Sequence[ResourceRecord]) -> SurveyReport:
    """Count maps per vendor and find names that collide once cleaned."""
    report = SurveyReport(total=len(records))
    if not records:
        return report

    vendors = Counter(vendor_of(record) for record in records)
    report.vendors = vendors.most_common()

    by_name: Dict[str, List[ResourceRecord]] = {}
    for record in records:
        by_name.setdefault(clean_map_name(record.display_name), []).append(record)
    report.unique_names = len(by_name)
    report.conflicts = {
        name: items
        for name, items in sorted(by_name.items(), key=lambda item: (-len(item[1]), item[0]))
        if len(items) > 1
    }

    depths = [len(record.storage_path.split("/")) for record in records]
    report.min_depth = min(depths)
    report.max_depth = max(depths)
    report.average_depth = sum(depths) / len(depths)
    return report
