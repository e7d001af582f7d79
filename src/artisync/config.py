"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from artisync.catalog.matcher import MIN_CONFIDENT_SCORE
from artisync.container.analysis import SYSTEM_TRACKS
from artisync.container.extractors import ScanParameters
from artisync.utils.text import MAP_EXTENSION

MAPS_DIR_ENV = "ARTISYNC_MAPS_DIR"


def _get_default_maps_dir() -> Path:
    """Get the default map folder based on environment and working directory."""
    override = os.environ.get(MAPS_DIR_ENV)
    if override:
        return Path(override).expanduser()

    # When running from a checkout, prefer a local expression-maps/ folder
    local_dir = Path("expression-maps")
    if local_dir.exists():
        return local_dir

    return Path.home() / "Documents" / "ArtiSync" / "expression-maps"


@dataclass(slots=True)
class AppConfig:
    maps_dir: Path | None = None
    map_extension: str = MAP_EXTENSION
    scan_preset: str = "template"
    system_tracks: Tuple[str, ...] = SYSTEM_TRACKS
    match_threshold: int = MIN_CONFIDENT_SCORE
    http_port: int = 7100

    def __post_init__(self) -> None:
        if self.maps_dir is None:
            self.maps_dir = _get_default_maps_dir()

    def resolve_maps_dir(self, base_dir: Path | None = None) -> Path:
        if self.maps_dir is None:
            self.maps_dir = _get_default_maps_dir()
        if Path(self.maps_dir).is_absolute() or base_dir is None:
            return Path(self.maps_dir)
        return base_dir / self.maps_dir

    def scan_parameters(self) -> ScanParameters:
        return ScanParameters.preset(self.scan_preset)
