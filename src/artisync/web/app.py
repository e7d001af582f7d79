"""FastAPI application exposing the map catalog, matcher, map merging and MIDI label channel."""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, List, Tuple

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel, Field, ValidationError

from artisync.catalog.maps import (
    Articulation,
    ArticulationMap,
    RemoteTrigger,
    RemoteTriggersExhausted,
    auto_assign_remote_triggers,
    count_auto_assigned,
    export_remote_assignments_csv,
    merge_maps,
    midi_note_name,
)
from artisync.catalog.matcher import NameMatcher
from artisync.catalog.storage import CatalogError, MapCatalog
from artisync.config import AppConfig
from artisync.container.analysis import ContainerReadError, analyze_file
from artisync.container.extractors import ScanParameters
from artisync.models import MatchCandidate, ResourceRecord
from artisync.transport.label import ControlMessage, LabelDecoder, LabelEncoder

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="ArtiSync Web", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Only the configured library is cached; folder overrides are scanned per request.
_catalog: Tuple[Path, MapCatalog] | None = None
_catalog_lock = threading.Lock()


class MatchPayload(BaseModel):
    query: str
    maps: Path | None = None
    top: int = 5


class AnalyzePayload(BaseModel):
    path: Path
    preset: str | None = None


class MidiPayload(BaseModel):
    status: int
    data1: int
    data2: int


class ArticulationPayload(BaseModel):
    name: str
    short_name: str = ""
    remote_note: int | None = Field(default=None, ge=0, le=127)


class MapPayload(BaseModel):
    name: str
    articulations: List[ArticulationPayload] = Field(default_factory=list)


class MergePayload(BaseModel):
    maps: List[MapPayload]
    name: str | None = None
    assign_remotes: bool = False
    start_note: int = Field(default=0, ge=0, le=127)


def _configured_root() -> Path:
    return AppConfig().resolve_maps_dir(Path.cwd())


def _resolve_maps_dir(maps: Path | None) -> Path:
    """Resolve a map folder override, which must lie inside the configured library."""
    root = _configured_root()
    if maps is None:
        return root

    if "\0" in str(maps):
        raise HTTPException(status_code=400, detail="Invalid path: contains null byte")
    real_root = os.path.realpath(root)
    real_path = os.path.realpath(root / maps.expanduser())
    if not (real_path + os.sep).startswith(real_root + os.sep):
        raise HTTPException(
            status_code=403,
            detail="Access denied: map folder is outside the configured library",
        )
    validated_path = Path(real_path)
    if not validated_path.is_dir():
        raise HTTPException(status_code=404, detail=f"Map folder not found: {maps}")
    return validated_path


def _get_catalog(maps: Path | None = None) -> MapCatalog:
    global _catalog

    extension = AppConfig().map_extension
    if maps is not None:
        return MapCatalog(_resolve_maps_dir(maps), extension=extension)

    root = _configured_root()
    with _catalog_lock:
        if _catalog is None or _catalog[0] != root:
            _catalog = (root, MapCatalog(root, extension=extension))
        return _catalog[1]


def _records(catalog: MapCatalog) -> List[ResourceRecord]:
    try:
        return catalog.list()
    except CatalogError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


def _record_dict(record: ResourceRecord) -> Dict[str, str]:
    return {
        "name": record.display_name,
        "path": record.storage_path,
        "folder": record.folder_path,
    }


def _candidate_dict(candidate: MatchCandidate) -> Dict[str, Any]:
    return {
        **_record_dict(candidate.resource),
        "score": candidate.score,
        "strategy": candidate.strategy,
        "matched_terms": list(candidate.matched_terms),
    }


def _articulation_map(payload: MapPayload) -> ArticulationMap:
    return ArticulationMap(
        name=payload.name,
        articulations=tuple(
            Articulation(
                name=item.name,
                short_name=item.short_name,
                remote_trigger=RemoteTrigger(data1=item.remote_note)
                if item.remote_note is not None
                else None,
            )
            for item in payload.articulations
        ),
    )


def _articulation_dict(art: Articulation) -> Dict[str, Any]:
    trigger = art.remote_trigger
    return {
        "name": art.name,
        "short_name": art.short_name,
        "source_map": art.source_map,
        "midi_channel": art.midi_channel,
        "group": art.group,
        "remote_note": trigger.data1 if trigger else None,
        "remote_note_name": midi_note_name(trigger.data1) if trigger else None,
        "auto_assigned": bool(trigger and trigger.auto_assigned),
    }


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.get("/config")
async def get_config() -> dict[str, Any]:
    config = AppConfig()
    return {
        "maps_dir": str(config.resolve_maps_dir(Path.cwd())),
        "map_extension": config.map_extension,
        "scan_preset": config.scan_preset,
        "system_tracks": list(config.system_tracks),
        "match_threshold": config.match_threshold,
    }


@app.get("/maps")
async def list_maps(maps: Path | None = None, refresh: bool = False) -> dict[str, Any]:
    """List every map in the catalog, flat and grouped by folder."""
    catalog = _get_catalog(maps)
    if refresh:
        try:
            catalog.refresh()
        except CatalogError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
    records = _records(catalog)
    grouped = catalog.grouped()
    return {
        "count": len(records),
        "maps": [_record_dict(record) for record in records],
        "grouped": {
            folder: [_record_dict(record) for record in items] for folder, items in grouped.items()
        },
    }


@app.get("/maps/file")
async def read_map(path: str, maps: Path | None = None) -> Response:
    catalog = _get_catalog(maps)
    try:
        target = catalog.resolve(path)
    except CatalogError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not target.is_file():
        raise HTTPException(status_code=404, detail=f"Map not found: {path}")
    try:
        content = catalog.read(path)
    except CatalogError as exc:  # pragma: no cover - defensive
        LOGGER.error("Unable to read %s: %s", path, exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return Response(content=content, media_type="application/xml")


@app.post("/match")
async def match_track(payload: MatchPayload) -> dict[str, Any]:
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Empty query")

    top = max(1, min(payload.top, 50))
    records = _records(_get_catalog(payload.maps))
    matcher = NameMatcher(threshold=AppConfig().match_threshold)

    best = matcher.match_candidate(query, records)
    ranked = [c for c in matcher.rank(query, records, limit=top) if c.score > 0]
    return {
        "query": query,
        "match": _candidate_dict(best) if best is not None else None,
        "candidates": [_candidate_dict(candidate) for candidate in ranked],
    }


@app.post("/maps/merge")
async def merge_articulation_maps(payload: MergePayload) -> dict[str, Any]:
    """Merge maps so each source plays on its own MIDI channel."""
    if not payload.maps:
        raise HTTPException(status_code=400, detail="No maps to merge")

    merged = merge_maps([_articulation_map(item) for item in payload.maps], name=payload.name)
    if payload.assign_remotes:
        try:
            merged = auto_assign_remote_triggers(merged, start_note=payload.start_note)
        except RemoteTriggersExhausted as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc

    LOGGER.info("Merged %d maps into %r", len(merged.source_map_names), merged.name)
    return {
        "name": merged.name,
        "source_maps": list(merged.source_map_names),
        "articulations": [_articulation_dict(art) for art in merged.articulations],
        "auto_assigned": count_auto_assigned(merged),
        "csv": export_remote_assignments_csv(merged),
    }


@app.post("/analyze")
async def analyze_project(payload: AnalyzePayload) -> dict[str, Any]:
    path = payload.path.expanduser()
    if "\0" in str(path):
        raise HTTPException(status_code=400, detail="Invalid path: contains null byte")
    if not path.is_file():
        raise HTTPException(status_code=404, detail=f"File not found: {path}")

    try:
        params = ScanParameters.preset(payload.preset or AppConfig().scan_preset)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    try:
        report = await asyncio.to_thread(
            analyze_file, path, params=params, system_tracks=AppConfig().system_tracks
        )
    except ContainerReadError as exc:
        LOGGER.error("Analysis failed for %s: %s", path, exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return report.to_dict()


@app.websocket("/ws")
async def label_channel(websocket: WebSocket) -> None:
    """Turn incoming MIDI label frames into map lookups.

    Each completed track label is answered with the resolved map and the
    control messages that announce the map name back to the host.
    """
    await websocket.accept()
    decoder = LabelDecoder()
    encoder = LabelEncoder()
    matcher = NameMatcher(threshold=AppConfig().match_threshold)
    catalog = _get_catalog()
    try:
        records = catalog.list()
    except CatalogError as exc:
        LOGGER.warning("Label channel has no catalog: %s", exc)
        records = []

    try:
        while True:
            message = await websocket.receive_json()
            kind = message.get("type") if isinstance(message, dict) else None
            if kind == "ping":
                await websocket.send_json({"type": "pong"})
                continue
            if kind != "midi":
                await websocket.send_json({"type": "error", "detail": f"Unknown message type: {kind}"})
                continue

            try:
                midi = MidiPayload.model_validate(message)
            except ValidationError as exc:
                await websocket.send_json({"type": "error", "detail": str(exc)})
                continue

            control = ControlMessage.from_midi(midi.status, midi.data1, midi.data2)
            if control is None:
                continue
            label = decoder.feed(control)
            if label is None:
                continue

            best = matcher.match_candidate(label, records)
            LOGGER.info("Track %r -> %s", label, best.resource.storage_path if best else None)
            frames = encoder.encode(best.resource.display_name) if best is not None else []
            await websocket.send_json(
                {
                    "type": "track",
                    "label": label,
                    "match": _candidate_dict(best) if best is not None else None,
                    "frames": [list(frame.to_midi()) for frame in frames],
                }
            )
    except WebSocketDisconnect:
        LOGGER.info("Label channel closed")
