"""Command line interface for ArtiSync."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import typer
from rich.console import Console
from rich.table import Table

from artisync.catalog.copier import copy_maps
from artisync.catalog.matcher import NameMatcher
from artisync.catalog.storage import CatalogError, MapCatalog
from artisync.catalog.survey import survey_catalog
from artisync.config import MAPS_DIR_ENV, AppConfig
from artisync.container.analysis import (
    ContainerReadError,
    ContainerReport,
    analyze_container,
    read_container,
)
from artisync.container.extractors import ScanParameters
from artisync.container.patcher import ContainerEditor
from artisync.web.app import app as web_app


console = Console()
app = typer.Typer(help="ArtiSync - keep DAW tracks and articulation maps in sync")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _parse_pairs(values: Optional[List[str]], option: str) -> List[Tuple[str, str]]:
    pairs = []
    for value in values or []:
        old, sep, new = value.partition("=")
        if not sep or not old:
            raise typer.BadParameter(f"Expected OLD=NEW, got {value!r}", param_hint=option)
        pairs.append((old, new))
    return pairs


def _load(container: Path, preset: str) -> Tuple[bytes, ContainerReport]:
    if not container.exists():
        raise typer.BadParameter(f"Container not found: {container}")
    try:
        params = ScanParameters.preset(preset)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--preset") from exc

    try:
        buffer = read_container(container)
    except ContainerReadError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    report = analyze_container(
        buffer, params=params, system_tracks=AppConfig().system_tracks, path=container
    )
    if report.is_empty:
        console.print("[yellow]No tracks or map references detected in this container.[/yellow]")
        raise typer.Exit(code=1)
    return buffer, report


def _open_catalog(maps: Optional[Path]) -> MapCatalog:
    config = AppConfig(maps_dir=maps if maps is not None else AppConfig().maps_dir)
    catalog = MapCatalog(config.resolve_maps_dir(Path.cwd()), extension=config.map_extension)
    try:
        catalog.refresh()
    except CatalogError as exc:
        raise typer.BadParameter(str(exc), param_hint="--maps") from exc
    return catalog


@app.command()
def analyze(
    container: Path = typer.Argument(..., help="Project file to analyze."),
    preset: str = typer.Option(AppConfig().scan_preset, help="Scan parameter preset"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Show tracks, map references and how they pair up."""
    _setup_logging(verbose)
    _, report = _load(container, preset)

    console.print(f"File: [bold]{container}[/bold] ({report.size / 1024 / 1024:.2f} MB)")
    console.print(
        f"Found {len(report.tracks)} unique tracks and {len(report.references)} map references"
    )
    console.print(f"Matched {len(report.slots)} track -> map pairs")

    if report.slots:
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("#")
        table.add_column("Track")
        table.add_column("Map reference")
        table.add_column("Map file")
        table.add_column("Score")
        for slot in report.slots:
            table.add_row(
                str(slot.index),
                slot.track.label,
                slot.reference.label,
                slot.map_file_stem,
                str(slot.score),
            )
        console.print(table)

    if report.unmatched_references:
        console.print("[yellow]Map references with no matching track:[/yellow]")
        for label in report.unmatched_references:
            console.print(f"  - {label}")
    if report.unmatched_tracks:
        console.print("[yellow]Tracks with no matching map reference:[/yellow]")
        for label in report.unmatched_tracks:
            console.print(f"  - {label}")


@app.command("copy-maps")
def copy_maps_command(
    container: Path = typer.Argument(..., help="Project file to analyze."),
    source: Path = typer.Argument(..., help="Folder holding the original map files."),
    dest: Path = typer.Argument(..., help="Folder receiving track-named copies."),
    preset: str = typer.Option(AppConfig().scan_preset, help="Scan parameter preset"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Copy each assigned map file under the name of its track."""
    _setup_logging(verbose)
    if not source.is_dir():
        raise typer.BadParameter(f"Source folder not found: {source}")
    _, report = _load(container, preset)

    if not report.slots:
        console.print("[yellow]No track/map pairs found; nothing to copy.[/yellow]")
        raise typer.Exit(code=1)

    result = copy_maps(report.slots, source, dest, extension=AppConfig().map_extension)
    for outcome in result.outcomes:
        if outcome.copied:
            console.print(f"[green]Copied:[/green] {outcome.destination.name}")
        elif outcome.error:
            console.print(f"[red]Failed:[/red] {outcome.expected} ({outcome.error})")
        else:
            console.print(f"[red]Not found:[/red] {outcome.expected}")
    console.print(f"{len(result.copied)} files copied, {len(result.not_found)} not found")


@app.command()
def rename(
    container: Path = typer.Argument(..., help="Project file to patch."),
    output: Path = typer.Argument(..., help="Where to write the patched project."),
    track: Optional[List[str]] = typer.Option(None, "--track", help="Track rename as OLD=NEW"),
    reference: Optional[List[str]] = typer.Option(
        None, "--reference", help="Map reference rename as OLD=NEW"
    ),
    suggest: bool = typer.Option(
        False, "--suggest", help="Rename matched tracks after their map reference"
    ),
    preset: str = typer.Option(AppConfig().scan_preset, help="Scan parameter preset"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Rewrite track and map reference labels without resizing the project."""
    _setup_logging(verbose)
    track_pairs = _parse_pairs(track, "--track")
    reference_pairs = _parse_pairs(reference, "--reference")
    if not (track_pairs or reference_pairs or suggest):
        raise typer.BadParameter("Nothing to rename; use --track, --reference or --suggest")
    if output.resolve() == container.resolve():
        raise typer.BadParameter("Output must differ from the input container")

    buffer, report = _load(container, preset)
    slots_by_track = {slot.track.label: slot for slot in report.slots}
    slots_by_reference = {slot.reference.label: slot for slot in report.slots}
    known_tracks = {item.label for item in report.tracks}
    known_references = {item.label for item in report.references}

    if suggest:
        for slot in report.slots:
            slot.new_track_label = slot.suggested_track_label

    loose_tracks: Dict[str, str] = {}
    loose_references: Dict[str, str] = {}
    for old, new in reference_pairs:
        if old in slots_by_reference:
            slots_by_reference[old].new_reference_label = new
        elif old in known_references:
            loose_references[old] = new
        else:
            raise typer.BadParameter(f"Map reference not found: {old}", param_hint="--reference")
    for old, new in track_pairs:
        if old in slots_by_track:
            slots_by_track[old].new_track_label = new
        elif old in known_tracks:
            loose_tracks[old] = new
        else:
            raise typer.BadParameter(f"Track not found: {old}", param_hint="--track")

    editor = ContainerEditor(buffer)
    result = editor.apply(report.slots, references=loose_references, tracks=loose_tracks)

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Kind")
    table.add_column("Old")
    table.add_column("New")
    table.add_column("Occurrences")
    for item in result.replacements:
        table.add_row(item.kind.value, item.old_label, item.new_label, str(item.count))
    console.print(table)

    missed = [item.old_label for item in result.replacements if item.count == 0]
    if missed:
        console.print(f"[red]No occurrences left for:[/red] {', '.join(missed)}")
        console.print("Nothing was written.")
        raise typer.Exit(code=1)

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(editor.buffer)
    console.print(f"Wrote [bold]{output}[/bold] ({len(editor.buffer)} bytes)")


@app.command()
def match(
    query: str = typer.Argument(..., help="Track name to resolve"),
    maps: Path = typer.Option(None, "--maps", help="Folder holding map files"),
    top: int = typer.Option(5, help="Number of candidates to display"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Resolve a track name to a stored articulation map."""
    _setup_logging(verbose)
    catalog = _open_catalog(maps)
    records = catalog.list()
    matcher = NameMatcher(threshold=AppConfig().match_threshold)

    ranked = [candidate for candidate in matcher.rank(query, records, limit=top) if candidate.score > 0]
    if ranked:
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Score")
        table.add_column("Map")
        table.add_column("Matched terms")
        for candidate in ranked:
            table.add_row(
                str(candidate.score),
                candidate.resource.storage_path,
                ", ".join(candidate.matched_terms),
            )
        console.print(table)

    best = matcher.match_candidate(query, records)
    if best is None:
        console.print("[yellow]No confident match found.[/yellow]")
        return
    console.print(f"Resolved ({best.strategy}): [bold]{best.resource.storage_path}[/bold]")


@app.command()
def survey(
    maps: Path = typer.Option(None, "--maps", help="Folder holding map files"),
    top: int = typer.Option(10, help="Number of vendors and conflicts to display"),
) -> None:
    """Summarise vendors and name collisions in a map library."""
    catalog = _open_catalog(maps)
    report = survey_catalog(catalog.list())
    if not report.total:
        console.print("[yellow]No map files found.[/yellow]")
        return

    console.print(f"Total maps: {report.total}")
    vendors = Table(show_header=True, header_style="bold magenta")
    vendors.add_column("Vendor")
    vendors.add_column("Maps")
    for vendor, count in report.vendors[:top]:
        vendors.add_row(vendor or "(root)", str(count))
    console.print(vendors)

    console.print(
        f"Unique names after cleanup: {report.unique_names}, conflicts: {len(report.conflicts)}"
    )
    for name, records in list(report.conflicts.items())[:top]:
        console.print(f'  "{name}" ({len(records)} files)')
    console.print(
        f"Folder depth: min {report.min_depth}, max {report.max_depth}, "
        f"average {report.average_depth:.1f}"
    )


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(AppConfig().http_port, help="Server port"),
    maps: Path = typer.Option(None, "--maps", help="Folder holding map files"),
) -> None:
    """Start the web service."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - defensive
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    config = AppConfig(maps_dir=maps if maps is not None else AppConfig().maps_dir)
    resolved = config.resolve_maps_dir(Path.cwd())
    if not resolved.is_dir():
        console.print("[yellow]Warning: map folder not found, lookups will fail.[/yellow]")
    os.environ[MAPS_DIR_ENV] = str(resolved)

    console.print(f"Starting web service on http://{host}:{port} (maps: {resolved})")
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
