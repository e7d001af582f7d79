"""Shared fixtures that synthesise project containers."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, List

import pytest

NAME_TAG = b"Name\x00\x00\x08"
MARKER = b"All MIDI Inputs\x00"


def name_field(label: str) -> bytes:
    """Encode a track name field the way projects store it."""
    raw = label.encode("utf-8")
    stored = len(raw) + 1 + 4
    return NAME_TAG + stored.to_bytes(4, "big") + raw + b"\x00"


def reference_block(label: str, *, gap: int = 24) -> bytes:
    """Encode a marker pair followed by a flagged map reference label."""
    raw = label.encode("utf-8")
    first = MARKER + b"\x00" * (gap - len(MARKER))
    flag = b"\x01\x00\x00\x00" + bytes([len(raw) + 4])
    return first + MARKER + b"\x00\x00" + flag + raw + b"\x00"


def padding(size: int) -> bytes:
    return b"\xff" * size


class ContainerBuilder:
    """Concatenate name fields, reference blocks and filler bytes."""

    def __init__(self) -> None:
        self._parts: List[bytes] = []

    def name(self, label: str) -> "ContainerBuilder":
        self._parts.append(name_field(label))
        return self

    def reference(self, label: str, *, gap: int = 24) -> "ContainerBuilder":
        self._parts.append(reference_block(label, gap=gap))
        return self

    def pad(self, size: int) -> "ContainerBuilder":
        self._parts.append(padding(size))
        return self

    def raw(self, data: bytes) -> "ContainerBuilder":
        self._parts.append(data)
        return self

    def build(self) -> bytes:
        return b"".join(self._parts)


@pytest.fixture
def builder() -> Callable[[], ContainerBuilder]:
    return ContainerBuilder


@pytest.fixture
def violin_container() -> bytes:
    """Three tracks, two of them bound to a map reference each."""
    return (
        ContainerBuilder()
        .pad(64)
        .name("Stereo Out")
        .pad(128)
        .name("Stradivari Violin")
        .pad(2_000)
        .reference("NICRQ Stradivari Violin Multi Mic Attribute")
        .pad(30_000)
        .name("Guarneri Violin")
        .pad(2_000)
        .reference("NICRQ Guarneri Violin Multi Mic Attribute")
        .pad(256)
        .build()
    )


@pytest.fixture
def container_file(tmp_path: Path, violin_container: bytes) -> Path:
    path = tmp_path / "project.cpr"
    path.write_bytes(violin_container)
    return path


@pytest.fixture
def maps_dir(tmp_path: Path) -> Path:
    """Small map library laid out by vendor and family."""
    root = tmp_path / "expression-maps"
    files = [
        "VSL/Prime/Wood/VSPME 01 Piccolo Flute A.expressionmap",
        "VSL/Prime/Wood/VSPME 31 Bassoon 1 A.expressionmap",
        "Spitfire/Strings/Violins 1.expressionmap",
        "Spitfire/Woodwinds/Oboe 2 A.expressionmap",
        "Spitfire/Woodwinds/Oboe 1 A.expressionmap",
        "8Dio/8DAGE1 Bassoon 1 A.expressionmap",
        "Basic Piano.expressionmap",
    ]
    for name in files:
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"<InstrumentMap name=\"{path.stem}\"/>", encoding="utf-8")
    return root
