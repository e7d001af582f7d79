"""Label cleanup and tokenising helpers."""

from __future__ import annotations

import re
from typing import List

MAP_EXTENSION = ".expressionmap"

_TOKEN_SPLIT = re.compile(r"[\s\-_/]+")

# Boilerplate around reference labels, e.g. "NICRQ Amati Viola Multi Mic Attribute"
_REFERENCE_SUFFIXES = (
    re.compile(r"\s*Multi\s*Mic\s*Attribute$", re.IGNORECASE),
    re.compile(r"\s*Attribute$", re.IGNORECASE),
)
_REFERENCE_PREFIXES = (
    re.compile(r"^NICRQ\s*", re.IGNORECASE),
    re.compile(r"^VSL\s*", re.IGNORECASE),
)

# Library codes, first match only: "VSPME 31 ", "8DAGE1 ", "NICRQS "
_LIBRARY_PREFIXES = (
    re.compile(r"^[A-Z0-9]+\s+\d+\s+"),
    re.compile(r"^[A-Z0-9]+\s+"),
    re.compile(r"^NICRQS\s+", re.IGNORECASE),
)

# Mic positions and variants, applied in order
_VARIANT_SUFFIXES = (
    re.compile(r" Main Mics [A-D]$", re.IGNORECASE),
    re.compile(r" Spot Mics [A-D]$", re.IGNORECASE),
    re.compile(r" Synth [A-D]$", re.IGNORECASE),
    re.compile(r" CB Multi Mic [A-D]$", re.IGNORECASE),
    re.compile(r" Multi Mic [A-D]$", re.IGNORECASE),
    re.compile(r" -MC -SL$", re.IGNORECASE),
    re.compile(r" Attribute$", re.IGNORECASE),
    re.compile(r" [A-D]$"),
    re.compile(r"\s+~$"),
)


def tokenize(text: str) -> List[str]:
    """Case-fold and split on whitespace, hyphens, underscores and slashes."""
    return [part for part in _TOKEN_SPLIT.split(text.casefold()) if part]


def truncate_utf8(text: str, max_bytes: int, *, encoding: str = "utf-8") -> str:
    """Cut ``text`` so its encoding fits in ``max_bytes`` without splitting a character."""
    encoded = text.encode(encoding)
    if len(encoded) <= max_bytes:
        return text
    return encoded[: max(max_bytes, 0)].decode(encoding, errors="ignore")


def suggest_track_label(reference_label: str) -> str:
    """Derive a track name from a reference label by removing known boilerplate."""
    name = reference_label
    for pattern in _REFERENCE_SUFFIXES + _REFERENCE_PREFIXES:
        name = pattern.sub("", name)
    return name.strip()


def reference_to_file_stem(reference_label: str) -> str:
    """Map an internal reference label to the file name it is stored under.

    "NICRQ Amati Viola Multi Mic Attribute" is shipped as
    "NICRQ Amati Viola Multi Mic A.expressionmap".
    """
    if reference_label.endswith(" Attribute"):
        return reference_label[: -len(" Attribute")] + " A"
    if reference_label.endswith(" Direction"):
        return reference_label[: -len(" Direction")] + " D"
    return reference_label


def strip_map_extension(file_name: str) -> str:
    if file_name.lower().endswith(MAP_EXTENSION):
        return file_name[: -len(MAP_EXTENSION)]
    return file_name


def clean_map_name(file_name: str) -> str:
    """Strip the extension, library code and mic/variant suffixes from a map name.

    "VSPME 31 Bassoon 1 A.expressionmap" becomes "Bassoon 1".
    """
    name = strip_map_extension(file_name)
    for pattern in _LIBRARY_PREFIXES:
        if pattern.search(name):
            name = pattern.sub("", name, count=1)
            break
    for pattern in _VARIANT_SUFFIXES:
        name = pattern.sub("", name)
    return name.strip()
