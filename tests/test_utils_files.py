"""Tests for file utility functions."""

from __future__ import annotations

from pathlib import Path

from artisync.utils.files import find_file, iter_map_paths


class TestIterMapPaths:
    """Test iter_map_paths function."""

    def test_single_file(self, tmp_path: Path) -> None:
        """Should yield a single map file."""
        path = tmp_path / "Oboe.expressionmap"
        path.write_text("<map/>")

        assert list(iter_map_paths([path])) == [path]

    def test_nested_directories(self, tmp_path: Path) -> None:
        """Should find maps in nested directories and skip other files."""
        subdir = tmp_path / "Woodwinds"
        subdir.mkdir()
        (tmp_path / "Piano.expressionmap").write_text("root")
        (subdir / "Oboe.expressionmap").write_text("nested")
        (subdir / "readme.txt").write_text("text")

        names = {p.name for p in iter_map_paths([tmp_path])}

        assert names == {"Piano.expressionmap", "Oboe.expressionmap"}

    def test_case_insensitive_extension(self, tmp_path: Path) -> None:
        (tmp_path / "Harp.ExpressionMap").write_text("<map/>")
        assert len(list(iter_map_paths([tmp_path]))) == 1

    def test_custom_extension(self, tmp_path: Path) -> None:
        (tmp_path / "Harp.xml").write_text("<map/>")
        (tmp_path / "Harp.expressionmap").write_text("<map/>")
        assert [p.name for p in iter_map_paths([tmp_path], extension=".xml")] == ["Harp.xml"]

    def test_missing_path(self, tmp_path: Path) -> None:
        assert list(iter_map_paths([tmp_path / "missing"])) == []


class TestFindFile:
    """Test find_file function."""

    def test_prefers_top_level(self, tmp_path: Path) -> None:
        (tmp_path / "deep").mkdir()
        (tmp_path / "deep" / "Oboe.expressionmap").write_text("deep")
        (tmp_path / "Oboe.expressionmap").write_text("top")

        assert find_file(tmp_path, "Oboe.expressionmap") == tmp_path / "Oboe.expressionmap"

    def test_searches_recursively(self, tmp_path: Path) -> None:
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        (nested / "Oboe.expressionmap").write_text("deep")

        assert find_file(tmp_path, "Oboe.expressionmap") == nested / "Oboe.expressionmap"

    def test_not_found(self, tmp_path: Path) -> None:
        assert find_file(tmp_path, "Oboe.expressionmap") is None

    def test_rejects_path_components(self, tmp_path: Path) -> None:
        root = tmp_path / "maps"
        root.mkdir()
        (tmp_path / "Outside.expressionmap").write_text("outside")

        assert find_file(root, "../Outside.expressionmap") is None
