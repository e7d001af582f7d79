"""Tests for CLI commands."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest
import typer
from typer.testing import CliRunner

from artisync.cli import _parse_pairs, _setup_logging, app
from artisync.config import MAPS_DIR_ENV
from artisync.container.analysis import ContainerReadError


runner = CliRunner()


class TestSetupLogging:
    """Tests for _setup_logging helper."""

    def test_setup_logging_verbose(self) -> None:
        """Verbose mode sets DEBUG level."""
        with patch("artisync.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=True)
            mock_config.assert_called_once()
            assert mock_config.call_args[1]["level"] == logging.DEBUG

    def test_setup_logging_normal(self) -> None:
        """Normal mode sets INFO level."""
        with patch("artisync.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=False)
            assert mock_config.call_args[1]["level"] == logging.INFO


class TestParsePairs:
    """Tests for OLD=NEW option parsing."""

    def test_pairs(self) -> None:
        assert _parse_pairs(["Vln=Violin", "A=B=C"], "--track") == [("Vln", "Violin"), ("A", "B=C")]

    def test_none(self) -> None:
        assert _parse_pairs(None, "--track") == []

    @pytest.mark.parametrize("value", ["NoSeparator", "=Orphan"])
    def test_malformed(self, value: str) -> None:
        with pytest.raises(typer.BadParameter):
            _parse_pairs([value], "--track")


class TestAnalyzeCommand:
    """Tests for the analyze command."""

    def test_analyze_reports_slots(self, container_file: Path) -> None:
        result = runner.invoke(app, ["analyze", str(container_file)])
        assert result.exit_code == 0
        assert "Found 3 unique tracks and 2 map references" in result.stdout
        assert "Matched 2 track -> map pairs" in result.stdout

    def test_analyze_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["analyze", str(tmp_path / "missing.cpr")])
        assert result.exit_code == 2

    def test_analyze_unknown_preset(self, container_file: Path) -> None:
        result = runner.invoke(app, ["analyze", str(container_file), "--preset", "nope"])
        assert result.exit_code == 2

    def test_analyze_empty_container(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.cpr"
        path.write_bytes(b"\x00" * 1024)
        result = runner.invoke(app, ["analyze", str(path)])
        assert result.exit_code == 1
        assert "No tracks or map references" in result.stdout

    def test_analyze_unreadable(self, container_file: Path) -> None:
        with patch("artisync.cli.read_container", side_effect=ContainerReadError("denied")):
            result = runner.invoke(app, ["analyze", str(container_file)])
        assert result.exit_code == 1
        assert "denied" in result.stdout

    def test_analyze_verbose(self, tmp_path: Path, builder) -> None:
        path = tmp_path / "orphans.cpr"
        path.write_bytes(builder().name("Celesta").pad(10).reference("Harp Sustain").build())
        result = runner.invoke(app, ["analyze", str(path), "-v"])
        assert result.exit_code == 0
        assert "Matched 1 track -> map pairs" in result.stdout


class TestCopyMapsCommand:
    """Tests for the copy-maps command."""

    def test_copy_maps(self, tmp_path: Path, container_file: Path) -> None:
        source = tmp_path / "source"
        source.mkdir()
        (source / "NICRQ Stradivari Violin Multi Mic A.expressionmap").write_text("strad")
        dest = tmp_path / "dest"

        result = runner.invoke(app, ["copy-maps", str(container_file), str(source), str(dest)])

        assert result.exit_code == 0
        assert "1 files copied, 1 not found" in result.stdout
        assert (dest / "Stradivari Violin.expressionmap").exists()

    def test_copy_maps_missing_source(self, tmp_path: Path, container_file: Path) -> None:
        result = runner.invoke(
            app, ["copy-maps", str(container_file), str(tmp_path / "nope"), str(tmp_path / "dest")]
        )
        assert result.exit_code == 2

    def test_copy_maps_without_slots(self, tmp_path: Path, builder) -> None:
        path = tmp_path / "tracks-only.cpr"
        path.write_bytes(builder().name("Celesta").build())
        source = tmp_path / "source"
        source.mkdir()
        result = runner.invoke(app, ["copy-maps", str(path), str(source), str(tmp_path / "dest")])
        assert result.exit_code == 1
        assert "nothing to copy" in result.stdout


class TestRenameCommand:
    """Tests for the rename command."""

    def test_rename_track(self, tmp_path: Path, container_file: Path) -> None:
        output = tmp_path / "out" / "renamed.cpr"

        result = runner.invoke(
            app, ["rename", str(container_file), str(output), "--track", "Stradivari Violin=Violin I"]
        )

        assert result.exit_code == 0
        data = output.read_bytes()
        assert len(data) == container_file.stat().st_size
        assert b"Violin I" in data
        assert b"Stradivari Violin" not in data

    def test_rename_reference_and_loose_track(self, tmp_path: Path, container_file: Path) -> None:
        output = tmp_path / "renamed.cpr"

        result = runner.invoke(
            app,
            [
                "rename",
                str(container_file),
                str(output),
                "--reference",
                "NICRQ Guarneri Violin Multi Mic Attribute=Guarneri Legato",
                "--track",
                "Stereo Out=Main Bus",
            ],
        )

        assert result.exit_code == 0
        data = output.read_bytes()
        assert b"Guarneri Legato" in data
        assert b"Main Bus" in data
        assert b"Stereo Out" not in data

    def test_rename_unbound_reference_embedding_renamed_track(self, tmp_path: Path, builder) -> None:
        """An unbound reference is rewritten before the track it embeds."""
        path = tmp_path / "shared.cpr"
        path.write_bytes(
            builder()
            .name("Stradivari Violin")
            .pad(100)
            .reference("NICRQ Stradivari Violin Multi Mic Attribute")
            .pad(100)
            .reference("NICRQ Stradivari Violin Legato Attribute")
            .build()
        )
        output = tmp_path / "renamed.cpr"

        result = runner.invoke(
            app,
            [
                "rename",
                str(path),
                str(output),
                "--track",
                "Stradivari Violin=Violin I",
                "--reference",
                "NICRQ Stradivari Violin Legato Attribute=Custom Legato Map Attribute",
            ],
        )

        assert result.exit_code == 0
        data = output.read_bytes()
        assert len(data) == path.stat().st_size
        assert b"Custom Legato Map Attribute" in data
        assert b"Stradivari Violin" not in data
        assert b"NICRQ Violin I" in data

    def test_rename_with_no_occurrences_fails(self, tmp_path: Path, container_file: Path) -> None:
        output = tmp_path / "renamed.cpr"

        with patch(
            "artisync.container.patcher.rewrite",
            side_effect=lambda buffer, old, new, encoding: (bytes(buffer), 0),
        ):
            result = runner.invoke(
                app, ["rename", str(container_file), str(output), "--track", "Stereo Out=Main Bus"]
            )

        assert result.exit_code == 1
        assert "No occurrences left for" in result.stdout
        assert not output.exists()

    def test_rename_suggest(self, tmp_path: Path, container_file: Path) -> None:
        output = tmp_path / "renamed.cpr"
        result = runner.invoke(app, ["rename", str(container_file), str(output), "--suggest"])
        assert result.exit_code == 0
        assert output.read_bytes() == container_file.read_bytes()

    def test_rename_unknown_track(self, tmp_path: Path, container_file: Path) -> None:
        result = runner.invoke(
            app, ["rename", str(container_file), str(tmp_path / "o.cpr"), "--track", "Banjo=Guitar"]
        )
        assert result.exit_code == 2
        assert not (tmp_path / "o.cpr").exists()

    def test_rename_requires_changes(self, tmp_path: Path, container_file: Path) -> None:
        result = runner.invoke(app, ["rename", str(container_file), str(tmp_path / "o.cpr")])
        assert result.exit_code == 2

    def test_rename_refuses_in_place(self, container_file: Path) -> None:
        result = runner.invoke(
            app, ["rename", str(container_file), str(container_file), "--suggest"]
        )
        assert result.exit_code == 2


class TestMatchCommand:
    """Tests for the match command."""

    def test_match_resolves(self, maps_dir: Path) -> None:
        result = runner.invoke(app, ["match", "Vsl Pr Piccolo", "--maps", str(maps_dir)])
        assert result.exit_code == 0
        assert "Resolved (keywords)" in result.stdout

    def test_match_no_confident_match(self, maps_dir: Path) -> None:
        result = runner.invoke(app, ["match", "Accordion", "--maps", str(maps_dir)])
        assert result.exit_code == 0
        assert "No confident match" in result.stdout

    def test_match_missing_folder(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["match", "Oboe", "--maps", str(tmp_path / "nope")])
        assert result.exit_code == 2


class TestSurveyCommand:
    """Tests for the survey command."""

    def test_survey(self, maps_dir: Path) -> None:
        result = runner.invoke(app, ["survey", "--maps", str(maps_dir)])
        assert result.exit_code == 0
        assert "Total maps: 7" in result.stdout
        assert "Unique names after cleanup: 6, conflicts: 1" in result.stdout

    def test_survey_empty_library(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["survey", "--maps", str(tmp_path)])
        assert result.exit_code == 0
        assert "No map files found" in result.stdout


class TestWebCommand:
    """Tests for the web command."""

    def test_web_starts_server(
        self, maps_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Runs uvicorn with the given host and port."""
        monkeypatch.setenv(MAPS_DIR_ENV, "unused")
        with patch("uvicorn.run") as mock_uvicorn_run:
            result = runner.invoke(
                app, ["web", "--host", "0.0.0.0", "--port", "9000", "--maps", str(maps_dir)]
            )
            assert result.exit_code == 0
            mock_uvicorn_run.assert_called_once()
            call_kwargs = mock_uvicorn_run.call_args[1]
            assert call_kwargs["host"] == "0.0.0.0"
            assert call_kwargs["port"] == 9000
        assert os.environ[MAPS_DIR_ENV] == str(maps_dir)

    def test_web_warns_missing_folder(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(MAPS_DIR_ENV, "unused")
        with patch("uvicorn.run"):
            result = runner.invoke(app, ["web", "--maps", str(tmp_path / "missing")])
            assert result.exit_code == 0
            assert "map folder not found" in result.stdout.lower()
