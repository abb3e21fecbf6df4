#!/usr/bin/env python3
"""
Tests for the command line interface and the maintenance tools.
"""

from __future__ import annotations

import json

import pytest
from openpyxl import load_workbook

from anitag.cli import main, read_filenames
from tools import evaluate, validate_dictionaries


class TestParseCommand:
    """Tests for ``anitag parse``."""

    def test_json_output(self, capsys):
        """Test the --json listing."""
        assert main(["parse", "Anime - 01-02.mkv", "--json"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload == [{
            "filename": "Anime - 01-02.mkv",
            "elements": {
                "anime_title": "Anime",
                "episode_number": "01",
                "episode_number_alt": "02",
                "file_extension": "mkv",
            },
        }]

    def test_plain_output(self, capsys):
        """Test the indented plain listing."""
        assert main(["parse", "Title - 01.mkv"]) == 0
        out = capsys.readouterr().out
        assert "Title - 01.mkv" in out
        assert "  episode_number: 01" in out

    def test_option_flags(self, capsys):
        """Test that a --no- flag reaches the parser."""
        assert main(["--no-episode-title", "parse", "Title - 01 - The Beginning.mkv", "--json"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert "episode_title" not in payload[0]["elements"]

    def test_bad_year_range(self):
        """An inverted year range exits with status 2."""
        assert main(["--year-range", "2050", "2000", "parse", "x"]) == 2

    def test_bad_config_file(self, tmp_path):
        """A config file that is not an object exits with status 2."""
        path = tmp_path / "bad.json"
        path.write_text("[]", encoding="utf-8")
        assert main(["--config", str(path), "parse", "x"]) == 2


class TestReportCommand:
    """Tests for ``anitag report``."""

    def test_report(self, tmp_path):
        """Test that a report workbook is written next to the input."""
        input_file = tmp_path / "names.txt"
        input_file.write_text("Title - 01.mkv\n\n[720p].mkv\n", encoding="utf-8")

        assert main(["report", str(input_file), "--parallel"]) == 0

        output = tmp_path / "names-results.xlsx"
        wb = load_workbook(output)
        try:
            ws = wb.active
            assert ws.cell(row=2, column=1).value == "Title - 01.mkv"
            assert ws.cell(row=3, column=1).value == "[720p].mkv"
            assert ws.max_row == 3
        finally:
            wb.close()

    def test_missing_input(self, tmp_path):
        """Test a missing input file."""
        assert main(["report", str(tmp_path / "missing.txt")]) == 1

    def test_read_filenames_falls_back_on_encoding(self, tmp_path):
        """Test reading a cp1252 file."""
        path = tmp_path / "names.txt"
        path.write_bytes("Caf\xe9 - 01.mkv\n".encode("cp1252"))
        assert read_filenames(path) == ["Café - 01.mkv"]


class TestTools:
    """Tests for the scripts under tools/."""

    def test_validate_packaged_dictionary(self, capsys):
        """Test the validator on the shipped dictionary."""
        assert validate_dictionaries.main([]) == 0
        assert "validated successfully" in capsys.readouterr().out

    def test_validate_broken_dictionary(self, tmp_path, capsys):
        """Test that the validator reports a duplicate and fails."""
        path = tmp_path / "keywords.json"
        path.write_text(json.dumps({"version": 1, "groups": [{"family": "source", "keywords": ["BD", "bd"]}]}), encoding="utf-8")
        assert validate_dictionaries.main(["--dictionary", str(path)]) == 1
        assert "duplicate keyword 'bd'" in capsys.readouterr().out

    @pytest.mark.parametrize("mode", ["blind", "reference"])
    def test_evaluate(self, tmp_path, mode):
        """Test the evaluation script in both modes."""
        if mode == "reference":
            source = tmp_path / "corpus.json"
            source.write_text(json.dumps([{"input": "Anime - 01-02.mkv", "output": {"anime_title": "Anime"}}]), encoding="utf-8")
        else:
            source = tmp_path / "names.txt"
            source.write_text("Anime - 01-02.mkv\n", encoding="utf-8")
        metrics_path = tmp_path / "metrics.json"
        excel_path = tmp_path / "metrics.xlsx"

        assert evaluate.main([
            "--mode", mode,
            "--input", str(source),
            "--output-json", str(metrics_path),
            "--output-excel", str(excel_path),
        ]) == 0

        metrics = json.loads(metrics_path.read_text(encoding="utf-8"))
        assert metrics["mode"] == mode
        wb = load_workbook(excel_path)
        try:
            expected_sheets = ["Results", "Expected", "Diff"] if mode == "reference" else ["Results"]
            assert wb.sheetnames == expected_sheets
        finally:
            wb.close()
