#!/usr/bin/env python3
"""
Tests for corpus evaluation metrics.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from anitag.evaluation import (
    EVALUATED_KINDS,
    EvaluatedRow,
    calculate_blind_metrics,
    calculate_reference_metrics,
    diff_cell,
    evaluate_filenames,
    evaluate_records,
    is_discrepancy_value,
    load_corpus,
    rows_to_table,
    write_json_metrics,
)

CORPUS = Path(__file__).parent / "data" / "corpus.json"


def test_labelled_corpus_parses_perfectly():
    rows = evaluate_records(load_corpus(CORPUS))
    metrics = calculate_reference_metrics(rows)

    mismatches = metrics["sample_mismatches"]
    assert mismatches == []
    assert metrics["key_metrics"]["parsed_perfect_rate"] == 100.0
    assert metrics["summary"]["files_perfectly_parsed"] == len(rows)


def test_reference_metrics_counts():
    rows = [
        EvaluatedRow(input="a", parsed={"anime_title": "A", "episode_number": "1"}, expected={"anime_title": "A", "episode_number": "2"}),
        EvaluatedRow(input="b", parsed={"anime_title": "B", "season": "1"}, expected={"anime_title": "B", "release_group": "G"}),
    ]
    metrics = calculate_reference_metrics(rows, samples=5)
    breakdown = metrics["field_breakdown"]

    assert breakdown["anime_title"]["accuracy_rate"] == 100.0
    assert breakdown["episode_number"]["accurate_count"] == 0
    assert breakdown["release_group"]["false_negative_count"] == 1
    assert breakdown["season"]["false_positive_count"] == 1
    assert metrics["key_metrics"]["parsed_perfect_rate"] == 0.0
    assert {m["type"] for m in metrics["sample_mismatches"]} == {"incorrect", "false_negative", "false_positive"}


def test_blind_metrics():
    rows = evaluate_filenames(["Title - 01.mkv", "[720p].mkv"])
    metrics = calculate_blind_metrics(rows)

    assert metrics["total_rows"] == 2
    assert metrics["field_coverage"]["file_extension"] == 1.0
    assert metrics["field_coverage"]["anime_title"] == 0.5
    assert metrics["rows_without_title"] == ["[720p].mkv"]


def test_diff_cells():
    assert diff_cell("01", "01") == "01"
    assert diff_cell(["A", "B"], ["A", "B"]) == "A | B"
    cell = diff_cell("01", "02")
    assert json.loads(cell) == {"expected": "02", "returned": "01"}
    assert is_discrepancy_value(cell)
    assert not is_discrepancy_value("01")
    assert not is_discrepancy_value(None)


def test_rows_to_table():
    row = EvaluatedRow(input="x", parsed={"anime_title": "X"}, expected={"anime_title": "Y"})
    plain = rows_to_table([row])[0]
    diffed = rows_to_table([row], diff=True)[0]

    assert len(plain) == len(EVALUATED_KINDS) + 1
    title_column = EVALUATED_KINDS.index("anime_title") + 1
    assert plain[title_column] == "X"
    assert is_discrepancy_value(diffed[title_column])


def test_load_corpus_rejects_bad_records(tmp_path):
    path = tmp_path / "corpus.json"
    path.write_text(json.dumps([{"input": "x"}]), encoding="utf-8")
    with pytest.raises(ValueError):
        load_corpus(path)

    path.write_text(json.dumps({"input": "x"}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_corpus(path)


def test_write_json_metrics(tmp_path):
    output = write_json_metrics({"mode": "blind"}, tmp_path / "metrics" / "out.json")
    assert json.loads(output.read_text(encoding="utf-8")) == {"mode": "blind"}
