#!/usr/bin/env python3
"""
Tests for sequential and threaded batch parsing.
"""

from __future__ import annotations

import pytest

from anitag.batch import BatchParser
from anitag.element import elements_to_dict
from anitag.options import Options

FILENAMES = [
    "[SubGroup] Anime Title - 05 [720p].mkv",
    "Show.Name.S01E02.1080p.mkv",
    "Anime - 01-02.mkv",
    "Anime Title (2021) - 03.mkv",
    "Title - 01 - The Beginning.mkv",
]


def test_parse_many_keeps_input_order():
    parser = BatchParser(batch_size=2)
    result = parser.parse_many(FILENAMES)

    assert result.total_files == 5
    assert result.parsed_files == 5
    assert result.failed_files == 0
    assert [parsed.filename for parsed in result.results] == FILENAMES
    assert elements_to_dict(result.results[2].elements)["episode_number_alt"] == "02"


def test_parallel_matches_sequential():
    parser = BatchParser(batch_size=1, max_workers=3)
    sequential = parser.parse_many(FILENAMES * 4)
    parallel = parser.parse_many_parallel(FILENAMES * 4)

    assert [p.filename for p in parallel.results] == [p.filename for p in sequential.results]
    assert [p.elements for p in parallel.results] == [p.elements for p in sequential.results]


def test_bad_items_are_recorded_and_skipped():
    parser = BatchParser(batch_size=2)
    result = parser.parse_many(["Title - 01.mkv", None, "Title - 02.mkv", 42])

    assert result.parsed_files == 2
    assert result.failed_files == 2
    assert [error["index"] for error in result.errors] == [1, 3]
    assert result.errors[0]["type"] == "input"
    assert result.errors[1]["filename"] == "42"


def test_parallel_errors_sorted_by_index():
    parser = BatchParser(batch_size=1, max_workers=4)
    result = parser.parse_many_parallel([None, "Title - 01.mkv", b"bytes", "Title - 02.mkv"])

    assert [error["index"] for error in result.errors] == [0, 2]
    assert [parsed.filename for parsed in result.results] == ["Title - 01.mkv", "Title - 02.mkv"]


def test_progress_callback():
    calls = []
    parser = BatchParser(batch_size=2)
    parser.parse_many(FILENAMES, progress_callback=lambda done, total: calls.append((done, total)))

    assert calls == [(2, 5), (4, 5), (5, 5)]


def test_options_reach_every_item():
    parser = BatchParser(Options(parse_episode_title=False))
    result = parser.parse_many(["Title - 01 - The Beginning.mkv"])
    assert "episode_title" not in elements_to_dict(result.results[0].elements)


def test_empty_input():
    result = BatchParser().parse_many_parallel([])
    assert result.total_files == 0
    assert result.results == []


@pytest.mark.parametrize("kwargs", [{"batch_size": 0}, {"max_workers": 0}])
def test_invalid_sizes(kwargs):
    with pytest.raises(ValueError):
        BatchParser(**kwargs)
