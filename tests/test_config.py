#!/usr/bin/env python3
"""Tests for layered configuration loading."""

import json

import pytest

from anitag.config import DEFAULT_CONFIG, ConfigError, load_config, merge_config, options_from_config
from anitag.options import InvalidOptionsError, Options


@pytest.fixture
def config_file(tmp_path):
    def write(data):
        path = tmp_path / "anitag.json"
        path.write_text(json.dumps(data) if not isinstance(data, str) else data, encoding="utf-8")
        return path
    return write


def test_defaults():
    config = load_config()
    assert config == DEFAULT_CONFIG
    assert options_from_config(config) == Options()


def test_merge_is_section_wise():
    merged = merge_config({"batch": {"batch_size": 10}}, {"batch": {"parallel": True}})
    assert merged["batch"] == {"batch_size": 10, "max_workers": 4, "parallel": True}
    assert merged["options"] == Options().to_dict()


def test_merge_does_not_touch_defaults():
    merge_config({"report": {"sheet_name": "Other"}})
    assert DEFAULT_CONFIG["report"]["sheet_name"] == "Parsed Filenames"


def test_file_then_overrides(config_file):
    path = config_file({"options": {"year_min": 1990, "parse_episode_title": False}})
    config = load_config(path, {"options": {"year_min": 2000}})

    options = options_from_config(config)
    assert options.year_min == 2000
    assert options.parse_episode_title is False


def test_unknown_key_rejected(config_file):
    path = config_file({"options": {"parse_colour": True}})
    with pytest.raises(ConfigError, match="parse_colour"):
        load_config(path)


def test_wrong_type_rejected(config_file):
    path = config_file({"batch": {"batch_size": "ten"}})
    with pytest.raises(ConfigError, match="batch > batch_size"):
        load_config(path)


def test_malformed_file(config_file):
    with pytest.raises(ConfigError):
        load_config(config_file("{nope"))


def test_non_object_file(config_file):
    with pytest.raises(ConfigError):
        load_config(config_file([1, 2]))


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.json")


def test_degenerate_year_range_surfaces_at_options():
    config = load_config(overrides={"options": {"year_min": 2050, "year_max": 2000}})
    with pytest.raises(InvalidOptionsError):
        options_from_config(config)
