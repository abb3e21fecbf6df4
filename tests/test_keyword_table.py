#!/usr/bin/env python3
"""
Tests for keyword dictionary loading, validation and lookup.
"""

import json

import pytest

from anitag.dictionary_loader import KEYWORDS_SCHEMA, DictionaryLoader
from anitag.element import ElementKind
from anitag.keyword_table import (
    DictionaryError,
    KeywordKind,
    KeywordTable,
    get_keyword_table,
    load_keyword_table,
    normalize_keyword,
    validate_keyword_document,
)


@pytest.fixture
def table():
    return get_keyword_table()


@pytest.fixture
def schema():
    return DictionaryLoader.load_dictionary(KEYWORDS_SCHEMA)


def document(*groups):
    return {"version": 1, "groups": list(groups)}


class TestNormalization:
    """Tests for keyword text folding."""

    @pytest.mark.parametrize("text,expected", [
        ("Blu-Ray", "blu ray"),
        ("  Dual__Audio ", "dual audio"),
        ("H.264", "h 264"),
        ("WEB-DL", "web dl"),
        ("FLAC", "flac"),
    ])
    def test_normalize_keyword(self, text, expected):
        """Test case and separator folding."""
        assert normalize_keyword(text) == expected


class TestLookup:
    """Tests for lookups against the packaged table."""

    def test_table_is_shared(self):
        """The packaged table is built once."""
        assert get_keyword_table() is get_keyword_table()

    def test_multi_part_keyword(self, table):
        """Test lookup of a keyword spanning two tokens."""
        entry = table.find(normalize_keyword("Blu-Ray"))
        assert entry is not None
        assert entry.kind is KeywordKind.SOURCE
        assert entry.element_kind is ElementKind.SOURCE
        assert entry.text == "Blu-ray"
        assert entry.part_count == 2

    def test_strict_keyword_needs_literal_spelling(self, table):
        """Test that 5.1 must be spelled with its dot."""
        entry = table.find("5 1")
        assert entry is not None
        assert entry.strict
        assert entry.matches_literal("5.1")
        assert not entry.matches_literal("5 1")

    def test_plain_keyword_is_not_strict(self, table):
        """A keyword with no dot or comma matches any case."""
        entry = table.find("flac")
        assert not entry.strict
        assert entry.matches_literal("Flac")

    def test_extensions_live_apart_from_keywords(self, table):
        """Test that extensions are looked up separately."""
        assert table.find_extension("MKV").kind is KeywordKind.FILE_EXTENSION
        assert table.find("mkv") is None

    def test_subtitle_extension_needs_extended_flag(self, table):
        """Test the extended extension families."""
        assert table.find_extension("srt") is None
        assert table.find_extension("srt", extended=True).kind is KeywordKind.SUBTITLE_EXTENSION
        assert table.find_extension("zip", extended=True).kind is KeywordKind.ARCHIVE_EXTENSION

    def test_flags(self, table):
        """Test the enclosure, singular, ambiguous and prefix flags."""
        assert table.find("cr").must_be_enclosed
        assert table.find("thora").singular_only
        movie = table.find("movie")
        assert movie.ambiguous
        assert movie.element_kind is ElementKind.ANIME_TYPE
        assert table.find("episode").is_prefix
        assert table.find("episode").element_kind is ElementKind.UNKNOWN

    def test_max_parts_covers_longest_keyword(self, table):
        """Test that max_parts matches the longest keyword."""
        assert table.max_parts == 3
        assert table.find("e ac 3") is not None

    def test_unknown_text(self, table):
        """Unknown text has no entry."""
        assert table.find("definitely not a keyword") is None


class TestValidation:
    """Tests for schema and cross-entry dictionary rules."""

    def test_packaged_dictionary_is_valid(self, schema):
        """Test that the shipped dictionary passes every check."""
        packaged = DictionaryLoader.load_dictionary("keywords.json")
        assert validate_keyword_document(packaged, schema) == []

    def test_duplicate_keyword(self, schema):
        """Test that a keyword listed in two families is reported."""
        doc = document(
            {"family": "source", "keywords": ["BD"]},
            {"family": "video_quality", "keywords": ["bd"]},
        )
        problems = validate_keyword_document(doc, schema)
        assert any("duplicate keyword 'bd'" in problem for problem in problems)

    def test_flag_outside_group(self, schema):
        """A flag naming a keyword outside its group is reported."""
        doc = document({"family": "source", "keywords": ["BD"], "ambiguous": ["DVD"]})
        problems = validate_keyword_document(doc, schema)
        assert problems == ["groups[0] (source): ambiguous names 'DVD' which is not in keywords"]

    def test_fold_collision_across_families(self, schema):
        """Test that spellings folding together across families are reported."""
        doc = document(
            {"family": "source", "keywords": ["Blu-ray"]},
            {"family": "other", "keywords": ["Blu Ray"]},
        )
        problems = validate_keyword_document(doc, schema)
        assert any("folds to 'blu ray'" in problem for problem in problems)

    def test_same_family_variants_may_fold_together(self, schema):
        """Variants inside one family may fold to the same text."""
        doc = document({"family": "subtitles", "keywords": ["Multi Sub", "Multi-Sub"]})
        assert validate_keyword_document(doc, schema) == []

    def test_extension_must_be_alphanumeric(self, schema):
        """Test the extension character rule."""
        doc = document({"family": "file_extension", "keywords": ["tar.gz"]})
        problems = validate_keyword_document(doc, schema)
        assert problems == ["groups[0] (file_extension): extension 'tar.gz' must be alphanumeric"]

    def test_unknown_family_fails_schema(self, schema):
        """Test that the schema rejects an unknown family."""
        doc = document({"family": "colour", "keywords": ["Red"]})
        problems = validate_keyword_document(doc, schema)
        assert problems
        assert all(problem.startswith("keywords: groups > 0 > family") for problem in problems)

    def test_from_document_builds_table(self):
        """Test building a table from an in-memory document."""
        table = KeywordTable.from_document(document({"family": "source", "keywords": ["BD", "DVD"]}))
        assert len(table) == 2
        assert table.find("bd").kind is KeywordKind.SOURCE

    def test_from_document_rejects_invalid(self):
        """An invalid document raises DictionaryError."""
        with pytest.raises(DictionaryError):
            KeywordTable.from_document({"groups": []})


class TestLoading:
    """Tests for reading dictionary files."""

    def test_missing_file(self, tmp_path):
        """Test that a missing file raises DictionaryError."""
        with pytest.raises(DictionaryError):
            load_keyword_table(tmp_path / "missing.json")

    def test_malformed_json(self, tmp_path):
        """Test that malformed JSON raises DictionaryError."""
        path = tmp_path / "keywords.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DictionaryError):
            load_keyword_table(path)

    def test_invalid_document(self, tmp_path):
        """Test that an empty keyword list fails validation on load."""
        path = tmp_path / "keywords.json"
        path.write_text(json.dumps(document({"family": "source", "keywords": []})), encoding="utf-8")
        with pytest.raises(DictionaryError):
            load_keyword_table(path)

    def test_loader_cache(self):
        """Test that the loader caches until cleared."""
        first = DictionaryLoader.load_dictionary(KEYWORDS_SCHEMA)
        assert DictionaryLoader.load_dictionary(KEYWORDS_SCHEMA) is first

        DictionaryLoader.clear_cache(KEYWORDS_SCHEMA)
        reloaded = DictionaryLoader.load_dictionary(KEYWORDS_SCHEMA)
        assert reloaded is not first
        assert reloaded == first

    def test_entries_cover_both_namespaces(self):
        """entries() yields keywords and extensions."""
        table = KeywordTable.from_document(document(
            {"family": "source", "keywords": ["BD"]},
            {"family": "file_extension", "keywords": ["mkv"]},
        ))
        assert sorted(entry.text for entry in table.entries()) == ["BD", "mkv"]

    def test_explicit_path(self, tmp_path):
        """Test loading a table from a given path."""
        path = tmp_path / "keywords.json"
        path.write_text(json.dumps(document({"family": "video_codec", "keywords": ["HEVC"]})), encoding="utf-8")
        table = load_keyword_table(path)
        assert table.find("hevc").element_kind is ElementKind.VIDEO_TERM
        assert table.find("flac") is None
