#!/usr/bin/env python3
"""
Tests for file extension extraction and keyword matching.
"""

import pytest

from anitag.classifier import ElementClassifier
from anitag.element import ElementKind
from anitag.options import Options
from anitag.tokenizer import Tokenizer


def classify(filename, **option_values):
    options = Options(**option_values)
    result = Tokenizer().tokenize(filename, options)
    return ElementClassifier(options).process(result)


def tag_values(result, kind):
    return [result.source[tag.start:tag.end] for tag in result.tags_of(kind)]


class TestExtension:
    """Tests for the trailing ``.ext`` pass."""

    def test_known_extension(self):
        """Test that a known extension is tagged whatever its case."""
        result = classify("Title - 01.MKV")
        assert tag_values(result, ElementKind.FILE_EXTENSION) == ["MKV"]

    def test_unknown_extension_is_left_alone(self):
        """An unknown extension is not tagged by default."""
        result = classify("Title - 01.xyz")
        assert tag_values(result, ElementKind.FILE_EXTENSION) == []

    def test_unknown_extension_allowed(self):
        """Test that allow_unknown_extension accepts any alphanumeric suffix."""
        result = classify("Title - 01.xyz", allow_unknown_extension=True)
        assert tag_values(result, ElementKind.FILE_EXTENSION) == ["xyz"]

    def test_unknown_extension_must_look_like_one(self):
        """Digits alone are not an extension."""
        result = classify("Title - 01.123", allow_unknown_extension=True)
        assert tag_values(result, ElementKind.FILE_EXTENSION) == []

    @pytest.mark.parametrize("extended,expected", [(False, []), (True, ["srt"])])
    def test_subtitle_extension(self, extended, expected):
        """Test subtitle extensions behind the extended flag."""
        result = classify("Title - 01.srt", extended_extensions=extended)
        assert tag_values(result, ElementKind.FILE_EXTENSION) == expected

    def test_extension_needs_a_dot(self):
        """Test that a trailing word with no dot is not an extension."""
        result = classify("Title mkv")
        assert tag_values(result, ElementKind.FILE_EXTENSION) == []

    def test_extension_disabled(self):
        """No extension when extension parsing is off."""
        result = classify("Title.mkv", parse_file_extension=False)
        assert tag_values(result, ElementKind.FILE_EXTENSION) == []


class TestKeywords:
    """Tests for keyword run matching."""

    def test_multi_token_keyword_is_one_tag(self):
        """Test that Blu-Ray across a dash becomes one tag."""
        result = classify("[Blu-Ray]")
        assert tag_values(result, ElementKind.SOURCE) == ["Blu-Ray"]
        assert result.tokens[1].category is ElementKind.SOURCE
        assert result.tokens[3].category is ElementKind.SOURCE

    def test_longest_run_wins(self):
        """The two-word keyword beats its one-word prefix."""
        result = classify("Title [Dual Audio]")
        assert tag_values(result, ElementKind.AUDIO_TERM) == ["Dual Audio"]

    def test_strict_keyword_literal(self):
        """Test that 5.1 matches only with its dot."""
        assert tag_values(classify("Title 5.1.mkv"), ElementKind.AUDIO_TERM) == ["5.1"]
        assert tag_values(classify("Title 5 1.mkv"), ElementKind.AUDIO_TERM) == []

    def test_dotted_codec(self):
        """Test H.264 inside brackets."""
        result = classify("Title [H.264].mkv")
        assert tag_values(result, ElementKind.VIDEO_TERM) == ["H.264"]

    def test_must_be_enclosed(self):
        """Test that CR counts only inside brackets."""
        assert tag_values(classify("[CR] Title"), ElementKind.SOURCE) == ["CR"]
        assert tag_values(classify("Title CR"), ElementKind.SOURCE) == []

    def test_singular_only(self):
        """A singular-only keyword seen twice is tagged once."""
        result = classify("Title Complete Complete")
        assert tag_values(result, ElementKind.RELEASE_INFORMATION) == ["Complete"]

    def test_release_group_keyword(self):
        """Test a known group name and its option gate."""
        assert tag_values(classify("[THORA] Title"), ElementKind.RELEASE_GROUP) == ["THORA"]
        assert tag_values(classify("[THORA] Title", parse_release_group=False), ElementKind.RELEASE_GROUP) == []

    def test_resolution_keyword_disabled(self):
        """Test that a disabled resolution keyword is not emitted."""
        result = classify("Title [720p]", parse_video_resolution=False)
        assert tag_values(result, ElementKind.VIDEO_RESOLUTION) == []

    def test_case_insensitive(self):
        """Lower-case keywords match."""
        result = classify("title [flac]")
        assert tag_values(result, ElementKind.AUDIO_TERM) == ["flac"]

    def test_ambiguous_keyword_reclaimable_outside_brackets(self):
        """Test that a bare ambiguous keyword may be taken back."""
        result = classify("Title Movie")
        movie = result.tokens[2]
        assert movie.category is ElementKind.ANIME_TYPE
        assert movie.reclaimable

    def test_ambiguous_keyword_fixed_inside_brackets(self):
        """Test that a bracketed ambiguous keyword is final."""
        result = classify("[Movie] Title")
        movie = result.tokens[1]
        assert movie.category is ElementKind.ANIME_TYPE
        assert not movie.reclaimable

    def test_prefix_keyword_is_reclaimable(self):
        """Test that a prefix with no number may be taken back."""
        result = classify("Title Episode")
        assert result.tokens[2].keyword.is_prefix
        assert result.tokens[2].reclaimable
        # Prefixes are consumed silently
        assert result.tags[-1].kind is ElementKind.UNKNOWN

    def test_reclaim_clears_whole_run(self):
        """Reclaiming clears the token and drops its tag."""
        result = classify("Title Final")
        result.reclaim(2)
        assert result.tokens[2].category is None
        assert result.tokens[2].keyword is None
        assert tag_values(result, ElementKind.RELEASE_INFORMATION) == []
