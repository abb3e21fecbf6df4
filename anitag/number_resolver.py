#!/usr/bin/env python3
"""
Number resolver for episode, season, volume, version, resolution, checksum
and year numbers.

Rules run in a fixed order and each only looks at tokens the earlier rules
left free:
1. Compound identifiers: S01E02, 2x01, S01, EP05, #05, 01v2, Vol3, 第05話,
   第2期, v2, and episode ranges such as S01E01-12
2. Numbers following a prefix keyword (Episode, Season, Vol, OVA ...), and
   ordinals before a season keyword (2nd Season)
3. Resolution patterns (1080p, 1920x1080)
4. Checksum: the last enclosed 8-character hex token
5. Year: a 4-digit number inside the configured range
6. Episode scoring over the remaining numeric candidates

Once titles are extracted, the best number still left free becomes the
alternative episode number.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .element import ElementKind
from .keyword_table import KeywordKind
from .options import Options
from .tokenizer import TokenizationResult, TokenKind

logger = logging.getLogger(__name__)

_SEASON_EPISODE = re.compile(r"^S(\d{1,2})E(\d{1,4})(?:E(\d{1,4}))?(?:v(\d))?$", re.IGNORECASE)
_SEASON_X_EPISODE = re.compile(r"^(\d{1,2})xE?(\d{1,4})(?:v(\d))?$", re.IGNORECASE)
_SEASON_ONLY = re.compile(r"^S(\d{1,2})$", re.IGNORECASE)
_JAPANESE_SEASON = re.compile(r"^第?(\d{1,2})期$")
# Upper bound of S01E01-12 or 02xE001-150
_EPISODE_RANGE_END = re.compile(r"^E?(\d{1,4})$", re.IGNORECASE)
_PARTIAL_EPISODE = re.compile(r"^\d{1,4}[ABCabc]$")
_EPISODE_ONLY = re.compile(r"^(?:E|EP|EPS)(\d{1,4})(?:v(\d))?$", re.IGNORECASE)
_HASH_EPISODE = re.compile(r"^#(\d{1,4})(?:v(\d))?$", re.IGNORECASE)
_EPISODE_VERSION = re.compile(r"^(\d{1,4})v(\d)$", re.IGNORECASE)
_VOLUME = re.compile(r"^Vol(\d{1,3})$", re.IGNORECASE)
_JAPANESE_EPISODE = re.compile(r"^第(\d{1,4})[話话集]$")
_VERSION_ONLY = re.compile(r"^v(\d{1,2})$", re.IGNORECASE)

_RESOLUTION_PATTERNS = (
    re.compile(r"^\d{3,4}[ip]$", re.IGNORECASE),
    re.compile(r"^\d{3,4}[x×]\d{3,4}[ip]?$", re.IGNORECASE),
)
_CHECKSUM = re.compile(r"^[0-9A-Fa-f]{8}$")
_YEAR = re.compile(r"^\d{4}$")
_NUMBER = re.compile(r"^\d{1,4}$")
_SEASON_NUMBER = re.compile(r"^\d{1,2}$")

ROMAN_SEASONS = frozenset({"ii", "iii", "iv", "v", "vi", "vii"})
ORDINAL_SEASONS = frozenset({
    "1st", "2nd", "3rd", "4th", "5th", "6th", "7th", "8th", "9th",
    "first", "second", "third", "fourth", "fifth",
    "sixth", "seventh", "eighth", "ninth",
})
# Words that join an episode to a second number it owns (05 of 12, 8 & 10)
TOTAL_LINKS = frozenset({"of", "&"})
# Bare numbers in these positions are not episodes
NON_EPISODE_LEADERS = frozenset({"movie", "part"})
RANGE_LINKS = frozenset("-~&+")
DASHES = frozenset("-\u00ad\u2010\u2011\u2012\u2013\u2014\u2015")
ISOLATED_RESOLUTIONS = frozenset({"720", "1080"})


@dataclass
class Candidate:
    """A free number (or decimal, or range) that may be the episode number."""
    first: int
    last: int
    enclosed: bool
    dash_separated: bool
    # Token span of the range partner, if any
    alt: Optional[Tuple[int, int]] = None


def score_candidate(candidate: Candidate) -> Tuple[bool, bool, int]:
    """
    Rank an episode candidate; the greatest score wins.

    Order of preference: separated from the preceding text by a dash, not
    inside brackets, and closer to the end of the filename.

    Args:
        candidate: Candidate to score

    Returns:
        Comparable score tuple
    """
    return (candidate.dash_separated, not candidate.enclosed, candidate.first)


class NumberResolver:
    """Resolves numeric tokens into episode, season, year and other elements."""

    def __init__(self, options: Optional[Options] = None):
        self.options = options or Options()

    def process(self, result: TokenizationResult) -> TokenizationResult:
        """
        Run every number rule over a classified tokenization result.

        Args:
            result: TokenizationResult after keyword classification

        Returns:
            The same result with number tags recorded
        """
        self.match_compound_identifiers(result)
        self.match_prefixed_numbers(result)
        if self.options.parse_video_resolution:
            self.match_resolution(result)
        if self.options.parse_file_checksum:
            self.match_checksum(result)
        if self.options.parse_year:
            self.match_year(result)
        if self.options.parse_episode and not result.has_tag(ElementKind.EPISODE_NUMBER):
            self.match_episode(result)
        return result

    def _gate(self, kind: ElementKind) -> ElementKind:
        """Disabled kinds are still consumed, but as Unknown."""
        if kind in (ElementKind.EPISODE_NUMBER, ElementKind.EPISODE_NUMBER_ALT, ElementKind.VOLUME):
            return kind if self.options.parse_episode else ElementKind.UNKNOWN
        if kind is ElementKind.SEASON:
            return kind if self.options.parse_season else ElementKind.UNKNOWN
        return kind

    def _tag_group(self, result: TokenizationResult, kind: ElementKind, index: int, match: re.Match, group: int) -> None:
        if match.group(group) is None:
            return
        offset = result.tokens[index].start
        result.tag(self._gate(kind), index, start=offset + match.start(group), end=offset + match.end(group))

    def _free_identifiers(self, result: TokenizationResult) -> List[int]:
        return [
            i for i, token in enumerate(result.tokens)
            if token.kind is TokenKind.IDENTIFIER and token.category is None
        ]

    # Rule 1

    def match_compound_identifiers(self, result: TokenizationResult) -> None:
        """Split identifiers like ``S01E02`` or ``01v2`` into their numbers."""
        for index in self._free_identifiers(result):
            # Taken as the upper end of an earlier range
            if result.tokens[index].category is not None:
                continue
            text = result.text(index)

            match = _SEASON_EPISODE.match(text)
            if match and int(match.group(1)) > 0:
                self._tag_group(result, ElementKind.SEASON, index, match, 1)
                self._tag_group(result, ElementKind.EPISODE_NUMBER, index, match, 2)
                self._tag_group(result, ElementKind.EPISODE_NUMBER_ALT, index, match, 3)
                self._tag_group(result, ElementKind.RELEASE_VERSION, index, match, 4)
                if match.group(3) is None:
                    self._match_episode_range_end(result, index, match.group(2))
                continue

            match = _SEASON_X_EPISODE.match(text)
            if match and int(match.group(1)) > 0:
                self._tag_group(result, ElementKind.SEASON, index, match, 1)
                self._tag_group(result, ElementKind.EPISODE_NUMBER, index, match, 2)
                self._tag_group(result, ElementKind.RELEASE_VERSION, index, match, 3)
                self._match_episode_range_end(result, index, match.group(2))
                continue

            match = _SEASON_ONLY.match(text) or _JAPANESE_SEASON.match(text)
            if match:
                self._tag_group(result, ElementKind.SEASON, index, match, 1)
                continue

            match = _EPISODE_ONLY.match(text) or _HASH_EPISODE.match(text) or _EPISODE_VERSION.match(text)
            if match:
                self._tag_group(result, ElementKind.EPISODE_NUMBER, index, match, 1)
                self._tag_group(result, ElementKind.RELEASE_VERSION, index, match, 2)
                continue

            match = _VOLUME.match(text)
            if match:
                self._tag_group(result, ElementKind.VOLUME, index, match, 1)
                continue

            match = _JAPANESE_EPISODE.match(text)
            if match:
                self._tag_group(result, ElementKind.EPISODE_NUMBER, index, match, 1)
                continue

            match = _VERSION_ONLY.match(text)
            if match:
                self._tag_group(result, ElementKind.RELEASE_VERSION, index, match, 1)

    def _match_episode_range_end(self, result: TokenizationResult, index: int, episode: str) -> None:
        """``S01E01-12``, ``02xE001-150``: a higher number linked on is the alternative."""
        tokens = result.tokens
        upper = index + 2
        if upper >= len(tokens) or result.text(index + 1) not in RANGE_LINKS:
            return
        if tokens[upper].kind is not TokenKind.IDENTIFIER or tokens[upper].category is not None:
            return
        match = _EPISODE_RANGE_END.match(result.text(upper))
        if match and int(match.group(1)) > int(episode):
            self._tag_group(result, ElementKind.EPISODE_NUMBER_ALT, upper, match, 1)

    # Rule 2

    def match_prefixed_numbers(self, result: TokenizationResult) -> None:
        """Resolve numbers that directly follow a prefix keyword."""
        tokens = result.tokens
        for index, token in enumerate(tokens):
            entry = token.keyword
            if entry is None or token.kind is not TokenKind.IDENTIFIER:
                continue
            # Only the first token of a keyword run acts as the prefix
            if index > 0 and tokens[index - 1].keyword is entry:
                continue
            last = index
            while last + 1 < len(tokens) and tokens[last + 1].keyword is entry:
                last += 1

            target = self._after_prefix(result, last)
            if entry.kind is KeywordKind.SEASON_PREFIX:
                consumed = self._match_ordinal_season(result, index) or (
                    target is not None and self._match_season_number(result, target)
                )
            elif target is None:
                continue
            elif entry.kind is KeywordKind.EPISODE_PREFIX or (
                entry.kind in (KeywordKind.EPISODE_TYPE, KeywordKind.ANIME_TYPE) and entry.normalized != "movie"
            ):
                consumed = self._match_number_or_range(result, target, ElementKind.EPISODE_NUMBER, ElementKind.EPISODE_NUMBER_ALT)
            elif entry.kind is KeywordKind.VOLUME_PREFIX:
                consumed = self._match_number_or_range(result, target, ElementKind.VOLUME, ElementKind.VOLUME)
            elif entry.kind is KeywordKind.VERSION_PREFIX:
                consumed = self._match_plain_number(result, target, ElementKind.RELEASE_VERSION)
            else:
                continue

            if consumed:
                for covered in range(index, last + 1):
                    tokens[covered].reclaimable = False

    def _after_prefix(self, result: TokenizationResult, last: int) -> Optional[int]:
        """The free identifier one single delimiter after a prefix, if any."""
        tokens = result.tokens
        delimiter = last + 1
        target = last + 2
        if target >= len(tokens):
            return None
        if tokens[delimiter].kind is not TokenKind.DELIMITER or tokens[delimiter].end - tokens[delimiter].start != 1:
            return None
        if tokens[target].kind is not TokenKind.IDENTIFIER or tokens[target].category is not None:
            return None
        return target

    def _match_ordinal_season(self, result: TokenizationResult, prefix: int) -> bool:
        """``2nd Season``, ``Second Season``: the ordinal is the season, verbatim."""
        tokens = result.tokens
        ordinal = prefix - 2
        if ordinal < 0 or tokens[prefix - 1].kind is not TokenKind.DELIMITER:
            return False
        if tokens[prefix - 1].end - tokens[prefix - 1].start != 1:
            return False
        if tokens[ordinal].kind is not TokenKind.IDENTIFIER or tokens[ordinal].category is not None:
            return False
        if result.text(ordinal).casefold() not in ORDINAL_SEASONS:
            return False
        result.tag(self._gate(ElementKind.SEASON), ordinal)
        return True

    def _match_season_number(self, result: TokenizationResult, index: int) -> bool:
        text = result.text(index)
        if _SEASON_NUMBER.match(text) or text.casefold() in ROMAN_SEASONS:
            result.tag(self._gate(ElementKind.SEASON), index)
            return True
        return False

    def _match_plain_number(self, result: TokenizationResult, index: int, kind: ElementKind) -> bool:
        if _NUMBER.match(result.text(index)):
            result.tag(self._gate(kind), index)
            return True
        return False

    def _match_number_or_range(self, result: TokenizationResult, index: int, kind: ElementKind, alt_kind: ElementKind) -> bool:
        number = self._number_span(result, index)
        if number is None:
            return False
        partner = self._range_partner(result, number)
        result.tag(self._gate(kind), number[0], number[1])
        if partner is not None:
            result.tag(self._gate(alt_kind), partner[0], partner[1])
        return True

    def _number_span(self, result: TokenizationResult, index: int) -> Optional[Tuple[int, int]]:
        """Token span of a plain or ``N.5`` number starting at ``index``."""
        tokens = result.tokens
        if tokens[index].kind is not TokenKind.IDENTIFIER or tokens[index].category is not None:
            return None
        if not _NUMBER.match(result.text(index)):
            return None
        if (
            index + 2 < len(tokens)
            and result.text(index + 1) in (".", ",")
            and tokens[index + 2].kind is TokenKind.IDENTIFIER
            and tokens[index + 2].category is None
            and result.text(index + 2) == "5"
        ):
            return (index, index + 2)
        return (index, index)

    def _range_partner(self, result: TokenizationResult, number: Tuple[int, int]) -> Optional[Tuple[int, int]]:
        """Span of the upper bound when ``number`` starts a range like ``01-02``."""
        tokens = result.tokens
        link = number[1] + 1
        if number[0] != number[1] or link + 1 >= len(tokens):
            return None
        if tokens[link].kind is not TokenKind.DELIMITER or result.text(link) not in RANGE_LINKS:
            return None
        upper = link + 1
        if tokens[upper].kind is not TokenKind.IDENTIFIER or tokens[upper].category is not None:
            return None
        text = result.text(upper)
        if not _NUMBER.match(text) or int(text) <= int(result.text(number[0])):
            return None
        return (upper, upper)

    # Rules 3 to 5

    def match_resolution(self, result: TokenizationResult) -> None:
        """Tag ``1080p``-like identifiers, falling back to an isolated ``[720]``."""
        for index in self._free_identifiers(result):
            text = result.text(index)
            if any(pattern.match(text) for pattern in _RESOLUTION_PATTERNS):
                result.tag(ElementKind.VIDEO_RESOLUTION, index)

        if result.has_tag(ElementKind.VIDEO_RESOLUTION):
            return
        for index in self._free_identifiers(result):
            if (
                result.tokens[index].enclosed
                and result.text(index) in ISOLATED_RESOLUTIONS
                and result.is_sole_bracket_content(index)
            ):
                result.tag(ElementKind.VIDEO_RESOLUTION, index)
                return

    def match_checksum(self, result: TokenizationResult) -> None:
        """Tag the last enclosed 8-character hexadecimal token."""
        for index in reversed(self._free_identifiers(result)):
            if result.tokens[index].enclosed and _CHECKSUM.match(result.text(index)):
                result.tag(ElementKind.FILE_CHECKSUM, index)
                return

    def match_year(self, result: TokenizationResult) -> None:
        """
        Tag the release year.

        A year alone in brackets, as in ``Title (2021)``, wins over a bare one.
        """
        years = [
            index for index in self._free_identifiers(result)
            if _YEAR.match(result.text(index)) and self.options.contains_year(int(result.text(index)))
        ]
        for index in years:
            if result.is_sole_bracket_content(index):
                result.tag(ElementKind.RELEASE_YEAR, index)
                return
        for index in years:
            if not result.tokens[index].enclosed:
                result.tag(ElementKind.RELEASE_YEAR, index)
                return

    # Rule 6

    def collect_candidates(self, result: TokenizationResult) -> List[Candidate]:
        """
        Gather eligible episode candidates in source order.

        Returns:
            Candidates that may become the episode number
        """
        tokens = result.tokens
        candidates: List[Candidate] = []
        leading = self._leading_word(result)
        index = 0
        while index < len(tokens):
            token = tokens[index]
            if token.kind is not TokenKind.IDENTIFIER or token.category is not None:
                index += 1
                continue

            text = result.text(index)
            if _PARTIAL_EPISODE.match(text):
                # 4a, 111C
                number, partner = (index, index), None
            elif not _NUMBER.match(text):
                index += 1
                continue
            elif self._in_dotted_group(result, index):
                index = self._skip_dotted_group(result, index)
                continue
            else:
                number = self._number_span(result, index)
                partner = self._range_partner(result, number)
            first, last = number
            span_last = partner[1] if partner else last
            index = span_last + 1

            if token.enclosed and not result.is_sole_bracket_content(first, span_last):
                continue
            if first == leading:
                continue
            leader = result.prev_index(first)
            if leader is not None and result.text(leader).casefold() in NON_EPISODE_LEADERS and self._joined(result, leader, first):
                continue

            candidates.append(Candidate(
                first=first,
                last=last,
                enclosed=token.enclosed,
                dash_separated=self._dash_separated(result, first),
                alt=partner,
            ))
        return candidates

    def match_episode(self, result: TokenizationResult) -> None:
        """Pick the best-scoring candidate as the episode number."""
        candidates = self.collect_candidates(result)
        if not candidates:
            logger.debug("no episode candidate in %r", result.source)
            return

        best = max(candidates, key=score_candidate)
        result.tag(ElementKind.EPISODE_NUMBER, best.first, best.last)
        end = best.last
        if best.alt is not None:
            result.tag(ElementKind.EPISODE_NUMBER_ALT, best.alt[0], best.alt[1])
            end = best.alt[1]
        self._match_trailing_alt(result, end)
        self._consume_total(result, end)

    def _match_trailing_alt(self, result: TokenizationResult, end: int) -> None:
        """``01 (176)``: an isolated bracketed number after the episode is its alternative."""
        opener = result.next_index(end, (TokenKind.IDENTIFIER, TokenKind.BRACKET))
        if opener is None or result.tokens[opener].kind is not TokenKind.BRACKET:
            return
        if any(result.tokens[i].kind is not TokenKind.DELIMITER for i in range(end + 1, opener)):
            return
        inner = opener + 1
        if (
            inner < len(result.tokens)
            and result.tokens[inner].category is None
            and _NUMBER.match(result.text(inner))
            and result.is_sole_bracket_content(inner)
        ):
            result.tag(ElementKind.EPISODE_NUMBER_ALT, inner)

    def _consume_total(self, result: TokenizationResult, end: int) -> None:
        """``05 of 12``, ``8 & 10``: the second number is not free text."""
        tokens = result.tokens
        link = end + 1
        while link < len(tokens) and tokens[link].kind is TokenKind.DELIMITER and result.text(link) != "&":
            link += 1
        if link >= len(tokens) or tokens[link].category is not None:
            return
        if tokens[link].kind is TokenKind.BRACKET or result.text(link).casefold() not in TOTAL_LINKS:
            return
        total = result.next_index(link)
        if total is None or tokens[total].category is not None or not self._joined(result, link, total):
            return
        if _NUMBER.match(result.text(total)):
            result.tag(ElementKind.UNKNOWN, link, total)

    def match_leftover_alt(self, result: TokenizationResult) -> None:
        """
        Tag the best number still free after title extraction as EpisodeNumberAlt.

        Runs only once an episode number exists, so ``[Group] Title - 05
        [Hi10][12].mkv`` keeps ``12`` as the alternative of ``05``.

        Args:
            result: TokenizationResult after title extraction
        """
        if not self.options.parse_episode or not result.has_tag(ElementKind.EPISODE_NUMBER):
            return
        candidates = self.collect_candidates(result)
        if not candidates:
            return
        best = max(candidates, key=score_candidate)
        result.tag(ElementKind.EPISODE_NUMBER_ALT, best.first, best.last)
        if best.alt is not None:
            result.tag(ElementKind.EPISODE_NUMBER_ALT, best.alt[0], best.alt[1])

    def _leading_word(self, result: TokenizationResult) -> Optional[int]:
        """
        The first free non-enclosed identifier, when more free words follow.

        A filename rarely starts with its episode number, but ``[Group] 01
        [720p].mkv`` has nothing else outside brackets.
        """
        words = [
            i for i, token in enumerate(result.tokens)
            if token.kind is TokenKind.IDENTIFIER and not token.enclosed and token.category is None
        ]
        if len(words) < 2:
            return None
        return words[0]

    def _joined(self, result: TokenizationResult, left: int, right: int) -> bool:
        """True when only delimiters lie between two tokens."""
        return all(result.tokens[i].kind is TokenKind.DELIMITER for i in range(left + 1, right))

    def _dash_separated(self, result: TokenizationResult, index: int) -> bool:
        position = index - 1
        while position >= 0 and result.tokens[position].kind is TokenKind.DELIMITER:
            if result.text(position)[0] in DASHES:
                return True
            position -= 1
        return False

    def _in_dotted_group(self, result: TokenizationResult, index: int) -> bool:
        """Digits joined by ``.`` or ``,`` to other digits, other than ``N.5``."""
        tokens = result.tokens
        before = index - 2
        after = index + 2
        joined_before = (
            before >= 0
            and result.text(index - 1) in (".", ",")
            and tokens[before].kind is TokenKind.IDENTIFIER
            and result.text(before).isdigit()
        )
        joined_after = (
            after < len(tokens)
            and result.text(index + 1) in (".", ",")
            and tokens[after].kind is TokenKind.IDENTIFIER
            and tokens[after].category is None
            and result.text(after).isdigit()
        )
        if joined_before:
            return True
        if joined_after:
            # N.5 is a decimal episode unless the group goes on (1.5.2)
            if result.text(after) != "5":
                return True
            return (
                after + 2 < len(tokens)
                and result.text(after + 1) in (".", ",")
                and result.text(after + 2).isdigit()
            )
        return False

    def _skip_dotted_group(self, result: TokenizationResult, index: int) -> int:
        while (
            index + 2 < len(result.tokens)
            and result.text(index + 1) in (".", ",")
            and result.text(index + 2).isdigit()
        ):
            index += 2
        return index + 1
