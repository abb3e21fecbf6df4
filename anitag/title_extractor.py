#!/usr/bin/env python3
"""
Title extractor module for the anime title, release group and episode title.

These are whatever the keyword and number passes left free. The anime title
is the first free run outside brackets; the release group is usually a
bracketed tag at either end; the episode title follows the episode number.
Ambiguous keywords (``Movie``, ``Final``, ``OP`` ...) inside such a run are
taken back as plain text.
"""

import logging
from typing import List, Optional, Tuple

from .element import ElementKind
from .options import Options
from .tokenizer import TokenizationResult, TokenKind

logger = logging.getLogger(__name__)

PARENTHESES = frozenset({"(", "（"})
_SEPARATORS = (TokenKind.DELIMITER, TokenKind.INVALID)


class TitleExtractor:
    """Extractor for titles and release groups from free tokens."""

    def __init__(self, options: Optional[Options] = None):
        self.options = options or Options()

    def process(self, result: TokenizationResult) -> TokenizationResult:
        """
        Extract anime title, release group and episode title.

        Args:
            result: TokenizationResult after number resolution

        Returns:
            Updated TokenizationResult with title and group tags recorded
        """
        if not result.tokens:
            return result
        if self.options.parse_title:
            self.extract_anime_title(result)
        if self.options.parse_release_group and not result.has_tag(ElementKind.RELEASE_GROUP):
            self.extract_release_group(result)
        if self.options.parse_episode_title:
            self.extract_episode_title(result)
        return result

    def _is_open(self, result: TokenizationResult, index: int) -> bool:
        """Free text, or an ambiguous keyword that may still be taken back."""
        token = result.tokens[index]
        return token.kind is TokenKind.IDENTIFIER and (token.category is None or token.reclaimable)

    def _collect_run(self, result: TokenizationResult, start: int, allow_parentheses: bool) -> Tuple[int, bool]:
        """
        Extend a run of open tokens from ``start``.

        Ambiguous keywords trailing the run are left out of it, so
        ``Title - OVA`` keeps OVA as a keyword.

        Args:
            result: Current parse state
            start: Index of an open identifier
            allow_parentheses: Whether untouched ``(...)`` groups belong to the run

        Returns:
            (index of the last free token in the run, or ``start`` if none,
             whether the run holds at least one genuinely free identifier)
        """
        tokens = result.tokens
        last: Optional[int] = start if tokens[start].category is None else None
        index = start + 1
        while index < len(tokens):
            token = tokens[index]
            if token.kind in _SEPARATORS:
                if token.category is not None:
                    break
            elif token.kind is TokenKind.IDENTIFIER:
                if not self._is_open(result, index):
                    break
                if token.category is None:
                    last = index
            elif (
                allow_parentheses
                and result.text(index) in PARENTHESES
                and token.partner is not None
                and token.partner > index
                and self._is_untouched_group(result, index)
            ):
                index = token.partner
                last = index
            else:
                break
            index += 1
        if last is None:
            return start, False
        return last, True

    def _is_untouched_group(self, result: TokenizationResult, opener: int) -> bool:
        """A bracket group whose content has no classified tokens."""
        closer = result.tokens[opener].partner
        return all(result.tokens[i].category is None for i in range(opener + 1, closer))

    def _free_groups(self, result: TokenizationResult) -> List[Tuple[int, int]]:
        """Top-level bracket groups whose content is free text only."""
        groups = []
        for index, token in enumerate(result.tokens):
            if token.kind is not TokenKind.BRACKET or token.enclosed or token.partner is None or token.partner < index:
                continue
            inner = range(index + 1, token.partner)
            if not any(result.tokens[i].kind is TokenKind.IDENTIFIER for i in inner):
                continue
            if all(result.tokens[i].kind is not TokenKind.BRACKET and result.tokens[i].category is None for i in inner):
                groups.append((index, token.partner))
        return groups

    def _is_numeric_group(self, result: TokenizationResult, group: Tuple[int, int]) -> bool:
        return all(
            result.text(i).isdigit()
            for i in range(group[0] + 1, group[1])
            if result.tokens[i].kind is TokenKind.IDENTIFIER
        )

    def _trim(self, result: TokenizationResult, first: int, last: int) -> Optional[Tuple[int, int]]:
        while first <= last and result.tokens[first].kind in _SEPARATORS:
            first += 1
        while last >= first and result.tokens[last].kind in _SEPARATORS:
            last -= 1
        if first > last:
            return None
        return first, last

    def _claim_run(self, result: TokenizationResult, kind: ElementKind, first: int, last: int) -> None:
        for index in range(first, last + 1):
            if result.tokens[index].reclaimable:
                logger.debug("reclaiming %r as %s", result.text(index), kind.value)
                result.reclaim(index)
        result.tag(kind, first, last)

    def _tag_group_content(self, result: TokenizationResult, kind: ElementKind, group: Tuple[int, int]) -> bool:
        span = self._trim(result, group[0] + 1, group[1] - 1)
        if span is None:
            return False
        result.tag(kind, span[0], span[1])
        return True

    def extract_anime_title(self, result: TokenizationResult) -> bool:
        """
        Tag the anime title.

        Returns:
            True if a title was found
        """
        tokens = result.tokens
        index = 0
        while index < len(tokens):
            if tokens[index].enclosed or not self._is_open(result, index):
                index += 1
                continue
            last, has_free = self._collect_run(result, index, allow_parentheses=True)
            if has_free:
                self._claim_run(result, ElementKind.ANIME_TITLE, index, last)
                return True
            index = last + 1

        groups = self._free_groups(result)
        if len(groups) >= 2:
            return self._tag_group_content(result, ElementKind.ANIME_TITLE, groups[1])
        if groups:
            return self._tag_group_content(result, ElementKind.ANIME_TITLE, groups[0])
        return False

    def extract_release_group(self, result: TokenizationResult) -> bool:
        """
        Tag the release group.

        Tried in order: a free bracket group opening the filename, a free
        bracket group closing it, then a word hyphenated onto a classified
        tag at the end (``x264-GROUP``).

        Returns:
            True if a release group was found
        """
        tokens = result.tokens
        # A bare number such as [12] is never a group name
        groups = [group for group in self._free_groups(result) if not self._is_numeric_group(result, group)]
        if groups:
            head = self._trim(result, 0, len(tokens) - 1)
            if head is not None and groups[0][0] == head[0]:
                return self._tag_group_content(result, ElementKind.RELEASE_GROUP, groups[0])

        tail = self._content_end(result)
        if tail is None:
            return False
        if groups and groups[-1][1] == tail:
            return self._tag_group_content(result, ElementKind.RELEASE_GROUP, groups[-1])

        token = tokens[tail]
        if (
            token.kind is TokenKind.IDENTIFIER
            and token.category is None
            and not token.enclosed
            and tail >= 2
            and result.text(tail - 1) == "-"
            and tokens[tail - 2].kind is TokenKind.IDENTIFIER
            and tokens[tail - 2].category not in (None, ElementKind.UNKNOWN, ElementKind.ANIME_TITLE)
        ):
            result.tag(ElementKind.RELEASE_GROUP, tail)
            return True
        return False

    def _content_end(self, result: TokenizationResult) -> Optional[int]:
        """Index of the last non-delimiter token before the file extension."""
        index = len(result.tokens) - 1
        extensions = result.tags_of(ElementKind.FILE_EXTENSION)
        if extensions:
            # Skip the extension and its dot
            index = extensions[0].first - 2
        while index >= 0 and result.tokens[index].kind in _SEPARATORS:
            index -= 1
        return index if index >= 0 else None

    def extract_episode_title(self, result: TokenizationResult) -> bool:
        """
        Tag the free run following the episode number (or the anime title).

        Returns:
            True if an episode title was found
        """
        anchors = result.tags_of(ElementKind.EPISODE_NUMBER) + result.tags_of(ElementKind.EPISODE_NUMBER_ALT)
        if not anchors:
            anchors = result.tags_of(ElementKind.ANIME_TITLE)
        if not anchors:
            return False

        tokens = result.tokens
        index = max(tag.last for tag in anchors) + 1
        while index < len(tokens):
            token = tokens[index]
            if token.kind in _SEPARATORS and token.category is None:
                index += 1
                continue
            # Consumed filler such as "of 12"
            if token.category is ElementKind.UNKNOWN and not token.reclaimable:
                index += 1
                continue
            if token.kind is TokenKind.IDENTIFIER and not token.enclosed and self._is_open(result, index):
                break
            return False
        else:
            return False

        last, has_free = self._collect_run(result, index, allow_parentheses=False)
        if not has_free:
            return False
        self._claim_run(result, ElementKind.EPISODE_TITLE, index, last)
        return True
