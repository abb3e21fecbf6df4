#!/usr/bin/env python3
"""
Element classifier: extension extraction and keyword matching.

Pass 1 tags a trailing ``.ext`` as FileExtension. Pass 2 walks the free
identifiers left to right and tags the longest run of identifiers (joined by
single delimiter characters) that names a keyword, so ``Blu-Ray`` becomes one
Source element rather than two words.
"""

import logging
import re
from typing import List, Optional, Set

from .element import ElementKind
from .keyword_table import KeywordEntry, KeywordKind, KeywordTable, get_keyword_table, normalize_keyword
from .options import Options
from .tokenizer import TokenizationResult, TokenKind

logger = logging.getLogger(__name__)

# Unknown extensions still need to look like one
_EXTENSION_SHAPE = re.compile(r"^(?=.*[A-Za-z])[A-Za-z0-9]{1,5}$")


class ElementClassifier:
    """Tags tokens using the keyword table."""

    def __init__(self, options: Optional[Options] = None, table: Optional[KeywordTable] = None):
        self.options = options or Options()
        self.table = table or get_keyword_table()

    def process(self, result: TokenizationResult) -> TokenizationResult:
        """
        Run both classification passes over a tokenization result.

        Args:
            result: TokenizationResult from the tokenizer

        Returns:
            The same result with extension and keyword tags recorded
        """
        if self.options.parse_file_extension:
            self.extract_extension(result)
        self.match_keywords(result)
        return result

    def extract_extension(self, result: TokenizationResult) -> Optional[int]:
        """
        Tag the last identifier as FileExtension when it follows a lone dot.

        Returns:
            Token index of the extension, or None
        """
        tokens = result.tokens
        if len(tokens) < 3:
            return None
        last = len(tokens) - 1
        dot = last - 1
        if tokens[last].kind is not TokenKind.IDENTIFIER or tokens[last].category is not None:
            return None
        if tokens[dot].kind is not TokenKind.DELIMITER or result.text(dot) != ".":
            return None

        text = result.text(last)
        entry = self.table.find_extension(text, extended=self.options.extended_extensions)
        if entry is None:
            if not (self.options.allow_unknown_extension and _EXTENSION_SHAPE.match(text)):
                return None
        else:
            tokens[last].keyword = entry

        result.tag(ElementKind.UNKNOWN, dot)
        result.tag(ElementKind.FILE_EXTENSION, last)
        return last

    def match_keywords(self, result: TokenizationResult) -> None:
        """Tag keyword runs, longest run first at each free identifier."""
        tokens = result.tokens
        applied_singular: Set[str] = set()
        index = 0
        while index < len(tokens):
            token = tokens[index]
            if token.kind is not TokenKind.IDENTIFIER or token.category is not None:
                index += 1
                continue

            matched = None
            for run in reversed(self._candidate_runs(result, index)):
                entry = self._lookup(result, run, applied_singular)
                if entry is not None:
                    matched = (entry, run[-1])
                    break

            if matched is None:
                index += 1
                continue

            entry, last = matched
            if entry.singular_only:
                applied_singular.add(entry.normalized)
            result.tag(entry.element_kind, index, last)
            # Prefixes that never meet a number are plain words again
            reclaimable = (entry.ambiguous or entry.is_prefix) and not token.enclosed
            for covered in range(index, last + 1):
                tokens[covered].keyword = entry
                tokens[covered].reclaimable = reclaimable
            index = last + 1

    def _candidate_runs(self, result: TokenizationResult, index: int) -> List[List[int]]:
        """Identifier runs starting at ``index``, shortest first."""
        tokens = result.tokens
        runs = [[index]]
        current = index
        while len(runs) < self.table.max_parts:
            delimiter = current + 1
            following = current + 2
            if following >= len(tokens):
                break
            if tokens[delimiter].kind is not TokenKind.DELIMITER or tokens[delimiter].end - tokens[delimiter].start != 1:
                break
            if tokens[following].kind is not TokenKind.IDENTIFIER or tokens[following].category is not None:
                break
            current = following
            runs.append(runs[-1] + [current])
        return runs

    def _lookup(self, result: TokenizationResult, run: List[int], applied_singular: Set[str]) -> Optional[KeywordEntry]:
        text = result.span_text(run[0], run[-1])
        entry = self.table.find(normalize_keyword(text))
        if entry is None or entry.part_count != len(run):
            return None
        if not entry.matches_literal(text):
            return None
        if entry.must_be_enclosed and not result.tokens[run[0]].enclosed:
            return None
        if entry.singular_only and entry.normalized in applied_singular:
            return None
        if entry.kind is KeywordKind.RELEASE_GROUP and not self.options.parse_release_group:
            return None
        if entry.kind is KeywordKind.VIDEO_RESOLUTION and not self.options.parse_video_resolution:
            return None
        return entry
