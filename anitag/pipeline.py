#!/usr/bin/env python3
"""
Filename parser for anime and media release filenames.

Runs the fixed pipeline: tokenize → extension and keyword classification →
number resolution → title, group and episode title extraction → leftover
numbers → assembly.
"""

import logging
from typing import List, Optional

from .classifier import ElementClassifier
from .element import Element, ElementKind
from .keyword_table import KeywordTable, get_keyword_table
from .number_resolver import NumberResolver
from .options import Options
from .title_extractor import TitleExtractor
from .tokenizer import TokenizationResult, Tokenizer

logger = logging.getLogger(__name__)


class FilenameParser:
    """Parser for extracting metadata elements from release filenames."""

    def __init__(self, options: Optional[Options] = None, table: Optional[KeywordTable] = None):
        """
        Args:
            options: Parse options; validated here, once
            table: Keyword table; the shared packaged table when omitted

        Raises:
            InvalidOptionsError: If the options are invalid
        """
        self.options = (options or Options()).validate()
        self.table = table or get_keyword_table()
        self.tokenizer = Tokenizer()
        self.classifier = ElementClassifier(self.options, self.table)
        self.number_resolver = NumberResolver(self.options)
        self.title_extractor = TitleExtractor(self.options)

    def tokenize(self, filename: str) -> TokenizationResult:
        """Split the filename into tokens."""
        return self.tokenizer.tokenize(filename, self.options)

    def classify(self, token_result: TokenizationResult) -> TokenizationResult:
        """Tag the file extension and keyword runs."""
        return self.classifier.process(token_result)

    def resolve_numbers(self, token_result: TokenizationResult) -> TokenizationResult:
        """Resolve episode, season, year and other numbers."""
        return self.number_resolver.process(token_result)

    def extract_titles(self, token_result: TokenizationResult) -> TokenizationResult:
        """Tag anime title, release group and episode title."""
        return self.title_extractor.process(token_result)

    def resolve_leftover_numbers(self, token_result: TokenizationResult) -> TokenizationResult:
        """Tag the best number left free by every other pass as EpisodeNumberAlt."""
        self.number_resolver.match_leftover_alt(token_result)
        return token_result

    def assemble(self, token_result: TokenizationResult) -> List[Element]:
        """
        Turn recorded tags into elements ordered by source position.

        Unknown and reclaimed tags are dropped. Ties keep pass order.

        Args:
            token_result: Fully processed TokenizationResult

        Returns:
            Elements sorted by start offset
        """
        source = token_result.source
        elements = [
            Element(kind=tag.kind, value=source[tag.start:tag.end], start=tag.start, end=tag.end)
            for tag in token_result.tags
            if not tag.reclaimed and tag.kind is not ElementKind.UNKNOWN and tag.end > tag.start
        ]
        elements.sort(key=lambda element: element.start)
        return elements

    def parse_result(self, filename: str) -> TokenizationResult:
        """
        Run every pass and return the annotated token state.

        Args:
            filename: Filename to parse

        Returns:
            TokenizationResult with all tags recorded
        """
        if not isinstance(filename, str):
            raise TypeError(f"filename must be str, got {type(filename).__name__}")

        # Step 1: Tokenization
        token_result = self.tokenize(filename)

        # Step 2: Extension and keyword classification
        token_result = self.classify(token_result)

        # Step 3: Number resolution
        token_result = self.resolve_numbers(token_result)

        # Step 4: Title, release group and episode title
        token_result = self.extract_titles(token_result)

        # Step 5: Leftover numbers
        return self.resolve_leftover_numbers(token_result)

    def parse(self, filename: str) -> List[Element]:
        """
        Full parsing pipeline: tokenize → classify → resolve numbers → extract titles →
        leftover numbers → assemble.

        Never raises for a string input; an unparseable filename yields fewer
        elements, possibly none.

        Args:
            filename: Filename to parse

        Returns:
            Elements in source order
        """
        elements = self.assemble(self.parse_result(filename))
        logger.debug("parsed %r into %d elements", filename, len(elements))
        return elements


def parse(filename: str, options: Optional[Options] = None) -> List[Element]:
    """
    Parse a release filename into metadata elements.

    Args:
        filename: Filename to parse (a bare name, not a path)
        options: Parse options; defaults when omitted

    Returns:
        Elements in source order

    Raises:
        InvalidOptionsError: If the options are invalid
    """
    return FilenameParser(options).parse(filename)
