#!/usr/bin/env python3
"""
Tokenizer module for splitting a filename into span-annotated tokens.

The token list is a partition of the input: spans are ordered, contiguous and
cover every character exactly once. Every later pass annotates these tokens
in place and addresses them by list index, so no pass ever re-tokenizes.

Token kinds:
- bracket: a matched opening or closing bracket character
- delimiter: a run of one repeated delimiter character, or an unmatched bracket
- identifier: a run of anything else
- invalid: a run of control or format characters
"""

import logging
import unicodedata
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple

from .element import ElementKind

if TYPE_CHECKING:
    from .keyword_table import KeywordEntry
    from .options import Options

logger = logging.getLogger(__name__)

DELIMITERS = frozenset(
    " \t\u00a0\u200b\u3000"
    "_.,&+~|"
    "-\u00ad\u2010\u2011\u2012\u2013\u2014\u2015"
)

# Opening bracket -> closing bracket
BRACKET_PAIRS = MappingProxyType({
    "(": ")",
    "[": "]",
    "{": "}",
    "「": "」",
    "『": "』",
    "【": "】",
    "（": "）",
    "［": "］",
    "｛": "｝",
})
CLOSING_BRACKETS = frozenset(BRACKET_PAIRS.values())

_INVALID_CATEGORIES = ("Cc", "Cf")


class TokenKind(Enum):
    DELIMITER = "delimiter"
    BRACKET = "bracket"
    IDENTIFIER = "identifier"
    INVALID = "invalid"


@dataclass
class Token:
    """A contiguous span of the input with its classification state."""
    start: int
    end: int
    kind: TokenKind
    enclosed: bool = False
    category: Optional[ElementKind] = None
    # Index of the matching bracket token, for matched brackets only
    partner: Optional[int] = None
    keyword: Optional["KeywordEntry"] = None
    # Ambiguous keyword hit that title extraction may take back
    reclaimable: bool = False

    def text(self, source: str) -> str:
        return source[self.start:self.end]


@dataclass
class Tag:
    """One element-to-be: a kind and the verbatim span it covers."""
    kind: ElementKind
    start: int
    end: int
    first: int
    last: int
    reclaimed: bool = False


@dataclass
class TokenizationResult:
    """Per-call parse state: the input, its tokens and the tags recorded so far."""
    source: str
    tokens: List[Token]
    tags: List[Tag] = field(default_factory=list)
    options: Optional["Options"] = None

    def text(self, index: int) -> str:
        return self.tokens[index].text(self.source)

    def span_text(self, first: int, last: int) -> str:
        return self.source[self.tokens[first].start:self.tokens[last].end]

    def has_tag(self, kind: ElementKind) -> bool:
        return any(tag.kind is kind and not tag.reclaimed for tag in self.tags)

    def tags_of(self, kind: ElementKind) -> List[Tag]:
        return [tag for tag in self.tags if tag.kind is kind and not tag.reclaimed]

    def tag(
        self,
        kind: ElementKind,
        first: int,
        last: Optional[int] = None,
        start: Optional[int] = None,
        end: Optional[int] = None,
    ) -> Tag:
        """
        Record a tag over tokens ``first..last`` and mark them classified.

        A token that already carries a category keeps it; categories are set
        once. ``start``/``end`` narrow the value to a sub-span of a single
        compound token such as ``S01E02``.

        Args:
            kind: Element kind to record
            first: Index of the first covered token
            last: Index of the last covered token (defaults to ``first``)
            start: Optional character offset overriding the first token's start
            end: Optional character offset overriding the last token's end

        Returns:
            The recorded Tag
        """
        if last is None:
            last = first
        for index in range(first, last + 1):
            token = self.tokens[index]
            if token.category is None:
                token.category = kind
        tag = Tag(
            kind=kind,
            start=self.tokens[first].start if start is None else start,
            end=self.tokens[last].end if end is None else end,
            first=first,
            last=last,
        )
        self.tags.append(tag)
        logger.debug("tag %s %r", kind.value, self.source[tag.start:tag.end])
        return tag

    def reclaim(self, index: int) -> None:
        """Take an ambiguous keyword token back as free text."""
        token = self.tokens[index]
        for tag in self.tags:
            if tag.first <= index <= tag.last and not tag.reclaimed:
                tag.reclaimed = True
                for covered in range(tag.first, tag.last + 1):
                    self.tokens[covered].category = None
                    self.tokens[covered].reclaimable = False
                    self.tokens[covered].keyword = None
        token.category = None
        token.reclaimable = False

    def prev_index(self, index: int, kinds: Sequence[TokenKind] = (TokenKind.IDENTIFIER,)) -> Optional[int]:
        """Index of the nearest token before ``index`` whose kind is in ``kinds``."""
        for i in range(index - 1, -1, -1):
            if self.tokens[i].kind in kinds:
                return i
        return None

    def next_index(self, index: int, kinds: Sequence[TokenKind] = (TokenKind.IDENTIFIER,)) -> Optional[int]:
        """Index of the nearest token after ``index`` whose kind is in ``kinds``."""
        for i in range(index + 1, len(self.tokens)):
            if self.tokens[i].kind in kinds:
                return i
        return None

    def is_sole_bracket_content(self, first: int, last: Optional[int] = None) -> bool:
        """True when tokens ``first..last`` are all that a matched bracket pair holds."""
        if last is None:
            last = first
        if first == 0 or last + 1 >= len(self.tokens):
            return False
        before = self.tokens[first - 1]
        return before.kind is TokenKind.BRACKET and before.partner == last + 1


def pair_brackets(text: str) -> Dict[int, int]:
    """
    Match bracket characters with a stack.

    A closing bracket that matches an opener deeper in the stack closes it and
    leaves the openers above it unmatched. Closers with no opener stay
    unmatched.

    Args:
        text: Input string

    Returns:
        Mapping of character offset to partner offset, in both directions
    """
    stack: List[Tuple[int, str]] = []
    pairs: Dict[int, int] = {}
    for position, char in enumerate(text):
        if char in BRACKET_PAIRS:
            stack.append((position, BRACKET_PAIRS[char]))
        elif char in CLOSING_BRACKETS:
            for depth in range(len(stack) - 1, -1, -1):
                if stack[depth][1] == char:
                    opener = stack[depth][0]
                    del stack[depth:]
                    pairs[opener] = position
                    pairs[position] = opener
                    break
    return pairs


def _is_invalid(char: str) -> bool:
    return unicodedata.category(char) in _INVALID_CATEGORIES


class Tokenizer:
    """Tokenizer for splitting filenames into delimiter, bracket and identifier tokens."""

    def tokenize(self, filename: str, options: Optional["Options"] = None) -> TokenizationResult:
        """
        Split a filename into tokens.

        Never raises for any string. Unmatched brackets become delimiter
        tokens and do not change enclosure.

        Args:
            filename: Raw filename
            options: Options carried along for the later passes

        Returns:
            TokenizationResult holding the token partition
        """
        tokens = tokenize(filename)
        logger.debug("tokenized %r into %d tokens", filename, len(tokens))
        return TokenizationResult(source=filename, tokens=tokens, options=options)


def tokenize(text: str) -> List[Token]:
    """Split ``text`` into a token partition."""
    pairs = pair_brackets(text)
    tokens: List[Token] = []
    # Character offset of a matched bracket -> its token index
    bracket_tokens: Dict[int, int] = {}
    depth = 0
    position = 0
    length = len(text)

    while position < length:
        char = text[position]

        if position in pairs:
            if pairs[position] > position:
                tokens.append(Token(position, position + 1, TokenKind.BRACKET, enclosed=depth > 0))
                depth += 1
            else:
                depth -= 1
                tokens.append(Token(position, position + 1, TokenKind.BRACKET, enclosed=depth > 0))
                opener_index = bracket_tokens[pairs[position]]
                tokens[opener_index].partner = len(tokens) - 1
                tokens[-1].partner = opener_index
            bracket_tokens[position] = len(tokens) - 1
            position += 1
            continue

        if char in DELIMITERS or char in BRACKET_PAIRS or char in CLOSING_BRACKETS:
            end = position + 1
            while end < length and text[end] == char and end not in pairs:
                end += 1
            tokens.append(Token(position, end, TokenKind.DELIMITER, enclosed=depth > 0))
            position = end
            continue

        if _is_invalid(char):
            end = position + 1
            while end < length and _is_invalid(text[end]) and text[end] not in DELIMITERS:
                end += 1
            tokens.append(Token(position, end, TokenKind.INVALID, enclosed=depth > 0))
            position = end
            continue

        end = position + 1
        while end < length:
            next_char = text[end]
            if (
                next_char in DELIMITERS
                or next_char in BRACKET_PAIRS
                or next_char in CLOSING_BRACKETS
                or _is_invalid(next_char)
            ):
                break
            end += 1
        tokens.append(Token(position, end, TokenKind.IDENTIFIER, enclosed=depth > 0))
        position = end

    return tokens


def check_partition(text: str, tokens: Sequence[Token]) -> bool:
    """
    Check that token spans cover ``text`` in order with no gaps or overlaps.

    Args:
        text: The tokenized input
        tokens: Tokens produced for it

    Returns:
        True when the spans partition the input exactly
    """
    position = 0
    for token in tokens:
        if token.start != position or token.end <= token.start:
            return False
        position = token.end
    return position == len(text)
