"""
Release filename metadata parser.

This package contains the parsing pipeline and its tooling:
- tokenizer: Token partition and bracket pairing
- keyword_table: Keyword dictionary loading, validation and lookup
- classifier: File extension and keyword tagging
- number_resolver: Episode, season, year, resolution and checksum numbers
- title_extractor: Anime title, release group and episode title
- pipeline: FilenameParser and the parse() entry point
- batch: Sequential and threaded parsing of many filenames
- config: Layered runtime configuration
- report: Excel workbook output
- evaluation: Accuracy against a labelled corpus
"""

# Explicit imports make the public API clear and prevent namespace pollution
from .element import Element, ElementKind, elements_to_dict, elements_to_json
from .options import InvalidOptionsError, Options
from .keyword_table import DictionaryError, KeywordEntry, KeywordKind, KeywordTable, get_keyword_table
from .tokenizer import Token, TokenKind, TokenizationResult, Tokenizer, check_partition, tokenize
from .classifier import ElementClassifier
from .number_resolver import Candidate, NumberResolver, score_candidate
from .title_extractor import TitleExtractor
from .pipeline import FilenameParser, parse

__version__ = "0.1.0"

__all__ = [
    'Element',
    'ElementKind',
    'elements_to_dict',
    'elements_to_json',
    'InvalidOptionsError',
    'Options',
    'DictionaryError',
    'KeywordEntry',
    'KeywordKind',
    'KeywordTable',
    'get_keyword_table',
    'Token',
    'TokenKind',
    'TokenizationResult',
    'Tokenizer',
    'check_partition',
    'tokenize',
    'ElementClassifier',
    'Candidate',
    'NumberResolver',
    'score_candidate',
    'TitleExtractor',
    'FilenameParser',
    'parse',
]
