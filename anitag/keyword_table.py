#!/usr/bin/env python3
"""
Keyword table: normalized keyword text to classification metadata.

The table is built once from ``dictionaries/keywords.json``, validated against
``keywords.schema.json`` plus a few cross-entry rules, and then shared
read-only by every parse call in the process.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional

from jsonschema import Draft7Validator

from .dictionary_loader import KEYWORDS_DICTIONARY, KEYWORDS_SCHEMA, DictionaryLoader
from .element import ElementKind
from .tokenizer import DELIMITERS

logger = logging.getLogger(__name__)


class DictionaryError(RuntimeError):
    """Raised when the packaged keyword dictionary is missing or malformed."""


class KeywordKind(Enum):
    """Keyword families as named in the dictionary file."""
    ANIME_TYPE = "anime_type"
    ARCHIVE_EXTENSION = "archive_extension"
    AUDIO_CHANNELS = "audio_channels"
    AUDIO_CODEC = "audio_codec"
    AUDIO_LANGUAGE = "audio_language"
    DEVICE_COMPATIBILITY = "device_compatibility"
    EPISODE_PREFIX = "episode_prefix"
    EPISODE_TYPE = "episode_type"
    FILE_EXTENSION = "file_extension"
    LANGUAGE = "language"
    OTHER = "other"
    RELEASE_GROUP = "release_group"
    RELEASE_INFORMATION = "release_information"
    SEASON_PREFIX = "season_prefix"
    SOURCE = "source"
    SUBTITLE_EXTENSION = "subtitle_extension"
    SUBTITLES = "subtitles"
    VERSION_PREFIX = "version_prefix"
    VIDEO_CODEC = "video_codec"
    VIDEO_COLOR_DEPTH = "video_color_depth"
    VIDEO_FORMAT = "video_format"
    VIDEO_FRAME_RATE = "video_frame_rate"
    VIDEO_PROFILE = "video_profile"
    VIDEO_QUALITY = "video_quality"
    VIDEO_RESOLUTION = "video_resolution"
    VOLUME_PREFIX = "volume_prefix"


FAMILY_ELEMENT_KINDS: Mapping[KeywordKind, ElementKind] = MappingProxyType({
    KeywordKind.ANIME_TYPE: ElementKind.ANIME_TYPE,
    KeywordKind.ARCHIVE_EXTENSION: ElementKind.FILE_EXTENSION,
    KeywordKind.AUDIO_CHANNELS: ElementKind.AUDIO_TERM,
    KeywordKind.AUDIO_CODEC: ElementKind.AUDIO_TERM,
    KeywordKind.AUDIO_LANGUAGE: ElementKind.AUDIO_TERM,
    KeywordKind.DEVICE_COMPATIBILITY: ElementKind.DEVICE_COMPATIBILITY,
    KeywordKind.EPISODE_PREFIX: ElementKind.UNKNOWN,
    KeywordKind.EPISODE_TYPE: ElementKind.ANIME_TYPE,
    KeywordKind.FILE_EXTENSION: ElementKind.FILE_EXTENSION,
    KeywordKind.LANGUAGE: ElementKind.LANGUAGE,
    KeywordKind.OTHER: ElementKind.OTHER,
    KeywordKind.RELEASE_GROUP: ElementKind.RELEASE_GROUP,
    KeywordKind.RELEASE_INFORMATION: ElementKind.RELEASE_INFORMATION,
    KeywordKind.SEASON_PREFIX: ElementKind.UNKNOWN,
    KeywordKind.SOURCE: ElementKind.SOURCE,
    KeywordKind.SUBTITLE_EXTENSION: ElementKind.FILE_EXTENSION,
    KeywordKind.SUBTITLES: ElementKind.SUBTITLES,
    KeywordKind.VERSION_PREFIX: ElementKind.UNKNOWN,
    KeywordKind.VIDEO_CODEC: ElementKind.VIDEO_TERM,
    KeywordKind.VIDEO_COLOR_DEPTH: ElementKind.VIDEO_TERM,
    KeywordKind.VIDEO_FORMAT: ElementKind.VIDEO_TERM,
    KeywordKind.VIDEO_FRAME_RATE: ElementKind.VIDEO_TERM,
    KeywordKind.VIDEO_PROFILE: ElementKind.VIDEO_TERM,
    KeywordKind.VIDEO_QUALITY: ElementKind.VIDEO_TERM,
    KeywordKind.VIDEO_RESOLUTION: ElementKind.VIDEO_RESOLUTION,
    KeywordKind.VOLUME_PREFIX: ElementKind.UNKNOWN,
})

PREFIX_KINDS = frozenset({
    KeywordKind.EPISODE_PREFIX,
    KeywordKind.SEASON_PREFIX,
    KeywordKind.VERSION_PREFIX,
    KeywordKind.VOLUME_PREFIX,
})

EXTENSION_KINDS = frozenset({
    KeywordKind.FILE_EXTENSION,
    KeywordKind.SUBTITLE_EXTENSION,
    KeywordKind.ARCHIVE_EXTENSION,
})

_DELIMITER_RUN = re.compile("[" + re.escape("".join(sorted(DELIMITERS))) + "]+")
_STRICT_LITERAL = re.compile(r"[.,]")


def normalize_keyword(text: str) -> str:
    """Case-fold ``text`` and fold every delimiter run into one space."""
    return _DELIMITER_RUN.sub(" ", text.casefold()).strip()


@dataclass(frozen=True)
class KeywordEntry:
    """Classification metadata for one keyword."""
    text: str
    normalized: str
    kind: KeywordKind
    element_kind: ElementKind
    ambiguous: bool = False
    must_be_enclosed: bool = False
    singular_only: bool = False
    strict: bool = False

    @property
    def is_prefix(self) -> bool:
        return self.kind in PREFIX_KINDS

    @property
    def is_extension(self) -> bool:
        return self.kind in EXTENSION_KINDS

    @property
    def part_count(self) -> int:
        return len(self.normalized.split(" "))

    def matches_literal(self, source_text: str) -> bool:
        """Strict keywords only match their literal spelling."""
        return not self.strict or source_text.casefold() == self.text.casefold()


class KeywordTable:
    """Immutable lookup of keyword entries by normalized text."""

    def __init__(self, entries: Iterable[KeywordEntry]):
        keywords: Dict[str, KeywordEntry] = {}
        extensions: Dict[str, KeywordEntry] = {}
        for entry in entries:
            target = extensions if entry.is_extension else keywords
            # First spelling wins when variants fold to the same text
            target.setdefault(entry.normalized, entry)
        self._keywords = MappingProxyType(keywords)
        self._extensions = MappingProxyType(extensions)
        self.max_parts = max((entry.part_count for entry in keywords.values()), default=1)

    def __len__(self) -> int:
        return len(self._keywords) + len(self._extensions)

    def find(self, normalized: str) -> Optional[KeywordEntry]:
        return self._keywords.get(normalized)

    def find_extension(self, text: str, extended: bool = False) -> Optional[KeywordEntry]:
        """
        Look up a file extension by case-insensitive text.

        Args:
            text: Extension without the dot
            extended: Also accept subtitle and archive extensions

        Returns:
            Matching entry, or None
        """
        entry = self._extensions.get(text.casefold())
        if entry is None:
            return None
        if entry.kind is not KeywordKind.FILE_EXTENSION and not extended:
            return None
        return entry

    def entries(self) -> List[KeywordEntry]:
        return list(self._keywords.values()) + list(self._extensions.values())

    @classmethod
    def from_document(cls, document: Any, schema: Optional[Any] = None) -> "KeywordTable":
        """
        Build a table from a parsed dictionary document.

        Args:
            document: Parsed ``keywords.json`` contents
            schema: JSON Schema to validate against; the packaged one when omitted

        Returns:
            KeywordTable

        Raises:
            DictionaryError: If the document fails validation
        """
        if schema is None:
            schema = DictionaryLoader.load_dictionary(KEYWORDS_SCHEMA)
            if schema is None:
                raise DictionaryError(f"keyword schema {KEYWORDS_SCHEMA} is missing or unreadable")
        problems = validate_keyword_document(document, schema)
        if problems:
            raise DictionaryError("invalid keyword dictionary: " + "; ".join(problems))
        return cls(build_entries(document))


def build_entries(document: Mapping[str, Any]) -> List[KeywordEntry]:
    """Expand dictionary groups into KeywordEntry values."""
    entries: List[KeywordEntry] = []
    for group in document.get("groups", []):
        kind = KeywordKind(group["family"])
        ambiguous = set(group.get("ambiguous", []))
        enclosed = set(group.get("must_be_enclosed", []))
        singular = set(group.get("singular_only", []))
        for text in group["keywords"]:
            entries.append(KeywordEntry(
                text=text,
                normalized=text.casefold() if kind in EXTENSION_KINDS else normalize_keyword(text),
                kind=kind,
                element_kind=FAMILY_ELEMENT_KINDS[kind],
                ambiguous=text in ambiguous,
                must_be_enclosed=text in enclosed,
                singular_only=text in singular,
                strict=bool(_STRICT_LITERAL.search(text)),
            ))
    return entries


def validate_with_schema(document: Any, schema: Any, label: str = "keywords") -> List[str]:
    validator = Draft7Validator(schema)
    errors = sorted(validator.iter_errors(document), key=lambda e: list(e.absolute_path))

    messages = []
    for error in errors:
        location = " > ".join(str(p) for p in error.absolute_path) or "root"
        messages.append(f"{label}: {location}: {error.message}")
    return messages


def check_keyword_groups(document: Mapping[str, Any]) -> List[str]:
    """
    Cross-entry rules the schema cannot express.

    - a keyword appears once per namespace (extensions and everything else)
    - flag lists only name keywords of their own group
    - two families never fold to the same normalized text
    - extensions are single alphanumeric words
    """
    errors: List[str] = []
    seen: Dict[str, str] = {}
    folded: Dict[str, str] = {}
    for idx, group in enumerate(document.get("groups", [])):
        family = group["family"]
        is_extension = KeywordKind(family) in EXTENSION_KINDS
        keywords = group["keywords"]

        for flag in ("ambiguous", "must_be_enclosed", "singular_only"):
            for text in group.get(flag, []):
                if text not in keywords:
                    errors.append(f"groups[{idx}] ({family}): {flag} names '{text}' which is not in keywords")

        for text in keywords:
            namespace = "extension" if is_extension else "keyword"
            key = f"{namespace}:{text.casefold()}"
            if key in seen:
                errors.append(f"groups[{idx}] ({family}): duplicate keyword '{text}' also in {seen[key]}")
            else:
                seen[key] = family

            if is_extension:
                if not text.isalnum():
                    errors.append(f"groups[{idx}] ({family}): extension '{text}' must be alphanumeric")
                continue

            normalized = normalize_keyword(text)
            owner = folded.setdefault(normalized, family)
            if owner != family:
                errors.append(
                    f"groups[{idx}] ({family}): '{text}' folds to '{normalized}' which already belongs to {owner}"
                )
    return errors


def validate_keyword_document(document: Any, schema: Any) -> List[str]:
    """
    Validate a keyword dictionary document.

    Args:
        document: Parsed dictionary
        schema: Parsed JSON Schema

    Returns:
        List of problem descriptions; empty when the document is valid
    """
    problems = validate_with_schema(document, schema)
    if problems:
        # Cross-entry rules assume the schema shape
        return problems
    return check_keyword_groups(document)


def load_keyword_table(path: Optional[Path] = None) -> KeywordTable:
    """
    Load and validate a keyword table.

    Args:
        path: Dictionary file to read; the packaged ``keywords.json`` when omitted

    Returns:
        KeywordTable

    Raises:
        DictionaryError: If the dictionary is missing, unreadable or invalid
    """
    document = DictionaryLoader.load_dictionary(KEYWORDS_DICTIONARY, path=path)
    if document is None:
        raise DictionaryError(f"keyword dictionary {path or KEYWORDS_DICTIONARY} is missing or unreadable")
    table = KeywordTable.from_document(document)
    logger.debug("Built keyword table with %d entries", len(table))
    return table


@lru_cache(maxsize=1)
def get_keyword_table() -> KeywordTable:
    """The process-wide keyword table, built on first use."""
    return load_keyword_table()
