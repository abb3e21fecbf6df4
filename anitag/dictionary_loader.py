#!/usr/bin/env python3
"""
Dictionary loader for the JSON data files shipped inside the package.

Provides a single point of access for reading keyword dictionaries and their
schemas, with a process-wide cache so each file is read at most once.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

KEYWORDS_DICTIONARY = "keywords.json"
KEYWORDS_SCHEMA = "keywords.schema.json"


class DictionaryLoader:
    """Centralized dictionary loader with caching support."""

    # Parsed JSON documents keyed by file name
    _cache: Dict[str, Any] = {}

    @staticmethod
    def get_dictionary_path(dictionary_name: str = KEYWORDS_DICTIONARY) -> Path:
        """
        Get the absolute path to a packaged dictionary file.

        Args:
            dictionary_name: Name of the dictionary file

        Returns:
            Absolute path inside ``anitag/dictionaries``
        """
        return Path(__file__).resolve().parent / "dictionaries" / dictionary_name

    @classmethod
    def load_dictionary(
        cls,
        dictionary_name: str = KEYWORDS_DICTIONARY,
        use_cache: bool = True,
        path: Optional[Path] = None,
    ) -> Optional[Any]:
        """
        Load a dictionary from the dictionaries folder, or from an explicit path.

        Args:
            dictionary_name: Name of the dictionary file to load
            use_cache: Whether to use cached version if available
            path: Explicit file to read instead of the packaged one; never cached

        Returns:
            Parsed JSON contents, or None if the file is missing or not valid JSON
        """
        if path is None and use_cache and dictionary_name in cls._cache:
            return cls._cache[dictionary_name]

        dictionary_path = path if path is not None else cls.get_dictionary_path(dictionary_name)

        try:
            with open(dictionary_path, "r", encoding="utf-8") as f:
                dictionary = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to load dictionary %s: %s", dictionary_path, e)
            return None

        if path is None and use_cache:
            cls._cache[dictionary_name] = dictionary
        logger.debug("Loaded dictionary %s", dictionary_path)
        return dictionary

    @classmethod
    def clear_cache(cls, dictionary_name: Optional[str] = None) -> None:
        """
        Clear the dictionary cache.

        Args:
            dictionary_name: Specific dictionary to clear, or None to clear all
        """
        if dictionary_name:
            cls._cache.pop(dictionary_name, None)
        else:
            cls._cache.clear()
