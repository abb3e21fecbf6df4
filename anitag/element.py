#!/usr/bin/env python3
"""
Element model for parsed filenames.

An Element is one named piece of metadata pulled out of a filename. Its value
is always a verbatim slice of the input, so ``filename[start:end] == value``.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Union


class ElementKind(Enum):
    """Closed set of element categories."""
    ANIME_TITLE = "anime_title"
    ANIME_TYPE = "anime_type"
    AUDIO_TERM = "audio_term"
    DEVICE_COMPATIBILITY = "device_compatibility"
    EPISODE_NUMBER = "episode_number"
    EPISODE_NUMBER_ALT = "episode_number_alt"
    EPISODE_TITLE = "episode_title"
    FILE_CHECKSUM = "file_checksum"
    FILE_EXTENSION = "file_extension"
    LANGUAGE = "language"
    OTHER = "other"
    RELEASE_GROUP = "release_group"
    RELEASE_INFORMATION = "release_information"
    RELEASE_VERSION = "release_version"
    RELEASE_YEAR = "release_year"
    SEASON = "season"
    SOURCE = "source"
    SUBTITLES = "subtitles"
    VIDEO_RESOLUTION = "video_resolution"
    VIDEO_TERM = "video_term"
    VOLUME = "volume"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Element:
    """A classified slice of the input filename."""
    kind: ElementKind
    value: str
    start: int
    end: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "value": self.value,
            "start": self.start,
            "end": self.end,
        }


def elements_to_dict(elements: Iterable[Element]) -> Dict[str, Union[str, List[str]]]:
    """
    Flatten elements into a ``{kind: value}`` mapping.

    A kind that occurs more than once maps to the list of its values in
    source order, e.g. ``{"episode_number": "01", "episode_number_alt": "02"}``
    or ``{"audio_term": ["FLAC", "AAC"]}``.

    Args:
        elements: Parsed elements in source order

    Returns:
        Dict keyed by ElementKind value
    """
    flat: Dict[str, Union[str, List[str]]] = {}
    for element in elements:
        key = element.kind.value
        existing = flat.get(key)
        if existing is None:
            flat[key] = element.value
        elif isinstance(existing, list):
            existing.append(element.value)
        else:
            flat[key] = [existing, element.value]
    return flat


def elements_to_json(elements: Iterable[Element], *, flat: bool = True) -> str:
    """Serialize elements as JSON, either flattened or as a list of records."""
    if flat:
        return json.dumps(elements_to_dict(elements), ensure_ascii=False)
    return json.dumps([element.to_dict() for element in elements], ensure_ascii=False)
