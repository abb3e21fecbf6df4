#!/usr/bin/env python3
"""
Per-call parser options.

Options are immutable and validated once, before the pipeline runs. An
invalid Options value is the only input the parser rejects.
"""

from dataclasses import dataclass, fields
from typing import Any, Mapping


class InvalidOptionsError(ValueError):
    """Raised when an Options value cannot be used for parsing."""


@dataclass(frozen=True)
class Options:
    """Configuration for a single parse call."""
    allow_unknown_extension: bool = False
    extended_extensions: bool = False
    parse_episode_title: bool = True
    parse_release_group: bool = True
    year_min: int = 1950
    year_max: int = 2050
    parse_episode: bool = True
    parse_season: bool = True
    parse_year: bool = True
    parse_file_checksum: bool = True
    parse_file_extension: bool = True
    parse_video_resolution: bool = True
    parse_title: bool = True

    def validate(self) -> "Options":
        """
        Check the option values.

        Returns:
            self, so calls can be chained

        Raises:
            InvalidOptionsError: If a year bound is not a year or the range is empty
        """
        for name in ("year_min", "year_max"):
            value = getattr(self, name)
            # bool is an int subclass; True is not a year
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidOptionsError(f"{name} must be an integer year, got {value!r}")
            if not 0 <= value <= 9999:
                raise InvalidOptionsError(f"{name} must be within 0..9999, got {value}")
        if self.year_min >= self.year_max:
            raise InvalidOptionsError(
                f"year range is degenerate: year_min={self.year_min} must be below year_max={self.year_max}"
            )
        for field_info in fields(self):
            if field_info.type is bool:
                value = getattr(self, field_info.name)
                if not isinstance(value, bool):
                    raise InvalidOptionsError(f"{field_info.name} must be a boolean, got {value!r}")
        return self

    def contains_year(self, value: int) -> bool:
        return self.year_min <= value <= self.year_max

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "Options":
        """
        Build validated Options from a host-supplied mapping.

        Keys not named here are rejected instead of silently ignored, so a
        typo in a config file surfaces as an error.

        Args:
            mapping: Field name to value

        Returns:
            Validated Options

        Raises:
            InvalidOptionsError: On unknown keys or invalid values
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(mapping) - known)
        if unknown:
            raise InvalidOptionsError(f"unknown option(s): {', '.join(unknown)}")
        return cls(**dict(mapping)).validate()

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}
