"""
version.py - Dotted version strings and build revisions

Versions have four numeric segments: major.minor.build.revision.
Each build increments the last segment.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Final

logger = logging.getLogger(__name__)

BASELINE_VERSION: Final[str] = "1.0.0.0"
VERSION_SEGMENTS: Final[int] = 4


def parse_version(version: str) -> tuple[int, ...]:
    """
    Parse a dotted version into comparable segments, padded to four.

    Raises:
        ValueError: a segment is not a non-negative integer

    Example:
        >>> parse_version("1.2")
        (1, 2, 0, 0)
        >>> parse_version("1.0.0.10") > parse_version("1.0.0.9")
        True
    """
    parts = version.strip().split(".")
    if not all(part.isdigit() for part in parts):
        raise ValueError(f"Invalid version: {version!r}")

    segments = [int(part) for part in parts]
    segments += [0] * (VERSION_SEGMENTS - len(segments))
    return tuple(segments)


def format_version(segments: tuple[int, ...]) -> str:
    return ".".join(str(segment) for segment in segments)


def increment(version: str) -> str:
    """
    Increment the last segment of a version.

    Example:
        >>> increment("1.0.0.9")
        '1.0.0.10'
    """
    segments = list(parse_version(version))
    segments[-1] += 1
    return format_version(tuple(segments))


def now_millis() -> int:
    return int(time.time() * 1000)


@dataclass
class Revision:
    """Version and build time (epoch milliseconds) of a compiled filter."""
    version: str
    time_updated: int

    def to_json(self) -> str:
        return json.dumps({"version": self.version, "timeUpdated": self.time_updated}, indent="\t")

    @classmethod
    def from_dict(cls, data: Any) -> "Revision | None":
        """Build a revision from parsed JSON, None if the shape is wrong."""
        if not isinstance(data, dict) or not isinstance(data.get("version"), str):
            return None
        time_updated = data.get("timeUpdated")
        if not isinstance(time_updated, int) or isinstance(time_updated, bool):
            time_updated = 0
        return cls(data["version"], time_updated)


def next_revision(previous: Revision | None, now: int | None = None) -> Revision:
    """
    Create the revision for a new build.

    Without a previous revision the baseline version is used. Otherwise the
    version is incremented and the timestamp is kept strictly increasing.
    """
    timestamp = now_millis() if now is None else now

    if previous is None:
        return Revision(BASELINE_VERSION, timestamp)

    try:
        version = increment(previous.version)
    except ValueError:
        logger.warning("Invalid previous version %r, starting at %s", previous.version, BASELINE_VERSION)
        return Revision(BASELINE_VERSION, timestamp)

    return Revision(version, max(timestamp, previous.time_updated + 1))
