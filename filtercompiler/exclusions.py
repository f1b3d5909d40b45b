"""
exclusions.py - Drop rules listed in an exclusions resource

Exclusions file format, one entry per line:

    ! comment, ignored
    example.org            literal: drops every rule containing the text
    /^\\|\\|ads\\./        pattern: drops every rule the regex matches

An unreadable exclusions file is not an error, the rules pass unchanged.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Union

from filtercompiler.context import BuildContext
from filtercompiler.downloader import read_text, split_lines

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiteralExclusion:
    """Matches rules containing ``text``."""
    text: str

    def matches(self, line: str) -> bool:
        return self.text in line


@dataclass(frozen=True)
class PatternExclusion:
    """Matches rules where ``pattern`` is found."""
    pattern: re.Pattern[str]

    def matches(self, line: str) -> bool:
        return self.pattern.search(line) is not None


Exclusion = Union[LiteralExclusion, PatternExclusion]


def parse_exclusions(lines: Iterable[str]) -> list[Exclusion]:
    """
    Parse exclusion entries.

    Comments (!) and blank lines are skipped. "/.../" entries become
    patterns with exactly the outer slashes removed; an entry that does
    not compile is logged and skipped.

    Example:
        >>> parse_exclusions(["! note", "ads.js", "/^ad[sv]/"])
        [LiteralExclusion(text='ads.js'), PatternExclusion(pattern=re.compile('^ad[sv]'))]
    """
    entries: list[Exclusion] = []
    for raw in lines:
        entry = raw.strip()
        if not entry or entry.startswith("!"):
            continue

        if len(entry) > 2 and entry.startswith("/") and entry.endswith("/"):
            try:
                entries.append(PatternExclusion(re.compile(entry[1:-1])))
            except re.error as e:
                logger.warning("Invalid exclusion pattern %s: %s", entry, e)
            continue

        entries.append(LiteralExclusion(entry))
    return entries


def is_excluded(line: str, exclusions: Iterable[Exclusion]) -> bool:
    """Check if line matches any exclusion."""
    return any(exclusion.matches(line) for exclusion in exclusions)


def filter_excluded(lines: list[str], exclusions: list[Exclusion]) -> list[str]:
    """Remove lines matching any exclusion, preserving order."""
    if not exclusions:
        return list(lines)
    return [line for line in lines if not is_excluded(line, exclusions)]


async def exclude(lines: list[str], exclusions_name: str, context: BuildContext) -> list[str]:
    """
    Apply the exclusions resource ``exclusions_name`` from the filter directory.

    Args:
        lines: Rules to filter
        exclusions_name: File name relative to context.filter_dir
        context: Build context

    Returns:
        Surviving lines in their original order
    """
    logger.info("Applying exclusions from %s..", exclusions_name)

    content = await read_text(context.resolve(exclusions_name))
    if not content:
        return lines

    result = filter_excluded(lines, parse_exclusions(split_lines(content)))

    logger.info("Excluded lines: %d", len(lines) - len(result))

    return result
