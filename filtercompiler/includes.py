"""
includes.py - Expand @include directives

Directive syntax (one per template line):

    @include <url-or-path> [/stripComments] [/exclude="<exclusions-file>"]

A url containing ":" is downloaded, anything else is read relative to the
filter directory. Included content is not scanned for further @include
lines.
"""

from __future__ import annotations

import logging
from typing import Final, NamedTuple

from filtercompiler.context import BuildContext
from filtercompiler.converter import convert
from filtercompiler.downloader import fetch_text, read_text, split_lines
from filtercompiler.exclusions import exclude

logger = logging.getLogger(__name__)

INCLUDE_DIRECTIVE: Final[str] = "@include "

STRIP_COMMENTS_OPTION: Final[str] = "/stripComments"
EXCLUDE_OPTION: Final[str] = "/exclude="


class IncludeDirective(NamedTuple):
    """Parsed @include line."""
    url: str
    strip_comments: bool
    exclude: str | None


def strip_end_quotes(value: str) -> str:
    """
    Strip one leading and one trailing double quote.

    Example:
        >>> strip_end_quotes('"filters/base.txt"')
        'filters/base.txt'
    """
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value


def parse_include_line(line: str) -> IncludeDirective:
    """
    Parse an @include line.

    Example:
        >>> parse_include_line('@include "base.txt" /stripComments /exclude="ex.txt"')
        IncludeDirective(url='base.txt', strip_comments=True, exclude='ex.txt')
    """
    parts = line.split()
    url = strip_end_quotes(parts[1].strip()) if len(parts) > 1 else ""

    strip_comments = False
    exclude_name = None
    for attribute in parts[2:]:
        if attribute.startswith(STRIP_COMMENTS_OPTION):
            strip_comments = True
        elif attribute.startswith(EXCLUDE_OPTION):
            exclude_name = strip_end_quotes(attribute[len(EXCLUDE_OPTION):]) or None

    return IncludeDirective(url, strip_comments, exclude_name)


def strip_comments(lines: list[str]) -> list[str]:
    """Remove lines starting with "!"."""
    logger.info("Stripping comments..")
    return [line for line in lines if not line.startswith("!")]


def is_remote(url: str) -> bool:
    return ":" in url


async def include(line: str, context: BuildContext) -> list[str]:
    """
    Create content from an @include line.

    Args:
        line: The directive line
        context: Build context (base directory and network settings)

    Returns:
        Converted lines of the included resource, empty when the directive
        is invalid or the resource cannot be read
    """
    options = parse_include_line(line)

    if not options.url:
        logger.warning("Invalid include url: %s", line)
        return []

    logger.info("Applying inclusion from: %s", options.url)

    if is_remote(options.url):
        included = await fetch_text(
            options.url, context.session, timeout=context.timeout, retries=context.retries
        )
    else:
        included = await read_text(context.resolve(options.url))
        if included is None:
            logger.warning("Cannot read include: %s", options.url)

    result: list[str] = []
    if included:
        result = split_lines(included)

        if options.exclude:
            result = await exclude(result, options.exclude, context)

        if options.strip_comments:
            result = strip_comments(result)

    result = convert(result)

    logger.info("Inclusion lines: %d", len(result))

    return result
