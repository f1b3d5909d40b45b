#!/usr/bin/env python3
"""
compiler.py - Template Compiler

Turns a filter template into the final rule body. This is the core of the
build: every other stage is a helper it calls in order.

PIPELINE:
    1. Split the template into lines
    2. Expand "@include" lines in place (see includes.py), trim everything
    3. Apply the directory's exclude.txt
    4. Remove duplicates (first occurrence wins, order kept)
    5. Validate rules, then apply the domain blacklist
    6. Sort

Template example:

    ! Base rules
    @include "fragments/ads.txt" /stripComments
    @include https://example.org/list.txt /exclude="remote-exclude.txt"
    ||tracker.example.com^

Only template lines are scanned for @include; included content is taken
as rule text.
"""

from __future__ import annotations

import logging
import sys
from typing import Final, Iterable

from filtercompiler.context import BuildContext
from filtercompiler.downloader import split_lines
from filtercompiler.exclusions import exclude
from filtercompiler.includes import INCLUDE_DIRECTIVE, include
from filtercompiler.sorter import sort_rules
from filtercompiler.validator import blacklist_domains, validate

logger = logging.getLogger(__name__)

# ============================================================================
# CONFIGURATION
# ============================================================================

EXCLUDE_FILE: Final[str] = "exclude.txt"


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def remove_duplicates(lines: Iterable[str]) -> list[str]:
    """
    Remove duplicate lines, keeping the first occurrence in place.

    Example:
        >>> remove_duplicates(["a", "b", "a", "c", "b"])
        ['a', 'b', 'c']
    """
    seen: set[str] = set()
    result: list[str] = []
    for line in lines:
        if line not in seen:
            seen.add(line)
            result.append(line)
    return result


async def expand_template(template: str, context: BuildContext) -> list[str]:
    """Resolve @include lines of a template, trimming every resulting line."""
    result: list[str] = []

    for line in split_lines(template):
        if line.startswith(INCLUDE_DIRECTIVE):
            included = await include(line.strip(), context)
            result.extend(rule.strip() for rule in included)
        else:
            result.append(line.strip())

    return result


# ============================================================================
# MAIN COMPILATION
# ============================================================================

async def compile_template(template: str, context: BuildContext) -> list[str]:
    """
    Compile filter lines from a template.

    Args:
        template: Template text
        context: Build context of the filter directory

    Returns:
        Processed rule body, ready to follow the header
    """
    result = await expand_template(template, context)

    result = await exclude(result, EXCLUDE_FILE, context)

    before = len(result)
    result = remove_duplicates(result)
    logger.info("Duplicates removed: %d", before - len(result))

    result = validate(result)
    result = blacklist_domains(result, context.blacklist)

    return sort_rules(result)


# ============================================================================
# MAIN
# ============================================================================

if __name__ == "__main__":
    import asyncio
    from pathlib import Path

    if len(sys.argv) < 2:
        print("Usage: python -m filtercompiler.compiler <template_file>")
        sys.exit(1)

    template_path = Path(sys.argv[1])
    with open(template_path, encoding="utf-8-sig", errors="replace") as f:
        template_text = f.read()

    compiled = asyncio.run(compile_template(template_text, BuildContext(template_path.parent)))

    for rule in compiled:
        print(rule)
