"""
builder.py - Build one filter directory

Directory layout:

    <filter_dir>/
        template.txt    required, compiled by compiler.py
        metadata.json   required, {"name", "description", "expires"}
        revision.json   read and rewritten, {"version", "timeUpdated"}
        exclude.txt     optional exclusions
        filter.txt      output

Outputs are only written once every fatal check has passed.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Final

from filtercompiler.compiler import compile_template
from filtercompiler.context import BuildContext
from filtercompiler.downloader import read_text, write_text
from filtercompiler.version import Revision, next_revision

logger = logging.getLogger(__name__)

TEMPLATE_FILE: Final[str] = "template.txt"
FILTER_FILE: Final[str] = "filter.txt"
REVISION_FILE: Final[str] = "revision.json"
METADATA_FILE: Final[str] = "metadata.json"

LINE_SEPARATOR: Final[str] = "\r\n"


class FilterBuildError(Exception):
    """A filter directory cannot be built."""


class TemplateNotFoundError(FilterBuildError):
    """template.txt is missing or empty."""


class MetadataError(FilterBuildError):
    """metadata.json is missing or malformed."""


@dataclass(frozen=True)
class Metadata:
    name: str
    description: str
    expires: str | int | float


@dataclass(frozen=True)
class BuildSummary:
    """What a successful build wrote."""
    filter_dir: Path
    version: str
    rules: int


async def load_metadata(path: Path) -> Metadata:
    """
    Read filter metadata.

    Raises:
        MetadataError: file missing, not JSON, or missing a required key
    """
    content = await read_text(path)
    if not content:
        raise MetadataError(f"Error reading metadata: {path}")

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise MetadataError(f"Malformed metadata {path}: {e}") from e

    if not isinstance(data, dict):
        raise MetadataError(f"Malformed metadata {path}: expected an object")

    missing = [key for key in ("name", "description", "expires") if key not in data]
    if missing:
        raise MetadataError(f"Malformed metadata {path}: missing {', '.join(missing)}")

    return Metadata(str(data["name"]), str(data["description"]), data["expires"])


async def load_revision(path: Path) -> Revision | None:
    content = await read_text(path)
    if not content:
        return None
    try:
        return Revision.from_dict(json.loads(content))
    except json.JSONDecodeError as e:
        logger.warning("Could not parse %s: %s", path, e)
        return None


async def make_revision(path: Path) -> Revision:
    """Create the revision of this build from the previous revision file."""
    return next_revision(await load_revision(path))


def format_time_updated(time_updated: int) -> str:
    """
    Human-readable build date.

    Example:
        >>> format_time_updated(0)
        'Thu Jan 01 1970'
    """
    return datetime.fromtimestamp(time_updated / 1000, tz=timezone.utc).strftime("%a %b %d %Y")


def make_header(metadata: Metadata, revision: Revision) -> list[str]:
    """Create the five header lines."""
    logger.info("Adding header..")
    return [
        f"! Title: {metadata.name}",
        f"! Description: {metadata.description}",
        f"! Version: {revision.version}",
        f"! TimeUpdated: {format_time_updated(revision.time_updated)}",
        f"! Expires: {metadata.expires} (update frequency)",
    ]


async def build_filter(filter_dir: Path, context: BuildContext) -> BuildSummary:
    """
    Build filter.txt from a directory's contents.

    Args:
        filter_dir: Filter directory
        context: Shared settings; its filter_dir is replaced by this directory

    Raises:
        TemplateNotFoundError: template.txt is missing or empty
        MetadataError: metadata.json is missing or malformed
    """
    filter_dir = Path(filter_dir)
    if context.filter_dir != filter_dir:
        context = replace(context, filter_dir=filter_dir)

    template = await read_text(filter_dir / TEMPLATE_FILE)
    if not template:
        raise TemplateNotFoundError(f"Invalid template: {filter_dir / TEMPLATE_FILE}")

    metadata = await load_metadata(filter_dir / METADATA_FILE)

    revision_path = filter_dir / REVISION_FILE
    revision = await make_revision(revision_path)

    logger.info("Compiling %s..", filter_dir.name)
    compiled = await compile_template(template, context)
    logger.info("Compiled length: %d", len(compiled))

    lines = make_header(metadata, revision) + compiled

    logger.info("Writing filter file, lines: %d", len(lines))
    await write_text(filter_dir / FILTER_FILE, LINE_SEPARATOR.join(lines))
    logger.info("Writing revision file..")
    await write_text(revision_path, revision.to_json())

    return BuildSummary(filter_dir, revision.version, len(compiled))

