"""Per-directory build context."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import aiohttp

from filtercompiler.downloader import DEFAULT_RETRIES, DEFAULT_TIMEOUT


@dataclass(frozen=True)
class BuildContext:
    """
    Everything a single filter build needs besides its template.

    Relative include and exclusion paths resolve against ``filter_dir``.
    One context exists per directory, so concurrent builds never share
    a base directory.
    """
    filter_dir: Path
    session: aiohttp.ClientSession | None = None
    blacklist: frozenset[str] = field(default_factory=frozenset)
    timeout: int = DEFAULT_TIMEOUT
    retries: int = DEFAULT_RETRIES

    def resolve(self, name: str) -> Path:
        """Path of a resource relative to the filter directory."""
        return self.filter_dir / name
