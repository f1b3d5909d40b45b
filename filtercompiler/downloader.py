#!/usr/bin/env python3
"""
downloader.py - Remote and local resource reading

Remote includes are fetched with aiohttp (retries with exponential backoff),
local resources are read with aiofiles. A resource that cannot be read
yields None: callers treat it as "contributes nothing".

Usage:
    python -m filtercompiler.downloader <url>
"""
from __future__ import annotations

import asyncio
import logging
import re
import sys
from pathlib import Path
from typing import Final

import aiohttp
import aiofiles


logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_TIMEOUT: Final[int] = 30
DEFAULT_RETRIES: Final[int] = 3

#: Logical line separator: any run of CR/LF characters
LINE_SPLIT_PATTERN: Final[re.Pattern[str]] = re.compile(r"[\r\n]+")


def split_lines(text: str) -> list[str]:
    """
    Split text on any run of CR/LF characters.

    Example:
        >>> split_lines("a\\r\\n\\r\\nb")
        ['a', 'b']
    """
    return LINE_SPLIT_PATTERN.split(text)


async def read_text(path: Path) -> str | None:
    """Read a UTF-8 text file, or None if it cannot be read."""
    try:
        async with aiofiles.open(path, encoding="utf-8-sig", errors="replace") as f:
            return await f.read()
    except OSError as e:
        logger.debug("Cannot read %s: %s", path, e)
        return None


async def write_text(path: Path, content: str) -> None:
    """Write text atomically (temp file + rename), without newline translation."""
    temp_path = path.with_suffix(path.suffix + ".tmp")
    async with aiofiles.open(temp_path, "w", encoding="utf-8", newline="") as f:
        await f.write(content)
    temp_path.replace(path)


async def _fetch(
    session: aiohttp.ClientSession,
    url: str,
    timeout: int,
    retries: int,
) -> str | None:
    for attempt in range(retries):
        try:
            async with session.get(
                url,
                timeout=aiohttp.ClientTimeout(total=timeout),
                allow_redirects=True,
            ) as response:
                if response.status >= 400:
                    if attempt < retries - 1:
                        await asyncio.sleep(2 ** attempt)  # Exponential backoff
                        continue
                    logger.warning("Download failed: %s (HTTP %d)", url, response.status)
                    return None

                content = await response.read()
                return content.decode("utf-8-sig", errors="replace")

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            if attempt < retries - 1:
                await asyncio.sleep(2 ** attempt)
                continue
            logger.warning("Download failed: %s (%s)", url, str(e) or type(e).__name__)
            return None

    return None


async def fetch_text(
    url: str,
    session: aiohttp.ClientSession | None = None,
    timeout: int = DEFAULT_TIMEOUT,
    retries: int = DEFAULT_RETRIES,
) -> str | None:
    """
    Download a remote resource as text.

    Args:
        url: Resource URL
        session: Shared session; a temporary one is opened when omitted
        timeout: Total request timeout in seconds
        retries: Attempts before giving up

    Returns:
        Decoded body, or None on HTTP error, timeout or connection failure
    """
    logger.info("Downloading: %s", url)

    if session is not None:
        return await _fetch(session, url, timeout, max(retries, 1))

    async with aiohttp.ClientSession() as own_session:
        return await _fetch(own_session, url, timeout, max(retries, 1))


def main() -> int:
    """Main entry point."""
    if len(sys.argv) < 2:
        print("Usage: python -m filtercompiler.downloader <url>")
        return 2

    text = asyncio.run(fetch_text(sys.argv[1]))
    if text is None:
        print(f"❌ Could not download {sys.argv[1]}", file=sys.stderr)
        return 1

    lines = [line for line in split_lines(text) if line]
    print(f"✅ Downloaded {len(lines):,} lines")
    return 0


if __name__ == "__main__":
    sys.exit(main())
