#!/usr/bin/env python3
"""
pipeline.py

Batch driver: builds every filter directory under a root.

Usage:
    python -m filtercompiler.pipeline <filters_dir> --log build.log --blacklist blacklist.txt

Each immediate subdirectory of <filters_dir> is one filter (see builder.py).
A directory that fails to build is reported and skipped; the others are
still built.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
import time
from pathlib import Path
from typing import Final, NamedTuple

import aiohttp

from filtercompiler.builder import build_filter
from filtercompiler.context import BuildContext
from filtercompiler.downloader import DEFAULT_RETRIES, DEFAULT_TIMEOUT
from filtercompiler.validator import load_domain_blacklist

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_CONCURRENCY: Final[int] = 4

LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class BuildResult(NamedTuple):
    """Result of building a single filter directory."""
    directory: str
    success: bool
    version: str | None = None
    rules: int = 0
    error: str | None = None


def configure_logging(log_file: str | Path | None, level: int = logging.INFO) -> None:
    """Send package logs to log_file (when given) and stderr."""
    package_logger = logging.getLogger("filtercompiler")
    package_logger.setLevel(level)

    # Reuse handlers attached by an earlier call
    has_stream = any(type(h) is logging.StreamHandler for h in package_logger.handlers)
    log_paths = {
        h.baseFilename for h in package_logger.handlers if isinstance(h, logging.FileHandler)
    }

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = []
    if not has_stream:
        handlers.append(logging.StreamHandler())
    if log_file and os.path.abspath(log_file) not in log_paths:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)


def list_filter_dirs(filters_dir: Path) -> list[Path]:
    """Immediate subdirectories, in name order."""
    return sorted(path for path in filters_dir.iterdir() if path.is_dir())


async def build_one(filter_dir: Path, context: BuildContext) -> BuildResult:
    logger.info("Building filter: %s", filter_dir.name)
    summary = await build_filter(filter_dir, context)
    logger.info("Building filter: %s ok", filter_dir.name)
    return BuildResult(filter_dir.name, success=True, version=summary.version, rules=summary.rules)


async def build_all(
    filters_dir: str | Path,
    blacklist_file: str | Path | None = None,
    concurrency: int = DEFAULT_CONCURRENCY,
    timeout: int = DEFAULT_TIMEOUT,
    retries: int = DEFAULT_RETRIES,
) -> list[BuildResult]:
    """
    Build all filters in child directories.

    Args:
        filters_dir: Root directory, one subdirectory per filter
        blacklist_file: Domain blacklist applied to every filter
        concurrency: Max directories built at the same time
        timeout: Download timeout in seconds
        retries: Download attempts per remote include

    Returns:
        One BuildResult per directory, in directory name order
    """
    root = Path(filters_dir)
    if not root.is_dir():
        raise FileNotFoundError(f"Filters directory not found: {filters_dir}")

    directories = list_filter_dirs(root)
    blacklist = await load_domain_blacklist(blacklist_file)

    # Create semaphore for concurrency control
    semaphore = asyncio.Semaphore(max(concurrency, 1))

    async with aiohttp.ClientSession() as session:
        async def build_with_semaphore(filter_dir: Path) -> BuildResult:
            context = BuildContext(
                filter_dir,
                session=session,
                blacklist=blacklist,
                timeout=timeout,
                retries=retries,
            )
            async with semaphore:
                return await build_one(filter_dir, context)

        tasks = [build_with_semaphore(directory) for directory in directories]
        results = await asyncio.gather(*tasks, return_exceptions=True)

    # Handle exceptions in results
    final_results = []
    for directory, result in zip(directories, results):
        if isinstance(result, BaseException):
            logger.error("Building filter: %s failed: %s", directory.name, result)
            final_results.append(BuildResult(directory.name, success=False, error=str(result)))
        else:
            final_results.append(result)

    return final_results


def print_summary(results: list[BuildResult]) -> None:
    """Print formatted summary."""
    print("\n" + "=" * 60)
    print("📊 BUILD SUMMARY")
    print("=" * 60)

    for result in results:
        if result.success:
            print(f"   ✅ {result.directory:<30} v{result.version} ({result.rules:,} rules)")
        else:
            print(f"   ❌ {result.directory:<30} {result.error}")

    failed = sum(1 for r in results if not r.success)
    print(f"\n📁 Filters: {len(results)} (failed: {failed})")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compile filter directories into block lists")
    parser.add_argument("filters_dir", help="Directory containing one subdirectory per filter")
    parser.add_argument("--log", dest="log_file", help="Log file")
    parser.add_argument("--blacklist", dest="blacklist_file", help="Domain blacklist file")
    parser.add_argument("--concurrency", type=int, default=DEFAULT_CONCURRENCY, help="Max filters built at once")
    parser.add_argument("--timeout", type=int, default=DEFAULT_TIMEOUT, help="Download timeout in seconds")
    parser.add_argument("--retries", type=int, default=DEFAULT_RETRIES, help="Download attempts per URL")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    configure_logging(args.log_file)

    try:
        print("🚀 Building filters...")
        print("-" * 60)

        start_time = time.time()
        results = asyncio.run(build_all(
            args.filters_dir,
            blacklist_file=args.blacklist_file,
            concurrency=args.concurrency,
            timeout=args.timeout,
            retries=args.retries,
        ))
        total_time = time.time() - start_time

        print_summary(results)
        print(f"\n⏱️  Total time: {total_time:.1f}s")

    except Exception as e:
        print(f"\n❌ ERROR: {e}", file=sys.stderr)
        logger.exception("Build aborted")
        return 1

    return 0 if all(r.success for r in results) else 1


if __name__ == "__main__":
    sys.exit(main())
