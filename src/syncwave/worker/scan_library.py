"""CLI entry point for a one-off scan of one or more directories.

Run from the repository root:
    python -m syncwave.worker.scan_library <directory_path> [<directory_path> ...]

Builds a throwaway index with DirectoryScanner and logs what was found.
"""

import asyncio
import sys
from pathlib import Path
from typing import List

from loguru import logger

from syncwave.core.library_index import LibraryIndex
from syncwave.core.logger import setup_logging
from syncwave.core.stats import ScanStats
from syncwave.worker.scanner import DirectoryScanner


async def main(paths: List[str]) -> ScanStats:
    """Scan directories and print a summary."""
    if not paths:
        logger.error("Usage: python -m syncwave.worker.scan_library <directory_path> ...")
        sys.exit(1)

    for path in paths:
        if not Path(path).exists():
            logger.error(f"Path does not exist: {path}")
            sys.exit(1)

    index = LibraryIndex()
    scanner = DirectoryScanner(index)
    try:
        logger.info(f"Scanning: {', '.join(str(Path(p).resolve()) for p in paths)}...")
        stats = await scanner.scan(paths)
    finally:
        scanner.close()

    for entry in index.all():
        logger.debug(f"{entry.artist} - {entry.title} [{entry.format}] {entry.file_path}")
    logger.success(f"Scan complete: {stats}")
    return stats


if __name__ == "__main__":
    setup_logging(log_to_file=False)
    try:
        asyncio.run(main(sys.argv[1:]))
    except KeyboardInterrupt:
        print("\nScan interrupted.")
        sys.exit(130)
