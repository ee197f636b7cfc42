"""Audio file scanner for the in-memory music library.

This module walks the configured root directories, extracts metadata from
every supported audio file with Mutagen (in a thread pool) and publishes the
result to the LibraryIndex in a single atomic swap.

Failures are local: an unreadable file is logged and skipped, an unreadable
directory is logged and its subtree skipped, a missing root is logged and
ignored. Nothing short of a bug aborts a scan.

Within each directory, entries are visited in name order with files before
subdirectories. The order is deterministic for an unchanged tree on one
filesystem (best effort, not a guarantee across filesystems).

Typical usage example:
    scanner = DirectoryScanner(index)
    stats = await scanner.scan(["/home/me/Music"])
    print(f"Indexed: {stats.indexed}, Errors: {stats.errors}")
"""

import asyncio
import concurrent.futures
import os
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from loguru import logger

from syncwave.core.catalog import CatalogEntry, build_entry
from syncwave.core.config import settings
from syncwave.core.exceptions import ExtractionError, ScanIOError
from syncwave.core.ids import PathLike, is_within, normalize_path
from syncwave.core.library_index import LibraryIndex
from syncwave.core.scanner_config import ScannerConfig
from syncwave.core.stats import ScanStats
from syncwave.worker.metadata import MetadataExtractor


@dataclass(frozen=True)
class _DirEntry:
    name: str
    path: str
    is_dir: bool
    is_file: bool
    is_symlink: bool


def is_hidden(name: str) -> bool:
    return name.startswith(".")


class DirectoryScanner:
    """Recursive audio file scanner feeding a LibraryIndex.

    Attributes:
        index: The catalog the scan publishes into.
        extractor: Metadata extractor (Mutagen-backed by default).
        config: ScannerConfig instance for configurable behavior.
        excluded_dirs: Directory names never descended into.
        extensions: Lower-case file extensions (with dot) that are indexed.
    """

    def __init__(
        self,
        index: LibraryIndex,
        extractor: Optional[MetadataExtractor] = None,
        config: Optional[ScannerConfig] = None,
        excluded_dirs: Optional[Iterable[str]] = None,
        extensions: Optional[Iterable[str]] = None,
    ):
        self.index = index
        self.extractor = extractor or MetadataExtractor()
        self.config = config or ScannerConfig()
        self.excluded_dirs: Set[str] = set(
            settings.EXCLUDED_DIRS if excluded_dirs is None else excluded_dirs
        )
        self.extensions: Set[str] = {
            ext.lower()
            for ext in (settings.SUPPORTED_EXTENSIONS if extensions is None else extensions)
        }
        # Mutagen is blocking
        self.executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=self.config.metadata_workers,
            thread_name_prefix="syncwave-metadata",
        )

    def close(self) -> None:
        self.executor.shutdown(wait=False, cancel_futures=True)

    # ========== Public API ==========

    async def scan(self, roots: Sequence[PathLike]) -> ScanStats:
        """Full rescan: walks ``roots`` and replaces the whole catalog.

        Returns:
            ScanStats; ``indexed`` is the number of entries discovered.

        Raises:
            ScanInProgressError: If another rescan is already running.
        """
        async with self.index.rescan():
            logger.info(f"Scanning music library: {len(roots)} root(s)")
            entries, stats = await self.collect(roots)
            total = await self.index.replace_all(entries)
            logger.success(f"Scan complete! Found {total} songs ({stats})")
            return stats

    async def collect(
        self, roots: Sequence[PathLike]
    ) -> Tuple[List[CatalogEntry], ScanStats]:
        """Walks every root and builds entries without touching the index."""
        stats = ScanStats()
        entries: List[CatalogEntry] = []
        seen_paths: Set[str] = set()

        for root in roots:
            root_path = normalize_path(os.path.expanduser(os.fspath(root)))
            if not os.path.isdir(root_path):
                logger.warning(f"Directory not found: {root_path}")
                stats.missing_roots += 1
                continue
            await self._walk_root(root_path, entries, seen_paths, stats)

        stats.indexed = len(entries)
        return entries, stats

    async def discover(self, directory: PathLike) -> List[CatalogEntry]:
        """Builds entries for every supported file below ``directory``."""
        entries, _ = await self.collect([directory])
        return entries

    async def build_entry_for(self, file_path: PathLike) -> Optional[CatalogEntry]:
        """Extracts and builds the entry for one file; None on failure."""
        path = normalize_path(file_path)
        loop = asyncio.get_running_loop()
        try:
            metadata = await loop.run_in_executor(
                self.executor, self.extractor.extract, path
            )
            stat = await loop.run_in_executor(None, os.stat, path)
        except ExtractionError as e:
            logger.warning(f"Could not read metadata: {os.path.basename(path)} ({e.reason})")
            return None
        except OSError as e:
            logger.warning(f"File vanished before indexing: {path} ({e})")
            return None
        return build_entry(path, metadata, stat)

    def is_supported(self, file_name: str) -> bool:
        return os.path.splitext(file_name)[1].lower() in self.extensions

    def is_excluded_dir(self, name: str) -> bool:
        return is_hidden(name) or name in self.excluded_dirs

    # ========== Walking ==========

    def _list_directory(self, directory: str) -> List[_DirEntry]:
        """Blocking directory listing, sorted by name."""
        try:
            with os.scandir(directory) as it:
                listed = []
                for entry in it:
                    try:
                        listed.append(
                            _DirEntry(
                                name=entry.name,
                                path=entry.path,
                                is_dir=entry.is_dir(),
                                is_file=entry.is_file(),
                                is_symlink=entry.is_symlink(),
                            )
                        )
                    except OSError as e:
                        logger.debug(f"Skipping unreadable entry {entry.path}: {e}")
        except OSError as e:
            raise ScanIOError(directory, e.strerror or str(e)) from e
        listed.sort(key=lambda d: d.name)
        return listed

    def _symlink_allowed(self, path: str, root_real: str) -> bool:
        if not self.config.follow_symlinks:
            return False
        target = os.path.realpath(path)
        if not is_within(target, root_real):
            logger.debug(f"Not following symlink outside root: {path} -> {target}")
            return False
        return True

    async def _walk_root(
        self,
        root: str,
        entries: List[CatalogEntry],
        seen_paths: Set[str],
        stats: ScanStats,
    ) -> None:
        loop = asyncio.get_running_loop()
        root_real = os.path.realpath(root)
        visited_dirs: Set[str] = set()
        pending = [root]

        while pending:
            directory = pending.pop()
            real_dir = os.path.realpath(directory)
            if real_dir in visited_dirs:
                continue
            visited_dirs.add(real_dir)

            try:
                listing = await loop.run_in_executor(
                    None, self._list_directory, directory
                )
            except ScanIOError as e:
                logger.warning(f"Skipping {e.directory}: {e.reason}")
                stats.skipped_dirs += 1
                continue

            files: List[str] = []
            subdirs: List[str] = []
            for item in listing:
                if item.is_symlink and not self._symlink_allowed(item.path, root_real):
                    continue
                if item.is_dir:
                    if not self.is_excluded_dir(item.name):
                        subdirs.append(item.path)
                elif item.is_file and not is_hidden(item.name) and self.is_supported(item.name):
                    path = normalize_path(item.path)
                    if path not in seen_paths:
                        seen_paths.add(path)
                        files.append(path)

            if files:
                await self._process_files(files, entries, stats)

            # Depth-first in name order
            pending.extend(reversed(subdirs))

    async def _process_files(
        self, files: List[str], entries: List[CatalogEntry], stats: ScanStats
    ) -> None:
        """Extracts one directory's files concurrently, keeping their order."""
        semaphore = asyncio.Semaphore(self.config.max_concurrent_files)

        async def process_with_semaphore(path: str) -> Optional[CatalogEntry]:
            async with semaphore:
                try:
                    return await self.build_entry_for(path)
                except Exception as e:
                    logger.error(f"Error processing {path}: {e}")
                    return None

        results = await asyncio.gather(*[process_with_semaphore(f) for f in files])
        for entry in results:
            if entry is None:
                stats.errors += 1
                continue
            entries.append(entry)
            if len(entries) % self.config.progress_log_interval == 0:
                logger.info(f"Scanned {len(entries)} files...")
