"""Library lifecycle: configured roots, rescans, and the watcher.

``LibraryService`` is the only place that starts scans. Rescans run as
background tasks so HTTP handlers can return immediately; a second rescan
request while one is running is rejected with ScanInProgressError.
"""

import asyncio
import os
from typing import Iterable, List, Optional

from loguru import logger

from syncwave.core.exceptions import (
    DirectoryExistsError,
    InvalidDirectoryError,
    ScanInProgressError,
)
from syncwave.core.ids import PathLike, normalize_path
from syncwave.core.library_index import LibraryIndex
from syncwave.core.stats import ScanStats
from syncwave.worker.scanner import DirectoryScanner
from syncwave.worker.watcher import ChangeWatcher


class LibraryService:
    """Owns the root directory list and orchestrates scanner and watcher.

    Attributes:
        index: The shared catalog.
        scanner: DirectoryScanner used for full rescans.
        watcher: ChangeWatcher, or None when watching is disabled.
        last_stats: Stats of the last completed scan.
    """

    def __init__(
        self,
        index: LibraryIndex,
        scanner: DirectoryScanner,
        watcher: Optional[ChangeWatcher] = None,
        directories: Iterable[PathLike] = (),
    ):
        self.index = index
        self.scanner = scanner
        self.watcher = watcher
        self.last_stats: Optional[ScanStats] = None
        self._directories: List[str] = []
        for directory in directories:
            path = normalize_path(os.path.expanduser(os.fspath(directory)))
            if path not in self._directories:
                self._directories.append(path)
        self._scan_task: Optional[asyncio.Task] = None
        # Set when roots change during a background scan
        self._rescan_pending = False

    @property
    def directories(self) -> List[str]:
        return list(self._directories)

    @property
    def is_scanning(self) -> bool:
        return self.index.is_scanning or (
            self._scan_task is not None and not self._scan_task.done()
        )

    # ========== Lifecycle ==========

    async def startup(self, scan: bool = True, watch: bool = True) -> None:
        """Initial scan, then start watching."""
        if scan:
            await self.rescan()
        if watch and self.watcher is not None:
            self.watcher.start(self._directories)

    async def shutdown(self) -> None:
        if self.watcher is not None and self.watcher.is_running:
            await self.watcher.stop()
        if self._scan_task is not None and not self._scan_task.done():
            self._scan_task.cancel()
            try:
                await self._scan_task
            except asyncio.CancelledError:
                pass
        self.scanner.close()

    # ========== Scans ==========

    async def rescan(self) -> ScanStats:
        """Runs a full rescan in the caller's task.

        Raises:
            ScanInProgressError: If a rescan is already running.
        """
        stats = await self.scanner.scan(list(self._directories))
        self.last_stats = stats
        return stats

    def trigger_rescan(self) -> asyncio.Task:
        """Starts a full rescan in the background.

        Raises:
            ScanInProgressError: If a rescan is already running.
        """
        if self.is_scanning:
            raise ScanInProgressError()
        self._scan_task = asyncio.get_running_loop().create_task(
            self._run_background_scan(), name="syncwave-rescan"
        )
        return self._scan_task

    async def _run_background_scan(self) -> None:
        while True:
            self._rescan_pending = False
            try:
                await self.rescan()
            except ScanInProgressError:
                logger.info("Scan already in progress...")
            except Exception:
                logger.exception("Background scan failed")
            if not self._rescan_pending:
                break
            logger.info("Directories changed during scan, rescanning")

    # ========== Directories ==========

    def add_directory(self, path: Optional[str]) -> List[str]:
        """Registers a new root, watches it and triggers a rescan.

        Returns:
            The updated directory list.

        Raises:
            InvalidDirectoryError: Blank path or not an existing directory.
            DirectoryExistsError: Already configured.
        """
        if not path or not path.strip():
            raise InvalidDirectoryError(path or "")
        normalized = normalize_path(os.path.expanduser(path.strip()))
        if not os.path.isdir(normalized):
            raise InvalidDirectoryError(path)
        if normalized in self._directories:
            raise DirectoryExistsError(normalized)

        self._directories.append(normalized)
        logger.info(f"Directory added: {normalized}")
        if self.watcher is not None and self.watcher.is_running:
            self.watcher.add_root(normalized)
        if self.is_scanning:
            self._rescan_pending = True
            logger.info(f"Scan in progress; {normalized} queued for the next pass")
        else:
            self.trigger_rescan()
        return self.directories

    def status(self) -> dict:
        return {
            "librarySize": len(self.index),
            "isScanning": self.is_scanning,
            "directories": self.directories,
            "watching": self.watcher is not None and self.watcher.is_running,
        }
