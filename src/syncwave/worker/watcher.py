"""Filesystem watcher keeping the LibraryIndex current between scans.

Watchdog delivers callbacks on its observer thread. They are turned into
typed ``WatchEvent`` messages and handed to the event loop through an
``asyncio.Queue``; a single consumer task applies them to the index, one at
a time, in arrival order.

A file is usually reported as created before its contents are written.
Create and modify events for files are therefore debounced per path: the
file is indexed once no further event arrived for ``debounce_delay``
seconds, or as soon as the writer closes it (``SETTLED``).

Moves and renames are a delete of the old path plus a create of the new one:
ids follow paths, so the entry gets a new id.

Delivery is at-least-once and may be delayed or duplicated; every handler is
idempotent.
"""

import asyncio
import os
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from syncwave.core.config import settings
from syncwave.core.ids import PathLike, entry_id_for, is_within, normalize_path
from syncwave.core.library_index import LibraryIndex
from syncwave.worker.scanner import DirectoryScanner, is_hidden


class WatchEventKind(str, Enum):
    CREATED = "created"
    MODIFIED = "modified"
    # Writer closed the file, or its debounce window expired
    SETTLED = "settled"
    DELETED = "deleted"


@dataclass(frozen=True)
class WatchEvent:
    kind: WatchEventKind
    path: str
    is_directory: bool = False


class _EventBridge(FileSystemEventHandler):
    """Runs on the observer thread; only enqueues."""

    def __init__(self, loop: asyncio.AbstractEventLoop, queue: "asyncio.Queue[WatchEvent]"):
        super().__init__()
        self._loop = loop
        self._queue = queue

    def _emit(self, kind: WatchEventKind, path, is_directory: bool) -> None:
        event = WatchEvent(kind, os.fsdecode(path), is_directory)
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, event)
        except RuntimeError:
            # Loop already closed during shutdown
            pass

    def on_created(self, event: FileSystemEvent) -> None:
        self._emit(WatchEventKind.CREATED, event.src_path, event.is_directory)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._emit(WatchEventKind.MODIFIED, event.src_path, False)

    def on_closed(self, event: FileSystemEvent) -> None:
        self._emit(WatchEventKind.SETTLED, event.src_path, False)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._emit(WatchEventKind.DELETED, event.src_path, event.is_directory)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._emit(WatchEventKind.DELETED, event.src_path, event.is_directory)
        self._emit(WatchEventKind.CREATED, event.dest_path, event.is_directory)


class ChangeWatcher:
    """Translates filesystem create/delete events into index updates.

    Attributes:
        index: The catalog to update.
        scanner: Used to build entries (same rules as a full scan).
        roots: Directories currently watched.
        debounce_delay: Seconds of quiet after which a file being written is
            indexed. 0 indexes on the first event.
    """

    def __init__(
        self,
        index: LibraryIndex,
        scanner: DirectoryScanner,
        observer_factory: Callable[[], Observer] = Observer,
        debounce_delay: Optional[float] = None,
    ):
        self.index = index
        self.scanner = scanner
        self.roots: List[str] = []
        self.debounce_delay = (
            settings.WATCH_DEBOUNCE_DELAY if debounce_delay is None else debounce_delay
        )
        self._deferred: Dict[str, asyncio.TimerHandle] = {}
        self._observer_factory = observer_factory
        self._observer: Optional[Observer] = None
        self._queue: Optional["asyncio.Queue[WatchEvent]"] = None
        self._handler: Optional[_EventBridge] = None
        self._consumer: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    def start(self, roots: Sequence[PathLike]) -> None:
        """Starts watching ``roots``. Must be called from the event loop."""
        if self._observer is not None:
            logger.warning("Watcher already running")
            return
        loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._handler = _EventBridge(loop, self._queue)
        self._observer = self._observer_factory()
        for root in roots:
            self.add_root(root)
        self._observer.start()
        self._consumer = loop.create_task(self._consume(), name="syncwave-watcher")
        logger.info(f"Watching for file changes in {len(self.roots)} directories...")

    def add_root(self, root: PathLike) -> bool:
        """Adds ``root`` to the watch list (scheduled immediately if running).

        Returns:
            True if the root is now watched.
        """
        path = normalize_path(os.path.expanduser(os.fspath(root)))
        if path in self.roots:
            return True
        if not os.path.isdir(path):
            logger.warning(f"Not watching missing directory: {path}")
            return False
        if self._observer is not None:
            try:
                self._observer.schedule(self._handler, path, recursive=True)
            except OSError as e:
                logger.warning(f"Cannot watch {path}: {e}")
                return False
        self.roots.append(path)
        return True

    async def stop(self) -> None:
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            await asyncio.get_running_loop().run_in_executor(None, observer.join)
        for handle in self._deferred.values():
            handle.cancel()
        self._deferred.clear()
        if self._consumer is not None:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
            self._consumer = None
        self.roots.clear()
        logger.info("Watcher stopped")

    async def _consume(self) -> None:
        assert self._queue is not None
        while True:
            event = await self._queue.get()
            try:
                if self._should_defer(event):
                    self._defer(event.path)
                else:
                    self._cancel_deferred(event.path)
                    await self.apply(event)
            except Exception:
                logger.exception(f"Failed to apply {event}")
            finally:
                self._queue.task_done()

    # ========== Debouncing ==========

    def _should_defer(self, event: WatchEvent) -> bool:
        return (
            self.debounce_delay > 0
            and not event.is_directory
            and event.kind in (WatchEventKind.CREATED, WatchEventKind.MODIFIED)
        )

    def _defer(self, path: str) -> None:
        """(Re)starts the quiet period of ``path``."""
        self._cancel_deferred(path)
        self._deferred[path] = asyncio.get_running_loop().call_later(
            self.debounce_delay, self._settle, path
        )

    def _settle(self, path: str) -> None:
        self._deferred.pop(path, None)
        if self._queue is not None:
            self._queue.put_nowait(WatchEvent(WatchEventKind.SETTLED, path))

    def _cancel_deferred(self, path: str) -> None:
        handle = self._deferred.pop(path, None)
        if handle is not None:
            handle.cancel()

    # ========== Event handling ==========

    def should_ignore(self, path: PathLike) -> bool:
        """Hidden paths and excluded directories below a root are ignored."""
        path = normalize_path(path)
        base = next((r for r in self.roots if is_within(path, r)), None)
        relative = os.path.relpath(path, base) if base else os.path.basename(path)
        parts = [p for p in relative.split(os.sep) if p not in ("", ".")]
        return any(is_hidden(p) or p in self.scanner.excluded_dirs for p in parts)

    async def apply(self, event: WatchEvent) -> None:
        if self.should_ignore(event.path):
            return
        if event.kind is WatchEventKind.DELETED:
            await self.on_delete(event.path, event.is_directory)
        else:
            # Created, rewritten or settled: (re)index the path
            await self.on_create(event.path, event.is_directory)

    async def on_create(self, path: PathLike, is_directory: bool = False) -> None:
        path = normalize_path(path)
        if is_directory:
            # Folder moved or copied in: its files may not get their own events
            entries = await self.scanner.discover(path)
            for entry in entries:
                await self.index.upsert(entry)
            if entries:
                logger.info(f"New folder detected: {path} ({len(entries)} songs)")
            return

        if not self.scanner.is_supported(path) or not os.path.isfile(path):
            return
        entry = await self.scanner.build_entry_for(path)
        if entry is None:
            return
        if await self.index.upsert(entry):
            logger.info(f"New file detected: {os.path.basename(path)}")
        else:
            logger.debug(f"File updated: {os.path.basename(path)}")

    async def on_delete(self, path: PathLike, is_directory: bool = False) -> None:
        path = normalize_path(path)
        if not is_directory and await self.index.remove_by_id(entry_id_for(path)):
            logger.info(f"File removed: {os.path.basename(path)}")
            return
        if is_directory or not self.scanner.is_supported(path):
            # Some backends report directory deletions as plain paths
            removed = await self.index.remove_under(path)
            if removed:
                logger.info(f"Folder removed: {path} ({removed} songs)")
