"""In-memory catalog of indexed audio files.

Readers never lock: every mutation builds a new immutable snapshot and
publishes it with one attribute assignment, so a reader sees either the old
or the new catalog. Writers are serialized by a single ``asyncio.Lock``.

Typical usage example:
    index = LibraryIndex()
    await index.upsert(entry)
    hits = index.search("beatles")

    async with index.rescan():
        entries, stats = await scanner.collect(roots)
        await index.replace_all(entries)
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import (
    AsyncIterator,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)

from loguru import logger

from syncwave.core.catalog import CatalogEntry
from syncwave.core.exceptions import ScanInProgressError
from syncwave.core.ids import PathLike, is_within, normalize_path

# Journal operations recorded during a rescan
_UPSERT = "upsert"
_REMOVE = "remove"
_REMOVE_UNDER = "remove_under"
_JournalOp = Tuple[str, Union[CatalogEntry, str]]


@dataclass(frozen=True)
class _Snapshot:
    entries: Tuple[CatalogEntry, ...] = ()
    by_id: Mapping[str, CatalogEntry] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_entries(cls, entries: Iterable[CatalogEntry]) -> "_Snapshot":
        # Last one wins for duplicate ids, keeping the first position
        by_id: Dict[str, CatalogEntry] = {}
        for entry in entries:
            by_id[entry.id] = entry
        return cls(tuple(by_id.values()), MappingProxyType(by_id))


def _apply_upsert(entries: List[CatalogEntry], entry: CatalogEntry) -> bool:
    for i, existing in enumerate(entries):
        if existing.id == entry.id:
            entries[i] = entry
            return False
    entries.append(entry)
    return True


class LibraryIndex:
    """Owns the set of CatalogEntry records.

    Incremental changes that happen while a rescan is in flight are journaled
    and replayed onto the rescan result in ``replace_all``, so a watcher event
    racing a rescan is never lost.
    """

    def __init__(self, entries: Iterable[CatalogEntry] = ()) -> None:
        self._snapshot = _Snapshot.from_entries(entries)
        self._write_lock = asyncio.Lock()
        self._scanning = False
        self._journal: Optional[List[_JournalOp]] = None

    # ========== Readers ==========

    def all(self) -> Tuple[CatalogEntry, ...]:
        return self._snapshot.entries

    def find_by_id(self, entry_id: str) -> Optional[CatalogEntry]:
        return self._snapshot.by_id.get(entry_id)

    def search(self, query: Optional[str]) -> Tuple[CatalogEntry, ...]:
        """Case-insensitive substring match on title, artist or album.

        An empty query returns the whole catalog. Results keep catalog order.
        """
        entries = self._snapshot.entries
        if not query or not query.strip():
            return entries
        needle = query.casefold()
        return tuple(
            e
            for e in entries
            if needle in e.title.casefold()
            or needle in e.artist.casefold()
            or needle in e.album.casefold()
        )

    def __len__(self) -> int:
        return len(self._snapshot.entries)

    @property
    def is_scanning(self) -> bool:
        return self._scanning

    # ========== Writers ==========

    async def replace_all(self, entries: Iterable[CatalogEntry]) -> int:
        """Atomically swaps the whole catalog.

        Returns:
            Number of entries in the new catalog.
        """
        async with self._write_lock:
            new_entries = list(_Snapshot.from_entries(entries).entries)
            if self._journal:
                for op, arg in self._journal:
                    if op == _UPSERT:
                        _apply_upsert(new_entries, arg)
                    elif op == _REMOVE:
                        new_entries = [e for e in new_entries if e.id != arg]
                    else:
                        new_entries = [
                            e for e in new_entries if not is_within(e.file_path, arg)
                        ]
                logger.debug(
                    f"Replayed {len(self._journal)} incremental changes onto rescan"
                )
                self._journal.clear()
            self._snapshot = _Snapshot.from_entries(new_entries)
            return len(self._snapshot.entries)

    async def upsert(self, entry: CatalogEntry) -> bool:
        """Adds ``entry`` or replaces the one with the same id in place.

        Returns:
            True if the entry was new, False if it replaced an existing one.
        """
        async with self._write_lock:
            self._record(_UPSERT, entry)
            entries = list(self._snapshot.entries)
            created = _apply_upsert(entries, entry)
            self._snapshot = _Snapshot.from_entries(entries)
            return created

    async def remove_by_id(self, entry_id: str) -> bool:
        """Removes the entry with ``entry_id``. Unknown ids are a no-op.

        Returns:
            True if an entry was removed.
        """
        async with self._write_lock:
            self._record(_REMOVE, entry_id)
            current = self._snapshot
            if entry_id not in current.by_id:
                return False
            self._snapshot = _Snapshot.from_entries(
                e for e in current.entries if e.id != entry_id
            )
            return True

    async def remove_under(self, directory: PathLike) -> int:
        """Removes every entry whose file lies below ``directory``.

        Returns:
            Number of entries removed.
        """
        directory = normalize_path(directory)
        async with self._write_lock:
            self._record(_REMOVE_UNDER, directory)
            current = self._snapshot
            kept = [e for e in current.entries if not is_within(e.file_path, directory)]
            removed = len(current.entries) - len(kept)
            if removed:
                self._snapshot = _Snapshot.from_entries(kept)
            return removed

    def _record(self, op: str, arg: Union[CatalogEntry, str]) -> None:
        if self._journal is not None:
            self._journal.append((op, arg))

    @asynccontextmanager
    async def rescan(self) -> AsyncIterator["LibraryIndex"]:
        """Guards a full rescan; at most one may be active at a time.

        Raises:
            ScanInProgressError: If another rescan is already running.
        """
        if self._scanning:
            raise ScanInProgressError()
        self._scanning = True
        self._journal = []
        try:
            yield self
        finally:
            self._scanning = False
            self._journal = None
