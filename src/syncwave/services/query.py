"""Read-only access to the library for the HTTP layer."""

import asyncio
import os
from typing import Optional, Tuple

from syncwave.core.catalog import CatalogEntry, Picture
from syncwave.core.exceptions import (
    CoverNotFoundError,
    FileMissingError,
    SongNotFoundError,
)
from syncwave.core.library_index import LibraryIndex
from syncwave.worker.metadata import MetadataExtractor


class QueryService:
    """List, search and look up catalog entries; extract cover art on demand."""

    def __init__(
        self, index: LibraryIndex, extractor: Optional[MetadataExtractor] = None
    ):
        self.index = index
        self.extractor = extractor or MetadataExtractor()

    def list_songs(self) -> Tuple[CatalogEntry, ...]:
        return self.index.all()

    def search(self, query: Optional[str]) -> Tuple[CatalogEntry, ...]:
        return self.index.search(query)

    def get_song(self, song_id: str) -> CatalogEntry:
        entry = self.index.find_by_id(song_id)
        if entry is None:
            raise SongNotFoundError(song_id)
        return entry

    async def get_cover(self, song_id: str) -> Picture:
        """Re-extracts the first embedded picture of a song.

        Raises:
            SongNotFoundError: Unknown id.
            FileMissingError: The file is gone from disk.
            CoverNotFoundError: The file has no embedded picture.
            ExtractionError: The file could not be parsed.
        """
        entry = self.get_song(song_id)
        if not os.path.isfile(entry.file_path):
            raise FileMissingError(entry.file_path)
        picture = await asyncio.get_running_loop().run_in_executor(
            None, self.extractor.extract_cover, entry.file_path
        )
        if picture is None:
            raise CoverNotFoundError(song_id)
        return picture
