"""Catalog data model and the entry builder.

``AudioMetadata`` is what the extractor hands over; ``build_entry`` turns it
plus a stat snapshot into the canonical ``CatalogEntry`` stored in the index.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from syncwave.core.ids import PathLike, entry_id_for, normalize_path

UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_ALBUM = "Unknown Album"


@dataclass(frozen=True)
class Picture:
    """An embedded image (cover art)."""

    mime_type: str
    data: bytes = field(repr=False)


@dataclass
class AudioMetadata:
    """Raw tag values read from a single audio file.

    Every tag is optional; ``build_entry`` applies the fallbacks.
    """

    title: Optional[str] = None
    artist: Optional[str] = None
    album_artist: Optional[str] = None
    album: Optional[str] = None
    duration_seconds: Optional[float] = None
    pictures: List[Picture] = field(default_factory=list)

    @property
    def cover(self) -> Optional[Picture]:
        return self.pictures[0] if self.pictures else None


class CatalogEntry(BaseModel):
    """One indexed audio file. Never mutated after creation."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    id: str
    title: str
    artist: str
    album: str
    duration_seconds: float = Field(default=0.0, ge=0)
    file_path: str
    file_size_bytes: int = Field(ge=0)
    format: str
    has_cover_art: bool = False


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def format_of(path: PathLike) -> str:
    """Uppercase extension without the dot ("MP3", "FLAC")."""
    return os.path.splitext(os.fspath(path))[1].lstrip(".").upper()


def build_entry(
    file_path: PathLike, metadata: AudioMetadata, stat: os.stat_result
) -> CatalogEntry:
    """Builds the catalog record for ``file_path``.

    Fallbacks: title -> file stem, artist -> album artist -> "Unknown Artist",
    album -> "Unknown Album", duration -> 0.
    """
    path = normalize_path(file_path)
    stem = os.path.splitext(os.path.basename(path))[0]

    duration = metadata.duration_seconds
    if duration is None or duration != duration or duration < 0:  # None/NaN/negative
        duration = 0.0

    return CatalogEntry(
        id=entry_id_for(path),
        title=_clean(metadata.title) or stem,
        artist=_clean(metadata.artist)
        or _clean(metadata.album_artist)
        or UNKNOWN_ARTIST,
        album=_clean(metadata.album) or UNKNOWN_ALBUM,
        duration_seconds=float(duration),
        file_path=path,
        file_size_bytes=stat.st_size,
        format=format_of(path),
        has_cover_art=bool(metadata.pictures),
    )
