"""Audio metadata extraction with Mutagen.

Tags are read from the raw (non-"easy") Mutagen object so that every
container type goes through one code path: ID3 frames (MP3, WAV, AIFF),
MP4 atoms (M4A) and Vorbis comments (FLAC, Ogg, Opus).

Extraction is blocking; callers run it in a thread pool.
"""

import base64
import binascii
from pathlib import Path
from typing import Any, List, Optional, Sequence

import mutagen
from loguru import logger
from mutagen.flac import Picture as FlacPicture
from mutagen.mp4 import MP4Cover

from syncwave.core.catalog import AudioMetadata, Picture
from syncwave.core.exceptions import ExtractionError
from syncwave.core.ids import PathLike

# Tag keys per container, in priority order
_TITLE_KEYS = ("TIT2", "\xa9nam", "title")
_ARTIST_KEYS = ("TPE1", "\xa9ART", "artist")
_ALBUM_ARTIST_KEYS = ("TPE2", "aART", "albumartist", "album artist")
_ALBUM_KEYS = ("TALB", "\xa9alb", "album")

_MP4_COVER_MIME = {
    MP4Cover.FORMAT_JPEG: "image/jpeg",
    MP4Cover.FORMAT_PNG: "image/png",
}


def _first_text(tags: Any, keys: Sequence[str]) -> Optional[str]:
    """Returns the first non-empty text value found under ``keys``."""
    if tags is None:
        return None
    for key in keys:
        try:
            value = tags.get(key)
        except (KeyError, ValueError):
            # ID3 and VComment reject some foreign key shapes
            continue
        if value is None:
            continue
        if hasattr(value, "text"):  # ID3 frame
            value = value.text
        if isinstance(value, (list, tuple)):
            value = value[0] if value else None
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def _pictures(audio: Any) -> List[Picture]:
    """Collects embedded images across container types."""
    found: List[Picture] = []

    # FLAC stores pictures as metadata blocks
    for pic in getattr(audio, "pictures", None) or []:
        found.append(Picture(mime_type=pic.mime or "image/jpeg", data=pic.data))

    tags = audio.tags
    if tags is None:
        return found

    # ID3 (MP3, WAV, AIFF)
    if hasattr(tags, "getall"):
        for frame in tags.getall("APIC"):
            found.append(Picture(mime_type=frame.mime or "image/jpeg", data=frame.data))

    # MP4
    try:
        covers = tags.get("covr")
    except (KeyError, ValueError):
        covers = None
    for cover in covers or []:
        mime = _MP4_COVER_MIME.get(getattr(cover, "imageformat", None), "image/jpeg")
        found.append(Picture(mime_type=mime, data=bytes(cover)))

    # Ogg Vorbis / Opus
    try:
        blocks = tags.get("metadata_block_picture")
    except (KeyError, ValueError):
        blocks = None
    for block in blocks or []:
        try:
            pic = FlacPicture(base64.b64decode(block))
        except (binascii.Error, ValueError, mutagen.MutagenError) as e:
            logger.debug(f"Skipping unreadable embedded picture: {e}")
            continue
        found.append(Picture(mime_type=pic.mime or "image/jpeg", data=pic.data))

    return found


class MetadataExtractor:
    """Reads tags, duration and embedded pictures from audio files."""

    def extract(self, file_path: PathLike) -> AudioMetadata:
        """Extracts metadata from ``file_path``.

        Raises:
            ExtractionError: If the file cannot be opened or is not a
                recognised audio container.
        """
        path = Path(file_path)
        try:
            audio = mutagen.File(path)
        except Exception as e:
            # Corrupt files surface as arbitrary parser errors (struct.error, IndexError...)
            raise ExtractionError(str(path), str(e) or type(e).__name__) from e
        if audio is None:
            raise ExtractionError(str(path), "unrecognised audio format")

        tags = audio.tags
        info = getattr(audio, "info", None)
        duration = getattr(info, "length", None) if info else None

        return AudioMetadata(
            title=_first_text(tags, _TITLE_KEYS),
            artist=_first_text(tags, _ARTIST_KEYS),
            album_artist=_first_text(tags, _ALBUM_ARTIST_KEYS),
            album=_first_text(tags, _ALBUM_KEYS),
            duration_seconds=duration,
            pictures=_pictures(audio),
        )

    def extract_cover(self, file_path: PathLike) -> Optional[Picture]:
        """Re-reads ``file_path`` and returns its first embedded picture."""
        return self.extract(file_path).cover
