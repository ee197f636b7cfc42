"""Seekable audio streaming with HTTP byte ranges.

Only single ranges are served; for ``bytes=0-99,200-299`` the first range
wins. A malformed ``Range`` header is ignored and the whole file is sent,
which keeps lenient clients working. A well-formed range that starts past
the end of the file is a 416.
"""

import asyncio
import os
import re
import stat as stat_module
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Optional

from loguru import logger

from syncwave.core.catalog import CatalogEntry
from syncwave.core.config import settings
from syncwave.core.exceptions import FileMissingError, RangeNotSatisfiableError

MIME_TYPES: Dict[str, str] = {
    "MP3": "audio/mpeg",
    "M4A": "audio/mp4",
    "FLAC": "audio/flac",
    "WAV": "audio/wav",
    "OGG": "audio/ogg",
    "AAC": "audio/aac",
    "OPUS": "audio/opus",
}
DEFAULT_MIME_TYPE = "application/octet-stream"

_RANGE_SPEC = re.compile(r"^\s*(\d*)\s*-\s*(\d*)\s*$")


def mime_type_for(format_name: str) -> str:
    return MIME_TYPES.get(format_name.upper(), DEFAULT_MIME_TYPE)


@dataclass(frozen=True)
class ByteRange:
    """Inclusive byte interval ``start..end``."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def content_range(self, total: int) -> str:
        return f"bytes {self.start}-{self.end}/{total}"


def parse_range(range_header: Optional[str], file_size: int) -> Optional[ByteRange]:
    """Parses a ``Range`` header against a file of ``file_size`` bytes.

    Returns:
        The requested ByteRange (end clamped to the last byte), or None when
        the whole file should be served (no header or malformed header).

    Raises:
        RangeNotSatisfiableError: If the range is well-formed but lies
            outside the file.
    """
    if not range_header:
        return None

    unit, sep, ranges = range_header.partition("=")
    if not sep or unit.strip().lower() != "bytes":
        return None

    match = _RANGE_SPEC.match(ranges.split(",")[0])
    if not match:
        return None
    start_s, end_s = match.groups()

    if not start_s:
        if not end_s:
            return None
        # Suffix form: bytes=-N is the last N bytes
        suffix = int(end_s)
        if suffix == 0 or file_size == 0:
            raise RangeNotSatisfiableError(range_header, file_size)
        return ByteRange(max(0, file_size - suffix), file_size - 1)

    start = int(start_s)
    end = int(end_s) if end_s else file_size - 1
    if end_s and end < start:
        return None
    if start >= file_size:
        raise RangeNotSatisfiableError(range_header, file_size)
    return ByteRange(start, min(end, file_size - 1))


async def iter_file(
    path: str, start: int, length: int, chunk_size: int
) -> AsyncIterator[bytes]:
    """Yields ``length`` bytes of ``path`` from ``start``.

    The handle is opened on first iteration and closed when the generator
    finishes, fails, or is closed early (client disconnect).
    """
    loop = asyncio.get_running_loop()
    handle = await loop.run_in_executor(None, open, path, "rb")
    with handle:
        if start:
            await loop.run_in_executor(None, handle.seek, start)
        remaining = length
        while remaining > 0:
            chunk = await loop.run_in_executor(
                None, handle.read, min(chunk_size, remaining)
            )
            if not chunk:
                # File shrank since it was stat'ed
                logger.warning(f"Short read on {path}: {remaining} bytes missing")
                break
            remaining -= len(chunk)
            yield chunk


@dataclass
class StreamResponse:
    """Everything the HTTP layer needs to answer a stream request."""

    status_code: int
    media_type: str
    body: AsyncIterator[bytes]
    headers: Dict[str, str] = field(default_factory=dict)


class RangeStreamer:
    """Serves indexed files as full (200) or partial (206) content."""

    def __init__(self, chunk_size: Optional[int] = None):
        self.chunk_size = chunk_size or settings.STREAM_CHUNK_SIZE

    async def stream(
        self, entry: CatalogEntry, range_header: Optional[str] = None
    ) -> StreamResponse:
        """Builds the response for ``entry``.

        The file is stat'ed now; index presence does not imply the file
        still exists.

        Raises:
            FileMissingError: If the file is gone or no longer a regular file.
            RangeNotSatisfiableError: If the range lies outside the file.
        """
        loop = asyncio.get_running_loop()
        try:
            st = await loop.run_in_executor(None, os.stat, entry.file_path)
        except OSError as e:
            logger.warning(f"Indexed file unavailable: {entry.file_path} ({e})")
            raise FileMissingError(entry.file_path) from e
        if not stat_module.S_ISREG(st.st_mode):
            raise FileMissingError(entry.file_path)

        file_size = st.st_size
        media_type = mime_type_for(entry.format)
        byte_range = parse_range(range_header, file_size)

        if byte_range is None:
            return StreamResponse(
                status_code=200,
                media_type=media_type,
                body=iter_file(entry.file_path, 0, file_size, self.chunk_size),
                headers={
                    "Content-Length": str(file_size),
                    "Accept-Ranges": "bytes",
                },
            )

        return StreamResponse(
            status_code=206,
            media_type=media_type,
            body=iter_file(
                entry.file_path, byte_range.start, byte_range.length, self.chunk_size
            ),
            headers={
                "Content-Range": byte_range.content_range(file_size),
                "Content-Length": str(byte_range.length),
                "Accept-Ranges": "bytes",
            },
        )
