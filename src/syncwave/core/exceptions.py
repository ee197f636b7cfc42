"""Domain exceptions.

Routers translate these into HTTP responses; scanner and watcher recover from
the per-file and per-directory ones locally.
"""

from typing import Any


class SyncwaveError(Exception):
    """Base exception for all library errors."""

    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


# --- NotFound ---
class NotFoundError(SyncwaveError):
    """Something the caller asked for does not exist."""


class SongNotFoundError(NotFoundError):
    def __init__(self, song_id: str) -> None:
        super().__init__(f"Song {song_id} not found")
        self.song_id = song_id


class FileMissingError(NotFoundError):
    """The entry is indexed but its file is gone from disk."""

    def __init__(self, file_path: str) -> None:
        super().__init__(f"File no longer exists: {file_path}")
        self.file_path = file_path


class CoverNotFoundError(NotFoundError):
    def __init__(self, song_id: str) -> None:
        super().__init__(f"No cover art found for song {song_id}")
        self.song_id = song_id


# --- InvalidInput ---
class InvalidInputError(SyncwaveError):
    """The request carries a value that cannot be acted on."""


class InvalidDirectoryError(InvalidInputError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Invalid directory path: {path!r}")
        self.path = path


class RangeNotSatisfiableError(InvalidInputError):
    """A well-formed byte range that lies outside the file."""

    def __init__(self, range_header: str, file_size: int) -> None:
        super().__init__(
            f"Range {range_header!r} not satisfiable for {file_size} bytes"
        )
        self.range_header = range_header
        self.file_size = file_size


# --- Conflict ---
class ConflictError(SyncwaveError):
    """The operation clashes with the current state."""


class ScanInProgressError(ConflictError):
    def __init__(self) -> None:
        super().__init__("Scan already in progress")


class DirectoryExistsError(ConflictError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Directory already exists: {path}")
        self.path = path


# --- Per-item failures, recovered locally during scans ---
class ExtractionError(SyncwaveError):
    """Metadata could not be read from one file."""

    def __init__(self, file_path: str, reason: str) -> None:
        super().__init__(f"Could not read metadata from {file_path}: {reason}")
        self.file_path = file_path
        self.reason = reason


class ScanIOError(SyncwaveError):
    """One directory could not be listed."""

    def __init__(self, directory: str, reason: str) -> None:
        super().__init__(f"Cannot read directory {directory}: {reason}")
        self.directory = directory
        self.reason = reason
