from typing import List, Optional

from pydantic import BaseModel

from syncwave.core.catalog import CatalogEntry


class SongList(BaseModel):
    """Catalog listing or search result."""
    songs: List[CatalogEntry]
    total: int


class DirectoryRequest(BaseModel):
    path: Optional[str] = None


class DirectoryList(BaseModel):
    directories: List[str]
    message: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str
    version: str
    librarySize: int
    isScanning: bool
    watching: bool
    directories: List[str]
