from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from syncwave.api.deps import get_query_service
from syncwave.api.schemas import SongList
from syncwave.core.catalog import CatalogEntry
from syncwave.core.exceptions import SongNotFoundError
from syncwave.services.query import QueryService

router = APIRouter()


def get_song_or_404(query: QueryService, song_id: str) -> CatalogEntry:
    """Get catalog entry by id or raise 404."""
    try:
        return query.get_song(song_id)
    except SongNotFoundError:
        raise HTTPException(status_code=404, detail="Song not found")


@router.get("", response_model=SongList)
async def list_songs(query: QueryService = Depends(get_query_service)):
    """Full catalog in catalog order."""
    songs = query.list_songs()
    return SongList(songs=list(songs), total=len(songs))


@router.get("/search", response_model=SongList)
async def search_songs(
    q: Optional[str] = Query(default=""),
    query: QueryService = Depends(get_query_service),
):
    """Case-insensitive substring search on title, artist and album."""
    songs = query.search(q)
    return SongList(songs=list(songs), total=len(songs))


@router.get("/{song_id}", response_model=CatalogEntry)
async def get_song(song_id: str, query: QueryService = Depends(get_query_service)):
    return get_song_or_404(query, song_id)
