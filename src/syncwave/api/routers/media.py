"""Audio streaming and cover art endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Response
from fastapi.responses import StreamingResponse
from loguru import logger

from syncwave.api.deps import get_query_service, get_streamer
from syncwave.api.routers.songs import get_song_or_404
from syncwave.core.exceptions import (
    CoverNotFoundError,
    ExtractionError,
    NotFoundError,
    RangeNotSatisfiableError,
)
from syncwave.services.query import QueryService
from syncwave.services.streaming import RangeStreamer

router = APIRouter()


@router.get("/stream/{song_id}")
async def stream_song(
    song_id: str,
    range_header: Optional[str] = Header(default=None, alias="Range"),
    query: QueryService = Depends(get_query_service),
    streamer: RangeStreamer = Depends(get_streamer),
):
    """Stream an audio file, honoring single byte-range requests for seeking."""
    entry = get_song_or_404(query, song_id)
    try:
        result = await streamer.stream(entry, range_header)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Song not found")
    except RangeNotSatisfiableError as e:
        raise HTTPException(
            status_code=416,
            detail=e.message,
            headers={"Content-Range": f"bytes */{e.file_size}"},
        )

    return StreamingResponse(
        result.body,
        status_code=result.status_code,
        headers=result.headers,
        media_type=result.media_type,
    )


@router.get("/cover/{song_id}")
async def get_cover(song_id: str, query: QueryService = Depends(get_query_service)):
    """Embedded cover art, re-extracted from the file."""
    try:
        picture = await query.get_cover(song_id)
    except CoverNotFoundError:
        raise HTTPException(status_code=404, detail="No cover art found")
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Song not found")
    except ExtractionError as e:
        logger.warning(f"Cover extraction failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to extract cover art")

    return Response(content=picture.data, media_type=picture.mime_type)
