"""FastAPI application entry point for the SyncWave music server.

This module wires the library components into the FastAPI application and
manages their lifecycle. On startup the configured music directories are
scanned into the in-memory index and a filesystem watcher keeps the index
current; on shutdown the watcher and any background scan are stopped.

The API includes endpoints for:
- Health and library status
- Catalog listing, search and lookup
- Seekable audio streaming (HTTP byte ranges)
- Embedded cover art
- Rescans and root directory management

Run with:
    syncwave            # console script, see serve()
    uvicorn syncwave.api.main:app --port 3456
"""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from syncwave.api.middleware import RequestLoggingMiddleware
from syncwave.api.routers import library, media, songs, system
from syncwave.core.config import settings
from syncwave.core.library_index import LibraryIndex
from syncwave.core.logger import setup_logging
from syncwave.services.library import LibraryService
from syncwave.services.query import QueryService
from syncwave.services.streaming import RangeStreamer
from syncwave.worker.metadata import MetadataExtractor
from syncwave.worker.scanner import DirectoryScanner
from syncwave.worker.watcher import ChangeWatcher


def build_components(app: FastAPI) -> LibraryService:
    """Creates the shared index and the services around it on ``app.state``."""
    index = LibraryIndex()
    extractor = MetadataExtractor()
    scanner = DirectoryScanner(index, extractor=extractor)
    watcher = ChangeWatcher(index, scanner)
    library_service = LibraryService(
        index, scanner, watcher, directories=settings.MUSIC_DIRECTORIES
    )

    app.state.index = index
    app.state.query_service = QueryService(index, extractor=extractor)
    app.state.streamer = RangeStreamer()
    app.state.library_service = library_service
    return library_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    setup_logging()
    library_service = build_components(app)

    logger.info("SyncWave Local Server starting")
    for directory in library_service.directories:
        logger.info(f"Music directory: {directory}")

    await library_service.startup(
        scan=settings.SCAN_ON_STARTUP, watch=settings.WATCH_ENABLED
    )
    logger.info(f"Server running at http://{settings.HOST}:{settings.PORT}")

    yield

    logger.info("Shutting down server...")
    await library_service.shutdown()


app = FastAPI(
    title="SyncWave API",
    version=settings.VERSION,
    description="Local music library indexing and streaming server",
    lifespan=lifespan,
)

app.add_middleware(
    RequestLoggingMiddleware,
    slow_request_threshold=settings.SLOW_REQUEST_THRESHOLD,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_origin_regex=settings.CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Range", "Accept-Ranges", "Content-Length"],
)

# Include Routers
app.include_router(system.router, prefix="/api", tags=["System"])
app.include_router(songs.router, prefix="/api/songs", tags=["Songs"])
app.include_router(media.router, prefix="/api", tags=["Media"])
app.include_router(library.router, prefix="/api", tags=["Library"])


@app.get("/")
async def root():
    return {"message": "SyncWave API is running"}


def serve() -> None:
    """Console entry point: run the server with uvicorn."""
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level="warning")
