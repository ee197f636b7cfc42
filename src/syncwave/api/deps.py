"""FastAPI dependencies resolving the components wired in the app lifespan."""

from fastapi import Request

from syncwave.services.library import LibraryService
from syncwave.services.query import QueryService
from syncwave.services.streaming import RangeStreamer


def get_query_service(request: Request) -> QueryService:
    return request.app.state.query_service


def get_streamer(request: Request) -> RangeStreamer:
    return request.app.state.streamer


def get_library_service(request: Request) -> LibraryService:
    return request.app.state.library_service
