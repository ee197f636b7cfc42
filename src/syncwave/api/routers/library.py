"""Rescans and root directory management."""

from fastapi import APIRouter, Depends, HTTPException

from syncwave.api.deps import get_library_service
from syncwave.api.schemas import DirectoryList, DirectoryRequest, MessageResponse
from syncwave.core.exceptions import (
    DirectoryExistsError,
    InvalidDirectoryError,
    ScanInProgressError,
)
from syncwave.services.library import LibraryService

router = APIRouter()


@router.post("/scan", response_model=MessageResponse)
async def trigger_scan(library: LibraryService = Depends(get_library_service)):
    """Start a full rescan in the background."""
    try:
        library.trigger_rescan()
    except ScanInProgressError:
        raise HTTPException(status_code=409, detail="Scan already in progress")
    return MessageResponse(message="Scan started")


@router.get(
    "/directories", response_model=DirectoryList, response_model_exclude_none=True
)
async def list_directories(library: LibraryService = Depends(get_library_service)):
    return DirectoryList(directories=library.directories)


@router.post("/directories", response_model=DirectoryList)
async def add_directory(
    body: DirectoryRequest,
    library: LibraryService = Depends(get_library_service),
):
    """Add a root directory; triggers a rescan over the updated roots."""
    try:
        directories = library.add_directory(body.path)
    except InvalidDirectoryError:
        raise HTTPException(status_code=400, detail="Invalid directory path")
    except DirectoryExistsError:
        raise HTTPException(status_code=409, detail="Directory already exists")
    return DirectoryList(directories=directories, message="Directory added")
