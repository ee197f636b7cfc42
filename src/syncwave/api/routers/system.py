from fastapi import APIRouter, Depends

from syncwave.api.deps import get_library_service
from syncwave.api.schemas import HealthResponse
from syncwave.core.config import settings
from syncwave.services.library import LibraryService

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(library: LibraryService = Depends(get_library_service)):
    """Liveness plus library size and scan state."""
    return HealthResponse(status="ok", version=settings.VERSION, **library.status())
