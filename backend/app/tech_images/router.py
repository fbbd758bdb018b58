"""FastAPI router for technician photo endpoints.

Thin HTTP layer over TechImagesService. Service errors (``AssetError``) are
rendered by the exception handler registered in ``app.main``.

Endpoints
---------
- POST   /tech-images/{technician_id}                  multipart ``photos`` (1–5)
- GET    /tech-images/{technician_id}
- DELETE /tech-images/{technician_id}
- DELETE /tech-images/{technician_id}/image?image_url=...
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.uploads.gate import upload_with_validation
from app.uploads.schemas import ValidationOutcome

from .errors import ValidationError
from .schemas import DeleteAllResponse, DeleteImageResponse, TechImagesResponse
from .service import TechImagesService, get_tech_images_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tech-images", tags=["tech-images"])


def _service() -> TechImagesService:
    service = get_tech_images_service()
    if service is None:
        logger.warning("[tech_images] No tech images service configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Tech images service not available",
        )
    return service


@router.post(
    "/{technician_id}",
    status_code=status.HTTP_201_CREATED,
    response_model=TechImagesResponse,
)
async def create_tech_images(
    technician_id: str,
    outcome: ValidationOutcome = Depends(upload_with_validation),
    service: TechImagesService = Depends(_service),
) -> TechImagesResponse:
    """Upload photos for a technician and append them to their gallery.

    Args:
        technician_id: Owning technician (24-hex object ID).
        outcome: Staged and validated multipart files.

    Returns:
        The technician's record after the append (201 Created).
    """
    if not outcome.ok:
        raise ValidationError(outcome.error)

    result = await service.create_images(technician_id, outcome.files)
    logger.info(
        "[tech_images] %s now has %d photo(s)", technician_id, len(result.image_urls)
    )
    return result


@router.get("/{technician_id}", response_model=TechImagesResponse)
async def get_tech_images(
    technician_id: str,
    service: TechImagesService = Depends(_service),
) -> TechImagesResponse:
    return await service.get_images(technician_id)


@router.delete("/{technician_id}", response_model=DeleteAllResponse)
async def delete_all_tech_images(
    technician_id: str,
    service: TechImagesService = Depends(_service),
) -> DeleteAllResponse:
    """Delete every photo of a technician.

    Remote objects that could not be deleted are listed in ``unreclaimed``;
    the record is removed either way.
    """
    return await service.delete_all_images(technician_id)


@router.delete("/{technician_id}/image", response_model=DeleteImageResponse)
async def delete_tech_image(
    technician_id: str,
    image_url: Optional[str] = Query(None, description="Exact URL of the photo to delete"),
    service: TechImagesService = Depends(_service),
) -> DeleteImageResponse:
    return await service.delete_image(technician_id, image_url)
