"""Pydantic schemas for technician photos.

- TechImagesRecord: one technician's ordered photo URL list as stored in DuckDB
- TechImagesResponse: projection returned by create and fetch
- DeleteAllResponse / DeleteImageResponse: deletion results
"""
import uuid
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class TechImagesRecord(BaseModel):
    """A technician's photo record.

    One record exists per technician, created on the first successful upload.
    ``image_urls`` keeps upload order.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Record ID")
    technician_id: str = Field(..., description="Owning technician ID")
    image_urls: List[str] = Field(default_factory=list, description="Remote photo URLs in upload order")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class TechImagesResponse(BaseModel):
    id: str
    technician_id: str
    image_urls: List[str]

    @classmethod
    def from_record(cls, record: TechImagesRecord) -> "TechImagesResponse":
        return cls(id=record.id, technician_id=record.technician_id, image_urls=list(record.image_urls))


class DeleteAllResponse(BaseModel):
    """Result of deleting every photo of a technician.

    ``unreclaimed`` lists the remote public IDs whose delete failed; the
    metadata is removed regardless.
    """
    message: str = "All technician images deleted successfully."
    deleted_count: int
    unreclaimed: List[str] = Field(default_factory=list)


class DeleteImageResponse(BaseModel):
    message: str = "Image deleted successfully."
    remaining_images: List[str]
