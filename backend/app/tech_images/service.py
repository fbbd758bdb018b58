"""TechImagesService: lifecycle of technician photos.

Coordinates three tiers: staged files on local disk, the DuckDB record of
photo URLs and the remote object store.

Create flow:
    1. Validate the technician ID (401 if missing, 400 if malformed)
    2. Check the technician exists (404)
    3. Read the current record and check the quota before any upload (400)
    4. Upload photos one at a time, in input order; delete each staged file
       right after its upload
    5. Append the new URLs to the record (created on first upload)

A failed upload stops the loop. Photos uploaded before the failure are
appended to the record and reported on the raised ``UploadError`` together
with the photos still pending. Nothing is rolled back remotely.

The quota check reads the record once and is not repeated during the upload
loop. Two concurrent creates for the same technician can both pass the check
and together exceed the limit; requests are not serialized per technician.

A module-level singleton is initialised in ``app/main.py`` from config.
"""
import logging
from typing import List, Optional

from app.uploads.janitor import TempFileJanitor
from app.uploads.schemas import FileGroup

from .errors import NotFoundError, QuotaExceededError, RemoteStoreError, UploadError, ValidationError
from .owners import TechnicianDirectory
from .remote import DEFAULT_FOLDER, RemoteObjectClient, derive_public_id
from .schemas import DeleteAllResponse, DeleteImageResponse, TechImagesResponse
from .store import TechImagesStore

logger = logging.getLogger(__name__)

MAX_IMAGES_PER_TECHNICIAN = 5
PHOTOS_FIELD = "photos"

# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_service: Optional["TechImagesService"] = None


def get_tech_images_service() -> Optional["TechImagesService"]:
    """Return the global TechImagesService, or None if not yet initialised."""
    return _service


def set_tech_images_service(service: Optional["TechImagesService"]) -> None:
    """Set (or replace) the global TechImagesService instance."""
    global _service
    _service = service


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class TechImagesService:
    """Create, fetch and delete technician photos.

    Args:
        store:       Photo record persistence.
        directory:   Technician existence / ID format checks.
        remote:      Remote object store client.
        janitor:     Removes staged files after upload.
        folder:      Remote folder every photo is uploaded into.
        max_images:  Per-technician photo limit.
    """

    def __init__(
        self,
        store: TechImagesStore,
        directory: TechnicianDirectory,
        remote: RemoteObjectClient,
        janitor: Optional[TempFileJanitor] = None,
        folder: str = DEFAULT_FOLDER,
        max_images: int = MAX_IMAGES_PER_TECHNICIAN,
    ) -> None:
        self._store = store
        self._directory = directory
        self._remote = remote
        self._janitor = janitor or TempFileJanitor()
        self.folder = folder
        self.max_images = max_images

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    async def create_images(self, technician_id: Optional[str], files: FileGroup) -> TechImagesResponse:
        """Upload the ``photos`` of *files* and append them to the technician's record.

        Raises:
            ValidationError: Missing (401) or malformed (400) ID, or no photos
                for a technician without a record.
            NotFoundError: Unknown technician.
            QuotaExceededError: Existing + incoming photos exceed ``max_images``.
            UploadError: A remote upload failed part way through.
        """
        self._validate_technician_id(technician_id)

        if not self._directory.exists(technician_id):
            raise NotFoundError("Technician not found")

        photos = list(files.get(PHOTOS_FIELD, []))
        existing = self._store.find_by_technician(technician_id)
        if not photos:
            # Nothing to append; an empty record is never created.
            if existing is None:
                raise ValidationError("Validation failed", ["At least one photo is required."])
            return TechImagesResponse.from_record(existing)

        current_count = len(existing.image_urls) if existing else 0
        if current_count + len(photos) > self.max_images:
            logger.warning(
                "[tech_images] Quota exceeded for %s: %d stored + %d incoming > %d",
                technician_id, current_count, len(photos), self.max_images,
            )
            raise QuotaExceededError(self.max_images)

        uploaded: List[str] = []
        for index, photo in enumerate(photos):
            try:
                url = await self._remote.upload(photo.temp_path, self.folder)
            except RemoteStoreError as exc:
                pending = [p.original_name for p in photos[index:]]
                logger.error(
                    "[tech_images] Upload %d/%d for %s failed: %s",
                    index + 1, len(photos), technician_id, exc,
                )
                if uploaded:
                    self._store.upsert_append(technician_id, uploaded)
                raise UploadError(exc.message, uploaded_urls=uploaded, pending=pending) from exc
            self._janitor.mark_uploaded(photo)
            uploaded.append(url)

        record = self._store.upsert_append(technician_id, uploaded)
        return TechImagesResponse.from_record(record)

    async def get_images(self, technician_id: Optional[str]) -> TechImagesResponse:
        self._validate_technician_id(technician_id)

        record = self._store.find_by_technician(technician_id)
        if record is None:
            raise NotFoundError("Technician Images not found.", ["Technician Images not found."])
        return TechImagesResponse.from_record(record)

    async def delete_all_images(self, technician_id: Optional[str]) -> DeleteAllResponse:
        """Delete every photo of a technician, remote objects first.

        Remote delete failures do not stop the loop or the metadata delete;
        their public IDs are returned in ``unreclaimed``.
        """
        self._validate_technician_id(technician_id)

        records = self._store.find_all_by_technician(technician_id)
        if not records:
            raise NotFoundError("No Technician Images found for this technician")

        unreclaimed: List[str] = []
        for record in records:
            for url in record.image_urls:
                public_id = derive_public_id(url, self.folder)
                if public_id is None:
                    logger.debug("[tech_images] Skipping URL without public ID: %s", url)
                    continue
                try:
                    await self._remote.destroy(public_id)
                except RemoteStoreError as exc:
                    logger.warning("[tech_images] Could not delete %s: %s", public_id, exc)
                    unreclaimed.append(public_id)

        deleted_count = self._store.delete_by_technician(technician_id)
        return DeleteAllResponse(deleted_count=deleted_count, unreclaimed=unreclaimed)

    async def delete_image(
        self, technician_id: Optional[str], image_url: Optional[str]
    ) -> DeleteImageResponse:
        """Delete one photo by exact URL and return the remaining URLs."""
        if not technician_id or not image_url:
            raise ValidationError(
                "Validation failed",
                ["Technician ID and image URL to delete are required."],
            )
        if not self._directory.is_valid_id(technician_id):
            raise ValidationError("Invalid Technician ID format.")

        record = self._store.find_by_technician(technician_id)
        if record is None or image_url not in record.image_urls:
            raise NotFoundError("Image not found for the given technician.")

        public_id = derive_public_id(image_url, self.folder)
        if public_id is not None:
            await self._remote.destroy(public_id)

        remaining = [url for url in record.image_urls if url != image_url]
        if remaining:
            self._store.replace_urls(record.id, remaining)
        else:
            self._store.delete(record.id)

        logger.info(
            "[tech_images] Removed %s from %s (%d remaining)",
            image_url, technician_id, len(remaining),
        )
        return DeleteImageResponse(remaining_images=remaining)

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _validate_technician_id(self, technician_id: Optional[str]) -> None:
        if not technician_id:
            raise ValidationError(
                "Validation failed", ["Technician ID is required."], status_code=401
            )
        if not self._directory.is_valid_id(technician_id):
            raise ValidationError(
                "Invalid Technician ID format.", ["Provided Technician ID is not valid."]
            )
