"""Error kinds raised by the tech images service.

Each error carries an HTTP status classification and an optional list of
detail strings. Mapping to a transport response happens in ``app.main``.
"""
from typing import List, Optional


class AssetError(Exception):
    """Base exception for tech image errors."""
    def __init__(
        self,
        message: str,
        status_code: int = 500,
        errors: Optional[List[str]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.errors = list(errors or [])
        super().__init__(message)


class ValidationError(AssetError):
    """Raised for missing or malformed input."""
    def __init__(self, message: str, errors: Optional[List[str]] = None, status_code: int = 400):
        super().__init__(message, status_code=status_code, errors=errors)


class NotFoundError(AssetError):
    """Raised when a technician, record or image URL does not exist."""
    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message, status_code=404, errors=errors)


class QuotaExceededError(AssetError):
    """Raised when an upload would take a technician past the image limit."""
    def __init__(self, max_images: int):
        self.max_images = max_images
        super().__init__(
            f"You can upload a maximum of {max_images} images total.",
            status_code=400,
        )


class RemoteStoreError(AssetError):
    """Raised when the remote object store call fails."""
    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message, status_code=502, errors=errors)


class UploadError(RemoteStoreError):
    """Raised when a photo upload fails part way through a batch.

    Attributes:
        uploaded_urls: URLs of the photos that reached the remote store
            before the failure (already appended to the technician's record).
        pending: Original names of the photos that were not uploaded.
    """
    def __init__(self, message: str, uploaded_urls: List[str], pending: List[str]):
        self.uploaded_urls = list(uploaded_urls)
        self.pending = list(pending)
        super().__init__(message, errors=[f"{len(self.pending)} photo(s) not uploaded."])
