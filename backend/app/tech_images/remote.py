"""Remote object store for technician photos.

Photos live in S3 under a fixed folder prefix::

    s3://{bucket}/{folder}/{staged_stem}-{random}{ext}
        e.g. TechUploadedPhotos/photos-1700000000000-3f9c2a7e41b0.jpg

Staged names are only unique within one process, so every key gets a random
suffix. The public URL of an object is ``{public_base_url}/{key}``. Its
*public ID* is the key without the file extension
(``TechUploadedPhotos/photos-1700000000000-3f9c2a7e41b0``) and can always be
derived back from a URL produced by :meth:`upload`.
"""
import asyncio
import logging
import mimetypes
import re
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from .errors import RemoteStoreError

logger = logging.getLogger(__name__)

DEFAULT_FOLDER = "TechUploadedPhotos"
DEFAULT_REGION = "us-east-1"

# Final path segment up to its extension.
_PUBLIC_ID_RE = re.compile(r"/([^/]+)\.[a-z]+$", re.IGNORECASE)


def derive_public_id(url: str, folder: str = DEFAULT_FOLDER) -> Optional[str]:
    """Return ``{folder}/{name}`` for a photo URL, or None if the URL has another shape."""
    match = _PUBLIC_ID_RE.search(url or "")
    if match is None:
        return None
    return f"{folder}/{match.group(1)}"


def object_key(folder: str, local_path: Path) -> str:
    """Build a collision-free S3 key for a staged file."""
    path = Path(local_path)
    return f"{folder}/{path.stem}-{uuid.uuid4().hex[:12]}{path.suffix}"


class RemoteObjectClient(ABC):
    """Upload/delete capability over a remote object store."""

    @abstractmethod
    async def upload(self, local_path: Path, folder: str) -> str:
        """Upload a local file into *folder* and return its public URL.

        Raises:
            RemoteStoreError: If the store rejects or fails the upload.
        """

    @abstractmethod
    async def destroy(self, public_id: str) -> bool:
        """Delete the object addressed by *public_id*.

        Returns:
            True if an object was deleted, False if none existed.

        Raises:
            RemoteStoreError: On transport or permission failures.
        """


class S3ObjectClient(RemoteObjectClient):
    """RemoteObjectClient backed by Amazon S3.

    boto3 is blocking, so every call runs in the default executor.

    Args:
        bucket:                Target bucket name.
        region_name:           AWS region.  Defaults to ``us-east-1``.
        public_base_url:       Origin used in returned URLs (e.g. a CDN).
                               Defaults to the bucket's virtual-hosted URL.
        aws_access_key_id:     AWS access key.  ``None`` → default credential chain.
        aws_secret_access_key: AWS secret access key.
        aws_session_token:     Optional temporary-credential session token.
    """

    def __init__(
        self,
        bucket: str,
        region_name: Optional[str] = None,
        public_base_url: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        aws_session_token: Optional[str] = None,
    ) -> None:
        self._bucket = bucket
        self._region = region_name or DEFAULT_REGION
        self._base_url = (
            public_base_url or f"https://{bucket}.s3.{self._region}.amazonaws.com"
        ).rstrip("/")
        self._access_key = aws_access_key_id
        self._secret_key = aws_secret_access_key
        self._session_token = aws_session_token
        self._client: Optional[object] = None

    @property
    def bucket(self) -> str:
        return self._bucket

    def url_for(self, key: str) -> str:
        return f"{self._base_url}/{key}"

    def _get_client(self) -> object:
        """Return a cached boto3 S3 client."""
        if self._client is None:
            kwargs: dict = {"region_name": self._region}
            if self._access_key and self._secret_key:
                kwargs["aws_access_key_id"]     = self._access_key
                kwargs["aws_secret_access_key"] = self._secret_key
            if self._session_token:
                kwargs["aws_session_token"] = self._session_token

            self._client = boto3.client("s3", **kwargs)

        return self._client

    async def upload(self, local_path: Path, folder: str) -> str:
        path = Path(local_path)
        key = object_key(folder, path)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        client = self._get_client()

        try:
            await asyncio.get_event_loop().run_in_executor(
                None,
                lambda: client.upload_file(
                    str(path),
                    self._bucket,
                    key,
                    ExtraArgs={"ContentType": content_type},
                ),
            )
        except (ClientError, BotoCoreError, S3UploadFailedError, OSError) as exc:
            logger.error("[s3] Upload of %s to s3://%s/%s failed: %s", path, self._bucket, key, exc)
            raise RemoteStoreError("Photo upload failed", errors=[str(exc)]) from exc

        url = self.url_for(key)
        logger.info("[s3] Uploaded %s → %s", path.name, url)
        return url

    async def destroy(self, public_id: str) -> bool:
        client = self._get_client()

        def _delete_matching() -> int:
            # The public ID has no extension; the stored key does.
            listing = client.list_objects_v2(Bucket=self._bucket, Prefix=f"{public_id}.")
            deleted = 0
            for obj in listing.get("Contents", []):
                client.delete_object(Bucket=self._bucket, Key=obj["Key"])
                deleted += 1
            return deleted

        try:
            deleted = await asyncio.get_event_loop().run_in_executor(None, _delete_matching)
        except (ClientError, BotoCoreError) as exc:
            logger.error("[s3] Delete of %s failed: %s", public_id, exc)
            raise RemoteStoreError("Photo delete failed", errors=[str(exc)]) from exc

        if not deleted:
            logger.info("[s3] Nothing to delete for %s", public_id)
        return deleted > 0
