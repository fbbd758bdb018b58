"""Shared test fixtures for the tech images backend."""
from pathlib import Path
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.tech_images.errors import RemoteStoreError
from app.tech_images.owners import DuckDBTechnicianDirectory
from app.tech_images.remote import RemoteObjectClient
from app.tech_images.service import TechImagesService, set_tech_images_service
from app.tech_images.store import TechImagesStore
from app.uploads.gate import UploadGate, set_upload_gate
from app.uploads.janitor import TempFileJanitor
from app.uploads.schemas import UploadedFile

TECH_ID = "65f0c2a1b2c3d4e5f6a7b8c9"
OTHER_TECH_ID = "65f0c2a1b2c3d4e5f6a7b8ca"
CDN = "https://cdn.example.com"


class FakeRemoteClient(RemoteObjectClient):
    """In-memory remote store that records every call.

    Args:
        fail_upload_at: Zero-based index of the upload call that fails.
        fail_destroy:   Public IDs whose delete fails.
    """

    def __init__(self, fail_upload_at: Optional[int] = None, fail_destroy=()) -> None:
        self.fail_upload_at = fail_upload_at
        self.fail_destroy = set(fail_destroy)
        self.objects = {}
        self.upload_calls: List[str] = []
        self.destroy_calls: List[str] = []

    async def upload(self, local_path: Path, folder: str) -> str:
        path = Path(local_path)
        index = len(self.upload_calls)
        self.upload_calls.append(path.name)
        if self.fail_upload_at is not None and index == self.fail_upload_at:
            raise RemoteStoreError("Photo upload failed", errors=["connection reset"])
        url = f"{CDN}/{folder}/{path.name}"
        self.objects[f"{folder}/{path.stem}"] = url
        return url

    async def destroy(self, public_id: str) -> bool:
        self.destroy_calls.append(public_id)
        if public_id in self.fail_destroy:
            raise RemoteStoreError("Photo delete failed")
        return self.objects.pop(public_id, None) is not None


def make_photos(directory: Path, count: int, field_name: str = "photos", start: int = 0) -> List[UploadedFile]:
    """Write *count* small JPEGs into *directory* and return their descriptors."""
    directory.mkdir(parents=True, exist_ok=True)
    photos = []
    for i in range(start, start + count):
        path = directory / f"{field_name}-{1700000000000 + i}.jpg"
        path.write_bytes(b"\xff\xd8\xff" + bytes([i % 256]) * 16)
        photos.append(UploadedFile(
            field_name=field_name,
            temp_path=path,
            mime_type="image/jpeg",
            size=path.stat().st_size,
            original_name=f"img{i}.jpg",
        ))
    return photos


@pytest.fixture
def store(tmp_path):
    """TechImagesStore on a temporary DuckDB file."""
    store = TechImagesStore(db_path=str(tmp_path / "tech_images.duckdb"))
    yield store
    store.close()


@pytest.fixture
def directory(tmp_path):
    """Technician directory with TECH_ID and OTHER_TECH_ID registered."""
    directory = DuckDBTechnicianDirectory(db_path=str(tmp_path / "technicians.duckdb"))
    directory.add(TECH_ID)
    directory.add(OTHER_TECH_ID)
    yield directory
    directory.close()


@pytest.fixture
def remote():
    return FakeRemoteClient()


@pytest.fixture
def service(store, directory, remote):
    return TechImagesService(
        store=store,
        directory=directory,
        remote=remote,
        janitor=TempFileJanitor(),
        max_images=5,
    )


@pytest.fixture
def staging_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def api_client(service, staging_dir):
    """TestClient with the service and upload gate wired to temporary storage."""
    set_tech_images_service(service)
    set_upload_gate(UploadGate(staging_dir=str(staging_dir)))
    yield TestClient(app)
    set_tech_images_service(None)
    set_upload_gate(None)
