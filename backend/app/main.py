"""Tech Images Backend Application.

Entry point for the technician photo service.

Modules:
    - uploads: multipart staging, MIME filtering and cardinality validation
    - tech_images: photo lifecycle (quota, S3 upload, DuckDB records, deletion)
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import get_config
from app.tech_images.errors import AssetError, UploadError
from app.tech_images.owners import DuckDBTechnicianDirectory
from app.tech_images.remote import S3ObjectClient
from app.tech_images.router import router as tech_images_router
from app.tech_images.service import TechImagesService, set_tech_images_service
from app.tech_images.store import TechImagesStore
from app.uploads.gate import UploadGate, set_upload_gate
from app.uploads.janitor import TempFileJanitor

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Silence verbose third-party loggers.
# botocore.auth logs the full SigV4 canonical request, including
# x-amz-security-token.
for _noisy in (
    "botocore",
    "boto3",
    "s3transfer",
    "urllib3",
    "urllib3.connectionpool",
):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()

    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    janitor = TempFileJanitor()
    set_upload_gate(UploadGate(
        staging_dir=config.uploads.staging_dir,
        max_file_size=config.uploads.max_file_size_bytes,
        allowed_mime_types=config.uploads.allowed_mime_types,
        janitor=janitor,
    ))

    aws = config.secrets.aws
    remote = S3ObjectClient(
        bucket=config.storage.bucket,
        region_name=config.storage.region,
        public_base_url=config.storage.public_base_url,
        aws_access_key_id=aws.access_key_id or None,
        aws_secret_access_key=aws.secret_access_key or None,
        aws_session_token=aws.session_token or None,
    )
    store = TechImagesStore.get_instance(config.tech_images.db_path)
    directory = DuckDBTechnicianDirectory.get_instance(config.tech_images.owners_db_path)
    set_tech_images_service(TechImagesService(
        store=store,
        directory=directory,
        remote=remote,
        janitor=janitor,
        folder=config.tech_images.folder,
        max_images=config.tech_images.max_images,
    ))
    logger.info(
        "Tech images service ready: bucket=%s folder=%s max_images=%d",
        config.storage.bucket,
        config.tech_images.folder,
        config.tech_images.max_images,
    )

    yield  # Application runs here

    # Shutdown
    set_tech_images_service(None)
    TechImagesStore.reset_instance()
    DuckDBTechnicianDirectory.reset_instance()
    logger.info("Application shutdown complete")


# Create FastAPI application with metadata
app = FastAPI(
    title="Tech Images API",
    description="Technician photo uploads backed by S3 and DuckDB",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(tech_images_router)


@app.exception_handler(AssetError)
async def asset_error_handler(request: Request, exc: AssetError) -> JSONResponse:
    """Render service errors as ``{"message", "errors"}`` with their status code."""
    body = {"message": exc.message, "errors": exc.errors}
    if isinstance(exc, UploadError):
        body["uploaded_urls"] = exc.uploaded_urls
        body["pending"] = exc.pending
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(body, status_code=exc.status_code)


@app.get("/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object indicating the server is running.
    """
    return {"status": "ok"}


def run() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    import uvicorn

    config = get_config()
    uvicorn.run(app, host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    run()
