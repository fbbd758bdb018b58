"""Tech images service configuration.

Loads settings from two YAML files:
  * techimages.settings.yaml: non-secret configuration
  * techimages.secrets.yaml: secrets (never committed)

Both paths can be overridden with the ``TECHIMAGES_SETTINGS`` and
``TECHIMAGES_SECRETS`` environment variables.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("techimages.settings.yaml")
SECRETS_FILE  = Path("techimages.secrets.yaml")


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Secrets models
# ---------------------------------------------------------------------------


class AwsSecrets(BaseModel):
    access_key_id:     Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token:     Optional[str] = None


class Secrets(BaseModel):
    aws: AwsSecrets = Field(default_factory=AwsSecrets)


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000


class LoggingSettings(BaseModel):
    level: str = "info"


class UploadSettings(BaseModel):
    """Multipart staging limits applied by the upload gate."""
    staging_dir:         str       = "uploads"
    max_file_size_bytes: int       = 5 * 1024 * 1024
    allowed_mime_types:  List[str] = Field(
        default_factory=lambda: ["image/jpeg", "image/png"]
    )

    @field_validator("max_file_size_bytes")
    @classmethod
    def _positive_size(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("max_file_size_bytes must be positive")
        return value


class TechImagesSettings(BaseModel):
    max_images:     int = 5
    folder:         str = "TechUploadedPhotos"
    db_path:        str = "tech_images.duckdb"
    owners_db_path: str = "technicians.duckdb"


class StorageSettings(BaseModel):
    """S3 bucket the photos are pushed to."""
    bucket:          str           = "tech-uploaded-photos"
    region:          str           = "us-east-1"
    public_base_url: Optional[str] = None


class AppConfig(BaseModel):
    server:      ServerSettings     = Field(default_factory=ServerSettings)
    logging:     LoggingSettings    = Field(default_factory=LoggingSettings)
    uploads:     UploadSettings     = Field(default_factory=UploadSettings)
    tech_images: TechImagesSettings = Field(default_factory=TechImagesSettings)
    storage:     StorageSettings    = Field(default_factory=StorageSettings)
    secrets:     Secrets            = Field(default_factory=Secrets)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_settings(
    settings_file: Optional[Path] = None,
    secrets_file: Optional[Path] = None,
) -> AppConfig:
    """Load and merge settings + secrets into a single *AppConfig* object."""
    settings_path = settings_file or Path(os.environ.get("TECHIMAGES_SETTINGS", SETTINGS_FILE))
    secrets_path  = secrets_file or Path(os.environ.get("TECHIMAGES_SECRETS", SECRETS_FILE))

    settings_data = _load_yaml(settings_path)
    secrets_data  = _load_yaml(secrets_path)

    # Merge: secrets live under the "secrets" key in AppConfig
    settings_data["secrets"] = secrets_data

    config = AppConfig(**settings_data)
    logger.info(
        "Settings loaded (server=%s:%s, bucket=%s, staging_dir=%s)",
        config.server.host,
        config.server.port,
        config.storage.bucket,
        config.uploads.staging_dir,
    )
    return config


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = load_settings()
    return _config


def reset_config() -> None:
    """Drop the cached configuration (for testing)."""
    global _config
    _config = None
