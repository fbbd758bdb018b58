"""Upload gate: multipart staging and validation dependency.

Every file part of the incoming form is written to the staging directory as
``{field_name}-{upload_timestamp}{extension}``. Parts with a MIME type outside
the allowed set are kept on the received list but marked discarded. Retained
parts are grouped by field name and, for creation (``POST``) requests, checked
against the cardinality rules below. The first violated rule wins.

| Field                 | Max | Message                            |
|-----------------------|-----|------------------------------------|
| serviceImg            | 1   | Only one serviceImg allowed.       |
| category_image        | 1   | Only one category_image allowed.   |
| profileImage          | 1   | Only one profileImage allowed.     |
| photos                | 5   | Maximum 5 photos allowed.          |
| serviceImg_<suffix>   | 1   | Only 1 file allowed for <field>    |

The gate never raises into the request pipeline. Parsing failures and rule
violations become ``ValidationOutcome.error`` and handlers that do not care
about uploads are unaffected.

Usage::

    set_upload_gate(UploadGate(staging_dir="uploads"))

    @router.post("/{technician_id}")
    async def create(technician_id: str, outcome: ValidationOutcome = Depends(upload_with_validation)):
        ...
"""
import logging
import time
from pathlib import Path
from typing import AsyncIterator, Iterable, List, Optional, Tuple

from fastapi import Request
from starlette.datastructures import UploadFile

from .janitor import TempFileJanitor
from .schemas import (
    ALLOWED_MIME_TYPES,
    FILE_TOO_LARGE,
    MAX_FILE_SIZE_BYTES,
    FileGroup,
    FileState,
    UploadedFile,
    ValidationOutcome,
    group_by_field,
)

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024

# Checked in this order; the first violation is reported.
CARDINALITY_RULES: Tuple[Tuple[str, int, str], ...] = (
    ("serviceImg", 1, "Only one serviceImg allowed."),
    ("category_image", 1, "Only one category_image allowed."),
    ("profileImage", 1, "Only one profileImage allowed."),
    ("photos", 5, "Maximum 5 photos allowed."),
)
SUFFIXED_SERVICE_IMG_PREFIX = "serviceImg_"

_CREATION_METHODS = frozenset({"POST"})

_last_timestamp_ms = 0


def _next_upload_timestamp() -> int:
    """Millisecond timestamp, strictly increasing within this process."""
    global _last_timestamp_ms
    now = int(time.time() * 1000)
    _last_timestamp_ms = max(now, _last_timestamp_ms + 1)
    return _last_timestamp_ms


def staged_filename(field_name: str, original_name: str, timestamp_ms: int) -> str:
    """Build the on-disk name for a staged part."""
    return f"{field_name}-{timestamp_ms}{Path(original_name or '').suffix}"


def validate_cardinality(group: FileGroup) -> Optional[str]:
    """Return the first cardinality violation in *group*, or None."""
    for field_name, max_count, message in CARDINALITY_RULES:
        if len(group.get(field_name, [])) > max_count:
            return message

    for field_name, files in group.items():
        if field_name.startswith(SUFFIXED_SERVICE_IMG_PREFIX) and len(files) > 1:
            return f"Only 1 file allowed for {field_name}"

    return None


class FileTooLargeError(Exception):
    """Raised while staging a part that exceeds the size limit."""


class UploadGate:
    """Stages, filters, groups and validates multipart uploads.

    Args:
        staging_dir: Directory for staged bytes. Created on first upload.
        max_file_size: Per-part byte limit.
        allowed_mime_types: MIME types that are retained.
        janitor: Cleans up staged files at the end of the request.
    """

    def __init__(
        self,
        staging_dir: str = "uploads",
        max_file_size: int = MAX_FILE_SIZE_BYTES,
        allowed_mime_types: Iterable[str] = ALLOWED_MIME_TYPES,
        janitor: Optional[TempFileJanitor] = None,
    ) -> None:
        self.staging_dir = Path(staging_dir)
        self.max_file_size = max_file_size
        self.allowed_mime_types = frozenset(allowed_mime_types)
        self.janitor = janitor or TempFileJanitor()

    async def receive(self, request: Request) -> ValidationOutcome:
        """Stage and validate the request's file parts. Never raises."""
        received: List[UploadedFile] = []
        try:
            form = await request.form()
            for field_name, value in form.multi_items():
                if not isinstance(value, UploadFile):
                    continue
                received.append(await self._stage(field_name, value))
        except FileTooLargeError:
            outcome = ValidationOutcome.rejected(FILE_TOO_LARGE, received)
        except Exception as exc:
            message = getattr(exc, "detail", None) or str(exc) or type(exc).__name__
            logger.error("[uploads] Multipart error: %s", message)
            outcome = ValidationOutcome.rejected(str(message), received)
        else:
            outcome = self._validate(request.method, received)

        request.state.upload_outcome = outcome
        return outcome

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _validate(self, method: str, received: List[UploadedFile]) -> ValidationOutcome:
        retained = []
        for staged in received:
            if staged.mime_type in self.allowed_mime_types:
                retained.append(staged)
            else:
                staged.state = FileState.DISCARDED
                logger.warning(
                    "[uploads] Dropped %s part %s: MIME type %s not allowed",
                    staged.field_name,
                    staged.original_name,
                    staged.mime_type,
                )

        grouped = group_by_field(retained)

        if method.upper() in _CREATION_METHODS:
            error = validate_cardinality(grouped)
            if error is not None:
                logger.warning("[uploads] Rejected upload: %s", error)
                return ValidationOutcome.rejected(error, received)

        return ValidationOutcome.accepted(grouped, received)

    async def _stage(self, field_name: str, upload: UploadFile) -> UploadedFile:
        self.staging_dir.mkdir(parents=True, exist_ok=True)
        original_name = upload.filename or ""
        path = self.staging_dir / staged_filename(
            field_name, original_name, _next_upload_timestamp()
        )

        size = 0
        with path.open("wb") as out:
            while True:
                chunk = await upload.read(_CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > self.max_file_size:
                    out.close()
                    path.unlink(missing_ok=True)
                    logger.warning(
                        "[uploads] %s part %s exceeds %d bytes",
                        field_name,
                        original_name,
                        self.max_file_size,
                    )
                    raise FileTooLargeError(original_name)
                out.write(chunk)

        logger.info("[uploads] Staged %s (%d bytes) as %s", original_name, size, path.name)
        return UploadedFile(
            field_name=field_name,
            temp_path=path,
            mime_type=upload.content_type or "application/octet-stream",
            size=size,
            original_name=original_name,
        )


# ---------------------------------------------------------------------------
# Singleton + request dependency
# ---------------------------------------------------------------------------

_gate: Optional[UploadGate] = None


def get_upload_gate() -> UploadGate:
    """Return the global UploadGate, creating one with defaults if unset."""
    global _gate
    if _gate is None:
        _gate = UploadGate()
    return _gate


def set_upload_gate(gate: Optional[UploadGate]) -> None:
    """Set (or replace) the global UploadGate instance."""
    global _gate
    _gate = gate


async def upload_with_validation(request: Request) -> AsyncIterator[ValidationOutcome]:
    """Request dependency: yields the validation outcome, then sweeps unused staged files.

    The sweep runs however the handler ends. Uploaded files were already
    deleted by the service; every other staged file is removed here.
    """
    gate = get_upload_gate()
    outcome = await gate.receive(request)
    try:
        yield outcome
    finally:
        gate.janitor.sweep(outcome.received)
