"""Removal of locally staged upload files."""
import logging
from typing import Iterable

from .schemas import FileState, UploadedFile

logger = logging.getLogger(__name__)


class TempFileJanitor:
    """Deletes staged files once they are uploaded or abandoned.

    A missing file is not an error: the janitor only guarantees that the
    path no longer exists afterwards.
    """

    def mark_uploaded(self, staged: UploadedFile) -> None:
        """Record that *staged* reached the remote store and delete its local copy."""
        staged.state = FileState.UPLOADED
        self._unlink(staged)

    def sweep(self, files: Iterable[UploadedFile]) -> int:
        """Delete every file that was not uploaded.

        Called once at the end of a request regardless of how the request
        ended.

        Returns:
            Number of files removed from disk.
        """
        removed = 0
        for staged in files:
            if staged.state == FileState.UPLOADED:
                continue
            staged.state = FileState.DISCARDED
            if self._unlink(staged):
                removed += 1
        if removed:
            logger.info("[janitor] Swept %d unused staged file(s)", removed)
        return removed

    def _unlink(self, staged: UploadedFile) -> bool:
        try:
            staged.temp_path.unlink()
        except FileNotFoundError:
            logger.warning("[janitor] Staged file already gone: %s", staged.temp_path)
            return False
        logger.debug("[janitor] Removed staged file %s", staged.temp_path)
        return True
