"""DuckDB-backed storage for technician photo records.

Database Schema:
    tech_images table:
        - id: Record identifier (UUID string)
        - technician_id: Owning technician
        - image_urls: Ordered list of remote photo URLs (VARCHAR[])
        - created_at / updated_at: UTC timestamps

One row per technician is expected, but lookups by technician return every
matching row so callers can clean up duplicates.

Usage:
    store = TechImagesStore.get_instance()
    record = store.upsert_append("65f0c2...", ["https://.../photos-1700000000000.jpg"])
    store.delete_by_technician("65f0c2...")
"""
import logging
import uuid
from datetime import datetime
from typing import List, Optional

import duckdb

from .schemas import TechImagesRecord

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS tech_images (
    id            VARCHAR NOT NULL,
    technician_id VARCHAR NOT NULL,
    image_urls    VARCHAR[] NOT NULL,
    created_at    TIMESTAMP NOT NULL,
    updated_at    TIMESTAMP NOT NULL
)
"""

_INDEX = "CREATE INDEX IF NOT EXISTS idx_tech_images_technician ON tech_images(technician_id)"

_COLUMNS = "id, technician_id, image_urls, created_at, updated_at"


class TechImagesStore:
    """Singleton store for technician photo records in DuckDB."""

    _instance: Optional["TechImagesStore"] = None
    _db_path: str = "tech_images.duckdb"

    def __init__(self, db_path: Optional[str] = None) -> None:
        if db_path:
            self._db_path = db_path
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._initialize_db()

    @classmethod
    def get_instance(cls, db_path: Optional[str] = None) -> "TechImagesStore":
        """Get or create the singleton instance."""
        if cls._instance is None:
            cls._instance = cls(db_path)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (for testing)."""
        if cls._instance is not None:
            cls._instance.close()
            cls._instance = None

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        if self._connection is None:
            self._connection = duckdb.connect(self._db_path)
        return self._connection

    def _initialize_db(self) -> None:
        conn = self._get_connection()
        conn.execute(_CREATE_TABLE)
        conn.execute(_INDEX)

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def get(self, record_id: str) -> Optional[TechImagesRecord]:
        row = self._get_connection().execute(
            f"SELECT {_COLUMNS} FROM tech_images WHERE id = ?", [record_id]
        ).fetchone()
        return self._row_to_record(row) if row else None

    def find_by_technician(self, technician_id: str) -> Optional[TechImagesRecord]:
        """Return the technician's record (the oldest one if duplicates exist)."""
        row = self._get_connection().execute(
            f"""
            SELECT {_COLUMNS} FROM tech_images
            WHERE technician_id = ?
            ORDER BY created_at ASC
            LIMIT 1
            """,
            [technician_id],
        ).fetchone()
        return self._row_to_record(row) if row else None

    def find_all_by_technician(self, technician_id: str) -> List[TechImagesRecord]:
        rows = self._get_connection().execute(
            f"""
            SELECT {_COLUMNS} FROM tech_images
            WHERE technician_id = ?
            ORDER BY created_at ASC
            """,
            [technician_id],
        ).fetchall()
        return [self._row_to_record(r) for r in rows]

    # -----------------------------------------------------------------------
    # Mutations
    # -----------------------------------------------------------------------

    def upsert_append(self, technician_id: str, urls: List[str]) -> TechImagesRecord:
        """Append *urls* to the technician's record, creating it if absent.

        Raises:
            ValueError: If *urls* is empty; empty records are never stored.
        """
        if not urls:
            raise ValueError("urls must not be empty")

        now = datetime.utcnow()
        conn = self._get_connection()
        existing = self.find_by_technician(technician_id)

        if existing is not None:
            conn.execute(
                """
                UPDATE tech_images
                SET image_urls = list_concat(image_urls, ?::VARCHAR[]), updated_at = ?
                WHERE id = ?
                """,
                [list(urls), now, existing.id],
            )
            logger.info(
                "[tech_images] Appended %d URL(s) to record %s (technician %s)",
                len(urls), existing.id, technician_id,
            )
            return self.get(existing.id)

        record_id = str(uuid.uuid4())
        conn.execute(
            f"INSERT INTO tech_images ({_COLUMNS}) VALUES (?, ?, ?::VARCHAR[], ?, ?)",
            [record_id, technician_id, list(urls), now, now],
        )
        logger.info(
            "[tech_images] Created record %s for technician %s with %d URL(s)",
            record_id, technician_id, len(urls),
        )
        return self.get(record_id)

    def replace_urls(self, record_id: str, urls: List[str]) -> Optional[TechImagesRecord]:
        """Overwrite a record's URL list. Returns the updated record, or None if missing.

        Raises:
            ValueError: If *urls* is empty; delete the record instead.
        """
        if not urls:
            raise ValueError("urls must not be empty")
        self._get_connection().execute(
            "UPDATE tech_images SET image_urls = ?::VARCHAR[], updated_at = ? WHERE id = ?",
            [list(urls), datetime.utcnow(), record_id],
        )
        return self.get(record_id)

    def delete(self, record_id: str) -> bool:
        result = self._get_connection().execute(
            "DELETE FROM tech_images WHERE id = ? RETURNING id", [record_id]
        ).fetchone()
        return result is not None

    def delete_by_technician(self, technician_id: str) -> int:
        """Delete every record of the technician. Returns the number of rows deleted."""
        rows = self._get_connection().execute(
            "DELETE FROM tech_images WHERE technician_id = ? RETURNING id",
            [technician_id],
        ).fetchall()
        logger.info(
            "[tech_images] Deleted %d record(s) for technician %s", len(rows), technician_id
        )
        return len(rows)

    # -----------------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------------

    @staticmethod
    def _row_to_record(row) -> TechImagesRecord:
        return TechImagesRecord(
            id=row[0],
            technician_id=row[1],
            image_urls=list(row[2] or []),
            created_at=row[3],
            updated_at=row[4],
        )
