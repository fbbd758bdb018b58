"""Technician lookup used before any photo mutation.

Technician profiles are owned by the auth side of the system; this module
only answers two questions: is an ID well formed, and does it exist.
"""
import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

import duckdb

logger = logging.getLogger(__name__)

# 12-byte object IDs rendered as 24 hex characters.
_OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")


def is_valid_technician_id(technician_id: str) -> bool:
    return bool(technician_id) and bool(_OBJECT_ID_RE.match(technician_id))


class TechnicianDirectory(ABC):
    """Read-only view of technician profiles."""

    @staticmethod
    def is_valid_id(technician_id: str) -> bool:
        return is_valid_technician_id(technician_id)

    @abstractmethod
    def exists(self, technician_id: str) -> bool:
        """Return True if a technician profile with this ID exists."""


class DuckDBTechnicianDirectory(TechnicianDirectory):
    """Technician directory backed by a ``technicians`` table in DuckDB."""

    _instance: Optional["DuckDBTechnicianDirectory"] = None
    _db_path: str = "technicians.duckdb"

    def __init__(self, db_path: Optional[str] = None) -> None:
        if db_path:
            self._db_path = db_path
        self._connection = duckdb.connect(self._db_path)
        self._connection.execute("""
            CREATE TABLE IF NOT EXISTS technicians (
                id         VARCHAR PRIMARY KEY,
                created_at TIMESTAMP NOT NULL
            )
        """)

    @classmethod
    def get_instance(cls, db_path: Optional[str] = None) -> "DuckDBTechnicianDirectory":
        if cls._instance is None:
            cls._instance = cls(db_path)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        if cls._instance is not None:
            cls._instance.close()
            cls._instance = None

    def close(self) -> None:
        self._connection.close()

    def exists(self, technician_id: str) -> bool:
        row = self._connection.execute(
            "SELECT 1 FROM technicians WHERE id = ?", [technician_id]
        ).fetchone()
        return row is not None

    def add(self, technician_id: str) -> None:
        """Register a technician ID (used for seeding and tests)."""
        if not self.is_valid_id(technician_id):
            raise ValueError(f"Invalid technician ID: {technician_id!r}")
        self._connection.execute(
            "INSERT INTO technicians (id, created_at) VALUES (?, ?) ON CONFLICT DO NOTHING",
            [technician_id, datetime.utcnow()],
        )
        logger.debug("[technicians] Registered %s", technician_id)
