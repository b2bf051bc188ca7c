"""Repository for blobs whose best-effort deletion failed."""

from dataclasses import dataclass
from datetime import datetime
from typing import List

from common.logging_config import get_logger
from bookserver.database import get_db_connection
from bookserver.utils import from_iso, to_iso, utcnow

logger = get_logger(__name__)


@dataclass
class OrphanedBlob:
    orphan_id: int
    namespace: str
    blob_id: str
    reason: str
    recorded_at: datetime


class OrphanedBlobRepository:
    @staticmethod
    def add(namespace: str, blob_id: str, reason: str) -> None:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO orphaned_blobs (namespace, blob_id, reason, recorded_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(namespace, blob_id) DO UPDATE SET
                    reason = excluded.reason,
                    recorded_at = excluded.recorded_at
                """,
                (namespace, blob_id, reason, to_iso(utcnow()))
            )
            conn.commit()
        logger.info(f"Recorded orphaned blob {namespace}/{blob_id}: {reason}")

    @staticmethod
    def get_all() -> List[OrphanedBlob]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT orphan_id, namespace, blob_id, reason, recorded_at FROM orphaned_blobs ORDER BY orphan_id"
            )
            return [
                OrphanedBlob(
                    orphan_id=row["orphan_id"],
                    namespace=row["namespace"],
                    blob_id=row["blob_id"],
                    reason=row["reason"],
                    recorded_at=from_iso(row["recorded_at"]),
                )
                for row in cursor.fetchall()
            ]

    @staticmethod
    def remove(orphan_id: int) -> None:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM orphaned_blobs WHERE orphan_id = ?", (orphan_id,))
            conn.commit()

    @staticmethod
    def remove_for_blob(blob_id: str) -> int:
        """Forget every recorded orphan for blob_id, in any namespace."""
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM orphaned_blobs WHERE blob_id = ?", (blob_id,))
            conn.commit()
            removed = cursor.rowcount
        if removed:
            logger.info(f"Cleared {removed} orphan records for blob {blob_id}, which is in use again")
        return removed
