"""
Merge duplicate active visitors per IP and enforce uniqueness.

Databases written before the unique index existed can hold several active
rows for one IP address. For each such IP the most recently seen row is
kept, visit counts are summed into it, a missing location is taken from the
newest duplicate that has one, and the other rows are soft deleted. The
partial unique index is created afterwards.

Usage:
    python -m visitrack.migrations.dedupe_visitor_ips [path/to/visitrack.db]
"""

import logging
import os
import sqlite3
import sys
from itertools import groupby

logger = logging.getLogger(__name__)

INDEX_SQL = (
    "CREATE UNIQUE INDEX IF NOT EXISTS uix_visitors_active_ip "
    "ON visitors (ip_address) WHERE is_deleted = 0"
)


def merge_duplicates(conn: sqlite3.Connection) -> int:
    """Soft delete duplicate active rows; returns how many rows were merged away"""
    cursor = conn.cursor()
    rows = cursor.execute(
        """
        SELECT id, ip_address, visit_count, location
        FROM visitors
        WHERE is_deleted = 0
        ORDER BY ip_address, last_visited_at DESC, id DESC
        """
    ).fetchall()

    merged = 0
    for ip_address, group in groupby(rows, key=lambda row: row[1]):
        group = list(group)
        if len(group) < 2:
            continue

        keep_id, _, _, keep_location = group[0]
        duplicates = group[1:]
        total_visits = sum(row[2] or 1 for row in group)

        if keep_location in (None, "null"):
            keep_location = next(
                (row[3] for row in duplicates if row[3] not in (None, "null")),
                keep_location,
            )

        cursor.execute(
            "UPDATE visitors SET visit_count = ?, location = ? WHERE id = ?",
            (total_visits, keep_location, keep_id),
        )
        cursor.executemany(
            "UPDATE visitors SET is_deleted = 1 WHERE id = ?",
            [(row[0],) for row in duplicates],
        )
        merged += len(duplicates)
        logger.info("Merged %d duplicate rows for %s into visitor %s", len(duplicates), ip_address, keep_id)

    return merged


def migrate(db_path: str = None) -> int:
    """Run the deduplication and index creation on an SQLite database"""
    if db_path is None:
        db_path = os.path.join(os.getcwd(), "visitrack.db")

    if not os.path.exists(db_path):
        logger.info("Database not found at %s. Migration not needed for new database.", db_path)
        return 0

    conn = sqlite3.connect(db_path)
    try:
        merged = merge_duplicates(conn)
        conn.execute(INDEX_SQL)
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        raise
    finally:
        conn.close()

    logger.info("Migration completed: %d duplicate visitors merged", merged)
    return merged


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    migrate(sys.argv[1] if len(sys.argv) > 1 else None)
