import json
import sqlite3

import pytest

from visitrack.migrations.dedupe_visitor_ips import migrate

SCHEMA = """
CREATE TABLE visitors (
    id INTEGER PRIMARY KEY,
    ip_address VARCHAR(45) NOT NULL,
    location JSON,
    visit_count INTEGER NOT NULL DEFAULT 1,
    last_visited_at DATETIME,
    is_deleted BOOLEAN NOT NULL DEFAULT 0
)
"""


@pytest.fixture
def legacy_db(tmp_path):
    path = tmp_path / "visitrack.db"
    conn = sqlite3.connect(path)
    conn.execute(SCHEMA)
    conn.executemany(
        "INSERT INTO visitors (id, ip_address, location, visit_count, last_visited_at, is_deleted) "
        "VALUES (?, ?, ?, ?, ?, ?)",
        [
            (1, "192.0.2.1", json.dumps({"country": "Peru"}), 2, "2024-01-01 10:00:00", 0),
            (2, "192.0.2.1", None, 3, "2024-02-01 10:00:00", 0),
            (3, "192.0.2.1", None, 1, "2023-12-01 10:00:00", 1),
            (4, "192.0.2.2", None, 1, "2024-01-05 10:00:00", 0),
        ],
    )
    conn.commit()
    conn.close()
    return path


def _rows(path):
    conn = sqlite3.connect(path)
    try:
        return conn.execute(
            "SELECT id, visit_count, location, is_deleted FROM visitors ORDER BY id"
        ).fetchall()
    finally:
        conn.close()


def test_merges_duplicates_into_latest(legacy_db):
    assert migrate(str(legacy_db)) == 1

    rows = _rows(legacy_db)
    assert rows[0][3] == 1
    assert rows[1][1] == 5
    assert json.loads(rows[1][2]) == {"country": "Peru"}
    assert rows[1][3] == 0
    assert rows[2][3] == 1
    assert rows[3] == (4, 1, None, 0)


def test_index_enforces_one_active_row(legacy_db):
    migrate(str(legacy_db))

    conn = sqlite3.connect(legacy_db)
    try:
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute("INSERT INTO visitors (ip_address, is_deleted) VALUES ('192.0.2.2', 0)")
        conn.execute("INSERT INTO visitors (ip_address, is_deleted) VALUES ('192.0.2.2', 1)")
    finally:
        conn.close()


def test_second_run_is_a_noop(legacy_db):
    migrate(str(legacy_db))
    assert migrate(str(legacy_db)) == 0


def test_missing_database(tmp_path):
    assert migrate(str(tmp_path / "absent.db")) == 0
