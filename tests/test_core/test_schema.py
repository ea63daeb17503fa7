"""Tests for freezeassay.core.schema."""

import sqlite3

import pytest

from freezeassay.core.exceptions import SchemaVersionError, StoreNotFoundError
from freezeassay.core.schema import (
    EXPECTED_INDEXES,
    EXPECTED_TABLES,
    EXPECTED_VERSION,
    create_schema,
    open_database,
)


class TestCreateSchema:
    def test_creates_database_file(self, db_path):
        conn = create_schema(db_path, name="Test")
        assert db_path.exists()
        conn.close()

    def test_all_tables_exist(self, db_conn):
        rows = db_conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
        ).fetchall()
        assert {r["name"] for r in rows} >= EXPECTED_TABLES

    def test_all_indexes_exist(self, db_conn):
        rows = db_conn.execute(
            "SELECT name FROM sqlite_master WHERE type='index' AND name LIKE 'idx_%'"
        ).fetchall()
        assert {r["name"] for r in rows} >= EXPECTED_INDEXES

    def test_wal_mode(self, db_conn):
        mode = db_conn.execute("PRAGMA journal_mode").fetchone()[0]
        assert mode == "wal"

    def test_foreign_keys_enabled(self, db_conn):
        assert db_conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1

    def test_store_info_row(self, db_conn):
        row = db_conn.execute("SELECT name, description, schema_version FROM store_info").fetchone()
        assert row["name"] == "Test Store"
        assert row["description"] == "A test"
        assert row["schema_version"] == EXPECTED_VERSION

    def test_rotation_check_constraint(self, db_conn):
        db_conn.execute("INSERT INTO trays (name, qty_x_axis, qty_y_axis) VALUES ('P1', 12, 8)")
        db_conn.execute("INSERT INTO tray_configurations (name) VALUES ('c')")
        with pytest.raises(sqlite3.IntegrityError):
            db_conn.execute(
                "INSERT INTO tray_assignments (tray_configuration_id, tray_id, "
                "order_sequence, rotation_degrees) VALUES (1, 1, 1, 45)"
            )


class TestOpenDatabase:
    def test_open_existing(self, db_path):
        create_schema(db_path, name="Test").close()
        conn = open_database(db_path)
        assert conn.execute("SELECT name FROM store_info").fetchone()["name"] == "Test"
        conn.close()

    def test_open_nonexistent_raises(self, tmp_path):
        with pytest.raises(StoreNotFoundError):
            open_database(tmp_path / "nope.db")

    def test_incompatible_version_raises(self, db_path):
        conn = create_schema(db_path)
        conn.execute("UPDATE store_info SET schema_version = '9.0.0'")
        conn.commit()
        conn.close()
        with pytest.raises(SchemaVersionError):
            open_database(db_path)

    def test_patch_version_difference_accepted(self, db_path):
        conn = create_schema(db_path)
        major, minor, _ = EXPECTED_VERSION.split(".")
        conn.execute("UPDATE store_info SET schema_version = ?", (f"{major}.{minor}.99",))
        conn.commit()
        conn.close()
        open_database(db_path).close()
