"""Shared fixtures for core module tests."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from freezeassay.core import AssayStore
from freezeassay.core.models import TrayAssignment
from freezeassay.core.schema import create_schema


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "assay.db"


@pytest.fixture
def db_conn(db_path: Path) -> sqlite3.Connection:
    """A fresh database connection with the full schema."""
    conn = create_schema(db_path, name="Test Store", description="A test")
    yield conn
    conn.close()


@pytest.fixture
def store(tmp_store_path: Path) -> AssayStore:
    s = AssayStore.create(tmp_store_path, name="Test Store")
    yield s
    s.close()


@pytest.fixture
def configured_store(store: AssayStore, two_tray_config) -> AssayStore:
    """Store with trays P1/P2, the 'standard' configuration and experiment 'exp1'."""
    for a in two_tray_config.assignments:
        store.add_tray(a.tray.name, a.tray.qty_x_axis, a.tray.qty_y_axis)
    store.add_tray_configuration(
        two_tray_config.name,
        [
            TrayAssignment(a.tray, a.order_sequence, a.rotation_degrees)
            for a in two_tray_config.assignments
        ],
        experiment_default=True,
    )
    store.add_experiment("exp1", description="first run")
    return store
