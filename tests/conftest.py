"""Shared fixtures: a fresh SQLite database per test, seed helpers and a client."""

from datetime import datetime
from typing import Callable, Dict, Optional

import pytest
from fastapi.testclient import TestClient

from microjob_api.app.core.config import settings
from microjob_api.app.core.db import get_connection, init_db, to_timestamp, utcnow
from microjob_api.app.core.security import create_access_token
from microjob_api.app.main import app


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "microjob-test.db"
    monkeypatch.setattr(settings, "database_url", str(path))
    init_db()
    return path


@pytest.fixture
def conn(db_path):
    connection = get_connection()
    yield connection
    connection.close()


@pytest.fixture
def client(db_path):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(conn) -> Callable[..., int]:
    def _make_user(
        email: str,
        user_type: str = "worker",
        first_name: str = "Test",
        last_name: str = "User",
        location: Optional[str] = None,
        disabled: bool = False,
    ) -> int:
        now = to_timestamp(utcnow())
        cursor = conn.execute(
            "INSERT INTO users (email, first_name, last_name, user_type, location, disabled, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (email, first_name, last_name, user_type, location, int(disabled), now, now),
        )
        conn.commit()
        return cursor.lastrowid

    return _make_user


@pytest.fixture
def make_job(conn) -> Callable[..., int]:
    def _make_job(owner_id: int, title: str = "Write a product description", **fields) -> int:
        now = to_timestamp(utcnow())
        values = {
            "title": title,
            "description": "Short copywriting task",
            "budget_min": 10.0,
            "budget_max": 25.0,
            "is_remote": 1,
            "workers_needed": 1,
            "category_id": None,
            "user_id": owner_id,
            "status": "open",
            "created_at": now,
            "updated_at": now,
        }
        values.update(fields)
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        cursor = conn.execute(f"INSERT INTO microjobs ({columns}) VALUES ({placeholders})", tuple(values.values()))
        conn.commit()
        return cursor.lastrowid

    return _make_job


@pytest.fixture
def hold_reservation(conn) -> Callable[[int, int, datetime], int]:
    """Write an active reservation straight into both tables."""

    def _hold(job_id: int, user_id: int, until: datetime) -> int:
        until_ts = to_timestamp(until)
        now = to_timestamp(utcnow())
        conn.execute(
            "UPDATE microjobs SET is_reserved = 1, reserved_by = ?, reserved_until = ? WHERE id = ?",
            (user_id, until_ts, job_id),
        )
        cursor = conn.execute(
            "INSERT INTO job_reservations (job_id, user_id, status, reserved_at, expires_at) "
            "VALUES (?, ?, 'active', ?, ?)",
            (job_id, user_id, now, until_ts),
        )
        conn.commit()
        return cursor.lastrowid

    return _hold


@pytest.fixture
def enable_reservations(conn) -> Callable[..., None]:
    def _enable(hours: int = 1, max_concurrent: int = 5) -> None:
        conn.execute(
            "INSERT OR REPLACE INTO reservation_settings (id, is_enabled, default_reservation_hours, "
            "max_concurrent_reservations) VALUES ('default', 1, ?, ?)",
            (hours, max_concurrent),
        )
        conn.commit()

    return _enable


@pytest.fixture
def auth_headers() -> Callable[[str], Dict[str, str]]:
    def _headers(email: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token({'sub': email})}"}

    return _headers
