import asyncio
import sqlite3
from datetime import timedelta

import pytest

from microjob_api.app.core.db import get_connection, parse_timestamp, utcnow
from microjob_api.app.core.errors import ConflictError, NotFoundError
from microjob_api.app.schemas.reservation import NotReserved, Reserved, Unavailable
from microjob_api.app.services.reservation_service import ReservationService, format_time_left


def job_row(conn, job_id):
    return conn.execute(
        "SELECT is_reserved, reserved_by, reserved_until FROM microjobs WHERE id = ?", (job_id,)
    ).fetchone()


def reservation_statuses(conn, job_id):
    rows = conn.execute(
        "SELECT status FROM job_reservations WHERE job_id = ? ORDER BY id", (job_id,)
    ).fetchall()
    return [row["status"] for row in rows]


@pytest.fixture
def owner(make_user):
    return make_user("owner@example.com", user_type="employer")


@pytest.fixture
def worker(make_user):
    return make_user("worker@example.com")


def test_overdue_reservation_is_expired_exactly_once(conn, owner, worker, make_job, hold_reservation, monkeypatch):
    job_id = make_job(owner)
    now = utcnow()
    hold_reservation(job_id, worker, now - timedelta(minutes=5))

    calls = []
    original = ReservationService.expire_reservation.__func__

    async def counting_expire(cls, conn_, job_id_, now=None):
        calls.append(job_id_)
        return await original(cls, conn_, job_id_, now=now)

    monkeypatch.setattr(ReservationService, "expire_reservation", classmethod(counting_expire))

    result = asyncio.run(ReservationService.check_status(conn, job_id, now=now))

    assert result == NotReserved(expired=True)
    assert calls == [job_id]
    row = job_row(conn, job_id)
    assert row["is_reserved"] == 0
    assert row["reserved_by"] is None
    assert row["reserved_until"] is None
    assert reservation_statuses(conn, job_id) == ["expired"]


def test_deadline_exactly_now_counts_as_expired(conn, owner, worker, make_job, hold_reservation):
    job_id = make_job(owner)
    now = utcnow()
    hold_reservation(job_id, worker, now)

    result = asyncio.run(ReservationService.check_status(conn, job_id, now=now))

    assert isinstance(result, NotReserved)
    assert result.expired is True


def test_future_reservation_reports_time_left(conn, owner, worker, make_job, hold_reservation):
    job_id = make_job(owner)
    now = utcnow()
    until = now + timedelta(minutes=30, seconds=15)
    hold_reservation(job_id, worker, until)

    result = asyncio.run(ReservationService.check_status(conn, job_id, now=now))

    assert isinstance(result, Reserved)
    assert result.time_left_ms == 30 * 60 * 1000 + 15 * 1000
    assert result.time_left_display == "30m 15s"
    assert result.reserved_by == worker
    assert result.reserved_until == parse_timestamp(job_row(conn, job_id)["reserved_until"])
    assert reservation_statuses(conn, job_id) == ["active"]


def test_unreserved_and_unknown_jobs_are_not_reserved(conn, owner, make_job):
    job_id = make_job(owner)

    assert asyncio.run(ReservationService.check_status(conn, job_id)) == NotReserved()
    assert asyncio.run(ReservationService.check_status(conn, 9999)) == NotReserved()


def test_reserved_flag_without_deadline_is_not_reserved(conn, owner, worker, make_job):
    job_id = make_job(owner, is_reserved=1, reserved_by=worker, reserved_until=None)

    result = asyncio.run(ReservationService.check_status(conn, job_id))

    assert result == NotReserved(expired=False)


def test_job_flagged_without_deadline_can_be_reserved(conn, owner, worker, make_user, make_job, enable_reservations):
    enable_reservations()
    newcomer = make_user("newcomer@example.com")
    job_id = make_job(owner, is_reserved=1, reserved_by=worker, reserved_until=None)

    status = asyncio.run(ReservationService.check_status(conn, job_id))
    reservation = asyncio.run(ReservationService.reserve_job(conn, job_id, newcomer))

    assert status == NotReserved(expired=False)
    assert reservation.user_id == newcomer
    row = job_row(conn, job_id)
    assert (row["is_reserved"], row["reserved_by"]) == (1, newcomer)
    assert reservation_statuses(conn, job_id) == ["active"]


def test_sweep_releases_job_flagged_without_deadline(conn, owner, worker, make_job):
    job_id = make_job(owner, is_reserved=1, reserved_by=worker, reserved_until=None)

    expired = asyncio.run(ReservationService.expire_overdue(conn, now=utcnow() + timedelta(days=365)))

    assert expired == 1
    row = job_row(conn, job_id)
    assert (row["is_reserved"], row["reserved_by"], row["reserved_until"]) == (0, None, None)


def test_naive_now_is_taken_as_utc(conn, owner, worker, make_job, hold_reservation):
    job_id = make_job(owner)
    now = utcnow()
    hold_reservation(job_id, worker, now + timedelta(minutes=10))

    result = asyncio.run(ReservationService.check_status(conn, job_id, now=now.replace(tzinfo=None)))

    assert isinstance(result, Reserved)
    assert result.time_left_ms == 10 * 60 * 1000


def test_database_failure_is_reported_as_unavailable(db_path, owner, make_job):
    job_id = make_job(owner)
    broken = get_connection()
    broken.close()

    result = asyncio.run(ReservationService.check_status(broken, job_id))

    assert isinstance(result, Unavailable)
    assert result.is_reserved is None


def test_expire_is_idempotent(conn, owner, worker, make_job, hold_reservation):
    job_id = make_job(owner)
    hold_reservation(job_id, worker, utcnow() - timedelta(seconds=1))

    assert asyncio.run(ReservationService.expire_reservation(conn, job_id)) is True
    first_job = dict(job_row(conn, job_id))
    first_reservations = reservation_statuses(conn, job_id)

    assert asyncio.run(ReservationService.expire_reservation(conn, job_id)) is False
    assert dict(job_row(conn, job_id)) == first_job
    assert reservation_statuses(conn, job_id) == first_reservations == ["expired"]


def test_expire_rolls_back_job_update_when_reservation_update_fails(conn, owner, worker, make_job, hold_reservation):
    job_id = make_job(owner)
    hold_reservation(job_id, worker, utcnow() - timedelta(seconds=1))
    conn.execute(
        "CREATE TRIGGER fail_reservation_update BEFORE UPDATE ON job_reservations "
        "BEGIN SELECT RAISE(ABORT, 'reservation update failed'); END"
    )
    conn.commit()

    with pytest.raises(sqlite3.Error):
        asyncio.run(ReservationService.expire_reservation(conn, job_id))

    row = job_row(conn, job_id)
    assert row["is_reserved"] == 1
    assert row["reserved_by"] == worker
    assert reservation_statuses(conn, job_id) == ["active"]


def test_reserve_job_writes_job_and_reservation(conn, owner, worker, make_job, enable_reservations):
    enable_reservations(hours=2)
    job_id = make_job(owner)
    now = utcnow()

    reservation = asyncio.run(ReservationService.reserve_job(conn, job_id, worker, now=now))

    assert reservation.status == "active"
    assert reservation.expires_at == now + timedelta(hours=2)
    row = job_row(conn, job_id)
    assert row["is_reserved"] == 1
    assert row["reserved_by"] == worker
    assert parse_timestamp(row["reserved_until"]) == now + timedelta(hours=2)
    assert reservation_statuses(conn, job_id) == ["active"]


def test_reserve_job_rejected_while_disabled(conn, owner, worker, make_job):
    job_id = make_job(owner)

    with pytest.raises(ValueError, match="disabled"):
        asyncio.run(ReservationService.reserve_job(conn, job_id, worker))
    assert job_row(conn, job_id)["is_reserved"] == 0


def test_reserve_job_rejects_unknown_and_own_jobs(conn, owner, make_job, enable_reservations):
    enable_reservations()
    job_id = make_job(owner)

    with pytest.raises(NotFoundError):
        asyncio.run(ReservationService.reserve_job(conn, 4242, owner))
    with pytest.raises(ValueError, match="own job"):
        asyncio.run(ReservationService.reserve_job(conn, job_id, owner))


def test_second_reservation_of_same_job_conflicts(conn, owner, worker, make_user, make_job, enable_reservations):
    enable_reservations()
    other = make_user("other@example.com")
    job_id = make_job(owner)
    asyncio.run(ReservationService.reserve_job(conn, job_id, worker))

    with pytest.raises(ConflictError, match="already reserved"):
        asyncio.run(ReservationService.reserve_job(conn, job_id, other))
    with pytest.raises(ConflictError, match="already reserved this job"):
        asyncio.run(ReservationService.reserve_job(conn, job_id, worker))
    assert reservation_statuses(conn, job_id) == ["active"]


def test_overdue_reservation_is_replaced_on_reserve(
    conn, owner, worker, make_user, make_job, hold_reservation, enable_reservations
):
    enable_reservations()
    other = make_user("other@example.com")
    job_id = make_job(owner)
    hold_reservation(job_id, other, utcnow() - timedelta(minutes=1))

    asyncio.run(ReservationService.reserve_job(conn, job_id, worker))

    assert job_row(conn, job_id)["reserved_by"] == worker
    assert reservation_statuses(conn, job_id) == ["expired", "active"]


def test_max_concurrent_reservations_is_enforced(conn, owner, worker, make_job, enable_reservations):
    enable_reservations(max_concurrent=2)
    jobs = [make_job(owner, title=f"Job {i}") for i in range(3)]
    asyncio.run(ReservationService.reserve_job(conn, jobs[0], worker))
    asyncio.run(ReservationService.reserve_job(conn, jobs[1], worker))

    with pytest.raises(ConflictError, match="at most 2"):
        asyncio.run(ReservationService.reserve_job(conn, jobs[2], worker))
    assert job_row(conn, jobs[2])["is_reserved"] == 0


def test_cancel_reservation_releases_job(conn, owner, worker, make_user, make_job, enable_reservations):
    enable_reservations()
    other = make_user("other@example.com")
    job_id = make_job(owner)
    asyncio.run(ReservationService.reserve_job(conn, job_id, worker))

    with pytest.raises(NotFoundError):
        asyncio.run(ReservationService.cancel_reservation(conn, job_id, other))

    asyncio.run(ReservationService.cancel_reservation(conn, job_id, worker))

    assert job_row(conn, job_id)["is_reserved"] == 0
    assert reservation_statuses(conn, job_id) == ["cancelled"]


def test_list_user_reservations_includes_job_summary(conn, owner, worker, make_job, enable_reservations):
    enable_reservations(hours=1)
    conn.execute("INSERT INTO categories (id, name) VALUES (7, 'Writing')")
    conn.commit()
    job_id = make_job(owner, title="Blog post", category_id=7, budget_max=40.0)
    now = utcnow()
    asyncio.run(ReservationService.reserve_job(conn, job_id, worker, now=now))

    reservations = asyncio.run(ReservationService.list_user_reservations(conn, worker, now=now))

    assert len(reservations) == 1
    assert reservations[0].job_title == "Blog post"
    assert reservations[0].category_name == "Writing"
    assert reservations[0].budget_max == 40.0
    assert reservations[0].time_left_display == "1h 0m 0s"


def test_expire_overdue_sweeps_jobs_and_dangling_rows(conn, owner, worker, make_job, hold_reservation):
    overdue = make_job(owner, title="Overdue")
    current = make_job(owner, title="Current")
    dangling = make_job(owner, title="Dangling")
    now = utcnow()
    hold_reservation(overdue, worker, now - timedelta(minutes=10))
    hold_reservation(current, worker, now + timedelta(minutes=10))
    hold_reservation(dangling, worker, now - timedelta(minutes=10))
    # Job already released but its reservation row was left active.
    conn.execute(
        "UPDATE microjobs SET is_reserved = 0, reserved_by = NULL, reserved_until = NULL WHERE id = ?",
        (dangling,),
    )
    conn.commit()

    expired = asyncio.run(ReservationService.expire_overdue(conn, now=now))

    assert expired == 2
    assert job_row(conn, overdue)["is_reserved"] == 0
    assert job_row(conn, current)["is_reserved"] == 1
    assert reservation_statuses(conn, overdue) == ["expired"]
    assert reservation_statuses(conn, current) == ["active"]
    assert reservation_statuses(conn, dangling) == ["expired"]


@pytest.mark.parametrize(
    "milliseconds, expected",
    [
        (0, "Expired"),
        (-5, "Expired"),
        (999, "0s"),
        (42_000, "42s"),
        (61_000, "1m 1s"),
        (3_723_000, "1h 2m 3s"),
    ],
)
def test_format_time_left(milliseconds, expected):
    assert format_time_left(milliseconds) == expected
