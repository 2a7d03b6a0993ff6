from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

from stockcount.database import Base
from stockcount.models import AuditLog, CountingRecord, CountingSession, WorkerPerformance
from stockcount.use_cases.worker_performance import utc_today

API = "/api/v1"


def _start(client, headers, org, warehouse="Warehouse A"):
    return client.post(
        f"{API}/counting-session/start",
        json={
            "workerId": str(org.worker.id),
            "teamLeaderId": str(org.leader.id),
            "warehouseName": warehouse,
        },
        headers=headers,
    )


def _count(client, headers, session_id, bin_no, qty, books=None):
    body = {"sessionId": str(session_id), "binNo": bin_no, "qtyCountedWorker": qty}
    if books is not None:
        body["qtyAsPerBooks"] = books
    return client.post(f"{API}/counting-data", json=body, headers=headers)


def test_requests_without_token_are_rejected(client) -> None:
    response = client.get(f"{API}/worker-performance")

    assert response.status_code == 401
    assert response.json()["error"] == "No authorization header"


def test_start_session_then_second_start_conflicts(client, org, headers_for) -> None:
    headers = headers_for(org.worker)

    first = _start(client, headers, org)
    assert first.status_code == 201
    assert first.json()["status"] == "active"
    assert first.json()["end_time"] is None

    second = _start(client, headers, org)
    assert second.status_code == 409
    assert second.json()["code"] == "SESSION_ALREADY_ACTIVE"

    active = client.get(f"{API}/counting-session/active/{org.worker.id}", headers=headers)
    assert active.status_code == 200
    assert active.json()["id"] == first.json()["id"]


def test_active_session_is_null_when_none(client, org, headers_for) -> None:
    response = client.get(f"{API}/counting-session/active/{org.worker.id}", headers=headers_for(org.worker))

    assert response.status_code == 200
    assert response.json() is None


def test_worker_cannot_start_session_for_another_worker(client, org, headers_for) -> None:
    response = client.post(
        f"{API}/counting-session/start",
        json={
            "workerId": str(org.worker.id),
            "teamLeaderId": str(org.leader.id),
            "warehouseName": "Warehouse A",
        },
        headers=headers_for(org.worker2),
    )

    assert response.status_code == 403
    assert response.json()["code"] == "SESSION_ACCESS_DENIED"


def test_count_uses_catalog_book_quantity_and_derives_difference(client, org, bins, headers_for) -> None:
    headers = headers_for(org.worker)
    session_id = _start(client, headers, org).json()["id"]

    response = _count(client, headers, session_id, "BIN001", 90, books=999)

    assert response.status_code == 201
    payload = response.json()
    assert payload["qty_as_per_books"] == 100
    assert payload["difference"] == -10
    assert payload["username"] == "worker1"
    assert payload["tl_name"] == "tl1"
    assert payload["wh_name"] == "Warehouse A"
    assert payload["date"] == utc_today().isoformat()

    stats = client.get(f"{API}/worker-performance/today/{org.worker.id}", headers=headers).json()
    assert (stats["todayBins"], stats["todayQuantity"]) == (1, 90)


def test_uncatalogued_bin_falls_back_to_client_quantity(client, org, bins, headers_for) -> None:
    headers = headers_for(org.worker)
    session_id = _start(client, headers, org).json()["id"]

    ok = _count(client, headers, session_id, "BIN999", 12, books=10)
    assert ok.status_code == 201
    assert ok.json()["difference"] == 2

    missing = _count(client, headers, session_id, "BIN998", 12)
    assert missing.status_code == 404
    assert missing.json()["code"] == "BIN_NOT_FOUND"


def test_counts_roll_up_into_today_stats(client, org, bins, headers_for) -> None:
    headers = headers_for(org.worker)
    session_id = _start(client, headers, org).json()["id"]

    assert _count(client, headers, session_id, "BIN001", 90).status_code == 201
    assert _count(client, headers, session_id, "BIN002", 110).status_code == 201

    response = client.get(f"{API}/worker-performance/today/{org.worker.id}", headers=headers)
    assert response.status_code == 200
    stats = response.json()
    assert stats["todayBins"] == 2
    assert stats["todayQuantity"] == 200


def test_today_stats_are_zero_without_counts(client, org, headers_for) -> None:
    response = client.get(f"{API}/worker-performance/today/{org.worker.id}", headers=headers_for(org.worker))

    assert response.status_code == 200
    assert response.json() == {"todayBins": 0, "todayQuantity": 0, "todayTime": 0, "efficiency": 0.0, "ranking": 0}


def test_worker_cannot_read_another_workers_stats(client, org, headers_for) -> None:
    response = client.get(f"{API}/worker-performance/today/{org.worker2.id}", headers=headers_for(org.worker))

    assert response.status_code == 403


def test_count_against_unknown_session_is_404_and_stores_nothing(client, db, org, bins, headers_for) -> None:
    response = _count(client, headers_for(org.worker), uuid4(), "BIN001", 5)

    assert response.status_code == 404
    assert response.json()["code"] == "SESSION_NOT_FOUND"
    assert db.query(CountingRecord).count() == 0
    assert db.query(WorkerPerformance).count() == 0


def test_negative_quantity_is_rejected(client, org, bins, headers_for) -> None:
    headers = headers_for(org.worker)
    session_id = _start(client, headers, org).json()["id"]

    response = _count(client, headers, session_id, "BIN001", -1)

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_end_session_is_one_shot_and_records_minutes(client, db, org, bins, headers_for) -> None:
    headers = headers_for(org.worker)
    session_id = _start(client, headers, org).json()["id"]
    assert _count(client, headers, session_id, "BIN001", 90).status_code == 201
    assert _count(client, headers, session_id, "BIN002", 150).status_code == 201

    session = db.query(CountingSession).one()
    session.start_time = datetime.now(timezone.utc) - timedelta(minutes=30)
    db.commit()

    ended = client.post(f"{API}/counting-session/end/{session_id}", headers=headers)
    assert ended.status_code == 200
    assert ended.json()["status"] == "completed"
    end_time = ended.json()["end_time"]

    again = client.post(f"{API}/counting-session/end/{session_id}", headers=headers)
    assert again.status_code == 409
    assert again.json()["code"] == "SESSION_ALREADY_COMPLETED"

    db.expire_all()
    stored = db.query(CountingSession).one()
    assert stored.end_time.isoformat().startswith(end_time[:19])

    stats = client.get(f"{API}/worker-performance/today/{org.worker.id}", headers=headers).json()
    assert stats["todayTime"] == 30
    assert stats["efficiency"] == 4.0


def test_end_unknown_session_is_404(client, org, headers_for) -> None:
    response = client.post(f"{API}/counting-session/end/{uuid4()}", headers=headers_for(org.admin))

    assert response.status_code == 404


def test_audit_failure_does_not_fail_the_count(client, db, engine, org, bins, headers_for) -> None:
    headers = headers_for(org.worker)
    session_id = _start(client, headers, org).json()["id"]
    Base.metadata.tables["audit_logs"].drop(bind=engine)

    response = _count(client, headers, session_id, "BIN001", 100)

    assert response.status_code == 201
    assert response.json()["difference"] == 0
    assert db.query(CountingRecord).count() == 1


def test_count_writes_audit_row_for_worker(client, db, org, bins, headers_for) -> None:
    headers = headers_for(org.worker)
    session_id = _start(client, headers, org).json()["id"]
    _count(client, headers, session_id, "BIN001", 42)

    row = db.query(AuditLog).filter(AuditLog.action == "COUNT_BIN").one()
    assert row.user_id == org.worker.id
    assert row.details == "Counted bin BIN001: 42 units"


def test_recount_by_team_leader_recomputes_difference(client, org, bins, headers_for) -> None:
    worker_headers = headers_for(org.worker)
    session_id = _start(client, worker_headers, org).json()["id"]
    record_id = _count(client, worker_headers, session_id, "BIN001", 90).json()["id"]

    denied = client.patch(
        f"{API}/counting-data/{record_id}/recount",
        json={"qtyRecountedTl": 100},
        headers=worker_headers,
    )
    assert denied.status_code == 403

    response = client.patch(
        f"{API}/counting-data/{record_id}/recount",
        json={"qtyRecountedTl": 98, "reasonForDifference": "damaged cartons"},
        headers=headers_for(org.leader),
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["qty_counted"] == 90
    assert payload["qty_recounted_tl"] == 98
    assert payload["difference"] == -2
    assert payload["reason_for_difference"] == "damaged cartons"


def test_list_counts_most_recent_first_and_scoped(client, org, bins, headers_for) -> None:
    headers = headers_for(org.worker)
    session_id = _start(client, headers, org).json()["id"]
    _count(client, headers, session_id, "BIN001", 1)
    _count(client, headers, session_id, "BIN002", 2)

    response = client.get(f"{API}/counting-data", params={"sessionId": session_id}, headers=headers)
    assert response.status_code == 200
    assert [row["bin_no"] for row in response.json()] == ["BIN002", "BIN001"]

    other = client.get(f"{API}/counting-data", headers=headers_for(org.worker2))
    assert other.json() == []

    leader_view = client.get(
        f"{API}/counting-data",
        params={"workerId": "worker1"},
        headers=headers_for(org.leader),
    )
    assert len(leader_view.json()) == 2


def _performance_row(username: str, efficiency: float):
    return WorkerPerformance(
        wh_name="Warehouse A",
        date=utc_today(),
        username=username,
        no_of_bins_counted=1,
        no_of_qty_counted=1,
        time_taken_minutes=10,
        efficiency=efficiency,
    )


def test_leaderboard_ranks_within_the_returned_window(client, db, org, headers_for) -> None:
    db.add_all([_performance_row("A", 5.0), _performance_row("B", 3.0), _performance_row("C", 4.0)])
    db.commit()

    response = client.get(
        f"{API}/worker-performance",
        params={"warehouse": "Warehouse A", "limit": 2},
        headers=headers_for(org.admin),
    )

    assert response.status_code == 200
    assert [(row["username"], row["ranking"]) for row in response.json()] == [("A", 1), ("C", 2)]

    db.expire_all()
    rankings = {row.username: row.ranking for row in db.query(WorkerPerformance).all()}
    assert rankings == {"A": 1, "B": None, "C": 2}


def test_leaderboard_rejects_out_of_range_limit(client, org, headers_for) -> None:
    response = client.get(f"{API}/worker-performance", params={"limit": 0}, headers=headers_for(org.admin))

    assert response.status_code == 400
    assert response.json()["code"] == "PERFORMANCE_LIMIT_OUT_OF_RANGE"


def test_leaderboard_is_not_available_to_workers(client, org, headers_for) -> None:
    response = client.get(f"{API}/worker-performance", headers=headers_for(org.worker))

    assert response.status_code == 403


def test_admin_upsert_derives_efficiency(client, org, headers_for) -> None:
    response = client.post(
        f"{API}/worker-performance",
        json={
            "wh_name": "Warehouse A",
            "username": "worker1",
            "no_of_bins_counted": 3,
            "no_of_qty_counted": 30,
            "time_taken_minutes": 45,
        },
        headers=headers_for(org.admin),
    )

    assert response.status_code == 200
    assert response.json()["efficiency"] == 4.0


def test_session_must_name_the_workers_own_team_leader(client, db, org, make_user, headers_for) -> None:
    other_vendor = make_user(user_id="vendor2", role="vendor")
    foreign_leader = make_user(user_id="tl2", role="team_leader", vendor=other_vendor)

    response = client.post(
        f"{API}/counting-session/start",
        json={
            "workerId": str(org.worker.id),
            "teamLeaderId": str(foreign_leader.id),
            "warehouseName": "Warehouse A",
        },
        headers=headers_for(org.worker),
    )

    assert response.status_code == 403
    assert response.json()["code"] == "TEAM_LEADER_MISMATCH"
    assert db.query(CountingSession).count() == 0


def test_blank_warehouse_name_is_rejected(client, db, org, headers_for) -> None:
    response = _start(client, headers_for(org.worker), org, warehouse="   ")

    assert response.status_code == 400
    assert response.json()["code"] == "WAREHOUSE_REQUIRED"
    assert db.query(CountingSession).count() == 0


def test_active_session_lookup_requires_a_worker_id(client, org, headers_for) -> None:
    response = client.get(f"{API}/counting-session/active/{org.leader.id}", headers=headers_for(org.admin))

    assert response.status_code == 404
    assert response.json()["code"] == "WORKER_NOT_FOUND"
