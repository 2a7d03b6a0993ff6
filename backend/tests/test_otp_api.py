from __future__ import annotations

from datetime import datetime, timedelta, timezone

from stockcount.models import OTPRequest
from stockcount.use_cases import otp_requests as otp_module

API = "/api/v1"


def _request(client, headers):
    return client.post(f"{API}/otp-requests", headers=headers)


def test_worker_requests_code_and_leader_sees_it(client, org, headers_for) -> None:
    created = _request(client, headers_for(org.worker))
    assert created.status_code == 201
    assert created.json()["team_leader_id"] == str(org.leader.id)
    assert "otp_code" not in created.json()

    pending = client.get(f"{API}/otp-requests/pending", headers=headers_for(org.leader))
    assert pending.status_code == 200
    rows = pending.json()
    assert len(rows) == 1
    assert rows[0]["worker_user_id"] == "worker1"
    assert len(rows[0]["otp_code"]) == 6
    assert rows[0]["otp_code"].isdigit()


def test_only_workers_request_codes(client, org, headers_for) -> None:
    response = _request(client, headers_for(org.leader))

    assert response.status_code == 403
    assert response.json()["code"] == "OTP_WORKERS_ONLY"


def test_approved_code_verifies_for_its_worker_only(client, org, headers_for) -> None:
    request_id = _request(client, headers_for(org.worker)).json()["id"]
    code = client.get(f"{API}/otp-requests/pending", headers=headers_for(org.leader)).json()[0]["otp_code"]

    before = client.post(f"{API}/otp-requests/verify", json={"code": code}, headers=headers_for(org.worker))
    assert before.json() == {"valid": False}

    approved = client.post(f"{API}/otp-requests/{request_id}/approve", headers=headers_for(org.leader))
    assert approved.status_code == 200
    assert approved.json()["is_approved"] is True

    ok = client.post(f"{API}/otp-requests/verify", json={"code": code}, headers=headers_for(org.worker))
    assert ok.json() == {"valid": True}

    other = client.post(f"{API}/otp-requests/verify", json={"code": code}, headers=headers_for(org.worker2))
    assert other.json() == {"valid": False}


def test_other_team_leader_cannot_approve(client, org, make_user, headers_for) -> None:
    request_id = _request(client, headers_for(org.worker)).json()["id"]
    other_leader = make_user(user_id="tl2", role="team_leader", vendor=org.vendor)

    response = client.post(f"{API}/otp-requests/{request_id}/approve", headers=headers_for(other_leader))

    assert response.status_code == 403
    assert response.json()["code"] == "OTP_ACCESS_DENIED"


def test_rejected_request_leaves_pending_list(client, org, headers_for) -> None:
    request_id = _request(client, headers_for(org.worker)).json()["id"]

    response = client.post(f"{API}/otp-requests/{request_id}/reject", headers=headers_for(org.leader))
    assert response.status_code == 200

    pending = client.get(f"{API}/otp-requests/pending", headers=headers_for(org.leader))
    assert pending.json() == []


def test_expired_request_cannot_be_approved(client, db, org, headers_for, monkeypatch) -> None:
    request_id = _request(client, headers_for(org.worker)).json()["id"]
    later = datetime.now(timezone.utc) + timedelta(minutes=11)
    monkeypatch.setattr(otp_module, "_utc_now", lambda: later)

    response = client.post(f"{API}/otp-requests/{request_id}/approve", headers=headers_for(org.leader))

    assert response.status_code == 410
    assert response.json()["code"] == "OTP_EXPIRED"
    assert db.query(OTPRequest).one().is_approved is False


def test_worker_without_team_leader_cannot_request(client, make_user, headers_for) -> None:
    orphan = make_user(user_id="orphan", role="worker")

    response = _request(client, headers_for(orphan))

    assert response.status_code == 400
    assert response.json()["code"] == "TEAM_LEADER_NOT_ASSIGNED"
