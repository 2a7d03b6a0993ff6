from __future__ import annotations

from types import SimpleNamespace
from uuid import uuid4

from stockcount.security import can_access_session, can_view_user, is_superior_of


def _user(role: str, *, vendor=None, team_leader=None):
    return SimpleNamespace(
        id=uuid4(),
        role=role,
        vendor_id=vendor.id if vendor else None,
        team_leader_id=team_leader.id if team_leader else None,
    )


def _tree():
    admin = _user("admin")
    vendor = _user("vendor")
    other_vendor = _user("vendor")
    leader = _user("team_leader", vendor=vendor)
    other_leader = _user("team_leader", vendor=other_vendor)
    worker = _user("worker", vendor=vendor, team_leader=leader)
    return SimpleNamespace(
        admin=admin,
        vendor=vendor,
        other_vendor=other_vendor,
        leader=leader,
        other_leader=other_leader,
        worker=worker,
    )


def test_superiors_follow_parent_links() -> None:
    t = _tree()
    assert is_superior_of(t.admin, t.worker)
    assert is_superior_of(t.vendor, t.leader)
    assert is_superior_of(t.vendor, t.worker)
    assert is_superior_of(t.leader, t.worker)


def test_no_superiority_across_branches_or_upwards() -> None:
    t = _tree()
    assert not is_superior_of(t.other_vendor, t.worker)
    assert not is_superior_of(t.other_leader, t.worker)
    assert not is_superior_of(t.worker, t.leader)
    assert not is_superior_of(t.leader, t.vendor)
    assert not is_superior_of(t.admin, t.admin)


def test_users_can_always_view_themselves() -> None:
    t = _tree()
    assert can_view_user(t.worker, t.worker)
    assert not can_view_user(t.worker, t.leader)


def test_session_access_for_worker_leader_and_superiors_only() -> None:
    t = _tree()
    session = SimpleNamespace(worker_id=t.worker.id, team_leader_id=t.leader.id)

    assert can_access_session(t.worker, session, t.worker)
    assert can_access_session(t.leader, session, t.worker)
    assert can_access_session(t.vendor, session, t.worker)
    assert can_access_session(t.admin, session, t.worker)
    assert not can_access_session(t.other_leader, session, t.worker)
    assert not can_access_session(t.other_vendor, session, t.worker)
