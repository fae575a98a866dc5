import re
from datetime import timedelta

import pytest

from core.clock import as_utc, utc_today
from core.errors import NotFoundError, StateError, UnexpectedError, ValidationError
from models import Pass, Role, TrafficLog, VisitRequest, VisitStatus
from passes import issuer, ledger
from passes.ledger import PassStatus
from visits import service as visits

CODE_RE = re.compile(r"^[0-9A-F]{8}$")


def _second_pending(db, cast):
    visit = visits.create_visit(db, cast["guest"].id, cast["host"].email, "Second visit", utc_today())
    return visits.host_decide(db, visit.id, cast["host"].id, visits.Decision.approve)


# -- issuing ------------------------------------------------------------------


def test_security_approval_issues_one_permit(client, db, cast, headers, pending_security_visit):
    resp = client.patch(
        f"/api/passes/{pending_security_visit.id}/approve", headers=headers(cast["security"])
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Entry permit created successfully"

    data = body["data"]
    assert data["visit"]["status"] == "approved"
    entry_pass = data["entry_pass"]
    assert CODE_RE.match(entry_pass["code"])
    assert entry_pass["is_used"] is False
    assert entry_pass["validity_hours"] == 8

    row = db.query(Pass).filter(Pass.visit_request_id == pending_security_visit.id).one()
    assert row.issued_by == cast["security"].id
    assert row.valid_until - row.valid_from == timedelta(hours=8)


def test_second_approval_is_refused_and_no_second_permit(client, db, cast, headers, pending_security_visit):
    url = f"/api/passes/{pending_security_visit.id}/approve"
    assert client.patch(url, headers=headers(cast["security"])).status_code == 200

    resp = client.patch(url, headers=headers(cast["security"]))
    assert resp.status_code == 409
    assert resp.json()["error"] == "invalid_state"
    assert db.query(Pass).count() == 1


def test_issue_pass_guards_on_current_status(db, cast, issued_pass):
    # The service-level pre-check is bypassed here; the guarded UPDATE alone must refuse
    with pytest.raises(StateError):
        issuer.issue_pass(db, issued_pass.visit_request_id, cast["security"].id)
    assert db.query(Pass).count() == 1


def test_failed_permit_write_rolls_back_the_approval(db, cast, pending_security_visit, monkeypatch):
    def _boom(_db):
        raise UnexpectedError("Could not generate a unique pass code")

    monkeypatch.setattr(issuer, "_unique_code", _boom)
    with pytest.raises(UnexpectedError):
        issuer.issue_pass(db, pending_security_visit.id, cast["security"].id)

    db.expire_all()
    assert db.get(VisitRequest, pending_security_visit.id).status == VisitStatus.pending_security
    assert db.query(Pass).count() == 0


def test_code_collision_is_retried(db, cast, issued_pass, monkeypatch):
    codes = iter([issued_pass.code, issued_pass.code, "0BADCAFE"])
    monkeypatch.setattr(issuer, "generate_pass_code", lambda: next(codes))

    pending = _second_pending(db, cast)
    issued = issuer.issue_pass(db, pending.id, cast["security"].id)
    assert issued.entry_pass.code == "0BADCAFE"


def test_code_generation_gives_up_eventually(db, cast, issued_pass, monkeypatch):
    monkeypatch.setattr(issuer, "generate_pass_code", lambda: issued_pass.code)

    pending = _second_pending(db, cast)
    with pytest.raises(UnexpectedError):
        issuer.issue_pass(db, pending.id, cast["security"].id)
    db.expire_all()
    assert db.get(VisitRequest, pending.id).status == VisitStatus.pending_security


def test_generated_codes_are_upper_hex():
    for _ in range(50):
        assert CODE_RE.match(issuer.generate_pass_code())


def test_permit_row_and_window_share_one_clock(db, issued_pass):
    db.expire_all()
    entry_pass = db.get(Pass, issued_pass.id)
    drift = abs(as_utc(entry_pass.created_at) - as_utc(entry_pass.valid_from))
    assert drift < timedelta(seconds=5)


# -- check-in -------------------------------------------------------------------


def test_check_in_records_traffic_and_marks_used(client, db, cast, headers, issued_pass):
    resp = client.post(
        "/api/passes/check-in",
        json={"code": f"  {issued_pass.code.lower()} "},
        headers=headers(cast["security"]),
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["entry_pass"]["is_used"] is True
    assert data["traffic"]["checked_out_at"] is None
    assert data["guest"]["id"] == cast["guest"].id
    assert data["purpose"] == "Quarterly review"

    db.expire_all()
    log = db.query(TrafficLog).one()
    assert log.pass_id == issued_pass.id
    assert log.recorded_by == cast["security"].id
    assert db.get(Pass, issued_pass.id).is_used is True


def test_check_in_refusals_have_distinct_codes(client, db, cast, headers, issued_pass):
    sec = headers(cast["security"])

    resp = client.post("/api/passes/check-in", json={"code": "FFFFFFFF"}, headers=sec)
    assert resp.status_code == 404
    assert resp.json()["message"] == "Invalid pass code"

    resp = client.post("/api/passes/check-in", json={"code": ""}, headers=sec)
    assert resp.status_code == 400

    assert client.post("/api/passes/check-in", json={"code": issued_pass.code}, headers=sec).status_code == 200
    resp = client.post("/api/passes/check-in", json={"code": issued_pass.code}, headers=sec)
    assert resp.status_code == 409
    assert resp.json()["error"] == "already_used"


def test_check_in_outside_window(db, cast, issued_pass):
    valid_from = as_utc(issued_pass.valid_from)
    valid_until = as_utc(issued_pass.valid_until)

    with pytest.raises(StateError) as exc:
        ledger.check_in(db, issued_pass.code, cast["security"].id, now=valid_until + timedelta(seconds=1))
    assert exc.value.code == "expired"

    with pytest.raises(StateError) as exc:
        ledger.check_in(db, issued_pass.code, cast["security"].id, now=valid_from - timedelta(minutes=5))
    assert exc.value.code == "not_yet_valid"

    assert db.query(TrafficLog).count() == 0


def test_check_in_at_window_edges_is_accepted(db, cast, issued_pass):
    log = ledger.check_in(db, issued_pass.code, cast["security"].id, now=as_utc(issued_pass.valid_until))
    assert log.id is not None


def test_used_check_wins_over_expiry(db, cast, issued_pass):
    ledger.check_in(db, issued_pass.code, cast["security"].id)
    with pytest.raises(StateError) as exc:
        ledger.check_in(
            db,
            issued_pass.code,
            cast["security"].id,
            now=as_utc(issued_pass.valid_until) + timedelta(days=1),
        )
    assert exc.value.code == "already_used"


def test_concurrent_claim_loses_on_guarded_update(db, session_factory, cast, issued_pass):
    """A check-in whose pre-checks passed on stale data still cannot double-redeem."""
    db.expire_all()
    stale = db.get(Pass, issued_pass.id)
    assert stale.is_used is False

    other = session_factory()
    try:
        ledger.check_in(other, issued_pass.code, cast["security"].id)
    finally:
        other.close()

    with pytest.raises(StateError) as exc:
        # ``stale`` still reads is_used=False from the identity map
        ledger.check_in(db, issued_pass.code, cast["security"].id)
    assert exc.value.code == "already_used"
    assert db.query(TrafficLog).count() == 1


# -- check-out ------------------------------------------------------------------


def test_check_out_requires_check_in_first(db, issued_pass):
    with pytest.raises(StateError) as exc:
        ledger.check_out(db, issued_pass.code)
    assert exc.value.code == "not_checked_in"


def test_check_out_by_any_officer_and_only_once(client, db, cast, make_user, headers, issued_pass):
    ledger.check_in(db, issued_pass.code, cast["security"].id)
    relief = make_user(Role.security)

    resp = client.post("/api/passes/check-out", json={"code": issued_pass.code}, headers=headers(relief))
    assert resp.status_code == 200
    assert resp.json()["data"]["traffic"]["checked_out_at"] is not None

    resp = client.post("/api/passes/check-out", json={"code": issued_pass.code}, headers=headers(relief))
    assert resp.status_code == 409
    assert resp.json()["error"] == "already_checked_out"


def test_check_out_unknown_code(db):
    with pytest.raises(NotFoundError):
        ledger.check_out(db, "00000000")
    with pytest.raises(ValidationError):
        ledger.check_out(db, None)


# -- lookup ---------------------------------------------------------------------


def test_lookup_status_progression(client, db, cast, headers, issued_pass):
    sec = headers(cast["security"])

    def status():
        resp = client.get(f"/api/passes/{issued_pass.code.lower()}", headers=sec)
        assert resp.status_code == 200
        return resp.json()["data"]

    first = status()
    assert first["entry_pass"]["status"] == "valid"
    assert first["traffic"] is None
    assert first["issued_by"]["id"] == cast["security"].id
    assert first["visit"]["id"] == issued_pass.visit_request_id

    client.post("/api/passes/check-in", json={"code": issued_pass.code}, headers=sec)
    assert status()["entry_pass"]["status"] == "checked_in"

    client.post("/api/passes/check-out", json={"code": issued_pass.code}, headers=sec)
    final = status()
    assert final["entry_pass"]["status"] == "completed"
    assert final["traffic"]["checked_out_at"] is not None


def test_lookup_unknown_code_is_404(client, cast, headers):
    resp = client.get("/api/passes/DEADBEEF", headers=headers(cast["security"]))
    assert resp.status_code == 404


def test_derived_status_precedence(db, cast, issued_pass):
    valid_from = as_utc(issued_pass.valid_from)
    valid_until = as_utc(issued_pass.valid_until)
    later = valid_until + timedelta(hours=1)

    assert ledger.lookup(db, issued_pass.code, now=later).status == PassStatus.expired
    assert ledger.lookup(db, issued_pass.code, now=valid_from - timedelta(hours=1)).status == PassStatus.not_yet_valid

    ledger.check_in(db, issued_pass.code, cast["security"].id, now=valid_from)
    assert ledger.lookup(db, issued_pass.code, now=later).status == PassStatus.checked_in

    ledger.check_out(db, issued_pass.code, now=later)
    assert ledger.lookup(db, issued_pass.code, now=later).status == PassStatus.completed


def test_is_used_iff_traffic_log_exists(db, cast, issued_pass):
    pending = _second_pending(db, cast)
    _, second = visits.security_decide(db, pending.id, cast["security"].id, visits.Decision.approve)
    ledger.check_in(db, issued_pass.code, cast["security"].id)

    db.expire_all()
    for entry_pass in db.query(Pass).all():
        assert entry_pass.is_used == (entry_pass.traffic_log is not None)
    assert db.get(Pass, second.entry_pass.id).is_used is False
