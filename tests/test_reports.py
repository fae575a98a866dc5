import io
from datetime import timedelta

from openpyxl import load_workbook

from admin import reports
from admin.reports import EXPORT_HEADERS
from core.clock import utc_today
from models import AuditLog, Role, User
from passes import ledger
from visits import service as visits


def test_end_to_end_visit(client, db, cast, headers):
    guest, host, sec, admin = (headers(cast[k]) for k in ("guest", "host", "security", "admin"))

    visit_id = client.post(
        "/api/visits",
        json={"host_email": cast["host"].email, "purpose": "Site tour", "visit_date": utc_today().isoformat()},
        headers=guest,
    ).json()["data"]["visit"]["id"]
    assert client.patch(f"/api/visits/{visit_id}/approve", headers=host).status_code == 200
    code = client.patch(f"/api/passes/{visit_id}/approve", headers=sec).json()["data"]["entry_pass"]["code"]

    assert client.post("/api/passes/check-in", json={"code": code}, headers=sec).status_code == 200
    present = client.get("/api/admin/reports/present", headers=admin).json()["data"]
    assert present["count"] == 1
    row = present["present"][0]
    assert row["pass_code"] == code
    assert row["guest"]["id"] == cast["guest"].id
    assert row["host"]["id"] == cast["host"].id

    assert client.post("/api/passes/check-out", json={"code": code}, headers=sec).status_code == 200
    assert client.get("/api/admin/reports/present", headers=admin).json()["data"]["count"] == 0
    lookup = client.get(f"/api/passes/{code}", headers=sec).json()["data"]
    assert lookup["entry_pass"]["status"] == "completed"

    mine = client.get("/api/visits/me", headers=guest).json()["data"]["visits"]
    assert [v["status"] for v in mine] == ["approved"]


def test_full_report_joins_permits(client, db, cast, headers, issued_pass):
    visits.create_visit(db, cast["guest"].id, cast["host"].email, "No permit yet", utc_today())

    data = client.get("/api/admin/reports/log", headers=headers(cast["admin"])).json()["data"]
    assert data["user_count"] == 4
    assert data["visit_count"] == 2
    assert {u["role"] for u in data["users"]} == {"guest", "host", "security", "admin"}

    by_id = {v["id"]: v for v in data["visits"]}
    with_pass = by_id[issued_pass.visit_request_id]
    assert with_pass["entry_pass"]["code"] == issued_pass.code
    assert with_pass["entry_pass"]["issuer"]["id"] == cast["security"].id
    others = [v for k, v in by_id.items() if k != issued_pass.visit_request_id]
    assert others[0]["entry_pass"] is None
    assert "password_hash" not in data["users"][0]


def test_stats_counts_every_bucket(db, cast, issued_pass):
    visits.create_visit(db, cast["guest"].id, cast["host"].email, "Pending", utc_today())
    ledger.check_in(db, issued_pass.code, cast["security"].id)

    result = reports.stats(db)
    assert result.users_by_role == {"guest": 1, "host": 1, "security": 1, "admin": 1}
    assert result.visits_by_status == {
        "pending_host_review": 1,
        "pending_security": 0,
        "approved": 1,
        "rejected_by_host": 0,
        "rejected_by_security": 0,
    }
    assert result.today_visits == 2
    assert result.today_check_ins == 1
    assert result.week_check_ins == 1
    assert result.present_count == 1


def test_stats_windows_are_relative_to_now(db, cast, issued_pass):
    ledger.check_in(db, issued_pass.code, cast["security"].id)
    later = reports.stats(db, now=issued_pass.created_at + timedelta(days=3))
    assert later.today_check_ins == 0
    assert later.week_check_ins == 1
    assert later.present_count == 1


def test_stats_endpoint(client, cast, headers):
    resp = client.get("/api/admin/stats", headers=headers(cast["admin"]))
    assert resp.status_code == 200
    assert resp.json()["data"]["users_by_role"]["admin"] == 1


def test_excel_export(client, cast, headers, issued_pass):
    resp = client.get("/api/admin/reports/log/export", headers=headers(cast["admin"]))
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert "visit-report.xlsx" in resp.headers["content-disposition"]

    ws = load_workbook(io.BytesIO(resp.content)).active
    assert [c.value for c in ws[1]] == EXPORT_HEADERS
    assert ws.max_row == 2
    assert ws.cell(row=2, column=EXPORT_HEADERS.index("Pass Code") + 1).value == issued_pass.code


# -- user administration --------------------------------------------------------


def test_change_role_is_audited(client, db, cast, headers):
    target = cast["guest"]
    resp = client.patch(
        f"/api/admin/users/{target.id}/role",
        json={"role": "host"},
        headers=headers(cast["admin"]),
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["user"]["role"] == "host"

    db.expire_all()
    assert db.get(User, target.id).role == Role.host
    entry = db.query(AuditLog).filter(AuditLog.action == "change_role").one()
    assert entry.admin_id == cast["admin"].id
    assert entry.target_user_id == target.id
    assert entry.detail == "guest -> host"

    logs = client.get("/api/admin/audit-logs", headers=headers(cast["admin"])).json()["data"]["logs"]
    assert logs[0]["action"] == "change_role"
    assert logs[0]["admin_email"] == cast["admin"].email
    assert logs[0]["target_email"] == target.email


def test_change_role_guards(client, cast, headers):
    admin = headers(cast["admin"])

    resp = client.patch(f"/api/admin/users/{cast['guest'].id}/role", json={"role": "superuser"}, headers=admin)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid role. Must be one of: guest, host, security, admin"

    resp = client.patch(f"/api/admin/users/{cast['admin'].id}/role", json={"role": "guest"}, headers=admin)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cannot change your own role"

    resp = client.patch("/api/admin/users/9999/role", json={"role": "host"}, headers=admin)
    assert resp.status_code == 404


def test_list_users(client, cast, headers):
    data = client.get("/api/admin/users", headers=headers(cast["admin"])).json()["data"]
    assert data["count"] == 4
    assert {u["email"] for u in data["users"]} == {u.email for u in cast.values()}


def test_unknown_route_uses_the_envelope(client):
    resp = client.get("/api/nowhere")
    assert resp.status_code == 404
    assert resp.json()["success"] is False


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
