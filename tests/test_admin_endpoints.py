import os
from io import BytesIO

from openpyxl import load_workbook

from pension_api.extensions import db
from pension_api.models.pensioner import Pensioner
from pension_api.models.pensioner_file import PensionerFile
from pension_api.models.verification import VerificationLog
from pension_api.services.face_engine import FaceEngine
from pension_api.services.storage import get_storage
from tests.factories import make_pensioner, make_staff, auth_header

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.get_json()["data"]["status"] == "ok"


def test_dashboard_counts(client):
    admin = make_staff()
    make_pensioner("PEN-1")
    p2 = make_pensioner("PEN-2")
    p2.status = "VERIFIED"
    db.session.commit()
    data = client.get("/api/v1/admin/dashboard", headers=auth_header(admin)).get_json()["data"]
    assert data["total_pensioners"] == 2
    assert data["verified_pensioners"] == 1
    assert data["pending_reviews"] == 0
    assert len(data["recent_pensioners"]) == 2


def test_list_and_filter_pensioners(client):
    admin = make_staff()
    make_pensioner("PEN-1", full_name="Bola Ade")
    make_pensioner("PEN-2", full_name="Kemi Ade", pension_scheme_type="partial")
    h = auth_header(admin)
    r = client.get("/api/v1/admin/pensioners?q=kemi", headers=h)
    body = r.get_json()
    assert [p["pension_id"] for p in body["data"]] == ["PEN-2"]
    assert body["meta"]["total"] == 1

    r = client.get("/api/v1/admin/pensioners?scheme=PARTIAL&size=1", headers=h)
    assert r.get_json()["meta"] == {"page": 1, "size": 1, "total": 1, "pages": 1}


def test_update_status_approve(client):
    admin = make_staff()
    p = make_pensioner("PEN-9")
    r = client.patch("/api/v1/admin/pensioners/PEN-9/status", headers=auth_header(admin), json={"action": "approve"})
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["message"] == "Pensioner approved successfully"
    assert data["pensioner"]["status"] == "VERIFIED"
    assert data["pensioner"]["next_due_at"] is not None
    assert data["log"]["actor_id"] == admin.id


def test_update_status_errors(client):
    admin = make_staff()
    make_pensioner("PEN-9")
    h = auth_header(admin)
    assert client.patch("/api/v1/admin/pensioners/PEN-9/status", headers=h, json={}).status_code == 400

    r = client.patch("/api/v1/admin/pensioners/PEN-9/status", headers=h, json={"action": "bogus"})
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == "INVALID_ACTION"
    assert VerificationLog.query.count() == 0

    r = client.patch("/api/v1/admin/pensioners/PEN-404/status", headers=h, json={"action": "approve"})
    assert r.status_code == 404


def _upload_id_card(client, p):
    r = client.post("/api/v1/files/upload", headers=auth_header(p), content_type="multipart/form-data",
                    data={"file_type": "idCard", "file": (BytesIO(PNG), "id.png", "image/png")})
    assert r.status_code == 201
    rec = db.session.get(PensionerFile, r.get_json()["data"]["id"])
    path = get_storage().absolute_path(rec.storage_key)
    assert os.path.exists(path)
    return path


def test_delete_pensioner_cascades(client):
    admin = make_staff()
    p = make_pensioner()
    path = _upload_id_card(client, p)
    client.patch(f"/api/v1/admin/pensioners/{p.id}/status", headers=auth_header(admin), json={"action": "flag"})
    pid = p.id

    r = client.delete(f"/api/v1/admin/pensioners/{pid}", headers=auth_header(admin))
    assert r.status_code == 200
    assert db.session.get(Pensioner, pid) is None
    assert VerificationLog.query.filter_by(pensioner_id=pid).count() == 0
    assert not os.path.exists(path)


def test_delete_pensioner_keeps_documents_if_commit_fails(client, monkeypatch):
    admin = make_staff()
    p = make_pensioner()
    path = _upload_id_card(client, p)

    def boom():
        raise RuntimeError("database went away")
    monkeypatch.setattr(db.session, "commit", boom)
    r = client.delete(f"/api/v1/admin/pensioners/{p.id}", headers=auth_header(admin))
    monkeypatch.undo()
    db.session.rollback()

    assert r.status_code == 500
    assert db.session.get(Pensioner, p.id) is not None
    assert os.path.exists(path)


def test_recalculate_pensions(client):
    admin = make_staff()
    p = make_pensioner()
    p.salary = 2400000
    db.session.commit()
    r = client.post("/api/v1/admin/recalculate-pensions", headers=auth_header(admin))
    body = r.get_json()
    assert body["meta"]["updated"] == 1
    assert body["data"][0]["old_values"]["total_gratuity"] == 336000.0
    assert body["data"][0]["new_values"]["total_gratuity"] == 672000.0


def test_calculate_preview(client):
    officer = make_staff("officer@test.local", role="officer")
    r = client.post("/api/v1/admin/calculate", headers=auth_header(officer), json={
        "salary": "1,200,000", "date_of_first_appointment": "2000-01-01",
        "date_of_retirement": "2030-01-01", "pension_scheme_type": "total",
    })
    assert r.status_code == 200
    assert r.get_json()["data"]["years_of_service"] == 30
    r = client.post("/api/v1/admin/calculate", headers=auth_header(officer), json={"salary": "x"})
    assert r.status_code == 422


def test_export_xlsx(client):
    admin = make_staff()
    make_pensioner("PEN-1")
    r = client.get("/api/v1/admin/reports/pensioners.xlsx", headers=auth_header(admin))
    assert r.status_code == 200
    ws = load_workbook(BytesIO(r.data)).active
    rows = list(ws.iter_rows(values_only=True))
    assert rows[0][0] == "PENSION ID"
    assert rows[1][0] == "PEN-1"


def test_create_staff(client):
    admin = make_staff()
    h = auth_header(admin)
    r = client.post("/api/v1/admin/staff", headers=h,
                    json={"email": "New@Test.local", "full_name": "New Officer", "password": "LongEnough1"})
    assert r.status_code == 201
    assert r.get_json()["data"]["role"] == "officer"
    r = client.post("/api/v1/admin/staff", headers=h,
                    json={"email": "new@test.local", "full_name": "Dup", "password": "LongEnough1"})
    assert r.status_code == 409
    r = client.post("/api/v1/admin/staff", headers=h,
                    json={"email": "x@test.local", "full_name": "X", "password": "short"})
    assert r.status_code == 422


def _with_photo(client, p):
    r = client.post("/api/v1/files/upload", headers=auth_header(p), content_type="multipart/form-data",
                    data={"file_type": "passportPhoto", "file": (BytesIO(PNG), "me.png", "image/png")})
    assert r.status_code == 201


def test_face_verification_escalates_then_officer_decides(client, monkeypatch):
    officer = make_staff("officer@test.local", role="officer")
    p = make_pensioner()
    _with_photo(client, p)
    monkeypatch.setattr(FaceEngine, "match", classmethod(lambda cls, ref, cap: 0.35))

    r = client.post("/api/v1/verification/start", headers=auth_header(p), content_type="multipart/form-data",
                    data={"captured": (BytesIO(PNG), "cap.png", "image/png")})
    assert r.status_code == 202
    review_id = r.get_json()["data"]["review_id"]

    r = client.get("/api/v1/verification/reviews", headers=auth_header(officer))
    assert [x["id"] for x in r.get_json()["data"]] == [review_id]

    url = f"/api/v1/verification/reviews/{review_id}/decision"
    r = client.post(url, headers=auth_header(officer), json={"decision": "APPROVE", "notes": "seen in person"})
    assert r.status_code == 200
    assert r.get_json()["data"]["status"] == "VERIFIED"

    r = client.post(url, headers=auth_header(officer), json={"decision": "REJECT"})
    assert r.status_code == 409

    r = client.get("/api/v1/verification/logs", headers=auth_header(p))
    assert [l["method"] for l in r.get_json()["data"]] == ["MANUAL_REVIEW", "FACE_MATCH"]


def test_face_verification_match(client, monkeypatch):
    p = make_pensioner()
    _with_photo(client, p)
    monkeypatch.setattr(FaceEngine, "match", classmethod(lambda cls, ref, cap: 0.91))
    r = client.post("/api/v1/verification/start", headers=auth_header(p), content_type="multipart/form-data",
                    data={"captured": (BytesIO(PNG), "cap.png", "image/png")})
    assert r.status_code == 200
    assert r.get_json()["data"]["status"] == "VERIFIED"
    # a match renews the due date, the account status stays with staff
    pensioner = db.session.get(Pensioner, p.id)
    assert pensioner.status == "PENDING_VERIFICATION"
    assert pensioner.next_due_at is not None


def test_flagged_pensioner_cannot_clear_flag_by_face_match(client, monkeypatch):
    admin = make_staff()
    p = make_pensioner()
    _with_photo(client, p)
    r = client.patch(f"/api/v1/admin/pensioners/{p.id}/status", headers=auth_header(admin),
                     json={"action": "flag", "reason": "Suspected impersonation"})
    assert r.status_code == 200

    monkeypatch.setattr(FaceEngine, "match", classmethod(lambda cls, ref, cap: 0.95))
    r = client.post("/api/v1/verification/start", headers=auth_header(p), content_type="multipart/form-data",
                    data={"captured": (BytesIO(PNG), "cap.png", "image/png")})
    assert r.status_code == 200

    db.session.expire_all()
    pensioner = db.session.get(Pensioner, p.id)
    assert pensioner.status == "FLAGGED"
    assert pensioner.next_due_at is None
    r = client.get(f"/api/v1/admin/pensioners/{p.id}", headers=auth_header(admin))
    assert r.get_json()["data"]["status"] == "FLAGGED"


def test_face_verification_needs_reference_photo(client):
    p = make_pensioner()
    r = client.post("/api/v1/verification/start", headers=auth_header(p), content_type="multipart/form-data",
                    data={"captured": (BytesIO(PNG), "cap.png", "image/png")})
    assert r.status_code == 400


def test_decision_on_unknown_review(client):
    officer = make_staff("officer@test.local", role="officer")
    r = client.post("/api/v1/verification/reviews/1/decision", headers=auth_header(officer), json={"decision": "x"})
    assert r.status_code == 404


def test_list_rejects_unknown_status_filter(client):
    admin = make_staff()
    r = client.get("/api/v1/admin/pensioners?status=retired", headers=auth_header(admin))
    assert r.status_code == 422
    assert r.get_json()["error"]["code"] == "VALIDATION_ERROR"
