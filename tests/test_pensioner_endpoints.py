from datetime import datetime, timedelta
from io import BytesIO

from pension_api.extensions import db
from pension_api.models.pensioner import Pensioner
from tests.factories import make_pensioner, auth_header

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _registration(**overrides):
    body = {
        "pension_id": "PEN-2024-001",
        "full_name": "Chinedu Okafor",
        "nin": "12345678901",
        "date_of_birth": "1964-02-11",
        "gender": "M",
        "email": "Chinedu@Mail.test",
        "phone": "08031234567",
        "residential_address": "4 Awolowo Rd, Ikoyi",
        "pension_scheme_type": "Total",
        "date_of_first_appointment": "2000-01-01",
        "date_of_retirement": "2030-01-01",
        "pf_number": "PF-889",
        "last_promotion_date": "2022-01-01",
        "current_level": "GL-15",
        "salary": "₦1,200,000",
        "password": "Secret123",
    }
    body.update(overrides)
    return body


def test_register_computes_benefits(client):
    r = client.post("/api/v1/pensioners/register", json=_registration())
    assert r.status_code == 201
    data = r.get_json()["data"]
    assert data["status"] == "PENDING_VERIFICATION"
    assert data["benefits"] == {
        "years_of_service": 30,
        "gratuity_rate": 0.28,
        "pension_rate": 0.85,
        "total_gratuity": 336000.0,
        "monthly_pension": 85000.0,
    }
    p = db.session.get(Pensioner, data["pensioner_id"])
    assert p.email == "chinedu@mail.test"
    assert p.check_password("Secret123")


def test_register_missing_fields(client):
    r = client.post("/api/v1/pensioners/register", json=_registration(nin="", phone=None))
    assert r.status_code == 400
    assert set(r.get_json()["error"]["errors"]["missing"]) == {"nin", "phone"}


def test_register_bad_dates(client):
    r = client.post("/api/v1/pensioners/register", json=_registration(date_of_retirement="31/31/2020"))
    assert r.status_code == 422
    r = client.post("/api/v1/pensioners/register",
                    json=_registration(date_of_first_appointment="2030-01-01", date_of_retirement="2000-01-01"))
    assert r.status_code == 422


def test_register_bad_salary(client):
    for salary in ("abc", "-5", "0"):
        r = client.post("/api/v1/pensioners/register", json=_registration(salary=salary))
        assert r.status_code == 422


def test_register_duplicate(client):
    assert client.post("/api/v1/pensioners/register", json=_registration()).status_code == 201
    r = client.post("/api/v1/pensioners/register", json=_registration(pension_id="PEN-OTHER", pf_number="PF-2"))
    assert r.status_code == 409
    assert r.get_json()["error"]["code"] == "DUPLICATE"


def test_me_and_profile_update(client):
    p = make_pensioner()
    h = auth_header(p)
    r = client.get("/api/v1/pensioners/me", headers=h)
    assert r.status_code == 200
    body = r.get_json()["data"]
    assert body["pensioner"]["pension_id"] == p.pension_id
    assert body["document_verification_status"] == "PENDING"

    r = client.patch("/api/v1/pensioners/me", headers=h, json={"phone": "0809", "status": "VERIFIED"})
    assert r.status_code == 200
    assert r.get_json()["data"]["phone"] == "0809"
    # status is not self-service
    assert r.get_json()["data"]["status"] == "PENDING_VERIFICATION"

    assert client.patch("/api/v1/pensioners/me", headers=h, json={}).status_code == 400


def test_profile_email_clash(client):
    make_pensioner("PEN-A")
    p = make_pensioner("PEN-B")
    r = client.patch("/api/v1/pensioners/me", headers=auth_header(p), json={"email": "pen-a@mail.test"})
    assert r.status_code == 409


def test_benefits_display(client):
    p = make_pensioner()
    r = client.get("/api/v1/pensioners/me/benefits", headers=auth_header(p))
    data = r.get_json()["data"]
    assert data["monthly_pension"] == 85000.0
    assert data["display"]["total_gratuity"] == "₦336,000.00"
    assert data["display"]["pension_rate"] == "85.0%"


def test_due_notification_cycle(client):
    p = make_pensioner()
    h = auth_header(p)
    r = client.get("/api/v1/pensioners/me/due-notification", headers=h)
    assert r.get_json()["data"] == {"show": False, "next_due_at": None}

    p.next_due_at = datetime.utcnow() - timedelta(days=1)
    db.session.commit()
    assert client.get("/api/v1/pensioners/me/due-notification", headers=h).get_json()["data"]["show"] is True

    r = client.post("/api/v1/pensioners/me/due-notification", headers=h)
    assert r.get_json()["data"] == {"acknowledged": True}
    assert client.get("/api/v1/pensioners/me/due-notification", headers=h).get_json()["data"]["show"] is False


def test_upload_list_delete_document(client):
    p = make_pensioner()
    h = auth_header(p)
    r = client.post("/api/v1/files/upload", headers=h, content_type="multipart/form-data",
                    data={"file_type": "passportPhoto", "file": (BytesIO(PNG), "me.png", "image/png")})
    assert r.status_code == 201
    fid = r.get_json()["data"]["id"]
    assert db.session.get(Pensioner, p.id).photo is not None

    r = client.get("/api/v1/files/", headers=h)
    assert [f["id"] for f in r.get_json()["data"]] == [fid]

    r = client.get("/api/v1/pensioners/me/activity", headers=h)
    assert "document" in {a["type"] for a in r.get_json()["data"]}

    assert client.delete(f"/api/v1/files/{fid}", headers=h).status_code == 200
    assert db.session.get(Pensioner, p.id).photo is None


def test_upload_rejects_bad_type(client):
    p = make_pensioner()
    h = auth_header(p)
    r = client.post("/api/v1/files/upload", headers=h, content_type="multipart/form-data",
                    data={"file_type": "idCard", "file": (BytesIO(b"hi"), "note.txt", "text/plain")})
    assert r.status_code == 415
    r = client.post("/api/v1/files/upload", headers=h, content_type="multipart/form-data",
                    data={"file_type": "selfie", "file": (BytesIO(PNG), "x.png", "image/png")})
    assert r.status_code == 422


def test_other_pensioner_cannot_delete_file(client):
    owner = make_pensioner("PEN-A")
    other = make_pensioner("PEN-B")
    r = client.post("/api/v1/files/upload", headers=auth_header(owner), content_type="multipart/form-data",
                    data={"file_type": "idCard", "file": (BytesIO(PNG), "id.png", "image/png")})
    fid = r.get_json()["data"]["id"]
    assert client.delete(f"/api/v1/files/{fid}", headers=auth_header(other)).status_code == 403
