from datetime import datetime
from flask import Blueprint, request, current_app
from sqlalchemy import or_

from pension_api.extensions import db
from pension_api.common.http import ok, fail
from pension_api.common.auth import requires_roles, current_identity, ROLE_PENSIONER
from pension_api.models.pensioner import Pensioner, STATUS_PENDING, STATUS_VERIFIED, STATUS_REJECTED
from pension_api.models.pensioner_file import PensionerFile
from pension_api.models.verification import (
    VerificationLog, VerificationReview, METHOD_ADMIN_REVIEW, METHOD_MANUAL_REVIEW,
)
from pension_api.services.benefits_service import apply_benefits
from pension_api.services.pension_calculator import format_currency, format_percentage, parse_amount
from pension_api.services.verification_policy import should_show_due_notification

bp = Blueprint("pensioners", __name__, url_prefix="/api/v1/pensioners")

REQUIRED_FIELDS = (
    "pension_id", "full_name", "nin", "date_of_birth", "gender", "email", "phone",
    "residential_address", "pension_scheme_type", "date_of_first_appointment",
    "date_of_retirement", "pf_number", "last_promotion_date", "current_level",
    "salary", "password",
)
PROFILE_FIELDS = ("email", "phone", "residential_address")


def parse_date(s):
    if not s: return None
    for fmt in ("%Y-%m-%d", "%d-%m-%Y"):
        try: return datetime.strptime(s, fmt).date()
        except (TypeError, ValueError): pass
    return None


def _me() -> Pensioner:
    return db.session.get(Pensioner, current_identity().id)


# ---------- Registration ----------
@bp.post("/register")
def register():
    d = request.get_json(silent=True) or {}
    missing = [k for k in REQUIRED_FIELDS if not d.get(k)]
    if missing:
        return fail("All required fields must be provided", status=400, errors={"missing": missing})

    dates = {k: parse_date(d[k]) for k in
             ("date_of_birth", "date_of_first_appointment", "date_of_retirement", "last_promotion_date")}
    bad = [k for k, v in dates.items() if v is None]
    if bad:
        return fail("Invalid dates", status=422, errors={"invalid": bad})
    if dates["date_of_retirement"] < dates["date_of_first_appointment"]:
        return fail("Retirement date cannot be before first appointment", status=422)

    salary = parse_amount(d["salary"])
    if salary is None or not salary.is_finite() or salary <= 0:
        return fail("Salary must be a positive amount", status=422)

    email = str(d["email"]).strip().lower()
    exists = Pensioner.query.filter(or_(
        Pensioner.pension_id == d["pension_id"],
        Pensioner.nin == d["nin"],
        Pensioner.email == email,
        Pensioner.pf_number == d["pf_number"],
    )).first()
    if exists:
        return fail("A pensioner with this Pension ID, NIN, Email, or PF Number already exists",
                    status=409, code="DUPLICATE")

    p = Pensioner(
        pension_id=d["pension_id"],
        full_name=d["full_name"],
        nin=d["nin"],
        date_of_birth=dates["date_of_birth"],
        gender=d["gender"],
        email=email,
        phone=d["phone"],
        residential_address=d["residential_address"],
        pension_scheme_type=d["pension_scheme_type"],
        date_of_first_appointment=dates["date_of_first_appointment"],
        date_of_retirement=dates["date_of_retirement"],
        pf_number=d["pf_number"],
        last_promotion_date=dates["last_promotion_date"],
        current_level=d["current_level"],
        salary=salary,
        maiden_name=d.get("maiden_name") or None,
        status=STATUS_PENDING,
    )
    p.set_password(d["password"])
    res = apply_benefits(p)

    db.session.add(p)
    db.session.commit()
    current_app.logger.info("registered pensioner %s (%s years of service)", p.pension_id, res.years_of_service)
    return ok({"pensioner_id": p.id, "status": p.status, "benefits": res.as_dict()}, status=201)


# ---------- Self service ----------
def document_status(p: Pensioner, logs, latest_review) -> str:
    staff_methods = (METHOD_ADMIN_REVIEW, METHOD_MANUAL_REVIEW)
    if (p.status == STATUS_VERIFIED
            or (latest_review is not None and latest_review.status == STATUS_VERIFIED)
            or any(l.status == STATUS_VERIFIED and l.method in staff_methods for l in logs)):
        return STATUS_VERIFIED
    if (p.status == STATUS_REJECTED
            or (latest_review is not None and latest_review.status == STATUS_REJECTED)
            or any(l.status == STATUS_REJECTED and l.method in staff_methods for l in logs)):
        return STATUS_REJECTED
    return "PENDING"


@bp.get("/me")
@requires_roles(ROLE_PENSIONER)
def me():
    p = _me()
    if not p:
        return fail("Not found", status=404)

    logs = (VerificationLog.query.filter_by(pensioner_id=p.id)
            .order_by(VerificationLog.verified_at.desc(), VerificationLog.id.desc())
            .limit(10).all())
    latest_review = (VerificationReview.query.filter_by(pensioner_id=p.id)
                     .order_by(VerificationReview.id.desc()).first())
    files = (PensionerFile.query.filter_by(pensioner_id=p.id)
             .order_by(PensionerFile.created_at.desc()).all())

    documents = {}
    for f in files:
        # newest upload per type wins
        documents.setdefault(f.file_type, f.to_dict())

    return ok({
        "pensioner": p.to_dict(),
        "documents": documents,
        "logs": [l.to_dict() for l in logs],
        "latest_review": latest_review.to_dict() if latest_review else None,
        "document_verification_status": document_status(p, logs, latest_review),
    })


@bp.patch("/me")
@requires_roles(ROLE_PENSIONER)
def update_profile():
    p = _me()
    if not p:
        return fail("Not found", status=404)
    d = request.get_json(silent=True) or {}
    changes = {k: d[k] for k in PROFILE_FIELDS if k in d}
    if not changes:
        return fail("Nothing to update", status=400)
    if "email" in changes:
        changes["email"] = str(changes["email"]).strip().lower()
        clash = Pensioner.query.filter(Pensioner.email == changes["email"], Pensioner.id != p.id).first()
        if clash:
            return fail("Email already in use", status=409)
    for k, v in changes.items():
        setattr(p, k, v)
    db.session.commit()
    return ok(p.to_dict())


@bp.get("/me/benefits")
@requires_roles(ROLE_PENSIONER)
def my_benefits():
    p = _me()
    if not p:
        return fail("Not found", status=404)
    b = p.benefits_dict()
    display = {}
    if p.total_gratuity is not None:
        display = {
            "total_gratuity": format_currency(p.total_gratuity),
            "monthly_pension": format_currency(p.monthly_pension),
            "gratuity_rate": format_percentage(p.gratuity_rate),
            "pension_rate": format_percentage(p.pension_rate),
        }
    return ok({**b, "display": display})


@bp.get("/me/activity")
@requires_roles(ROLE_PENSIONER)
def activity():
    p = _me()
    if not p:
        return fail("Not found", status=404)

    items = []
    for log in (VerificationLog.query.filter_by(pensioner_id=p.id)
                .order_by(VerificationLog.verified_at.desc()).limit(10)):
        if not log.verified_at:
            continue
        if log.status == STATUS_VERIFIED:
            title = "Verification completed"
        elif log.status == "PENDING_REVIEW":
            title = "Verification pending review"
        else:
            title = "Verification attempt"
        items.append({"id": f"verification-{log.id}", "type": "verification", "title": title,
                      "description": log.method, "status": log.status, "timestamp": log.verified_at})

    for f in (PensionerFile.query.filter_by(pensioner_id=p.id)
              .order_by(PensionerFile.created_at.desc()).limit(10)):
        items.append({"id": f"document-{f.id}", "type": "document", "title": "Document uploaded",
                      "description": f.file_type, "timestamp": f.created_at})

    if p.created_at:
        items.append({"id": f"registration-{p.id}", "type": "registration", "title": "Account created",
                      "description": "Registration completed", "timestamp": p.created_at})
    if p.last_login:
        items.append({"id": f"login-{p.id}", "type": "login", "title": "Last login",
                      "description": "Logged into account", "timestamp": p.last_login})

    items.sort(key=lambda a: a["timestamp"], reverse=True)
    items = items[:10]
    for a in items:
        a["timestamp"] = a["timestamp"].isoformat()
    return ok(items)


@bp.get("/me/due-notification")
@requires_roles(ROLE_PENSIONER)
def due_notification():
    p = _me()
    if not p:
        return ok({"show": False, "next_due_at": None})
    show = should_show_due_notification(p.next_due_at, p.has_seen_due_notification)
    return ok({"show": show, "next_due_at": p.next_due_at.isoformat() if p.next_due_at else None})


@bp.post("/me/due-notification")
@requires_roles(ROLE_PENSIONER)
def ack_due_notification():
    p = _me()
    if not p:
        return fail("Not found", status=404)
    p.has_seen_due_notification = True
    db.session.commit()
    return ok({"acknowledged": True})
