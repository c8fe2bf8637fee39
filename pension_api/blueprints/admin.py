from datetime import datetime
from io import BytesIO
from flask import Blueprint, request, current_app, send_file
from openpyxl import Workbook
from sqlalchemy import or_, func

from pension_api.extensions import db
from pension_api.common.http import ok, fail
from pension_api.common.errors import ValidationFailed
from pension_api.common.paging import page_limit, page_meta, text_q
from pension_api.common.auth import requires_roles, current_identity, ROLE_ADMIN, ROLE_OFFICER
from pension_api.models.user import StaffUser, STAFF_ROLES
from pension_api.models.pensioner import Pensioner, PENSIONER_STATUSES, STATUS_VERIFIED, STATUS_FLAGGED
from pension_api.models.pensioner_file import PensionerFile
from pension_api.models.verification import VerificationLog, VerificationReview, REVIEW_PENDING
from pension_api.services.benefits_service import recalculate_all
from pension_api.services.pension_calculator import PensionCalculationInput, calculate_pension, parse_amount
from pension_api.services.storage import get_storage
from pension_api.services.verification_service import resolve_pensioner, apply_admin_decision
from pension_api.blueprints.pensioners import parse_date

bp = Blueprint("admin", __name__, url_prefix="/api/v1/admin")

ACTION_PAST = {"approve": "approved", "flag": "flagged", "reject": "rejected"}


# ---------- Dashboard ----------
@bp.get("/dashboard")
@requires_roles(ROLE_ADMIN)
def dashboard():
    now = datetime.utcnow()
    total = db.session.query(func.count(Pensioner.id)).scalar() or 0
    verified = Pensioner.query.filter(Pensioner.status == STATUS_VERIFIED).count()
    flagged = Pensioner.query.filter(Pensioner.status == STATUS_FLAGGED).count()
    pending_reviews = VerificationReview.query.filter(VerificationReview.status == REVIEW_PENDING).count()
    due = Pensioner.query.filter(Pensioner.next_due_at.isnot(None), Pensioner.next_due_at <= now).count()
    recent = Pensioner.query.order_by(Pensioner.created_at.desc(), Pensioner.id.desc()).limit(5).all()
    return ok({
        "total_pensioners": total,
        "verified_pensioners": verified,
        "flagged_accounts": flagged,
        "pending_reviews": pending_reviews,
        "due_for_reverification": due,
        "recent_pensioners": [
            {"id": p.id, "pension_id": p.pension_id, "full_name": p.full_name,
             "status": p.status, "created_at": p.created_at.isoformat()}
            for p in recent
        ],
    })


# ---------- Pensioners ----------
def _filtered_pensioners():
    q = Pensioner.query
    term = text_q()
    if term:
        like = f"%{term}%"
        q = q.filter(or_(Pensioner.full_name.ilike(like), Pensioner.pension_id.ilike(like)))
    status = (request.args.get("status") or "all").upper()
    if status != "ALL":
        if status not in PENSIONER_STATUSES:
            raise ValidationFailed("Invalid status filter", payload={"allowed": list(PENSIONER_STATUSES)})
        q = q.filter(Pensioner.status == status)
    scheme = (request.args.get("scheme") or "all").lower()
    if scheme != "all":
        q = q.filter(func.lower(Pensioner.pension_scheme_type) == scheme)
    return q


@bp.get("/pensioners")
@requires_roles(ROLE_ADMIN)
def list_pensioners():
    page, size = page_limit()
    q = _filtered_pensioners().order_by(Pensioner.created_at.desc(), Pensioner.id.desc())
    pg = q.paginate(page=page, per_page=size, error_out=False)
    items = []
    for p in pg.items:
        items.append({
            "id": p.id,
            "pension_id": p.pension_id,
            "full_name": p.full_name,
            "category": p.pension_scheme_type or "Unknown",
            "status": p.status,
            "documents": [f.original_name for f in p.files],
            "last_login": p.last_login.isoformat() if p.last_login else None,
            "date_registered": p.created_at.date().isoformat() if p.created_at else None,
        })
    return ok(items, **page_meta(page, size, pg.total))


@bp.get("/pensioners/<ref>")
@requires_roles(ROLE_ADMIN)
def get_pensioner(ref):
    p = resolve_pensioner(ref)
    files = PensionerFile.query.filter_by(pensioner_id=p.id).order_by(PensionerFile.created_at.desc()).all()
    logs = (VerificationLog.query.filter_by(pensioner_id=p.id)
            .order_by(VerificationLog.verified_at.desc(), VerificationLog.id.desc()).limit(5).all())
    reviews = (VerificationReview.query.filter_by(pensioner_id=p.id)
               .order_by(VerificationReview.id.desc()).limit(3).all())
    return ok({
        **p.to_dict(),
        "files": [f.to_dict() for f in files],
        "logs": [l.to_dict() for l in logs],
        "reviews": [r.to_dict() for r in reviews],
    })


@bp.patch("/pensioners/<ref>/status")
@requires_roles(ROLE_ADMIN)
def update_status(ref):
    d = request.get_json(silent=True) or {}
    action = d.get("action")
    if not action:
        return fail("Action is required", status=400)
    p, log, decision = apply_admin_decision(ref, action, d.get("reason"), actor_id=current_identity().id)
    return ok({
        "message": f"Pensioner {ACTION_PAST[action]} successfully",
        "pensioner": p.to_dict(),
        "log": log.to_dict(),
    })


@bp.delete("/pensioners/<ref>")
@requires_roles(ROLE_ADMIN)
def delete_pensioner(ref):
    p = resolve_pensioner(ref)
    pid = p.id
    objects = [(f.file_id, f.storage_key) for f in p.files]
    # ORM cascade removes files, logs and reviews with the pensioner
    db.session.delete(p)
    db.session.commit()

    storage = get_storage()
    for file_id, key in objects:
        storage.delete(file_id, key)
    current_app.logger.info("pensioner %s deleted by admin %s", pid, current_identity().id)
    return ok({"id": pid, "deleted": True})


# ---------- Benefits ----------
@bp.post("/recalculate-pensions")
@requires_roles(ROLE_ADMIN)
def recalculate_pensions():
    results = recalculate_all()
    return ok(results, updated=len(results))


@bp.post("/calculate")
@requires_roles(ROLE_OFFICER)
def calculate_preview():
    d = request.get_json(silent=True) or {}
    salary = parse_amount(d.get("salary"))
    appointed = parse_date(d.get("date_of_first_appointment"))
    retired = parse_date(d.get("date_of_retirement"))
    if salary is None or appointed is None or retired is None:
        return fail("salary, date_of_first_appointment and date_of_retirement are required", status=422)
    res = calculate_pension(PensionCalculationInput(
        salary=salary,
        date_of_first_appointment=appointed,
        date_of_retirement=retired,
        pension_scheme_type=d.get("pension_scheme_type"),
        current_level=d.get("current_level"),
    ))
    return ok(res.as_dict())


# ---------- Reports ----------
REPORT_COLUMNS = [
    "PENSION ID", "NAME", "SCHEME", "STATUS", "YEARS OF SERVICE", "SALARY",
    "GRATUITY RATE", "PENSION RATE", "TOTAL GRATUITY", "MONTHLY PENSION", "NEXT DUE",
]


def _num(v):
    return float(v) if v is not None else None


@bp.get("/reports/pensioners.xlsx")
@requires_roles(ROLE_ADMIN)
def export_pensioners():
    wb = Workbook()
    ws = wb.active
    ws.title = "Pensioners"
    ws.append(REPORT_COLUMNS)
    for p in _filtered_pensioners().order_by(Pensioner.pension_id.asc()).all():
        ws.append([
            p.pension_id, p.full_name, p.pension_scheme_type, p.status, p.years_of_service,
            _num(p.salary), _num(p.gratuity_rate), _num(p.pension_rate),
            _num(p.total_gratuity), _num(p.monthly_pension),
            p.next_due_at.strftime("%Y-%m-%d") if p.next_due_at else None,
        ])

    bio = BytesIO()
    wb.save(bio)
    bio.seek(0)
    filename = f"pensioners_{datetime.utcnow().strftime('%Y%m%d')}.xlsx"
    return send_file(bio, mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                     as_attachment=True, download_name=filename)


# ---------- Staff ----------
@bp.post("/staff")
@requires_roles(ROLE_ADMIN)
def create_staff():
    d = request.get_json(silent=True) or {}
    email = (d.get("email") or "").strip().lower()
    full_name = (d.get("full_name") or "").strip()
    password = d.get("password") or ""
    role = d.get("role") or ROLE_OFFICER
    if not email or not full_name or len(password) < 8:
        return fail("email, full_name and a password of at least 8 characters are required", status=422)
    if role not in STAFF_ROLES:
        return fail("Invalid role", status=422, errors={"allowed": list(STAFF_ROLES)})
    if StaffUser.query.filter_by(email=email).first():
        return fail("Email already registered", status=409)

    u = StaffUser(email=email, full_name=full_name, role=role, status="active")
    u.set_password(password)
    db.session.add(u)
    db.session.commit()
    return ok(u.to_dict(), status=201)
