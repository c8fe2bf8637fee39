from datetime import datetime
from flask import Blueprint, request, current_app

from pension_api.extensions import db
from pension_api.common.http import ok, fail
from pension_api.common.errors import ValidationFailed
from pension_api.common.paging import page_limit, page_meta, text_q
from pension_api.common.auth import requires_roles, ROLE_ADMIN
from pension_api.common.rate_limit import rate_limited
from pension_api.models.enquiry import Enquiry, ENQUIRY_STATUSES, ENQUIRY_RESOLVED
from pension_api.services.mailer import send_enquiry_notification

bp = Blueprint("enquiries", __name__, url_prefix="/api/v1/enquiries")

REQUIRED = ("full_name", "email", "subject", "message")


def _text(d, key):
    return str(d.get(key) or "").strip()


# --- Public ---

@bp.post("")
@rate_limited("enquiry")
def create_enquiry():
    d = request.get_json(silent=True) or {}
    values = {k: _text(d, k) for k in REQUIRED}
    missing = [k for k, v in values.items() if not v]
    if missing:
        return fail("Missing required fields", status=400, errors={"missing": missing})

    e = Enquiry(**values, phone=_text(d, "phone") or None)
    e.email = e.email.lower()
    db.session.add(e)
    db.session.commit()
    current_app.logger.info("enquiry %s received", e.tracking_id)

    send_enquiry_notification(e)
    return ok({"tracking_id": e.tracking_id,
               "message": "Your enquiry has been submitted successfully"}, status=201)


# --- Admin ---

@bp.get("")
@requires_roles(ROLE_ADMIN)
def list_enquiries():
    page, size = page_limit()
    q = Enquiry.query
    subject = request.args.get("subject")
    if subject:
        q = q.filter(Enquiry.subject == subject)
    status = (request.args.get("status") or "").upper()
    if status:
        if status not in ENQUIRY_STATUSES:
            raise ValidationFailed("Invalid status filter", payload={"allowed": list(ENQUIRY_STATUSES)})
        q = q.filter(Enquiry.status == status)
    term = text_q()
    if term:
        like = f"%{term}%"
        q = q.filter(Enquiry.full_name.ilike(like) | Enquiry.tracking_id.ilike(like))
    pg = q.order_by(Enquiry.created_at.desc(), Enquiry.id.desc()).paginate(page=page, per_page=size, error_out=False)
    return ok([e.to_dict() for e in pg.items], **page_meta(page, size, pg.total))


@bp.get("/<int:eid>")
@requires_roles(ROLE_ADMIN)
def get_enquiry(eid):
    e = db.session.get(Enquiry, eid)
    if not e: return fail("Enquiry not found", 404)
    return ok(e.to_dict())


@bp.patch("/<int:eid>")
@requires_roles(ROLE_ADMIN)
def update_enquiry(eid):
    e = db.session.get(Enquiry, eid)
    if not e: return fail("Enquiry not found", 404)
    d = request.get_json(silent=True) or {}
    if "status" not in d and "response" not in d:
        return fail("Nothing to update", status=400)

    if "status" in d:
        status = str(d.get("status") or "").upper()
        if status not in ENQUIRY_STATUSES:
            return fail("Invalid status", status=422, errors={"allowed": list(ENQUIRY_STATUSES)})
        if status == ENQUIRY_RESOLVED and e.status != ENQUIRY_RESOLVED:
            e.resolved_at = datetime.utcnow()
        e.status = status
    if "response" in d:
        e.response = d.get("response")

    db.session.commit()
    return ok(e.to_dict())


@bp.delete("/<int:eid>")
@requires_roles(ROLE_ADMIN)
def delete_enquiry(eid):
    e = db.session.get(Enquiry, eid)
    if not e: return fail("Enquiry not found", 404)
    db.session.delete(e)
    db.session.commit()
    return ok({"id": eid, "deleted": True})
