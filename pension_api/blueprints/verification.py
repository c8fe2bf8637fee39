from flask import Blueprint, request, current_app

from pension_api.extensions import db
from pension_api.common.http import ok, fail
from pension_api.common.paging import page_limit, page_meta
from pension_api.common.auth import requires_roles, current_identity, ROLE_PENSIONER, ROLE_OFFICER
from pension_api.models.pensioner import Pensioner
from pension_api.models.verification import VerificationLog, VerificationReview, REVIEW_STATUSES, REVIEW_PENDING
from pension_api.services.face_engine import FaceEngine
from pension_api.services.storage import get_storage
from pension_api.services.verification_service import apply_review_decision, record_face_result

bp = Blueprint("verification", __name__, url_prefix="/api/v1/verification")


# --- Pensioner Endpoints ---

@bp.post("/start")
@requires_roles(ROLE_PENSIONER)
def start():
    p = db.session.get(Pensioner, current_identity().id)
    if not p:
        return fail("Not found", status=404)

    captured = request.files.get("captured")
    if captured is None:
        return fail("Captured image is required")
    if not p.photo:
        return fail("No stored profile photo on record")

    storage = get_storage()
    content_type = captured.mimetype or "application/octet-stream"
    key = storage.build_key(f"pensioners/{p.id}/captures", captured.filename or "captured", content_type)
    stored = storage.upload(captured.read(), key, content_type)

    similarity = FaceEngine.match(storage.absolute_path(p.photo), storage.absolute_path(stored["key"]))
    threshold = float(current_app.config.get("FACE_MATCH_THRESHOLD", 0.6))
    res = record_face_result(p, similarity, threshold, stored["key"])

    if res["status"] == "PENDING_REVIEW":
        return ok({**res, "message": "Escalated to Verification Officer"}, status=202)
    return ok({**res, "next_due_at": res["next_due_at"].isoformat()})


@bp.get("/logs")
@requires_roles(ROLE_PENSIONER)
def my_logs():
    page, size = page_limit()
    q = (VerificationLog.query
         .filter(VerificationLog.pensioner_id == current_identity().id)
         .order_by(VerificationLog.verified_at.desc(), VerificationLog.id.desc()))
    pg = q.paginate(page=page, per_page=size, error_out=False)
    return ok([l.to_dict() for l in pg.items], **page_meta(page, size, pg.total))


# --- Officer Endpoints ---

@bp.get("/reviews")
@requires_roles(ROLE_OFFICER)
def list_reviews():
    status = (request.args.get("status") or REVIEW_PENDING).upper()
    if status not in REVIEW_STATUSES:
        return fail("Invalid status", status=422, errors={"allowed": list(REVIEW_STATUSES)})
    page, size = page_limit()
    q = (VerificationReview.query
         .filter(VerificationReview.status == status)
         .order_by(VerificationReview.id.desc()))
    pg = q.paginate(page=page, per_page=size, error_out=False)
    return ok([r.to_dict(with_pensioner=True) for r in pg.items], **page_meta(page, size, pg.total))


@bp.post("/reviews/<int:rid>/decision")
@requires_roles(ROLE_OFFICER)
def review_decision(rid):
    d = request.get_json(silent=True) or {}
    review, log, decision = apply_review_decision(
        rid, d.get("decision"), officer_id=current_identity().id, notes=d.get("notes"),
    )
    return ok({
        "review": review.to_dict(),
        "status": decision.status,
        "next_due_at": decision.next_due_at.isoformat() if decision.next_due_at else None,
        "log_id": log.id,
    })
