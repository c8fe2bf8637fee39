import logging
from datetime import datetime
from typing import Optional

from pension_api.common.errors import NotFound, Conflict
from pension_api.extensions import db
from pension_api.models.pensioner import Pensioner, STATUS_VERIFIED, STATUS_FLAGGED, STATUS_REJECTED
from pension_api.models.verification import (
    VerificationLog, VerificationReview, METHOD_FACE_MATCH, REVIEW_PENDING,
)
from pension_api.services.verification_policy import decide, decide_review, add_years, REVIEW_APPROVAL_YEARS

logger = logging.getLogger(__name__)

# statuses a face match must not paper over
HELD_STATUSES = (STATUS_FLAGGED, STATUS_REJECTED)


def resolve_pensioner(ref, lock: bool = False) -> Pensioner:
    """
    Find a pensioner by database id or by pension id.
    Numeric refs try the primary key first, then fall back to pension_id.
    """
    ref = str(ref or "").strip()
    if not ref:
        raise NotFound("Pensioner not found")

    q = Pensioner.query
    if lock:
        q = q.with_for_update()

    p = None
    if ref.isdigit() and str(int(ref)) == ref:
        p = q.filter(Pensioner.id == int(ref)).first()
    if p is None:
        p = q.filter(Pensioner.pension_id == ref).first()
    if p is None:
        raise NotFound("Pensioner not found", payload={"ref": ref})
    return p


def apply_admin_decision(pensioner_ref, action: str, reason: Optional[str], actor_id: Optional[int],
                         now: Optional[datetime] = None):
    """
    Status change + audit entry as one unit of work.
    The policy runs before anything is written, so a bad action leaves no trace.
    """
    pensioner = resolve_pensioner(pensioner_ref, lock=True)
    decision = decide(action, reason, now=now)

    try:
        pensioner.status = decision.status
        pensioner.updated_at = decision.decided_at
        if decision.is_approval:
            pensioner.next_due_at = decision.next_due_at
        log = VerificationLog(
            pensioner_id=pensioner.id,
            method=decision.method,
            status=decision.status,
            message=decision.message,
            actor_id=actor_id,
            verified_at=decision.decided_at,
            next_due_at=decision.next_due_at,
        )
        db.session.add(log)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("pensioner %s %s by admin %s", pensioner.id, action, actor_id)
    return pensioner, log, decision


def apply_review_decision(review_id: int, decision_str: str, officer_id: Optional[int],
                          notes: Optional[str] = None, now: Optional[datetime] = None):
    """
    Terminal decision on a queued review. The row is locked for the duration
    so a second concurrent decision sees the updated status and gets Conflict.
    """
    review = (VerificationReview.query
              .filter(VerificationReview.id == review_id)
              .with_for_update()
              .first())
    if review is None:
        raise NotFound("Review not found", payload={"review_id": review_id})

    decision = decide_review(decision_str, now=now)

    if review.status != REVIEW_PENDING:
        db.session.rollback()
        raise Conflict("Review already decided", payload={"status": review.status})

    try:
        review.status = decision.status
        review.reviewed_at = decision.decided_at
        review.officer_id = officer_id
        if notes:
            review.notes = notes

        log = VerificationLog(
            pensioner_id=review.pensioner_id,
            method=decision.method,
            status=decision.status,
            message=decision.message,
            actor_id=officer_id,
            verified_at=decision.decided_at,
            next_due_at=decision.next_due_at,
        )
        db.session.add(log)

        # a rejected review leaves the pensioner record for an admin to act on
        if decision.is_approval:
            pensioner = db.session.get(Pensioner, review.pensioner_id)
            if pensioner is not None:
                pensioner.status = decision.status
                pensioner.next_due_at = decision.next_due_at
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("review %s %s by officer %s", review.id, decision.status, officer_id)
    return review, log, decision


def record_face_result(pensioner: Pensioner, similarity: Optional[float], threshold: float,
                       captured_key: str, now: Optional[datetime] = None) -> dict:
    """
    Outcome of an automatic face match. A confident match is logged with a
    three year due date; anything else is queued for an officer.
    Status is never changed here, only staff decisions move it.
    """
    now = now or datetime.utcnow()
    try:
        if similarity is not None and similarity >= threshold:
            next_due = add_years(now, REVIEW_APPROVAL_YEARS)
            db.session.add(VerificationLog(
                pensioner_id=pensioner.id,
                method=METHOD_FACE_MATCH,
                status=STATUS_VERIFIED,
                message="Face matched stored photo",
                verified_at=now,
                next_due_at=next_due,
                face_similarity=similarity,
            ))
            if pensioner.status not in HELD_STATUSES:
                pensioner.next_due_at = next_due
            db.session.commit()
            return {"status": STATUS_VERIFIED, "next_due_at": next_due, "similarity": similarity}

        review = VerificationReview(
            pensioner_id=pensioner.id,
            status=REVIEW_PENDING,
            captured_photo=captured_key,
            face_similarity=similarity,
            created_at=now,
        )
        db.session.add(review)
        db.session.add(VerificationLog(
            pensioner_id=pensioner.id,
            method=METHOD_FACE_MATCH,
            status="PENDING_REVIEW",
            message="No face detected" if similarity is None else "Low confidence match",
            verified_at=now,
            face_similarity=similarity,
        ))
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("pensioner %s escalated to review %s (similarity=%s)", pensioner.id, review.id, similarity)
    return {"status": "PENDING_REVIEW", "review_id": review.id, "similarity": similarity}
