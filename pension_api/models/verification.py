from datetime import datetime
from pension_api.extensions import db

METHOD_ADMIN_REVIEW = "ADMIN_REVIEW"
METHOD_MANUAL_REVIEW = "MANUAL_REVIEW"
METHOD_FACE_MATCH = "FACE_MATCH"

REVIEW_PENDING = "PENDING"
REVIEW_VERIFIED = "VERIFIED"
REVIEW_REJECTED = "REJECTED"
REVIEW_STATUSES = (REVIEW_PENDING, REVIEW_VERIFIED, REVIEW_REJECTED)


class VerificationLog(db.Model):
    """Append-only audit trail; one row per decision or verification attempt."""
    __tablename__ = "verification_logs"

    id = db.Column(db.Integer, primary_key=True)
    pensioner_id = db.Column(db.Integer, db.ForeignKey("pensioners.id", ondelete="CASCADE"), nullable=False, index=True)
    method = db.Column(db.String(40), nullable=False)   # ADMIN_REVIEW, MANUAL_REVIEW, FACE_MATCH
    status = db.Column(db.String(40), nullable=False)   # VERIFIED, FLAGGED, REJECTED, PENDING_REVIEW
    message = db.Column(db.Text, nullable=True)
    actor_id = db.Column(db.Integer, nullable=True)     # staff user behind the decision, if any
    verified_at = db.Column(db.DateTime, nullable=True, default=datetime.utcnow)
    next_due_at = db.Column(db.DateTime, nullable=True)
    face_similarity = db.Column(db.Float, nullable=True)

    pensioner = db.relationship("Pensioner", back_populates="logs")

    def to_dict(self):
        return {
            "id": self.id,
            "pensioner_id": self.pensioner_id,
            "method": self.method,
            "status": self.status,
            "message": self.message,
            "actor_id": self.actor_id,
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
            "next_due_at": self.next_due_at.isoformat() if self.next_due_at else None,
        }


class VerificationReview(db.Model):
    __tablename__ = "verification_reviews"

    id = db.Column(db.Integer, primary_key=True)
    pensioner_id = db.Column(db.Integer, db.ForeignKey("pensioners.id", ondelete="CASCADE"), nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default=REVIEW_PENDING, index=True)
    captured_photo = db.Column(db.Text, nullable=True)
    face_similarity = db.Column(db.Float, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    officer_id = db.Column(db.Integer, db.ForeignKey("staff_users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    pensioner = db.relationship("Pensioner", back_populates="reviews")
    officer = db.relationship("StaffUser")

    def to_dict(self, with_pensioner=False):
        out = {
            "id": self.id,
            "pensioner_id": self.pensioner_id,
            "status": self.status,
            "captured_photo": self.captured_photo,
            "face_similarity": self.face_similarity,
            "notes": self.notes,
            "officer_id": self.officer_id,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if with_pensioner and self.pensioner is not None:
            p = self.pensioner
            out["pensioner"] = {"id": p.id, "full_name": p.full_name, "pension_id": p.pension_id, "photo": p.photo}
        return out
