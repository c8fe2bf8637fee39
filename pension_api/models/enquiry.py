import secrets
import time
from datetime import datetime
from pension_api.extensions import db

ENQUIRY_PENDING = "PENDING"
ENQUIRY_IN_PROGRESS = "IN_PROGRESS"
ENQUIRY_RESOLVED = "RESOLVED"
ENQUIRY_CLOSED = "CLOSED"
ENQUIRY_STATUSES = (ENQUIRY_PENDING, ENQUIRY_IN_PROGRESS, ENQUIRY_RESOLVED, ENQUIRY_CLOSED)


def new_tracking_id() -> str:
    return f"ENQ-{int(time.time() * 1000)}-{secrets.token_hex(3).upper()}"


class Enquiry(db.Model):
    """Message sent through the public contact form."""
    __tablename__ = "enquiries"

    id = db.Column(db.Integer, primary_key=True)
    tracking_id = db.Column(db.String(40), unique=True, index=True, nullable=False, default=new_tracking_id)
    full_name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    subject = db.Column(db.String(255), nullable=False, index=True)
    message = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=ENQUIRY_PENDING, index=True)
    response = db.Column(db.Text, nullable=True)
    resolved_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "tracking_id": self.tracking_id,
            "full_name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "subject": self.subject,
            "message": self.message,
            "status": self.status,
            "response": self.response,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
