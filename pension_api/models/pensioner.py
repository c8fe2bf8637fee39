from datetime import datetime
from pension_api.extensions import db
from werkzeug.security import generate_password_hash, check_password_hash

STATUS_PENDING = "PENDING_VERIFICATION"
STATUS_VERIFIED = "VERIFIED"
STATUS_FLAGGED = "FLAGGED"
STATUS_REJECTED = "REJECTED"
PENSIONER_STATUSES = (STATUS_PENDING, STATUS_VERIFIED, STATUS_FLAGGED, STATUS_REJECTED)


class Pensioner(db.Model):
    __tablename__ = "pensioners"

    id = db.Column(db.Integer, primary_key=True)
    pension_id = db.Column(db.String(64), unique=True, index=True, nullable=False)
    nin        = db.Column(db.String(32), unique=True, nullable=False)
    pf_number  = db.Column(db.String(64), unique=True, nullable=False)
    email      = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)

    full_name   = db.Column(db.String(255), nullable=False)
    maiden_name = db.Column(db.String(255), nullable=True)
    gender      = db.Column(db.String(16), nullable=True)
    phone       = db.Column(db.String(32), nullable=True)
    residential_address = db.Column(db.Text, nullable=True)
    date_of_birth = db.Column(db.Date, nullable=True)

    # service record
    pension_scheme_type      = db.Column(db.String(32), nullable=False)
    date_of_first_appointment= db.Column(db.Date, nullable=False)
    date_of_retirement       = db.Column(db.Date, nullable=False)
    last_promotion_date      = db.Column(db.Date, nullable=True)
    current_level            = db.Column(db.String(32), nullable=True)
    salary                   = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    # cached benefit figures (recomputed on registration / recalculation)
    years_of_service = db.Column(db.Integer, nullable=True)
    gratuity_rate    = db.Column(db.Numeric(5, 4), nullable=True)
    pension_rate     = db.Column(db.Numeric(5, 4), nullable=True)
    total_gratuity   = db.Column(db.Numeric(16, 2), nullable=True)
    monthly_pension  = db.Column(db.Numeric(16, 2), nullable=True)

    # verification lifecycle
    status      = db.Column(db.String(32), nullable=False, default=STATUS_PENDING, index=True)
    next_due_at = db.Column(db.DateTime, nullable=True)
    has_seen_due_notification = db.Column(db.Boolean, nullable=False, default=False)
    photo       = db.Column(db.Text, nullable=True)  # storage key of the reference portrait

    last_login = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    files = db.relationship(
        "PensionerFile", back_populates="pensioner",
        cascade="all, delete-orphan",
    )
    logs = db.relationship(
        "VerificationLog", back_populates="pensioner",
        cascade="all, delete-orphan",
    )
    reviews = db.relationship(
        "VerificationReview", back_populates="pensioner",
        cascade="all, delete-orphan",
    )

    def set_password(self, raw: str):
        self.password_hash = generate_password_hash(raw)

    def check_password(self, raw: str) -> bool:
        return check_password_hash(self.password_hash, raw)

    def benefits_dict(self):
        return {
            "years_of_service": self.years_of_service,
            "gratuity_rate": float(self.gratuity_rate) if self.gratuity_rate is not None else None,
            "pension_rate": float(self.pension_rate) if self.pension_rate is not None else None,
            "total_gratuity": float(self.total_gratuity) if self.total_gratuity is not None else None,
            "monthly_pension": float(self.monthly_pension) if self.monthly_pension is not None else None,
        }

    def to_dict(self):
        return {
            "id": self.id,
            "pension_id": self.pension_id,
            "full_name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "gender": self.gender,
            "residential_address": self.residential_address,
            "date_of_birth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "pension_scheme_type": self.pension_scheme_type,
            "date_of_first_appointment": self.date_of_first_appointment.isoformat(),
            "date_of_retirement": self.date_of_retirement.isoformat(),
            "current_level": self.current_level,
            "salary": float(self.salary or 0),
            "status": self.status,
            "next_due_at": self.next_due_at.isoformat() if self.next_due_at else None,
            "has_seen_due_notification": self.has_seen_due_notification,
            "photo": self.photo,
            "last_login": self.last_login.isoformat() if self.last_login else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "benefits": self.benefits_dict(),
        }
