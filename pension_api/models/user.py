from datetime import datetime
from pension_api.extensions import db
from werkzeug.security import generate_password_hash, check_password_hash

ROLE_ADMIN = "admin"
ROLE_OFFICER = "officer"
STAFF_ROLES = (ROLE_ADMIN, ROLE_OFFICER)


class StaffUser(db.Model):
    """Back-office account: administrators and verification officers."""
    __tablename__ = "staff_users"

    id           = db.Column(db.Integer, primary_key=True)
    email        = db.Column(db.String(255), unique=True, index=True, nullable=False)
    password_hash= db.Column(db.String(255), nullable=False)
    full_name    = db.Column(db.String(255), nullable=False)
    role         = db.Column(db.String(20), nullable=False, default=ROLE_OFFICER)
    status       = db.Column(db.String(20), default="active")
    last_login   = db.Column(db.DateTime, nullable=True)
    created_at   = db.Column(db.DateTime, default=datetime.utcnow)

    # --- helpers ---
    def set_password(self, raw: str):
        self.password_hash = generate_password_hash(raw)

    def check_password(self, raw: str) -> bool:
        return check_password_hash(self.password_hash, raw)

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role,
            "status": self.status,
        }
