from datetime import datetime
from flask import Blueprint, request
from flask_jwt_extended import create_access_token, get_jwt

from pension_api.extensions import db
from pension_api.common.http import ok, fail
from pension_api.common.auth import (
    AdminIdentity, OfficerIdentity, PensionerIdentity, ROLE_ADMIN, ROLE_OFFICER,
    current_identity, issue_tokens, requires_roles,
)
from pension_api.common.rate_limit import rate_limited
from pension_api.models.user import StaffUser
from pension_api.models.pensioner import Pensioner

bp = Blueprint("auth_v1", __name__, url_prefix="/api/v1/auth")


def _json():
    data = request.get_json(silent=True, force=True)
    return data if isinstance(data, dict) else {}


def _staff_identity(u: StaffUser):
    if u.role == ROLE_ADMIN:
        return AdminIdentity(id=u.id, email=u.email)
    return OfficerIdentity(id=u.id, email=u.email)


@bp.post("/staff/login")
@rate_limited("login")
def staff_login():
    data = _json()
    email = str(data.get("email") or "").strip().lower()
    password = str(data.get("password") or "")
    if not email or not password:
        return fail("Email and password are required", status=400)

    u = StaffUser.query.filter_by(email=email).first()
    if not u or not u.check_password(password):
        return fail("Invalid credentials", status=401)
    if not u.is_active:
        return fail("Account disabled", status=403)

    u.last_login = datetime.utcnow()
    db.session.commit()

    tokens = issue_tokens(_staff_identity(u))
    return ok({**tokens, "user": u.to_dict()})


@bp.post("/pensioner/login")
@rate_limited("login")
def pensioner_login():
    data = _json()
    pension_id = str(data.get("pension_id") or "").strip()
    password = str(data.get("password") or "")
    if not pension_id or not password:
        return fail("Pension ID and password are required", status=400)

    p = Pensioner.query.filter_by(pension_id=pension_id).first()
    if not p or not p.check_password(password):
        return fail("Invalid credentials", status=401)

    p.last_login = datetime.utcnow()
    db.session.commit()

    tokens = issue_tokens(PensionerIdentity(id=p.id, pension_id=p.pension_id))
    return ok({**tokens, "user": {"id": p.id, "pension_id": p.pension_id,
                                  "full_name": p.full_name, "role": "pensioner"}})


@bp.post("/refresh")
@requires_roles(refresh=True)
def refresh():
    ident = current_identity()
    claims = get_jwt()
    keep = {k: claims[k] for k in ("role", "email", "pension_id") if k in claims}
    access = create_access_token(identity=str(ident.id), additional_claims=keep)
    return ok({"access": access})


@bp.get("/me")
@requires_roles()
def me():
    ident = current_identity()
    if isinstance(ident, PensionerIdentity):
        p = db.session.get(Pensioner, ident.id)
        if not p:
            return fail("User not found", status=404)
        return ok({"id": p.id, "role": ident.role, "pension_id": p.pension_id, "full_name": p.full_name})

    u = db.session.get(StaffUser, ident.id)
    if not u:
        return fail("User not found", status=404)
    return ok(u.to_dict())


@bp.post("/change-password")
@requires_roles(ROLE_OFFICER)
def change_password():
    data = _json()
    current = str(data.get("current_password") or "")
    new = str(data.get("new_password") or "")
    confirm = str(data.get("confirm_password") or "")
    if not current or not new or not confirm:
        return fail("current_password, new_password and confirm_password are required", status=400)
    if len(new) < 8:
        return fail("New password must be at least 8 characters", status=422)
    if new != confirm:
        return fail("New passwords do not match", status=400)

    u = db.session.get(StaffUser, current_identity().id)
    if not u:
        return fail("User not found", status=404)
    if not u.check_password(current):
        return fail("Current password is incorrect", status=401)

    u.set_password(new)
    db.session.commit()
    return ok({"message": "Password changed successfully"})
