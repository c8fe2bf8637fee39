# pension_api/common/auth.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from functools import wraps
from typing import Optional, Union

from flask import g
from flask_jwt_extended import (
    create_access_token, create_refresh_token, get_jwt, get_jwt_identity, jwt_required,
)

from pension_api.common.errors import Forbidden, InvalidToken
from pension_api.models.user import ROLE_ADMIN, ROLE_OFFICER

ROLE_PENSIONER = "pensioner"


# ---------- identities ----------

@dataclass(frozen=True)
class AdminIdentity:
    id: int
    email: str
    role: str = ROLE_ADMIN


@dataclass(frozen=True)
class OfficerIdentity:
    id: int
    email: str
    role: str = ROLE_OFFICER


@dataclass(frozen=True)
class PensionerIdentity:
    id: int
    pension_id: str
    role: str = ROLE_PENSIONER


Identity = Union[AdminIdentity, OfficerIdentity, PensionerIdentity]


def verify_token(identity, claims: dict) -> Identity:
    """
    Turn a decoded JWT (subject + claims) into a typed identity.
    Raises InvalidToken when the subject or the role-specific claims are missing.
    """
    try:
        uid = int(identity)
    except (TypeError, ValueError):
        raise InvalidToken("Invalid token subject")

    role = (claims or {}).get("role")
    if role == ROLE_ADMIN:
        return AdminIdentity(id=uid, email=claims.get("email") or "")
    if role == ROLE_OFFICER:
        return OfficerIdentity(id=uid, email=claims.get("email") or "")
    if role == ROLE_PENSIONER:
        pension_id = claims.get("pension_id")
        if not pension_id:
            raise InvalidToken("Pensioner token without pension_id")
        return PensionerIdentity(id=uid, pension_id=pension_id)
    raise InvalidToken("Unknown role in token")


def current_identity() -> Optional[Identity]:
    return getattr(g, "identity", None)


# ---------- issuing ----------

def issue_tokens(identity: Identity, expires: timedelta = timedelta(hours=24)) -> dict:
    claims = {"role": identity.role}
    if isinstance(identity, PensionerIdentity):
        claims["pension_id"] = identity.pension_id
    else:
        claims["email"] = identity.email
    access = create_access_token(identity=str(identity.id), additional_claims=claims, expires_delta=expires)
    refresh = create_refresh_token(identity=str(identity.id), additional_claims=claims)
    return {"access": access, "refresh": refresh}


# ---------- decorators ----------

def requires_roles(*roles: str, refresh: bool = False):
    """
    Require a valid bearer token whose role is one of `roles`.
    - No roles given: any authenticated identity passes.
    - 'admin' always passes checks that admit officers.
    The resolved identity is placed on flask.g.identity.
    """
    def outer(fn):
        @wraps(fn)
        @jwt_required(refresh=refresh)
        def inner(*args, **kwargs):
            ident = verify_token(get_jwt_identity(), get_jwt())
            g.identity = ident
            if roles and ident.role not in roles:
                if not (ident.role == ROLE_ADMIN and ROLE_OFFICER in roles):
                    raise Forbidden("Forbidden")
            return fn(*args, **kwargs)
        return inner
    return outer
