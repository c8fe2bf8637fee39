from flask import Blueprint, current_app
from sqlalchemy import text

from pension_api.extensions import db
from pension_api.common.http import ok, fail

bp = Blueprint("health", __name__, url_prefix="/api")


@bp.get("/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
    except Exception as e:
        current_app.logger.warning("health check: database unreachable: %s", e)
        return fail("Database unavailable", status=503, code="DB_UNAVAILABLE")
    return ok({"status": "ok"})
