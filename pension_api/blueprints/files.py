from flask import Blueprint, request, current_app

from pension_api.extensions import db
from pension_api.common.http import ok, fail
from pension_api.common.auth import (
    requires_roles, current_identity, PensionerIdentity, AdminIdentity, ROLE_PENSIONER,
)
from pension_api.models.pensioner import Pensioner
from pension_api.models.pensioner_file import PensionerFile, FILE_TYPES
from pension_api.services.storage import get_storage

bp = Blueprint("files", __name__, url_prefix="/api/v1/files")

PASSPORT_PHOTO = "passportPhoto"


@bp.post("/upload")
@requires_roles(ROLE_PENSIONER)
def upload():
    if "file" not in request.files:
        return fail("No file provided")
    f = request.files["file"]
    if not f.filename:
        return fail("Empty filename")

    file_type = request.form.get("file_type") or ""
    if file_type not in FILE_TYPES:
        return fail("Invalid file_type", status=422, errors={"allowed": list(FILE_TYPES)})

    p = db.session.get(Pensioner, current_identity().id)
    if not p:
        return fail("Pensioner not found", status=404)

    storage = get_storage()
    content_type = f.mimetype or "application/octet-stream"
    key = storage.build_key(f"pensioners/{p.id}/{file_type}", f.filename, content_type)
    stored = storage.upload(f.read(), key, content_type)

    try:
        rec = PensionerFile(
            pensioner_id=p.id,
            file_type=file_type,
            file_id=stored["file_id"],
            storage_key=stored["key"],
            file_url=stored["url"],
            original_name=f.filename,
            content_type=content_type,
            size_bytes=stored["size"],
        )
        db.session.add(rec)
        if file_type == PASSPORT_PHOTO:
            p.photo = stored["key"]
        db.session.commit()
    except Exception:
        db.session.rollback()
        # keep storage and the table in step
        storage.delete(stored["file_id"], stored["key"])
        raise

    return ok(rec.to_dict(), status=201)


@bp.get("/")
@requires_roles()
def list_files():
    ident = current_identity()
    if isinstance(ident, PensionerIdentity):
        pid = ident.id
    else:
        pid = request.args.get("pensioner_id", type=int)
        if not pid:
            return fail("pensioner_id is required", status=422)

    rows = (PensionerFile.query.filter_by(pensioner_id=pid)
            .order_by(PensionerFile.created_at.desc()).all())
    return ok([r.to_dict() for r in rows])


@bp.delete("/<int:fid>")
@requires_roles()
def delete_file(fid):
    rec = db.session.get(PensionerFile, fid)
    if not rec:
        return fail("File not found", status=404)

    ident = current_identity()
    is_owner = isinstance(ident, PensionerIdentity) and ident.id == rec.pensioner_id
    if not (is_owner or isinstance(ident, AdminIdentity)):
        return fail("Forbidden", status=403)

    file_id, key = rec.file_id, rec.storage_key
    p = db.session.get(Pensioner, rec.pensioner_id)
    if p is not None and p.photo == key:
        p.photo = None
    db.session.delete(rec)
    db.session.commit()
    # the object goes only once the row is gone
    get_storage().delete(file_id, key)
    current_app.logger.info("file %s removed by %s %s", fid, ident.role, ident.id)
    return ok({"id": fid, "deleted": True})
