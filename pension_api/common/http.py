# pension_api/common/http.py
from flask import jsonify


def ok(data=None, status=200, **meta):
    """Success envelope; keyword arguments land under "meta" (paging, counts)."""
    body = {"success": True, "data": data}
    if meta:
        body["meta"] = meta
    return jsonify(body), status


def fail(message="Bad Request", status=400, code=None, detail=None, errors=None):
    err = {"message": message, "code": code, "detail": detail, "errors": errors}
    return jsonify({"success": False, "error": {k: v for k, v in err.items() if v}}), status
