import os
import uuid
import logging
from flask import current_app
from werkzeug.utils import secure_filename

from pension_api.common.errors import APIError, PayloadTooLarge, UnsupportedMedia

logger = logging.getLogger(__name__)

MAX_SIZE_BYTES = 5 * 1024 * 1024
ALLOWED_TYPES = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "application/pdf": ".pdf",
}


def check_upload(data: bytes, content_type: str):
    if content_type not in ALLOWED_TYPES:
        raise UnsupportedMedia("Invalid file type", payload={"allowed": sorted(ALLOWED_TYPES)})
    if len(data) > MAX_SIZE_BYTES:
        raise PayloadTooLarge("File too large (max 5MB)")


class LocalObjectStorage:
    """
    Object store on the local filesystem, keyed like a bucket.
    upload() hands back a file id that delete() needs together with the key.
    """

    def __init__(self, root: str, public_base_url: str = "/uploads"):
        self.root = root
        self.public_base_url = public_base_url.rstrip("/")

    def _path(self, key: str) -> str:
        path = os.path.abspath(os.path.join(self.root, key))
        if not path.startswith(os.path.abspath(self.root) + os.sep):
            raise APIError("Invalid storage key", code="STORAGE_KEY")
        return path

    def build_key(self, prefix: str, filename: str, content_type: str) -> str:
        name = secure_filename(filename or "")
        stem, ext = os.path.splitext(name)
        if not ext:
            ext = ALLOWED_TYPES.get(content_type, "")
        return f"{prefix}/{stem or 'file'}-{uuid.uuid4().hex}{ext}"

    def upload(self, data: bytes, key: str, content_type: str) -> dict:
        check_upload(data, content_type)
        path = self._path(key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as fh:
            fh.write(data)
        file_id = uuid.uuid4().hex
        logger.info("stored %s (%d bytes, %s)", key, len(data), content_type)
        return {
            "file_id": file_id,
            "key": key,
            "url": f"{self.public_base_url}/{key}",
            "size": len(data),
            "content_type": content_type,
        }

    def read(self, key: str) -> bytes:
        with open(self._path(key), "rb") as fh:
            return fh.read()

    def absolute_path(self, key: str) -> str:
        return self._path(key)

    def delete(self, file_id: str, key: str) -> bool:
        path = self._path(key)
        if not os.path.exists(path):
            logger.warning("delete of missing object %s (file_id=%s)", key, file_id)
            return False
        os.remove(path)
        return True


def get_storage() -> LocalObjectStorage:
    ext = current_app.extensions.get("object_storage")
    if ext is None:
        ext = LocalObjectStorage(current_app.config["UPLOAD_ROOT"])
        current_app.extensions["object_storage"] = ext
    return ext
