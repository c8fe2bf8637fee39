import os

import pytest

from pension_api.common.errors import APIError, PayloadTooLarge, UnsupportedMedia
from pension_api.services.storage import LocalObjectStorage, MAX_SIZE_BYTES, check_upload

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def test_upload_read_delete(tmp_path):
    st = LocalObjectStorage(str(tmp_path))
    key = st.build_key("pensioners/1/idCard", "my id card.png", "image/png")
    assert key.startswith("pensioners/1/idCard/my_id_card-")
    assert key.endswith(".png")

    out = st.upload(PNG, key, "image/png")
    assert out["size"] == len(PNG)
    assert out["url"] == f"/uploads/{key}"
    assert st.read(key) == PNG
    assert os.path.exists(st.absolute_path(key))

    assert st.delete(out["file_id"], key) is True
    assert not os.path.exists(st.absolute_path(key))
    assert st.delete(out["file_id"], key) is False


def test_build_key_falls_back_to_content_type_extension(tmp_path):
    st = LocalObjectStorage(str(tmp_path))
    key = st.build_key("caps", "", "image/jpeg")
    assert key.startswith("caps/file-")
    assert key.endswith(".jpg")


def test_rejects_keys_outside_root(tmp_path):
    st = LocalObjectStorage(str(tmp_path / "root"))
    with pytest.raises(APIError):
        st.upload(PNG, "../escape.png", "image/png")


def test_check_upload_type_and_size():
    with pytest.raises(UnsupportedMedia):
        check_upload(b"hello", "text/plain")
    with pytest.raises(PayloadTooLarge):
        check_upload(b"\x00" * (MAX_SIZE_BYTES + 1), "application/pdf")
    check_upload(b"%PDF-1.4", "application/pdf")
