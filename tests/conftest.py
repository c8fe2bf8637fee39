import os

import pytest

from pension_api import create_app
from pension_api.extensions import db


def _mk_app(tmp_path):
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    app.config["TESTING"] = True
    app.config["UPLOAD_ROOT"] = str(tmp_path / "uploads")
    return app


@pytest.fixture
def app(tmp_path):
    app = _mk_app(tmp_path)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()
