from __future__ import annotations

import pytest

from credentials import CredentialStore, hash_password
from documents import DocumentRepository
from server import create_app


@pytest.fixture
def data_dir(tmp_path):
    d = tmp_path / "data"
    d.mkdir()
    return d


@pytest.fixture
def public_dir(tmp_path):
    d = tmp_path / "public"
    d.mkdir()
    (d / "1.jpg").write_bytes(b"\xff\xd8\xff")
    (d / "1.pdf").write_bytes(b"%PDF-1.4")
    return d


@pytest.fixture
def repository(data_dir):
    return DocumentRepository(data_dir)


@pytest.fixture
def credentials_file(tmp_path):
    path = tmp_path / "users.yml"
    path.write_text(f"admin: {hash_password('secret')}\n", encoding="utf-8")
    return path


@pytest.fixture
def store(credentials_file):
    return CredentialStore(credentials_file)


@pytest.fixture
def app(data_dir, public_dir, credentials_file):
    return create_app({
        "data_dir": str(data_dir),
        "public_dir": str(public_dir),
        "credentials_file": str(credentials_file),
        "secret_key": "test-secret",
        "testing": True,
    })


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(client):
    with client.session_transaction() as sess:
        sess["signed_in_as"] = "admin"
    return client


@pytest.fixture
def session_value(client):

    def read(key):
        with client.session_transaction() as sess:
            return sess.get(key)
    return read
