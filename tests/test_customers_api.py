"""End-to-end tests for the customers REST API (sqlite + local storage)."""
import io

import pytest

from app.crm import create_app
from app.crm.models import Base

CUSTOMERS = "/api/v1/customers"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("JWT_SECRET_KEY", "test-jwt-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("STORAGE_ROOT", str(tmp_path / "storage"))
    monkeypatch.setenv("S3_BUCKET_CUSTOMER", "customer-bucket")
    for k in ("S3_ENDPOINT", "S3_REGION", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _register(client, **overrides):
    body = {"name": "Luna", "email": "luna@dev.com", "password": "password", "age": 23, "gender": "MALE"}
    body.update(overrides)
    return client.post(CUSTOMERS, json=body)


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def token(client):
    r = _register(client)
    assert r.status_code == 200
    return r.headers["Authorization"]


def _luna_id(client, token):
    r = client.get(f"{CUSTOMERS}/email/luna@dev.com", headers=_auth(token))
    return r.json["id"]


def test_register_returns_token_header_and_empty_body(client):
    r = _register(client)
    assert r.status_code == 200
    assert r.data == b""
    assert r.headers["Authorization"]


def test_register_duplicate_email(client, token):
    r = _register(client, name="Other")
    assert r.status_code == 409
    assert r.json["error"] == "Customer with email [luna@dev.com] already exists"

    r = client.get(CUSTOMERS, headers=_auth(token))
    assert len(r.json) == 1


def test_register_validation_errors(client):
    r = client.post(CUSTOMERS, json={"name": "", "email": "nope", "age": "old", "gender": "OTHER"})
    assert r.status_code == 400
    msg = r.json["error"]
    assert "Name is required." in msg
    assert "Email is invalid." in msg
    assert "Password is required." in msg
    assert "Age must be an integer." in msg
    assert "Invalid gender" in msg


def test_register_requires_json_body(client):
    r = client.post(CUSTOMERS, data="not json", content_type="text/plain")
    assert r.status_code == 400


def test_endpoints_require_token(client, token):
    assert client.get(CUSTOMERS).status_code == 401
    assert client.get(f"{CUSTOMERS}/1").status_code == 401
    assert client.put(f"{CUSTOMERS}/1", json={"age": 5}).status_code == 401
    assert client.delete(f"{CUSTOMERS}/1").status_code == 401
    assert client.get(CUSTOMERS, headers=_auth("garbage")).status_code == 401


def test_get_customer_dto(client, token):
    r = client.get(f"{CUSTOMERS}/email/luna@dev.com", headers=_auth(token))
    assert r.status_code == 200
    customer_id = r.json["id"]
    assert r.json == {
        "id": customer_id,
        "name": "Luna",
        "email": "luna@dev.com",
        "gender": "MALE",
        "age": 23,
        "roles": ["ROLE_USER"],
        "username": "luna@dev.com",
        "profileImageId": None,
    }

    r = client.get(f"{CUSTOMERS}/{customer_id}", headers=_auth(token))
    assert r.json["email"] == "luna@dev.com"
    assert "password" not in r.json and "password_hash" not in r.json


def test_get_missing_customer(client, token):
    r = client.get(f"{CUSTOMERS}/999", headers=_auth(token))
    assert r.status_code == 404
    assert r.json["error"] == "Customer with id [999] not found"


def test_update_single_field(client, token):
    customer_id = _luna_id(client, token)
    r = client.put(f"{CUSTOMERS}/{customer_id}", json={"age": 24}, headers=_auth(token))
    assert r.status_code == 200

    r = client.get(f"{CUSTOMERS}/{customer_id}", headers=_auth(token))
    assert (r.json["name"], r.json["email"], r.json["age"], r.json["gender"]) == ("Luna", "luna@dev.com", 24, "MALE")


def test_update_no_changes(client, token):
    customer_id = _luna_id(client, token)
    r = client.put(
        f"{CUSTOMERS}/{customer_id}",
        json={"name": "Luna", "email": "luna@dev.com", "age": 23, "gender": "MALE"},
        headers=_auth(token),
    )
    assert r.status_code == 400
    assert r.json["error"] == "No data changes found"


def test_update_email_conflict(client, token):
    _register(client, name="Sol", email="sol@dev.com")
    customer_id = _luna_id(client, token)
    r = client.put(f"{CUSTOMERS}/{customer_id}", json={"email": "sol@dev.com"}, headers=_auth(token))
    assert r.status_code == 409

    r = client.get(f"{CUSTOMERS}/{customer_id}", headers=_auth(token))
    assert r.json["email"] == "luna@dev.com"


def test_update_password_then_login(client, token):
    customer_id = _luna_id(client, token)
    r = client.put(f"{CUSTOMERS}/{customer_id}", json={"password": "n3w-pass"}, headers=_auth(token))
    assert r.status_code == 200

    assert client.post("/api/v1/auth/login", json={"username": "luna@dev.com", "password": "password"}).status_code == 401
    r = client.post("/api/v1/auth/login", json={"username": "luna@dev.com", "password": "n3w-pass"})
    assert r.status_code == 200


def test_login(client, token):
    r = client.post("/api/v1/auth/login", json={"username": "luna@dev.com", "password": "password"})
    assert r.status_code == 200
    assert r.headers["Authorization"] == r.json["token"]
    assert r.json["customerDTO"]["email"] == "luna@dev.com"

    r = client.get(CUSTOMERS, headers=_auth(r.json["token"]))
    assert r.status_code == 200


def test_login_bad_credentials(client, token):
    r = client.post("/api/v1/auth/login", json={"username": "luna@dev.com", "password": "wrong"})
    assert r.status_code == 401
    r = client.post("/api/v1/auth/login", json={"username": "ghost@dev.com", "password": "password"})
    assert r.status_code == 401


@pytest.mark.parametrize("body", [["luna@dev.com", "password"], "luna@dev.com", 42, None])
def test_login_non_object_body(client, token, body):
    r = client.post("/api/v1/auth/login", json=body)
    assert r.status_code == 401
    assert r.json["error"] == "Bad credentials"


def test_delete_customer(client, token):
    customer_id = _luna_id(client, token)
    r = client.delete(f"{CUSTOMERS}/{customer_id}", headers=_auth(token))
    assert r.status_code == 200

    assert client.get(f"{CUSTOMERS}/{customer_id}", headers=_auth(token)).status_code == 404
    assert client.delete(f"{CUSTOMERS}/{customer_id}", headers=_auth(token)).status_code == 404


def test_profile_image_upload_and_fetch(app, client, token, tmp_path):
    customer_id = _luna_id(client, token)

    r = client.get(f"{CUSTOMERS}/{customer_id}/profile-image", headers=_auth(token))
    assert r.status_code == 404
    assert r.json["error"] == f"Profile image with id [{customer_id}] not found"

    r = client.post(
        f"{CUSTOMERS}/{customer_id}/profile-image",
        data={"file": (io.BytesIO(b"helloWorld"), "me.jpg", "image/jpeg")},
        content_type="multipart/form-data",
        headers=_auth(token),
    )
    assert r.status_code == 200

    image_id = client.get(f"{CUSTOMERS}/{customer_id}", headers=_auth(token)).json["profileImageId"]
    assert image_id
    blob = tmp_path / "storage" / "customer-bucket" / "profile-images" / str(customer_id) / image_id
    assert blob.read_bytes() == b"helloWorld"

    r = client.get(f"{CUSTOMERS}/{customer_id}/profile-image", headers=_auth(token))
    assert r.status_code == 200
    assert r.data == b"helloWorld"
    assert r.mimetype == "image/jpeg"


def test_profile_image_upload_missing_customer(client, token, tmp_path):
    r = client.post(
        f"{CUSTOMERS}/999/profile-image",
        data={"file": (io.BytesIO(b"x"), "me.jpg")},
        content_type="multipart/form-data",
        headers=_auth(token),
    )
    assert r.status_code == 404
    assert not (tmp_path / "storage" / "customer-bucket" / "profile-images" / "999").exists()


def test_profile_image_upload_requires_file(client, token):
    customer_id = _luna_id(client, token)
    r = client.post(f"{CUSTOMERS}/{customer_id}/profile-image", data={}, headers=_auth(token))
    assert r.status_code == 400
    assert r.json["error"] == "File is required."


def test_profile_image_storage_failure_hides_cause(app, client, token):
    from app.crm.storage import Storage, StorageError

    class BrokenStorage(Storage):
        def put_bytes(self, bucket, key, data, *, content_type=None):
            raise StorageError("secret bucket details")

    app.extensions["storage"] = BrokenStorage()
    customer_id = _luna_id(client, token)
    r = client.post(
        f"{CUSTOMERS}/{customer_id}/profile-image",
        data={"file": (io.BytesIO(b"x"), "me.jpg")},
        content_type="multipart/form-data",
        headers=_auth(token),
    )
    assert r.status_code == 500
    assert "secret" not in r.get_data(as_text=True)
    assert client.get(f"{CUSTOMERS}/{customer_id}", headers=_auth(token)).json["profileImageId"] is None
