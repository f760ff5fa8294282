"""
HTTP-level checks for the paths that never reach MongoDB: authentication,
request validation, body limits and file uploads.
"""

import json
from datetime import timedelta

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from devnet.core.config import settings
from devnet.core.security import create_access_token
from devnet.domains.uploads.storage import UploadStorage, get_storage
from devnet.main import app

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token(ObjectId())}"}


@pytest.fixture
def storage(tmp_path):
    store = UploadStorage(tmp_path, max_bytes=1024)
    app.dependency_overrides[get_storage] = lambda: store
    yield store
    app.dependency_overrides.pop(get_storage, None)


def test_health(client):
    assert client.get("/").json() == {"status": "ok"}


# ------------------------------
# authentication
# ------------------------------
def test_missing_token(client):
    resp = client.get("/api/user/profile")
    assert resp.status_code == 401
    assert resp.json() == {"detail": "Access denied. No token provided."}


@pytest.mark.parametrize("header", ["Token abc", "Bearer ", "abc"])
def test_malformed_authorization_header(client, header):
    resp = client.get("/api/user/following", headers={"Authorization": header})
    assert resp.status_code == 401
    assert resp.json()["detail"] == 'Invalid token format. Use "Bearer [token]"'


def test_expired_token(client):
    token = create_access_token(ObjectId(), expires_delta=timedelta(minutes=-5))
    resp = client.get("/api/cv-profile/all", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token expired. Please login again."


def test_forged_token(client):
    resp = client.get("/api/contents/saved", headers={"Authorization": "Bearer not.a.jwt"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token."


def test_token_subject_must_be_an_object_id(client):
    token = create_access_token("someone")
    resp = client.get("/api/user/following", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


# ------------------------------
# validation and limits
# ------------------------------
def test_register_validation(client):
    resp = client.post("/api/user/register", json={"username": " ", "email": "nope", "password": "123"})

    assert resp.status_code == 400
    body = resp.json()
    assert body["detail"] == "Validation failed"
    assert body["errors"]


def test_invalid_object_id(client, auth_headers):
    resp = client.get("/api/user/followers/xyz", headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid user ID format"


def test_blank_search(client):
    assert client.get("/api/search", params={"q": "  "}).status_code == 400


def test_unknown_content_type(client):
    assert client.get("/api/contents/type/poem").status_code == 400


def test_oversized_json_body(client, auth_headers):
    body = json.dumps({"title": "x" * (settings.MAX_JSON_BODY_BYTES + 1)})
    resp = client.post(
        "/api/contents/bulk",
        content=body,
        headers={**auth_headers, "Content-Type": "application/json"},
    )
    assert resp.status_code == 413
    assert resp.json() == {"detail": "Request body too large"}


def test_streamed_json_body_over_limit(client, auth_headers):
    chunk = b"x" * 1024

    def body():
        yield b'{"title": "'
        for _ in range(settings.MAX_JSON_BODY_BYTES // len(chunk) + 1):
            yield chunk
        yield b'"}'

    resp = client.post(
        "/api/contents/bulk",
        content=body(),
        headers={**auth_headers, "Content-Type": "application/json"},
    )
    assert resp.status_code == 413
    assert resp.json() == {"detail": "Request body too large"}


def test_form_payload_must_be_json(client, auth_headers):
    resp = client.post("/api/contents/", data={"payload": "{not json"}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid JSON format in 'payload' form field."


# ------------------------------
# uploads
# ------------------------------
def test_upload_requires_token(client, storage):
    resp = client.post("/api/uploads", files={"image": ("a.png", PNG, "image/png")})
    assert resp.status_code == 401


def test_upload_image(client, storage, auth_headers):
    resp = client.post("/api/uploads", files={"image": ("Photo.PNG", PNG, "image/png")}, headers=auth_headers)

    assert resp.status_code == 200
    url = resp.json()["imageUrl"]
    assert url.startswith("/uploads/image-")
    assert url.endswith(".png")
    assert storage.resolve_url(url).read_bytes() == PNG

    name = url.rsplit("/", 1)[1]
    assert client.get(f"/api/check-file/{name}").json() == {"exists": True, "path": url}


def test_upload_without_file(client, storage, auth_headers):
    resp = client.post("/api/uploads", data={"other": "1"}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "No file uploaded"


def test_upload_rejects_non_images(client, storage, auth_headers):
    resp = client.post("/api/uploads", files={"image": ("a.txt", b"hello", "text/plain")}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Only image files are allowed!"
    assert list(storage.root.iterdir()) == []


def test_upload_too_large(client, storage, auth_headers):
    resp = client.post(
        "/api/uploads",
        files={"image": ("big.png", b"x" * 2048, "image/png")},
        headers=auth_headers,
    )
    assert resp.status_code == 413
    assert list(storage.root.iterdir()) == []


def test_upload_multiple(client, storage, auth_headers):
    files = [("images", (f"{i}.jpg", PNG, "image/jpeg")) for i in range(2)]

    resp = client.post("/api/uploads/multiple", files=files, headers=auth_headers)

    assert resp.status_code == 200
    urls = resp.json()["imageUrls"]
    assert len(urls) == 2
    assert len(set(urls)) == 2


def test_upload_multiple_is_all_or_nothing(client, storage, auth_headers):
    files = [
        ("images", ("good.jpg", PNG, "image/jpeg")),
        ("images", ("notes.txt", b"hello", "text/plain")),
    ]

    resp = client.post("/api/uploads/multiple", files=files, headers=auth_headers)

    assert resp.status_code == 400
    assert [p for p in storage.root.rglob("*") if p.is_file()] == []


def test_upload_multiple_limit(client, storage, auth_headers):
    files = [("images", (f"{i}.jpg", PNG, "image/jpeg")) for i in range(settings.MAX_UPLOAD_FILES + 1)]
    resp = client.post("/api/uploads/multiple", files=files, headers=auth_headers)
    assert resp.status_code == 400


def test_check_file(client, storage):
    assert client.get("/api/check-file/missing.png").json() == {
        "exists": False,
        "path": "/uploads/missing.png",
    }
    assert client.get("/api/check-file/bad..name").status_code == 400
