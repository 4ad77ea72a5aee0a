from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.user import UserRole
from tests.helpers import auth_headers, create_product, create_user


def _image_bytes(fmt: str) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (4, 4), color=(200, 30, 30)).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture()
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(settings, "UPLOAD_DIR", "uploads")
    return tmp_path / "uploads"


def _upload(client: TestClient, admin, product, filename: str, data: bytes, content_type: str):
    return client.post(
        f"/api/v1/product/{product.id}/image",
        headers=auth_headers(admin),
        files={"file": (filename, data, content_type)},
    )


def test_upload_png_sets_image_url(client: TestClient, db_session: Session, upload_dir):
    admin = create_user(db_session, "images@example.com", role=UserRole.ADMIN)
    shirt = create_product(db_session, "Shirt")

    response = _upload(client, admin, shirt, "shirt.png", _image_bytes("PNG"), "image/png")

    assert response.status_code == 200
    image_url = response.json()["data"]["product"]["image_url"]
    assert image_url.startswith("/uploads/")
    assert image_url.endswith(".png")
    assert len(list(upload_dir.iterdir())) == 1


def test_replacing_image_removes_previous_file(client: TestClient, db_session: Session, upload_dir):
    admin = create_user(db_session, "replace@example.com", role=UserRole.ADMIN)
    shirt = create_product(db_session, "Shirt")

    _upload(client, admin, shirt, "first.png", _image_bytes("PNG"), "image/png")
    second = _upload(client, admin, shirt, "second.jpg", _image_bytes("JPEG"), "image/jpeg")

    assert second.status_code == 200
    files = list(upload_dir.iterdir())
    assert [path.suffix for path in files] == [".jpg"]


@pytest.mark.parametrize(
    "filename, content_type, fmt, message",
    [
        ("shell.php.png", "image/png", "PNG", "Invalid file name. Files with double extensions are not allowed"),
        ("noext", "image/png", "PNG", "File must have an extension"),
        ("shirt.png", "text/plain", "PNG", "Invalid file type. Only image files (JPEG, PNG, GIF, WebP) are allowed"),
        ("shirt.png", "image/jpeg", "PNG", "Invalid image MIME type"),
        ("shirt.jpg", "image/png", "PNG", "File extension does not match content"),
    ],
)
def test_rejected_uploads(client: TestClient, db_session: Session, upload_dir, filename, content_type, fmt, message):
    admin = create_user(db_session, "rejects@example.com", role=UserRole.ADMIN)
    shirt = create_product(db_session, "Shirt")

    response = _upload(client, admin, shirt, filename, _image_bytes(fmt), content_type)

    assert response.status_code == 400
    assert response.json()["message"] == message
    assert not upload_dir.exists()


def test_non_image_content_is_rejected(client: TestClient, db_session: Session, upload_dir):
    admin = create_user(db_session, "fake@example.com", role=UserRole.ADMIN)
    shirt = create_product(db_session, "Shirt")

    response = _upload(client, admin, shirt, "shirt.png", b"<?php echo 1; ?>", "image/png")

    assert response.status_code == 400
    assert response.json()["message"].startswith("File content does not match allowed image formats")


def test_oversized_upload_is_rejected(client: TestClient, db_session: Session, upload_dir, monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE", 10)
    admin = create_user(db_session, "big@example.com", role=UserRole.ADMIN)
    shirt = create_product(db_session, "Shirt")

    response = _upload(client, admin, shirt, "shirt.png", _image_bytes("PNG"), "image/png")

    assert response.status_code == 400
    assert response.json()["message"].startswith("File size exceeds maximum limit")
