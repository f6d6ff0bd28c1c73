import os
import re

import pytest

from app.modules.media.service import build_file_key, delete_quietly

from conftest import API

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def test_file_key_layout():
    key = build_file_key("image/png", folder="Blog-data")
    assert re.fullmatch(r"Blog-data/\d{13}-[a-z0-9]{6}\.png", key)
    assert build_file_key("image/webp").endswith(".webp")


async def test_admin_uploads_image_to_mock_storage(client, storage, admin_headers):
    response = await client.post(
        f"{API}/upload",
        files={"file": ("cover.png", PNG, "image/png")},
        headers=admin_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["url"] == storage.public_url(body["filename"])
    assert os.path.exists(storage.local_dir / body["filename"])

    response = await client.post(f"{API}/upload/delete", json={"url": body["url"]}, headers=admin_headers)
    assert response.json() == {"message": "File deleted successfully", "deleted": True}
    assert not os.path.exists(storage.local_dir / body["filename"])


async def test_upload_rejects_non_images(client, admin_headers):
    response = await client.post(
        f"{API}/upload",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid file type")


async def test_upload_rejects_empty_file(client, admin_headers):
    response = await client.post(
        f"{API}/upload",
        files={"file": ("empty.png", b"", "image/png")},
        headers=admin_headers,
    )
    assert response.status_code == 400


async def test_upload_requires_admin(client, user_headers):
    response = await client.post(
        f"{API}/upload",
        files={"file": ("cover.png", PNG, "image/png")},
        headers=user_headers,
    )
    assert response.status_code == 403


async def test_delete_of_foreign_url_is_only_attempted(client, admin_headers):
    response = await client.post(
        f"{API}/upload/delete", json={"url": "https://elsewhere.example.com/a.png"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json() == {"message": "File deletion attempted", "deleted": False}


def test_delete_quietly_swallows_storage_errors():
    class BrokenStorage:
        def delete_file(self, url):
            raise RuntimeError("bucket unavailable")

    assert delete_quietly(BrokenStorage(), "https://cdn/x.png") is False
    assert delete_quietly(BrokenStorage(), None) is False


async def test_upload_extension_follows_content_type(client, admin_headers):
    response = await client.post(
        f"{API}/upload",
        files={"file": ("page.html", PNG, "image/png")},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["filename"].endswith(".png")


async def test_delete_cannot_escape_upload_dir(client, storage, admin_headers):
    victim = storage.local_dir.parent / f"{storage.local_dir.name}-victim.txt"
    victim.write_text("keep me")
    try:
        for url in (
            f"{storage.base_url}/../{victim.name}",
            f"{storage.base_url}/folder/../../{victim.name}",
        ):
            response = await client.post(f"{API}/upload/delete", json={"url": url}, headers=admin_headers)
            assert response.status_code == 200
            assert response.json()["deleted"] is False
        assert victim.exists()
    finally:
        victim.unlink()


def test_local_path_stays_inside_upload_dir(storage):
    assert storage.local_path("Blog-data/a.png") == (storage.local_dir.resolve() / "Blog-data/a.png")
    with pytest.raises(ValueError):
        storage.local_path("../outside.png")
