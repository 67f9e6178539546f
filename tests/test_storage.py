"""Selfie storage tests."""

import re

import pytest

from src.domain.errors import ValidationFailure
from src.infrastructure.storage import SelfieStorage, generate_selfie_path

JPEG = b"\xff\xd8\xff\xe0fake-jpeg"


@pytest.fixture
def storage(tmp_path):
    return SelfieStorage(str(tmp_path), "selfies", "http://test/", max_bytes=64)


def test_path_layout():
    path = generate_selfie_path("dev-1")
    assert re.fullmatch(r"dev-1/selfie_\d+_[a-z0-9]{6}\.jpg", path)
    assert generate_selfie_path(None).startswith("anonymous/")


@pytest.mark.asyncio
async def test_save_writes_file_and_returns_url(storage):
    url = await storage.save("dev-1", JPEG, "image/jpeg")
    assert url.startswith("http://test/storage/selfies/dev-1/selfie_")

    relative = url.split("/storage/selfies/", 1)[1]
    assert (storage.bucket_dir / relative).read_bytes() == JPEG


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "device_id,content,content_type",
    [
        ("dev-1", JPEG, "text/plain"),
        ("dev-1", b"", "image/png"),
        ("dev-1", b"x" * 65, "image/png"),
        ("../etc", JPEG, "image/jpeg"),
        ("a/b", JPEG, "image/webp"),
    ],
)
async def test_rejected_uploads(storage, device_id, content, content_type):
    with pytest.raises(ValidationFailure):
        await storage.save(device_id, content, content_type)
    assert not storage.bucket_dir.exists()
