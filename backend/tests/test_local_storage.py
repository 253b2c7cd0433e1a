import io
import re

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from app.core.errors import FileTooLarge, UnsupportedMediaType
from app.storage.local_storage import LocalStorage


@pytest.fixture
def local(tmp_path):
    return LocalStorage(upload_dir=str(tmp_path / "pics"), max_file_size=1024)


def make_upload(content: bytes, filename: str, content_type: str) -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


def test_store_generates_unique_name_keeping_extension(local):
    first = local.store(b"img", "Me.JPG", "image/jpeg")
    second = local.store(b"img", "Me.JPG", "image/jpeg")

    assert re.fullmatch(r"profile-\d+-\d+\.jpg", first)
    assert first != second
    assert local.get_file_path(first).read_bytes() == b"img"


def test_store_rejects_non_images(local):
    with pytest.raises(UnsupportedMediaType):
        local.store(b"%PDF", "cv.pdf", "application/pdf")
    assert local.list_files() == []


def test_store_takes_extension_from_image_type_when_name_is_not_an_image(local):
    name = local.store(b"<script>", "avatar.html", "image/png")
    assert re.fullmatch(r"profile-\d+-\d+\.png", name)

    assert local.store(b"img", "no-extension", "image/jpeg").endswith(".jpg")


def test_store_rejects_unlisted_image_types(local):
    with pytest.raises(UnsupportedMediaType):
        local.store(b"<svg/>", "logo.svg", "image/svg+xml")
    assert local.list_files() == []


def test_store_rejects_oversized_payload(local):
    with pytest.raises(FileTooLarge) as excinfo:
        local.store(b"x" * 1025, "big.png", "image/png")
    assert excinfo.value.status_code == 400
    assert local.list_files() == []


def test_store_accepts_payload_at_the_ceiling(local):
    name = local.store(b"x" * 1024, "edge.png", "image/png")
    assert local.file_exists(name)


async def test_save_upload_reads_and_stores(local):
    name = await local.save_upload(make_upload(b"png-bytes", "avatar.png", "image/png"))
    assert name.endswith(".png")
    assert local.get_file_path(name).read_bytes() == b"png-bytes"


async def test_save_upload_rejects_oversized(local):
    with pytest.raises(FileTooLarge):
        await local.save_upload(make_upload(b"x" * 5000, "avatar.png", "image/png"))


def test_remove_is_idempotent(local):
    name = local.store(b"img", "a.png", "image/png")
    assert local.remove(name) is True
    assert local.remove(name) is False
    assert local.remove(None) is False


def test_remove_never_touches_the_default_placeholder(local):
    placeholder = local.get_file_path(local.default_picture)
    placeholder.write_bytes(b"default")
    assert local.remove(local.default_picture) is False
    assert placeholder.exists()


def test_remove_ignores_directory_components(local, tmp_path):
    outside = tmp_path / "keep.png"
    outside.write_bytes(b"keep")
    assert local.remove("../keep.png") is False
    assert outside.exists()


def test_url_for(local):
    assert local.url_for(None) is None
    assert local.url_for("profile-1-2.png") == "/uploads/profile-pictures/profile-1-2.png"
