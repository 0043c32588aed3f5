"""Tests for the storage backends and cleanup helper."""

import time

import cloudinary.uploader
import pytest
from cloudinary.exceptions import Error as CloudinaryError

from conftest import FakeStorage
from models.exceptions import (
    StorageUploadException,
    UploadTimeoutException,
    UpstreamDegradedException,
)
from services.storage_service import CloudinaryStorage, LocalObjectStorage, destroy_quietly


@pytest.fixture
def local_storage(tmp_path) -> LocalObjectStorage:
    return LocalObjectStorage(root=tmp_path, url_prefix="/uploads/")


class TestLocalObjectStorage:
    async def test_upload_then_download(self, local_storage, tmp_path):
        stored = await local_storage.upload(b"jpeg-bytes", "posts", "a.JPG", "image/jpeg")

        assert stored.public_id.startswith("posts/")
        assert stored.public_id.endswith(".jpg")
        assert stored.url == f"/uploads/{stored.public_id}"
        assert (tmp_path / stored.public_id).read_bytes() == b"jpeg-bytes"

        downloaded = await local_storage.download(stored.url)
        assert downloaded.data == b"jpeg-bytes"
        assert downloaded.content_type == "image/jpeg"

    async def test_extension_from_content_type(self, local_storage):
        stored = await local_storage.upload(b"png", "posts", "blob", "image/png")
        assert stored.public_id.endswith(".png")

    async def test_destroy_removes_file(self, local_storage, tmp_path):
        stored = await local_storage.upload(b"x", "posts", "a.jpg", "image/jpeg")

        await local_storage.destroy(stored.public_id)
        await local_storage.destroy(stored.public_id)

        assert not (tmp_path / stored.public_id).exists()

    async def test_download_missing_file(self, local_storage):
        with pytest.raises(UpstreamDegradedException):
            await local_storage.download("/uploads/posts/nope.jpg")

    async def test_path_escape_rejected(self, local_storage):
        with pytest.raises(ValueError):
            await local_storage.destroy("../outside.txt")


class TestCloudinaryStorage:
    @pytest.fixture
    def sdk(self, monkeypatch):
        calls: dict[str, list] = {"upload": [], "destroy": []}
        behaviour: dict = {"upload": None, "destroy": {"result": "ok"}}

        def fake_upload(file, **options):
            calls["upload"].append((file, options))
            outcome = behaviour["upload"]
            if isinstance(outcome, BaseException):
                raise outcome
            if callable(outcome):
                return outcome()
            return {
                "secure_url": f"https://res.cloudinary.com/demo/{options['folder']}/x.jpg",
                "public_id": f"{options['folder']}/x",
            }

        def fake_destroy(public_id, **options):
            calls["destroy"].append(public_id)
            return behaviour["destroy"]

        monkeypatch.setattr(cloudinary.uploader, "upload", fake_upload)
        monkeypatch.setattr(cloudinary.uploader, "destroy", fake_destroy)
        return calls, behaviour

    @pytest.fixture
    def cloud(self) -> CloudinaryStorage:
        return CloudinaryStorage(
            cloud_name="demo", api_key="k", api_secret="s", timeout=0.2
        )

    async def test_upload_uses_folder(self, sdk, cloud):
        calls, _ = sdk

        stored = await cloud.upload(b"jpeg", "posts", "a.jpg", "image/jpeg")

        assert stored.public_id == "posts/x"
        assert stored.url == "https://res.cloudinary.com/demo/posts/x.jpg"
        data, options = calls["upload"][0]
        assert data == b"jpeg"
        assert options["folder"] == "posts"
        assert cloudinary.config().cloud_name == "demo"

    async def test_sdk_error_is_storage_failure(self, sdk, cloud):
        _, behaviour = sdk
        behaviour["upload"] = CloudinaryError("Invalid image file")

        with pytest.raises(StorageUploadException, match="Invalid image file"):
            await cloud.upload(b"jpeg", "posts", "a.jpg", "image/jpeg")

    async def test_slow_upload_times_out(self, sdk, cloud):
        _, behaviour = sdk
        behaviour["upload"] = lambda: time.sleep(1) or {}

        with pytest.raises(UploadTimeoutException):
            await cloud.upload(b"jpeg", "posts", "a.jpg", "image/jpeg")

    async def test_destroy(self, sdk, cloud):
        calls, behaviour = sdk

        await cloud.destroy("posts/x")
        behaviour["destroy"] = {"result": "not found"}
        await cloud.destroy("posts/x")

        assert calls["destroy"] == ["posts/x", "posts/x"]

    async def test_destroy_failure_raises(self, sdk, cloud):
        _, behaviour = sdk
        behaviour["destroy"] = {"result": "error"}

        with pytest.raises(StorageUploadException):
            await cloud.destroy("posts/x")


async def test_destroy_quietly_ignores_failures():
    storage = FakeStorage(fail_destroy=True)
    await destroy_quietly(storage, ["posts/1-a.jpg", "posts/2-b.jpg"])
    assert storage.destroyed == []
