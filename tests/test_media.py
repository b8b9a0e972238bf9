import io
from pathlib import Path

import httpx
import pytest
from fastapi import UploadFile

from videotube.exceptions import ConflictError
from videotube.services import media as media_module
from videotube.services.media import CloudinaryStorage, save_upload_to_temp, temp_uploads


class TestCloudinaryStorage:
    """Uploads always clean up the local file"""

    async def test_successful_upload(self, tmp_path):
        local = tmp_path / "clip.mp4"
        local.write_bytes(b"video-bytes")

        def handler(request: httpx.Request) -> httpx.Response:
            assert b"video-bytes" in request.read()
            return httpx.Response(200, json={"secure_url": "https://cdn.test/clip.mp4", "duration": 12.5})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            storage = CloudinaryStorage("https://upload.test", "preset", client=client)
            uploaded = await storage.upload(str(local))

        assert uploaded.url == "https://cdn.test/clip.mp4"
        assert uploaded.duration == 12.5
        assert not local.exists()

    async def test_failed_upload_returns_none(self, tmp_path):
        local = tmp_path / "avatar.png"
        local.write_bytes(b"png-bytes")

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": "boom"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            storage = CloudinaryStorage("https://upload.test", "preset", client=client)
            uploaded = await storage.upload(str(local))

        assert uploaded is None
        assert not local.exists()

    async def test_missing_file(self, tmp_path):
        storage = CloudinaryStorage("https://upload.test", "preset")

        assert await storage.upload(str(tmp_path / "missing.png")) is None
        assert await storage.upload(None) is None


class TestTempUploads:
    """Request files live in the temp directory only while the handler runs"""

    @pytest.fixture(autouse=True)
    def temp_dir(self, monkeypatch, tmp_path):
        monkeypatch.setattr(media_module.settings, "temp_dir", str(tmp_path / "temp"))
        return tmp_path / "temp"

    async def test_upload_is_spooled_to_disk(self, temp_dir):
        upload = UploadFile(file=io.BytesIO(b"png-bytes"), filename="avatar.png")

        path = await save_upload_to_temp(upload)

        assert path.endswith(".png")
        assert Path(path).read_bytes() == b"png-bytes"
        assert await save_upload_to_temp(None) is None

    async def test_files_are_removed_when_the_handler_fails(self, temp_dir):
        avatar = UploadFile(file=io.BytesIO(b"avatar"), filename="avatar.png")
        cover = UploadFile(file=io.BytesIO(b"cover"), filename="cover.png")

        with pytest.raises(ConflictError):
            async with temp_uploads(avatar, cover, None) as (avatar_path, cover_path, missing):
                assert missing is None
                assert len(list(temp_dir.iterdir())) == 2
                raise ConflictError("User with email or username already exists")

        assert list(temp_dir.iterdir()) == []

    async def test_consumed_files_are_tolerated(self, temp_dir):
        upload = UploadFile(file=io.BytesIO(b"video"), filename="clip.mp4")

        async with temp_uploads(upload) as (path,):
            media_module.remove_temp_file(path)

        assert list(temp_dir.iterdir()) == []
