import logging
import os
import shutil
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

import httpx
from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from videotube.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


@dataclass
class MediaUpload:
    url: str
    duration: float = 0.0


class MediaStorage(Protocol):
    async def upload(self, local_path: Optional[str]) -> Optional[MediaUpload]:
        """Upload a local file and return its public location, or None on failure."""
        ...


class CloudinaryStorage:
    """
    Uploads files to a Cloudinary-compatible unsigned upload endpoint.
    The local file is always removed afterwards, whether the upload worked or not.
    """

    def __init__(
        self,
        upload_url: Optional[str] = None,
        upload_preset: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.upload_url = upload_url or settings.media_upload_url
        self.upload_preset = upload_preset or settings.media_upload_preset
        self.client = client

    async def upload(self, local_path: Optional[str]) -> Optional[MediaUpload]:
        if not local_path:
            return None

        try:
            content = await run_in_threadpool(Path(local_path).read_bytes)
            files = {"file": (os.path.basename(local_path), content)}
            data = {"upload_preset": self.upload_preset}
            if self.client is not None:
                response = await self.client.post(self.upload_url, data=data, files=files)
            else:
                async with httpx.AsyncClient(timeout=settings.media_upload_timeout) as client:
                    response = await client.post(self.upload_url, data=data, files=files)
            response.raise_for_status()
            body = response.json()
        except (OSError, httpx.HTTPError, ValueError) as e:
            logger.error(f"Media upload failed for {local_path}: {e}")
            return None
        finally:
            remove_temp_file(local_path)

        url = body.get("secure_url") or body.get("url")
        if not url:
            logger.error(f"Media upload for {local_path} returned no url")
            return None

        return MediaUpload(url=url, duration=float(body.get("duration") or 0.0))


def remove_temp_file(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove temp file {path}: {e}")


async def save_upload_to_temp(upload: Optional[UploadFile]) -> Optional[str]:
    """Spool an incoming multipart file to the temp directory and return its path."""
    if upload is None or not upload.filename:
        return None

    temp_dir = Path(settings.temp_dir)
    temp_dir.mkdir(parents=True, exist_ok=True)
    suffix = Path(upload.filename).suffix
    target = temp_dir / f"{uuid.uuid4().hex}{suffix}"

    await run_in_threadpool(_copy_to, upload.file, target)
    await upload.close()
    return str(target)


def _copy_to(source, target: Path) -> None:
    with target.open("wb") as out:
        shutil.copyfileobj(source, out)


@asynccontextmanager
async def temp_uploads(*uploads: Optional[UploadFile]) -> AsyncIterator[list[Optional[str]]]:
    """
    Spool request files to the temp directory for the duration of a handler.
    Whatever the storage backend did not consume is removed on the way out,
    including when the handler raises.
    """
    paths: list[Optional[str]] = []
    try:
        for upload in uploads:
            paths.append(await save_upload_to_temp(upload))
        yield paths
    finally:
        for path in paths:
            if path:
                remove_temp_file(path)
