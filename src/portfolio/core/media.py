import hashlib
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

import httpx
from fastapi import HTTPException, UploadFile

from portfolio.shared import Logger, load_config

logger = Logger(__name__).get_logger()

config = load_config()

AVATAR_FOLDER = "PORTFOLIO AVATAR"
RESUME_FOLDER = "PORTFOLIO RESUME"


class MediaError(Exception):
    """The media host refused or failed an operation."""


@dataclass(frozen=True)
class MediaObject:
    public_id: str
    url: str


async def read_upload(file: UploadFile, max_size: int = config.files.max_file_size) -> bytes:
    content = await file.read()
    if len(content) > max_size:
        logger.warning(
            "Rejected %s: %s bytes exceeds limit of %s", file.filename, len(content), max_size
        )
        raise HTTPException(
            status_code=413,
            detail=f"File {file.filename} exceeds the maximum size of {max_size} bytes",
        )
    return content


def get_safe_file_path(root: Path, relative: str) -> Path:
    """Resolve ``relative`` under ``root``, refusing anything that escapes it."""
    base = root.resolve()
    candidate = (base / relative).resolve()
    if candidate == base or not candidate.is_relative_to(base):
        logger.warning("Blocked path traversal attempt: %s", relative)
        raise HTTPException(status_code=400, detail="Invalid file path")
    return candidate


class MediaStore:
    async def upload(self, file: UploadFile, folder: str) -> MediaObject:
        raise NotImplementedError

    async def destroy(self, media: MediaObject) -> None:
        raise NotImplementedError


class LocalMediaStore(MediaStore):
    """Keeps uploads on the local disk and serves them through ``/media``."""

    def __init__(self, root: Path, base_url: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def folder_slug(folder: str) -> str:
        return folder.strip().lower().replace(" ", "_")

    async def upload(self, file: UploadFile, folder: str) -> MediaObject:
        content = await read_upload(file)
        suffix = Path(file.filename or "").suffix.lower()
        public_id = f"{self.folder_slug(folder)}/{uuid.uuid4().hex}{suffix}"

        file_path = get_safe_file_path(self.root, public_id)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(file_path, "wb") as f:
                f.write(content)
        except OSError as e:
            logger.error("Failed to save file to disk: %s", e)
            raise MediaError(f"Failed to save {file.filename}") from e

        logger.info("Stored %s (%s bytes) as %s", file.filename, len(content), public_id)
        return MediaObject(public_id=public_id, url=f"{self.base_url}/{public_id}")

    async def destroy(self, media: MediaObject) -> None:
        file_path = get_safe_file_path(self.root, media.public_id)
        file_path.unlink(missing_ok=True)
        logger.info("Removed %s", media.public_id)


class CloudinaryMediaStore(MediaStore):
    """Signed uploads against the Cloudinary REST API."""

    api_base = "https://api.cloudinary.com/v1_1"

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not (cloud_name and api_key and api_secret):
            raise ValueError("Cloudinary media store needs cloud_name, api_key and api_secret")
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.timeout = timeout
        self.transport = transport

    def sign(self, params: dict[str, str]) -> str:
        to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
        return hashlib.sha1((to_sign + self.api_secret).encode("utf-8")).hexdigest()

    def signed_params(self, **params: str) -> dict[str, str]:
        params["timestamp"] = str(int(time.time()))
        return {**params, "api_key": self.api_key, "signature": self.sign(params)}

    @staticmethod
    def resource_type_of(url: str) -> str:
        # https://res.cloudinary.com/<cloud>/<resource_type>/upload/...
        parts = urlparse(url).path.strip("/").split("/")
        if len(parts) > 2 and parts[2] == "upload":
            return parts[1]
        return "image"

    async def _post(self, path: str, data: dict, files: dict | None = None) -> dict:
        url = f"{self.api_base}/{self.cloud_name}/{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(url, data=data, files=files)
        except httpx.HTTPError as e:
            logger.error("Media host request to %s failed: %s", path, e)
            raise MediaError(str(e)) from e

        if resp.status_code != 200:
            logger.error(
                "Media host returned %s for %s: %s", resp.status_code, path, resp.text[:200]
            )
            raise MediaError(f"Media host returned {resp.status_code}")
        return resp.json()

    async def upload(self, file: UploadFile, folder: str) -> MediaObject:
        content = await read_upload(file)
        data = self.signed_params(folder=folder)
        files = {
            "file": (
                file.filename or "upload",
                content,
                file.content_type or "application/octet-stream",
            )
        }
        body = await self._post("auto/upload", data=data, files=files)
        logger.info("Uploaded %s to media host as %s", file.filename, body["public_id"])
        return MediaObject(public_id=body["public_id"], url=body["secure_url"])

    async def destroy(self, media: MediaObject) -> None:
        resource_type = self.resource_type_of(media.url)
        data = self.signed_params(public_id=media.public_id)
        body = await self._post(f"{resource_type}/destroy", data=data)
        logger.info("Media host destroy %s: %s", media.public_id, body.get("result"))


def get_media_store() -> MediaStore:
    media = config.media
    if media.backend == "cloudinary":
        return CloudinaryMediaStore(
            media.cloud_name, media.api_key, media.api_secret, timeout=media.timeout
        )
    return LocalMediaStore(Path(config.paths.files), media.base_url)
