"""
Local disk storage for uploaded images.

`UploadStorage` is built once at startup from settings (see devnet/main.py) and
handed to endpoints through the `get_storage` dependency. Files are served back
under the `/uploads` URL prefix.
"""

import logging
import secrets
import time
from pathlib import Path
from typing import List, Optional

from fastapi import Request, UploadFile

from devnet.core.config import Settings
from devnet.core.errors import BadRequestError, DomainError, PayloadTooLargeError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
URL_PREFIX = "/uploads"


class UploadStorage:
    def __init__(self, root: Path, max_bytes: int, url_prefix: str = URL_PREFIX):
        self.root = Path(root).resolve()
        self.max_bytes = max_bytes
        self.url_prefix = url_prefix.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "UploadStorage":
        return cls(Path(settings.UPLOAD_FOLDER), settings.MAX_IMAGE_BYTES)

    def ensure(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info(f"Serving uploads from {self.root}")

    @property
    def max_megabytes(self) -> int:
        return self.max_bytes // (1024 * 1024)

    def unique_name(self, prefix: str, original: Optional[str]) -> str:
        suffix = Path(original or "").suffix.lower()
        ts = int(time.time() * 1000)
        return f"{prefix}-{ts}-{secrets.randbelow(10 ** 9)}{suffix}"

    async def save_image(self, upload: UploadFile, prefix: str = "image", subdir: str = "") -> str:
        """
        Streams an image upload to disk and returns its public URL.
        Non-image content types are rejected with 400, oversized files with 413.
        """
        if not (upload.content_type or "").startswith("image/"):
            raise BadRequestError("Only image files are allowed!")

        directory = self.root / subdir if subdir else self.root
        directory.mkdir(parents=True, exist_ok=True)
        name = self.unique_name(prefix, upload.filename)
        dest = directory / name

        written = 0
        try:
            with dest.open("wb") as f:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_bytes:
                        raise PayloadTooLargeError(
                            f"File is too large. Maximum file size is {self.max_megabytes}MB."
                        )
                    f.write(chunk)
        except PayloadTooLargeError:
            dest.unlink(missing_ok=True)
            logger.warning(f"Rejected oversized upload {upload.filename!r}")
            raise

        logger.info(f"Saved upload {upload.filename!r} as {dest}")
        return self.url_for(name, subdir)

    async def save_images(self, uploads: List[UploadFile], prefix: str = "image", subdir: str = "") -> List[str]:
        """Saves every upload or none of them: a rejected file removes the ones already written."""
        urls: List[str] = []
        try:
            for upload in uploads:
                urls.append(await self.save_image(upload, prefix=prefix, subdir=subdir))
        except DomainError:
            for url in urls:
                self.discard(url)
            raise
        return urls

    def discard(self, url: str) -> None:
        path = self.resolve_url(url)
        if path is not None:
            path.unlink(missing_ok=True)
            logger.info(f"Removed upload {path}")

    def url_for(self, name: str, subdir: str = "") -> str:
        parts = [self.url_prefix, subdir, name] if subdir else [self.url_prefix, name]
        return "/".join(parts)

    def resolve_url(self, url: str) -> Optional[Path]:
        """Maps an `/uploads/...` URL back to a file inside the storage root."""
        if not url or not url.startswith(self.url_prefix + "/"):
            return None
        candidate = (self.root / url[len(self.url_prefix) + 1:]).resolve()
        if self.root not in candidate.parents:
            return None
        return candidate if candidate.is_file() else None

    def exists(self, filename: str) -> bool:
        if not filename or ".." in filename or "/" in filename or "\\" in filename:
            raise BadRequestError("Invalid filename")
        return (self.root / filename).is_file()


def get_storage(request: Request) -> UploadStorage:
    """FastAPI dependency returning the storage configured at startup."""
    return request.app.state.storage
