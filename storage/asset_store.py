"""Local object storage for book covers and profile pictures.

Files live under a root directory and are addressed by the public URL
``<base_url><key>``; callers only ever keep the URL.
"""

import logging
import re
import time
from pathlib import Path
from typing import Iterable

from config.exceptions import ImageValidationError, StorageError
from models.upload import UploadFile

logger = logging.getLogger(__name__)

_UNSAFE_NAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


def validate_image_file(file: UploadFile, max_bytes: int, allowed_types: Iterable[str]) -> None:
    """Reject uploads that are not an allowed image type or are too large."""
    content_type = (file.content_type or "").lower()
    if content_type not in {t.lower() for t in allowed_types}:
        raise ImageValidationError(
            "Please select a valid image file (JPEG, PNG, or WebP)",
            content_type=content_type, size=file.size,
        )
    if file.size > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise ImageValidationError(
            f"Image size should be less than {limit_mb:g}MB",
            content_type=content_type, size=file.size,
        )


def safe_filename(filename: str) -> str:
    name = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    name = _UNSAFE_NAME_RE.sub("_", name).strip("._")
    return name or "upload"


class AssetStore:
    """Stores uploaded binaries and hands back public URLs."""

    BOOK_COVERS = "book-covers"
    PROFILE_PICTURES = "profile-pictures"

    def __init__(self, root: str | Path, base_url: str = "/assets/"):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"

    # ---- Addressing ----

    def url_for(self, key: str) -> str:
        return f"{self.base_url}{key}"

    def key_for(self, url: str) -> str:
        if not url or not url.startswith(self.base_url):
            raise StorageError("Asset URL is not managed by this store", {"url": url})
        return url[len(self.base_url):]

    def path_for(self, key: str) -> Path:
        root = self.root.resolve()
        path = (root / key).resolve()
        if path == root or root not in path.parents:
            raise StorageError("Asset key escapes the storage root", {"key": key})
        return path

    # ---- Operations ----

    def upload(self, key: str, file: UploadFile) -> str:
        """Write the file under ``key`` and return its public URL."""
        path = self.path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(file.data)
        except OSError as e:
            raise StorageError(f"Failed to store asset: {e}", {"key": key}) from e
        logger.info("Stored asset %s (%d bytes, %s)", key, file.size, file.content_type)
        return self.url_for(key)

    def exists(self, url: str) -> bool:
        return self.path_for(self.key_for(url)).is_file()

    def delete(self, url: str) -> None:
        path = self.path_for(self.key_for(url))
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise StorageError("Asset not found", {"url": url}) from e
        except OSError as e:
            raise StorageError(f"Failed to delete asset: {e}", {"url": url}) from e
        logger.info("Deleted asset %s", url)

    def discard(self, url: str) -> bool:
        """Best-effort delete: failures are logged, never raised."""
        try:
            self.delete(url)
        except StorageError as e:
            logger.warning("Could not delete old asset %s: %s", url, e)
            return False
        return True

    # ---- Keyed uploads ----

    def upload_book_cover(self, file: UploadFile, book_id: str, user_id: str) -> str:
        key = f"{self.BOOK_COVERS}/{user_id}/{book_id}/{_millis()}_{safe_filename(file.filename)}"
        return self.upload(key, file)

    def upload_profile_picture(self, file: UploadFile, user_id: str) -> str:
        key = f"{self.PROFILE_PICTURES}/{user_id}/{_millis()}_{safe_filename(file.filename)}"
        return self.upload(key, file)


def _millis() -> int:
    return int(time.time() * 1000)
