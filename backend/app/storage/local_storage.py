import logging
import secrets
import time
from pathlib import Path
from typing import Optional
from fastapi import UploadFile
from app.core.config import settings
from app.core.errors import FileTooLarge, UnsupportedMediaType

logger = logging.getLogger(__name__)

# Image types accepted for profile pictures and the extension each is stored under
IMAGE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/bmp": ".bmp",
    "image/avif": ".avif",
}
ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".avif"}


class LocalStorage:
    """Profile pictures kept in a directory on local or mounted disk"""

    def __init__(
        self,
        upload_dir: str = settings.UPLOAD_DIR,
        max_file_size: int = settings.MAX_FILE_SIZE,
        url_prefix: str = settings.UPLOAD_URL_PREFIX,
        default_picture: str = settings.DEFAULT_PROFILE_PICTURE,
    ):
        self.upload_dir = Path(upload_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self.max_file_size = max_file_size
        self.url_prefix = url_prefix.rstrip("/")
        self.default_picture = default_picture

    def store(self, content: bytes, original_name: Optional[str], mime_type: Optional[str]) -> str:
        """Persist an image and return its generated stored name"""
        if mime_type not in IMAGE_EXTENSIONS:
            raise UnsupportedMediaType()
        if len(content) > self.max_file_size:
            raise FileTooLarge(self.max_file_size)

        stored_name = self._generate_name(original_name, mime_type)
        with open(self.upload_dir / stored_name, "wb") as f:
            f.write(content)

        logger.info(f"Stored profile picture {stored_name} ({len(content)} bytes)")
        return stored_name

    async def save_upload(self, file: UploadFile) -> str:
        """Read an upload without buffering past the size ceiling, then store it"""
        if file.content_type not in IMAGE_EXTENSIONS:
            raise UnsupportedMediaType()
        content = await file.read(self.max_file_size + 1)
        return self.store(content, file.filename, file.content_type)

    def remove(self, stored_name: Optional[str]) -> bool:
        """Delete a stored picture.

        No-op for a missing name, the shared default placeholder, or a file
        that is already gone. Returns True only when bytes were deleted.
        """
        if not stored_name or stored_name == self.default_picture:
            return False
        try:
            self.get_file_path(stored_name).unlink()
        except FileNotFoundError:
            return False
        logger.info(f"Deleted profile picture: {stored_name}")
        return True

    def url_for(self, stored_name: Optional[str]) -> Optional[str]:
        """Public path the picture is served from"""
        if not stored_name:
            return None
        return f"{self.url_prefix}/{stored_name}"

    def get_file_path(self, stored_name: str) -> Path:
        # Only the final path component is honoured
        return self.upload_dir / Path(stored_name).name

    def file_exists(self, stored_name: Optional[str]) -> bool:
        return bool(stored_name) and self.get_file_path(stored_name).is_file()

    def list_files(self) -> list[Path]:
        return [path for path in self.upload_dir.iterdir() if path.is_file()]

    @staticmethod
    def _generate_name(original_name: Optional[str], mime_type: str) -> str:
        # Millisecond timestamp plus random suffix; the client extension is
        # kept only when it is a known image extension
        extension = Path(original_name or "").suffix.lower()
        if extension not in ALLOWED_EXTENSIONS:
            extension = IMAGE_EXTENSIONS[mime_type]
        timestamp = int(time.time() * 1000)
        return f"profile-{timestamp}-{secrets.randbelow(10**9)}{extension}"


storage = LocalStorage()
