"""
Upload Service

Validates uploaded images and writes them to the blob store under a
collision-free path: ``<prefix>/<epoch-millis>_<original-filename>``, with
gallery assets under ``<prefix>/gallery/``.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from io import BytesIO
from pathlib import Path, PurePosixPath

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from editorial.config import settings
from editorial.exceptions import FileUploadError, InvalidFileTypeError, StorageError

logger = logging.getLogger(__name__)

# Configuration
MAX_FILE_SIZE = settings.media_max_file_size
CHUNK_SIZE = 8192

# Allowed file types
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": [".jpg", ".jpeg"],
    "image/png": [".png"],
    "image/gif": [".gif"],
    "image/webp": [".webp"],
}


def build_blob_path(prefix: str, filename: str, gallery: bool = False, now_ms: int | None = None) -> str:
    """
    Build the storage path for an uploaded file.

    Args:
        prefix: Collection media prefix, e.g. "articles" or "blog"
        filename: Original filename; any directory part is discarded
        gallery: Place the file under the gallery sub-folder
        now_ms: Epoch milliseconds to use (defaults to the current time)

    Returns:
        Relative path such as "blog/gallery/1717171717171_photo.png"
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    name = PurePosixPath(filename.replace("\\", "/")).name
    folder = f"{prefix}/gallery" if gallery else prefix
    return f"{folder}/{now_ms}_{name}"


class BlobStore(ABC):
    """Blob store contract: ``upload(path, data) -> url``, raising StorageError on failure."""

    @abstractmethod
    async def upload(self, path: str, data: bytes) -> str: ...


class LocalBlobStore(BlobStore):
    """Blob store writing under a local directory and serving from ``base_url``."""

    def __init__(self, root: str | Path = settings.upload_dir, base_url: str = settings.media_base_url):
        self.root = Path(root)
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"

    async def upload(self, path: str, data: bytes) -> str:
        file_path = self.root / path
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with file_path.open("wb") as buffer:
                buffer.write(data)
        except OSError as e:
            logger.error(f"Error writing blob {path}: {e}")
            raise StorageError(f"Failed to store file: {path}", operation="upload") from e

        logger.info("Blob stored: %s (%d bytes)", path, len(data))
        return f"{self.base_url}{path}"


class UploadService:
    """Service for validating and storing record media"""

    def __init__(self, blob_store: BlobStore):
        self.blob_store = blob_store

    @staticmethod
    def validate_file(file: UploadFile) -> str:
        """
        Validate the uploaded file's name, MIME type and extension.

        Returns:
            The validated MIME type

        Raises:
            FileUploadError: If no file was provided
            InvalidFileTypeError: If the type or extension is not an allowed image type
        """
        if not file.filename:
            raise FileUploadError("No file provided")

        mime_type = file.content_type
        if not mime_type or mime_type not in ALLOWED_IMAGE_TYPES:
            raise InvalidFileTypeError(mime_type or "unknown", list(ALLOWED_IMAGE_TYPES.keys()))

        file_ext = Path(file.filename).suffix.lower()
        if file_ext not in ALLOWED_IMAGE_TYPES[mime_type]:
            raise FileUploadError(
                f"File extension {file_ext} does not match MIME type {mime_type}", filename=file.filename
            )

        return mime_type

    @staticmethod
    async def read_file(file: UploadFile) -> bytes:
        """Read the upload into memory, enforcing the size limit."""
        chunks = []
        file_size = 0
        while chunk := await file.read(CHUNK_SIZE):
            file_size += len(chunk)
            if file_size > MAX_FILE_SIZE:
                raise FileUploadError(
                    f"File size exceeds maximum allowed size of {MAX_FILE_SIZE // (1024 * 1024)}MB",
                    filename=file.filename,
                )
            chunks.append(chunk)
        return b"".join(chunks)

    @staticmethod
    def verify_image(data: bytes, filename: str) -> None:
        """Make sure the bytes decode as an image."""
        try:
            with Image.open(BytesIO(data)) as img:
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise FileUploadError("File is not a valid image", filename=filename) from e

    async def prepare(self, file: UploadFile) -> bytes:
        self.validate_file(file)
        data = await self.read_file(file)
        self.verify_image(data, file.filename)
        return data

    async def upload_image(self, file: UploadFile, prefix: str) -> str:
        """Validate and store the primary image of a record, returning its URL."""
        data = await self.prepare(file)
        return await self.blob_store.upload(build_blob_path(prefix, file.filename), data)

    async def upload_gallery(self, files: list[UploadFile], prefix: str) -> list[str]:
        """
        Validate and store a batch of gallery images.

        Every file is validated before anything is written. The batch
        shares one timestamp; files with the same name get the next free
        millisecond so no two paths of a batch collide. Uploads then run
        concurrently and are joined; if any of them fails the whole batch
        fails and no URL is returned.

        Returns:
            URLs in the same order as ``files``
        """
        if not files:
            raise FileUploadError("No files provided")

        prepared = [(file.filename, await self.prepare(file)) for file in files]
        now_ms = int(time.time() * 1000)
        paths = []
        for name, _ in prepared:
            stamp = now_ms
            path = build_blob_path(prefix, name, gallery=True, now_ms=stamp)
            while path in paths:
                stamp += 1
                path = build_blob_path(prefix, name, gallery=True, now_ms=stamp)
            paths.append(path)

        urls = await asyncio.gather(
            *(self.blob_store.upload(path, data) for path, (_, data) in zip(paths, prepared))
        )
        logger.info("Gallery batch stored: %d file(s) under %s", len(urls), prefix)
        return list(urls)


upload_service = UploadService(LocalBlobStore())
