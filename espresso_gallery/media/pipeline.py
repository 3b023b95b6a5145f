"""Upload pipeline: spool -> validate -> transcode -> store -> commit.

Steps run strictly in order for one upload. If any step raises, every file the
pipeline created so far (staged original, stored copies) is removed before the
error propagates. Task cancellation skips cleanup.
"""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, TypeVar

import aiofiles
import aiofiles.os

from espresso_gallery.errors import ValidationError
from espresso_gallery.media.artifacts import SAFE_FILENAME, ArtifactStore
from espresso_gallery.media.policy import VIDEO_TYPES, UploadPolicy
from espresso_gallery.media.transcoder import transcode_image_async
from espresso_gallery.media.validator import (
    check_declared_type,
    check_size,
    validate_image_async,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

CHUNK_SIZE = 64 * 1024

_EXT_BY_TYPE = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "video/mp4": ".mp4",
}


class Upload(Protocol):
    """What the pipeline needs from an incoming file (FastAPI ``UploadFile`` fits)."""

    filename: str | None
    content_type: str | None

    async def read(self, size: int = -1) -> bytes: ...


@dataclass(frozen=True)
class StoredArtifact:
    filename: str
    url: str
    content_type: str
    size_bytes: int
    width: int | None = None
    height: int | None = None


def _now_ms() -> int:
    return int(time.time() * 1000)


def staged_filename(field: str, original_name: str | None, content_type: str | None) -> str:
    """``<field>-<ms>-<rand><ext>``; the extension comes from the client name when safe."""
    ext = Path(original_name or "").suffix.lower()
    if not ext or not SAFE_FILENAME.match(ext):
        ext = _EXT_BY_TYPE.get((content_type or "").lower(), "")
    return f"{field}-{_now_ms()}-{secrets.randbelow(10**9)}{ext}"


def processed_filename(staged_name: str, ext: str = ".jpg") -> str:
    return f"processed_{_now_ms()}_{Path(staged_name).stem}{ext}"


class UploadPipeline:
    """Runs one upload policy end to end against an ``ArtifactStore``."""

    def __init__(self, store: ArtifactStore, policy: UploadPolicy) -> None:
        self.store = store
        self.policy = policy

    async def spool(self, upload: Upload, field: str) -> Path:
        """Stream the upload into the staging directory, enforcing the size cap.

        Raises:
            FileTooLarge: as soon as more than ``policy.max_bytes`` have arrived
        """
        await aiofiles.os.makedirs(self.store.staging_dir, exist_ok=True)
        path = self.store.staging_dir / staged_filename(field, upload.filename, upload.content_type)
        received = 0
        try:
            async with aiofiles.open(path, "wb") as f:
                while chunk := await upload.read(CHUNK_SIZE):
                    received += len(chunk)
                    check_size(received, self.policy)
                    await f.write(chunk)
        except Exception:
            await self._discard(path)
            raise

        if received == 0:
            await self._discard(path)
            raise ValidationError("Uploaded file is empty", code="EMPTY_FILE")

        logger.debug(f"Spooled {path.name} ({received:,} bytes)")
        return path

    async def ingest(
        self,
        upload: Upload,
        field: str,
        commit: Callable[[StoredArtifact], Awaitable[T]],
    ) -> T:
        """Validate and normalize an image upload, store it, then run ``commit``."""
        check_declared_type(upload.content_type, self.policy)

        staged = await self.spool(upload, field)
        stored_name: str | None = None
        try:
            info = await validate_image_async(staged, upload.content_type, self.policy)
            image = await transcode_image_async(staged, self.policy.transcode)

            stored_name = processed_filename(staged.name)
            url = await self.store.put(stored_name, image.data)

            artifact = StoredArtifact(
                filename=stored_name,
                url=url,
                content_type="image/jpeg",
                size_bytes=len(image.data),
                width=image.width,
                height=image.height,
            )
            result = await commit(artifact)
        except Exception as e:
            logger.warning(f"Upload {staged.name} failed ({type(e).__name__}: {e}); cleaning up")
            await self._discard(staged)
            if stored_name is not None:
                await self.store.remove(stored_name)
            raise

        await self._discard(staged)
        logger.info(
            f"Ingested {self.policy.name} upload {stored_name} "
            f"({info.width}x{info.height} -> {image.width}x{image.height})"
        )
        return result

    async def ingest_passthrough(
        self,
        upload: Upload,
        field: str,
        commit: Callable[[StoredArtifact], Awaitable[T]],
    ) -> T:
        """Store non-image media (mp4) unmodified after type and size checks."""
        check_declared_type(upload.content_type, self.policy)
        content_type = (upload.content_type or "").lower()
        if content_type not in VIDEO_TYPES:
            raise ValidationError(f"Passthrough not supported for {content_type or 'unknown type'}")

        staged = await self.spool(upload, field)
        stored_name: str | None = None
        try:
            async with aiofiles.open(staged, "rb") as f:
                data = await f.read()
            stored_name = processed_filename(staged.name, ext=staged.suffix or ".mp4")
            url = await self.store.put(stored_name, data)
            artifact = StoredArtifact(
                filename=stored_name, url=url, content_type=content_type, size_bytes=len(data)
            )
            result = await commit(artifact)
        except Exception:
            await self._discard(staged)
            if stored_name is not None:
                await self.store.remove(stored_name)
            raise

        await self._discard(staged)
        logger.info(f"Stored {self.policy.name} media {stored_name} ({len(data):,} bytes)")
        return result

    async def _discard(self, path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove staged file {path.name}: {e}")
