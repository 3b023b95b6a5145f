"""Upload validation: declared type, size, decodability, format, dimensions.

Checks run in that order and stop at the first failure. The file on disk is
only ever read.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from espresso_gallery.errors import FileTooLarge, InvalidImageDimensions, UnsupportedImageFormat
from espresso_gallery.media.policy import DECODED_FORMATS, UploadPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageInfo:
    format: str  # jpeg | png | webp
    width: int
    height: int
    size_bytes: int


def check_declared_type(declared_type: str | None, policy: UploadPolicy) -> None:
    """Reject a declared MIME type the policy does not accept."""
    if not policy.allows(declared_type):
        allowed = ", ".join(sorted(policy.allowed_types))
        raise UnsupportedImageFormat(
            f"Invalid image format. Allowed types: {allowed}",
            detail={"declared_type": declared_type},
        )


def check_size(size_bytes: int, policy: UploadPolicy) -> None:
    if size_bytes > policy.max_bytes:
        raise FileTooLarge(
            f"File size too large. Maximum size is {policy.max_megabytes}MB",
            detail={"size_bytes": size_bytes, "max_bytes": policy.max_bytes},
        )


def _read_header(path: Path) -> tuple[str | None, int, int]:
    """Open and verify the image. Returns (pillow format, width, height)."""
    try:
        with Image.open(path) as img:
            fmt, (width, height) = img.format, img.size
            img.verify()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as e:
        raise UnsupportedImageFormat(
            "Invalid image format. File could not be decoded as an image",
            detail={"error": str(e)},
        ) from e
    return fmt, width, height


def validate_image(path: str | Path, declared_type: str | None, policy: UploadPolicy) -> ImageInfo:
    """Validate a staged upload against ``policy``.

    Raises:
        UnsupportedImageFormat: declared type not allowed, undecodable, or not jpeg/png/webp
        FileTooLarge: larger than ``policy.max_bytes``
        InvalidImageDimensions: either side below the policy minimum
    """
    path = Path(path)
    check_declared_type(declared_type, policy)

    size_bytes = path.stat().st_size
    check_size(size_bytes, policy)

    pil_format, width, height = _read_header(path)
    fmt = DECODED_FORMATS.get(pil_format or "")
    if fmt is None:
        raise UnsupportedImageFormat(
            f"Invalid image format. Allowed formats: {', '.join(DECODED_FORMATS.values())}",
            detail={"format": pil_format},
        )

    if width < policy.min_width or height < policy.min_height:
        raise InvalidImageDimensions(
            f"Image dimensions too small. Minimum size is "
            f"{policy.min_width}x{policy.min_height} pixels.",
            detail={"width": width, "height": height},
        )

    logger.debug(f"Validated {path.name}: {fmt} {width}x{height}, {size_bytes} bytes")
    return ImageInfo(format=fmt, width=width, height=height, size_bytes=size_bytes)


async def validate_image_async(
    path: str | Path, declared_type: str | None, policy: UploadPolicy
) -> ImageInfo:
    """``validate_image`` off the event loop."""
    return await asyncio.to_thread(validate_image, path, declared_type, policy)
